"""
Contact repository for database operations.

Every query here takes the owning tenant into account except
``list_owners_by_identifier``, which exists to discover the tenants an
identifier belongs to.
"""

from datetime import datetime
from typing import Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketing_platform.contacts.models import Contact, ContactGroupMember


class ContactRepository:
    """Repository for contact database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async database session.
        """
        self._session = session

    async def get_active_by_id(self, contact_id: int) -> Contact | None:
        """Get a non-deleted contact by id.

        Args:
            contact_id: Contact id.

        Returns:
            Contact if found, None otherwise.
        """
        stmt = select(Contact).where(
            Contact.id == contact_id,
            Contact.is_deleted.is_(False),
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_phone_and_owner(
        self,
        phone_number: str,
        owner_id: str,
    ) -> Contact | None:
        """Get the first non-deleted contact with a phone number under a tenant.

        Args:
            phone_number: Phone number to search.
            owner_id: Owning tenant id.

        Returns:
            Contact if found, None otherwise.
        """
        stmt = (
            select(Contact)
            .where(
                Contact.phone_number == phone_number,
                Contact.owner_id == owner_id,
                Contact.is_deleted.is_(False),
            )
            .order_by(Contact.id)
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_identifier(
        self,
        identifier: str,
        owner_id: str,
    ) -> Sequence[Contact]:
        """List a tenant's non-deleted contacts matching a phone number or email."""
        stmt = (
            select(Contact)
            .where(
                Contact.owner_id == owner_id,
                Contact.is_deleted.is_(False),
                or_(Contact.phone_number == identifier, Contact.email == identifier),
            )
            .order_by(Contact.id)
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def list_owners_by_identifier(self, identifier: str) -> list[str]:
        """List the distinct tenants owning a non-deleted contact with this phone or email."""
        stmt = (
            select(Contact.owner_id)
            .where(
                Contact.is_deleted.is_(False),
                or_(Contact.phone_number == identifier, Contact.email == identifier),
            )
            .distinct()
            .order_by(Contact.owner_id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_inactive_batch(
        self,
        owner_id: str,
        updated_before: datetime,
        after_id: int = 0,
        limit: int = 100,
    ) -> Sequence[Contact]:
        """Get the next batch of a tenant's active contacts not updated since a cutoff.

        Keyset pagination on id keeps each batch bounded.

        Args:
            owner_id: Owning tenant id.
            updated_before: Contacts updated at or after this instant are skipped.
            after_id: Only contacts with a greater id are returned.
            limit: Batch size.

        Returns:
            Contacts ordered by id.
        """
        stmt = (
            select(Contact)
            .where(
                Contact.owner_id == owner_id,
                Contact.is_active.is_(True),
                Contact.is_deleted.is_(False),
                Contact.updated_at < updated_before,
                Contact.id > after_id,
            )
            .order_by(Contact.id)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()


class ContactGroupMemberRepository:
    """Repository for contact group membership rows."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_active(self, contact_id: int, group_id: int) -> ContactGroupMember | None:
        """Get the first non-deleted membership for a (contact, group) pair."""
        stmt = (
            select(ContactGroupMember)
            .where(
                ContactGroupMember.contact_id == contact_id,
                ContactGroupMember.group_id == group_id,
                ContactGroupMember.is_deleted.is_(False),
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, contact_id: int, group_id: int) -> ContactGroupMember:
        """Insert a membership row."""
        member = ContactGroupMember(contact_id=contact_id, group_id=group_id)
        self._session.add(member)
        await self._session.flush()
        return member
