"""
Phone number repository for database operations.
"""

from typing import Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketing_platform.phone_numbers.models import PhoneNumber, PhoneNumberStatus


class PhoneNumberRepository:
    """Repository for phone number lookups and provisioning."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_assigned(self, number: str) -> PhoneNumber | None:
        """Get the non-deleted, tenant-assigned record for a number.

        Args:
            number: Number exactly as the provider reported it.

        Returns:
            PhoneNumber if assigned, None otherwise.
        """
        stmt = (
            select(PhoneNumber)
            .where(
                PhoneNumber.number == number,
                PhoneNumber.assigned_owner_id.is_not(None),
                PhoneNumber.is_deleted.is_(False),
            )
            .order_by(PhoneNumber.id)
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id(self, phone_number_id: int) -> PhoneNumber | None:
        """Get a non-deleted number by id."""
        stmt = select(PhoneNumber).where(
            PhoneNumber.id == phone_number_id,
            PhoneNumber.is_deleted.is_(False),
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_number(self, number: str) -> PhoneNumber | None:
        stmt = select(PhoneNumber).where(
            PhoneNumber.number == number,
            PhoneNumber.is_deleted.is_(False),
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_page(
        self,
        page: int = 1,
        page_size: int = 50,
        search: str | None = None,
    ) -> tuple[Sequence[PhoneNumber], int]:
        """List non-deleted numbers with pagination.

        Args:
            page: Page number (1-indexed).
            page_size: Number of items per page.
            search: Optional case-insensitive match on number or friendly name.

        Returns:
            Tuple of (numbers, total count).
        """
        base_query = select(PhoneNumber).where(PhoneNumber.is_deleted.is_(False))

        if search:
            pattern = f"%{search.lower()}%"
            base_query = base_query.where(
                or_(
                    func.lower(PhoneNumber.number).like(pattern),
                    func.lower(PhoneNumber.friendly_name).like(pattern),
                )
            )

        count_stmt = select(func.count()).select_from(base_query.subquery())
        total = (await self._session.execute(count_stmt)).scalar() or 0

        offset = (page - 1) * page_size
        stmt = (
            base_query
            .order_by(PhoneNumber.created_at.desc(), PhoneNumber.id.desc())
            .offset(offset)
            .limit(page_size)
        )
        result = await self._session.execute(stmt)
        return result.scalars().all(), total

    async def list_for_owner(self, owner_id: str) -> Sequence[PhoneNumber]:
        stmt = (
            select(PhoneNumber)
            .where(
                PhoneNumber.assigned_owner_id == owner_id,
                PhoneNumber.status.in_([PhoneNumberStatus.ACTIVE, PhoneNumberStatus.AVAILABLE]),
                PhoneNumber.is_deleted.is_(False),
            )
            .order_by(PhoneNumber.id)
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def list_available(self) -> Sequence[PhoneNumber]:
        stmt = (
            select(PhoneNumber)
            .where(
                PhoneNumber.status == PhoneNumberStatus.AVAILABLE,
                PhoneNumber.assigned_owner_id.is_(None),
                PhoneNumber.is_deleted.is_(False),
            )
            .order_by(PhoneNumber.id)
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def add(self, phone_number: PhoneNumber) -> PhoneNumber:
        self._session.add(phone_number)
        await self._session.flush()
        return phone_number
