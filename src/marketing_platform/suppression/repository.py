"""
Suppression repository for database operations.
"""

from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketing_platform.suppression.models import (
    SuppressionRecord,
    SuppressionRule,
    SuppressionTrigger,
    SuppressionType,
)


class SuppressionRepository:
    """Repository for suppression records and rules."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async database session.
        """
        self._session = session

    async def get_active(self, owner_id: str, phone_or_email: str) -> SuppressionRecord | None:
        """Get the tenant's active suppression for an identifier."""
        stmt = (
            select(SuppressionRecord)
            .where(
                SuppressionRecord.owner_id == owner_id,
                SuppressionRecord.phone_or_email == phone_or_email,
                SuppressionRecord.is_active.is_(True),
            )
            .order_by(SuppressionRecord.id)
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_active(self, owner_id: str, phone_or_email: str) -> Sequence[SuppressionRecord]:
        stmt = select(SuppressionRecord).where(
            SuppressionRecord.owner_id == owner_id,
            SuppressionRecord.phone_or_email == phone_or_email,
            SuppressionRecord.is_active.is_(True),
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def create(
        self,
        owner_id: str,
        phone_or_email: str,
        suppression_type: SuppressionType,
        reason: str | None,
    ) -> SuppressionRecord:
        """Insert a suppression record."""
        record = SuppressionRecord(
            owner_id=owner_id,
            phone_or_email=phone_or_email,
            suppression_type=suppression_type,
            reason=reason,
            is_active=True,
        )
        self._session.add(record)
        await self._session.flush()
        return record

    async def get_active_rule(
        self,
        owner_id: str,
        trigger: SuppressionTrigger,
    ) -> SuppressionRule | None:
        """Get the tenant's highest-priority active rule for a trigger.

        Lower ``priority`` values win.
        """
        stmt = (
            select(SuppressionRule)
            .where(
                SuppressionRule.owner_id == owner_id,
                SuppressionRule.trigger == trigger,
                SuppressionRule.is_active.is_(True),
                SuppressionRule.is_deleted.is_(False),
            )
            .order_by(SuppressionRule.priority, SuppressionRule.id)
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def has_system_rules(self, owner_id: str) -> bool:
        stmt = (
            select(SuppressionRule.id)
            .where(
                SuppressionRule.owner_id == owner_id,
                SuppressionRule.is_system_rule.is_(True),
                SuppressionRule.is_deleted.is_(False),
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def add_rules(self, rules: list[SuppressionRule]) -> list[SuppressionRule]:
        if not rules:
            return []
        self._session.add_all(rules)
        await self._session.flush()
        return rules

    async def get_rule(self, owner_id: str, rule_id: int) -> SuppressionRule | None:
        """Get a tenant's non-deleted rule by id."""
        stmt = select(SuppressionRule).where(
            SuppressionRule.id == rule_id,
            SuppressionRule.owner_id == owner_id,
            SuppressionRule.is_deleted.is_(False),
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_rules(
        self,
        owner_id: str,
        page: int = 1,
        page_size: int = 50,
        search: str | None = None,
    ) -> tuple[Sequence[SuppressionRule], int]:
        """List a tenant's rules by priority, newest first within a priority.

        Args:
            owner_id: Owning tenant id.
            page: Page number (1-indexed).
            page_size: Number of items per page.
            search: Optional case-insensitive match on the rule name.

        Returns:
            Tuple of (rules, total count).
        """
        base_query = select(SuppressionRule).where(
            SuppressionRule.owner_id == owner_id,
            SuppressionRule.is_deleted.is_(False),
        )

        if search:
            base_query = base_query.where(
                func.lower(SuppressionRule.name).like(f"%{search.lower()}%")
            )

        count_stmt = select(func.count()).select_from(base_query.subquery())
        total = (await self._session.execute(count_stmt)).scalar() or 0

        offset = (page - 1) * page_size
        stmt = (
            base_query
            .order_by(
                SuppressionRule.priority,
                SuppressionRule.created_at.desc(),
                SuppressionRule.id.desc(),
            )
            .offset(offset)
            .limit(page_size)
        )
        result = await self._session.execute(stmt)
        return result.scalars().all(), total

    async def list_active_rules(self, owner_id: str) -> Sequence[SuppressionRule]:
        stmt = (
            select(SuppressionRule)
            .where(
                SuppressionRule.owner_id == owner_id,
                SuppressionRule.is_active.is_(True),
                SuppressionRule.is_deleted.is_(False),
            )
            .order_by(SuppressionRule.priority, SuppressionRule.id)
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()
