"""
Workflow repository for database operations.
"""

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketing_platform.workflows.models import TriggerType, Workflow


class WorkflowRepository:
    """Repository for workflow database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async database session.
        """
        self._session = session

    async def list_active_for_owner(
        self,
        owner_id: str,
        trigger_type: TriggerType,
    ) -> Sequence[Workflow]:
        """List a tenant's active, non-deleted workflows of one trigger type.

        Args:
            owner_id: Owning tenant id.
            trigger_type: Trigger type to filter on.

        Returns:
            Workflows ordered by id.
        """
        stmt = (
            select(Workflow)
            .where(
                Workflow.owner_id == owner_id,
                Workflow.trigger_type == trigger_type,
                Workflow.is_active.is_(True),
                Workflow.is_deleted.is_(False),
            )
            .order_by(Workflow.id)
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def list_active(self, trigger_type: TriggerType) -> Sequence[Workflow]:
        """List active, non-deleted workflows of one trigger type across all tenants.

        Only the inactivity sweep uses this; each result is then processed
        against its own tenant's contacts.
        """
        stmt = (
            select(Workflow)
            .where(
                Workflow.trigger_type == trigger_type,
                Workflow.is_active.is_(True),
                Workflow.is_deleted.is_(False),
            )
            .order_by(Workflow.id)
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()
