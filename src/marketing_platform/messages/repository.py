"""
Message repository for database operations.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketing_platform.messages.models import Message


class MessageRepository:
    """Repository for message lookups."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_external_id(self, external_message_id: str) -> Message | None:
        """Get the first message carrying a provider message id.

        Args:
            external_message_id: Provider-assigned message id.

        Returns:
            Message if found, None otherwise.
        """
        stmt = (
            select(Message)
            .where(Message.external_message_id == external_message_id)
            .order_by(Message.id)
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()
