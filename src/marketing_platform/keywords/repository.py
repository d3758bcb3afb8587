"""
Keyword repository for database operations.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketing_platform.keywords.models import Keyword, KeywordActivity, KeywordStatus
from marketing_platform.shared.database import utcnow


class KeywordRepository:
    """Repository for keyword lookups and activity logging."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_active_for_owner(self, owner_id: str, keyword_text: str) -> Keyword | None:
        """Find a tenant's active keyword by text, ignoring case and surrounding blanks.

        Args:
            owner_id: Owning tenant id.
            keyword_text: Keyword as received.

        Returns:
            First matching keyword by id, or None.
        """
        normalized = keyword_text.strip().lower()
        if not normalized:
            return None

        stmt = (
            select(Keyword)
            .where(
                Keyword.owner_id == owner_id,
                func.lower(func.trim(Keyword.keyword_text)) == normalized,
                Keyword.status == KeywordStatus.ACTIVE,
                Keyword.is_deleted.is_(False),
            )
            .order_by(Keyword.id)
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def add_activity(
        self,
        keyword: Keyword,
        phone_number: str,
        incoming_message: str,
    ) -> KeywordActivity:
        """Append one activity row for a matched keyword."""
        activity = KeywordActivity(
            keyword_id=keyword.id,
            phone_number=phone_number,
            incoming_message=incoming_message,
            response_sent=keyword.response_message,
            received_at=utcnow(),
        )
        self._session.add(activity)
        await self._session.flush()
        return activity
