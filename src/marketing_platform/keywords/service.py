"""
Carrier keyword pre-processing for inbound SMS.

Opt-out and opt-in words are handled here against the receiving tenant's
suppression list before the message reaches keyword workflows.
"""

from dataclasses import dataclass
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from marketing_platform.config import Settings, get_settings
from marketing_platform.shared.logging import get_logger
from marketing_platform.suppression.models import SuppressionTrigger
from marketing_platform.suppression.service import SuppressionService

logger = get_logger(__name__)


class KeywordAction(str, Enum):
    OPT_OUT = "opt_out"
    OPT_IN = "opt_in"
    NONE = "none"


@dataclass(frozen=True)
class InboundKeywordResult:
    """Outcome of pre-processing an inbound body."""

    keyword: str
    action: KeywordAction
    changed: bool = False


def first_token(body: str | None) -> str:
    """First whitespace-separated token of a message, upper-cased; "" if none."""
    if not body:
        return ""
    parts = body.split()
    return parts[0].upper() if parts else ""


class KeywordService:
    """Applies STOP/START style keywords for one tenant."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._suppression = SuppressionService(session)

    async def process_inbound_keyword(
        self,
        owner_id: str,
        from_number: str,
        body: str | None,
    ) -> InboundKeywordResult:
        """Opt the sender out or back in when the body starts with a carrier keyword.

        Args:
            owner_id: Tenant that owns the receiving number.
            from_number: Sender phone number.
            body: Raw message body.

        Returns:
            The normalized keyword and the action taken. Nothing is committed.
        """
        keyword = first_token(body)
        if not keyword:
            return InboundKeywordResult(keyword="", action=KeywordAction.NONE)

        if keyword in self._settings.opt_out_keyword_set:
            record = await self._suppression.opt_out(
                owner_id,
                from_number,
                source="SMS",
                trigger=SuppressionTrigger.SMS_OPT_OUT,
            )
            logger.info(
                "Inbound opt-out keyword",
                extra={
                    "owner_id": owner_id,
                    "from_number": from_number,
                    "keyword": keyword,
                    "suppressed": record is not None,
                },
            )
            return InboundKeywordResult(keyword, KeywordAction.OPT_OUT, record is not None)

        if keyword in self._settings.opt_in_keyword_set:
            lifted = await self._suppression.lift(owner_id, from_number)
            logger.info(
                "Inbound opt-in keyword",
                extra={
                    "owner_id": owner_id,
                    "from_number": from_number,
                    "keyword": keyword,
                    "lifted": lifted,
                },
            )
            return InboundKeywordResult(keyword, KeywordAction.OPT_IN, lifted)

        return InboundKeywordResult(keyword, KeywordAction.NONE)
