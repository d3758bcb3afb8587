"""
Service layer for the suppression list.

All operations take the owning tenant explicitly. Callers own the
transaction: nothing here commits.
"""

from dataclasses import dataclass
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from marketing_platform.contacts.repository import ContactRepository
from marketing_platform.shared.database import utcnow
from marketing_platform.shared.exceptions import NotFoundError, ValidationError
from marketing_platform.shared.logging import get_logger
from marketing_platform.suppression.models import (
    SuppressionChannel,
    SuppressionRecord,
    SuppressionRule,
    SuppressionScope,
    SuppressionTrigger,
    SuppressionType,
)
from marketing_platform.suppression.repository import SuppressionRepository
from marketing_platform.suppression.schemas import SuppressionRuleCreate, SuppressionRuleUpdate

logger = get_logger(__name__)


def is_email(identifier: str) -> bool:
    return "@" in identifier


@dataclass(frozen=True)
class _DefaultRule:
    name: str
    description: str
    trigger: SuppressionTrigger
    scope: SuppressionScope
    channel: SuppressionChannel
    suppression_type: SuppressionType
    auto_reason: str


DEFAULT_RULES: tuple[_DefaultRule, ...] = (
    _DefaultRule(
        "Unsubscribe Link Click",
        "Automatically suppress when user clicks unsubscribe link in email",
        SuppressionTrigger.UNSUBSCRIBE,
        SuppressionScope.CHANNEL_SPECIFIC,
        SuppressionChannel.EMAIL,
        SuppressionType.OPT_OUT,
        "User clicked unsubscribe link",
    ),
    _DefaultRule(
        "Email Hard Bounce",
        "Automatically suppress email on hard bounce (invalid address)",
        SuppressionTrigger.HARD_BOUNCE,
        SuppressionScope.CHANNEL_SPECIFIC,
        SuppressionChannel.EMAIL,
        SuppressionType.BOUNCE,
        "Email hard bounced - invalid address",
    ),
    _DefaultRule(
        "Spam Complaint",
        "Automatically suppress when spam complaint is received",
        SuppressionTrigger.SPAM_COMPLAINT,
        SuppressionScope.GLOBAL,
        SuppressionChannel.ALL,
        SuppressionType.COMPLAINT,
        "Spam complaint received",
    ),
    _DefaultRule(
        "SMS Opt-Out (STOP)",
        "Automatically suppress when user sends STOP keyword",
        SuppressionTrigger.SMS_OPT_OUT,
        SuppressionScope.CHANNEL_SPECIFIC,
        SuppressionChannel.SMS,
        SuppressionType.OPT_OUT,
        "User sent STOP keyword",
    ),
    _DefaultRule(
        "WhatsApp Opt-Out",
        "Automatically suppress when user opts out of WhatsApp messages",
        SuppressionTrigger.WHATSAPP_OPT_OUT,
        SuppressionScope.CHANNEL_SPECIFIC,
        SuppressionChannel.WHATSAPP,
        SuppressionType.OPT_OUT,
        "WhatsApp opt-out",
    ),
    _DefaultRule(
        "Invalid Email Detected",
        "Automatically suppress invalid email addresses",
        SuppressionTrigger.INVALID_EMAIL,
        SuppressionScope.CHANNEL_SPECIFIC,
        SuppressionChannel.EMAIL,
        SuppressionType.BOUNCE,
        "Invalid email address detected",
    ),
    _DefaultRule(
        "Invalid Phone Detected",
        "Automatically suppress invalid phone numbers",
        SuppressionTrigger.INVALID_PHONE,
        SuppressionScope.CHANNEL_SPECIFIC,
        SuppressionChannel.SMS,
        SuppressionType.BOUNCE,
        "Invalid phone number detected",
    ),
)


class SuppressionService:
    """Service for tenant-scoped suppression operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize service with database session.

        Args:
            session: Async database session.
        """
        self._session = session
        self._repository = SuppressionRepository(session)
        self._contacts = ContactRepository(session)

    async def is_suppressed(self, owner_id: str, phone_or_email: str) -> bool:
        """Check whether a tenant has an active suppression for an identifier."""
        return await self._repository.get_active(owner_id, phone_or_email) is not None

    async def opt_out(
        self,
        owner_id: str,
        phone_or_email: str,
        source: str | None = None,
        trigger: SuppressionTrigger | None = None,
    ) -> SuppressionRecord | None:
        """Suppress an identifier for one tenant and clear its contacts' opt-in flags.

        Args:
            owner_id: Owning tenant id.
            phone_or_email: Phone number or email address.
            source: Where the opt-out came from, used in the default reason.
            trigger: Auto-suppression trigger; defaults by identifier kind.

        Returns:
            The new record, or None when an active one already existed.
        """
        existing = await self._repository.get_active(owner_id, phone_or_email)
        if existing is not None:
            logger.info(
                "Identifier already suppressed",
                extra={
                    "owner_id": owner_id,
                    "phone_or_email": phone_or_email,
                    "suppression_id": existing.id,
                },
            )
            return None

        email = is_email(phone_or_email)
        if trigger is None:
            trigger = SuppressionTrigger.UNSUBSCRIBE if email else SuppressionTrigger.SMS_OPT_OUT

        via = f"Opt-out via {source or 'Webhook'}"
        suppression_type = SuppressionType.OPT_OUT
        reason = via

        rule = await self._repository.get_active_rule(owner_id, trigger)
        if rule is not None:
            suppression_type = rule.suppression_type
            if rule.auto_reason:
                reason = f"{rule.auto_reason} ({via})"
            rule.trigger_count = (rule.trigger_count or 0) + 1
            rule.last_triggered_at = utcnow()

        record = await self._repository.create(
            owner_id=owner_id,
            phone_or_email=phone_or_email,
            suppression_type=suppression_type,
            reason=reason,
        )

        contacts = await self._contacts.list_by_identifier(phone_or_email, owner_id)
        for contact in contacts:
            if email:
                contact.email_opt_in = False
            else:
                contact.sms_opt_in = False
                contact.mms_opt_in = False
        await self._session.flush()

        logger.info(
            "Created suppression record",
            extra={
                "owner_id": owner_id,
                "suppression_id": record.id,
                "phone_or_email": phone_or_email,
                "suppression_type": suppression_type.value,
                "trigger": trigger.value,
                "rule_id": rule.id if rule is not None else None,
                "contacts_updated": len(contacts),
            },
        )
        return record

    async def lift(self, owner_id: str, phone_or_email: str) -> bool:
        """Deactivate a tenant's suppression and restore the channel opt-in flags.

        Returns:
            True if an active suppression was lifted.
        """
        records = await self._repository.list_active(owner_id, phone_or_email)
        if not records:
            return False

        now = utcnow()
        for record in records:
            record.is_active = False
            record.lifted_at = now

        email = is_email(phone_or_email)
        contacts = await self._contacts.list_by_identifier(phone_or_email, owner_id)
        for contact in contacts:
            if email:
                contact.email_opt_in = True
            else:
                contact.sms_opt_in = True
                contact.mms_opt_in = True
        await self._session.flush()

        logger.info(
            "Lifted suppression",
            extra={
                "owner_id": owner_id,
                "phone_or_email": phone_or_email,
                "records": len(records),
            },
        )
        return True

    async def seed_default_rules(self, owner_id: str) -> list[SuppressionRule]:
        """Create the system rules for a tenant unless it already has them.

        Returns:
            The rules created (empty when the tenant was already seeded).
        """
        if await self._repository.has_system_rules(owner_id):
            return []

        rules = [
            SuppressionRule(
                owner_id=owner_id,
                name=default.name,
                description=default.description,
                trigger=default.trigger,
                scope=default.scope,
                channel=default.channel,
                suppression_type=default.suppression_type,
                auto_reason=default.auto_reason,
                priority=priority,
                is_active=True,
                is_system_rule=True,
            )
            for priority, default in enumerate(DEFAULT_RULES, start=1)
        ]
        created = await self._repository.add_rules(rules)
        logger.info(
            "Seeded default suppression rules",
            extra={"owner_id": owner_id, "count": len(created)},
        )
        return created

    async def list_rules(
        self,
        owner_id: str,
        page: int = 1,
        page_size: int = 50,
        search: str | None = None,
    ) -> tuple[Sequence[SuppressionRule], int]:
        return await self._repository.list_rules(owner_id, page=page, page_size=page_size, search=search)

    async def list_active_rules(self, owner_id: str) -> Sequence[SuppressionRule]:
        return await self._repository.list_active_rules(owner_id)

    async def get_rule(self, owner_id: str, rule_id: int) -> SuppressionRule:
        """Get one of a tenant's rules.

        Raises:
            NotFoundError: If the tenant has no such rule.
        """
        rule = await self._repository.get_rule(owner_id, rule_id)
        if rule is None:
            raise NotFoundError("Suppression rule", rule_id)
        return rule

    async def create_rule(self, owner_id: str, request: SuppressionRuleCreate) -> SuppressionRule:
        """Create a tenant rule. Rules created here are never system rules."""
        (rule,) = await self._repository.add_rules(
            [
                SuppressionRule(
                    owner_id=owner_id,
                    name=request.name,
                    description=request.description,
                    trigger=request.trigger,
                    scope=request.scope,
                    channel=request.channel,
                    suppression_type=request.suppression_type,
                    priority=request.priority,
                    auto_reason=request.auto_reason,
                    is_active=True,
                    is_system_rule=False,
                )
            ]
        )
        logger.info(
            "Suppression rule created",
            extra={"owner_id": owner_id, "rule_id": rule.id, "trigger": rule.trigger.value},
        )
        return rule

    async def update_rule(
        self,
        owner_id: str,
        rule_id: int,
        request: SuppressionRuleUpdate,
    ) -> SuppressionRule:
        rule = await self.get_rule(owner_id, rule_id)

        for field, value in request.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(rule, field, value)

        await self._session.flush()
        return rule

    async def toggle_rule(self, owner_id: str, rule_id: int) -> SuppressionRule:
        """Flip a rule between active and inactive. System rules may be toggled."""
        rule = await self.get_rule(owner_id, rule_id)
        rule.is_active = not rule.is_active
        await self._session.flush()

        logger.info(
            "Suppression rule toggled",
            extra={"owner_id": owner_id, "rule_id": rule.id, "is_active": rule.is_active},
        )
        return rule

    async def delete_rule(self, owner_id: str, rule_id: int) -> bool:
        """Soft-delete a tenant rule.

        Returns:
            True if deleted, False if the tenant has no such rule.

        Raises:
            ValidationError: If the rule is a system rule. Those can only be disabled.
        """
        rule = await self._repository.get_rule(owner_id, rule_id)
        if rule is None:
            return False
        if rule.is_system_rule:
            raise ValidationError("System rules cannot be deleted, only disabled")

        rule.is_deleted = True
        await self._session.flush()
        return True
