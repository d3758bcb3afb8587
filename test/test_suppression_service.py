"""
Tests for the suppression service.
"""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from marketing_platform.shared.exceptions import NotFoundError, ValidationError
from marketing_platform.suppression.models import (
    SuppressionRecord,
    SuppressionRule,
    SuppressionTrigger,
    SuppressionType,
)
from marketing_platform.suppression.schemas import SuppressionRuleCreate, SuppressionRuleUpdate
from marketing_platform.suppression.service import DEFAULT_RULES, SuppressionService, is_email


@pytest.fixture
def service(db_session: AsyncSession) -> SuppressionService:
    return SuppressionService(db_session)


def test_is_email() -> None:
    assert is_email("pat@example.com") is True
    assert is_email("+15550001") is False


class TestOptOut:
    """Tests for SuppressionService.opt_out."""

    @pytest.mark.asyncio
    async def test_creates_record_and_clears_sms_flags(
        self, service, db_session, make_contact
    ) -> None:
        contact = await make_contact("tenant-a", phone_number="+15550001")

        record = await service.opt_out("tenant-a", "+15550001")
        await db_session.commit()

        assert record is not None
        assert record.suppression_type == SuppressionType.OPT_OUT
        assert record.reason == "Opt-out via Webhook"
        assert await service.is_suppressed("tenant-a", "+15550001") is True
        assert await service.is_suppressed("tenant-b", "+15550001") is False
        assert contact.sms_opt_in is False
        assert contact.mms_opt_in is False
        assert contact.email_opt_in is True

    @pytest.mark.asyncio
    async def test_existing_active_record_is_kept(self, service, db_session) -> None:
        first = await service.opt_out("tenant-a", "+15550001")
        second = await service.opt_out("tenant-a", "+15550001", source="SMS")

        assert first is not None
        assert second is None

    @pytest.mark.asyncio
    async def test_rule_counters_are_bumped(self, service, db_session) -> None:
        await service.seed_default_rules("tenant-a")

        record = await service.opt_out("tenant-a", "spam@example.com", trigger=SuppressionTrigger.SPAM_COMPLAINT)

        assert record.suppression_type == SuppressionType.COMPLAINT
        assert record.reason == "Spam complaint received (Opt-out via Webhook)"
        rule = await db_session.scalar(
            select(SuppressionRule).where(
                SuppressionRule.owner_id == "tenant-a",
                SuppressionRule.trigger == SuppressionTrigger.SPAM_COMPLAINT,
            )
        )
        assert rule.trigger_count == 1
        assert rule.last_triggered_at is not None

    @pytest.mark.asyncio
    async def test_other_tenant_rules_are_ignored(self, service) -> None:
        await service.seed_default_rules("tenant-b")

        record = await service.opt_out("tenant-a", "+15550001")

        assert record.reason == "Opt-out via Webhook"


class TestLift:
    """Tests for SuppressionService.lift."""

    @pytest.mark.asyncio
    async def test_lift_restores_flags(self, service, make_contact) -> None:
        contact = await make_contact("tenant-a", email="pat@example.com")
        await service.opt_out("tenant-a", "pat@example.com")
        assert contact.email_opt_in is False

        assert await service.lift("tenant-a", "pat@example.com") is True

        assert contact.email_opt_in is True
        assert await service.is_suppressed("tenant-a", "pat@example.com") is False

    @pytest.mark.asyncio
    async def test_lift_without_record(self, service) -> None:
        assert await service.lift("tenant-a", "+15550001") is False


class TestSeedDefaultRules:
    """Tests for SuppressionService.seed_default_rules."""

    @pytest.mark.asyncio
    async def test_seeding_is_idempotent(self, service, db_session) -> None:
        created = await service.seed_default_rules("tenant-a")
        again = await service.seed_default_rules("tenant-a")

        count = await db_session.scalar(
            select(func.count()).select_from(SuppressionRule).where(SuppressionRule.owner_id == "tenant-a")
        )
        assert len(created) == len(DEFAULT_RULES)
        assert again == []
        assert count == len(DEFAULT_RULES)
        assert [rule.priority for rule in created] == list(range(1, len(DEFAULT_RULES) + 1))
        assert all(rule.is_system_rule for rule in created)


class TestRuleManagement:
    """Tests for tenant rule create / update / toggle / delete."""

    @pytest.mark.asyncio
    async def test_created_rules_are_tenant_rules(self, service) -> None:
        rule = await service.create_rule(
            "tenant-a",
            SuppressionRuleCreate(name="Bounce", trigger=SuppressionTrigger.SOFT_BOUNCE, priority=2),
        )

        assert rule.is_system_rule is False
        assert rule.is_active is True
        assert (await service.get_rule("tenant-a", rule.id)).id == rule.id
        with pytest.raises(NotFoundError):
            await service.get_rule("tenant-b", rule.id)

    @pytest.mark.asyncio
    async def test_listing_orders_by_priority(self, service) -> None:
        low = await service.create_rule(
            "tenant-a", SuppressionRuleCreate(name="Later", trigger=SuppressionTrigger.SOFT_BOUNCE, priority=9)
        )
        high = await service.create_rule(
            "tenant-a", SuppressionRuleCreate(name="First", trigger=SuppressionTrigger.HARD_BOUNCE, priority=1)
        )
        await service.create_rule(
            "tenant-b", SuppressionRuleCreate(name="Other", trigger=SuppressionTrigger.HARD_BOUNCE)
        )

        rules, total = await service.list_rules("tenant-a")
        searched, _ = await service.list_rules("tenant-a", search="LAT")

        assert total == 2
        assert [r.id for r in rules] == [high.id, low.id]
        assert [r.id for r in searched] == [low.id]

    @pytest.mark.asyncio
    async def test_toggled_rule_stops_applying(self, service) -> None:
        await service.seed_default_rules("tenant-a")
        active = await service.list_active_rules("tenant-a")
        spam = next(r for r in active if r.trigger == SuppressionTrigger.SPAM_COMPLAINT)

        toggled = await service.toggle_rule("tenant-a", spam.id)
        record = await service.opt_out(
            "tenant-a", "spam@example.com", trigger=SuppressionTrigger.SPAM_COMPLAINT
        )

        assert toggled.is_active is False
        assert len(await service.list_active_rules("tenant-a")) == len(DEFAULT_RULES) - 1
        assert record.suppression_type == SuppressionType.OPT_OUT
        assert spam.trigger_count == 0

    @pytest.mark.asyncio
    async def test_update_changes_only_given_fields(self, service) -> None:
        rule = await service.create_rule(
            "tenant-a",
            SuppressionRuleCreate(
                name="Bounce",
                trigger=SuppressionTrigger.SOFT_BOUNCE,
                auto_reason="Soft bounce",
            ),
        )

        updated = await service.update_rule(
            "tenant-a",
            rule.id,
            SuppressionRuleUpdate(suppression_type=SuppressionType.BOUNCE, priority=3),
        )

        assert updated.suppression_type == SuppressionType.BOUNCE
        assert updated.priority == 3
        assert updated.name == "Bounce"
        assert updated.auto_reason == "Soft bounce"

    @pytest.mark.asyncio
    async def test_system_rules_cannot_be_deleted(self, service) -> None:
        (system_rule, *_) = await service.seed_default_rules("tenant-a")
        custom = await service.create_rule(
            "tenant-a", SuppressionRuleCreate(name="Custom", trigger=SuppressionTrigger.MANUAL_UPLOAD)
        )

        with pytest.raises(ValidationError):
            await service.delete_rule("tenant-a", system_rule.id)
        assert await service.delete_rule("tenant-b", custom.id) is False
        assert await service.delete_rule("tenant-a", custom.id) is True
        assert await service.delete_rule("tenant-a", custom.id) is False


class TestRecordConstraints:
    @pytest.mark.asyncio
    async def test_one_active_record_per_identifier(self, db_session: AsyncSession) -> None:
        db_session.add_all(
            [
                SuppressionRecord(owner_id="tenant-a", phone_or_email="+15550001", is_active=False),
                SuppressionRecord(owner_id="tenant-a", phone_or_email="+15550001", is_active=True),
                SuppressionRecord(owner_id="tenant-b", phone_or_email="+15550001", is_active=True),
            ]
        )
        await db_session.commit()

        db_session.add(SuppressionRecord(owner_id="tenant-a", phone_or_email="+15550001", is_active=True))
        with pytest.raises(IntegrityError):
            await db_session.commit()
