"""
Event-driven workflow triggering.

The owner of the contact is the isolation boundary: every workflow and keyword
lookup here is filtered by that owner, so one tenant's workflows never run
for another tenant's contacts. Matching workflows are handed to the job queue
and never awaited. Scheduling is at-least-once; repeated calls with the same
arguments schedule repeated executions.
"""

from datetime import datetime, timedelta
from typing import Any, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from marketing_platform.config import Settings, get_settings
from marketing_platform.contacts.models import Contact
from marketing_platform.contacts.repository import (
    ContactGroupMemberRepository,
    ContactRepository,
)
from marketing_platform.jobs.queue import JobQueue, execute_workflow_job, trigger_event_job
from marketing_platform.keywords.repository import KeywordRepository
from marketing_platform.shared.database import utcnow
from marketing_platform.shared.logging import get_logger
from marketing_platform.workflows.criteria import EventCriteria, KeywordCriteria
from marketing_platform.workflows.models import EventType, TriggerType, Workflow
from marketing_platform.workflows.repository import WorkflowRepository

logger = get_logger(__name__)


class EventTriggerService:
    """Resolves events to a tenant's matching workflows and schedules them."""

    def __init__(
        self,
        session: AsyncSession,
        job_queue: JobQueue,
        settings: Settings | None = None,
    ) -> None:
        """Initialize service.

        Args:
            session: Async database session.
            job_queue: Queue receiving workflow executions and deferred triggers.
            settings: Optional settings override.
        """
        self._session = session
        self._queue = job_queue
        self._settings = settings or get_settings()
        self._contacts = ContactRepository(session)
        self._workflows = WorkflowRepository(session)
        self._keywords = KeywordRepository(session)
        self._members = ContactGroupMemberRepository(session)

    @staticmethod
    def _inactivity_threshold(days: int | None) -> datetime | None:
        if days is None or days < 0:
            return None
        try:
            return utcnow() - timedelta(days=days)
        except OverflowError:
            return None

    async def _resolve_contact(self, contact_id: int, action: str) -> Contact | None:
        contact = await self._contacts.get_active_by_id(contact_id)
        if contact is None:
            logger.warning(
                "Contact not found; skipping",
                extra={"contact_id": contact_id, "action": action},
            )
        return contact

    async def _schedule(self, workflow: Workflow, contact_id: int, reason: str) -> None:
        await self._queue.enqueue(execute_workflow_job(workflow.id, contact_id))
        logger.info(
            "Queued workflow execution",
            extra={
                "workflow_id": workflow.id,
                "owner_id": workflow.owner_id,
                "contact_id": contact_id,
                "reason": reason,
            },
        )

    async def trigger_event(
        self,
        event_type: EventType,
        contact_id: int,
        event_data: Mapping[str, Any] | None = None,
    ) -> None:
        """Schedule every workflow of the contact's owner that matches an event.

        A missing or deleted contact makes this a logged no-op.

        Args:
            event_type: Event that happened.
            contact_id: Contact the event concerns.
            event_data: Event payload used by criteria refinements.
        """
        logger.info(
            "Triggering event",
            extra={"event_type": event_type.value, "contact_id": contact_id},
        )

        contact = await self._resolve_contact(contact_id, "trigger_event")
        if contact is None:
            return

        owner_id = contact.owner_id
        data = dict(event_data or {})

        for workflow in await self._workflows.list_active_for_owner(owner_id, TriggerType.EVENT):
            criteria = workflow.criteria
            if isinstance(criteria, EventCriteria) and criteria.matches(event_type, data):
                await self._schedule(workflow, contact.id, event_type.value)

        if event_type != EventType.KEYWORD_RECEIVED:
            return

        incoming_keyword = data.get("keyword")
        if incoming_keyword is None or not str(incoming_keyword).strip():
            return
        incoming_keyword = str(incoming_keyword)

        for workflow in await self._workflows.list_active_for_owner(owner_id, TriggerType.KEYWORD):
            criteria = workflow.criteria
            if isinstance(criteria, KeywordCriteria) and criteria.matches(incoming_keyword):
                await self._schedule(workflow, contact.id, f"keyword:{incoming_keyword}")

    async def check_inactivity_triggers(self) -> int:
        """Schedule inactivity workflows for each tenant's idle contacts.

        Each workflow only ever reads contacts of its own owner. Contacts are
        read in fixed-size batches.

        Returns:
            Number of executions scheduled.
        """
        logger.info("Checking inactivity triggers")

        batch_size = self._settings.inactivity_batch_size
        scheduled = 0

        for workflow in await self._workflows.list_active(TriggerType.EVENT):
            criteria = workflow.criteria
            if not isinstance(criteria, EventCriteria) or not criteria.is_inactivity:
                continue
            threshold = self._inactivity_threshold(criteria.inactive_days)
            if threshold is None:
                logger.warning(
                    "Inactivity workflow has no usable inactiveDays",
                    extra={"workflow_id": workflow.id, "inactive_days": criteria.inactive_days},
                )
                continue

            last_id = 0
            while True:
                batch = await self._contacts.list_inactive_batch(
                    owner_id=workflow.owner_id,
                    updated_before=threshold,
                    after_id=last_id,
                    limit=batch_size,
                )
                if not batch:
                    break
                for contact in batch:
                    await self._schedule(workflow, contact.id, "inactivity")
                    scheduled += 1
                last_id = batch[-1].id
                if len(batch) < batch_size:
                    break

        logger.info("Inactivity check completed", extra={"scheduled": scheduled})
        return scheduled

    async def process_keyword_trigger(self, keyword: str, contact_id: int) -> None:
        """Record a keyword reply for the contact's owner and fire keyword events.

        Appends a keyword activity row, enrolls the contact in the keyword's
        opt-in group when not already a member, then schedules a
        ``KeywordReceived`` trigger.

        Args:
            keyword: Keyword as received.
            contact_id: Contact who sent it.
        """
        logger.info(
            "Processing keyword trigger",
            extra={"keyword": keyword, "contact_id": contact_id},
        )

        contact = await self._resolve_contact(contact_id, "process_keyword_trigger")
        if contact is None:
            return

        owner_id = contact.owner_id
        keyword_entity = await self._keywords.find_active_for_owner(owner_id, keyword)
        if keyword_entity is None:
            logger.info(
                "Keyword not found for owner",
                extra={"keyword": keyword, "owner_id": owner_id},
            )
            return

        await self._keywords.add_activity(
            keyword_entity,
            phone_number=contact.phone_number or "",
            incoming_message=keyword,
        )
        await self._session.commit()

        group_id = keyword_entity.opt_in_group_id
        if group_id is not None:
            existing = await self._members.get_active(contact.id, group_id)
            if existing is None:
                await self._members.create(contact.id, group_id)
                await self._session.commit()
                logger.info(
                    "Added contact to opt-in group",
                    extra={
                        "contact_id": contact.id,
                        "group_id": group_id,
                        "owner_id": owner_id,
                    },
                )

        await self._queue.enqueue(
            trigger_event_job(
                EventType.KEYWORD_RECEIVED,
                contact.id,
                {"keyword": keyword.strip(), "keywordId": keyword_entity.id},
            )
        )

        if keyword_entity.linked_campaign_id is not None:
            logger.info(
                "Keyword linked to campaign",
                extra={
                    "keyword": keyword,
                    "campaign_id": keyword_entity.linked_campaign_id,
                    "owner_id": owner_id,
                },
            )

    async def register_custom_event(
        self,
        event_name: str,
        contact_id: int,
        event_data: Mapping[str, Any] | None = None,
    ) -> None:
        """Schedule a ``Custom`` event trigger stamped with its name."""
        logger.info(
            "Registering custom event",
            extra={"event_name": event_name, "contact_id": contact_id},
        )
        data = dict(event_data or {})
        data["customEventName"] = event_name
        await self._queue.enqueue(trigger_event_job(EventType.CUSTOM, contact_id, data))
