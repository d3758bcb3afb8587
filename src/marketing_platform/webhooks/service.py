"""
Provider webhook processing.

Inbound messages are routed to a tenant by the destination number; status
callbacks are routed through the message they refer to. Every public
operation reports success as a bool and never raises: unexpected failures
are rolled back and logged so the provider still gets its acknowledgement.
"""

from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from marketing_platform.config import Settings, get_settings
from marketing_platform.contacts.repository import ContactRepository
from marketing_platform.jobs.queue import JobQueue
from marketing_platform.keywords.service import KeywordService, first_token
from marketing_platform.messages.models import Message, MessageStatus
from marketing_platform.messages.repository import MessageRepository
from marketing_platform.phone_numbers.repository import PhoneNumberRepository
from marketing_platform.shared.database import utcnow
from marketing_platform.shared.logging import get_logger
from marketing_platform.suppression.service import SuppressionService
from marketing_platform.webhooks import signature
from marketing_platform.webhooks.schemas import DeliveryStatusUpdate
from marketing_platform.workflows.models import EventType
from marketing_platform.workflows.triggers import EventTriggerService

logger = get_logger(__name__)

PROVIDER_STATUS_MAP: dict[str, MessageStatus] = {
    "queued": MessageStatus.QUEUED,
    "accepted": MessageStatus.QUEUED,
    "scheduled": MessageStatus.QUEUED,
    "sending": MessageStatus.SENDING,
    "sent": MessageStatus.SENDING,
    "delivered": MessageStatus.DELIVERED,
    "failed": MessageStatus.FAILED,
    "undelivered": MessageStatus.FAILED,
    "bounced": MessageStatus.FAILED,
}


def map_provider_status(provider_status: str | None) -> MessageStatus:
    """Map a provider status string to a message status; unknown → Queued."""
    if not provider_status:
        return MessageStatus.QUEUED
    return PROVIDER_STATUS_MAP.get(provider_status.strip().lower(), MessageStatus.QUEUED)


class WebhookService:
    """Turns provider callbacks into state changes and workflow triggers."""

    def __init__(
        self,
        session: AsyncSession,
        job_queue: JobQueue,
        settings: Settings | None = None,
    ) -> None:
        """Initialize webhook service.

        Args:
            session: Async database session.
            job_queue: Queue used for workflow executions.
            settings: Optional settings override.
        """
        self._session = session
        self._settings = settings or get_settings()
        self._phone_numbers = PhoneNumberRepository(session)
        self._contacts = ContactRepository(session)
        self._messages = MessageRepository(session)
        self._keywords = KeywordService(session, self._settings)
        self._suppression = SuppressionService(session)
        self._triggers = EventTriggerService(session, job_queue, self._settings)

    async def process_inbound_message(
        self,
        from_number: str,
        to_number: str,
        body: str | None,
        external_id: str | None = None,
    ) -> bool:
        """Handle an inbound SMS.

        Args:
            from_number: Sender phone number.
            to_number: Destination number; identifies the tenant.
            body: Message text.
            external_id: Provider message id, for logging.

        Returns:
            True when handled or ignored as unroutable, False on failure.
        """
        try:
            logger.info(
                "Processing inbound message",
                extra={
                    "from_number": from_number,
                    "to_number": to_number,
                    "external_id": external_id,
                },
            )

            phone_number = await self._phone_numbers.get_assigned(to_number)
            if phone_number is None or not phone_number.assigned_owner_id:
                logger.warning(
                    "No tenant assigned to destination number",
                    extra={"to_number": to_number},
                )
                return True

            owner_id = phone_number.assigned_owner_id

            await self._keywords.process_inbound_keyword(owner_id, from_number, body)
            await self._session.commit()

            contact = await self._contacts.get_by_phone_and_owner(from_number, owner_id)
            if contact is None:
                logger.info(
                    "Inbound message from unknown contact",
                    extra={"from_number": from_number, "owner_id": owner_id},
                )
                return True

            keyword = first_token(body)
            await self._triggers.trigger_event(
                EventType.KEYWORD_RECEIVED,
                contact.id,
                {
                    "keyword": keyword,
                    "fullMessage": body or "",
                    "from": from_number,
                    "to": to_number,
                },
            )
            await self._triggers.process_keyword_trigger(keyword, contact.id)
            return True
        except Exception:
            await self._session.rollback()
            logger.exception(
                "Failed to process inbound message",
                extra={"from_number": from_number, "to_number": to_number},
            )
            return False

    async def process_message_status_update(
        self,
        external_message_id: str,
        status: str,
        error_message: str | None = None,
    ) -> bool:
        """Apply a provider status callback to the referenced message.

        Returns:
            True when applied, False when the message is unknown or on failure.
        """
        try:
            message = await self._messages.get_by_external_id(external_message_id)
            if message is None:
                logger.warning(
                    "Message not found for status update",
                    extra={"external_message_id": external_message_id},
                )
                return False

            new_status = map_provider_status(status)
            message.status = new_status
            if error_message:
                message.error_message = error_message

            now = utcnow()
            if new_status == MessageStatus.DELIVERED:
                message.delivered_at = now
            elif new_status == MessageStatus.FAILED:
                message.failed_at = now

            await self._session.commit()
            logger.info(
                "Message status updated",
                extra={
                    "message_id": message.id,
                    "external_message_id": external_message_id,
                    "provider_status": status,
                    "status": new_status.value,
                },
            )

            await self._fire_status_event(message, new_status, error_message)
            return True
        except Exception:
            await self._session.rollback()
            logger.exception(
                "Failed to process message status update",
                extra={"external_message_id": external_message_id},
            )
            return False

    async def process_delivery_status(
        self,
        external_message_id: str,
        update: DeliveryStatusUpdate,
    ) -> bool:
        """Apply a delivery callback carrying its own timestamps and cost."""
        try:
            message = await self._messages.get_by_external_id(external_message_id)
            if message is None:
                logger.warning(
                    "Message not found for delivery status",
                    extra={"external_message_id": external_message_id},
                )
                return False

            new_status = map_provider_status(update.status)
            message.status = new_status
            if update.error_message:
                message.error_message = update.error_message
            if update.cost is not None:
                message.cost_amount = update.cost

            delivered_at: datetime | None = update.delivered_at
            failed_at: datetime | None = update.failed_at
            if new_status == MessageStatus.DELIVERED and delivered_at is None:
                delivered_at = utcnow()
            if new_status == MessageStatus.FAILED and failed_at is None:
                failed_at = utcnow()
            if delivered_at is not None:
                message.delivered_at = delivered_at
            if failed_at is not None:
                message.failed_at = failed_at

            await self._session.commit()
            logger.info(
                "Delivery status updated",
                extra={
                    "message_id": message.id,
                    "external_message_id": external_message_id,
                    "provider_status": update.status,
                    "status": new_status.value,
                },
            )

            await self._fire_status_event(message, new_status, update.error_message)
            return True
        except Exception:
            await self._session.rollback()
            logger.exception(
                "Failed to process delivery status",
                extra={"external_message_id": external_message_id},
            )
            return False

    async def _fire_status_event(
        self,
        message: Message,
        status: MessageStatus,
        error_message: str | None,
    ) -> None:
        if not message.contact_id or message.contact_id <= 0:
            return

        event_data: dict[str, Any] = {
            "messageId": message.id,
            "externalMessageId": message.external_message_id,
            "status": status.value,
        }
        if status == MessageStatus.DELIVERED:
            await self._triggers.trigger_event(
                EventType.MESSAGE_DELIVERED, message.contact_id, event_data
            )
        elif status == MessageStatus.FAILED:
            event_data["errorMessage"] = error_message
            await self._triggers.trigger_event(
                EventType.MESSAGE_FAILED, message.contact_id, event_data
            )

    async def process_opt_out(
        self,
        phone_or_email: str,
        source: str | None = None,
        owner_id: str | None = None,
    ) -> bool:
        """Suppress a phone number or e-mail address.

        With ``owner_id`` only that tenant is affected. Without it, every
        tenant that has a contact with this identifier gets its own
        suppression record.

        Returns:
            True when at least one tenant was processed, False when no
            contact carries the identifier or on failure.
        """
        try:
            if owner_id is not None:
                contacts = await self._contacts.list_by_identifier(phone_or_email, owner_id)
                owners = [owner_id] if contacts else []
            else:
                owners = await self._contacts.list_owners_by_identifier(phone_or_email)

            if not owners:
                logger.warning(
                    "No contact found for opt-out",
                    extra={"phone_or_email": phone_or_email, "owner_id": owner_id},
                )
                return False

            for tenant in owners:
                await self._suppression.opt_out(tenant, phone_or_email, source=source)

            await self._session.commit()
            logger.info(
                "Processed opt-out",
                extra={
                    "phone_or_email": phone_or_email,
                    "source": source,
                    "owners": owners,
                },
            )
            return True
        except Exception:
            await self._session.rollback()
            logger.exception(
                "Failed to process opt-out",
                extra={"phone_or_email": phone_or_email},
            )
            return False

    def validate_webhook_signature(
        self,
        signature_value: str | None,
        payload: str | bytes,
        secret: str | None = None,
    ) -> bool:
        """Validate a callback signature, defaulting to the configured secret."""
        return signature.validate_webhook_signature(
            signature_value,
            payload,
            secret if secret is not None else self._settings.webhook_secret,
        )
