"""
Parsing of Twilio-style SMS webhook form payloads.
"""

from typing import Any, Mapping

from marketing_platform.webhooks.schemas import InboundMessage, MessageStatusCallback


def _field(payload: Mapping[str, Any], *names: str) -> str | None:
    for name in names:
        value = payload.get(name)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def parse_inbound_message(payload: Mapping[str, Any]) -> InboundMessage:
    """Parse an inbound SMS callback.

    Args:
        payload: Webhook form data as dict.

    Returns:
        Normalized inbound message.

    Raises:
        ValueError: If sender or destination is missing.
    """
    from_number = _field(payload, "From", "from")
    to_number = _field(payload, "To", "to")
    if not from_number or not to_number:
        raise ValueError("Missing From/To in inbound message payload")

    body = payload.get("Body", payload.get("body"))
    return InboundMessage(
        from_number=from_number,
        to_number=to_number,
        body="" if body is None else str(body),
        external_id=_field(payload, "MessageSid", "SmsSid", "messageId"),
    )


def parse_status_callback(payload: Mapping[str, Any]) -> MessageStatusCallback:
    """Parse a message status callback.

    Raises:
        ValueError: If the message id or status is missing.
    """
    external_id = _field(payload, "MessageSid", "SmsSid", "messageId")
    if not external_id:
        raise ValueError("Missing MessageSid in status payload")

    status = _field(payload, "MessageStatus", "SmsStatus", "status")
    if not status:
        raise ValueError("Missing MessageStatus in status payload")

    return MessageStatusCallback(
        external_message_id=external_id,
        status=status,
        error_message=_field(payload, "ErrorMessage", "errorMessage"),
    )
