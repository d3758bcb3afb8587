"""
FastAPI router for provider webhooks.

Providers retry on anything but 2xx, so processing failures are logged and
acknowledged with 200. Only a bad signature is rejected.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from marketing_platform.config import Settings, get_settings
from marketing_platform.jobs.dependencies import get_job_queue
from marketing_platform.jobs.queue import JobQueue
from marketing_platform.shared.database import get_db_session
from marketing_platform.shared.logging import get_logger
from marketing_platform.webhooks.providers import parse_inbound_message, parse_status_callback
from marketing_platform.webhooks.schemas import DeliveryStatusUpdate, OptOutRequest, WebhookAck
from marketing_platform.webhooks.service import WebhookService
from marketing_platform.webhooks.signature import validate_webhook_signature

logger = get_logger(__name__)

EMPTY_TWIML = '<?xml version="1.0" encoding="UTF-8"?>\n<Response></Response>'


async def verify_signature(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> None:
    """Reject callbacks whose signature does not match the raw body."""
    if not settings.webhook_secret:
        return

    body = await request.body()
    supplied = request.headers.get(settings.webhook_signature_header)
    if not validate_webhook_signature(supplied, body, settings.webhook_secret):
        logger.warning(
            "Invalid webhook signature",
            extra={"path": request.url.path, "has_signature": supplied is not None},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid webhook signature",
        )


router = APIRouter(
    prefix="/webhooks",
    tags=["webhooks"],
    dependencies=[Depends(verify_signature)],
)


def get_webhook_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    job_queue: Annotated[JobQueue, Depends(get_job_queue)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> WebhookService:
    """Dependency for webhook service."""
    return WebhookService(session=session, job_queue=job_queue, settings=settings)


async def _form_payload(request: Request) -> dict[str, Any]:
    # Form + query params, so providers that append metadata to the URL work too
    try:
        payload: dict[str, Any] = dict(await request.form())
    except Exception:
        logger.warning("Webhook body is not form data", extra={"path": request.url.path})
        payload = {}
    payload.update(dict(request.query_params))
    return payload


async def _json_payload(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        logger.warning("Webhook body is not JSON", extra={"path": request.url.path})
        return None


@router.post("/sms/inbound", status_code=status.HTTP_200_OK)
async def receive_inbound_sms(
    request: Request,
    service: Annotated[WebhookService, Depends(get_webhook_service)],
) -> Response:
    payload = await _form_payload(request)
    try:
        message = parse_inbound_message(payload)
        await service.process_inbound_message(
            message.from_number,
            message.to_number,
            message.body,
            message.external_id,
        )
    except Exception:
        logger.exception("Failed to process inbound SMS (ACKing 200)")

    return Response(content=EMPTY_TWIML, media_type="application/xml")


@router.post("/sms/status", response_model=WebhookAck, status_code=status.HTTP_200_OK)
async def receive_sms_status(
    request: Request,
    service: Annotated[WebhookService, Depends(get_webhook_service)],
) -> WebhookAck:
    payload = await _form_payload(request)
    try:
        callback = parse_status_callback(payload)
    except ValueError as e:
        logger.warning("Invalid status callback (ACKing 200)", extra={"error": str(e)})
        return WebhookAck(success=False)

    success = await service.process_message_status_update(
        callback.external_message_id,
        callback.status,
        callback.error_message,
    )
    return WebhookAck(success=success)


@router.post(
    "/delivery/{external_message_id}",
    response_model=WebhookAck,
    status_code=status.HTTP_200_OK,
)
async def receive_delivery_status(
    external_message_id: str,
    request: Request,
    service: Annotated[WebhookService, Depends(get_webhook_service)],
) -> WebhookAck:
    data = await _json_payload(request)
    try:
        update = DeliveryStatusUpdate.model_validate(data)
    except PydanticValidationError as e:
        logger.warning(
            "Invalid delivery status payload (ACKing 200)",
            extra={"external_message_id": external_message_id, "errors": e.errors()},
        )
        return WebhookAck(success=False)

    success = await service.process_delivery_status(external_message_id, update)
    return WebhookAck(success=success)


@router.post("/opt-out", response_model=WebhookAck, status_code=status.HTTP_200_OK)
async def receive_opt_out(
    request: Request,
    service: Annotated[WebhookService, Depends(get_webhook_service)],
) -> WebhookAck:
    data = await _json_payload(request)
    try:
        opt_out = OptOutRequest.model_validate(data)
    except PydanticValidationError as e:
        logger.warning("Invalid opt-out payload (ACKing 200)", extra={"errors": e.errors()})
        return WebhookAck(success=False)

    success = await service.process_opt_out(
        opt_out.phone_or_email,
        source=opt_out.source,
        owner_id=opt_out.owner_id,
    )
    return WebhookAck(success=success)
