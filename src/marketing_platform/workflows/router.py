"""
API router for firing workflow trigger events.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketing_platform.config import Settings, get_settings
from marketing_platform.jobs.dependencies import get_job_queue
from marketing_platform.jobs.queue import JobQueue, trigger_event_job
from marketing_platform.shared.database import get_db_session
from marketing_platform.workflows.schemas import (
    CustomEventRequest,
    EventAccepted,
    KeywordTriggerRequest,
    TriggerEventRequest,
)
from marketing_platform.workflows.triggers import EventTriggerService

router = APIRouter(prefix="/api/events", tags=["events"])


def get_trigger_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    job_queue: Annotated[JobQueue, Depends(get_job_queue)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> EventTriggerService:
    """Dependency for event trigger service."""
    return EventTriggerService(session=session, job_queue=job_queue, settings=settings)


@router.post(
    "/trigger",
    response_model=EventAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Fire an event for a contact",
)
async def trigger_event(
    request: TriggerEventRequest,
    job_queue: Annotated[JobQueue, Depends(get_job_queue)],
) -> EventAccepted:
    """Queue event resolution; matching workflows run in the background."""
    await job_queue.enqueue(
        trigger_event_job(request.event_type, request.contact_id, request.event_data)
    )
    return EventAccepted()


@router.post(
    "/custom",
    response_model=EventAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Register a named custom event",
)
async def register_custom_event(
    request: CustomEventRequest,
    service: Annotated[EventTriggerService, Depends(get_trigger_service)],
) -> EventAccepted:
    await service.register_custom_event(request.event_name, request.contact_id, request.event_data)
    return EventAccepted()


@router.post(
    "/keyword",
    response_model=EventAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Record a keyword reply for a contact",
)
async def process_keyword(
    request: KeywordTriggerRequest,
    service: Annotated[EventTriggerService, Depends(get_trigger_service)],
) -> EventAccepted:
    await service.process_keyword_trigger(request.keyword, request.contact_id)
    return EventAccepted()


@router.post(
    "/inactivity-check",
    response_model=EventAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Run the inactivity sweep now",
)
async def run_inactivity_check(
    service: Annotated[EventTriggerService, Depends(get_trigger_service)],
) -> EventAccepted:
    scheduled = await service.check_inactivity_triggers()
    return EventAccepted(scheduled=scheduled)
