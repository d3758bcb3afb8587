"""
Pydantic schemas for event triggering endpoints.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from marketing_platform.workflows.models import EventType


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TriggerEventRequest(_CamelModel):
    """Request to fire an event for a contact."""

    event_type: EventType = Field(..., alias="eventType")
    contact_id: int = Field(..., gt=0, alias="contactId")
    event_data: dict[str, Any] = Field(default_factory=dict, alias="eventData")


class CustomEventRequest(_CamelModel):
    event_name: str = Field(..., min_length=1, max_length=200, alias="eventName")
    contact_id: int = Field(..., gt=0, alias="contactId")
    event_data: dict[str, Any] = Field(default_factory=dict, alias="eventData")


class KeywordTriggerRequest(_CamelModel):
    keyword: str = Field(..., min_length=1, max_length=100)
    contact_id: int = Field(..., gt=0, alias="contactId")


class EventAccepted(BaseModel):
    """Acknowledgement for accepted trigger work."""

    accepted: bool = True
    scheduled: int | None = Field(
        default=None,
        description="Executions queued, when known synchronously",
    )
