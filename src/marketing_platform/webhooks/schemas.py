"""
Pydantic schemas for provider webhooks.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class DeliveryStatusUpdate(BaseModel):
    """Provider-agnostic delivery callback body."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = Field(..., min_length=1, description="Provider status string")
    error_message: str | None = Field(
        default=None,
        alias="errorMessage",
        description="Provider error text for failed deliveries",
    )
    delivered_at: datetime | None = Field(default=None, alias="deliveredAt")
    failed_at: datetime | None = Field(default=None, alias="failedAt")
    cost: Decimal | None = Field(default=None, ge=0)


class OptOutRequest(BaseModel):
    """Opt-out request for a phone number or e-mail address."""

    model_config = ConfigDict(populate_by_name=True)

    phone_or_email: str = Field(
        ...,
        min_length=1,
        max_length=255,
        alias="phoneOrEmail",
    )
    source: str | None = Field(default=None, max_length=100)
    owner_id: str | None = Field(
        default=None,
        max_length=64,
        alias="ownerId",
        description="Restrict the opt-out to one tenant",
    )


class WebhookAck(BaseModel):
    success: bool


class InboundMessage(BaseModel):
    """Normalized inbound SMS."""

    from_number: str
    to_number: str
    body: str = ""
    external_id: str | None = None


class MessageStatusCallback(BaseModel):
    """Normalized message status callback."""

    external_message_id: str
    status: str
    error_message: str | None = None
