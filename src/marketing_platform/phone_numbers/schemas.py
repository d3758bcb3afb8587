"""
Pydantic schemas for phone number provisioning.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from marketing_platform.phone_numbers.models import (
    PhoneNumberCapability,
    PhoneNumberStatus,
    PhoneNumberType,
)


class PhoneNumberCreate(BaseModel):
    """Schema for adding a number to the platform pool."""

    number: str = Field(..., min_length=3, max_length=32, description="Number in E.164 form")
    friendly_name: str | None = Field(None, max_length=100)
    number_type: PhoneNumberType = PhoneNumberType.LOCAL
    capabilities: PhoneNumberCapability = PhoneNumberCapability.SMS
    monthly_rate: Decimal = Field(Decimal("0"), ge=0)
    country: str | None = Field("US", max_length=2)
    region: str | None = Field(None, max_length=100)
    notes: str | None = None


class PhoneNumberUpdate(BaseModel):
    """Schema for updating a number. Omitted fields are left unchanged."""

    friendly_name: str | None = Field(None, max_length=100)
    capabilities: PhoneNumberCapability | None = None
    notes: str | None = None


class PhoneNumberAssign(BaseModel):
    owner_id: str = Field(..., min_length=1, max_length=64, description="Tenant receiving the number")


class PhoneNumberPurchase(BaseModel):
    """Schema for buying a number directly into a tenant's account."""

    owner_id: str = Field(..., min_length=1, max_length=64)
    number: str = Field(..., min_length=3, max_length=32)
    friendly_name: str | None = Field(None, max_length=100)
    number_type: PhoneNumberType = PhoneNumberType.LOCAL
    capabilities: PhoneNumberCapability = PhoneNumberCapability.SMS
    country: str | None = Field("US", max_length=2)
    region: str | None = Field(None, max_length=100)


class PhoneNumberResponse(BaseModel):
    """Schema for phone number response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    number: str
    friendly_name: str | None
    number_type: PhoneNumberType
    capabilities: PhoneNumberCapability
    status: PhoneNumberStatus
    assigned_owner_id: str | None
    assigned_at: datetime | None
    purchased_at: datetime | None
    monthly_rate: Decimal
    country: str | None
    region: str | None
    notes: str | None
    created_at: datetime


class PhoneNumberListResponse(BaseModel):
    """Schema for paginated phone number list response."""

    items: list[PhoneNumberResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
