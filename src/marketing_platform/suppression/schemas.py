"""
Pydantic schemas for suppression rules and suppression checks.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from marketing_platform.suppression.models import (
    SuppressionChannel,
    SuppressionScope,
    SuppressionTrigger,
    SuppressionType,
)


class SuppressionRuleCreate(BaseModel):
    """Schema for creating a tenant rule."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    trigger: SuppressionTrigger
    scope: SuppressionScope = SuppressionScope.GLOBAL
    channel: SuppressionChannel = SuppressionChannel.ALL
    suppression_type: SuppressionType = SuppressionType.OPT_OUT
    priority: int = Field(0, ge=0, description="Lower values win")
    auto_reason: str | None = Field(None, max_length=500)


class SuppressionRuleUpdate(BaseModel):
    """Schema for updating a rule.

    All fields are optional to support partial updates. The trigger of an
    existing rule cannot change.
    """

    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    scope: SuppressionScope | None = None
    channel: SuppressionChannel | None = None
    suppression_type: SuppressionType | None = None
    is_active: bool | None = None
    priority: int | None = Field(None, ge=0)
    auto_reason: str | None = Field(None, max_length=500)


class SuppressionRuleResponse(BaseModel):
    """Schema for suppression rule response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: str
    name: str
    description: str | None
    trigger: SuppressionTrigger
    scope: SuppressionScope
    channel: SuppressionChannel
    suppression_type: SuppressionType
    is_active: bool
    is_system_rule: bool
    priority: int
    auto_reason: str | None
    trigger_count: int
    last_triggered_at: datetime | None
    created_at: datetime


class SuppressionRuleListResponse(BaseModel):
    """Schema for paginated rule list response."""

    items: list[SuppressionRuleResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class SeedDefaultsResponse(BaseModel):
    created: int = Field(..., description="Rules created; 0 when the tenant was already seeded")


class SuppressionStatus(BaseModel):
    phone_or_email: str
    suppressed: bool
