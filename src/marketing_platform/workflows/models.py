"""
SQLAlchemy models for workflows.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from marketing_platform.shared.database import Base, db_enum
from marketing_platform.workflows.criteria import (
    EventCriteria,
    KeywordCriteria,
    parse_criteria,
)


class TriggerType(str, Enum):
    """How a workflow gets started."""

    EVENT = "Event"
    KEYWORD = "Keyword"
    INACTIVITY = "Inactivity"
    CUSTOM = "Custom"


class EventType(str, Enum):
    """Events that can fire workflows.

    Values are the names stored in trigger criteria (``{"eventType": ...}``).
    """

    CONTACT_CREATED = "ContactCreated"
    CONTACT_ADDED_TO_GROUP = "ContactAddedToGroup"
    TAG_ADDED = "TagAdded"
    MESSAGE_DELIVERED = "MessageDelivered"
    MESSAGE_FAILED = "MessageFailed"
    MESSAGE_CLICKED = "MessageClicked"
    KEYWORD_RECEIVED = "KeywordReceived"
    INACTIVITY = "Inactivity"
    CUSTOM = "Custom"


class Workflow(Base):
    """Tenant-owned automation definition."""

    __tablename__ = "workflows"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    trigger_type: Mapped[TriggerType] = mapped_column(
        db_enum(TriggerType, "workflow_trigger_type"),
        nullable=False,
        default=TriggerType.EVENT,
    )
    # JSON object or bare comma-separated keyword list
    trigger_criteria: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    @property
    def criteria(self) -> EventCriteria | KeywordCriteria | None:
        """Parsed trigger criteria (cached per stored text)."""
        return parse_criteria(self.trigger_type == TriggerType.KEYWORD, self.trigger_criteria)

    def __repr__(self) -> str:
        return f"<Workflow(id={self.id}, owner={self.owner_id}, trigger={self.trigger_type})>"
