"""
SQLAlchemy models for outbound messages.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import DateTime, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from marketing_platform.shared.database import Base, db_enum


class MessageStatus(str, Enum):
    """Internal delivery status of a sent message."""

    QUEUED = "Queued"
    SENDING = "Sending"
    DELIVERED = "Delivered"
    FAILED = "Failed"


class Message(Base):
    """A message sent to a contact through a provider."""

    __tablename__ = "campaign_messages"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    campaign_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # 0 or NULL when the recipient is not a stored contact
    contact_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    external_message_id: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        index=True,
    )
    recipient: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[MessageStatus] = mapped_column(
        db_enum(MessageStatus, "message_status"),
        nullable=False,
        default=MessageStatus.QUEUED,
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    failed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cost_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 4), nullable=True)
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

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, external_id={self.external_message_id}, status={self.status})>"
