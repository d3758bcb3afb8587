"""
SQLAlchemy models for keywords.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from marketing_platform.shared.database import Base, db_enum


class KeywordStatus(str, Enum):
    """Keyword availability."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"


class Keyword(Base):
    """Tenant-owned inbound keyword definition."""

    __tablename__ = "keywords"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    keyword_text: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[KeywordStatus] = mapped_column(
        db_enum(KeywordStatus, "keyword_status"),
        nullable=False,
        default=KeywordStatus.ACTIVE,
    )
    response_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    opt_in_group_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("contact_groups.id", ondelete="SET NULL"),
        nullable=True,
    )
    linked_campaign_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Keyword(id={self.id}, owner={self.owner_id}, text={self.keyword_text!r})>"


class KeywordActivity(Base):
    """Append-only record of a matched inbound keyword."""

    __tablename__ = "keyword_activities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    keyword_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("keywords.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    phone_number: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    incoming_message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    response_sent: Mapped[str | None] = mapped_column(Text, nullable=True)
    received_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
