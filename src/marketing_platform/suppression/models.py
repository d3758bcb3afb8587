"""
SQLAlchemy models for the suppression list and auto-suppression rules.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column

from marketing_platform.shared.database import Base, db_enum


class SuppressionType(str, Enum):
    OPT_OUT = "OptOut"
    BOUNCE = "Bounce"
    COMPLAINT = "Complaint"
    MANUAL = "Manual"


class SuppressionTrigger(str, Enum):
    """Events that trigger auto-suppression."""

    UNSUBSCRIBE = "Unsubscribe"
    HARD_BOUNCE = "HardBounce"
    SOFT_BOUNCE = "SoftBounce"
    SPAM_COMPLAINT = "SpamComplaint"
    SMS_OPT_OUT = "SmsOptOut"
    WHATSAPP_OPT_OUT = "WhatsAppOptOut"
    INVALID_EMAIL = "InvalidEmail"
    INVALID_PHONE = "InvalidPhone"
    MANUAL_UPLOAD = "ManualUpload"
    INACTIVITY_TIMEOUT = "InactivityTimeout"


class SuppressionScope(str, Enum):
    GLOBAL = "Global"
    CHANNEL_SPECIFIC = "ChannelSpecific"


class SuppressionChannel(str, Enum):
    ALL = "All"
    EMAIL = "Email"
    SMS = "SMS"
    MMS = "MMS"
    WHATSAPP = "WhatsApp"


class SuppressionRecord(Base):
    """Blocks further contact with a phone number or email for one tenant.

    At most one active record exists per (owner_id, phone_or_email).
    """

    __tablename__ = "suppression_records"
    __table_args__ = (
        Index(
            "uq_suppression_records_active",
            "owner_id",
            "phone_or_email",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    phone_or_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    suppression_type: Mapped[SuppressionType] = mapped_column(
        db_enum(SuppressionType, "suppression_type"),
        nullable=False,
        default=SuppressionType.OPT_OUT,
    )
    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    lifted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class SuppressionRule(Base):
    """Tenant rule deciding how an auto-suppression trigger is recorded."""

    __tablename__ = "suppression_rules"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    trigger: Mapped[SuppressionTrigger] = mapped_column(
        db_enum(SuppressionTrigger, "suppression_trigger"),
        nullable=False,
    )
    scope: Mapped[SuppressionScope] = mapped_column(
        db_enum(SuppressionScope, "suppression_scope"),
        nullable=False,
        default=SuppressionScope.GLOBAL,
    )
    channel: Mapped[SuppressionChannel] = mapped_column(
        db_enum(SuppressionChannel, "suppression_channel"),
        nullable=False,
        default=SuppressionChannel.ALL,
    )
    suppression_type: Mapped[SuppressionType] = mapped_column(
        db_enum(SuppressionType, "suppression_type"),
        nullable=False,
        default=SuppressionType.OPT_OUT,
    )
    auto_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_system_rule: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    trigger_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_triggered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
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
