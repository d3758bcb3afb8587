"""
SQLAlchemy models for platform phone numbers.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, DateTime, Index, Integer, Numeric, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column

from marketing_platform.shared.database import Base, db_enum


class PhoneNumberType(str, Enum):
    LOCAL = "Local"
    TOLL_FREE = "TollFree"
    SHORT_CODE = "ShortCode"
    MOBILE = "Mobile"


class PhoneNumberCapability(str, Enum):
    SMS = "SMS"
    MMS = "MMS"
    BOTH = "Both"


class PhoneNumberStatus(str, Enum):
    AVAILABLE = "Available"
    ACTIVE = "Active"
    SUSPENDED = "Suspended"
    RELEASED = "Released"


class PhoneNumber(Base):
    """Platform-owned number, optionally assigned to a tenant.

    The destination number of an inbound message identifies the tenant.
    """

    __tablename__ = "phone_numbers"
    __table_args__ = (
        # One live row per number
        Index(
            "uq_phone_numbers_number_live",
            "number",
            unique=True,
            postgresql_where=text("NOT is_deleted"),
            sqlite_where=text("is_deleted = 0"),
        ),
    )
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    number: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    friendly_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    number_type: Mapped[PhoneNumberType] = mapped_column(
        db_enum(PhoneNumberType, "phone_number_type"),
        nullable=False,
        default=PhoneNumberType.LOCAL,
    )
    capabilities: Mapped[PhoneNumberCapability] = mapped_column(
        db_enum(PhoneNumberCapability, "phone_number_capability"),
        nullable=False,
        default=PhoneNumberCapability.SMS,
    )
    status: Mapped[PhoneNumberStatus] = mapped_column(
        db_enum(PhoneNumberStatus, "phone_number_status"),
        nullable=False,
        default=PhoneNumberStatus.AVAILABLE,
    )
    assigned_owner_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    purchased_by_owner_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    purchased_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    monthly_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    country: Mapped[str | None] = mapped_column(String(2), nullable=True, default="US")
    region: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
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

    def __repr__(self) -> str:
        return f"<PhoneNumber(id={self.id}, number={self.number}, owner={self.assigned_owner_id})>"
