from __future__ import annotations

import enum
import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookit.db.base import Base
from bookit.models._mixins import TimestampMixin


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value, BookingStatus.COMPLETED.value)


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"
    __table_args__ = (Index("ix_bookings_experience_date", "experience_id", "booking_date"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    booking_code: Mapped[str] = mapped_column(String(16), nullable=False, unique=True, index=True)

    experience_id: Mapped[str] = mapped_column(String(36), ForeignKey("experiences.id"), nullable=False)

    customer_full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)  # lowercased

    booking_date: Mapped[date] = mapped_column(Date, nullable=False)
    booking_time: Mapped[str] = mapped_column(String(16), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    # Pricing snapshot, frozen at creation
    subtotal: Mapped[float] = mapped_column(Float, nullable=False)
    taxes: Mapped[float] = mapped_column(Float, nullable=False)
    discount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total: Mapped[float] = mapped_column(Float, nullable=False)
    promo_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default=BookingStatus.CONFIRMED.value, index=True)
    payment_status: Mapped[str] = mapped_column(String(16), nullable=False, default=PaymentStatus.PAID.value)
    notes: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    experience: Mapped["Experience"] = relationship("Experience")
