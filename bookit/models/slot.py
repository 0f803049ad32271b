from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookit.db.base import Base


class TimeSlot(Base):
    """One bookable (date, time) unit of an experience.

    Rows are addressed by ``(experience_id, slot_date, time_label)`` and the
    counters are only changed through conditional UPDATEs in
    ``bookit.services.slot_ledger``.
    """

    __tablename__ = "time_slots"
    __table_args__ = (
        UniqueConstraint("experience_id", "slot_date", "time_label", name="uq_time_slots_key"),
        CheckConstraint("max_capacity >= 1", name="ck_time_slots_max_capacity"),
        CheckConstraint(
            "current_bookings >= 0 AND current_bookings <= max_capacity",
            name="ck_time_slots_within_capacity",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    experience_id: Mapped[str] = mapped_column(String(36), ForeignKey("experiences.id"), nullable=False, index=True)

    slot_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    time_label: Mapped[str] = mapped_column(String(16), nullable=False)  # "09:00 am"
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # minutes after midnight

    max_capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    current_bookings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    experience: Mapped["Experience"] = relationship("Experience", back_populates="slots")
