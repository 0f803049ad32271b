from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, time
from itertools import groupby

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from bookit.core.errors import ConflictError, DomainRejection
from bookit.models.slot import TimeSlot

logger = logging.getLogger(__name__)

TIME_LABEL_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9]) (am|pm)$")


class SlotNotFound(DomainRejection):
    def __init__(self, experience_id: str, slot_date: date, time_label: str):
        super().__init__("SLOT_NOT_AVAILABLE", "Requested time slot is not available")
        self.key = (experience_id, slot_date, time_label)


class CapacityExceeded(ConflictError):
    def __init__(self, experience_id: str, slot_date: date, time_label: str, quantity: int):
        super().__init__("CONCURRENT_BOOKING_CONFLICT", "Slot capacity exceeded due to concurrent bookings")
        self.key = (experience_id, slot_date, time_label)
        self.quantity = quantity


@dataclass
class SlotDay:
    date: date
    times: list[TimeSlot] = field(default_factory=list)


def parse_time_label(label: str) -> time:
    """Parse ``"HH:MM am|pm"`` into a ``time``.

    Hours above 12 are taken as already being 24-hour clock values.
    """
    m = TIME_LABEL_PATTERN.match(label.strip().lower())
    if not m:
        raise ValueError(f"Invalid time label: {label!r}")
    hour, minute, meridiem = int(m.group(1)), int(m.group(2)), m.group(3)
    if hour <= 12:
        if meridiem == "am" and hour == 12:
            hour = 0
        elif meridiem == "pm" and hour != 12:
            hour += 12
    return time(hour, minute)


def time_label_sort_key(label: str) -> int:
    t = parse_time_label(label)
    return t.hour * 60 + t.minute


def _slot_key(experience_id: str, slot_date: date, time_label: str):
    return (
        TimeSlot.experience_id == experience_id,
        TimeSlot.slot_date == slot_date,
        TimeSlot.time_label == time_label,
    )


def find_slot(db: Session, experience_id: str, slot_date: date, time_label: str) -> TimeSlot | None:
    q = select(TimeSlot).where(*_slot_key(experience_id, slot_date, time_label))
    return db.execute(q).scalar_one_or_none()


def remaining_capacity(slot: TimeSlot) -> int:
    return slot.max_capacity - slot.current_bookings


def is_open(slot: TimeSlot) -> bool:
    return slot.available and slot.current_bookings < slot.max_capacity


def add_slot(db: Session, *, experience_id: str, slot_date: date, time_label: str, max_capacity: int) -> TimeSlot:
    slot = TimeSlot(
        experience_id=experience_id,
        slot_date=slot_date,
        time_label=time_label,
        sort_order=time_label_sort_key(time_label),
        max_capacity=max_capacity,
        current_bookings=0,
        available=True,
    )
    db.add(slot)
    db.commit()
    db.refresh(slot)
    return slot


def reserve(db: Session, experience_id: str, slot_date: date, time_label: str, quantity: int) -> None:
    """Take ``quantity`` seats from a slot in one conditional UPDATE.

    The row only changes when the new count stays within ``max_capacity``,
    so racing callers can never jointly overbook the slot.
    """
    if quantity < 1:
        raise ValueError("quantity must be at least 1")

    new_count = TimeSlot.current_bookings + quantity
    stmt = (
        update(TimeSlot)
        .where(*_slot_key(experience_id, slot_date, time_label))
        .where(new_count <= TimeSlot.max_capacity)
        .values(
            current_bookings=new_count,
            available=case((new_count < TimeSlot.max_capacity, True), else_=False),
        )
        .execution_options(synchronize_session=False)
    )
    try:
        result = db.execute(stmt)
        db.commit()
    except Exception:
        db.rollback()
        raise

    if result.rowcount == 1:
        logger.debug("reserved %s seat(s) on %s %s %s", quantity, experience_id, slot_date, time_label)
        return

    if find_slot(db, experience_id, slot_date, time_label) is None:
        raise SlotNotFound(experience_id, slot_date, time_label)
    logger.info("capacity exceeded on %s %s %s (wanted %s)", experience_id, slot_date, time_label, quantity)
    raise CapacityExceeded(experience_id, slot_date, time_label, quantity)


def release(db: Session, experience_id: str, slot_date: date, time_label: str, quantity: int) -> None:
    """Give ``quantity`` seats back, flooring the counter at zero.

    Not idempotent: call once per reserved quantity.
    """
    if quantity < 1:
        raise ValueError("quantity must be at least 1")

    remaining = TimeSlot.current_bookings - quantity
    floored = case((remaining < 0, 0), else_=remaining)
    stmt = (
        update(TimeSlot)
        .where(*_slot_key(experience_id, slot_date, time_label))
        .values(
            current_bookings=floored,
            available=case((floored < TimeSlot.max_capacity, True), else_=False),
        )
        .execution_options(synchronize_session=False)
    )
    try:
        result = db.execute(stmt)
        db.commit()
    except Exception:
        db.rollback()
        raise

    if result.rowcount == 0:
        raise SlotNotFound(experience_id, slot_date, time_label)
    logger.debug("released %s seat(s) on %s %s %s", quantity, experience_id, slot_date, time_label)


def slot_calendar(db: Session, experience_id: str, *, from_date: date | None = None, only_open: bool = False) -> list[SlotDay]:
    q = select(TimeSlot).where(TimeSlot.experience_id == experience_id)
    if from_date is not None:
        q = q.where(TimeSlot.slot_date >= from_date)
    q = q.order_by(TimeSlot.slot_date.asc(), TimeSlot.sort_order.asc())
    slots = db.execute(q).scalars().all()

    days: list[SlotDay] = []
    for d, group in groupby(slots, key=lambda s: s.slot_date):
        times = [s for s in group if not only_open or is_open(s)]
        if times or not only_open:
            days.append(SlotDay(date=d, times=times))
    return days


def open_slots_for_date(db: Session, experience_id: str, day: date) -> list[TimeSlot]:
    q = (
        select(TimeSlot)
        .where(TimeSlot.experience_id == experience_id, TimeSlot.slot_date == day)
        .order_by(TimeSlot.sort_order.asc())
    )
    return [s for s in db.execute(q).scalars().all() if is_open(s)]
