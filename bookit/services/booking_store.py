from __future__ import annotations

import logging
import secrets
import string
from datetime import date, datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bookit.models.booking import ACTIVE_BOOKING_STATUSES, Booking, BookingStatus

logger = logging.getLogger(__name__)

BOOKING_CODE_ALPHABET = string.ascii_uppercase + string.digits


class BookingCodeExhausted(Exception):
    """Every generated booking code collided with an existing one."""


def generate_booking_code(length: int = 8) -> str:
    # Example: HUF56SO8
    return "".join(secrets.choice(BOOKING_CODE_ALPHABET) for _ in range(length))


def insert_booking(db: Session, booking: Booking, *, code_length: int = 8, max_attempts: int = 5) -> Booking:
    """Persist a new booking, regenerating its public code on collisions."""
    for attempt in range(1, max_attempts + 1):
        booking.booking_code = generate_booking_code(code_length)
        db.add(booking)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if get_by_code(db, booking.booking_code) is None:
                # Some other constraint failed; a new code will not help
                raise
            logger.warning("booking code collision on attempt %s/%s", attempt, max_attempts)
            continue
        db.refresh(booking)
        return booking

    raise BookingCodeExhausted(f"no unique booking code after {max_attempts} attempts")


def mark_cancelled(db: Session, booking_code: str, cancelled_at: datetime) -> bool:
    """Flip a booking to cancelled unless it already is.

    Returns False when no row changed, so only one of several overlapping
    cancels gets to release the seats.
    """
    stmt = (
        update(Booking)
        .where(Booking.booking_code == booking_code.strip().upper())
        .where(Booking.status != BookingStatus.CANCELLED.value)
        .values(status=BookingStatus.CANCELLED.value, cancelled_at=cancelled_at, updated_at=cancelled_at)
        .execution_options(synchronize_session=False)
    )
    try:
        result = db.execute(stmt)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return result.rowcount == 1


def get_by_code(db: Session, booking_code: str) -> Booking | None:
    q = select(Booking).where(Booking.booking_code == booking_code.strip().upper())
    return db.execute(q).scalar_one_or_none()


def list_by_customer_email(db: Session, email: str) -> list[Booking]:
    q = (
        select(Booking)
        .where(Booking.customer_email == email.strip().lower())
        .order_by(Booking.created_at.desc())
    )
    return list(db.execute(q).scalars().all())


def list_by_experience_and_dates(db: Session, experience_id: str, date_from: date, date_to: date) -> list[Booking]:
    q = (
        select(Booking)
        .where(Booking.experience_id == experience_id)
        .where(Booking.booking_date >= date_from, Booking.booking_date <= date_to)
        .where(Booking.status.in_(ACTIVE_BOOKING_STATUSES))
        .order_by(Booking.booking_date.asc(), Booking.created_at.asc())
    )
    return list(db.execute(q).scalars().all())


def booked_quantity_for_slot(db: Session, experience_id: str, booking_date: date, booking_time: str) -> int:
    """Seats held by active bookings, counted from the records rather than the ledger."""
    q = (
        select(func.coalesce(func.sum(Booking.quantity), 0))
        .where(Booking.experience_id == experience_id)
        .where(Booking.booking_date == booking_date, Booking.booking_time == booking_time)
        .where(Booking.status.in_(ACTIVE_BOOKING_STATUSES))
    )
    return int(db.execute(q).scalar_one())
