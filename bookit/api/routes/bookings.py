from __future__ import annotations

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from bookit.core.deps import get_db
from bookit.models.booking import Booking
from bookit.schemas.booking import (
    BookingCreate,
    BookingDetailsOut,
    BookingOut,
    BookingSummary,
    CustomerInfoOut,
    PricingOut,
)
from bookit.services.booking_service import cancel_booking, create_booking, get_booking, list_customer_bookings

router = APIRouter()

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


def _booking_out(b: Booking) -> BookingOut:
    return BookingOut(
        booking_id=b.booking_code,
        experience_id=b.experience_id,
        experience_title=b.experience.title if b.experience else "",
        customer_info=CustomerInfoOut(full_name=b.customer_full_name, email=b.customer_email),
        booking_details=BookingDetailsOut(date=b.booking_date, time=b.booking_time, quantity=b.quantity),
        pricing=PricingOut(
            subtotal=b.subtotal,
            taxes=b.taxes,
            discount=b.discount,
            total=b.total,
            promo_code=b.promo_code,
        ),
        status=b.status,
        payment_status=b.payment_status,
        notes=b.notes,
        created_at=b.created_at,
        updated_at=b.updated_at,
        cancelled_at=b.cancelled_at,
    )


@router.post("", response_model=BookingSummary, status_code=201)
def create(payload: BookingCreate, db: Session = Depends(get_db)):
    b = create_booking(db, payload)
    return BookingSummary(
        booking_id=b.booking_code,
        experience_title=b.experience.title,
        customer_name=b.customer_full_name,
        date=b.booking_date,
        time=b.booking_time,
        quantity=b.quantity,
        total=b.total,
        status=b.status,
        created_at=b.created_at,
    )


@router.get("/customer/{email}", response_model=list[BookingOut])
def by_customer(email: str = Path(max_length=255, pattern=EMAIL_PATTERN), db: Session = Depends(get_db)):
    return [_booking_out(b) for b in list_customer_bookings(db, email)]


@router.get("/{booking_id}", response_model=BookingOut)
def get_one(booking_id: str = Path(min_length=5, max_length=20), db: Session = Depends(get_db)):
    return _booking_out(get_booking(db, booking_id))


@router.put("/{booking_id}/cancel", response_model=BookingOut)
def cancel(booking_id: str = Path(min_length=5, max_length=20), db: Session = Depends(get_db)):
    b = cancel_booking(db, booking_id)
    return _booking_out(b)
