from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from bookit.core.config import get_settings
from bookit.core.errors import AppError, ConflictError, DomainRejection, NotFound, SystemFault
from bookit.models.booking import Booking, BookingStatus, PaymentStatus
from bookit.models.experience import Experience
from bookit.schemas.booking import BookingCreate
from bookit.services import booking_store, catalog_service, promo_service, slot_ledger
from bookit.services.pricing import PriceQuote, base_amounts, build_quote, mismatched_fields

logger = logging.getLogger(__name__)


class BookingStage(str, enum.Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    PRICE_VERIFIED = "price_verified"
    PROMO_APPLIED = "promo_applied"
    CAPACITY_RESERVED = "capacity_reserved"
    PERSISTED = "persisted"
    COMPLETED = "completed"
    REJECTED = "rejected"


@dataclass
class BookingAttempt:
    """Tracks where a single create request got to, for logs."""

    experience_id: str
    ref: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    stage: BookingStage = BookingStage.RECEIVED

    def advance(self, stage: BookingStage) -> None:
        logger.debug("booking %s: %s -> %s", self.ref, self.stage.value, stage.value)
        self.stage = stage

    def reject(self, exc: AppError) -> None:
        logger.info("booking %s rejected at %s: %s", self.ref, self.stage.value, exc.code)
        self.stage = BookingStage.REJECTED


def _local_tz() -> ZoneInfo:
    return ZoneInfo(get_settings().timezone)


def quote_booking(
    db: Session,
    *,
    experience: Experience,
    quantity: int,
    promo_code: str | None = None,
    customer_email: str | None = None,
    now: datetime | None = None,
) -> PriceQuote:
    """Canonical pricing for ``quantity`` seats, promo discount included."""
    settings = get_settings()
    subtotal, taxes = base_amounts(experience.price, quantity, settings.tax_rate)
    if not promo_code:
        return build_quote(subtotal, taxes)

    promo = promo_service.get_promo_by_code(db, promo_code)
    if promo is None:
        raise DomainRejection("INVALID_PROMO_CODE", "Invalid promo code")

    reasons = promo_service.validate(
        promo,
        order_amount=subtotal,
        category=experience.category,
        experience_id=experience.id,
        is_first_time_user=promo_service.is_first_time_customer(db, customer_email),
        now=now,
    )
    if reasons:
        raise DomainRejection("PROMO_CODE_VALIDATION_FAILED", reasons[0], details=reasons)

    discount = promo_service.calculate_discount(promo, subtotal)
    return build_quote(subtotal, taxes, discount, promo.code)


def _check_slot(db: Session, payload: BookingCreate) -> None:
    details = payload.booking_details
    slot = slot_ledger.find_slot(db, payload.experience_id, details.date, details.time)
    if slot is None or not slot_ledger.is_open(slot):
        raise DomainRejection("SLOT_NOT_AVAILABLE", "Requested time slot is not available")
    if slot_ledger.remaining_capacity(slot) < details.quantity:
        raise DomainRejection("INSUFFICIENT_CAPACITY", "Not enough capacity for this booking")

    held = booking_store.booked_quantity_for_slot(db, payload.experience_id, details.date, details.time)
    if held + details.quantity > slot.max_capacity:
        raise ConflictError("CONCURRENT_BOOKING_CONFLICT", "Slot capacity exceeded due to concurrent bookings")


def _release_promo(db: Session, code: str, ref: str) -> None:
    try:
        promo_service.release_usage(db, code)
    except Exception:
        logger.exception("booking %s: could not release provisional usage of promo %s", ref, code)


def _release_capacity(db: Session, payload: BookingCreate, ref: str) -> None:
    details = payload.booking_details
    try:
        slot_ledger.release(db, payload.experience_id, details.date, details.time, details.quantity)
    except Exception:
        logger.exception("booking %s: could not release %s seat(s) after failed save", ref, details.quantity)


def create_booking(db: Session, payload: BookingCreate, *, now: datetime | None = None) -> Booking:
    settings = get_settings()
    if now is None:
        now = datetime.now(timezone.utc)

    attempt = BookingAttempt(experience_id=payload.experience_id)
    details = payload.booking_details
    customer = payload.customer_info

    try:
        experience = catalog_service.get_experience(db, payload.experience_id)
        if experience is None:
            raise NotFound("EXPERIENCE_NOT_FOUND", "Experience not found")
        if not experience.is_active:
            raise DomainRejection("EXPERIENCE_NOT_AVAILABLE", "Experience is not available for booking")

        if details.date < now.astimezone(_local_tz()).date():
            raise DomainRejection("INVALID_BOOKING_DATE", "Cannot book for past dates")

        _check_slot(db, payload)
        attempt.advance(BookingStage.VALIDATED)

        quote = quote_booking(
            db,
            experience=experience,
            quantity=details.quantity,
            promo_code=payload.promo_code,
            customer_email=customer.email,
            now=now,
        )
        mismatched = mismatched_fields(payload.pricing.model_dump(), quote, settings.pricing_tolerance)
        if mismatched:
            raise DomainRejection(
                "PRICING_MISMATCH",
                "Pricing calculation mismatch",
                details=[{"field": name, "expected": getattr(quote, name)} for name in mismatched],
            )
        attempt.advance(BookingStage.PRICE_VERIFIED)

        # Usage is held before seats so a lost promo race costs nothing to undo
        if quote.promo_code:
            promo_service.record_usage(db, quote.promo_code)
            attempt.advance(BookingStage.PROMO_APPLIED)

        try:
            slot_ledger.reserve(db, payload.experience_id, details.date, details.time, details.quantity)
        except Exception as exc:
            if quote.promo_code:
                _release_promo(db, quote.promo_code, attempt.ref)
            if isinstance(exc, AppError):
                raise
            logger.error("booking %s: capacity reservation failed: %s", attempt.ref, exc)
            raise SystemFault("SLOT_BOOKING_FAILED", "Booking could not be saved, please try again") from exc
        attempt.advance(BookingStage.CAPACITY_RESERVED)

        booking = Booking(
            experience_id=experience.id,
            customer_full_name=customer.full_name,
            customer_email=customer.email,
            booking_date=details.date,
            booking_time=details.time,
            quantity=details.quantity,
            subtotal=quote.subtotal,
            taxes=quote.taxes,
            discount=quote.discount,
            total=quote.total,
            promo_code=quote.promo_code,
            status=BookingStatus.CONFIRMED.value,
            payment_status=PaymentStatus.PAID.value,
        )
        try:
            booking_store.insert_booking(
                db,
                booking,
                code_length=settings.booking_code_length,
                max_attempts=settings.booking_code_max_attempts,
            )
        except Exception as exc:
            logger.error("booking %s: save failed after reserving capacity: %s", attempt.ref, exc)
            _release_capacity(db, payload, attempt.ref)
            if quote.promo_code:
                _release_promo(db, quote.promo_code, attempt.ref)
            raise SystemFault("SLOT_BOOKING_FAILED", "Booking could not be saved, please try again") from exc
        attempt.advance(BookingStage.PERSISTED)
    except AppError as exc:
        attempt.reject(exc)
        raise

    attempt.advance(BookingStage.COMPLETED)
    logger.info("booking %s created as %s (%s seat(s))", attempt.ref, booking.booking_code, booking.quantity)
    return booking


def get_booking(db: Session, booking_code: str) -> Booking:
    booking = booking_store.get_by_code(db, booking_code)
    if booking is None:
        raise NotFound("BOOKING_NOT_FOUND", "Booking not found")
    return booking


def list_customer_bookings(db: Session, email: str) -> list[Booking]:
    return booking_store.list_by_customer_email(db, email)


def booking_starts_at(booking: Booking, tz: ZoneInfo) -> datetime:
    t = slot_ledger.parse_time_label(booking.booking_time)
    return datetime.combine(booking.booking_date, t).replace(tzinfo=tz)


def cancel_booking(db: Session, booking_code: str, *, now: datetime | None = None) -> Booking:
    settings = get_settings()
    if now is None:
        now = datetime.now(timezone.utc)

    booking = get_booking(db, booking_code)
    if booking.status == BookingStatus.CANCELLED.value:
        raise DomainRejection("BOOKING_ALREADY_CANCELLED", "Booking is already cancelled")

    cutoff = settings.cancellation_cutoff_hours
    if booking_starts_at(booking, _local_tz()) - now < timedelta(hours=cutoff):
        raise DomainRejection(
            "CANCELLATION_TOO_LATE",
            f"Cannot cancel booking less than {cutoff} hours before the experience",
        )

    if not booking_store.mark_cancelled(db, booking.booking_code, now):
        raise DomainRejection("BOOKING_ALREADY_CANCELLED", "Booking is already cancelled")
    db.refresh(booking)

    try:
        slot_ledger.release(db, booking.experience_id, booking.booking_date, booking.booking_time, booking.quantity)
    except slot_ledger.SlotNotFound:
        logger.warning("cancelled %s but its slot no longer exists; nothing to release", booking.booking_code)

    logger.info("booking %s cancelled, %s seat(s) released", booking.booking_code, booking.quantity)
    return booking
