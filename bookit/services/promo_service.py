from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from bookit.core.errors import ConflictError, DomainRejection, NotFound
from bookit.models.booking import ACTIVE_BOOKING_STATUSES, Booking
from bookit.models.promo_code import DiscountType, PromoCode
from bookit.services.catalog_service import get_experience
from bookit.services.pricing import round_currency

logger = logging.getLogger(__name__)


class PromoUsageExhausted(ConflictError):
    def __init__(self, code: str):
        super().__init__(
            "PROMO_CODE_VALIDATION_FAILED",
            "Promo code usage limit exceeded",
            details=["Promo code usage limit exceeded"],
        )
        self.promo_code = code


def normalize_code(code: str) -> str:
    return code.strip().upper()


def _aware(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; stored values are UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def get_promo_by_code(db: Session, code: str) -> PromoCode | None:
    q = select(PromoCode).where(PromoCode.code == normalize_code(code))
    return db.execute(q).scalar_one_or_none()


def validate(
    promo: PromoCode | None,
    *,
    order_amount: float,
    category: str | None,
    experience_id: str | None,
    is_first_time_user: bool = False,
    now: datetime | None = None,
) -> list[str]:
    """Return the ordered list of reasons the promo cannot apply (empty = valid)."""
    if promo is None:
        return ["Promo code not found"]

    if now is None:
        now = datetime.now(timezone.utc)

    errors: list[str] = []
    if not promo.is_active:
        errors.append("Promo code is not active")

    if now < _aware(promo.start_date):
        errors.append("Promo code is not yet valid")
    if now > _aware(promo.expiry_date):
        errors.append("Promo code has expired")

    if promo.usage_limit is not None and promo.used_count >= promo.usage_limit:
        errors.append("Promo code usage limit exceeded")

    if order_amount < promo.min_order_amount:
        errors.append(f"Minimum order amount of ₹{promo.min_order_amount:g} required")

    categories = promo.applicable_categories or []
    if categories and category not in categories:
        errors.append("Promo code not applicable for this experience category")

    if experience_id and experience_id in (promo.excluded_experience_ids or []):
        errors.append("Promo code not applicable for this experience")

    if promo.first_time_user_only and not is_first_time_user:
        errors.append("Promo code is only valid for first-time users")

    return errors


def calculate_discount(promo: PromoCode, order_amount: float) -> float:
    if promo.discount_type == DiscountType.PERCENTAGE.value:
        discount = order_amount * promo.discount_value / 100
    else:
        discount = promo.discount_value

    if promo.max_discount_amount is not None and discount > promo.max_discount_amount:
        discount = promo.max_discount_amount

    return min(round_currency(discount), order_amount)


def record_usage(db: Session, code: str) -> None:
    """Count one redemption, refusing to cross ``usage_limit``.

    Single compare-and-increment UPDATE; zero affected rows means the limit
    is already reached (or the code vanished).
    """
    code = normalize_code(code)
    stmt = (
        update(PromoCode)
        .where(PromoCode.code == code)
        .where(or_(PromoCode.usage_limit.is_(None), PromoCode.used_count + 1 <= PromoCode.usage_limit))
        .values(used_count=PromoCode.used_count + 1)
        .execution_options(synchronize_session=False)
    )
    try:
        result = db.execute(stmt)
        db.commit()
    except Exception:
        db.rollback()
        raise

    if result.rowcount == 0:
        logger.info("promo %s usage exhausted", code)
        raise PromoUsageExhausted(code)


def release_usage(db: Session, code: str) -> None:
    """Undo one ``record_usage`` (floor at zero)."""
    code = normalize_code(code)
    stmt = (
        update(PromoCode)
        .where(PromoCode.code == code, PromoCode.used_count > 0)
        .values(used_count=PromoCode.used_count - 1)
        .execution_options(synchronize_session=False)
    )
    try:
        db.execute(stmt)
        db.commit()
    except Exception:
        db.rollback()
        raise


def is_currently_valid(promo: PromoCode, now: datetime | None = None) -> bool:
    if now is None:
        now = datetime.now(timezone.utc)
    return (
        promo.is_active
        and _aware(promo.start_date) <= now <= _aware(promo.expiry_date)
        and (promo.usage_limit is None or promo.used_count < promo.usage_limit)
    )


def remaining_uses(promo: PromoCode) -> int | None:
    if promo.usage_limit is None:
        return None
    return max(0, promo.usage_limit - promo.used_count)


def list_active_promo_codes(db: Session, now: datetime | None = None) -> list[PromoCode]:
    if now is None:
        now = datetime.now(timezone.utc)
    q = (
        select(PromoCode)
        .where(PromoCode.is_active == True)  # noqa: E712
        .where(or_(PromoCode.usage_limit.is_(None), PromoCode.used_count < PromoCode.usage_limit))
        .order_by(PromoCode.code.asc())
    )
    # Window check in Python so naive SQLite timestamps compare correctly
    return [p for p in db.execute(q).scalars().all() if is_currently_valid(p, now)]


def is_first_time_customer(db: Session, email: str | None) -> bool:
    if not email:
        return False
    q = (
        select(Booking.id)
        .where(Booking.customer_email == email.strip().lower())
        .where(Booking.status.in_(ACTIVE_BOOKING_STATUSES))
        .limit(1)
    )
    return db.execute(q).first() is None


def evaluate_for_order(
    db: Session,
    *,
    code: str,
    order_amount: float,
    experience_id: str | None = None,
    customer_email: str | None = None,
    now: datetime | None = None,
) -> tuple[PromoCode, float]:
    """Check a promo against a prospective order; returns it with its discount."""
    promo = get_promo_by_code(db, code)
    if promo is None:
        raise NotFound("PROMO_CODE_NOT_FOUND", "Promo code not found")

    category = None
    if experience_id:
        experience = get_experience(db, experience_id)
        if experience is None:
            raise NotFound("EXPERIENCE_NOT_FOUND", "Experience not found")
        category = experience.category

    reasons = validate(
        promo,
        order_amount=order_amount,
        category=category,
        experience_id=experience_id,
        is_first_time_user=is_first_time_customer(db, customer_email),
        now=now,
    )
    if reasons:
        raise DomainRejection("PROMO_CODE_INVALID", reasons[0], details=reasons)

    return promo, calculate_discount(promo, order_amount)
