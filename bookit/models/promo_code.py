from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Float, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from bookit.db.base import Base
from bookit.models._mixins import TimestampMixin, utcnow


class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class PromoCode(Base, TimestampMixin):
    __tablename__ = "promo_codes"
    __table_args__ = (
        CheckConstraint("discount_value >= 0", name="ck_promo_codes_value"),
        CheckConstraint("discount_type <> 'percentage' OR discount_value <= 100", name="ck_promo_codes_percentage"),
        CheckConstraint("used_count >= 0", name="ck_promo_codes_used_non_negative"),
        CheckConstraint("usage_limit IS NULL OR used_count <= usage_limit", name="ck_promo_codes_within_limit"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True, index=True)  # uppercase
    description: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    discount_type: Mapped[str] = mapped_column(String(16), nullable=False)  # DiscountType value
    discount_value: Mapped[float] = mapped_column(Float, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    expiry_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # NULL means unlimited
    usage_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    used_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    min_order_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    max_discount_amount: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Empty list means every category
    applicable_categories: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    excluded_experience_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    first_time_user_only: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
