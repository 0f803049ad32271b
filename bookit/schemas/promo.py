from __future__ import annotations

import datetime as dt
import re

from pydantic import EmailStr, Field, field_validator

from bookit.schemas._base import CamelModel

PROMO_CODE_PATTERN = re.compile(r"^[A-Z0-9]{3,20}$")


def clean_promo_code(value: object) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("Promo code must be a string")
    code = value.strip().upper()
    if not code:
        return None
    if not PROMO_CODE_PATTERN.match(code):
        raise ValueError("Promo code must be 3-20 characters and contain only letters and numbers")
    return code


class PromoValidateRequest(CamelModel):
    code: str
    order_amount: float = Field(ge=0)
    experience_id: str | None = Field(default=None, max_length=36)
    customer_email: EmailStr | None = None

    @field_validator("code", mode="before")
    @classmethod
    def _code(cls, v):
        code = clean_promo_code(v)
        if code is None:
            raise ValueError("Promo code is required")
        return code


class PromoCodeOut(CamelModel):
    code: str
    description: str
    discount_type: str
    discount_value: float
    discount_amount: float
    max_discount_amount: float | None
    min_order_amount: float


class OrderSummaryOut(CamelModel):
    original_amount: float
    discount_amount: float
    final_amount: float


class PromoValidateResponse(CamelModel):
    promo_code: PromoCodeOut
    order_summary: OrderSummaryOut


class PromoCodePublic(CamelModel):
    code: str
    description: str
    discount_type: str
    discount_value: float
    min_order_amount: float
    max_discount_amount: float | None
    expiry_date: dt.datetime
    remaining_uses: int | None  # None = unlimited
