from __future__ import annotations

import datetime as dt

from pydantic import EmailStr, Field, field_validator

from bookit.core.config import get_settings
from bookit.schemas._base import CamelModel
from bookit.schemas.promo import clean_promo_code
from bookit.services.slot_ledger import TIME_LABEL_PATTERN

MAX_BOOKING_QUANTITY = get_settings().max_booking_quantity


class CustomerInfoIn(CamelModel):
    full_name: str = Field(min_length=2, max_length=100)
    email: EmailStr

    @field_validator("full_name", mode="before")
    @classmethod
    def _strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v):
        return str(v).lower()


class BookingDetailsIn(CamelModel):
    date: dt.date
    time: str = Field(pattern=TIME_LABEL_PATTERN.pattern)
    quantity: int = Field(ge=1, le=MAX_BOOKING_QUANTITY)

    @field_validator("time", mode="before")
    @classmethod
    def _lower_time(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class PricingIn(CamelModel):
    subtotal: float = Field(ge=0)
    taxes: float = Field(ge=0)
    discount: float | None = Field(default=0, ge=0)
    total: float = Field(ge=0)


class BookingCreate(CamelModel):
    """Body of a booking request.

    Field order is the order violations are reported in.
    """

    experience_id: str = Field(min_length=1, max_length=36)
    customer_info: CustomerInfoIn
    booking_details: BookingDetailsIn
    pricing: PricingIn
    promo_code: str | None = None

    @field_validator("promo_code", mode="before")
    @classmethod
    def _promo(cls, v):
        return clean_promo_code(v)


class BookingSummary(CamelModel):
    booking_id: str
    experience_title: str
    customer_name: str
    date: dt.date
    time: str
    quantity: int
    total: float
    status: str
    created_at: dt.datetime


class CustomerInfoOut(CamelModel):
    full_name: str
    email: str


class BookingDetailsOut(CamelModel):
    date: dt.date
    time: str
    quantity: int


class PricingOut(CamelModel):
    subtotal: float
    taxes: float
    discount: float
    total: float
    promo_code: str | None = None


class BookingOut(CamelModel):
    booking_id: str
    experience_id: str
    experience_title: str
    customer_info: CustomerInfoOut
    booking_details: BookingDetailsOut
    pricing: PricingOut
    status: str
    payment_status: str
    notes: str
    created_at: dt.datetime
    updated_at: dt.datetime
    cancelled_at: dt.datetime | None = None
