from __future__ import annotations

import datetime as dt

from bookit.schemas._base import CamelModel


class TimeSlotOut(CamelModel):
    time: str
    max_capacity: int
    current_bookings: int
    available: bool
    remaining_capacity: int


class SlotDayOut(CamelModel):
    date: dt.date
    times: list[TimeSlotOut]


class ExperienceOut(CamelModel):
    id: str
    title: str
    description: str
    location: str
    price: float
    category: str
    duration: str
    min_age: int
    max_group_size: int
    image: str
    includes: list[str]
    rating: float
    review_count: int


class ExperienceDetailOut(ExperienceOut):
    available_slots: list[SlotDayOut]


class DateSlotsOut(CamelModel):
    date: dt.date
    slots: list[TimeSlotOut]
