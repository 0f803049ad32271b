from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bookit.core.config import get_settings
from bookit.core.deps import get_db
from bookit.core.errors import NotFound
from bookit.models.experience import Experience, ExperienceCategory
from bookit.models.slot import TimeSlot
from bookit.schemas.experience import DateSlotsOut, ExperienceDetailOut, ExperienceOut, SlotDayOut, TimeSlotOut
from bookit.services.catalog_service import get_experience, list_categories, list_experiences
from bookit.services.slot_ledger import open_slots_for_date, remaining_capacity, slot_calendar

router = APIRouter()


def _slot_out(s: TimeSlot) -> TimeSlotOut:
    return TimeSlotOut(
        time=s.time_label,
        max_capacity=s.max_capacity,
        current_bookings=s.current_bookings,
        available=s.available,
        remaining_capacity=remaining_capacity(s),
    )


def _load(db: Session, experience_id: str) -> Experience:
    experience = get_experience(db, experience_id)
    if experience is None:
        raise NotFound("EXPERIENCE_NOT_FOUND", "Experience not found")
    return experience


@router.get("", response_model=list[ExperienceOut])
def list_all(category: ExperienceCategory | None = None, db: Session = Depends(get_db)):
    return list_experiences(db, category=category.value if category else None)


@router.get("/categories", response_model=list[str])
def categories(db: Session = Depends(get_db)):
    return list_categories(db)


@router.get("/{experience_id}", response_model=ExperienceDetailOut)
def get_one(experience_id: str, db: Session = Depends(get_db)):
    experience = _load(db, experience_id)
    if not experience.is_active:
        raise NotFound("EXPERIENCE_NOT_AVAILABLE", "Experience is not available")

    today = datetime.now(ZoneInfo(get_settings().timezone)).date()
    days = slot_calendar(db, experience.id, from_date=today, only_open=True)

    data = ExperienceOut.model_validate(experience).model_dump()
    return ExperienceDetailOut(
        **data,
        available_slots=[SlotDayOut(date=d.date, times=[_slot_out(s) for s in d.times]) for d in days],
    )


@router.get("/{experience_id}/slots/{day}", response_model=DateSlotsOut)
def slots_for_date(experience_id: str, day: date, db: Session = Depends(get_db)):
    experience = _load(db, experience_id)
    return DateSlotsOut(date=day, slots=[_slot_out(s) for s in open_slots_for_date(db, experience.id, day)])
