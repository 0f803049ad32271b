from __future__ import annotations

import enum
import uuid

from sqlalchemy import Boolean, CheckConstraint, Float, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookit.db.base import Base
from bookit.models._mixins import TimestampMixin


class ExperienceCategory(str, enum.Enum):
    ADVENTURE = "adventure"
    NATURE = "nature"
    CULTURAL = "cultural"
    WATER_SPORTS = "water-sports"
    HIKING = "hiking"
    SIGHTSEEING = "sightseeing"


class Experience(Base, TimestampMixin):
    __tablename__ = "experiences"
    __table_args__ = (CheckConstraint("price >= 0", name="ck_experiences_price_non_negative"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    location: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    price: Mapped[float] = mapped_column(Float, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, index=True)  # ExperienceCategory value

    duration: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    min_age: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_group_size: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    image: Mapped[str] = mapped_column(String(2000), nullable=False, default="")
    includes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    slots: Mapped[list["TimeSlot"]] = relationship("TimeSlot", back_populates="experience", cascade="all, delete-orphan")
