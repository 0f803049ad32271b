from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from bookit.models.experience import Experience


def get_experience(db: Session, experience_id: str) -> Experience | None:
    return db.get(Experience, experience_id)


def list_experiences(db: Session, *, category: str | None = None) -> list[Experience]:
    q = select(Experience).where(Experience.is_active == True)  # noqa: E712
    if category:
        q = q.where(Experience.category == category)
    q = q.order_by(Experience.display_order.asc(), Experience.title.asc())
    return list(db.execute(q).scalars().all())


def list_categories(db: Session) -> list[str]:
    q = select(Experience.category).where(Experience.is_active == True).distinct()  # noqa: E712
    return sorted(db.execute(q).scalars().all())
