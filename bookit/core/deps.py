from __future__ import annotations

from sqlalchemy.orm import Session

from bookit.db.session import SessionLocal


def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
