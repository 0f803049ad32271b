from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from bookit.core.config import get_settings

router = APIRouter()


@router.get("/health")
def health():
    return {
        "ok": True,
        "message": f"{get_settings().app_name} is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
