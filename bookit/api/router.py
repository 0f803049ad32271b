from __future__ import annotations

from fastapi import APIRouter

from bookit.api.routes import bookings, experiences, health, promo

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(experiences.router, prefix="/experiences", tags=["experiences"])
api_router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
api_router.include_router(promo.router, prefix="/promo", tags=["promo"])
