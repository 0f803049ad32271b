from __future__ import annotations

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from bookit.core.deps import get_db
from bookit.core.errors import NotFound
from bookit.models.promo_code import PromoCode
from bookit.schemas.promo import OrderSummaryOut, PromoCodeOut, PromoCodePublic, PromoValidateRequest, PromoValidateResponse
from bookit.services.promo_service import (
    evaluate_for_order,
    get_promo_by_code,
    is_currently_valid,
    list_active_promo_codes,
    remaining_uses,
)

router = APIRouter()


def _public(p: PromoCode) -> PromoCodePublic:
    return PromoCodePublic(
        code=p.code,
        description=p.description,
        discount_type=p.discount_type,
        discount_value=p.discount_value,
        min_order_amount=p.min_order_amount,
        max_discount_amount=p.max_discount_amount,
        expiry_date=p.expiry_date,
        remaining_uses=remaining_uses(p),
    )


@router.post("/validate", response_model=PromoValidateResponse)
def validate_promo(payload: PromoValidateRequest, db: Session = Depends(get_db)):
    promo, discount = evaluate_for_order(
        db,
        code=payload.code,
        order_amount=payload.order_amount,
        experience_id=payload.experience_id,
        customer_email=str(payload.customer_email) if payload.customer_email else None,
    )
    return PromoValidateResponse(
        promo_code=PromoCodeOut(
            code=promo.code,
            description=promo.description,
            discount_type=promo.discount_type,
            discount_value=promo.discount_value,
            discount_amount=discount,
            max_discount_amount=promo.max_discount_amount,
            min_order_amount=promo.min_order_amount,
        ),
        order_summary=OrderSummaryOut(
            original_amount=payload.order_amount,
            discount_amount=discount,
            final_amount=payload.order_amount - discount,
        ),
    )


@router.get("/active", response_model=list[PromoCodePublic])
def active_codes(db: Session = Depends(get_db)):
    return [_public(p) for p in list_active_promo_codes(db)]


@router.get("/{code}", response_model=PromoCodePublic)
def get_code(code: str = Path(pattern=r"^[A-Za-z0-9]{3,20}$"), db: Session = Depends(get_db)):
    promo = get_promo_by_code(db, code)
    # Inactive, expired or exhausted codes are not revealed
    if promo is None or not is_currently_valid(promo):
        raise NotFound("PROMO_CODE_NOT_FOUND", "Promo code not found")
    return _public(promo)
