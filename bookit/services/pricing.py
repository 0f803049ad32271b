from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal


def round_currency(amount: float) -> float:
    """Round half-up to the nearest whole currency unit."""
    return float(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class PriceQuote:
    subtotal: float
    taxes: float
    discount: float
    total: float
    promo_code: str | None = None

    def as_dict(self) -> dict[str, float]:
        return {"subtotal": self.subtotal, "taxes": self.taxes, "discount": self.discount, "total": self.total}


def base_amounts(unit_price: float, quantity: int, tax_rate: float) -> tuple[float, float]:
    subtotal = float(unit_price) * quantity
    taxes = round_currency(subtotal * tax_rate)
    return subtotal, taxes


def build_quote(subtotal: float, taxes: float, discount: float = 0.0, promo_code: str | None = None) -> PriceQuote:
    return PriceQuote(
        subtotal=subtotal,
        taxes=taxes,
        discount=discount,
        total=subtotal + taxes - discount,
        promo_code=promo_code,
    )


def mismatched_fields(submitted: dict[str, float], canonical: PriceQuote, tolerance: float) -> list[str]:
    """Names of submitted pricing fields further than ``tolerance`` from canonical."""
    expected = canonical.as_dict()
    out = []
    for name, value in expected.items():
        got = submitted.get(name) or 0.0
        if abs(float(got) - value) > tolerance:
            out.append(name)
    return out
