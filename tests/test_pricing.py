import pytest

from bookit.services.pricing import base_amounts, build_quote, mismatched_fields, round_currency


@pytest.mark.parametrize(
    "amount,expected",
    [(0.5, 1.0), (1.5, 2.0), (2.5, 3.0), (359.64, 360.0), (199.49, 199.0), (0, 0.0)],
)
def test_round_currency_is_half_up(amount, expected):
    assert round_currency(amount) == expected


def test_two_seats_at_999():
    subtotal, taxes = base_amounts(999, 2, 0.18)
    quote = build_quote(subtotal, taxes)
    assert (quote.subtotal, quote.taxes, quote.discount, quote.total) == (1998, 360, 0, 2358)


def test_flat_discount_comes_off_the_total():
    subtotal, taxes = base_amounts(999, 2, 0.18)
    quote = build_quote(subtotal, taxes, 100, "FLAT100")
    assert quote.total == 2258
    assert quote.promo_code == "FLAT100"


def test_mismatched_fields_respects_tolerance():
    quote = build_quote(1998, 360, 100)
    submitted = {"subtotal": 1998.005, "taxes": 360, "discount": 100, "total": 2258}
    assert mismatched_fields(submitted, quote, 0.01) == []

    submitted = {"subtotal": 1998, "taxes": 359, "discount": 0, "total": 2357}
    assert mismatched_fields(submitted, quote, 0.01) == ["taxes", "discount", "total"]


def test_missing_discount_counts_as_zero():
    quote = build_quote(1998, 360)
    assert mismatched_fields({"subtotal": 1998, "taxes": 360, "total": 2358}, quote, 0.01) == []
