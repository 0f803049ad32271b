from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from tests.factories import booking_body, make_experience, make_promo, make_slot


@pytest.fixture
def day():
    return datetime.now(timezone.utc).date() + timedelta(days=10)


@pytest.fixture
def live_window():
    now = datetime.now(timezone.utc)
    return {"start_date": now - timedelta(days=1), "expiry_date": now + timedelta(days=30)}


@pytest.fixture
def experience(db):
    return make_experience(db, price=999)


def _slot_state(client, experience_id, day, time_label="10:00 am"):
    r = client.get(f"/api/experiences/{experience_id}/slots/{day.isoformat()}")
    assert r.status_code == 200
    return next((s for s in r.json()["slots"] if s["time"] == time_label), None)


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True


def test_create_booking_returns_summary(client, db, experience, day):
    make_slot(db, experience, day)

    r = client.post("/api/bookings", json=booking_body(experience.id, day))

    assert r.status_code == 201, r.text
    body = r.json()
    assert len(body["bookingId"]) == 8
    assert body["experienceTitle"] == experience.title
    assert body["customerName"] == "Asha Rao"
    assert body["date"] == day.isoformat()
    assert body["quantity"] == 2
    assert body["total"] == 2358
    assert body["status"] == "confirmed"

    slot = _slot_state(client, experience.id, day)
    assert slot["currentBookings"] == 2
    assert slot["remainingCapacity"] == 6


def test_validation_errors_are_listed_per_field(client, experience, day):
    body = booking_body(experience.id, day, quantity=0)
    body["customerInfo"]["email"] = "not-an-email"

    r = client.post("/api/bookings", json=body)

    assert r.status_code == 400
    error = r.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert [d["field"] for d in error["details"]] == ["customerInfo.email", "bookingDetails.quantity"]


def test_bad_promo_code_format_is_a_validation_error(client, experience, day):
    r = client.post("/api/bookings", json=booking_body(experience.id, day, promo_code="no spaces!"))
    assert r.status_code == 400
    assert r.json()["error"]["details"][0]["field"] == "promoCode"


def test_pricing_mismatch_leaves_slot_alone(client, db, experience, day):
    make_slot(db, experience, day)
    tampered = {"subtotal": 100, "taxes": 18, "discount": 0, "total": 118}

    r = client.post("/api/bookings", json=booking_body(experience.id, day, pricing=tampered))

    assert r.status_code == 400
    error = r.json()["error"]
    assert error["code"] == "PRICING_MISMATCH"
    assert {d["field"] for d in error["details"]} == {"subtotal", "taxes", "total"}
    assert _slot_state(client, experience.id, day)["currentBookings"] == 0


def test_full_slot_is_hidden_and_rejected(client, db, experience, day):
    make_slot(db, experience, day, max_capacity=2, current_bookings=2)

    assert _slot_state(client, experience.id, day) is None
    r = client.post("/api/bookings", json=booking_body(experience.id, day, quantity=1, pricing={"subtotal": 999, "taxes": 180, "total": 1179}))
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "SLOT_NOT_AVAILABLE"


def test_booking_lookup_and_cancel(client, db, experience, day):
    make_slot(db, experience, day)
    code = client.post("/api/bookings", json=booking_body(experience.id, day)).json()["bookingId"]

    r = client.get(f"/api/bookings/{code.lower()}")
    assert r.status_code == 200
    detail = r.json()
    assert detail["customerInfo"] == {"fullName": "Asha Rao", "email": "asha@example.com"}
    assert detail["pricing"]["total"] == 2358
    assert detail["bookingDetails"]["time"] == "10:00 am"

    r = client.get("/api/bookings/customer/ASHA@example.com")
    assert [b["bookingId"] for b in r.json()] == [code]

    r = client.put(f"/api/bookings/{code}/cancel")
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"
    assert r.json()["cancelledAt"] is not None
    assert _slot_state(client, experience.id, day)["currentBookings"] == 0

    r = client.put(f"/api/bookings/{code}/cancel")
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "BOOKING_ALREADY_CANCELLED"


def test_unknown_booking(client):
    r = client.get("/api/bookings/ZZZZZZZZ")
    assert r.status_code == 404
    assert r.json() == {"error": {"code": "BOOKING_NOT_FOUND", "message": "Booking not found"}}


def test_booking_with_promo(client, db, experience, day, live_window):
    make_slot(db, experience, day)
    make_promo(db, "FLAT100", **live_window)

    pricing = {"subtotal": 1998, "taxes": 360, "discount": 100, "total": 2258}
    r = client.post("/api/bookings", json=booking_body(experience.id, day, promo_code="flat100", pricing=pricing))

    assert r.status_code == 201, r.text
    assert r.json()["total"] == 2258


def test_promo_validate(client, db, experience, live_window):
    make_promo(db, "SAVE10", discount_type="percentage", discount_value=10, min_order_amount=0, max_discount_amount=150, **live_window)

    r = client.post("/api/promo/validate", json={"code": "save10", "orderAmount": 1998, "experienceId": experience.id})

    assert r.status_code == 200, r.text
    body = r.json()
    assert body["promoCode"]["code"] == "SAVE10"
    assert body["promoCode"]["discountAmount"] == 150
    assert body["orderSummary"] == {"originalAmount": 1998, "discountAmount": 150, "finalAmount": 1848}


def test_promo_validate_failures(client, db, live_window):
    make_promo(db, "FLAT100", **live_window)

    r = client.post("/api/promo/validate", json={"code": "MISSING", "orderAmount": 1998})
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "PROMO_CODE_NOT_FOUND"

    r = client.post("/api/promo/validate", json={"code": "FLAT100", "orderAmount": 500})
    assert r.status_code == 400
    error = r.json()["error"]
    assert error["code"] == "PROMO_CODE_INVALID"
    assert error["details"] == ["Minimum order amount of ₹800 required"]


def test_active_promos_hide_dead_codes(client, db, live_window):
    make_promo(db, "LIVE", **live_window)
    make_promo(db, "DONE", usage_limit=1, used_count=1, **live_window)

    r = client.get("/api/promo/active")
    assert [p["code"] for p in r.json()] == ["LIVE"]
    assert r.json()[0]["remainingUses"] is None

    assert client.get("/api/promo/live").status_code == 200
    assert client.get("/api/promo/DONE").status_code == 404


def test_experience_catalog(client, db, day):
    kayak = make_experience(db, title="Sunrise Kayaking", category="water-sports")
    make_experience(db, title="Ridge Trek", category="hiking")
    hidden = make_experience(db, title="Closed Cave Tour", is_active=False)
    make_slot(db, kayak, day, time_label="06:00 am")
    make_slot(db, kayak, day, time_label="09:00 am", max_capacity=2, current_bookings=2)

    titles = [e["title"] for e in client.get("/api/experiences").json()]
    assert titles == ["Ridge Trek", "Sunrise Kayaking"]
    assert [e["title"] for e in client.get("/api/experiences", params={"category": "hiking"}).json()] == ["Ridge Trek"]
    assert client.get("/api/experiences/categories").json() == ["hiking", "water-sports"]

    detail = client.get(f"/api/experiences/{kayak.id}").json()
    assert detail["maxGroupSize"] == 8
    assert detail["availableSlots"] == [
        {
            "date": day.isoformat(),
            "times": [
                {"time": "06:00 am", "maxCapacity": 8, "currentBookings": 0, "available": True, "remainingCapacity": 8}
            ],
        }
    ]

    assert client.get(f"/api/experiences/{hidden.id}").json()["error"]["code"] == "EXPERIENCE_NOT_AVAILABLE"
    assert client.get("/api/experiences/nope").status_code == 404


def test_time_label_case_is_normalised(client, db, experience, day):
    make_slot(db, experience, day)

    r = client.post("/api/bookings", json=booking_body(experience.id, day, time_label=" 10:00 AM"))

    assert r.status_code == 201, r.text
    assert r.json()["time"] == "10:00 am"
    assert _slot_state(client, experience.id, day)["currentBookings"] == 2
