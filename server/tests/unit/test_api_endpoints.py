"""Integration tests for API endpoints."""

from datetime import timedelta

import pytest


def _booking(room_id, check_in, check_out, guests_count=2, **extra):
    return {
        "room_id": room_id,
        "check_in_date": check_in.isoformat(),
        "check_out_date": check_out.isoformat(),
        "guests_count": guests_count,
        **extra,
    }


@pytest.mark.asyncio
async def test_availability_endpoint(test_client, sample_catalog, future_stay):
    """Test the availability search endpoint."""
    check_in, check_out = future_stay

    response = await test_client.get(
        "/v1/reservation/availability",
        params={"check_in": check_in.isoformat(), "check_out": check_out.isoformat()},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["nights"] == 3
    assert [room["room_number"] for room in data["rooms"]] == ["201", "202", "101"]
    deluxe = data["rooms"][-1]
    assert deluxe["nightly_rate"] == {"amount": 15000, "currency": "USD"}
    assert deluxe["total_amount"] == {"amount": 45000, "currency": "USD"}


@pytest.mark.asyncio
async def test_availability_filtered_by_room_type(test_client, sample_catalog, future_stay):
    check_in, check_out = future_stay

    response = await test_client.get(
        "/v1/reservation/availability",
        params={
            "check_in": check_in.isoformat(),
            "check_out": check_out.isoformat(),
            "room_type_id": sample_catalog["deluxe_id"],
        },
    )

    assert response.status_code == 200
    assert [room["room_id"] for room in response.json()["rooms"]] == [sample_catalog["room_101"]]


@pytest.mark.asyncio
async def test_availability_requires_dates(test_client, sample_catalog):
    response = await test_client.get("/v1/reservation/availability")

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert response.headers["content-type"].startswith("application/problem+json")


@pytest.mark.asyncio
async def test_availability_rejects_malformed_date(test_client, sample_catalog):
    response = await test_client.get(
        "/v1/reservation/availability", params={"check_in": "2024-13-45", "check_out": "2024-07-01"}
    )

    assert response.status_code == 422
    data = response.json()
    assert data["status"] == 422
    assert "violations" in data
    assert any(v["path"].endswith("check_in") for v in data["violations"])


@pytest.mark.asyncio
async def test_create_reservation_endpoint(test_client, sample_catalog, future_stay, guest_headers):
    """Client-sent amounts are ignored; the total comes from the catalog."""
    check_in, check_out = future_stay

    response = await test_client.post(
        "/v1/reservation",
        json=_booking(sample_catalog["room_101"], check_in, check_out, total_amount=1),
        headers=guest_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["nights"] == 3
    assert data["total_amount"] == {"amount": 45000, "currency": "USD"}
    assert data["status"] == "pending"
    assert isinstance(data["booking_id"], int)
    assert data["hold_expires_at"] is not None


@pytest.mark.asyncio
async def test_create_reservation_missing_auth(test_client, sample_catalog, future_stay):
    """Test reservation creation without authentication."""
    check_in, check_out = future_stay

    response = await test_client.post("/v1/reservation", json=_booking(sample_catalog["room_101"], check_in, check_out))

    assert response.status_code == 401
    data = response.json()
    assert data["status"] == 401
    assert data["code"] == "AUTH_REQUIRED"
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_create_reservation_invalid_body(test_client, sample_catalog, guest_headers):
    response = await test_client.post(
        "/v1/reservation",
        json={"room_id": "abc", "check_in_date": "soon"},
        headers=guest_headers,
    )

    assert response.status_code == 422
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    paths = {v["path"] for v in data["violations"]}
    assert "body.room_id" in paths
    assert "body.check_out_date" in paths


@pytest.mark.asyncio
async def test_overlapping_reservation_conflict(
    test_client, sample_catalog, future_stay, guest_headers, other_guest_headers
):
    check_in, check_out = future_stay
    room_id = sample_catalog["room_101"]

    first = await test_client.post("/v1/reservation", json=_booking(room_id, check_in, check_out), headers=guest_headers)
    second = await test_client.post(
        "/v1/reservation",
        json=_booking(room_id, check_in + timedelta(days=1), check_out + timedelta(days=1)),
        headers=other_guest_headers,
    )

    assert first.status_code == 201
    assert second.status_code == 409
    data = second.json()
    assert data["code"] == "ROOM_UNAVAILABLE"
    assert data["retryable"] is False
    assert data["conflicting_resource"]["room_id"] == room_id


@pytest.mark.asyncio
async def test_capacity_and_date_errors(test_client, sample_catalog, future_stay, guest_headers):
    check_in, check_out = future_stay
    room_id = sample_catalog["room_101"]

    too_many = await test_client.post(
        "/v1/reservation", json=_booking(room_id, check_in, check_out, guests_count=3), headers=guest_headers
    )
    inverted = await test_client.post(
        "/v1/reservation", json=_booking(room_id, check_out, check_in), headers=guest_headers
    )
    past = await test_client.post(
        "/v1/reservation",
        json=_booking(room_id, check_in - timedelta(days=400), check_in - timedelta(days=398)),
        headers=guest_headers,
    )

    assert (too_many.status_code, too_many.json()["code"]) == (400, "CAPACITY_EXCEEDED")
    assert (inverted.status_code, inverted.json()["code"]) == (400, "INVALID_RANGE")
    assert (past.status_code, past.json()["code"]) == (400, "PAST_DATE")


@pytest.mark.asyncio
async def test_idempotent_reservation_replay(test_client, sample_catalog, future_stay, guest_headers):
    check_in, check_out = future_stay
    body = _booking(sample_catalog["room_101"], check_in, check_out)
    headers = {**guest_headers, "Idempotency-Key": "booking-001"}

    first = await test_client.post("/v1/reservation", json=body, headers=headers)
    replay = await test_client.post("/v1/reservation", json=body, headers=headers)

    assert first.status_code == 201
    assert replay.status_code == 201
    assert replay.json() == first.json()

    mine = await test_client.get("/v1/reservation/mine", headers=guest_headers)
    assert len(mine.json()["reservations"]) == 1


@pytest.mark.asyncio
async def test_idempotency_key_reused_with_different_body(test_client, sample_catalog, future_stay, guest_headers):
    check_in, check_out = future_stay
    headers = {**guest_headers, "Idempotency-Key": "booking-002"}

    await test_client.post("/v1/reservation", json=_booking(sample_catalog["room_101"], check_in, check_out), headers=headers)
    response = await test_client.post(
        "/v1/reservation", json=_booking(sample_catalog["room_201"], check_in, check_out), headers=headers
    )

    assert response.status_code == 422
    assert response.json()["code"] == "IDEMPOTENCY_KEY_MISMATCH"


@pytest.mark.asyncio
async def test_idempotent_failure_replayed(test_client, sample_catalog, future_stay, guest_headers):
    check_in, check_out = future_stay
    body = _booking(sample_catalog["room_101"], check_in, check_out, guests_count=5)
    headers = {**guest_headers, "Idempotency-Key": "booking-003"}

    first = await test_client.post("/v1/reservation", json=body, headers=headers)
    replay = await test_client.post("/v1/reservation", json=body, headers=headers)

    assert first.status_code == replay.status_code == 400
    assert replay.json() == first.json()
    assert replay.headers["content-type"].startswith("application/problem+json")


@pytest.mark.asyncio
async def test_idempotency_keys_scoped_per_user(
    test_client, sample_catalog, future_stay, guest_headers, other_guest_headers
):
    check_in, check_out = future_stay

    mine = await test_client.post(
        "/v1/reservation",
        json=_booking(sample_catalog["room_201"], check_in, check_out),
        headers={**guest_headers, "Idempotency-Key": "shared"},
    )
    theirs = await test_client.post(
        "/v1/reservation",
        json=_booking(sample_catalog["room_202"], check_in, check_out),
        headers={**other_guest_headers, "Idempotency-Key": "shared"},
    )

    assert mine.status_code == theirs.status_code == 201
    assert mine.json()["booking_id"] != theirs.json()["booking_id"]


@pytest.mark.asyncio
async def test_reservation_status_endpoint(test_client, sample_catalog, future_stay, guest_headers, admin_headers):
    check_in, check_out = future_stay
    room_id = sample_catalog["room_101"]
    created = await test_client.post("/v1/reservation", json=_booking(room_id, check_in, check_out), headers=guest_headers)
    booking_id = created.json()["booking_id"]

    forbidden = await test_client.post(
        "/v1/reservation/status", json={"booking_id": booking_id, "status": "confirmed"}, headers=guest_headers
    )
    confirmed = await test_client.post(
        "/v1/reservation/status", json={"booking_id": booking_id, "status": "confirmed"}, headers=admin_headers
    )
    checked_in = await test_client.post(
        "/v1/reservation/status", json={"booking_id": booking_id, "status": "checked_in"}, headers=admin_headers
    )
    invalid = await test_client.post(
        "/v1/reservation/status", json={"booking_id": booking_id, "status": "pending"}, headers=admin_headers
    )

    assert forbidden.status_code == 403
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "confirmed"
    assert confirmed.json()["hold_expires_at"] is None
    assert checked_in.json()["status"] == "checked_in"
    assert (invalid.status_code, invalid.json()["code"]) == (409, "INVALID_TRANSITION")

    room = await test_client.get(f"/v1/rooms/{room_id}")
    assert room.json()["status"] == "occupied"


@pytest.mark.asyncio
async def test_get_reservation_endpoint(
    test_client, sample_catalog, future_stay, guest_headers, other_guest_headers, admin_headers
):
    check_in, check_out = future_stay
    created = await test_client.post(
        "/v1/reservation",
        json=_booking(sample_catalog["room_101"], check_in, check_out, special_requests="Late arrival"),
        headers=guest_headers,
    )
    booking_id = created.json()["booking_id"]

    own = await test_client.post("/v1/reservation/get", json={"booking_id": booking_id}, headers=guest_headers)
    foreign = await test_client.post("/v1/reservation/get", json={"booking_id": booking_id}, headers=other_guest_headers)
    everyone = await test_client.get("/v1/reservation/list", headers=admin_headers)
    not_admin = await test_client.get("/v1/reservation/list", headers=guest_headers)

    assert own.status_code == 200
    assert own.json()["special_requests"] == "Late arrival"
    assert own.json()["user_id"] == "guest-1"
    assert foreign.status_code == 404
    assert [r["id"] for r in everyone.json()["reservations"]] == [booking_id]
    assert not_admin.status_code == 403


@pytest.mark.asyncio
async def test_room_catalog_endpoints(test_client, sample_catalog, admin_headers, guest_headers):
    types = await test_client.get("/v1/rooms/types")
    assert types.status_code == 200
    summary = {t["name"]: (t["total_rooms"], t["available_rooms"]) for t in types.json()["room_types"]}
    assert summary == {"Standard": (2, 2), "Deluxe": (1, 1)}

    suite = await test_client.post(
        "/v1/rooms/types",
        json={"name": "Suite", "base_price_amount": 30000, "max_occupancy": 4},
        headers=admin_headers,
    )
    assert suite.status_code == 201
    suite_id = suite.json()["id"]

    duplicate = await test_client.post(
        "/v1/rooms/types",
        json={"name": "Suite", "base_price_amount": 1, "max_occupancy": 1},
        headers=admin_headers,
    )
    assert duplicate.status_code == 409

    denied = await test_client.post(
        "/v1/rooms", json={"room_number": "301", "room_type_id": suite_id}, headers=guest_headers
    )
    assert denied.status_code == 403

    room = await test_client.post(
        "/v1/rooms", json={"room_number": "301", "room_type_id": suite_id}, headers=admin_headers
    )
    assert room.status_code == 201
    room_id = room.json()["id"]

    maintenance = await test_client.post(
        "/v1/rooms/status", json={"room_id": room_id, "status": "maintenance"}, headers=admin_headers
    )
    assert maintenance.json()["status"] == "maintenance"

    detail = await test_client.get(f"/v1/rooms/{room_id}")
    assert detail.json()["room_type"]["base_price"] == {"amount": 30000, "currency": "USD"}

    missing = await test_client.get("/v1/rooms/9999")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_restaurant_endpoints(test_client, sample_menu, guest_headers, admin_headers):
    menu = await test_client.get("/v1/restaurant/menu")
    assert [item["name"] for item in menu.json()["items"]] == ["Chickpea Curry", "Grilled Salmon"]

    categories = await test_client.get("/v1/restaurant/categories")
    assert [c["name"] for c in categories.json()["categories"]] == ["Mains"]

    order = await test_client.post(
        "/v1/restaurant/order",
        json={
            "items": [{"menu_item_id": sample_menu["salmon_id"], "quantity": 2}],
            "room_number": "101",
        },
        headers={**guest_headers, "Idempotency-Key": "order-1"},
    )
    assert order.status_code == 201
    data = order.json()
    assert data["total_amount"] == {"amount": 6400, "currency": "USD"}
    assert data["estimated_minutes"] == 30
    order_id = data["order_id"]

    unavailable = await test_client.post(
        "/v1/restaurant/order",
        json={"items": [{"menu_item_id": sample_menu["soup_id"], "quantity": 1}], "delivery_type": "pickup"},
        headers=guest_headers,
    )
    assert (unavailable.status_code, unavailable.json()["code"]) == (409, "ITEM_UNAVAILABLE")

    orders = await test_client.get("/v1/restaurant/orders", headers=guest_headers)
    assert [o["id"] for o in orders.json()["orders"]] == [order_id]

    detail = await test_client.get(f"/v1/restaurant/orders/{order_id}", headers=guest_headers)
    assert detail.json()["items"][0]["name"] == "Grilled Salmon"
    assert detail.json()["items"][0]["subtotal"]["amount"] == 6400

    preparing = await test_client.post(
        "/v1/restaurant/order/status", json={"order_id": order_id, "status": "preparing"}, headers=admin_headers
    )
    assert preparing.json()["status"] == "preparing"


@pytest.mark.asyncio
async def test_feedback_endpoints(test_client, guest_headers, admin_headers):
    rating = await test_client.post(
        "/v1/feedback/rating", json={"rating_type": "restaurant", "rating": 4}, headers=guest_headers
    )
    assert rating.status_code == 201

    out_of_range = await test_client.post("/v1/feedback/rating", json={"rating": 9}, headers=guest_headers)
    assert out_of_range.status_code == 422

    ratings = await test_client.get("/v1/feedback/ratings")
    assert ratings.json()["summary"] == [{"rating_type": "restaurant", "average": 4.0, "count": 1}]

    anonymous = await test_client.post("/v1/feedback", json={"message": "Lovely stay", "name": "Visitor"})
    assert anonymous.status_code == 201
    feedback_id = anonymous.json()["id"]
    assert anonymous.json()["user_id"] is None

    empty = await test_client.post("/v1/feedback", json={"message": ""})
    assert empty.status_code == 400

    listed = await test_client.get("/v1/feedback", headers=admin_headers)
    assert [f["id"] for f in listed.json()["feedback"]] == [feedback_id]

    answered = await test_client.post(
        "/v1/feedback/respond", json={"feedback_id": feedback_id, "response": "Thank you!"}, headers=admin_headers
    )
    assert answered.json()["status"] == "resolved"
    assert answered.json()["admin_response"] == "Thank you!"


@pytest.mark.asyncio
async def test_auth_check_and_logout(test_client, guest_headers):
    anonymous = await test_client.get("/v1/auth/check")
    assert anonymous.json()["authenticated"] is False

    identified = await test_client.get("/v1/auth/check", headers=guest_headers)
    assert identified.json()["user_id"] == "guest-1"
    assert identified.json()["is_admin"] is False

    logout = await test_client.post("/v1/auth/logout", headers=guest_headers)
    assert logout.status_code == 200

    revoked = await test_client.get("/v1/reservation/mine", headers=guest_headers)
    assert revoked.status_code == 401
    assert "revoked" in revoked.json()["detail"]


@pytest.mark.asyncio
async def test_malformed_token_rejected(test_client):
    response = await test_client.get("/v1/reservation/mine", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_metrics_endpoint(test_client):
    """Test the Prometheus metrics endpoint."""
    response = await test_client.get("/metrics")

    assert response.status_code == 200
    assert "reservations_created_total" in response.text
