"""End-to-end API tests for the booking, payment and invoice flow."""

from datetime import date, timedelta
from uuid import uuid4

import pytest
import pytest_asyncio

from travel_booking.core.config import settings

PNG_PROOF = b"\x89PNG\r\n\x1a\n" + b"\x00" * 256


@pytest_asyncio.fixture
async def catalog(test_client, admin_profile, auth_headers):
    """Package with one departure created through the admin API."""
    admin = auth_headers(admin_profile.id)

    response = await test_client.post(
        "/v1/admin/packages/create",
        json={
            "title": "Umroh Plus Turki 12 Hari",
            "slug": "umroh-plus-turki",
            "duration_days": 12,
            "minimum_dp": 5_000_000,
            "commissions": {"agen": 500_000},
        },
        headers=admin,
    )
    assert response.status_code == 201
    package = response.json()

    response = await test_client.post(
        "/v1/admin/departures/create",
        json={
            "package_id": package["id"],
            "departure_date": (date.today() + timedelta(days=90)).isoformat(),
            "quota": 20,
            "prices": [
                {"room_type": "quad", "price": 20_000_000},
                {"room_type": "double", "price": 26_000_000},
            ],
        },
        headers=admin,
    )
    assert response.status_code == 201
    return {"package": package, "departure": response.json()}


def _four_pilgrims():
    return [
        {"name": "Ahmad Fauzi", "gender": "male"},
        {"name": "Siti Aminah", "gender": "female"},
        {"name": "Budi Santoso", "gender": "male"},
        {"name": "Dewi Lestari", "gender": "female"},
    ]


async def _submit_quad(client, departure_id, headers):
    response = await client.post(
        "/v1/booking/submit",
        json={
            "departure_id": departure_id,
            "rooms": [{"room_type": "quad", "quantity": 1}],
            "pilgrims": _four_pilgrims(),
        },
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["booking"]


@pytest.mark.asyncio
async def test_catalog_lists_lowest_price(test_client, catalog):
    response = await test_client.post("/v1/catalog/packages", json={})
    assert response.status_code == 200
    assert [(p["slug"], p["lowest_price"]) for p in response.json()["items"]] == [("umroh-plus-turki", 20_000_000)]

    response = await test_client.post("/v1/catalog/package", json={"slug": "umroh-plus-turki"})
    assert response.status_code == 200
    detail = response.json()
    assert detail["departures"][0]["remaining_quota"] == 20
    assert detail["dp_deadline_days"] == 30


@pytest.mark.asyncio
async def test_book_pay_verify_and_print(test_client, catalog, customer, admin_profile, auth_headers):
    """One quad at 20,000,000 per pilgrim, paid in full and approved."""
    departure_id = catalog["departure"]["id"]
    headers = auth_headers(customer.id)
    admin = auth_headers(admin_profile.id)

    # Quote
    response = await test_client.post(
        "/v1/booking/quote",
        json={"departure_id": departure_id, "rooms": [{"room_type": "quad", "quantity": 1}]},
        headers=headers,
    )
    assert response.status_code == 200
    quote = response.json()
    assert quote["total_occupants"] == 4
    assert quote["total_price"] == 80_000_000

    # Submit
    response = await test_client.post(
        "/v1/booking/submit",
        json={
            "departure_id": departure_id,
            "rooms": [{"room_type": "quad", "quantity": 1}],
            "pilgrims": _four_pilgrims(),
        },
        headers=headers,
    )
    assert response.status_code == 201
    body = response.json()
    assert body["next_step"] == "payment"
    booking = body["booking"]
    assert booking["total_price"] == 80_000_000
    assert booking["status"] == "draft"
    assert len(booking["pilgrims"]) == 4

    # Payment page
    response = await test_client.post("/v1/payment/overview", json={"booking_id": booking["id"]}, headers=headers)
    assert response.status_code == 200
    overview = response.json()
    assert overview["summary"]["remaining"] == 80_000_000
    assert [o["kind"] for o in overview["options"]] == ["deposit", "full"]

    # Pay in full
    response = await test_client.post(
        "/v1/payment/submit",
        data={"booking_id": booking["id"], "option": "full"},
        files={"proof": ("bukti-transfer.png", PNG_PROOF, "image/png")},
        headers=headers,
    )
    assert response.status_code == 201
    payment = response.json()
    assert payment["status"] == "pending"
    assert payment["payment_type"] == "full"
    assert payment["amount"] == 80_000_000

    # Admin sees and approves it
    response = await test_client.post("/v1/admin/payments/list", json={"status": "pending"}, headers=admin)
    assert response.status_code == 200
    assert [(p["id"], p["booking_code"]) for p in response.json()["items"]] == [
        (payment["id"], booking["booking_code"])
    ]

    response = await test_client.post(
        "/v1/admin/payments/verify", json={"payment_id": payment["id"], "approve": True}, headers=admin
    )
    assert response.status_code == 200
    assert response.json()["status"] == "paid"

    # Settled
    response = await test_client.post("/v1/payment/overview", json={"booking_id": booking["id"]}, headers=headers)
    overview = response.json()
    assert overview["booking_status"] == "paid"
    assert overview["summary"]["remaining"] == 0
    assert overview["options"] == []

    # Invoice
    response = await test_client.post("/v1/invoice/render", json={"booking_id": booking["id"]}, headers=headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert booking["booking_code"] in response.text
    assert "Lunas" in response.text
    assert "Sisa Pembayaran" not in response.text

    # Customer was notified
    response = await test_client.post("/v1/notification/unread-count", json={}, headers=headers)
    assert response.json() == {"unread": 1}

    # Dashboard
    response = await test_client.post("/v1/admin/dashboard", json={}, headers=admin)
    assert response.status_code == 200
    stats = response.json()
    assert stats["total_bookings"] == 1
    assert stats["paid_revenue"] == 80_000_000


@pytest.mark.asyncio
async def test_quota_is_enforced(test_client, catalog, customer, auth_headers):
    headers = auth_headers(customer.id)
    departure_id = catalog["departure"]["id"]

    for _ in range(5):
        await _submit_quad(test_client, departure_id, headers)

    response = await test_client.post(
        "/v1/booking/submit",
        json={
            "departure_id": departure_id,
            "rooms": [{"room_type": "quad", "quantity": 1}],
            "pilgrims": _four_pilgrims(),
        },
        headers=headers,
    )
    assert response.status_code == 409
    assert response.json()["code"] == "QUOTA_EXCEEDED"

    response = await test_client.post("/v1/booking/list", json={"limit": 2}, headers=headers)
    listing = response.json()
    assert len(listing["items"]) == 2
    assert listing["next_cursor"] == "2"


@pytest.mark.asyncio
async def test_oversized_proof_is_rejected_after_limit(test_client, catalog, customer, auth_headers, monkeypatch):
    """Upload reading stops one byte past the configured limit."""
    monkeypatch.setattr(settings, "proof_max_bytes", 1024)
    headers = auth_headers(customer.id)
    booking = await _submit_quad(test_client, catalog["departure"]["id"], headers)

    response = await test_client.post(
        "/v1/payment/submit",
        data={"booking_id": booking["id"], "option": "full"},
        files={"proof": ("bukti-transfer.png", PNG_PROOF + b"\x00" * 8192, "image/png")},
        headers=headers,
    )

    assert response.status_code == 400
    problem = response.json()
    assert problem["code"] == "FILE_TOO_LARGE"
    assert problem["errors"] == {"size": 1025, "max_bytes": 1024}

    response = await test_client.post("/v1/payment/overview", json={"booking_id": booking["id"]}, headers=headers)
    assert response.json()["payments"] == []


@pytest.mark.asyncio
async def test_unknown_room_type_is_a_bad_request(test_client, catalog, customer, auth_headers):
    response = await test_client.post(
        "/v1/booking/quote",
        json={"departure_id": catalog["departure"]["id"], "rooms": [{"room_type": "suite", "quantity": 1}]},
        headers=auth_headers(customer.id),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "UNKNOWN_ROOM_TYPE"


@pytest.mark.asyncio
async def test_invoice_of_another_user_is_forbidden(test_client, catalog, customer, make_profile, auth_headers):
    booking = await _submit_quad(test_client, catalog["departure"]["id"], auth_headers(customer.id))
    stranger = await make_profile(name="Orang Lain")

    response = await test_client.post(
        "/v1/invoice/render", json={"booking_id": booking["id"]}, headers=auth_headers(stranger.id)
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_requests_without_token_are_rejected(test_client):
    response = await test_client.post("/v1/booking/list", json={})

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"

    response = await test_client.post("/v1/booking/list", json={}, headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_admin_routes_require_admin_role(test_client, customer, auth_headers):
    response = await test_client.post("/v1/admin/dashboard", json={}, headers=auth_headers(customer.id))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_invalid_body_is_a_validation_problem(test_client, customer, auth_headers):
    response = await test_client.post(
        "/v1/booking/quote",
        json={"departure_id": "not-a-uuid", "rooms": []},
        headers=auth_headers(customer.id),
    )

    assert response.status_code == 422
    paths = {violation["path"] for violation in response.json()["violations"]}
    assert "body.departure_id" in paths
    assert "body.rooms" in paths


@pytest.mark.asyncio
async def test_new_user_gets_profile_on_first_request(test_client, auth_headers):
    user_id = uuid4()

    response = await test_client.post(
        "/v1/profile/me", json={}, headers=auth_headers(user_id, email="baru@example.com", name="Jemaah Baru")
    )

    assert response.status_code == 200
    body = response.json()
    assert body["profile"]["id"] == str(user_id)
    assert body["profile"]["email"] == "baru@example.com"
    assert body["session"]["is_admin"] is False


@pytest.mark.asyncio
async def test_profile_update_is_visible_in_session(test_client, customer, auth_headers):
    headers = auth_headers(customer.id)
    await test_client.post("/v1/profile/me", json={}, headers=headers)

    response = await test_client.post("/v1/profile/update", json={"name": "Ahmad F."}, headers=headers)
    assert response.status_code == 200
    assert response.json()["name"] == "Ahmad F."

    response = await test_client.post("/v1/profile/me", json={}, headers=headers)
    assert response.json()["session"]["name"] == "Ahmad F."


@pytest.mark.asyncio
async def test_granted_role_applies_without_new_login(test_client, customer, admin_profile, auth_headers):
    headers = auth_headers(customer.id)
    assert (await test_client.post("/v1/admin/dashboard", json={}, headers=headers)).status_code == 403

    response = await test_client.post(
        "/v1/admin/users/set-role",
        json={"user_id": str(customer.id), "role": "admin"},
        headers=auth_headers(admin_profile.id),
    )
    assert response.status_code == 200
    assert response.json()["roles"] == ["admin"]

    assert (await test_client.post("/v1/admin/dashboard", json={}, headers=headers)).status_code == 200


@pytest.mark.asyncio
async def test_admin_reminder_run_and_cache_flush(test_client, admin_profile, auth_headers):
    admin = auth_headers(admin_profile.id)

    response = await test_client.post("/v1/admin/reminders/run", json={}, headers=admin)
    assert response.status_code == 200
    assert response.json() == {"bookings_checked": 0, "notifications_created": 0}

    response = await test_client.post("/v1/admin/cache/flush", json={}, headers=admin)
    assert response.status_code == 200
    assert response.json() == {"flushed": 0}
