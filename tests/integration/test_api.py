"""Integration tests for API endpoints."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.drafts import get_draft_store
from app.db.engine import build_engine, get_db, init_db
from app.main import app
from app.services.drafts import DraftStore

CUSTOMER = {"X-Actor-Id": "cust-1"}
CON1 = {"X-Actor-Id": "con-1"}
CON2 = {"X-Actor-Id": "con-2"}


@pytest_asyncio.fixture
async def client(tmp_path):
    """Test client backed by an in-memory database and a temp draft directory."""
    test_engine = build_engine("sqlite+aiosqlite:///:memory:")
    await init_db(test_engine)
    test_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with test_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_draft_store] = lambda: DraftStore(tmp_path / "drafts")

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    await test_engine.dispose()


async def _register(client, headers, service_type="aircon", contractor_type="saver"):
    r = await client.post(
        "/api/contractors",
        json={"service_type": service_type, "contractor_type": contractor_type, "full_name": "Test Co"},
        headers=headers,
    )
    assert r.status_code == 201, r.text
    return r.json()["data"]


async def _create_booking(client, **fields):
    body = {"service_type": "aircon", "asap": True, "estimated_price": 90, **fields}
    r = await client.post("/api/bookings", json=body, headers=CUSTOMER)
    assert r.status_code == 201, r.text
    return r.json()["data"]


async def _bid(client, booking_id, headers, amount=100, eta=30):
    return await client.post(
        f"/api/bookings/{booking_id}/bids",
        json={"amount": amount, "eta_minutes": eta},
        headers=headers,
    )


async def _advance(client, booking_id, stage, photos=None):
    return await client.post(
        f"/api/bookings/{booking_id}/stage",
        json={"stage": stage, "photos": photos or {}},
        headers=CON1,
    )


@pytest.mark.asyncio
async def test_health(client):
    r = await client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"data": {"status": "ok"}, "error": None}


@pytest.mark.asyncio
async def test_missing_actor_header_is_forbidden(client):
    r = await client.get("/api/bookings")
    assert r.status_code == 403
    assert r.json()["error"]["kind"] == "authorization"


@pytest.mark.asyncio
async def test_create_and_get_booking(client):
    booking = await _create_booking(client, description="Unit dripping")
    assert booking["stage"] == "finding_contractor"
    assert booking["status_label"] == "Finding a contractor"

    r = await client.get(f"/api/bookings/{booking['id']}", headers=CUSTOMER)
    assert r.status_code == 200
    assert r.json()["data"]["description"] == "Unit dripping"

    r = await client.get("/api/bookings", headers=CUSTOMER)
    assert [b["id"] for b in r.json()["data"]] == [booking["id"]]


@pytest.mark.asyncio
async def test_invalid_body_returns_validation_envelope(client):
    r = await client.post("/api/bookings", json={"asap": True}, headers=CUSTOMER)
    assert r.status_code == 400
    body = r.json()
    assert body["data"] is None
    assert body["error"]["code"] == "ValidationFailed"
    assert body["error"]["details"]["fields"]


@pytest.mark.asyncio
async def test_unknown_booking_is_404(client):
    r = await client.get("/api/bookings/nope", headers=CUSTOMER)
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "NotFound"


@pytest.mark.asyncio
async def test_bid_and_accept_flow(client):
    await _register(client, CON1)
    await _register(client, CON2)
    booking = await _create_booking(client)

    r = await client.get(f"/api/bookings/{booking['id']}/eligibility", headers=CON1)
    assert r.json()["data"]["can_bid"] is True

    r1 = await _bid(client, booking["id"], CON1, amount=100)
    r2 = await _bid(client, booking["id"], CON2, amount=120)
    assert r1.status_code == 201
    assert r1.json()["data"]["status"] == "pending"
    bid1, bid2 = r1.json()["data"], r2.json()["data"]

    r = await client.get(f"/api/bookings/{booking['id']}/bids", headers=CON2)
    assert [b["id"] for b in r.json()["data"]] == [bid2["id"]]

    r = await client.post(f"/api/bids/{bid1['id']}/accept", headers=CUSTOMER)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["contractor_id"] == "con-1"
    assert data["agreed_price"] == 100
    assert data["rejected_bid_ids"] == [bid2["id"]]

    r = await client.get(f"/api/bookings/{booking['id']}/bids", headers=CUSTOMER)
    statuses = {b["id"]: b["status"] for b in r.json()["data"]}
    assert statuses == {bid1["id"]: "accepted", bid2["id"]: "rejected"}

    r = await client.post(f"/api/bids/{bid2['id']}/accept", headers=CUSTOMER)
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "BookingAlreadyAssigned"


@pytest.mark.asyncio
async def test_duplicate_bid_is_conflict(client):
    await _register(client, CON1)
    booking = await _create_booking(client)
    await _bid(client, booking["id"], CON1)

    r = await _bid(client, booking["id"], CON1, amount=95)

    assert r.status_code == 409
    assert r.json()["error"]["code"] == "DuplicateBid"
    assert r.json()["error"]["kind"] == "eligibility"


@pytest.mark.asyncio
async def test_invalid_eta_is_400(client):
    await _register(client, CON1)
    booking = await _create_booking(client)

    r = await _bid(client, booking["id"], CON1, eta=5)

    assert r.status_code == 400
    assert r.json()["error"]["code"] == "InvalidEta"


@pytest.mark.asyncio
async def test_available_bookings_for_contractor(client):
    await _register(client, CON1)
    await _register(client, CON2, service_type="plumbing")
    booking = await _create_booking(client)

    r = await client.get("/api/bookings/available", headers=CON1)
    assert [b["id"] for b in r.json()["data"]] == [booking["id"]]
    r = await client.get("/api/bookings/available", headers=CON2)
    assert r.json()["data"] == []


@pytest.mark.asyncio
async def test_full_job_lifecycle_with_extra_parts(client):
    await _register(client, CON1)
    booking = await _create_booking(client)
    bid = (await _bid(client, booking["id"], CON1, amount=100)).json()["data"]
    await client.post(f"/api/bids/{bid['id']}/accept", headers=CUSTOMER)
    booking_id = booking["id"]

    r = await _advance(client, booking_id, "in_progress")
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "InvalidStageTransition"

    for stage in ["arriving", "work_started", "in_progress", "work_completed"]:
        photos = {"after": ["https://cdn.example/done.jpg"]} if stage == "work_completed" else None
        r = await _advance(client, booking_id, stage, photos)
        assert r.status_code == 200, r.text
    assert r.json()["data"]["status"] == "completed"

    r = await client.post(
        f"/api/bookings/{booking_id}/extra-parts",
        json={"parts": [{"name": "Drain pump", "quantity": 1, "unit_price": 45}]},
        headers=CON1,
    )
    assert r.status_code == 201
    part_id = r.json()["data"][0]["id"]

    r = await client.get(f"/api/bookings/{booking_id}/payment", headers=CUSTOMER)
    assert r.json()["data"] == {"can_proceed": False, "pending_count": 1}

    r = await client.post(f"/api/bookings/{booking_id}/payment", json={"method": "card"}, headers=CUSTOMER)
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "ExtraPartsPending"
    assert r.json()["error"]["details"]["pending_count"] == 1

    r = await client.post(f"/api/extra-parts/{part_id}/resolve", json={"action": "approve"}, headers=CUSTOMER)
    assert r.json()["data"]["status"] == "approved"

    r = await client.post(f"/api/bookings/{booking_id}/payment", json={"method": "card"}, headers=CUSTOMER)
    assert r.status_code == 200
    paid = r.json()["data"]
    assert paid["stage"] == "paid"
    assert paid["payment_status"] == "paid"
    assert paid["final_price"] == 145.0

    r = await client.get(f"/api/bookings/{booking_id}/photos", headers=CUSTOMER)
    assert [p["photo_type"] for p in r.json()["data"]] == ["after"]

    r = await client.get(f"/api/bookings/{booking_id}/events", headers=CUSTOMER)
    types = [e["type"] for e in r.json()["data"]]
    assert types[0] == "booking_created"
    assert types[-1] == "payment_completed"

    r = await client.get("/api/contractors/me", headers=CON1)
    assert r.json()["data"]["total_jobs_completed"] == 1


@pytest.mark.asyncio
async def test_outsider_cannot_read_assigned_booking(client):
    await _register(client, CON1)
    booking = await _create_booking(client)
    bid = (await _bid(client, booking["id"], CON1)).json()["data"]
    await client.post(f"/api/bids/{bid['id']}/accept", headers=CUSTOMER)

    r = await client.get(f"/api/bookings/{booking['id']}", headers=CON2)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_cancel_booking(client):
    booking = await _create_booking(client)
    r = await client.post(f"/api/bookings/{booking['id']}/cancel", json={"reason": "No longer needed"}, headers=CUSTOMER)
    assert r.status_code == 200
    assert r.json()["data"]["stage"] == "cancelled"

    r = await client.post(f"/api/bookings/{booking['id']}/cancel", json={}, headers=CUSTOMER)
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "BookingNotCancellable"


@pytest.mark.asyncio
async def test_reschedule_flow(client):
    await _register(client, CON1)
    booking = await _create_booking(client)
    bid = (await _bid(client, booking["id"], CON1)).json()["data"]
    await client.post(f"/api/bids/{bid['id']}/accept", headers=CUSTOMER)

    r = await client.post(
        f"/api/bookings/{booking['id']}/reschedule",
        json={"new_date": "2099-06-01", "new_time": "15:30", "reason": "Van in the workshop"},
        headers=CON1,
    )
    assert r.status_code == 201, r.text
    request_id = r.json()["data"]["id"]

    r = await client.post(
        f"/api/bookings/reschedule-requests/{request_id}/resolve",
        json={"action": "approve"},
        headers=CUSTOMER,
    )
    assert r.json()["data"]["status"] == "approved"

    r = await client.get(f"/api/bookings/{booking['id']}", headers=CUSTOMER)
    assert r.json()["data"]["scheduled_date"] == "2099-06-01"
    assert r.json()["data"]["scheduled_time"] == "15:30"


@pytest.mark.asyncio
async def test_contractor_availability_toggle(client):
    await _register(client, CON1)
    booking = await _create_booking(client)

    r = await client.patch("/api/contractors/me", json={"is_available": False}, headers=CON1)
    assert r.json()["data"]["is_available"] is False

    r = await _bid(client, booking["id"], CON1)
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "ContractorUnavailable"


@pytest.mark.asyncio
async def test_register_twice_conflicts(client):
    await _register(client, CON1)
    r = await client.post("/api/contractors", json={"service_type": "aircon"}, headers=CON1)
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "ContractorExists"


@pytest.mark.asyncio
async def test_drafts_round_trip(client):
    r = await client.put(
        "/api/drafts/bookings/aircon",
        json={"service_type": "aircon", "step": 1, "description": "Half typed"},
        headers=CUSTOMER,
    )
    assert r.status_code == 200

    r = await client.get("/api/drafts/bookings/aircon", headers=CUSTOMER)
    assert r.json()["data"]["description"] == "Half typed"

    r = await client.delete("/api/drafts/bookings/aircon", headers=CUSTOMER)
    assert r.json()["data"] is True
    r = await client.get("/api/drafts/bookings/aircon", headers=CUSTOMER)
    assert r.json()["data"] is None


@pytest.mark.asyncio
async def test_review_after_payment(client):
    await _register(client, CON1)
    booking_id = (await _create_booking(client))["id"]
    bid = (await _bid(client, booking_id, CON1, amount=120)).json()["data"]
    await client.post(f"/api/bids/{bid['id']}/accept", headers=CUSTOMER)

    r = await client.post(f"/api/bookings/{booking_id}/review", json={"rating": 5}, headers=CUSTOMER)
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "BookingNotReviewable"

    for stage in ["arriving", "work_started", "in_progress", "work_completed"]:
        await _advance(client, booking_id, stage)
    await client.post(f"/api/bookings/{booking_id}/payment", json={"method": "wallet"}, headers=CUSTOMER)

    r = await client.get(f"/api/bookings/{booking_id}/review/eligibility", headers=CUSTOMER)
    assert r.json()["data"]["can_review"] is True
    r = await client.get(f"/api/bookings/{booking_id}/review", headers=CUSTOMER)
    assert r.json() == {"data": None, "error": None}

    r = await client.post(
        f"/api/bookings/{booking_id}/review",
        json={"rating": 4, "quality_rating": 5, "review_text": "Tidy work"},
        headers=CUSTOMER,
    )
    assert r.status_code == 201, r.text
    review_id = r.json()["data"]["id"]

    r = await client.post(f"/api/bookings/{booking_id}/review", json={"rating": 1}, headers=CUSTOMER)
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "ReviewExists"

    r = await client.post(f"/api/reviews/{review_id}/response", json={"response": "Thank you"}, headers=CON1)
    assert r.json()["data"]["contractor_response"] == "Thank you"

    r = await client.get("/api/contractors/con-1/reviews", headers=CUSTOMER)
    assert [rv["id"] for rv in r.json()["data"]] == [review_id]
    r = await client.get("/api/contractors/con-1/rating-summary", headers=CUSTOMER)
    summary = r.json()["data"]
    assert summary["total_reviews"] == 1
    assert summary["average_rating"] == 4.0
    assert summary["distribution"]["4"] == 1
