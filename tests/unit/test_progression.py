import asyncio

import pytest

from app.db import crud
from app.errors import BookingNotActive, InvalidStageTransition, Unauthorized, ValidationFailed
from app.services.bookings import cancel_booking
from app.services.progression import advance_stage
from tests.factories import CUSTOMER, make_assigned_booking, make_booking

FORWARD = ["arriving", "work_started", "in_progress", "work_completed", "awaiting_payment"]


async def test_full_forward_walk(db):
    booking = await make_assigned_booking(db)
    for stage in FORWARD:
        booking = await advance_stage(db, booking.id, "con-1", stage)
        assert booking.stage == stage
    assert booking.progress == 86
    assert booking.status == "awaiting_payment"


async def test_skipping_a_stage_is_rejected(db):
    booking_id = (await make_assigned_booking(db)).id

    with pytest.raises(InvalidStageTransition) as exc:
        await advance_stage(db, booking_id, "con-1", "in_progress")

    assert exc.value.details["expected_stage"] == "arriving"
    assert (await crud.get_booking(db, booking_id)).stage == "assigned"


async def test_moving_backward_is_rejected(db):
    booking = await make_assigned_booking(db)
    await advance_stage(db, booking.id, "con-1", "arriving")
    await advance_stage(db, booking.id, "con-1", "work_started")

    with pytest.raises(InvalidStageTransition):
        await advance_stage(db, booking.id, "con-1", "arriving")


async def test_repeating_the_same_stage_is_rejected(db):
    booking = await make_assigned_booking(db)
    await advance_stage(db, booking.id, "con-1", "arriving")

    with pytest.raises(InvalidStageTransition):
        await advance_stage(db, booking.id, "con-1", "arriving")


async def test_paid_is_not_reachable_by_advancing(db):
    booking = await make_assigned_booking(db)
    for stage in FORWARD:
        await advance_stage(db, booking.id, "con-1", stage)

    with pytest.raises(InvalidStageTransition):
        await advance_stage(db, booking.id, "con-1", "paid")


async def test_legacy_stage_alias_is_accepted(db):
    booking = await make_assigned_booking(db)
    await advance_stage(db, booking.id, "con-1", "arriving")

    booking = await advance_stage(db, booking.id, "con-1", "job_started")

    assert booking.stage == "work_started"
    assert booking.status == "job_started"


async def test_only_assigned_contractor_can_advance(db):
    booking_id = (await make_assigned_booking(db)).id

    with pytest.raises(Unauthorized):
        await advance_stage(db, booking_id, "con-2", "arriving")
    with pytest.raises(Unauthorized):
        await advance_stage(db, booking_id, CUSTOMER, "arriving")


async def test_cancelled_booking_cannot_be_advanced(db):
    booking = await make_booking(db)
    await cancel_booking(db, booking.id, CUSTOMER)

    # No contractor was ever assigned, so nobody passes the contractor check.
    with pytest.raises(Unauthorized):
        await advance_stage(db, booking.id, "con-1", "arriving")


async def test_paid_booking_is_not_active(db):
    from app.services.payments import complete_payment

    booking = await make_assigned_booking(db)
    for stage in FORWARD:
        await advance_stage(db, booking.id, "con-1", stage)
    await complete_payment(db, booking.id, CUSTOMER, "card")

    with pytest.raises(BookingNotActive):
        await advance_stage(db, booking.id, "con-1", "awaiting_payment")


async def test_photos_are_attached_to_target_stage(db):
    booking = await make_assigned_booking(db)
    await advance_stage(db, booking.id, "con-1", "arriving")

    await advance_stage(
        db, booking.id, "con-1", "work_started",
        evidence={"before": ["https://cdn.example/a.jpg", "https://cdn.example/b.jpg"]},
    )

    photos = await crud.list_stage_photos(db, booking.id)
    assert sorted((p.stage, p.photo_type, p.url) for p in photos) == [
        ("work_started", "before", "https://cdn.example/a.jpg"),
        ("work_started", "before", "https://cdn.example/b.jpg"),
    ]


async def test_unknown_photo_type_rejected(db):
    booking = await make_assigned_booking(db)

    with pytest.raises(ValidationFailed):
        await advance_stage(db, booking.id, "con-1", "arriving", evidence={"selfie": ["x.jpg"]})
    assert (await crud.get_booking(db, booking.id)).stage == "assigned"


async def test_unknown_stage_rejected(db):
    booking = await make_assigned_booking(db)
    with pytest.raises(ValidationFailed):
        await advance_stage(db, booking.id, "con-1", "teleported")


async def test_stage_advance_emits_event(db):
    booking = await make_assigned_booking(db)
    await advance_stage(db, booking.id, "con-1", "arriving")

    events = await crud.list_events_for_booking(db, booking.id)
    last = events[-1]
    assert last.type == "stage_advanced"
    assert last.payload["from_stage"] == "assigned"
    assert last.payload["to_stage"] == "arriving"


async def test_duplicate_concurrent_advances_apply_once(file_session_factory):
    async with file_session_factory() as db:
        booking = await make_assigned_booking(db)

    async def attempt():
        async with file_session_factory() as session:
            try:
                return await advance_stage(session, booking.id, "con-1", "arriving")
            except InvalidStageTransition as e:
                return e

    results = await asyncio.gather(attempt(), attempt())

    assert sum(isinstance(r, InvalidStageTransition) for r in results) == 1
    async with file_session_factory() as db:
        assert (await crud.get_booking(db, booking.id)).stage == "arriving"
        events = [e for e in await crud.list_events_for_booking(db, booking.id) if e.type == "stage_advanced"]
        assert len(events) == 1
