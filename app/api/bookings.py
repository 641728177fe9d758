"""Booking API: create, read, cancel, stage updates, payment, reschedule."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.responses import ok
from app.db import crud
from app.db.engine import get_db
from app.dependencies import get_actor_id
from app.errors import NotFound, Unauthorized
from app.schemas.booking import (
    BookingCreate, BookingCancel, BookingRead, StageAdvance, StagePhotoRead,
    PaymentCreate, PaymentReadinessRead,
)
from app.schemas.envelope import Envelope
from app.schemas.event import DomainEvent
from app.schemas.reschedule import RescheduleCreate, RescheduleResolve, RescheduleRead
from app.services import bookings as booking_service
from app.services.events import to_domain_event
from app.services.extra_parts import can_proceed_to_payment
from app.services.payments import complete_payment
from app.services.progression import advance_stage
from app.services.stage_machine import parse_stage

router = APIRouter(prefix="/api/bookings", tags=["bookings"])


async def _visible_booking(db: AsyncSession, booking_id: str, actor_id: str):
    """Booking readable by its customer and its assigned contractor."""
    booking = await crud.get_booking(db, booking_id)
    if booking is None:
        raise NotFound("Booking not found", booking_id=booking_id)
    if actor_id not in (booking.customer_id, booking.contractor_id):
        raise Unauthorized("You are not a party to this booking")
    return booking


@router.post("", response_model=Envelope[BookingRead], status_code=201)
async def create_booking(
    body: BookingCreate,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_service.create_booking(db, actor_id, body)
    return ok(BookingRead, booking)


@router.get("", response_model=Envelope[list[BookingRead]])
async def list_my_bookings(
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    return ok(BookingRead, await crud.list_customer_bookings(db, actor_id))


@router.get("/available", response_model=Envelope[list[BookingRead]])
async def list_available_bookings(
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    """Open bookings the calling contractor could bid on."""
    contractor = await crud.get_contractor(db, actor_id)
    if contractor is None:
        raise NotFound("Contractor profile not found", contractor_id=actor_id)
    return ok(BookingRead, await crud.list_available_bookings(db, contractor))


@router.get("/jobs", response_model=Envelope[list[BookingRead]])
async def list_my_jobs(
    stage: list[str] | None = Query(default=None),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    stages = [parse_stage(s).value for s in stage] if stage else None
    return ok(BookingRead, await crud.list_contractor_jobs(db, actor_id, stages))


@router.post("/reschedule-requests/{request_id}/resolve", response_model=Envelope[RescheduleRead])
async def resolve_reschedule(
    request_id: str,
    body: RescheduleResolve,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    request = await booking_service.resolve_reschedule(db, request_id, actor_id, body.action)
    return ok(RescheduleRead, request)


@router.get("/{booking_id}", response_model=Envelope[BookingRead])
async def get_booking(
    booking_id: str,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    booking = await crud.get_booking(db, booking_id)
    if booking is None:
        raise NotFound("Booking not found", booking_id=booking_id)
    # Open bookings are visible to contractors browsing for work.
    if booking.contractor_id is not None and actor_id not in (booking.customer_id, booking.contractor_id):
        raise Unauthorized("You are not a party to this booking")
    return ok(BookingRead, booking)


@router.post("/{booking_id}/cancel", response_model=Envelope[BookingRead])
async def cancel_booking(
    booking_id: str,
    body: BookingCancel,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_service.cancel_booking(db, booking_id, actor_id, body.reason)
    return ok(BookingRead, booking)


@router.post("/{booking_id}/stage", response_model=Envelope[BookingRead])
async def update_stage(
    booking_id: str,
    body: StageAdvance,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    booking = await advance_stage(db, booking_id, actor_id, body.stage, body.photos)
    return ok(BookingRead, booking)


@router.get("/{booking_id}/photos", response_model=Envelope[list[StagePhotoRead]])
async def list_stage_photos(
    booking_id: str,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    await _visible_booking(db, booking_id, actor_id)
    return ok(StagePhotoRead, await crud.list_stage_photos(db, booking_id))


@router.get("/{booking_id}/events", response_model=Envelope[list[DomainEvent]])
async def list_booking_events(
    booking_id: str,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    await _visible_booking(db, booking_id, actor_id)
    rows = await crud.list_events_for_booking(db, booking_id)
    return {"data": [to_domain_event(r) for r in rows], "error": None}


@router.get("/{booking_id}/payment", response_model=Envelope[PaymentReadinessRead])
async def payment_readiness(
    booking_id: str,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    await _visible_booking(db, booking_id, actor_id)
    return ok(PaymentReadinessRead, await can_proceed_to_payment(db, booking_id))


@router.post("/{booking_id}/payment", response_model=Envelope[BookingRead])
async def pay_booking(
    booking_id: str,
    body: PaymentCreate,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    booking = await complete_payment(db, booking_id, actor_id, body.method)
    return ok(BookingRead, booking)


@router.post("/{booking_id}/reschedule", response_model=Envelope[RescheduleRead], status_code=201)
async def request_reschedule(
    booking_id: str,
    body: RescheduleCreate,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    request = await booking_service.request_reschedule(
        db, booking_id, actor_id, body.new_date, body.new_time, body.reason,
    )
    return ok(RescheduleRead, request)


@router.get("/{booking_id}/reschedule", response_model=Envelope[list[RescheduleRead]])
async def list_reschedule_requests(
    booking_id: str,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    await _visible_booking(db, booking_id, actor_id)
    return ok(RescheduleRead, await crud.list_reschedule_requests(db, booking_id))
