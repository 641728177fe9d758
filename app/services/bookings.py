"""Booking creation, cancellation and rescheduling."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.db import crud
from app.db.transaction import atomic
from app.errors import (
    ValidationFailed, NotFound, Unauthorized, BookingNotCancellable, BookingNotActive,
    ReschedulePending, RescheduleAlreadyResolved,
)
from app.models import Booking, Bid, RescheduleRequest
from app.models.base import new_id, utcnow
from app.models.enums import BookingStage, BookingMode, BidStatus, RescheduleStatus, EventType, PaymentStatus
from app.schemas.booking import BookingCreate
from app.services.events import stage_event, publish_committed
from app.services.stage_machine import CANCELLABLE_STAGES, RESCHEDULABLE_STAGES

logger = logging.getLogger(__name__)

_settings = get_settings()

REASON_BOOKING_CANCELLED = "booking_cancelled"
MAX_RESCHEDULE_REASON = 500
URGENCY_LEVELS = ("normal", "urgent", "emergency")
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _check_time(value: str | None, field: str) -> None:
    if not value or not _TIME_RE.match(value):
        raise ValidationFailed(f"{field} must be a time in HH:MM format", **{field: value})


def validate_booking_request(request: BookingCreate, today: date | None = None) -> None:
    today = today or utcnow().date()
    if request.service_type not in _settings.marketplace.service_types:
        raise ValidationFailed(
            f"Unknown service type '{request.service_type}'",
            service_type=request.service_type, allowed=_settings.marketplace.service_types,
        )
    if request.booking_mode not in {m.value for m in BookingMode}:
        raise ValidationFailed(f"Unknown booking mode '{request.booking_mode}'", booking_mode=request.booking_mode)
    if request.urgency not in URGENCY_LEVELS:
        raise ValidationFailed(f"Unknown urgency '{request.urgency}'", urgency=request.urgency)

    if not request.asap:
        if request.scheduled_date is None:
            raise ValidationFailed("Pick a date or choose ASAP")
        if request.scheduled_date < today:
            raise ValidationFailed("Scheduled date cannot be in the past", scheduled_date=str(request.scheduled_date))
        _check_time(request.scheduled_time, "scheduled_time")

    for name in ("estimated_price", "price_range_min", "price_range_max"):
        value = getattr(request, name)
        if value is not None and value < 0:
            raise ValidationFailed(f"{name} cannot be negative", **{name: value})
    if (
        request.price_range_min is not None
        and request.price_range_max is not None
        and request.price_range_min > request.price_range_max
    ):
        raise ValidationFailed("Price range minimum is above the maximum")

    for url in request.uploaded_images:
        if not isinstance(url, str) or not url.strip():
            raise ValidationFailed("Image references must be non-empty URLs")


async def create_booking(
    db: AsyncSession, customer_id: str, request: BookingCreate, today: date | None = None,
) -> Booking:
    validate_booking_request(request, today)

    async with atomic(db):
        booking = Booking(
            id=new_id(),
            customer_id=customer_id,
            service_type=request.service_type,
            booking_mode=request.booking_mode,
            stage=BookingStage.FINDING_CONTRACTOR.value,
            description=request.description,
            address=request.address,
            service_answers=request.service_answers,
            uploaded_images=[u.strip() for u in request.uploaded_images],
            urgency=request.urgency,
            asap=request.asap,
            scheduled_date=None if request.asap else request.scheduled_date,
            scheduled_time=None if request.asap else request.scheduled_time,
            estimated_price=request.estimated_price,
            price_range_min=request.price_range_min,
            price_range_max=request.price_range_max,
            payment_status=PaymentStatus.UNPAID.value,
        )
        db.add(booking)
        await db.flush()
        event = stage_event(
            db, EventType.BOOKING_CREATED, booking.id, customer_id,
            service_type=booking.service_type, booking_mode=booking.booking_mode,
        )

    await publish_committed(event)
    logger.info(f"Booking {booking.id} created: {booking.service_type} ({booking.booking_mode})")
    return await crud.get_booking(db, booking.id)


async def cancel_booking(
    db: AsyncSession, booking_id: str, customer_id: str, reason: str = "",
    now: datetime | None = None,
) -> Booking:
    """Cancel a booking that has no contractor yet; its pending bids are rejected."""
    now = now or utcnow()

    async with atomic(db):
        booking = await crud.get_booking(db, booking_id)
        if booking is None:
            raise NotFound("Booking not found", booking_id=booking_id)
        if booking.customer_id != customer_id:
            raise Unauthorized("Only the booking's customer can cancel it")

        result = await db.execute(
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.stage.in_([s.value for s in CANCELLABLE_STAGES]),
                Booking.contractor_id.is_(None),
            )
            .values(
                stage=BookingStage.CANCELLED.value,
                cancellation_reason=reason or None,
                cancelled_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise BookingNotCancellable(stage=booking.stage)

        pending = await crud.list_bids_for_booking(db, booking_id, [BidStatus.PENDING.value])
        rejected_ids = [b.id for b in pending]
        if rejected_ids:
            await db.execute(
                update(Bid)
                .where(Bid.id.in_(rejected_ids), Bid.status == BidStatus.PENDING.value)
                .values(
                    status=BidStatus.REJECTED.value,
                    rejection_reason=REASON_BOOKING_CANCELLED,
                    resolved_at=now,
                )
                .execution_options(synchronize_session=False)
            )
        event = stage_event(
            db, EventType.BOOKING_CANCELLED, booking_id, customer_id,
            reason=reason, rejected_bid_ids=rejected_ids,
        )

    await publish_committed(event)
    logger.info(f"Booking {booking_id} cancelled; rejected {len(rejected_ids)} pending bid(s)")
    return await crud.get_booking(db, booking_id)


async def request_reschedule(
    db: AsyncSession,
    booking_id: str,
    contractor_id: str,
    new_date: date,
    new_time: str,
    reason: str,
    today: date | None = None,
) -> RescheduleRequest:
    today = today or utcnow().date()
    reason = (reason or "").strip()
    if not reason or len(reason) > MAX_RESCHEDULE_REASON:
        raise ValidationFailed(f"Reason must be 1 to {MAX_RESCHEDULE_REASON} characters")
    if new_date < today:
        raise ValidationFailed("New date cannot be in the past", new_date=str(new_date))
    _check_time(new_time, "new_time")

    try:
        async with atomic(db):
            booking = await crud.get_booking(db, booking_id)
            if booking is None:
                raise NotFound("Booking not found", booking_id=booking_id)
            if booking.contractor_id != contractor_id:
                raise Unauthorized("Only the assigned contractor can reschedule this job")

            result = await db.execute(
                update(Booking)
                .where(
                    Booking.id == booking_id,
                    Booking.contractor_id == contractor_id,
                    Booking.stage.in_([s.value for s in RESCHEDULABLE_STAGES]),
                )
                .values(updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise BookingNotActive(
                    "Jobs can only be rescheduled before work starts", stage=booking.stage,
                )

            existing = [
                r for r in await crud.list_reschedule_requests(db, booking_id)
                if r.status == RescheduleStatus.PENDING.value
            ]
            if existing:
                raise ReschedulePending(request_id=existing[0].id)

            request = RescheduleRequest(
                id=new_id(),
                booking_id=booking_id,
                requested_by=contractor_id,
                new_date=new_date,
                new_time=new_time,
                reason=reason,
                status=RescheduleStatus.PENDING.value,
            )
            db.add(request)
            event = stage_event(
                db, EventType.RESCHEDULE_REQUESTED, booking_id, contractor_id,
                request_id=request.id, new_date=new_date.isoformat(), new_time=new_time,
                reason=reason,
            )
    except IntegrityError:
        raise ReschedulePending(booking_id=booking_id) from None

    await publish_committed(event)
    logger.info(f"Reschedule requested on booking {booking_id} for {new_date} {new_time}")
    return await crud.get_reschedule_request(db, request.id)


async def resolve_reschedule(
    db: AsyncSession, request_id: str, customer_id: str, action: str,
    now: datetime | None = None,
) -> RescheduleRequest:
    """Approve or reject a pending request; approval moves the booking's schedule."""
    decisions = {"approve": RescheduleStatus.APPROVED, "reject": RescheduleStatus.REJECTED}
    decision = decisions.get((action or "").lower())
    if decision is None:
        raise ValidationFailed("Action must be 'approve' or 'reject'", action=action)
    now = now or utcnow()

    async with atomic(db):
        request = await crud.get_reschedule_request(db, request_id)
        if request is None:
            raise NotFound("Reschedule request not found", request_id=request_id)
        booking = await crud.get_booking(db, request.booking_id)
        if booking.customer_id != customer_id:
            raise Unauthorized("Only the booking's customer can answer a reschedule request")

        result = await db.execute(
            update(RescheduleRequest)
            .where(
                RescheduleRequest.id == request_id,
                RescheduleRequest.status == RescheduleStatus.PENDING.value,
            )
            .values(status=decision.value, resolved_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise RescheduleAlreadyResolved(request_id=request_id, status=request.status)

        if decision == RescheduleStatus.APPROVED:
            await db.execute(
                update(Booking)
                .where(Booking.id == booking.id)
                .values(scheduled_date=request.new_date, scheduled_time=request.new_time, asap=False)
                .execution_options(synchronize_session=False)
            )
        event = stage_event(
            db, EventType.RESCHEDULE_RESOLVED, booking.id, customer_id,
            request_id=request_id, status=decision.value,
            new_date=request.new_date.isoformat(), new_time=request.new_time,
        )

    await publish_committed(event)
    logger.info(f"Reschedule {request_id} {decision.value}")
    return await crud.get_reschedule_request(db, request_id)
