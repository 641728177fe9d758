"""CRUD and read helpers for marketplace tables.

Lifecycle writes (bids, stages, parts, payment) live in the services, which
update rows with conditional statements inside one transaction. Reads here
always repopulate identity-map objects so callers never see a stale row
after such an update.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import (
    Contractor, Booking, Bid, ExtraPart, StagePhoto, RescheduleRequest, BookingEvent, Review,
)
from app.models.enums import BookingStage, BookingMode, BidStatus, ExtraPartStatus, ACTIVE_BID_STATUSES

_FRESH = {"populate_existing": True}


# ── Contractor ────────────────────────────────────────────

async def create_contractor(
    db: AsyncSession, contractor_id: str, service_type: str,
    full_name: str = "", contractor_type: str = BookingMode.SAVER.value,
    is_available: bool = True,
) -> Contractor:
    contractor = Contractor(
        id=contractor_id, full_name=full_name, service_type=service_type,
        contractor_type=contractor_type, is_available=is_available,
    )
    db.add(contractor)
    await db.commit()
    await db.refresh(contractor)
    return contractor


async def get_contractor(db: AsyncSession, contractor_id: str) -> Contractor | None:
    return await db.get(Contractor, contractor_id, populate_existing=True)


async def update_contractor(db: AsyncSession, contractor: Contractor, **kwargs) -> Contractor:
    for k, v in kwargs.items():
        if v is not None:
            setattr(contractor, k, v)
    await db.commit()
    await db.refresh(contractor)
    return contractor


# ── Booking ───────────────────────────────────────────────

async def get_booking(db: AsyncSession, booking_id: str) -> Booking | None:
    return await db.get(Booking, booking_id, populate_existing=True)


async def list_customer_bookings(db: AsyncSession, customer_id: str) -> list[Booking]:
    result = await db.execute(
        select(Booking)
        .where(Booking.customer_id == customer_id)
        .order_by(Booking.created_at.desc())
        .execution_options(**_FRESH)
    )
    return list(result.scalars().all())


async def list_contractor_jobs(
    db: AsyncSession, contractor_id: str, stages: list[str] | None = None,
) -> list[Booking]:
    query = select(Booking).where(Booking.contractor_id == contractor_id)
    if stages:
        query = query.where(Booking.stage.in_(stages))
    result = await db.execute(query.order_by(Booking.created_at.desc()).execution_options(**_FRESH))
    return list(result.scalars().all())


async def list_available_bookings(db: AsyncSession, contractor: Contractor) -> list[Booking]:
    """Open bookings matching the contractor's service type and booking mode."""
    result = await db.execute(
        select(Booking)
        .where(
            Booking.stage == BookingStage.FINDING_CONTRACTOR.value,
            Booking.service_type == contractor.service_type,
            Booking.booking_mode == contractor.contractor_type,
            Booking.contractor_id.is_(None),
        )
        .order_by(Booking.created_at.desc())
        .execution_options(**_FRESH)
    )
    return list(result.scalars().all())


# ── Bid ───────────────────────────────────────────────────

async def get_bid(db: AsyncSession, bid_id: str) -> Bid | None:
    return await db.get(Bid, bid_id, populate_existing=True)


async def list_bids_for_booking(
    db: AsyncSession, booking_id: str, statuses: list[str] | None = None,
) -> list[Bid]:
    query = select(Bid).where(Bid.booking_id == booking_id)
    if statuses:
        query = query.where(Bid.status.in_(statuses))
    result = await db.execute(query.order_by(Bid.amount, Bid.created_at).execution_options(**_FRESH))
    return list(result.scalars().all())


async def list_contractor_bids(
    db: AsyncSession, contractor_id: str, statuses: list[str] | None = None,
) -> list[Bid]:
    query = select(Bid).where(Bid.contractor_id == contractor_id)
    if statuses:
        query = query.where(Bid.status.in_(statuses))
    result = await db.execute(query.order_by(Bid.created_at.desc()).execution_options(**_FRESH))
    return list(result.scalars().all())


async def find_active_bid(db: AsyncSession, booking_id: str, contractor_id: str) -> Bid | None:
    result = await db.execute(
        select(Bid)
        .where(
            Bid.booking_id == booking_id,
            Bid.contractor_id == contractor_id,
            Bid.status.in_(ACTIVE_BID_STATUSES),
        )
        .execution_options(**_FRESH)
    )
    return result.scalars().first()


async def count_accepted_bids(db: AsyncSession, booking_id: str) -> int:
    result = await db.execute(
        select(func.count(Bid.id)).where(
            Bid.booking_id == booking_id, Bid.status == BidStatus.ACCEPTED.value,
        )
    )
    return result.scalar_one()


async def list_overdue_pending_bids(db: AsyncSession, now: datetime) -> list[Bid]:
    result = await db.execute(
        select(Bid)
        .where(Bid.status == BidStatus.PENDING.value, Bid.expires_at < now)
        .execution_options(**_FRESH)
    )
    return list(result.scalars().all())


# ── ExtraPart ─────────────────────────────────────────────

async def get_extra_part(db: AsyncSession, part_id: str) -> ExtraPart | None:
    return await db.get(ExtraPart, part_id, populate_existing=True)


async def list_extra_parts(db: AsyncSession, booking_id: str) -> list[ExtraPart]:
    result = await db.execute(
        select(ExtraPart)
        .where(ExtraPart.booking_id == booking_id)
        .order_by(ExtraPart.created_at.desc())
        .execution_options(**_FRESH)
    )
    return list(result.scalars().all())


async def count_pending_extra_parts(db: AsyncSession, booking_id: str) -> int:
    result = await db.execute(
        select(func.count(ExtraPart.id)).where(
            ExtraPart.booking_id == booking_id,
            ExtraPart.status == ExtraPartStatus.PENDING.value,
        )
    )
    return result.scalar_one()


async def sum_approved_extra_parts(db: AsyncSession, booking_id: str) -> float:
    result = await db.execute(
        select(func.coalesce(func.sum(ExtraPart.total_price), 0.0)).where(
            ExtraPart.booking_id == booking_id,
            ExtraPart.status == ExtraPartStatus.APPROVED.value,
        )
    )
    return float(result.scalar_one())


# ── StagePhoto ────────────────────────────────────────────

async def list_stage_photos(db: AsyncSession, booking_id: str) -> list[StagePhoto]:
    result = await db.execute(
        select(StagePhoto)
        .where(StagePhoto.booking_id == booking_id)
        .order_by(StagePhoto.created_at)
    )
    return list(result.scalars().all())


# ── RescheduleRequest ─────────────────────────────────────

async def get_reschedule_request(db: AsyncSession, request_id: str) -> RescheduleRequest | None:
    return await db.get(RescheduleRequest, request_id, populate_existing=True)


async def list_reschedule_requests(db: AsyncSession, booking_id: str) -> list[RescheduleRequest]:
    result = await db.execute(
        select(RescheduleRequest)
        .where(RescheduleRequest.booking_id == booking_id)
        .order_by(RescheduleRequest.created_at.desc())
        .execution_options(**_FRESH)
    )
    return list(result.scalars().all())


# ── Review ────────────────────────────────────────────────

async def get_review(db: AsyncSession, review_id: str) -> Review | None:
    return await db.get(Review, review_id, populate_existing=True)


async def get_review_for_booking(db: AsyncSession, booking_id: str) -> Review | None:
    result = await db.execute(
        select(Review).where(Review.booking_id == booking_id).execution_options(**_FRESH)
    )
    return result.scalar_one_or_none()


async def list_contractor_reviews(db: AsyncSession, contractor_id: str, limit: int = 10) -> list[Review]:
    result = await db.execute(
        select(Review)
        .where(Review.contractor_id == contractor_id)
        .order_by(Review.created_at.desc())
        .limit(limit)
        .execution_options(**_FRESH)
    )
    return list(result.scalars().all())


async def list_contractor_ratings(db: AsyncSession, contractor_id: str) -> list[tuple]:
    """(rating, punctuality, quality, professionalism) for every review of a contractor."""
    result = await db.execute(
        select(
            Review.rating, Review.punctuality_rating,
            Review.quality_rating, Review.professionalism_rating,
        ).where(Review.contractor_id == contractor_id)
    )
    return [tuple(row) for row in result.all()]


# ── BookingEvent ──────────────────────────────────────────

async def list_events_for_booking(db: AsyncSession, booking_id: str) -> list[BookingEvent]:
    result = await db.execute(
        select(BookingEvent)
        .where(BookingEvent.booking_id == booking_id)
        .order_by(BookingEvent.created_at, BookingEvent.id)
    )
    return list(result.scalars().all())
