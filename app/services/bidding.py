"""Bid lifecycle: eligibility, submission, acceptance, rejection, expiry.

Every mutation runs in one transaction and re-checks its guards at write
time with conditional UPDATEs; the partial unique indexes on ``bids`` are
the final word on "one live bid per contractor" and "one accepted bid per
booking". ``can_contractor_bid`` is advisory only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.db import crud
from app.db.transaction import atomic
from app.errors import (
    MarketplaceError, ValidationFailed, InvalidAmount, InvalidEta, NotFound, Unauthorized,
    BookingNotBiddable, DuplicateBid, ServiceMismatch, ContractorUnavailable,
    BidExpired, BidAlreadyResolved, BookingAlreadyAssigned,
)
from app.models import Bid, Booking, Contractor
from app.models.base import new_id, utcnow, as_utc
from app.models.enums import BidStatus, BookingStage, EventType
from app.services.events import stage_event, publish_committed
from app.services.stage_machine import BIDDABLE_STAGES

logger = logging.getLogger(__name__)

_settings = get_settings()

SYSTEM_ACTOR = "system"
REASON_ANOTHER_BID_ACCEPTED = "another_bid_accepted"


@dataclass
class Eligibility:
    can_bid: bool
    reason: str | None = None
    code: str | None = None


@dataclass
class AcceptResult:
    booking: Booking
    bid: Bid
    rejected_bid_ids: list[str] = field(default_factory=list)


def effective_status(bid: Bid, now: datetime | None = None) -> str:
    """A pending bid past its expiry reads as expired even before the sweep."""
    now = now or utcnow()
    if bid.status == BidStatus.PENDING.value and as_utc(bid.expires_at) < now:
        return BidStatus.EXPIRED.value
    return bid.status


def validate_bid_terms(
    amount: float, eta_minutes: int, materials: list[dict[str, Any]] | None, note: str | None,
) -> list[dict[str, Any]]:
    """Reject bad input before any transaction. Returns normalized materials."""
    cfg = _settings.bidding
    if amount is None or amount <= 0:
        raise InvalidAmount(amount=amount)
    if eta_minutes is None or eta_minutes < cfg.min_eta_minutes:
        raise InvalidEta(
            f"ETA must be at least {cfg.min_eta_minutes} minutes", eta_minutes=eta_minutes,
        )
    if eta_minutes > cfg.max_eta_minutes:
        raise InvalidEta(
            f"ETA cannot exceed {cfg.max_eta_minutes} minutes", eta_minutes=eta_minutes,
        )
    if note and len(note) > cfg.max_note_length:
        raise ValidationFailed(f"Note cannot exceed {cfg.max_note_length} characters")

    normalized = []
    for item in materials or []:
        name = (item.get("name") or "").strip()
        cost = item.get("cost", 0)
        quantity = item.get("quantity", 1)
        if not name:
            raise ValidationFailed("Every material needs a name")
        if cost is None or cost < 0:
            raise ValidationFailed(f"Material '{name}' has a negative cost", material=name)
        if quantity is None or quantity < 1:
            raise ValidationFailed(f"Material '{name}' needs a quantity of at least 1", material=name)
        normalized.append({"name": name, "cost": float(cost), "quantity": int(quantity)})
    return normalized


def _check_eligibility(
    booking: Booking | None, contractor: Contractor | None, existing: Bid | None,
) -> None:
    if booking is None:
        raise NotFound("Booking not found")
    if contractor is None:
        raise NotFound("Contractor profile not found")
    if existing is not None:
        raise DuplicateBid(bid_id=existing.id)
    if booking.stage not in BIDDABLE_STAGES:
        raise BookingNotBiddable(stage=booking.stage)
    if contractor.service_type != booking.service_type:
        raise ServiceMismatch(
            booking_service=booking.service_type, contractor_service=contractor.service_type,
        )
    if not contractor.is_available:
        raise ContractorUnavailable()


async def _expire_if_overdue(db: AsyncSession, bid: Bid | None, now: datetime):
    """Expire an overdue pending bid in the current transaction.

    Returns the staged event row, or None when the bid was not overdue or was
    resolved by someone else first.
    """
    if bid is None or effective_status(bid, now) != BidStatus.EXPIRED.value:
        return None
    if bid.status != BidStatus.PENDING.value:
        return None
    result = await db.execute(
        update(Bid)
        .where(Bid.id == bid.id, Bid.status == BidStatus.PENDING.value)
        .values(status=BidStatus.EXPIRED.value, resolved_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return None
    return stage_event(
        db, EventType.BID_EXPIRED, bid.booking_id, SYSTEM_ACTOR,
        bid_id=bid.id, contractor_id=bid.contractor_id,
    )


async def can_contractor_bid(db: AsyncSession, booking_id: str, contractor_id: str) -> Eligibility:
    """Read-only eligibility check with a display reason."""
    booking = await crud.get_booking(db, booking_id)
    contractor = await crud.get_contractor(db, contractor_id)
    existing = await crud.find_active_bid(db, booking_id, contractor_id)
    if existing is not None and effective_status(existing) == BidStatus.EXPIRED.value:
        existing = None
    try:
        _check_eligibility(booking, contractor, existing)
    except MarketplaceError as e:
        return Eligibility(can_bid=False, reason=e.message, code=e.code)
    return Eligibility(can_bid=True)


async def submit_bid(
    db: AsyncSession,
    booking_id: str,
    contractor_id: str,
    amount: float,
    eta_minutes: int,
    materials: list[dict[str, Any]] | None = None,
    note: str | None = None,
    warranty_days: int | None = None,
    payment_terms: str | None = None,
    proposed_start_time: datetime | None = None,
    proposed_end_time: datetime | None = None,
    now: datetime | None = None,
) -> Bid:
    materials = validate_bid_terms(amount, eta_minutes, materials, note)
    if warranty_days is not None and warranty_days < 0:
        raise ValidationFailed("Warranty cannot be negative", warranty_days=warranty_days)
    now = now or utcnow()
    cfg = _settings.bidding
    events = []

    try:
        async with atomic(db):
            booking = await crud.get_booking(db, booking_id)
            contractor = await crud.get_contractor(db, contractor_id)
            existing = await crud.find_active_bid(db, booking_id, contractor_id)

            expired = await _expire_if_overdue(db, existing, now)
            if expired is not None:
                events.append(expired)
                existing = None

            _check_eligibility(booking, contractor, existing)

            # Holds the booking row until commit; an accept or cancel that
            # committed after the read above leaves nothing to claim.
            claimed = await db.execute(
                update(Booking)
                .where(
                    Booking.id == booking_id,
                    Booking.stage.in_([s.value for s in BIDDABLE_STAGES]),
                    Booking.contractor_id.is_(None),
                )
                .values(updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if claimed.rowcount != 1:
                stage = (await db.execute(
                    select(Booking.stage).where(Booking.id == booking_id)
                )).scalar_one()
                logger.warning(f"Bid on booking {booking_id} arrived after it left bidding ({stage})")
                raise BookingNotBiddable(stage=stage)

            bid = Bid(
                id=new_id(),
                booking_id=booking_id,
                contractor_id=contractor_id,
                amount=float(amount),
                eta_minutes=int(eta_minutes),
                included_materials=materials,
                warranty_days=cfg.default_warranty_days if warranty_days is None else warranty_days,
                payment_terms=payment_terms or cfg.default_payment_terms,
                note=note or None,
                proposed_start_time=proposed_start_time,
                proposed_end_time=proposed_end_time,
                status=BidStatus.PENDING.value,
                expires_at=now + timedelta(minutes=cfg.window_minutes),
            )
            db.add(bid)
            # Flushes the insert first, so the unique index rejects a racing duplicate here.
            await db.execute(
                update(Contractor)
                .where(Contractor.id == contractor_id)
                .values(total_bids_submitted=Contractor.total_bids_submitted + 1)
                .execution_options(synchronize_session=False)
            )
            events.append(stage_event(
                db, EventType.BID_SUBMITTED, booking_id, contractor_id,
                bid_id=bid.id, amount=bid.amount, eta_minutes=bid.eta_minutes,
                expires_at=bid.expires_at.isoformat(),
            ))
    except IntegrityError:
        logger.warning(f"Duplicate bid rejected by constraint: booking={booking_id} contractor={contractor_id}")
        raise DuplicateBid(booking_id=booking_id) from None

    await publish_committed(*events)
    logger.info(f"Bid {bid.id} submitted: booking={booking_id} contractor={contractor_id} amount={amount}")
    return await crud.get_bid(db, bid.id)


async def accept_bid(
    db: AsyncSession, bid_id: str, customer_id: str, now: datetime | None = None,
) -> AcceptResult:
    """Accept one bid, assign its contractor and reject every competing bid."""
    now = now or utcnow()
    expired_event = None
    accepted_event = None
    rejected_ids: list[str] = []

    try:
        async with atomic(db):
            bid = await crud.get_bid(db, bid_id)
            if bid is None:
                raise NotFound("Bid not found", bid_id=bid_id)
            booking = await crud.get_booking(db, bid.booking_id)
            if booking.customer_id != customer_id:
                raise Unauthorized("Only the booking's customer can accept bids")
            if bid.status == BidStatus.EXPIRED.value:
                raise BidExpired(bid_id=bid_id)
            if bid.rejection_reason == REASON_ANOTHER_BID_ACCEPTED:
                raise BookingAlreadyAssigned(booking_id=booking.id)
            if bid.status != BidStatus.PENDING.value:
                raise BidAlreadyResolved(bid_id=bid_id, status=bid.status)

            expired_event = await _expire_if_overdue(db, bid, now)
            if expired_event is None:
                result = await db.execute(
                    update(Booking)
                    .where(
                        Booking.id == booking.id,
                        Booking.stage.in_([s.value for s in BIDDABLE_STAGES]),
                        Booking.contractor_id.is_(None),
                    )
                    .values(
                        contractor_id=bid.contractor_id,
                        stage=BookingStage.ASSIGNED.value,
                        agreed_price=bid.amount,
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    stage = (await db.execute(
                        select(Booking.stage).where(Booking.id == booking.id)
                    )).scalar_one()
                    if stage == BookingStage.CANCELLED.value:
                        raise BookingNotBiddable(stage=stage)
                    raise BookingAlreadyAssigned(booking_id=booking.id)

                result = await db.execute(
                    update(Bid)
                    .where(Bid.id == bid.id, Bid.status == BidStatus.PENDING.value)
                    .values(status=BidStatus.ACCEPTED.value, resolved_at=now)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    raise BidAlreadyResolved(bid_id=bid_id)

                rejected_ids = list((await db.execute(
                    select(Bid.id).where(
                        Bid.booking_id == booking.id,
                        Bid.status == BidStatus.PENDING.value,
                        Bid.id != bid.id,
                    )
                )).scalars().all())
                if rejected_ids:
                    await db.execute(
                        update(Bid)
                        .where(Bid.id.in_(rejected_ids), Bid.status == BidStatus.PENDING.value)
                        .values(
                            status=BidStatus.REJECTED.value,
                            rejection_reason=REASON_ANOTHER_BID_ACCEPTED,
                            resolved_at=now,
                        )
                        .execution_options(synchronize_session=False)
                    )
                accepted_event = stage_event(
                    db, EventType.BID_ACCEPTED, booking.id, customer_id,
                    bid_id=bid.id, contractor_id=bid.contractor_id, amount=bid.amount,
                    rejected_bid_ids=rejected_ids,
                )
    except IntegrityError:
        logger.warning(f"Accept of bid {bid_id} lost to a concurrent acceptance")
        raise BookingAlreadyAssigned(bid_id=bid_id) from None
    except (BookingAlreadyAssigned, BidAlreadyResolved) as e:
        logger.warning(f"Accept of bid {bid_id} conflicted: {e.code}")
        raise

    if expired_event is not None:
        await publish_committed(expired_event)
        raise BidExpired(bid_id=bid_id)

    await publish_committed(accepted_event)
    logger.info(f"Bid {bid_id} accepted; rejected {len(rejected_ids)} competing bid(s)")
    return AcceptResult(
        booking=await crud.get_booking(db, bid.booking_id),
        bid=await crud.get_bid(db, bid_id),
        rejected_bid_ids=rejected_ids,
    )


async def reject_bid(
    db: AsyncSession, bid_id: str, customer_id: str, reason: str = "",
    now: datetime | None = None,
) -> Bid:
    now = now or utcnow()
    expired_event = None
    rejected_event = None

    async with atomic(db):
        bid = await crud.get_bid(db, bid_id)
        if bid is None:
            raise NotFound("Bid not found", bid_id=bid_id)
        booking = await crud.get_booking(db, bid.booking_id)
        if booking.customer_id != customer_id:
            raise Unauthorized("Only the booking's customer can reject bids")
        if bid.status == BidStatus.EXPIRED.value:
            raise BidExpired(bid_id=bid_id)
        if bid.status != BidStatus.PENDING.value:
            raise BidAlreadyResolved(bid_id=bid_id, status=bid.status)

        expired_event = await _expire_if_overdue(db, bid, now)
        if expired_event is None:
            result = await db.execute(
                update(Bid)
                .where(Bid.id == bid.id, Bid.status == BidStatus.PENDING.value)
                .values(status=BidStatus.REJECTED.value, rejection_reason=reason or None, resolved_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise BidAlreadyResolved(bid_id=bid_id)
            rejected_event = stage_event(
                db, EventType.BID_REJECTED, booking.id, customer_id,
                bid_id=bid.id, contractor_id=bid.contractor_id, reason=reason,
            )

    if expired_event is not None:
        await publish_committed(expired_event)
        raise BidExpired(bid_id=bid_id)

    await publish_committed(rejected_event)
    logger.info(f"Bid {bid_id} rejected by customer")
    return await crud.get_bid(db, bid_id)


async def expire_bids(db: AsyncSession, now: datetime | None = None) -> list[str]:
    """Mark every overdue pending bid expired. Safe to run repeatedly."""
    now = now or utcnow()
    events = []
    expired_ids = []

    async with atomic(db):
        for bid in await crud.list_overdue_pending_bids(db, now):
            row = await _expire_if_overdue(db, bid, now)
            if row is not None:
                events.append(row)
                expired_ids.append(bid.id)

    await publish_committed(*events)
    if expired_ids:
        logger.info(f"Expired {len(expired_ids)} overdue bid(s)")
    return expired_ids
