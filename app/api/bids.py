"""Bid API: eligibility, submit, list, accept, reject."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.responses import ok
from app.db import crud
from app.db.engine import get_db
from app.dependencies import get_actor_id
from app.errors import NotFound
from app.models import Bid
from app.schemas.bid import BidCreate, BidReject, BidRead, EligibilityRead, BidAcceptRead
from app.schemas.envelope import Envelope
from app.services import bidding

router = APIRouter(prefix="/api", tags=["bids"])


def _bid_read(bid: Bid) -> BidRead:
    """Report an overdue pending bid as expired before the sweep gets to it."""
    read = BidRead.model_validate(bid)
    return read.model_copy(update={"status": bidding.effective_status(bid)})


@router.get("/bookings/{booking_id}/eligibility", response_model=Envelope[EligibilityRead])
async def check_eligibility(
    booking_id: str,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    return ok(EligibilityRead, await bidding.can_contractor_bid(db, booking_id, actor_id))


@router.post("/bookings/{booking_id}/bids", response_model=Envelope[BidRead], status_code=201)
async def submit_bid(
    booking_id: str,
    body: BidCreate,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    bid = await bidding.submit_bid(
        db,
        booking_id,
        actor_id,
        amount=body.amount,
        eta_minutes=body.eta_minutes,
        materials=[m.model_dump() for m in body.included_materials],
        note=body.note,
        warranty_days=body.warranty_days,
        payment_terms=body.payment_terms,
        proposed_start_time=body.proposed_start_time,
        proposed_end_time=body.proposed_end_time,
    )
    return {"data": _bid_read(bid), "error": None}


@router.get("/bookings/{booking_id}/bids", response_model=Envelope[list[BidRead]])
async def list_booking_bids(
    booking_id: str,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    """The customer sees every bid; a contractor sees only their own."""
    booking = await crud.get_booking(db, booking_id)
    if booking is None:
        raise NotFound("Booking not found", booking_id=booking_id)
    bids = await crud.list_bids_for_booking(db, booking_id)
    if actor_id != booking.customer_id:
        bids = [b for b in bids if b.contractor_id == actor_id]
    return {"data": [_bid_read(b) for b in bids], "error": None}


@router.get("/bids/mine", response_model=Envelope[list[BidRead]])
async def list_my_bids(
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    bids = await crud.list_contractor_bids(db, actor_id)
    return {"data": [_bid_read(b) for b in bids], "error": None}


@router.post("/bids/{bid_id}/accept", response_model=Envelope[BidAcceptRead])
async def accept_bid(
    bid_id: str,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    result = await bidding.accept_bid(db, bid_id, actor_id)
    data = BidAcceptRead(
        booking_id=result.booking.id,
        bid_id=result.bid.id,
        contractor_id=result.bid.contractor_id,
        agreed_price=result.booking.agreed_price,
        stage=result.booking.stage,
        rejected_bid_ids=result.rejected_bid_ids,
    )
    return {"data": data, "error": None}


@router.post("/bids/{bid_id}/reject", response_model=Envelope[BidRead])
async def reject_bid(
    bid_id: str,
    body: BidReject,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    bid = await bidding.reject_bid(db, bid_id, actor_id, body.reason)
    return {"data": _bid_read(bid), "error": None}
