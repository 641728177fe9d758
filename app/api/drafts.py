"""Draft API: save and resume half-filled booking and bid forms."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.dependencies import get_actor_id
from app.errors import ValidationFailed
from app.schemas.draft import BookingDraft, BidDraft
from app.schemas.envelope import Envelope
from app.services.drafts import DraftStore, draft_store

router = APIRouter(prefix="/api/drafts", tags=["drafts"])


def get_draft_store() -> DraftStore:
    return draft_store


@router.put("/bookings/{service_type}", response_model=Envelope[BookingDraft])
async def save_booking_draft(
    service_type: str,
    body: BookingDraft,
    actor_id: str = Depends(get_actor_id),
    store: DraftStore = Depends(get_draft_store),
):
    if body.service_type != service_type:
        raise ValidationFailed("Draft service type does not match the URL")
    return {"data": await store.save_booking_draft(actor_id, body), "error": None}


@router.get("/bookings/{service_type}", response_model=Envelope[BookingDraft])
async def load_booking_draft(
    service_type: str,
    actor_id: str = Depends(get_actor_id),
    store: DraftStore = Depends(get_draft_store),
):
    return {"data": await store.load_booking_draft(actor_id, service_type), "error": None}


@router.delete("/bookings/{service_type}", response_model=Envelope[bool])
async def clear_booking_draft(
    service_type: str,
    actor_id: str = Depends(get_actor_id),
    store: DraftStore = Depends(get_draft_store),
):
    return {"data": await store.clear_booking_draft(actor_id, service_type), "error": None}


@router.put("/bids/{booking_id}", response_model=Envelope[BidDraft])
async def save_bid_draft(
    booking_id: str,
    body: BidDraft,
    actor_id: str = Depends(get_actor_id),
    store: DraftStore = Depends(get_draft_store),
):
    if body.booking_id != booking_id:
        raise ValidationFailed("Draft booking id does not match the URL")
    return {"data": await store.save_bid_draft(actor_id, body), "error": None}


@router.get("/bids/{booking_id}", response_model=Envelope[BidDraft])
async def load_bid_draft(
    booking_id: str,
    actor_id: str = Depends(get_actor_id),
    store: DraftStore = Depends(get_draft_store),
):
    return {"data": await store.load_bid_draft(actor_id, booking_id), "error": None}


@router.delete("/bids/{booking_id}", response_model=Envelope[bool])
async def clear_bid_draft(
    booking_id: str,
    actor_id: str = Depends(get_actor_id),
    store: DraftStore = Depends(get_draft_store),
):
    return {"data": await store.clear_bid_draft(actor_id, booking_id), "error": None}
