"""Review API: post-payment reviews, contractor replies and rating summaries."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.responses import ok
from app.db import crud
from app.db.engine import get_db
from app.dependencies import get_actor_id
from app.errors import NotFound, Unauthorized
from app.schemas.envelope import Envelope
from app.schemas.review import (
    ReviewCreate, ReviewResponseCreate, ReviewRead, ReviewEligibilityRead, RatingSummaryRead,
)
from app.services import reviews

router = APIRouter(prefix="/api", tags=["reviews"])


@router.get("/bookings/{booking_id}/review/eligibility", response_model=Envelope[ReviewEligibilityRead])
async def check_review_eligibility(
    booking_id: str,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    return ok(ReviewEligibilityRead, await reviews.can_customer_review(db, booking_id, actor_id))


@router.post("/bookings/{booking_id}/review", response_model=Envelope[ReviewRead], status_code=201)
async def submit_review(
    booking_id: str,
    body: ReviewCreate,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    review = await reviews.submit_review(
        db, booking_id, actor_id, body.rating,
        punctuality_rating=body.punctuality_rating,
        quality_rating=body.quality_rating,
        professionalism_rating=body.professionalism_rating,
        review_text=body.review_text,
    )
    return ok(ReviewRead, review)


@router.get("/bookings/{booking_id}/review", response_model=Envelope[ReviewRead])
async def get_booking_review(
    booking_id: str,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    booking = await crud.get_booking(db, booking_id)
    if booking is None:
        raise NotFound("Booking not found", booking_id=booking_id)
    if actor_id not in (booking.customer_id, booking.contractor_id):
        raise Unauthorized("You are not a party to this booking")
    review = await crud.get_review_for_booking(db, booking_id)
    if review is None:
        return {"data": None, "error": None}
    return ok(ReviewRead, review)


@router.post("/reviews/{review_id}/response", response_model=Envelope[ReviewRead])
async def respond_to_review(
    review_id: str,
    body: ReviewResponseCreate,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    return ok(ReviewRead, await reviews.respond_to_review(db, review_id, actor_id, body.response))


@router.get("/contractors/{contractor_id}/reviews", response_model=Envelope[list[ReviewRead]])
async def list_contractor_reviews(
    contractor_id: str,
    limit: int = Query(default=10, ge=1, le=100),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    return ok(ReviewRead, await crud.list_contractor_reviews(db, contractor_id, limit))


@router.get("/contractors/{contractor_id}/rating-summary", response_model=Envelope[RatingSummaryRead])
async def get_rating_summary(
    contractor_id: str,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    if await crud.get_contractor(db, contractor_id) is None:
        raise NotFound("Contractor profile not found", contractor_id=contractor_id)
    return ok(RatingSummaryRead, await reviews.rating_summary(db, contractor_id))
