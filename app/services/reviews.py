"""Post-payment reviews and contractor rating summaries.

A booking gets at most one review, written by its customer once the job is
paid. The unique index on ``reviews.booking_id`` settles concurrent submits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import crud
from app.db.transaction import atomic
from app.errors import (
    MarketplaceError, ValidationFailed, NotFound, Unauthorized, BookingNotReviewable,
    ReviewExists, ReviewResponseExists,
)
from app.models import Booking, Review
from app.models.base import new_id, utcnow
from app.models.enums import BookingStage, PaymentStatus, EventType
from app.services.events import stage_event, publish_committed

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 1000
RATING_RANGE = range(1, 6)


@dataclass
class ReviewEligibility:
    can_review: bool
    reason: str | None = None
    code: str | None = None


@dataclass
class RatingSummary:
    total_reviews: int = 0
    average_rating: float = 0.0
    average_punctuality: float = 0.0
    average_quality: float = 0.0
    average_professionalism: float = 0.0
    distribution: dict[int, int] = field(default_factory=lambda: {r: 0 for r in RATING_RANGE})


def _check_rating(value, name: str, required: bool = False) -> None:
    if value is None and not required:
        return
    if not isinstance(value, int) or isinstance(value, bool) or value not in RATING_RANGE:
        raise ValidationFailed(f"{name} must be a whole number from 1 to 5", **{name: value})


def _check_reviewable(booking: Booking | None, customer_id: str, existing: Review | None) -> None:
    if booking is None:
        raise NotFound("Booking not found")
    if booking.customer_id != customer_id:
        raise Unauthorized("Only the booking's customer can review it")
    if booking.stage != BookingStage.PAID.value or booking.payment_status != PaymentStatus.PAID.value:
        raise BookingNotReviewable(stage=booking.stage)
    if existing is not None:
        raise ReviewExists(review_id=existing.id)


async def can_customer_review(db: AsyncSession, booking_id: str, customer_id: str) -> ReviewEligibility:
    booking = await crud.get_booking(db, booking_id)
    existing = await crud.get_review_for_booking(db, booking_id)
    try:
        _check_reviewable(booking, customer_id, existing)
    except MarketplaceError as e:
        return ReviewEligibility(can_review=False, reason=e.message, code=e.code)
    return ReviewEligibility(can_review=True)


async def submit_review(
    db: AsyncSession,
    booking_id: str,
    customer_id: str,
    rating: int,
    punctuality_rating: int | None = None,
    quality_rating: int | None = None,
    professionalism_rating: int | None = None,
    review_text: str = "",
) -> Review:
    _check_rating(rating, "rating", required=True)
    _check_rating(punctuality_rating, "punctuality_rating")
    _check_rating(quality_rating, "quality_rating")
    _check_rating(professionalism_rating, "professionalism_rating")
    review_text = (review_text or "").strip()
    if len(review_text) > MAX_TEXT_LENGTH:
        raise ValidationFailed(f"Review cannot exceed {MAX_TEXT_LENGTH} characters")

    try:
        async with atomic(db):
            booking = await crud.get_booking(db, booking_id)
            existing = await crud.get_review_for_booking(db, booking_id)
            _check_reviewable(booking, customer_id, existing)

            review = Review(
                id=new_id(),
                booking_id=booking_id,
                customer_id=customer_id,
                contractor_id=booking.contractor_id,
                rating=rating,
                punctuality_rating=punctuality_rating,
                quality_rating=quality_rating,
                professionalism_rating=professionalism_rating,
                review_text=review_text,
            )
            db.add(review)
            await db.flush()
            event = stage_event(
                db, EventType.REVIEW_SUBMITTED, booking_id, customer_id,
                review_id=review.id, contractor_id=review.contractor_id, rating=rating,
            )
    except IntegrityError:
        logger.warning(f"Second review for booking {booking_id} rejected by constraint")
        raise ReviewExists(booking_id=booking_id) from None

    await publish_committed(event)
    logger.info(f"Booking {booking_id} reviewed: {rating}/5")
    return await crud.get_review(db, review.id)


async def respond_to_review(
    db: AsyncSession, review_id: str, contractor_id: str, response: str,
    now: datetime | None = None,
) -> Review:
    """The reviewed contractor may reply once."""
    response = (response or "").strip()
    if not response or len(response) > MAX_TEXT_LENGTH:
        raise ValidationFailed(f"Response must be 1 to {MAX_TEXT_LENGTH} characters")
    now = now or utcnow()

    async with atomic(db):
        review = await crud.get_review(db, review_id)
        if review is None:
            raise NotFound("Review not found", review_id=review_id)
        if review.contractor_id != contractor_id:
            raise Unauthorized("Only the reviewed contractor can respond")

        result = await db.execute(
            update(Review)
            .where(Review.id == review_id, Review.contractor_response.is_(None))
            .values(contractor_response=response, contractor_response_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ReviewResponseExists(review_id=review_id)
        event = stage_event(
            db, EventType.REVIEW_RESPONDED, review.booking_id, contractor_id, review_id=review_id,
        )

    await publish_committed(event)
    logger.info(f"Contractor {contractor_id} responded to review {review_id}")
    return await crud.get_review(db, review_id)


def _average(values: list[int]) -> float:
    return round(sum(values) / len(values), 2) if values else 0.0


async def rating_summary(db: AsyncSession, contractor_id: str) -> RatingSummary:
    """Averages over the reviews that carry each rating; sub-ratings are optional."""
    rows = await crud.list_contractor_ratings(db, contractor_id)
    summary = RatingSummary(total_reviews=len(rows))
    if not rows:
        return summary

    summary.average_rating = _average([r[0] for r in rows])
    summary.average_punctuality = _average([r[1] for r in rows if r[1] is not None])
    summary.average_quality = _average([r[2] for r in rows if r[2] is not None])
    summary.average_professionalism = _average([r[3] for r in rows if r[3] is not None])
    for r in rows:
        summary.distribution[r[0]] += 1
    return summary
