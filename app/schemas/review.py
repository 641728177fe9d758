from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel


class ReviewCreate(BaseModel):
    rating: int
    punctuality_rating: int | None = None
    quality_rating: int | None = None
    professionalism_rating: int | None = None
    review_text: str = ""


class ReviewResponseCreate(BaseModel):
    response: str


class ReviewRead(BaseModel):
    id: str
    booking_id: str
    customer_id: str
    contractor_id: str
    rating: int
    punctuality_rating: int | None = None
    quality_rating: int | None = None
    professionalism_rating: int | None = None
    review_text: str = ""
    contractor_response: str | None = None
    contractor_response_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ReviewEligibilityRead(BaseModel):
    can_review: bool
    reason: str | None = None
    code: str | None = None

    model_config = {"from_attributes": True}


class RatingSummaryRead(BaseModel):
    total_reviews: int
    average_rating: float
    average_punctuality: float
    average_quality: float
    average_professionalism: float
    distribution: dict[int, int]

    model_config = {"from_attributes": True}
