"""Customer review of a paid job, with an optional contractor reply."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Integer, Text, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, ULIDMixin


class Review(Base, ULIDMixin):
    __tablename__ = "reviews"

    booking_id: Mapped[str] = mapped_column(String(26), ForeignKey("bookings.id"), unique=True)
    customer_id: Mapped[str] = mapped_column(String(64), index=True)
    contractor_id: Mapped[str] = mapped_column(String(64), ForeignKey("contractors.id"), index=True)
    rating: Mapped[int] = mapped_column(Integer)
    punctuality_rating: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    quality_rating: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    professionalism_rating: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    review_text: Mapped[str] = mapped_column(Text, default="")

    contractor_response: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    contractor_response_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)

    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating"),
        CheckConstraint(
            "punctuality_rating IS NULL OR punctuality_rating BETWEEN 1 AND 5",
            name="ck_reviews_punctuality",
        ),
        CheckConstraint(
            "quality_rating IS NULL OR quality_rating BETWEEN 1 AND 5",
            name="ck_reviews_quality",
        ),
        CheckConstraint(
            "professionalism_rating IS NULL OR professionalism_rating BETWEEN 1 AND 5",
            name="ck_reviews_professionalism",
        ),
    )
