"""Contractor profile: the bidding-relevant slice of a contractor account."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Boolean, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, utcnow
from app.models.enums import BookingMode


class Contractor(Base, TimestampMixin):
    __tablename__ = "contractors"

    # Same id as the upstream identity provider's user id.
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    full_name: Mapped[str] = mapped_column(String(200), default="")
    service_type: Mapped[str] = mapped_column(String(50), index=True)
    contractor_type: Mapped[str] = mapped_column(String(30), default=BookingMode.SAVER.value)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)
    total_bids_submitted: Mapped[int] = mapped_column(Integer, default=0)
    total_jobs_completed: Mapped[int] = mapped_column(Integer, default=0)
