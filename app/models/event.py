"""Outbox row for every committed booking transition."""

from __future__ import annotations

from sqlalchemy import String, JSON, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, ULIDMixin


class BookingEvent(Base, ULIDMixin):
    __tablename__ = "booking_events"

    type: Mapped[str] = mapped_column(String(40))
    booking_id: Mapped[str] = mapped_column(String(26), ForeignKey("bookings.id"))
    actor_id: Mapped[str] = mapped_column(String(64))
    payload: Mapped[dict] = mapped_column(JSON, default=dict)

    __table_args__ = (
        Index("ix_booking_events_booking_created", "booking_id", "created_at"),
    )
