"""Reschedule request raised by the assigned contractor."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import String, Date, Text, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, ULIDMixin
from app.models.enums import RescheduleStatus


class RescheduleRequest(Base, ULIDMixin):
    __tablename__ = "reschedule_requests"

    booking_id: Mapped[str] = mapped_column(String(26), ForeignKey("bookings.id"), index=True)
    requested_by: Mapped[str] = mapped_column(String(64))
    new_date: Mapped[date] = mapped_column(Date)
    new_time: Mapped[str] = mapped_column(String(5))
    reason: Mapped[str] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), default=RescheduleStatus.PENDING.value)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)

    __table_args__ = (
        Index(
            "uq_reschedule_requests_booking_pending",
            "booking_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )
