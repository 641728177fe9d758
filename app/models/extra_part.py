"""Extra part model: billable items a contractor adds mid-job."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Float, Integer, Text, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, ULIDMixin, TimestampMixin
from app.models.enums import ExtraPartStatus


class ExtraPart(Base, ULIDMixin, TimestampMixin):
    __tablename__ = "extra_parts"

    booking_id: Mapped[str] = mapped_column(String(26), ForeignKey("bookings.id"))
    requested_by: Mapped[str] = mapped_column(String(64))
    name: Mapped[str] = mapped_column(String(200))
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    unit_price: Mapped[float] = mapped_column(Float, default=0.0)
    total_price: Mapped[float] = mapped_column(Float, default=0.0)
    reason: Mapped[str] = mapped_column(Text, default="")
    photo_url: Mapped[str | None] = mapped_column(String(1000), nullable=True, default=None)

    status: Mapped[str] = mapped_column(String(20), default=ExtraPartStatus.PENDING.value)
    customer_action: Mapped[str | None] = mapped_column(String(20), nullable=True, default=None)  # approved | rejected
    customer_notes: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    action_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_extra_parts_quantity"),
        CheckConstraint("unit_price >= 0", name="ck_extra_parts_unit_price"),
        Index("ix_extra_parts_booking_status", "booking_id", "status"),
    )
