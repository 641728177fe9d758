"""Bid model: a contractor's offer against a booking.

Bids are never deleted; resolved bids stay for history.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Float, Integer, JSON, Text, DateTime, ForeignKey, CheckConstraint, Index, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, ULIDMixin, TimestampMixin
from app.models.enums import BidStatus


class Bid(Base, ULIDMixin, TimestampMixin):
    __tablename__ = "bids"

    booking_id: Mapped[str] = mapped_column(String(26), ForeignKey("bookings.id"), index=True)
    contractor_id: Mapped[str] = mapped_column(String(64), ForeignKey("contractors.id"), index=True)
    amount: Mapped[float] = mapped_column(Float)
    eta_minutes: Mapped[int] = mapped_column(Integer)
    included_materials: Mapped[list] = mapped_column(JSON, default=list)  # [{name, cost, quantity}]
    warranty_days: Mapped[int] = mapped_column(Integer, default=30)
    payment_terms: Mapped[str] = mapped_column(String(50), default="upon_completion")
    note: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    proposed_start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)
    proposed_end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)

    status: Mapped[str] = mapped_column(String(20), default=BidStatus.PENDING.value)  # pending | accepted | rejected | expired
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_bids_amount_positive"),
        CheckConstraint("eta_minutes > 0", name="ck_bids_eta_positive"),
        CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected', 'expired')", name="ck_bids_status",
        ),
        # One live bid per contractor per booking.
        Index(
            "uq_bids_booking_contractor_active",
            "booking_id",
            "contractor_id",
            unique=True,
            sqlite_where=text("status IN ('pending', 'accepted')"),
            postgresql_where=text("status IN ('pending', 'accepted')"),
        ),
        # One accepted bid per booking.
        Index(
            "uq_bids_booking_accepted",
            "booking_id",
            unique=True,
            sqlite_where=text("status = 'accepted'"),
            postgresql_where=text("status = 'accepted'"),
        ),
        Index("ix_bids_status_expires", "status", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<Bid(id={self.id}, booking={self.booking_id}, amount={self.amount}, status={self.status})>"
