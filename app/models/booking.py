"""Booking model: a customer's service request and its lifecycle stage."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import String, Float, Boolean, Date, DateTime, JSON, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, ULIDMixin, TimestampMixin
from app.models.enums import BookingStage, BookingMode, PaymentStatus


class Booking(Base, ULIDMixin, TimestampMixin):
    __tablename__ = "bookings"

    customer_id: Mapped[str] = mapped_column(String(64), index=True)
    contractor_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("contractors.id"), nullable=True, default=None, index=True,
    )
    service_type: Mapped[str] = mapped_column(String(50), index=True)
    booking_mode: Mapped[str] = mapped_column(String(30), default=BookingMode.SAVER.value)
    stage: Mapped[str] = mapped_column(
        String(30), default=BookingStage.FINDING_CONTRACTOR.value, index=True,
    )

    description: Mapped[str] = mapped_column(Text, default="")
    address: Mapped[dict | None] = mapped_column(JSON, nullable=True, default=None)
    service_answers: Mapped[dict] = mapped_column(JSON, default=dict)
    uploaded_images: Mapped[list] = mapped_column(JSON, default=list)
    urgency: Mapped[str] = mapped_column(String(20), default="normal")  # normal | urgent | emergency

    asap: Mapped[bool] = mapped_column(Boolean, default=False)
    scheduled_date: Mapped[date | None] = mapped_column(Date, nullable=True, default=None)
    scheduled_time: Mapped[str | None] = mapped_column(String(5), nullable=True, default=None)  # HH:MM

    estimated_price: Mapped[float | None] = mapped_column(Float, nullable=True, default=None)
    price_range_min: Mapped[float | None] = mapped_column(Float, nullable=True, default=None)
    price_range_max: Mapped[float | None] = mapped_column(Float, nullable=True, default=None)
    agreed_price: Mapped[float | None] = mapped_column(Float, nullable=True, default=None)
    final_price: Mapped[float | None] = mapped_column(Float, nullable=True, default=None)

    payment_status: Mapped[str] = mapped_column(String(20), default=PaymentStatus.UNPAID.value)
    payment_method: Mapped[str | None] = mapped_column(String(30), nullable=True, default=None)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)

    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)

    __table_args__ = (
        CheckConstraint(
            "stage IN ('finding_contractor', 'assigned', 'arriving', 'work_started', "
            "'in_progress', 'work_completed', 'awaiting_payment', 'paid', 'cancelled')",
            name="ck_bookings_stage",
        ),
        # No contractor before assignment, always one after.
        CheckConstraint(
            "(stage IN ('finding_contractor', 'cancelled') AND contractor_id IS NULL) "
            "OR (stage NOT IN ('finding_contractor', 'cancelled') AND contractor_id IS NOT NULL)",
            name="ck_bookings_contractor_assignment",
        ),
    )

    @property
    def current_stage(self) -> BookingStage:
        return BookingStage(self.stage)

    @property
    def status(self) -> str:
        from app.services.stage_machine import display_for
        return display_for(self.stage).status

    @property
    def status_label(self) -> str:
        from app.services.stage_machine import display_for
        return display_for(self.stage).label

    @property
    def progress(self) -> int:
        from app.services.stage_machine import display_for
        return display_for(self.stage).progress

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, stage={self.stage}, contractor={self.contractor_id})>"
