"""Photo evidence attached to a stage transition. URLs are opaque references."""

from __future__ import annotations

from sqlalchemy import String, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, ULIDMixin


class StagePhoto(Base, ULIDMixin):
    __tablename__ = "stage_photos"

    booking_id: Mapped[str] = mapped_column(String(26), ForeignKey("bookings.id"), index=True)
    stage: Mapped[str] = mapped_column(String(30))
    photo_type: Mapped[str] = mapped_column(String(10))  # before | during | after
    url: Mapped[str] = mapped_column(String(1000))
    uploaded_by: Mapped[str] = mapped_column(String(64))
