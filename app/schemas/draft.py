from __future__ import annotations
from datetime import date, datetime
from typing import Any
from pydantic import BaseModel

from app.schemas.bid import Material


class BookingDraft(BaseModel):
    """Partially filled booking form, resumable per service type."""

    service_type: str
    booking_mode: str = "saver"
    step: int = 0
    description: str = ""
    address: dict[str, Any] | None = None
    service_answers: dict[str, Any] = {}
    uploaded_images: list[str] = []
    urgency: str = "normal"
    asap: bool = False
    scheduled_date: date | None = None
    scheduled_time: str | None = None
    saved_at: datetime | None = None


class BidDraft(BaseModel):
    """Partially filled bid form, resumable per booking."""

    booking_id: str
    amount: float | None = None
    eta_minutes: int | None = None
    included_materials: list[Material] = []
    note: str = ""
    saved_at: datetime | None = None
