from __future__ import annotations
from datetime import date, datetime
from typing import Any
from pydantic import BaseModel


class BookingCreate(BaseModel):
    service_type: str
    booking_mode: str = "saver"  # saver | tacklers_choice
    description: str = ""
    address: dict[str, Any] | None = None
    service_answers: dict[str, Any] = {}
    uploaded_images: list[str] = []
    urgency: str = "normal"
    asap: bool = False
    scheduled_date: date | None = None
    scheduled_time: str | None = None  # HH:MM
    estimated_price: float | None = None
    price_range_min: float | None = None
    price_range_max: float | None = None


class BookingCancel(BaseModel):
    reason: str = ""


class BookingRead(BaseModel):
    id: str
    customer_id: str
    contractor_id: str | None = None
    service_type: str
    booking_mode: str
    stage: str
    status: str
    status_label: str
    progress: int
    description: str = ""
    address: dict[str, Any] | None = None
    service_answers: dict[str, Any] = {}
    uploaded_images: list[str] = []
    urgency: str = "normal"
    asap: bool = False
    scheduled_date: date | None = None
    scheduled_time: str | None = None
    estimated_price: float | None = None
    price_range_min: float | None = None
    price_range_max: float | None = None
    agreed_price: float | None = None
    final_price: float | None = None
    payment_status: str
    payment_method: str | None = None
    paid_at: datetime | None = None
    cancellation_reason: str | None = None
    cancelled_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class StageAdvance(BaseModel):
    stage: str
    photos: dict[str, list[str]] = {}  # photo_type -> urls


class StagePhotoRead(BaseModel):
    id: str
    booking_id: str
    stage: str
    photo_type: str
    url: str
    uploaded_by: str
    created_at: datetime

    model_config = {"from_attributes": True}


class PaymentCreate(BaseModel):
    method: str = "wallet"


class PaymentReadinessRead(BaseModel):
    can_proceed: bool
    pending_count: int

    model_config = {"from_attributes": True}
