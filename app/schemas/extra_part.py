from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel


class ExtraPartItem(BaseModel):
    name: str
    quantity: int = 1
    unit_price: float
    reason: str = ""
    photo_url: str | None = None


class ExtraPartsCreate(BaseModel):
    parts: list[ExtraPartItem]


class ExtraPartResolve(BaseModel):
    action: str  # approve | reject
    notes: str | None = None


class ExtraPartRead(BaseModel):
    id: str
    booking_id: str
    requested_by: str
    name: str
    quantity: int
    unit_price: float
    total_price: float
    reason: str = ""
    photo_url: str | None = None
    status: str
    customer_action: str | None = None
    customer_notes: str | None = None
    action_timestamp: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
