from __future__ import annotations
from datetime import date, datetime
from pydantic import BaseModel


class RescheduleCreate(BaseModel):
    new_date: date
    new_time: str  # HH:MM
    reason: str


class RescheduleResolve(BaseModel):
    action: str  # approve | reject


class RescheduleRead(BaseModel):
    id: str
    booking_id: str
    requested_by: str
    new_date: date
    new_time: str
    reason: str
    status: str
    resolved_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
