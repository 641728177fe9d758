from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel


class Material(BaseModel):
    name: str
    cost: float = 0.0
    quantity: int = 1


class BidCreate(BaseModel):
    amount: float
    eta_minutes: int
    included_materials: list[Material] = []
    note: str | None = None
    warranty_days: int | None = None
    payment_terms: str | None = None
    proposed_start_time: datetime | None = None
    proposed_end_time: datetime | None = None


class BidReject(BaseModel):
    reason: str = ""


class BidRead(BaseModel):
    id: str
    booking_id: str
    contractor_id: str
    amount: float
    eta_minutes: int
    included_materials: list[Material] = []
    warranty_days: int
    payment_terms: str
    note: str | None = None
    proposed_start_time: datetime | None = None
    proposed_end_time: datetime | None = None
    status: str  # pending | accepted | rejected | expired
    expires_at: datetime
    rejection_reason: str | None = None
    resolved_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class EligibilityRead(BaseModel):
    can_bid: bool
    reason: str | None = None
    code: str | None = None

    model_config = {"from_attributes": True}


class BidAcceptRead(BaseModel):
    booking_id: str
    bid_id: str
    contractor_id: str
    agreed_price: float
    stage: str
    rejected_bid_ids: list[str] = []
