from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel


class ContractorCreate(BaseModel):
    service_type: str
    full_name: str = ""
    contractor_type: str = "saver"  # saver | tacklers_choice
    is_available: bool = True


class ContractorUpdate(BaseModel):
    full_name: str | None = None
    is_available: bool | None = None


class ContractorRead(BaseModel):
    id: str
    full_name: str
    service_type: str
    contractor_type: str
    is_available: bool
    total_bids_submitted: int
    total_jobs_completed: int
    created_at: datetime

    model_config = {"from_attributes": True}
