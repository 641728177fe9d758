from __future__ import annotations
from datetime import datetime
from typing import Any
from pydantic import BaseModel


class DomainEvent(BaseModel):
    id: str
    type: str
    booking_id: str
    actor_id: str
    payload: dict[str, Any] = {}
    timestamp: datetime
