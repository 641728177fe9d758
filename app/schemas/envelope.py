from __future__ import annotations
from typing import Any, Generic, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


class ErrorBody(BaseModel):
    code: str
    kind: str  # validation | eligibility | conflict | authorization | invariant | not_found
    message: str
    details: dict[str, Any] = {}


class Envelope(BaseModel, Generic[T]):
    """Every API response: exactly one of ``data`` / ``error`` is set."""

    data: T | None = None
    error: ErrorBody | None = None
