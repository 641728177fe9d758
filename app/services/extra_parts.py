"""Mid-job extra parts: contractor requests, customer approval.

Pending parts block payment. The request path claims the booking row with a
conditional UPDATE before inserting, so a part can never slip in after the
payment transaction has checked for pending parts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import crud
from app.db.transaction import atomic
from app.errors import (
    ValidationFailed, NotFound, Unauthorized, BookingNotActive, ExtraPartAlreadyResolved,
)
from app.models import Booking, ExtraPart
from app.models.base import new_id, utcnow
from app.models.enums import ExtraPartStatus, EventType
from app.services.events import stage_event, publish_committed
from app.services.stage_machine import ACTIVE_STAGES

logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 500

# Older clients send the past-tense form.
_ACTIONS = {
    "approve": ExtraPartStatus.APPROVED,
    "approved": ExtraPartStatus.APPROVED,
    "reject": ExtraPartStatus.REJECTED,
    "rejected": ExtraPartStatus.REJECTED,
}


@dataclass
class PaymentReadiness:
    can_proceed: bool
    pending_count: int


def _validate_parts(parts: list[dict[str, Any]]) -> list[dict[str, Any]]:
    if not parts:
        raise ValidationFailed("At least one extra part is required")
    cleaned = []
    for item in parts:
        name = (item.get("name") or "").strip()
        quantity = item.get("quantity", 1)
        unit_price = item.get("unit_price", item.get("price"))
        reason = (item.get("reason") or "").strip()
        if not name:
            raise ValidationFailed("Every extra part needs a name")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise ValidationFailed(f"Quantity for '{name}' must be a whole number of at least 1", part=name)
        if unit_price is None or unit_price < 0:
            raise ValidationFailed(f"Price for '{name}' cannot be negative", part=name)
        if len(reason) > MAX_REASON_LENGTH:
            raise ValidationFailed(f"Reason cannot exceed {MAX_REASON_LENGTH} characters", part=name)
        cleaned.append({
            "name": name,
            "quantity": quantity,
            "unit_price": float(unit_price),
            "total_price": round(quantity * float(unit_price), 2),
            "reason": reason,
            "photo_url": item.get("photo_url") or None,
        })
    return cleaned


async def request_extra_parts(
    db: AsyncSession, booking_id: str, contractor_id: str, parts: list[dict[str, Any]],
) -> list[ExtraPart]:
    cleaned = _validate_parts(parts)

    async with atomic(db):
        booking = await crud.get_booking(db, booking_id)
        if booking is None:
            raise NotFound("Booking not found", booking_id=booking_id)
        if booking.contractor_id != contractor_id:
            raise Unauthorized("Only the assigned contractor can request extra parts")

        result = await db.execute(
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.contractor_id == contractor_id,
                Booking.stage.in_([s.value for s in ACTIVE_STAGES]),
            )
            .values(updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise BookingNotActive(
                "Extra parts can only be added while the job is active", stage=booking.stage,
            )

        rows = [
            ExtraPart(
                id=new_id(), booking_id=booking_id, requested_by=contractor_id,
                status=ExtraPartStatus.PENDING.value, **item,
            )
            for item in cleaned
        ]
        db.add_all(rows)
        event = stage_event(
            db, EventType.EXTRA_PARTS_REQUESTED, booking_id, contractor_id,
            part_ids=[r.id for r in rows],
            total=round(sum(r.total_price for r in rows), 2),
        )

    await publish_committed(event)
    logger.info(f"{len(rows)} extra part(s) requested on booking {booking_id}")
    return [await crud.get_extra_part(db, r.id) for r in rows]


async def resolve_extra_part(
    db: AsyncSession, part_id: str, customer_id: str, action: str,
    notes: str | None = None, now: datetime | None = None,
) -> ExtraPart:
    """Approve or reject one pending part. A part is resolved at most once."""
    decision = _ACTIONS.get((action or "").lower())
    if decision is None:
        raise ValidationFailed("Action must be 'approve' or 'reject'", action=action)
    now = now or utcnow()

    async with atomic(db):
        part = await crud.get_extra_part(db, part_id)
        if part is None:
            raise NotFound("Extra part not found", part_id=part_id)
        booking = await crud.get_booking(db, part.booking_id)
        if booking.customer_id != customer_id:
            raise Unauthorized("Only the booking's customer can review extra parts")

        result = await db.execute(
            update(ExtraPart)
            .where(ExtraPart.id == part_id, ExtraPart.status == ExtraPartStatus.PENDING.value)
            .values(
                status=decision.value,
                customer_action=decision.value,
                customer_notes=notes or None,
                action_timestamp=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ExtraPartAlreadyResolved(part_id=part_id, status=part.status)
        event = stage_event(
            db, EventType.EXTRA_PART_RESOLVED, booking.id, customer_id,
            part_id=part_id, status=decision.value, total_price=part.total_price,
        )

    await publish_committed(event)
    logger.info(f"Extra part {part_id} {decision.value}")
    return await crud.get_extra_part(db, part_id)


async def can_proceed_to_payment(db: AsyncSession, booking_id: str) -> PaymentReadiness:
    pending = await crud.count_pending_extra_parts(db, booking_id)
    return PaymentReadiness(can_proceed=pending == 0, pending_count=pending)
