"""Job stage progression after a contractor is assigned."""

from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import crud
from app.db.transaction import atomic
from app.errors import (
    ValidationFailed, NotFound, Unauthorized, BookingNotActive, InvalidStageTransition,
)
from app.models import Booking, StagePhoto
from app.models.base import new_id
from app.models.enums import BookingStage, EventType, PhotoType
from app.services.events import stage_event, publish_committed
from app.services.stage_machine import ACTIVE_STAGES, parse_stage, is_adjacent, next_stage

logger = logging.getLogger(__name__)


def _validate_evidence(evidence: dict[str, list[str]] | None) -> list[tuple[str, str]]:
    photos = []
    for photo_type, urls in (evidence or {}).items():
        try:
            kind = PhotoType(photo_type).value
        except ValueError:
            raise ValidationFailed(f"Unknown photo type '{photo_type}'", photo_type=photo_type)
        for url in urls or []:
            if not isinstance(url, str) or not url.strip():
                raise ValidationFailed("Photo references must be non-empty URLs")
            photos.append((kind, url.strip()))
    return photos


async def advance_stage(
    db: AsyncSession,
    booking_id: str,
    contractor_id: str,
    target_stage: str | BookingStage,
    evidence: dict[str, list[str]] | None = None,
) -> Booking:
    """Move the job exactly one stage forward, optionally attaching photos.

    The write is conditional on the stage read here, so a delayed or
    duplicated request that arrives after the stage moved on fails instead of
    rewinding or skipping.
    """
    target = parse_stage(target_stage)
    photos = _validate_evidence(evidence)

    async with atomic(db):
        booking = await crud.get_booking(db, booking_id)
        if booking is None:
            raise NotFound("Booking not found", booking_id=booking_id)
        if booking.contractor_id != contractor_id:
            raise Unauthorized("Only the assigned contractor can update this job")
        current = BookingStage(booking.stage)
        if current not in ACTIVE_STAGES:
            raise BookingNotActive(stage=current.value)
        if not is_adjacent(current, target):
            expected = next_stage(current)
            raise InvalidStageTransition(
                f"Cannot move from '{current.value}' to '{target.value}'",
                current_stage=current.value,
                target_stage=target.value,
                expected_stage=expected.value if expected else None,
            )

        result = await db.execute(
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.stage == current.value,
                Booking.contractor_id == contractor_id,
            )
            .values(stage=target.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(f"Stale stage update on booking {booking_id}: expected {current.value}")
            raise InvalidStageTransition(
                "The job stage changed while this update was in flight",
                current_stage=current.value,
                target_stage=target.value,
            )

        for photo_type, url in photos:
            db.add(StagePhoto(
                id=new_id(), booking_id=booking_id, stage=target.value,
                photo_type=photo_type, url=url, uploaded_by=contractor_id,
            ))

        event = stage_event(
            db, EventType.STAGE_ADVANCED, booking_id, contractor_id,
            from_stage=current.value, to_stage=target.value,
            photos=[{"photo_type": t, "url": u} for t, u in photos],
        )

    await publish_committed(event)
    logger.info(f"Booking {booking_id} advanced {current.value} -> {target.value}")
    return await crud.get_booking(db, booking_id)
