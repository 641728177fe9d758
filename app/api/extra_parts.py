"""Extra parts API: contractor requests, customer review."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.responses import ok
from app.db import crud
from app.db.engine import get_db
from app.dependencies import get_actor_id
from app.errors import NotFound, Unauthorized
from app.schemas.envelope import Envelope
from app.schemas.extra_part import ExtraPartsCreate, ExtraPartResolve, ExtraPartRead
from app.services import extra_parts

router = APIRouter(prefix="/api", tags=["extra_parts"])


@router.post(
    "/bookings/{booking_id}/extra-parts",
    response_model=Envelope[list[ExtraPartRead]],
    status_code=201,
)
async def request_extra_parts(
    booking_id: str,
    body: ExtraPartsCreate,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    parts = await extra_parts.request_extra_parts(
        db, booking_id, actor_id, [p.model_dump() for p in body.parts],
    )
    return ok(ExtraPartRead, parts)


@router.get("/bookings/{booking_id}/extra-parts", response_model=Envelope[list[ExtraPartRead]])
async def list_extra_parts(
    booking_id: str,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    booking = await crud.get_booking(db, booking_id)
    if booking is None:
        raise NotFound("Booking not found", booking_id=booking_id)
    if actor_id not in (booking.customer_id, booking.contractor_id):
        raise Unauthorized("You are not a party to this booking")
    return ok(ExtraPartRead, await crud.list_extra_parts(db, booking_id))


@router.post("/extra-parts/{part_id}/resolve", response_model=Envelope[ExtraPartRead])
async def resolve_extra_part(
    part_id: str,
    body: ExtraPartResolve,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    part = await extra_parts.resolve_extra_part(db, part_id, actor_id, body.action, body.notes)
    return ok(ExtraPartRead, part)
