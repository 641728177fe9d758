"""Payment completion: the last transition of a job."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.db import crud
from app.db.transaction import atomic
from app.errors import (
    InvalidPaymentMethod, NotFound, Unauthorized, PaymentAlreadyComplete, WrongStage,
    ExtraPartsPending,
)
from app.models import Booking, Contractor, ExtraPart
from app.models.base import utcnow
from app.models.enums import BookingStage, ExtraPartStatus, PaymentStatus, EventType
from app.services.events import stage_event, publish_committed
from app.services.stage_machine import PAYABLE_STAGES

logger = logging.getLogger(__name__)

_settings = get_settings()


def _raise_for_state(booking: Booking, pending: int) -> None:
    if booking.payment_status == PaymentStatus.PAID.value or booking.stage == BookingStage.PAID.value:
        raise PaymentAlreadyComplete(booking_id=booking.id)
    if booking.stage not in PAYABLE_STAGES:
        raise WrongStage(
            f"Payment is not possible while the job is '{booking.stage}'", current_stage=booking.stage,
        )
    if pending:
        raise ExtraPartsPending(
            f"{pending} extra part(s) still need your approval", pending_count=pending,
        )


async def complete_payment(
    db: AsyncSession, booking_id: str, customer_id: str, method: str = "wallet",
    now: datetime | None = None,
) -> Booking:
    """Mark the booking paid and close it.

    The stage move, the pending-parts check and the final price are decided
    by one conditional UPDATE, so a part requested concurrently either lands
    before (and blocks payment) or is refused because the job is paid.
    """
    if method not in _settings.marketplace.payment_methods:
        raise InvalidPaymentMethod(
            f"Payment method '{method}' is not supported",
            method=method, allowed=_settings.marketplace.payment_methods,
        )
    now = now or utcnow()

    async with atomic(db):
        booking = await crud.get_booking(db, booking_id)
        if booking is None:
            raise NotFound("Booking not found", booking_id=booking_id)
        if booking.customer_id != customer_id:
            raise Unauthorized("Only the booking's customer can pay for it")
        _raise_for_state(booking, await crud.count_pending_extra_parts(db, booking_id))

        pending_parts = (
            select(ExtraPart.id)
            .where(ExtraPart.booking_id == booking_id, ExtraPart.status == ExtraPartStatus.PENDING.value)
            .exists()
        )
        result = await db.execute(
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.stage.in_([s.value for s in PAYABLE_STAGES]),
                Booking.payment_status != PaymentStatus.PAID.value,
                ~pending_parts,
            )
            .values(
                stage=BookingStage.PAID.value,
                payment_status=PaymentStatus.PAID.value,
                payment_method=method,
                paid_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(f"Payment for booking {booking_id} lost a race; re-checking state")
            booking = await crud.get_booking(db, booking_id)
            _raise_for_state(booking, await crud.count_pending_extra_parts(db, booking_id))
            raise PaymentAlreadyComplete(booking_id=booking_id)

        # Booking row is held by this transaction from here on.
        extras = await crud.sum_approved_extra_parts(db, booking_id)
        base = booking.agreed_price if booking.agreed_price is not None else (booking.estimated_price or 0.0)
        final_price = round(base + extras, 2)
        await db.execute(
            update(Booking)
            .where(Booking.id == booking_id)
            .values(final_price=final_price)
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            update(Contractor)
            .where(Contractor.id == booking.contractor_id)
            .values(total_jobs_completed=Contractor.total_jobs_completed + 1)
            .execution_options(synchronize_session=False)
        )
        event = stage_event(
            db, EventType.PAYMENT_COMPLETED, booking_id, customer_id,
            method=method, base_price=base, extras_total=extras, final_price=final_price,
        )

    await publish_committed(event)
    logger.info(f"Booking {booking_id} paid via {method}: {final_price:.2f}")
    return await crud.get_booking(db, booking_id)
