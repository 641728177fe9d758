"""Booking stage table: ordering, adjacency and display mapping.

The stored ``stage`` is the only source of truth. The legacy ``status``
strings the client UI still understands are derived here, never stored.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.errors import ValidationFailed
from app.models.enums import BookingStage

S = BookingStage

STAGE_ORDER: tuple[BookingStage, ...] = (
    S.FINDING_CONTRACTOR,
    S.ASSIGNED,
    S.ARRIVING,
    S.WORK_STARTED,
    S.IN_PROGRESS,
    S.WORK_COMPLETED,
    S.AWAITING_PAYMENT,
    S.PAID,
)

# Transitions the assigned contractor drives through advance_stage.
NEXT_STAGE: dict[BookingStage, BookingStage] = {
    S.ASSIGNED: S.ARRIVING,
    S.ARRIVING: S.WORK_STARTED,
    S.WORK_STARTED: S.IN_PROGRESS,
    S.IN_PROGRESS: S.WORK_COMPLETED,
    S.WORK_COMPLETED: S.AWAITING_PAYMENT,
}

BIDDABLE_STAGES = frozenset({S.FINDING_CONTRACTOR})
CANCELLABLE_STAGES = frozenset({S.FINDING_CONTRACTOR})
ACTIVE_STAGES = frozenset({
    S.ASSIGNED, S.ARRIVING, S.WORK_STARTED, S.IN_PROGRESS,
    S.WORK_COMPLETED, S.AWAITING_PAYMENT,
})
PAYABLE_STAGES = frozenset({S.WORK_COMPLETED, S.AWAITING_PAYMENT})
RESCHEDULABLE_STAGES = frozenset({S.ASSIGNED, S.ARRIVING})

LEGACY_ALIASES: dict[str, BookingStage] = {
    "pending_bids": S.FINDING_CONTRACTOR,
    "contractor_found": S.ASSIGNED,
    "job_started": S.WORK_STARTED,
    "completed": S.WORK_COMPLETED,
}


@dataclass(frozen=True)
class StageDisplay:
    status: str  # legacy status string mirrored to older clients
    label: str
    progress: int  # percent


_DISPLAY: dict[BookingStage, StageDisplay] = {
    S.FINDING_CONTRACTOR: StageDisplay("finding_contractor", "Finding a contractor", 0),
    S.ASSIGNED: StageDisplay("assigned", "Contractor assigned", 14),
    S.ARRIVING: StageDisplay("assigned", "Contractor on the way", 28),
    S.WORK_STARTED: StageDisplay("job_started", "Work started", 42),
    S.IN_PROGRESS: StageDisplay("in_progress", "Work in progress", 57),
    S.WORK_COMPLETED: StageDisplay("completed", "Work completed", 71),
    S.AWAITING_PAYMENT: StageDisplay("awaiting_payment", "Awaiting payment", 86),
    S.PAID: StageDisplay("paid", "Paid", 100),
    S.CANCELLED: StageDisplay("cancelled", "Cancelled", 0),
}


def parse_stage(value: str | BookingStage) -> BookingStage:
    """Accept a canonical stage or one of the legacy status aliases."""
    if isinstance(value, BookingStage):
        return value
    if value in LEGACY_ALIASES:
        return LEGACY_ALIASES[value]
    try:
        return BookingStage(value)
    except ValueError:
        raise ValidationFailed(f"Unknown stage '{value}'", stage=value)


def stage_index(stage: BookingStage) -> int:
    """Position in the forward order; cancelled sorts before everything."""
    if stage == S.CANCELLED:
        return -1
    return STAGE_ORDER.index(stage)


def next_stage(stage: BookingStage) -> BookingStage | None:
    return NEXT_STAGE.get(stage)


def is_adjacent(current: BookingStage, target: BookingStage) -> bool:
    return NEXT_STAGE.get(current) == target


def display_for(stage: str | BookingStage) -> StageDisplay:
    return _DISPLAY[parse_stage(stage)]
