import pytest

from app.errors import ValidationFailed
from app.models.enums import BookingStage
from app.services.stage_machine import (
    STAGE_ORDER, display_for, is_adjacent, next_stage, parse_stage, stage_index,
)


def test_forward_chain_is_strict():
    assert next_stage(BookingStage.ASSIGNED) == BookingStage.ARRIVING
    assert next_stage(BookingStage.WORK_COMPLETED) == BookingStage.AWAITING_PAYMENT
    assert next_stage(BookingStage.AWAITING_PAYMENT) is None
    assert next_stage(BookingStage.FINDING_CONTRACTOR) is None
    assert next_stage(BookingStage.CANCELLED) is None


def test_adjacency_never_skips_or_rewinds():
    for i, stage in enumerate(STAGE_ORDER):
        for j, target in enumerate(STAGE_ORDER):
            if is_adjacent(stage, target):
                assert j == i + 1


@pytest.mark.parametrize("alias,canonical", [
    ("pending_bids", BookingStage.FINDING_CONTRACTOR),
    ("contractor_found", BookingStage.ASSIGNED),
    ("job_started", BookingStage.WORK_STARTED),
    ("completed", BookingStage.WORK_COMPLETED),
    ("in_progress", BookingStage.IN_PROGRESS),
])
def test_parse_stage_accepts_legacy_aliases(alias, canonical):
    assert parse_stage(alias) == canonical


def test_parse_stage_rejects_unknown():
    with pytest.raises(ValidationFailed):
        parse_stage("done-ish")


def test_display_progress_increases_along_the_chain():
    progress = [display_for(s).progress for s in STAGE_ORDER]
    assert progress == [0, 14, 28, 42, 57, 71, 86, 100]


def test_display_legacy_status():
    assert display_for("arriving").status == "assigned"
    assert display_for("work_started").status == "job_started"
    assert display_for("work_completed").status == "completed"
    assert display_for("cancelled").label == "Cancelled"


def test_cancelled_sorts_first():
    assert stage_index(BookingStage.CANCELLED) == -1
    assert stage_index(BookingStage.PAID) == len(STAGE_ORDER) - 1
