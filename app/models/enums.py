"""Canonical status vocabularies.

Enums are stored as plain VARCHAR columns; the enum classes are the single
source of truth for the allowed values.
"""

from __future__ import annotations

import enum


class BookingStage(str, enum.Enum):
    FINDING_CONTRACTOR = "finding_contractor"
    ASSIGNED = "assigned"
    ARRIVING = "arriving"
    WORK_STARTED = "work_started"
    IN_PROGRESS = "in_progress"
    WORK_COMPLETED = "work_completed"
    AWAITING_PAYMENT = "awaiting_payment"
    PAID = "paid"
    CANCELLED = "cancelled"


class BookingMode(str, enum.Enum):
    SAVER = "saver"
    TACKLERS_CHOICE = "tacklers_choice"


class BidStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class ExtraPartStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentStatus(str, enum.Enum):
    UNPAID = "unpaid"
    PAID = "paid"


class PhotoType(str, enum.Enum):
    BEFORE = "before"
    DURING = "during"
    AFTER = "after"


class RescheduleStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class EventType(str, enum.Enum):
    BOOKING_CREATED = "booking_created"
    BOOKING_CANCELLED = "booking_cancelled"
    BID_SUBMITTED = "bid_submitted"
    BID_ACCEPTED = "bid_accepted"
    BID_REJECTED = "bid_rejected"
    BID_EXPIRED = "bid_expired"
    STAGE_ADVANCED = "stage_advanced"
    EXTRA_PARTS_REQUESTED = "extra_parts_requested"
    EXTRA_PART_RESOLVED = "extra_part_resolved"
    PAYMENT_COMPLETED = "payment_completed"
    RESCHEDULE_REQUESTED = "reschedule_requested"
    RESCHEDULE_RESOLVED = "reschedule_resolved"
    REVIEW_SUBMITTED = "review_submitted"
    REVIEW_RESPONDED = "review_responded"


# Bids in these states block the contractor from bidding again on the booking.
ACTIVE_BID_STATUSES = (BidStatus.PENDING.value, BidStatus.ACCEPTED.value)
