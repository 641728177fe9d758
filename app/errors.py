"""Typed marketplace errors.

Every error carries a stable machine-readable ``code`` (the class name), a
``kind`` that tells callers how to react, a display message and optional
structured details. The HTTP layer turns these into ``{data, error}``
envelopes; nothing below the API raises HTTPException.
"""

from __future__ import annotations

import enum
from typing import Any


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    ELIGIBILITY = "eligibility"
    CONFLICT = "conflict"
    AUTHORIZATION = "authorization"
    INVARIANT = "invariant"
    NOT_FOUND = "not_found"


_HTTP_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.ELIGIBILITY: 409,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INVARIANT: 409,
}


class MarketplaceError(Exception):
    kind: ErrorKind = ErrorKind.VALIDATION
    default_message = "Request could not be completed"

    def __init__(self, message: str | None = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return type(self).__name__

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self.kind]

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "kind": self.kind.value,
            "message": self.message,
            "details": self.details,
        }


# ── Validation ────────────────────────────────────────────

class ValidationFailed(MarketplaceError):
    kind = ErrorKind.VALIDATION
    default_message = "Invalid request"


class InvalidAmount(ValidationFailed):
    default_message = "Bid amount must be greater than 0"


class InvalidEta(ValidationFailed):
    default_message = "ETA is outside the allowed range"


class InvalidPaymentMethod(ValidationFailed):
    default_message = "Unsupported payment method"


# ── Lookup / authorization ────────────────────────────────

class NotFound(MarketplaceError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Not found"


class Unauthorized(MarketplaceError):
    kind = ErrorKind.AUTHORIZATION
    default_message = "You are not allowed to perform this action"


# ── Eligibility ───────────────────────────────────────────

class BookingNotBiddable(MarketplaceError):
    kind = ErrorKind.ELIGIBILITY
    default_message = "This booking is no longer accepting bids"


class DuplicateBid(MarketplaceError):
    kind = ErrorKind.ELIGIBILITY
    default_message = "You have already submitted a bid for this booking"


class ServiceMismatch(MarketplaceError):
    kind = ErrorKind.ELIGIBILITY
    default_message = "This booking is not for your service type"


class ContractorUnavailable(MarketplaceError):
    kind = ErrorKind.ELIGIBILITY
    default_message = "Your account is currently unavailable for new bookings"


class BookingNotActive(MarketplaceError):
    kind = ErrorKind.ELIGIBILITY
    default_message = "This booking is not an active job"


class ReschedulePending(MarketplaceError):
    kind = ErrorKind.ELIGIBILITY
    default_message = "A reschedule request is already awaiting the customer"


class BookingNotReviewable(MarketplaceError):
    kind = ErrorKind.ELIGIBILITY
    default_message = "Only paid jobs can be reviewed"


# ── Concurrency conflicts ─────────────────────────────────

class BidExpired(MarketplaceError):
    kind = ErrorKind.CONFLICT
    default_message = "This bid has expired"


class BidAlreadyResolved(MarketplaceError):
    kind = ErrorKind.CONFLICT
    default_message = "This bid has already been processed"


class BookingAlreadyAssigned(MarketplaceError):
    kind = ErrorKind.CONFLICT
    default_message = "Another bid was accepted for this booking"


class InvalidStageTransition(MarketplaceError):
    kind = ErrorKind.CONFLICT
    default_message = "The job cannot move to that stage from its current stage"


class WrongStage(MarketplaceError):
    kind = ErrorKind.CONFLICT
    default_message = "The job is not ready for payment"


class PaymentAlreadyComplete(MarketplaceError):
    kind = ErrorKind.CONFLICT
    default_message = "This booking has already been paid"


class BookingNotCancellable(MarketplaceError):
    kind = ErrorKind.CONFLICT
    default_message = "Only bookings still looking for a contractor can be cancelled"


class ExtraPartAlreadyResolved(MarketplaceError):
    kind = ErrorKind.CONFLICT
    default_message = "This extra part has already been reviewed"


class RescheduleAlreadyResolved(MarketplaceError):
    kind = ErrorKind.CONFLICT
    default_message = "This reschedule request has already been handled"


class ContractorExists(MarketplaceError):
    kind = ErrorKind.CONFLICT
    default_message = "A contractor profile already exists for this account"


class ReviewExists(MarketplaceError):
    kind = ErrorKind.CONFLICT
    default_message = "This booking has already been reviewed"


class ReviewResponseExists(MarketplaceError):
    kind = ErrorKind.CONFLICT
    default_message = "You have already responded to this review"


# ── Invariants ────────────────────────────────────────────

class ExtraPartsPending(MarketplaceError):
    kind = ErrorKind.INVARIANT
    default_message = "Extra parts require customer approval"
