"""Pydantic request/response schemas."""

from app.schemas.booking import (
    BookingCreate, BookingCancel, BookingRead, StageAdvance, StagePhotoRead,
    PaymentCreate, PaymentReadinessRead,
)
from app.schemas.bid import Material, BidCreate, BidReject, BidRead, EligibilityRead, BidAcceptRead
from app.schemas.extra_part import ExtraPartItem, ExtraPartsCreate, ExtraPartResolve, ExtraPartRead
from app.schemas.contractor import ContractorCreate, ContractorUpdate, ContractorRead
from app.schemas.reschedule import RescheduleCreate, RescheduleResolve, RescheduleRead
from app.schemas.review import (
    ReviewCreate, ReviewResponseCreate, ReviewRead, ReviewEligibilityRead, RatingSummaryRead,
)
from app.schemas.draft import BookingDraft, BidDraft
from app.schemas.event import DomainEvent
from app.schemas.envelope import Envelope, ErrorBody

__all__ = [
    "BookingCreate", "BookingCancel", "BookingRead", "StageAdvance", "StagePhotoRead",
    "PaymentCreate", "PaymentReadinessRead",
    "Material", "BidCreate", "BidReject", "BidRead", "EligibilityRead", "BidAcceptRead",
    "ExtraPartItem", "ExtraPartsCreate", "ExtraPartResolve", "ExtraPartRead",
    "ContractorCreate", "ContractorUpdate", "ContractorRead",
    "RescheduleCreate", "RescheduleResolve", "RescheduleRead",
    "ReviewCreate", "ReviewResponseCreate", "ReviewRead", "ReviewEligibilityRead", "RatingSummaryRead",
    "BookingDraft", "BidDraft",
    "DomainEvent",
    "Envelope", "ErrorBody",
]
