"""SQLAlchemy ORM models.

All marketplace tables share one declarative Base and one database.
"""

from app.models.base import Base
from app.models.contractor import Contractor
from app.models.booking import Booking
from app.models.bid import Bid
from app.models.extra_part import ExtraPart
from app.models.stage_photo import StagePhoto
from app.models.reschedule import RescheduleRequest
from app.models.event import BookingEvent
from app.models.review import Review

__all__ = [
    "Base", "Contractor", "Booking", "Bid", "ExtraPart",
    "StagePhoto", "RescheduleRequest", "BookingEvent", "Review",
]
