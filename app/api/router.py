"""Central router that includes all sub-routers."""

from fastapi import APIRouter

from app.api.bookings import router as bookings_router
from app.api.bids import router as bids_router
from app.api.extra_parts import router as extra_parts_router
from app.api.contractors import router as contractors_router
from app.api.drafts import router as drafts_router
from app.api.reviews import router as reviews_router
from app.api.websocket import router as websocket_router

api_router = APIRouter()
api_router.include_router(bookings_router)
api_router.include_router(bids_router)
api_router.include_router(extra_parts_router)
api_router.include_router(contractors_router)
api_router.include_router(drafts_router)
api_router.include_router(reviews_router)
api_router.include_router(websocket_router)
