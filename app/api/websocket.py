from __future__ import annotations

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import crud
from app.db.engine import get_db
from app.services.ws_manager import ws_manager

router = APIRouter(tags=["websocket"])


async def can_watch(db: AsyncSession, booking_id: str, actor_id: str) -> bool:
    """Same parties as the REST event history: the customer and the assigned contractor."""
    if not actor_id:
        return False
    booking = await crud.get_booking(db, booking_id)
    return booking is not None and actor_id in (booking.customer_id, booking.contractor_id)


@router.websocket("/api/ws/bookings/{booking_id}")
async def booking_events_ws(
    websocket: WebSocket,
    booking_id: str,
    actor_id: str = Query(default=""),
    db: AsyncSession = Depends(get_db),
):
    # Header, or query param for browser clients.
    actor = (websocket.headers.get("x-actor-id") or actor_id).strip()
    if not await can_watch(db, booking_id, actor):
        await websocket.close(code=4003, reason="Not a party to this booking")
        return

    await ws_manager.connect(booking_id, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        ws_manager.disconnect(booking_id, websocket)
