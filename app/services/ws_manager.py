"""WebSocket connection manager for real-time booking updates."""

from __future__ import annotations

import logging

from fastapi import WebSocket

from app.schemas.event import DomainEvent

logger = logging.getLogger(__name__)


class ConnectionManager:
    def __init__(self):
        self._connections: dict[str, list[WebSocket]] = {}

    async def connect(self, booking_id: str, websocket: WebSocket):
        await websocket.accept()
        self._connections.setdefault(booking_id, []).append(websocket)

    def disconnect(self, booking_id: str, websocket: WebSocket):
        conns = self._connections.get(booking_id, [])
        if websocket in conns:
            conns.remove(websocket)
        if not conns:
            self._connections.pop(booking_id, None)

    def connection_count(self, booking_id: str) -> int:
        return len(self._connections.get(booking_id, []))

    async def broadcast(self, booking_id: str, message: dict):
        """Send a JSON message to all clients watching a booking."""
        conns = self._connections.get(booking_id, [])
        dead = []
        for ws in conns:
            try:
                await ws.send_json(message)
            except Exception:
                dead.append(ws)
        for ws in dead:
            logger.info(f"Dropping dead websocket for booking {booking_id}")
            self.disconnect(booking_id, ws)

    async def forward_event(self, event: DomainEvent):
        """Event bus subscriber: push every booking event to its watchers."""
        await self.broadcast(event.booking_id, event.model_dump(mode="json"))


ws_manager = ConnectionManager()
