"""Booking event outbox and in-process publish/subscribe bus.

Transitions stage a ``BookingEvent`` row in the same transaction as the
state change and publish it only after commit. Subscribers are keyed by
booking id (or ``None`` for every booking). Delivery is at-least-once, so
subscribers that care wrap their handler in ``Deduplicator``.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Any, Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import new_id, utcnow, as_utc
from app.models.enums import EventType
from app.models.event import BookingEvent
from app.schemas.event import DomainEvent

logger = logging.getLogger(__name__)

Handler = Callable[[DomainEvent], Awaitable[None]]


class EventBus:
    def __init__(self):
        self._subscribers: dict[str | None, list[Handler]] = {}

    def subscribe(self, booking_id: str | None, handler: Handler) -> Callable[[], None]:
        """Register a handler; returns a callable that removes it again."""
        self._subscribers.setdefault(booking_id, []).append(handler)

        def _unsubscribe():
            handlers = self._subscribers.get(booking_id, [])
            if handler in handlers:
                handlers.remove(handler)
            if not handlers:
                self._subscribers.pop(booking_id, None)

        return _unsubscribe

    def subscriber_count(self, booking_id: str | None = None) -> int:
        return len(self._subscribers.get(booking_id, []))

    async def publish(self, event: DomainEvent) -> None:
        handlers = [
            *self._subscribers.get(None, []),
            *self._subscribers.get(event.booking_id, []),
        ]
        for handler in handlers:
            try:
                await handler(event)
            except Exception:
                logger.exception(f"Event subscriber failed for {event.type} {event.id}")


event_bus = EventBus()


class Deduplicator:
    """Wrap a handler so a redelivered event id is processed only once."""

    def __init__(self, handler: Handler, max_remembered: int = 4096):
        self._handler = handler
        self._seen: OrderedDict[str, None] = OrderedDict()
        self._max = max_remembered

    async def __call__(self, event: DomainEvent) -> None:
        if event.id in self._seen:
            return
        self._seen[event.id] = None
        if len(self._seen) > self._max:
            self._seen.popitem(last=False)
        await self._handler(event)


def stage_event(
    db: AsyncSession,
    event_type: EventType,
    booking_id: str,
    actor_id: str,
    **payload: Any,
) -> BookingEvent:
    """Add an outbox row to the current transaction (no commit)."""
    row = BookingEvent(
        id=new_id(),
        created_at=utcnow(),
        type=event_type.value,
        booking_id=booking_id,
        actor_id=actor_id,
        payload=payload,
    )
    db.add(row)
    return row


def to_domain_event(row: BookingEvent) -> DomainEvent:
    return DomainEvent(
        id=row.id,
        type=row.type,
        booking_id=row.booking_id,
        actor_id=row.actor_id,
        payload=row.payload or {},
        timestamp=as_utc(row.created_at),
    )


async def publish_committed(*rows: BookingEvent) -> None:
    for row in rows:
        await event_bus.publish(to_domain_event(row))
