from datetime import datetime, timezone

import pytest

from app.errors import DuplicateBid
from app.schemas.event import DomainEvent
from app.services import bidding
from app.services.events import Deduplicator, EventBus, event_bus
from app.services.ws_manager import ConnectionManager
from app.api.websocket import can_watch
from tests.factories import CUSTOMER, make_assigned_booking, make_booking, make_contractor


def _event(event_id="evt-1", booking_id="bk-1"):
    return DomainEvent(
        id=event_id, type="bid_submitted", booking_id=booking_id, actor_id="con-1",
        payload={"amount": 100.0}, timestamp=datetime.now(timezone.utc),
    )


async def test_bus_delivers_by_booking_and_to_wildcard():
    bus = EventBus()
    seen = []

    async def on_booking(event):
        seen.append(("booking", event.id))

    async def on_all(event):
        seen.append(("all", event.id))

    bus.subscribe("bk-1", on_booking)
    bus.subscribe(None, on_all)

    await bus.publish(_event("e1", "bk-1"))
    await bus.publish(_event("e2", "bk-2"))

    assert seen == [("all", "e1"), ("booking", "e1"), ("all", "e2")]


async def test_unsubscribe_stops_delivery():
    bus = EventBus()
    seen = []

    async def handler(event):
        seen.append(event.id)

    unsubscribe = bus.subscribe("bk-1", handler)
    unsubscribe()
    await bus.publish(_event())

    assert seen == []
    assert bus.subscriber_count("bk-1") == 0


async def test_failing_subscriber_does_not_block_others():
    bus = EventBus()
    seen = []

    async def broken(event):
        raise RuntimeError("boom")

    async def healthy(event):
        seen.append(event.id)

    bus.subscribe("bk-1", broken)
    bus.subscribe("bk-1", healthy)
    await bus.publish(_event())

    assert seen == ["evt-1"]


async def test_deduplicator_drops_redelivery():
    seen = []

    async def handler(event):
        seen.append(event.id)

    dedup = Deduplicator(handler, max_remembered=2)
    await dedup(_event("a"))
    await dedup(_event("a"))
    await dedup(_event("b"))
    await dedup(_event("c"))
    await dedup(_event("a"))  # evicted, so seen again

    assert seen == ["a", "b", "c", "a"]


async def test_events_published_after_commit(db):
    await make_contractor(db, "con-1")
    booking = await make_booking(db)
    received = []

    async def handler(event):
        received.append(event)

    unsubscribe = event_bus.subscribe(booking.id, handler)
    try:
        bid = await bidding.submit_bid(db, booking.id, "con-1", 100, 30)
        await bidding.accept_bid(db, bid.id, CUSTOMER)
    finally:
        unsubscribe()

    assert [e.type for e in received] == ["bid_submitted", "bid_accepted"]
    accepted = received[-1]
    assert accepted.booking_id == booking.id
    assert accepted.actor_id == CUSTOMER
    assert accepted.payload["bid_id"] == bid.id
    assert accepted.payload["rejected_bid_ids"] == []


async def test_failed_transition_publishes_nothing(db):
    await make_contractor(db, "con-1")
    booking = await make_booking(db)
    await bidding.submit_bid(db, booking.id, "con-1", 100, 30)
    received = []

    async def handler(event):
        received.append(event)

    unsubscribe = event_bus.subscribe(booking.id, handler)
    try:
        with pytest.raises(DuplicateBid):
            await bidding.submit_bid(db, booking.id, "con-1", 100, 30)
    finally:
        unsubscribe()

    assert received == []


class _FakeSocket:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def accept(self):
        pass

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)


async def test_ws_manager_forwards_events_and_drops_dead_sockets():
    manager = ConnectionManager()
    live, dead, other = _FakeSocket(), _FakeSocket(fail=True), _FakeSocket()
    await manager.connect("bk-1", live)
    await manager.connect("bk-1", dead)
    await manager.connect("bk-2", other)

    await manager.forward_event(_event("e1", "bk-1"))

    assert [m["id"] for m in live.sent] == ["e1"]
    assert live.sent[0]["payload"] == {"amount": 100.0}
    assert other.sent == []
    assert manager.connection_count("bk-1") == 1


async def test_event_stream_limited_to_booking_parties(db):
    booking = await make_assigned_booking(db)

    assert await can_watch(db, booking.id, CUSTOMER)
    assert await can_watch(db, booking.id, "con-1")
    assert not await can_watch(db, booking.id, "con-2")
    assert not await can_watch(db, booking.id, "")
    assert not await can_watch(db, "missing", CUSTOMER)
