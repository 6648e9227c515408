import json

import pytest

from space_together.api.v1.events.router import KEEP_ALIVE_FRAME, event_frames
from space_together.core.enums import EntityKind, EventType
from space_together.core.events import DomainEvent, EventBus, emits, event_bus
from space_together.core.models import Sector


def _payload(frame: str) -> dict:
    assert frame.startswith("data: ") and frame.endswith("\n\n")
    return json.loads(frame[len("data: "):])


class FakeRequest:
    """Stands in for a Starlette request; disconnects after ``polls`` checks."""

    def __init__(self, polls: int) -> None:
        self.polls = polls

    async def is_disconnected(self) -> bool:
        self.polls -= 1
        return self.polls < 0


@pytest.mark.asyncio
async def test_broadcast_reaches_every_subscriber() -> None:
    bus = EventBus(buffer_size=10)
    _, first = await bus.subscribe()
    _, second = await bus.subscribe()

    sector = Sector(name="REB", username="reb")
    delivered = await bus.broadcast(DomainEvent.for_entity(EntityKind.SECTOR, EventType.CREATED, sector))

    assert delivered == 2
    for queue in (first, second):
        body = _payload(queue.get_nowait())
        assert body["event_type"] == "created"
        assert body["entity_type"] == "sector"
        assert body["data"]["username"] == "reb"


@pytest.mark.asyncio
async def test_full_subscriber_is_evicted() -> None:
    bus = EventBus(buffer_size=1)
    slow_id, _ = await bus.subscribe()
    await bus.subscribe()
    event = DomainEvent(event_type=EventType.UPDATED, entity_type="trade", data={})

    assert await bus.broadcast(event) == 2
    assert bus.subscribers_count() == 2
    assert await bus.broadcast(event) == 0
    assert bus.subscribers_count() == 0

    await bus.unsubscribe(slow_id)


@pytest.mark.asyncio
async def test_emits_publishes_after_success() -> None:
    subscriber_id, queue = await event_bus.subscribe()

    @emits(EntityKind.TRADE, EventType.DELETED)
    async def remove():
        return {"id": "abc", "name": "Gone"}

    try:
        assert await remove() == {"id": "abc", "name": "Gone"}
        body = _payload(queue.get_nowait())
        assert body["event_type"] == "deleted"
        assert body["entity_id"] == "abc"
    finally:
        await event_bus.unsubscribe(subscriber_id)


@pytest.mark.asyncio
async def test_stream_starts_with_connected_and_unsubscribes() -> None:
    bus = EventBus(buffer_size=10)
    frames = event_frames(FakeRequest(polls=1), bus, keep_alive=0.01)

    connected = _payload(await frames.__anext__())
    assert connected["event_type"] == "connected"
    assert connected["entity_type"] == "system"
    assert connected["data"]["message"] == "Connected to real-time event stream"
    assert bus.subscribers_count() == 1

    assert await frames.__anext__() == KEEP_ALIVE_FRAME
    with pytest.raises(StopAsyncIteration):
        await frames.__anext__()
    assert bus.subscribers_count() == 0
