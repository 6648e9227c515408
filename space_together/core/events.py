"""In-process domain event bus feeding the server-sent events stream.

Delivery is best effort: every subscriber owns a bounded queue, a full queue
means the subscriber is too slow and it is dropped on the spot.
"""
import asyncio
import functools
import itertools
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

from pydantic import BaseModel, Field

from space_together.core.config import settings
from space_together.core.enums import EntityKind, EventType
from space_together.db.document import Document, UtcDatetime, utc_now

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


class DomainEvent(BaseModel):
    event_type: EventType
    entity_type: str
    entity_id: Optional[str] = None
    data: Any = None
    timestamp: UtcDatetime = Field(default_factory=utc_now)

    @classmethod
    def for_entity(cls, kind: EntityKind, event_type: EventType, entity: Any) -> "DomainEvent":
        entity_id = None
        if isinstance(entity, Document):
            data = entity.to_response()
            entity_id = data.get("id")
        elif isinstance(entity, BaseModel):
            data = entity.model_dump(mode="json")
            entity_id = data.get("id")
        else:
            data = entity
            if isinstance(entity, dict) and entity.get("id") is not None:
                entity_id = str(entity["id"])
        return cls(event_type=event_type, entity_type=kind.value, entity_id=entity_id, data=data)

    @classmethod
    def connected(cls, client_id: str) -> "DomainEvent":
        return cls(
            event_type=EventType.CONNECTED,
            entity_type=EntityKind.SYSTEM.value,
            data={"message": "Connected to real-time event stream", "client_id": client_id},
        )

    def to_frame(self) -> str:
        return f"data: {self.model_dump_json(exclude_none=True)}\n\n"


class EventBus:
    def __init__(self, buffer_size: int = 100) -> None:
        self._buffer_size = buffer_size
        self._subscribers: Dict[str, "asyncio.Queue[str]"] = {}
        self._lock = asyncio.Lock()
        self._ids = itertools.count(1)

    async def subscribe(self) -> Tuple[str, "asyncio.Queue[str]"]:
        subscriber_id = f"client-{next(self._ids)}"
        queue: "asyncio.Queue[str]" = asyncio.Queue(maxsize=self._buffer_size)
        async with self._lock:
            self._subscribers[subscriber_id] = queue
        logger.info("Event stream client %s connected (%d total)", subscriber_id, len(self._subscribers))
        return subscriber_id, queue

    async def unsubscribe(self, subscriber_id: str) -> None:
        async with self._lock:
            removed = self._subscribers.pop(subscriber_id, None)
        if removed is not None:
            logger.info("Event stream client %s disconnected", subscriber_id)

    async def broadcast(self, event: DomainEvent) -> int:
        """Send ``event`` to every subscriber without blocking. Returns the number reached."""
        frame = event.to_frame()
        dead: List[str] = []
        delivered = 0
        for subscriber_id, queue in list(self._subscribers.items()):
            try:
                queue.put_nowait(frame)
                delivered += 1
            except asyncio.QueueFull:
                dead.append(subscriber_id)
        if dead:
            async with self._lock:
                for subscriber_id in dead:
                    self._subscribers.pop(subscriber_id, None)
            logger.warning("Evicted %d slow event stream client(s): %s", len(dead), ", ".join(dead))
        return delivered

    def subscribers_count(self) -> int:
        return len(self._subscribers)


event_bus = EventBus(settings.event_buffer_size)


def get_event_bus() -> EventBus:
    return event_bus


async def publish(kind: EntityKind, event_type: EventType, entity: Any) -> None:
    await event_bus.broadcast(DomainEvent.for_entity(kind, event_type, entity))


def emits(kind: EntityKind, event_type: EventType) -> Callable[[F], F]:
    """Publish the wrapped coroutine's result once it returns successfully."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            result = await func(*args, **kwargs)
            await publish(kind, event_type, result)
            return result

        return wrapper  # type: ignore[return-value]

    return decorator
