import asyncio

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from space_together.auth.dependencies import get_current_user
from space_together.auth.schemas import UserClaims
from space_together.core.events import DomainEvent, EventBus, get_event_bus
from space_together.core.schemas import CountResponse

router = APIRouter(prefix="/events", tags=["events"])

KEEP_ALIVE_SECONDS = 15.0
KEEP_ALIVE_FRAME = ": keep-alive\n\n"


async def event_frames(request: Request, bus: EventBus, keep_alive: float = KEEP_ALIVE_SECONDS):
    """Yield the connected frame, then queued events until the client goes away."""
    subscriber_id, queue = await bus.subscribe()
    try:
        yield DomainEvent.connected(subscriber_id).to_frame()
        while True:
            if await request.is_disconnected():
                break
            try:
                yield await asyncio.wait_for(queue.get(), timeout=keep_alive)
            except asyncio.TimeoutError:
                yield KEEP_ALIVE_FRAME
    finally:
        await bus.unsubscribe(subscriber_id)


@router.get("/stream")
async def stream_events(
    request: Request,
    _: UserClaims = Depends(get_current_user),
    bus: EventBus = Depends(get_event_bus),
) -> StreamingResponse:
    return StreamingResponse(
        event_frames(request, bus),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/stream/clients/count", response_model=CountResponse)
async def count_stream_clients(
    _: UserClaims = Depends(get_current_user),
    bus: EventBus = Depends(get_event_bus),
) -> CountResponse:
    return CountResponse(count=bus.subscribers_count())
