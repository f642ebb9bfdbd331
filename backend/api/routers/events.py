"""Server-Sent Events stream so open schedule views refresh after edits."""
import asyncio
import json
import logging
import threading
from typing import AsyncGenerator, Dict, List, Optional, Tuple

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

_logger = logging.getLogger('escala.api')

router = APIRouter()

EVENT_TYPES = ('employee_changed', 'holiday_changed', 'schedule_generated', 'schedule_changed')
KEEPALIVE_SECONDS = 25.0
QUEUE_SIZE = 50

# One (loop, queue) pair per connected client
_lock = threading.Lock()
_subscribers: List[Tuple[asyncio.AbstractEventLoop, asyncio.Queue]] = []


def subscriber_count() -> int:
    with _lock:
        return len(_subscribers)


def _deliver(queue: asyncio.Queue, payload: Dict) -> None:
    # Slow clients lose the oldest event rather than blocking writers
    if queue.full():
        queue.get_nowait()
    queue.put_nowait(payload)


def broadcast(event_type: str, data: Optional[Dict] = None) -> None:
    """Queue an event for every connected client.

    Safe to call from the sync endpoints, which run in the threadpool.
    """
    payload = {"type": event_type, "data": data or {}}
    with _lock:
        alive = []
        for loop, queue in _subscribers:
            try:
                loop.call_soon_threadsafe(_deliver, queue, payload)
            except RuntimeError:
                # loop already closed
                continue
            alive.append((loop, queue))
        _subscribers[:] = alive
        count = len(alive)
    if count:
        _logger.debug("SSE broadcast: %s to %d clients", event_type, count)


def _format(event_type: str, data: Dict) -> str:
    return f"event: {event_type}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


async def _event_stream(request: Request, loop: asyncio.AbstractEventLoop,
                        queue: asyncio.Queue) -> AsyncGenerator[str, None]:
    try:
        yield _format("connected", {})
        while not await request.is_disconnected():
            try:
                payload = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield _format(payload["type"], payload["data"])
    finally:
        with _lock:
            if (loop, queue) in _subscribers:
                _subscribers.remove((loop, queue))
        _logger.debug("SSE client disconnected, %d remaining", subscriber_count())


@router.get("/api/events", tags=["Events"], summary="SSE event stream", description=(
    "Stream of change notifications.\n\n"
    "Events: `connected`, " + ", ".join(f"`{t}`" for t in EVENT_TYPES)
))
async def sse_stream(request: Request):
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue(maxsize=QUEUE_SIZE)
    with _lock:
        _subscribers.append((loop, queue))
    _logger.debug("SSE client connected, %d total", subscriber_count())
    return StreamingResponse(
        _event_stream(request, loop, queue),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
