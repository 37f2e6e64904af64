"""SSE events endpoint -- streams filesystem changes under the projects root.

Uses ``sse-starlette`` to provide a standards-compliant Server-Sent Events
stream.  Each connection subscribes its own bounded queue to the scanner's
watcher; when the queue is full the newest events for that client are dropped
rather than blocking the dispatch loop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Request
from sse_starlette.sse import EventSourceResponse

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from pde.models import FileSystemEvent
    from pde.services.context import PDEServices

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["events"])

_services: PDEServices | None = None

# Seconds between disconnect checks while no event arrives.
_POLL_INTERVAL = 1.0


def set_services(services: PDEServices) -> None:
    """Wire the shared ``PDEServices`` into this router module.

    Args:
        services: The application-wide services.
    """
    global _services
    _services = services


def _get_services() -> PDEServices:
    """Return the wired services or raise if not initialised.

    Returns:
        The active ``PDEServices``.

    Raises:
        HTTPException: If the services have not been set yet.
    """
    if _services is None:
        raise HTTPException(status_code=503, detail="Services not initialised")
    return _services


async def _event_generator(request: Request, services: PDEServices) -> AsyncGenerator[dict[str, str], None]:
    """Yield filesystem events for one client until it disconnects.

    Args:
        request: The streaming request, polled for disconnection.
        services: Services holding the scanner whose watcher is subscribed.

    Yields:
        Dicts with ``event`` and ``data`` keys suitable for
        ``EventSourceResponse``.
    """
    queue: asyncio.Queue[FileSystemEvent] = asyncio.Queue(maxsize=services.settings.watch_queue_size)

    def _push(event: FileSystemEvent) -> None:
        try:
            queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("SSE client queue full, dropping event for %s", event.path)

    services.scanner.on_event(_push)
    try:
        while not await request.is_disconnected():
            try:
                event = await asyncio.wait_for(queue.get(), timeout=_POLL_INTERVAL)
            except TimeoutError:
                continue
            yield {"event": event.type.value, "data": event.model_dump_json()}
    finally:
        services.scanner.remove_event_callback(_push)
        logger.debug("SSE client disconnected")


@router.get("/events")
async def stream_events(request: Request) -> EventSourceResponse:
    """Open an SSE stream of filesystem events.

    Event names are ``create``, ``modify``, ``delete``, and ``rename``; each
    ``data`` field is a JSON-encoded ``FileSystemEvent``.  The stream stays
    empty while the watcher is not running.

    Returns:
        An ``EventSourceResponse`` that yields server-sent events.
    """
    services = _get_services()
    return EventSourceResponse(_event_generator(request, services))
