"""Filesystem watcher -- republishes watchdog events as typed ``FileSystemEvent``s.

A watchdog ``Observer`` runs on its own thread and hands every raw event to the
asyncio loop through ``loop.call_soon_threadsafe``.  Events land in a bounded
queue that a single dispatch task drains, publishing each event to the
registered subscribers.

CRITICAL: watchdog callbacks run on background threads, NOT the asyncio event
loop.  Nothing in ``_WatchHandler`` may touch the queue directly.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from watchdog.events import FileSystemEvent as RawEvent
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from pde.models import FileSystemEvent, FileSystemEventType

logger = logging.getLogger(__name__)

EventCallback = Callable[[FileSystemEvent], None]

_EVENT_TYPES: dict[str, FileSystemEventType] = {
    "created": FileSystemEventType.CREATE,
    "modified": FileSystemEventType.MODIFY,
    "deleted": FileSystemEventType.DELETE,
    "moved": FileSystemEventType.RENAME,
}

# Wakes the dispatch loop so it can observe the stop flag.
_STOP = object()


def to_fs_event(raw: RawEvent) -> FileSystemEvent:
    """Map a watchdog event onto the dashboard's event model.

    Unknown watchdog event types (``opened``, ``closed``, ...) are reported as
    modifications.  ``is_directory`` is watchdog's own flag; the filesystem is not
    consulted, so this is safe to call on the event loop.

    Args:
        raw: Event delivered by the watchdog observer.

    Returns:
        The corresponding ``FileSystemEvent``.
    """
    path = raw.src_path.decode() if isinstance(raw.src_path, bytes) else str(raw.src_path)
    return FileSystemEvent(
        type=_EVENT_TYPES.get(raw.event_type, FileSystemEventType.MODIFY),
        path=path,
        timestamp=datetime.now(tz=UTC),
        is_directory=bool(raw.is_directory),
    )


class _WatchHandler(FileSystemEventHandler):
    """Forwards every raw event to a thread-safe callback."""

    def __init__(self, callback: Callable[[RawEvent], None]) -> None:
        super().__init__()
        self.callback = callback

    def on_any_event(self, event: RawEvent) -> None:
        self.callback(event)


class FileSystemWatcher:
    """Publish/subscribe channel for filesystem changes under one root.

    Attributes:
        root: Directory watched recursively.
        queue_size: Maximum number of undelivered events kept in memory.
    """

    def __init__(self, root: Path, queue_size: int = 1000) -> None:
        self.root = root
        self.queue_size = queue_size
        self._subscribers: list[EventCallback] = []
        self._observer: Observer | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: asyncio.Queue[object] | None = None
        self._dispatch_task: asyncio.Task[None] | None = None
        self._stopping = False

    @property
    def is_active(self) -> bool:
        """Whether the observer and dispatch loop are running."""
        return self._observer is not None

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, callback: EventCallback) -> None:
        """Register *callback* to receive every published event."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: EventCallback) -> None:
        """Remove *callback*; unknown callbacks are ignored."""
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def publish(self, event: FileSystemEvent) -> None:
        """Deliver *event* to every subscriber.

        A failing subscriber is logged and skipped so the remaining subscribers
        still receive the event.

        Args:
            event: The event to deliver.
        """
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception("Error in filesystem event callback %r", callback)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start watching :attr:`root`.

        Calling this while already watching logs a warning and does nothing.

        Raises:
            FileNotFoundError: If the root directory does not exist.
        """
        if self.is_active:
            logger.warning("File watcher already active for %s", self.root)
            return
        if not self.root.is_dir():
            raise FileNotFoundError(f"Watch root does not exist: {self.root}")

        # A previous dispatch loop still sees the stop flag and exits.
        await self.wait_stopped()

        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=self.queue_size)
        self._stopping = False

        observer = Observer()
        observer.schedule(_WatchHandler(self._on_raw_event), str(self.root), recursive=True)
        observer.start()
        self._observer = observer
        self._dispatch_task = asyncio.create_task(self._dispatch_loop(self._queue))
        logger.info("Started file system watcher for %s", self.root)

    def stop(self) -> None:
        """Stop watching.

        The dispatch loop finishes the event it is delivering, then exits on the
        next check of the stop flag.  Safe to call when not watching.
        """
        if not self.is_active:
            return

        logger.info("Stopping file system watcher for %s", self.root)
        self._stopping = True
        observer = self._observer
        self._observer = None
        if observer is not None:
            observer.stop()
            observer.join(timeout=5)

        queue = self._queue
        if queue is not None:
            try:
                queue.put_nowait(_STOP)
            except asyncio.QueueFull:
                # The loop sees the flag after its current event.
                pass

    async def wait_stopped(self) -> None:
        """Wait for the dispatch loop to exit after :meth:`stop`."""
        if self._dispatch_task is not None:
            await self._dispatch_task
            self._dispatch_task = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _on_raw_event(self, raw: RawEvent) -> None:
        """Thread-safe handoff from the observer thread to the event loop."""
        loop = self._loop
        if loop is None or self._stopping:
            return
        try:
            loop.call_soon_threadsafe(self._enqueue, raw)
        except RuntimeError:
            # Event loop already closed
            pass

    def _enqueue(self, raw: RawEvent) -> None:
        if self._queue is None or self._stopping:
            return
        try:
            self._queue.put_nowait(raw)
        except asyncio.QueueFull:
            logger.warning("File event queue full (%d), dropping event for %s", self.queue_size, raw.src_path)

    async def _dispatch_loop(self, queue: asyncio.Queue[object]) -> None:
        while not self._stopping:
            item = await queue.get()
            if item is _STOP or self._stopping:
                break
            event = to_fs_event(item)  # type: ignore[arg-type]
            logger.debug("File system event: %s - %s", event.type.value, event.path)
            self.publish(event)
        logger.info("File system watcher dispatch loop exited for %s", self.root)
