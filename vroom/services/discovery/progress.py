"""Per-session progress channel.

Every component of a session (adapters, enrichment, the orchestrator)
emits onto one channel. Events are queued and handed to the caller's sink
by a single pump task, so the sink never sees concurrent writers.
"""

import asyncio
import inspect
from typing import Optional

from loguru import logger

from vroom.services.discovery.models import (
    CandidateFoundEvent,
    CandidateUpdatedEvent,
    CompleteEvent,
    DiscoverySummary,
    ErrorEvent,
    EventLevel,
    LogEvent,
    MergedEntity,
    ProgressSink,
)

_LOGURU_LEVELS = {
    EventLevel.INFO: "INFO",
    EventLevel.SUCCESS: "SUCCESS",
    EventLevel.WARN: "WARNING",
    EventLevel.ERROR: "ERROR",
}

_CLOSE = object()


class ProgressChannel:
    """Ordered, single-consumer event queue owned by one discovery session."""

    def __init__(self, sink: Optional[ProgressSink] = None):
        self._sink = sink
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._pump: Optional[asyncio.Task] = None
        self.events: list = []

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self):
        self._pump = asyncio.create_task(self._run())
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is not None and issubclass(exc_type, asyncio.CancelledError):
            self.abort()
            return
        self.close()
        if self._pump:
            await self._pump

    # ------------------------------------------------------------------
    # Emitters
    # ------------------------------------------------------------------

    def emit(self, event) -> None:
        """Queue an event. Dropped silently once the channel is closed."""
        if self._closed:
            return
        self._mirror(event)
        self.events.append(event)
        self._queue.put_nowait(event)

    def log(self, message: str, level: EventLevel = EventLevel.INFO) -> None:
        self.emit(LogEvent(message=message, level=level))

    def info(self, message: str) -> None:
        self.log(message, EventLevel.INFO)

    def success(self, message: str) -> None:
        self.log(message, EventLevel.SUCCESS)

    def warn(self, message: str) -> None:
        self.log(message, EventLevel.WARN)

    def candidate_found(self, entity: MergedEntity) -> None:
        self.emit(CandidateFoundEvent(entity=entity))

    def candidate_updated(self, entity: MergedEntity) -> None:
        self.emit(CandidateUpdatedEvent(entity=entity))

    def complete(self, entities: list[MergedEntity], summary: DiscoverySummary) -> None:
        self.emit(CompleteEvent(entities=entities, summary=summary))

    def error(self, message: str) -> None:
        self.emit(ErrorEvent(message=message))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Stop accepting events; the pump drains what is already queued."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSE)

    def abort(self) -> None:
        """Stop immediately without delivering queued events."""
        self._closed = True
        if self._pump and not self._pump.done():
            self._pump.cancel()

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            if event is _CLOSE:
                return
            await self._deliver(event)

    async def _deliver(self, event) -> None:
        if self._sink is None:
            return
        try:
            result = self._sink(event)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(f"Progress sink raised on {event.type} event: {e}")

    @staticmethod
    def _mirror(event) -> None:
        if isinstance(event, LogEvent):
            logger.log(_LOGURU_LEVELS[event.level], event.message)
        elif isinstance(event, ErrorEvent):
            logger.error(event.message)
        elif isinstance(event, CompleteEvent):
            logger.info(f"Discovery complete: {len(event.entities)} venues")
        else:
            logger.debug(f"{event.type}: {event.entity.name}")
