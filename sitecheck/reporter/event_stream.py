"""Event sinks — deliver crawl events to a caller.

Every sink follows the same contract: events are accepted until a terminal
(``done``/``error``) event or an explicit ``close()``; after that, further
events are dropped and ``close()`` is a no-op. This keeps the stream valid
when completion, failure and cancellation paths overlap.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from typing import AsyncIterator, Callable, Optional, Protocol, TextIO

from sitecheck.models.events import CrawlEvent

logger = logging.getLogger(__name__)


class EventSink(Protocol):
    def emit(self, event: CrawlEvent) -> bool: ...

    def close(self) -> None: ...


class BaseEventSink:
    """Close-once bookkeeping shared by all sinks. Subclasses implement ``_write``."""

    def __init__(self):
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(self, event: CrawlEvent) -> bool:
        """Deliver an event. Returns False if the sink was already closed."""
        with self._lock:
            if self._closed:
                logger.debug("Dropping %s event after close: %s", event.type, event.message)
                return False
            self._write(event)
            if event.is_terminal:
                self._closed = True
                self._on_close()
        return True

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._on_close()

    def _write(self, event: CrawlEvent) -> None:
        raise NotImplementedError

    def _on_close(self) -> None:
        pass


class NDJSONEventStream(BaseEventSink):
    """Writes one JSON object per line to a text stream."""

    def __init__(self, stream: TextIO):
        super().__init__()
        self.stream = stream

    def _write(self, event: CrawlEvent) -> None:
        self.stream.write(json.dumps(event.to_wire(), ensure_ascii=False) + "\n")
        self.stream.flush()


class CallbackEventSink(BaseEventSink):
    def __init__(self, callback: Callable[[CrawlEvent], None]):
        super().__init__()
        self.callback = callback

    def _write(self, event: CrawlEvent) -> None:
        self.callback(event)


class CollectingEventSink(BaseEventSink):
    """Keeps every event in memory."""

    def __init__(self):
        super().__init__()
        self.events: list[CrawlEvent] = []

    def _write(self, event: CrawlEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[CrawlEvent]:
        return [e for e in self.events if e.type == event_type]


class QueueEventSink(BaseEventSink):
    """Feeds an asyncio.Queue that a consumer iterates with ``async for``.

    Iteration ends after the terminal event, or when the sink is closed
    without one.
    """

    def __init__(self):
        super().__init__()
        self._queue: asyncio.Queue[Optional[CrawlEvent]] = asyncio.Queue()

    def _write(self, event: CrawlEvent) -> None:
        self._queue.put_nowait(event)

    def _on_close(self) -> None:
        self._queue.put_nowait(None)

    async def __aiter__(self) -> AsyncIterator[CrawlEvent]:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event
