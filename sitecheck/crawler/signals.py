"""Typed browser signals and the single-consumer channel that carries them.

Browser event callbacks never touch crawl state; they post one of these
records onto a SignalChannel, which the crawl driver drains between steps.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class ResponseSignal:
    url: str
    status: int
    resource_type: str
    page_url: str
    content_type: Optional[str] = None


@dataclass(frozen=True)
class RequestFailedSignal:
    url: str
    resource_type: str
    failure: str
    page_url: str


@dataclass(frozen=True)
class ConsoleSignal:
    level: str
    text: str
    page_url: str
    location_url: str = ""


@dataclass(frozen=True)
class PageErrorSignal:
    message: str
    page_url: str


BrowserSignal = Union[ResponseSignal, RequestFailedSignal, ConsoleSignal, PageErrorSignal]


class SignalChannel:
    """Unbounded FIFO of BrowserSignal with a non-blocking drain."""

    def __init__(self):
        self._queue: asyncio.Queue[BrowserSignal] = asyncio.Queue()

    def post(self, signal: BrowserSignal) -> None:
        self._queue.put_nowait(signal)

    def drain(self) -> list[BrowserSignal]:
        """Remove and return every pending signal, oldest first."""
        signals: list[BrowserSignal] = []
        while True:
            try:
                signals.append(self._queue.get_nowait())
            except asyncio.QueueEmpty:
                return signals

    def __len__(self) -> int:
        return self._queue.qsize()
