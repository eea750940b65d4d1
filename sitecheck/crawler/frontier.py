"""Crawl frontier — BFS queue, visited/checked sets and the page caps."""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Iterator

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 1000
DEFAULT_BATCH_SIZE = 100


class Frontier:
    """FIFO frontier with per-URL state Undiscovered -> Queued -> Visited|Checked.

    Pages end in ``visited``; non-page resources end in ``checked``. Neither
    transition is reversible, and a URL that is queued, visited or checked is
    never queued again. Only ``visited`` removes a queued URL from batches: a
    URL the detection engine already checked may still be a page to navigate,
    so the caller decides whether a checked resource is skipped.
    """

    def __init__(self, max_pages: int = DEFAULT_MAX_PAGES, batch_size: int = DEFAULT_BATCH_SIZE):
        self.max_pages = max_pages
        self.batch_size = batch_size
        self._queue: deque[str] = deque()
        self._queued: set[str] = set()
        self.visited: set[str] = set()
        self.checked: set[str] = set()

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def remaining(self) -> int:
        return len(self._queue)

    @property
    def pages_visited(self) -> int:
        return len(self.visited)

    @property
    def cap_reached(self) -> bool:
        return len(self.visited) >= self.max_pages

    def is_seen(self, url: str) -> bool:
        return url in self._queued or url in self.visited or url in self.checked

    def enqueue(self, url: str) -> bool:
        """Queue a URL unless it was ever queued, visited or checked."""
        if self.is_seen(url):
            return False
        self._queued.add(url)
        self._queue.append(url)
        return True

    def is_checked(self, url: str) -> bool:
        return url in self.checked

    def mark_visited(self, url: str) -> None:
        self.visited.add(url)

    def mark_checked(self, url: str) -> bool:
        """Record a resource as evaluated. Returns False if it already was."""
        if url in self.checked:
            return False
        self.checked.add(url)
        return True

    def next_batch(self, should_stop: Callable[[], bool] = lambda: False) -> Iterator[str]:
        """Yield up to ``batch_size`` page URLs to visit.

        The caller must ``mark_visited`` (pages) or ``mark_checked`` (resources)
        each URL it receives. Only visited pages count toward the batch, so
        resources handled inline do not shorten it. Iteration stops early when
        the frontier empties, the page cap is hit or ``should_stop()`` is true.
        """
        start = len(self.visited)
        while self._queue and not self.cap_reached and not should_stop():
            if len(self.visited) - start >= self.batch_size:
                return
            url = self._queue.popleft()
            if url in self.visited:
                continue
            yield url
