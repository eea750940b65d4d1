"""Crawl orchestrator — validates input, runs one crawl session, owns its event sink."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Optional

from sitecheck.crawler.browser import BrowserLauncher
from sitecheck.crawler.crawler import Crawler
from sitecheck.crawler.session import CrawlSession
from sitecheck.models.config import SiteCheckConfig
from sitecheck.models.events import CrawlEvent
from sitecheck.reporter.event_stream import EventSink, QueueEventSink
from sitecheck.url_utils import validate_start_url

logger = logging.getLogger(__name__)


class Orchestrator:
    """Entry point for callers: one ``run`` per crawl, cancellable through ``stop``."""

    def __init__(
        self,
        config: SiteCheckConfig,
        sink: Optional[EventSink] = None,
        launcher: Optional[BrowserLauncher] = None,
    ):
        self.config = config
        self.sink = sink
        self.launcher = launcher
        self.stop_event = asyncio.Event()
        self.crawler: Optional[Crawler] = None

    def stop(self) -> None:
        """Ask the running crawl to halt before its next URL."""
        logger.info("Stop requested")
        self.stop_event.set()

    def _resolve_inputs(
        self, start_url: Optional[str], sitemap_url: Optional[str]
    ) -> tuple[str, Optional[str]]:
        start = validate_start_url(start_url or self.config.start_url)
        sitemap = sitemap_url or self.config.sitemap_url or None
        return start, sitemap

    async def run(
        self, start_url: Optional[str] = None, sitemap_url: Optional[str] = None
    ) -> CrawlSession:
        """Crawl and push events to the configured sink.

        Raises InvalidStartUrl before any session starts if the start URL is
        missing or malformed. The sink is closed on every exit path.
        """
        if self.sink is None:
            raise ValueError("Orchestrator.run requires an event sink")
        start, sitemap = self._resolve_inputs(start_url, sitemap_url)
        self.crawler = Crawler(
            self.config, self.sink, launcher=self.launcher, stop_event=self.stop_event,
        )
        try:
            return await self.crawler.crawl(start, sitemap)
        finally:
            self.sink.close()

    def run_sync(
        self, start_url: Optional[str] = None, sitemap_url: Optional[str] = None
    ) -> CrawlSession:
        return asyncio.run(self.run(start_url, sitemap_url))

    async def stream(
        self, start_url: Optional[str] = None, sitemap_url: Optional[str] = None
    ) -> AsyncIterator[CrawlEvent]:
        """Run a crawl in the background and yield its events until the terminal one.

        If the consumer stops iterating early (a disconnected client), the
        crawl is stopped and awaited so the browser is released.
        """
        start, sitemap = self._resolve_inputs(start_url, sitemap_url)
        self.sink = QueueEventSink()
        task = asyncio.create_task(self.run(start, sitemap))
        try:
            async for event in self.sink:
                yield event
        finally:
            if not task.done():
                self.stop()
            await task


async def run_crawl(
    start_url: str,
    sitemap_url: Optional[str] = None,
    config: Optional[SiteCheckConfig] = None,
    sink: Optional[EventSink] = None,
    launcher: Optional[BrowserLauncher] = None,
) -> CrawlSession:
    """Convenience wrapper: one crawl with default config, events to ``sink``."""
    config = config or SiteCheckConfig()
    return await Orchestrator(config, sink, launcher=launcher).run(start_url, sitemap_url)
