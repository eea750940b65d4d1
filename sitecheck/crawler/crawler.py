"""Crawl driver — walks a site in the browser and reports broken resources."""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from typing import Optional

from sitecheck.errors import NavigationError, SitemapError
from sitecheck.models.config import SiteCheckConfig
from sitecheck.models.events import CrawlEvent
from sitecheck.models.findings import LinkReference
from sitecheck.models.site_model import LinkElement
from sitecheck.reporter.event_stream import EventSink
from sitecheck.url_utils import is_same_origin, resolve_url

from .browser import BrowserLauncher, BrowserPage, PlaywrightLauncher
from .classifier import ResourceClassifier
from .detector import DetectionEngine
from .frontier import Frontier
from .http_probe import HttpProbe
from .session import CrawlSession
from .signals import SignalChannel
from .sitemap import fetch_and_parse_sitemap

logger = logging.getLogger(__name__)

SEED_SOURCE = "(seed)"
SEED_LINK_TEXT = "(start url)"
SITEMAP_LINK_TEXT = "(sitemap)"

# Extra wall-clock allowance on top of the browser's own navigation timeout.
_NAVIGATION_GRACE_SECONDS = 5.0


class CrawlState(str, enum.Enum):
    IDLE = "idle"
    SEEDING = "seeding"
    BATCHING = "batching"
    DRAINING = "draining"
    DONE = "done"
    ERROR = "error"


class Crawler:
    """Runs one crawl session and pushes its events to a sink.

    The loop:

    1. Seed the frontier with the start URL and any same-origin sitemap URLs
    2. Pull a batch of URLs; HEAD-check non-page resources inline
    3. Navigate each page, feed browser signals to the detection engine
    4. Inspect <img> load state, extract links, register and queue them
    5. Repeat until the frontier is empty, the page cap is hit or stop is requested

    Exactly one terminal event (``done`` or ``error``) is emitted per session,
    and the browser is closed on every exit path.
    """

    def __init__(
        self,
        config: SiteCheckConfig,
        sink: EventSink,
        launcher: Optional[BrowserLauncher] = None,
        probe: Optional[HttpProbe] = None,
        stop_event: Optional[asyncio.Event] = None,
    ):
        self.config = config
        self.crawl_config = config.crawl
        self.sink = sink
        self.launcher = launcher or PlaywrightLauncher(
            headless=self.crawl_config.headless,
            user_agent=self.crawl_config.user_agent,
            wait_until=self.crawl_config.wait_until,
        )
        self._probe = probe
        self.stop_event = stop_event or asyncio.Event()
        self.classifier = ResourceClassifier(config.classifier)
        self.state = CrawlState.IDLE
        self.session: Optional[CrawlSession] = None

    def stop(self) -> None:
        self.stop_event.set()

    @property
    def stop_requested(self) -> bool:
        return self.stop_event.is_set()

    def _emit(self, event: CrawlEvent) -> None:
        self.sink.emit(event)

    def _log(self, message: str) -> None:
        self._emit(CrawlEvent.log(message))

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def crawl(self, start_url: str, sitemap_url: Optional[str] = None) -> CrawlSession:
        """Crawl from ``start_url`` and return the finished session state."""
        start_time = time.time()
        start_url = resolve_url(start_url, start_url) or start_url
        session = CrawlSession(
            start_url=start_url,
            frontier=Frontier(
                max_pages=self.crawl_config.max_pages,
                batch_size=self.crawl_config.batch_size,
            ),
        )
        self.session = session
        probe = self._probe or HttpProbe(
            head_timeout=self.crawl_config.head_timeout_seconds,
            get_timeout=self.crawl_config.sitemap_timeout_seconds,
            user_agent=self.crawl_config.user_agent,
        )
        detector = DetectionEngine(
            session, self.classifier, self._emit, probe=probe,
            report_lazy_images=self.crawl_config.report_lazy_images,
        )
        browser = None

        try:
            self.state = CrawlState.SEEDING
            logger.info("Starting crawl of %s", start_url)
            self._log("Starting crawler...")
            browser = await self.launcher.launch()
            page = await browser.new_page()
            channel = SignalChannel()
            page.subscribe(channel)

            await self._seed(session, probe, sitemap_url)

            self.state = CrawlState.BATCHING
            await self._run_batches(session, page, channel, detector)

            self.state = CrawlState.DRAINING
            detector.handle_signals(channel.drain())

            self.state = CrawlState.DONE
            self._emit(CrawlEvent.done(self._completion_message(session, time.time() - start_time)))
        except Exception as e:
            self.state = CrawlState.ERROR
            logger.error("Crawl failed: %s", e)
            self._emit(CrawlEvent.error(str(e)))
        finally:
            if browser is not None:
                await browser.close()
            if self._probe is None:
                await probe.aclose()

        return session

    def _completion_message(self, session: CrawlSession, duration: float) -> str:
        if self.stop_requested:
            prefix = "Crawl stopped by user."
        elif session.frontier.cap_reached and session.frontier.remaining:
            prefix = f"Crawl complete (page limit {session.frontier.max_pages} reached)."
        else:
            prefix = "Crawl complete."
        return (
            f"{prefix} Pages visited: {session.total_crawled}, "
            f"broken links: {session.broken_links_count}, "
            f"broken images: {session.broken_images_count}, "
            f"console errors: {session.console_errors_count} "
            f"({duration:.1f}s)"
        )

    async def _seed(
        self, session: CrawlSession, probe: HttpProbe, sitemap_url: Optional[str]
    ) -> None:
        """Register and queue the start URL, then the sitemap URLs."""
        session.registry.register(
            session.start_url,
            LinkReference(
                found_on_page=SEED_SOURCE, link_text=SEED_LINK_TEXT, element_context="seed",
            ),
        )
        session.frontier.enqueue(session.start_url)

        if not sitemap_url:
            return
        self._log(f"Loading sitemap: {sitemap_url}")
        try:
            urls = await fetch_and_parse_sitemap(sitemap_url, session.origin, probe)
        except SitemapError as e:
            logger.warning("Failed to load sitemap: %s", e)
            self._log(f"Failed to load sitemap: {e}")
            return

        added = 0
        for url in urls:
            url = resolve_url(url, url) or url
            session.registry.register(
                url,
                LinkReference(
                    found_on_page=sitemap_url,
                    link_text=SITEMAP_LINK_TEXT,
                    element_context="sitemap",
                ),
            )
            if session.frontier.enqueue(url):
                added += 1
        self._log(f"Added {added} URLs from sitemap")

    # ------------------------------------------------------------------
    # Batch loop
    # ------------------------------------------------------------------

    async def _run_batches(
        self,
        session: CrawlSession,
        page: BrowserPage,
        channel: SignalChannel,
        detector: DetectionEngine,
    ) -> None:
        frontier = session.frontier
        while frontier.remaining and not frontier.cap_reached and not self.stop_requested:
            for url in frontier.next_batch(lambda: self.stop_requested):
                if self.classifier.is_non_page_resource(url):
                    if frontier.is_checked(url):
                        continue
                    self._log(f"Checking resource: {url}")
                    await detector.check_resource(url)
                    continue
                await self._visit_page(session, page, channel, detector, url)

            self._log(f"Batch finished. Total pages crawled: {session.total_crawled}")
            if frontier.remaining:
                self._log(f"{frontier.remaining} URLs remaining in queue")

        if frontier.cap_reached and frontier.remaining:
            logger.warning(
                "Page limit of %d reached with %d URLs still queued",
                frontier.max_pages, frontier.remaining,
            )
            self._log(
                f"Reached page limit ({frontier.max_pages}); "
                f"{frontier.remaining} URLs left unvisited"
            )
        if self.stop_requested:
            self._log("Crawling stopped by user")

    async def _visit_page(
        self,
        session: CrawlSession,
        page: BrowserPage,
        channel: SignalChannel,
        detector: DetectionEngine,
        url: str,
    ) -> None:
        session.frontier.mark_visited(url)
        session.total_crawled += 1
        session.current_page_url = url
        logger.info("Crawling [%d/%d]: %s", session.total_crawled, session.frontier.max_pages, url)
        self._log(f"Crawling ({session.total_crawled}): {url}")

        timeout_ms = self.crawl_config.navigation_timeout_ms
        try:
            result = await asyncio.wait_for(
                page.goto(url, timeout_ms),
                timeout=timeout_ms / 1000 + _NAVIGATION_GRACE_SECONDS,
            )
        except NavigationError as e:
            logger.warning("Navigation failed for %s: %s", url, e.reason)
            detector.handle_signals(channel.drain())
            detector.on_navigation_error(url, e)
            return
        except asyncio.TimeoutError:
            logger.warning("Navigation timed out for %s", url)
            detector.handle_signals(channel.drain())
            detector.on_navigation_error(url, NavigationError(url, f"Timeout {timeout_ms}ms exceeded"))
            return

        detector.handle_signals(channel.drain())
        if detector.on_navigation(url, result.status):
            return
        if result.final_url and not is_same_origin(session.origin, result.final_url):
            self._log(f"Redirected off-site to {result.final_url}; not scanning | Page: {url}")
            return
        final_url = resolve_url(result.final_url, url) if result.final_url else None
        if final_url and final_url != url:
            if final_url in session.frontier.visited:
                logger.debug("%s redirected to already crawled %s", url, final_url)
                return
            session.frontier.mark_visited(final_url)

        try:
            images = await page.extract_images()
            detector.inspect_images(url, images)
            links = await page.extract_links()
            queued = await self._process_links(session, detector, url, links)
        except Exception as e:
            logger.error("Error processing %s: %s", url, e)
            self._log(f"Error processing page: {e} | Page: {url}")
            return
        finally:
            detector.handle_signals(channel.drain())

        logger.debug("%s: %d links found, %d new queued", url, len(links), queued)

    async def _process_links(
        self,
        session: CrawlSession,
        detector: DetectionEngine,
        page_url: str,
        links: list[LinkElement],
    ) -> int:
        """Register every link found on ``page_url`` and queue unseen same-origin targets.

        Registration always happens before queueing, so any later finding for a
        target can be attributed. Returns the number of newly queued URLs.
        """
        queued = 0
        external: list[str] = []
        for link in links:
            target = resolve_url(link.href, page_url)
            if not target:
                continue
            same_origin = is_same_origin(session.origin, target)
            if not same_origin and not self.crawl_config.check_external_links:
                continue

            reference = LinkReference(
                found_on_page=page_url, link_text=link.text, element_context=link.context,
            )
            if session.registry.register(target, reference):
                detector.on_new_reference(target, reference)

            if same_origin:
                if session.frontier.enqueue(target):
                    queued += 1
            elif target not in external:
                external.append(target)

        for target in external:
            if self.stop_requested:
                break
            if self.classifier.is_hostile_external_domain(target):
                logger.debug("Skipping external link on deny-listed host: %s", target)
                continue
            await detector.check_resource(target)
        return queued
