"""Detection engine — turns browser signals into broken-link and broken-image findings.

Findings come from five sources:

1. navigation status of a page (``on_navigation``)
2. sub-resource responses with an error status (``ResponseSignal``)
3. requests that failed outright (``RequestFailedSignal``)
4. console errors that mention a 4xx status and a URL (``ConsoleSignal``)
5. ``<img>`` elements that did not load (``inspect_images``)

plus HEAD existence checks for non-page resources (``check_resource``).

Non-page resources are keyed in the frontier's checked set and page-level
URLs in the session's broken targets, so each is reported at most once per
session while a page named by a signal is still navigated. Broken links fan
out to every page the link registry attributes the target to; broken images
do not.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from sitecheck.models.events import CrawlEvent
from sitecheck.models.findings import BrokenImage, BrokenLink, ConsoleError, LinkReference
from sitecheck.models.site_model import ImageElement
from sitecheck.url_utils import is_same_origin, resolve_url

from .classifier import ResourceClassifier
from .http_probe import HttpProbe, is_ok_status
from .session import CrawlSession
from .signals import (
    BrowserSignal,
    ConsoleSignal,
    PageErrorSignal,
    RequestFailedSignal,
    ResponseSignal,
)

logger = logging.getLogger(__name__)

# Playwright resource types whose failures are not reported from network traffic:
# documents are covered by the navigation result, the rest are page furniture.
IGNORED_RESOURCE_TYPES = frozenset({"document", "stylesheet", "font", "script", "media"})

UNKNOWN_SOURCE = "(unknown source)"
NETWORK_SOURCE_TEXT = "(detected from network)"
CONSOLE_SOURCE_TEXT = "(detected from console)"

_STATUS_RE = re.compile(r"(?<![\d.])(4\d\d)(?![\d.])")
_URL_RE = re.compile(r"https?://[^\s'\"<>]+")
_URL_TRAILING = ".,;:)]}'\""

# Chromium's message for a failed sub-resource; the URL is only in the message location.
_RESOURCE_LOAD_FAILURE = "Failed to load resource"


@dataclass(frozen=True)
class ConsoleMatch:
    status: int
    url: str


def extract_status_and_url(text: str) -> Optional[ConsoleMatch]:
    """Pull a 4xx status and an absolute URL out of a console message.

    Both must appear in the text itself. The status is searched for outside
    any URL so digits inside a path do not count. Returns None when either is
    missing.
    """
    if not text:
        return None
    urls = [m.group(0).rstrip(_URL_TRAILING) for m in _URL_RE.finditer(text)]
    status_match = _STATUS_RE.search(_URL_RE.sub(" ", text))
    if not status_match or not urls:
        return None
    return ConsoleMatch(status=int(status_match.group(1)), url=urls[0])


def match_resource_load_failure(sig: ConsoleSignal) -> Optional[ConsoleMatch]:
    """Match Chromium's "Failed to load resource: ... status of 404" message.

    That message carries no URL; the failed resource is the message location.
    A location equal to the page itself means the message came from the page's
    own script and names nothing.
    """
    if not sig.text.startswith(_RESOURCE_LOAD_FAILURE) or not sig.location_url:
        return None
    location = resolve_url(sig.location_url, sig.page_url)
    if not location or location == resolve_url(sig.page_url, sig.page_url):
        return None
    status_match = _STATUS_RE.search(sig.text)
    if not status_match:
        return None
    return ConsoleMatch(status=int(status_match.group(1)), url=location)


class DetectionEngine:
    """Classifies signals and emits findings through ``emit``.

    All state lives on the CrawlSession; the engine is only ever called from
    the crawl driver's task.
    """

    def __init__(
        self,
        session: CrawlSession,
        classifier: ResourceClassifier,
        emit: Callable[[CrawlEvent], None],
        probe: Optional[HttpProbe] = None,
        report_lazy_images: bool = False,
    ):
        self.session = session
        self.classifier = classifier
        self.emit = emit
        self.probe = probe
        self.report_lazy_images = report_lazy_images
        self._console_seen: set[tuple[str, str]] = set()

    # ------------------------------------------------------------------
    # Fan-out helpers
    # ------------------------------------------------------------------

    def report_broken_link(
        self, url: str, status: int, fallback: Optional[LinkReference] = None
    ) -> int:
        """Emit one BrokenLink per registered referrer of ``url``. Returns the count."""
        self.session.broken_targets[url] = status
        refs = self.session.registry.references_for(url)
        if not refs:
            refs = [fallback or LinkReference(found_on_page=UNKNOWN_SOURCE)]
        for ref in refs:
            self._emit_broken_link(url, status, ref)
        return len(refs)

    def on_new_reference(self, url: str, reference: LinkReference) -> None:
        """A referrer was registered after ``url`` was already reported broken."""
        status = self.session.broken_targets.get(url)
        if status is not None:
            self._emit_broken_link(url, status, reference)

    def _emit_broken_link(self, url: str, status: int, ref: LinkReference) -> None:
        finding = BrokenLink(
            url=url,
            status_code=status,
            found_on_page=ref.found_on_page,
            link_text=ref.link_text,
            element_context=ref.element_context,
        )
        self.session.broken_links_count += 1
        self.emit(CrawlEvent.broken_link(finding))

    def report_broken_image(
        self, src: str, page_url: str, reason: str, alt: str = "", context: str = ""
    ) -> None:
        finding = BrokenImage(
            src=src,
            found_on_page=page_url,
            alt_text=alt,
            element_context=context,
            reason=reason,
        )
        self.session.broken_images_count += 1
        self.emit(CrawlEvent.broken_image(finding))

    def _report_console_error(self, message: str, page_url: str, kind: str) -> None:
        key = (page_url, message)
        if key in self._console_seen:
            return
        self._console_seen.add(key)
        self.session.console_errors_count += 1
        self.emit(CrawlEvent.console_error(
            ConsoleError(message=message, found_on_page=page_url, type=kind)
        ))

    def _claim(self, url: str) -> bool:
        """Mark a resource as checked; False when it already produced a verdict."""
        return self.session.frontier.mark_checked(url)

    def _first_report(self, url: str, kind: str) -> bool:
        """True when ``url`` has no verdict yet.

        Resources are claimed in the checked set. Page-level URLs are only
        looked up in ``broken_targets`` so the crawl still navigates them.
        """
        if kind == "image" or self.classifier.is_non_page_resource(url):
            return self._claim(url)
        return url not in self.session.broken_targets

    # ------------------------------------------------------------------
    # Source 1: navigation
    # ------------------------------------------------------------------

    def on_navigation(self, url: str, status: int) -> bool:
        """Handle a page's navigation status. Returns True if the page is broken."""
        if status < 400:
            return False
        if url in self.session.broken_targets:
            logger.debug("Broken page %s (HTTP %d) already reported", url, status)
            return True
        logger.info("Broken page %s (HTTP %d)", url, status)
        self.report_broken_link(url, status)
        return True

    def on_navigation_error(self, url: str, error: Exception) -> None:
        """Navigation threw (timeout, DNS, protocol). Report status 0 to known referrers."""
        self.emit(CrawlEvent.log(f"Navigation error: {error} | Page: {url}"))
        if url in self.session.registry and url not in self.session.broken_targets:
            self.report_broken_link(url, 0)

    # ------------------------------------------------------------------
    # Sources 2-4: asynchronous browser signals
    # ------------------------------------------------------------------

    def handle_signals(self, signals: Iterable[BrowserSignal]) -> None:
        for signal in signals:
            self.handle(signal)

    def handle(self, signal: BrowserSignal) -> None:
        if isinstance(signal, ResponseSignal):
            self._on_response(signal)
        elif isinstance(signal, RequestFailedSignal):
            self._on_request_failed(signal)
        elif isinstance(signal, ConsoleSignal):
            self._on_console(signal)
        elif isinstance(signal, PageErrorSignal):
            self._on_page_error(signal)

    def _report_resource(
        self, url: str, status: int, page_url: str, kind: str, source_text: str, context: str
    ) -> None:
        if kind == "image":
            self.report_broken_image(url, page_url, f"HTTP {status}", context=context)
        else:
            self.report_broken_link(
                url,
                status,
                fallback=LinkReference(
                    found_on_page=page_url, link_text=source_text, element_context=context,
                ),
            )

    def _on_response(self, sig: ResponseSignal) -> None:
        if sig.status < 400 or sig.resource_type in IGNORED_RESOURCE_TYPES:
            return
        if not is_same_origin(self.session.origin, sig.url):
            return
        kind = self.classifier.classify_resource(sig.url, sig.content_type)
        if sig.resource_type == "image":
            kind = "image"
        if not self._first_report(sig.url, kind):
            return
        logger.debug("Network %d for %s (%s) on %s", sig.status, sig.url, sig.resource_type, sig.page_url)
        self._report_resource(
            sig.url, sig.status, sig.page_url, kind, NETWORK_SOURCE_TEXT,
            f"network:{sig.resource_type}",
        )

    def _on_request_failed(self, sig: RequestFailedSignal) -> None:
        if not is_same_origin(self.session.origin, sig.url):
            return
        if self.classifier.is_noise_error(sig.failure):
            logger.debug("Ignoring noisy request failure %s: %s", sig.url, sig.failure)
            return
        self.emit(CrawlEvent.log(
            f"Internal request failed: {sig.url} ({sig.failure}) | Page: {sig.page_url}"
        ))
        kind = self.classifier.classify_resource(sig.url)
        if sig.resource_type != "image" and kind != "image":
            return
        if not self._claim(sig.url):
            return
        self.report_broken_image(
            sig.url, sig.page_url, f"Request failed: {sig.failure}",
            context=f"network:{sig.resource_type}",
        )

    def _on_console(self, sig: ConsoleSignal) -> None:
        if sig.level != "error":
            return
        if self.classifier.is_noise_error(sig.text):
            logger.debug("Ignoring noisy console error on %s: %s", sig.page_url, sig.text)
            return
        self.emit(CrawlEvent.log(f"Console error: {sig.text} | Page: {sig.page_url}"))

        match = extract_status_and_url(sig.text) or match_resource_load_failure(sig)
        if match is None or not is_same_origin(self.session.origin, match.url):
            self._report_console_error(sig.text, sig.page_url, "error")
            return

        kind = self.classifier.classify_resource(match.url)
        # Documents, archives and other assets are verdicted by the existence check.
        if kind != "image" and self.classifier.is_non_page_resource(match.url):
            self._report_console_error(sig.text, sig.page_url, "error")
            return
        if not self._first_report(match.url, kind):
            return
        self._report_resource(
            match.url, match.status, sig.page_url, kind, CONSOLE_SOURCE_TEXT, "console",
        )

    def _on_page_error(self, sig: PageErrorSignal) -> None:
        if self.classifier.is_noise_error(sig.message):
            logger.debug("Ignoring noisy page error on %s: %s", sig.page_url, sig.message)
            return
        self.emit(CrawlEvent.log(f"JS error: {sig.message} | Page: {sig.page_url}"))
        self._report_console_error(sig.message, sig.page_url, "js_error")

    # ------------------------------------------------------------------
    # Source 5: DOM image state
    # ------------------------------------------------------------------

    def inspect_images(self, page_url: str, images: Iterable[ImageElement]) -> int:
        """Report every <img> that failed to load. Returns the number reported."""
        reported = 0
        for img in images:
            if not img.src or img.src.startswith("data:") or not img.is_broken:
                continue
            if img.lazy and not img.complete and not self.report_lazy_images:
                logger.debug("Skipping lazy image not yet loaded: %s", img.src)
                continue
            if not self._claim(img.src):
                continue
            if not img.complete:
                reason = "Image did not finish loading (complete=false)"
            else:
                reason = "Image has zero natural width (naturalWidth=0, failed to load or decode)"
            self.report_broken_image(img.src, page_url, reason, alt=img.alt, context=img.context)
            reported += 1
        return reported

    # ------------------------------------------------------------------
    # Existence checks
    # ------------------------------------------------------------------

    async def check_resource(self, url: str) -> Optional[int]:
        """HEAD-check a non-page resource once; fan out a BrokenLink if it is missing.

        Returns the observed status, or None when the resource was already checked.
        """
        if self.probe is None:
            raise RuntimeError("check_resource requires an HttpProbe")
        if not self._claim(url):
            return None
        self.session.resources_checked += 1
        status = await self.probe.head_status(url)
        if is_ok_status(status):
            logger.debug("Resource OK (%d): %s", status, url)
        else:
            logger.info("Broken resource %s (status %d)", url, status)
            self.report_broken_link(url, status)
        return status
