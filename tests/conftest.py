"""Pytest configuration and shared fixtures."""

from dataclasses import dataclass, field
from typing import Optional

import pytest

from sitecheck.crawler.frontier import Frontier
from sitecheck.crawler.session import CrawlSession
from sitecheck.crawler.signals import BrowserSignal, SignalChannel
from sitecheck.errors import BrowserLaunchError, NavigationError
from sitecheck.models.config import CrawlConfig, SiteCheckConfig
from sitecheck.models.site_model import ImageElement, LinkElement, NavigationResult
from sitecheck.reporter.event_stream import CollectingEventSink


# ============================================================================
# Fake browser
# ============================================================================


@dataclass
class FakePageSpec:
    """What the fake browser returns when a URL is navigated."""

    status: int = 200
    links: list[dict] = field(default_factory=list)
    images: list[dict] = field(default_factory=list)
    signals: list[BrowserSignal] = field(default_factory=list)
    error: Optional[str] = None
    final_url: Optional[str] = None


class FakePage:
    """Scripted stand-in for PlaywrightPage. Unknown URLs answer 404."""

    def __init__(self, site: dict[str, FakePageSpec], on_goto=None):
        self.site = site
        self.on_goto = on_goto
        self.visits: list[str] = []
        self.channel: Optional[SignalChannel] = None
        self.closed = False
        self._url = "about:blank"

    @property
    def url(self) -> str:
        return self._url

    def subscribe(self, channel: SignalChannel) -> None:
        self.channel = channel

    async def goto(self, url: str, timeout_ms: int) -> NavigationResult:
        self.visits.append(url)
        if self.on_goto is not None:
            self.on_goto(url)
        spec = self.site.get(url, FakePageSpec(status=404))
        if spec.error:
            raise NavigationError(url, spec.error)
        self._url = url
        for signal in spec.signals:
            self.channel.post(signal)
        return NavigationResult(
            url=url, status=spec.status, ok=spec.status < 400, final_url=spec.final_url or url,
        )

    async def extract_links(self) -> list[LinkElement]:
        return [LinkElement(**link) for link in self.site[self._url].links]

    async def extract_images(self) -> list[ImageElement]:
        return [ImageElement(**img) for img in self.site[self._url].images]

    async def close(self) -> None:
        self.closed = True


class FakeSession:
    def __init__(self, page: FakePage):
        self.page = page
        self.closed = False

    async def new_page(self) -> FakePage:
        return self.page

    async def close(self) -> None:
        self.closed = True


class FakeLauncher:
    def __init__(self, site: dict[str, FakePageSpec], fail: bool = False, on_goto=None):
        self.page = FakePage(site, on_goto=on_goto)
        self.session = FakeSession(self.page)
        self.fail = fail

    async def launch(self) -> FakeSession:
        if self.fail:
            raise BrowserLaunchError("Failed to start browser: executable not found")
        return self.session


class FakeProbe:
    """Stand-in for HttpProbe. HEAD answers 200 unless scripted; GET serves sitemaps."""

    def __init__(self, head: Optional[dict] = None, documents: Optional[dict] = None):
        self.head = head or {}
        self.documents = documents or {}
        self.head_calls: list[str] = []
        self.closed = False

    async def head_status(self, url: str) -> int:
        self.head_calls.append(url)
        return self.head.get(url, 200)

    async def get_text(self, url: str) -> str:
        value = self.documents[url]
        if isinstance(value, Exception):
            raise value
        return value

    async def aclose(self) -> None:
        self.closed = True


def link(href: str, text: str = "", context: str = "main") -> dict:
    return {"href": href, "text": text, "context": context}


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def crawl_config() -> CrawlConfig:
    return CrawlConfig(max_pages=50, batch_size=10)


@pytest.fixture
def config(crawl_config: CrawlConfig) -> SiteCheckConfig:
    return SiteCheckConfig(start_url="https://ex.com/", crawl=crawl_config)


@pytest.fixture
def sink() -> CollectingEventSink:
    return CollectingEventSink()


@pytest.fixture
def session() -> CrawlSession:
    return CrawlSession(start_url="https://ex.com/", frontier=Frontier(max_pages=50, batch_size=10))
