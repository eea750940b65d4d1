"""Browser engine adapter — the Playwright side of the crawl driver's browser contract.

The driver only talks to the three small protocols below; tests substitute
scripted fakes for them.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, Playwright, async_playwright

from sitecheck.errors import BrowserLaunchError, NavigationError
from sitecheck.models.site_model import ImageElement, LinkElement, NavigationResult

from .dom_extractor import extract_images, extract_links
from .signals import (
    ConsoleSignal,
    PageErrorSignal,
    RequestFailedSignal,
    ResponseSignal,
    SignalChannel,
)

logger = logging.getLogger(__name__)


class BrowserPage(Protocol):
    @property
    def url(self) -> str: ...

    async def goto(self, url: str, timeout_ms: int) -> NavigationResult: ...

    async def extract_links(self) -> list[LinkElement]: ...

    async def extract_images(self) -> list[ImageElement]: ...

    def subscribe(self, channel: SignalChannel) -> None: ...

    async def close(self) -> None: ...


class BrowserSession(Protocol):
    async def new_page(self) -> BrowserPage: ...

    async def close(self) -> None: ...


class BrowserLauncher(Protocol):
    async def launch(self) -> BrowserSession: ...


class PlaywrightPage:
    """A Playwright page exposing navigation, extraction and signal wiring."""

    def __init__(self, page: Page, wait_until: str = "networkidle"):
        self._page = page
        self.wait_until = wait_until

    @property
    def url(self) -> str:
        return self._page.url

    async def goto(self, url: str, timeout_ms: int) -> NavigationResult:
        try:
            resp = await self._page.goto(url, wait_until=self.wait_until, timeout=timeout_ms)
        except PlaywrightError as e:
            reason = (e.message or str(e)).splitlines()[0]
            raise NavigationError(url, reason) from e
        if resp is None:
            # Same-document navigations (hash changes) produce no response.
            return NavigationResult(url=url, status=200, ok=True, final_url=self._page.url)
        return NavigationResult(url=url, status=resp.status, ok=resp.ok, final_url=self._page.url)

    async def extract_links(self) -> list[LinkElement]:
        return await extract_links(self._page)

    async def extract_images(self) -> list[ImageElement]:
        return await extract_images(self._page)

    def subscribe(self, channel: SignalChannel) -> None:
        """Forward response, requestfailed, console and pageerror events to ``channel``."""
        page = self._page

        def on_response(response) -> None:
            request = response.request
            channel.post(ResponseSignal(
                url=response.url,
                status=response.status,
                resource_type=request.resource_type,
                page_url=page.url,
                content_type=response.headers.get("content-type"),
            ))

        def on_request_failed(request) -> None:
            channel.post(RequestFailedSignal(
                url=request.url,
                resource_type=request.resource_type,
                failure=request.failure or "unknown failure",
                page_url=page.url,
            ))

        def on_console(msg) -> None:
            location = msg.location or {}
            channel.post(ConsoleSignal(
                level=msg.type,
                text=msg.text,
                page_url=page.url,
                location_url=location.get("url", ""),
            ))

        def on_page_error(error) -> None:
            channel.post(PageErrorSignal(
                message=getattr(error, "message", None) or str(error),
                page_url=page.url,
            ))

        page.on("response", on_response)
        page.on("requestfailed", on_request_failed)
        page.on("console", on_console)
        page.on("pageerror", on_page_error)

    async def close(self) -> None:
        await self._page.close()


class PlaywrightSession:
    """One headless Chromium browser with a single context."""

    def __init__(self, playwright: Playwright, browser, context, wait_until: str):
        self._playwright = playwright
        self._browser = browser
        self._context = context
        self._wait_until = wait_until
        self._closed = False

    async def new_page(self) -> PlaywrightPage:
        page = await self._context.new_page()
        return PlaywrightPage(page, wait_until=self._wait_until)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for label, closer in (
            ("context", self._context.close),
            ("browser", self._browser.close),
            ("playwright", self._playwright.stop),
        ):
            try:
                await closer()
            except Exception as e:
                logger.debug("Error closing %s: %s", label, e)


class PlaywrightLauncher:
    """Starts Chromium with TLS errors ignored so self-signed sites can be crawled."""

    def __init__(
        self,
        headless: bool = True,
        user_agent: Optional[str] = None,
        wait_until: str = "networkidle",
    ):
        self.headless = headless
        self.user_agent = user_agent
        self.wait_until = wait_until

    async def launch(self) -> PlaywrightSession:
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(headless=self.headless)
            context = await browser.new_context(
                ignore_https_errors=True,
                user_agent=self.user_agent,
            )
        except Exception as e:
            await playwright.stop()
            raise BrowserLaunchError(f"Failed to start browser: {e}") from e
        logger.debug("Browser launched (headless=%s)", self.headless)
        return PlaywrightSession(playwright, browser, context, self.wait_until)
