"""Exceptions raised by the crawler and its collaborators."""

from __future__ import annotations


class SiteCheckError(Exception):
    """Base class for all sitecheck errors."""


class InvalidStartUrl(SiteCheckError, ValueError):
    """The start URL is missing or is not an absolute http(s) URL."""


class SitemapError(SiteCheckError):
    """The sitemap could not be fetched."""


class NavigationError(SiteCheckError):
    """The browser failed to navigate to a URL (timeout, DNS, protocol)."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{reason} ({url})")
        self.url = url
        self.reason = reason


class BrowserLaunchError(SiteCheckError):
    """The browser session could not be started."""
