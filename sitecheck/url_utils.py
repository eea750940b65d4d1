"""Shared URL utilities — origins, resolution and start-URL validation."""

from __future__ import annotations

from urllib.parse import urldefrag, urljoin, urlparse

from sitecheck.errors import InvalidStartUrl

_DEFAULT_PORTS = {"http": 80, "https": 443}


def origin_of(url: str) -> str:
    """Return scheme://host[:port] for a URL, dropping default ports."""
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    host = (parsed.hostname or "").lower()
    try:
        port = parsed.port
    except ValueError:
        port = None
    if port and port != _DEFAULT_PORTS.get(scheme):
        return f"{scheme}://{host}:{port}"
    return f"{scheme}://{host}"


def is_same_origin(origin: str, candidate_url: str) -> bool:
    return origin_of(candidate_url) == origin


def is_http_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def resolve_url(href: str, base_url: str) -> str | None:
    """Resolve an href against a base URL and strip the fragment.

    Returns None for non-http(s) targets (mailto:, javascript:, data:, ...).
    """
    if not href:
        return None
    try:
        absolute, _ = urldefrag(urljoin(base_url, href.strip()))
        parsed = urlparse(absolute)
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    if not parsed.path:
        absolute = parsed._replace(path="/").geturl()
    return absolute


def validate_start_url(url: str | None) -> str:
    """Check that a start URL is present and absolute; return it stripped."""
    if not url or not url.strip():
        raise InvalidStartUrl("Missing start URL")
    url = url.strip()
    try:
        parsed = urlparse(url)
        parsed.port  # raises ValueError on a malformed port
    except ValueError as e:
        raise InvalidStartUrl(f"Unparsable start URL: {url} ({e})") from e
    if not is_http_url(url) or not parsed.hostname:
        raise InvalidStartUrl(f"Start URL must be an absolute http(s) URL: {url}")
    return url
