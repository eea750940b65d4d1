"""Plain HTTP fetches used outside the browser: sitemap GET and HEAD existence checks."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

# Status reported when the request never produced a response (timeout, DNS, TLS).
STATUS_UNREACHABLE = 0


class HttpProbe:
    """Thin async wrapper around an httpx client with relaxed TLS verification.

    Self-signed certificates must not abort a sitemap fetch or an existence
    check, so the client is always created with ``verify=False``.
    """

    def __init__(
        self,
        head_timeout: float = 10.0,
        get_timeout: float = 10.0,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.head_timeout = head_timeout
        self.get_timeout = get_timeout
        headers = {"User-Agent": user_agent} if user_agent else None
        self._client = httpx.AsyncClient(
            verify=False,
            follow_redirects=True,
            headers=headers,
            transport=transport,
        )

    async def __aenter__(self) -> "HttpProbe":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_text(self, url: str) -> str:
        """GET a URL and return its body. Raises httpx errors on failure or non-2xx."""
        resp = await self._client.get(url, timeout=self.get_timeout)
        resp.raise_for_status()
        return resp.text

    async def head_status(self, url: str) -> int:
        """Return the status of a HEAD request, or STATUS_UNREACHABLE on transport failure.

        Servers that reject HEAD (405/501) are retried once with a streamed GET
        whose body is never read.
        """
        try:
            resp = await self._client.head(url, timeout=self.head_timeout)
            if resp.status_code in (405, 501):
                async with self._client.stream("GET", url, timeout=self.head_timeout) as get_resp:
                    return get_resp.status_code
            return resp.status_code
        except httpx.HTTPError as e:
            logger.debug("Existence check failed for %s: %s", url, e)
            return STATUS_UNREACHABLE


def is_ok_status(status: int) -> bool:
    """2xx and 3xx count as existing."""
    return 200 <= status < 400
