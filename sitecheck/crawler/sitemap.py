"""Sitemap ingestion — fetches a sitemap and extracts its same-origin <loc> URLs."""

from __future__ import annotations

import html
import logging
from xml.etree import ElementTree

import httpx

from sitecheck.errors import SitemapError
from sitecheck.url_utils import is_same_origin

from .http_probe import HttpProbe

logger = logging.getLogger(__name__)

_CDATA_OPEN = "<![CDATA["
_CDATA_CLOSE = "]]>"


def _local_name(tag: str) -> str:
    """Strip an ElementTree '{namespace}' or an XML 'prefix:' from a tag name."""
    if "}" in tag:
        tag = tag.rsplit("}", 1)[-1]
    return tag.rsplit(":", 1)[-1].lower()


def _clean_value(raw: str) -> str:
    value = raw.strip()
    if value.startswith(_CDATA_OPEN) and value.endswith(_CDATA_CLOSE):
        return value[len(_CDATA_OPEN):-len(_CDATA_CLOSE)].strip()
    return html.unescape(value)


def _parse_with_etree(xml: str) -> list[str]:
    root = ElementTree.fromstring(xml)
    return [
        (el.text or "").strip()
        for el in root.iter()
        if isinstance(el.tag, str) and _local_name(el.tag) == "loc"
    ]


def _scan_loc_tags(xml: str) -> list[str]:
    """Linear tag scan used when the document is not well-formed XML.

    Collects the text between every opening ``<loc>`` (any namespace prefix)
    and its matching close tag. Unterminated tags end the scan.
    """
    values: list[str] = []
    pos = 0
    while True:
        start = xml.find("<", pos)
        if start == -1:
            break
        end = xml.find(">", start)
        if end == -1:
            break
        tag = xml[start + 1:end].strip()
        pos = end + 1
        if not tag or tag[0] in "/!?" or tag.endswith("/"):
            continue
        name = tag.split(None, 1)[0]
        if _local_name(name) != "loc":
            continue
        close = xml.find(f"</{name}", pos)
        if close == -1:
            break
        values.append(_clean_value(xml[pos:close]))
        pos = close
    return values


def parse_sitemap(xml: str) -> list[str]:
    """Return the unique, non-empty <loc> values of a sitemap, in document order.

    A document without any <loc> tag yields an empty list rather than an error.
    """
    if not xml or not xml.strip():
        return []
    try:
        locs = _parse_with_etree(xml.strip())
    except ElementTree.ParseError as e:
        logger.debug("Sitemap is not well-formed XML (%s); falling back to tag scan", e)
        locs = _scan_loc_tags(xml)
    return list(dict.fromkeys(loc for loc in locs if loc))


async def fetch_and_parse_sitemap(sitemap_url: str, origin: str, probe: HttpProbe) -> list[str]:
    """Fetch a sitemap and return its URLs that share the crawl origin.

    Raises SitemapError when the document cannot be retrieved.
    """
    try:
        xml = await probe.get_text(sitemap_url)
    except httpx.HTTPError as e:
        raise SitemapError(f"Failed to fetch sitemap {sitemap_url}: {e}") from e

    locs = parse_sitemap(xml)
    same_origin = [u for u in locs if is_same_origin(origin, u)]
    dropped = len(locs) - len(same_origin)
    if dropped:
        logger.debug("Sitemap: ignored %d off-origin URLs", dropped)
    logger.info("Sitemap %s: %d URLs (%d same-origin)", sitemap_url, len(locs), len(same_origin))
    return same_origin
