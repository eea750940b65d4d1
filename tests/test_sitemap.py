"""Tests for sitemap parsing and fetching."""

import httpx
import pytest

from sitecheck.crawler.http_probe import HttpProbe
from sitecheck.crawler.sitemap import fetch_and_parse_sitemap, parse_sitemap
from sitecheck.errors import SitemapError

SITEMAP = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>https://ex.com/</loc></url>
  <url><loc> https://ex.com/about </loc></url>
  <url><loc>https://other.com/page</loc></url>
  <url><loc>https://ex.com/about</loc></url>
  <url><loc>https://ex.com/search?q=a&amp;page=2</loc></url>
</urlset>
"""


def _probe_serving(body: str, status: int = 200) -> HttpProbe:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, text=body)
    return HttpProbe(transport=httpx.MockTransport(handler))


class TestParseSitemap:
    def test_extracts_locs_in_order_deduplicated(self):
        assert parse_sitemap(SITEMAP) == [
            "https://ex.com/",
            "https://ex.com/about",
            "https://other.com/page",
            "https://ex.com/search?q=a&page=2",
        ]

    def test_no_loc_tags_yields_empty(self):
        assert parse_sitemap("<html><body>Not a sitemap</body></html>") == []

    def test_plain_text_yields_empty(self):
        assert parse_sitemap("this is not xml at all") == []

    def test_empty_document(self):
        assert parse_sitemap("") == []

    def test_malformed_xml_falls_back_to_tag_scan(self):
        broken = "<urlset><url><loc>https://ex.com/a</loc><url><loc>https://ex.com/b</loc>"
        assert parse_sitemap(broken) == ["https://ex.com/a", "https://ex.com/b"]

    def test_prefixed_loc_in_malformed_document(self):
        broken = "<sm:urlset><sm:loc>https://ex.com/a &amp; b</sm:loc><oops"
        assert parse_sitemap(broken) == ["https://ex.com/a & b"]

    def test_cdata_loc(self):
        xml = "<urlset><url><loc><![CDATA[https://ex.com/x]]></loc></url></urlset>"
        assert parse_sitemap(xml) == ["https://ex.com/x"]

    def test_cdata_loc_in_malformed_document(self):
        xml = "<urlset><loc><![CDATA[https://ex.com/x]]></loc><broken"
        assert parse_sitemap(xml) == ["https://ex.com/x"]

    def test_sitemap_index_locs(self):
        xml = (
            '<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
            "<sitemap><loc>https://ex.com/sitemap-posts.xml</loc></sitemap>"
            "</sitemapindex>"
        )
        assert parse_sitemap(xml) == ["https://ex.com/sitemap-posts.xml"]

    def test_skips_empty_loc(self):
        assert parse_sitemap("<urlset><url><loc>  </loc></url></urlset>") == []


class TestFetchAndParseSitemap:
    @pytest.mark.asyncio
    async def test_keeps_only_same_origin(self):
        async with _probe_serving(SITEMAP) as probe:
            urls = await fetch_and_parse_sitemap("https://ex.com/sitemap.xml", "https://ex.com", probe)
        assert urls == [
            "https://ex.com/",
            "https://ex.com/about",
            "https://ex.com/search?q=a&page=2",
        ]

    @pytest.mark.asyncio
    async def test_http_error_raises_sitemap_error(self):
        async with _probe_serving("nope", status=404) as probe:
            with pytest.raises(SitemapError):
                await fetch_and_parse_sitemap("https://ex.com/sitemap.xml", "https://ex.com", probe)

    @pytest.mark.asyncio
    async def test_connection_error_raises_sitemap_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with HttpProbe(transport=httpx.MockTransport(handler)) as probe:
            with pytest.raises(SitemapError, match="connection refused"):
                await fetch_and_parse_sitemap("https://ex.com/sitemap.xml", "https://ex.com", probe)

    @pytest.mark.asyncio
    async def test_document_without_locs_is_empty(self):
        async with _probe_serving("<html></html>") as probe:
            urls = await fetch_and_parse_sitemap("https://ex.com/sitemap.xml", "https://ex.com", probe)
        assert urls == []
