"""Unit tests for sitemap discovery and parsing."""

import httpx
import pytest

from webintel.config import SitemapConfig
from webintel.crawler.sitemap import (
    SitemapDiscovery,
    SitemapEntry,
    SitemapSource,
    parse_robots_sitemaps,
    prioritize_entries,
    read_sitemap,
)
from webintel.infrastructure.performance_tracker import PerformanceTracker

pytest_plugins = ('pytest_asyncio',)

URLSET = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url>
    <loc>https://example.com/</loc>
    <lastmod>2024-05-01</lastmod>
    <changefreq>weekly</changefreq>
    <priority>1.0</priority>
  </url>
  <url><loc>https://example.com/about/</loc><priority>0.8</priority></url>
  <url><loc>http://example.com/about</loc></url>
  <url><loc>https://example.com/blog/post-1#comments</loc></url>
  <url><loc>https://other.com/partner</loc></url>
</urlset>
"""

INDEX = """<?xml version="1.0" encoding="UTF-8"?>
<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <sitemap><loc>https://example.com/pages.xml</loc></sitemap>
  <sitemap><loc>https://example.com/posts.xml</loc></sitemap>
</sitemapindex>
"""


def xml(body: str, status: int = 200) -> httpx.Response:
    return httpx.Response(status, text=body, headers={"content-type": "application/xml"})


def urlset(*paths: str) -> str:
    urls = "".join(f"<url><loc>https://example.com{path}</loc></url>" for path in paths)
    return f'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{urls}</urlset>'


async def discover(make_client, pages, **config):
    client = make_client(pages)
    async with client:
        discovery = SitemapDiscovery(SitemapConfig(domain="example.com", **config), client)
        result = await discovery.execute()
    return result, client.requested


class TestReadSitemap:
    """Tests for parsing sitemap documents."""

    def test_urlset_entries(self):
        entries, children = read_sitemap(URLSET)

        assert children == []
        assert len(entries) == 5
        home = entries[0]
        assert home.url == "https://example.com/"
        assert home.lastmod == "2024-05-01"
        assert home.changefreq == "weekly"
        assert home.priority == 1.0
        assert home.source is SitemapSource.SITEMAP
        assert entries[2].priority is None

    def test_sitemap_index_children(self):
        entries, children = read_sitemap(INDEX)

        assert entries == []
        assert children == ["https://example.com/pages.xml", "https://example.com/posts.xml"]

    def test_without_namespace(self):
        entries, _ = read_sitemap("<urlset><url><loc> https://example.com/a </loc></url></urlset>")

        assert [entry.url for entry in entries] == ["https://example.com/a"]

    def test_html_wrapped_xml(self):
        wrapped = f"<html><body><pre>{URLSET}</pre></body></html>"

        entries, _ = read_sitemap(wrapped)

        assert len(entries) == 5

    def test_html_page_is_not_a_sitemap(self):
        assert read_sitemap("<html><body><p>Site map</p></body></html>") == ([], [])
        assert read_sitemap("not xml at all <") == ([], [])

    def test_invalid_priority_ignored(self):
        entries, _ = read_sitemap(
            "<urlset><url><loc>https://example.com/a</loc><priority>high</priority></url></urlset>"
        )

        assert entries[0].priority is None


class TestSitemapHelpers:
    """Tests for robots.txt parsing and entry prioritization."""

    def test_parse_robots_sitemaps(self):
        robots = (
            "User-agent: *\n"
            "Disallow: /admin\n"
            "Sitemap: https://example.com/a.xml\n"
            "  sitemap:https://example.com/b.xml\n"
            "Sitemap:\n"
        )

        assert parse_robots_sitemaps(robots) == [
            "https://example.com/a.xml",
            "https://example.com/b.xml",
        ]

    def test_prioritize_entries(self):
        entries = [
            SitemapEntry(url="https://example.com/a/b/c", source=SitemapSource.SITEMAP),
            SitemapEntry(url="https://example.com/nested", source=SitemapSource.NESTED),
            SitemapEntry(url="https://example.com/low", priority=0.2),
            SitemapEntry(url="https://example.com/x", source=SitemapSource.SITEMAP),
            SitemapEntry(url="https://example.com/high", priority=0.9),
        ]

        ordered = [entry.url for entry in prioritize_entries(entries)]

        assert ordered == [
            "https://example.com/high",
            "https://example.com/low",
            "https://example.com/x",
            "https://example.com/a/b/c",
            "https://example.com/nested",
        ]

    def test_entry_to_dict(self):
        data = SitemapEntry(url="https://example.com/", source=SitemapSource.ROBOTS, discovered_at=1).to_dict()

        assert data["source"] == "robots"
        assert data["discovered_at"] == 1


class TestSitemapDiscovery:
    """Tests for SitemapDiscovery.execute against canned responses."""

    @pytest.mark.asyncio
    async def test_plain_urlset(self, make_client):
        result, requested = await discover(make_client, {
            "https://example.com/sitemap.xml": xml(URLSET),
        })

        assert result.sitemap_found is True
        # Normalized, same-domain, one entry per URL (first occurrence wins)
        assert result.urls == [
            "https://example.com/",
            "https://example.com/about",
            "https://example.com/blog/post-1",
        ]
        assert result.entries[1].priority == 0.8
        assert result.errors == []
        # The search stops at the first sitemap that yields entries
        assert "https://example.com/sitemap_index.xml" not in requested

    @pytest.mark.asyncio
    async def test_sitemap_index(self, make_client):
        result, _ = await discover(make_client, {
            "https://example.com/sitemap_index.xml": xml(INDEX),
            "https://example.com/pages.xml": xml(urlset("/about", "/pricing")),
            "https://example.com/posts.xml": xml(urlset("/blog/one", "/about")),
        })

        assert result.sitemap_found is True
        assert result.nested_sitemaps_found == 2
        assert result.urls == [
            "https://example.com/about",
            "https://example.com/pricing",
            "https://example.com/blog/one",
        ]
        assert all(entry.source is SitemapSource.NESTED for entry in result.entries)

    @pytest.mark.asyncio
    async def test_nested_sitemaps_disabled(self, make_client):
        result, requested = await discover(make_client, {
            "https://example.com/sitemap_index.xml": xml(INDEX),
            "https://example.com/pages.xml": xml(urlset("/about")),
        }, include_nested=False)

        assert result.sitemap_found is False
        assert "https://example.com/pages.xml" not in requested

    @pytest.mark.asyncio
    async def test_self_referencing_index_terminates(self, make_client):
        loop_index = (
            '<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
            "<sitemap><loc>https://example.com/sitemap.xml</loc></sitemap>"
            "<sitemap><loc>https://example.com/pages.xml</loc></sitemap>"
            "</sitemapindex>"
        )

        result, requested = await discover(make_client, {
            "https://example.com/sitemap.xml": xml(loop_index),
            "https://example.com/pages.xml": xml(urlset("/about")),
        })

        assert result.urls == ["https://example.com/about"]
        assert requested.count("https://example.com/sitemap.xml") == 1

    @pytest.mark.asyncio
    async def test_robots_txt_discovery(self, make_client):
        result, _ = await discover(make_client, {
            "https://example.com/robots.txt": httpx.Response(
                200, text="User-agent: *\nSitemap: https://example.com/maps/main.xml\n"
            ),
            "https://example.com/maps/main.xml": xml(urlset("/careers")),
        })

        assert result.sitemap_found is True
        assert result.urls == ["https://example.com/careers"]
        assert result.entries[0].source is SitemapSource.ROBOTS
        assert result.sitemaps_checked[-1] == "https://example.com/maps/main.xml"

    @pytest.mark.asyncio
    async def test_www_variant_and_html_wrapper(self, make_client):
        # String routes are served wrapped in an HTML document
        result, _ = await discover(make_client, {
            "https://www.example.com/sitemap.xml": urlset("/team"),
        })

        assert result.urls == ["https://example.com/team"]

    @pytest.mark.asyncio
    async def test_custom_location(self, make_client):
        result, _ = await discover(make_client, {
            "https://example.com/custom/map.xml": xml(urlset("/docs")),
        }, custom_locations=["/custom/map.xml"])

        assert result.urls == ["https://example.com/docs"]
        assert result.entries[0].source is SitemapSource.CUSTOM

    @pytest.mark.asyncio
    async def test_no_sitemap(self, make_client):
        result, _ = await discover(make_client, {})

        assert result.sitemap_found is False
        assert result.entries == []
        # 7 standard locations for each of the bare and www hosts
        assert len(result.sitemaps_checked) == 14
        assert result.errors == []

    @pytest.mark.asyncio
    async def test_transport_error_recorded_and_skipped(self, make_client):
        result, _ = await discover(make_client, {
            "https://example.com/sitemap.xml": httpx.ConnectError("connection refused"),
            "https://example.com/sitemap_index.xml": xml(urlset("/about")),
        })

        assert result.urls == ["https://example.com/about"]
        assert len(result.errors) == 1
        assert "sitemap.xml" in result.errors[0]

    @pytest.mark.asyncio
    async def test_max_urls_keeps_highest_priority(self, make_client):
        body = (
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
            "<url><loc>https://example.com/deep/page/one</loc></url>"
            "<url><loc>https://example.com/pricing</loc><priority>0.9</priority></url>"
            "<url><loc>https://example.com/about</loc></url>"
            "<url><loc>https://example.com/home</loc><priority>1.0</priority></url>"
            "</urlset>"
        )

        result, _ = await discover(make_client, {
            "https://example.com/sitemap.xml": xml(body),
        }, max_urls=3)

        assert result.urls == [
            "https://example.com/home",
            "https://example.com/pricing",
            "https://example.com/about",
        ]

    @pytest.mark.asyncio
    async def test_tracker_times_discovery(self, make_client):
        tracker = PerformanceTracker()
        async with make_client({"https://example.com/sitemap.xml": xml(URLSET)}) as client:
            discovery = SitemapDiscovery(SitemapConfig(domain="www.example.com"), client, tracker=tracker)
            result = await discovery.execute()

        assert discovery.domain == "example.com"
        assert result.total_time_ms >= 0
        assert tracker.get_metrics("sitemap_discovery").operations == 1
        tracker.close()
