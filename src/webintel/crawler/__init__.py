"""Link discovery, navigation parsing and page capabilities."""

from .pages import (
    BrowserSession,
    StaticHtmlPage,
    StaticResponse,
    PageLike,
)
from .link_crawler import LinkCrawler
from .navigation_parser import NavigationParser, get_important_pages
from .sitemap import (
    SitemapDiscovery,
    SitemapDiscoveryResult,
    SitemapEntry,
    SitemapSource,
    read_sitemap,
)

__all__ = [
    "BrowserSession",
    "StaticHtmlPage",
    "StaticResponse",
    "PageLike",
    "LinkCrawler",
    "NavigationParser",
    "get_important_pages",
    "SitemapDiscovery",
    "SitemapDiscoveryResult",
    "SitemapEntry",
    "SitemapSource",
    "read_sitemap",
]
