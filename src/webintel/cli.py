"""Command-line interface for webintel."""

import asyncio
import json
import sys
from dataclasses import asdict
from typing import List, Optional

import httpx

from webintel.browser_config import FAST_CONFIG, SPA_CONFIG
from webintel.config import LinkCrawlerConfig, SitemapConfig, settings
from webintel.constants import NAVIGATION_TIMEOUT_MS
from webintel.crawler import (
    BrowserSession,
    LinkCrawler,
    NavigationParser,
    SitemapDiscovery,
    StaticHtmlPage,
)
from webintel.crawler.navigation_parser import get_important_pages
from webintel.dedup import ContentDeduplicator
from webintel.exceptions import WebIntelError
from webintel.infrastructure import PerformanceTracker
from webintel.logging_config import setup_logging
from webintel.models import SiteAnalysis
from webintel.pipeline import analyze_site
from webintel.strategy import (
    PageStrategyGrouper,
    estimate_scrape_time,
    get_strategy_for_technology,
    get_strategy_performance,
)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def strategy_command(args):
    """Show the scraping strategy for a technology."""
    mapping = get_strategy_for_technology(args.technology)
    performance = get_strategy_performance(mapping.strategy)
    _print_json({
        "technology": mapping.technology,
        "strategy": mapping.strategy.value,
        "reason": mapping.reason,
        "estimated_speed": mapping.estimated_speed.value,
        "requires_browser": mapping.requires_browser,
        "average_time_s": performance.average_time_s,
    })


def group_command(args):
    """Group URLs into strategy buckets."""
    analysis = SiteAnalysis(site_type=args.site_type) if args.site_type else None
    groups = PageStrategyGrouper().group_pages_by_strategy(args.urls, analysis)
    _print_json({"groups": groups.to_dict(), "estimate_s": estimate_scrape_time(groups)})


async def _crawl(domain: str, max_depth: int, max_urls: int, use_browser: bool,
                 detect: bool, use_sitemap: bool = False) -> dict:
    """Crawl a domain for links and group them by strategy.

    Args:
        domain: Domain to crawl
        max_depth: Maximum recursion depth
        max_urls: Link budget
        use_browser: Drive a Playwright page instead of plain HTTP
        detect: Run site technology detection first
        use_sitemap: Also group URLs listed in the site's sitemaps

    Returns:
        Dictionary with links, groups and timing metrics
    """
    tracker = PerformanceTracker()
    config = LinkCrawlerConfig(domain=domain, max_depth=max_depth, max_urls=max_urls)
    crawler = LinkCrawler(config, tracker=tracker)

    try:
        async with httpx.AsyncClient(headers={"User-Agent": settings.USER_AGENT}) as client:
            analysis = await analyze_site(client, crawler.domain) if detect else None
            if use_browser:
                browser_config = SPA_CONFIG if analysis is not None and analysis.requires_js else FAST_CONFIG
                config.wait_until = browser_config.wait_until
                config.navigation_timeout_ms = browser_config.timeout
                async with BrowserSession(browser_config) as session:
                    links = await crawler.crawl_for_links(await session.new_page())
            else:
                links = await crawler.crawl_for_links(StaticHtmlPage(client))

            urls = crawler.get_prioritized_urls()
            if use_sitemap:
                discovery = SitemapDiscovery(SitemapConfig(domain=crawler.domain), client, tracker=tracker)
                sitemap = await discovery.execute()
                urls = ContentDeduplicator().deduplicate(urls + sitemap.urls)

        groups = PageStrategyGrouper(tracker=tracker).group_pages_by_strategy(urls, analysis)
        return {
            "domain": crawler.domain,
            "site_type": analysis.site_type if analysis else None,
            "links": [asdict(link) for link in links],
            "urls": urls,
            "groups": groups.to_dict(),
            "metrics": tracker.summary(),
        }
    finally:
        tracker.close()


def crawl_command(args):
    """Discover internal links of a domain."""
    result = asyncio.run(_crawl(
        args.domain, args.max_depth, args.max_urls, args.browser, args.detect, args.sitemap
    ))
    _print_json(result)


async def _navigation(url: str) -> dict:
    async with httpx.AsyncClient(headers={"User-Agent": settings.USER_AGENT}) as client:
        page = StaticHtmlPage(client)
        response = await page.goto(url, timeout=NAVIGATION_TIMEOUT_MS)
        if not response.ok:
            raise WebIntelError(f"{url} returned status {response.status}")
        structure = await NavigationParser(page).parse_navigation()
    return {
        "navigation": structure.to_dict(),
        "important_pages": get_important_pages(structure, base_url=page.url),
    }


def nav_command(args):
    """Parse the navigation of a page."""
    _print_json(asyncio.run(_navigation(args.url)))


async def _sitemap(domain: str, max_urls: int, locations: List[str]) -> dict:
    config = SitemapConfig(domain=domain, max_urls=max_urls, custom_locations=locations)
    async with httpx.AsyncClient(headers={"User-Agent": settings.USER_AGENT}) as client:
        result = await SitemapDiscovery(config, client).execute()
    return result.to_dict()


def sitemap_command(args):
    """Discover and read the sitemaps of a domain."""
    _print_json(asyncio.run(_sitemap(args.domain, args.max_urls, args.location)))


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="webintel - Strategy routing and link discovery for company websites"
    )

    # Global flags (before subcommands)
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.LOG_LEVEL.upper() if settings.LOG_LEVEL else "INFO",
        help="Set logging verbosity (default: INFO)",
    )
    parser.add_argument(
        "--log-file",
        default=settings.LOG_FILE,
        help="Write logs to file in addition to console",
    )
    parser.add_argument(
        "--debug-module",
        action="append",
        default=[],
        help="Log this package at DEBUG regardless of --log-level, e.g. webintel.crawler (repeatable)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    strategy_parser = subparsers.add_parser(
        "strategy", help="Show the scraping strategy for a technology."
    )
    strategy_parser.add_argument("technology", help="Technology name, e.g. 'Next.js'")
    strategy_parser.set_defaults(func=strategy_command)

    group_parser = subparsers.add_parser(
        "group", help="Group page URLs by scraping strategy."
    )
    group_parser.add_argument("urls", nargs="+", help="Page URLs")
    group_parser.add_argument("--site-type", help="Detected site technology (overrides URL heuristics)")
    group_parser.set_defaults(func=group_command)

    crawl_parser = subparsers.add_parser(
        "crawl", help="Discover internal links of a domain."
    )
    crawl_parser.add_argument("domain", help="Domain to crawl (e.g., example.com)")
    crawl_parser.add_argument(
        "--max-depth", type=int, default=2, help="Maximum link depth (default: 2)"
    )
    crawl_parser.add_argument(
        "--max-urls", type=int, default=50, help="Maximum links to discover (default: 50)"
    )
    crawl_parser.add_argument(
        "--browser", action="store_true", help="Render pages with Playwright"
    )
    crawl_parser.add_argument(
        "--detect", action="store_true", help="Detect site technology before grouping"
    )
    crawl_parser.add_argument(
        "--sitemap", action="store_true", help="Add URLs from the site's sitemaps before grouping"
    )
    crawl_parser.set_defaults(func=crawl_command)

    nav_parser = subparsers.add_parser(
        "nav", help="Parse the navigation structure of a page."
    )
    nav_parser.add_argument("url", help="Page URL")
    nav_parser.set_defaults(func=nav_command)

    sitemap_parser = subparsers.add_parser(
        "sitemap", help="Discover and read the sitemaps of a domain."
    )
    sitemap_parser.add_argument("domain", help="Domain (e.g., example.com)")
    sitemap_parser.add_argument(
        "--max-urls", type=int, default=500, help="Maximum entries to return (default: 500)"
    )
    sitemap_parser.add_argument(
        "--location", action="append", default=[],
        help="Extra sitemap path or URL to try (repeatable)"
    )
    sitemap_parser.set_defaults(func=sitemap_command)

    args = parser.parse_args(argv)

    setup_logging(
        level=args.log_level,
        log_file=getattr(args, 'log_file', None),
        module_levels={name: "DEBUG" for name in args.debug_module},
    )

    if not hasattr(args, "func"):
        parser.print_help()
        return

    try:
        args.func(args)
    except WebIntelError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
