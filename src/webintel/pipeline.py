"""
End-to-end intelligence gathering for one domain.

bootstrap crawl and sitemap discovery -> strategy grouping -> scrape per bucket
-> event dedup -> session state -> debounced sync, with an explicit checkpoint at the end.
The scrape itself is an injected coroutine; this module only coordinates.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from .config import LinkCrawlerConfig, SyncOptions
from .crawler.link_crawler import LinkCrawler
from .crawler.pages import PageLike
from .crawler.sitemap import SitemapDiscovery, SitemapDiscoveryResult
from .dedup.content_deduplicator import ContentDeduplicator
from .dedup.event_deduplicator import EventDeduplicator, generate_event_id
from .infrastructure.performance_tracker import PerformanceTracker
from .models import CrawledLink, RunStatus, ScrapingStrategy, SiteAnalysis
from .persistence.repository import SessionRepository
from .session.state import ScraperRun, SessionState
from .session.state_synchronizer import SessionStateSynchronizer
from .strategy.page_grouper import PageStrategyGrouper, StrategyGroups
from .strategy.site_detector import SiteTechnologyDetector

logger = logging.getLogger(__name__)


@dataclass
class ScrapeOutcome:
    """What a scraper reports back for one strategy bucket."""

    pages_scraped: int = 0
    data_points: int = 0
    discovered_links: int = 0
    status: RunStatus = RunStatus.COMPLETE
    extracted_data: Optional[Dict[str, Any]] = None
    # Stable across retries of the same bucket; used for event dedup
    timestamp: Optional[int] = None


Scraper = Callable[[ScrapingStrategy, List[str]], Awaitable[ScrapeOutcome]]


@dataclass
class PipelineResult:
    session_id: str
    links: List[CrawledLink]
    groups: StrategyGroups
    state: SessionState
    skipped_events: List[str] = field(default_factory=list)
    sitemap: Optional[SitemapDiscoveryResult] = None


async def analyze_site(client: httpx.AsyncClient, domain: str,
                       detector: Optional[SiteTechnologyDetector] = None) -> SiteAnalysis:
    """
    Fetch a domain's homepage and detect its technology.

    Transport errors and non-2xx responses yield an empty analysis, so
    grouping falls back to URL heuristics.
    """
    url = f"https://{domain}"
    detector = detector or SiteTechnologyDetector()
    try:
        response = await client.get(url, follow_redirects=True)
    except httpx.HTTPError as e:
        logger.warning(f"Site analysis fetch failed for {url}: {e}")
        return SiteAnalysis(url=url)
    if not response.is_success:
        logger.warning(f"Site analysis fetch for {url} returned {response.status_code}")
        return SiteAnalysis(url=url)
    return detector.detect(url, response.text, dict(response.headers))


class IntelligencePipeline:
    """
    Runs one gathering pass for a domain and keeps its session up to date.

    Collaborators are injected so several pipelines can run side by side
    (one per domain) without sharing mutable state.
    """

    def __init__(
        self,
        domain: str,
        repository: SessionRepository,
        scrape: Scraper,
        session_id: Optional[str] = None,
        crawler_config: Optional[LinkCrawlerConfig] = None,
        sync_options: Optional[SyncOptions] = None,
        tracker: Optional[PerformanceTracker] = None,
        event_deduplicator: Optional[EventDeduplicator] = None,
        content_deduplicator: Optional[ContentDeduplicator] = None,
        sitemap: Optional[SitemapDiscovery] = None,
    ):
        self.domain = domain
        self.repository = repository
        self.scrape = scrape
        self.session_id = session_id
        self.crawler_config = crawler_config or LinkCrawlerConfig(domain=domain)
        self.sync_options = sync_options or SyncOptions()
        self._owned = []
        self.tracker = tracker or self._own(PerformanceTracker())
        self.event_deduplicator = event_deduplicator or self._own(EventDeduplicator())
        self.content_deduplicator = content_deduplicator or ContentDeduplicator()
        self.sitemap = sitemap

    def _own(self, component):
        self._owned.append(component)
        return component

    def close(self) -> None:
        """Stop background sweeps of components this pipeline created."""
        for component in self._owned:
            component.close()
        self._owned.clear()

    def _ensure_session(self) -> str:
        if self.session_id and self.repository.get_session(self.session_id) is not None:
            return self.session_id
        row = self.repository.create_session(self.domain, session_id=self.session_id)
        self.session_id = row.id
        return row.id

    async def run(self, page: PageLike, site_analysis: Optional[SiteAnalysis] = None) -> PipelineResult:
        """
        Crawl, group, scrape and persist.

        When sitemap discovery is configured its URLs are merged after the
        crawled ones; both pass through the content deduplicator.

        Args:
            page: Page capability used for link discovery
            site_analysis: Site detection result, if already available

        Returns:
            PipelineResult with links, groups and the final session state

        Raises:
            PersistenceError: If the session cannot be read or written
        """
        session_id = self._ensure_session()
        synchronizer = SessionStateSynchronizer(session_id, self.repository, self.sync_options)
        skipped: List[str] = []

        try:
            recovered = synchronizer.sync_from_database()
            state = recovered.state if recovered.found else SessionState(session_id, self.domain)

            crawler = LinkCrawler(self.crawler_config, tracker=self.tracker)
            links = await crawler.crawl_for_links(page)
            candidates = crawler.get_prioritized_urls()

            sitemap_result = None
            if self.sitemap is not None:
                sitemap_result = await self.sitemap.execute()
                candidates.extend(sitemap_result.urls)

            urls = [url for url in candidates if self.content_deduplicator.check_and_mark(url)]

            grouper = PageStrategyGrouper(tracker=self.tracker)
            groups = grouper.group_pages_by_strategy(urls, site_analysis)

            for strategy, bucket in groups.non_empty():
                with self.tracker.measure(f"scrape_{strategy.value}", {"pages": len(bucket)}):
                    outcome = await self.scrape(strategy, bucket)

                timestamp = outcome.timestamp or int(time.time() * 1000)
                event_id = generate_event_id("scrape-complete", f"{session_id}:{strategy.value}", timestamp)
                if self.event_deduplicator.is_duplicate(event_id):
                    logger.info(f"Skipping duplicate completion event {event_id}")
                    skipped.append(event_id)
                    continue

                run = ScraperRun(
                    scraper_id=strategy.value,
                    scraper_name=f"{strategy.value} scraper",
                    status=outcome.status,
                    pages_scraped=outcome.pages_scraped,
                    data_points=outcome.data_points,
                    discovered_links=outcome.discovered_links,
                    extracted_data=outcome.extracted_data,
                    event_id=event_id,
                )
                state.record_run(run)
                await synchronizer.save_scraper_run(run)
                synchronizer.sync_to_database(state.to_partial())

            await synchronizer.flush()
        finally:
            await synchronizer.destroy()

        logger.info(
            f"Pipeline for {self.domain} finished: {len(links)} links, "
            f"{state.totals.pages_scraped} pages scraped, {len(skipped)} duplicate events"
        )
        return PipelineResult(session_id, links, groups, state, skipped, sitemap_result)
