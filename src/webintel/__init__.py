"""Scraping-strategy routing and crawl coordination for company web intelligence."""

__version__ = "0.1.0"

from webintel.config import (
    settings,
    LinkCrawlerConfig,
    EventDeduplicatorConfig,
    PerformanceTrackerConfig,
    SyncOptions,
    SitemapConfig,
)
from webintel.exceptions import (
    WebIntelError,
    NavigationError,
    PersistenceError,
    TableNotFoundError,
    SessionNotFoundError,
    PhaseDataNotFoundError,
)
from webintel.models import (
    ScrapingStrategy,
    EstimatedSpeed,
    NavigationType,
    RunStatus,
    CrawledLink,
    NavigationItem,
    NavigationStructure,
    SiteAnalysis,
    UrlEntry,
)

# Deduplication
from webintel.dedup import (
    normalize_url,
    is_same_domain,
    ContentDeduplicator,
    EventDeduplicator,
    generate_event_id,
)

# Strategy routing
from webintel.strategy import (
    Technology,
    TechnologyMapping,
    get_strategy_for_technology,
    get_strategy_performance,
    PageStrategyGrouper,
    StrategyGroups,
    group_pages_by_strategy,
    is_likely_static_page,
    SiteTechnologyDetector,
)

# Crawling
from webintel.crawler import (
    LinkCrawler,
    NavigationParser,
    get_important_pages,
    StaticHtmlPage,
    BrowserSession,
    SitemapDiscovery,
    SitemapDiscoveryResult,
)

# Infrastructure
from webintel.infrastructure import (
    PerformanceTracker,
    PerformanceMetric,
    DelayedTask,
    PeriodicTask,
)

# Persistence and session state
from webintel.persistence import (
    SessionRepository,
    InMemorySessionRepository,
    SqliteSessionRepository,
    SessionRow,
    ScraperRunRow,
    PhaseDataRow,
    PhaseDataStore,
    get_repository,
)
from webintel.session import (
    ScraperRun,
    SessionState,
    SessionTotals,
    SessionStateSynchronizer,
    SyncResult,
    SyncStatus,
)
from webintel.pipeline import IntelligencePipeline, ScrapeOutcome, PipelineResult

__all__ = [
    "settings",
    "LinkCrawlerConfig",
    "EventDeduplicatorConfig",
    "PerformanceTrackerConfig",
    "SyncOptions",
    "SitemapConfig",
    "WebIntelError",
    "NavigationError",
    "PersistenceError",
    "TableNotFoundError",
    "SessionNotFoundError",
    "PhaseDataNotFoundError",
    "ScrapingStrategy",
    "EstimatedSpeed",
    "NavigationType",
    "RunStatus",
    "CrawledLink",
    "NavigationItem",
    "NavigationStructure",
    "SiteAnalysis",
    "UrlEntry",
    # Deduplication
    "normalize_url",
    "is_same_domain",
    "ContentDeduplicator",
    "EventDeduplicator",
    "generate_event_id",
    # Strategy routing
    "Technology",
    "TechnologyMapping",
    "get_strategy_for_technology",
    "get_strategy_performance",
    "PageStrategyGrouper",
    "StrategyGroups",
    "group_pages_by_strategy",
    "is_likely_static_page",
    "SiteTechnologyDetector",
    # Crawling
    "LinkCrawler",
    "NavigationParser",
    "get_important_pages",
    "StaticHtmlPage",
    "BrowserSession",
    "SitemapDiscovery",
    "SitemapDiscoveryResult",
    # Infrastructure
    "PerformanceTracker",
    "PerformanceMetric",
    "DelayedTask",
    "PeriodicTask",
    # Persistence and session state
    "SessionRepository",
    "InMemorySessionRepository",
    "SqliteSessionRepository",
    "SessionRow",
    "ScraperRunRow",
    "PhaseDataRow",
    "PhaseDataStore",
    "get_repository",
    "ScraperRun",
    "SessionState",
    "SessionTotals",
    "SessionStateSynchronizer",
    "SyncResult",
    "SyncStatus",
    # Pipeline
    "IntelligencePipeline",
    "ScrapeOutcome",
    "PipelineResult",
]
