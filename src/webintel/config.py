"""Settings and component configuration.

Process-wide settings come from environment variables (a ``.env`` file is
loaded first). Each component takes a validated Pydantic model; every model
offers ``from_env()`` reading ``WEBINTEL_*`` overrides.
"""
from dotenv import load_dotenv
from typing import List, Literal
import os

from pydantic import BaseModel, Field

from .constants import (
    CONVENTIONAL_PATHS,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_URLS,
    EVENT_DEDUP_CLEANUP_INTERVAL_MS,
    EVENT_DEDUP_MAX_SIZE,
    EVENT_DEDUP_TTL_MS,
    NAVIGATION_TIMEOUT_MS,
    SITEMAP_MAX_URLS,
    SITEMAP_TIMEOUT_MS,
    SKIPPED_EXTENSIONS,
    SLOW_OPERATION_THRESHOLD_MS,
    STALE_TIMER_AGE_MS,
    SYNC_DEBOUNCE_MS,
    SYNC_INTERVAL_MS,
    TIMER_SWEEP_INTERVAL_MS,
)

load_dotenv()  # Loads variables from .env file


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """
    Manages application settings loaded from environment variables.
    """
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///webintel.db")

    # 'memory' or 'sqlite'
    DB_BACKEND = os.getenv("DB_BACKEND", "sqlite")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE")
    USER_AGENT = os.getenv("USER_AGENT", "WebIntel-Bot/1.0")


settings = Settings()


class LinkCrawlerConfig(BaseModel):
    """Budgets and navigation options for a single LinkCrawler run."""

    domain: str = Field(
        description="Target domain, without scheme (e.g. 'example.com')"
    )
    max_depth: int = Field(
        default=DEFAULT_MAX_DEPTH,
        ge=0,
        description="Maximum recursion depth below the homepage"
    )
    max_urls: int = Field(
        default=DEFAULT_MAX_URLS,
        ge=1,
        description="Hard global cap on discovered links"
    )
    navigation_timeout_ms: int = Field(
        default=NAVIGATION_TIMEOUT_MS,
        ge=1000,
        le=300000,
        description="Timeout for each page navigation in milliseconds"
    )
    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = Field(
        default="domcontentloaded",
        description="When to consider navigation complete"
    )
    conventional_paths: List[str] = Field(
        default_factory=lambda: list(CONVENTIONAL_PATHS),
        description="Paths probed after the homepage"
    )
    skip_extensions: List[str] = Field(
        default_factory=lambda: list(SKIPPED_EXTENSIONS),
        description="File extensions never followed"
    )

    class Config:
        """Pydantic model configuration."""
        frozen = False
        validate_assignment = True

    @classmethod
    def from_env(cls, domain: str) -> "LinkCrawlerConfig":
        """Load crawl budgets from environment variables.

        Args:
            domain: Target domain for the crawl

        Returns:
            LinkCrawlerConfig with values from environment
        """
        return cls(
            domain=domain,
            max_depth=int(os.getenv("WEBINTEL_MAX_DEPTH", str(DEFAULT_MAX_DEPTH))),
            max_urls=int(os.getenv("WEBINTEL_MAX_URLS", str(DEFAULT_MAX_URLS))),
            navigation_timeout_ms=int(
                os.getenv("WEBINTEL_NAVIGATION_TIMEOUT_MS", str(NAVIGATION_TIMEOUT_MS))
            ),
        )


class SitemapConfig(BaseModel):
    """Locations and limits for sitemap discovery."""

    domain: str = Field(
        description="Target domain, without scheme (e.g. 'example.com')"
    )
    max_urls: int = Field(
        default=SITEMAP_MAX_URLS,
        ge=1,
        description="Entries kept after deduplication and prioritization"
    )
    timeout_ms: int = Field(
        default=SITEMAP_TIMEOUT_MS,
        ge=1000,
        le=300000,
        description="Timeout for each sitemap fetch in milliseconds"
    )
    custom_locations: List[str] = Field(
        default_factory=list,
        description="Extra sitemap paths or absolute URLs, tried after the standard ones"
    )
    include_nested: bool = Field(
        default=True,
        description="Follow child sitemaps listed in a sitemap index"
    )

    @classmethod
    def from_env(cls, domain: str) -> "SitemapConfig":
        """Load sitemap limits from environment variables.

        Args:
            domain: Target domain

        Returns:
            SitemapConfig with values from environment
        """
        return cls(
            domain=domain,
            max_urls=int(os.getenv("WEBINTEL_SITEMAP_MAX_URLS", str(SITEMAP_MAX_URLS))),
            timeout_ms=int(os.getenv("WEBINTEL_SITEMAP_TIMEOUT_MS", str(SITEMAP_TIMEOUT_MS))),
            include_nested=_env_bool("WEBINTEL_SITEMAP_NESTED", True),
        )


class EventDeduplicatorConfig(BaseModel):
    """Window and capacity for the event dedup cache."""

    ttl_ms: int = Field(default=EVENT_DEDUP_TTL_MS, ge=1)
    max_size: int = Field(default=EVENT_DEDUP_MAX_SIZE, ge=1)
    cleanup_interval_ms: int = Field(default=EVENT_DEDUP_CLEANUP_INTERVAL_MS, ge=1)

    @classmethod
    def from_env(cls) -> "EventDeduplicatorConfig":
        return cls(
            ttl_ms=int(os.getenv("WEBINTEL_DEDUP_TTL_MS", str(EVENT_DEDUP_TTL_MS))),
            max_size=int(os.getenv("WEBINTEL_DEDUP_MAX_SIZE", str(EVENT_DEDUP_MAX_SIZE))),
            cleanup_interval_ms=int(
                os.getenv("WEBINTEL_DEDUP_CLEANUP_INTERVAL_MS", str(EVENT_DEDUP_CLEANUP_INTERVAL_MS))
            ),
        )


class PerformanceTrackerConfig(BaseModel):
    """Thresholds for slow-operation reporting and abandoned timer cleanup."""

    slow_threshold_ms: float = Field(default=SLOW_OPERATION_THRESHOLD_MS, gt=0)
    sweep_interval_ms: int = Field(default=TIMER_SWEEP_INTERVAL_MS, ge=1)
    stale_after_ms: int = Field(default=STALE_TIMER_AGE_MS, ge=1)

    @classmethod
    def from_env(cls) -> "PerformanceTrackerConfig":
        return cls(
            slow_threshold_ms=float(
                os.getenv("WEBINTEL_SLOW_THRESHOLD_MS", str(SLOW_OPERATION_THRESHOLD_MS))
            ),
        )


class SyncOptions(BaseModel):
    """Scheduling options for SessionStateSynchronizer."""

    auto_sync: bool = Field(
        default=True,
        description="Run the interval safety-net flush"
    )
    sync_interval_ms: int = Field(
        default=SYNC_INTERVAL_MS,
        ge=1,
        description="Interval between safety-net flushes"
    )
    debounce_ms: int = Field(
        default=SYNC_DEBOUNCE_MS,
        ge=0,
        description="Quiet period before a requested sync is written"
    )

    @classmethod
    def from_env(cls) -> "SyncOptions":
        """Load sync scheduling from environment variables.

        Returns:
            SyncOptions with values from environment
        """
        return cls(
            auto_sync=_env_bool("WEBINTEL_AUTO_SYNC", True),
            sync_interval_ms=int(os.getenv("WEBINTEL_SYNC_INTERVAL_MS", str(SYNC_INTERVAL_MS))),
            debounce_ms=int(os.getenv("WEBINTEL_SYNC_DEBOUNCE_MS", str(SYNC_DEBOUNCE_MS))),
        )
