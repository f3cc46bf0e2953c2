"""
Partition page URLs into scraping-strategy buckets.

A site-level classification wins over URL shape: if the site is known to be
an SPA, every page is scraped as an SPA. Only hybrid sites (or sites with no
classification) fall back to the per-page URL heuristic.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from ..constants import DYNAMIC_PAGE_PATTERNS, STATIC_PAGE_PATTERNS
from ..infrastructure.performance_tracker import PerformanceTracker
from ..models import ScrapingStrategy, SiteAnalysis
from .technology_map import get_strategy_for_technology, get_strategy_performance

logger = logging.getLogger(__name__)

_DYNAMIC_RES = [re.compile(p, re.IGNORECASE) for p in DYNAMIC_PAGE_PATTERNS]
_STATIC_RES = [re.compile(p, re.IGNORECASE) for p in STATIC_PAGE_PATTERNS]


def is_likely_static_page(url: str) -> bool:
    """
    Guess from the URL alone whether a page is plain server-rendered HTML.

    Dynamic indicators are checked before static ones, so '/app/about'
    is not static. With no indicator at all, a URL is static iff it has
    no query string and no fragment.

    Args:
        url: Page URL

    Returns:
        True if the page can likely be parsed without a browser
    """
    if any(pattern.search(url) for pattern in _DYNAMIC_RES):
        return False
    if any(pattern.search(url) for pattern in _STATIC_RES):
        return True
    return "?" not in url and "#" not in url


@dataclass
class StrategyGroups:
    """Page URLs grouped by the strategy that will scrape them."""

    static: List[str] = field(default_factory=list)
    dynamic: List[str] = field(default_factory=list)
    spa: List[str] = field(default_factory=list)
    hybrid: List[str] = field(default_factory=list)

    def __getitem__(self, strategy: Union[ScrapingStrategy, str]) -> List[str]:
        return getattr(self, ScrapingStrategy(strategy).value)

    def items(self) -> Iterator[Tuple[ScrapingStrategy, List[str]]]:
        for strategy in ScrapingStrategy:
            yield strategy, self[strategy]

    def non_empty(self) -> Iterator[Tuple[ScrapingStrategy, List[str]]]:
        return ((strategy, urls) for strategy, urls in self.items() if urls)

    def all_urls(self) -> List[str]:
        return [url for _, urls in self.items() for url in urls]

    def counts(self) -> Dict[str, int]:
        return {strategy.value: len(urls) for strategy, urls in self.items()}

    def to_dict(self) -> Dict[str, List[str]]:
        return {strategy.value: list(urls) for strategy, urls in self.items()}


def _site_type(site_analysis: Union[SiteAnalysis, Mapping[str, Any], None]) -> Optional[str]:
    if site_analysis is None:
        return None
    if isinstance(site_analysis, SiteAnalysis):
        return site_analysis.site_type
    return site_analysis.get("site_type") or site_analysis.get("siteType")


def estimate_scrape_time(groups: StrategyGroups) -> Dict[str, float]:
    """Estimated seconds per strategy bucket, plus a 'total' key."""
    estimate = {
        strategy.value: len(urls) * get_strategy_performance(strategy).average_time_s
        for strategy, urls in groups.items()
    }
    estimate["total"] = sum(estimate.values())
    return estimate


class PageStrategyGrouper:
    """
    Groups discovered pages by scraping strategy.

    Every input URL ends up in exactly one bucket; repeated input strings
    are collapsed, keeping the first occurrence's position.
    """

    def __init__(self, tracker: Optional[PerformanceTracker] = None):
        """
        Initialize the grouper.

        Args:
            tracker: Optional tracker timing each grouping call
        """
        self._tracker = tracker

    def group_pages_by_strategy(
        self,
        pages: Iterable[str],
        site_analysis: Union[SiteAnalysis, Mapping[str, Any], None] = None,
    ) -> StrategyGroups:
        """
        Partition pages into strategy buckets.

        Args:
            pages: Page URLs
            site_analysis: Site detection result; its ``site_type`` decides
                the strategy for every page unless it maps to hybrid

        Returns:
            StrategyGroups partitioning the unique input URLs
        """
        timer = self._tracker.start_timer("strategy_grouping") if self._tracker else None
        unique_pages = list(dict.fromkeys(pages))
        groups = StrategyGroups()

        site_type = _site_type(site_analysis)
        site_strategy: Optional[ScrapingStrategy] = None
        if site_type:
            mapping = get_strategy_for_technology(site_type)
            site_strategy = mapping.strategy
            logger.info(f"Site type {site_type} resolved to {site_strategy.value}: {mapping.reason}")

        if site_strategy is not None and site_strategy is not ScrapingStrategy.HYBRID:
            groups[site_strategy].extend(unique_pages)
        else:
            for url in unique_pages:
                bucket = ScrapingStrategy.STATIC if is_likely_static_page(url) else ScrapingStrategy.DYNAMIC
                groups[bucket].append(url)

        estimate = estimate_scrape_time(groups)
        summary = ", ".join(f"{name}={count}" for name, count in groups.counts().items())
        logger.info(
            f"Grouped {len(unique_pages)} pages by strategy ({summary}); "
            f"estimated scrape time {estimate['total']:.1f}s"
        )

        if timer is not None:
            timer.stop()
        return groups


def group_pages_by_strategy(
    pages: Iterable[str],
    site_analysis: Union[SiteAnalysis, Mapping[str, Any], None] = None,
) -> StrategyGroups:
    """Module-level shortcut for ``PageStrategyGrouper().group_pages_by_strategy``."""
    return PageStrategyGrouper().group_pages_by_strategy(pages, site_analysis)
