"""Site classification and per-page strategy routing."""

from .technology_map import (
    Technology,
    TechnologyMapping,
    StrategyPerformance,
    TECHNOLOGY_MAPPINGS,
    get_strategy_for_technology,
    get_strategy_performance,
    normalize_technology_name,
)
from .page_grouper import (
    PageStrategyGrouper,
    StrategyGroups,
    group_pages_by_strategy,
    is_likely_static_page,
    estimate_scrape_time,
)
from .site_detector import SiteTechnologyDetector

__all__ = [
    "Technology",
    "TechnologyMapping",
    "StrategyPerformance",
    "TECHNOLOGY_MAPPINGS",
    "get_strategy_for_technology",
    "get_strategy_performance",
    "normalize_technology_name",
    "PageStrategyGrouper",
    "StrategyGroups",
    "group_pages_by_strategy",
    "is_likely_static_page",
    "estimate_scrape_time",
    "SiteTechnologyDetector",
]
