"""
Technology to scraping-strategy mapping.

The table is keyed by the ``Technology`` enum. Lookups for names outside
the table fall back to a browser-backed dynamic strategy: a site is never
assumed static unless it is known to be.
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from ..models import EstimatedSpeed, ScrapingStrategy

logger = logging.getLogger(__name__)


class Technology(str, Enum):
    """Technologies with an editorial strategy, by normalized name."""

    WORDPRESS = "WORDPRESS"
    JEKYLL = "JEKYLL"
    HUGO = "HUGO"
    DRUPAL = "DRUPAL"
    JOOMLA = "JOOMLA"
    NEXTJS = "NEXTJS"
    GATSBY = "GATSBY"
    NUXTJS = "NUXTJS"
    REACT = "REACT"
    VUE = "VUE"
    ANGULAR = "ANGULAR"
    SHOPIFY = "SHOPIFY"
    MAGENTO = "MAGENTO"
    WOOCOMMERCE = "WOOCOMMERCE"
    WIX = "WIX"
    SQUARESPACE = "SQUARESPACE"
    WEBFLOW = "WEBFLOW"


@dataclass(frozen=True)
class TechnologyMapping:
    """Strategy chosen for a technology and why."""

    technology: str
    strategy: ScrapingStrategy
    reason: str
    estimated_speed: EstimatedSpeed
    requires_browser: bool


@dataclass(frozen=True)
class StrategyPerformance:
    """Rough per-page cost of a strategy."""

    average_time_s: float
    description: str


def _mapping(tech: Technology, strategy: ScrapingStrategy, reason: str,
             speed: EstimatedSpeed, requires_browser: bool) -> TechnologyMapping:
    return TechnologyMapping(tech.value, strategy, reason, speed, requires_browser)


_S = ScrapingStrategy
_FAST, _NORMAL, _SLOW = EstimatedSpeed.FAST, EstimatedSpeed.NORMAL, EstimatedSpeed.SLOW

TECHNOLOGY_MAPPINGS: Dict[Technology, TechnologyMapping] = {
    # Server-rendered CMSs and static site generators
    Technology.WORDPRESS: _mapping(Technology.WORDPRESS, _S.STATIC, "WordPress renders server-side HTML", _FAST, False),
    Technology.JEKYLL: _mapping(Technology.JEKYLL, _S.STATIC, "Jekyll generates static HTML", _FAST, False),
    Technology.HUGO: _mapping(Technology.HUGO, _S.STATIC, "Hugo generates static HTML", _FAST, False),
    Technology.DRUPAL: _mapping(Technology.DRUPAL, _S.STATIC, "Drupal renders server-side HTML", _FAST, False),
    Technology.JOOMLA: _mapping(Technology.JOOMLA, _S.STATIC, "Joomla renders server-side HTML", _FAST, False),

    # Meta-frameworks: build-time or per-route rendering
    Technology.NEXTJS: _mapping(Technology.NEXTJS, _S.HYBRID, "Next.js mixes static generation and client rendering", _NORMAL, False),
    Technology.GATSBY: _mapping(Technology.GATSBY, _S.STATIC, "Gatsby generates static pages at build time", _FAST, False),
    Technology.NUXTJS: _mapping(Technology.NUXTJS, _S.HYBRID, "Nuxt.js can be static or dynamic", _NORMAL, False),

    # Client-rendered SPAs
    Technology.REACT: _mapping(Technology.REACT, _S.SPA, "React SPAs require JavaScript execution", _SLOW, True),
    Technology.VUE: _mapping(Technology.VUE, _S.SPA, "Vue SPAs require JavaScript execution", _SLOW, True),
    Technology.ANGULAR: _mapping(Technology.ANGULAR, _S.SPA, "Angular SPAs require JavaScript execution", _SLOW, True),

    # E-commerce
    Technology.SHOPIFY: _mapping(Technology.SHOPIFY, _S.DYNAMIC, "Shopify uses dynamic product loading", _NORMAL, True),
    Technology.MAGENTO: _mapping(Technology.MAGENTO, _S.DYNAMIC, "Magento has complex JavaScript interactions", _NORMAL, True),
    Technology.WOOCOMMERCE: _mapping(Technology.WOOCOMMERCE, _S.STATIC, "WooCommerce renders server-side with WordPress", _FAST, False),

    # Site builders
    Technology.WIX: _mapping(Technology.WIX, _S.DYNAMIC, "Wix uses heavy JavaScript rendering", _SLOW, True),
    Technology.SQUARESPACE: _mapping(Technology.SQUARESPACE, _S.STATIC, "Squarespace renders mostly static HTML", _FAST, False),
    Technology.WEBFLOW: _mapping(Technology.WEBFLOW, _S.STATIC, "Webflow exports clean HTML", _FAST, False),
}

STRATEGY_PERFORMANCE: Dict[ScrapingStrategy, StrategyPerformance] = {
    ScrapingStrategy.STATIC: StrategyPerformance(0.5, "Lightning fast HTML parsing"),
    ScrapingStrategy.DYNAMIC: StrategyPerformance(2.0, "Full browser automation"),
    ScrapingStrategy.SPA: StrategyPerformance(3.0, "SPA with JS execution"),
    ScrapingStrategy.HYBRID: StrategyPerformance(1.5, "Mixed approach"),
}

UNKNOWN_TECHNOLOGY_REASON = "Unknown technology - using safe dynamic strategy"

# Adding an enum member without a table entry is an import-time error
_unmapped = [t.value for t in Technology if t not in TECHNOLOGY_MAPPINGS]
_unmeasured = [s.value for s in ScrapingStrategy if s not in STRATEGY_PERFORMANCE]
if _unmapped or _unmeasured:
    raise RuntimeError(
        f"Strategy tables are incomplete: technologies={_unmapped} strategies={_unmeasured}"
    )


def normalize_technology_name(name: str) -> str:
    """'Next.js' -> 'NEXTJS', 'word press' -> 'WORDPRESS'."""
    return re.sub(r"[\s.\-]", "", name or "").upper()


def resolve_technology(name: str) -> Optional[Technology]:
    """Return the Technology for a name, or None when it is not in the table."""
    try:
        return Technology(normalize_technology_name(name))
    except ValueError:
        return None


def get_strategy_for_technology(name: str) -> TechnologyMapping:
    """
    Map a detected technology to a scraping strategy.

    Args:
        name: Technology name in any casing/punctuation ('Next.js', 'nuxt-js')

    Returns:
        TechnologyMapping; unknown names get a dynamic, browser-backed default
    """
    technology = resolve_technology(name)
    if technology is None:
        logger.debug(f"Unknown technology '{name}', defaulting to dynamic strategy")
        return TechnologyMapping(
            technology=name,
            strategy=ScrapingStrategy.DYNAMIC,
            reason=UNKNOWN_TECHNOLOGY_REASON,
            estimated_speed=EstimatedSpeed.NORMAL,
            requires_browser=True,
        )

    mapping = TECHNOLOGY_MAPPINGS[technology]
    logger.debug(
        f"Technology {technology.value} -> {mapping.strategy.value} "
        f"(browser={mapping.requires_browser}, speed={mapping.estimated_speed.value})"
    )
    return mapping


def get_strategy_performance(strategy: ScrapingStrategy) -> StrategyPerformance:
    """Average per-page time and a description for a strategy."""
    return STRATEGY_PERFORMANCE[ScrapingStrategy(strategy)]
