"""Site technology detection from a fetched homepage.

Scores weighted indicators (CSS selectors, meta generators, response
headers, script and asset-path substrings) per technology. The winning
technology becomes ``SiteAnalysis.site_type``, which drives strategy
grouping.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from ..models import ScrapingStrategy, SiteAnalysis
from .technology_map import Technology, get_strategy_for_technology

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Indicator:
    """A single piece of evidence for a technology.

    kind is one of 'selector', 'meta', 'header', 'script', 'path'.
    For 'meta' and 'header', ``value`` (if set) must appear in the content.
    """

    kind: str
    target: str
    weight: int
    value: Optional[str] = None


def _sel(target: str, weight: int) -> Indicator:
    return Indicator("selector", target, weight)


def _meta(target: str, weight: int, value: Optional[str] = None) -> Indicator:
    return Indicator("meta", target, weight, value)


def _header(target: str, weight: int, value: Optional[str] = None) -> Indicator:
    return Indicator("header", target, weight, value)


def _script(target: str, weight: int) -> Indicator:
    return Indicator("script", target, weight)


def _path(target: str, weight: int) -> Indicator:
    return Indicator("path", target, weight)


SIGNATURES: Dict[Technology, Tuple[Indicator, ...]] = {
    Technology.NEXTJS: (
        _sel('script[src*="/_next"]', 10),
        _sel("#__next", 8),
        _header("x-powered-by", 10, "Next.js"),
        _meta("next-head-count", 10),
        _script("__NEXT_DATA__", 10),
        _path("/_next/static/", 8),
    ),
    Technology.WORDPRESS: (
        _meta("generator", 10, "WordPress"),
        _sel('link[rel="https://api.w.org/"]', 8),
        _path("/wp-content/", 6),
        _path("/wp-includes/", 6),
        _script("wp-emoji", 4),
    ),
    Technology.WOOCOMMERCE: (
        _sel(".woocommerce", 8),
        _path("/wp-content/plugins/woocommerce/", 10),
    ),
    Technology.WEBFLOW: (
        _sel(".w-webflow-badge", 8),
        _meta("generator", 10, "Webflow"),
        _script("webflow.js", 8),
        _sel("[data-wf-page]", 6),
    ),
    Technology.REACT: (
        _sel("#root", 5),
        _sel("[data-reactroot]", 8),
        _script("react-dom", 6),
        _script("_react", 4),
    ),
    Technology.VUE: (
        _sel("#app", 5),
        _sel("[data-server-rendered]", 6),
        _script("vue.runtime", 6),
        _meta("generator", 8, "Vue"),
    ),
    Technology.ANGULAR: (
        _sel("[ng-app]", 8),
        _sel("[ng-version]", 10),
        _sel("app-root", 6),
        _script("angular", 6),
    ),
    Technology.SHOPIFY: (
        _meta("shopify-digital-wallet", 10),
        _sel(".shopify-section", 8),
        _script("cdn.shopify.com", 8),
        _path("/cdn/shop/", 6),
    ),
    Technology.WIX: (
        _meta("generator", 10, "Wix.com"),
        _sel("[data-wix-comp]", 8),
        _script("static.wixstatic.com", 8),
        _sel("#SITE_CONTAINER", 6),
    ),
    Technology.SQUARESPACE: (
        _sel(".sqs-block", 6),
        _script("static.squarespace.com", 8),
        _meta("generator", 10, "Squarespace"),
        _sel("#siteWrapper", 6),
    ),
    Technology.GATSBY: (
        _sel("#___gatsby", 10),
        _meta("generator", 10, "Gatsby"),
        _script("gatsby", 6),
    ),
    Technology.NUXTJS: (
        _sel("#__nuxt", 10),
        _meta("generator", 10, "Nuxt"),
        _script("__NUXT__", 8),
        _path("/_nuxt/", 8),
    ),
    Technology.JEKYLL: (
        _meta("generator", 10, "Jekyll"),
        _sel(".jekyll", 4),
    ),
    Technology.HUGO: (
        _meta("generator", 10, "Hugo"),
    ),
    Technology.DRUPAL: (
        _meta("generator", 10, "Drupal"),
        _header("x-generator", 10, "Drupal"),
        _path("/sites/default/", 6),
        _script("Drupal.settings", 6),
    ),
    Technology.JOOMLA: (
        _meta("generator", 10, "Joomla"),
        _path("/components/com_", 6),
        _path("/modules/mod_", 6),
    ),
    Technology.MAGENTO: (
        _script("Mage.Cookies", 8),
        _path("/skin/frontend/", 6),
        _path("/media/catalog/", 6),
        _sel(".magento", 4),
    ),
}

# Minimum score (weight sum) for a technology to become the site type
MIN_SITE_TYPE_SCORE = 5


class SiteTechnologyDetector:
    """Detects which known technology a site is built on."""

    def __init__(self, min_score: int = MIN_SITE_TYPE_SCORE):
        self.min_score = min_score

    def _matches(self, indicator: Indicator, soup: BeautifulSoup, html: str,
                 headers: Dict[str, str]) -> bool:
        if indicator.kind == "selector":
            return soup.select_one(indicator.target) is not None
        if indicator.kind in ("script", "path"):
            return indicator.target in html
        if indicator.kind == "header":
            content = headers.get(indicator.target.lower())
        else:
            tag = (soup.find("meta", attrs={"name": indicator.target})
                   or soup.find("meta", attrs={"property": indicator.target}))
            content = tag.get("content") if tag else None
        if not content:
            return False
        return indicator.value is None or indicator.value.lower() in content.lower()

    def score(self, html: str, headers: Optional[Dict[str, str]] = None) -> List[Dict[str, object]]:
        """
        Score every known technology against a page.

        Args:
            html: Page HTML
            headers: Response headers (any casing)

        Returns:
            Detected technologies, best first, as dicts with
            'technology', 'score', 'confidence' and 'indicators'
        """
        soup = BeautifulSoup(html, "html.parser")
        lowered = {k.lower(): v for k, v in (headers or {}).items()}
        results = []
        for technology, indicators in SIGNATURES.items():
            matched = [ind for ind in indicators if self._matches(ind, soup, html, lowered)]
            if not matched:
                continue
            total = sum(ind.weight for ind in matched)
            results.append({
                "technology": technology.value,
                "score": total,
                "confidence": min(total / 10, 1.0),
                "indicators": [f"{ind.kind}: {ind.target}" for ind in matched],
            })
        results.sort(key=lambda r: r["score"], reverse=True)
        return results

    def detect(self, url: str, html: str, headers: Optional[Dict[str, str]] = None) -> SiteAnalysis:
        """
        Build a SiteAnalysis for a homepage.

        Args:
            url: Page URL
            html: Page HTML
            headers: Response headers

        Returns:
            SiteAnalysis; ``site_type`` is None when nothing scored high enough
        """
        frameworks = self.score(html, headers)
        top = frameworks[0] if frameworks and frameworks[0]["score"] >= self.min_score else None

        analysis = SiteAnalysis(url=url, frameworks=frameworks)
        if top is not None:
            analysis.site_type = top["technology"]
            analysis.confidence = top["confidence"]
            analysis.evidence = list(top["indicators"])
            mapping = get_strategy_for_technology(analysis.site_type)
            analysis.requires_js = mapping.requires_browser or mapping.strategy in (
                ScrapingStrategy.SPA, ScrapingStrategy.DYNAMIC
            )

        logger.info(
            f"Site detection for {url}: {analysis.site_type or 'unknown'} "
            f"({len(frameworks)} candidates)"
        )
        return analysis
