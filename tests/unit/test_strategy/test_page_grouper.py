"""Unit tests for page strategy grouping."""

import pytest

from webintel.infrastructure.performance_tracker import PerformanceTracker
from webintel.models import ScrapingStrategy, SiteAnalysis
from webintel.strategy.page_grouper import (
    PageStrategyGrouper,
    StrategyGroups,
    estimate_scrape_time,
    group_pages_by_strategy,
    is_likely_static_page,
)

PAGES = [
    "https://example.com/",
    "https://example.com/about",
    "https://example.com/pricing?plan=pro",
    "https://example.com/app/dashboard",
    "https://example.com/blog/launch",
    "https://example.com/products",
]


class TestIsLikelyStaticPage:
    """Tests for the URL heuristic."""

    @pytest.mark.parametrize("url", [
        "https://example.com/about",
        "https://example.com/blog/hello-world",
        "https://example.com/docs/intro.html",
        "https://example.com/products",
        "https://example.com/",
    ])
    def test_static(self, url):
        assert is_likely_static_page(url) is True

    @pytest.mark.parametrize("url", [
        "https://example.com/search",
        "https://example.com/account/settings",
        "https://example.com/checkout",
        "https://example.com/products?page=2",
        "https://example.com/products#reviews",
        "https://example.com/list?flag",
    ])
    def test_dynamic(self, url):
        assert is_likely_static_page(url) is False

    def test_dynamic_patterns_win(self):
        """A URL matching both pattern sets is dynamic."""
        assert is_likely_static_page("https://example.com/app/about") is False
        assert is_likely_static_page("https://example.com/about?ref=nav") is False


class TestGroupPagesByStrategy:
    """Tests for PageStrategyGrouper."""

    def test_site_type_overrides_url_shape(self):
        """Every page of a React site is an SPA page, even '/about'."""
        groups = group_pages_by_strategy(PAGES, SiteAnalysis(site_type="React"))

        assert groups.spa == PAGES
        assert groups.static == groups.dynamic == groups.hybrid == []

    def test_static_site(self):
        groups = group_pages_by_strategy(PAGES, {"site_type": "WordPress"})

        assert groups.static == PAGES

    def test_camel_case_site_type_key(self):
        groups = group_pages_by_strategy(PAGES, {"siteType": "Shopify"})

        assert groups.dynamic == PAGES

    def test_unknown_site_type_is_dynamic(self):
        groups = group_pages_by_strategy(PAGES, SiteAnalysis(site_type="HomegrownCMS"))

        assert groups.dynamic == PAGES

    def test_hybrid_site_uses_heuristic(self):
        groups = group_pages_by_strategy(PAGES, SiteAnalysis(site_type="Nuxt.js"))

        assert groups.static == [
            "https://example.com/",
            "https://example.com/about",
            "https://example.com/blog/launch",
            "https://example.com/products",
        ]
        assert groups.dynamic == [
            "https://example.com/pricing?plan=pro",
            "https://example.com/app/dashboard",
        ]
        assert groups.hybrid == []

    def test_no_analysis_uses_heuristic(self):
        groups = group_pages_by_strategy(PAGES)

        assert len(groups.static) == 4
        assert len(groups.dynamic) == 2

    def test_partition_is_exact(self):
        """Each unique URL lands in exactly one bucket."""
        pages = PAGES + ["https://example.com/about", "https://example.com/products"]

        groups = group_pages_by_strategy(pages, SiteAnalysis(site_type="Next.js"))
        placed = groups.all_urls()

        assert sorted(placed) == sorted(set(pages))
        assert len(placed) == len(set(placed))

    def test_duplicate_inputs_keep_first_position(self):
        groups = group_pages_by_strategy(["https://a.com/x", "https://a.com/y", "https://a.com/x"], {"site_type": "Hugo"})

        assert groups.static == ["https://a.com/x", "https://a.com/y"]

    def test_empty_input(self):
        groups = group_pages_by_strategy([], SiteAnalysis(site_type="React"))

        assert groups.all_urls() == []
        assert list(groups.non_empty()) == []

    def test_grouping_is_timed(self):
        tracker = PerformanceTracker()
        PageStrategyGrouper(tracker).group_pages_by_strategy(PAGES)

        assert tracker.get_metrics("strategy_grouping").operations == 1


class TestStrategyGroups:
    def test_indexing_and_counts(self):
        groups = StrategyGroups(static=["a"], spa=["b", "c"])

        assert groups[ScrapingStrategy.SPA] == ["b", "c"]
        assert groups["static"] == ["a"]
        assert groups.counts() == {"static": 1, "dynamic": 0, "spa": 2, "hybrid": 0}
        assert [s for s, _ in groups.non_empty()] == [ScrapingStrategy.STATIC, ScrapingStrategy.SPA]
        assert groups.to_dict()["spa"] == ["b", "c"]

    def test_estimate_scrape_time(self):
        groups = StrategyGroups(static=["a", "b"], dynamic=["c"], spa=["d"])

        estimate = estimate_scrape_time(groups)

        assert estimate["static"] == 1.0
        assert estimate["dynamic"] == 2.0
        assert estimate["spa"] == 3.0
        assert estimate["total"] == 6.0
