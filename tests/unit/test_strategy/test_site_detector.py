"""Unit tests for SiteTechnologyDetector."""

from webintel.strategy.site_detector import SiteTechnologyDetector

NEXT_PAGE = """
<html><head><script src="/_next/static/chunks/main.js"></script></head>
<body><div id="__next"></div>
<script id="__NEXT_DATA__" type="application/json">{}</script></body></html>
"""

WORDPRESS_PAGE = """
<html><head><meta name="generator" content="WordPress 6.4.2">
<link rel="stylesheet" href="/wp-content/themes/site/style.css"></head>
<body><p>Hello</p></body></html>
"""

REACT_PAGE = """
<html><body><div id="root"></div>
<script src="/static/js/react-dom.production.min.js"></script></body></html>
"""

PLAIN_PAGE = "<html><body><h1>Welcome</h1></body></html>"


class TestSiteTechnologyDetector:
    """Tests for technology scoring and site analysis."""

    def test_detects_nextjs(self):
        analysis = SiteTechnologyDetector().detect("https://example.com", NEXT_PAGE)

        assert analysis.site_type == "NEXTJS"
        assert analysis.confidence == 1.0
        assert analysis.requires_js is False
        assert any("__NEXT_DATA__" in e for e in analysis.evidence)

    def test_detects_wordpress_from_meta_generator(self):
        analysis = SiteTechnologyDetector().detect("https://example.com", WORDPRESS_PAGE)

        assert analysis.site_type == "WORDPRESS"
        assert analysis.requires_js is False

    def test_react_requires_js(self):
        analysis = SiteTechnologyDetector().detect("https://example.com", REACT_PAGE)

        assert analysis.site_type == "REACT"
        assert analysis.requires_js is True

    def test_header_indicator(self):
        analysis = SiteTechnologyDetector().detect(
            "https://example.com", PLAIN_PAGE, headers={"X-Powered-By": "Next.js"}
        )

        assert analysis.site_type == "NEXTJS"

    def test_plain_page_is_unknown(self):
        analysis = SiteTechnologyDetector().detect("https://example.com", PLAIN_PAGE)

        assert analysis.site_type is None
        assert analysis.frameworks == []
        assert analysis.confidence == 0.0

    def test_weak_evidence_below_threshold(self):
        """Candidates below the minimum score are reported but not chosen."""
        detector = SiteTechnologyDetector(min_score=6)

        analysis = detector.detect("https://example.com", '<div id="app"></div>')

        assert analysis.site_type is None
        assert analysis.frameworks[0]["technology"] == "VUE"

    def test_score_orders_best_first(self):
        html = WORDPRESS_PAGE + '<div id="app"></div>'

        results = SiteTechnologyDetector().score(html)

        assert [r["technology"] for r in results][:2] == ["WORDPRESS", "VUE"]
        assert results[0]["score"] > results[1]["score"]
