"""Unit tests for NavigationParser."""

import pytest

from webintel.crawler.navigation_parser import (
    NavigationParser,
    clean_breadcrumbs,
    get_important_pages,
)
from webintel.crawler.pages import StaticHtmlPage
from webintel.models import NavigationType

pytest_plugins = ('pytest_asyncio',)

BASE = "https://example.com"

SITE_BODY = """
<header>
  <nav>
    <ul>
      <li><a href="/">Home</a></li>
      <li><a href="/products">Products</a>
        <ul class="submenu">
          <li><a href="/products/a">Product A</a></li>
          <li><a href="/products/b">Product B</a></li>
        </ul>
      </li>
      <li><a href="/about">About Us</a></li>
      <li><a href="#top">Top</a></li>
      <li><a href="/blank"> </a></li>
    </ul>
  </nav>
</header>
<ol class="breadcrumb">
  <li><a href="/">Home</a></li>
  <span class="separator">›</span>
  <li><span>Products</span></li>
</ol>
<aside><nav><a href="/docs">Docs</a></nav></aside>
<footer>
  <a href="/privacy">Privacy</a>
  <a href="/careers">Careers</a>
</footer>
"""


@pytest.fixture
def site_html(html_page):
    return html_page(SITE_BODY)


class TestNavigationParserFromHtml:
    """Tests for parsing raw HTML."""

    def test_main_nav_with_dropdown(self, site_html):
        structure = NavigationParser.from_html(site_html, BASE).parse()

        texts = [item.text for item in structure.main_nav]
        assert texts == ["Home", "Products", "Product A", "Product B", "About Us"]

        products = structure.main_nav[1]
        assert products.href == "https://example.com/products"
        assert products.level == 1
        assert products.type is NavigationType.MAIN
        assert [child.text for child in products.children] == ["Product A", "Product B"]
        assert all(child.level == 2 for child in products.children)
        assert all(child.type is NavigationType.DROPDOWN for child in products.children)

    def test_fragment_and_empty_links_excluded(self, site_html):
        structure = NavigationParser.from_html(site_html, BASE).parse()
        hrefs = [item.href for item in structure.all_items()]

        assert not any(href.endswith("#top") for href in hrefs)
        assert "https://example.com/blank" not in hrefs

    def test_footer_and_sidebar(self, site_html):
        structure = NavigationParser.from_html(site_html, BASE).parse()

        assert [item.text for item in structure.footer_nav] == ["Privacy", "Careers"]
        assert [item.text for item in structure.sidebar_nav] == ["Docs"]
        assert structure.sidebar_nav[0].type is NavigationType.SIDEBAR

    def test_totals_and_depth(self, site_html):
        structure = NavigationParser.from_html(site_html, BASE).parse()

        # 5 main + 2 dropdown children + 2 footer + 1 sidebar
        assert structure.total_links == 10
        assert structure.depth == 2

    def test_breadcrumbs(self, site_html):
        structure = NavigationParser.from_html(site_html, BASE).parse()

        assert structure.breadcrumbs == ["Home", "Products"]

    def test_first_qualifying_selector_wins(self, html_page):
        html = html_page("""
            <header><nav><a href="#">Menu</a></nav></header>
            <div class="navbar"><a href="/x">X</a></div>
            <div class="main-nav"><a href="/y">Y</a></div>
        """)

        structure = NavigationParser.from_html(html, BASE).parse()

        assert [item.href for item in structure.main_nav] == ["https://example.com/x"]

    def test_empty_page(self, html_page):
        structure = NavigationParser.from_html(html_page("<p>Nothing</p>"), BASE).parse()

        assert structure.all_items() == []
        assert structure.total_links == 0
        assert structure.depth == 0
        assert structure.breadcrumbs is None

    def test_flat_nav_depth_is_one(self, html_page):
        structure = NavigationParser.from_html(
            html_page('<nav><a href="/a">A</a><a href="/a">A again</a></nav>'), BASE
        ).parse()

        assert len(structure.main_nav) == 1
        assert structure.depth == 1

    def test_unresolvable_href_excluded(self, html_page):
        structure = NavigationParser.from_html(
            html_page('<nav><a href="http://[broken">Broken</a><a href="/ok">Ok</a></nav>'), BASE
        ).parse()

        assert [item.href for item in structure.main_nav] == ["https://example.com/ok"]

    def test_to_dict(self, site_html):
        data = NavigationParser.from_html(site_html, BASE).parse().to_dict()

        assert data["main_nav"][1]["children"][0]["type"] == "dropdown"
        assert "children" not in data["main_nav"][0]

    def test_parse_without_html(self):
        with pytest.raises(ValueError):
            NavigationParser().parse()


class TestCleanBreadcrumbs:
    def test_separators_removed(self):
        tokens = [[], ["Home", "/", "Blog", "»", " ", "Post"]]

        assert clean_breadcrumbs(tokens) == ["Home", "Blog", "Post"]

    def test_only_separators(self):
        assert clean_breadcrumbs([["›", "|"]]) is None


class TestNavigationParserLivePage:
    """Tests for parsing through a page capability."""

    @pytest.mark.asyncio
    async def test_parse_navigation_from_page(self, make_client):
        async with make_client({BASE: SITE_BODY}) as client:
            page = StaticHtmlPage(client)
            await page.goto(BASE)
            structure = await NavigationParser(page).parse_navigation()

        assert [item.text for item in structure.main_nav][:2] == ["Home", "Products"]
        assert structure.breadcrumbs == ["Home", "Products"]
        assert structure.total_links == 10

    @pytest.mark.asyncio
    async def test_parse_navigation_requires_page(self):
        with pytest.raises(ValueError):
            await NavigationParser().parse_navigation()


class TestGetImportantPages:
    def test_keyword_matches(self, site_html):
        structure = NavigationParser.from_html(site_html, BASE).parse()

        assert get_important_pages(structure, BASE) == [
            "https://example.com/products",
            "https://example.com/products/a",
            "https://example.com/products/b",
            "https://example.com/about",
            "https://example.com/careers",
        ]
