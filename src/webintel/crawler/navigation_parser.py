"""
Structured navigation extraction.

Each region (main, footer, sidebar) has a selector list in priority order;
the first selector that yields at least one qualifying link wins and the
rest are not consulted. A qualifying link has text and an href that is not
a bare in-page fragment.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from bs4 import BeautifulSoup

from ..constants import (
    BREADCRUMB_SELECTORS,
    BREADCRUMB_SEPARATORS,
    DROPDOWN_SELECTORS,
    FOOTER_NAV_SELECTORS,
    IMPORTANT_PAGE_KEYWORDS,
    MAIN_NAV_SELECTORS,
    SIDEBAR_NAV_SELECTORS,
)
from ..dedup.url_normalizer import normalize_url, to_absolute_url
from ..models import NavigationItem, NavigationStructure, NavigationType
from .pages import (
    BREADCRUMB_SCRIPT,
    NAVIGATION_REGION_SCRIPT,
    PageLike,
    extract_breadcrumb_tokens,
    extract_navigation_regions,
)

logger = logging.getLogger(__name__)


def _qualifies(anchor: Dict[str, Any]) -> bool:
    raw = (anchor.get("rawHref") or "").strip()
    if not (anchor.get("text") or "").strip() or not anchor.get("href"):
        return False
    return bool(raw) and not raw.startswith("#")


def _build_items(anchors: Iterable[Dict[str, Any]], nav_type: NavigationType,
                 level: int = 1) -> List[NavigationItem]:
    """Qualifying anchors as items, deduplicated by href."""
    items: List[NavigationItem] = []
    seen = set()
    for anchor in anchors:
        if not _qualifies(anchor) or anchor["href"] in seen:
            continue
        seen.add(anchor["href"])
        children = []
        if anchor.get("children"):
            children = _build_items(anchor["children"], NavigationType.DROPDOWN, level + 1)
        items.append(NavigationItem(
            text=anchor["text"].strip(),
            href=anchor["href"],
            level=level,
            type=nav_type,
            children=children,
        ))
    return items


def select_region(regions: Sequence[List[Dict[str, Any]]], nav_type: NavigationType) -> List[NavigationItem]:
    """Items from the first selector whose anchors include a qualifying link."""
    for anchors in regions:
        items = _build_items(anchors, nav_type)
        if items:
            return items
    return []


def clean_breadcrumbs(token_lists: Sequence[List[str]]) -> Optional[List[str]]:
    """Tokens of the first breadcrumb trail, separators removed."""
    for tokens in token_lists:
        crumbs = [t.strip() for t in tokens if t.strip() and t.strip() not in BREADCRUMB_SEPARATORS]
        if crumbs:
            return crumbs
    return None


def _item_depth(item: NavigationItem) -> int:
    if not item.children:
        return item.level
    return max(_item_depth(child) for child in item.children)


def _count(items: Iterable[NavigationItem]) -> int:
    return sum(1 + _count(item.children) for item in items)


def assemble_structure(main_regions, footer_regions, sidebar_regions,
                       breadcrumb_tokens) -> NavigationStructure:
    """Build a NavigationStructure from raw per-selector extraction results."""
    structure = NavigationStructure(
        main_nav=select_region(main_regions, NavigationType.MAIN),
        footer_nav=select_region(footer_regions, NavigationType.FOOTER),
        sidebar_nav=select_region(sidebar_regions, NavigationType.SIDEBAR),
        breadcrumbs=clean_breadcrumbs(breadcrumb_tokens),
    )
    items = structure.all_items()
    structure.total_links = _count(items)
    structure.depth = max((_item_depth(item) for item in items), default=0)
    return structure


class NavigationParser:
    """
    Extracts main, footer and sidebar navigation plus breadcrumbs.

    Works against a live page (``parse_navigation``) or raw HTML
    (``from_html(...).parse()``).
    """

    def __init__(self, page: Optional[PageLike] = None):
        self.page = page
        self._soup: Optional[BeautifulSoup] = None
        self._base_url = ""

    @classmethod
    def from_html(cls, html: str, base_url: str = "") -> "NavigationParser":
        parser = cls()
        parser._soup = BeautifulSoup(html, "html.parser")
        parser._base_url = base_url
        return parser

    @staticmethod
    def _region_arg(selectors: Sequence[str], with_children: bool = False) -> Dict[str, Any]:
        return {
            "selectors": list(selectors),
            "withChildren": with_children,
            "childSelector": DROPDOWN_SELECTORS,
        }

    async def parse_navigation(self) -> NavigationStructure:
        """
        Parse navigation from the page's current document.

        Returns:
            NavigationStructure

        Raises:
            ValueError: If the parser was created without a page
        """
        if self.page is None:
            raise ValueError("NavigationParser has no page; use from_html(...).parse() for raw HTML")

        main = await self.page.evaluate(NAVIGATION_REGION_SCRIPT, self._region_arg(MAIN_NAV_SELECTORS, True))
        footer = await self.page.evaluate(NAVIGATION_REGION_SCRIPT, self._region_arg(FOOTER_NAV_SELECTORS))
        sidebar = await self.page.evaluate(NAVIGATION_REGION_SCRIPT, self._region_arg(SIDEBAR_NAV_SELECTORS))
        crumbs = await self.page.evaluate(BREADCRUMB_SCRIPT, list(BREADCRUMB_SELECTORS))

        structure = assemble_structure(main, footer, sidebar, crumbs)
        logger.info(
            f"Parsed navigation: {len(structure.main_nav)} main, {len(structure.footer_nav)} footer, "
            f"{len(structure.sidebar_nav)} sidebar, {structure.total_links} links total"
        )
        return structure

    def parse(self) -> NavigationStructure:
        """Parse navigation from HTML given to ``from_html``."""
        if self._soup is None:
            raise ValueError("No HTML loaded; use NavigationParser.from_html(html)")

        soup, base = self._soup, self._base_url
        return assemble_structure(
            extract_navigation_regions(soup, base, self._region_arg(MAIN_NAV_SELECTORS, True)),
            extract_navigation_regions(soup, base, self._region_arg(FOOTER_NAV_SELECTORS)),
            extract_navigation_regions(soup, base, self._region_arg(SIDEBAR_NAV_SELECTORS)),
            extract_breadcrumb_tokens(soup, list(BREADCRUMB_SELECTORS)),
        )


def get_important_pages(structure: NavigationStructure, base_url: Optional[str] = None) -> List[str]:
    """
    URLs of navigation items that look like key company pages.

    An item matches when its text or href contains one of the important
    keywords (about, pricing, team, careers, ...). Children are included.

    Args:
        structure: Parsed navigation
        base_url: Resolve relative hrefs against this URL

    Returns:
        Matching URLs in main, footer, sidebar order, deduplicated
    """
    result: List[str] = []
    seen = set()

    def visit(items: Iterable[NavigationItem]) -> None:
        for item in items:
            haystack = f"{item.text} {item.href}".lower()
            if any(keyword in haystack or keyword.replace(" ", "-") in haystack
                   for keyword in IMPORTANT_PAGE_KEYWORDS):
                url = to_absolute_url(item.href, base_url) if base_url else item.href
                if url:
                    key = normalize_url(url)
                    if key not in seen:
                        seen.add(key)
                        result.append(url)
            visit(item.children)

    visit(structure.all_items())
    return result
