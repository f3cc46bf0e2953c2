"""
Depth- and budget-limited internal link discovery.

Starting at ``https://{domain}``, the crawler follows internal anchors
depth-first, then probes a fixed list of conventional paths that are often
missing from in-page links. Navigation menu links are always kept at
depth 0. Failed navigations are logged and skipped; the crawl goes on.
"""
import logging
from typing import Dict, List, Optional, Set
from urllib.parse import urlsplit

from ..config import LinkCrawlerConfig
from ..constants import NAVIGATION_LINK_SELECTORS, SKIPPED_HREF_PREFIXES
from ..dedup.url_normalizer import bare_domain, is_same_domain, normalize_url
from ..infrastructure.performance_tracker import PerformanceTracker
from ..models import CrawledLink
from .pages import EXTRACT_ANCHORS_SCRIPT, NAVIGATION_ERRORS, PageLike

logger = logging.getLogger(__name__)

NAVIGATION_LINK_SELECTOR = ", ".join(NAVIGATION_LINK_SELECTORS)


class LinkCrawler:
    """
    Discovers internal links of one domain.

    Visited and discovered state belongs to the instance: a normalized URL
    is fetched at most once per instance. The instance must be driven by a
    single task at a time.

    Example:
        crawler = LinkCrawler(LinkCrawlerConfig(domain="example.com", max_depth=1))
        links = await crawler.crawl_for_links(page)
        urls = crawler.get_prioritized_urls()
    """

    def __init__(self, config: LinkCrawlerConfig, tracker: Optional[PerformanceTracker] = None):
        """
        Initialize the crawler.

        Args:
            config: Domain and crawl budgets
            tracker: Optional tracker timing each crawl
        """
        self.config = config
        self.domain = bare_domain(config.domain)
        self.start_url = f"https://{self.domain}"
        self._tracker = tracker
        self.visited_urls: Set[str] = set()
        self.discovered_links: List[CrawledLink] = []
        self._index: Dict[str, int] = {}

    # ------------------------------------------------------------------
    # Budget and link filtering
    # ------------------------------------------------------------------

    def _budget_exhausted(self) -> bool:
        return len(self.discovered_links) >= self.config.max_urls

    def _is_internal(self, url: str) -> bool:
        return is_same_domain(url, self.domain)

    def _should_skip(self, anchor: dict) -> bool:
        raw = (anchor.get("rawHref") or "").strip().lower()
        href = anchor.get("href") or ""
        if not raw or not href or raw.startswith(SKIPPED_HREF_PREFIXES):
            return True
        if not href.lower().startswith(("http://", "https://")):
            return True
        try:
            path = urlsplit(href).path.lower()
        except ValueError:
            logger.debug(f"Skipping unparsable href {href!r}")
            return True
        return any(path.endswith(ext) for ext in self.config.skip_extensions)

    def _internal_anchors(self, anchors: List[dict]) -> List[dict]:
        internal = []
        for anchor in anchors or []:
            if self._should_skip(anchor):
                continue
            if not self._is_internal(anchor["href"]):
                continue
            internal.append(anchor)
        return internal

    def _record(self, url: str, text: str, depth: int, parent_url: str) -> Optional[CrawledLink]:
        """Append a link unless already recorded or over budget."""
        normalized = normalize_url(url)
        if normalized in self._index or self._budget_exhausted():
            return None
        link = CrawledLink(url=normalized, text=text, depth=depth, parent_url=parent_url)
        self._index[normalized] = len(self.discovered_links)
        self.discovered_links.append(link)
        return link

    def _record_navigation(self, url: str, text: str, parent_url: str) -> None:
        """Add a navigation link at depth 0, promoting a deeper record of it."""
        normalized = normalize_url(url)
        position = self._index.get(normalized)
        if position is None:
            self._record(url, text, 0, parent_url)
            return
        existing = self.discovered_links[position]
        if existing.depth > 0:
            self.discovered_links[position] = CrawledLink(
                url=normalized, text=existing.text or text, depth=0, parent_url=existing.parent_url
            )

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    async def _navigate(self, page: PageLike, url: str) -> bool:
        try:
            response = await page.goto(
                url,
                wait_until=self.config.wait_until,
                timeout=self.config.navigation_timeout_ms,
            )
        except NAVIGATION_ERRORS as e:
            logger.debug(f"Navigation failed for {url}: {e}")
            return False

        if response is None or not response.ok:
            status = getattr(response, "status", None)
            logger.warning(f"Skipping {url}: response not ok (status={status})")
            return False
        return True

    async def _crawl_page(self, page: PageLike, url: str, depth: int,
                          record_as: Optional[tuple] = None) -> bool:
        """
        Visit one page and recurse into its internal links.

        Args:
            page: Page capability
            url: Page URL
            depth: Depth of this page
            record_as: (text, parent_url) to record the page itself once fetched

        Returns:
            True if the page was fetched successfully
        """
        if self._budget_exhausted():
            return False

        normalized = normalize_url(url)
        if normalized in self.visited_urls:
            return False
        self.visited_urls.add(normalized)

        logger.debug(f"Crawling {normalized} (depth={depth})")
        if not await self._navigate(page, url):
            return False
        if record_as is not None and depth <= self.config.max_depth:
            self._record(url, record_as[0], depth, record_as[1])

        try:
            anchors = self._internal_anchors(await page.evaluate(EXTRACT_ANCHORS_SCRIPT, "a[href]"))
            nav_anchors = self._internal_anchors(
                await page.evaluate(EXTRACT_ANCHORS_SCRIPT, NAVIGATION_LINK_SELECTOR)
            )
        except NAVIGATION_ERRORS as e:
            logger.warning(f"Link extraction failed for {normalized}: {e}")
            return True

        child_depth = depth + 1
        if child_depth <= self.config.max_depth:
            for anchor in anchors:
                if self._budget_exhausted():
                    break
                self._record(anchor["href"], anchor["text"], child_depth, normalized)
                child = normalize_url(anchor["href"])
                if (
                    child_depth < self.config.max_depth
                    and child not in self.visited_urls
                    and not self._budget_exhausted()
                ):
                    await self._crawl_page(page, anchor["href"], child_depth)

        # Navigation links were read before recursing; the page has moved on since
        for anchor in nav_anchors:
            self._record_navigation(anchor["href"], anchor["text"], normalized)

        return True

    async def crawl_for_links(self, page: PageLike) -> List[CrawledLink]:
        """
        Crawl the domain for internal links.

        Args:
            page: Page capability (Playwright page or StaticHtmlPage)

        Returns:
            Discovered links in traversal order
        """
        timer = self._tracker.start_timer("link_crawl", {"domain": self.domain}) if self._tracker else None
        logger.info(
            f"Starting link crawl for {self.domain} "
            f"(max_depth={self.config.max_depth}, max_urls={self.config.max_urls})"
        )

        await self._crawl_page(page, self.start_url, 0, record_as=("", ""))

        for path in self.config.conventional_paths:
            if self._budget_exhausted():
                logger.debug("URL budget reached; skipping remaining conventional paths")
                break
            url = self.start_url + path
            if normalize_url(url) in self.visited_urls:
                continue
            await self._crawl_page(page, url, 1, record_as=(path.strip("/"), normalize_url(self.start_url)))

        if timer is not None:
            timer.stop()
        logger.info(
            f"Link crawl for {self.domain} complete: {len(self.discovered_links)} links, "
            f"{len(self.visited_urls)} pages visited"
        )
        return list(self.discovered_links)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def get_links(self) -> List[CrawledLink]:
        return list(self.discovered_links)

    def get_unique_urls(self) -> List[str]:
        """Discovered URLs in insertion order."""
        return list(dict.fromkeys(link.url for link in self.discovered_links))

    def get_prioritized_urls(self) -> List[str]:
        """Discovered URLs by ascending depth; ties keep discovery order."""
        ordered = sorted(self.discovered_links, key=lambda link: link.depth)
        return list(dict.fromkeys(link.url for link in ordered))

    def reset(self) -> None:
        self.visited_urls.clear()
        self.discovered_links.clear()
        self._index.clear()
