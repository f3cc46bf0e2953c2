"""
Page capabilities driven by the crawler and the navigation parser.

Both implementations expose the subset of Playwright's ``Page`` API the
crawl needs: ``goto(url, wait_until=, timeout=)`` returning a response
with ``.ok``, and ``evaluate(expression, arg)``.

- ``BrowserSession`` hands out real Playwright pages (dynamic/SPA sites).
- ``StaticHtmlPage`` fetches with httpx and answers the extraction
  scripts below with BeautifulSoup (static sites, and tests).
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol
import httpx
from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from ..browser_config import BrowserConfig
from ..dedup.url_normalizer import to_absolute_url
from ..exceptions import NavigationError

logger = logging.getLogger(__name__)

# Errors a page capability raises for a single failed navigation
NAVIGATION_ERRORS = (NavigationError, PlaywrightError)


# =============================================================================
# Extraction scripts (run in page context)
# =============================================================================

EXTRACT_ANCHORS_SCRIPT = """
(selector) => Array.from(document.querySelectorAll(selector)).map(a => ({
    href: a.href || '',
    rawHref: a.getAttribute('href') || '',
    text: (a.textContent || '').trim()
}))
"""

NAVIGATION_REGION_SCRIPT = """
({selectors, withChildren, childSelector}) => {
    const toItem = (a) => ({
        href: a.href || '',
        rawHref: a.getAttribute('href') || '',
        text: (a.textContent || '').trim(),
        children: []
    });
    return selectors.map(selector => {
        let root = null;
        try { root = document.querySelector(selector); } catch (e) { return []; }
        if (!root) return [];
        return Array.from(root.querySelectorAll('a')).map(a => {
            const item = toItem(a);
            if (withChildren && a.parentElement) {
                const sub = a.parentElement.querySelector(childSelector);
                if (sub) item.children = Array.from(sub.querySelectorAll('a')).map(toItem);
            }
            return item;
        });
    });
}
"""

BREADCRUMB_SCRIPT = """
(selectors) => selectors.map(selector => {
    let root = null;
    try { root = document.querySelector(selector); } catch (e) { return []; }
    if (!root) return [];
    return Array.from(root.querySelectorAll('a, span:not(.separator)'))
        .map(el => (el.textContent || '').trim());
})
"""


# =============================================================================
# BeautifulSoup equivalents of the scripts
# =============================================================================

def _anchor(a, base_url: str) -> Dict[str, Any]:
    raw = (a.get("href") or "").strip()
    # An href that does not resolve is kept with an empty href so callers skip it
    return {
        "href": (to_absolute_url(raw, base_url) or "") if raw else "",
        "rawHref": raw,
        "text": a.get_text(" ", strip=True),
    }


def extract_anchors(soup: BeautifulSoup, base_url: str, selector: str) -> List[Dict[str, Any]]:
    return [_anchor(a, base_url) for a in soup.select(selector)]


def extract_navigation_regions(soup: BeautifulSoup, base_url: str,
                               arg: Dict[str, Any]) -> List[List[Dict[str, Any]]]:
    """Per selector, the anchors under its first matching element."""
    regions = []
    for selector in arg["selectors"]:
        root = soup.select_one(selector)
        if root is None:
            regions.append([])
            continue
        items = []
        for a in root.select("a"):
            item = _anchor(a, base_url)
            item["children"] = []
            if arg.get("withChildren") and a.parent is not None:
                sub = a.parent.select_one(arg["childSelector"])
                if sub is not None:
                    item["children"] = [
                        {**_anchor(child, base_url), "children": []} for child in sub.select("a")
                    ]
            items.append(item)
        regions.append(items)
    return regions


def extract_breadcrumb_tokens(soup: BeautifulSoup, selectors: List[str]) -> List[List[str]]:
    tokens = []
    for selector in selectors:
        root = soup.select_one(selector)
        if root is None:
            tokens.append([])
            continue
        tokens.append([el.get_text(" ", strip=True) for el in root.select("a, span:not(.separator)")])
    return tokens


# =============================================================================
# Page implementations
# =============================================================================

class PageLike(Protocol):
    """What the crawler needs from a page."""

    async def goto(self, url: str, wait_until: Optional[str] = None,
                   timeout: Optional[float] = None) -> Any: ...

    async def evaluate(self, expression: str, arg: Any = None) -> Any: ...


@dataclass
class StaticResponse:
    """Minimal stand-in for a Playwright Response."""

    url: str
    status: int
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class StaticHtmlPage:
    """
    Page capability backed by plain HTTP fetches.

    No JavaScript runs; ``evaluate`` only understands the extraction
    scripts defined in this module.

        async with httpx.AsyncClient() as client:
            page = StaticHtmlPage(client)
            links = await LinkCrawler(config).crawl_for_links(page)
    """

    def __init__(self, client: httpx.AsyncClient):
        self._client = client
        self.url = "about:blank"
        self._html = ""
        self._soup = BeautifulSoup("", "html.parser")
        self._handlers: Dict[str, Callable[[Any], Any]] = {
            EXTRACT_ANCHORS_SCRIPT: lambda selector: extract_anchors(self._soup, self.url, selector),
            NAVIGATION_REGION_SCRIPT: lambda arg: extract_navigation_regions(self._soup, self.url, arg),
            BREADCRUMB_SCRIPT: lambda selectors: extract_breadcrumb_tokens(self._soup, selectors),
        }

    async def goto(self, url: str, wait_until: Optional[str] = None,
                   timeout: Optional[float] = None) -> StaticResponse:
        """
        Fetch a URL and load its HTML as the current document.

        Args:
            url: URL to fetch
            wait_until: Ignored; accepted for Playwright compatibility
            timeout: Timeout in milliseconds

        Returns:
            StaticResponse for the final (post-redirect) URL

        Raises:
            NavigationError: On transport errors (DNS, connect, timeout) or a URL httpx rejects
        """
        request_timeout = timeout / 1000.0 if timeout else httpx.USE_CLIENT_DEFAULT
        try:
            response = await self._client.get(url, timeout=request_timeout, follow_redirects=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise NavigationError(f"Failed to fetch {url}: {e}") from e

        self.url = str(response.url)
        self._html = response.text
        self._soup = BeautifulSoup(self._html, "html.parser")
        return StaticResponse(url=self.url, status=response.status_code, headers=dict(response.headers))

    async def content(self) -> str:
        return self._html

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        handler = self._handlers.get(expression)
        if handler is None:
            raise NavigationError("Static pages can only run the built-in extraction scripts")
        return handler(arg)


class BrowserSession:
    """
    Playwright browser lifecycle for dynamic and SPA crawling.

    This class is designed to be used as an async context manager:

        async with BrowserSession(FAST_CONFIG) as session:
            page = await session.new_page()
            links = await LinkCrawler(config).crawl_for_links(page)
    """

    def __init__(self, config: Optional[BrowserConfig] = None):
        """
        Initialize the session.

        Args:
            config: BrowserConfig instance with browser settings
        """
        self._config = config or BrowserConfig()
        self._playwright = None
        self._browser = None
        self._contexts: List[Any] = []

    async def __aenter__(self) -> "BrowserSession":
        """Enter async context manager, launching browser."""
        logger.info(f"Launching {self._config.browser_type} browser (headless={self._config.headless})")

        self._playwright = await async_playwright().start()
        browser_launcher = getattr(self._playwright, self._config.browser_type)

        launch_options: Dict[str, Any] = {"headless": self._config.headless}
        if self._config.launch_args:
            launch_options["args"] = self._config.launch_args

        self._browser = await browser_launcher.launch(**launch_options)
        logger.info("Browser launched successfully")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context manager, closing contexts and browser."""
        for context in self._contexts:
            await context.close()
        self._contexts.clear()

        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        logger.info("Browser closed successfully")

    async def new_page(self):
        """
        Open a page in a fresh, isolated browser context.

        Returns:
            playwright.async_api.Page

        Raises:
            RuntimeError: If the browser is not running (not in context manager)
        """
        if not self._browser:
            raise RuntimeError(
                "Browser is not running. Use BrowserSession as an async context manager: "
                "async with BrowserSession(config) as session:"
            )

        context = await self._browser.new_context(
            viewport=self._config.viewport,
            user_agent=self._config.get_user_agent(),
            locale="en-US",
        )
        self._contexts.append(context)
        page = await context.new_page()
        page.set_default_timeout(self._config.timeout)

        if self._config.block_resources:
            blocked = set(self._config.block_resources)
            await page.route(
                "**/*",
                lambda route: (
                    route.abort()
                    if route.request.resource_type in blocked
                    else route.continue_()
                )
            )
        return page
