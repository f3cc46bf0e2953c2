# src/webintel/constants.py
"""Centralized constants for the web intelligence pipeline.

This module contains timeouts, budgets and pattern tables that are shared
across modules. For user-configurable values, see config.py.
"""

# =============================================================================
# Crawl Constants
# =============================================================================

# Per-navigation timeout (milliseconds). There is no global crawl timeout.
NAVIGATION_TIMEOUT_MS = 10000

# Default crawl budgets
DEFAULT_MAX_DEPTH = 2
DEFAULT_MAX_URLS = 50

# Paths probed explicitly after the homepage; often missing from in-page links
CONVENTIONAL_PATHS = (
    "/sitemap",
    "/privacy",
    "/terms",
    "/blog",
    "/careers",
    "/about",
    "/contact",
    "/news",
)

# Selectors whose anchors are treated as navigation links (depth 0)
NAVIGATION_LINK_SELECTORS = (
    "nav a",
    "header a",
    ".menu a",
    "[role=navigation] a",
)

# Link targets that never lead to a crawlable page
SKIPPED_HREF_PREFIXES = ("mailto:", "tel:", "javascript:", "#", "data:")

# File extensions that are never crawled as pages
SKIPPED_EXTENSIONS = (
    ".pdf", ".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp", ".ico",
    ".css", ".js", ".zip", ".mp4", ".mp3", ".xml", ".json",
)


# =============================================================================
# Sitemap Constants
# =============================================================================

# Tried in order for each host variant (bare and www.)
SITEMAP_LOCATIONS = (
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemap-index.xml",
    "/wp-sitemap.xml",
    "/post-sitemap.xml",
    "/page-sitemap.xml",
    "/sitemap",
)

SITEMAP_MAX_URLS = 500
SITEMAP_TIMEOUT_MS = 10000
ROBOTS_TIMEOUT_MS = 5000

# Sitemap indexes nested deeper than this are not followed
MAX_SITEMAP_NESTING = 3


# =============================================================================
# Page Heuristic Patterns
# =============================================================================

# Checked first; any match means the page is not static
DYNAMIC_PAGE_PATTERNS = (
    r"/api/",
    r"/search",
    r"/dashboard",
    r"/account",
    r"/cart",
    r"/checkout",
    r"/app/",
    r"\?.*=",
)

STATIC_PAGE_PATTERNS = (
    r"/about",
    r"/contact",
    r"/privacy",
    r"/terms",
    r"/blog/",
    r"/news/",
    r"/press",
    r"\.html$",
    r"/page/\d+",
)


# =============================================================================
# Navigation Parsing
# =============================================================================

MAIN_NAV_SELECTORS = (
    "nav:not(footer nav):not(aside nav)",
    "header nav",
    '[role="navigation"]:not(footer [role="navigation"])',
    ".navbar",
    ".nav-menu",
    ".main-nav",
    "#main-nav",
    ".site-nav",
)

FOOTER_NAV_SELECTORS = (
    "footer nav",
    "footer",
    ".footer",
    "#footer",
    '[role="contentinfo"]',
)

SIDEBAR_NAV_SELECTORS = (
    "aside nav",
    ".sidebar nav",
    ".sidenav",
    ".side-menu",
    '[role="complementary"] nav',
)

BREADCRUMB_SELECTORS = (
    '[aria-label="breadcrumb"]',
    ".breadcrumb",
    ".breadcrumbs",
    'nav[role="navigation"][aria-label*="breadcrumb"]',
    '[itemtype="https://schema.org/BreadcrumbList"]',
)

# Child menus looked up under a main-nav link's parent element
DROPDOWN_SELECTORS = "ul, .dropdown-menu, .submenu"

BREADCRUMB_SEPARATORS = frozenset({"›", ">", "/", "•", "|", "»", "→"})

IMPORTANT_PAGE_KEYWORDS = (
    "about",
    "product",
    "service",
    "pricing",
    "team",
    "contact",
    "blog",
    "news",
    "career",
    "portfolio",
    "case study",
    "testimonial",
    "faq",
    "support",
    "documentation",
)


# =============================================================================
# Timers and Caches
# =============================================================================

# Event dedup window and capacity
EVENT_DEDUP_TTL_MS = 5000
EVENT_DEDUP_MAX_SIZE = 1000
EVENT_DEDUP_CLEANUP_INTERVAL_MS = 60000

# Single durations above this are reported as slow operations
SLOW_OPERATION_THRESHOLD_MS = 5000
TIMER_SWEEP_INTERVAL_MS = 60000
STALE_TIMER_AGE_MS = 5 * 60 * 1000

# Session sync scheduling
SYNC_DEBOUNCE_MS = 2000
SYNC_INTERVAL_MS = 30000

# Phase data read cache lifetime
PHASE_CACHE_TTL_MS = 5 * 60 * 1000
PHASE_KEEP_STAGES = 2
