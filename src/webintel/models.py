"""Data models for crawling, strategy routing and session state."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ScrapingStrategy(str, Enum):
    """How a page is scraped.

    static: plain HTML parse. dynamic: browser JS execution.
    spa: single-page app, always browser. hybrid: decided per page.
    """

    STATIC = "static"
    DYNAMIC = "dynamic"
    SPA = "spa"
    HYBRID = "hybrid"


class EstimatedSpeed(str, Enum):
    FAST = "fast"
    NORMAL = "normal"
    SLOW = "slow"


class NavigationType(str, Enum):
    MAIN = "main"
    FOOTER = "footer"
    SIDEBAR = "sidebar"
    DROPDOWN = "dropdown"


class RunStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(frozen=True)
class CrawledLink:
    """A link discovered during a crawl. Immutable once recorded."""

    url: str  # normalized
    text: str
    depth: int
    parent_url: str


@dataclass
class NavigationItem:
    """One link in a navigation region."""

    text: str
    href: str
    level: int
    type: NavigationType
    children: list["NavigationItem"] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "text": self.text,
            "href": self.href,
            "level": self.level,
            "type": self.type.value,
        }
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data


@dataclass
class NavigationStructure:
    """Structured navigation extracted from one page."""

    main_nav: list[NavigationItem] = field(default_factory=list)
    footer_nav: list[NavigationItem] = field(default_factory=list)
    sidebar_nav: list[NavigationItem] = field(default_factory=list)
    breadcrumbs: Optional[list[str]] = None
    total_links: int = 0
    depth: int = 0

    def all_items(self) -> list[NavigationItem]:
        """Top-level items in main, footer, sidebar order."""
        return [*self.main_nav, *self.footer_nav, *self.sidebar_nav]

    def to_dict(self) -> dict[str, Any]:
        return {
            "main_nav": [item.to_dict() for item in self.main_nav],
            "footer_nav": [item.to_dict() for item in self.footer_nav],
            "sidebar_nav": [item.to_dict() for item in self.sidebar_nav],
            "breadcrumbs": self.breadcrumbs,
            "total_links": self.total_links,
            "depth": self.depth,
        }


@dataclass
class SiteAnalysis:
    """Result of site-level technology detection."""

    url: str = ""
    site_type: Optional[str] = None
    confidence: float = 0.0
    frameworks: list[dict[str, Any]] = field(default_factory=list)
    requires_js: bool = False
    evidence: list[str] = field(default_factory=list)


@dataclass
class UrlEntry:
    """A URL candidate with a priority used when duplicates collide."""

    url: str
    priority: int = 0
    source: Optional[str] = None
