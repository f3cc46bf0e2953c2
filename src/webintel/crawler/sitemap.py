"""
Sitemap discovery and parsing.

Candidate sitemap locations come from a fixed list of conventional paths
(for both the bare and ``www.`` host), from configured custom locations and
from ``Sitemap:`` lines in robots.txt. Candidates are tried in that order
and the search stops at the first one that yields entries. Sitemap indexes
are followed to their child sitemaps up to a fixed nesting depth.

Supports:
- Standard urlset sitemaps, with or without the sitemaps.org namespace
- Sitemap index files (nested sitemaps)
- XML served inside an HTML wrapper
"""

import logging
import re
import time
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple
from xml.etree import ElementTree as ET

import httpx

from ..config import SitemapConfig
from ..constants import MAX_SITEMAP_NESTING, ROBOTS_TIMEOUT_MS, SITEMAP_LOCATIONS
from ..dedup.content_deduplicator import ContentDeduplicator
from ..dedup.url_normalizer import bare_domain, is_same_domain
from ..infrastructure.performance_tracker import PerformanceTracker

logger = logging.getLogger(__name__)


class SitemapSource(str, Enum):
    """Where a sitemap entry was found."""
    SITEMAP = "sitemap"
    ROBOTS = "robots"
    NESTED = "nested"
    CUSTOM = "custom"


# Lower sorts first when entries have to be cut to the URL budget
SOURCE_ORDER = {
    SitemapSource.SITEMAP: 0,
    SitemapSource.ROBOTS: 1,
    SitemapSource.NESTED: 2,
    SitemapSource.CUSTOM: 3,
}


@dataclass
class SitemapEntry:
    """One <url> element of a sitemap."""

    url: str
    source: SitemapSource = SitemapSource.SITEMAP
    lastmod: Optional[str] = None
    priority: Optional[float] = None
    changefreq: Optional[str] = None
    discovered_at: int = field(default_factory=lambda: int(time.time() * 1000))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["source"] = self.source.value
        return data


@dataclass
class SitemapDiscoveryResult:
    entries: List[SitemapEntry] = field(default_factory=list)
    sitemap_found: bool = False
    sitemaps_checked: List[str] = field(default_factory=list)
    nested_sitemaps_found: int = 0
    total_time_ms: float = 0.0
    errors: List[str] = field(default_factory=list)

    @property
    def urls(self) -> List[str]:
        return [entry.url for entry in self.entries]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entries": [entry.to_dict() for entry in self.entries],
            "sitemap_found": self.sitemap_found,
            "sitemaps_checked": list(self.sitemaps_checked),
            "nested_sitemaps_found": self.nested_sitemaps_found,
            "total_time_ms": round(self.total_time_ms, 2),
            "errors": list(self.errors),
        }


# =============================================================================
# XML parsing
# =============================================================================

def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child_text(element: ET.Element, name: str) -> Optional[str]:
    for child in element:
        if _local_name(child.tag) == name and child.text and child.text.strip():
            return child.text.strip()
    return None


def _parse_priority(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def clean_xml_content(content: str) -> str:
    """Strip a DOCTYPE and any HTML wrapper around sitemap XML."""
    content = re.sub(r'<!DOCTYPE[^>]*>', '', content)

    if '<html' in content.lower():
        match = re.search(r'(<\?xml.*?</(?:urlset|sitemapindex)>)', content, re.DOTALL)
        if match:
            return match.group(1)

        match = re.search(r'(<(?:urlset|sitemapindex).*?</(?:urlset|sitemapindex)>)', content, re.DOTALL)
        if match:
            return match.group(1)

    return content.strip()


def read_sitemap(content: str,
                 source: SitemapSource = SitemapSource.SITEMAP) -> Tuple[List[SitemapEntry], List[str]]:
    """
    Parse a sitemap document.

    Args:
        content: Response body of a sitemap URL
        source: Source recorded on each entry

    Returns:
        (entries, child_sitemap_urls). A urlset yields entries only, a
        sitemap index yields child URLs only, anything else yields neither.
    """
    try:
        root = ET.fromstring(clean_xml_content(content))
    except ET.ParseError as e:
        logger.debug(f"Not a sitemap document: {e}")
        return [], []

    root_tag = _local_name(root.tag)
    if root_tag == "sitemapindex":
        children = [
            loc for loc in (
                _child_text(sitemap, "loc") for sitemap in root if _local_name(sitemap.tag) == "sitemap"
            ) if loc
        ]
        return [], children

    if root_tag != "urlset":
        logger.debug(f"Unknown sitemap root element: {root_tag}")
        return [], []

    entries = []
    for url_elem in root:
        if _local_name(url_elem.tag) != "url":
            continue
        loc = _child_text(url_elem, "loc")
        if not loc:
            continue
        entries.append(SitemapEntry(
            url=loc,
            source=source,
            lastmod=_child_text(url_elem, "lastmod"),
            priority=_parse_priority(_child_text(url_elem, "priority")),
            changefreq=_child_text(url_elem, "changefreq"),
        ))
    return entries, []


def parse_robots_sitemaps(robots_txt: str) -> List[str]:
    """Sitemap URLs declared in a robots.txt body."""
    sitemaps = []
    for line in robots_txt.splitlines():
        line = line.strip()
        if line.lower().startswith("sitemap:"):
            url = line[len("sitemap:"):].strip()
            if url:
                sitemaps.append(url)
    return sitemaps


def prioritize_entries(entries: List[SitemapEntry]) -> List[SitemapEntry]:
    """
    Order entries by importance.

    Entries with an explicit <priority> come first, highest first. Ties and
    entries without one fall back to source, then fewer path segments, then
    shorter URL.
    """
    return sorted(entries, key=lambda entry: (
        entry.priority is None,
        -(entry.priority or 0.0),
        SOURCE_ORDER[entry.source],
        entry.url.count("/"),
        len(entry.url),
    ))


# =============================================================================
# Discovery
# =============================================================================

class SitemapDiscovery:
    """
    Finds and reads the sitemaps of one domain.

    Example:
        async with httpx.AsyncClient() as client:
            discovery = SitemapDiscovery(SitemapConfig(domain="example.com"), client)
            result = await discovery.execute()
            urls = result.urls
    """

    def __init__(self, config: SitemapConfig, client: httpx.AsyncClient,
                 tracker: Optional[PerformanceTracker] = None):
        """
        Initialize discovery.

        Args:
            config: Domain, budgets and custom locations
            client: HTTP client used for every fetch
            tracker: Optional tracker timing each discovery run
        """
        self.config = config
        self.domain = bare_domain(config.domain)
        self._client = client
        self._tracker = tracker
        self._errors: List[str] = []
        self._visited: Set[str] = set()
        self._nested_found = 0

    def domain_variants(self) -> List[str]:
        return [self.domain, f"www.{self.domain}"]

    async def _fetch(self, url: str, timeout_ms: int, record_errors: bool = True) -> Optional[str]:
        """Body of a successful response, or None."""
        try:
            response = await self._client.get(
                url,
                timeout=timeout_ms / 1000.0,
                follow_redirects=True,
                headers={"Accept": "application/xml, text/xml, */*"},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"Failed to fetch {url}: {e}")
            if record_errors:
                self._errors.append(f"Failed to fetch {url}: {e}")
            return None

        if not response.is_success or not response.text:
            logger.debug(f"Nothing usable at {url} (status={response.status_code})")
            return None
        return response.text

    async def check_robots_for_sitemaps(self) -> List[str]:
        """Sitemap URLs listed in robots.txt; empty when it is missing."""
        robots_url = f"https://{self.domain}/robots.txt"
        content = await self._fetch(robots_url, ROBOTS_TIMEOUT_MS, record_errors=False)
        if content is None:
            logger.debug(f"No robots.txt for {self.domain}")
            return []
        sitemaps = parse_robots_sitemaps(content)
        if sitemaps:
            logger.info(f"Found {len(sitemaps)} sitemaps in robots.txt for {self.domain}")
        return sitemaps

    async def discover_sitemaps(self) -> List[Tuple[str, SitemapSource]]:
        """
        Candidate sitemap URLs in the order they should be tried.

        Returns:
            (url, source) pairs: standard locations per host variant, then
            custom locations, then robots.txt declarations. Each URL once.
        """
        candidates: List[Tuple[str, SitemapSource]] = []
        for host in self.domain_variants():
            for path in SITEMAP_LOCATIONS:
                candidates.append((f"https://{host}{path}", SitemapSource.SITEMAP))

        for location in self.config.custom_locations:
            url = location if location.startswith("http") else f"https://{self.domain}{location}"
            candidates.append((url, SitemapSource.CUSTOM))

        for url in await self.check_robots_for_sitemaps():
            candidates.append((url, SitemapSource.ROBOTS))

        unique: Dict[str, SitemapSource] = {}
        for url, source in candidates:
            unique.setdefault(url, source)

        logger.debug(f"{len(unique)} sitemap locations to try for {self.domain}")
        return list(unique.items())

    async def parse_sitemap(self, url: str, source: SitemapSource = SitemapSource.SITEMAP,
                            depth: int = 0) -> List[SitemapEntry]:
        """
        Fetch one sitemap and return its entries.

        A sitemap index is followed to its children (entries marked nested)
        while ``include_nested`` is set and the nesting limit allows it.
        A sitemap URL already read during this run is not read again.
        """
        if url in self._visited:
            return []
        self._visited.add(url)

        content = await self._fetch(url, self.config.timeout_ms)
        if content is None:
            return []

        entries, children = read_sitemap(content, source)
        if not children:
            if entries:
                logger.info(f"Parsed {len(entries)} entries from {url}")
            return entries

        logger.info(f"Sitemap index {url} lists {len(children)} sitemaps")
        if not self.config.include_nested:
            return []
        if depth >= MAX_SITEMAP_NESTING:
            logger.warning(f"Not following sitemap index {url}: nesting limit reached")
            return []

        nested: List[SitemapEntry] = []
        for child in children:
            self._nested_found += 1
            nested.extend(await self.parse_sitemap(child, SitemapSource.NESTED, depth + 1))
        return nested

    def _deduplicate(self, entries: List[SitemapEntry]) -> List[SitemapEntry]:
        """Same-domain entries, first occurrence per normalized URL."""
        seen = ContentDeduplicator()
        unique = []
        for entry in entries:
            if not is_same_domain(entry.url, self.domain):
                logger.debug(f"Dropping off-domain sitemap entry {entry.url}")
                continue
            if seen.check_and_mark(entry.url):
                unique.append(replace(entry, url=seen.normalize_url(entry.url)))
        return unique

    async def execute(self) -> SitemapDiscoveryResult:
        """
        Run a complete discovery.

        Returns:
            SitemapDiscoveryResult with deduplicated entries, cut to
            ``max_urls`` by priority when there are more
        """
        timer = self._tracker.start_timer("sitemap_discovery", {"domain": self.domain}) if self._tracker else None
        start = time.perf_counter()
        self._errors = []
        self._visited = set()
        self._nested_found = 0

        try:
            locations = await self.discover_sitemaps()
            result = SitemapDiscoveryResult(sitemaps_checked=[url for url, _ in locations])

            entries: List[SitemapEntry] = []
            for url, source in locations:
                found = await self.parse_sitemap(url, source)
                if found:
                    entries = found
                    result.sitemap_found = True
                    logger.info(f"Using sitemap {url} for {self.domain}")
                    break

            entries = self._deduplicate(entries)
            if len(entries) > self.config.max_urls:
                entries = prioritize_entries(entries)[:self.config.max_urls]

            result.entries = entries
            result.nested_sitemaps_found = self._nested_found
            result.errors = list(self._errors)
        finally:
            if timer is not None:
                timer.stop()

        result.total_time_ms = (time.perf_counter() - start) * 1000.0
        logger.info(
            f"Sitemap discovery for {self.domain} complete: {len(result.entries)} entries, "
            f"found={result.sitemap_found}, {len(result.errors)} errors"
        )
        return result
