"""Tracking of already-seen URLs by normalized identity."""
import logging
from typing import Iterable, List, Set

from ..models import UrlEntry
from .url_normalizer import normalize_url

logger = logging.getLogger(__name__)


class ContentDeduplicator:
    """
    Remembers which URLs have been seen within one unit of work.

    Instances are created per crawl or session and passed to the components
    that need them; there is no shared global instance.
    """

    def __init__(self):
        self._seen: Set[str] = set()

    @staticmethod
    def normalize_url(url: str) -> str:
        return normalize_url(url)

    def is_duplicate(self, url: str) -> bool:
        """Check whether the URL was seen, without marking it."""
        return normalize_url(url) in self._seen

    def mark_seen(self, url: str) -> str:
        """Mark a URL as seen and return its normalized form."""
        normalized = normalize_url(url)
        self._seen.add(normalized)
        return normalized

    def check_and_mark(self, url: str) -> bool:
        """
        Mark a URL as seen.

        Returns:
            True if the URL had not been seen before
        """
        normalized = normalize_url(url)
        if normalized in self._seen:
            return False
        self._seen.add(normalized)
        return True

    def deduplicate(self, urls: Iterable[str]) -> List[str]:
        """Normalized, insertion-ordered unique URLs (does not mark them seen)."""
        result: List[str] = []
        local: Set[str] = set()
        for url in urls:
            normalized = normalize_url(url)
            if normalized not in local:
                local.add(normalized)
                result.append(normalized)
        return result

    def deduplicate_entries(self, entries: Iterable[UrlEntry]) -> List[UrlEntry]:
        """
        Collapse entries that share a normalized URL.

        The entry with the highest priority wins; its position is that of the
        first occurrence of the URL.

        Args:
            entries: URL entries with priorities

        Returns:
            One entry per normalized URL, url field normalized
        """
        entries = list(entries)
        best: dict[str, UrlEntry] = {}
        for entry in entries:
            normalized = normalize_url(entry.url)
            current = best.get(normalized)
            if current is None or entry.priority > current.priority:
                best[normalized] = UrlEntry(url=normalized, priority=entry.priority, source=entry.source)
        if len(entries) != len(best):
            logger.debug(f"Removed {len(entries) - len(best)} duplicate URL entries")
        return list(best.values())

    @property
    def seen_count(self) -> int:
        return len(self._seen)

    def reset(self) -> None:
        self._seen.clear()
