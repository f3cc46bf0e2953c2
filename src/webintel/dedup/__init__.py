"""URL and event deduplication."""

from .url_normalizer import (
    normalize_url,
    is_same_domain,
    to_absolute_url,
    bare_domain,
)
from .content_deduplicator import ContentDeduplicator
from .event_deduplicator import (
    EventDeduplicator,
    DeduplicationEntry,
    generate_event_id,
)

__all__ = [
    "normalize_url",
    "is_same_domain",
    "to_absolute_url",
    "bare_domain",
    "ContentDeduplicator",
    "EventDeduplicator",
    "DeduplicationEntry",
    "generate_event_id",
]
