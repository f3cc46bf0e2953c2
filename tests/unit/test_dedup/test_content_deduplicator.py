"""Unit tests for ContentDeduplicator."""

from webintel.dedup.content_deduplicator import ContentDeduplicator
from webintel.models import UrlEntry


class TestContentDeduplicator:
    """Tests for seen-URL tracking."""

    def test_check_and_mark(self):
        """Equivalent URLs are recognized after the first is marked."""
        dedup = ContentDeduplicator()

        assert dedup.check_and_mark("http://example.com/about/") is True
        assert dedup.check_and_mark("https://example.com/about#team") is False
        assert dedup.seen_count == 1

    def test_is_duplicate_does_not_mark(self):
        dedup = ContentDeduplicator()

        assert dedup.is_duplicate("https://example.com/a") is False
        assert dedup.is_duplicate("https://example.com/a") is False

        dedup.mark_seen("https://example.com/a/")
        assert dedup.is_duplicate("https://example.com/a") is True

    def test_deduplicate_keeps_first_occurrence_order(self):
        dedup = ContentDeduplicator()
        urls = [
            "https://example.com/b",
            "https://example.com/a",
            "https://example.com/b/",
            "http://example.com/a#x",
        ]

        assert dedup.deduplicate(urls) == ["https://example.com/b", "https://example.com/a"]

    def test_deduplicate_entries_prefers_higher_priority(self):
        dedup = ContentDeduplicator()
        entries = [
            UrlEntry("https://example.com/pricing", priority=1, source="sitemap"),
            UrlEntry("https://example.com/about", priority=5, source="nav"),
            UrlEntry("https://example.com/pricing/", priority=9, source="nav"),
        ]

        result = dedup.deduplicate_entries(entries)

        assert [e.url for e in result] == ["https://example.com/pricing", "https://example.com/about"]
        assert result[0].priority == 9
        assert result[0].source == "nav"

    def test_reset(self):
        dedup = ContentDeduplicator()
        dedup.mark_seen("https://example.com/")
        dedup.reset()

        assert dedup.seen_count == 0
        assert dedup.check_and_mark("https://example.com/") is True
