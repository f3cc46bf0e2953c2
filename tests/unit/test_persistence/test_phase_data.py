"""Unit tests for PhaseDataStore."""

import pytest

from webintel.exceptions import PhaseDataNotFoundError, SessionNotFoundError
from webintel.persistence.phase_data import PhaseDataStore, stage_number


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def store(repository):
    return PhaseDataStore(repository)


class TestStageNumber:
    @pytest.mark.parametrize("stage,expected", [
        ("stage1", 1),
        ("stage12", 12),
        ("stage", 0),
    ])
    def test_stage_number(self, stage, expected):
        assert stage_number(stage) == expected


class TestPhaseDataStore:
    """Tests for per-stage storage."""

    def test_save_and_get(self, store, repository):
        store.save_phase_data("sess-1", "stage1", {"urls": ["https://example.com/"]})

        assert store.get_phase_data("sess-1", "stage1") == {"urls": ["https://example.com/"]}
        assert repository.get_session("sess-1").merged_data["stage1"] == {"urls": ["https://example.com/"]}

    def test_missing_stage(self, store):
        with pytest.raises(PhaseDataNotFoundError) as exc_info:
            store.get_phase_data("sess-1", "stage4")
        assert exc_info.value.stage == "stage4"

    def test_missing_session(self, store):
        with pytest.raises(SessionNotFoundError):
            store.save_phase_data("nope", "stage1", {})

    def test_save_keeps_other_keys(self, store, repository):
        repository.update_session("sess-1", {"stats": {"totalPages": 3}})

        store.save_phase_data("sess-1", "stage1", [1, 2])

        merged = repository.get_session("sess-1").merged_data
        assert merged["stats"] == {"totalPages": 3}
        assert merged["stage1"] == [1, 2]

    def test_cache_serves_reads_until_expiry(self, repository):
        clock = FakeClock()
        store = PhaseDataStore(repository, cache_ttl_ms=1000, clock=clock)
        store.save_phase_data("sess-1", "stage1", {"v": 1})

        # Written behind the store's back
        repository.update_session("sess-1", {"stage1": {"v": 2}})

        assert store.get_phase_data("sess-1", "stage1") == {"v": 1}
        clock.now += 1001
        assert store.get_phase_data("sess-1", "stage1") == {"v": 2}

    def test_cached_values_are_copies(self, store):
        store.save_phase_data("sess-1", "stage1", {"items": [1]})

        store.get_phase_data("sess-1", "stage1")["items"].append(2)

        assert store.get_phase_data("sess-1", "stage1") == {"items": [1]}

    def test_get_all_sorted_numerically(self, store):
        for stage in ("stage10", "stage2", "stage1"):
            store.save_phase_data("sess-1", stage, stage.upper())

        rows = store.get_all_phase_data("sess-1")

        assert [row.stage for row in rows] == ["stage1", "stage2", "stage10"]
        assert rows[0].data == "STAGE1"

    def test_delete(self, store):
        store.save_phase_data("sess-1", "stage1", {"v": 1})

        assert store.delete_phase_data("sess-1", "stage1") is True
        assert store.delete_phase_data("sess-1", "stage1") is False
        with pytest.raises(PhaseDataNotFoundError):
            store.get_phase_data("sess-1", "stage1")

    def test_cleanup_keeps_newest_stages(self, store, repository):
        repository.update_session("sess-1", {"stats": {"totalPages": 1}})
        for n in (1, 2, 3, 4):
            store.save_phase_data("sess-1", f"stage{n}", n)

        removed = store.cleanup_old_phase_data("sess-1")

        assert sorted(removed) == ["stage1", "stage2"]
        merged = repository.get_session("sess-1").merged_data
        assert set(merged) == {"stats", "stage3", "stage4"}
        with pytest.raises(PhaseDataNotFoundError):
            store.get_phase_data("sess-1", "stage1")

    def test_cleanup_noop(self, store, repository):
        store.save_phase_data("sess-1", "stage1", 1)
        updates = repository.update_count

        assert store.cleanup_old_phase_data("sess-1", keep_stages=2) == []
        assert repository.update_count == updates
