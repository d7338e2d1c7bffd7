"""Tests for the in-memory correction cache."""

from __future__ import annotations

from expense_classifier.corrections import CorrectionCache
from expense_classifier.models import Category, CorrectionEntry


class TestCorrectionCache:
    def test_record_new(self) -> None:
        cache = CorrectionCache()
        entry = cache.record("egg", Category.BILL)
        assert entry == CorrectionEntry("egg", Category.BILL, 1)
        assert "egg" in cache
        assert len(cache) == 1

    def test_repeat_increments(self) -> None:
        cache = CorrectionCache()
        cache.record("egg", Category.BILL)
        entry = cache.record("egg", Category.BILL)
        assert entry.count == 2
        assert len(cache) == 1

    def test_last_write_wins(self) -> None:
        cache = CorrectionCache()
        cache.record("egg", Category.BILL)
        cache.record("egg", Category.BILL)
        entry = cache.record("egg", Category.FOOD)
        assert entry.category == Category.FOOD
        assert entry.count == 3

    def test_lookup_threshold(self) -> None:
        cache = CorrectionCache()
        cache.record("egg", Category.BILL)
        assert cache.lookup("egg", threshold=1) == Category.BILL
        assert cache.lookup("egg", threshold=2) is None
        assert cache.lookup("missing") is None

    def test_returned_entries_are_copies(self) -> None:
        cache = CorrectionCache()
        entry = cache.record("egg", Category.BILL)
        entry.count = 99
        assert cache.get("egg").count == 1

    def test_pending_filters_by_threshold(self) -> None:
        cache = CorrectionCache()
        cache.record("egg", Category.BILL)
        cache.record("tea", Category.FOOD)
        cache.record("tea", Category.FOOD)
        assert [e.text for e in cache.pending(threshold=2)] == ["tea"]
        assert len(cache.pending(threshold=1)) == 2

    def test_discard_removes_flushed(self) -> None:
        cache = CorrectionCache()
        cache.record("egg", Category.BILL)
        cache.discard(cache.pending())
        assert len(cache) == 0
        assert cache.record("egg", Category.BILL).count == 1

    def test_discard_keeps_corrections_made_during_flush(self) -> None:
        cache = CorrectionCache()
        cache.record("egg", Category.BILL)
        snapshot = cache.pending()
        cache.record("egg", Category.FOOD)
        cache.discard(snapshot)
        remaining = cache.get("egg")
        assert remaining.count == 1
        assert remaining.category == Category.FOOD

    def test_clear(self) -> None:
        cache = CorrectionCache()
        cache.record("egg", Category.BILL)
        cache.clear()
        assert len(cache) == 0
