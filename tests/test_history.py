"""
Tests for history.py — CorrectionHistory and diff_corrections.

Covers:
  - capacity: never more than 10 entries, oldest evicted first
  - order: retained entries are the most recent, in insertion order
  - no deduplication
  - snapshot() is a read-only copy
  - diff_corrections(): positional, exact-match, skips extra indexes
"""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from history import DEFAULT_CAPACITY, CorrectionHistory, diff_corrections
from models import CorrectionEntry, RecognitionResult, RecognizedObject


def entry(n: int) -> CorrectionEntry:
    return CorrectionEntry(original=f"old{n}", corrected=f"new{n}")


def make_result(*names: str) -> RecognitionResult:
    return RecognitionResult(
        summary="scene",
        objects=[RecognizedObject(name=n, description=f"a {n}", confidence="high") for n in names],
    )


def corrections(*names: str) -> dict:
    return {"objects": [{"name": n, "description": "", "confidence": ""} for n in names]}


# ── CorrectionHistory ─────────────────────────────────────────────────────────

class TestCapacity:
    def test_default_capacity_is_ten(self):
        assert DEFAULT_CAPACITY == 10
        assert CorrectionHistory().capacity == 10

    def test_starts_empty(self):
        assert len(CorrectionHistory()) == 0

    def test_never_exceeds_capacity(self):
        h = CorrectionHistory()
        for n in range(25):
            h.append([entry(n)])
            assert len(h) <= 10
        assert len(h) == 10

    def test_keeps_most_recent_in_order(self):
        h = CorrectionHistory()
        for n in range(15):
            h.append([entry(n)])
        assert [e.original for e in h.snapshot()] == [f"old{n}" for n in range(5, 15)]

    def test_batch_append_larger_than_capacity(self):
        h = CorrectionHistory()
        h.append([entry(n) for n in range(13)])
        assert [e.original for e in h.snapshot()] == [f"old{n}" for n in range(3, 13)]

    def test_mixed_batches_keep_relative_order(self):
        h = CorrectionHistory()
        h.append([entry(0), entry(1), entry(2)])
        h.append([entry(3)])
        h.append([entry(n) for n in range(4, 12)])
        assert [e.original for e in h] == [f"old{n}" for n in range(2, 12)]

    def test_custom_capacity(self):
        h = CorrectionHistory(capacity=3)
        h.append([entry(n) for n in range(5)])
        assert [e.original for e in h] == ["old2", "old3", "old4"]

    def test_zero_capacity_rejected(self):
        with pytest.raises(ValueError):
            CorrectionHistory(capacity=0)

    def test_append_empty_is_noop(self):
        h = CorrectionHistory()
        h.append([])
        assert len(h) == 0


class TestNoDeduplication:
    def test_identical_corrections_each_take_a_slot(self):
        h = CorrectionHistory()
        same = CorrectionEntry(original="cat", corrected="dog")
        h.append([same, same, same])
        assert len(h) == 3

    def test_repeats_evict_older_distinct_entries(self):
        h = CorrectionHistory(capacity=3)
        h.append([CorrectionEntry(original="cup", corrected="mug")])
        for _ in range(3):
            h.append([CorrectionEntry(original="cat", corrected="dog")])
        assert all(e.original == "cat" for e in h)


class TestSnapshot:
    def test_snapshot_is_tuple(self):
        h = CorrectionHistory()
        h.append([entry(1)])
        assert isinstance(h.snapshot(), tuple)

    def test_snapshot_not_affected_by_later_appends(self):
        h = CorrectionHistory()
        h.append([entry(1)])
        snap = h.snapshot()
        h.append([entry(2)])
        assert len(snap) == 1
        assert len(h) == 2


# ── diff_corrections ──────────────────────────────────────────────────────────

class TestDiffCorrections:
    def test_single_changed_name(self):
        learned = diff_corrections(make_result("A", "B", "C"), corrections("A", "B2", "C"))
        assert len(learned) == 1
        assert learned[0].original == "B"
        assert learned[0].corrected == "B2"

    def test_no_changes_no_entries(self):
        assert diff_corrections(make_result("A", "B"), corrections("A", "B")) == []

    def test_extra_indexes_skipped(self):
        learned = diff_corrections(make_result("A"), corrections("A", "X", "Y"))
        assert learned == []

    def test_extra_indexes_skipped_but_earlier_change_kept(self):
        learned = diff_corrections(make_result("A"), corrections("Z", "X"))
        assert [(e.original, e.corrected) for e in learned] == [("A", "Z")]

    def test_fewer_corrections_than_objects(self):
        learned = diff_corrections(make_result("A", "B", "C"), corrections("A2"))
        assert [(e.original, e.corrected) for e in learned] == [("A", "A2")]

    def test_exact_match_is_case_sensitive(self):
        learned = diff_corrections(make_result("cat"), corrections("Cat"))
        assert [(e.original, e.corrected) for e in learned] == [("cat", "Cat")]

    def test_reordering_is_positional(self):
        # Known limitation: a swap is reported as two renames
        learned = diff_corrections(make_result("A", "B"), corrections("B", "A"))
        assert [(e.original, e.corrected) for e in learned] == [("A", "B"), ("B", "A")]

    def test_missing_objects_key(self):
        assert diff_corrections(make_result("A"), {}) == []

    def test_timestamp_applied_to_all_entries(self):
        now = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        learned = diff_corrections(make_result("A", "B"), corrections("X", "Y"), now=now)
        assert all(e.observed_at == now for e in learned)

    def test_accepts_recognized_objects(self):
        corr = {"objects": [RecognizedObject(name="dog")]}
        learned = diff_corrections(make_result("cat"), corr)
        assert [(e.original, e.corrected) for e in learned] == [("cat", "dog")]
