"""Unit tests for watermark tracking and per-cycle deduplication."""

import pytest

from src.codec import UINT64_MAX
from src.dedup import CycleDedupSet, WatermarkTracker


class TestWatermarkTrackerUnit:
    """Unit tests for WatermarkTracker."""

    def test_starts_at_initial_value(self):
        assert WatermarkTracker().get() == 0
        assert WatermarkTracker(initial=42).get() == 42

    def test_set_overwrites(self):
        tracker = WatermarkTracker(initial=100)
        tracker.set(5)
        assert tracker.get() == 5

    def test_set_rejects_out_of_range(self):
        tracker = WatermarkTracker()
        with pytest.raises(ValueError):
            tracker.set(-1)
        with pytest.raises(ValueError):
            tracker.set(UINT64_MAX + 1)

    def test_advance_moves_forward(self):
        tracker = WatermarkTracker(initial=12)
        assert tracker.advance(13) is True
        assert tracker.get() == 13

    def test_advance_never_moves_backward(self):
        tracker = WatermarkTracker(initial=12)
        assert tracker.advance(7) is False
        assert tracker.get() == 12

    def test_advance_with_same_value(self):
        tracker = WatermarkTracker(initial=12)
        assert tracker.advance(12) is False
        assert tracker.get() == 12


class TestCycleDedupSetUnit:
    """Unit tests for CycleDedupSet."""

    def test_add_reports_first_sighting(self):
        seen = CycleDedupSet()
        assert seen.add(7) is True
        assert seen.add(7) is False
        assert seen.add(8) is True
        assert 7 in seen
        assert 9 not in seen
        assert len(seen) == 2
