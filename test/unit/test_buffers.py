"""
Unit tests for the display buffer manager.

Invariants:
1. valid_count never exceeds capacity
2. Entries past valid_count are never part of a snapshot's live region
3. Snapshots are read-only copies (later fills do not alter them)
"""
from __future__ import annotations

import numpy as np
import pytest

from core.buffers import COHERENT_TILES, ChannelBufferManager
from core.cycle import CycleBounds


class TestFillWindow:
    def test_copies_window_from_start(self):
        mgr = ChannelBufferManager(capacity=10)
        data = np.arange(30, dtype=np.float64)
        assert mgr.fill_window(data, None, 5) == 10
        buffers, valid = mgr.snapshot()
        assert valid == (10,)
        assert np.array_equal(buffers[0], np.arange(5, 15))

    def test_short_capture_limits_valid_count(self):
        mgr = ChannelBufferManager(capacity=10)
        assert mgr.fill_window(np.arange(4.0), None, 0) == 4
        assert mgr.valid_counts == (4,)

    def test_start_past_end(self):
        mgr = ChannelBufferManager(capacity=10)
        assert mgr.fill_window(np.arange(4.0), None, 8) == 0

    def test_dual_uses_same_indices(self):
        mgr = ChannelBufferManager(capacity=5, channel_count=2)
        a = np.arange(20.0)
        b = -np.arange(20.0)
        mgr.fill_window(a, b, 3)
        buffers, valid = mgr.snapshot()
        assert valid == (5, 5)
        assert np.array_equal(buffers[1], -buffers[0])

    def test_missing_secondary_marks_it_empty(self):
        mgr = ChannelBufferManager(capacity=5, channel_count=2)
        mgr.fill_window(np.arange(20.0), np.arange(20.0), 0)
        mgr.fill_window(np.arange(20.0), None, 0)
        assert mgr.valid_counts == (5, 0)

    def test_negative_start_rejected(self):
        with pytest.raises(ValueError):
            ChannelBufferManager(capacity=5).fill_window(np.arange(10.0), None, -1)


class TestFillCycle:
    def test_cycle_then_flat_fill(self):
        mgr = ChannelBufferManager(capacity=20)
        data = np.arange(100, dtype=np.float64)
        assert mgr.fill_cycle(data, None, CycleBounds(10, 18)) == 8
        buffers, valid = mgr.snapshot()
        assert valid == (8,)
        assert np.array_equal(buffers[0][:8], np.arange(10, 18))
        assert np.all(buffers[0][8:] == 10.0)

    def test_cycle_longer_than_capacity_is_truncated(self):
        mgr = ChannelBufferManager(capacity=5)
        assert mgr.fill_cycle(np.arange(100.0), None, CycleBounds(0, 50)) == 5

    def test_dual_cycle(self):
        mgr = ChannelBufferManager(capacity=20, channel_count=2)
        a = np.arange(100.0)
        mgr.fill_cycle(a, a * 2.0, CycleBounds(4, 9))
        buffers, valid = mgr.snapshot()
        assert valid == (5, 5)
        assert np.array_equal(buffers[1][:5], 2.0 * np.arange(4, 9))


class TestFillCoherent:
    def test_tiles_period_three_times(self):
        mgr = ChannelBufferManager(capacity=6000)
        period = np.linspace(0.0, 1.0, 2000, endpoint=False)
        assert mgr.fill_coherent(period, None) == min(6000, 2000 * COHERENT_TILES)
        buffers, _ = mgr.snapshot()
        assert np.array_equal(buffers[0][2000:4000], period)
        assert np.array_equal(buffers[0][4000:6000], period)

    def test_tiles_wrap_at_capacity(self):
        mgr = ChannelBufferManager(capacity=6000)
        period = np.arange(2500, dtype=np.float64)
        assert mgr.fill_coherent(period, None) == 6000
        buffers, _ = mgr.snapshot()
        assert buffers[0][2500] == 0.0
        assert buffers[0][5999] == 999.0

    def test_short_period_fills_only_three_tiles(self):
        mgr = ChannelBufferManager(capacity=6000)
        assert mgr.fill_coherent(np.arange(10.0), None) == 30

    def test_invalid_tiles(self):
        with pytest.raises(ValueError):
            ChannelBufferManager(capacity=10).fill_coherent(np.arange(3.0), None, tiles=0)


class TestLifecycle:
    def test_reset_zero_fills(self):
        mgr = ChannelBufferManager(capacity=10)
        mgr.fill_window(np.ones(20), None, 0)
        mgr.reset()
        buffers, valid = mgr.snapshot()
        assert valid == (0,)
        assert not np.any(buffers[0])

    def test_reset_changes_channel_count(self):
        mgr = ChannelBufferManager(capacity=10)
        mgr.reset(2)
        assert mgr.channel_count == 2
        assert mgr.valid_counts == (0, 0)

    @pytest.mark.parametrize("count", [0, 3])
    def test_invalid_channel_count(self, count):
        with pytest.raises(ValueError):
            ChannelBufferManager(capacity=10, channel_count=count)

    def test_snapshot_is_read_only_copy(self):
        mgr = ChannelBufferManager(capacity=10)
        mgr.fill_window(np.ones(20), None, 0)
        buffers, _ = mgr.snapshot()
        with pytest.raises(ValueError):
            buffers[0][0] = 5.0
        mgr.fill_window(np.zeros(20), None, 0)
        assert np.all(buffers[0] == 1.0)

    def test_stale_tail_outside_valid_region(self):
        mgr = ChannelBufferManager(capacity=10)
        mgr.fill_window(np.full(10, 7.0), None, 0)
        mgr.fill_window(np.full(3, 1.0), None, 0)
        buffers, valid = mgr.snapshot()
        assert valid == (3,)
        assert np.all(buffers[0][: valid[0]] == 1.0)
