from __future__ import annotations

from threading import RLock
from typing import Optional, Tuple

import numpy as np

from .cycle import CycleBounds

DEFAULT_CAPACITY = 6000
COHERENT_TILES = 3


class ChannelBufferManager:
    """
    Fixed-capacity display buffers for one or two channels, backed by
    preallocated NumPy arrays.

    Every fill overwrites from index 0 and records how many leading samples
    are live (``valid_count``). Entries past ``valid_count`` may hold stale data
    from an earlier, longer frame; readers must bound reads by the valid count,
    never by the buffer length.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY, channel_count: int = 1) -> None:
        capacity = int(capacity)
        if capacity < 2:
            raise ValueError("capacity must be at least 2")
        self._capacity = capacity
        self._lock = RLock()
        self._data = np.zeros((1, capacity), dtype=np.float64)
        self._valid = [0]
        self.reset(channel_count)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def channel_count(self) -> int:
        return self._data.shape[0]

    @property
    def valid_counts(self) -> Tuple[int, ...]:
        with self._lock:
            return tuple(self._valid)

    def reset(self, channel_count: Optional[int] = None) -> None:
        """Zero-fill every buffer and mark it empty."""
        with self._lock:
            if channel_count is not None:
                if channel_count not in (1, 2):
                    raise ValueError("channel_count must be 1 or 2")
                if channel_count != self._data.shape[0]:
                    self._data = np.zeros((channel_count, self._capacity), dtype=np.float64)
            self._data.fill(0.0)
            self._valid = [0] * self._data.shape[0]

    def fill_window(self, primary: np.ndarray, secondary: Optional[np.ndarray], start: int) -> int:
        """
        Copy a contiguous window starting at ``start`` into each buffer.

        The secondary channel is cut at the same absolute indices as the
        primary. Returns the primary valid count.
        """
        if start < 0:
            raise ValueError("start must be non-negative")
        with self._lock:
            self._copy_window(0, primary, start)
            if self.channel_count > 1:
                if secondary is None:
                    self._valid[1] = 0
                else:
                    self._copy_window(1, secondary, start)
            return self._valid[0]

    def fill_cycle(self, primary: np.ndarray, secondary: Optional[np.ndarray], bounds: CycleBounds) -> int:
        """
        Copy one extracted period and flat-fill the rest of the capacity with
        the first extracted sample.
        """
        with self._lock:
            self._copy_cycle(0, primary, bounds)
            if self.channel_count > 1:
                if secondary is None:
                    self._valid[1] = 0
                else:
                    self._copy_cycle(1, secondary, bounds)
            return self._valid[0]

    def fill_coherent(
        self,
        primary: np.ndarray,
        secondary: Optional[np.ndarray],
        tiles: int = COHERENT_TILES,
    ) -> int:
        """Repeat a single averaged period ``tiles`` times (wrapping)."""
        if tiles < 1:
            raise ValueError("tiles must be at least 1")
        with self._lock:
            self._tile(0, primary, tiles)
            if self.channel_count > 1:
                if secondary is None:
                    self._valid[1] = 0
                else:
                    self._tile(1, secondary, tiles)
            return self._valid[0]

    def snapshot(self) -> Tuple[Tuple[np.ndarray, ...], Tuple[int, ...]]:
        """Return read-only copies of the buffers and their valid counts."""
        with self._lock:
            buffers = []
            for row in self._data:
                copy = row.copy()
                copy.setflags(write=False)
                buffers.append(copy)
            return tuple(buffers), tuple(self._valid)

    # ------------------------------------------------------------------

    def _copy_window(self, row: int, samples: np.ndarray, start: int) -> None:
        arr = np.asarray(samples, dtype=np.float64)
        count = max(0, min(self._capacity, arr.shape[0] - start))
        if count:
            self._data[row, :count] = arr[start : start + count]
        self._valid[row] = count

    def _copy_cycle(self, row: int, samples: np.ndarray, bounds: CycleBounds) -> None:
        arr = np.asarray(samples, dtype=np.float64)
        if bounds.start >= arr.shape[0]:
            self._data[row].fill(0.0)
            self._valid[row] = 0
            return
        end = min(bounds.end, arr.shape[0], bounds.start + self._capacity)
        count = end - bounds.start
        self._data[row, :count] = arr[bounds.start : end]
        self._data[row, count:] = arr[bounds.start]
        self._valid[row] = count

    def _tile(self, row: int, period: np.ndarray, tiles: int) -> None:
        arr = np.asarray(period, dtype=np.float64)
        if arr.shape[0] == 0:
            self._valid[row] = 0
            return
        total = min(self._capacity, arr.shape[0] * tiles)
        # np.resize repeats the input cyclically
        self._data[row, :total] = np.resize(arr, total)
        self._valid[row] = total


__all__ = ["DEFAULT_CAPACITY", "COHERENT_TILES", "ChannelBufferManager"]
