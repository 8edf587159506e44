from __future__ import annotations

from threading import RLock

import numpy as np

DEFAULT_MAX_POINTS = 5000


class PersistenceAccumulator:
    """
    Bounded history of DC-removed (x, y) volts for the X-Y "glow trail".

    Points are kept in arrival order; once more than ``max_points`` have been
    added the oldest are dropped.
    """

    def __init__(self, max_points: int = DEFAULT_MAX_POINTS) -> None:
        if max_points <= 0:
            raise ValueError("max_points must be positive")
        self._max_points = int(max_points)
        self._points = np.zeros((0, 2), dtype=np.float64)
        self._lock = RLock()

    @property
    def max_points(self) -> int:
        return self._max_points

    def __len__(self) -> int:
        with self._lock:
            return int(self._points.shape[0])

    def set_max_points(self, max_points: int) -> None:
        if max_points <= 0:
            raise ValueError("max_points must be positive")
        with self._lock:
            self._max_points = int(max_points)
            self._points = self._points[-self._max_points :]

    def extend(self, x: np.ndarray, y: np.ndarray) -> int:
        """Append paired coordinates; returns the number of points held."""
        x_arr = np.asarray(x, dtype=np.float64).ravel()
        y_arr = np.asarray(y, dtype=np.float64).ravel()
        if x_arr.shape != y_arr.shape:
            raise ValueError("x and y must have the same length")
        if x_arr.size == 0:
            return len(self)
        with self._lock:
            new = np.column_stack((x_arr, y_arr))
            self._points = np.concatenate((self._points, new))[-self._max_points :]
            return int(self._points.shape[0])

    def points(self) -> np.ndarray:
        """Read-only copy shaped (n, 2), oldest first."""
        with self._lock:
            out = self._points.copy()
        out.setflags(write=False)
        return out

    def clear(self) -> None:
        with self._lock:
            self._points = np.zeros((0, 2), dtype=np.float64)


__all__ = ["DEFAULT_MAX_POINTS", "PersistenceAccumulator"]
