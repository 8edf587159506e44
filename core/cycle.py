"""Single-period extraction from a DC-centred capture window.

The period estimate is the median spacing between rising zero crossings, which
rejects isolated noisy crossings without an FFT. Signals whose median spacing
is shorter than ``MIN_PERIOD_SAMPLES`` are treated as noise.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

MIN_PERIOD_SAMPLES = 10


@dataclass(frozen=True)
class CycleBounds:
    """Half-open index range ``[start, end)`` holding exactly one period."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end <= self.start:
            raise ValueError("cycle bounds must satisfy 0 <= start < end")

    @property
    def length(self) -> int:
        return self.end - self.start


def rising_zero_crossings(signal: np.ndarray) -> np.ndarray:
    """Indices ``i`` where ``signal[i - 1] < 0 <= signal[i]``."""
    sig = np.asarray(signal, dtype=np.float64)
    if sig.size < 2:
        return np.zeros(0, dtype=np.int64)
    return np.flatnonzero((sig[:-1] < 0.0) & (sig[1:] >= 0.0)) + 1


def _median_spacing(crossings: np.ndarray) -> Optional[int]:
    if crossings.size < 2:
        return None
    spacings = np.sort(np.diff(crossings))
    return int(spacings[spacings.size // 2])


def estimate_period(signal: np.ndarray) -> Optional[int]:
    """Median crossing-to-crossing spacing in samples, or None."""
    median = _median_spacing(rising_zero_crossings(signal))
    if median is None or median < MIN_PERIOD_SAMPLES:
        return None
    return median


def find_cycle_bounds(signal: np.ndarray) -> Optional[CycleBounds]:
    """Locate one clean period inside ``signal``.

    Args:
        signal: DC-centred voltages spanning several periods.

    Returns:
        The bounds of the first full period, or None when fewer than two
        crossings exist or the median spacing looks like noise. None is a
        normal outcome; callers fall back to showing the raw window.
    """
    crossings = rising_zero_crossings(signal)
    median = _median_spacing(crossings)
    if median is None or median < MIN_PERIOD_SAMPLES:
        return None

    start = int(crossings[0])
    candidates = crossings[1:]
    # argmin keeps the first candidate on ties
    end = int(candidates[int(np.argmin(np.abs(candidates - (start + median))))])
    if end <= start:
        return None
    return CycleBounds(start, end)


__all__ = [
    "MIN_PERIOD_SAMPLES",
    "CycleBounds",
    "rising_zero_crossings",
    "estimate_period",
    "find_cycle_bounds",
]
