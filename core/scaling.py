"""AC-coupling offsets and vertical auto-scale, recomputed every redraw."""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

import numpy as np

from shared.models import VREF, ScaleState

AUTO_SCALE_MARGIN = 0.1


def fixed_range(ac_coupling: bool) -> Tuple[float, float]:
    """Full ADC range, centred on zero when AC-coupled."""
    if ac_coupling:
        return -VREF / 2.0, VREF / 2.0
    return 0.0, VREF


def dc_offset(samples: np.ndarray, ac_coupling: bool) -> float:
    arr = np.asarray(samples, dtype=np.float64)
    if not ac_coupling or arr.size == 0:
        return 0.0
    return float(np.mean(arr))


def auto_range(lo: float, hi: float, ac_coupling: bool) -> Optional[Tuple[float, float]]:
    """Range around ``[lo, hi]`` with a 10% margin, or None if degenerate."""
    if not (np.isfinite(lo) and np.isfinite(hi)) or hi <= lo:
        return None
    margin = (hi - lo) * AUTO_SCALE_MARGIN
    if ac_coupling:
        bound = max(abs(lo - margin), abs(hi + margin))
        return -bound, bound
    return max(0.0, lo - margin), min(VREF, hi + margin)


class ScalingEngine:
    """
    Computes a ScaleState from the live region of each display buffer.

    Both toggles apply to every channel. With auto-scale on, all channels
    share one vertical axis built from their joint min/max. A degenerate
    buffer (flat or empty) leaves the previous range in place.
    """

    def __init__(self, *, ac_coupling: bool = True, auto_scale: bool = True) -> None:
        self.ac_coupling = ac_coupling
        self.auto_scale = auto_scale
        lo, hi = fixed_range(ac_coupling)
        self._state = ScaleState(scale_min=lo, scale_max=hi)

    @property
    def state(self) -> ScaleState:
        return self._state

    def configure(self, *, ac_coupling: bool, auto_scale: bool) -> None:
        self.ac_coupling = ac_coupling
        self.auto_scale = auto_scale

    def reset(self) -> None:
        lo, hi = fixed_range(self.ac_coupling)
        self._state = ScaleState(scale_min=lo, scale_max=hi)

    def update(self, valid_regions: Sequence[np.ndarray]) -> ScaleState:
        """
        Args:
            valid_regions: The live samples of each channel (primary first),
                already bounded by their valid counts.
        """
        regions = [np.asarray(r, dtype=np.float64) for r in valid_regions]
        offsets = [dc_offset(r, self.ac_coupling) for r in regions]
        while len(offsets) < 2:
            offsets.append(0.0)

        if not self.auto_scale:
            lo, hi = fixed_range(self.ac_coupling)
        else:
            lo, hi = self._state.scale_min, self._state.scale_max
            live = [r - off for r, off in zip(regions, offsets) if r.size]
            if live:
                found = auto_range(
                    min(float(np.min(r)) for r in live),
                    max(float(np.max(r)) for r in live),
                    self.ac_coupling,
                )
                if found is not None:
                    lo, hi = found

        self._state = ScaleState(
            dc_offset=offsets[0],
            dc_offset2=offsets[1],
            scale_min=lo,
            scale_max=hi,
        )
        return self._state


class XYScalingEngine:
    """Independent X and Y ranges for the X-Y view."""

    def __init__(self, *, ac_coupling: bool = True, auto_scale: bool = True) -> None:
        self.ac_coupling = ac_coupling
        self.auto_scale = auto_scale
        self._x = fixed_range(ac_coupling)
        self._y = fixed_range(ac_coupling)

    @property
    def x_range(self) -> Tuple[float, float]:
        return self._x

    @property
    def y_range(self) -> Tuple[float, float]:
        return self._y

    def configure(self, *, ac_coupling: bool, auto_scale: bool) -> None:
        if ac_coupling != self.ac_coupling or (auto_scale != self.auto_scale and not auto_scale):
            self._x = fixed_range(ac_coupling)
            self._y = fixed_range(ac_coupling)
        self.ac_coupling = ac_coupling
        self.auto_scale = auto_scale

    def update(self, x: np.ndarray, y: np.ndarray) -> Tuple[Tuple[float, float], Tuple[float, float]]:
        """``x`` and ``y`` are expected with their DC offsets already removed."""
        if not self.auto_scale:
            self._x = fixed_range(self.ac_coupling)
            self._y = fixed_range(self.ac_coupling)
            return self._x, self._y
        x_arr = np.asarray(x, dtype=np.float64)
        y_arr = np.asarray(y, dtype=np.float64)
        if x_arr.size and y_arr.size:
            found_x = auto_range(float(np.min(x_arr)), float(np.max(x_arr)), self.ac_coupling)
            found_y = auto_range(float(np.min(y_arr)), float(np.max(y_arr)), self.ac_coupling)
            # The X-Y view only rescales when both axes have extent
            if found_x is not None and found_y is not None:
                self._x = found_x
                self._y = found_y
        return self._x, self._y


__all__ = [
    "AUTO_SCALE_MARGIN",
    "fixed_range",
    "dc_offset",
    "auto_range",
    "ScalingEngine",
    "XYScalingEngine",
]
