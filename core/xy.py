from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from shared.models import ScopeFrame
from shared.settings import ScopeSettings

from .persistence import PersistenceAccumulator
from .scaling import XYScalingEngine, dc_offset


@dataclass(frozen=True)
class XYFrame:
    """One period of channel 2 plotted against channel 1, normalised to [0, 1].

    ``x`` grows to the right and ``y`` grows downwards (0 = top), as in the
    scope traces. ``trail`` holds the persisted points (oldest first) and is
    empty when persistence is off.
    """

    x: np.ndarray = field(repr=False)
    y: np.ndarray = field(repr=False)
    trail: np.ndarray = field(repr=False)
    x_range: Tuple[float, float]
    y_range: Tuple[float, float]
    vpp_x: float
    vpp_y: float

    @property
    def n_points(self) -> int:
        return int(self.x.shape[0])


def _normalise(values: np.ndarray, lo: float, hi: float) -> np.ndarray:
    span = hi - lo
    if span <= 0:
        return np.full(values.shape, 0.5)
    return np.clip((values - lo) / span, 0.0, 1.0)


class XYView:
    """Lissajous view of a dual-channel frame with an optional glow trail."""

    def __init__(self, settings: Optional[ScopeSettings] = None) -> None:
        settings = settings or ScopeSettings()
        self._settings = settings
        self._scaling = XYScalingEngine(ac_coupling=settings.ac_coupling, auto_scale=settings.auto_scale)
        self._trail = PersistenceAccumulator(settings.persistence_points)

    @property
    def trail(self) -> PersistenceAccumulator:
        return self._trail

    def configure(self, settings: ScopeSettings) -> None:
        if (self._settings.persistence and not settings.persistence) or (
            settings.ac_coupling != self._settings.ac_coupling
        ):
            self._trail.clear()
        if settings.persistence_points != self._trail.max_points:
            self._trail.set_max_points(settings.persistence_points)
        self._scaling.configure(ac_coupling=settings.ac_coupling, auto_scale=settings.auto_scale)
        self._settings = settings

    def clear(self) -> None:
        self._trail.clear()

    def render(self, frame: ScopeFrame) -> Optional[XYFrame]:
        """Returns None for single-channel frames or when a channel is empty."""
        if not frame.dual:
            return None
        first, second = frame.valid(0), frame.valid(1)
        n = min(first.size, second.size)
        if frame.period_samples:
            n = min(n, int(frame.period_samples))
        if n < 2:
            return None

        ac = self._settings.ac_coupling
        x_volts = first[:n] - dc_offset(first[:n], ac)
        y_volts = second[:n] - dc_offset(second[:n], ac)
        (x_lo, x_hi), (y_lo, y_hi) = self._scaling.update(x_volts, y_volts)

        x = _normalise(x_volts, x_lo, x_hi)
        y = 1.0 - _normalise(y_volts, y_lo, y_hi)
        if self._settings.persistence:
            # Trail is held in volts and rescaled with the current ranges
            self._trail.extend(x_volts, y_volts)
            held = self._trail.points()
            trail = np.column_stack(
                (_normalise(held[:, 0], x_lo, x_hi), 1.0 - _normalise(held[:, 1], y_lo, y_hi))
            )
            trail.setflags(write=False)
        else:
            trail = np.zeros((0, 2), dtype=np.float64)

        x.setflags(write=False)
        y.setflags(write=False)
        return XYFrame(
            x=x,
            y=y,
            trail=trail,
            x_range=(x_lo, x_hi),
            y_range=(y_lo, y_hi),
            vpp_x=float(np.ptp(x_volts)),
            vpp_y=float(np.ptp(y_volts)),
        )


__all__ = ["XYFrame", "XYView"]
