"""Frequency readout helpers."""

from __future__ import annotations

from typing import Optional

SMOOTHING_KEEP = 0.7


def format_frequency(freq_hz: Optional[float]) -> str:
    if freq_hz is None or freq_hz <= 0:
        return "-- Hz"
    if freq_hz >= 1e6:
        return f"{freq_hz / 1e6:.2f} MHz"
    if freq_hz >= 1e3:
        return f"{freq_hz / 1e3:.2f} kHz"
    return f"{freq_hz:.1f} Hz"


def frequency_from_period(sample_rate_hz: float, period_samples: Optional[int]) -> Optional[float]:
    if not period_samples or period_samples <= 0 or sample_rate_hz <= 0:
        return None
    return sample_rate_hz / float(period_samples)


class FrequencyTracker:
    """Exponential smoothing of per-frame frequency estimates.

    Continuous mode re-estimates the frequency every frame from a short window,
    so the readout is damped (70% previous, 30% new). Interval and coherent
    frames carry a direct measurement and use :meth:`set` instead.
    """

    def __init__(self, keep: float = SMOOTHING_KEEP) -> None:
        if not 0.0 <= keep < 1.0:
            raise ValueError("keep must be in [0, 1)")
        self._keep = keep
        self._value: Optional[float] = None

    @property
    def value(self) -> Optional[float]:
        return self._value

    def reset(self) -> None:
        self._value = None

    def set(self, freq_hz: Optional[float]) -> Optional[float]:
        self._value = freq_hz if freq_hz and freq_hz > 0 else None
        return self._value

    def update(self, freq_hz: Optional[float]) -> Optional[float]:
        if freq_hz is None or freq_hz <= 0:
            return self._value
        if self._value is None:
            self._value = float(freq_hz)
        else:
            self._value = self._value * self._keep + float(freq_hz) * (1.0 - self._keep)
        return self._value


__all__ = ["format_frequency", "frequency_from_period", "FrequencyTracker"]
