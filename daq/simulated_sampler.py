# daq/simulated_sampler.py
import math
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from core.voltage import to_code
from shared.models import ADC_CHANNELS, VREF, CoherentResult, RawFrame

from .base_sampler import BaseSampler, SampleError

DEFAULT_SAMPLE_RATE_HZ = 100_000.0
_SHAPES = ("sine", "triangle", "square", "flat")


@dataclass(frozen=True)
class WaveSpec:
    """Analog signal presented to one ADC input, in volts."""

    frequency_hz: float = 1000.0
    amplitude_v: float = 0.75
    offset_v: float = VREF / 2.0
    phase_rad: float = 0.0
    shape: str = "sine"

    def __post_init__(self) -> None:
        if self.shape not in _SHAPES:
            raise ValueError(f"shape must be one of {_SHAPES}")
        if self.frequency_hz < 0:
            raise ValueError("frequency_hz must be non-negative")
        if self.amplitude_v < 0:
            raise ValueError("amplitude_v must be non-negative")

    def evaluate(self, t: np.ndarray) -> np.ndarray:
        if self.shape == "flat" or self.frequency_hz == 0 or self.amplitude_v == 0:
            return np.full(t.shape, self.offset_v, dtype=np.float64)
        theta = 2.0 * math.pi * self.frequency_hz * t + self.phase_rad
        if self.shape == "sine":
            wave = np.sin(theta)
        elif self.shape == "triangle":
            # Same phase convention as sin(): 0 at theta=0, rising.
            wave = (2.0 / math.pi) * np.arcsin(np.sin(theta))
        else:
            wave = np.where(np.sin(theta) >= 0.0, 1.0, -1.0)
        return self.offset_v + self.amplitude_v * wave


class SimulatedSampler(BaseSampler):
    """
    Synthetic MCP3208 front end.

    Each channel carries a configurable periodic waveform plus optional
    Gaussian noise. Time advances across captures so consecutive frames are
    not phase-locked. Dual captures sample both channels at the same instants.
    The coherent path returns the noise-reduced average of one period, the
    way an averaging capture helper would.
    """

    supports_coherent = True

    @classmethod
    def sampler_name(cls) -> str:
        return "Simulated MCP3208"

    def __init__(
        self,
        waves: Optional[Dict[int, WaveSpec]] = None,
        *,
        sample_rate_hz: float = DEFAULT_SAMPLE_RATE_HZ,
        noise_v: float = 0.0,
        seed: Optional[int] = None,
        coherent: bool = True,
    ) -> None:
        super().__init__()
        if sample_rate_hz <= 0:
            raise ValueError("sample_rate_hz must be positive")
        if noise_v < 0:
            raise ValueError("noise_v must be non-negative")
        self._waves: Dict[int, WaveSpec] = dict(waves or {})
        self._check_channels(self._waves.keys())
        self.sample_rate_hz = float(sample_rate_hz)
        self.noise_v = float(noise_v)
        self.supports_coherent = bool(coherent)
        self._rng = np.random.default_rng(seed)
        self._t0 = 0.0
        self._lock = threading.Lock()

    def set_wave(self, channel: int, wave: Optional[WaveSpec]) -> None:
        self._check_channels((channel,))
        with self._lock:
            if wave is None:
                self._waves.pop(int(channel), None)
            else:
                self._waves[int(channel)] = wave

    def _open_impl(self) -> None:
        with self._lock:
            self._t0 = 0.0

    def _close_impl(self) -> None:
        pass

    # ---- Synthesis ----------------------------------------------------------

    def _wave(self, channel: int) -> WaveSpec:
        # Unconnected inputs float near ground.
        return self._waves.get(channel, WaveSpec(shape="flat", offset_v=0.0))

    def _advance(self, n: int) -> np.ndarray:
        with self._lock:
            t = self._t0 + np.arange(n, dtype=np.float64) / self.sample_rate_hz
            self._t0 += n / self.sample_rate_hz
        return t

    def _codes(self, channel: int, t: np.ndarray) -> np.ndarray:
        volts = self._wave(channel).evaluate(t)
        if self.noise_v > 0:
            volts = volts + self._rng.normal(0.0, self.noise_v, size=volts.shape)
        return to_code(volts)

    def _capture_raw_impl(self, channel: int, sample_count: int) -> RawFrame:
        t = self._advance(sample_count)
        return RawFrame(
            samples=self._codes(channel, t),
            elapsed_s=sample_count / self.sample_rate_hz,
            channel=channel,
        )

    def _capture_raw_dual_impl(self, channel_a: int, channel_b: int, pair_count: int) -> Tuple[RawFrame, RawFrame]:
        t = self._advance(pair_count)
        elapsed = pair_count / self.sample_rate_hz
        return (
            RawFrame(samples=self._codes(channel_a, t), elapsed_s=elapsed, channel=channel_a),
            RawFrame(samples=self._codes(channel_b, t), elapsed_s=elapsed, channel=channel_b),
        )

    # ---- Coherent averaging -------------------------------------------------

    def _cycles_in_budget(self, wave: WaveSpec, raw_sample_budget: int) -> Optional[Tuple[float, int]]:
        if wave.shape == "flat" or wave.frequency_hz <= 0 or wave.amplitude_v <= 0:
            return None
        period_s = 1.0 / wave.frequency_hz
        cycles = int(raw_sample_budget / (period_s * self.sample_rate_hz))
        if cycles < 1:
            return None
        return period_s, cycles

    def _averaged_period(self, channel: int, period_s: float, target_points: int, cycles: int) -> np.ndarray:
        wave = self._wave(channel)
        t = np.arange(target_points, dtype=np.float64) * (period_s / target_points)
        volts = wave.evaluate(t)
        if self.noise_v > 0:
            volts = volts + self._rng.normal(0.0, self.noise_v / math.sqrt(cycles), size=volts.shape)
        return to_code(volts)

    def _capture_coherent_impl(
        self, channel: int, target_points: int, raw_sample_budget: int
    ) -> Optional[CoherentResult]:
        found = self._cycles_in_budget(self._wave(channel), raw_sample_budget)
        self._advance(raw_sample_budget)
        if found is None:
            return None
        period_s, cycles = found
        return CoherentResult(
            averaged=self._averaged_period(channel, period_s, target_points, cycles),
            period_s=period_s,
            frequency_hz=1.0 / period_s,
            cycles_averaged=cycles,
            channel=channel,
        )

    def _capture_coherent_dual_impl(
        self, channel_a: int, channel_b: int, target_points: int, raw_sample_budget: int
    ) -> Optional[Tuple[CoherentResult, CoherentResult]]:
        # Period detection runs on the first channel; the second is folded on it.
        found = self._cycles_in_budget(self._wave(channel_a), raw_sample_budget)
        self._advance(raw_sample_budget)
        if found is None:
            return None
        period_s, cycles = found
        results = tuple(
            CoherentResult(
                averaged=self._averaged_period(ch, period_s, target_points, cycles),
                period_s=period_s,
                frequency_hz=1.0 / period_s,
                cycles_averaged=cycles,
                channel=ch,
            )
            for ch in (channel_a, channel_b)
        )
        return results[0], results[1]


class FaultySampler(SimulatedSampler):
    """Simulated sampler whose captures fail a configurable number of times."""

    @classmethod
    def sampler_name(cls) -> str:
        return "Faulty simulated MCP3208"

    def __init__(self, *args, failures: int = 1, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.failures_remaining = int(failures)

    def _maybe_fail(self) -> None:
        with self._lock:
            if self.failures_remaining > 0:
                self.failures_remaining -= 1
                raise SampleError("simulated SPI transfer failure")

    def _capture_raw_impl(self, channel: int, sample_count: int) -> RawFrame:
        self._maybe_fail()
        return super()._capture_raw_impl(channel, sample_count)

    def _capture_raw_dual_impl(self, channel_a: int, channel_b: int, pair_count: int) -> Tuple[RawFrame, RawFrame]:
        self._maybe_fail()
        return super()._capture_raw_dual_impl(channel_a, channel_b, pair_count)


__all__ = ["DEFAULT_SAMPLE_RATE_HZ", "WaveSpec", "SimulatedSampler", "FaultySampler", "ADC_CHANNELS"]
