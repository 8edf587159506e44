from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

VREF = 3.3
ADC_MAX_CODE = 4095
ADC_CHANNELS = 8


def _freeze_array(array: np.ndarray, *, ndim: int | None = None, dtype=None) -> np.ndarray:
    """Return a read-only, C-contiguous copy of `array`, validating dimensions."""
    arr = np.array(array, copy=True, order="C", dtype=dtype)
    if ndim is not None and arr.ndim != ndim:
        raise ValueError(f"array must be {ndim}D, got {arr.ndim}D")
    arr.setflags(write=False)
    return arr


def _freeze_codes(samples: np.ndarray) -> np.ndarray:
    arr = np.asarray(samples)
    if arr.size and (np.min(arr) < 0 or np.max(arr) > ADC_MAX_CODE):
        raise ValueError(f"samples must be ADC codes in [0, {ADC_MAX_CODE}]")
    return _freeze_array(arr, ndim=1, dtype=np.uint16)


def _check_channel(channel: int, name: str = "channel") -> None:
    if not 0 <= int(channel) < ADC_CHANNELS:
        raise ValueError(f"{name} must be in 0..{ADC_CHANNELS - 1}, got {channel}")


# ----------------------------
# Acquisition enums
# ----------------------------

class AcquisitionMode(str, enum.Enum):
    CONTINUOUS = "continuous"
    INTERVAL = "interval"


class AcquisitionState(str, enum.Enum):
    STOPPED = "stopped"
    CONTINUOUS = "continuous"
    SAMPLING = "sampling"
    PAUSED = "paused"

    @property
    def running(self) -> bool:
        return self is not AcquisitionState.STOPPED


class FrameSource(str, enum.Enum):
    """How the display buffers of a frame were filled."""

    TRIGGERED = "triggered"
    CYCLE = "cycle"
    COHERENT = "coherent"
    RAW = "raw"


# ----------------------------
# Channel metadata
# ----------------------------

@dataclass(frozen=True)
class ChannelSelection:
    """Primary channel plus an optional secondary channel for dual display."""

    primary: int = 3
    secondary: Optional[int] = 2

    def __post_init__(self) -> None:
        _check_channel(self.primary, "primary")
        if self.secondary is not None:
            _check_channel(self.secondary, "secondary")

    @property
    def dual(self) -> bool:
        return self.secondary is not None

    @property
    def channels(self) -> Tuple[int, ...]:
        if self.secondary is None:
            return (self.primary,)
        return (self.primary, self.secondary)


# ----------------------------
# Sampler data models
# ----------------------------

@dataclass(frozen=True)
class RawFrame:
    """Samples of one channel captured together in a single call."""

    samples: np.ndarray = field(repr=False)
    elapsed_s: float
    channel: int = 0

    def __post_init__(self) -> None:
        _check_channel(self.channel)
        if self.elapsed_s < 0:
            raise ValueError("elapsed_s must be non-negative")
        object.__setattr__(self, "samples", _freeze_codes(self.samples))

    @property
    def n_samples(self) -> int:
        return int(self.samples.shape[0])

    @property
    def sample_rate_hz(self) -> float:
        if self.elapsed_s <= 0:
            return 0.0
        return self.n_samples / self.elapsed_s


@dataclass(frozen=True)
class CoherentResult:
    """One noise-reduced period produced by coherent averaging."""

    averaged: np.ndarray = field(repr=False)
    period_s: float
    frequency_hz: float
    cycles_averaged: int
    channel: int = 0

    def __post_init__(self) -> None:
        _check_channel(self.channel)
        if self.cycles_averaged < 0:
            raise ValueError("cycles_averaged must be non-negative")
        object.__setattr__(self, "averaged", _freeze_codes(self.averaged))

    @property
    def n_points(self) -> int:
        return int(self.averaged.shape[0])


# ----------------------------
# Pipeline data models
# ----------------------------

@dataclass(frozen=True)
class TriggerConfig:
    """Trigger parameters applied by the aligner in continuous mode."""

    enabled: bool = True
    level: float = 0.1
    rising: bool = True


@dataclass(frozen=True)
class TriggerPoint:
    """Start of the display window and the sub-sample position of the edge."""

    index: int = 0
    fraction: float = 0.0
    found: bool = False

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError("index must be non-negative")
        if not 0.0 <= self.fraction < 1.0:
            raise ValueError("fraction must be in [0, 1)")


@dataclass(frozen=True)
class ScaleState:
    """Vertical range and per-channel DC offsets used to draw one frame."""

    dc_offset: float = 0.0
    dc_offset2: float = 0.0
    scale_min: float = 0.0
    scale_max: float = VREF

    @property
    def span(self) -> float:
        return self.scale_max - self.scale_min

    def offset_for(self, index: int) -> float:
        return self.dc_offset if index == 0 else self.dc_offset2


@dataclass(frozen=True)
class ScopeFrame:
    """Complete, immutable snapshot published by the acquisition worker.

    ``buffers`` hold voltages at full buffer capacity; only the first
    ``valid_counts[i]`` entries of ``buffers[i]`` are live. ``raw`` keeps the
    ADC codes the frame was built from, for export.
    """

    seq: int
    mode: AcquisitionMode
    source: FrameSource
    channels: Tuple[int, ...]
    buffers: Tuple[np.ndarray, ...] = field(repr=False)
    valid_counts: Tuple[int, ...]
    trigger: TriggerPoint = field(default_factory=TriggerPoint)
    sample_rate_hz: float = 0.0
    frequency_hz: Optional[float] = None
    cycles_averaged: int = 0
    period_samples: Optional[int] = None
    raw: Tuple[np.ndarray, ...] = field(default=(), repr=False)
    captured_at: float = 0.0

    def __post_init__(self) -> None:
        if self.seq < 0:
            raise ValueError("seq must be non-negative")
        if not self.channels:
            raise ValueError("channels must not be empty")
        if len(self.buffers) != len(self.channels) or len(self.valid_counts) != len(self.channels):
            raise ValueError("buffers and valid_counts must match channels")
        buffers = tuple(_freeze_array(buf, ndim=1, dtype=np.float64) for buf in self.buffers)
        for buf, count in zip(buffers, self.valid_counts):
            if not 0 <= count <= buf.shape[0]:
                raise ValueError("valid count exceeds buffer capacity")
        object.__setattr__(self, "buffers", buffers)
        object.__setattr__(self, "valid_counts", tuple(int(c) for c in self.valid_counts))
        object.__setattr__(self, "channels", tuple(int(c) for c in self.channels))
        object.__setattr__(self, "raw", tuple(_freeze_codes(r) for r in self.raw))

    @property
    def n_channels(self) -> int:
        return len(self.channels)

    @property
    def dual(self) -> bool:
        return len(self.channels) > 1

    def valid(self, index: int) -> np.ndarray:
        """Live region of channel ``index`` (a read-only view)."""
        return self.buffers[index][: self.valid_counts[index]]


__all__ = [
    "VREF",
    "ADC_MAX_CODE",
    "ADC_CHANNELS",
    "AcquisitionMode",
    "AcquisitionState",
    "FrameSource",
    "ChannelSelection",
    "RawFrame",
    "CoherentResult",
    "TriggerConfig",
    "TriggerPoint",
    "ScaleState",
    "ScopeFrame",
]
