"""Maps a display buffer onto normalised (x, y) points for line-strip drawing.

Short buffers (a handful of samples per period) are drawn through a
Catmull-Rom spline evaluated once per output pixel; long buffers are drawn
sample by sample. Coordinates are normalised: x in units of plot width
(0 = left edge) and y in [0, 1] with 0 at the top, so the renderer only has to
scale by its pixel size.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from shared.models import AcquisitionMode, ScaleState

INTERPOLATION_THRESHOLD = 100
MIN_DISPLAY_SAMPLES = 2


@dataclass(frozen=True)
class Trace:
    """Resampled channel ready for drawing, plus its numeric readout."""

    x: np.ndarray = field(repr=False)
    y: np.ndarray = field(repr=False)
    peak_to_peak: float
    v_min: float
    v_max: float
    interpolated: bool

    @property
    def n_points(self) -> int:
        return int(self.x.shape[0])


def display_sample_count(valid_count: int, mode: AcquisitionMode, zoom_percent: int = 100) -> int:
    """Number of buffer samples spread across the plot width."""
    if mode is AcquisitionMode.INTERVAL:
        count = int(valid_count)
    else:
        count = min(int(valid_count), (int(valid_count) * int(zoom_percent)) // 100)
    return max(MIN_DISPLAY_SAMPLES, count)


def catmull_rom(values: np.ndarray, positions: np.ndarray, n: int | None = None) -> np.ndarray:
    """
    Evaluate a Catmull-Rom spline through ``values[:n]`` at fractional indices.

    Neighbour indices are clamped to ``[0, n - 1]``, so the curve passes
    through every sample and flattens at both ends.
    """
    data = np.asarray(values, dtype=np.float64)
    n = data.shape[0] if n is None else int(n)
    if n <= 0:
        raise ValueError("need at least one sample to interpolate")
    fi = np.clip(np.asarray(positions, dtype=np.float64), 0.0, n - 1)
    i1 = np.floor(fi).astype(np.int64)
    t = fi - i1
    i0 = np.maximum(i1 - 1, 0)
    i2 = np.minimum(i1 + 1, n - 1)
    i3 = np.minimum(i1 + 2, n - 1)
    y0, y1, y2, y3 = data[i0], data[i1], data[i2], data[i3]

    a = -0.5 * y0 + 1.5 * y1 - 1.5 * y2 + 0.5 * y3
    b = y0 - 2.5 * y1 + 2.0 * y2 - 0.5 * y3
    c = -0.5 * y0 + 0.5 * y2
    return ((a * t + b) * t + c) * t + y1


def normalize_y(voltages: np.ndarray, scale_min: float, scale_max: float) -> np.ndarray:
    """Map volts to [0, 1] screen space, 0 at the top."""
    span = scale_max - scale_min
    if span <= 0:
        raise ValueError("scale range must be positive")
    norm = np.clip((np.asarray(voltages, dtype=np.float64) - scale_min) / span, 0.0, 1.0)
    return 1.0 - norm


def resample(
    buffer: np.ndarray,
    display_samples: int,
    width: float,
    scale: ScaleState,
    *,
    dc: float = 0.0,
    fraction: float = 0.0,
) -> Trace:
    """
    Resample the first ``display_samples`` entries of ``buffer``.

    Args:
        buffer: Voltages of one channel (only the leading part is read).
        display_samples: Samples spanning the plot width.
        width: Plot width in pixels; sets the number of interpolated steps.
        scale: Vertical range used for normalisation.
        dc: DC offset subtracted before interpolation.
        fraction: Trigger sub-sample offset; shifts x left by that fraction of
            one sample so the edge lands at the same spot every frame.
    """
    n = int(display_samples)
    data = np.asarray(buffer, dtype=np.float64)
    if n < 1 or n > data.shape[0]:
        raise ValueError(f"display_samples must be in 1..{data.shape[0]}")
    if width < 1:
        raise ValueError("width must be at least one pixel")

    centred = data[:n] - dc
    x_shift = -float(fraction) / n
    interpolated = n < INTERPOLATION_THRESHOLD
    if interpolated:
        steps = int(math.floor(width))
        s = np.arange(steps, dtype=np.float64)
        volts = catmull_rom(centred, s / width * (n - 1), n)
        x = s / width + x_shift
    else:
        volts = centred
        x = np.arange(n, dtype=np.float64) / n + x_shift

    v_min = float(np.min(volts))
    v_max = float(np.max(volts))
    return Trace(
        x=x,
        y=normalize_y(volts, scale.scale_min, scale.scale_max),
        peak_to_peak=v_max - v_min,
        v_min=v_min,
        v_max=v_max,
        interpolated=interpolated,
    )


__all__ = [
    "INTERPOLATION_THRESHOLD",
    "MIN_DISPLAY_SAMPLES",
    "Trace",
    "display_sample_count",
    "catmull_rom",
    "normalize_y",
    "resample",
]
