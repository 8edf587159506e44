"""Turns a published ScopeFrame into normalised traces for a renderer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from shared.models import AcquisitionMode, ScaleState, ScopeFrame
from shared.settings import ScopeSettings

from .frequency import format_frequency
from .resampler import Trace, display_sample_count, normalize_y, resample
from .scaling import ScalingEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedFrame:
    """Everything a scope view needs to draw one frame.

    ``traces`` is aligned with ``frame.channels``; a channel whose buffer holds
    no live samples has ``None`` in its slot. ``trigger_level_y`` and ``zero_y``
    are normalised overlay positions, ``None`` when the overlay is hidden.
    """

    frame: ScopeFrame = field(repr=False)
    traces: Tuple[Optional[Trace], ...] = field(repr=False)
    scale: ScaleState
    display_samples: Tuple[int, ...]
    trigger_level_y: Optional[float]
    zero_y: Optional[float]
    frequency_label: str

    @property
    def interpolated(self) -> bool:
        return any(t is not None and t.interpolated for t in self.traces)

    def peak_to_peak(self, index: int = 0) -> Optional[float]:
        trace = self.traces[index] if index < len(self.traces) else None
        return None if trace is None else trace.peak_to_peak


def frequency_label(frame: ScopeFrame) -> str:
    text = format_frequency(frame.frequency_hz)
    if frame.cycles_averaged > 0:
        return f"{text} ({frame.cycles_averaged} cycles)"
    return text


class DisplayPipeline:
    """Scaling plus resampling for every channel of a frame.

    The pipeline is the only component that turns voltages into screen
    coordinates; the scope, dual and X-Y widgets all read from it instead of
    carrying their own copy of the drawing maths.
    """

    def __init__(self, settings: Optional[ScopeSettings] = None) -> None:
        self._settings = settings or ScopeSettings()
        self._scaling = ScalingEngine(
            ac_coupling=self._settings.ac_coupling,
            auto_scale=self._settings.auto_scale,
        )

    @property
    def settings(self) -> ScopeSettings:
        return self._settings

    @property
    def scale(self) -> ScaleState:
        return self._scaling.state

    def configure(self, settings: ScopeSettings) -> None:
        coupling_changed = settings.ac_coupling != self._settings.ac_coupling
        self._settings = settings
        self._scaling.configure(ac_coupling=settings.ac_coupling, auto_scale=settings.auto_scale)
        if coupling_changed:
            self._scaling.reset()

    def reset(self) -> None:
        self._scaling.reset()

    def render(self, frame: ScopeFrame, width: float) -> RenderedFrame:
        if width < 1:
            raise ValueError("width must be at least one pixel")
        settings = self._settings
        regions = [frame.valid(i) for i in range(frame.n_channels)]
        scale = self._scaling.update(regions)

        shift = 0.0
        if frame.mode is AcquisitionMode.CONTINUOUS and frame.trigger.found:
            shift = frame.trigger.fraction

        traces = []
        counts = []
        for index, region in enumerate(regions):
            if region.size < 2:
                traces.append(None)
                counts.append(0)
                continue
            buffer = frame.buffers[index]
            # Never read past the live region
            n = min(
                display_sample_count(frame.valid_counts[index], frame.mode, settings.zoom_percent),
                region.size,
            )
            traces.append(
                resample(
                    buffer,
                    n,
                    width,
                    scale,
                    dc=scale.offset_for(index),
                    fraction=shift,
                )
            )
            counts.append(n)

        trigger_y = None
        if settings.trigger_enabled and frame.mode is AcquisitionMode.CONTINUOUS:
            trigger_y = float(normalize_y(np.array([settings.trigger_level]), scale.scale_min, scale.scale_max)[0])
        zero_y = None
        if settings.ac_coupling:
            zero_y = float(normalize_y(np.array([0.0]), scale.scale_min, scale.scale_max)[0])

        logger.debug("Rendered frame %d (%s, %s)", frame.seq, frame.source.value, counts)
        return RenderedFrame(
            frame=frame,
            traces=tuple(traces),
            scale=scale,
            display_samples=tuple(counts),
            trigger_level_y=trigger_y,
            zero_y=zero_y,
            frequency_label=frequency_label(frame),
        )


__all__ = ["RenderedFrame", "DisplayPipeline", "frequency_label"]
