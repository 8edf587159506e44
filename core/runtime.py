from __future__ import annotations

import logging
from typing import Callable, Optional

from daq.base_sampler import BaseSampler
from daq.context import SamplerContext
from shared.models import AcquisitionMode, ChannelSelection, ScopeFrame
from shared.settings import ScopeSettings, ScopeSettingsStore

from .controller import AcquisitionController
from .display import DisplayPipeline, RenderedFrame
from .xy import XYFrame, XYView


class ScopeRuntime:
    """
    Headless orchestrator for sampler, acquisition and display.

    The GUI owns one runtime and drives :meth:`poll_render` from a timer;
    nothing here imports Qt, so the same object runs in tests and scripts.
    Settings changes are pushed to the display pipeline and X-Y view through a
    store subscription and reach the worker on its next iteration.
    """

    def __init__(
        self,
        sampler_factory: Optional[Callable[[], BaseSampler]] = None,
        *,
        context: Optional[SamplerContext] = None,
        settings_store: Optional[ScopeSettingsStore] = None,
        channels: Optional[ChannelSelection] = None,
        mode: AcquisitionMode = AcquisitionMode.CONTINUOUS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if context is None:
            if sampler_factory is None:
                raise ValueError("either sampler_factory or context is required")
            context = SamplerContext(sampler_factory)
        self.logger = logger or logging.getLogger(__name__)
        self.context = context
        self.settings_store = settings_store or ScopeSettingsStore()
        settings = self.settings_store.get()
        self.controller = AcquisitionController(
            context,
            self.settings_store,
            channels=channels,
            mode=mode,
        )
        self.display = DisplayPipeline(settings)
        self.xy_view = XYView(settings)
        self._last_frame: Optional[ScopeFrame] = None
        self._last_rendered: Optional[RenderedFrame] = None
        self._unsubscribe = self.settings_store.subscribe(self._apply_settings, replay=False)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @property
    def settings(self) -> ScopeSettings:
        return self.settings_store.get()

    def update_settings(self, **kwargs) -> ScopeSettings:
        return self.settings_store.update(**kwargs)

    def _apply_settings(self, settings: ScopeSettings) -> None:
        self.display.configure(settings)
        self.xy_view.configure(settings)

    # ------------------------------------------------------------------
    # Acquisition passthroughs
    # ------------------------------------------------------------------

    def start(self) -> bool:
        started = self.controller.start()
        if not started:
            self.logger.warning("Runtime start failed: %s", self.controller.status)
        return started

    def stop(self) -> None:
        self.controller.stop()

    def set_mode(self, mode: AcquisitionMode) -> None:
        self.controller.set_mode(mode)
        self.display.reset()
        self.xy_view.clear()

    def select_channels(self, primary: int, secondary: Optional[int] = None) -> None:
        self.controller.select_channels(primary, secondary)
        self.display.reset()
        self.xy_view.clear()
        self._last_frame = None
        self._last_rendered = None

    def shutdown(self) -> None:
        self.controller.shutdown()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # ------------------------------------------------------------------
    # Display side
    # ------------------------------------------------------------------

    @property
    def last_rendered(self) -> Optional[RenderedFrame]:
        return self._last_rendered

    def poll_render(self, width: float) -> Optional[RenderedFrame]:
        """Render the newest frame, or return None when nothing new was published."""
        frame = self.controller.poll(self._last_frame)
        if frame is None:
            return None
        self._last_frame = frame
        self._last_rendered = self.display.render(frame, width)
        return self._last_rendered

    def render_xy(self, frame: Optional[ScopeFrame] = None) -> Optional[XYFrame]:
        frame = frame if frame is not None else self._last_frame
        if frame is None:
            return None
        return self.xy_view.render(frame)


__all__ = ["ScopeRuntime"]
