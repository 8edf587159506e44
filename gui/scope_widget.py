"""ScopeWidget - time-domain view of one or two reconstructed channels.

Draws the normalised traces produced by the display pipeline together with
the trigger-level and zero-line overlays and the frequency / Vpp readouts.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import pyqtgraph as pg
from PySide6 import QtCore, QtGui, QtWidgets

from core.display import RenderedFrame
from shared.models import ScaleState

from .trace_renderer import TraceRenderer

logger = logging.getLogger(__name__)

CHANNEL_COLORS = (QtGui.QColor(255, 215, 0), QtGui.QColor(0, 200, 255))


class VoltageAxis(pg.AxisItem):
    """Axis item that maps normalized 0-1 coordinates (0 = top) to volts."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._scale = ScaleState()

    def set_scale(self, scale: ScaleState) -> None:
        self._scale = scale
        self.picture = None
        self.update()

    def to_volts(self, y_norm: float) -> float:
        return self._scale.scale_max - float(y_norm) * self._scale.span

    def to_norm(self, volts: float) -> float:
        span = self._scale.span if self._scale.span > 0 else 1.0
        return (self._scale.scale_max - float(volts)) / span

    def tickStrings(self, values, scale, spacing):
        try:
            return [f"{self.to_volts(v):.3g}" for v in values]
        except Exception as exc:
            logger.debug("VoltageAxis tickStrings failed: %s", exc)
            return super().tickStrings(values, scale, spacing)


class ScopeWidget(QtWidgets.QWidget):
    """Oscilloscope trace view."""

    triggerLevelChanged = QtCore.Signal(float)  # volts

    def __init__(self, parent: Optional[QtWidgets.QWidget] = None) -> None:
        super().__init__(parent)
        self._renderers: List[TraceRenderer] = []
        self._updating_trigger = False
        self._build_ui()

    def _build_ui(self) -> None:
        layout = QtWidgets.QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self._left_axis = VoltageAxis("left")
        self.plot_widget = pg.PlotWidget(enableMenu=False, axisItems={"left": self._left_axis})
        try:
            self.plot_widget.hideButtons()
        except Exception as exc:
            logger.debug("Failed to hide plot buttons: %s", exc)
        self.plot_widget.setMenuEnabled(False)
        self.plot_widget.setMouseEnabled(x=False, y=False)
        self.plot_widget.setBackground(QtGui.QColor(0, 0, 0))
        self.plot_widget.setLabel("left", "Amplitude", units="V")
        self.plot_widget.getPlotItem().hideAxis("bottom")

        plot_item = self.plot_widget.getPlotItem()
        plot_item.showGrid(x=True, y=True, alpha=0.3)
        # Normalised y has 0 at the top.
        plot_item.vb.invertY(True)
        plot_item.vb.setRange(xRange=(0.0, 1.0), yRange=(0.0, 1.0), padding=0.0)

        self.trigger_line = pg.InfiniteLine(angle=0, pen=pg.mkPen((255, 60, 60), width=2), movable=True)
        self.trigger_line.setVisible(False)
        self.trigger_line.setZValue(100)
        self.plot_widget.addItem(self.trigger_line)

        self.zero_line = pg.InfiniteLine(
            angle=0,
            pen=pg.mkPen((120, 120, 120), style=QtCore.Qt.DashLine),
            movable=False,
        )
        self.zero_line.setVisible(False)
        self.plot_widget.addItem(self.zero_line)

        layout.addWidget(self.plot_widget)

        readouts = QtWidgets.QHBoxLayout()
        self.frequency_label = QtWidgets.QLabel("-- Hz")
        self.vpp_label = QtWidgets.QLabel("Vpp: --")
        readouts.addWidget(self.frequency_label)
        readouts.addStretch(1)
        readouts.addWidget(self.vpp_label)
        layout.addLayout(readouts)

        self.trigger_line.sigPositionChangeFinished.connect(self._on_trigger_moved)

    def plot_width(self) -> float:
        """Pixel width of the data area; the display pipeline interpolates to it."""
        return max(1.0, float(self.plot_widget.getPlotItem().vb.width()))

    def _ensure_renderers(self, count: int) -> None:
        plot_item = self.plot_widget.getPlotItem()
        while len(self._renderers) < count:
            color = CHANNEL_COLORS[len(self._renderers) % len(CHANNEL_COLORS)]
            self._renderers.append(TraceRenderer(plot_item, color))
        for index, renderer in enumerate(self._renderers):
            renderer.set_visible(index < count)

    def show_frame(self, rendered: RenderedFrame) -> None:
        self._ensure_renderers(len(rendered.traces))
        for renderer, trace in zip(self._renderers, rendered.traces):
            renderer.update_trace(trace)
        self._left_axis.set_scale(rendered.scale)

        self._updating_trigger = True
        try:
            if rendered.trigger_level_y is not None:
                self.trigger_line.setValue(rendered.trigger_level_y)
            self.trigger_line.setVisible(rendered.trigger_level_y is not None)
        finally:
            self._updating_trigger = False
        if rendered.zero_y is not None:
            self.zero_line.setValue(rendered.zero_y)
        self.zero_line.setVisible(rendered.zero_y is not None)

        self.frequency_label.setText(rendered.frequency_label)
        parts = []
        for index, trace in enumerate(rendered.traces):
            if trace is not None:
                parts.append(f"CH{rendered.frame.channels[index]}: {trace.peak_to_peak:.3f} Vpp")
        self.vpp_label.setText("   ".join(parts) if parts else "Vpp: --")

    def clear(self) -> None:
        for renderer in self._renderers:
            renderer.clear()
        self.frequency_label.setText("-- Hz")
        self.vpp_label.setText("Vpp: --")

    def _on_trigger_moved(self) -> None:
        if self._updating_trigger:
            return
        self.triggerLevelChanged.emit(self._left_axis.to_volts(float(self.trigger_line.value())))
