from __future__ import annotations

from typing import Optional

import numpy as np
import pyqtgraph as pg
from PySide6 import QtGui, QtWidgets

from core.xy import XYFrame


class XYWidget(QtWidgets.QWidget):
    """Channel 1 vs channel 2 (Lissajous) view with an optional glow trail."""

    def __init__(self, parent: Optional[QtWidgets.QWidget] = None) -> None:
        super().__init__(parent)
        layout = QtWidgets.QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self.plot_widget = pg.PlotWidget(enableMenu=False)
        self.plot_widget.setBackground(QtGui.QColor(0, 0, 0))
        self.plot_widget.setMouseEnabled(x=False, y=False)
        self.plot_widget.setAspectLocked(True)
        plot_item = self.plot_widget.getPlotItem()
        plot_item.hideAxis("bottom")
        plot_item.hideAxis("left")
        plot_item.showGrid(x=True, y=True, alpha=0.3)
        plot_item.vb.invertY(True)
        plot_item.vb.setRange(xRange=(0.0, 1.0), yRange=(0.0, 1.0), padding=0.02)

        self._trail = pg.ScatterPlotItem(size=2, pen=None, brush=pg.mkBrush(0, 255, 120, 60))
        self._curve = pg.PlotCurveItem(pen=pg.mkPen((0, 255, 120), width=2))
        self.plot_widget.addItem(self._trail)
        self.plot_widget.addItem(self._curve)
        layout.addWidget(self.plot_widget)

        self.vpp_label = QtWidgets.QLabel("X: --   Y: --")
        layout.addWidget(self.vpp_label)

    def show_frame(self, frame: Optional[XYFrame]) -> None:
        if frame is None:
            self.clear()
            return
        self._curve.setData(np.asarray(frame.x), np.asarray(frame.y))
        if frame.trail.shape[0]:
            self._trail.setData(frame.trail[:, 0], frame.trail[:, 1])
        else:
            self._trail.clear()
        self.vpp_label.setText(f"X: {frame.vpp_x:.3f} Vpp   Y: {frame.vpp_y:.3f} Vpp")

    def clear(self) -> None:
        self._curve.setData([], [])
        self._trail.clear()
        self.vpp_label.setText("X: --   Y: --")
