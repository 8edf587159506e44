from __future__ import annotations

from typing import Optional

import numpy as np
import pyqtgraph as pg
from PySide6 import QtGui

from core.resampler import Trace


class TraceRenderer:
    """
    Draws one channel's resampled trace.

    Coordinates arrive normalised from the display pipeline (x in plot
    widths, y in [0, 1] with 0 at the top), so this class only owns the curve
    item and its pen.
    """

    def __init__(self, plot_item: pg.PlotItem, color: QtGui.QColor, width: int = 2):
        self._plot_item = plot_item
        self._color = QtGui.QColor(color)
        self._curve = pg.PlotCurveItem(pen=pg.mkPen(self._color, width=width))
        self._plot_item.addItem(self._curve)

    @property
    def curve(self) -> pg.PlotCurveItem:
        return self._curve

    def set_color(self, color: QtGui.QColor, width: int = 2) -> None:
        self._color = QtGui.QColor(color)
        self._curve.setPen(pg.mkPen(self._color, width=width))

    def set_visible(self, visible: bool) -> None:
        self._curve.setVisible(visible)

    def update_trace(self, trace: Optional[Trace]) -> None:
        if trace is None:
            self.clear()
            return
        self._curve.setData(np.asarray(trace.x), np.asarray(trace.y))

    def clear(self) -> None:
        self._curve.setData([], [])
