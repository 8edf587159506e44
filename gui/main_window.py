from __future__ import annotations

import logging
from typing import Optional

from PySide6 import QtCore, QtGui, QtWidgets

from core.runtime import ScopeRuntime
from shared.models import AcquisitionMode, AcquisitionState, ADC_CHANNELS
from shared.settings import INTERVAL_CHOICES, ScopeSettings

from .scope_widget import ScopeWidget
from .xy_widget import XYWidget

_NO_CHANNEL = -1


class ScopeWindow(QtWidgets.QMainWindow):
    """Main window: scope and X-Y tabs plus the acquisition controls.

    All drawing goes through ``runtime.poll_render`` from a QTimer on the UI
    thread; the acquisition worker never touches Qt objects.
    """

    def __init__(self, runtime: ScopeRuntime, parent: Optional[QtWidgets.QWidget] = None) -> None:
        super().__init__(parent)
        self._logger = logging.getLogger(__name__)
        self._runtime = runtime
        self.setWindowTitle("SigScope")

        self.scope_widget = ScopeWidget(self)
        self.xy_widget = XYWidget(self)
        self._tabs = QtWidgets.QTabWidget(self)
        self._tabs.addTab(self.scope_widget, "Scope")
        self._tabs.addTab(self.xy_widget, "X-Y")

        central = QtWidgets.QWidget(self)
        layout = QtWidgets.QHBoxLayout(central)
        layout.addWidget(self._tabs, 1)
        layout.addWidget(self._build_controls(), 0)
        self.setCentralWidget(central)

        self._status_label = QtWidgets.QLabel("Stopped")
        self.statusBar().addWidget(self._status_label)

        self._timer = QtCore.QTimer(self)
        self._timer.setInterval(int(1000 / runtime.settings.refresh_hz))
        self._timer.timeout.connect(self._on_tick)

        self.scope_widget.triggerLevelChanged.connect(self._on_trigger_dragged)
        self._sync_controls(runtime.settings)
        self._update_state_controls()

    # ------------------------------------------------------------------
    # UI construction
    # ------------------------------------------------------------------

    def _build_controls(self) -> QtWidgets.QWidget:
        panel = QtWidgets.QWidget(self)
        form = QtWidgets.QFormLayout(panel)

        self.run_button = QtWidgets.QPushButton("Start")
        self.run_button.clicked.connect(self._on_run_clicked)
        form.addRow(self.run_button)

        self.mode_combo = QtWidgets.QComboBox()
        self.mode_combo.addItem("Continuous", AcquisitionMode.CONTINUOUS.value)
        self.mode_combo.addItem("Interval", AcquisitionMode.INTERVAL.value)
        self.mode_combo.setCurrentIndex(1 if self._runtime.controller.mode is AcquisitionMode.INTERVAL else 0)
        self.mode_combo.currentIndexChanged.connect(self._on_mode_changed)
        form.addRow("Mode", self.mode_combo)

        self.interval_combo = QtWidgets.QComboBox()
        for seconds in INTERVAL_CHOICES:
            self.interval_combo.addItem(f"{seconds} s", seconds)
        self.interval_combo.currentIndexChanged.connect(self._on_interval_changed)
        form.addRow("Interval", self.interval_combo)

        self.pause_button = QtWidgets.QPushButton("Pause")
        self.pause_button.clicked.connect(self._on_pause_clicked)
        form.addRow(self.pause_button)

        self.primary_combo = QtWidgets.QComboBox()
        self.secondary_combo = QtWidgets.QComboBox()
        self.secondary_combo.addItem("Off", _NO_CHANNEL)
        for ch in range(ADC_CHANNELS):
            self.primary_combo.addItem(f"CH{ch}", ch)
            self.secondary_combo.addItem(f"CH{ch}", ch)
        channels = self._runtime.controller.channels
        self.primary_combo.setCurrentIndex(self.primary_combo.findData(channels.primary))
        secondary = channels.secondary if channels.secondary is not None else _NO_CHANNEL
        self.secondary_combo.setCurrentIndex(self.secondary_combo.findData(secondary))
        self.primary_combo.currentIndexChanged.connect(self._on_channels_changed)
        self.secondary_combo.currentIndexChanged.connect(self._on_channels_changed)
        form.addRow("Channel 1", self.primary_combo)
        form.addRow("Channel 2", self.secondary_combo)

        self.ac_check = QtWidgets.QCheckBox("AC coupling")
        self.auto_check = QtWidgets.QCheckBox("Auto scale")
        self.trigger_check = QtWidgets.QCheckBox("Trigger")
        self.persistence_check = QtWidgets.QCheckBox("Persistence")
        self.ac_check.toggled.connect(lambda on: self._runtime.update_settings(ac_coupling=on))
        self.auto_check.toggled.connect(lambda on: self._runtime.update_settings(auto_scale=on))
        self.trigger_check.toggled.connect(lambda on: self._runtime.update_settings(trigger_enabled=on))
        self.persistence_check.toggled.connect(lambda on: self._runtime.update_settings(persistence=on))
        for box in (self.ac_check, self.auto_check, self.trigger_check, self.persistence_check):
            form.addRow(box)

        self.level_spin = QtWidgets.QDoubleSpinBox()
        self.level_spin.setRange(-3.3, 3.3)
        self.level_spin.setSingleStep(0.05)
        self.level_spin.setDecimals(3)
        self.level_spin.setSuffix(" V")
        self.level_spin.valueChanged.connect(lambda v: self._runtime.update_settings(trigger_level=float(v)))
        form.addRow("Level", self.level_spin)

        self.edge_combo = QtWidgets.QComboBox()
        self.edge_combo.addItem("Rising", True)
        self.edge_combo.addItem("Falling", False)
        self.edge_combo.currentIndexChanged.connect(
            lambda _i: self._runtime.update_settings(trigger_rising=bool(self.edge_combo.currentData()))
        )
        form.addRow("Edge", self.edge_combo)

        self.zoom_slider = QtWidgets.QSlider(QtCore.Qt.Horizontal)
        self.zoom_slider.setRange(10, 90)
        self.zoom_slider.valueChanged.connect(lambda v: self._runtime.update_settings(zoom_percent=int(v)))
        form.addRow("Zoom", self.zoom_slider)
        return panel

    def _sync_controls(self, settings: ScopeSettings) -> None:
        widgets = (
            self.ac_check,
            self.auto_check,
            self.trigger_check,
            self.persistence_check,
            self.level_spin,
            self.edge_combo,
            self.zoom_slider,
            self.interval_combo,
        )
        for widget in widgets:
            widget.blockSignals(True)
        try:
            self.ac_check.setChecked(settings.ac_coupling)
            self.auto_check.setChecked(settings.auto_scale)
            self.trigger_check.setChecked(settings.trigger_enabled)
            self.persistence_check.setChecked(settings.persistence)
            self.level_spin.setValue(settings.trigger_level)
            self.edge_combo.setCurrentIndex(0 if settings.trigger_rising else 1)
            self.zoom_slider.setValue(max(10, min(90, settings.zoom_percent)))
            self.interval_combo.setCurrentIndex(self.interval_combo.findData(settings.interval_seconds))
        finally:
            for widget in widgets:
                widget.blockSignals(False)

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------

    def _on_run_clicked(self) -> None:
        if self._runtime.controller.running:
            self._runtime.stop()
            self._timer.stop()
        elif self._runtime.start():
            self._timer.start()
        self._update_state_controls()

    def _on_mode_changed(self, _index: int) -> None:
        self._runtime.set_mode(AcquisitionMode(self.mode_combo.currentData()))
        self.scope_widget.clear()
        self._update_state_controls()

    def _on_interval_changed(self, _index: int) -> None:
        self._runtime.controller.set_interval(int(self.interval_combo.currentData()))
        self._update_state_controls()

    def _on_pause_clicked(self) -> None:
        controller = self._runtime.controller
        if controller.state is AcquisitionState.PAUSED:
            controller.resume()
        else:
            controller.pause()
        self._update_state_controls()

    def _on_channels_changed(self, _index: int) -> None:
        secondary = self.secondary_combo.currentData()
        try:
            self._runtime.select_channels(
                int(self.primary_combo.currentData()),
                None if secondary == _NO_CHANNEL else int(secondary),
            )
        except ValueError as exc:
            self._logger.warning("Channel selection rejected: %s", exc)
        self.scope_widget.clear()
        self.xy_widget.clear()
        self._update_state_controls()

    def _on_trigger_dragged(self, volts: float) -> None:
        self.level_spin.setValue(volts)

    def _on_tick(self) -> None:
        rendered = self._runtime.poll_render(self.scope_widget.plot_width())
        if rendered is not None:
            self.scope_widget.show_frame(rendered)
            if self._tabs.currentWidget() is self.xy_widget:
                self.xy_widget.show_frame(self._runtime.render_xy(rendered.frame))
        self._status_label.setText(self._runtime.controller.status)

    def _update_state_controls(self) -> None:
        controller = self._runtime.controller
        running = controller.running
        interval = controller.mode is AcquisitionMode.INTERVAL
        self.run_button.setText("Stop" if running else "Start")
        self.interval_combo.setEnabled(interval)
        self.pause_button.setEnabled(interval and running)
        self.pause_button.setText("Resume" if controller.state is AcquisitionState.PAUSED else "Pause")
        self.zoom_slider.setEnabled(not interval)
        self._status_label.setText(controller.status)
        if running and not self._timer.isActive():
            self._timer.start()

    def closeEvent(self, event: QtGui.QCloseEvent) -> None:  # type: ignore[override]
        self._timer.stop()
        try:
            self._runtime.shutdown()
        except Exception as exc:
            self._logger.warning("Shutdown failed: %s", exc)
        super().closeEvent(event)
