import argparse
import logging
import math
import sys

import pyqtgraph as pg
from PySide6.QtWidgets import QApplication

from core.runtime import ScopeRuntime
from daq.simulated_sampler import SimulatedSampler, WaveSpec
from gui.main_window import ScopeWindow
from shared.models import AcquisitionMode
from shared.settings import ScopeSettings, ScopeSettingsStore


pg.setConfigOptions(antialias=True)


def _demo_sampler() -> SimulatedSampler:
    # Channel 3 carries a 1 kHz sine, channel 2 the same signal 90 degrees ahead.
    return SimulatedSampler(
        {
            3: WaveSpec(frequency_hz=1000.0, amplitude_v=0.75, offset_v=1.5),
            2: WaveSpec(frequency_hz=1000.0, amplitude_v=0.75, offset_v=1.5, phase_rad=math.pi / 2),
        },
        noise_v=0.005,
    )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Raspberry Pi ADC oscilloscope")
    parser.add_argument("--interval", action="store_true", help="start in interval mode")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = QApplication(sys.argv[:1])
    app.setApplicationName("SigScope")
    runtime = ScopeRuntime(_demo_sampler, settings_store=ScopeSettingsStore(ScopeSettings()))
    if args.interval:
        runtime.set_mode(AcquisitionMode.INTERVAL)
    window = ScopeWindow(runtime)
    window.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
