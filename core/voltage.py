"""Conversion between 12-bit ADC codes and volts."""

from __future__ import annotations

import numpy as np

from shared.models import ADC_MAX_CODE, VREF


def to_voltage(raw) -> np.ndarray:
    """Map raw codes to volts: ``raw * VREF / 4095``."""
    return np.asarray(raw, dtype=np.float64) * VREF / float(ADC_MAX_CODE)


def to_code(volts) -> np.ndarray:
    """Inverse of :func:`to_voltage`, rounded and clipped to the ADC range."""
    codes = np.rint(np.asarray(volts, dtype=np.float64) * (ADC_MAX_CODE / VREF))
    return np.clip(codes, 0, ADC_MAX_CODE).astype(np.uint16)


__all__ = ["to_voltage", "to_code"]
