"""Core reconstruction pipeline: conversion, alignment, buffering, scaling and acquisition."""

from .buffers import ChannelBufferManager
from .controller import AcquisitionController
from .cycle import CycleBounds, estimate_period, find_cycle_bounds
from .display import DisplayPipeline, RenderedFrame
from .persistence import PersistenceAccumulator
from .resampler import Trace, resample
from .runtime import ScopeRuntime
from .scaling import ScalingEngine, XYScalingEngine
from .trigger import find_trigger
from .voltage import to_code, to_voltage
from .xy import XYFrame, XYView
from shared.models import ScopeFrame, TriggerConfig, TriggerPoint

__all__ = [
    "AcquisitionController",
    "ChannelBufferManager",
    "CycleBounds",
    "DisplayPipeline",
    "PersistenceAccumulator",
    "RenderedFrame",
    "ScalingEngine",
    "ScopeFrame",
    "ScopeRuntime",
    "Trace",
    "TriggerConfig",
    "TriggerPoint",
    "XYFrame",
    "XYScalingEngine",
    "XYView",
    "estimate_period",
    "find_cycle_bounds",
    "find_trigger",
    "resample",
    "to_code",
    "to_voltage",
]
