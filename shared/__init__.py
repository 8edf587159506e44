"""
Shared data structures available to both the acquisition back end and the GUI.
"""

from .models import ChannelSelection, CoherentResult, RawFrame, ScaleState, ScopeFrame
from .settings import ScopeSettings, ScopeSettingsStore

__all__ = [
    "ChannelSelection",
    "CoherentResult",
    "RawFrame",
    "ScaleState",
    "ScopeFrame",
    "ScopeSettings",
    "ScopeSettingsStore",
]
