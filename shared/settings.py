from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, replace
from typing import Callable, Dict, Optional

from .models import TriggerConfig

logger = logging.getLogger(__name__)

INTERVAL_CHOICES = (1, 5, 10, 20)


@dataclass(frozen=True)
class ScopeSettings:
    ac_coupling: bool = True
    auto_scale: bool = True
    trigger_enabled: bool = True
    trigger_level: float = 0.1
    trigger_rising: bool = True
    zoom_percent: int = 75
    interval_seconds: int = 5
    raw_sample_budget: int = 10000
    coherent_target_points: int = 2000
    buffer_capacity: int = 6000
    persistence: bool = False
    persistence_points: int = 5000
    refresh_hz: float = 30.0

    def __post_init__(self) -> None:
        if not 1 <= self.zoom_percent <= 100:
            raise ValueError("zoom_percent must be between 1 and 100")
        if self.interval_seconds not in INTERVAL_CHOICES:
            raise ValueError(f"interval_seconds must be one of {INTERVAL_CHOICES}")
        if self.raw_sample_budget <= 0:
            raise ValueError("raw_sample_budget must be positive")
        if self.coherent_target_points < 2:
            raise ValueError("coherent_target_points must be at least 2")
        if self.buffer_capacity < 2:
            raise ValueError("buffer_capacity must be at least 2")
        if self.persistence_points <= 0:
            raise ValueError("persistence_points must be positive")
        if not math.isfinite(self.refresh_hz) or self.refresh_hz <= 0:
            raise ValueError("refresh_hz must be positive")
        if not math.isfinite(self.trigger_level):
            raise ValueError("trigger_level must be finite")

    @property
    def trigger(self) -> TriggerConfig:
        return TriggerConfig(
            enabled=self.trigger_enabled,
            level=self.trigger_level,
            rising=self.trigger_rising,
        )


class ScopeSettingsStore:
    """
    Thread-safe settings container shared by the acquisition worker, the
    display pipeline and the GUI controls. The worker reads a snapshot on every
    iteration, so updates apply from the next frame on.
    """

    def __init__(self, initial: Optional[ScopeSettings] = None) -> None:
        self._settings = initial or ScopeSettings()
        self._lock = threading.Lock()
        self._subscribers: Dict[int, Callable[[ScopeSettings], None]] = {}
        self._next_token = 0

    def get(self) -> ScopeSettings:
        with self._lock:
            return self._settings

    def update(self, **kwargs) -> ScopeSettings:
        with self._lock:
            new_settings = replace(self._settings, **kwargs)
            self._settings = new_settings
            callbacks = list(self._subscribers.values())
        for callback in callbacks:
            try:
                callback(new_settings)
            except Exception as exc:
                logger.debug("Settings subscriber callback failed: %s", exc)
                continue
        return new_settings

    def subscribe(self, callback: Callable[[ScopeSettings], None], *, replay: bool = True) -> Callable[[], None]:
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._subscribers[token] = callback
            snapshot = self._settings
        if replay:
            callback(snapshot)

        def unsubscribe() -> None:
            with self._lock:
                self._subscribers.pop(token, None)

        return unsubscribe


__all__ = ["INTERVAL_CHOICES", "ScopeSettings", "ScopeSettingsStore"]
