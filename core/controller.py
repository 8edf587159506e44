from __future__ import annotations

import logging
import threading
import time
from typing import Optional, Tuple

import numpy as np

from daq.base_sampler import BaseSampler, SamplerUnavailableError
from daq.context import SamplerContext
from shared.models import (
    AcquisitionMode,
    AcquisitionState,
    ChannelSelection,
    FrameSource,
    RawFrame,
    ScopeFrame,
    TriggerPoint,
)
from shared.settings import INTERVAL_CHOICES, ScopeSettings, ScopeSettingsStore

from .buffers import ChannelBufferManager
from .cycle import estimate_period, find_cycle_bounds
from .frequency import FrequencyTracker, frequency_from_period
from .scaling import dc_offset
from .trigger import find_trigger
from .voltage import to_voltage

logger = logging.getLogger(__name__)

CONTINUOUS_BACKOFF_S = 0.5
INTERVAL_BACKOFF_S = 1.0
POLL_SLICE_S = 0.1


class AcquisitionController:
    """
    Owns the acquisition worker and the STOPPED / CONTINUOUS / SAMPLING /
    PAUSED state machine.

    The worker captures, converts, aligns and fills the display buffers, then
    publishes an immutable ScopeFrame with a single reference assignment. The
    owner thread reads frames with :meth:`poll`. Capture failures never stop
    acquisition: they are logged and retried after a short backoff.
    """

    def __init__(
        self,
        context: SamplerContext,
        settings_store: Optional[ScopeSettingsStore] = None,
        *,
        channels: Optional[ChannelSelection] = None,
        mode: AcquisitionMode = AcquisitionMode.CONTINUOUS,
        continuous_backoff_s: float = CONTINUOUS_BACKOFF_S,
        interval_backoff_s: float = INTERVAL_BACKOFF_S,
        poll_slice_s: float = POLL_SLICE_S,
    ) -> None:
        self._context = context
        self._settings_store = settings_store or ScopeSettingsStore()
        self._channels = channels or ChannelSelection()
        self._mode = AcquisitionMode(mode)
        self._continuous_backoff_s = continuous_backoff_s
        self._interval_backoff_s = interval_backoff_s
        self._poll_slice_s = poll_slice_s

        # _control_lock serialises start/stop/reconfigure; _lock guards state
        # and publication and is never held across a join.
        self._control_lock = threading.RLock()
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._sampler: Optional[BaseSampler] = None
        self._state = AcquisitionState.STOPPED
        self._paused = False
        self._resume_now = False
        self._generation = 0
        self._seq = 0
        self._latest: Optional[ScopeFrame] = None
        self._status = "Stopped"

        settings = self._settings_store.get()
        self._buffers = ChannelBufferManager(settings.buffer_capacity, len(self._channels.channels))
        self._frequency = FrequencyTracker()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> AcquisitionState:
        with self._lock:
            return self._state

    @property
    def running(self) -> bool:
        return self.state.running

    @property
    def mode(self) -> AcquisitionMode:
        return self._mode

    @property
    def channels(self) -> ChannelSelection:
        return self._channels

    @property
    def status(self) -> str:
        with self._lock:
            return self._status

    @property
    def settings_store(self) -> ScopeSettingsStore:
        return self._settings_store

    @property
    def buffers(self) -> ChannelBufferManager:
        return self._buffers

    @property
    def latest_frame(self) -> Optional[ScopeFrame]:
        return self._latest

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> bool:
        """Start acquisition; returns False (and sets ``status``) if no sampler is available."""
        with self._control_lock:
            if self.running:
                return True
            try:
                sampler = self._context.acquire()
            except SamplerUnavailableError as exc:
                logger.error("Cannot start acquisition: %s", exc)
                with self._lock:
                    self._status = f"Error: {exc}"
                return False

            settings = self._settings_store.get()
            if settings.buffer_capacity != self._buffers.capacity:
                self._buffers = ChannelBufferManager(settings.buffer_capacity, len(self._channels.channels))
            else:
                self._buffers.reset(len(self._channels.channels))
            self._frequency.reset()

            with self._lock:
                self._sampler = sampler
                self._generation += 1
                generation = self._generation
                self._paused = False
                self._resume_now = False
                if self._mode is AcquisitionMode.CONTINUOUS:
                    self._state = AcquisitionState.CONTINUOUS
                    self._status = "Running"
                else:
                    self._state = AcquisitionState.SAMPLING
                    self._status = f"Sampling every {settings.interval_seconds} s"
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run,
                args=(generation, sampler, self._mode, self._channels),
                name="AcquisitionWorker",
                daemon=True,
            )
            self._thread.start()
            logger.info(
                "Acquisition started (mode=%s, channels=%s)", self._mode.value, self._channels.channels
            )
            return True

    def stop(self) -> None:
        """Stop the worker, release the sampler handle and zero-fill the buffers."""
        with self._control_lock:
            with self._lock:
                if not self._state.running:
                    return
                self._generation += 1
                self._state = AcquisitionState.STOPPED
                self._paused = False
                self._status = "Stopped"
                thread, self._thread = self._thread, None
            self._stop_event.set()
            if thread is not None:
                thread.join()
            self._sampler = None
            self._context.release()
            self._buffers.reset()
            logger.info("Acquisition stopped")

    def shutdown(self) -> None:
        self.stop()

    def pause(self) -> None:
        with self._lock:
            if self._mode is not AcquisitionMode.INTERVAL:
                raise RuntimeError("pause is only available in interval mode")
            if self._state is AcquisitionState.SAMPLING:
                self._paused = True
                self._state = AcquisitionState.PAUSED
                self._status = "Paused"

    def resume(self) -> None:
        with self._lock:
            if self._mode is not AcquisitionMode.INTERVAL:
                raise RuntimeError("resume is only available in interval mode")
            if self._state is AcquisitionState.PAUSED:
                self._resume_locked()

    def _resume_locked(self) -> None:
        self._paused = False
        self._resume_now = True
        self._state = AcquisitionState.SAMPLING
        self._status = f"Sampling every {self._settings_store.get().interval_seconds} s"

    # ------------------------------------------------------------------
    # Reconfiguration
    # ------------------------------------------------------------------

    def set_mode(self, mode: AcquisitionMode) -> None:
        mode = AcquisitionMode(mode)
        with self._control_lock:
            if mode is self._mode:
                return
            was_running = self.running
            self.stop()
            self._mode = mode
            self._buffers.reset()
            logger.info("Acquisition mode set to %s", mode.value)
            if was_running:
                self.start()

    def select_channels(self, primary: int, secondary: Optional[int] = None) -> None:
        selection = ChannelSelection(primary=primary, secondary=secondary)
        with self._control_lock:
            if selection == self._channels:
                return
            was_running = self.running
            self.stop()
            self._channels = selection
            self._buffers.reset(len(selection.channels))
            self._latest = None
            logger.info("Channels selected: %s", selection.channels)
            if was_running:
                self.start()

    def set_interval(self, seconds: int) -> None:
        if seconds not in INTERVAL_CHOICES:
            raise ValueError(f"interval must be one of {INTERVAL_CHOICES}")
        self._settings_store.update(interval_seconds=int(seconds))
        with self._lock:
            if self._state is AcquisitionState.PAUSED:
                self._resume_locked()
            elif self._state is AcquisitionState.SAMPLING:
                self._status = f"Sampling every {seconds} s"

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    def poll(self, last: Optional[ScopeFrame] = None) -> Optional[ScopeFrame]:
        """Return the latest frame if it is not ``last``, else None."""
        frame = self._latest
        if frame is None or frame is last:
            return None
        return frame

    def last_raw(self) -> Tuple[np.ndarray, ...]:
        """Raw ADC codes behind the latest frame, one array per channel."""
        frame = self._latest
        if frame is None:
            return ()
        return frame.raw

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _run(
        self,
        generation: int,
        sampler: BaseSampler,
        mode: AcquisitionMode,
        channels: ChannelSelection,
    ) -> None:
        while not self._stop_event.is_set():
            settings = self._settings_store.get()
            if mode is AcquisitionMode.CONTINUOUS:
                try:
                    self._continuous_step(generation, sampler, channels, settings)
                except Exception as exc:
                    logger.warning("Continuous capture failed: %s", exc)
                    self._stop_event.wait(self._continuous_backoff_s)
                continue

            with self._lock:
                paused = self._paused
                self._resume_now = False
            if paused:
                self._stop_event.wait(self._poll_slice_s)
                continue
            try:
                self._interval_step(generation, sampler, channels, settings)
            except Exception as exc:
                logger.warning("Interval capture failed: %s", exc)
                self._stop_event.wait(self._interval_backoff_s)
                continue
            self._wait_interval(settings.interval_seconds)

    def _wait_interval(self, seconds: float) -> None:
        deadline = time.monotonic() + seconds
        while not self._stop_event.is_set():
            with self._lock:
                if self._resume_now:
                    return
                paused = self._paused
            if not paused:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return
                self._stop_event.wait(min(self._poll_slice_s, remaining))
            else:
                self._stop_event.wait(self._poll_slice_s)

    def _capture(
        self, sampler: BaseSampler, channels: ChannelSelection, count: int
    ) -> Tuple[RawFrame, Optional[RawFrame]]:
        if channels.secondary is None:
            return sampler.capture_raw(channels.primary, count), None
        first, second = sampler.capture_raw_dual(channels.primary, channels.secondary, count)
        return first, second

    def _continuous_step(
        self,
        generation: int,
        sampler: BaseSampler,
        channels: ChannelSelection,
        settings: ScopeSettings,
    ) -> None:
        first, second = self._capture(sampler, channels, settings.raw_sample_budget)
        volts = to_voltage(first.samples)
        volts2 = to_voltage(second.samples) if second is not None else None

        dc = dc_offset(volts, settings.ac_coupling)
        trigger = find_trigger(volts, self._buffers.capacity, settings.trigger, dc_offset=dc)
        self._buffers.fill_window(volts, volts2, trigger.index)

        period = estimate_period(volts - float(np.mean(volts)))
        frequency = self._frequency.update(frequency_from_period(first.sample_rate_hz, period))
        self._publish(
            generation,
            mode=AcquisitionMode.CONTINUOUS,
            source=FrameSource.TRIGGERED if trigger.found else FrameSource.RAW,
            channels=channels,
            trigger=trigger,
            sample_rate_hz=first.sample_rate_hz,
            frequency_hz=frequency,
            period_samples=period,
            raw=(first, second),
        )

    def _interval_step(
        self,
        generation: int,
        sampler: BaseSampler,
        channels: ChannelSelection,
        settings: ScopeSettings,
    ) -> None:
        if sampler.supports_coherent and self._coherent_step(generation, sampler, channels, settings):
            return

        first, second = self._capture(sampler, channels, settings.raw_sample_budget)
        volts = to_voltage(first.samples)
        volts2 = to_voltage(second.samples) if second is not None else None
        bounds = find_cycle_bounds(volts - float(np.mean(volts)))
        if bounds is not None:
            self._buffers.fill_cycle(volts, volts2, bounds)
            frequency = self._frequency.set(frequency_from_period(first.sample_rate_hz, bounds.length))
            source = FrameSource.CYCLE
            period = bounds.length
        else:
            logger.debug("No cycle found; showing raw window")
            self._buffers.fill_window(volts, volts2, 0)
            frequency = self._frequency.set(None)
            source = FrameSource.RAW
            period = None
        self._publish(
            generation,
            mode=AcquisitionMode.INTERVAL,
            source=source,
            channels=channels,
            trigger=TriggerPoint(),
            sample_rate_hz=first.sample_rate_hz,
            frequency_hz=frequency,
            period_samples=period,
            raw=(first, second),
        )

    def _coherent_step(
        self,
        generation: int,
        sampler: BaseSampler,
        channels: ChannelSelection,
        settings: ScopeSettings,
    ) -> bool:
        target = settings.coherent_target_points
        budget = settings.raw_sample_budget
        if channels.secondary is None:
            single = sampler.capture_coherent(channels.primary, target, budget)
            results = None if single is None else (single, None)
        else:
            results = sampler.capture_coherent_dual(channels.primary, channels.secondary, target, budget)
        if results is None or results[0].cycles_averaged <= 0:
            return False

        first, second = results
        volts = to_voltage(first.averaged)
        volts2 = to_voltage(second.averaged) if second is not None else None
        self._buffers.fill_coherent(volts, volts2)
        self._publish(
            generation,
            mode=AcquisitionMode.INTERVAL,
            source=FrameSource.COHERENT,
            channels=channels,
            trigger=TriggerPoint(),
            sample_rate_hz=first.n_points / first.period_s if first.period_s > 0 else 0.0,
            frequency_hz=self._frequency.set(first.frequency_hz),
            period_samples=first.n_points,
            cycles_averaged=first.cycles_averaged,
            raw=(first.averaged, None if second is None else second.averaged),
        )
        return True

    def _publish(
        self,
        generation: int,
        *,
        mode: AcquisitionMode,
        source: FrameSource,
        channels: ChannelSelection,
        trigger: TriggerPoint,
        sample_rate_hz: float,
        frequency_hz: Optional[float],
        period_samples: Optional[int],
        raw: tuple,
        cycles_averaged: int = 0,
    ) -> bool:
        buffers, valid = self._buffers.snapshot()
        raw_codes = tuple(r.samples if isinstance(r, RawFrame) else r for r in raw if r is not None)
        with self._lock:
            if generation != self._generation or self._stop_event.is_set():
                return False
            self._seq += 1
            frame = ScopeFrame(
                seq=self._seq,
                mode=mode,
                source=source,
                channels=channels.channels,
                buffers=buffers,
                valid_counts=valid,
                trigger=trigger,
                sample_rate_hz=sample_rate_hz,
                frequency_hz=frequency_hz,
                cycles_averaged=cycles_averaged,
                period_samples=period_samples,
                raw=raw_codes,
                captured_at=time.time(),
            )
            self._latest = frame
        logger.debug("Published frame %d (%s, valid=%s)", frame.seq, source.value, valid)
        return True


__all__ = ["AcquisitionController", "CONTINUOUS_BACKOFF_S", "INTERVAL_BACKOFF_S", "POLL_SLICE_S"]
