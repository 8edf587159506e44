from __future__ import annotations

"""
Base class for ADC samplers feeding the reconstruction pipeline.

Goals:
- Simple, blocking capture contract: one call returns one complete RawFrame.
- Clean lifecycle: open → capture* → close.
- Optional coherent-averaging path for samplers backed by a native helper.
- Channel validation and "not initialized" reporting in one place.

Subclasses implement the *_impl() methods to integrate real hardware
(or simulators) while relying on the shared checks here.
"""

import threading
from abc import ABC, abstractmethod
from typing import Iterable, Literal, Optional, Tuple

from shared.models import ADC_CHANNELS, CoherentResult, RawFrame


class SamplerUnavailableError(RuntimeError):
    """The sampler could not be opened or is not initialized."""


class SampleError(RuntimeError):
    """A single capture failed; the caller may retry."""


State = Literal["closed", "open"]


class BaseSampler(ABC):
    """
    Abstract base for ADC samplers.

    Typical flow:
        sampler = Driver()
        sampler.open()
        frame = sampler.capture_raw(3, 10_000)
        a, b = sampler.capture_raw_dual(3, 2, 10_000)
        result = sampler.capture_coherent(3, 2000, 10_000)   # None when unsupported
        sampler.close()

    Captures are blocking and may be called from a worker thread. Returned
    frames are immutable.
    """

    supports_coherent: bool = False

    @classmethod
    @abstractmethod
    def sampler_name(cls) -> str:
        """Return the human-friendly name of this sampler type."""
        raise NotImplementedError

    def __init__(self) -> None:
        self._state_lock = threading.RLock()
        self._state: State = "closed"

    @property
    def is_open(self) -> bool:
        return self._state == "open"

    # ----------
    # Lifecycle
    # ----------

    def open(self) -> None:
        with self._state_lock:
            self._assert_state(expected=("closed",))
            try:
                self._open_impl()
            except SamplerUnavailableError:
                raise
            except Exception as exc:
                raise SamplerUnavailableError(f"{self.sampler_name()} failed to open: {exc}") from exc
            self._state = "open"

    @abstractmethod
    def _open_impl(self) -> None:
        """Driver-specific resource acquisition."""
        raise NotImplementedError

    def close(self) -> None:
        with self._state_lock:
            if self._state == "closed":
                return
            try:
                self._close_impl()
            finally:
                self._state = "closed"

    @abstractmethod
    def _close_impl(self) -> None:
        """Driver-specific resource release."""
        raise NotImplementedError

    # --------
    # Capture
    # --------

    def capture_raw(self, channel: int, sample_count: int) -> RawFrame:
        """Capture ``sample_count`` consecutive samples from one channel."""
        self._check_ready()
        self._check_channels((channel,))
        self._check_count(sample_count)
        return self._capture_raw_impl(int(channel), int(sample_count))

    def capture_raw_dual(self, channel_a: int, channel_b: int, pair_count: int) -> Tuple[RawFrame, RawFrame]:
        """Capture interleaved sample pairs from two channels."""
        self._check_ready()
        self._check_channels((channel_a, channel_b))
        self._check_count(pair_count)
        return self._capture_raw_dual_impl(int(channel_a), int(channel_b), int(pair_count))

    def capture_coherent(
        self,
        channel: int,
        target_points: int,
        raw_sample_budget: int,
    ) -> Optional[CoherentResult]:
        """
        Average many raw periods into one period of ``target_points`` codes.

        Returns None when coherent averaging is unsupported or when period
        detection fails inside the sampler; callers then fall back to a raw
        capture.
        """
        if not self.supports_coherent:
            return None
        self._check_ready()
        self._check_channels((channel,))
        self._check_count(target_points)
        self._check_count(raw_sample_budget)
        return self._capture_coherent_impl(int(channel), int(target_points), int(raw_sample_budget))

    def capture_coherent_dual(
        self,
        channel_a: int,
        channel_b: int,
        target_points: int,
        raw_sample_budget: int,
    ) -> Optional[Tuple[CoherentResult, CoherentResult]]:
        """Dual-channel coherent capture sharing one period, frequency and cycle count."""
        if not self.supports_coherent:
            return None
        self._check_ready()
        self._check_channels((channel_a, channel_b))
        self._check_count(target_points)
        self._check_count(raw_sample_budget)
        return self._capture_coherent_dual_impl(
            int(channel_a), int(channel_b), int(target_points), int(raw_sample_budget)
        )

    @abstractmethod
    def _capture_raw_impl(self, channel: int, sample_count: int) -> RawFrame:
        raise NotImplementedError

    @abstractmethod
    def _capture_raw_dual_impl(self, channel_a: int, channel_b: int, pair_count: int) -> Tuple[RawFrame, RawFrame]:
        raise NotImplementedError

    def _capture_coherent_impl(
        self, channel: int, target_points: int, raw_sample_budget: int
    ) -> Optional[CoherentResult]:
        return None

    def _capture_coherent_dual_impl(
        self, channel_a: int, channel_b: int, target_points: int, raw_sample_budget: int
    ) -> Optional[Tuple[CoherentResult, CoherentResult]]:
        return None

    # ---------
    # Helpers
    # ---------

    def _check_ready(self) -> None:
        if self._state != "open":
            raise SamplerUnavailableError(f"{self.sampler_name()} not initialized")

    @staticmethod
    def _check_channels(channels: Iterable[int]) -> None:
        for ch in channels:
            if not 0 <= int(ch) < ADC_CHANNELS:
                raise ValueError(f"Channel must be 0-{ADC_CHANNELS - 1}, got {ch}")

    @staticmethod
    def _check_count(count: int) -> None:
        if int(count) <= 0:
            raise ValueError("sample counts must be positive")

    def _assert_state(self, expected: Iterable[State]) -> None:
        if self._state not in expected:
            raise RuntimeError(f"Invalid state: {self._state}; expected one of {tuple(expected)}.")


__all__ = ["BaseSampler", "SamplerUnavailableError", "SampleError"]
