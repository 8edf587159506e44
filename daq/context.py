from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from .base_sampler import BaseSampler, SamplerUnavailableError

logger = logging.getLogger(__name__)


class SamplerContext:
    """
    Owns one sampler shared by several consumers (scope view, X-Y view, ...).

    The sampler is created and opened when the first handle is acquired and
    closed when the last handle is released. Pass the context to whatever
    owns acquisition instead of reaching for a global instance.
    """

    def __init__(self, factory: Callable[[], BaseSampler]) -> None:
        self._factory = factory
        self._lock = threading.Lock()
        self._sampler: Optional[BaseSampler] = None
        self._handles = 0

    @property
    def handle_count(self) -> int:
        with self._lock:
            return self._handles

    @property
    def sampler(self) -> Optional[BaseSampler]:
        return self._sampler

    def acquire(self) -> BaseSampler:
        """Take a handle; raises SamplerUnavailableError if the sampler cannot open."""
        with self._lock:
            if self._sampler is None:
                try:
                    sampler = self._factory()
                    sampler.open()
                except SamplerUnavailableError:
                    raise
                except Exception as exc:
                    raise SamplerUnavailableError(f"Failed to create sampler: {exc}") from exc
                self._sampler = sampler
                logger.info("Sampler opened: %s", sampler.sampler_name())
            self._handles += 1
            return self._sampler

    def release(self) -> None:
        with self._lock:
            if self._handles <= 0:
                raise RuntimeError("release() called without a matching acquire()")
            self._handles -= 1
            if self._handles == 0 and self._sampler is not None:
                sampler = self._sampler
                self._sampler = None
                try:
                    sampler.close()
                finally:
                    logger.info("Sampler closed: %s", sampler.sampler_name())

    @contextmanager
    def session(self) -> Iterator[BaseSampler]:
        sampler = self.acquire()
        try:
            yield sampler
        finally:
            self.release()


__all__ = ["SamplerContext"]
