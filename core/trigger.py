"""Edge trigger for the continuous (rolling window) acquisition path."""

from __future__ import annotations

import numpy as np

from shared.models import TriggerConfig, TriggerPoint

UNTRIGGERED = TriggerPoint(index=0, fraction=0.0, found=False)


def find_trigger(
    voltages: np.ndarray,
    capacity: int,
    config: TriggerConfig,
    *,
    dc_offset: float = 0.0,
) -> TriggerPoint:
    """
    Find the first edge crossing ``config.level`` that still leaves a full
    display window behind it.

    Args:
        voltages: Primary channel voltages of one capture.
        capacity: Display buffer capacity; the scan stops at
            ``len(voltages) - capacity``.
        config: Trigger level, edge direction and enable flag.
        dc_offset: Subtracted from every sample before comparing with the
            level (the window mean when AC coupling is on).

    Returns:
        A TriggerPoint whose ``index`` is the sample just before the edge and
        whose ``fraction`` is the sub-sample position of the crossing between
        ``index`` and ``index + 1``. When nothing is found the display starts
        at 0 and drifts; that is not an error.
    """
    if not config.enabled:
        return UNTRIGGERED
    data = np.asarray(voltages, dtype=np.float64)
    search_end = data.size - int(capacity)
    if search_end <= 1:
        return UNTRIGGERED

    level = float(config.level)
    prev = data[: search_end - 1] - dc_offset
    curr = data[1:search_end] - dc_offset
    if config.rising:
        edges = np.flatnonzero((prev < level) & (curr >= level))
    else:
        edges = np.flatnonzero((prev > level) & (curr <= level))
    if edges.size == 0:
        return UNTRIGGERED

    start = int(edges[0])
    before = float(prev[start])
    after = float(curr[start])
    if config.rising:
        denom = after - before
        fraction = (level - before) / denom if denom != 0 else 0.0
    else:
        denom = before - after
        fraction = (before - level) / denom if denom != 0 else 0.0

    # Crossing lands exactly on the next sample
    if fraction >= 1.0:
        return TriggerPoint(index=start + 1, fraction=0.0, found=True)
    return TriggerPoint(index=start, fraction=max(0.0, fraction), found=True)


__all__ = ["UNTRIGGERED", "find_trigger"]
