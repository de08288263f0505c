"""
core/beat/snap.py — Nearest-beat snapping.

Snapping never fails: with snapping disabled, an empty grid or a NaN input
the value comes back unchanged. Ties between two equidistant beats go to
the earlier beat (first minimum in ascending scan order).
"""

from __future__ import annotations

import bisect
import math
from collections.abc import Sequence

from core.beat.errors import BeatContextError
from core.beat.state import BeatState


def nearest_beat(value: float, timestamps: Sequence[float]) -> float | None:
    """Return the timestamp closest to ``value``.

    Args:
        value:      Time in seconds.
        timestamps: Ascending beat positions.

    Returns:
        The closest timestamp (earlier one on a tie), or None if
        ``timestamps`` is empty.
    """
    if not timestamps:
        return None
    i = bisect.bisect_left(timestamps, value)
    if i == 0:
        return timestamps[0]
    if i == len(timestamps):
        return timestamps[-1]
    before, after = timestamps[i - 1], timestamps[i]
    return before if abs(before - value) <= abs(after - value) else after


def snap_time(value: float, state: BeatState | None) -> float:
    """Snap ``value`` to the nearest beat held in ``state``.

    Raises:
        BeatContextError: If no BeatState was supplied.
    """
    if state is None:
        raise BeatContextError("snap_time() needs a BeatState; none is bound")
    snap = state.snapshot()
    if not snap.snap_enabled or snap.grid.is_empty or math.isnan(value):
        return value
    nearest = nearest_beat(value, snap.grid.beat_timestamps)
    return value if nearest is None else nearest


class SnapResolver:
    """Callable snapper bound to one BeatState.

    Example::

        snap = SnapResolver(state)
        start = snap(raw_start)
    """

    def __init__(self, state: BeatState) -> None:
        """Bind to ``state``."""
        if state is None:
            raise BeatContextError("SnapResolver needs a BeatState")
        self._state = state

    @property
    def state(self) -> BeatState:
        return self._state

    def __call__(self, value: float) -> float:
        return snap_time(value, self._state)
