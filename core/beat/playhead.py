"""Beat-snapped playhead clicks and loop bounds."""

from __future__ import annotations

from collections.abc import Callable

from core.beat.ports import PlaybackEngine


class PlayheadSnapper:
    """Snap playhead and loop positions before handing them to playback.

    Args:
        playback: Playback engine receiving the snapped positions.
        snapper: Maps a raw time to a snapped time.
    """

    def __init__(self, playback: PlaybackEngine, snapper: Callable[[float], float]) -> None:
        self._playback = playback
        self._snap = snapper

    def click(self, seconds: float) -> float:
        """Move the playhead to the beat nearest ``seconds``. Returns the new position."""
        target = max(0.0, self._snap(seconds))
        self._playback.set_playhead_position_in_seconds(target)
        return target

    def set_loop_bounds(self, start: float, end: float) -> tuple[float, float]:
        """Snap both loop bounds and set them in ascending order."""
        lo, hi = sorted((self._snap(start), self._snap(end)))
        lo = max(0.0, lo)
        self._playback.set_loop_start(lo)
        self._playback.set_loop_end(hi)
        return lo, hi
