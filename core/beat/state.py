"""Shared beat state: the current grid plus the snap-to-beat flag.

BeatState is an explicit context object handed to whoever reads or writes
it (snap resolver, detection runner, UI). Writes are single-writer under a
lock and swap in a fresh immutable ``BeatStateSnapshot``, so readers only
ever see a complete grid.

Lifecycle::

    default {120 BPM, no beats, snapping on}
        │
        ├─(track loaded)──→ replace_grid(detected grid)
        ├─(manual BPM)────→ set_manual_bpm(bpm, duration)
        └─(toggle)────────→ set_snap_enabled(flag)

Every write bumps ``version`` and notifies subscribers with the new
snapshot.

Usage::

    state = BeatState()
    unsubscribe = state.subscribe(lambda snap: redraw_grid(snap.grid))
    state.set_manual_bpm(128.0, duration=30.0)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from core.beat.grid import build_rigid_grid
from core.beat.types import BeatGrid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BeatStateSnapshot:
    """Immutable view of BeatState at one write."""

    grid: BeatGrid
    snap_enabled: bool
    version: int


Subscriber = Callable[[BeatStateSnapshot], None]


class BeatState:
    """Single-writer holder of the current BeatGrid and snap flag.

    Args:
        grid: Initial grid. Defaults to ``BeatGrid.default()``.
        snap_enabled: Initial snapping flag. Defaults to True.
    """

    def __init__(self, grid: BeatGrid | None = None, snap_enabled: bool = True) -> None:
        """Initialize with the default grid and snapping on."""
        self._lock = threading.Lock()
        self._snapshot = BeatStateSnapshot(
            grid=grid if grid is not None else BeatGrid.default(),
            snap_enabled=snap_enabled,
            version=0,
        )
        self._subscribers: list[Subscriber] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> BeatStateSnapshot:
        """Current state as one consistent value."""
        return self._snapshot

    @property
    def grid(self) -> BeatGrid:
        return self._snapshot.grid

    @property
    def snap_enabled(self) -> bool:
        return self._snapshot.snap_enabled

    @property
    def version(self) -> int:
        return self._snapshot.version

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _write(
        self,
        *,
        grid: BeatGrid | None = None,
        snap_enabled: bool | None = None,
    ) -> BeatStateSnapshot:
        """Swap in a new snapshot, then notify subscribers outside the lock."""
        with self._lock:
            old = self._snapshot
            new = BeatStateSnapshot(
                grid=grid if grid is not None else old.grid,
                snap_enabled=old.snap_enabled if snap_enabled is None else snap_enabled,
                version=old.version + 1,
            )
            self._snapshot = new
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(new)
            except Exception as exc:  # noqa: BLE001
                logger.warning("BeatState subscriber %r failed: %s", callback, exc)
        return new

    def replace_grid(self, grid: BeatGrid) -> BeatStateSnapshot:
        """Overwrite the grid wholesale (detected path)."""
        snap = self._write(grid=grid)
        logger.info(
            "Beat grid replaced: %d beats at %.2f BPM (v%d)",
            len(grid),
            grid.average_bpm,
            snap.version,
        )
        return snap

    def set_manual_bpm(self, bpm: float, duration: float) -> BeatStateSnapshot:
        """Overwrite the grid with a rigid grid from a manual tempo.

        Non-positive BPM or duration produce an empty grid, never an error.
        """
        return self.replace_grid(build_rigid_grid(bpm, duration))

    def set_snap_enabled(self, enabled: bool) -> BeatStateSnapshot:
        """Turn snap-to-beat on or off."""
        return self._write(snap_enabled=bool(enabled))

    def reset(self) -> BeatStateSnapshot:
        """Return to the default grid with snapping on."""
        return self._write(grid=BeatGrid.default(), snap_enabled=True)

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for every write. Returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe
