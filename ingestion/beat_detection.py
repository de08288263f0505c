"""
ingestion/beat_detection.py — Async beat detection runner.

Fetches/decodes a track, runs the pure detection pass off the event loop
and writes the result into BeatState:

    path
      │
      ├─ fetch_decoded_buffer()   [ingestion/audio_loader.py — I/O boundary]
      │       ↓
      ├─ detect_beat_grid()       [core/beat/grid.py — pure DSP]
      │       ↓
      └─ BeatState.replace_grid() [core/beat/state.py — atomic swap]

Overlapping requests are resolved latest-wins: every call takes a token
and only the holder of the newest token may write the state. An older run
that finishes late is discarded.

Failures never reach the editing flow. A fetch/decode error is logged and
leaves the state untouched; a signal with too few peaks degrades to the
default grid (120 BPM, no beats).
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path

from core.beat.config import DEFAULT_DETECTION_CONFIG, BeatDetectionConfig
from core.beat.grid import detect_beat_grid
from core.beat.state import BeatState
from core.beat.types import BeatGrid, DecodedAudioBuffer
from infrastructure.metrics import LatencyTimer, record_detection
from ingestion.audio_loader import fetch_decoded_buffer

logger = logging.getLogger(__name__)

FetchFn = Callable[[str | Path], Awaitable[DecodedAudioBuffer]]

# Exceptions the loader raises for missing, unsupported or undecodable files
_FETCH_ERRORS: tuple[type[Exception], ...] = (
    FileNotFoundError,
    ValueError,
    RuntimeError,
    OSError,
)


class BeatDetectionRunner:
    """Runs detection passes and applies the newest result to a BeatState.

    Args:
        state: BeatState receiving detected grids.
        fetch: Async ``path → DecodedAudioBuffer``. Defaults to the librosa
            loader; inject a coroutine function in tests.
        config: Detection parameters.
    """

    def __init__(
        self,
        state: BeatState,
        *,
        fetch: FetchFn = fetch_decoded_buffer,
        config: BeatDetectionConfig = DEFAULT_DETECTION_CONFIG,
    ) -> None:
        """Bind to ``state``."""
        self._state = state
        self._fetch = fetch
        self._config = config
        self._tokens = itertools.count(1)
        self._latest = 0

    @property
    def state(self) -> BeatState:
        return self._state

    def _claim(self) -> int:
        self._latest = next(self._tokens)
        return self._latest

    def _is_latest(self, token: int) -> bool:
        return token == self._latest

    async def _run(self, token: int, buffer: DecodedAudioBuffer) -> BeatGrid:
        with LatencyTimer() as timer:
            grid = await asyncio.to_thread(detect_beat_grid, buffer, config=self._config)

        if not self._is_latest(token):
            logger.debug("Discarding stale detection result (token %d < %d)", token, self._latest)
            record_detection(outcome="stale", latency_seconds=timer.elapsed)
            return grid

        if grid.is_empty:
            logger.debug(
                "Too few peaks in %.1fs of audio; using default grid at %.0f BPM",
                buffer.duration,
                grid.average_bpm,
            )
        self._state.replace_grid(grid)
        record_detection(
            outcome="default" if grid.is_empty else "detected",
            latency_seconds=timer.elapsed,
            beats=len(grid),
        )
        return grid

    async def detect_buffer(self, buffer: DecodedAudioBuffer) -> BeatGrid:
        """Detect a grid from an already decoded buffer.

        Returns:
            The detected grid. It is written to the state only if no newer
            request was started meanwhile.
        """
        return await self._run(self._claim(), buffer)

    async def detect_path(self, path: str | Path) -> BeatGrid | None:
        """Fetch, decode and detect a grid for ``path``.

        Returns:
            The detected grid, or None if the file could not be fetched or
            decoded (the state is left unchanged).
        """
        token = self._claim()
        try:
            buffer = await self._fetch(path)
        except _FETCH_ERRORS as exc:
            logger.warning("Beat detection skipped for %s: %s", path, exc)
            record_detection(outcome="fetch_failed")
            return None
        return await self._run(token, buffer)
