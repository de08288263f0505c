"""
ingestion/timeline_engine.py — High-level façade for beat-synchronized editing.

BeatTimelineEngine wires together the whole editing engine:

    decoded buffer / file path
        │
        ├─ BeatDetectionRunner      [ingestion/beat_detection.py — async, latest wins]
        │       ↓
        ├─ BeatState                [core/beat/state.py — single-writer context]
        │       ↓
        ├─ SnapResolver             [core/beat/snap.py — nearest beat]
        │       ↓
        ├─ DragController           [core/beat/drag.py — edge drag state machine]
        ├─ PlayheadSnapper          [core/beat/playhead.py — playhead/loop clicks]
        └─ NumericInputBuffer ×2    [core/beat/inputs.py — BPM and context fields]

This module is in `ingestion/` because it coordinates side-effectful
collaborators (file decoding, the application store, playback). The core
logic is pure and lives in `core/beat/`.

Usage:
    engine = BeatTimelineEngine(
        orchestrator=store,
        timeline=timeline,
        pixels_per_second=lambda: waveform.pixels_per_second,
        playback=player,
    )
    await engine.detect_for_path("/path/to/loop.wav")
    engine.begin_edge_drag(DragEdge.CROP_START, 120.0)
    engine.on_pointer_move(180.0)
    engine.end_drag()
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from pathlib import Path

from core.beat.config import (
    DEFAULT_DETECTION_CONFIG,
    DEFAULT_DRAG_CONFIG,
    BeatDetectionConfig,
    DragConfig,
)
from core.beat.drag import DragController, available_context
from core.beat.errors import BeatContextError
from core.beat.inputs import NumericInputBuffer
from core.beat.playhead import PlayheadSnapper
from core.beat.ports import CropOrchestrator, PlaybackEngine, PointerCapture, TimelineModel
from core.beat.snap import SnapResolver
from core.beat.state import BeatState, BeatStateSnapshot
from core.beat.types import (
    BeatGrid,
    CropRange,
    DecodedAudioBuffer,
    DragCommit,
    DragEdge,
    DragPreview,
    LoadedSample,
    Mode,
)
from infrastructure.metrics import record_drag_commit
from ingestion.audio_loader import fetch_decoded_buffer
from ingestion.beat_detection import BeatDetectionRunner, FetchFn

logger = logging.getLogger(__name__)


class BeatTimelineEngine:
    """Single integration point for beat detection, snapping and edge dragging.

    Args:
        orchestrator: Owner of crop range, context length and mode.
        timeline: Timeline model (trims, loaded sample).
        pixels_per_second: Current horizontal zoom of the waveform view.
        playback: Playback engine for playhead/loop snapping. Optional.
        capture: Exclusive pointer capture for drags. Optional.
        state: Shared BeatState. A fresh default state when omitted.
        fetch: Async path → DecodedAudioBuffer. Defaults to the librosa loader.
        detection_config: Detection parameters.
        drag_config: Drag parameters.
    """

    def __init__(
        self,
        orchestrator: CropOrchestrator,
        timeline: TimelineModel,
        pixels_per_second: Callable[[], float],
        *,
        playback: PlaybackEngine | None = None,
        capture: PointerCapture | None = None,
        state: BeatState | None = None,
        fetch: FetchFn = fetch_decoded_buffer,
        detection_config: BeatDetectionConfig = DEFAULT_DETECTION_CONFIG,
        drag_config: DragConfig = DEFAULT_DRAG_CONFIG,
    ) -> None:
        """Wire state, snapper, runner, drag controller and input buffers."""
        self._orchestrator = orchestrator
        self._timeline = timeline
        self.state = state if state is not None else BeatState()
        self.snapper = SnapResolver(self.state)
        self.runner = BeatDetectionRunner(self.state, fetch=fetch, config=detection_config)
        self.controller = DragController(
            orchestrator,
            timeline,
            self.snapper,
            pixels_per_second,
            capture=capture,
            config=drag_config,
        )
        self.controller.add_commit_listener(self._record_commit)
        self._playhead = PlayheadSnapper(playback, self.snapper) if playback is not None else None

        self._drag_config = drag_config
        self.bpm_input = NumericInputBuffer(
            lambda bpm: self.set_manual_bpm(bpm),
            validator=lambda v: 0 < v <= detection_config.max_manual_bpm,
            initial=self.state.grid.average_bpm,
        )
        self.context_input = NumericInputBuffer(
            self._orchestrator.set_context_length,
            validator=self._context_fits,
            initial=self._orchestrator.get_context_length(),
        )
        self.state.subscribe(self._on_state_change)

    # ------------------------------------------------------------------
    # Beat grid
    # ------------------------------------------------------------------

    async def detect_beat_grid(self, buffer: DecodedAudioBuffer) -> BeatGrid:
        """Detect a grid from a decoded buffer and apply it (latest wins)."""
        return await self.runner.detect_buffer(buffer)

    async def detect_for_path(self, path: str | Path) -> BeatGrid | None:
        """Fetch, decode and detect. None if the file could not be loaded."""
        return await self.runner.detect_path(path)

    def _sample_duration(self) -> float:
        sample = self._timeline.get_loaded_sample()
        return LoadedSample.of(sample).duration if sample is not None else 0.0

    def set_manual_bpm(self, bpm: float, duration: float | None = None) -> BeatGrid:
        """Replace the grid with a rigid grid at ``bpm``.

        Args:
            bpm: Manual tempo.
            duration: Grid length in seconds. Defaults to the loaded sample's
                duration (an empty grid when nothing is loaded).
        """
        length = self._sample_duration() if duration is None else duration
        return self.state.set_manual_bpm(bpm, length).grid

    def set_snap_enabled(self, enabled: bool) -> None:
        self.state.set_snap_enabled(enabled)

    def snap(self, seconds: float) -> float:
        """Nearest beat to ``seconds``, or ``seconds`` when snapping is off."""
        return self.snapper(seconds)

    def _on_state_change(self, snapshot: BeatStateSnapshot) -> None:
        self.bpm_input.sync(snapshot.grid.average_bpm)

    def _context_fits(self, seconds: float) -> bool:
        """Context entry must reach the minimum and fit the adjacent audio.

        The upper bound is skipped while no crop range or mode is set.
        """
        if seconds < self._drag_config.min_context_length:
            return False
        raw_crop, raw_mode = self._orchestrator.get_crop_range(), self._orchestrator.get_mode()
        if raw_crop is None or raw_mode is None:
            return True
        try:
            crop, mode = CropRange.of(raw_crop), Mode(raw_mode)
        except (TypeError, ValueError):
            logger.debug("Context bound skipped: crop=%r mode=%r", raw_crop, raw_mode)
            return True
        duration = self._sample_duration() or math.inf
        return seconds <= available_context(crop, mode, duration)

    # ------------------------------------------------------------------
    # Dragging
    # ------------------------------------------------------------------

    def begin_edge_drag(self, edge: DragEdge, pointer_x: float) -> bool:
        return self.controller.begin_edge_drag(edge, pointer_x)

    def on_pointer_move(
        self,
        pointer_x: float,
        precision_modifier_held: bool | None = None,
    ) -> DragPreview | None:
        return self.controller.on_pointer_move(pointer_x, precision_modifier_held)

    def end_drag(self) -> DragCommit | None:
        commit = self.controller.end_drag()
        if commit is not None:
            self.context_input.sync(commit.context_length)
        return commit

    def cancel_drag(self) -> bool:
        return self.controller.cancel_drag()

    def key_down(self, key: str) -> None:
        self.controller.modifier.key_down(key)

    def key_up(self, key: str) -> None:
        self.controller.modifier.key_up(key)

    def window_blur(self) -> None:
        """Window lost focus; forget any held modifier."""
        self.controller.modifier.reset()

    def window_focus(self) -> None:
        """Window regained focus; modifier state is unknown, start released."""
        self.controller.modifier.reset()

    @staticmethod
    def _record_commit(commit: DragCommit) -> None:
        record_drag_commit(edge=commit.edge.value, mode=commit.mode.value)

    # ------------------------------------------------------------------
    # Playhead
    # ------------------------------------------------------------------

    def _require_playhead(self) -> PlayheadSnapper:
        if self._playhead is None:
            raise BeatContextError("No playback engine bound to this engine")
        return self._playhead

    def click_playhead(self, seconds: float) -> float:
        """Seek to the beat nearest ``seconds``."""
        return self._require_playhead().click(seconds)

    def set_loop_bounds(self, start: float, end: float) -> tuple[float, float]:
        """Set beat-snapped loop bounds."""
        return self._require_playhead().set_loop_bounds(start, end)
