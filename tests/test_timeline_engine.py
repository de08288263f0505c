"""Tests for ingestion/timeline_engine.py — the editing façade.

Exercises the wiring end to end with in-memory collaborators: detection
feeds BeatState, BeatState feeds snapping, snapping feeds drags, playhead
clicks and the BPM / context text fields.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from conftest import click_buffer, evenly_spaced

from core.beat.errors import BeatContextError
from core.beat.types import CropRange, DragEdge, Mode
from infrastructure.metrics import REGISTRY
from ingestion.timeline_engine import BeatTimelineEngine

PPS = 100.0


@pytest.fixture()
def engine(orchestrator, timeline, playback, capture) -> BeatTimelineEngine:
    return BeatTimelineEngine(
        orchestrator,
        timeline,
        lambda: PPS,
        playback=playback,
        capture=capture,
        fetch=AsyncMock(return_value=click_buffer(evenly_spaced(0.10, 0.5, 10), duration=5.0)),
    )


# ---------------------------------------------------------------------------
# Beat grid
# ---------------------------------------------------------------------------


class TestBeatGrid:
    def test_starts_with_default_grid(self, engine):
        assert engine.state.grid.is_empty
        assert engine.state.grid.average_bpm == 120.0
        assert engine.bpm_input.text == "120"

    @pytest.mark.asyncio
    async def test_detect_beat_grid_updates_state(self, engine):
        buffer = click_buffer(evenly_spaced(0.10, 0.6, 10), duration=6.0)
        grid = await engine.detect_beat_grid(buffer)
        assert engine.state.grid is grid
        assert grid.average_bpm == 100.0
        assert engine.bpm_input.text == "100"

    @pytest.mark.asyncio
    async def test_detect_for_path(self, engine):
        grid = await engine.detect_for_path("loops/break.wav")
        assert len(grid) == 10
        assert engine.snap(0.42) == 0.60

    def test_manual_bpm_uses_sample_duration(self, engine):
        grid = engine.set_manual_bpm(60.0)
        assert len(grid) == 20
        assert grid.beat_timestamps[:3] == (0.0, 1.0, 2.0)

    def test_manual_bpm_explicit_duration(self, engine):
        assert engine.set_manual_bpm(60.0, duration=4.0).beat_timestamps == (0.0, 1.0, 2.0, 3.0)

    def test_manual_bpm_without_sample_is_empty(self, engine, timeline):
        timeline.loaded = False
        grid = engine.set_manual_bpm(90.0)
        assert grid.is_empty
        assert grid.average_bpm == 90.0

    def test_snap_toggle(self, engine):
        engine.set_manual_bpm(120.0)
        assert engine.snap(1.2) == 1.0
        engine.set_snap_enabled(False)
        assert engine.snap(1.2) == 1.2


# ---------------------------------------------------------------------------
# Text fields
# ---------------------------------------------------------------------------


class TestInputFields:
    def test_bpm_commit_rebuilds_grid(self, engine):
        engine.bpm_input.text = "60"
        assert engine.bpm_input.commit() is True
        assert engine.state.grid.average_bpm == 60.0
        assert len(engine.state.grid) == 20

    def test_bpm_invalid_text_reverts(self, engine):
        version = engine.state.version
        engine.bpm_input.text = "fast"
        assert engine.bpm_input.commit() is False
        assert engine.bpm_input.text == "120"
        assert engine.state.version == version

    def test_bpm_non_positive_rejected(self, engine):
        engine.bpm_input.text = "0"
        assert engine.bpm_input.commit() is False

    @pytest.mark.parametrize("text", ["1e12", "1000", "inf"])
    def test_bpm_above_maximum_rejected(self, engine, text):
        version = engine.state.version
        engine.bpm_input.text = text
        assert engine.bpm_input.commit() is False
        assert engine.bpm_input.text == "120"
        assert engine.state.version == version

    def test_bpm_at_maximum_accepted(self, engine):
        engine.bpm_input.text = "999"
        assert engine.bpm_input.commit() is True
        assert engine.state.grid.average_bpm == 999.0

    def test_context_starts_from_orchestrator(self, engine):
        assert engine.context_input.text == "2"
        assert engine.context_input.committed == 2.0

    def test_context_commit_writes_orchestrator(self, engine, orchestrator):
        engine.context_input.text = "3"
        assert engine.context_input.commit() is True
        assert orchestrator.context_length == 3.0

    def test_context_below_minimum_rejected(self, engine, orchestrator):
        engine.context_input.text = "0.5"
        assert engine.context_input.commit() is False
        assert orchestrator.context_writes == []

    def test_context_beyond_available_audio_rejected(self, engine, orchestrator):
        engine.context_input.text = "500"
        assert engine.context_input.commit() is False
        assert engine.context_input.text == "2"
        assert orchestrator.context_writes == []

    @pytest.mark.parametrize(
        ("mode", "fits", "too_long"),
        [(Mode.PRECEDE, "16", "16.5"), (Mode.CONTINUATION, "8", "8.5"), (Mode.INPAINT, "4", "4.5")],
    )
    def test_context_bounded_per_mode(self, engine, orchestrator, mode, fits, too_long):
        orchestrator.mode = mode
        engine.context_input.text = too_long
        assert engine.context_input.commit() is False
        engine.context_input.text = fits
        assert engine.context_input.commit() is True
        assert orchestrator.context_length == float(fits)

    def test_context_unbounded_without_crop(self, engine, orchestrator):
        orchestrator.crop_range = None
        engine.context_input.text = "500"
        assert engine.context_input.commit() is True


# ---------------------------------------------------------------------------
# Dragging
# ---------------------------------------------------------------------------


class TestDragging:
    def test_snapped_drag_commit(self, engine, orchestrator, capture):
        engine.set_manual_bpm(120.0)
        assert engine.begin_edge_drag(DragEdge.CROP_START, 400.0)
        engine.on_pointer_move(287.0)
        commit = engine.end_drag()
        assert commit.crop_range == CropRange(3.0, 8.0)
        assert orchestrator.context_length == 3.0
        assert engine.context_input.text == "3"
        capture.acquire.assert_called_once()
        capture.release.assert_called_once()

    def test_commit_recorded_in_metrics(self, engine):
        labels = {"edge": "crop_end", "mode": "precede"}
        before = REGISTRY.get_sample_value("drag_commits_total", labels) or 0.0
        engine.begin_edge_drag(DragEdge.CROP_END, 800.0)
        engine.end_drag()
        assert REGISTRY.get_sample_value("drag_commits_total", labels) == before + 1

    def test_precision_key_tracked(self, engine):
        engine.set_snap_enabled(False)
        engine.key_down("Shift")
        engine.begin_edge_drag(DragEdge.CROP_START, 400.0)
        preview = engine.on_pointer_move(300.0)
        assert preview.crop_range.start == pytest.approx(3.85)
        engine.key_up("Shift")
        preview = engine.on_pointer_move(200.0)
        assert preview.crop_range.start == pytest.approx(2.85)

    @pytest.mark.parametrize("event", ["window_blur", "window_focus"])
    def test_focus_changes_reset_modifier(self, engine, event):
        engine.key_down("Shift")
        getattr(engine, event)()
        assert engine.controller.modifier.held is False

    def test_cancel(self, engine, orchestrator):
        engine.begin_edge_drag(DragEdge.CROP_START, 400.0)
        engine.on_pointer_move(100.0)
        assert engine.cancel_drag() is True
        assert orchestrator.crop_writes == []

    def test_end_without_drag(self, engine):
        assert engine.end_drag() is None


# ---------------------------------------------------------------------------
# Playhead
# ---------------------------------------------------------------------------


class TestPlayhead:
    def test_click_snaps(self, engine, playback):
        engine.set_manual_bpm(120.0)
        assert engine.click_playhead(1.2) == 1.0
        playback.set_playhead_position_in_seconds.assert_called_once_with(1.0)

    def test_loop_bounds(self, engine, playback):
        engine.set_manual_bpm(120.0)
        assert engine.set_loop_bounds(2.9, 0.8) == (1.0, 3.0)
        playback.set_loop_start.assert_called_once_with(1.0)
        playback.set_loop_end.assert_called_once_with(3.0)

    def test_no_playback_bound(self, orchestrator, timeline):
        engine = BeatTimelineEngine(orchestrator, timeline, lambda: PPS, fetch=AsyncMock())
        with pytest.raises(BeatContextError):
            engine.click_playhead(1.0)
        with pytest.raises(BeatContextError):
            engine.set_loop_bounds(0.0, 1.0)
