"""
Tests for core/beat/inputs.py and core/beat/playhead.py — commit-on-blur
text fields and beat-snapped playhead/loop positions.
"""

from __future__ import annotations

from unittest.mock import MagicMock, call

import pytest

from core.beat.inputs import NumericInputBuffer, parse_number
from core.beat.playhead import PlayheadSnapper
from core.beat.snap import SnapResolver
from core.beat.state import BeatState

# ---------------------------------------------------------------------------
# parse_number
# ---------------------------------------------------------------------------


class TestParseNumber:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [("128", 128.0), (" 1.5 ", 1.5), ("-2", -2.0), ("1e1", 10.0)],
    )
    def test_valid(self, text, expected):
        assert parse_number(text) == expected

    @pytest.mark.parametrize("text", ["", "   ", "abc", "12bpm", "nan", "inf", "-inf"])
    def test_invalid(self, text):
        assert parse_number(text) is None

    def test_none_is_invalid(self):
        assert parse_number(None) is None  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# NumericInputBuffer
# ---------------------------------------------------------------------------


class TestNumericInputBuffer:
    def test_initial_text(self):
        field = NumericInputBuffer(MagicMock(), initial=120.0)
        assert field.text == "120"
        assert field.committed == 120.0

    def test_typing_does_not_commit(self):
        commit_fn = MagicMock()
        field = NumericInputBuffer(commit_fn, initial=120.0)
        field.text = "12"
        field.text = "128"
        commit_fn.assert_not_called()
        assert field.dirty is True

    def test_commit_writes_parsed_value(self):
        commit_fn = MagicMock()
        field = NumericInputBuffer(commit_fn, initial=120.0)
        field.text = "128"
        assert field.commit() is True
        commit_fn.assert_called_once_with(128.0)
        assert field.committed == 128.0
        assert field.dirty is False

    def test_unparseable_reverts(self):
        commit_fn = MagicMock()
        field = NumericInputBuffer(commit_fn, initial=120.0)
        field.text = "fast"
        assert field.commit() is False
        commit_fn.assert_not_called()
        assert field.text == "120"

    def test_validator_rejects(self):
        commit_fn = MagicMock()
        field = NumericInputBuffer(commit_fn, validator=lambda v: v > 0, initial=120.0)
        field.text = "-5"
        assert field.commit() is False
        commit_fn.assert_not_called()
        assert field.text == "120"

    def test_revert_without_initial_clears_text(self):
        field = NumericInputBuffer(MagicMock())
        field.text = "oops"
        assert field.commit() is False
        assert field.text == ""

    def test_sync_updates_without_committing(self):
        commit_fn = MagicMock()
        field = NumericInputBuffer(commit_fn, initial=120.0)
        field.sync(2.5)
        assert field.text == "2.5"
        assert field.committed == 2.5
        commit_fn.assert_not_called()

    def test_bpm_field_rebuilds_grid(self):
        state = BeatState()
        field = NumericInputBuffer(
            lambda bpm: state.set_manual_bpm(bpm, 4.0),
            validator=lambda v: v > 0,
            initial=state.grid.average_bpm,
        )
        field.text = "60"
        field.commit()
        assert state.grid.beat_timestamps == (0.0, 1.0, 2.0, 3.0)


# ---------------------------------------------------------------------------
# PlayheadSnapper
# ---------------------------------------------------------------------------


@pytest.fixture()
def beat_state() -> BeatState:
    state = BeatState()
    state.set_manual_bpm(120.0, 10.0)
    return state


class TestPlayheadSnapper:
    def test_click_snaps_playhead(self, beat_state, playback):
        playhead = PlayheadSnapper(playback, SnapResolver(beat_state))
        assert playhead.click(1.2) == 1.0
        playback.set_playhead_position_in_seconds.assert_called_once_with(1.0)

    def test_click_unsnapped_when_disabled(self, beat_state, playback):
        beat_state.set_snap_enabled(False)
        playhead = PlayheadSnapper(playback, SnapResolver(beat_state))
        assert playhead.click(1.2) == 1.2

    def test_click_never_negative(self, playback):
        playhead = PlayheadSnapper(playback, SnapResolver(BeatState(snap_enabled=False)))
        assert playhead.click(-3.0) == 0.0
        playback.set_playhead_position_in_seconds.assert_called_once_with(0.0)

    def test_loop_bounds_snapped_and_ordered(self, beat_state, playback):
        playhead = PlayheadSnapper(playback, SnapResolver(beat_state))
        assert playhead.set_loop_bounds(2.9, 0.8) == (1.0, 3.0)
        assert playback.mock_calls == [call.set_loop_start(1.0), call.set_loop_end(3.0)]
