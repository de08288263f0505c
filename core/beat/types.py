"""
core/beat/types.py — Value types for beat grids and timeline editing.

All result types are frozen dataclasses: immutable value objects that
can be swapped atomically into BeatState and handed to any reader without
copying.

Design principles:
    - No I/O, no state, no side effects.
    - Times are seconds (float). Source-relative unless a name says
      "timeline".
    - BeatGrid.beat_timestamps is a tuple so a grid is hashable and can
      never be mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np

DEFAULT_BPM: float = 120.0
"""Tempo reported when no grid could be detected."""


# ---------------------------------------------------------------------------
# Audio handoff
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DecodedAudioBuffer:
    """A decoded audio signal delivered by the loader.

    Invariants:
        sample_rate > 0
        every channel has the same length
    """

    channels: tuple[np.ndarray, ...]
    """One 1-D float array per channel."""

    sample_rate: int
    """Sample rate in Hz."""

    duration: float
    """Length in seconds."""

    @property
    def num_channels(self) -> int:
        return len(self.channels)

    def mono(self) -> np.ndarray:
        """Mix channels down to a single 1-D float array (mean across channels)."""
        if not self.channels:
            return np.zeros(0, dtype=np.float32)
        if len(self.channels) == 1:
            return np.asarray(self.channels[0], dtype=np.float32)
        return np.mean(np.stack(self.channels, axis=0), axis=0).astype(np.float32)

    @classmethod
    def from_array(cls, y: np.ndarray, sample_rate: int) -> DecodedAudioBuffer:
        """Build a buffer from a mono (N,) or channel-first (C, N) array."""
        arr = np.asarray(y, dtype=np.float32)
        chans = (arr,) if arr.ndim == 1 else tuple(arr[i] for i in range(arr.shape[0]))
        n = chans[0].shape[0] if chans else 0
        duration = n / float(sample_rate) if sample_rate > 0 else 0.0
        return cls(channels=chans, sample_rate=int(sample_rate), duration=duration)


# ---------------------------------------------------------------------------
# Detection results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Peak:
    """A local amplitude maximum found by the onset detector."""

    time: float
    """Position in seconds from the start of the buffer."""

    energy: float
    """Sample amplitude at the peak."""


@dataclass(frozen=True)
class TempoEstimate:
    """Output of the tempo estimator.

    Invariants:
        raw_bpm > 0
        bpm == raw_bpm * 2**k for some integer k
    """

    raw_bpm: float
    """60 / median inter-peak interval, before octave correction."""

    bpm: float
    """Octave-corrected tempo."""

    interval: float
    """Median inter-peak interval in seconds."""


@dataclass(frozen=True)
class BeatGrid:
    """An immutable set of beat positions.

    Invariants:
        beat_timestamps strictly ascending
        average_bpm > 0
    """

    beat_timestamps: tuple[float, ...] = ()
    average_bpm: float = DEFAULT_BPM

    @property
    def is_empty(self) -> bool:
        return not self.beat_timestamps

    def __len__(self) -> int:
        return len(self.beat_timestamps)

    @classmethod
    def default(cls) -> BeatGrid:
        """The grid used before detection and whenever detection degrades."""
        return cls(beat_timestamps=(), average_bpm=DEFAULT_BPM)


# ---------------------------------------------------------------------------
# Timeline editing
# ---------------------------------------------------------------------------


class Mode(Enum):
    """Generation mode; decides where the context window sits."""

    PRECEDE = "precede"
    CONTINUATION = "continuation"
    INPAINT = "inpaint"


class DragEdge(Enum):
    """Handle grabbed by the pointer."""

    CROP_START = "crop_start"
    CROP_END = "crop_end"
    CONTEXT = "context"


@dataclass(frozen=True)
class CropRange:
    """Selected window of source audio, in source seconds.

    Invariants:
        start < end (checked by the drag controller before use)
    """

    start: float
    end: float

    @property
    def length(self) -> float:
        return self.end - self.start

    @property
    def is_valid(self) -> bool:
        return self.start < self.end

    def as_list(self) -> list[float]:
        return [self.start, self.end]

    @classmethod
    def of(cls, value: CropRange | tuple[float, float] | list[float]) -> CropRange:
        """Coerce an orchestrator value (pair or CropRange) into a CropRange."""
        if isinstance(value, CropRange):
            return value
        start, end = value
        return cls(float(start), float(end))


@dataclass(frozen=True)
class LoadedSample:
    """The sample currently loaded on the timeline."""

    duration: float
    """Untrimmed source length in seconds."""

    start_trim: float = 0.0
    stop_trim: float = 0.0

    @classmethod
    def of(cls, value: LoadedSample | dict[str, float]) -> LoadedSample:
        """Coerce a timeline-model value into a LoadedSample.

        Accepts either a LoadedSample or a mapping with ``duration`` and
        optional ``startTrim`` / ``stopTrim`` (or snake_case) keys.
        """
        if isinstance(value, LoadedSample):
            return value
        return cls(
            duration=float(value["duration"]),
            start_trim=float(value.get("startTrim", value.get("start_trim", 0.0))),
            stop_trim=float(value.get("stopTrim", value.get("stop_trim", 0.0))),
        )


@dataclass(frozen=True)
class DragPreview:
    """Crop range and context length as they stand mid-gesture."""

    crop_range: CropRange
    context_length: float


@dataclass(frozen=True)
class DragCommit:
    """Values written to the orchestrator on pointer-up."""

    edge: DragEdge
    mode: Mode
    crop_range: CropRange
    context_length: float
    changed: bool = True
