"""
Shared fixtures for the test suite.

Centralizes the synthetic audio builders and collaborator fakes so
individual test files don't need to repeat them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from unittest.mock import MagicMock

import numpy as np
import pytest

from core.beat.types import CropRange, DecodedAudioBuffer, LoadedSample, Mode

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SR: int = 1000
"""Low sample rate keeps synthetic buffers tiny; 1 sample = 1 ms."""


# ---------------------------------------------------------------------------
# Synthetic audio
# ---------------------------------------------------------------------------


def click_train(
    times: list[float] | tuple[float, ...],
    *,
    duration: float,
    sr: int = SR,
    amplitude: float = 1.0,
) -> np.ndarray:
    """Silence with a single-sample click at each time in ``times``."""
    y = np.zeros(int(round(duration * sr)), dtype=np.float32)
    for t in times:
        y[int(round(t * sr))] = amplitude
    return y


def click_buffer(
    times: list[float] | tuple[float, ...],
    *,
    duration: float,
    sr: int = SR,
    amplitude: float = 1.0,
) -> DecodedAudioBuffer:
    """DecodedAudioBuffer holding a mono click train."""
    return DecodedAudioBuffer.from_array(
        click_train(times, duration=duration, sr=sr, amplitude=amplitude), sr
    )


def evenly_spaced(start: float, step: float, count: int) -> list[float]:
    """``count`` times from ``start`` every ``step`` seconds (rounded to 1 ms)."""
    return [round(start + i * step, 3) for i in range(count)]


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------


@dataclass
class FakeOrchestrator:
    """In-memory application store for crop range, context length and mode."""

    crop_range: list[float] | None = field(default_factory=lambda: [4.0, 8.0])
    context_length: float = 2.0
    mode: Mode | None = Mode.PRECEDE
    crop_writes: list[list[float]] = field(default_factory=list)
    context_writes: list[float] = field(default_factory=list)

    def get_crop_range(self) -> list[float] | None:
        return None if self.crop_range is None else list(self.crop_range)

    def set_crop_range(self, crop_range: list[float]) -> None:
        self.crop_range = list(crop_range)
        self.crop_writes.append(list(crop_range))

    def get_context_length(self) -> float:
        return self.context_length

    def set_context_length(self, seconds: float) -> None:
        self.context_length = seconds
        self.context_writes.append(seconds)

    def get_mode(self) -> Mode | None:
        return self.mode

    @property
    def crop(self) -> CropRange:
        return CropRange.of(self.crop_range)


@dataclass
class FakeTimeline:
    """Timeline model with a loaded sample and adjustable trims."""

    duration: float = 20.0
    trim_start: float = 0.0
    trim_end: float = 0.0
    loaded: bool = True

    def get_trim_start(self) -> float:
        return self.trim_start

    def set_trim_start(self, seconds: float) -> None:
        self.trim_start = seconds

    def get_trim_end(self) -> float:
        return self.trim_end

    def set_trim_end(self, seconds: float) -> None:
        self.trim_end = seconds

    def get_clip_group(self) -> object:
        return None

    def get_loaded_sample(self) -> LoadedSample | None:
        if not self.loaded:
            return None
        return LoadedSample(
            duration=self.duration, start_trim=self.trim_start, stop_trim=self.trim_end
        )


@pytest.fixture()
def orchestrator() -> FakeOrchestrator:
    return FakeOrchestrator()


@pytest.fixture()
def timeline() -> FakeTimeline:
    return FakeTimeline()


@pytest.fixture()
def capture() -> MagicMock:
    """Pointer capture double with ``acquire`` / ``release``."""
    return MagicMock()


@pytest.fixture()
def playback() -> MagicMock:
    """Playback engine double."""
    return MagicMock()
