"""
Collaborator protocols for the timeline editing engine.

The engine never owns crop ranges, trims or playback; it talks to the
application through these contracts. This module is pure: no I/O, no
state. Concrete implementations live in the host application (or in test
doubles).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from core.beat.types import CropRange, LoadedSample, Mode


@runtime_checkable
class CropOrchestrator(Protocol):
    """
    Owner of the crop range, context length and generation mode.
    """

    def get_crop_range(self) -> CropRange | Sequence[float]:
        """Current ``[start, end]`` in source seconds."""
        ...

    def set_crop_range(self, crop_range: list[float]) -> None:
        """Commit a new ``[start, end]``."""
        ...

    def get_context_length(self) -> float:
        """Current context length in seconds."""
        ...

    def set_context_length(self, seconds: float) -> None:
        """Commit a new context length."""
        ...

    def get_mode(self) -> Mode | None:
        """Current generation mode, or None before one is chosen."""
        ...


@runtime_checkable
class TimelineModel(Protocol):
    """
    Timeline model holding trims and the loaded sample.
    """

    def get_trim_start(self) -> float:
        """Seconds trimmed from the start of the source."""
        ...

    def set_trim_start(self, seconds: float) -> None: ...

    def get_trim_end(self) -> float: ...

    def set_trim_end(self, seconds: float) -> None: ...

    def get_clip_group(self) -> Any:
        """Opaque clip group handle (splicing is out of scope)."""
        ...

    def get_loaded_sample(self) -> LoadedSample | dict[str, float] | None:
        """``{duration, startTrim, stopTrim}`` of the loaded sample, or None."""
        ...


@runtime_checkable
class PointerCapture(Protocol):
    """Exclusive pointer capture for the duration of a drag."""

    def acquire(self) -> None: ...

    def release(self) -> None: ...


@runtime_checkable
class PlaybackEngine(Protocol):
    """
    Playback engine setters used by playhead-click snapping.
    """

    def set_playhead_position_in_seconds(self, seconds: float) -> None: ...

    def set_loop_start(self, seconds: float) -> None: ...

    def set_loop_end(self, seconds: float) -> None: ...
