"""Exception hierarchy for the beat engine.

Only caller-integration misuse fails fast (``BeatContextError``,
``DragContextError``). ``InsufficientSignalError`` is raised by the tempo
estimator and always caught inside ``detect_beat_grid``, which degrades to
the default grid.
"""

from __future__ import annotations


class BeatEngineError(Exception):
    """Base class for all beat engine errors."""


class InsufficientSignalError(BeatEngineError):
    """Raised when too few peaks were detected to estimate a tempo.

    Args:
        found: Number of peaks detected.
        required: Minimum number of peaks needed.
    """

    def __init__(self, found: int, required: int) -> None:
        """Initialize with detected and required peak counts."""
        self.found = found
        self.required = required
        super().__init__(f"Need at least {required} peaks to estimate tempo, got {found}")


class BeatContextError(BeatEngineError):
    """Raised when snapping is requested without a beat state to snap against."""


class DragContextError(BeatEngineError):
    """Raised when a drag starts without a usable mode or crop range."""
