"""
core/beat — Pure beat-grid and timeline-editing module.

Turns a decoded signal into beat timestamps, snaps times to the nearest
beat and drives crop/context edge drags against that grid. No file I/O:
decoding lives in ingestion/audio_loader.py, async orchestration in
ingestion/beat_detection.py and ingestion/timeline_engine.py.

Public API:
    Types:      BeatGrid, Peak, TempoEstimate, DecodedAudioBuffer,
                CropRange, Mode, DragEdge, DragPreview, DragCommit
    Detection:  detect_peaks, estimate_tempo, correct_octave,
                build_detected_grid, build_rigid_grid, detect_beat_grid
    State:      BeatState
    Snapping:   nearest_beat, snap_time, SnapResolver
    Dragging:   DragController, PrecisionModifier
"""

from core.beat.config import BeatDetectionConfig, DragConfig
from core.beat.drag import DragController, DragState, PrecisionModifier
from core.beat.errors import (
    BeatContextError,
    BeatEngineError,
    DragContextError,
    InsufficientSignalError,
)
from core.beat.grid import build_detected_grid, build_rigid_grid, detect_beat_grid
from core.beat.onsets import detect_peaks
from core.beat.snap import SnapResolver, nearest_beat, snap_time
from core.beat.state import BeatState, BeatStateSnapshot
from core.beat.tempo import correct_octave, estimate_tempo
from core.beat.types import (
    BeatGrid,
    CropRange,
    DecodedAudioBuffer,
    DragCommit,
    DragEdge,
    DragPreview,
    Mode,
    Peak,
    TempoEstimate,
)

__all__ = [
    "BeatContextError",
    "BeatDetectionConfig",
    "BeatEngineError",
    "BeatGrid",
    "BeatState",
    "BeatStateSnapshot",
    "CropRange",
    "DecodedAudioBuffer",
    "DragCommit",
    "DragConfig",
    "DragContextError",
    "DragController",
    "DragEdge",
    "DragPreview",
    "DragState",
    "InsufficientSignalError",
    "Mode",
    "Peak",
    "PrecisionModifier",
    "SnapResolver",
    "TempoEstimate",
    "build_detected_grid",
    "build_rigid_grid",
    "correct_octave",
    "detect_beat_grid",
    "detect_peaks",
    "estimate_tempo",
    "nearest_beat",
    "snap_time",
]
