"""
Configuration dataclasses for beat detection and edge dragging.

These immutable config objects keep tuning constants out of function
signatures. Standard configurations are defined at the bottom of the
module; ``from_env()`` builds one from ``BEAT_*`` / ``DRAG_*`` variables
(``.env`` files are honoured via python-dotenv).
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class BeatDetectionConfig:
    """
    Configuration for onset detection, tempo estimation and grid building.

    Attributes:
        peak_threshold: Minimum sample amplitude for a local maximum to be
            considered a peak. Defaults to 0.5.
        min_peak_gap_sec: Debounce window. A peak closer than this to the
            previously accepted one is dropped. Defaults to 50 ms.
        min_peaks: Peaks required before a tempo is estimated. Defaults to 10.
        bpm_low: Lower bound of the canonical tempo octave. Defaults to 70.
        bpm_high: Upper bound of the canonical tempo octave. Defaults to 180.
        acceptance_ratio: A later peak joins the grid only when it is more
            than ``acceptance_ratio × beat interval`` after the last grid
            entry. Defaults to 0.6 (tolerates ~40% timing jitter).
        timestamp_decimals: Rounding applied before deduplication.
        default_bpm: Tempo reported when detection degrades.
        max_manual_bpm: Largest tempo accepted from manual entry. Defaults to 999.
        max_rigid_beats: Longest rigid grid built from a manual tempo; a
            longer one yields an empty grid. Defaults to 1,000,000.

    Example:
        >>> config = BeatDetectionConfig(peak_threshold=0.3)
        >>> grid = detect_beat_grid(buffer, config=config)
    """

    peak_threshold: float = 0.5
    min_peak_gap_sec: float = 0.05
    min_peaks: int = 10
    bpm_low: float = 70.0
    bpm_high: float = 180.0
    acceptance_ratio: float = 0.6
    timestamp_decimals: int = 4
    default_bpm: float = 120.0
    max_manual_bpm: float = 999.0
    max_rigid_beats: int = 1_000_000

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.min_peak_gap_sec < 0:
            raise ValueError(f"min_peak_gap_sec must be non-negative, got {self.min_peak_gap_sec}")
        if self.min_peaks < 2:
            raise ValueError(f"min_peaks must be at least 2, got {self.min_peaks}")
        if self.bpm_low <= 0:
            raise ValueError(f"bpm_low must be positive, got {self.bpm_low}")
        if self.bpm_high < 2 * self.bpm_low:
            raise ValueError(
                f"bpm_high ({self.bpm_high}) must be at least twice bpm_low ({self.bpm_low}) "
                "so every tempo has an octave inside the range"
            )
        if not 0 < self.acceptance_ratio < 1:
            raise ValueError(f"acceptance_ratio must be in (0, 1), got {self.acceptance_ratio}")
        if self.timestamp_decimals < 0:
            raise ValueError(
                f"timestamp_decimals must be non-negative, got {self.timestamp_decimals}"
            )
        if self.default_bpm <= 0:
            raise ValueError(f"default_bpm must be positive, got {self.default_bpm}")
        if self.max_manual_bpm <= 0:
            raise ValueError(f"max_manual_bpm must be positive, got {self.max_manual_bpm}")
        if self.max_rigid_beats < 1:
            raise ValueError(f"max_rigid_beats must be at least 1, got {self.max_rigid_beats}")

    @classmethod
    def from_env(cls) -> BeatDetectionConfig:
        """Build a config from ``BEAT_*`` environment variables."""
        load_dotenv()
        return cls(
            peak_threshold=_env_float("BEAT_PEAK_THRESHOLD", cls.peak_threshold),
            min_peak_gap_sec=_env_float("BEAT_MIN_PEAK_GAP_SEC", cls.min_peak_gap_sec),
            min_peaks=int(_env_float("BEAT_MIN_PEAKS", cls.min_peaks)),
            acceptance_ratio=_env_float("BEAT_ACCEPTANCE_RATIO", cls.acceptance_ratio),
            max_manual_bpm=_env_float("BEAT_MAX_MANUAL_BPM", cls.max_manual_bpm),
        )


@dataclass(frozen=True)
class DragConfig:
    """
    Configuration for the edge drag controller.

    Attributes:
        precision_factor: Scale applied to pointer movement while the
            precision modifier is held. Defaults to 0.15.
        min_context_length: Smallest context window in seconds. Defaults to 1.
        min_crop_length: Smallest crop range in seconds. Keeps start < end.
        precision_key: Key name that toggles the precision modifier.
    """

    precision_factor: float = 0.15
    min_context_length: float = 1.0
    min_crop_length: float = 0.05
    precision_key: str = "Shift"

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not 0 < self.precision_factor <= 1:
            raise ValueError(f"precision_factor must be in (0, 1], got {self.precision_factor}")
        if self.min_context_length <= 0:
            raise ValueError(
                f"min_context_length must be positive, got {self.min_context_length}"
            )
        if self.min_crop_length <= 0:
            raise ValueError(f"min_crop_length must be positive, got {self.min_crop_length}")

    @classmethod
    def from_env(cls) -> DragConfig:
        """Build a config from ``DRAG_*`` environment variables."""
        load_dotenv()
        return cls(
            precision_factor=_env_float("DRAG_PRECISION_FACTOR", cls.precision_factor),
            min_context_length=_env_float("DRAG_MIN_CONTEXT_LENGTH", cls.min_context_length),
            min_crop_length=_env_float("DRAG_MIN_CROP_LENGTH", cls.min_crop_length),
            precision_key=os.environ.get("DRAG_PRECISION_KEY", cls.precision_key),
        )


DEFAULT_DETECTION_CONFIG = BeatDetectionConfig()
"""Default detection: 0.5 threshold, 50 ms debounce, 10 peaks, [70, 180) BPM."""

DEFAULT_DRAG_CONFIG = DragConfig()
"""Default dragging: 0.15 precision factor, 1 s minimum context."""
