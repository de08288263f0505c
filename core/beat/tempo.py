"""
core/beat/tempo.py — Tempo estimation from peak spacing.

The representative beat interval is the lower median of the consecutive
inter-peak intervals. The median ignores the occasional missed or extra
peak that would drag a mean off. BPM = 60 / interval.

Octave correction:
    Peak trains often hit every half-beat or every second beat. The raw
    tempo is folded by powers of two into [bpm_low, bpm_high] so the same
    track always reports the same canonical BPM:

        45  → 90      (doubled once)
        240 → 120     (halved once)
        120 → 120     (untouched)
"""

from __future__ import annotations

import statistics
from collections.abc import Sequence

from core.beat.config import DEFAULT_DETECTION_CONFIG, BeatDetectionConfig
from core.beat.errors import InsufficientSignalError
from core.beat.types import Peak, TempoEstimate


def correct_octave(bpm: float, *, low: float = 70.0, high: float = 180.0) -> float:
    """Fold a tempo into [low, high] by doubling or halving.

    Args:
        bpm:  Raw tempo. Must be positive.
        low:  Double while below this.
        high: Halve while above this.

    Returns:
        ``bpm * 2**k`` for the integer k that lands the value in range.

    Raises:
        ValueError: If bpm is not positive.
    """
    if not bpm > 0:
        raise ValueError(f"bpm must be positive, got {bpm}")
    while bpm < low:
        bpm *= 2.0
    while bpm > high:
        bpm /= 2.0
    return bpm


def median_interval(times: Sequence[float]) -> float:
    """Lower median of the consecutive differences of ``times``."""
    intervals = sorted(b - a for a, b in zip(times, times[1:]))
    return statistics.median_low(intervals)


def estimate_tempo(
    peaks: Sequence[Peak],
    *,
    config: BeatDetectionConfig = DEFAULT_DETECTION_CONFIG,
) -> TempoEstimate:
    """Estimate a canonical tempo from detected peaks.

    Args:
        peaks:  Time-ordered peaks from ``detect_peaks``.
        config: Detection parameters (minimum peak count, octave range).

    Returns:
        TempoEstimate with raw and octave-corrected BPM.

    Raises:
        InsufficientSignalError: Fewer than ``config.min_peaks`` peaks, or
            the peaks carry no usable spacing.
    """
    if len(peaks) < config.min_peaks:
        raise InsufficientSignalError(len(peaks), config.min_peaks)

    interval = median_interval([p.time for p in peaks])
    if interval <= 0:
        raise InsufficientSignalError(len(peaks), config.min_peaks)

    raw_bpm = 60.0 / interval
    bpm = correct_octave(raw_bpm, low=config.bpm_low, high=config.bpm_high)
    return TempoEstimate(raw_bpm=raw_bpm, bpm=bpm, interval=interval)
