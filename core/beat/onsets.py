"""
core/beat/onsets.py — Amplitude peak picking on a mono signal.

Design:
    - Pure: numpy array + sr → tuple[Peak, ...]. No librosa dependency.
    - Candidate peaks are found in one vectorised pass (threshold and
      strict local maximum); the 50 ms debounce is a sequential filter
      over the candidates, as it depends on the last accepted peak.
"""

from __future__ import annotations

import math

import numpy as np

from core.beat.config import DEFAULT_DETECTION_CONFIG, BeatDetectionConfig
from core.beat.types import DecodedAudioBuffer, Peak


def _candidate_indices(y: np.ndarray, threshold: float) -> np.ndarray:
    """Indices of interior samples above threshold and above both neighbours."""
    mid = y[1:-1]
    is_peak = (mid > threshold) & (mid > y[:-2]) & (mid > y[2:])
    return np.flatnonzero(is_peak) + 1  # +1 because mid starts at sample 1


def detect_peaks(
    y: np.ndarray,
    sr: int,
    *,
    config: BeatDetectionConfig = DEFAULT_DETECTION_CONFIG,
) -> tuple[Peak, ...]:
    """Find amplitude peaks in a mono signal.

    A sample is a peak when it exceeds ``config.peak_threshold`` and is
    strictly greater than both neighbours. Peaks closer than
    ``config.min_peak_gap_sec`` to the previously accepted peak are dropped.

    Args:
        y:      Mono 1-D audio array.
        sr:     Sample rate in Hz.
        config: Detection parameters.

    Returns:
        Peaks in time order. Empty for silence, fewer than three samples,
        or a non-positive sample rate.
    """
    y = np.asarray(y, dtype=np.float64).ravel()
    if sr <= 0 or y.size < 3:
        return ()

    candidates = _candidate_indices(y, config.peak_threshold)
    if candidates.size == 0:
        return ()

    # Debounce in whole samples so 50 ms at 1 kHz is exactly 50 samples
    min_gap = math.ceil(config.min_peak_gap_sec * sr - 1e-9)
    peaks: list[Peak] = []
    last_idx: int | None = None
    for idx in candidates:
        if last_idx is not None and idx - last_idx < min_gap:
            continue
        peaks.append(Peak(time=int(idx) / float(sr), energy=float(y[idx])))
        last_idx = int(idx)
    return tuple(peaks)


def detect_buffer_peaks(
    buffer: DecodedAudioBuffer,
    *,
    config: BeatDetectionConfig = DEFAULT_DETECTION_CONFIG,
) -> tuple[Peak, ...]:
    """Run ``detect_peaks`` on the mono mixdown of a decoded buffer."""
    return detect_peaks(buffer.mono(), buffer.sample_rate, config=config)
