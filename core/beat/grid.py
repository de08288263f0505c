"""
core/beat/grid.py — Beat grid construction.

Two paths produce a BeatGrid:

    detected  buffer → detect_peaks() → estimate_tempo() → build_detected_grid()
    rigid     manual BPM + duration → build_rigid_grid()

Both return a fresh immutable grid; BeatState swaps it in wholesale.
Degenerate inputs yield an empty grid rather than an error; an empty grid
simply means snapping is unavailable.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

from core.beat.config import DEFAULT_DETECTION_CONFIG, BeatDetectionConfig
from core.beat.errors import InsufficientSignalError
from core.beat.onsets import detect_buffer_peaks
from core.beat.tempo import estimate_tempo
from core.beat.types import DEFAULT_BPM, BeatGrid, DecodedAudioBuffer, Peak


def normalize_timestamps(times: Iterable[float], decimals: int = 4) -> tuple[float, ...]:
    """Round to ``decimals``, drop duplicates, sort ascending."""
    return tuple(sorted({round(float(t), decimals) for t in times}))


# ---------------------------------------------------------------------------
# Detected path
# ---------------------------------------------------------------------------


def build_detected_grid(
    peaks: Sequence[Peak],
    bpm: float,
    *,
    config: BeatDetectionConfig = DEFAULT_DETECTION_CONFIG,
) -> BeatGrid:
    """Filter peaks against the beat interval implied by ``bpm``.

    The first peak is always kept. A later peak joins the grid only when it
    lies more than ``acceptance_ratio × (60 / bpm)`` after the last accepted
    timestamp, which rejects sub-beat peaks while tolerating timing jitter.

    Args:
        peaks:  Time-ordered peaks.
        bpm:    Octave-corrected tempo (positive).
        config: Detection parameters.

    Returns:
        BeatGrid with ``average_bpm`` rounded to two decimals. Empty grid
        when there are no peaks or ``bpm`` is not positive.
    """
    if not peaks or not bpm > 0:
        return BeatGrid(beat_timestamps=(), average_bpm=bpm if bpm > 0 else DEFAULT_BPM)

    min_gap = config.acceptance_ratio * (60.0 / bpm)
    accepted: list[float] = [peaks[0].time]
    for peak in peaks[1:]:
        if peak.time - accepted[-1] > min_gap:
            accepted.append(peak.time)

    return BeatGrid(
        beat_timestamps=normalize_timestamps(accepted, config.timestamp_decimals),
        average_bpm=round(bpm, 2),
    )


def detect_beat_grid(
    buffer: DecodedAudioBuffer,
    *,
    config: BeatDetectionConfig = DEFAULT_DETECTION_CONFIG,
) -> BeatGrid:
    """Build a beat grid from a decoded buffer.

    Composes onset detection, tempo estimation and the detected-path
    builder. Synchronous and pure; callers decide where it runs.

    Args:
        buffer: Decoded audio. Channels are mixed down to mono.
        config: Detection parameters.

    Returns:
        The detected grid, or ``BeatGrid.default()`` (120 BPM, no beats)
        when the signal has too few peaks.
    """
    peaks = detect_buffer_peaks(buffer, config=config)
    try:
        tempo = estimate_tempo(peaks, config=config)
    except InsufficientSignalError:
        return BeatGrid(beat_timestamps=(), average_bpm=config.default_bpm)

    return build_detected_grid(peaks, tempo.bpm, config=config)


# ---------------------------------------------------------------------------
# Rigid path
# ---------------------------------------------------------------------------


def build_rigid_grid(
    bpm: float,
    duration: float,
    *,
    config: BeatDetectionConfig = DEFAULT_DETECTION_CONFIG,
) -> BeatGrid:
    """Lay an evenly spaced grid from a manual tempo.

    Emits ``0, 60/bpm, 120/bpm, …`` rounded to ``timestamp_decimals`` while
    the rounded value is below ``duration``; the grid has
    ``ceil(duration × bpm / 60)`` entries.

    Args:
        bpm:      Manual tempo.
        duration: Track length in seconds.
        config:   Supplies rounding and the beat-count cap.

    Returns:
        BeatGrid with ``average_bpm = bpm``. Empty when either argument is
        non-positive or non-finite (``average_bpm`` then falls back to the
        default unless ``bpm`` itself is usable), when the beat interval is
        finer than the timestamp resolution, or when the grid would exceed
        ``max_rigid_beats`` entries.
    """
    bpm_ok = math.isfinite(bpm) and bpm > 0
    if not bpm_ok or not (math.isfinite(duration) and duration > 0):
        return BeatGrid(beat_timestamps=(), average_bpm=float(bpm) if bpm_ok else DEFAULT_BPM)

    decimals = config.timestamp_decimals
    interval = 60.0 / bpm
    if interval < 10.0**-decimals or duration / interval > config.max_rigid_beats:
        return BeatGrid(beat_timestamps=(), average_bpm=float(bpm))

    timestamps: list[float] = []
    k = 0
    t = 0.0
    while t < duration:
        timestamps.append(t)
        k += 1
        t = round(k * interval, decimals)
    return BeatGrid(
        beat_timestamps=normalize_timestamps(timestamps, decimals), average_bpm=float(bpm)
    )
