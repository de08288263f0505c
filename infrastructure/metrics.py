"""Prometheus metrics for the beat timeline engine.

Metrics:
    beat_detections_total      Counter by outcome (detected/default/stale/fetch_failed)
    beat_detection_seconds     Histogram of detection wall-clock time
    beat_grid_size             Gauge with the number of beats in the current grid
    drag_commits_total         Counter of committed drags by edge and mode

All metrics live in a private registry so importing this module never
touches the global default registry.

Usage::

    from infrastructure.metrics import LatencyTimer, record_detection

    with LatencyTimer() as t:
        grid = detect_beat_grid(buffer)
    record_detection(outcome="detected", latency_seconds=t.elapsed, beats=len(grid))
"""

from __future__ import annotations

import time

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

beat_detections_total = Counter(
    "beat_detections_total",
    "Beat detection runs by outcome",
    ["outcome"],
    registry=REGISTRY,
)

beat_detection_seconds = Histogram(
    "beat_detection_seconds",
    "Wall-clock time of one detection pass in seconds",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
    registry=REGISTRY,
)

beat_grid_size = Gauge(
    "beat_grid_size",
    "Number of beats in the most recently applied grid",
    registry=REGISTRY,
)

drag_commits_total = Counter(
    "drag_commits_total",
    "Committed edge drags by edge and mode",
    ["edge", "mode"],
    registry=REGISTRY,
)


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def record_detection(
    *,
    outcome: str,
    latency_seconds: float = 0.0,
    beats: int | None = None,
) -> None:
    """Record a finished detection run.

    Args:
        outcome: One of "detected", "default", "stale", "fetch_failed".
        latency_seconds: Detection wall-clock time in seconds.
        beats: Size of the applied grid, when one was applied.
    """
    beat_detections_total.labels(outcome=outcome).inc()
    if latency_seconds > 0:
        beat_detection_seconds.observe(latency_seconds)
    if beats is not None:
        beat_grid_size.set(beats)


def record_drag_commit(*, edge: str, mode: str) -> None:
    """Increment the committed-drag counter.

    Args:
        edge: Dragged handle ("crop_start", "crop_end", "context").
        mode: Generation mode at pointer-down.
    """
    drag_commits_total.labels(edge=edge, mode=mode).inc()


def get_metrics_response() -> tuple[bytes, str]:
    """Generate Prometheus text exposition format.

    Returns:
        Tuple of (body_bytes, content_type_string).
    """
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST


class LatencyTimer:
    """Context manager for measuring latency.

    Usage::

        with LatencyTimer() as t:
            grid = detect_beat_grid(buffer)
        record_detection(outcome="detected", latency_seconds=t.elapsed)
    """

    def __init__(self) -> None:
        """Initialize timer."""
        self._start: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> LatencyTimer:
        """Start timing."""
        self._start = time.perf_counter()
        return self

    def __exit__(self, *_: object) -> None:
        """Stop timing and record elapsed."""
        self.elapsed = time.perf_counter() - self._start
