#!/usr/bin/env python
"""Detect the beat grid of an audio file and print it.

Usage
-----
    # Detected grid as a table
    python scripts/detect_beats.py loops/break.wav

    # Machine-readable output
    python scripts/detect_beats.py loops/break.wav --json

    # Lower the peak threshold for quiet material
    python scripts/detect_beats.py loops/pad.wav --threshold 0.2

    # Skip detection, lay a rigid grid at a manual tempo
    python scripts/detect_beats.py loops/break.wav --bpm 124

Exit codes
----------
    0  — grid printed (possibly the default empty grid)
    2  — the file could not be fetched or decoded
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.beat.config import BeatDetectionConfig  # noqa: E402
from core.beat.state import BeatState  # noqa: E402
from core.beat.types import BeatGrid  # noqa: E402
from ingestion.audio_loader import load_audio  # noqa: E402
from ingestion.beat_detection import BeatDetectionRunner  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger("detect_beats")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Beat grid detection")
    parser.add_argument("path", type=Path, help="Audio file to analyse")
    parser.add_argument(
        "--bpm",
        type=float,
        default=None,
        help="Manual tempo; lays a rigid grid instead of detecting",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Peak amplitude threshold (default: BEAT_PEAK_THRESHOLD or 0.5)",
    )
    parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args()


def _render(grid: BeatGrid, as_json: bool) -> str:
    if as_json:
        return json.dumps(
            {"averageBpm": grid.average_bpm, "beatTimestamps": list(grid.beat_timestamps)},
            indent=2,
        )
    lines = [f"BPM: {grid.average_bpm:.2f}", f"Beats: {len(grid)}"]
    lines += [f"  {i + 1:4d}  {t:9.4f}s" for i, t in enumerate(grid.beat_timestamps)]
    return "\n".join(lines)


async def _detect(args: argparse.Namespace) -> BeatGrid | None:
    config = BeatDetectionConfig.from_env()
    if args.threshold is not None:
        config = replace(config, peak_threshold=args.threshold)

    state = BeatState()
    if args.bpm is not None:
        try:
            buffer = load_audio(args.path)
        except (FileNotFoundError, ValueError, RuntimeError) as exc:
            logger.error("%s", exc)
            return None
        return state.set_manual_bpm(args.bpm, buffer.duration).grid

    runner = BeatDetectionRunner(state, config=config)
    return await runner.detect_path(args.path)


def main() -> int:
    args = _parse_args()
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    grid = asyncio.run(_detect(args))
    if grid is None:
        return 2
    print(_render(grid, args.json))
    return 0


if __name__ == "__main__":
    sys.exit(main())
