"""
ingestion/audio_loader.py — File I/O boundary for audio decoding.

This is the ONLY module in the beat pipeline that reads files from disk.
Everything downstream (core/beat/onsets.py, core/beat/grid.py) takes a
pre-decoded DecodedAudioBuffer, never file paths.

Usage:
    from ingestion.audio_loader import fetch_decoded_buffer, load_audio
    buffer = load_audio("/path/to/track.wav")
    buffer = await fetch_decoded_buffer("/path/to/track.wav")
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import numpy as np

from core.beat.types import DecodedAudioBuffer

# Supported audio file extensions (must be loadable by librosa / soundfile)
AUDIO_EXTENSIONS: frozenset[str] = frozenset(
    {".mp3", ".wav", ".flac", ".aiff", ".aif", ".ogg", ".m4a", ".opus"}
)


def load_audio(
    path: str | Path,
    *,
    duration: float | None = None,
    sr: int | None = None,
) -> DecodedAudioBuffer:
    """Decode an audio file into a DecodedAudioBuffer.

    Channels are kept separate (``mono=False``); the onset detector does
    its own mixdown.

    Args:
        path: Absolute or relative path to an audio file.
              Supported formats: mp3, wav, flac, aiff, ogg, m4a, opus.
        duration: Maximum seconds to load. None loads the whole file,
                  which the beat grid needs to cover the full timeline.
        sr: Target sample rate in Hz. None preserves the native rate.

    Returns:
        DecodedAudioBuffer with one float32 array per channel.

    Raises:
        FileNotFoundError: File does not exist at the given path.
        ValueError: File extension is not a supported audio format.
        RuntimeError: librosa/soundfile could not decode the file
                      (corrupted, truncated, DRM-protected, etc.).
    """
    import librosa  # deferred to allow testing without audio backend

    file_path = Path(path)

    if not file_path.exists():
        raise FileNotFoundError(f"Audio file not found: {file_path}")

    if file_path.suffix.lower() not in AUDIO_EXTENSIONS:
        raise ValueError(
            f"Unsupported audio format {file_path.suffix!r}. "
            f"Supported: {sorted(AUDIO_EXTENSIONS)}"
        )

    try:
        y, loaded_sr = librosa.load(
            file_path,
            sr=sr,
            mono=False,
            duration=duration,
            offset=0.0,
        )
    except Exception as exc:
        raise RuntimeError(
            f"Failed to decode audio file {file_path.name!r}: {exc}"
        ) from exc

    return DecodedAudioBuffer.from_array(np.asarray(y, dtype=np.float32), int(loaded_sr))


async def fetch_decoded_buffer(path: str | Path) -> DecodedAudioBuffer:
    """Decode ``path`` off the event loop.

    Same contract and exceptions as ``load_audio``.
    """
    return await asyncio.to_thread(load_audio, path)
