"""
Audio conversion utilities.

This module converts incoming audio files to the canonical waveform the
recognisers and the silence segmenter expect: mono 16-bit PCM, sampled at
16 kHz.  Conversions are performed locally using the `pydub` library which
in turn relies on `ffmpeg` for compressed containers.  WAV input is decoded directly
and conformed in memory without writing a new file.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import pydub

from .errors import AudioNotFoundError, UnsupportedFormatError
from .types import (
    SUPPORTED_EXTENSIONS,
    TARGET_CHANNELS,
    TARGET_SAMPLE_RATE,
    TARGET_SAMPLE_WIDTH,
    AudioSource,
    CanonicalAudio,
)

logger = logging.getLogger(__name__)


def convert_to_wav(input_path: str, *, target_sample_rate: int = TARGET_SAMPLE_RATE) -> str:
    """Convert an audio file to a 16 kHz mono 16-bit WAV file.

    Args:
        input_path: Path to the source audio file.  Supported extensions are
            defined in :data:`SUPPORTED_EXTENSIONS`.
        target_sample_rate: Desired sample rate for the output WAV.

    Returns:
        The path to the converted WAV file.  The file lives in a temporary
        directory and should be cleaned up by the caller.

    Raises:
        UnsupportedFormatError: If the file extension is unsupported.
    """
    ext = Path(input_path).suffix.lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFormatError(f"Unsupported audio type: {ext or '(none)'}")
    audio = pydub.AudioSegment.from_file(input_path)
    audio = (
        audio.set_channels(TARGET_CHANNELS)
        .set_frame_rate(target_sample_rate)
        .set_sample_width(TARGET_SAMPLE_WIDTH)
    )
    fd, tmp_path = tempfile.mkstemp(prefix="canonical_", suffix=".wav")
    os.close(fd)
    try:
        audio.export(tmp_path, format="wav").close()
    except Exception:
        cleanup_temp_file(tmp_path)
        raise
    return tmp_path


def cleanup_temp_file(path: Optional[Union[str, Path]]) -> None:
    """Remove a temporary file if it exists.

    Args:
        path: Path to the temporary file.  Nothing happens if ``path`` is
            ``None`` or the file does not exist.
    """
    if path and os.path.exists(path):
        try:
            os.remove(path)
        except OSError as exc:
            logger.warning("Could not remove temporary file %s: %s", path, exc)


def _conform(audio: pydub.AudioSegment) -> pydub.AudioSegment:
    if audio.channels != TARGET_CHANNELS:
        audio = audio.set_channels(TARGET_CHANNELS)
    if audio.frame_rate != TARGET_SAMPLE_RATE:
        audio = audio.set_frame_rate(TARGET_SAMPLE_RATE)
    if audio.sample_width != TARGET_SAMPLE_WIDTH:
        audio = audio.set_sample_width(TARGET_SAMPLE_WIDTH)
    return audio


def normalize(source: AudioSource) -> CanonicalAudio:
    """Load ``source`` and return its canonical 16 kHz mono waveform.

    WAV files take a fast path: they are decoded directly and conformed in
    memory.  Any other container is converted by :func:`convert_to_wav`
    into a temporary file owned by the returned :class:`CanonicalAudio`.

    Raises:
        AudioNotFoundError: The file does not exist.
        UnsupportedFormatError: The extension is not supported.
    """
    if not source.exists:
        raise AudioNotFoundError(f"Audio file not found: {source.path}")
    if not source.is_supported:
        raise UnsupportedFormatError(f"Unsupported audio type: {source.path.suffix or source.path.name}")

    if source.format == "wav":
        audio = _conform(pydub.AudioSegment.from_wav(str(source.path)))
        logger.info("Loaded %s directly (%d ms)", source.path, len(audio))
        return CanonicalAudio(audio=audio, path=source.path, owns_file=False)

    wav_path = convert_to_wav(str(source.path))
    try:
        audio = pydub.AudioSegment.from_wav(wav_path)
    except Exception:
        cleanup_temp_file(wav_path)
        raise
    logger.info("Converted %s to canonical WAV %s (%d ms)", source.path, wav_path, len(audio))
    return CanonicalAudio(audio=audio, path=Path(wav_path), owns_file=True)


def release(canonical: Optional[CanonicalAudio]) -> None:
    """Delete the canonical WAV if it was created for this run."""
    if canonical is not None and canonical.owns_file:
        cleanup_temp_file(canonical.path)
