"""
Silence based segmentation.

The canonical waveform is split wherever the signal stays at or below a
loudness threshold for at least ``min_silence_ms``.  The threshold is
relative to the overall loudness of the recording, so quiet and loud
recordings split the same way.  Each segment keeps up to
``keep_silence_ms`` of the surrounding silence; when the padding of two
neighbours would overlap, the gap is shared at its midpoint.
"""

from __future__ import annotations

import logging
from typing import List

from pydub.silence import detect_nonsilent

from .types import AudioSegment, CanonicalAudio

logger = logging.getLogger(__name__)

# Empirically tuned; not derived from the signal.
SILENCE_THRESHOLD_OFFSET_DB = 14


def silence_threshold(audio: CanonicalAudio) -> float:
    """Return the dBFS level at or below which audio counts as silence."""
    return audio.audio.dBFS - SILENCE_THRESHOLD_OFFSET_DB


def segment(audio: CanonicalAudio, min_silence_ms: int, keep_silence_ms: int = 500) -> List[AudioSegment]:
    """Split ``audio`` on sustained silence.

    Args:
        audio: Canonical waveform to split.
        min_silence_ms: Minimum length of a silent run that splits the audio.
        keep_silence_ms: Silence retained at each edge of a segment.

    Returns:
        Segments in recording order.  Empty for zero-length audio and for
        audio that is silent throughout.  A single segment spanning the
        input when no silent run qualifies.
    """
    if min_silence_ms <= 0:
        raise ValueError(f"min_silence_ms must be positive, got {min_silence_ms}")
    if keep_silence_ms < 0:
        raise ValueError(f"keep_silence_ms must not be negative, got {keep_silence_ms}")

    total = audio.duration_ms
    if total == 0:
        return []

    threshold = silence_threshold(audio)
    cores = detect_nonsilent(audio.audio, min_silence_len=min_silence_ms, silence_thresh=threshold)
    logger.debug("Silence threshold %.1f dBFS, %d non-silent range(s)", threshold, len(cores))

    bounds = [[start - keep_silence_ms, end + keep_silence_ms] for start, end in cores]
    for current, following in zip(bounds, bounds[1:]):
        if following[0] < current[1]:
            midpoint = (current[1] + following[0]) // 2
            current[1] = midpoint
            following[0] = midpoint

    segments: List[AudioSegment] = []
    for index, ((core_start, core_end), (start, end)) in enumerate(zip(cores, bounds)):
        start = max(start, 0)
        end = min(end, total)
        segments.append(AudioSegment(
            index=index,
            start_ms=start,
            end_ms=end,
            core_start_ms=core_start,
            core_end_ms=core_end,
            audio=audio.audio[start:end],
        ))
    logger.info("Split %d ms of audio into %d segment(s)", total, len(segments))
    return segments


def whole(audio: CanonicalAudio) -> List[AudioSegment]:
    """Treat the whole canonical waveform as a single segment."""
    total = audio.duration_ms
    if total == 0:
        return []
    return [AudioSegment(index=0, start_ms=0, end_ms=total, core_start_ms=0, core_end_ms=total, audio=audio.audio)]
