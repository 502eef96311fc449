"""
Orchestration layer for the transcription pipeline.

:func:`transcribe` drives one audio file through the whole pipeline:

* normalise the input to a 16 kHz mono waveform,
* split it on sustained silence (or treat it as one piece when chunking
  is off),
* recognise every segment with the selected engine,
* join the usable texts into the transcript, and
* write the report and JSON record.

Only input errors (missing file, unsupported extension) abort the run,
and they do so before any recognition work or output happens.  Failed and
inaudible segments are logged and left out of the transcript.
"""

from __future__ import annotations

import enum
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Union

from . import audio_processor, result_writer, segmenter
from .config import Settings
from .stt_service import Recognizer
from .types import AudioSource, RecognitionResult, TranscribeOptions, TranscriptionRun

logger = logging.getLogger(__name__)

TRANSCRIPT_SUFFIX = ".txt"


class RunState(str, enum.Enum):
    START = "start"
    NORMALIZED = "normalized"
    SEGMENTED = "segmented"
    RECOGNIZING = "recognizing"
    AGGREGATED = "aggregated"
    WRITTEN = "written"
    DONE = "done"


def default_output_path(source: AudioSource) -> Path:
    """Return the report path used when none is given: the source with ``.txt``."""
    return source.path.with_suffix(TRANSCRIPT_SUFFIX)


def aggregate(results: Iterable[RecognitionResult]) -> List[str]:
    """Return the transcript texts from ``results`` in order.

    Inaudible, failed and blank results are dropped.
    """
    return [r.text.strip() for r in results if r.transcribable]


def _log_state(state: RunState, source: AudioSource) -> None:
    logger.info("[%s] %s", state.value, source.path)


def transcribe(
    source: Union[AudioSource, str, Path],
    options: Optional[TranscribeOptions] = None,
    *,
    settings: Optional[Settings] = None,
    recognizer: Optional[Recognizer] = None,
) -> TranscriptionRun:
    """Transcribe one audio file end to end.

    Args:
        source: The input audio, or a path to it.
        options: Run options; defaults to :class:`TranscribeOptions`.
        settings: Environment settings; read from the environment if omitted.
        recognizer: A prebuilt recognition context.  Built from
            ``options.engine`` when omitted.

    Returns:
        The finalised :class:`TranscriptionRun`, already written to disk.

    Raises:
        AudioNotFoundError: The input file does not exist.
        UnsupportedFormatError: The input extension is not supported.
        ResultWriteError: The report or record could not be written.
    """
    if not isinstance(source, AudioSource):
        source = AudioSource.from_path(source)
    options = options or TranscribeOptions()
    started = time.perf_counter()
    _log_state(RunState.START, source)

    canonical = audio_processor.normalize(source)
    try:
        _log_state(RunState.NORMALIZED, source)
        if options.chunked:
            segments = segmenter.segment(canonical, options.min_silence_ms, options.keep_silence_ms)
            _log_state(RunState.SEGMENTED, source)
        else:
            segments = segmenter.whole(canonical)

        if recognizer is None:
            recognizer = Recognizer.for_engine(options.engine, settings or Settings.from_env())
        _log_state(RunState.RECOGNIZING, source)
        logger.info("Recognising %d segment(s) with the %s engine", len(segments), recognizer.engine_id.value)
        results = recognizer.recognize_all(segments, max_workers=options.max_workers)
    finally:
        audio_processor.release(canonical)

    texts = aggregate(results)
    failed = sum(1 for r in results if r.failed)
    _log_state(RunState.AGGREGATED, source)
    if failed:
        logger.warning("%d of %d segment(s) failed and were left out", failed, len(results))

    run = TranscriptionRun(
        transcript=" ".join(texts),
        audio_file=str(source.path),
        engine=recognizer.engine_id,
        chunks_processed=len(texts),
        processing_time_seconds=round(time.perf_counter() - started, 3),
        timestamp=datetime.now(),
        segments_total=len(results),
        segments_failed=failed,
    )

    result_writer.write(run, options.output_path or default_output_path(source))
    _log_state(RunState.WRITTEN, source)
    _log_state(RunState.DONE, source)
    return run
