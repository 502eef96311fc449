"""
Speech recognition adapter.

This module sits between the orchestrator and the recognition engines.
Each segment is exported to its own uniquely named temporary WAV file,
handed to the engine, and the file is removed again whatever the outcome.
Engine failures never escape :meth:`Recognizer.recognize`; they come back
as :class:`~audioscribe.types.RecognitionResult` values so that one bad
segment does not stop the rest of the run.

Usage::

    from audioscribe.stt_service import Recognizer

    recognizer = Recognizer.for_engine(EngineId.LOCAL, Settings.from_env())
    results = recognizer.recognize_all(segments, max_workers=4)
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from concurrent.futures import ThreadPoolExecutor
from typing import Iterator, List, Optional, Sequence

from .audio_processor import cleanup_temp_file
from .config import Settings
from .engines import RecognitionEngine, build_engine
from .errors import EngineConfigurationError, EngineFailure
from .types import AudioSegment, EngineId, RecognitionResult

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def temporary_wav(segment: AudioSegment, *, directory: Optional[str] = None) -> Iterator[str]:
    """Export ``segment`` to a temporary WAV file and remove it on exit."""
    fd, tmp_path = tempfile.mkstemp(prefix=f"segment_{segment.index:04d}_", suffix=".wav", dir=directory)
    os.close(fd)
    try:
        segment.audio.export(tmp_path, format="wav").close()
        yield tmp_path
    finally:
        cleanup_temp_file(tmp_path)


class Recognizer:
    """Recognition context for a single run."""

    def __init__(self, engine: RecognitionEngine, *, temp_dir: Optional[str] = None):
        self.engine = engine
        self.temp_dir = temp_dir

    @classmethod
    def for_engine(cls, engine_id: EngineId, settings: Optional[Settings] = None, **kwargs) -> "Recognizer":
        return cls(build_engine(engine_id, settings or Settings.from_env()), **kwargs)

    @property
    def engine_id(self) -> EngineId:
        return self.engine.engine_id

    def recognize(self, segment: AudioSegment) -> RecognitionResult:
        """Recognise one segment and classify the outcome."""
        problem = self.engine.configuration_problem()
        if problem:
            logger.warning("Segment %d skipped: %s", segment.index, problem)
            return RecognitionResult.configuration_error(problem)

        try:
            with temporary_wav(segment, directory=self.temp_dir) as wav_path:
                text = self.engine.transcribe_file(wav_path)
        except EngineConfigurationError as exc:
            logger.warning("Segment %d skipped: %s", segment.index, exc)
            return RecognitionResult.configuration_error(str(exc))
        except (EngineFailure, OSError) as exc:
            logger.error("Segment %d failed: %s", segment.index, exc)
            return RecognitionResult.engine_error(str(exc))

        if not text or not text.strip():
            logger.info("Segment %d: could not make out any speech", segment.index)
            return RecognitionResult.inaudible()
        logger.info("Segment %d: %d characters recognised", segment.index, len(text))
        return RecognitionResult.recognized(text)

    def recognize_all(self, segments: Sequence[AudioSegment], max_workers: int = 1) -> List[RecognitionResult]:
        """Recognise ``segments`` and return results in segment order."""
        if max_workers <= 1 or len(segments) <= 1:
            return [self.recognize(s) for s in segments]
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(self.recognize, segments))
