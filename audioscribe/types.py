"""
Shared dataclasses for the transcription pipeline.

These structures are exchanged between the normaliser, the segmenter, the
recognition adapter and the result writer. Audio payloads are held as
:class:`pydub.AudioSegment` instances; everything else is plain data that
can be serialised to JSON.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


SUPPORTED_EXTENSIONS = {".wav", ".mp3", ".mp4", ".m4a", ".flac", ".ogg", ".aiff"}

TARGET_SAMPLE_RATE = 16_000
TARGET_CHANNELS = 1
TARGET_SAMPLE_WIDTH = 2


class EngineId(str, enum.Enum):
    """The closed set of recognition backends."""

    DEFAULT = "default"
    LOCAL = "local"
    KEYED = "keyed"

    @classmethod
    def parse(cls, value: Union[str, "EngineId", None]) -> "EngineId":
        """Resolve a user supplied engine name.

        Unknown names fall back to :attr:`DEFAULT`.
        """
        if isinstance(value, EngineId):
            return value
        name = (value or "").strip().lower()
        engine = _ENGINE_ALIASES.get(name)
        if engine is None:
            logger.warning("Unknown engine %r; falling back to %s", value, cls.DEFAULT.value)
            return cls.DEFAULT
        return engine


_ENGINE_ALIASES = {
    "default": EngineId.DEFAULT,
    "cloud": EngineId.DEFAULT,
    "google": EngineId.DEFAULT,
    "local": EngineId.LOCAL,
    "whisper": EngineId.LOCAL,
    "keyed": EngineId.KEYED,
    "openai": EngineId.KEYED,
}


@dataclass(frozen=True)
class AudioSource:
    """Reference to an input audio file.

    Args:
        path: Location of the file on disk.
        format: Container format inferred from the extension, without the dot.
    """

    path: Path
    format: str

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "AudioSource":
        p = Path(path)
        return cls(path=p, format=p.suffix.lower().lstrip("."))

    @property
    def exists(self) -> bool:
        return self.path.is_file()

    @property
    def is_supported(self) -> bool:
        return f".{self.format}" in SUPPORTED_EXTENSIONS

    @property
    def is_valid(self) -> bool:
        return self.exists and self.is_supported


@dataclass
class CanonicalAudio:
    """A 16 kHz mono waveform derived from an :class:`AudioSource`.

    ``path`` points at a temporary WAV when ``owns_file`` is true; the
    orchestrator removes it once recognition is finished.
    """

    audio: Any
    path: Optional[Path] = None
    owns_file: bool = False

    @property
    def duration_ms(self) -> int:
        return len(self.audio)

    @property
    def frame_rate(self) -> int:
        return self.audio.frame_rate

    @property
    def channels(self) -> int:
        return self.audio.channels

    @property
    def sample_width(self) -> int:
        return self.audio.sample_width


@dataclass
class AudioSegment:
    """A slice of canonical audio submitted to a recogniser.

    ``start_ms``/``end_ms`` bound the exported audio including the kept
    silence padding; ``core_start_ms``/``core_end_ms`` bound the detected
    non-silent region.
    """

    index: int
    start_ms: int
    end_ms: int
    core_start_ms: int
    core_end_ms: int
    audio: Any = field(repr=False)

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms


class RecognitionStatus(str, enum.Enum):
    TEXT = "text"
    INAUDIBLE = "inaudible"
    ENGINE_ERROR = "engine_error"
    CONFIGURATION_ERROR = "configuration_error"


@dataclass(frozen=True)
class RecognitionResult:
    """Outcome of recognising one segment."""

    status: RecognitionStatus
    text: str = ""
    message: Optional[str] = None

    @classmethod
    def recognized(cls, text: str) -> "RecognitionResult":
        return cls(RecognitionStatus.TEXT, text=text)

    @classmethod
    def inaudible(cls) -> "RecognitionResult":
        return cls(RecognitionStatus.INAUDIBLE)

    @classmethod
    def engine_error(cls, message: str) -> "RecognitionResult":
        return cls(RecognitionStatus.ENGINE_ERROR, message=message)

    @classmethod
    def configuration_error(cls, message: str) -> "RecognitionResult":
        return cls(RecognitionStatus.CONFIGURATION_ERROR, message=message)

    @property
    def failed(self) -> bool:
        return self.status in (RecognitionStatus.ENGINE_ERROR, RecognitionStatus.CONFIGURATION_ERROR)

    @property
    def transcribable(self) -> bool:
        """True when the text belongs in the final transcript."""
        return self.status is RecognitionStatus.TEXT and bool(self.text.strip())


@dataclass(frozen=True)
class TranscribeOptions:
    """Per-run options accepted by :func:`audioscribe.orchestrator.transcribe`."""

    engine: EngineId = EngineId.DEFAULT
    chunked: bool = True
    min_silence_ms: int = 1000
    keep_silence_ms: int = 500
    output_path: Optional[Path] = None
    max_workers: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "engine", EngineId.parse(self.engine))
        if self.output_path is not None:
            object.__setattr__(self, "output_path", Path(self.output_path))
        if self.min_silence_ms <= 0:
            raise ValueError(f"min_silence_ms must be positive, got {self.min_silence_ms}")
        if self.keep_silence_ms < 0:
            raise ValueError(f"keep_silence_ms must not be negative, got {self.keep_silence_ms}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")


@dataclass(frozen=True)
class TranscriptionRun:
    """The finalised record of one transcription run.

    ``chunks_processed`` counts the texts joined into ``transcript``;
    ``segments_total`` and ``segments_failed`` describe the recognition work.
    ``processing_time_seconds`` runs from the start of normalisation to the
    end of aggregation; writing the report and record is not included.
    """

    transcript: str
    audio_file: str
    engine: EngineId
    chunks_processed: int
    processing_time_seconds: float
    timestamp: datetime
    segments_total: int = 0
    segments_failed: int = 0

    def to_record(self) -> Dict[str, Any]:
        return {
            "transcript": self.transcript,
            "audio_file": self.audio_file,
            "engine": self.engine.value,
            "chunks_processed": self.chunks_processed,
            "processing_time_seconds": self.processing_time_seconds,
            "timestamp": self.timestamp.isoformat(),
            "segments_total": self.segments_total,
            "segments_failed": self.segments_failed,
        }
