from __future__ import annotations


class TranscriptionError(Exception):
    """Base error for the transcription pipeline."""


class AudioNotFoundError(TranscriptionError, FileNotFoundError):
    """Raised when the input audio file does not exist."""


class UnsupportedFormatError(TranscriptionError, ValueError):
    """Raised when the input file extension is not a supported audio type."""


class ResultWriteError(TranscriptionError, OSError):
    """Raised when the transcript report or JSON record cannot be written."""


class EngineFailure(TranscriptionError):
    """Raised by a recognition engine when the service call fails.

    Covers timeouts, network errors, quota errors and malformed responses.
    Converted to an ``ENGINE_ERROR`` result at the segment boundary.
    """


class EngineConfigurationError(TranscriptionError):
    """Raised by a recognition engine that is missing required configuration."""
