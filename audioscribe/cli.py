"""
Command line entrypoint.

    transcribe <audio-path> [--engine default|local|keyed] [--output <path>]
               [--no-chunk] [--silence-len <ms>] [--keep-silence <ms>]
               [--workers <n>]

Exit status is 0 on success, 1 when the input cannot be used and 2 when
the transcript could not be written.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from . import orchestrator
from .config import Settings, configure_logging
from .errors import AudioNotFoundError, ResultWriteError, UnsupportedFormatError
from .types import EngineId, TranscribeOptions

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return number


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"expected zero or a positive integer, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="transcribe",
        description="Transcribe an audio file, splitting it on silence before recognition.",
    )
    parser.add_argument("audio_path", help="Audio file (wav, mp3, mp4, m4a, flac, ogg, aiff).")
    parser.add_argument(
        "--engine",
        default=EngineId.DEFAULT.value,
        help="Recognition engine: default (Google Cloud), local (faster-whisper) or keyed (OpenAI). "
             "Unknown names fall back to default.",
    )
    parser.add_argument("--output", default=None, help="Report path (default: audio path with .txt).")
    parser.add_argument("--no-chunk", action="store_true", help="Recognise the whole file in one request.")
    parser.add_argument("--silence-len", type=_positive_int, default=1000,
                        help="Minimum silence in ms that splits the audio (default: 1000).")
    parser.add_argument("--keep-silence", type=_non_negative_int, default=500,
                        help="Silence in ms kept at each segment edge (default: 500).")
    parser.add_argument("--workers", type=_positive_int, default=None,
                        help="Parallel recognition calls (default: TRANSCRIBE_WORKERS or 1).")
    parser.add_argument("--log-level", default=None, help="Log level (default: LOG_LEVEL or INFO).")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    configure_logging(args.log_level or settings.log_level)

    options = TranscribeOptions(
        engine=EngineId.parse(args.engine),
        chunked=not args.no_chunk,
        min_silence_ms=args.silence_len,
        keep_silence_ms=args.keep_silence,
        output_path=args.output,
        max_workers=args.workers or settings.workers,
    )
    try:
        run = orchestrator.transcribe(args.audio_path, options, settings=settings)
    except (AudioNotFoundError, UnsupportedFormatError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except ResultWriteError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    print(f"Transcription complete: {len(run.transcript)} characters "
          f"in {run.processing_time_seconds:.2f} seconds")
    return 0


if __name__ == "__main__":
    sys.exit(main())
