"""
Runtime configuration.

All settings come from environment variables so the same code runs from
the command line and behind the HTTP trigger without a config file:

* ``GOOGLE_SPEECH_LANGUAGE`` – language code for the cloud engine.
* ``WHISPER_MODEL``, ``WHISPER_DEVICE``, ``WHISPER_COMPUTE_TYPE``,
  ``WHISPER_LANGUAGE`` – faster-whisper options for the local engine.
* ``OPENAI_API_KEY`` – credential for the keyed engine.  Without it the
  keyed engine refuses to make any request.
* ``OPENAI_TRANSCRIBE_URL``, ``OPENAI_TRANSCRIBE_MODEL`` – keyed endpoint.
* ``TRANSCRIBE_REQUEST_TIMEOUT`` – HTTP timeout in seconds.
* ``TRANSCRIBE_WORKERS`` – default number of parallel recognition calls.
* ``LOG_LEVEL`` – root log level.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_OPENAI_URL = "https://api.openai.com/v1/audio/transcriptions"


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    google_language: str = "en-US"
    whisper_model: str = "base"
    whisper_device: str = "cpu"
    whisper_compute_type: str = "int8"
    whisper_language: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_url: str = DEFAULT_OPENAI_URL
    openai_model: str = "whisper-1"
    request_timeout: int = 60
    workers: int = 1
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            google_language=env.get("GOOGLE_SPEECH_LANGUAGE", "en-US"),
            whisper_model=env.get("WHISPER_MODEL", "base"),
            whisper_device=env.get("WHISPER_DEVICE", "cpu"),
            whisper_compute_type=env.get("WHISPER_COMPUTE_TYPE", "int8"),
            whisper_language=env.get("WHISPER_LANGUAGE") or None,
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            openai_url=env.get("OPENAI_TRANSCRIBE_URL", DEFAULT_OPENAI_URL),
            openai_model=env.get("OPENAI_TRANSCRIBE_MODEL", "whisper-1"),
            request_timeout=_int_env(env, "TRANSCRIBE_REQUEST_TIMEOUT", 60),
            workers=max(1, _int_env(env, "TRANSCRIBE_WORKERS", 1)),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for an entry point.

    Args:
        level: Optional level name.  Defaults to ``LOG_LEVEL`` or ``INFO``.
    """
    level_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
