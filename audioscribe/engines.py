"""
Speech recognition engines.

Every engine accepts the path of a 16 kHz mono WAV file and returns the
best-effort text, or an empty string when no speech could be made out.
Service failures are raised as :class:`~audioscribe.errors.EngineFailure`
with the underlying message preserved.

* :class:`GoogleCloudEngine` – Google Cloud Speech-to-Text, the default.
* :class:`LocalWhisperEngine` – faster-whisper, fully offline.
* :class:`OpenAITranscriptionEngine` – an OpenAI compatible HTTP endpoint
  gated on ``OPENAI_API_KEY``.

Engines are constructed once per run by :func:`build_engine` and hold
their clients and models for that run only.
"""

from __future__ import annotations

import concurrent.futures
import logging
import os
import threading
from typing import Optional

import requests
from faster_whisper import WhisperModel
from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import speech_v1p1beta1 as speech
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import Settings
from .errors import EngineConfigurationError, EngineFailure
from .types import TARGET_SAMPLE_RATE, TARGET_SAMPLE_WIDTH, EngineId

logger = logging.getLogger(__name__)


class RecognitionEngine:
    """Base class for recognition backends."""

    engine_id: EngineId = EngineId.DEFAULT

    def configuration_problem(self) -> Optional[str]:
        """Return a remediation hint when the engine cannot run, else ``None``."""
        return None

    def transcribe_file(self, path: str) -> str:
        raise NotImplementedError


class GoogleCloudEngine(RecognitionEngine):
    """Google Cloud Speech-to-Text.

    Audio up to :attr:`SYNC_LIMIT_SECONDS` goes through the synchronous
    ``recognize`` call; anything longer uses ``long_running_recognize``.
    """

    engine_id = EngineId.DEFAULT

    SYNC_LIMIT_SECONDS = 60
    WAV_HEADER_BYTES = 44

    def __init__(
        self,
        *,
        language_code: str = "en-US",
        sample_rate: int = TARGET_SAMPLE_RATE,
        operation_timeout: int = 900,
    ):
        self.language_code = language_code
        self.sample_rate = sample_rate
        self.operation_timeout = operation_timeout
        self._client = None
        self._lock = threading.Lock()

    @property
    def client(self) -> speech.SpeechClient:
        with self._lock:
            if self._client is None:
                self._client = speech.SpeechClient()
            return self._client

    def _duration_seconds(self, content: bytes) -> float:
        return max(len(content) - self.WAV_HEADER_BYTES, 0) / (self.sample_rate * TARGET_SAMPLE_WIDTH)

    def transcribe_file(self, path: str) -> str:
        with open(path, "rb") as fh:
            content = fh.read()
        config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=self.sample_rate,
            language_code=self.language_code,
            enable_automatic_punctuation=True,
        )
        audio = speech.RecognitionAudio(content=content)
        try:
            if self._duration_seconds(content) > self.SYNC_LIMIT_SECONDS:
                operation = self.client.long_running_recognize(config=config, audio=audio)
                response = operation.result(timeout=self.operation_timeout)
            else:
                response = self.client.recognize(config=config, audio=audio)
        except (
            api_exceptions.GoogleAPIError,
            auth_exceptions.GoogleAuthError,
            concurrent.futures.TimeoutError,
        ) as exc:
            raise EngineFailure(f"Google Speech-to-Text request failed: {exc}") from exc
        pieces = [
            result.alternatives[0].transcript.strip()
            for result in response.results
            if result.alternatives
        ]
        return " ".join(p for p in pieces if p)


class LocalWhisperEngine(RecognitionEngine):
    engine_id = EngineId.LOCAL

    def __init__(
        self,
        model_size: str = "base",
        *,
        device: str = "cpu",
        compute_type: str = "int8",
        language: Optional[str] = None,
    ):
        self.model_size = model_size
        self.device = device
        self.compute_type = compute_type
        self.language = language
        self._model = None
        self._lock = threading.Lock()

    @property
    def model(self) -> WhisperModel:
        with self._lock:
            if self._model is None:
                logger.info("Loading faster-whisper model %s on %s (%s)", self.model_size, self.device, self.compute_type)
                self._model = WhisperModel(self.model_size, device=self.device, compute_type=self.compute_type)
            return self._model

    def transcribe_file(self, path: str) -> str:
        try:
            segments, _info = self.model.transcribe(path, language=self.language, beam_size=5)
            # ``segments`` is lazy; decoding happens while joining.
            return " ".join(s.text.strip() for s in segments if s.text.strip())
        except (RuntimeError, ValueError, OSError) as exc:
            raise EngineFailure(f"faster-whisper transcription failed: {exc}") from exc


class OpenAITranscriptionEngine(RecognitionEngine):
    engine_id = EngineId.KEYED

    def __init__(
        self,
        api_key: Optional[str],
        *,
        url: str,
        model: str = "whisper-1",
        timeout: int = 60,
    ):
        self.api_key = api_key
        self.url = url
        self.model = model
        self.timeout = timeout

    def configuration_problem(self) -> Optional[str]:
        if not self.api_key:
            return (
                "OPENAI_API_KEY is not set. Export it before running, "
                "or choose --engine default or --engine local."
            )
        return None

    @retry(
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        wait=wait_exponential(multiplier=1),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    def _post(self, path: str) -> requests.Response:
        with open(path, "rb") as fh:
            return requests.post(
                self.url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                data={"model": self.model, "response_format": "json"},
                files={"file": (os.path.basename(path), fh, "audio/wav")},
                timeout=self.timeout,
            )

    def transcribe_file(self, path: str) -> str:
        problem = self.configuration_problem()
        if problem:
            raise EngineConfigurationError(problem)
        try:
            response = self._post(path)
        except requests.RequestException as exc:
            raise EngineFailure(f"Transcription request failed: {exc}") from exc
        if response.status_code != 200:
            raise EngineFailure(f"Transcription service returned {response.status_code}: {response.text[:200]}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise EngineFailure(f"Malformed transcription response: {exc}") from exc
        if not isinstance(payload, dict):
            raise EngineFailure(f"Malformed transcription response: {payload!r}")
        return str(payload.get("text") or "").strip()


def build_engine(engine_id: EngineId, settings: Settings) -> RecognitionEngine:
    """Construct the engine for ``engine_id`` from ``settings``."""
    engine_id = EngineId.parse(engine_id)
    if engine_id is EngineId.LOCAL:
        return LocalWhisperEngine(
            settings.whisper_model,
            device=settings.whisper_device,
            compute_type=settings.whisper_compute_type,
            language=settings.whisper_language,
        )
    if engine_id is EngineId.KEYED:
        return OpenAITranscriptionEngine(
            settings.openai_api_key,
            url=settings.openai_url,
            model=settings.openai_model,
            timeout=settings.request_timeout,
        )
    return GoogleCloudEngine(language_code=settings.google_language)
