import os
import re
import tempfile
import threading
import time
from unittest.mock import Mock

import pytest

from audioscribe import engines, segmenter, stt_service
from audioscribe.config import Settings
from audioscribe.engines import LocalWhisperEngine, OpenAITranscriptionEngine, RecognitionEngine
from audioscribe.errors import EngineConfigurationError, EngineFailure
from audioscribe.stt_service import Recognizer
from audioscribe.types import CanonicalAudio, EngineId, RecognitionStatus

from helpers import FakeEngine, silence, tone, two_bursts


def one_segment(audio=None):
    return segmenter.whole(CanonicalAudio(audio=audio if audio is not None else tone(300)))[0]


def test_recognized_text_and_temp_file_removed():
    engine = FakeEngine(["hello world"])
    result = Recognizer(engine).recognize(one_segment())

    assert result.status is RecognitionStatus.TEXT
    assert result.text == "hello world"
    (call,) = engine.calls
    assert call["exists"]
    assert call["frame_rate"] == 16000
    assert call["channels"] == 1
    assert not os.path.exists(call["path"])


def test_blank_text_is_inaudible():
    engine = FakeEngine(["   "])
    result = Recognizer(engine).recognize(one_segment(silence(300)))
    assert result.status is RecognitionStatus.INAUDIBLE
    assert not result.transcribable
    assert not os.path.exists(engine.calls[0]["path"])


def test_engine_failure_is_contained():
    engine = FakeEngine([EngineFailure("quota exceeded")])
    result = Recognizer(engine).recognize(one_segment())
    assert result.status is RecognitionStatus.ENGINE_ERROR
    assert result.message == "quota exceeded"
    assert result.failed
    assert not os.path.exists(engine.calls[0]["path"])


def test_os_error_is_engine_error():
    engine = FakeEngine([OSError("connection reset")])
    result = Recognizer(engine).recognize(one_segment())
    assert result.status is RecognitionStatus.ENGINE_ERROR
    assert "connection reset" in result.message


def test_configuration_error_raised_by_engine():
    engine = FakeEngine([EngineConfigurationError("missing model path")])
    result = Recognizer(engine).recognize(one_segment())
    assert result.status is RecognitionStatus.CONFIGURATION_ERROR
    assert not os.path.exists(engine.calls[0]["path"])


def test_missing_key_short_circuits_before_export(monkeypatch):
    def no_temp_files(*args, **kwargs):
        raise AssertionError("no temporary file expected")

    monkeypatch.setattr(tempfile, "mkstemp", no_temp_files)
    engine = OpenAITranscriptionEngine(None, url="http://unused.invalid")
    result = Recognizer(engine).recognize(one_segment())

    assert result.status is RecognitionStatus.CONFIGURATION_ERROR
    assert "OPENAI_API_KEY" in result.message


def test_temporary_wav_removed_on_exception():
    seg = one_segment()
    with pytest.raises(RuntimeError):
        with stt_service.temporary_wav(seg) as path:
            assert os.path.exists(path)
            raise RuntimeError("boom")
    assert not os.path.exists(path)


class IndexEchoEngine(RecognitionEngine):
    """Sleeps longer for earlier segments so parallel calls finish out of order."""

    engine_id = EngineId.DEFAULT

    def __init__(self):
        self.lock = threading.Lock()
        self.paths = set()

    def transcribe_file(self, path):
        index = int(re.search(r"segment_(\d+)_", os.path.basename(path)).group(1))
        with self.lock:
            assert path not in self.paths
            self.paths.add(path)
        time.sleep(0.05 * (3 - index))
        if index == 1:
            raise EngineFailure("segment one failed")
        return f"seg{index}"


def test_parallel_results_keep_segment_order():
    audio = two_bursts(gap_ms=1500) + silence(1500) + tone(500)
    segments = segmenter.segment(CanonicalAudio(audio=audio), 1000)
    assert len(segments) == 3

    results = Recognizer(IndexEchoEngine()).recognize_all(segments, max_workers=3)

    assert [r.status for r in results] == [
        RecognitionStatus.TEXT, RecognitionStatus.ENGINE_ERROR, RecognitionStatus.TEXT,
    ]
    assert results[0].text == "seg0"
    assert results[2].text == "seg2"


def test_for_engine_builds_from_settings():
    recognizer = Recognizer.for_engine(EngineId.KEYED, Settings(openai_api_key="sk-test"))
    assert recognizer.engine_id is EngineId.KEYED
    assert recognizer.engine.api_key == "sk-test"


class SlowWhisperModel:
    """Counts constructions; loading takes long enough for workers to race."""

    built = 0
    built_lock = threading.Lock()

    def __init__(self, model_size, device=None, compute_type=None):
        time.sleep(0.1)
        with SlowWhisperModel.built_lock:
            SlowWhisperModel.built += 1

    def transcribe(self, path, language=None, beam_size=None):
        return iter([Mock(text="words")]), None


def test_parallel_workers_share_one_whisper_model(monkeypatch):
    monkeypatch.setattr(engines, "WhisperModel", SlowWhisperModel)
    monkeypatch.setattr(SlowWhisperModel, "built", 0)
    audio = two_bursts(gap_ms=1500) + silence(1500) + tone(500)
    segments = segmenter.segment(CanonicalAudio(audio=audio), 1000)
    assert len(segments) == 3

    results = Recognizer(LocalWhisperEngine("tiny")).recognize_all(segments, max_workers=3)

    assert [r.text for r in results] == ["words", "words", "words"]
    assert SlowWhisperModel.built == 1
