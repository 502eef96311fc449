import os

import pydub
from pydub.generators import Sine

from audioscribe.engines import RecognitionEngine
from audioscribe.types import EngineId


def tone(ms, *, frame_rate=16000, freq=440, volume=-6.0):
    return Sine(freq, sample_rate=frame_rate).to_audio_segment(duration=ms, volume=volume)


def silence(ms, *, frame_rate=16000):
    return pydub.AudioSegment.silent(duration=ms, frame_rate=frame_rate)


def write_wav(directory, name, audio):
    path = directory / name
    audio.export(str(path), format="wav").close()
    return path


def two_bursts(gap_ms=2000, burst_ms=500):
    return tone(burst_ms) + silence(gap_ms) + tone(burst_ms, freq=660)


class FakeEngine(RecognitionEngine):
    """Returns queued texts in call order; exceptions in the queue are raised."""

    engine_id = EngineId.LOCAL

    def __init__(self, texts=None, default=""):
        self.texts = list(texts or [])
        self.default = default
        self.calls = []

    def transcribe_file(self, path):
        audio = pydub.AudioSegment.from_wav(path)
        self.calls.append({
            "path": path,
            "exists": os.path.exists(path),
            "frame_rate": audio.frame_rate,
            "channels": audio.channels,
            "duration_ms": len(audio),
        })
        item = self.texts.pop(0) if self.texts else self.default
        if isinstance(item, Exception):
            raise item
        return item
