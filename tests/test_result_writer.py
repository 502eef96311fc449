import json
from datetime import datetime

import pytest

from audioscribe import result_writer
from audioscribe.errors import ResultWriteError
from audioscribe.types import EngineId, TranscriptionRun


def make_run(transcript="hello world"):
    return TranscriptionRun(
        transcript=transcript,
        audio_file="/data/talk.mp3",
        engine=EngineId.DEFAULT,
        chunks_processed=2,
        processing_time_seconds=3.456,
        timestamp=datetime(2024, 5, 1, 12, 30, 0),
        segments_total=3,
        segments_failed=1,
    )


def test_writes_report_and_record(tmp_path):
    report, record = result_writer.write(make_run(), tmp_path / "talk.txt")

    assert record == tmp_path / "talk.json"
    text = report.read_text(encoding="utf-8")
    assert text.startswith("Audio Transcription Report\n")
    assert "Source File: /data/talk.mp3" in text
    assert "Engine: default" in text
    assert "Chunks Processed: 2" in text
    assert "Processing Time: 3.46 seconds" in text
    assert "Generated: 2024-05-01T12:30:00" in text

    data = json.loads(record.read_text(encoding="utf-8"))
    assert data == {
        "transcript": "hello world",
        "audio_file": "/data/talk.mp3",
        "engine": "default",
        "chunks_processed": 2,
        "processing_time_seconds": 3.456,
        "timestamp": "2024-05-01T12:30:00",
        "segments_total": 3,
        "segments_failed": 1,
    }


def test_parse_report_returns_body(tmp_path):
    report, _ = result_writer.write(make_run("line one\nline two"), tmp_path / "t.txt")
    fields, body = result_writer.parse_report(report.read_text(encoding="utf-8"))
    assert body == "line one\nline two"
    assert fields["Source File"] == "/data/talk.mp3"


def test_empty_transcript_round_trips(tmp_path):
    report, record = result_writer.write(make_run(""), tmp_path / "t.txt")
    _, body = result_writer.parse_report(report.read_text(encoding="utf-8"))
    assert body == json.loads(record.read_text(encoding="utf-8"))["transcript"] == ""


def test_write_failure_is_reported(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory")
    with pytest.raises(ResultWriteError):
        result_writer.write(make_run(), blocker / "talk.txt")


def test_record_path_never_overwrites_report():
    assert result_writer.record_path_for("out/talk.txt").name == "talk.json"
    assert result_writer.record_path_for("out/talk.json").name == "talk.record.json"


def test_parse_report_rejects_other_text():
    with pytest.raises(ValueError):
        result_writer.parse_report("just some text")
