"""
Transcript report and JSON record output.

Each run produces two sibling files: a plain-text report with a fixed
header block followed by the transcript body, and a JSON record with the
same base name carrying the same fields.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Tuple, Union

from .errors import ResultWriteError
from .types import TranscriptionRun

logger = logging.getLogger(__name__)

REPORT_TITLE = "Audio Transcription Report"
BODY_SEPARATOR = "-" * 50


def record_path_for(output_path: Union[str, Path]) -> Path:
    path = Path(output_path)
    if path.suffix.lower() == ".json":
        return path.with_name(path.stem + ".record.json")
    return path.with_suffix(".json")


def format_report(run: TranscriptionRun) -> str:
    header = [
        REPORT_TITLE,
        "=" * len(REPORT_TITLE),
        f"Source File: {run.audio_file}",
        f"Engine: {run.engine.value}",
        f"Chunks Processed: {run.chunks_processed}",
        f"Processing Time: {run.processing_time_seconds:.2f} seconds",
        f"Generated: {run.timestamp.isoformat()}",
        BODY_SEPARATOR,
    ]
    return "\n".join(header) + "\n" + run.transcript


def parse_report(text: str) -> Tuple[Dict[str, str], str]:
    """Split a report produced by :func:`format_report` into header fields and body."""
    head, sep, body = text.partition("\n" + BODY_SEPARATOR + "\n")
    if not sep:
        raise ValueError("Not a transcript report: body separator missing")
    fields: Dict[str, str] = {}
    for line in head.splitlines()[2:]:
        key, _, value = line.partition(": ")
        fields[key] = value
    return fields, body


def write(run: TranscriptionRun, output_path: Union[str, Path]) -> Tuple[Path, Path]:
    """Write the report to ``output_path`` and the JSON record beside it.

    Returns:
        The report path and the JSON record path.

    Raises:
        ResultWriteError: Either file could not be written.
    """
    report_path = Path(output_path)
    json_path = record_path_for(report_path)
    try:
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(format_report(run), encoding="utf-8")
        json_path.write_text(json.dumps(run.to_record(), ensure_ascii=False, indent=2), encoding="utf-8")
    except OSError as exc:
        raise ResultWriteError(f"Could not write transcript to {report_path}: {exc}") from exc
    logger.info("Saved transcript report to %s and record to %s", report_path, json_path)
    return report_path, json_path
