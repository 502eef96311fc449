"""
HTTP trigger for the transcription pipeline.

``POST /transcribe`` accepts a JSON body and runs one transcription on a
file the server can read::

    {"path": "/data/talk.mp3", "engine": "local", "chunked": true,
     "min_silence_ms": 1000, "keep_silence_ms": 500, "output": "/data/talk.txt"}

Only ``path`` is required.  The response is the JSON record of the run.
"""

import json
import logging
import os

from flask import Flask, jsonify, request

from . import orchestrator
from .config import Settings, configure_logging
from .errors import AudioNotFoundError, ResultWriteError, UnsupportedFormatError
from .types import TranscribeOptions

logger = logging.getLogger(__name__)

app = Flask(__name__)


@app.route("/healthz", methods=["GET"])
def healthz():
    return "ok", 200


@app.route("/transcribe", methods=["POST"])
def transcribe():
    data = request.get_json(silent=True) or {}
    path = data.get("path")
    logger.info(json.dumps({"event": "request", "path": path, "engine": data.get("engine")}))
    if not path:
        return jsonify({"error": "Missing 'path' in request"}), 400

    chunked = data.get("chunked", True)
    if not isinstance(chunked, bool):
        logger.info(json.dumps({"event": "bad_request", "error": "chunked must be a boolean"}))
        return jsonify({"error": f"'chunked' must be true or false, got {chunked!r}"}), 400

    settings = Settings.from_env()
    try:
        options = TranscribeOptions(
            engine=data.get("engine") or "default",
            chunked=chunked,
            min_silence_ms=int(data.get("min_silence_ms", 1000)),
            keep_silence_ms=int(data.get("keep_silence_ms", 500)),
            output_path=data.get("output"),
            max_workers=settings.workers,
        )
    except (TypeError, ValueError) as exc:
        logger.info(json.dumps({"event": "bad_request", "error": str(exc)}))
        return jsonify({"error": str(exc)}), 400

    try:
        run = orchestrator.transcribe(path, options, settings=settings)
    except AudioNotFoundError as exc:
        logger.info(json.dumps({"event": "not_found", "path": path}))
        return jsonify({"error": str(exc)}), 404
    except UnsupportedFormatError as exc:
        logger.info(json.dumps({"event": "unsupported_format", "path": path}))
        return jsonify({"error": str(exc)}), 415
    except ResultWriteError as exc:
        logger.error(json.dumps({"event": "write_failed", "path": path, "error": str(exc)}))
        return jsonify({"error": str(exc)}), 500

    logger.info(json.dumps({
        "event": "transcript_saved",
        "path": path,
        "chunks_processed": run.chunks_processed,
        "segments_failed": run.segments_failed,
    }))
    return jsonify(run.to_record()), 200


if __name__ == "__main__":
    configure_logging()
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port)
