"""
HTTP Microservice
=================
Flask-based HTTP API for the worksheet extractor.

Endpoints:
    POST   /api/extract        → Extract questions from an uploaded file
    POST   /api/extract/text   → Extract questions from posted raw text
    GET    /api/health         → Health check
    GET    /api/info           → Extractor version info
"""

from __future__ import annotations

import logging
import tempfile
import uuid
from pathlib import Path

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.utils import secure_filename

from . import __version__
from .assembler import OutputFormat, render
from .engine import ExtractorConfig, ExtractorEngine
from .models import ExtractionMode, ExtractionResult
from .text_extractor import (
    IMAGE_SUFFIXES,
    PDF_SUFFIXES,
    TEXT_SUFFIXES,
    ExtractionError,
)

logger = logging.getLogger(__name__)

ALLOWED_SUFFIXES = PDF_SUFFIXES | IMAGE_SUFFIXES | TEXT_SUFFIXES


class BadRequest(ValueError):
    """Client sent an unusable request."""


def create_app(config: dict = None) -> Flask:
    """Create and configure the Flask app."""
    app = Flask(__name__)
    CORS(app)

    app.config.setdefault("UPLOAD_DIR", tempfile.gettempdir())
    app.config.setdefault("MAX_CONTENT_LENGTH", 100 * 1024 * 1024)  # 100MB
    app.config.setdefault("DEFAULT_SENSITIVITY", 0.5)
    app.config.setdefault("OCR_LANGUAGE", "eng")
    if config:
        app.config.update(config)

    Path(app.config["UPLOAD_DIR"]).mkdir(parents=True, exist_ok=True)

    # ─── Health Check ─────────────────────────────────────────────────────

    @app.route("/api/health", methods=["GET"])
    def health():
        """Health check endpoint."""
        return jsonify({
            "status": "healthy",
            "service": "mcq-extractor",
            "version": __version__,
        })

    @app.route("/api/info", methods=["GET"])
    def info():
        """Extractor capabilities."""
        return jsonify({
            "version": __version__,
            "modes": [m.value for m in ExtractionMode],
            "formats": [f.value for f in OutputFormat],
            "supported_extensions": sorted(ALLOWED_SUFFIXES),
            "default_sensitivity": app.config["DEFAULT_SENSITIVITY"],
        })

    # ─── Extraction ───────────────────────────────────────────────────────

    @app.route("/api/extract", methods=["POST"])
    def extract_file():
        """
        Extract questions from an uploaded worksheet.

        Form fields:
            file: PDF, image or text file (required)
            sensitivity: 0..1 (optional)
            mode: auto | text | ocr (optional)
        """
        upload = request.files.get("file")
        if upload is None or not upload.filename:
            return jsonify({"error": "No file uploaded"}), 400

        filename = secure_filename(upload.filename)
        suffix = Path(filename).suffix.lower()
        if suffix not in ALLOWED_SUFFIXES:
            return jsonify({
                "error": f"Unsupported file type: {suffix or '(none)'}",
            }), 400

        try:
            sensitivity = _read_sensitivity(
                request.form.get("sensitivity"),
                app.config["DEFAULT_SENSITIVITY"],
            )
            mode = _read_mode(request.form.get("mode"))
        except BadRequest as e:
            return jsonify({"error": str(e)}), 400

        saved = Path(app.config["UPLOAD_DIR"]) / f"{uuid.uuid4().hex}{suffix}"
        upload.save(str(saved))

        engine = ExtractorEngine(ExtractorConfig(
            sensitivity=sensitivity,
            mode=mode,
            ocr_language=app.config["OCR_LANGUAGE"],
        ))

        try:
            result = engine.parse(str(saved))
        except ExtractionError as e:
            logger.error(f"Extraction failed for {filename}: {e}")
            return jsonify({"error": str(e)}), 422
        finally:
            saved.unlink(missing_ok=True)

        result.source.name = Path(filename).stem
        result.source.source_file = filename
        return jsonify(_serialize(result))

    @app.route("/api/extract/text", methods=["POST"])
    def extract_text():
        """
        Extract questions from raw text.

        JSON body: {"text": "...", "sensitivity": 0.5}
        """
        data = request.get_json(silent=True) or {}
        text = data.get("text")
        if not isinstance(text, str):
            return jsonify({"error": "Field 'text' (string) is required"}), 400

        try:
            sensitivity = _read_sensitivity(
                data.get("sensitivity"),
                app.config["DEFAULT_SENSITIVITY"],
            )
        except BadRequest as e:
            return jsonify({"error": str(e)}), 400

        engine = ExtractorEngine(ExtractorConfig(sensitivity=sensitivity))
        result = engine.parse_text(text, name=data.get("name") or "text")
        return jsonify(_serialize(result))

    return app


def _read_sensitivity(raw, default: float) -> float:
    if raw is None or raw == "":
        return float(default)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise BadRequest(f"Invalid sensitivity: {raw!r}")
    if not 0.0 <= value <= 1.0:
        raise BadRequest("sensitivity must be between 0 and 1")
    return value


def _read_mode(raw) -> ExtractionMode:
    if not raw:
        return ExtractionMode.AUTO
    try:
        return ExtractionMode(raw)
    except ValueError:
        raise BadRequest(f"Invalid mode: {raw!r}")


def _serialize(result: ExtractionResult) -> dict:
    """JSON payload with the result plus list/dict renderings."""
    data = result.model_dump(mode="json")
    # jsonify sorts object keys; a list keeps document order
    data["questions"] = [
        {"question": text, "options": [list(o.as_pair()) for o in options]}
        for text, options in result.questions.items()
    ]
    data["rendered"] = {
        OutputFormat.LIST.value: render(result.questions, OutputFormat.LIST),
        OutputFormat.DICT.value: render(result.questions, OutputFormat.DICT),
    }
    return data


def run_server(host: str = "0.0.0.0", port: int = 5000, debug: bool = False):
    """Run the development server."""
    app = create_app()
    logger.info(f"Starting extractor service on {host}:{port}")
    app.run(host=host, port=port, debug=debug)
