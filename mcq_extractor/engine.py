"""
Extractor Engine
================
Main orchestrator that combines text extraction, noise filtering,
question segmentation and result assembly into a complete pipeline.

Usage:
    engine = ExtractorEngine(config)
    result = engine.parse("path/to/worksheet.pdf")
    # result is an ExtractionResult with the question map and stats

Architecture:
    File → TextExtractor → raw text → filter_watermarks → clean text →
    segment_questions → question map → ResultAssembler → ExtractionResult
"""

from __future__ import annotations

import hashlib
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional

from . import __version__
from .assembler import OutputFormat, ResultAssembler, render
from .models import (
    ExtractionMode,
    ExtractionResult,
    FilterResult,
    Option,
    SourceMetadata,
    SourceType,
    WordBox,
)
from .noise_filter import filter_watermarks
from .state_machine import segment_questions
from .text_extractor import DEFAULT_OCR_DPI, TextExtractor, words_to_text

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class ExtractorConfig:
    """Configuration for the extractor engine."""

    # Noise filtering (0 = aggressive, 1 = lenient)
    sensitivity: float = 0.5

    # Extraction
    mode: ExtractionMode = ExtractionMode.AUTO
    ocr_language: str = "eng"
    ocr_dpi: int = DEFAULT_OCR_DPI
    page_range: Optional[tuple[int, int]] = None
    line_tolerance: float = 3.0

    # Output settings (nothing is written when output_dir is None)
    output_dir: Optional[str] = None
    save_raw_text: bool = False

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


def run_core(
    raw_text: str, sensitivity: float = 0.5
) -> tuple[dict[str, list[Option]], FilterResult]:
    """Noise filter followed by question segmentation."""
    filter_result = filter_watermarks(raw_text, sensitivity)
    questions = segment_questions(filter_result.text)
    return questions, filter_result


def extract_questions(
    raw_text: str, sensitivity: float = 0.5
) -> tuple[dict[str, list[Option]], int]:
    """
    Turn raw extracted text into a question map.

    Returns:
        (question map in document order, number of lines filtered as noise)
    """
    questions, filter_result = run_core(raw_text, sensitivity)
    cleaned, _ = ResultAssembler().assemble(questions, filter_result)
    return cleaned, filter_result.removed_count


class ExtractorEngine:
    """
    Main worksheet extraction engine.

    Orchestrates the full pipeline:
        1. Text extraction (PDF text layer or OCR)
        2. Noise filtering
        3. Question segmentation
        4. Result assembly and statistics
        5. Optional output files

    Every run owns its own state, so one engine may serve parallel calls.
    """

    def __init__(self, config: Optional[ExtractorConfig] = None):
        self.config = config or ExtractorConfig()
        if not 0.0 <= self.config.sensitivity <= 1.0:
            raise ValueError(
                f"sensitivity must be between 0 and 1, "
                f"got {self.config.sensitivity}"
            )
        self._setup_logging()

    def _setup_logging(self):
        """Configure logging based on config."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        # Configure root logger for the package
        pkg_logger = logging.getLogger("mcq_extractor")
        pkg_logger.setLevel(log_level)

        # Console handler
        if not pkg_logger.handlers:
            console = logging.StreamHandler()
            console.setLevel(log_level)
            console.setFormatter(
                logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
            )
            pkg_logger.addHandler(console)
        else:
            for handler in pkg_logger.handlers:
                handler.setLevel(log_level)

        # File handler
        if self.config.log_file:
            log_dir = Path(self.config.log_file).parent
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(
                self.config.log_file, encoding="utf-8"
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(
                logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
            )
            pkg_logger.addHandler(file_handler)

    # ─── Entry Points ─────────────────────────────────────────────────────

    def parse_text(
        self, raw_text: str, name: str = "text"
    ) -> ExtractionResult:
        """Run the core pipeline on already-extracted text."""
        source = SourceMetadata(name=name, source_type=SourceType.TEXT)
        return self._build_result(raw_text, source)

    def parse_words(
        self, words: Iterable[WordBox], name: str = "words"
    ) -> ExtractionResult:
        """Run the core pipeline on position-tagged words."""
        words = list(words)
        raw_text = words_to_text(words, self.config.line_tolerance)
        source = SourceMetadata(
            name=name,
            source_type=SourceType.TEXT,
            total_pages=len({w.page_number for w in words}),
        )
        return self._build_result(raw_text, source)

    def parse(
        self,
        path: str,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> ExtractionResult:
        """
        Extract questions from a PDF, image or text file.

        Args:
            path: Path to the source document.
            progress_callback: Callback(page_num, total_pages) per page.

        Returns:
            ExtractionResult with the question map, metadata and stats.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ExtractionError: If the document cannot be read or transcribed.
        """
        path = os.path.abspath(path)

        if not os.path.exists(path):
            raise FileNotFoundError(f"File not found: {path}")

        start_time = time.time()
        logger.info(f"Starting extraction of: {path}")

        # ── Step 1: Raw text ──────────────────────────────────────────
        logger.info("Phase 1: Text extraction")
        extractor = TextExtractor(
            dpi=self.config.ocr_dpi,
            ocr_language=self.config.ocr_language,
            page_range=self.config.page_range,
            line_tolerance=self.config.line_tolerance,
        )
        extracted = extractor.extract(
            path,
            mode=self.config.mode,
            progress_callback=progress_callback,
        )

        # ── Step 2: Core pipeline ─────────────────────────────────────
        source = SourceMetadata(
            name=Path(path).stem,
            source_file=os.path.basename(path),
            source_type=extracted.source_type,
            mode=extracted.mode,
            total_pages=extracted.total_pages,
            file_hash=self._compute_file_hash(path),
            file_size_bytes=os.path.getsize(path),
        )
        result = self._build_result(extracted.text, source)

        elapsed = time.time() - start_time
        logger.info(
            f"Extraction complete in {elapsed:.2f}s — "
            f"{result.stats.questions_found} questions extracted"
        )

        # ── Step 3: Save output ───────────────────────────────────────
        if self.config.output_dir:
            self.save(result, extracted.text)

        return result

    # ─── Internals ────────────────────────────────────────────────────────

    def _build_result(
        self, raw_text: str, source: SourceMetadata
    ) -> ExtractionResult:
        logger.info("Phase 2: Noise filtering and segmentation")
        questions, filter_result = run_core(raw_text, self.config.sensitivity)

        logger.info("Phase 3: Result assembly")
        cleaned, stats = ResultAssembler().assemble(questions, filter_result)

        return ExtractionResult(
            source=source,
            extractor_version=__version__,
            questions=cleaned,
            stats=stats,
        )

    def save(
        self, result: ExtractionResult, raw_text: Optional[str] = None
    ) -> list[Path]:
        """Write JSON and Python renderings (and optionally raw text)."""
        output_dir = Path(self.config.output_dir or "output")
        output_dir.mkdir(parents=True, exist_ok=True)
        output_id = self._generate_output_id(result.source.name)

        written = [
            self._write(
                output_dir / f"{output_id}_questions.json",
                render(result.questions, OutputFormat.JSON),
            ),
            self._write(
                output_dir / f"{output_id}_questions.py",
                render(result.questions, OutputFormat.PY),
            ),
        ]

        if self.config.save_raw_text and raw_text is not None:
            written.append(
                self._write(output_dir / f"{output_id}_raw_text.txt", raw_text)
            )

        logger.info(f"Output saved to: {output_dir}")
        return written

    def _write(self, filepath: Path, content: str) -> Path:
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(content)
        logger.info(f"Saved: {filepath}")
        return filepath

    def _compute_file_hash(self, filepath: str) -> str:
        """Compute SHA-256 hash of a file."""
        sha256 = hashlib.sha256()
        with open(filepath, "rb") as f:
            for chunk in iter(lambda: f.read(8192), b""):
                sha256.update(chunk)
        return sha256.hexdigest()

    def _generate_output_id(self, name: str) -> str:
        """Filesystem-safe identifier derived from the source name."""
        clean_name = "".join(
            c if c.isalnum() or c in "-_" else "_"
            for c in name
        )
        return clean_name[:50] or "worksheet"
