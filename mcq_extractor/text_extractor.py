"""
Text Extractor
==============
Produces raw worksheet text from source documents using PyMuPDF (fitz)
for the PDF text layer and page rendering, and Tesseract (pytesseract)
for OCR of images and scanned pages.

Pages are concatenated in page order with newline separators.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional

import fitz  # PyMuPDF
import pytesseract
from PIL import Image, UnidentifiedImageError

from .models import ExtractionMode, SourceType, WordBox

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = frozenset(
    {".png", ".jpg", ".jpeg", ".bmp", ".tif", ".tiff", ".gif", ".webp"}
)
PDF_SUFFIXES = frozenset({".pdf"})
TEXT_SUFFIXES = frozenset({".txt", ".text"})

# 2x the 72 dpi PDF user space
DEFAULT_OCR_DPI = 144


class ExtractionError(RuntimeError):
    """Raised when a document cannot be read or transcribed."""


@dataclass
class ExtractedText:
    """Raw text of a document plus how it was obtained."""
    text: str
    source_type: SourceType
    mode: ExtractionMode
    total_pages: int = 1
    pages: list[str] = field(default_factory=list)


def detect_source_type(path: str) -> SourceType:
    """Classify a file by suffix."""
    suffix = Path(path).suffix.lower()
    if suffix in PDF_SUFFIXES:
        return SourceType.PDF
    if suffix in IMAGE_SUFFIXES:
        return SourceType.IMAGE
    if suffix in TEXT_SUFFIXES:
        return SourceType.TEXT
    raise ExtractionError(f"Unsupported file type: {suffix or '(none)'}")


def format_file_size(size_bytes: int) -> str:
    """Human readable size in base-1024 units, e.g. '1.5 KB'."""
    if size_bytes == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size_bytes)
    exponent = 0
    while value >= 1024 and exponent < len(units) - 1:
        value /= 1024
        exponent += 1
    return f"{round(value, 2):g} {units[exponent]}"


def words_to_text(
    words: Iterable[WordBox], line_tolerance: float = 3.0
) -> str:
    """
    Rebuild physical lines from positioned words.

    Words on the same page whose top edges lie within ``line_tolerance``
    of the line's first word share a line. Lines run top to bottom and
    words within a line left to right.
    """
    ordered = sorted(words, key=lambda w: (w.page_number, w.top, w.left))

    lines: list[list[WordBox]] = []
    for word in ordered:
        if not word.text.strip():
            continue
        current = lines[-1] if lines else None
        if (
            current
            and current[0].page_number == word.page_number
            and abs(word.top - current[0].top) <= line_tolerance
        ):
            current.append(word)
        else:
            lines.append([word])

    return "\n".join(
        " ".join(w.text for w in sorted(line, key=lambda w: w.left))
        for line in lines
    )


class TextExtractor:
    """
    Reads worksheet text from PDFs, images and plain text files.

    PDF modes:
        - TEXT: embedded text layer only
        - OCR: render every page and run Tesseract
        - AUTO: text layer, falling back to OCR when it is empty

    Images always go through OCR.
    """

    def __init__(
        self,
        dpi: int = DEFAULT_OCR_DPI,
        ocr_language: str = "eng",
        page_range: Optional[tuple[int, int]] = None,
        line_tolerance: float = 3.0,
    ):
        self.dpi = dpi
        self.ocr_language = ocr_language
        self.page_range = page_range
        self.line_tolerance = line_tolerance

    def get_page_count(self, path: str) -> int:
        """Number of pages in a PDF; images and text count as one."""
        if detect_source_type(path) is not SourceType.PDF:
            return 1
        try:
            with fitz.open(path) as doc:
                return doc.page_count
        except RuntimeError as e:
            raise ExtractionError(f"Cannot open PDF {path}: {e}") from e

    def extract(
        self,
        path: str,
        mode: ExtractionMode = ExtractionMode.AUTO,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> ExtractedText:
        """
        Extract raw text from ``path``.

        Args:
            path: PDF, image or text file.
            mode: Requested extraction mode (ignored for images and text).
            progress_callback: Optional callable(current_page, total_pages).

        Returns:
            ExtractedText with the concatenated page text.

        Raises:
            ExtractionError: If the file type is unsupported or the PDF
                reader / OCR engine fails.
        """
        mode = ExtractionMode(mode)
        source_type = detect_source_type(path)

        if source_type is SourceType.TEXT:
            return self._read_text_file(path, progress_callback)

        if source_type is SourceType.IMAGE:
            if mode is ExtractionMode.TEXT:
                logger.info(f"{path} is an image; using OCR")
            return self._ocr_image_file(path, progress_callback)

        if mode is ExtractionMode.OCR:
            return self._extract_pdf(path, ExtractionMode.OCR, progress_callback)

        extracted = self._extract_pdf(path, ExtractionMode.TEXT, progress_callback)
        if mode is ExtractionMode.AUTO and not extracted.text.strip():
            logger.info(f"No text layer in {path}; falling back to OCR")
            extracted = self._extract_pdf(
                path, ExtractionMode.OCR, progress_callback
            )
        return extracted

    # ─── Sources ──────────────────────────────────────────────────────────

    def _read_text_file(self, path, progress_callback) -> ExtractedText:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ExtractionError(f"Cannot read {path}: {e}") from e

        if progress_callback:
            progress_callback(1, 1)

        return ExtractedText(
            text=text,
            source_type=SourceType.TEXT,
            mode=ExtractionMode.TEXT,
            pages=[text],
        )

    def _ocr_image_file(self, path, progress_callback) -> ExtractedText:
        logger.info(f"Running OCR on image {path}")
        try:
            with Image.open(path) as image:
                text = self._ocr(image)
        except (OSError, UnidentifiedImageError) as e:
            raise ExtractionError(f"Cannot open image {path}: {e}") from e

        if progress_callback:
            progress_callback(1, 1)

        return ExtractedText(
            text=text,
            source_type=SourceType.IMAGE,
            mode=ExtractionMode.OCR,
            pages=[text],
        )

    def _extract_pdf(self, path, mode, progress_callback) -> ExtractedText:
        pages: list[str] = []

        try:
            with fitz.open(path) as doc:
                total_pages = doc.page_count
                start_page, end_page = self._resolve_range(total_pages)

                logger.info(
                    f"Extracting {mode.value} from {path} "
                    f"(pages {start_page} to {end_page})"
                )

                for page_idx in range(start_page - 1, end_page):
                    page = doc[page_idx]
                    page_num = page_idx + 1

                    if mode is ExtractionMode.OCR:
                        pages.append(self._ocr_page(page))
                    else:
                        pages.append(self._read_text_layer(page, page_num))

                    if progress_callback:
                        progress_callback(
                            page_num - start_page + 1,
                            end_page - start_page + 1,
                        )
        except ExtractionError:
            raise
        except RuntimeError as e:
            # fitz.FileDataError and friends derive from RuntimeError
            raise ExtractionError(f"Cannot read PDF {path}: {e}") from e

        return ExtractedText(
            text="\n".join(pages),
            source_type=SourceType.PDF,
            mode=mode,
            total_pages=total_pages,
            pages=pages,
        )

    def _resolve_range(self, total_pages: int) -> tuple[int, int]:
        start_page, end_page = 1, total_pages
        if self.page_range:
            start_page = max(1, self.page_range[0])
            end_page = min(total_pages, self.page_range[1])
        return start_page, end_page

    # ─── Engines ──────────────────────────────────────────────────────────

    def _read_text_layer(self, page: fitz.Page, page_num: int) -> str:
        words = [
            WordBox(text=w[4], page_number=page_num, bbox=tuple(w[:4]))
            for w in page.get_text("words")
        ]
        return words_to_text(words, self.line_tolerance)

    def _ocr_page(self, page: fitz.Page) -> str:
        pix = page.get_pixmap(dpi=self.dpi)
        image = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
        return self._ocr(image)

    def _ocr(self, image: Image.Image) -> str:
        try:
            return pytesseract.image_to_string(image, lang=self.ocr_language)
        except pytesseract.TesseractNotFoundError as e:
            raise ExtractionError(
                "Tesseract OCR engine is not installed or not on PATH"
            ) from e
        except pytesseract.TesseractError as e:
            raise ExtractionError(f"OCR failed: {e}") from e
