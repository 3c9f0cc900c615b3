"""
Data Models
===========
Pydantic models shared by the extraction pipeline.
All models are serializable to JSON for API and file output.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from . import __version__


# ─── Enums ────────────────────────────────────────────────────────────────────


class FilterReason(str, Enum):
    """Why the noise filter removed a line."""
    KEYWORD = "keyword"
    REPEATED = "repeated"
    ALL_CAPS = "all_caps"


class ExtractionMode(str, Enum):
    """How raw text is obtained from a source document."""
    AUTO = "auto"
    TEXT = "text"
    OCR = "ocr"


class SourceType(str, Enum):
    """Kind of document the text came from."""
    PDF = "pdf"
    IMAGE = "image"
    TEXT = "text"


# ─── Question Models ──────────────────────────────────────────────────────────


class Option(BaseModel):
    """A single lettered multiple-choice option."""
    model_config = ConfigDict(frozen=True)

    letter: str = Field(pattern=r"^[A-D]$")
    body: str = Field(min_length=1)

    def as_pair(self) -> tuple[str, str]:
        return (self.letter, self.body)


class QuestionRecord(BaseModel):
    """
    An in-progress question: statement text plus the options seen so far.
    Text stops growing once the first option is recorded.
    """
    text: str = ""
    options: list[Option] = Field(default_factory=list)

    @property
    def normalized_text(self) -> str:
        return " ".join(self.text.split())


class TokenizedLine(BaseModel):
    """Result of scanning one line for option markers."""
    leading_text: str = ""
    options: list[Option] = Field(default_factory=list)


# ─── Noise Filter Models ──────────────────────────────────────────────────────


class FilterResult(BaseModel):
    """Output of one noise-filter pass."""
    text: str = ""
    removed_count: int = Field(default=0, ge=0)
    removed_by_reason: dict[str, int] = Field(default_factory=dict)
    lines_in: int = Field(default=0, ge=0)
    lines_kept: int = Field(default=0, ge=0)


# ─── Positioned Input ─────────────────────────────────────────────────────────


class WordBox(BaseModel):
    """
    A position-tagged word from a PDF text layer or OCR engine.
    """
    text: str
    page_number: int = Field(default=1, ge=1)
    bbox: tuple[float, float, float, float] = Field(
        description="Bounding box as (x0, y0, x1, y1)"
    )

    @property
    def top(self) -> float:
        return self.bbox[1]

    @property
    def left(self) -> float:
        return self.bbox[0]


# ─── Result Models ────────────────────────────────────────────────────────────


class SourceMetadata(BaseModel):
    """Metadata about the source document."""
    name: str = ""
    source_file: str = ""
    source_type: SourceType = SourceType.TEXT
    mode: Optional[ExtractionMode] = None
    total_pages: int = 0
    file_hash: str = ""
    file_size_bytes: int = 0


class ExtractionStats(BaseModel):
    """Counters reported after an extraction run."""
    questions_found: int = 0
    options_detected: int = 0
    watermarks_filtered: int = 0
    filter_breakdown: dict[str, int] = Field(default_factory=dict)
    questions_without_options: int = 0
    header_entries_dropped: int = 0

    @computed_field
    @property
    def options_per_question(self) -> float:
        if self.questions_found == 0:
            return 0.0
        return round(self.options_detected / self.questions_found, 2)


class ExtractionResult(BaseModel):
    """
    Complete output of an extraction run.
    """
    source: SourceMetadata = Field(default_factory=SourceMetadata)
    extractor_version: str = __version__
    extracted_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    questions: dict[str, list[Option]] = Field(default_factory=dict)
    stats: ExtractionStats = Field(default_factory=ExtractionStats)

    def as_mapping(self) -> dict[str, list[tuple[str, str]]]:
        """Questions as plain ``{text: [(letter, body), ...]}``."""
        return {
            text: [opt.as_pair() for opt in options]
            for text, options in self.questions.items()
        }
