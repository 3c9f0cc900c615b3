"""
Result Assembler
================
Final validation, statistics and output formatting.

After segmentation:
    - Drops entries whose text contains "page" or "section"
      (headers that slipped past the line-level checks)
    - Counts questions, options and filtered watermark lines
    - Renders the question map as a numbered list, a Python literal,
      a Python module or JSON
"""

from __future__ import annotations

import json
import logging
from enum import Enum

from .models import ExtractionStats, FilterResult, Option

logger = logging.getLogger(__name__)

HEADER_KEYWORDS = ("page", "section")

PYTHON_MODULE_HEADER = (
    "# Extracted Questions from Worksheet\n"
    '# Format: {"question": [("A", "option"), ("B", "option"), ...]}\n'
)


class OutputFormat(str, Enum):
    """Supported renderings of a question map."""
    LIST = "list"
    DICT = "dict"
    JSON = "json"
    PY = "py"


OUTPUT_FILENAMES = {
    OutputFormat.LIST: "extracted_questions.txt",
    OutputFormat.DICT: "extracted_questions_dict.txt",
    OutputFormat.JSON: "extracted_questions.json",
    OutputFormat.PY: "extracted_questions.py",
}


def is_header_entry(question: str) -> bool:
    lowered = question.lower()
    return any(keyword in lowered for keyword in HEADER_KEYWORDS)


def drop_header_entries(
    questions: dict[str, list[Option]],
) -> dict[str, list[Option]]:
    """Remove page/section headers that were segmented as questions."""
    return {
        text: options
        for text, options in questions.items()
        if not is_header_entry(text)
    }


# ─── Formatters ───────────────────────────────────────────────────────────────


def _quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def format_list(questions: dict[str, list[Option]]) -> str:
    """Numbered questions separated by blank lines."""
    return "\n\n".join(
        f"{idx}. {text}" for idx, text in enumerate(questions, start=1)
    )


def format_dict(questions: dict[str, list[Option]]) -> str:
    """Python-literal mapping of question text to (letter, body) tuples."""
    if not questions:
        return "{}"

    entries = []
    for text, options in questions.items():
        pairs = ", ".join(
            f"({_quote(opt.letter)}, {_quote(opt.body)})" for opt in options
        )
        entries.append(f"    {_quote(text)}: [{pairs}]")

    return "{\n" + ",\n".join(entries) + "\n}"


def format_python_module(questions: dict[str, list[Option]]) -> str:
    """A standalone Python module assigning the mapping to ``questions``."""
    return f"{PYTHON_MODULE_HEADER}\nquestions = {format_dict(questions)}\n"


def format_json(questions: dict[str, list[Option]]) -> str:
    """JSON object of question text to [letter, body] pairs."""
    data = {
        text: [list(opt.as_pair()) for opt in options]
        for text, options in questions.items()
    }
    return json.dumps(data, indent=2, ensure_ascii=False)


_RENDERERS = {
    OutputFormat.LIST: format_list,
    OutputFormat.DICT: format_dict,
    OutputFormat.JSON: format_json,
    OutputFormat.PY: format_python_module,
}


def render(
    questions: dict[str, list[Option]], fmt: OutputFormat | str
) -> str:
    """Render ``questions`` in the requested output format."""
    return _RENDERERS[OutputFormat(fmt)](questions)


# ─── Assembler ────────────────────────────────────────────────────────────────


class ResultAssembler:
    """
    Cleans a segmented question map and produces run statistics.
    """

    def assemble(
        self,
        questions: dict[str, list[Option]],
        filter_result: FilterResult,
    ) -> tuple[dict[str, list[Option]], ExtractionStats]:
        """
        Drop header entries and compute statistics.

        Args:
            questions: Segmented question map, in document order.
            filter_result: Noise-filter output for the same run.

        Returns:
            The cleaned question map and its ExtractionStats.
        """
        cleaned = drop_header_entries(questions)

        stats = ExtractionStats(
            questions_found=len(cleaned),
            options_detected=sum(len(opts) for opts in cleaned.values()),
            watermarks_filtered=filter_result.removed_count,
            filter_breakdown=dict(filter_result.removed_by_reason),
            questions_without_options=sum(
                1 for opts in cleaned.values() if not opts
            ),
            header_entries_dropped=len(questions) - len(cleaned),
        )

        if not cleaned:
            logger.warning("No questions extracted")

        logger.info("=" * 60)
        logger.info("EXTRACTION REPORT")
        logger.info("=" * 60)
        logger.info(f"Questions Found: {stats.questions_found}")
        logger.info(f"Options Detected: {stats.options_detected}")
        logger.info(f"Watermarks Filtered: {stats.watermarks_filtered}")
        logger.info(
            f"Questions Without Options: {stats.questions_without_options}"
        )
        if stats.header_entries_dropped:
            logger.info(
                f"Header Entries Dropped: {stats.header_entries_dropped}"
            )

        if stats.filter_breakdown:
            logger.info("Filter Breakdown:")
            for reason, count in sorted(stats.filter_breakdown.items()):
                logger.info(f"  • {reason}: {count}")

        logger.info("=" * 60)

        return cleaned, stats
