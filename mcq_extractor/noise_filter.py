"""
Noise Filter
============
Removes watermark and boilerplate lines from raw extracted text before
question parsing.

Two passes over the document:
    1. Frequency table of every (lowercased, trimmed) line in the input.
    2. Per-line checks, in order: keyword → repeated → short all-caps.

A line repeated across the whole document is presumed to be a stamped
header/footer, so the frequency table must be built before any line
is judged.
"""

from __future__ import annotations

import logging
from collections import Counter

from .models import FilterReason, FilterResult

logger = logging.getLogger(__name__)

# Substring match against the lowercased line, not whole words
WATERMARK_KEYWORDS = (
    "watermark",
    "copy",
    "sample",
    "preview",
    "demo",
    "trial",
    "confidential",
    "draft",
)

# Lines shorter than this (after trimming) are dropped without counting
MIN_LINE_LENGTH = 2

# Only lines longer than this take part in the frequency table
FREQUENCY_MIN_LENGTH = 3

# Exclusive bounds on the untrimmed length of an all-caps stamp
CAPS_MIN_LENGTH = 4
CAPS_MAX_LENGTH = 25


def repeat_threshold(sensitivity: float) -> float:
    """Occurrence count above which a line is treated as a watermark."""
    return max(2, 5 * sensitivity)


def line_frequencies(lines: list[str]) -> Counter:
    """Count each lowercased, trimmed line longer than three characters."""
    counts: Counter = Counter()
    for line in lines:
        key = line.strip().lower()
        if len(key) > FREQUENCY_MIN_LENGTH:
            counts[key] += 1
    return counts


def classify_line(
    line: str,
    frequencies: Counter,
    threshold: float,
) -> FilterReason | None:
    """Return why ``line`` is noise, or None when it should be kept."""
    lowered = line.strip().lower()

    if any(keyword in lowered for keyword in WATERMARK_KEYWORDS):
        return FilterReason.KEYWORD

    if frequencies.get(lowered, 0) > threshold:
        return FilterReason.REPEATED

    # No lowercase letters; lines without any letters count too
    if line == line.upper() and CAPS_MIN_LENGTH < len(line) < CAPS_MAX_LENGTH:
        return FilterReason.ALL_CAPS

    return None


def filter_watermarks(text: str, sensitivity: float = 0.5) -> FilterResult:
    """
    Drop watermark/noise lines from ``text``.

    Args:
        text: Raw extracted text, one physical line per newline.
        sensitivity: 0.0 (aggressive, repeat threshold 2) to
            1.0 (lenient, repeat threshold 5).

    Returns:
        FilterResult with the kept lines (original text, original order)
        and the number of lines removed as noise.

    Raises:
        ValueError: If sensitivity is outside [0, 1].
    """
    if not 0.0 <= sensitivity <= 1.0:
        raise ValueError(
            f"sensitivity must be between 0 and 1, got {sensitivity}"
        )

    lines = text.split("\n") if text else []
    frequencies = line_frequencies(lines)
    threshold = repeat_threshold(sensitivity)

    kept: list[str] = []
    removed: Counter = Counter()

    for line in lines:
        if len(line.strip()) < MIN_LINE_LENGTH:
            continue

        reason = classify_line(line, frequencies, threshold)
        if reason is not None:
            removed[reason.value] += 1
            continue

        kept.append(line)

    result = FilterResult(
        text="\n".join(kept),
        removed_count=sum(removed.values()),
        removed_by_reason=dict(removed),
        lines_in=len(lines),
        lines_kept=len(kept),
    )

    logger.debug(
        f"Noise filter kept {result.lines_kept}/{result.lines_in} lines "
        f"(threshold {threshold:g}, removed {dict(removed)})"
    )

    return result
