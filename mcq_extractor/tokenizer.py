"""
Option Tokenizer
================
Finds embedded option markers ("a.", "B)", "c:", "D]", "d®") in a line and
splits it into leading text plus an ordered list of lettered options.

Markers are found with an explicit left-to-right scan rather than a regex
so that tie-breaks between adjacent candidates are fixed: the first valid
marker wins and scanning resumes after its separator.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

from .models import Option, TokenizedLine

OPTION_LETTERS = frozenset("abcdABCD")
OPTION_SEPARATORS = frozenset(".:)]®")
OPTION_ORDER = "ABCD"


class OptionMarker(NamedTuple):
    """Location of one option marker within a line."""
    letter: str
    start: int
    end: int


def _is_boundary(line: str, index: int) -> bool:
    return index == 0 or line[index - 1].isspace()


def find_option_markers(line: str) -> list[OptionMarker]:
    """Return non-overlapping option markers, left to right."""
    markers: list[OptionMarker] = []
    i = 0
    last = len(line) - 1

    while i < last:
        if (
            line[i] in OPTION_LETTERS
            and line[i + 1] in OPTION_SEPARATORS
            and _is_boundary(line, i)
        ):
            markers.append(OptionMarker(line[i].upper(), i, i + 2))
            i += 2
        else:
            i += 1

    return markers


def tokenize_options(line: str) -> TokenizedLine:
    """
    Split ``line`` into the text before the first option marker and the
    options that follow it.

    Options with an empty body are dropped. With no markers the whole
    trimmed line is returned as leading text.
    """
    markers = find_option_markers(line)
    if not markers:
        return TokenizedLine(leading_text=line.strip())

    options: list[Option] = []
    for idx, marker in enumerate(markers):
        stop = markers[idx + 1].start if idx + 1 < len(markers) else len(line)
        body = line[marker.end:stop].strip()
        if body:
            options.append(Option(letter=marker.letter, body=body))

    return TokenizedLine(
        leading_text=line[:markers[0].start].strip(),
        options=options,
    )


def _next_letter(letter: str) -> Optional[str]:
    index = OPTION_ORDER.find(letter)
    if index == -1 or index + 1 >= len(OPTION_ORDER):
        return None
    return OPTION_ORDER[index + 1]


def match_single_option(line: str) -> Optional[Option]:
    """
    Match a line that is exactly one option: ``<letter><separator><body>``.

    The rest of the line is one body ("D. Both a. and b.") unless the next
    marker continues the letter sequence, as in ``a. x b. y``; such lines
    carry several options and return None.
    """
    stripped = line.strip()
    markers = find_option_markers(stripped)
    if not markers or markers[0].start != 0:
        return None

    first = markers[0]
    if len(markers) > 1 and markers[1].letter == _next_letter(first.letter):
        return None

    body = stripped[first.end:].strip()
    if not body:
        return None

    return Option(letter=first.letter, body=body)
