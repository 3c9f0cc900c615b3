"""
State Machine Parser
====================
Deterministic two-state automaton that segments cleaned worksheet text
into question records keyed by their statement text.

States:
    IDLE        no question open; lines are discarded
    COLLECTING  a question is open; lines extend its text or add options

Each step is a pure function of (state, record, line). The in-progress
record and the question map are passed explicitly, so independent runs
never share anything.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Iterable, NamedTuple, Optional

from .models import Option, QuestionRecord
from .tokenizer import match_single_option, tokenize_options

logger = logging.getLogger(__name__)

# ─── Anchor Patterns ──────────────────────────────────────────────────────────

# Matches "1.", "12)", "Q3:", "Q 4-", "Question 5." at start of line
QUESTION_START_PATTERN = re.compile(
    r"^\s*(?:(?:Question|Q)\s*)?\d+[.):\-]", re.IGNORECASE
)

# Continuation lines that are page/section furniture, not question text
HEADER_LINE_PATTERN = re.compile(r"^(?:page|section)\b", re.IGNORECASE)

# Normalized text must be longer than this to be kept
MIN_QUESTION_LENGTH = 8

# Plain continuation lines must be longer than this to extend the text
MIN_CONTINUATION_LENGTH = 5

QuestionMap = dict[str, list[Option]]


class SegmenterState(Enum):
    """Automaton states."""
    IDLE = "IDLE"
    COLLECTING = "COLLECTING"


class Transition(NamedTuple):
    """Result of feeding one line to the automaton."""
    state: SegmenterState
    record: Optional[QuestionRecord]
    flushed: Optional[QuestionRecord] = None


def _append_text(record: QuestionRecord, text: str) -> QuestionRecord:
    joined = f"{record.text} {text}" if record.text else text
    return record.model_copy(update={"text": joined})


def _append_options(
    record: QuestionRecord, options: list[Option]
) -> QuestionRecord:
    return record.model_copy(update={"options": record.options + options})


def _start_question(line: str, match: re.Match) -> QuestionRecord:
    remainder = line[match.end():].strip()
    tokens = tokenize_options(remainder)
    if tokens.options:
        return QuestionRecord(text=tokens.leading_text, options=tokens.options)
    return QuestionRecord(text=remainder)


def _continue_question(record: QuestionRecord, line: str) -> QuestionRecord:
    tokens = tokenize_options(line)

    if tokens.options:
        if not record.options and tokens.leading_text:
            record = _append_text(record, tokens.leading_text)
        return _append_options(record, tokens.options)

    if (
        not record.options
        and len(line) > MIN_CONTINUATION_LENGTH
        and not HEADER_LINE_PATTERN.match(line)
    ):
        return _append_text(record, line)

    return record


def transition(
    state: SegmenterState,
    record: Optional[QuestionRecord],
    line: str,
) -> Transition:
    """
    Feed one trimmed, non-empty line to the automaton.

    The strict single-option check runs before question-start detection,
    so an option line is never mistaken for a new question.
    """
    if state is SegmenterState.COLLECTING:
        option = match_single_option(line)
        if option is not None:
            return Transition(
                SegmenterState.COLLECTING,
                _append_options(record, [option]),
            )

    start = QUESTION_START_PATTERN.match(line)
    if start:
        return Transition(
            SegmenterState.COLLECTING,
            _start_question(line, start),
            flushed=record,
        )

    if state is SegmenterState.IDLE:
        return Transition(SegmenterState.IDLE, None)

    return Transition(
        SegmenterState.COLLECTING,
        _continue_question(record, line),
    )


def flush_record(
    questions: QuestionMap, record: Optional[QuestionRecord]
) -> QuestionMap:
    """
    Insert a finished record into ``questions``.

    Records whose normalized text is too short are discarded. An equal key
    is overwritten: the later question's options replace the earlier ones.
    """
    if record is None:
        return questions

    key = record.normalized_text
    if len(key) <= MIN_QUESTION_LENGTH:
        logger.debug(f"Discarding short question fragment: {key!r}")
        return questions

    if key in questions:
        logger.warning(f"Duplicate question text overwritten: {key!r}")

    questions[key] = list(record.options)
    return questions


def segment_lines(lines: Iterable[str]) -> QuestionMap:
    """Run the automaton over already-trimmed, non-empty lines."""
    questions: QuestionMap = {}
    state = SegmenterState.IDLE
    record: Optional[QuestionRecord] = None

    for line in lines:
        state, record, flushed = transition(state, record, line)
        flush_record(questions, flushed)

    flush_record(questions, record)
    return questions


def segment_questions(text: str) -> QuestionMap:
    """
    Parse cleaned text into ``{question text: [Option, ...]}`` in document
    order. Text before the first question-start line is ignored.
    """
    lines = [line.strip() for line in text.split("\n")]
    questions = segment_lines(line for line in lines if line)
    logger.info(f"Segmented {len(questions)} questions")
    return questions
