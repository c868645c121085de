"""
Adaptive section delivery for Focus Engine.

This module provides difficulty-ladder item selection, the timed section
state machine, full mock exam sequencing and a simulation harness.
"""

from .engine import (
    AnsweredRecord,
    InvalidAnswerError,
    SectionResult,
    SectionSession,
    SessionStateError,
    step_difficulty,
)
from .item_selection import (
    DEFAULT_DIFFICULTY,
    MAX_DIFFICULTY,
    MIN_DIFFICULTY,
    QuestionDescriptor,
    coerce_descriptor,
    select_next_question,
)
from .mock import MockOrchestrator, MockSession
from .stopping_rules import (
    REQUIRED_QUESTION_COUNTS,
    CompletionDecision,
    check_completion,
    required_count,
)
from .timer import SectionTimer

__all__ = [
    "QuestionDescriptor",
    "coerce_descriptor",
    "select_next_question",
    "MIN_DIFFICULTY",
    "MAX_DIFFICULTY",
    "DEFAULT_DIFFICULTY",
    "REQUIRED_QUESTION_COUNTS",
    "CompletionDecision",
    "check_completion",
    "required_count",
    "SectionTimer",
    "AnsweredRecord",
    "SectionResult",
    "SectionSession",
    "SessionStateError",
    "InvalidAnswerError",
    "step_difficulty",
    "MockOrchestrator",
    "MockSession",
]
