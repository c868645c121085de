"""Shared domain types for the focus-engine packages.

This package is the single source of truth for the enums used by the
adaptive delivery engine and by the surrounding content/storage code that
consumes its result payloads.

Usage:
    from libs.domain_types import Section, SessionStatus
"""

import enum


class Section(str, enum.Enum):
    """Scored divisions of the exam.

    Values match the test-type labels persisted by the history store.
    """

    QUANTITATIVE = "Quant"
    VERBAL = "Verbal"
    DATA_INSIGHTS = "Data Insights"


class SessionStatus(str, enum.Enum):
    """Lifecycle status of a section or mock session."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class StopReason(str, enum.Enum):
    """Why a section session reached COMPLETED."""

    REQUIRED_COUNT = "required_count"
    TIMEOUT = "timeout"
    POOL_EXHAUSTED = "pool_exhausted"
    TEARDOWN = "teardown"


# Test-type label for a full mock exam (all sections in sequence).
FULL_MOCK_TEST_TYPE = "Full Mock Exam"


__all__ = [
    "Section",
    "SessionStatus",
    "StopReason",
    "FULL_MOCK_TEST_TYPE",
]
