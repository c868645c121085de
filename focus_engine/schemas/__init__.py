"""
Pydantic schemas for engine result payloads.
"""
from .results import (
    AnsweredRecordPayload,
    MockResultPayload,
    SectionResultPayload,
    SectionScorePayload,
)

__all__ = [
    "AnsweredRecordPayload",
    "MockResultPayload",
    "SectionResultPayload",
    "SectionScorePayload",
]
