"""
Pydantic schemas for completion payloads handed to the history store.

Field names serialize in camelCase (``model_dump(by_alias=True)``) to match
the documents the surrounding product already stores.
"""
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from libs.domain_types import FULL_MOCK_TEST_TYPE

if TYPE_CHECKING:
    from focus_engine.core.adaptive.engine import AnsweredRecord, SectionResult
    from focus_engine.core.adaptive.mock import MockSession


class _PayloadModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class AnsweredRecordPayload(_PayloadModel):
    """Schema for one submitted answer."""

    question_id: Any = Field(..., description="Opaque question id")
    difficulty: int = Field(..., ge=1, le=5, description="Difficulty at answer time")
    is_correct: bool = Field(..., description="Result of the external grading step")
    answered_at: datetime = Field(..., description="Submission timestamp (UTC)")

    @classmethod
    def from_record(cls, record: "AnsweredRecord") -> "AnsweredRecordPayload":
        return cls(
            question_id=record.question_id,
            difficulty=record.difficulty,
            is_correct=record.is_correct,
            answered_at=record.answered_at,
        )


class SectionResultPayload(_PayloadModel):
    """Schema for a completed section, as persisted to test history."""

    test_type: str = Field(..., description="Section label (Quant, Verbal, Data Insights)")
    answers: List[AnsweredRecordPayload] = Field(
        default_factory=list, description="Answers in submission order"
    )
    score: int = Field(..., ge=60, le=90, description="Section score estimate (60-90)")
    time_taken_seconds: int = Field(..., ge=0, description="Seconds used of the budget")
    seen_question_ids: List[Any] = Field(
        default_factory=list,
        description="Question ids first shown during this section",
    )
    stop_reason: Optional[str] = Field(None, description="Why the section ended")

    @classmethod
    def from_section_result(cls, result: "SectionResult") -> "SectionResultPayload":
        return cls(
            test_type=result.section.value,
            answers=[AnsweredRecordPayload.from_record(r) for r in result.history],
            score=result.score_estimate,
            time_taken_seconds=result.time_taken_seconds,
            seen_question_ids=list(result.seen_question_ids),
            stop_reason=result.stop_reason.value if result.stop_reason else None,
        )


class SectionScorePayload(_PayloadModel):
    """Schema for the bucketed score of one section within a mock."""

    accuracy: float = Field(..., ge=0.0, le=100.0)
    scaled_score: int = Field(..., ge=60, le=90)
    correct_count: int = Field(..., ge=0)
    total_count: int = Field(..., ge=0)


class MockResultPayload(_PayloadModel):
    """Schema for a completed full mock exam."""

    test_type: str = Field(FULL_MOCK_TEST_TYPE, description="Always 'Full Mock Exam'")
    score: int = Field(..., description="Total scaled score")
    sections: List[SectionResultPayload] = Field(default_factory=list)
    section_scores: Dict[str, SectionScorePayload] = Field(default_factory=dict)
    time_taken_seconds: int = Field(..., ge=0, description="Sum of section times")

    @classmethod
    def from_mock_session(cls, mock: "MockSession") -> "MockResultPayload":
        if mock.score is None:
            raise ValueError("Mock session has not been finalized")
        return cls(
            score=mock.score.total_scaled_score,
            sections=[
                SectionResultPayload.from_section_result(r) for r in mock.section_results
            ],
            section_scores={
                section.value: SectionScorePayload(
                    accuracy=s.accuracy,
                    scaled_score=s.scaled_score,
                    correct_count=s.correct_count,
                    total_count=s.total_count,
                )
                for section, s in mock.score.per_section.items()
            },
            time_taken_seconds=mock.time_taken_seconds,
        )

