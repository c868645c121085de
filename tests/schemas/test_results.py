"""
Tests for completion payload schemas.

Tests cover:
- camelCase serialization of section and mock payloads
- Construction from engine results
- Bounds validation
"""
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from libs.domain_types import FULL_MOCK_TEST_TYPE, Section, StopReason

from focus_engine.core.adaptive.engine import AnsweredRecord, SectionResult
from focus_engine.core.adaptive.mock import MockSession
from focus_engine.core.scoring import score_sections
from focus_engine.schemas.results import MockResultPayload, SectionResultPayload

ANSWERED_AT = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)


def make_result(section=Section.VERBAL, correct=(True, False)) -> SectionResult:
    history = tuple(
        AnsweredRecord(
            question_id=f"{section.value}-{i}",
            difficulty=3,
            is_correct=c,
            answered_at=ANSWERED_AT,
        )
        for i, c in enumerate(correct)
    )
    return SectionResult(
        section=section,
        history=history,
        score_estimate=75,
        time_taken_seconds=120,
        stop_reason=StopReason.TIMEOUT,
        seen_question_ids=tuple(r.question_id for r in history),
        difficulty_trajectory=(3, 4, 3),
        session_id="s1",
    )


class TestSectionResultPayload:
    def test_from_section_result(self):
        payload = SectionResultPayload.from_section_result(make_result())
        assert payload.test_type == "Verbal"
        assert payload.score == 75
        assert payload.stop_reason == "timeout"
        assert [a.question_id for a in payload.answers] == ["Verbal-0", "Verbal-1"]

    def test_camel_case_dump(self):
        data = SectionResultPayload.from_section_result(make_result()).model_dump(
            by_alias=True
        )
        assert set(data) == {
            "testType",
            "answers",
            "score",
            "timeTakenSeconds",
            "seenQuestionIds",
            "stopReason",
        }
        assert data["timeTakenSeconds"] == 120
        assert data["answers"][0]["isCorrect"] is True
        assert data["answers"][0]["answeredAt"] == ANSWERED_AT

    def test_score_bounds(self):
        with pytest.raises(ValidationError):
            SectionResultPayload(test_type="Quant", score=95, time_taken_seconds=0)

    def test_populate_by_alias(self):
        payload = SectionResultPayload(testType="Quant", score=60, timeTakenSeconds=5)
        assert payload.time_taken_seconds == 5


class TestMockResultPayload:
    def test_from_mock_session(self):
        results = [make_result(Section.QUANTITATIVE), make_result(Section.VERBAL)]
        mock = MockSession(
            sections=[Section.QUANTITATIVE, Section.VERBAL, Section.DATA_INSIGHTS],
            section_results=results,
        )
        mock.score = score_sections(
            {r.section: r.history for r in results}, sections=mock.sections
        )

        payload = MockResultPayload.from_mock_session(mock)

        assert payload.test_type == FULL_MOCK_TEST_TYPE
        assert payload.score == mock.score.total_scaled_score
        assert payload.time_taken_seconds == 240
        assert [s.test_type for s in payload.sections] == ["Quant", "Verbal"]
        assert set(payload.section_scores) == {"Quant", "Verbal"}
        assert payload.section_scores["Quant"].accuracy == pytest.approx(50.0)

        data = payload.model_dump(by_alias=True)
        assert data["testType"] == "Full Mock Exam"
        assert "sectionScores" in data
        assert data["sectionScores"]["Verbal"]["scaledScore"] == 77

    def test_requires_finalized_mock(self):
        with pytest.raises(ValueError):
            MockResultPayload.from_mock_session(MockSession(sections=[Section.VERBAL]))
