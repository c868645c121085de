"""
Tests for section termination rules.

Tests cover:
- Required counts per section
- Each stop reason in isolation
- Priority order when several rules hold at once
- Diagnostics and argument validation
"""
import pytest

from libs.domain_types import Section, StopReason

from focus_engine.core.adaptive.stopping_rules import (
    REQUIRED_QUESTION_COUNTS,
    check_completion,
    required_count,
)


class TestRequiredCount:
    """Tests for required_count()."""

    def test_counts(self):
        assert required_count(Section.QUANTITATIVE) == 21
        assert required_count(Section.VERBAL) == 23
        assert required_count(Section.DATA_INSIGHTS) == 20

    def test_accepts_string_label(self):
        assert required_count("Verbal") == 23

    def test_every_section_covered(self):
        assert set(REQUIRED_QUESTION_COUNTS) == set(Section)


class TestCheckCompletion:
    """Tests for check_completion()."""

    def test_continue(self):
        decision = check_completion(items_answered=5, required=21, remaining_seconds=100)
        assert decision.should_complete is False
        assert decision.reason is None

    def test_required_count(self):
        decision = check_completion(items_answered=21, required=21, remaining_seconds=100)
        assert decision.should_complete is True
        assert decision.reason is StopReason.REQUIRED_COUNT

    def test_timeout(self):
        decision = check_completion(items_answered=10, required=21, remaining_seconds=0)
        assert decision.reason is StopReason.TIMEOUT

    def test_negative_remaining_is_timeout(self):
        decision = check_completion(items_answered=0, required=21, remaining_seconds=-3)
        assert decision.reason is StopReason.TIMEOUT

    def test_pool_exhausted(self):
        decision = check_completion(
            items_answered=4, required=21, remaining_seconds=100, pool_exhausted=True
        )
        assert decision.reason is StopReason.POOL_EXHAUSTED

    def test_teardown_wins(self):
        decision = check_completion(
            items_answered=21,
            required=21,
            remaining_seconds=0,
            pool_exhausted=True,
            torn_down=True,
        )
        assert decision.reason is StopReason.TEARDOWN

    def test_required_count_beats_timeout(self):
        decision = check_completion(items_answered=21, required=21, remaining_seconds=0)
        assert decision.reason is StopReason.REQUIRED_COUNT

    def test_timeout_beats_exhaustion(self):
        decision = check_completion(
            items_answered=3, required=21, remaining_seconds=0, pool_exhausted=True
        )
        assert decision.reason is StopReason.TIMEOUT

    def test_details(self):
        decision = check_completion(items_answered=2, required=20, remaining_seconds=30)
        assert decision.details == {
            "items_answered": 2,
            "required_count": 20,
            "remaining_seconds": 30,
            "pool_exhausted": False,
            "torn_down": False,
        }

    @pytest.mark.parametrize("answered,required", [(-1, 21), (0, -1)])
    def test_negative_counts_rejected(self, answered, required):
        with pytest.raises(ValueError):
            check_completion(items_answered=answered, required=required, remaining_seconds=1)
