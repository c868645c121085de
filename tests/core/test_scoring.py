"""
Tests for section and total scoring.

Tests cover:
- Difficulty-weighted accuracy
- Accuracy -> section scaled score step function (breakpoints, no interpolation)
- Section scores -> total via the average lookup table
- Linear quick score for a single section
- Sum-of-sections total chart with clamping
- Mock scoring with missing sections
- Difficulty breakdown and practice percentage
"""
from dataclasses import dataclass

import pytest

from libs.domain_types import Section

from focus_engine.core.scoring import (
    SECTION_SCORE_THRESHOLDS,
    TOTAL_SCORE_TABLE,
    accuracy_from_raw,
    difficulty_breakdown,
    practice_percent_score,
    quick_scaled_score,
    round_half_up,
    score_answers,
    score_sections,
    section_scaled_score,
    total_score_from_section_sum,
    total_scaled_score,
    weighted_accuracy,
    weighted_raw_scores,
)


@dataclass(frozen=True)
class Answer:
    difficulty: int
    is_correct: bool


def answers(*pairs):
    return [Answer(d, c) for d, c in pairs]


class TestRoundHalfUp:
    """Tests for round_half_up()."""

    @pytest.mark.parametrize(
        "value,expected",
        [(75.5, 76), (74.5, 75), (75.49, 75), (82.5, 83), (60.0, 60), (89.999, 90)],
    )
    def test_rounding(self, value, expected):
        assert round_half_up(value) == expected


class TestWeightedAccuracy:
    """Tests for difficulty weighting."""

    def test_raw_scores(self):
        assert weighted_raw_scores(answers((3, True), (5, False), (1, True))) == (4, 9)

    def test_hard_correct_weighs_more(self):
        hard_right = weighted_accuracy(answers((5, True), (1, False)))
        easy_right = weighted_accuracy(answers((1, True), (5, False)))
        assert hard_right > easy_right
        assert hard_right == pytest.approx(500 / 6)
        assert easy_right == pytest.approx(100 / 6)

    def test_from_raw(self):
        assert accuracy_from_raw(60, 80) == pytest.approx(75)

    def test_empty(self):
        assert weighted_accuracy([]) == pytest.approx(0.0)


class TestSectionScaledScore:
    """Tests for the accuracy step function."""

    @pytest.mark.parametrize(
        "accuracy,expected",
        [
            (100, 90),
            (95.0, 90),
            (94.9, 89),
            (90, 89),
            (89.99, 87),
            (75, 83),
            (60, 79),
            (50, 77),
            (10, 64),
            (9.9, 60),
            (0, 60),
        ],
    )
    def test_breakpoints(self, accuracy, expected):
        assert section_scaled_score(accuracy) == expected

    def test_every_threshold_is_inclusive(self):
        for minimum, scaled in SECTION_SCORE_THRESHOLDS:
            assert section_scaled_score(minimum) == scaled

    def test_monotonic(self):
        scores = [section_scaled_score(a / 10) for a in range(0, 1001)]
        assert scores == sorted(scores)
        assert min(scores) == 60
        assert max(scores) == 90

    def test_weighted_example(self):
        # raw 60 of 80 -> 75% -> 83
        summary = score_answers(answers(*([(5, True)] * 12 + [(5, False)] * 4)))
        assert summary.accuracy == pytest.approx(75.0)
        assert summary.scaled_score == 83
        assert summary.correct_count == 12
        assert summary.total_count == 16


class TestTotalScaledScore:
    """Tests for the average -> total lookup."""

    def test_example(self):
        assert total_scaled_score([81, 83, 85]) == 685

    def test_extremes(self):
        assert total_scaled_score([90, 90, 90]) == 785
        assert total_scaled_score([60, 60, 60]) == 455

    def test_average_rounds_half_up(self):
        # 80.5 -> 81
        assert total_scaled_score([80, 81]) == 665

    def test_below_table_uses_lowest_entry(self):
        assert total_scaled_score([40, 50]) == 455

    def test_every_key_maps_to_itself(self):
        for key, value in TOTAL_SCORE_TABLE.items():
            assert total_scaled_score([key]) == value

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            total_scaled_score([])


class TestQuickScaledScore:
    """Tests for the linear single-section score."""

    def test_all_correct(self):
        assert quick_scaled_score(answers((3, True), (4, True))) == 90

    def test_all_incorrect(self):
        assert quick_scaled_score(answers((3, False), (4, False))) == 60

    def test_empty(self):
        assert quick_scaled_score([]) == 60

    def test_weighted_fraction(self):
        # 3 / (3 + 5) -> 60 + 0.375 * 30 = 71.25 -> 71
        assert quick_scaled_score(answers((3, True), (5, False))) == 71

    def test_half_rounds_up(self):
        # 1 / 4 -> 67.5 -> 68
        assert quick_scaled_score(answers((1, True), (3, False))) == 68


class TestTotalScoreFromSectionSum:
    """Tests for the sum-of-sections chart."""

    @pytest.mark.parametrize(
        "scores,expected",
        [
            ((60, 60, 60), 205),
            ((70, 70, 76), 565),
            ((72, 72, 73), 565),
            ((80, 80, 80), 685),
            ((88, 87, 87), 785),
            ((90, 90, 90), 805),
        ],
    )
    def test_chart(self, scores, expected):
        assert total_score_from_section_sum(*scores) == expected

    def test_section_scores_rounded_first(self):
        # 80.5 + 80.5 + 79.4 -> 81 + 81 + 79 = 241
        assert total_score_from_section_sum(80.5, 80.5, 79.4) == 685

    def test_clamped(self):
        assert total_score_from_section_sum(50, 50, 50) == 205
        assert total_score_from_section_sum(95, 95, 95) == 805


class TestScoreSections:
    """Tests for combined mock scoring."""

    def test_all_sections(self):
        result = score_sections(
            {
                Section.QUANTITATIVE: answers((3, True), (4, True)),
                Section.VERBAL: answers((3, True), (4, False)),
                Section.DATA_INSIGHTS: answers((3, False)),
            }
        )
        assert result.per_section[Section.QUANTITATIVE].scaled_score == 90
        # 3/7 = 42.9% -> 74
        assert result.per_section[Section.VERBAL].scaled_score == 74
        assert result.per_section[Section.DATA_INSIGHTS].scaled_score == 60
        # (90 + 74 + 60) / 3 = 74.67 -> 75 -> 605
        assert result.total_scaled_score == 605

    def test_missing_section_counts_as_minimum(self):
        result = score_sections(
            {
                Section.QUANTITATIVE: answers((5, True)),
                Section.VERBAL: answers((5, True)),
            }
        )
        assert Section.DATA_INSIGHTS not in result.per_section
        # (90 + 90 + 60) / 3 = 80 -> 655
        assert result.total_scaled_score == 655

    def test_empty_section_scores_minimum(self):
        result = score_sections({Section.VERBAL: []}, sections=[Section.VERBAL])
        summary = result.per_section[Section.VERBAL]
        assert summary.scaled_score == 60
        assert summary.total_count == 0
        assert result.total_scaled_score == 455

    def test_explicit_section_subset(self):
        result = score_sections(
            {Section.QUANTITATIVE: answers((3, True))}, sections=[Section.QUANTITATIVE]
        )
        assert result.total_scaled_score == 785


class TestDifficultyBreakdown:
    """Tests for difficulty_breakdown()."""

    def test_counts(self):
        buckets = difficulty_breakdown(
            answers((1, True), (3, False), (3, True), (5, True), (3, True))
        )
        assert [b.difficulty for b in buckets] == [1, 2, 3, 4, 5]
        by_level = {b.difficulty: (b.attempted, b.correct) for b in buckets}
        assert by_level == {1: (1, 1), 2: (0, 0), 3: (3, 2), 4: (0, 0), 5: (1, 1)}

    def test_empty(self):
        assert all(b.attempted == 0 for b in difficulty_breakdown([]))


class TestPracticePercentScore:
    """Tests for practice_percent_score()."""

    def test_percent(self):
        assert practice_percent_score([True, False, True, True]) == pytest.approx(75.0)

    def test_empty(self):
        assert practice_percent_score([]) == pytest.approx(0.0)
