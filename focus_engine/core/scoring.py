"""
Scoring for adaptive sections and full mock exams.

Two independent views of a section score exist side by side:

Bucketed (mock exam path):
    accuracy = Σ difficulty of correct answers / Σ difficulty of all answers × 100
    scaled   = step function of accuracy onto [60, 90] (SECTION_SCORE_THRESHOLDS)
    total    = TOTAL_SCORE_TABLE[highest key ≤ round(mean of section scaled scores)]

Linear (single-section quick path):
    scaled = round(60 + (Σ correct difficulty / Σ difficulty) × 30), clamped to [60, 90]

A third total-score chart keyed on the sum of the three section scores
(205-805) is exposed as ``total_score_from_section_sum``; the mock path uses
the bucketed model.

Weighting by difficulty means a correct hard question earns more than a
correct easy one, and an incorrect easy one costs less of the maximum than
an incorrect hard one.
"""

import logging
import math
from dataclasses import dataclass
from typing import (
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
)

from libs.domain_types import Section

logger = logging.getLogger(__name__)

# Section scaled score band
SECTION_SCORE_MIN = 60
SECTION_SCORE_MAX = 90

# Descending (minimum accuracy %, scaled score). First match wins.
SECTION_SCORE_THRESHOLDS: Tuple[Tuple[float, int], ...] = (
    (95, 90),
    (90, 89),
    (85, 87),
    (80, 85),
    (75, 83),
    (70, 81),
    (60, 79),
    (50, 77),
    (40, 74),
    (30, 71),
    (20, 67),
    (10, 64),
)

# Average section scaled score -> total scaled score
TOTAL_SCORE_TABLE: Dict[int, int] = {
    90: 785, 89: 765, 88: 745, 87: 725, 86: 715, 85: 705,
    84: 695, 83: 685, 82: 675, 81: 665, 80: 655, 79: 645,
    78: 635, 77: 625, 76: 615, 75: 605, 74: 595, 73: 585,
    72: 575, 71: 565, 70: 555, 69: 545, 68: 535, 67: 525,
    66: 515, 65: 505, 64: 495, 63: 485, 62: 475, 61: 465,
    60: 455,
}  # fmt: skip
TOTAL_SCORE_FLOOR = TOTAL_SCORE_TABLE[min(TOTAL_SCORE_TABLE)]

# Sum of three section scores -> total scaled score (205-805)
SECTION_SUM_MIN = 180
SECTION_SUM_MAX = 270
SECTION_SUM_CHART: Dict[int, int] = {
    **{s: 205 + (s - 180) * 10 for s in range(180, 217)},  # 205 .. 565
    217: 565, 218: 575, 219: 575, 220: 585, 221: 585, 222: 595,
    223: 595, 224: 605, 225: 605, 226: 615, 227: 615, 228: 625,
    229: 625, 230: 635, 231: 635, 232: 645, 233: 645, 234: 655,
    235: 655, 236: 665, 237: 665, 238: 675, 239: 675, 240: 685,
    241: 685, 242: 695, 243: 695, 244: 705, 245: 705, 246: 715,
    247: 715, 248: 725, 249: 725, 250: 735, 251: 735, 252: 745,
    253: 745, 254: 755, 255: 755, 256: 765, 257: 765, 258: 775,
    259: 775, 260: 785, 261: 785, 262: 785, 263: 795, 264: 795,
    265: 795, 266: 805, 267: 805, 268: 805, 269: 805, 270: 805,
}  # fmt: skip
TOTAL_SCORE_MIN = SECTION_SUM_CHART[SECTION_SUM_MIN]
TOTAL_SCORE_MAX = SECTION_SUM_CHART[SECTION_SUM_MAX]


class GradedAnswer(Protocol):
    """Anything carrying a difficulty weight and a correctness flag."""

    @property
    def difficulty(self) -> int:
        ...

    @property
    def is_correct(self) -> bool:
        ...


@dataclass(frozen=True)
class SectionScore:
    """Score summary for one section.

    Attributes:
        accuracy: Difficulty-weighted accuracy in percent (0-100).
        scaled_score: Bucketed scaled score (60-90).
        correct_count: Number of correct answers (unweighted).
        total_count: Number of answers.
    """

    accuracy: float
    scaled_score: int
    correct_count: int
    total_count: int


@dataclass(frozen=True)
class ScoreResult:
    """Per-section scores plus the total scaled score for a mock exam."""

    per_section: Mapping[Section, SectionScore]
    total_scaled_score: int


@dataclass(frozen=True)
class DifficultyBucket:
    """Attempted/correct counts for one difficulty level."""

    difficulty: int
    attempted: int = 0
    correct: int = 0


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up, as the product UI does."""
    return int(math.floor(value + 0.5))


def weighted_raw_scores(answers: Iterable[GradedAnswer]) -> Tuple[int, int]:
    """
    Return (raw_earned, raw_max) for a set of answers.

    raw_earned sums the difficulty of correct answers; raw_max sums the
    difficulty of every answer.
    """
    raw_earned = 0
    raw_max = 0
    for answer in answers:
        raw_max += answer.difficulty
        if answer.is_correct:
            raw_earned += answer.difficulty
    return raw_earned, raw_max


def accuracy_from_raw(raw_earned: float, raw_max: float) -> float:
    """Weighted accuracy in percent; 0.0 when there is nothing to score."""
    if raw_max <= 0:
        return 0.0
    return raw_earned / raw_max * 100


def weighted_accuracy(answers: Iterable[GradedAnswer]) -> float:
    """Difficulty-weighted accuracy in percent (0-100)."""
    return accuracy_from_raw(*weighted_raw_scores(answers))


def section_scaled_score(accuracy: float) -> int:
    """
    Map a weighted accuracy percentage to a section scaled score.

    Step function over SECTION_SCORE_THRESHOLDS; no interpolation between
    breakpoints (94.9 -> 89, 95.0 -> 90, 9.9 -> 60).
    """
    for minimum, scaled in SECTION_SCORE_THRESHOLDS:
        if accuracy >= minimum:
            return scaled
    return SECTION_SCORE_MIN


def total_scaled_score(section_scores: Iterable[float]) -> int:
    """
    Convert section scaled scores into a total scaled score.

    The scores are averaged and rounded, then looked up in TOTAL_SCORE_TABLE
    using the highest key that does not exceed the average. Averages below
    the lowest key map to the lowest entry (455).

    Raises:
        ValueError: If no section scores are given.
    """
    scores = list(section_scores)
    if not scores:
        raise ValueError("At least one section score is required")

    average = round_half_up(sum(scores) / len(scores))

    total = TOTAL_SCORE_FLOOR
    for key in sorted(TOTAL_SCORE_TABLE):
        if average >= key:
            total = TOTAL_SCORE_TABLE[key]
        else:
            break
    return total


def quick_scaled_score(answers: Iterable[GradedAnswer]) -> int:
    """
    Linear single-section score: round(60 + weighted fraction × 30).

    Used when only one section's answer log is available. An empty log (or
    one with no weight) scores the band minimum.
    """
    raw_earned, raw_max = weighted_raw_scores(answers)
    if raw_max <= 0:
        return SECTION_SCORE_MIN
    scaled = round_half_up(
        SECTION_SCORE_MIN + (raw_earned / raw_max) * (SECTION_SCORE_MAX - SECTION_SCORE_MIN)
    )
    return max(SECTION_SCORE_MIN, min(SECTION_SCORE_MAX, scaled))


def total_score_from_section_sum(
    quant_score: float, verbal_score: float, data_insights_score: float
) -> int:
    """
    Total scaled score (205-805) from the sum of three section scores.

    Each score is rounded before summing. Sums outside the chart clamp to
    its ends.
    """
    total = (
        round_half_up(quant_score)
        + round_half_up(verbal_score)
        + round_half_up(data_insights_score)
    )
    if total < SECTION_SUM_MIN:
        return TOTAL_SCORE_MIN
    if total > SECTION_SUM_MAX:
        return TOTAL_SCORE_MAX
    return SECTION_SUM_CHART[total]


def score_answers(answers: Sequence[GradedAnswer]) -> SectionScore:
    """Bucketed score summary for one section's answers."""
    raw_earned, raw_max = weighted_raw_scores(answers)
    accuracy = accuracy_from_raw(raw_earned, raw_max)
    return SectionScore(
        accuracy=accuracy,
        scaled_score=section_scaled_score(accuracy),
        correct_count=sum(1 for a in answers if a.is_correct),
        total_count=len(answers),
    )


def score_sections(
    answers_by_section: Mapping[Section, Sequence[GradedAnswer]],
    sections: Optional[Sequence[Section]] = None,
) -> ScoreResult:
    """
    Score a set of sections and combine them into a total.

    Args:
        answers_by_section: Answer log per section.
        sections: Sections that make up the exam. A listed section with no
            log contributes the band minimum (60) to the total. Defaults to
            every Section.

    Returns:
        ScoreResult with per-section summaries and the total scaled score.
    """
    sections = list(sections) if sections is not None else list(Section)
    per_section: Dict[Section, SectionScore] = {}
    scaled: List[int] = []
    for section in sections:
        answers = answers_by_section.get(section)
        if answers is None:
            logger.warning(
                f"No answers for section {section.value}; "
                f"using minimum scaled score {SECTION_SCORE_MIN}"
            )
            scaled.append(SECTION_SCORE_MIN)
            continue
        summary = score_answers(answers)
        per_section[section] = summary
        scaled.append(summary.scaled_score)

    return ScoreResult(
        per_section=per_section,
        total_scaled_score=total_scaled_score(scaled),
    )


def difficulty_breakdown(answers: Iterable[GradedAnswer]) -> List[DifficultyBucket]:
    """Attempted/correct counts per difficulty level, 1 through 5."""
    attempted: Dict[int, int] = {d: 0 for d in range(1, 6)}
    correct: Dict[int, int] = {d: 0 for d in range(1, 6)}
    for answer in answers:
        if answer.difficulty not in attempted:
            continue
        attempted[answer.difficulty] += 1
        if answer.is_correct:
            correct[answer.difficulty] += 1
    return [
        DifficultyBucket(difficulty=d, attempted=attempted[d], correct=correct[d])
        for d in range(1, 6)
    ]


def practice_percent_score(outcomes: Sequence[bool]) -> float:
    """Unweighted percent correct for a practice set; 0.0 for an empty set."""
    if not outcomes:
        return 0.0
    return sum(1 for o in outcomes if o) / len(outcomes) * 100
