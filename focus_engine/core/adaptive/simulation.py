"""
Mock exam simulation for validating the adaptive engine and scoring model.

Simulates N examinees with known ability taking full mock exams through the
real MockOrchestrator, against a synthetic question pool. The caller drives
the section clock, so a run is fully deterministic for a given seed.

Response model:
    P(correct | theta) = 1 / (1 + exp(-a * (theta - (d - 3))))

where d is the question's difficulty level (1-5, centred on the starting
level 3) and a its discrimination. Time spent per answer is drawn from an
exponential distribution, so slow examinees run out of time and exercise the
timeout path.

Collected metrics:
- Total scaled score distribution (mean, median, SD, percentiles)
- Stop-reason counts per section
- Ability-band stratified means (bands on true theta)
- Correlation between true ability and total score
"""

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Optional, Sequence, Tuple

import numpy as np
from scipy.stats import percentileofscore

from libs.domain_types import Section

from focus_engine.core.adaptive.item_selection import MAX_DIFFICULTY, MIN_DIFFICULTY
from focus_engine.core.adaptive.mock import MockOrchestrator, MockSession
from focus_engine.core.config import Settings, settings as default_settings
from focus_engine.core.question_pool import InMemoryQuestionPool

logger = logging.getLogger(__name__)

# Synthetic discrimination distribution, clipped
DISCRIMINATION_LOGNORMAL_MEAN = 0.0
DISCRIMINATION_LOGNORMAL_SD = 0.3
DISCRIMINATION_MIN = 0.5
DISCRIMINATION_MAX = 2.5

# Ability bands for stratified analysis (on true theta)
ABILITY_BANDS = [
    ("Very Low", -3.0, -1.2),
    ("Low", -1.2, -0.4),
    ("Average", -0.4, 0.4),
    ("High", 0.4, 1.2),
    ("Very High", 1.2, 3.0),
]


@dataclass
class SimulationConfig:
    """Configuration for a mock exam simulation run."""

    n_examinees: int = 200
    theta_mean: float = 0.0
    theta_sd: float = 1.0
    # Mean seconds spent per answer; ~128s per question fits a Quant budget
    mean_response_seconds: float = 110.0
    items_per_difficulty: int = 30  # Per section per difficulty level
    seed: int = 42
    sections: Optional[List[Section]] = None  # None = settings.MOCK_SECTION_ORDER


@dataclass(frozen=True)
class SimulatedQuestion:
    """Synthetic pool entry. Carries a discrimination the engine ignores."""

    id: int
    section: Section
    difficulty: int
    discrimination: float


@dataclass
class ExamineeResult:
    """Per-examinee simulation results."""

    true_theta: float
    total_score: int
    section_scores: Dict[str, int]  # Bucketed scaled score per section
    stop_reasons: Dict[str, str]
    items_answered: Dict[str, int]
    time_taken_seconds: int


@dataclass
class AbilityBandMetrics:
    """Metrics for one ability band."""

    label: str
    theta_range: Tuple[float, float]
    n: int
    mean_total: float
    median_total: float
    mean_items: float
    timeout_rate: float  # Share of this band's sections that ended on time


@dataclass
class SimulationResult:
    """Aggregate simulation results."""

    config: SimulationConfig
    examinee_results: List[ExamineeResult]
    mean_total: float
    median_total: float
    sd_total: float
    theta_score_correlation: float
    stop_reason_counts: Dict[str, Dict[str, int]]  # section -> reason -> count
    band_metrics: List[AbilityBandMetrics] = field(default_factory=list)

    @property
    def totals(self) -> List[int]:
        return [r.total_score for r in self.examinee_results]

    def percentile_of(self, score: float) -> float:
        """Percentile rank (0-100) of a total score within this run."""
        return float(percentileofscore(self.totals, score, kind="weak"))


def generate_question_pool(
    sections: Optional[Sequence[Section]] = None,
    items_per_difficulty: int = 30,
    seed: int = 42,
) -> List[SimulatedQuestion]:
    """
    Generate a synthetic pool with an equal count per section and difficulty.

    Discrimination (a) ~ LogNormal(0.0, 0.3), clipped to [0.5, 2.5].
    """
    if items_per_difficulty < 1:
        raise ValueError("items_per_difficulty must be at least 1")
    if sections is None:
        sections = list(Section)

    rng = np.random.default_rng(seed)
    questions = []
    question_id = 1
    for section in sections:
        for difficulty in range(MIN_DIFFICULTY, MAX_DIFFICULTY + 1):
            for _ in range(items_per_difficulty):
                a = rng.lognormal(
                    mean=DISCRIMINATION_LOGNORMAL_MEAN, sigma=DISCRIMINATION_LOGNORMAL_SD
                )
                questions.append(
                    SimulatedQuestion(
                        id=question_id,
                        section=Section(section),
                        difficulty=difficulty,
                        discrimination=float(
                            np.clip(a, DISCRIMINATION_MIN, DISCRIMINATION_MAX)
                        ),
                    )
                )
                question_id += 1

    logger.info(
        f"Generated question pool: {len(questions)} questions across "
        f"{len(sections)} sections ({items_per_difficulty} per difficulty)"
    )
    return questions


def simulate_response(
    true_theta: float,
    difficulty: int,
    discrimination: float,
    rng: random.Random,
) -> bool:
    """Draw a correct/incorrect outcome from the logistic response model."""
    logit = discrimination * (true_theta - (difficulty - 3))
    if logit >= 0:
        prob = 1.0 / (1.0 + math.exp(-logit))
    else:
        exp_logit = math.exp(logit)
        prob = exp_logit / (1.0 + exp_logit)
    return rng.random() < prob


def run_examinee(
    orchestrator: MockOrchestrator,
    true_theta: float,
    discrimination_by_id: Dict[Hashable, float],
    rng: random.Random,
    np_rng: np.random.Generator,
    mean_response_seconds: float,
) -> MockSession:
    """
    Drive one mock exam to completion.

    Before each answer the section clock is ticked for the drawn response
    time; if the section times out meanwhile the question goes unanswered and
    the mock continues with the next section.
    """
    question = orchestrator.start()
    while not orchestrator.is_finalized and question is not None:
        session = orchestrator.current_session
        seconds = max(1, int(math.ceil(np_rng.exponential(mean_response_seconds))))
        timed_out = False
        for _ in range(seconds):
            orchestrator.tick()
            if session.is_completed:
                timed_out = True
                break

        if timed_out:
            current = orchestrator.current_session
            question = current.current_question if current is not None else None
            continue

        is_correct = simulate_response(
            true_theta=true_theta,
            difficulty=question.difficulty,
            discrimination=discrimination_by_id[question.id],
            rng=rng,
        )
        question = orchestrator.submit_answer(is_correct)

    if not orchestrator.is_finalized:
        # Unreachable with a non-empty pool; keep the mock consistent anyway
        orchestrator.teardown()
    return orchestrator.mock_session


def run_mock_simulation(
    config: Optional[SimulationConfig] = None,
    settings: Optional[Settings] = None,
    pool: Optional[List[SimulatedQuestion]] = None,
) -> SimulationResult:
    """
    Run the simulation.

    For each simulated examinee:
    1. Draw true_theta from N(config.theta_mean, config.theta_sd)
    2. Run a full mock through a fresh MockOrchestrator
    3. Record totals, section scores, stop reasons and time used

    Args:
        config: Simulation configuration (defaults apply when None).
        settings: Settings for section budgets and mock order.
        pool: Pre-built pool; generated from config when None.

    Returns:
        SimulationResult with per-examinee and aggregate metrics.
    """
    config = config or SimulationConfig()
    settings = settings or default_settings
    if config.n_examinees < 1:
        raise ValueError("n_examinees must be at least 1")

    sections = config.sections or settings.mock_sections()
    if pool is None:
        pool = generate_question_pool(
            sections=sections,
            items_per_difficulty=config.items_per_difficulty,
            seed=config.seed,
        )
    question_pool = InMemoryQuestionPool(pool)
    discrimination_by_id = {q.id: q.discrimination for q in pool}

    logger.info(
        f"Starting mock simulation: N={config.n_examinees}, "
        f"theta ~ N({config.theta_mean}, {config.theta_sd}²), "
        f"mean_response={config.mean_response_seconds}s"
    )

    rng = random.Random(config.seed)
    np_rng = np.random.default_rng(config.seed)
    examinee_results = []

    for examinee_id in range(1, config.n_examinees + 1):
        true_theta = float(np_rng.normal(loc=config.theta_mean, scale=config.theta_sd))
        orchestrator = MockOrchestrator(
            question_pool, sections=sections, settings=settings, rng=rng
        )
        mock = run_examinee(
            orchestrator,
            true_theta,
            discrimination_by_id,
            rng,
            np_rng,
            config.mean_response_seconds,
        )
        score = mock.score
        examinee_results.append(
            ExamineeResult(
                true_theta=true_theta,
                total_score=score.total_scaled_score,
                section_scores={
                    s.value: v.scaled_score for s, v in score.per_section.items()
                },
                stop_reasons={
                    r.section.value: r.stop_reason.value for r in mock.section_results
                },
                items_answered={
                    r.section.value: r.answered_count for r in mock.section_results
                },
                time_taken_seconds=mock.time_taken_seconds,
            )
        )

        if examinee_id % 100 == 0:
            logger.info(f"Completed {examinee_id}/{config.n_examinees} examinees")

    return aggregate_results(config, examinee_results)


def aggregate_results(
    config: SimulationConfig, examinee_results: List[ExamineeResult]
) -> SimulationResult:
    """Compute overall and band-stratified metrics."""
    if not examinee_results:
        raise ValueError("Cannot aggregate results from empty examinee list")

    totals = np.array([r.total_score for r in examinee_results], dtype=float)
    thetas = np.array([r.true_theta for r in examinee_results], dtype=float)

    # corrcoef is undefined when either side is constant
    if len(totals) > 1 and totals.std() > 0 and thetas.std() > 0:
        correlation = float(np.corrcoef(thetas, totals)[0, 1])
    else:
        correlation = 0.0

    stop_reason_counts: Dict[str, Dict[str, int]] = {}
    for result in examinee_results:
        for section, reason in result.stop_reasons.items():
            counts = stop_reason_counts.setdefault(section, {})
            counts[reason] = counts.get(reason, 0) + 1

    result = SimulationResult(
        config=config,
        examinee_results=examinee_results,
        mean_total=float(np.mean(totals)),
        median_total=float(np.median(totals)),
        sd_total=float(np.std(totals)),
        theta_score_correlation=correlation,
        stop_reason_counts=stop_reason_counts,
        band_metrics=compute_band_metrics(examinee_results),
    )

    logger.info(
        f"Mock simulation complete: mean_total={result.mean_total:.1f}, "
        f"median_total={result.median_total:.1f}, sd_total={result.sd_total:.1f}, "
        f"r(theta, total)={result.theta_score_correlation:.3f}"
    )
    return result


def compute_band_metrics(
    examinee_results: List[ExamineeResult],
) -> List[AbilityBandMetrics]:
    """
    Stratify results by true theta. The outer bands are open-ended so extreme
    draws are still counted.
    """
    metrics = []
    last = len(ABILITY_BANDS) - 1
    for index, (label, theta_min, theta_max) in enumerate(ABILITY_BANDS):
        members = [
            r
            for r in examinee_results
            if (index == 0 or r.true_theta >= theta_min)
            and (index == last or r.true_theta < theta_max)
        ]
        if not members:
            metrics.append(
                AbilityBandMetrics(
                    label=label,
                    theta_range=(theta_min, theta_max),
                    n=0,
                    mean_total=0.0,
                    median_total=0.0,
                    mean_items=0.0,
                    timeout_rate=0.0,
                )
            )
            continue

        totals = [r.total_score for r in members]
        items = [sum(r.items_answered.values()) for r in members]
        reasons = [reason for r in members for reason in r.stop_reasons.values()]
        timeouts = sum(1 for reason in reasons if reason == "timeout")
        metrics.append(
            AbilityBandMetrics(
                label=label,
                theta_range=(theta_min, theta_max),
                n=len(members),
                mean_total=float(np.mean(totals)),
                median_total=float(np.median(totals)),
                mean_items=float(np.mean(items)),
                timeout_rate=timeouts / len(reasons) if reasons else 0.0,
            )
        )
    return metrics


def generate_report(result: SimulationResult) -> str:
    """Markdown summary of a simulation run."""
    cfg = result.config
    lines = [
        "# Mock Exam Simulation Report",
        "",
        "## Configuration",
        "",
        f"- **N Examinees**: {cfg.n_examinees:,}",
        f"- **Theta Distribution**: N({cfg.theta_mean}, {cfg.theta_sd}²)",
        f"- **Mean Response Time**: {cfg.mean_response_seconds}s",
        f"- **Seed**: {cfg.seed}",
        "",
        "## Total Score",
        "",
        f"- Mean: {result.mean_total:.1f}",
        f"- Median: {result.median_total:.1f}",
        f"- SD: {result.sd_total:.1f}",
        f"- r(theta, total): {result.theta_score_correlation:.3f}",
        "",
        "## Stop Reasons",
        "",
        "| Section | Reason | Count |",
        "|---------|--------|-------|",
    ]
    for section, counts in result.stop_reason_counts.items():
        for reason, count in sorted(counts.items()):
            lines.append(f"| {section} | {reason} | {count} |")

    lines.extend(
        [
            "",
            "## By Ability Band",
            "",
            "| Band | N | Mean Total | Median Total | Mean Items | Timeout Rate |",
            "|------|---|------------|--------------|------------|--------------|",
        ]
    )
    for band in result.band_metrics:
        lines.append(
            f"| {band.label} | {band.n} | {band.mean_total:.1f} | "
            f"{band.median_total:.1f} | {band.mean_items:.1f} | "
            f"{band.timeout_rate:.1%} |"
        )
    lines.append("")
    return "\n".join(lines)
