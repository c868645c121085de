"""
Run a Monte Carlo study of full mock exams through the adaptive engine.

Simulates examinees of known ability taking every mock section against a
synthetic pool, then logs the total-score distribution, stop reasons and the
per-ability-band summary. Optionally writes a markdown report.

Usage:
    python scripts/run_mock_simulation.py [--examinees N] [--seed SEED]
        [--theta-mean M] [--theta-sd SD] [--mean-response-seconds S]
        [--items-per-difficulty K] [--report PATH]

Exit codes:
    0 - Success
    1 - Invalid arguments
    2 - Simulation error
    3 - Configuration/import error
"""
import argparse
import json
import logging
import os
import sys

# Add the project root so focus_engine/ and libs/ import without installation
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("mock_simulation")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Simulate full mock exams and summarize the score distribution"
    )
    parser.add_argument("--examinees", type=int, default=200, help="Simulated examinees")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--theta-mean", type=float, default=0.0)
    parser.add_argument("--theta-sd", type=float, default=1.0)
    parser.add_argument(
        "--mean-response-seconds",
        type=float,
        default=110.0,
        help="Mean time spent per answer (exponential)",
    )
    parser.add_argument(
        "--items-per-difficulty",
        type=int,
        default=30,
        help="Synthetic questions per section per difficulty level",
    )
    parser.add_argument(
        "--report", type=str, default=None, help="Write a markdown report to this path"
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.examinees < 1 or args.items_per_difficulty < 1:
        logger.error("--examinees and --items-per-difficulty must be at least 1")
        return 1
    if args.theta_sd <= 0 or args.mean_response_seconds <= 0:
        logger.error("--theta-sd and --mean-response-seconds must be positive")
        return 1

    # Defer imports so config/import failures produce exit code 3
    try:
        from focus_engine.core.adaptive.simulation import (
            SimulationConfig,
            generate_report,
            run_mock_simulation,
        )
        from focus_engine.core.config import Settings
        from focus_engine.core.datetime_utils import utc_now

        settings = Settings()
    except Exception as exc:
        logger.error("Failed to load configuration or modules: %s", exc)
        return 3

    config = SimulationConfig(
        n_examinees=args.examinees,
        theta_mean=args.theta_mean,
        theta_sd=args.theta_sd,
        mean_response_seconds=args.mean_response_seconds,
        items_per_difficulty=args.items_per_difficulty,
        seed=args.seed,
    )

    try:
        result = run_mock_simulation(config, settings=settings)
    except Exception as exc:
        logger.error("Mock simulation failed: %s", exc)
        return 2

    for section, counts in result.stop_reason_counts.items():
        logger.info(
            "  %-14s %s",
            section,
            "  ".join(f"{reason}={count}" for reason, count in sorted(counts.items())),
        )
    for band in result.band_metrics:
        logger.info(
            "  %-10s n=%-4d mean_total=%6.1f  mean_items=%5.1f  timeout_rate=%.1f%%",
            band.label,
            band.n,
            band.mean_total,
            band.mean_items,
            band.timeout_rate * 100,
        )
    logger.info(
        "Total score: mean=%.1f median=%.1f sd=%.1f r(theta, total)=%.3f",
        result.mean_total,
        result.median_total,
        result.sd_total,
        result.theta_score_correlation,
    )

    if args.report:
        try:
            with open(args.report, "w", encoding="utf-8") as fh:
                fh.write(generate_report(result))
        except OSError as exc:
            logger.error("Failed to write report to %s: %s", args.report, exc)
            return 2
        logger.info("Report written to %s", args.report)

    summary = {
        "type": "SIMULATION_SUMMARY",
        "examinees": config.n_examinees,
        "seed": config.seed,
        "mean_total": round(result.mean_total, 1),
        "median_total": result.median_total,
        "finished_at": utc_now().isoformat(),
    }
    print(json.dumps(summary), flush=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
