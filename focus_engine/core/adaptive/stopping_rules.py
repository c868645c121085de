"""
Termination rules for timed adaptive sections.

A section ends when any of the following holds (evaluated in priority order):
    1. Teardown: the owner released the session explicitly
    2. Required count: the section has received its fixed number of answers
    3. Timeout: the countdown reached zero
    4. Pool exhausted: the selector has no unseen question at any difficulty

None of these is an error. A section that ends early by timeout or
exhaustion is still a valid, scoreable section with fewer answers than the
nominal requirement.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from libs.domain_types import Section, StopReason

logger = logging.getLogger(__name__)

# Fixed number of answers that completes each section
REQUIRED_QUESTION_COUNTS: Dict[Section, int] = {
    Section.QUANTITATIVE: 21,
    Section.VERBAL: 23,
    Section.DATA_INSIGHTS: 20,
}


def required_count(section: Section) -> int:
    """Return the number of answers that completes a section."""
    return REQUIRED_QUESTION_COUNTS[Section(section)]


@dataclass
class CompletionDecision:
    """
    Result of evaluating termination rules for a section session.

    Attributes:
        should_complete: Whether the session must transition to COMPLETED.
        reason: Why (if should_complete=True), or None.
        details: Diagnostic information:
            - items_answered, required_count, remaining_seconds
            - pool_exhausted, torn_down
    """

    should_complete: bool
    reason: Optional[StopReason]
    details: Dict[str, Any]


def check_completion(
    items_answered: int,
    required: int,
    remaining_seconds: float,
    pool_exhausted: bool = False,
    torn_down: bool = False,
) -> CompletionDecision:
    """
    Evaluate termination rules and decide whether a section must complete.

    Args:
        items_answered: Number of answers recorded so far.
        required: Answers that complete the section.
        remaining_seconds: Seconds left on the countdown.
        pool_exhausted: True if the last selection attempt returned nothing.
        torn_down: True if the owner asked for an explicit teardown.

    Returns:
        CompletionDecision with the flag, the reason, and diagnostics.

    Raises:
        ValueError: If items_answered or required is negative.
    """
    if items_answered < 0:
        raise ValueError(f"items_answered must be non-negative, got {items_answered}")
    if required < 0:
        raise ValueError(f"required must be non-negative, got {required}")

    details: Dict[str, Any] = {
        "items_answered": items_answered,
        "required_count": required,
        "remaining_seconds": remaining_seconds,
        "pool_exhausted": pool_exhausted,
        "torn_down": torn_down,
    }

    if torn_down:
        return CompletionDecision(True, StopReason.TEARDOWN, details)

    if items_answered >= required:
        return CompletionDecision(True, StopReason.REQUIRED_COUNT, details)

    if remaining_seconds <= 0:
        logger.debug(
            f"Completing on timeout with {items_answered}/{required} answers"
        )
        return CompletionDecision(True, StopReason.TIMEOUT, details)

    if pool_exhausted:
        logger.debug(
            f"Completing on pool exhaustion with {items_answered}/{required} answers"
        )
        return CompletionDecision(True, StopReason.POOL_EXHAUSTED, details)

    return CompletionDecision(False, None, details)
