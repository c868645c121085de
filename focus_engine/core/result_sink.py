"""
Outbound completion hooks.

The engine does not persist anything. When a section or mock completes it
hands a payload to a ResultSink supplied by the caller (the history store)
and asks it to bump the per-test-type attempt counter (the user profile).

Publishing is fire-and-forget: a failing sink is logged and never breaks the
session that produced the result. No retries are attempted.

Usage::

    sink = InMemoryResultSink()
    session = SectionSession(Section.VERBAL, pool, result_sink=sink)
"""

import logging
import threading
from collections import Counter
from typing import List, Protocol, Union, runtime_checkable

from focus_engine.schemas.results import MockResultPayload, SectionResultPayload

logger = logging.getLogger(__name__)

ResultPayload = Union[SectionResultPayload, MockResultPayload]


@runtime_checkable
class ResultSink(Protocol):
    """Receiver for completion payloads."""

    def record_result(self, payload: ResultPayload) -> None:
        ...

    def increment_attempts(self, test_type: str) -> None:
        ...


def publish_completion(sink: ResultSink, payload: ResultPayload) -> bool:
    """
    Hand a completion payload to a sink, catching and logging any exception.

    The attempt counter is only incremented once the result was recorded.

    Returns:
        True if both calls succeeded, False otherwise.
    """
    try:
        sink.record_result(payload)
    except Exception:
        logger.exception(
            "Failed to record %s result; attempt counter not incremented",
            payload.test_type,
        )
        return False

    try:
        sink.increment_attempts(payload.test_type)
    except Exception:
        logger.exception("Failed to increment %s attempt counter", payload.test_type)
        return False

    logger.info(
        "Published %s result (score=%s, time_taken=%ss)",
        payload.test_type,
        payload.score,
        payload.time_taken_seconds,
    )
    return True


class InMemoryResultSink:
    """ResultSink that keeps everything in memory (tests, simulation)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.results: List[ResultPayload] = []
        self.attempts: Counter = Counter()

    def record_result(self, payload: ResultPayload) -> None:
        with self._lock:
            self.results.append(payload)

    def increment_attempts(self, test_type: str) -> None:
        with self._lock:
            self.attempts[test_type] += 1
