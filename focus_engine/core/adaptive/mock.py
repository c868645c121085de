"""
MockOrchestrator: runs every section of a full mock exam in sequence.

Each section is a SectionSession created only when the previous one has
completed, so sections never overlap. When the last section completes the
orchestrator scores all of them with the bucketed model (weighted accuracy
-> section scaled score -> total lookup) and finalizes the MockSession.

The caller drives the current section through the orchestrator
(``submit_answer`` / ``tick``); a timer-driven completion advances to the
next section on its own through the session's completion callback.
"""
import logging
import random
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Hashable, Iterable, List, Optional, Sequence, Set

from libs.domain_types import FULL_MOCK_TEST_TYPE, Section, SessionStatus

from focus_engine.core.adaptive.engine import (
    SectionResult,
    SectionSession,
    SessionStateError,
)
from focus_engine.core.adaptive.item_selection import QuestionDescriptor, RandomSource
from focus_engine.core.adaptive.timer import TimerFactory
from focus_engine.core.config import Settings, settings as default_settings
from focus_engine.core.datetime_utils import Clock, utc_now
from focus_engine.core.result_sink import ResultSink, publish_completion
from focus_engine.core.scoring import ScoreResult, score_sections
from focus_engine.schemas.results import MockResultPayload

logger = logging.getLogger(__name__)


@dataclass
class MockSession:
    """Ordered section results of a mock exam plus its final score."""

    sections: List[Section]
    section_results: List[SectionResult] = field(default_factory=list)
    score: Optional[ScoreResult] = None
    status: SessionStatus = SessionStatus.NOT_STARTED
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    test_type: str = FULL_MOCK_TEST_TYPE

    @property
    def is_finalized(self) -> bool:
        return self.status is SessionStatus.COMPLETED

    @property
    def time_taken_seconds(self) -> int:
        return sum(r.time_taken_seconds for r in self.section_results)

    def result_for(self, section: Section) -> Optional[SectionResult]:
        for result in self.section_results:
            if result.section is section:
                return result
        return None


class MockOrchestrator:
    """
    Sequences SectionSessions for a full mock exam.

    Args:
        pool: QuestionPool read at the start of each section.
        sections: Section order. Defaults to settings.MOCK_SECTION_ORDER.
        settings: Settings shared by every section.
        rng: Random source shared by every section's question draws.
        clock: Answer timestamp source.
        timer_factory: Timer factory for each section (None = caller ticks).
        previously_seen_ids: Ids from earlier tests, excluded everywhere.
        result_sink: Receives the single aggregate payload on finalization.
        on_finalized: Called once with the MockSession after finalization.
    """

    def __init__(
        self,
        pool,
        *,
        sections: Optional[Sequence[Section]] = None,
        settings: Optional[Settings] = None,
        rng: Optional[RandomSource] = None,
        clock: Clock = utc_now,
        timer_factory: Optional[TimerFactory] = None,
        previously_seen_ids: Optional[Iterable[Hashable]] = None,
        result_sink: Optional[ResultSink] = None,
        on_finalized=None,
    ):
        self._settings = settings or default_settings
        order = (
            [Section(s) for s in sections]
            if sections is not None
            else self._settings.mock_sections()
        )
        if not order:
            raise ValueError("A mock exam needs at least one section")
        if len(set(order)) != len(order):
            raise ValueError(f"Mock sections must not repeat, got {order}")

        self._pool = pool
        self._rng = rng if rng is not None else random.Random()
        self._clock = clock
        self._timer_factory = timer_factory
        self._previously_seen: Set[Hashable] = set(previously_seen_ids or ())
        self._result_sink = result_sink
        self._on_finalized = on_finalized

        self._lock = threading.RLock()
        self._mock = MockSession(sections=order)
        self._index = -1
        self._current: Optional[SectionSession] = None

    @property
    def mock_session(self) -> MockSession:
        return self._mock

    @property
    def current_session(self) -> Optional[SectionSession]:
        with self._lock:
            return self._current

    @property
    def current_section(self) -> Optional[Section]:
        with self._lock:
            return self._current.section if self._current is not None else None

    @property
    def is_finalized(self) -> bool:
        with self._lock:
            return self._mock.is_finalized

    def start(self) -> Optional[QuestionDescriptor]:
        """
        Start the mock with its first section.

        Returns:
            The first question served, or None if every section's pool was
            empty (the mock is then already finalized).

        Raises:
            SessionStateError: If the mock was already started.
        """
        with self._lock:
            if self._mock.status is not SessionStatus.NOT_STARTED:
                raise SessionStateError(
                    f"Cannot start mock exam: it is {self._mock.status.value}"
                )
            self._mock.status = SessionStatus.IN_PROGRESS
            self._mock.started_at = self._clock()
            logger.info(
                f"Started mock exam: sections={[s.value for s in self._mock.sections]}"
            )
            self._start_next_section()
            return self._current_question()

    def submit_answer(self, is_correct: bool) -> Optional[QuestionDescriptor]:
        """
        Submit an answer to the current section.

        Returns:
            The next question to show, which is the first question of the
            next section when this answer completed a section, or None once
            the mock is finalized.

        Raises:
            SessionStateError: If the mock is not in progress.
        """
        with self._lock:
            session = self._require_current()
            session.submit_answer(is_correct)
            return self._current_question()

    def tick(self) -> bool:
        """Forward one timer tick to the current section."""
        with self._lock:
            if self._mock.status is not SessionStatus.IN_PROGRESS or self._current is None:
                return False
            return self._current.tick()

    def teardown(self) -> MockSession:
        """
        End the mock now: the running section completes with reason teardown
        and sections not yet reached are scored at the band minimum.

        A mock that was never started is left untouched. The returned mock is
        always finalized once it has been started.
        """
        with self._lock:
            if self._mock.status is SessionStatus.IN_PROGRESS and self._current is not None:
                session = self._current
                # Stop advancing before the callback runs
                self._index = len(self._mock.sections)
                result = session.teardown()
                if not self._mock.is_finalized:
                    # Completed by the timer thread, whose callback is still
                    # waiting on this lock and will find the mock finalized
                    self._mock.section_results.append(result)
                    self._finalize()
            return self._mock

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_current(self) -> SectionSession:
        if self._mock.status is not SessionStatus.IN_PROGRESS or self._current is None:
            raise SessionStateError(
                f"Mock exam is not in progress (status={self._mock.status.value})"
            )
        return self._current

    def _current_question(self) -> Optional[QuestionDescriptor]:
        if self._current is None or self._mock.is_finalized:
            return None
        return self._current.current_question

    def _start_next_section(self) -> None:
        self._index += 1
        if self._index >= len(self._mock.sections):
            self._finalize()
            return

        section = self._mock.sections[self._index]
        # Questions already served earlier in this mock stay excluded
        excluded = set(self._previously_seen)
        for result in self._mock.section_results:
            excluded.update(result.seen_question_ids)

        session = SectionSession(
            section,
            self._pool,
            settings=self._settings,
            rng=self._rng,
            clock=self._clock,
            timer_factory=self._timer_factory,
            previously_seen_ids=excluded,
            on_complete=self._on_section_complete,
        )
        self._current = session
        logger.info(
            f"Mock exam: starting section {self._index + 1}/{len(self._mock.sections)} "
            f"({section.value})"
        )
        # May complete immediately (empty pool) and re-enter via the callback
        session.start()

    def _on_section_complete(self, result: SectionResult) -> None:
        with self._lock:
            if self._mock.is_finalized:
                return
            self._mock.section_results.append(result)
            self._start_next_section()

    def _finalize(self) -> None:
        answers: Dict[Section, tuple] = {
            r.section: r.history for r in self._mock.section_results
        }
        self._mock.score = score_sections(answers, sections=self._mock.sections)
        self._mock.status = SessionStatus.COMPLETED
        self._mock.completed_at = self._clock()
        self._current = None

        logger.info(
            f"Mock exam finalized: total={self._mock.score.total_scaled_score}, "
            + ", ".join(
                f"{s.value}={v.scaled_score}"
                for s, v in self._mock.score.per_section.items()
            )
            + f", time_taken={self._mock.time_taken_seconds}s"
        )

        if self._result_sink is not None:
            publish_completion(
                self._result_sink, MockResultPayload.from_mock_session(self._mock)
            )
        if self._on_finalized is not None:
            self._on_finalized(self._mock)
