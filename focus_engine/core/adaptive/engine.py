"""
SectionSession: state machine for one timed adaptive section.

Wraps difficulty-ladder item selection with a countdown and a fixed required
answer count. The session is an explicit object owned by the caller; there is
no module-level state.

States:
    NOT_STARTED -> IN_PROGRESS -> COMPLETED

Transitions:
    start()          NOT_STARTED -> IN_PROGRESS (or straight to COMPLETED if
                     the pool has nothing to offer)
    submit_answer()  records an answer, moves the difficulty cursor one step,
                     then either serves the next question or completes
    tick()           consumes one timer interval; completes on zero
    teardown()       completes immediately and releases the timer

COMPLETED is terminal. Mutators on a session that is not running raise
SessionStateError, except tick(), which is a no-op so a late timer callback
can never fail.

Thread safety: all state is guarded by an RLock. Completion callbacks and
timer cancellation run after the lock is released, so a timer thread and a
caller thread can never deadlock on each other.
"""
import logging
import random
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import (
    Any,
    Callable,
    FrozenSet,
    Hashable,
    Iterable,
    List,
    Optional,
    Set,
    Tuple,
)

from libs.domain_types import Section, SessionStatus, StopReason

from focus_engine.core.adaptive.item_selection import (
    DEFAULT_DIFFICULTY,
    MAX_DIFFICULTY,
    MIN_DIFFICULTY,
    QuestionDescriptor,
    RandomSource,
    select_next_question,
    valid_descriptors,
)
from focus_engine.core.adaptive.stopping_rules import check_completion, required_count
from focus_engine.core.adaptive.timer import SectionTimer, TimerFactory
from focus_engine.core.config import Settings, settings as default_settings
from focus_engine.core.datetime_utils import Clock, ensure_timezone_aware, utc_now
from focus_engine.core.result_sink import ResultSink, publish_completion
from focus_engine.core.scoring import quick_scaled_score, round_half_up
from focus_engine.schemas.results import SectionResultPayload

logger = logging.getLogger(__name__)


class SessionStateError(RuntimeError):
    """Raised when a session is driven from a state that does not allow it.

    No state was changed when this is raised.
    """


class InvalidAnswerError(ValueError):
    """Raised when submitted correctness is not a bool.

    No state was changed when this is raised.
    """


@dataclass(frozen=True)
class AnsweredRecord:
    """One submitted answer within a section."""

    question_id: Hashable
    difficulty: int  # Copied from the descriptor at answer time
    is_correct: bool
    answered_at: datetime


@dataclass(frozen=True)
class SectionResult:
    """Snapshot of a section taken at completion."""

    section: Section
    history: Tuple[AnsweredRecord, ...]
    score_estimate: int  # Linear quick score (60-90)
    time_taken_seconds: int
    stop_reason: StopReason
    seen_question_ids: Tuple[Hashable, ...]  # In the order they were served
    # Difficulty cursor before the first answer and after each answer
    difficulty_trajectory: Tuple[int, ...]
    session_id: str = ""

    @property
    def answered_count(self) -> int:
        return len(self.history)

    @property
    def correct_count(self) -> int:
        return sum(1 for r in self.history if r.is_correct)


def step_difficulty(cursor: int, is_correct: bool) -> int:
    """Move the difficulty cursor one step up (correct) or down, within [1, 5]."""
    if is_correct:
        return min(MAX_DIFFICULTY, cursor + 1)
    return max(MIN_DIFFICULTY, cursor - 1)


class SectionSession:
    """
    One timed adaptive section.

    Args:
        section: Section being delivered.
        pool: Either a QuestionPool (anything with ``for_section``), read once
            at start(), or the section's descriptors directly.
        settings: Settings for the time budget and tick interval.
        rng: Random source for question draws. Inject ``random.Random(seed)``
            for reproducible sessions.
        clock: Zero-argument callable giving the answer timestamp.
        timer_factory: Builds the periodic timer, called as
            ``timer_factory(interval, self.tick)``. None means the caller
            drives tick() itself.
        previously_seen_ids: Ids seen in earlier sessions; never offered.
        result_sink: Receives the completion payload and attempt increment.
        on_complete: Called once with the SectionResult after completion.
        session_id: Correlation id for logs; generated when omitted.
    """

    def __init__(
        self,
        section: Section,
        pool: Any,
        *,
        settings: Optional[Settings] = None,
        rng: Optional[RandomSource] = None,
        clock: Clock = utc_now,
        timer_factory: Optional[TimerFactory] = None,
        previously_seen_ids: Optional[Iterable[Hashable]] = None,
        result_sink: Optional[ResultSink] = None,
        on_complete: Optional[Callable[[SectionResult], None]] = None,
        session_id: Optional[str] = None,
    ):
        self.section = Section(section)
        self.session_id = session_id or uuid.uuid4().hex
        self._settings = settings or default_settings
        self._pool = pool
        self._rng: RandomSource = rng if rng is not None else random.Random()
        self._clock = clock
        self._timer_factory = timer_factory
        self._previously_seen: FrozenSet[Hashable] = frozenset(previously_seen_ids or ())
        self._result_sink = result_sink
        self._on_complete = on_complete

        self._lock = threading.RLock()
        self._status = SessionStatus.NOT_STARTED
        self._required_count = required_count(self.section)
        self._time_limit_seconds = self._settings.time_limit_for(self.section)

        self._questions: List[QuestionDescriptor] = []
        self._difficulty_cursor = DEFAULT_DIFFICULTY
        self._seen_order: List[Hashable] = []
        self._seen: Set[Hashable] = set()
        self._history: List[AnsweredRecord] = []
        self._trajectory: List[int] = []
        self._tick_seconds = float(self._settings.TIMER_TICK_SECONDS)
        self._elapsed_ticks = 0
        self._remaining_seconds: float = float(self._time_limit_seconds)
        self._current_question: Optional[QuestionDescriptor] = None
        self._timer: Optional[SectionTimer] = None
        self._result: Optional[SectionResult] = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        with self._lock:
            return self._status

    @property
    def is_completed(self) -> bool:
        return self.status is SessionStatus.COMPLETED

    @property
    def difficulty_cursor(self) -> int:
        with self._lock:
            return self._difficulty_cursor

    @property
    def seen_question_ids(self) -> FrozenSet[Hashable]:
        with self._lock:
            return frozenset(self._seen)

    @property
    def history(self) -> Tuple[AnsweredRecord, ...]:
        with self._lock:
            return tuple(self._history)

    @property
    def remaining_seconds(self) -> float:
        with self._lock:
            return self._remaining_seconds

    @property
    def current_question(self) -> Optional[QuestionDescriptor]:
        with self._lock:
            return self._current_question

    @property
    def required_count(self) -> int:
        return self._required_count

    @property
    def time_limit_seconds(self) -> int:
        return self._time_limit_seconds

    @property
    def result(self) -> Optional[SectionResult]:
        with self._lock:
            return self._result

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def start(self) -> Optional[QuestionDescriptor]:
        """
        Begin the section and serve the first question at difficulty 3.

        Returns:
            The first question, or None if the pool had nothing to offer (the
            session is then already COMPLETED with an empty history).

        Raises:
            SessionStateError: If the session was already started.
        """
        with self._lock:
            if self._status is not SessionStatus.NOT_STARTED:
                raise SessionStateError(
                    f"Cannot start section {self.section.value}: "
                    f"session is {self._status.value}"
                )

            self._questions = self._load_questions()
            self._difficulty_cursor = DEFAULT_DIFFICULTY
            self._seen.clear()
            self._seen_order.clear()
            self._history.clear()
            self._trajectory = [DEFAULT_DIFFICULTY]
            self._elapsed_ticks = 0
            self._remaining_seconds = float(self._time_limit_seconds)
            self._status = SessionStatus.IN_PROGRESS

            logger.info(
                f"Started section {self.section.value} (session {self.session_id}): "
                f"pool={len(self._questions)}, required={self._required_count}, "
                f"time_limit={self._time_limit_seconds}s",
                extra={"session_id": self.session_id, "section": self.section.value},
            )

            first = self._serve_next()
            completed = None
            if first is None:
                completed = self._complete_locked(
                    check_completion(
                        items_answered=0,
                        required=self._required_count,
                        remaining_seconds=self._remaining_seconds,
                        pool_exhausted=True,
                    ).reason
                )
            elif self._timer_factory is not None:
                self._timer = self._timer_factory(
                    self._settings.TIMER_TICK_SECONDS, self.tick
                )
                self._timer.start()

        if completed is not None:
            self._after_completion(*completed)
        return first

    def tick(self) -> bool:
        """
        Consume one timer interval of the section budget.

        Completes the section with whatever has been answered when the budget
        reaches zero.

        Returns:
            True if the tick was applied, False if the session is not running.
        """
        with self._lock:
            if self._status is not SessionStatus.IN_PROGRESS:
                return False

            # Counted in ticks so repeated float subtraction cannot drift
            self._elapsed_ticks += 1
            self._remaining_seconds = max(
                0.0,
                round(
                    self._time_limit_seconds - self._elapsed_ticks * self._tick_seconds,
                    6,
                ),
            )
            completed = None
            decision = check_completion(
                items_answered=len(self._history),
                required=self._required_count,
                remaining_seconds=self._remaining_seconds,
            )
            if decision.should_complete:
                completed = self._complete_locked(decision.reason)

        if completed is not None:
            self._after_completion(*completed)
        return True

    def submit_answer(self, is_correct: bool) -> Optional[QuestionDescriptor]:
        """
        Record the graded answer to the current question.

        Args:
            is_correct: Outcome of the external grading step.

        Returns:
            The next question, or None if the section is now COMPLETED.

        Raises:
            SessionStateError: If the session is not in progress.
            InvalidAnswerError: If is_correct is not a bool.
        """
        with self._lock:
            if self._status is not SessionStatus.IN_PROGRESS:
                raise SessionStateError(
                    f"Cannot submit an answer to section {self.section.value}: "
                    f"session is {self._status.value}"
                )
            question = self._current_question
            if question is None:
                raise SessionStateError(
                    f"No question is currently offered in section {self.section.value}"
                )
            if not isinstance(is_correct, bool):
                raise InvalidAnswerError(
                    f"is_correct must be a bool, got {type(is_correct).__name__}"
                )

            self._history.append(
                AnsweredRecord(
                    question_id=question.id,
                    difficulty=question.difficulty,
                    is_correct=is_correct,
                    answered_at=ensure_timezone_aware(self._clock()),
                )
            )
            self._difficulty_cursor = step_difficulty(self._difficulty_cursor, is_correct)
            self._trajectory.append(self._difficulty_cursor)
            self._current_question = None

            logger.debug(
                f"Session {self.session_id}: answer #{len(self._history)} "
                f"(Q{question.id}, d={question.difficulty}, correct={is_correct}) "
                f"-> cursor={self._difficulty_cursor}"
            )

            completed = None
            next_question = None
            decision = check_completion(
                items_answered=len(self._history),
                required=self._required_count,
                remaining_seconds=self._remaining_seconds,
            )
            if not decision.should_complete:
                next_question = self._serve_next()
                if next_question is None:
                    decision = check_completion(
                        items_answered=len(self._history),
                        required=self._required_count,
                        remaining_seconds=self._remaining_seconds,
                        pool_exhausted=True,
                    )
            if decision.should_complete:
                completed = self._complete_locked(decision.reason)

        if completed is not None:
            self._after_completion(*completed)
        return next_question

    def teardown(self) -> SectionResult:
        """
        Force completion and release the timer.

        On a completed session it just returns the existing result.

        Raises:
            SessionStateError: If the session has not been started. Nothing is
                recorded or published in that case.
        """
        with self._lock:
            if self._status is SessionStatus.NOT_STARTED:
                raise SessionStateError("Cannot tear down a section that has not started")
            completed = None
            if self._status is not SessionStatus.COMPLETED:
                decision = check_completion(
                    items_answered=len(self._history),
                    required=self._required_count,
                    remaining_seconds=self._remaining_seconds,
                    torn_down=True,
                )
                completed = self._complete_locked(decision.reason)
            result = self._result

        if completed is not None:
            self._after_completion(*completed)
        assert result is not None
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load_questions(self) -> List[QuestionDescriptor]:
        pool = self._pool
        if hasattr(pool, "for_section"):
            pool = pool.for_section(self.section)
        return [d for d in valid_descriptors(pool) if d.section is self.section]

    def _serve_next(self) -> Optional[QuestionDescriptor]:
        question = select_next_question(
            difficulty_target=self._difficulty_cursor,
            excluded=self._seen | self._previously_seen,
            pool=self._questions,
            section=self.section,
            rng=self._rng,
        )
        if question is not None:
            self._seen.add(question.id)
            self._seen_order.append(question.id)
        self._current_question = question
        return question

    def _complete_locked(
        self, reason: Optional[StopReason]
    ) -> Tuple[SectionResult, Optional[SectionTimer]]:
        """Transition to COMPLETED. Caller holds the lock and status is not COMPLETED."""
        assert reason is not None
        self._status = SessionStatus.COMPLETED
        self._current_question = None
        # Detach the timer so it is cancelled exactly once, outside the lock
        timer, self._timer = self._timer, None

        history = tuple(self._history)
        self._result = SectionResult(
            section=self.section,
            history=history,
            score_estimate=quick_scaled_score(history),
            time_taken_seconds=round_half_up(
                self._time_limit_seconds - self._remaining_seconds
            ),
            stop_reason=reason,
            seen_question_ids=tuple(self._seen_order),
            difficulty_trajectory=tuple(self._trajectory),
            session_id=self.session_id,
        )

        logger.info(
            f"Section {self.section.value} (session {self.session_id}) completed: "
            f"reason={reason.value}, answered={len(history)}/{self._required_count}, "
            f"score={self._result.score_estimate}, "
            f"time_taken={self._result.time_taken_seconds}s",
            extra={
                "session_id": self.session_id,
                "section": self.section.value,
                "stop_reason": reason.value,
                "items_answered": len(history),
            },
        )
        return self._result, timer

    def _after_completion(
        self, result: SectionResult, timer: Optional[SectionTimer]
    ) -> None:
        if timer is not None:
            timer.cancel()
        if self._result_sink is not None:
            publish_completion(
                self._result_sink, SectionResultPayload.from_section_result(result)
            )
        if self._on_complete is not None:
            self._on_complete(result)
