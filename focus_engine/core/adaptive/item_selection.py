"""
Difficulty-ladder item selection for adaptive sections.

Selects the next question for a section from a pool of question descriptors.
Questions carry an integer difficulty in [1, 5]; the session keeps a moving
difficulty target and asks for a question at exactly that difficulty.

The selection pipeline:
1. Coerce an out-of-range or non-integer target to the default (3)
2. Filter the pool to valid descriptors of the session's section, at the
   target difficulty, not yet excluded
3. Pick uniformly at random among the candidates
4. If there are none, fall back to the untried difficulty closest to the
   original target (ties go to the lower difficulty) and repeat
5. Give up after every difficulty bucket has been tried once

Invalid descriptors are dropped silently and never offered. Running out of
questions is not an error: the selector returns None and the session treats
it as a normal end of section.
"""

import logging
import numbers
import random
from collections.abc import Mapping
from dataclasses import dataclass
from typing import (
    AbstractSet,
    Any,
    Hashable,
    Iterable,
    List,
    Optional,
    Protocol,
    Sequence,
    runtime_checkable,
)

from libs.domain_types import Section

logger = logging.getLogger(__name__)

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5
DEFAULT_DIFFICULTY = 3

# One attempt per difficulty bucket
MAX_DIFFICULTY_ATTEMPTS = MAX_DIFFICULTY - MIN_DIFFICULTY + 1


@runtime_checkable
class RandomSource(Protocol):
    """Anything with ``choice`` (``random.Random``, or a stub in tests)."""

    def choice(self, seq: Sequence[Any]) -> Any:
        ...


@dataclass(frozen=True)
class QuestionDescriptor:
    """Identity and selection metadata of a question.

    The engine never looks at question content; the id is opaque.
    """

    id: Hashable
    section: Section
    difficulty: int


def is_valid_difficulty(value: Any) -> bool:
    """True if value is an integral number (not a bool) in [1, 5]."""
    return (
        isinstance(value, numbers.Integral)
        and not isinstance(value, bool)
        and MIN_DIFFICULTY <= value <= MAX_DIFFICULTY
    )


def normalize_difficulty_target(target: Any) -> int:
    """
    Return target if it is a valid difficulty, otherwise the default.

    Bad targets are replaced rather than rejected so a corrupted cursor can
    never stop a section from serving questions.
    """
    if is_valid_difficulty(target):
        return int(target)
    logger.debug(
        f"Invalid difficulty target {target!r}; using default {DEFAULT_DIFFICULTY}"
    )
    return DEFAULT_DIFFICULTY


def _field(raw: Any, name: str) -> Any:
    if isinstance(raw, Mapping):
        return raw.get(name)
    return getattr(raw, name, None)


def coerce_descriptor(raw: Any) -> Optional[QuestionDescriptor]:
    """
    Validate a pool entry and return it as a QuestionDescriptor.

    Accepts QuestionDescriptor instances, objects with ``id``/``section``/
    ``difficulty`` attributes, or mappings as stored by the document store
    (where the section may be under ``type``).

    Returns:
        The descriptor, or None if any field is missing or out of range.
    """
    if isinstance(raw, QuestionDescriptor):
        candidate_id, section_value, difficulty = raw.id, raw.section, raw.difficulty
    else:
        candidate_id = _field(raw, "id")
        section_value = _field(raw, "section")
        if section_value is None:
            section_value = _field(raw, "type")
        difficulty = _field(raw, "difficulty")

    if candidate_id is None or candidate_id == "":
        return None
    try:
        hash(candidate_id)
    except TypeError:
        return None
    if not is_valid_difficulty(difficulty):
        return None
    try:
        section = Section(section_value)
    except ValueError:
        return None

    if (
        isinstance(raw, QuestionDescriptor)
        and raw.section is section
        and type(raw.difficulty) is int
    ):
        return raw
    return QuestionDescriptor(
        id=candidate_id, section=section, difficulty=int(difficulty)
    )


def valid_descriptors(pool: Iterable[Any]) -> List[QuestionDescriptor]:
    """Return the valid entries of a pool, dropping the rest."""
    descriptors = []
    dropped = 0
    for raw in pool:
        descriptor = coerce_descriptor(raw)
        if descriptor is None:
            dropped += 1
            continue
        descriptors.append(descriptor)
    if dropped:
        logger.debug(f"Dropped {dropped} invalid question descriptors from pool")
    return descriptors


def nearest_untried_difficulty(
    original_target: int, tried: AbstractSet[int]
) -> Optional[int]:
    """
    Return the untried difficulty closest to the original target.

    Scans 1 -> 5 and only replaces the best on a strictly smaller distance,
    so ties go to the lower difficulty.
    """
    best: Optional[int] = None
    best_distance = None
    for difficulty in range(MIN_DIFFICULTY, MAX_DIFFICULTY + 1):
        if difficulty in tried:
            continue
        distance = abs(difficulty - original_target)
        if best_distance is None or distance < best_distance:
            best = difficulty
            best_distance = distance
    return best


def select_next_question(
    difficulty_target: Any,
    excluded: AbstractSet[Hashable],
    pool: Iterable[Any],
    section: Section,
    rng: Optional[RandomSource] = None,
) -> Optional[QuestionDescriptor]:
    """
    Select the next question for a section.

    Args:
        difficulty_target: Requested difficulty. Anything other than an int
            in [1, 5] is treated as 3.
        excluded: Question ids that must not be offered (already seen).
        pool: Question descriptors (or raw mappings) to choose from. Entries
            that fail validation are ignored.
        section: Section the question must belong to.
        rng: Random source for the uniform draw. Defaults to the ``random``
            module; inject ``random.Random(seed)`` for reproducible draws.

    Returns:
        A QuestionDescriptor, or None if no unexcluded question exists at any
        difficulty (the pool is exhausted for this section).
    """
    original_target = normalize_difficulty_target(difficulty_target)
    section = Section(section)
    chooser = rng if rng is not None else random

    # Validate once; the same descriptor list is scanned per attempt
    eligible = [
        d
        for d in valid_descriptors(pool)
        if d.section is section and d.id not in excluded
    ]

    tried: set = set()
    target: Optional[int] = original_target
    while target is not None and len(tried) < MAX_DIFFICULTY_ATTEMPTS:
        candidates = [d for d in eligible if d.difficulty == target]
        if candidates:
            selected = chooser.choice(candidates)
            if target != original_target:
                logger.debug(
                    f"Selection fell back from difficulty {original_target} "
                    f"to {target} ({len(candidates)} candidates)"
                )
            logger.debug(
                f"Selected question {selected.id!r} "
                f"(section={section.value}, difficulty={target}, "
                f"candidates={len(candidates)})"
            )
            return selected

        tried.add(target)
        target = nearest_untried_difficulty(original_target, tried)

    logger.warning(
        f"No eligible questions remaining for section {section.value}: "
        f"excluded={len(excluded)}, tried difficulties={sorted(tried)}"
    )
    return None
