"""
Pytest configuration and shared fixtures for testing.
"""
import sys
from pathlib import Path

# Add project root to path so libs/ is importable without installation
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import random  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import List  # noqa: E402

import pytest  # noqa: E402

from libs.domain_types import Section  # noqa: E402

from focus_engine.core.adaptive.item_selection import QuestionDescriptor  # noqa: E402
from focus_engine.core.config import Settings  # noqa: E402


class FirstChoiceRng:
    """Deterministic RandomSource stub: always picks the first candidate."""

    def __init__(self):
        self.calls: List[list] = []

    def choice(self, seq):
        self.calls.append(list(seq))
        return seq[0]


class StepClock:
    """Clock returning a fixed start time advanced one second per call."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


def make_questions(
    section: Section,
    per_difficulty: int = 10,
    difficulties=range(1, 6),
    id_prefix: str = "",
) -> List[QuestionDescriptor]:
    """Build descriptors with ids like 'Q-3-0' (section prefix, difficulty, index)."""
    prefix = id_prefix or section.value[0]
    return [
        QuestionDescriptor(id=f"{prefix}-{d}-{i}", section=section, difficulty=d)
        for d in difficulties
        for i in range(per_difficulty)
    ]


@pytest.fixture
def settings() -> Settings:
    """Default settings, isolated from the environment's .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def first_choice_rng() -> FirstChoiceRng:
    return FirstChoiceRng()


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def question_factory():
    """The make_questions helper, for tests that need custom pools."""
    return make_questions


@pytest.fixture
def full_pool() -> List[QuestionDescriptor]:
    """Ten questions per difficulty for every section."""
    questions: List[QuestionDescriptor] = []
    for section in Section:
        questions.extend(make_questions(section))
    return questions
