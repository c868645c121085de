"""
Read-only question pools.

The real pool lives in the document store; the engine only needs
``for_section(section)`` returning the descriptors for one section. Pools are
read once when a section starts and never refreshed mid-section.
"""
import logging
from typing import Any, Dict, Iterable, List, Protocol, Sequence, Tuple, runtime_checkable

from libs.domain_types import Section

from focus_engine.core.adaptive.item_selection import QuestionDescriptor, coerce_descriptor

logger = logging.getLogger(__name__)


@runtime_checkable
class QuestionPool(Protocol):
    """Source of question descriptors per section."""

    def for_section(self, section: Section) -> Sequence[Any]:
        ...


class InMemoryQuestionPool:
    """
    QuestionPool backed by a list of descriptors or raw mappings.

    Entries that fail validation are kept out of every section view, so a
    malformed document in the store cannot reach the selector.
    """

    def __init__(self, entries: Iterable[Any]):
        by_section: Dict[Section, List[QuestionDescriptor]] = {s: [] for s in Section}
        invalid = 0
        for raw in entries:
            descriptor = coerce_descriptor(raw)
            if descriptor is None:
                invalid += 1
                continue
            by_section[descriptor.section].append(descriptor)
        self._by_section: Dict[Section, Tuple[QuestionDescriptor, ...]] = {
            s: tuple(items) for s, items in by_section.items()
        }
        self.invalid_count = invalid
        if invalid:
            logger.warning(f"Question pool ignored {invalid} invalid entries")

    def for_section(self, section: Section) -> Tuple[QuestionDescriptor, ...]:
        return self._by_section[Section(section)]

    def __len__(self) -> int:
        return sum(len(items) for items in self._by_section.values())
