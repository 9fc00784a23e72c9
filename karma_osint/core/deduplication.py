"""Entity and indicator deduplication for karma_osint.

Deduplication is a stable, first-seen-wins filter keyed by
``lower(type) + ":" + lower(value)``.  Metadata of later duplicates is
dropped, not merged, so the earliest discovery's provenance is the one
that survives.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional, Set, TypeVar

from karma_osint.core.data_models import EntityDraft, Indicator

logger = logging.getLogger(__name__)

T = TypeVar("T")


def dedup_key(kind: str, value: str) -> str:
    """Identity key shared by entities and indicators."""
    return f"{kind}:{value}".lower()


class FirstSeenDeduplicator:
    """Stable filter that keeps the first item for each key."""

    def __init__(self, key: Callable[[T], str]) -> None:
        self._key = key
        self._seen: Set[str] = set()

    def seen(self, item: T) -> bool:
        """Record ``item`` and report whether its key was already present."""
        k = self._key(item)
        if k in self._seen:
            return True
        self._seen.add(k)
        return False

    def filter(self, items: Iterable[T]) -> List[T]:
        return [item for item in items if not self.seen(item)]


def deduplicate_entities(entities: Iterable[EntityDraft]) -> List[EntityDraft]:
    """Remove duplicate entities, keeping the first occurrence of each key."""
    entities = list(entities)
    unique = FirstSeenDeduplicator(lambda e: dedup_key(e.entity_type, e.value)).filter(entities)
    if len(unique) != len(entities):
        logger.debug("Deduplicated %d entities to %d", len(entities), len(unique))
    return unique


def deduplicate_indicators(indicators: Iterable[Indicator]) -> List[Indicator]:
    """Remove duplicate indicators, keeping the first occurrence of each key."""
    return FirstSeenDeduplicator(lambda i: dedup_key(i.type, i.value)).filter(indicators)


def unique_by_value(values: Iterable[Optional[str]]) -> List[str]:
    """Trimmed, non-empty values, deduplicated case-insensitively in order."""
    out: List[str] = []
    seen: Set[str] = set()
    for value in values:
        trimmed = str(value if value is not None else "").strip()
        k = trimmed.lower()
        if not k or k in seen:
            continue
        seen.add(k)
        out.append(trimmed)
    return out
