"""Shared plumbing for source probes.

A probe performs one lookup against one external source for one target
and returns a :class:`ProbeResult`.  Probes are stateless and constructed
once; everything that varies per collection run (the open HTTP client, the
configuration, the courtesy-delay function) arrives in a
:class:`ProbeContext`.  Network probes never raise on source failures:
they degrade to a low-confidence text evidence item instead.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, FrozenSet, List, Optional

from karma_osint.core.config import Config
from karma_osint.core.data_models import EntityDraft, EvidenceDraft, TargetType
from karma_osint.core.http_client import AsyncHTTPClient

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class ProbeContext:
    """Per-run collaborators handed to every probe."""

    http: AsyncHTTPClient
    config: Config
    sleep: Sleep = asyncio.sleep

    @property
    def default_timeout(self) -> float:
        return self.config.get_int("collection.default_timeout_ms", 12_000) / 1000

    @property
    def slow_timeout(self) -> float:
        return self.config.get_int("collection.slow_timeout_ms", 15_000) / 1000

    async def courtesy_delay(self) -> None:
        delay_ms = self.config.get_int("collection.courtesy_delay_ms", 250)
        if delay_ms > 0:
            await self.sleep(delay_ms / 1000)


@dataclass
class ProbeResult:
    """Evidence, entities and risk contribution from one probe run."""

    evidence: List[EvidenceDraft] = field(default_factory=list)
    entities: List[EntityDraft] = field(default_factory=list)
    risk_delta: float = 0

    def add_evidence(self, evidence: EvidenceDraft) -> None:
        self.evidence.append(evidence)

    def add_entity(self, entity_type: str, value: Any, **metadata: Any) -> Optional[EntityDraft]:
        """Append an entity unless ``value`` is empty after trimming."""
        text = str(value if value is not None else "").strip()
        if not text:
            return None
        entity = EntityDraft(entity_type=entity_type, value=text, metadata=metadata)
        self.entities.append(entity)
        return entity


class SourceProbe(ABC):
    """Base class for single-source lookups."""

    #: Short machine name, used in logs.
    name: str = ""
    #: Human-readable provider name recorded on evidence.
    source: str = ""
    #: Target types this probe applies to.
    target_types: FrozenSet[TargetType] = frozenset()
    #: Run after lead-following, so entities it adds are not followed.
    after_leads: bool = False

    def __init__(self) -> None:
        self.logger = logging.getLogger(self.__class__.__name__)

    def applies_to(self, target_type: TargetType) -> bool:
        return target_type in self.target_types

    @abstractmethod
    def describe(self, target: str) -> str:
        """Progress label announced before the probe runs."""

    @abstractmethod
    async def run(self, target: str, target_type: TargetType, ctx: ProbeContext) -> ProbeResult:
        """Run the lookup for ``target``."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
