"""Data models used throughout karma_osint.

The collection engine produces *drafts*: evidence items and entities that
have not yet been persisted.  The storage collaborator assigns durable IDs
and integrity hashes; nothing in this package reads them back.  The
``TimeBudget`` is shared by reference across a top-level collection and all
of its recursive sub-collections so the whole call tree obeys one deadline.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class TargetType(str, Enum):
    """Kinds of identifier a collection can be run against."""

    DOMAIN = "domain"
    EMAIL = "email"
    USERNAME = "username"
    IP = "ip"
    PHONE = "phone"
    ADDRESS = "address"
    NAME = "name"
    CASE = "case"

    @classmethod
    def parse(cls, value: Any) -> Optional["TargetType"]:
        """Return the matching member, or None for empty/unknown input."""
        if value is None:
            return None
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.warning("Unknown target type %r, falling back to inference", value)
            return None


class Depth(str, Enum):
    """Two-level effort setting controlling query and lead counts."""

    NORMAL = "normal"
    THOROUGH = "thorough"

    @classmethod
    def parse(cls, value: Any) -> "Depth":
        if isinstance(value, cls):
            return value
        if str(value or "").strip().lower() == cls.THOROUGH.value:
            return cls.THOROUGH
        return cls.NORMAL


RISK_LEVELS = ("low", "medium", "high", "critical")


@dataclass(frozen=True)
class EvidenceDraft:
    """One unit of collected material prior to durable storage.

    Attributes
    ----------
    kind: str
        ``"json"`` when ``content`` is a serialised JSON document, ``"text"``
        otherwise.
    title: str
        Short human-readable title.
    source: str
        Human-readable provider name (e.g. ``"RDAP"``).
    content: str
        Serialised payload.
    tags: tuple
        Free-form labels.
    metadata: dict
        ``metadata["confidence"]`` (0.0-1.0) is the per-item reliability
        signal consumed by the confidence scorer.
    """

    kind: str
    title: str
    source: str
    content: str
    tags: tuple = ()
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(
        cls,
        title: str,
        source: str,
        payload: Any,
        *,
        tags: Optional[List[str]] = None,
        confidence: Optional[float] = None,
        **metadata: Any,
    ) -> "EvidenceDraft":
        """Build a ``json`` evidence item, serialising ``payload``."""
        if confidence is not None:
            metadata["confidence"] = confidence
        return cls(
            kind="json",
            title=title,
            source=source,
            content=json.dumps(payload, indent=2, default=str),
            tags=tuple(tags or ()),
            metadata=metadata,
        )

    @classmethod
    def from_text(
        cls,
        title: str,
        source: str,
        text: str,
        *,
        tags: Optional[List[str]] = None,
        confidence: Optional[float] = None,
        **metadata: Any,
    ) -> "EvidenceDraft":
        """Build a ``text`` evidence item."""
        if confidence is not None:
            metadata["confidence"] = confidence
        return cls(
            kind="text",
            title=title,
            source=source,
            content=str(text),
            tags=tuple(tags or ()),
            metadata=metadata,
        )

    @property
    def confidence(self) -> Optional[float]:
        return self.metadata.get("confidence")

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to the shape the storage collaborator consumes."""
        return {
            "type": self.kind,
            "title": self.title,
            "source": self.source,
            "content": self.content,
            "tags": list(self.tags),
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class EntityDraft:
    """One discovered indicator.

    Two entities are duplicates when their :attr:`key` matches, regardless
    of metadata.
    """

    entity_type: str
    value: str
    risk_level: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        value = str(self.value if self.value is not None else "").strip()
        if not value:
            raise ValueError("entity value cannot be empty")
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "value", value)
        if self.risk_level is not None and self.risk_level not in RISK_LEVELS:
            raise ValueError(f"invalid risk level: {self.risk_level!r}")

    @property
    def key(self) -> str:
        return f"{self.entity_type}:{self.value}".lower()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"entityType": self.entity_type, "value": self.value}
        if self.risk_level is not None:
            data["riskLevel"] = self.risk_level
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data


@dataclass(frozen=True)
class Indicator:
    """A typed candidate value extracted from freeform text."""

    type: str
    value: str

    @property
    def key(self) -> str:
        return f"{self.type}:{self.value}".lower()

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.type, "value": self.value}


@dataclass
class CollectionResult:
    """Return value of one collection invocation."""

    evidence: List[EvidenceDraft] = field(default_factory=list)
    entities: List[EntityDraft] = field(default_factory=list)
    risk_delta: float = 0
    confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "evidence": [e.to_dict() for e in self.evidence],
            "entities": [e.to_dict() for e in self.entities],
            "riskDelta": self.risk_delta,
            "confidence": self.confidence,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def __repr__(self) -> str:
        return (
            f"CollectionResult(evidence={len(self.evidence)}, "
            f"entities={len(self.entities)}, risk_delta={self.risk_delta}, "
            f"confidence={self.confidence:.3f})"
        )


def now_ms() -> int:
    """Wall-clock time in milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class TimeBudget:
    """Deadline shared by a collection call tree.

    The start time is fixed when the top-level call begins and is passed
    unchanged to every recursive call, so the deadline never resets.
    """

    started_at_ms: int
    budget_ms: int

    @classmethod
    def start(cls, budget_ms: int, started_at_ms: Optional[int] = None) -> "TimeBudget":
        return cls(
            started_at_ms=now_ms() if started_at_ms is None else int(started_at_ms),
            budget_ms=max(0, int(budget_ms)),
        )

    @property
    def deadline_ms(self) -> int:
        return self.started_at_ms + self.budget_ms

    def remaining_ms(self) -> int:
        return max(0, self.deadline_ms - now_ms())

    def expired(self) -> bool:
        return now_ms() >= self.deadline_ms
