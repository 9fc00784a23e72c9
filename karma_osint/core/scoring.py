"""Aggregate confidence scoring."""

from __future__ import annotations

import math
from numbers import Real
from typing import Iterable, List

from karma_osint.core.data_models import EvidenceDraft


def compute_confidence(evidence: Iterable[EvidenceDraft]) -> float:
    """Mean of the in-range ``metadata.confidence`` values, rounded to 3 places.

    Items without a numeric confidence in [0, 1] are ignored.  Returns 0.0
    when no item carries one.
    """
    values: List[float] = []
    for item in evidence:
        raw = (item.metadata or {}).get("confidence")
        if isinstance(raw, bool) or not isinstance(raw, Real):
            continue
        value = float(raw)
        if math.isfinite(value) and 0.0 <= value <= 1.0:
            values.append(value)

    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return max(0.0, min(1.0, round(mean, 3)))
