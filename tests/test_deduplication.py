"""Tests for first-seen deduplication and confidence scoring."""

import math

import pytest

from karma_osint.core.data_models import EntityDraft, EvidenceDraft, Indicator
from karma_osint.core.deduplication import (
    FirstSeenDeduplicator,
    dedup_key,
    deduplicate_entities,
    deduplicate_indicators,
    unique_by_value,
)
from karma_osint.core.scoring import compute_confidence


class TestDeduplicateEntities:
    """Tests for deduplicate_entities."""

    def test_first_occurrence_wins(self):
        entities = [
            EntityDraft("domain", "Example.com", metadata={"from": "dns"}),
            EntityDraft("domain", "example.COM", metadata={"from": "web-search"}),
            EntityDraft("ip", "1.2.3.4"),
        ]
        unique = deduplicate_entities(entities)

        assert len(unique) == 2
        assert unique[0].value == "Example.com"
        assert unique[0].metadata == {"from": "dns"}

    def test_type_is_part_of_key(self):
        entities = [EntityDraft("domain", "jdoe.dev"), EntityDraft("url", "jdoe.dev")]
        assert len(deduplicate_entities(entities)) == 2

    def test_idempotent(self):
        entities = [
            EntityDraft("email", "a@b.com"),
            EntityDraft("email", "A@B.com", metadata={"x": 1}),
            EntityDraft("org", "Acme"),
            EntityDraft("org", "acme"),
        ]
        once = deduplicate_entities(entities)
        assert deduplicate_entities(once) == once

    def test_order_preserved(self):
        entities = [EntityDraft("org", v) for v in ("b", "a", "B", "c", "A")]
        assert [e.value for e in deduplicate_entities(entities)] == ["b", "a", "c"]


class TestHelpers:
    """Tests for the smaller dedup helpers."""

    def test_dedup_key(self):
        assert dedup_key("Domain", "Example.COM") == "domain:example.com"

    def test_indicators(self):
        indicators = [Indicator("email", "a@b.com"), Indicator("email", "A@B.COM")]
        assert deduplicate_indicators(indicators) == [Indicator("email", "a@b.com")]

    def test_unique_by_value(self):
        values = [" Foo ", "foo", None, "", "bar", "BAR", "baz"]
        assert unique_by_value(values) == ["Foo", "bar", "baz"]

    def test_deduplicator_tracks_state(self):
        dedup = FirstSeenDeduplicator(str.lower)
        assert dedup.seen("A") is False
        assert dedup.seen("a") is True
        assert dedup.filter(["a", "b", "B"]) == ["b"]


def _evidence(confidence=None, **metadata):
    return EvidenceDraft.from_text("t", "s", "c", confidence=confidence, **metadata)


class TestComputeConfidence:
    """Tests for compute_confidence."""

    def test_mean_ignores_missing(self):
        evidence = [_evidence(0.9), _evidence(0.5), _evidence()]
        assert compute_confidence(evidence) == 0.7

    def test_empty(self):
        assert compute_confidence([]) == 0.0
        assert compute_confidence([_evidence()]) == 0.0

    def test_rounded_to_three_places(self):
        evidence = [_evidence(0.1), _evidence(0.2), _evidence(0.2)]
        assert compute_confidence(evidence) == 0.167

    @pytest.mark.parametrize("bad", [1.5, -0.1, "0.9", True, math.nan, math.inf, None])
    def test_invalid_values_ignored(self, bad):
        evidence = [_evidence(0.4), _evidence(**{"confidence": bad})]
        assert compute_confidence(evidence) == 0.4

    def test_integer_bounds_accepted(self):
        assert compute_confidence([_evidence(1), _evidence(0)]) == 0.5
