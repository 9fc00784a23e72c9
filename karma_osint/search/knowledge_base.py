"""Knowledge-base probe for personal names (Wikidata).

Runs an entity search and, when a top candidate exists, fetches its full
entity document.  A ``person`` entity is emitted either way; the Wikidata
ID is attached only when a candidate was found.
"""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

from karma_osint.core.data_models import EvidenceDraft, TargetType
from karma_osint.core.error_recovery import SourceError, failure_evidence, log_level_for
from karma_osint.search.base import ProbeContext, ProbeResult, SourceProbe


def first_candidate_id(search: Any) -> Optional[str]:
    if not isinstance(search, dict):
        return None
    hits = search.get("search") or []
    if isinstance(hits, list) and hits and isinstance(hits[0], dict):
        candidate = hits[0].get("id")
        return str(candidate) if candidate else None
    return None


class KnowledgeBaseProbe(SourceProbe):
    """Looks a name up in Wikidata."""

    name = "wikidata"
    source = "Wikidata"
    target_types = frozenset({TargetType.NAME})

    def describe(self, target: str) -> str:
        return f"Wikidata search: {target}"

    async def run(self, target: str, target_type: TargetType, ctx: ProbeContext) -> ProbeResult:
        result = ProbeResult()
        try:
            await ctx.courtesy_delay()
            search = await ctx.http.get_json(
                ctx.config.get_str("sources.wikidata_api_url"),
                params={
                    "action": "wbsearchentities",
                    "search": target,
                    "language": "en",
                    "format": "json",
                    "limit": 5,
                },
                timeout=ctx.slow_timeout,
                source=self.source,
            )
            result.add_evidence(
                EvidenceDraft.from_json(
                    f"Wikidata search: {target}",
                    self.source,
                    search,
                    tags=["name", "wikidata"],
                    confidence=0.5,
                )
            )

            entity_id = first_candidate_id(search)
            if entity_id:
                url = ctx.config.get_str("sources.wikidata_entity_url").format(
                    id=quote(entity_id, safe="")
                )
                entity = await ctx.http.get_json(
                    url, timeout=ctx.slow_timeout, source=self.source
                )
                result.add_evidence(
                    EvidenceDraft.from_json(
                        f"Wikidata entity: {entity_id}",
                        self.source,
                        entity,
                        tags=["name", "wikidata", "entity"],
                        confidence=0.6,
                    )
                )
                result.add_entity("person", target, wikidataId=entity_id)
            else:
                result.add_entity("person", target)
        except SourceError as exc:
            self.logger.log(log_level_for(exc), "Wikidata lookup failed for %r: %s", target, exc)
            result.add_evidence(
                failure_evidence(
                    "Wikidata lookup failed",
                    self.source,
                    exc,
                    tags=["name"],
                    confidence=0.1,
                )
            )
            result.add_entity("person", target)
        return result
