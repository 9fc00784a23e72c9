"""Address geocoding probe (OpenStreetMap Nominatim).

Nominatim's usage policy asks for a clear User-Agent and gentle request
rates, so the probe waits a short courtesy delay and sends one query.
"""

from __future__ import annotations

from karma_osint.core.data_models import EvidenceDraft, TargetType
from karma_osint.core.error_recovery import SourceError, failure_evidence, log_level_for
from karma_osint.search.base import ProbeContext, ProbeResult, SourceProbe


class GeocodeProbe(SourceProbe):
    """Geocodes a postal address."""

    name = "nominatim"
    source = "OpenStreetMap Nominatim"
    target_types = frozenset({TargetType.ADDRESS})

    def describe(self, target: str) -> str:
        return f"Geocode (Nominatim): {target}"

    async def run(self, target: str, target_type: TargetType, ctx: ProbeContext) -> ProbeResult:
        result = ProbeResult()
        try:
            await ctx.courtesy_delay()
            places = await ctx.http.get_json(
                ctx.config.get_str("sources.nominatim_url"),
                params={"format": "jsonv2", "limit": 5, "q": target},
                timeout=ctx.slow_timeout,
                source=self.source,
            )
        except SourceError as exc:
            self.logger.log(log_level_for(exc), "Geocode failed for %r: %s", target, exc)
            result.add_evidence(
                failure_evidence(
                    "Address geocode failed",
                    self.source,
                    exc,
                    tags=["address"],
                    confidence=0.1,
                )
            )
            return result

        found = isinstance(places, list) and len(places) > 0
        result.add_evidence(
            EvidenceDraft.from_json(
                f"Address geocode (Nominatim): {target}",
                self.source,
                places,
                tags=["address", "geocode"],
                confidence=0.8 if found else 0.2,
            )
        )

        if found and isinstance(places[0], dict):
            top = places[0]
            if top.get("lat") and top.get("lon"):
                result.add_entity("location", f"{top['lat']},{top['lon']}")
            if top.get("display_name"):
                result.add_entity("address", top["display_name"])
        return result
