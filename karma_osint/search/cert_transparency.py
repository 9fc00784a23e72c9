"""Certificate Transparency probe (crt.sh).

Collects the names on every certificate logged for ``*.<domain>``.  A large
subdomain footprint is treated as a modest risk signal.
"""

from __future__ import annotations

from typing import Any, Dict, List

from karma_osint.core.data_models import EvidenceDraft, TargetType
from karma_osint.core.error_recovery import SourceError, failure_evidence, log_level_for
from karma_osint.search.base import ProbeContext, ProbeResult, SourceProbe

MAX_SUBDOMAINS = 500
LARGE_FOOTPRINT = 50
LARGE_FOOTPRINT_RISK = 5


def parse_subdomains(rows: Any, limit: int = MAX_SUBDOMAINS) -> List[str]:
    """Unique lower-cased names from the newline-separated ``name_value`` fields."""
    names: Dict[str, None] = {}
    if isinstance(rows, list):
        for row in rows:
            if not isinstance(row, dict):
                continue
            for name in str(row.get("name_value") or "").split("\n"):
                clean = name.strip().lower()
                if clean and "." in clean:
                    names.setdefault(clean, None)
    return list(names)[:limit]


class CertTransparencyProbe(SourceProbe):
    """Enumerates subdomains from Certificate Transparency logs."""

    name = "crtsh"
    source = "crt.sh"
    target_types = frozenset({TargetType.DOMAIN})

    def describe(self, target: str) -> str:
        return f"Certificate Transparency (crt.sh): *.{target}"

    async def run(self, target: str, target_type: TargetType, ctx: ProbeContext) -> ProbeResult:
        result = ProbeResult()
        try:
            rows = await ctx.http.get_json(
                ctx.config.get_str("sources.crtsh_url"),
                params={"q": f"%.{target}", "output": "json"},
                timeout=ctx.slow_timeout,
                source=self.source,
            )
        except SourceError as exc:
            self.logger.log(log_level_for(exc), "crt.sh query failed for %s: %s", target, exc)
            result.add_evidence(
                failure_evidence(
                    f"crt.sh query failed for {target}",
                    self.source,
                    exc,
                    tags=["ct"],
                    confidence=0.2,
                )
            )
            return result

        subdomains = parse_subdomains(rows)
        for name in subdomains:
            result.add_entity("domain", name)
        if len(subdomains) > LARGE_FOOTPRINT:
            result.risk_delta += LARGE_FOOTPRINT_RISK

        result.add_evidence(
            EvidenceDraft.from_json(
                f"Certificate Transparency (crt.sh) for *.{target}",
                self.source,
                {"count": len(subdomains), "subdomains": subdomains},
                tags=["ct", "subdomains"],
                confidence=0.7,
            )
        )
        return result
