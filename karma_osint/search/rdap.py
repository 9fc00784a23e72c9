"""RDAP registration probe for domains and IP addresses."""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

from karma_osint.core.data_models import EvidenceDraft, TargetType
from karma_osint.core.error_recovery import SourceError, failure_evidence, log_level_for
from karma_osint.search.base import ProbeContext, ProbeResult, SourceProbe


def extract_org(rdap: Any) -> Optional[str]:
    """Registrant organisation from ``name`` or the first remark description."""
    if not isinstance(rdap, dict):
        return None
    org = rdap.get("name")
    if not org:
        remarks = rdap.get("remarks") or []
        if isinstance(remarks, list) and remarks and isinstance(remarks[0], dict):
            description = remarks[0].get("description") or []
            if isinstance(description, list) and description:
                org = description[0]
    if isinstance(org, str) and org.strip():
        return org.strip()
    return None


class RDAPProbe(SourceProbe):
    """Queries a public RDAP aggregator."""

    name = "rdap"
    source = "RDAP"
    target_types = frozenset({TargetType.DOMAIN, TargetType.IP})

    def describe(self, target: str) -> str:
        return f"RDAP lookup: {target}"

    def build_url(self, base_url: str, target: str, target_type: TargetType) -> str:
        kind = "domain" if target_type == TargetType.DOMAIN else "ip"
        return f"{base_url.rstrip('/')}/{kind}/{quote(target, safe='')}"

    async def run(self, target: str, target_type: TargetType, ctx: ProbeContext) -> ProbeResult:
        result = ProbeResult()
        url = self.build_url(ctx.config.get_str("sources.rdap_url"), target, target_type)
        try:
            rdap = await ctx.http.get_json(url, timeout=ctx.default_timeout, source=self.source)
        except SourceError as exc:
            self.logger.log(log_level_for(exc), "RDAP lookup failed for %s: %s", target, exc)
            result.add_evidence(
                failure_evidence(
                    f"RDAP lookup failed for {target}",
                    self.source,
                    exc,
                    tags=["rdap"],
                    confidence=0.1,
                )
            )
            return result

        result.add_evidence(
            EvidenceDraft.from_json(
                f"RDAP lookup for {target}",
                self.source,
                rdap,
                tags=["rdap", "registration"],
                confidence=0.9,
            )
        )
        org = extract_org(rdap)
        if org:
            result.add_entity("org", org)
        return result
