"""DNS record probe.

Resolves A, AAAA, NS and MX records for a domain with dnspython's async
resolver.  Each record type is resolved independently: a failure for one
type leaves it out of the summary without affecting the others.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import dns.asyncresolver
import dns.exception

from karma_osint.core.data_models import EvidenceDraft, TargetType
from karma_osint.search.base import ProbeContext, ProbeResult, SourceProbe

RECORD_TYPES = ("A", "AAAA", "NS", "MX")


class DNSProbe(SourceProbe):
    """Resolves the basic DNS records of a domain."""

    name = "dns"
    source = "DNS"
    target_types = frozenset({TargetType.DOMAIN})

    def __init__(self, resolver: Optional[dns.asyncresolver.Resolver] = None) -> None:
        super().__init__()
        self._resolver = resolver

    def describe(self, target: str) -> str:
        return f"DNS lookup: {target}"

    def _get_resolver(self) -> Optional[dns.asyncresolver.Resolver]:
        if self._resolver is None:
            try:
                self._resolver = dns.asyncresolver.Resolver()
            except dns.exception.DNSException as exc:
                self.logger.warning("No usable DNS resolver configuration: %s", exc)
                return None
        return self._resolver

    async def _resolve(
        self,
        resolver: dns.asyncresolver.Resolver,
        target: str,
        record_type: str,
        lifetime: float,
    ) -> Optional[List[Any]]:
        try:
            answer = await resolver.resolve(target, record_type, lifetime=lifetime)
        except dns.exception.DNSException as exc:
            self.logger.debug("%s lookup failed for %s: %s", record_type, target, exc)
            return None

        if record_type in ("A", "AAAA"):
            return [rdata.address for rdata in answer]
        if record_type == "NS":
            return [rdata.target.to_text().rstrip(".") for rdata in answer]
        return [
            {"exchange": rdata.exchange.to_text().rstrip("."), "priority": rdata.preference}
            for rdata in answer
        ]

    async def run(self, target: str, target_type: TargetType, ctx: ProbeContext) -> ProbeResult:
        result = ProbeResult()
        summary: Dict[str, Any] = {}

        resolver = self._get_resolver()
        if resolver is not None:
            for record_type in RECORD_TYPES:
                records = await self._resolve(resolver, target, record_type, ctx.default_timeout)
                if records is not None:
                    summary[record_type] = records

        for ip in summary.get("A", []) + summary.get("AAAA", []):
            result.add_entity("ip", ip)
        for ns in summary.get("NS", []):
            result.add_entity("domain", ns)

        result.add_evidence(
            EvidenceDraft.from_json(
                f"DNS records for {target}",
                self.source,
                summary,
                tags=["dns", "enrichment"],
                confidence=0.9,
            )
        )
        return result
