"""Username profile probe (GitHub public user API)."""

from __future__ import annotations

from urllib.parse import quote

from karma_osint.core.data_models import EvidenceDraft, TargetType
from karma_osint.core.error_recovery import SourceError, failure_evidence, log_level_for
from karma_osint.search.base import ProbeContext, ProbeResult, SourceProbe


class UsernameProfileProbe(SourceProbe):
    """Fetches the public GitHub profile for a username."""

    name = "github"
    source = "GitHub"
    target_types = frozenset({TargetType.USERNAME})

    def describe(self, target: str) -> str:
        return f"GitHub user lookup: {target}"

    async def run(self, target: str, target_type: TargetType, ctx: ProbeContext) -> ProbeResult:
        result = ProbeResult()
        base_url = ctx.config.get_str("sources.github_api_url").rstrip("/")
        try:
            user = await ctx.http.get_json(
                f"{base_url}/users/{quote(target, safe='')}",
                headers={"Accept": "application/vnd.github+json"},
                timeout=ctx.default_timeout,
                source=self.source,
            )
        except SourceError as exc:
            self.logger.log(log_level_for(exc), "GitHub user lookup failed for %s: %s", target, exc)
            result.add_evidence(
                failure_evidence(
                    f"GitHub user lookup failed: {target}",
                    self.source,
                    exc,
                    tags=["github"],
                    confidence=0.2,
                )
            )
            return result

        result.add_evidence(
            EvidenceDraft.from_json(
                f"GitHub user profile: {target}",
                self.source,
                user,
                tags=["github", "profile"],
                confidence=0.8,
            )
        )
        if isinstance(user, dict):
            if user.get("company"):
                result.add_entity("org", user["company"])
            if user.get("blog"):
                result.add_entity("url", user["blog"])
        return result
