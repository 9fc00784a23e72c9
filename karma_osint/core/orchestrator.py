"""Collection orchestrator for karma_osint.

This module defines :class:`CollectionOrchestrator`, which runs a
best-effort, time-bounded OSINT collection for one target:

1. normalise the target and resolve its type;
2. for a ``case`` description, extract indicators and collect each one
   recursively, then run one web-search pass over the strongest leads;
3. otherwise run the source probes that apply to the type, then web search,
   then follow a few discovered domains/usernames one level deep with web
   search disabled, then run the probes marked ``after_leads``;
4. deduplicate entities and score the accumulated evidence.

Everything runs sequentially.  One :class:`TimeBudget` is shared by the
whole call tree and checked before every probe, recursive call and search
query; once it has passed, remaining work everywhere in the tree is
skipped and whatever was collected so far is returned.  Source failures
become low-confidence evidence items and never escape as exceptions.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from karma_osint.core.config import Config, get_config
from karma_osint.core.data_models import (
    CollectionResult,
    Depth,
    EntityDraft,
    EvidenceDraft,
    TargetType,
    TimeBudget,
)
from karma_osint.core.deduplication import deduplicate_entities, unique_by_value
from karma_osint.core.error_recovery import SourceError, failure_evidence, log_level_for
from karma_osint.core.http_client import AsyncHTTPClient
from karma_osint.core.indicators import EMAIL_PATTERN, PHONE_PATTERN, extract_indicators
from karma_osint.core.logging_setup import log_performance
from karma_osint.core.progress import StepCallback, StepReporter, get_step_reporter
from karma_osint.core.scoring import compute_confidence
from karma_osint.integrations.web_search import WebSearchProvider, get_search_provider
from karma_osint.search import ProbeContext, ProbeResult, SourceProbe, default_probes
from karma_osint.search.base import Sleep
from karma_osint.utils.parsers import extract_username_from_profile_url, hostname_of
from karma_osint.utils.validators import normalize_phone, resolve_target

# Caps per depth: (normal, thorough)
CASE_INDICATOR_LIMIT = {Depth.NORMAL: 8, Depth.THOROUGH: 20}
CASE_SEARCH_LEADS = {Depth.NORMAL: 2, Depth.THOROUGH: 4}
SEARCH_QUERY_LIMIT = {Depth.NORMAL: 2, Depth.THOROUGH: 5}
SEARCH_RESULT_LIMIT = {Depth.NORMAL: 6, Depth.THOROUGH: 10}
LEAD_FOLLOW_LIMIT = {Depth.NORMAL: 1, Depth.THOROUGH: 4}

HITS_PER_QUERY = 10
EMAILS_PER_HIT = 3
PHONES_PER_HIT = 2
SEARCH_DELAY_SECONDS = 0.25
SEARCH_TIMEOUT_MIN_MS = 5_000
SEARCH_TIMEOUT_MAX_MS = 15_000

SEARCHABLE_TYPES = frozenset(
    {
        TargetType.NAME,
        TargetType.USERNAME,
        TargetType.EMAIL,
        TargetType.PHONE,
        TargetType.DOMAIN,
        TargetType.IP,
    }
)
CASE_LEAD_TYPES = ("name", "username", "email", "domain")

SEARCH_HINT = (
    "Set OSINT_SEARCH_PROVIDER and provider API key "
    "(BRAVE_SEARCH_API_KEY, or ROUTEWAY_API_KEY and ROUTEWAY_SEARCH_URL)"
)

_FROM_CONFIG: Any = object()


def build_search_queries(target: str, target_type: TargetType) -> List[str]:
    """Type-specific web-search queries for a single identifier."""
    if target_type == TargetType.NAME:
        return [f'"{target}"', f'"{target}" profile']
    if target_type == TargetType.USERNAME:
        return [f'"{target}"', f'"{target}" instagram', f'"{target}" facebook']
    if target_type == TargetType.EMAIL:
        return [f'"{target}"']
    if target_type == TargetType.PHONE:
        return [f'"{normalize_phone(target) or target}"']
    if target_type == TargetType.DOMAIN:
        return [f"site:{target}", f'"{target}" contact']
    if target_type == TargetType.IP:
        return [f'"{target}"']
    return []


def build_case_queries(indicators: Iterable[Any], limit: int) -> List[str]:
    """Queries for the strongest case indicators (names, usernames, emails, domains)."""
    leads = [i for i in indicators if i.type in CASE_LEAD_TYPES][:limit]
    return [f"site:{i.value}" if i.type == "domain" else f'"{i.value}"' for i in leads]


@dataclass
class _Run:
    """State shared by one top-level call and all of its sub-collections."""

    budget: TimeBudget
    reporter: StepReporter
    ctx: ProbeContext


@dataclass
class _Accumulator:
    """Evidence, entities and risk collected by one invocation."""

    evidence: List[EvidenceDraft] = field(default_factory=list)
    entities: List[EntityDraft] = field(default_factory=list)
    risk_delta: float = 0

    def add_entity(self, entity_type: str, value: Any, **metadata: Any) -> None:
        text = str(value if value is not None else "").strip()
        if text:
            self.entities.append(
                EntityDraft(entity_type=entity_type, value=text, metadata=metadata)
            )

    def merge(self, other: Union[ProbeResult, CollectionResult]) -> None:
        self.evidence.extend(other.evidence)
        self.entities.extend(other.entities)
        self.risk_delta += other.risk_delta

    def result(self) -> CollectionResult:
        return CollectionResult(
            evidence=list(self.evidence),
            entities=deduplicate_entities(self.entities),
            risk_delta=self.risk_delta,
            confidence=compute_confidence(self.evidence),
        )


class CollectionOrchestrator:
    """Coordinates source probes, web search and lead-following for a target."""

    def __init__(
        self,
        config: Optional[Config] = None,
        *,
        probes: Optional[Sequence[SourceProbe]] = None,
        search_provider: Optional[WebSearchProvider] = _FROM_CONFIG,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize the orchestrator.

        Parameters
        ----------
        config: Config, optional
            Settings; defaults to the process-wide configuration.
        probes: sequence of SourceProbe, optional
            Probes to run, in order; defaults to :func:`default_probes`.
        search_provider: WebSearchProvider or None, optional
            Active web-search backend.  Defaults to the provider selected by
            configuration; pass ``None`` to disable web search.
        sleep: callable
            Coroutine used for courtesy delays.
        """
        self.config = config or get_config()
        self.probes = list(probes) if probes is not None else default_probes()
        if search_provider is _FROM_CONFIG:
            search_provider = get_search_provider(self.config)
        self.search_provider = search_provider
        self.sleep = sleep
        self.logger = logging.getLogger(self.__class__.__name__)

    async def collect(
        self,
        target: str,
        target_type: Optional[str] = None,
        *,
        depth: Union[str, Depth] = Depth.NORMAL,
        time_budget_ms: Optional[int] = None,
        on_step: Optional[Union[StepCallback, StepReporter]] = None,
        skip_web_search: bool = False,
        _started_at_ms: Optional[int] = None,
        http_client: Optional[AsyncHTTPClient] = None,
    ) -> CollectionResult:
        """Run a collection and return its result.

        Parameters
        ----------
        target: str
            Identifier or freeform case description.
        target_type: str, optional
            Explicit type; inferred from the target when omitted.
        depth: str
            ``"normal"`` or ``"thorough"``.
        time_budget_ms: int, optional
            Overall budget for the whole call tree; defaults by depth.
        on_step: callable or StepReporter, optional
            Receives short progress labels.  Failures in it are ignored.
        skip_web_search: bool
            Suppress web search for this call and its sub-collections.
        _started_at_ms: int, optional
            Start time of an enclosing call whose deadline should be reused.
        http_client: AsyncHTTPClient, optional
            An already-open client to share; one is opened otherwise.
        """
        depth = Depth.parse(depth)
        if time_budget_ms is None:
            time_budget_ms = self.config.budget_ms_for(depth.value)
        budget = TimeBudget.start(time_budget_ms, _started_at_ms)
        reporter = get_step_reporter(on_step)

        with log_performance(f"OSINT collection for {str(target)[:60]!r}", self.logger):
            if http_client is not None:
                return await self._collect_guarded(
                    target, target_type, depth, skip_web_search, budget, reporter, http_client
                )
            async with AsyncHTTPClient(
                timeout=self.config.get_int("collection.default_timeout_ms", 12_000) / 1000,
                user_agent=self.config.get_str("collection.user_agent") or None,
            ) as client:
                return await self._collect_guarded(
                    target, target_type, depth, skip_web_search, budget, reporter, client
                )

    async def _collect_guarded(
        self,
        target: str,
        target_type: Optional[str],
        depth: Depth,
        skip_web_search: bool,
        budget: TimeBudget,
        reporter: StepReporter,
        client: AsyncHTTPClient,
    ) -> CollectionResult:
        run = _Run(
            budget=budget,
            reporter=reporter,
            ctx=ProbeContext(http=client, config=self.config, sleep=self.sleep),
        )
        acc = _Accumulator()
        try:
            return await self._collect(
                target,
                target_type,
                run,
                depth=depth,
                skip_web_search=skip_web_search,
                follow_leads=True,
                acc=acc,
            )
        except Exception as exc:
            # Keep whatever the top level gathered before the failure.
            self.logger.exception("Collection for %r failed unexpectedly", str(target)[:60])
            acc.evidence.append(
                failure_evidence(
                    "Collection failed",
                    "Collector",
                    exc,
                    tags=["internal-error"],
                    confidence=0.1,
                )
            )
            return acc.result()

    async def _step(self, run: _Run, message: str) -> None:
        try:
            await run.reporter.step(message)
        except Exception as exc:
            self.logger.warning("Step reporter failed on %r: %s", message, exc)

    async def _collect(
        self,
        raw_target: str,
        target_type: Optional[str],
        run: _Run,
        *,
        depth: Depth,
        skip_web_search: bool,
        follow_leads: bool,
        acc: Optional[_Accumulator] = None,
    ) -> CollectionResult:
        info = resolve_target(raw_target, target_type)
        target, ttype = info.value, info.target_type
        if acc is None:
            acc = _Accumulator()
        self.logger.debug("Collecting %s %r (depth=%s)", ttype.value, target[:60], depth.value)

        if ttype == TargetType.CASE:
            return await self._collect_case(
                str(raw_target or "").strip(), run, acc, depth=depth, skip_web_search=skip_web_search
            )

        probes = [p for p in self.probes if p.applies_to(ttype)]
        if not await self._run_probes(
            [p for p in probes if not p.after_leads], target, ttype, run, acc
        ):
            return acc.result()

        if ttype in SEARCHABLE_TYPES:
            await self._web_search(
                build_search_queries(target, ttype),
                ttype.value,
                run,
                acc,
                depth=depth,
                skip_web_search=skip_web_search,
            )

        if follow_leads and not run.budget.expired():
            await self._follow_leads(target, run, acc, depth=depth)

        # Pivots added here are never followed as leads.
        await self._run_probes([p for p in probes if p.after_leads], target, ttype, run, acc)
        return acc.result()

    async def _run_probes(
        self,
        probes: Sequence[SourceProbe],
        target: str,
        ttype: TargetType,
        run: _Run,
        acc: _Accumulator,
    ) -> bool:
        """Run ``probes`` in order; return False once the deadline stops them."""
        for probe in probes:
            if run.budget.expired():
                self.logger.info("Time budget reached before %s for %r", probe.name, target)
                await self._step(
                    run, f"Time budget reached; skipping remaining sources for {target}."
                )
                return False
            await self._step(run, probe.describe(target))
            acc.merge(await self._run_probe(probe, target, ttype, run))
        return True

    async def _collect_case(
        self,
        text: str,
        run: _Run,
        acc: _Accumulator,
        *,
        depth: Depth,
        skip_web_search: bool,
    ) -> CollectionResult:
        indicators = extract_indicators(text)
        await self._step(run, f"Foundation parsing: extracting indicators ({len(indicators)})")

        acc.evidence.append(
            EvidenceDraft.from_json(
                "Case description (input)",
                "Case Intake",
                {"description": text},
                tags=["case", "intake"],
                confidence=0.9,
            )
        )
        acc.evidence.append(
            EvidenceDraft.from_json(
                "Extracted indicators",
                "Parser",
                [i.to_dict() for i in indicators],
                tags=["case", "indicators"],
                confidence=0.7,
            )
        )

        for indicator in indicators[: CASE_INDICATOR_LIMIT[depth]]:
            if run.budget.expired():
                await self._step(
                    run,
                    f"Time budget reached; stopping early with {len(acc.evidence)} evidence items.",
                )
                break
            await self._step(run, f"Collecting ({indicator.type}): {indicator.value}")
            acc.merge(
                await self._collect(
                    indicator.value,
                    indicator.type,
                    run,
                    depth=depth,
                    skip_web_search=skip_web_search,
                    follow_leads=True,
                )
            )

        await self._web_search(
            build_case_queries(indicators, CASE_SEARCH_LEADS[depth]),
            "case primary leads",
            run,
            acc,
            depth=depth,
            skip_web_search=skip_web_search,
        )
        return acc.result()

    async def _run_probe(
        self, probe: SourceProbe, target: str, ttype: TargetType, run: _Run
    ) -> ProbeResult:
        try:
            return await probe.run(target, ttype, run.ctx)
        except Exception as exc:
            self.logger.exception("Probe %s crashed for %r", probe.name, target)
            result = ProbeResult()
            result.add_evidence(
                failure_evidence(
                    f"{probe.source or probe.name} lookup failed for {target}",
                    probe.source or probe.name,
                    exc,
                    tags=[probe.name, "internal-error"],
                    confidence=0.1,
                )
            )
            return result

    async def _web_search(
        self,
        queries: List[str],
        label: str,
        run: _Run,
        acc: _Accumulator,
        *,
        depth: Depth,
        skip_web_search: bool,
    ) -> None:
        if not queries or run.budget.expired() or skip_web_search:
            return

        provider = self.search_provider
        if provider is None:
            acc.evidence.append(
                EvidenceDraft.from_json(
                    f"Web search skipped (no provider configured): {label}",
                    "Web Search",
                    {"configured": False, "hint": SEARCH_HINT},
                    tags=["web-search", "config"],
                    confidence=0.05,
                )
            )
            return

        for query in queries[: SEARCH_QUERY_LIMIT[depth]]:
            if run.budget.expired():
                break
            await self._step(run, f"Web search ({label}): {query}")
            try:
                await self.sleep(SEARCH_DELAY_SECONDS)
                timeout_ms = min(
                    SEARCH_TIMEOUT_MAX_MS, max(SEARCH_TIMEOUT_MIN_MS, run.budget.remaining_ms())
                )
                response = await provider.search(
                    query,
                    http=run.ctx.http,
                    limit=SEARCH_RESULT_LIMIT[depth],
                    timeout_ms=timeout_ms,
                )
            except SourceError as exc:
                self.logger.log(log_level_for(exc), "Web search failed for %r: %s", query, exc)
                acc.evidence.append(self._search_failure(query, exc))
                continue
            except Exception as exc:
                self.logger.exception("Web search provider crashed for %r", query)
                acc.evidence.append(self._search_failure(query, exc, internal=True))
                continue

            hits = [hit.to_dict() for hit in response.results]
            acc.evidence.append(
                EvidenceDraft.from_json(
                    f"Web search results: {query}",
                    f"Web Search ({response.provider})" if response.provider else "Web Search",
                    {"query": query, "results": hits},
                    tags=["web-search"],
                    confidence=0.45 if hits else 0.15,
                )
            )
            self._extract_search_entities(response.results[:HITS_PER_QUERY], acc)

    @staticmethod
    def _search_failure(query: str, exc: BaseException, internal: bool = False) -> EvidenceDraft:
        tags = ["web-search", "internal-error"] if internal else ["web-search"]
        return failure_evidence(
            f"Web search failed: {query}", "Web Search", exc, tags=tags, confidence=0.1
        )

    @staticmethod
    def _extract_search_entities(hits: Iterable[Any], acc: _Accumulator) -> None:
        for hit in hits:
            if hit.url:
                acc.add_entity("url", hit.url, **{"from": "web-search"})
                host = hostname_of(hit.url)
                if host:
                    acc.add_entity("domain", host, **{"from": "web-search-url"})
                profile = extract_username_from_profile_url(hit.url)
                if profile is not None:
                    acc.add_entity(
                        "username",
                        profile.username,
                        **{"from": "web-search-profile", "platform": profile.platform, "url": hit.url},
                    )

            text = f"{hit.title or ''}\n{hit.snippet or ''}"
            emails = list(dict.fromkeys(EMAIL_PATTERN.findall(text)))
            for email in emails[:EMAILS_PER_HIT]:
                acc.add_entity("email", email.lower(), **{"from": "web-search"})
            phones = list(dict.fromkeys(PHONE_PATTERN.findall(text)))
            for phone in phones[:PHONES_PER_HIT]:
                acc.add_entity("phone", normalize_phone(phone), **{"from": "web-search"})

    async def _follow_leads(
        self, target: str, run: _Run, acc: _Accumulator, *, depth: Depth
    ) -> None:
        limit = LEAD_FOLLOW_LIMIT[depth]
        followed = set()

        for lead_type, label in (
            (TargetType.DOMAIN, "domain enrichment for {}"),
            (TargetType.USERNAME, "username enrichment for {} (public APIs only)"),
        ):
            leads = [
                value
                for value in unique_by_value(
                    e.value for e in acc.entities if e.entity_type == lead_type.value
                )
                if value.lower() != target.lower()
            ][:limit]

            for lead in leads:
                if run.budget.expired():
                    break
                key = f"{lead_type.value}:{lead}".lower()
                if key in followed:
                    continue
                followed.add(key)
                await self._step(run, f"Lead follow: {label.format(lead)}")
                acc.merge(
                    await self._collect(
                        lead,
                        lead_type.value,
                        run,
                        depth=Depth.NORMAL,
                        skip_web_search=True,
                        follow_leads=False,
                    )
                )


async def run_safe_osint_collection(
    target: Union[str, Mapping[str, Any]],
    target_type: Optional[str] = None,
    *,
    depth: Union[str, Depth] = Depth.NORMAL,
    time_budget_ms: Optional[int] = None,
    on_step: Optional[Union[StepCallback, StepReporter]] = None,
    skip_web_search: bool = False,
    _started_at_ms: Optional[int] = None,
    config: Optional[Config] = None,
    orchestrator: Optional[CollectionOrchestrator] = None,
) -> CollectionResult:
    """Collect public evidence for ``target`` within a time budget.

    ``target`` may be a string or a mapping with ``target`` and optional
    ``targetType`` keys.  Always returns a :class:`CollectionResult`;
    partial failures show up as low-confidence evidence items.
    """
    if isinstance(target, Mapping):
        target_type = target_type or target.get("targetType") or target.get("target_type")
        target = str(target.get("target") or "")

    orchestrator = orchestrator or CollectionOrchestrator(config)
    return await orchestrator.collect(
        target,
        target_type,
        depth=depth,
        time_budget_ms=time_budget_ms,
        on_step=on_step,
        skip_web_search=skip_web_search,
        _started_at_ms=_started_at_ms,
    )
