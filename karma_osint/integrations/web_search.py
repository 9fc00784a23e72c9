"""Pluggable web-search providers.

At most one provider is active, selected by ``search.provider``
(``OSINT_SEARCH_PROVIDER``).  Every provider normalises its own response
shape into :class:`SearchHit` records and drops records that have neither a
title nor a URL.

Providers:
- brave: Brave Search API (``BRAVE_SEARCH_API_KEY``)
- routeway: generic JSON search endpoint (``ROUTEWAY_SEARCH_URL`` +
  ``ROUTEWAY_API_KEY``)

An unset, unknown or credential-less provider means web search is
disabled.  That is a normal, degraded state and not an error.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Type

from karma_osint.core.config import Config
from karma_osint.core.error_recovery import MalformedResponseError
from karma_osint.core.http_client import AsyncHTTPClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchHit:
    """One normalised search result."""

    title: str
    url: str
    snippet: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"title": self.title, "url": self.url}
        if self.snippet is not None:
            data["snippet"] = self.snippet
        return data


@dataclass
class SearchResponse:
    """Results of one query."""

    provider: str
    query: str
    results: List[SearchHit] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "query": self.query,
            "results": [r.to_dict() for r in self.results],
        }


def _first_str(row: Dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = row.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def normalize_hits(rows: Any, limit: int) -> List[SearchHit]:
    """Map heterogeneous result rows onto :class:`SearchHit`."""
    hits: List[SearchHit] = []
    if not isinstance(rows, list):
        return hits
    for row in rows:
        if not isinstance(row, dict):
            continue
        title = _first_str(row, "title", "name")
        url = _first_str(row, "url", "link", "href")
        if not title and not url:
            continue
        snippet = _first_str(row, "snippet", "description", "content") or None
        hits.append(SearchHit(title=title, url=url, snippet=snippet))
        if len(hits) >= limit:
            break
    return hits


class WebSearchProvider(ABC):
    """Base class for web-search backends."""

    name: str = ""

    def __init__(self, config: Config) -> None:
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the credentials/endpoint needed for queries are present."""

    @abstractmethod
    def _build_request(self, query: str, limit: int) -> Dict[str, Any]:
        """Return ``url``, ``params`` and ``headers`` for a query."""

    @abstractmethod
    def _parse(self, payload: Any, limit: int) -> List[SearchHit]:
        """Normalise the provider payload."""

    async def search(
        self,
        query: str,
        *,
        http: AsyncHTTPClient,
        limit: int = 6,
        timeout_ms: int = 15_000,
    ) -> SearchResponse:
        """Run one query.

        Raises:
            SourceError: On transport, status or payload failures.
        """
        request = self._build_request(query, limit)
        payload = await http.get_json(
            request["url"],
            params=request.get("params"),
            headers=request.get("headers"),
            timeout=timeout_ms / 1000,
            source=f"Web Search ({self.name})",
        )
        results = self._parse(payload, limit)
        self.logger.debug("%s returned %d results for %r", self.name, len(results), query)
        return SearchResponse(provider=self.name, query=query, results=results)


class BraveSearchProvider(WebSearchProvider):
    """Brave Search web results."""

    name = "brave"

    @property
    def api_key(self) -> str:
        return self.config.get_str("search.brave_api_key")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _build_request(self, query: str, limit: int) -> Dict[str, Any]:
        return {
            "url": self.config.get_str("search.brave_url"),
            "params": {"q": query, "count": limit},
            "headers": {
                "Accept": "application/json",
                "X-Subscription-Token": self.api_key,
            },
        }

    def _parse(self, payload: Any, limit: int) -> List[SearchHit]:
        if payload is None:
            return []
        if not isinstance(payload, dict):
            raise MalformedResponseError("Unexpected Brave Search payload", source="Brave")
        web = payload.get("web") or {}
        return normalize_hits(web.get("results") if isinstance(web, dict) else None, limit)


class RoutewaySearchProvider(WebSearchProvider):
    """Generic JSON search endpoint authenticated with a bearer key."""

    name = "routeway"

    RESULT_KEYS = ("results", "data", "items", "organic_results")

    @property
    def api_key(self) -> str:
        return self.config.get_str("search.routeway_api_key")

    @property
    def url(self) -> str:
        return self.config.get_str("search.routeway_url")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) and bool(self.url)

    def _build_request(self, query: str, limit: int) -> Dict[str, Any]:
        return {
            "url": self.url,
            "params": {"q": query, "limit": limit},
            "headers": {
                "Accept": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            },
        }

    def _parse(self, payload: Any, limit: int) -> List[SearchHit]:
        if payload is None:
            return []
        if isinstance(payload, list):
            return normalize_hits(payload, limit)
        if not isinstance(payload, dict):
            raise MalformedResponseError("Unexpected search payload", source="Routeway")
        for key in self.RESULT_KEYS:
            if isinstance(payload.get(key), list):
                return normalize_hits(payload[key], limit)
        return []


PROVIDERS: Dict[str, Type[WebSearchProvider]] = {
    BraveSearchProvider.name: BraveSearchProvider,
    RoutewaySearchProvider.name: RoutewaySearchProvider,
}


def get_search_provider(config: Config) -> Optional[WebSearchProvider]:
    """Return the configured provider, or None when web search is disabled."""
    name = config.search_provider
    if not name:
        return None
    provider_cls = PROVIDERS.get(name)
    if provider_cls is None:
        logger.warning("Unknown web-search provider %r; web search disabled", name)
        return None
    provider = provider_cls(config)
    if not provider.is_configured:
        logger.warning("Web-search provider %r is missing credentials; web search disabled", name)
        return None
    return provider
