"""External service integrations for karma_osint."""

from .web_search import (  # noqa: F401
    PROVIDERS,
    BraveSearchProvider,
    RoutewaySearchProvider,
    SearchHit,
    SearchResponse,
    WebSearchProvider,
    get_search_provider,
)

__all__ = [
    "PROVIDERS",
    "WebSearchProvider",
    "BraveSearchProvider",
    "RoutewaySearchProvider",
    "SearchHit",
    "SearchResponse",
    "get_search_provider",
]
