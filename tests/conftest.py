"""Shared fixtures for the karma_osint test suite."""

from __future__ import annotations

import pytest

from karma_osint.core.config import Config

# Environment variables that would otherwise leak a developer's settings
# into Config.get().
_ENV_KEYS = (
    "SEARCH_PROVIDER",
    "SEARCH_BRAVE_API_KEY",
    "SEARCH_BRAVE_URL",
    "SEARCH_ROUTEWAY_API_KEY",
    "SEARCH_ROUTEWAY_URL",
    "OSINT_SEARCH_PROVIDER",
    "BRAVE_SEARCH_API_KEY",
    "ROUTEWAY_API_KEY",
    "ROUTEWAY_SEARCH_URL",
    "LOGGING_LEVEL",
    "COLLECTION_NORMAL_BUDGET_MS",
    "COLLECTION_THOROUGH_BUDGET_MS",
    "COLLECTION_COURTESY_DELAY_MS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove configuration environment variables for every test."""
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def config() -> Config:
    """Default configuration without file or .env discovery."""
    return Config.from_dict({})
