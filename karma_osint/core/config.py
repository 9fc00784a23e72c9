"""Configuration management for karma_osint.

This module provides centralized configuration loading from multiple sources:
- YAML/TOML configuration files
- Environment variables (.env)
- Default values

The collection engine only needs a handful of settings (per-source endpoints
and timeouts, default time budgets and the active web-search provider), but
every component accepts an explicit :class:`Config` so callers can inject
their own instead of relying on the process-wide instance.
"""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # type: ignore

import yaml
from dotenv import load_dotenv


DEFAULTS: Dict[str, Dict[str, Any]] = {
    "logging": {
        "level": "INFO",
        "file": "",
        "json": False,
    },
    "collection": {
        "normal_budget_ms": 90_000,
        "thorough_budget_ms": 300_000,
        "user_agent": "Dpt-of-Karma-OSINT/1.0 (+local)",
        "default_timeout_ms": 12_000,
        "slow_timeout_ms": 15_000,
        "courtesy_delay_ms": 250,
    },
    "search": {
        "provider": "",
        "brave_api_key": "",
        "brave_url": "https://api.search.brave.com/res/v1/web/search",
        "routeway_api_key": "",
        "routeway_url": "",
    },
    "sources": {
        "rdap_url": "https://rdap.org",
        "crtsh_url": "https://crt.sh/",
        "nominatim_url": "https://nominatim.openstreetmap.org/search",
        "wikidata_api_url": "https://www.wikidata.org/w/api.php",
        "wikidata_entity_url": "https://www.wikidata.org/wiki/Special:EntityData/{id}.json",
        "github_api_url": "https://api.github.com",
    },
}

# Environment variable names used by existing deployments.
LEGACY_ENV_KEYS: Dict[str, str] = {
    "search.provider": "OSINT_SEARCH_PROVIDER",
    "search.brave_api_key": "BRAVE_SEARCH_API_KEY",
    "search.routeway_api_key": "ROUTEWAY_API_KEY",
    "search.routeway_url": "ROUTEWAY_SEARCH_URL",
}

SUPPORTED_PROVIDERS = ("brave", "routeway")


@dataclass
class ValidationResult:
    """Result of configuration validation."""

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    missing_api_keys: List[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add an error message."""
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str) -> None:
        """Add a warning message."""
        self.warnings.append(message)

    def __str__(self) -> str:
        lines = []
        if self.errors:
            lines.append("Errors:")
            lines.extend(f"  - {e}" for e in self.errors)
        if self.warnings:
            lines.append("Warnings:")
            lines.extend(f"  - {w}" for w in self.warnings)
        if self.missing_api_keys:
            lines.append("Missing API keys (optional):")
            lines.extend(f"  - {k}" for k in self.missing_api_keys)
        if not lines:
            return "Configuration is valid."
        return "\n".join(lines)


class Config:
    """Configuration manager for karma_osint."""

    def __init__(self, config_file: Optional[str] = None, *, load_env: bool = True):
        """
        Initialize configuration.

        Args:
            config_file: Path to YAML or TOML config file (optional)
            load_env: Whether to load a ``.env`` file from the working directory
        """
        self.logger = logging.getLogger(self.__class__.__name__)
        self._config: Dict[str, Any] = {}
        self._config_file = config_file

        env_path = Path(".env")
        if load_env and env_path.exists():
            load_dotenv(env_path)
            self.logger.info("Loaded environment variables from .env")

        if config_file:
            self._load_config_file(config_file)
        else:
            self._auto_load_config()

        self._load_defaults()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Build a config from a mapping, skipping file and .env discovery."""
        config = cls.__new__(cls)
        config.logger = logging.getLogger(cls.__name__)
        config._config = copy.deepcopy(data)
        config._config_file = None
        config._load_defaults()
        return config

    def _load_config_file(self, config_file: str) -> None:
        """Load configuration from YAML or TOML file."""
        config_path = Path(config_file)

        if not config_path.exists():
            self.logger.warning("Config file not found: %s", config_file)
            return

        try:
            with open(config_path, "rb") as f:
                if config_file.endswith((".yaml", ".yml")):
                    self._config = yaml.safe_load(f) or {}
                    self.logger.info("Loaded YAML config from %s", config_file)
                elif config_file.endswith(".toml"):
                    self._config = tomllib.load(f)
                    self.logger.info("Loaded TOML config from %s", config_file)
                else:
                    self.logger.error("Unsupported config format: %s", config_file)
        except (OSError, yaml.YAMLError, tomllib.TOMLDecodeError) as e:
            self.logger.error("Failed to load config file %s: %s", config_file, e)

    def _auto_load_config(self) -> None:
        """Automatically find and load config file."""
        config_dir = Path("config")
        candidates = [
            config_dir / "karma_osint.yaml",
            config_dir / "karma_osint.yml",
            config_dir / "karma_osint.toml",
            Path("karma_osint.yaml"),
            Path("karma_osint.yml"),
            Path("karma_osint.toml"),
        ]

        for candidate in candidates:
            if candidate.exists():
                self._load_config_file(str(candidate))
                return

        self.logger.debug("No config file found, using defaults and environment variables")

    def _load_defaults(self) -> None:
        """Deep-merge defaults under the loaded config (loaded values win)."""
        for key, value in DEFAULTS.items():
            if key not in self._config:
                self._config[key] = copy.deepcopy(value)
            elif isinstance(value, dict):
                self._config[key] = {**value, **(self._config.get(key) or {})}

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value.

        Supports dot notation for nested keys: "search.provider".
        Environment variables take precedence: ``SEARCH_PROVIDER`` for
        ``search.provider``, then the legacy names in ``LEGACY_ENV_KEYS``.

        Args:
            key: Configuration key (supports dot notation)
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        env_key = key.upper().replace(".", "_")
        env_value = os.getenv(env_key)
        if env_value is not None:
            return env_value

        legacy = LEGACY_ENV_KEYS.get(key)
        if legacy:
            env_value = os.getenv(legacy)
            if env_value is not None:
                return env_value

        value: Any = self._config
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def get_int(self, key: str, default: int = 0) -> int:
        """Get a configuration value coerced to ``int``."""
        value = self.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            self.logger.warning("Config %s=%r is not an integer, using %d", key, value, default)
            return default

    def get_str(self, key: str, default: str = "") -> str:
        """Get a configuration value as a stripped string."""
        value = self.get(key, default)
        return str(value if value is not None else "").strip()

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value at runtime.

        Args:
            key: Configuration key (supports dot notation)
            value: Value to set
        """
        keys = key.split(".")
        config = self._config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value
        self.logger.debug("Set config %s", key)

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get entire configuration section."""
        return self._config.get(section, {})

    @property
    def search_provider(self) -> str:
        """Name of the active web-search provider, or empty when disabled."""
        return self.get_str("search.provider").lower()

    def web_search_status(self) -> Dict[str, Any]:
        """Report which web-search provider is selected and whether it is usable."""
        provider = self.search_provider
        if provider == "brave":
            configured = bool(self.get_str("search.brave_api_key"))
        elif provider == "routeway":
            configured = bool(self.get_str("search.routeway_api_key")) and bool(
                self.get_str("search.routeway_url")
            )
        else:
            configured = False
        return {"webSearchProvider": provider or None, "webSearchConfigured": configured}

    def budget_ms_for(self, depth: str) -> int:
        """Default overall time budget for a collection depth."""
        if str(depth) == "thorough":
            return self.get_int("collection.thorough_budget_ms", 300_000)
        return self.get_int("collection.normal_budget_ms", 90_000)

    def to_dict(self) -> Dict[str, Any]:
        """Get all configuration as dictionary."""
        return copy.deepcopy(self._config)

    def reload(self, config_file: Optional[str] = None) -> None:
        """Reload configuration from file."""
        self._config = {}
        config_file = config_file or self._config_file
        if config_file:
            self._load_config_file(config_file)
        else:
            self._auto_load_config()
        self._load_defaults()
        self.logger.info("Configuration reloaded")

    def validate(self) -> ValidationResult:
        """
        Validate the configuration.

        Checks:
        - Logging level is recognised
        - Budgets, timeouts and delays are non-negative integers
        - The selected web-search provider is known and has credentials

        Returns:
            ValidationResult with errors and warnings
        """
        result = ValidationResult(is_valid=True)

        log_level = str(self.get("logging.level", "INFO"))
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if log_level.upper() not in valid_levels:
            result.add_error(
                f"Invalid logging level '{log_level}'. Must be one of: {', '.join(valid_levels)}"
            )

        for key in (
            "collection.normal_budget_ms",
            "collection.thorough_budget_ms",
            "collection.default_timeout_ms",
            "collection.slow_timeout_ms",
            "collection.courtesy_delay_ms",
        ):
            value = self.get(key)
            try:
                ok = int(value) >= 0
            except (TypeError, ValueError):
                ok = False
            if not ok:
                result.add_error(f"{key} must be a non-negative integer")

        provider = self.search_provider
        if not provider:
            result.add_warning("No web-search provider configured; web search will be skipped")
        elif provider not in SUPPORTED_PROVIDERS:
            result.add_error(
                f"Unknown search provider '{provider}'. "
                f"Must be one of: {', '.join(SUPPORTED_PROVIDERS)}"
            )
        elif not self.web_search_status()["webSearchConfigured"]:
            if provider == "brave":
                result.missing_api_keys.append("BRAVE_SEARCH_API_KEY: Brave Search API")
            else:
                result.missing_api_keys.append(
                    "ROUTEWAY_API_KEY / ROUTEWAY_SEARCH_URL: Routeway search endpoint"
                )

        if not result.is_valid:
            for error in result.errors:
                self.logger.error("Config validation error: %s", error)
        for warning in result.warnings:
            self.logger.warning("Config validation warning: %s", warning)

        return result

    def validate_and_raise(self) -> None:
        """
        Validate configuration and raise exception if invalid.

        Raises:
            ValueError: If configuration is invalid
        """
        result = self.validate()
        if not result.is_valid:
            raise ValueError(f"Invalid configuration:\n{result}")


# Global configuration instance
_global_config: Optional[Config] = None


def get_config(config_file: Optional[str] = None) -> Config:
    """
    Get global configuration instance.

    Args:
        config_file: Path to config file (only used on first call)

    Returns:
        Config instance
    """
    global _global_config

    if _global_config is None:
        _global_config = Config(config_file)

    return _global_config


def reload_config(config_file: Optional[str] = None) -> None:
    """
    Reload global configuration.

    Args:
        config_file: Path to config file (optional)
    """
    global _global_config

    if _global_config is not None:
        _global_config.reload(config_file)
    else:
        _global_config = Config(config_file)
