"""Core functionality for karma_osint.

This package contains the data models, configuration, HTTP client, logging,
error handling, progress reporting, the pure helpers (indicator extraction,
deduplication, confidence scoring) and the collection orchestrator.
"""

from .data_models import (  # noqa: F401
    CollectionResult,
    Depth,
    EntityDraft,
    EvidenceDraft,
    Indicator,
    TargetType,
    TimeBudget,
)
from .config import Config, ValidationResult, get_config, reload_config  # noqa: F401
from .error_recovery import (  # noqa: F401
    ErrorSeverity,
    MalformedResponseError,
    SourceError,
    SourceResponseError,
    SourceUnavailableError,
    failure_evidence,
    log_level_for,
)
from .http_client import AsyncHTTPClient  # noqa: F401
from .logging_setup import configure_logging, configure_logging_from_config  # noqa: F401
from .progress import StepReporter, get_step_reporter  # noqa: F401
from .deduplication import deduplicate_entities, unique_by_value  # noqa: F401
from .scoring import compute_confidence  # noqa: F401
from .indicators import extract_indicators  # noqa: F401
from .orchestrator import CollectionOrchestrator, run_safe_osint_collection  # noqa: F401

__all__ = [
    # Models
    "CollectionResult",
    "Depth",
    "EntityDraft",
    "EvidenceDraft",
    "Indicator",
    "TargetType",
    "TimeBudget",
    # Config
    "Config",
    "ValidationResult",
    "get_config",
    "reload_config",
    # Errors
    "ErrorSeverity",
    "SourceError",
    "SourceUnavailableError",
    "SourceResponseError",
    "MalformedResponseError",
    "failure_evidence",
    "log_level_for",
    # Infrastructure
    "AsyncHTTPClient",
    "configure_logging",
    "configure_logging_from_config",
    "StepReporter",
    "get_step_reporter",
    # Pure helpers
    "deduplicate_entities",
    "unique_by_value",
    "compute_confidence",
    "extract_indicators",
    # Orchestration
    "CollectionOrchestrator",
    "run_safe_osint_collection",
]
