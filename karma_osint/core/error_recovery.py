"""Error handling for karma_osint source lookups.

Every external source failure is recovered locally: the probe that hit it
records a low-confidence text evidence item and collection moves on.  This
module defines the exception hierarchy raised by the HTTP client and the
helpers probes use to turn those exceptions into evidence.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional

from karma_osint.core.data_models import EvidenceDraft

# Longest response body excerpt kept in an error message.
MAX_ERROR_BODY = 500


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"  # Minor issue, can continue
    MEDIUM = "medium"  # Notable issue, degraded results
    HIGH = "high"  # Major issue, partial failure
    CRITICAL = "critical"  # Complete failure


class SourceError(Exception):
    """Base class for failures talking to an external source."""

    severity = ErrorSeverity.MEDIUM

    def __init__(self, message: str, *, source: str = "", url: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.source = source
        self.url = url

    def __str__(self) -> str:
        return self.message


class SourceUnavailableError(SourceError):
    """The source could not be reached (DNS, connect, timeout)."""


class SourceResponseError(SourceError):
    """The source answered with a non-2xx status."""

    def __init__(
        self,
        status_code: int,
        body: str = "",
        *,
        source: str = "",
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.body = (body or "")[:MAX_ERROR_BODY]
        super().__init__(f"HTTP {status_code}: {self.body}", source=source, url=url)


class MalformedResponseError(SourceError):
    """The source answered 2xx but the payload could not be parsed."""

    severity = ErrorSeverity.LOW


SEVERITY_LOG_LEVELS = {
    ErrorSeverity.LOW: logging.DEBUG,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


def log_level_for(error: BaseException) -> int:
    """Logging level for a recovered failure, chosen from its severity."""
    severity = getattr(error, "severity", ErrorSeverity.HIGH)
    return SEVERITY_LOG_LEVELS.get(severity, logging.ERROR)


def failure_evidence(
    title: str,
    source: str,
    error: BaseException,
    *,
    tags: Optional[List[str]] = None,
    confidence: float = 0.1,
) -> EvidenceDraft:
    """Build the text evidence item recorded when a lookup fails."""
    message = str(error) or error.__class__.__name__
    tags = list(tags or [])
    if "error" not in tags:
        tags.append("error")
    return EvidenceDraft.from_text(
        title,
        source,
        message,
        tags=tags,
        confidence=confidence,
    )
