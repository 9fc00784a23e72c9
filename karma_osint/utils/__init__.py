"""Utility modules for karma_osint.

This package provides common utilities for:
- Target normalisation and type inference
- Profile URL parsing
"""

from karma_osint.utils.parsers import (
    ProfileMatch,
    extract_username_from_profile_url,
    hostname_of,
    try_parse_url,
)
from karma_osint.utils.validators import (
    TargetInfo,
    guess_target_type,
    normalize_phone,
    normalize_target,
    resolve_target,
)

__all__ = [
    # Validators
    "TargetInfo",
    "normalize_target",
    "normalize_phone",
    "guess_target_type",
    "resolve_target",
    # Parsers
    "ProfileMatch",
    "try_parse_url",
    "hostname_of",
    "extract_username_from_profile_url",
]
