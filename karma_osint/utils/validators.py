"""Input normalisation and type inference for karma_osint.

Provides:
- Target normalisation (strip scheme and path)
- Phone number normalisation
- Heuristic target-type inference

``guess_target_type`` is a best-effort classifier.  The checks run in a
fixed order and later checks are only reached when earlier ones fail, so
the order below must not be rearranged.
"""

import re
from dataclasses import dataclass
from typing import Optional

from karma_osint.core.data_models import TargetType


IPV4_PATTERN = re.compile(r"^\d{1,3}(?:\.\d{1,3}){3}$")
SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
NON_PHONE_CHARS = re.compile(r"[^\d+]")
NON_DIGITS = re.compile(r"\D")
ADDRESS_HINT = re.compile(r"\d{1,6}\s+\S+")
HAS_LETTER = re.compile(r"[a-z]", re.IGNORECASE)


@dataclass
class TargetInfo:
    """A normalised target together with its resolved type."""

    value: str
    target_type: TargetType
    inferred: bool = False


def normalize_target(target: str) -> str:
    """Trim, drop a leading ``http(s)://`` and everything from the first ``/``."""
    value = SCHEME_PATTERN.sub("", str(target or "").strip())
    return value.split("/", 1)[0]


def normalize_phone(raw: str) -> str:
    """Strip everything but digits, keeping a single leading ``+``.

    >>> normalize_phone("+1 (212) 555-0123")
    '+12125550123'
    >>> normalize_phone("212.555.0123")
    '2125550123'
    """
    kept = NON_PHONE_CHARS.sub("", str(raw or ""))
    if kept.startswith("+"):
        return "+" + NON_DIGITS.sub("", kept[1:])
    return NON_DIGITS.sub("", kept)


def guess_target_type(target: str) -> TargetType:
    """Infer the target type of an identifier.

    Order: ip, email, domain, phone, address, name, username.
    """
    if IPV4_PATTERN.match(target):
        return TargetType.IP
    if "@" in target:
        return TargetType.EMAIL
    if "." in target and " " not in target:
        return TargetType.DOMAIN
    digits = NON_DIGITS.sub("", target)
    if 10 <= len(digits) <= 15:
        return TargetType.PHONE
    if ADDRESS_HINT.search(target) or "," in target:
        return TargetType.ADDRESS
    if HAS_LETTER.search(target) and len(target.strip().split()) >= 2:
        return TargetType.NAME
    return TargetType.USERNAME


def resolve_target(target: str, target_type: Optional[str] = None) -> TargetInfo:
    """Normalise ``target`` and resolve its type.

    An explicit, recognised ``target_type`` always wins over inference.
    """
    value = normalize_target(target)
    explicit = TargetType.parse(target_type)
    if explicit is not None:
        return TargetInfo(value=value, target_type=explicit)
    return TargetInfo(value=value, target_type=guess_target_type(value), inferred=True)
