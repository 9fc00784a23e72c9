"""Indicator extraction from freeform case descriptions.

``extract_indicators`` pulls typed candidate values out of text with
patterns and line heuristics.  It is pure and synchronous.  Each category is
capped independently so a pasted document cannot explode into hundreds of
sub-collections.  The heuristics are best-effort: the order of checks is
fixed and matters.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional

from karma_osint.core.data_models import Indicator
from karma_osint.core.deduplication import deduplicate_indicators
from karma_osint.utils.validators import normalize_phone

MAX_EMAILS = 3
MAX_IPS = 3
MAX_DOMAINS = 3
MAX_PHONES = 2
MAX_NAME_LENGTH = 80

EMAIL_PATTERN = re.compile(r"[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}", re.IGNORECASE)
IPV4_PATTERN = re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b")
DOMAIN_PATTERN = re.compile(r"\b(?:[a-z0-9-]+\.)+[a-z]{2,}\b", re.IGNORECASE)
PHONE_PATTERN = re.compile(r"\+?\d[\d\s().-]{8,}\d")

STREET_HINT = re.compile(
    r"\b(st|street|ave|avenue|rd|road|blvd|boulevard|dr|drive|ln|lane|ct|court|way"
    r"|hwy|highway|pkwy|parkway)\b",
    re.IGNORECASE,
)
STREET_NUMBER = re.compile(r"\d{1,6}\s+\S+")
FIELD_LABEL = re.compile(r"^(phone|email|domain|username|user|name)\s*:", re.IGNORECASE)
ADDRESS_LABEL = re.compile(r"^address\s*:", re.IGNORECASE)
NAME_LABEL = re.compile(r"^name\s*:", re.IGNORECASE)
HAS_LETTER = re.compile(r"[a-z]", re.IGNORECASE)
HAS_DIGIT = re.compile(r"\d")
LINE_BREAK = re.compile(r"\r?\n")


def _ordered_unique(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


def find_domains(text: str) -> List[str]:
    """Domain-looking tokens, skipping any that start inside an email local part."""
    local_parts = [(m.start(), m.start() + m.group().index("@")) for m in EMAIL_PATTERN.finditer(text)]
    return [
        m.group().lower()
        for m in DOMAIN_PATTERN.finditer(text)
        if not any(start <= m.start() < at for start, at in local_parts)
    ]


def _lines(text: str) -> List[str]:
    return [line.strip() for line in LINE_BREAK.split(text) if line.strip()]


def find_address(lines: List[str]) -> Optional[str]:
    """Pick the first address-looking line, preferring an ``Address:`` label."""
    for line in lines:
        if ADDRESS_LABEL.match(line):
            value = ADDRESS_LABEL.sub("", line, count=1).strip()
            return value or None

    for line in lines:
        if FIELD_LABEL.match(line):
            continue
        has_street_number = bool(STREET_NUMBER.search(line))
        has_comma = "," in line and bool(HAS_DIGIT.search(line))
        has_street_word = bool(STREET_HINT.search(line))
        if (has_street_number and (has_comma or has_street_word)) or (
            has_comma and len(line) > 12
        ):
            return line
    return None


def find_name(lines: List[str]) -> Optional[str]:
    """Pick a ``Name:`` line, otherwise the first short multi-word line."""
    for line in lines:
        if NAME_LABEL.match(line):
            return NAME_LABEL.sub("", line, count=1).strip() or None

    for line in lines:
        if HAS_LETTER.search(line) and len(line.split()) >= 2 and len(line) <= MAX_NAME_LENGTH:
            return line
    return None


def extract_indicators(text: str) -> List[Indicator]:
    """Extract typed indicators from freeform text.

    Order and caps: up to 3 emails, 3 IPv4 addresses, 3 domains (including
    the domains of extracted emails), 2 phone numbers, 1 address and 1 name.
    The result is deduplicated case-insensitively on ``type:value``.

    Usernames are never produced here; they only come from profile URLs
    found by web search.
    """
    text = str(text or "")
    out: List[Indicator] = []

    def add(kind: str, value: str) -> None:
        value = value.strip()
        if value:
            out.append(Indicator(kind, value))

    emails = _ordered_unique([m.lower() for m in EMAIL_PATTERN.findall(text)])
    for email in emails[:MAX_EMAILS]:
        add("email", email)

    ips = _ordered_unique(IPV4_PATTERN.findall(text))
    for ip in ips[:MAX_IPS]:
        add("ip", ip)

    domains: Dict[str, None] = dict.fromkeys(find_domains(text))
    for email in emails:
        domain = email.split("@", 1)[1]
        if domain:
            domains.setdefault(domain.lower(), None)
    for domain in list(domains)[:MAX_DOMAINS]:
        add("domain", domain)

    phones = [p for p in _ordered_unique([normalize_phone(m) for m in PHONE_PATTERN.findall(text)]) if p]
    for phone in phones[:MAX_PHONES]:
        add("phone", phone)

    lines = _lines(text)
    address = find_address(lines)
    if address:
        add("address", address)

    name = find_name(lines)
    if name:
        add("name", name)

    return deduplicate_indicators(out)
