"""URL parsing utilities for karma_osint.

Recognises the profile-path conventions of a handful of social and code
hosting platforms so that search hits pointing at a profile page can be
turned into ``username`` leads.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional
from urllib.parse import ParseResult, urlparse


@dataclass(frozen=True)
class ProfileMatch:
    """A username recognised in a known profile URL."""

    platform: str
    username: str


# Path segments that are site features rather than profiles.
NON_PROFILE_SEGMENTS: Dict[str, FrozenSet[str]] = {
    "instagram": frozenset({"p", "reel", "tv", "stories", "explore", "accounts"}),
    "facebook": frozenset({"people", "profile.php", "pages", "watch", "groups", "marketplace"}),
    "x": frozenset({"home", "i", "search", "intent"}),
    "github": frozenset({"features", "pricing", "about", "site", "orgs", "settings"}),
}

PLATFORM_HOSTS: Dict[str, str] = {
    "instagram.com": "instagram",
    "facebook.com": "facebook",
    "fb.com": "facebook",
    "twitter.com": "x",
    "x.com": "x",
    "tiktok.com": "tiktok",
    "linkedin.com": "linkedin",
    "github.com": "github",
}


def try_parse_url(url: str) -> Optional[ParseResult]:
    """Parse an absolute URL, returning None when it has no scheme or host."""
    if not url:
        return None
    try:
        parsed = urlparse(str(url).strip())
        # Accessing .port validates the netloc
        parsed.port
    except ValueError:
        return None
    if not parsed.scheme or not parsed.hostname:
        return None
    return parsed


def hostname_of(url: str) -> Optional[str]:
    """Return the lower-cased hostname of ``url`` without a ``www.`` prefix."""
    parsed = try_parse_url(url)
    if parsed is None:
        return None
    host = parsed.hostname.lower()
    if host.startswith("www."):
        host = host[4:]
    return host or None


def extract_username_from_profile_url(url: str) -> Optional[ProfileMatch]:
    """Extract ``(platform, username)`` from a known profile URL.

    Returns None for unknown hosts and for non-profile paths such as
    ``instagram.com/p/...`` or ``x.com/search``.
    """
    parsed = try_parse_url(url)
    if parsed is None:
        return None

    host = hostname_of(url)
    platform = PLATFORM_HOSTS.get(host or "")
    if platform is None:
        return None

    parts = [p for p in parsed.path.split("/") if p]
    if not parts:
        return None
    first = parts[0]
    second = parts[1] if len(parts) > 1 else None

    if platform == "tiktok":
        if first.startswith("@") and len(first) > 1:
            return ProfileMatch(platform, first[1:])
        return None

    if platform == "linkedin":
        if first == "in" and second:
            return ProfileMatch(platform, second)
        return None

    if first in NON_PROFILE_SEGMENTS[platform]:
        return None

    if platform == "x":
        username = first.lstrip("@")
        return ProfileMatch(platform, username) if username else None

    return ProfileMatch(platform, first)
