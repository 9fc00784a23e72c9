"""Source probes for karma_osint.

Each module queries one public source for one target type:
- dns_lookup: A/AAAA/NS/MX records (domain)
- rdap: registration data (domain, ip)
- cert_transparency: crt.sh subdomains (domain)
- geocode: Nominatim geocoding (address)
- knowledge_base: Wikidata entity search (name)
- profile: GitHub public profile (username)
- normalization: local phone/email normalisation (phone, email)
"""

from typing import List

from .base import ProbeContext, ProbeResult, SourceProbe  # noqa: F401
from .cert_transparency import CertTransparencyProbe  # noqa: F401
from .dns_lookup import DNSProbe  # noqa: F401
from .geocode import GeocodeProbe  # noqa: F401
from .knowledge_base import KnowledgeBaseProbe  # noqa: F401
from .normalization import EmailNormalizationProbe, PhoneNormalizationProbe  # noqa: F401
from .profile import UsernameProfileProbe  # noqa: F401
from .rdap import RDAPProbe  # noqa: F401


def default_probes() -> List[SourceProbe]:
    """Built-in probes in the order they run for a target."""
    return [
        DNSProbe(),
        RDAPProbe(),
        CertTransparencyProbe(),
        GeocodeProbe(),
        KnowledgeBaseProbe(),
        UsernameProfileProbe(),
        PhoneNormalizationProbe(),
        EmailNormalizationProbe(),
    ]


__all__ = [
    "SourceProbe",
    "ProbeContext",
    "ProbeResult",
    "DNSProbe",
    "RDAPProbe",
    "CertTransparencyProbe",
    "GeocodeProbe",
    "KnowledgeBaseProbe",
    "UsernameProfileProbe",
    "PhoneNormalizationProbe",
    "EmailNormalizationProbe",
    "default_probes",
]
