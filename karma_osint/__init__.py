"""karma_osint - time-budgeted OSINT collection engine.

Collects public evidence about a domain, IP, email, username, phone,
address, name or freeform case description from DNS, RDAP, certificate
transparency, geocoding, Wikidata, GitHub and an optional web-search
provider, and returns it as storage-ready evidence and entity drafts.
"""

__version__ = "0.1.0"

from karma_osint.core.orchestrator import CollectionOrchestrator, run_safe_osint_collection
from karma_osint.core.data_models import CollectionResult, EntityDraft, EvidenceDraft

__all__ = [
    "CollectionOrchestrator",
    "run_safe_osint_collection",
    "CollectionResult",
    "EvidenceDraft",
    "EntityDraft",
    "__version__",
]
