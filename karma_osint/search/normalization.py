"""Local normalisation probes for phone numbers and email addresses.

These make no network calls.  Phone numbers are additionally parsed with
libphonenumber when possible to record the E.164 form and region; a parse
failure only means those extra fields are left out.
"""

from __future__ import annotations

from typing import Any, Dict

import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberFormat

from karma_osint.core.data_models import EvidenceDraft, TargetType
from karma_osint.search.base import ProbeContext, ProbeResult, SourceProbe
from karma_osint.utils.validators import normalize_phone


def describe_phone(number: str, default_region: str = "US") -> Dict[str, Any]:
    """libphonenumber details for ``number``, or an empty dict."""
    try:
        parsed = phonenumbers.parse(number, default_region)
    except NumberParseException:
        return {}
    return {
        "e164": phonenumbers.format_number(parsed, PhoneNumberFormat.E164),
        "country_code": parsed.country_code,
        "region": phonenumbers.region_code_for_number(parsed),
        "is_valid": phonenumbers.is_valid_number(parsed),
    }


class PhoneNormalizationProbe(SourceProbe):
    """Normalises a phone number without any external lookup."""

    name = "phone-normalization"
    source = "Parser"
    target_types = frozenset({TargetType.PHONE})

    def describe(self, target: str) -> str:
        return f"Normalize phone: {target}"

    async def run(self, target: str, target_type: TargetType, ctx: ProbeContext) -> ProbeResult:
        result = ProbeResult()
        normalized = normalize_phone(target)
        payload: Dict[str, Any] = {"input": target, "normalized": normalized}
        if normalized:
            payload.update(describe_phone(normalized))

        result.add_evidence(
            EvidenceDraft.from_json(
                "Phone normalization",
                self.source,
                payload,
                tags=["phone"],
                confidence=0.7 if normalized else 0.3,
            )
        )
        result.add_entity("phone", normalized or target)
        return result


class EmailNormalizationProbe(SourceProbe):
    """Lower-cases an email address and pivots to its domain."""

    name = "email-normalization"
    source = "Parser"
    target_types = frozenset({TargetType.EMAIL})
    after_leads = True

    def describe(self, target: str) -> str:
        return f"Normalize email: {target}"

    async def run(self, target: str, target_type: TargetType, ctx: ProbeContext) -> ProbeResult:
        result = ProbeResult()
        email = target.lower()
        domain = email.split("@", 1)[1] if "@" in email else ""

        result.add_evidence(
            EvidenceDraft.from_json(
                "Email normalization",
                self.source,
                {"email": email, "domain": domain},
                tags=["email"],
                confidence=0.7,
            )
        )
        if domain:
            result.add_entity("domain", domain)
        return result
