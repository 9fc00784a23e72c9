"""Tests for the source probes.

No test touches the network: probes get an ``AsyncHTTPClient`` stand-in
whose ``get_json`` is an ``AsyncMock`` and a fake DNS resolver.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import dns.exception
import dns.resolver
import pytest

from karma_osint.core.data_models import TargetType
from karma_osint.core.error_recovery import SourceResponseError, SourceUnavailableError
from karma_osint.search import (
    CertTransparencyProbe,
    DNSProbe,
    EmailNormalizationProbe,
    GeocodeProbe,
    KnowledgeBaseProbe,
    PhoneNormalizationProbe,
    ProbeContext,
    RDAPProbe,
    UsernameProfileProbe,
    default_probes,
)
from karma_osint.search.cert_transparency import parse_subdomains
from karma_osint.search.knowledge_base import first_candidate_id
from karma_osint.search.normalization import describe_phone
from karma_osint.search.rdap import extract_org


@pytest.fixture
def http():
    client = MagicMock()
    client.get_json = AsyncMock()
    return client


@pytest.fixture
def ctx(http, config):
    return ProbeContext(http=http, config=config, sleep=AsyncMock())


def _entities(result):
    return [(e.entity_type, e.value) for e in result.entities]


class FakeName:
    def __init__(self, text):
        self._text = text

    def to_text(self):
        return self._text


class FakeResolver:
    """Answers from a dict; missing record types raise NoAnswer."""

    def __init__(self, answers):
        self.answers = answers
        self.calls = []

    async def resolve(self, target, record_type, lifetime=None):
        self.calls.append((target, record_type, lifetime))
        if record_type not in self.answers:
            raise dns.resolver.NoAnswer()
        return self.answers[record_type]


class TestProbeSelection:
    """Tests for type gating."""

    def test_default_probe_types(self):
        applicable = {
            t: [p.name for p in default_probes() if p.applies_to(t)] for t in TargetType
        }
        assert applicable[TargetType.DOMAIN] == ["dns", "rdap", "crtsh"]
        assert applicable[TargetType.IP] == ["rdap"]
        assert applicable[TargetType.ADDRESS] == ["nominatim"]
        assert applicable[TargetType.NAME] == ["wikidata"]
        assert applicable[TargetType.USERNAME] == ["github"]
        assert applicable[TargetType.PHONE] == ["phone-normalization"]
        assert applicable[TargetType.EMAIL] == ["email-normalization"]
        assert applicable[TargetType.CASE] == []


class TestDNSProbe:
    """Tests for DNSProbe."""

    @pytest.mark.asyncio
    async def test_records_and_entities(self, ctx):
        resolver = FakeResolver(
            {
                "A": [SimpleNamespace(address="93.184.216.34")],
                "AAAA": [SimpleNamespace(address="2606:2800:220:1::1")],
                "NS": [SimpleNamespace(target=FakeName("a.iana-servers.net."))],
                "MX": [SimpleNamespace(exchange=FakeName("mail.example.com."), preference=10)],
            }
        )
        result = await DNSProbe(resolver=resolver).run("example.com", TargetType.DOMAIN, ctx)

        assert _entities(result) == [
            ("ip", "93.184.216.34"),
            ("ip", "2606:2800:220:1::1"),
            ("domain", "a.iana-servers.net"),
        ]
        evidence = result.evidence[0]
        assert evidence.title == "DNS records for example.com"
        assert evidence.source == "DNS"
        assert evidence.confidence == 0.9
        assert json.loads(evidence.content)["MX"] == [
            {"exchange": "mail.example.com", "priority": 10}
        ]
        assert {c[2] for c in resolver.calls} == {12.0}

    @pytest.mark.asyncio
    async def test_one_type_failing_keeps_others(self, ctx):
        resolver = FakeResolver({"A": [SimpleNamespace(address="1.2.3.4")]})
        result = await DNSProbe(resolver=resolver).run("example.com", TargetType.DOMAIN, ctx)

        assert [c[1] for c in resolver.calls] == ["A", "AAAA", "NS", "MX"]
        assert json.loads(result.evidence[0].content) == {"A": ["1.2.3.4"]}
        assert _entities(result) == [("ip", "1.2.3.4")]

    @pytest.mark.asyncio
    async def test_all_failing_still_records_evidence(self, ctx):
        resolver = FakeResolver({})
        resolver.resolve = AsyncMock(side_effect=dns.exception.Timeout())
        result = await DNSProbe(resolver=resolver).run("example.com", TargetType.DOMAIN, ctx)

        assert result.entities == []
        assert json.loads(result.evidence[0].content) == {}


class TestRDAPProbe:
    """Tests for RDAPProbe."""

    def test_extract_org(self):
        assert extract_org({"name": " EXAMPLE-NET "}) == "EXAMPLE-NET"
        assert extract_org({"remarks": [{"description": ["Acme Corp", "x"]}]}) == "Acme Corp"
        assert extract_org({"remarks": []}) is None
        assert extract_org(None) is None

    @pytest.mark.asyncio
    async def test_domain_lookup(self, ctx, http):
        http.get_json.return_value = {"name": "EXAMPLE.COM", "handle": "x"}
        result = await RDAPProbe().run("example.com", TargetType.DOMAIN, ctx)

        assert http.get_json.await_args.args[0] == "https://rdap.org/domain/example.com"
        assert http.get_json.await_args.kwargs["timeout"] == 12.0
        assert result.evidence[0].title == "RDAP lookup for example.com"
        assert result.evidence[0].confidence == 0.9
        assert _entities(result) == [("org", "EXAMPLE.COM")]

    @pytest.mark.asyncio
    async def test_ip_lookup_url(self, ctx, http):
        http.get_json.return_value = {}
        await RDAPProbe().run("8.8.8.8", TargetType.IP, ctx)
        assert http.get_json.await_args.args[0] == "https://rdap.org/ip/8.8.8.8"

    @pytest.mark.asyncio
    async def test_failure_degrades(self, ctx, http):
        http.get_json.side_effect = SourceResponseError(404, "not found", source="RDAP")
        result = await RDAPProbe().run("nope.test", TargetType.DOMAIN, ctx)

        evidence = result.evidence[0]
        assert evidence.kind == "text"
        assert evidence.title == "RDAP lookup failed for nope.test"
        assert evidence.content == "HTTP 404: not found"
        assert evidence.confidence == 0.1
        assert "error" in evidence.tags
        assert result.entities == []


class TestCertTransparencyProbe:
    """Tests for CertTransparencyProbe."""

    def test_parse_subdomains(self):
        rows = [
            {"name_value": "www.example.com\nAPI.example.com"},
            {"name_value": "api.example.com"},
            {"name_value": ""},
            "garbage",
        ]
        assert parse_subdomains(rows) == ["www.example.com", "api.example.com"]
        assert parse_subdomains(None) == []

    def test_parse_subdomains_cap(self):
        rows = [{"name_value": f"h{n}.example.com"} for n in range(600)]
        assert len(parse_subdomains(rows)) == 500

    @pytest.mark.asyncio
    async def test_small_footprint(self, ctx, http):
        http.get_json.return_value = [{"name_value": "www.example.com"}]
        result = await CertTransparencyProbe().run("example.com", TargetType.DOMAIN, ctx)

        assert http.get_json.await_args.kwargs["params"] == {"q": "%.example.com", "output": "json"}
        assert http.get_json.await_args.kwargs["timeout"] == 15.0
        assert result.risk_delta == 0
        assert json.loads(result.evidence[0].content) == {
            "count": 1,
            "subdomains": ["www.example.com"],
        }
        assert result.evidence[0].confidence == 0.7

    @pytest.mark.asyncio
    async def test_large_footprint_adds_risk(self, ctx, http):
        http.get_json.return_value = [{"name_value": f"h{n}.example.com"} for n in range(51)]
        result = await CertTransparencyProbe().run("example.com", TargetType.DOMAIN, ctx)

        assert result.risk_delta == 5
        assert len(result.entities) == 51

    @pytest.mark.asyncio
    async def test_failure(self, ctx, http):
        http.get_json.side_effect = SourceUnavailableError("Request timed out")
        result = await CertTransparencyProbe().run("example.com", TargetType.DOMAIN, ctx)

        assert result.evidence[0].confidence == 0.2
        assert result.risk_delta == 0


class TestGeocodeProbe:
    """Tests for GeocodeProbe."""

    @pytest.mark.asyncio
    async def test_top_result(self, ctx, http):
        http.get_json.return_value = [
            {"lat": "38.8977", "lon": "-77.0365", "display_name": "White House, Washington"},
            {"lat": "0", "lon": "0", "display_name": "elsewhere"},
        ]
        result = await GeocodeProbe().run("1600 Pennsylvania Ave", TargetType.ADDRESS, ctx)

        ctx.sleep.assert_awaited_once_with(0.25)
        assert http.get_json.await_args.kwargs["params"]["q"] == "1600 Pennsylvania Ave"
        assert _entities(result) == [
            ("location", "38.8977,-77.0365"),
            ("address", "White House, Washington"),
        ]
        assert result.evidence[0].confidence == 0.8

    @pytest.mark.asyncio
    async def test_empty_result(self, ctx, http):
        http.get_json.return_value = []
        result = await GeocodeProbe().run("nowhere", TargetType.ADDRESS, ctx)

        assert result.entities == []
        assert result.evidence[0].confidence == 0.2

    @pytest.mark.asyncio
    async def test_failure(self, ctx, http):
        http.get_json.side_effect = SourceUnavailableError("down")
        result = await GeocodeProbe().run("nowhere", TargetType.ADDRESS, ctx)

        assert result.evidence[0].title == "Address geocode failed"
        assert result.evidence[0].confidence == 0.1


class TestKnowledgeBaseProbe:
    """Tests for KnowledgeBaseProbe."""

    def test_first_candidate_id(self):
        assert first_candidate_id({"search": [{"id": "Q42"}, {"id": "Q1"}]}) == "Q42"
        assert first_candidate_id({"search": []}) is None
        assert first_candidate_id([]) is None

    @pytest.mark.asyncio
    async def test_search_then_entity(self, ctx, http):
        http.get_json.side_effect = [
            {"search": [{"id": "Q42", "label": "Douglas Adams"}]},
            {"entities": {"Q42": {}}},
        ]
        result = await KnowledgeBaseProbe().run("Douglas Adams", TargetType.NAME, ctx)

        assert http.get_json.await_count == 2
        assert http.get_json.await_args.args[0] == (
            "https://www.wikidata.org/wiki/Special:EntityData/Q42.json"
        )
        assert [e.confidence for e in result.evidence] == [0.5, 0.6]
        assert result.entities[0].entity_type == "person"
        assert result.entities[0].metadata == {"wikidataId": "Q42"}

    @pytest.mark.asyncio
    async def test_no_candidate(self, ctx, http):
        http.get_json.return_value = {"search": []}
        result = await KnowledgeBaseProbe().run("Nobody Atall", TargetType.NAME, ctx)

        assert http.get_json.await_count == 1
        assert _entities(result) == [("person", "Nobody Atall")]
        assert result.entities[0].metadata == {}

    @pytest.mark.asyncio
    async def test_failure_still_emits_person(self, ctx, http):
        http.get_json.side_effect = SourceUnavailableError("down")
        result = await KnowledgeBaseProbe().run("Jane Doe", TargetType.NAME, ctx)

        assert result.evidence[0].title == "Wikidata lookup failed"
        assert result.evidence[0].confidence == 0.1
        assert _entities(result) == [("person", "Jane Doe")]


class TestUsernameProfileProbe:
    """Tests for UsernameProfileProbe."""

    @pytest.mark.asyncio
    async def test_profile(self, ctx, http):
        http.get_json.return_value = {
            "login": "octocat",
            "company": "@github",
            "blog": "https://github.blog",
        }
        result = await UsernameProfileProbe().run("octocat", TargetType.USERNAME, ctx)

        assert http.get_json.await_args.args[0] == "https://api.github.com/users/octocat"
        assert result.evidence[0].title == "GitHub user profile: octocat"
        assert result.evidence[0].confidence == 0.8
        assert _entities(result) == [("org", "@github"), ("url", "https://github.blog")]

    @pytest.mark.asyncio
    async def test_blank_fields_skipped(self, ctx, http):
        http.get_json.return_value = {"company": None, "blog": ""}
        result = await UsernameProfileProbe().run("octocat", TargetType.USERNAME, ctx)
        assert result.entities == []

    @pytest.mark.asyncio
    async def test_failure(self, ctx, http):
        http.get_json.side_effect = SourceResponseError(404, "Not Found")
        result = await UsernameProfileProbe().run("ghost-user", TargetType.USERNAME, ctx)

        assert result.evidence[0].confidence == 0.2
        assert result.entities == []


class TestNormalizationProbes:
    """Tests for the local normalisation probes."""

    def test_describe_phone(self):
        details = describe_phone("+44 20 7946 0958")
        assert details["e164"] == "+442079460958"
        assert details["country_code"] == 44
        assert set(details) == {"e164", "country_code", "region", "is_valid"}

    def test_describe_phone_default_region(self):
        assert describe_phone("2125550123")["e164"] == "+12125550123"

    def test_describe_phone_unparseable(self):
        assert describe_phone("") == {}

    @pytest.mark.asyncio
    async def test_phone(self, ctx, http):
        result = await PhoneNormalizationProbe().run("+1 (212) 555-0123", TargetType.PHONE, ctx)

        http.get_json.assert_not_awaited()
        content = json.loads(result.evidence[0].content)
        assert content["input"] == "+1 (212) 555-0123"
        assert content["normalized"] == "+12125550123"
        assert content["e164"] == "+12125550123"
        assert result.evidence[0].confidence == 0.7
        assert _entities(result) == [("phone", "+12125550123")]

    @pytest.mark.asyncio
    async def test_phone_without_digits(self, ctx):
        result = await PhoneNormalizationProbe().run("n/a", TargetType.PHONE, ctx)

        assert json.loads(result.evidence[0].content) == {"input": "n/a", "normalized": ""}
        assert result.evidence[0].confidence == 0.3
        assert _entities(result) == [("phone", "n/a")]

    @pytest.mark.asyncio
    async def test_email(self, ctx, http):
        result = await EmailNormalizationProbe().run("Jane@Example.COM", TargetType.EMAIL, ctx)

        http.get_json.assert_not_awaited()
        assert json.loads(result.evidence[0].content) == {
            "email": "jane@example.com",
            "domain": "example.com",
        }
        assert _entities(result) == [("domain", "example.com")]
