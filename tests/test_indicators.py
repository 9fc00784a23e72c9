"""Tests for indicator extraction from case descriptions."""

import pytest

from karma_osint.core.data_models import Indicator
from karma_osint.core.indicators import extract_indicators, find_address, find_name


def _by_type(indicators, kind):
    return [i.value for i in indicators if i.type == kind]


class TestExtractIndicators:
    """Tests for extract_indicators."""

    def test_labelled_case(self):
        """Name, email and domain are extracted; the email's domain is not duplicated."""
        text = "Name: Jane Doe\nEmail: jane@example.com\nDomain: example.com"
        indicators = extract_indicators(text)

        assert set(indicators) == {
            Indicator("name", "Jane Doe"),
            Indicator("email", "jane@example.com"),
            Indicator("domain", "example.com"),
        }
        assert len(indicators) == 3

    def test_fixed_category_order(self):
        text = "Jane Doe\njane@example.com\n10.1.2.3\n+1 212 555 0123"
        types = [i.type for i in extract_indicators(text)]
        assert types == ["email", "ip", "domain", "phone", "name"]

    def test_emails_case_folded_and_capped(self):
        text = " ".join(f"User{n}@Example{n}.com" for n in range(5))
        emails = _by_type(extract_indicators(text), "email")
        assert emails == ["user0@example0.com", "user1@example1.com", "user2@example2.com"]

    def test_ips_capped(self):
        text = "hosts 1.1.1.1 2.2.2.2 3.3.3.3 4.4.4.4"
        assert _by_type(extract_indicators(text), "ip") == ["1.1.1.1", "2.2.2.2", "3.3.3.3"]

    def test_domains_include_email_domains_and_cap(self):
        text = "alpha.com beta.org\ncontact: bob@gamma.net delta.io"
        domains = _by_type(extract_indicators(text), "domain")
        assert len(domains) == 3
        assert domains == ["alpha.com", "beta.org", "gamma.net"]

    @pytest.mark.parametrize(
        "text",
        [
            "first.last@corp.example",
            "first.last.name@corp.example",
            "a.b.c.d@corp.example",
            "Reach x.y.dev@corp.example today",
        ],
    )
    def test_email_local_part_is_not_a_domain(self, text):
        indicators = extract_indicators(text)
        assert _by_type(indicators, "domain") == ["corp.example"]
        assert len(_by_type(indicators, "email")) == 1

    def test_domain_next_to_email_still_found(self):
        text = "site: Shop.Example.org, owner jane.doe@corp.example"
        assert _by_type(extract_indicators(text), "domain") == ["shop.example.org", "corp.example"]

    def test_phones_normalized_and_capped(self):
        text = "call +1 (212) 555-0123 or 212.555.0199 or 0044 20 7946 0958"
        phones = _by_type(extract_indicators(text), "phone")
        assert phones == ["+12125550123", "2125550199"]

    def test_no_indicators(self):
        assert extract_indicators("") == []
        assert extract_indicators("nothing") == []

    def test_never_produces_username_or_case(self):
        text = "Username: jdoe99\nhttps://github.com/jdoe99"
        types = {i.type for i in extract_indicators(text)}
        assert "username" not in types
        assert "case" not in types

    def test_results_are_unique(self):
        text = "JANE@EXAMPLE.COM jane@example.com Example.com"
        indicators = extract_indicators(text)
        keys = [i.key for i in indicators]
        assert len(keys) == len(set(keys))


class TestAddressAndName:
    """Tests for the line heuristics."""

    def test_address_label_preferred(self):
        lines = ["12 Fake Street", "Address: 1600 Pennsylvania Ave NW, Washington"]
        assert find_address(lines) == "1600 Pennsylvania Ave NW, Washington"

    def test_address_from_street_word(self):
        lines = ["Jane Doe", "742 Evergreen Terrace Road"]
        assert find_address(lines) == "742 Evergreen Terrace Road"

    def test_address_skips_labelled_fields(self):
        lines = ["Phone: 212 555 0123, ext 4"]
        assert find_address(lines) is None

    def test_address_long_comma_line(self):
        lines = ["Springfield, Illinois", "Unit 4, Springfield"]
        assert find_address(lines) == "Unit 4, Springfield"

    def test_name_label_preferred(self):
        assert find_name(["Some Other Words", "Name: Jane Doe"]) == "Jane Doe"

    def test_first_multiword_line(self):
        assert find_name(["jdoe", "Jane Doe", "John Roe"]) == "Jane Doe"

    def test_long_lines_are_not_names(self):
        assert find_name(["word " * 20]) is None
