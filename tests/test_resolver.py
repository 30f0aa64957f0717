"""Tests for company name normalization and resolution."""

import pytest

from blogpulse.resolution import (
    CompanyResolver,
    name_tokens,
    normalize_name,
    passes_token_guard,
    token_overlap,
)

from .helpers import make_company


def spaced(prefix, count, start=0):
    return " ".join(f"{prefix}{i}" for i in range(start, start + count))


@pytest.fixture
def reference():
    return [
        make_company("TATA CONSULTANCY SERVICES LIMITED", "TCS", 1.3e13),
        make_company("TATA MOTORS LIMITED", "TATAMOTORS", 2.5e12),
        make_company("DR. REDDY'S LABORATORIES LTD", "DRREDDY", 1e12),
        make_company("ACME LIMITED", "ACME", 5e9),
        make_company("TINY TRADERS LIMITED", "TINY", 1e7),
        make_company("UNPRICED INDUSTRIES LIMITED", "UNPRICED", None),
    ]


class TestNormalize:
    def test_suffixes_punctuation_and_possessives(self):
        assert normalize_name("Dr. Reddy's Laboratories Ltd") == "dr reddys laboratories"
        assert normalize_name("Larsen & Toubro Limited") == "larsen and toubro"
        assert normalize_name("") == ""

    def test_tokens(self):
        assert name_tokens("Tata Motors Ltd.") == ["tata", "motors"]

    def test_overlap_uses_the_shorter_name(self):
        assert token_overlap(["a", "b"], ["a", "b", "c"]) == 1.0
        assert token_overlap([], ["a"]) == 0.0

    def test_token_guard(self):
        assert not passes_token_guard(["tata"], ["tata", "motors"])
        assert passes_token_guard(["tata", "motors"], ["tata"])
        assert passes_token_guard(["acme"], ["acme"])


class TestCompanyResolver:
    def test_ticker_match_is_case_insensitive(self, reference):
        resolution = CompanyResolver(reference).resolve("tcs")

        assert resolution.reference.name == "TATA CONSULTANCY SERVICES LIMITED"
        assert resolution.match_type == "ticker"
        assert resolution.confidence == 1.0

    def test_exact_normalized_name(self, reference):
        resolution = CompanyResolver(reference).resolve("Dr Reddys Laboratories Limited")

        assert resolution.reference.nse_code == "DRREDDY"
        assert resolution.match_type == "exact"

    def test_single_token_never_matches_multi_token_name(self, reference):
        resolver = CompanyResolver(reference)

        assert resolver.resolve("Tata") is None
        assert resolver.best_candidate("Tata") is None

    def test_overlap_at_threshold_matches(self):
        name = spaced("t", 10)
        resolver = CompanyResolver([make_company(name, "SEVEN")])

        resolution = resolver.resolve(spaced("t", 7) + " " + spaced("x", 3))

        assert resolution is not None
        assert resolution.match_type == "overlap"
        assert resolution.confidence == pytest.approx(0.7)

    def test_overlap_below_threshold_does_not_match(self):
        resolver = CompanyResolver([make_company(spaced("t", 10), "SIX")])

        assert resolver.resolve(spaced("t", 6) + " " + spaced("x", 4)) is None

    def test_overlap_of_069_is_rejected(self):
        resolver = CompanyResolver([make_company(spaced("t", 100), "WIDE")])

        assert resolver.resolve(spaced("t", 69) + " " + spaced("x", 31)) is None
        assert resolver.resolve(spaced("t", 70) + " " + spaced("x", 30)) is not None

    def test_market_cap_gate(self, reference):
        resolver = CompanyResolver(reference)

        assert resolver.best_candidate("Tiny Traders") is not None
        assert resolver.resolve("Tiny Traders") is None
        assert resolver.resolve("Unpriced Industries") is None
        assert resolver.resolve("Acme") is not None

    def test_gate_threshold_is_inclusive(self):
        resolver = CompanyResolver([make_company("EDGE LIMITED", "EDGE", 30_000_000)])

        assert resolver.resolve("Edge Ltd") is not None

    def test_ties_go_to_the_larger_company(self):
        resolver = CompanyResolver([
            make_company("Beta Corp", "BETA1", 2e9),
            make_company("BETA LIMITED", "BETA2", 9e9),
        ])

        assert resolver.resolve("Beta").reference.nse_code == "BETA2"

    def test_resolve_all_keeps_one_resolution_per_company(self, reference):
        resolutions = CompanyResolver(reference).resolve_all(
            ["TCS", "Tata Consultancy Services", "Acme", "Nobody Knows Ltd", ""]
        )

        assert [r.reference.nse_code for r in resolutions] == ["TCS", "ACME"]
        assert [r.extracted_name for r in resolutions] == ["TCS", "Acme"]

    def test_to_match_carries_reference_fields(self, reference):
        match = CompanyResolver(reference).resolve("Acme").to_match()

        assert match.resolved_name == "ACME LIMITED"
        assert match.extracted_name == "Acme"
        assert match.nse_code == "ACME"
        assert match.market_cap == 5e9
