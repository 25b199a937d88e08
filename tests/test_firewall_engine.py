"""Tests for the QueryFirewall pipeline."""

import random

import pytest

from lumina.core.enums import ContentType, SecurityLevel
from lumina.core.protocols import FirewallPolicy
from lumina.kernel.firewall_engine import (
    HIGH_SECURITY_CAP,
    RESULT_TEMPLATES,
    TRUSTED_DOMAINS,
    QueryFirewall,
    extract_domain,
    slugify,
)


class PickDomain:
    """Stand-in RNG that always picks the named trusted domain."""

    def __init__(self, domain: str):
        self.domain = domain

    def choice(self, seq):
        return next(d for d in seq if d.domain == self.domain)


def _policy(**overrides) -> FirewallPolicy:
    return FirewallPolicy(**overrides)


@pytest.mark.parametrize("level", list(SecurityLevel))
def test_block_word_vetoes_at_every_level(level):
    fw = QueryFirewall(rng=random.Random(1))
    verdict = fw.evaluate("buy cheap phishing kit", _policy(security_level=level))
    assert verdict.action == "block"
    assert verdict.results == []
    assert "phishing" in verdict.reason


def test_block_word_is_case_insensitive():
    fw = QueryFirewall(rng=random.Random(1))
    verdict = fw.evaluate("How does MALWARE spread", _policy())
    assert verdict.action == "block"


def test_disabled_firewall_skips_block_and_filter():
    fw = QueryFirewall(rng=random.Random(1))
    verdict = fw.evaluate("phishing awareness", _policy(enabled=False, security_level="high"))
    assert verdict.action == "allow"
    assert len(verdict.results) == len(RESULT_TEMPLATES)


def test_synthesize_builds_catalog_in_order():
    results = QueryFirewall.synthesize("Quantum Computing")
    assert [r.id for r in results] == [str(i) for i in range(1, 13)]
    assert results[0].title == "Quantum Computing - Official Resource Guide"
    assert results[0].url == "https://www.quantum-computing.org/resources"
    assert results[0].domain == "quantum-computing.org"
    assert results[1].url == "https://en.wikipedia.org/wiki/quantum_computing"
    assert results[1].domain == "wikipedia.org"
    assert results[5].url == "https://developer.mozilla.org/en-US/docs/quantum/computing"
    assert results[7].content_type == ContentType.VIDEO
    assert results[8].content_type == ContentType.PRODUCT
    assert all(0 <= r.relevance_score <= 100 for r in results)


def test_slugify_collapses_whitespace():
    assert slugify("  Solar   Energy ") == "-solar-energy-"
    assert slugify("a b", "_") == "a_b"


def test_substitution_hits_every_third_candidate():
    fw = QueryFirewall(rng=PickDomain("nasa.gov"))
    candidates = fw.substitute_trusted_domains(QueryFirewall.synthesize("solar energy"))

    for index, result in enumerate(candidates):
        if index % 3 == 0:
            assert result.domain == "nasa.gov"
            assert result.url.startswith("https://nasa.gov/")
            assert result.relevance_score == 98
        else:
            assert result.domain != "nasa.gov"

    assert candidates[0].url == "https://nasa.gov/resources"
    assert candidates[3].url == "https://nasa.gov/topics/solar-energy"
    assert candidates[9].url == "https://nasa.gov/topics/solar-energy"
    assert candidates[3].title.endswith("Harvard University")


def test_seeded_rng_is_reproducible():
    policy = _policy(security_level="low")
    first = QueryFirewall(rng=random.Random(7)).evaluate("climate change", policy)
    second = QueryFirewall(rng=random.Random(7)).evaluate("climate change", policy)
    assert [r.url for r in first.results] == [r.url for r in second.results]
    substituted = {first.results[i].domain for i in (0, 3, 6, 9)}
    assert substituted <= {d.domain for d in TRUSTED_DOMAINS}


def test_high_level_keeps_only_allowed_domains():
    fw = QueryFirewall(rng=PickDomain("google.com"))
    verdict = fw.evaluate("solar energy", _policy(security_level="high"))
    assert verdict.action == "allow"
    assert verdict.candidates == 12
    assert [r.id for r in verdict.results] == ["1", "4", "7", "10"]
    assert all(r.domain == "google.com" for r in verdict.results)


def test_high_level_with_extra_allowed_patterns():
    fw = QueryFirewall(rng=PickDomain("google.com"))
    policy = _policy(
        security_level="high",
        allowed_domains=["*.google.com", "*.reuters.com", "wikipedia.org"],
    )
    verdict = fw.evaluate("elections", policy)
    assert [r.id for r in verdict.results] == ["1", "2", "4", "7", "10", "11"]


def test_high_level_empty_when_nothing_matches():
    fw = QueryFirewall(rng=PickDomain("who.int"))
    verdict = fw.evaluate("vaccines", _policy(security_level="high"))
    assert verdict.action == "allow"
    assert verdict.results == []


def test_high_level_caps_results_in_order():
    fw = QueryFirewall(rng=random.Random(3))
    verdict = fw.evaluate("astronomy", _policy(security_level="high", allowed_domains=["."]))
    assert len(verdict.results) == HIGH_SECURITY_CAP
    assert [r.id for r in verdict.results] == [str(i) for i in range(1, 8)]


@pytest.mark.parametrize("level, expected", [("low", 12), ("medium", 9)])
def test_level_caps(level, expected):
    fw = QueryFirewall(rng=random.Random(5))
    verdict = fw.evaluate("astronomy", _policy(security_level=level))
    assert len(verdict.results) == expected
    assert [r.id for r in verdict.results] == [str(i) for i in range(1, expected + 1)]


@pytest.mark.parametrize("url, expected", [
    ("https://www.example.org/resources", "example.org"),
    ("https://en.wikipedia.org/wiki/Python", "en.wikipedia.org"),
    ("http://github.com", "github.com"),
    ("example.com/path/to", "example.com"),
    ("https://www.[x.org/resources", "www.[x.org"),
    ("", ""),
])
def test_extract_domain(url, expected):
    assert extract_domain(url) == expected


def test_unparseable_query_still_yields_results():
    fw = QueryFirewall(rng=random.Random(2))
    verdict = fw.evaluate("[x", _policy(security_level="low"))
    assert verdict.action == "allow"
    assert len(verdict.results) == 12
    original = QueryFirewall.synthesize("[x")[0]
    assert original.domain == "www.[x.org"
