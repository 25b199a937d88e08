"""QueryFirewall — the decision centre for search queries.

Given a query and the current FirewallPolicy it runs four stages:

1. Keyword block: a hard veto, no results at all
2. Candidate synthesis from the fixed template catalog
3. Trusted-domain substitution on every third candidate
4. Security-level filter (high: allow-list + cap 7, medium: first 9, low: all)

Stages 1 and 4 only run while the policy is enabled. History recording is
the search service's job, not the firewall's.

Stage 3 draws from ``random.Random`` and is therefore non-deterministic for
identical queries unless a seeded generator is injected.
"""

from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass, field
from typing import List, Literal, Optional
from urllib.parse import urlsplit

from lumina.core.enums import ContentType, SecurityLevel
from lumina.core.protocols import FirewallPolicy, SearchResult

logger = logging.getLogger(__name__)

HIGH_SECURITY_CAP = 7
MEDIUM_SECURITY_CAP = 9
SUBSTITUTION_STRIDE = 3


# ── Verdict dataclass ──


@dataclass
class SearchVerdict:
    """Result of a firewall evaluation on a query."""

    action: Literal["allow", "block"]
    reason: str = ""
    results: List[SearchResult] = field(default_factory=list)
    # Size of the candidate set before the security-level filter
    candidates: int = 0


# ── Catalogs ──


@dataclass(frozen=True)
class TrustedDomain:
    domain: str
    favicon: str
    relevance: int


TRUSTED_DOMAINS: tuple[TrustedDomain, ...] = (
    TrustedDomain("github.com", "https://github.com/favicon.ico", 95),
    TrustedDomain("stackoverflow.com", "https://stackoverflow.com/favicon.ico", 92),
    TrustedDomain("developer.mozilla.org", "https://developer.mozilla.org/favicon.ico", 98),
    TrustedDomain("w3schools.com", "https://www.w3schools.com/favicon.ico", 90),
    TrustedDomain("harvard.edu", "https://www.harvard.edu/favicon.ico", 97),
    TrustedDomain("mit.edu", "https://www.mit.edu/favicon.ico", 96),
    TrustedDomain("stanford.edu", "https://www.stanford.edu/favicon.ico", 95),
    TrustedDomain("nature.com", "https://www.nature.com/favicon.ico", 94),
    TrustedDomain("cdc.gov", "https://www.cdc.gov/favicon.ico", 99),
    TrustedDomain("who.int", "https://www.who.int/favicon.ico", 99),
    TrustedDomain("nasa.gov", "https://www.nasa.gov/favicon.ico", 98),
    TrustedDomain("wikipedia.org", "https://en.wikipedia.org/favicon.ico", 91),
    TrustedDomain("nytimes.com", "https://www.nytimes.com/favicon.ico", 88),
    TrustedDomain("bbc.com", "https://www.bbc.com/favicon.ico", 89),
    TrustedDomain("economist.com", "https://www.economist.com/favicon.ico", 92),
    TrustedDomain("reuters.com", "https://www.reuters.com/favicon.ico", 93),
    TrustedDomain("nationalgeographic.com", "https://www.nationalgeographic.com/favicon.ico", 91),
    TrustedDomain("apple.com", "https://www.apple.com/favicon.ico", 87),
    TrustedDomain("microsoft.com", "https://www.microsoft.com/favicon.ico", 88),
    TrustedDomain("google.com", "https://www.google.com/favicon.ico", 90),
)


@dataclass(frozen=True)
class ResultTemplate:
    """One canonical candidate. ``{q}`` is the raw query, ``{slug}`` its URL form."""

    title: str
    url: str
    description: str
    content_type: ContentType
    relevance: int
    published: str
    favicon: str
    # None means "derive from the URL"
    domain: Optional[str] = None
    slug_sep: str = "-"


RESULT_TEMPLATES: tuple[ResultTemplate, ...] = (
    ResultTemplate(
        title="{q} - Official Resource Guide",
        url="https://www.{slug}.org/resources",
        description=(
            "Comprehensive resource guide about {q}. Includes expert analysis, "
            "research papers, and community contributions on all aspects of {q}."
        ),
        content_type=ContentType.DOCUMENT, relevance=98, published="2023-10-15",
        favicon="https://www.example.org/favicon.ico",
    ),
    ResultTemplate(
        title="{q} - Wikipedia, The Free Encyclopedia",
        url="https://en.wikipedia.org/wiki/{slug}",
        description=(
            "{q} is a term referring to various concepts across different fields. "
            "Learn more about the history, development, and contemporary applications of {q}."
        ),
        content_type=ContentType.ARTICLE, relevance=95, published="2023-11-02",
        favicon="https://en.wikipedia.org/favicon.ico", domain="wikipedia.org", slug_sep="_",
    ),
    ResultTemplate(
        title="Understanding {q}: A Comprehensive Guide - MIT Press",
        url="https://mitpress.mit.edu/topics/{slug}",
        description=(
            "MIT Press presents a detailed exploration of {q}, addressing its fundamental "
            "principles, historical development, and future implications across various disciplines."
        ),
        content_type=ContentType.ARTICLE, relevance=97, published="2023-09-18",
        favicon="https://mitpress.mit.edu/favicon.ico", domain="mitpress.mit.edu",
    ),
    ResultTemplate(
        title="{q} Research Repository - Harvard University",
        url="https://research.harvard.edu/topics/{slug}",
        description=(
            "Harvard University's authoritative collection of research papers, studies, and "
            "academic resources related to {q}. Features peer-reviewed contributions from leading experts."
        ),
        content_type=ContentType.DOCUMENT, relevance=96, published="2023-10-22",
        favicon="https://harvard.edu/favicon.ico", domain="research.harvard.edu",
    ),
    ResultTemplate(
        title="The Latest Developments in {q} - Nature Journal",
        url="https://www.nature.com/subjects/{slug}",
        description=(
            "Nature Journal presents cutting-edge research, scientific breakthroughs, and expert "
            "analysis on {q}. Stay informed with the most recent developments in this rapidly evolving field."
        ),
        content_type=ContentType.ARTICLE, relevance=94, published="2023-10-30",
        favicon="https://www.nature.com/favicon.ico", domain="nature.com",
    ),
    ResultTemplate(
        title="{q} Documentation and Tutorials - MDN Web Docs",
        url="https://developer.mozilla.org/en-US/docs/{slug}",
        description=(
            "Comprehensive documentation, tutorials, and examples related to {q}. MDN Web Docs "
            "provides reliable, developer-approved resources for understanding and implementing {q} concepts."
        ),
        content_type=ContentType.DOCUMENT, relevance=98, published="2023-11-05",
        favicon="https://developer.mozilla.org/favicon.ico", domain="developer.mozilla.org",
        slug_sep="/",
    ),
    ResultTemplate(
        title="{q} Community Forum - Stack Exchange",
        url="https://stackexchange.com/questions/tagged/{slug}",
        description=(
            "Join discussions, ask questions, and share knowledge about {q} with a community of "
            "experts and enthusiasts. Find solutions to common problems and insights on best practices."
        ),
        content_type=ContentType.SERVICE, relevance=92, published="2023-11-01",
        favicon="https://stackexchange.com/favicon.ico", domain="stackexchange.com",
    ),
    ResultTemplate(
        title="{q} Video Courses and Tutorials - EDX",
        url="https://www.edx.org/learn/{slug}",
        description=(
            "Learn {q} through structured video courses, interactive tutorials, and practical "
            "examples. EDX offers courses from top universities and institutions worldwide."
        ),
        content_type=ContentType.VIDEO, relevance=91, published="2023-10-12",
        favicon="https://www.edx.org/favicon.ico", domain="edx.org",
    ),
    ResultTemplate(
        title="{q} Products and Solutions - Industry Leaders",
        url="https://www.industry-solutions.com/products/{slug}",
        description=(
            "Discover industry-leading products, services, and solutions related to {q}. "
            "Compare features, specifications, and pricing to find the perfect match for your needs."
        ),
        content_type=ContentType.PRODUCT, relevance=88, published="2023-10-25",
        favicon="https://www.industry-solutions.com/favicon.ico", domain="industry-solutions.com",
    ),
    ResultTemplate(
        title="{q} Open Source Projects - GitHub",
        url="https://github.com/topics/{slug}",
        description=(
            "Explore open-source projects, libraries, and tools related to {q}. GitHub hosts "
            "thousands of community-contributed resources that you can use, modify, and learn from."
        ),
        content_type=ContentType.SERVICE, relevance=95, published="2023-11-07",
        favicon="https://github.com/favicon.ico", domain="github.com",
    ),
    ResultTemplate(
        title="{q} News and Updates - Reuters",
        url="https://www.reuters.com/topics/{slug}",
        description=(
            "Stay updated with the latest news, developments, and trends related to {q}. "
            "Reuters provides accurate, timely, and unbiased coverage of events worldwide."
        ),
        content_type=ContentType.ARTICLE, relevance=89, published="2023-11-08",
        favicon="https://www.reuters.com/favicon.ico", domain="reuters.com",
    ),
    ResultTemplate(
        title="{q} Standards and Guidelines - W3C",
        url="https://www.w3.org/standards/{slug}",
        description=(
            "Official standards, guidelines, and best practices for {q}. The World Wide Web "
            "Consortium (W3C) develops and maintains internationally recognized standards to "
            "ensure compatibility and quality."
        ),
        content_type=ContentType.DOCUMENT, relevance=97, published="2023-09-29",
        favicon="https://www.w3.org/favicon.ico", domain="w3.org",
    ),
)


# ── Helpers ──

_WHITESPACE = re.compile(r"\s+")


def slugify(query: str, sep: str = "-") -> str:
    return _WHITESPACE.sub(sep, query.lower())


def extract_domain(url: str) -> str:
    """Display domain of a URL, without a leading ``www.``.

    Never raises: an unparseable URL falls back to the text before the first
    path separator (after any scheme prefix).
    """
    try:
        hostname = urlsplit(url).hostname
    except ValueError:
        hostname = None
    if not hostname:
        rest = url.split("://", 1)[-1]
        return rest.split("/", 1)[0]
    return hostname[4:] if hostname.startswith("www.") else hostname


def url_path(url: str) -> str:
    """Everything after the host, without the leading slash."""
    return "/".join(url.split("/")[3:])


def pattern_core(pattern: str) -> str:
    """De-wildcard an allowed-domain pattern: ``*.example.com`` -> ``example.com``."""
    return pattern[2:] if pattern.startswith("*.") else pattern


# ── QueryFirewall ──


class QueryFirewall:
    """Evaluates queries against a FirewallPolicy and synthesises results."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def evaluate(self, query: str, policy: FirewallPolicy) -> SearchVerdict:
        """Run the full pipeline on a query."""
        if policy.enabled:
            blocked_by = self.find_blocked_word(query, policy)
            if blocked_by is not None:
                logger.info("Query blocked by keyword %r", blocked_by)
                return SearchVerdict(action="block", reason=f"blocked keyword: {blocked_by}")

        candidates = self.substitute_trusted_domains(self.synthesize(query))

        if not policy.enabled:
            return SearchVerdict(
                action="allow", reason="firewall disabled",
                results=candidates, candidates=len(candidates),
            )

        results = self.apply_security_level(candidates, policy)
        return SearchVerdict(
            action="allow",
            reason=f"security level {policy.security_level.value}",
            results=results,
            candidates=len(candidates),
        )

    # ── Stage 1 ──

    @staticmethod
    def find_blocked_word(query: str, policy: FirewallPolicy) -> Optional[str]:
        lowered = query.lower()
        for word in policy.block_words:
            word = word.lower()
            if word and word in lowered:
                return word
        return None

    # ── Stage 2 ──

    @staticmethod
    def synthesize(query: str) -> List[SearchResult]:
        results: List[SearchResult] = []
        for index, tpl in enumerate(RESULT_TEMPLATES, start=1):
            url = tpl.url.format(slug=slugify(query, tpl.slug_sep))
            results.append(SearchResult(
                id=str(index),
                title=tpl.title.format(q=query),
                url=url,
                description=tpl.description.format(q=query),
                domain=tpl.domain or extract_domain(url),
                favicon=tpl.favicon,
                published_date=tpl.published,
                content_type=tpl.content_type,
                relevance_score=tpl.relevance,
            ))
        return results

    # ── Stage 3 ──

    def substitute_trusted_domains(self, candidates: List[SearchResult]) -> List[SearchResult]:
        out: List[SearchResult] = []
        for index, result in enumerate(candidates):
            if index % SUBSTITUTION_STRIDE == 0:
                trusted = self._rng.choice(TRUSTED_DOMAINS)
                result = result.model_copy(update={
                    "url": f"https://{trusted.domain}/{url_path(result.url)}",
                    "domain": trusted.domain,
                    "favicon": trusted.favicon,
                    "relevance_score": trusted.relevance,
                })
            out.append(result)
        return out

    # ── Stage 4 ──

    @staticmethod
    def apply_security_level(
        candidates: List[SearchResult], policy: FirewallPolicy,
    ) -> List[SearchResult]:
        level = policy.security_level
        if level == SecurityLevel.HIGH:
            cores = [pattern_core(p) for p in policy.allowed_domains]
            allowed = [r for r in candidates if any(c and c in r.domain for c in cores)]
            return allowed[:HIGH_SECURITY_CAP]
        if level == SecurityLevel.MEDIUM:
            return candidates[:MEDIUM_SECURITY_CAP]
        return list(candidates)
