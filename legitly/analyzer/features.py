"""URL feature extraction.

Turns a URL string into an immutable ``FeatureSet``. No I/O happens here; the
only failure mode is ``ParseError`` for input that is not an absolute
http(s) URL with a host.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from ..errors import ParseError
from ..utils.domains import (
    decode_idna,
    is_ip_literal,
    matches_any,
    matches_domain,
    subdomain_labels,
    top_level_label,
)
from .tables import COUNTRY_SECOND_LEVEL, DEFAULT_TABLES, HOMOGRAPH_RE, HeuristicTables

SUPPORTED_SCHEMES = ("http", "https")


@dataclass(frozen=True)
class ParsedURL:
    """Components of a validated URL."""

    url: str
    scheme: str
    host: str
    path: str
    query: str


@dataclass(frozen=True)
class ScoredSignal:
    """Accumulated score with the reasons that produced it."""

    score: float = 0.0
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class SubdomainRisk:
    """Subdomain analysis outcome (exactly one reason)."""

    score: float = 0.0
    reason: str = "No subdomains"


@dataclass(frozen=True)
class FeatureSet:
    """Lexical/structural features for a single URL."""

    url: str
    host: str
    path: str
    query: str
    url_length: int
    num_dots: int
    num_subdomains: int
    has_https: bool
    is_ip_address: bool
    is_shortener: bool
    is_trusted: bool
    keywords: tuple[str, ...] = ()
    brands: tuple[str, ...] = ()
    suspicious_tld: bool = False
    homograph: bool = False
    domain_structure: ScoredSignal = field(default_factory=ScoredSignal)
    path_complexity: ScoredSignal = field(default_factory=ScoredSignal)
    subdomain_risk: SubdomainRisk = field(default_factory=SubdomainRisk)

    @property
    def brand_impersonation(self) -> bool:
        return bool(self.brands)

    @property
    def keyword_count(self) -> int:
        return len(self.keywords)

    def to_dict(self) -> dict:
        return {
            "url_length": self.url_length,
            "num_dots": self.num_dots,
            "num_subdomains": self.num_subdomains,
            "has_https": self.has_https,
            "is_ip_address": self.is_ip_address,
            "is_shortener": self.is_shortener,
            "is_trusted": self.is_trusted,
            "keywords": list(self.keywords),
            "brands": list(self.brands),
            "suspicious_tld": self.suspicious_tld,
            "homograph": self.homograph,
            "domain_structure": {
                "score": self.domain_structure.score,
                "reasons": list(self.domain_structure.reasons),
            },
            "path_complexity": {
                "score": self.path_complexity.score,
                "reasons": list(self.path_complexity.reasons),
            },
            "subdomain_risk": {
                "score": self.subdomain_risk.score,
                "reason": self.subdomain_risk.reason,
            },
        }


def parse_url(url: str) -> ParsedURL:
    """Validate and split an absolute http(s) URL."""
    raw = (url or "").strip()
    if not raw:
        raise ParseError(url, "Empty URL")
    try:
        parts = urlsplit(raw)
        host = parts.hostname or ""
    except ValueError as e:
        raise ParseError(url, f"Malformed URL ({e})") from e

    scheme = (parts.scheme or "").lower()
    if scheme not in SUPPORTED_SCHEMES:
        raise ParseError(url, "Unsupported scheme")
    host = host.strip(".").lower()
    if not host:
        raise ParseError(url, "Missing host")

    return ParsedURL(
        url=raw,
        scheme=scheme,
        host=host,
        path=parts.path or "/",
        query=f"?{parts.query}" if parts.query else "",
    )


def is_trusted_host(host: str, tables: HeuristicTables = DEFAULT_TABLES) -> bool:
    """Whitelist check: exact host or subdomain of a trusted domain."""
    return matches_any(host, tables.trusted_domains)


def find_keywords(url: str, tables: HeuristicTables = DEFAULT_TABLES) -> tuple[str, ...]:
    """Distinct phishing keywords present anywhere in the URL."""
    lowered = url.lower()
    return tuple(k for k in tables.phishing_keywords if k in lowered)


def find_impersonated_brands(
    host: str,
    tables: HeuristicTables = DEFAULT_TABLES,
) -> tuple[str, ...]:
    """Brands whose spelling variants appear in a host that is not the brand's own."""
    if is_trusted_host(host, tables):
        return ()

    brands: list[str] = []
    for brand, variants in tables.brand_variants:
        if matches_domain(host, f"{brand}.com"):
            continue
        if any(variant in host for variant in variants):
            brands.append(brand.upper())
    return tuple(brands)


def has_homograph(host: str) -> bool:
    """Cyrillic, Greek or accented Latin characters anywhere in the host."""
    candidate = decode_idna(host)
    return bool(HOMOGRAPH_RE.search(candidate))


def analyze_domain_structure(host: str) -> ScoredSignal:
    """Score hyphens, digits, label length and double extensions."""
    score = 0.0
    reasons: list[str] = []

    hyphens = host.count("-")
    if hyphens >= 3:
        score += 0.30
        reasons.append("excessive hyphens")
    elif hyphens >= 2:
        score += 0.15
        reasons.append("multiple hyphens")

    # Digits outside the TLD
    if re.search(r"\d", re.sub(r"\.\w+$", "", host)):
        score += 0.20
        reasons.append("numbers in domain name")

    first_label = host.split(".")[0]
    if len(first_label) > 20:
        score += 0.25
        reasons.append("extremely long domain name")
    elif len(first_label) > 15:
        score += 0.10
        reasons.append("very long domain name")

    # e.g. login.paypal.com.evil.tk
    parts = host.split(".")
    if len(parts) > 3:
        middle = ".".join(parts[-3:-1])
        if middle not in COUNTRY_SECOND_LEVEL and ("com" in middle or "org" in middle):
            score += 0.40
            reasons.append("suspicious domain extension pattern")

    return ScoredSignal(round(score, 4), tuple(reasons))


def analyze_path_complexity(
    path: str,
    query: str,
    tables: HeuristicTables = DEFAULT_TABLES,
) -> ScoredSignal:
    """Score path depth, suspicious path keywords and query size."""
    score = 0.0
    reasons: list[str] = []

    depth = len([p for p in path.split("/") if p])
    if depth > 8:
        score += 0.20
        reasons.append("extremely deep path structure")
    elif depth > 5:
        score += 0.10
        reasons.append("complex path structure")

    text = (path + query).lower()
    hits = sum(1 for pattern in tables.path_patterns if pattern.search(text))
    if hits >= 2:
        score += 0.25
        reasons.append("multiple suspicious path elements")
    elif hits >= 1:
        score += 0.10
        reasons.append("suspicious path elements")

    if len(query) > 200:
        score += 0.15
        reasons.append("extremely complex query parameters")
    elif len(query) > 100:
        score += 0.05
        reasons.append("complex query parameters")

    return ScoredSignal(round(score, 4), tuple(reasons))


def analyze_subdomain_risk(
    subdomains: list[str],
    tables: HeuristicTables = DEFAULT_TABLES,
) -> SubdomainRisk:
    """First matching rule wins: none, excessive, multiple, suspicious label."""
    if not subdomains:
        return SubdomainRisk(0.0, "No subdomains")
    if len(subdomains) > 4:
        return SubdomainRisk(0.20, "Excessive subdomains (possible subdomain abuse)")
    if len(subdomains) > 2:
        return SubdomainRisk(0.10, "Multiple subdomains")
    if any(label in sub for sub in subdomains for label in tables.subdomain_labels):
        return SubdomainRisk(0.15, "Suspicious subdomain detected")
    return SubdomainRisk(0.0, "Normal subdomain usage")


def extract_features(url: str, tables: HeuristicTables = DEFAULT_TABLES) -> FeatureSet:
    """Derive the full ``FeatureSet`` for a URL.

    Trusted hosts still get every feature computed; the scorer decides what
    to do with the whitelist flag.
    """
    parsed = parse_url(url)
    host = parsed.host
    subdomains = subdomain_labels(host)

    return FeatureSet(
        url=parsed.url,
        host=host,
        path=parsed.path,
        query=parsed.query,
        url_length=len(parsed.url),
        num_dots=host.count("."),
        num_subdomains=len(subdomains),
        has_https=parsed.scheme == "https",
        is_ip_address=is_ip_literal(host),
        is_shortener=host in tables.shorteners,
        is_trusted=is_trusted_host(host, tables),
        keywords=find_keywords(parsed.url, tables),
        brands=find_impersonated_brands(host, tables),
        suspicious_tld=top_level_label(host) in tables.suspicious_tlds,
        homograph=has_homograph(host),
        domain_structure=analyze_domain_structure(host),
        path_complexity=analyze_path_complexity(parsed.path, parsed.query, tables),
        subdomain_risk=analyze_subdomain_risk(subdomains, tables),
    )
