"""Offline domain reputation analyzer."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from rapidfuzz import fuzz

from ..analyzer.models import SourceResult
from ..analyzer.tables import DEFAULT_TABLES, HeuristicTables
from ..errors import SourceError
from ..utils.domains import decode_idna, domain_label, extract_hostname, registered_domain
from .base import BaseTrustSource, is_legitimate_host

REPUTATION_TLDS = frozenset({"xyz", "top", "work", "date", "loan", "agency"})

DIGIT_RUN_RE = re.compile(r"\d{4,}")
SEPARATOR_RUN_RE = re.compile(r"[-_.]{2,}")
UNUSUAL_CHAR_RE = re.compile(r"[^a-zA-Z0-9\-_.]")

BRAND_SPELLINGS: dict[str, tuple[str, ...]] = {
    "facebook": ("facebook", "fb", "facebok", "facbook"),
    "google": ("google", "gogle", "googl"),
    "microsoft": ("microsoft", "microsft", "micros0ft"),
    "apple": ("apple", "aple", "appel"),
    "amazon": ("amazon", "amzon", "amazn"),
    "paypal": ("paypal", "paypl", "paypel"),
    "netflix": ("netflix", "netflx", "netfix"),
    "instagram": ("instagram", "insta"),
    "twitter": ("twitter", "twiter"),
    "linkedin": ("linkedin", "linkdin"),
}

FUZZY_BRAND_THRESHOLD = 85
BRAND_FLOOR = 0.8
BRAND_PENALTY = 0.3
CONFIDENCE = 0.8


@dataclass
class ReputationReport:
    """Static analysis of a single domain."""

    domain: str
    score: float = 0.5
    reasons: list[str] = field(default_factory=list)
    impersonated_brand: Optional[str] = None
    legitimate: bool = False

    @property
    def category(self) -> str:
        return reputation_category(self.score)


def reputation_category(score: float) -> str:
    if score < 0.2:
        return "TRUSTED"
    if score < 0.4:
        return "GOOD"
    if score < 0.6:
        return "NEUTRAL"
    if score < 0.8:
        return "SUSPICIOUS"
    return "HIGH_RISK"


def _variant_pattern(variant: str) -> re.Pattern[str]:
    escaped = re.escape(variant)
    return re.compile(rf"{escaped}[^a-z]|[^a-z]{escaped}|^{escaped}|{escaped}$")


_BRAND_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    brand: tuple(_variant_pattern(v) for v in variants) for brand, variants in BRAND_SPELLINGS.items()
}


def find_impersonated_brand(base_domain: str, label: str) -> Optional[str]:
    """Brand a registrable domain appears to imitate, if any."""
    if any(base_domain == f"{brand}.com" for brand in BRAND_SPELLINGS):
        return None

    for brand, patterns in _BRAND_PATTERNS.items():
        if any(p.search(base_domain) for p in patterns):
            return brand.upper()

    # Lookalikes the spelling table misses (paypall, arnazon, ...)
    if label:
        for brand in BRAND_SPELLINGS:
            if label != brand and fuzz.ratio(label, brand) >= FUZZY_BRAND_THRESHOLD:
                return brand.upper()
    return None


def analyze_domain(host: str, tables: HeuristicTables = DEFAULT_TABLES) -> ReputationReport:
    """Score a host from its spelling alone."""
    host = decode_idna(host.lower().strip("."))
    base = registered_domain(host) or host
    label = domain_label(host)
    report = ReputationReport(domain=base)

    if is_legitimate_host(host, tables):
        report.score = 0.1
        report.legitimate = True
        report.reasons.append("Known legitimate domain")
        return report

    score = 0.5
    tld = host.rsplit(".", 1)[-1]
    if tld in REPUTATION_TLDS or tld in tables.suspicious_tlds:
        score += 0.1
        report.reasons.append("Suspicious TLD")
    if DIGIT_RUN_RE.search(base):
        score += 0.1
        report.reasons.append("Excessive numbers in domain")
    if SEPARATOR_RUN_RE.search(base):
        score += 0.1
        report.reasons.append("Multiple special characters")
    if UNUSUAL_CHAR_RE.search(base):
        score += 0.15
        report.reasons.append("Unusual characters in domain")

    brand = find_impersonated_brand(base, label)
    if brand:
        score = max(score + BRAND_PENALTY, BRAND_FLOOR)
        report.impersonated_brand = brand
        report.reasons.append(f"Possible {brand} impersonation")

    report.score = min(score, 1.0)
    return report


class DomainReputationSource(BaseTrustSource):
    """Local reputation verdict; needs no credential and has no quota."""

    name = "domain_reputation"
    display_name = "Domain reputation"
    requires_api_key = False

    async def _query(self, url: str) -> SourceResult:
        host = extract_hostname(url)
        if not host:
            raise SourceError("missing host")

        report = analyze_domain(host, self.tables)
        confidence = 0.95 if report.legitimate else CONFIDENCE
        return self.result(
            report.score,
            confidence,
            report.score < 0.3,
            reputation=report.category,
            reasons=report.reasons,
            impersonation=report.impersonated_brand,
        )
