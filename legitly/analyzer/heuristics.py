"""Rule-based URL risk scoring.

Floors (IP literal, brand impersonation, abused TLD) combine with ``max``;
every other rule adds to the running score. The result is capped at 95% so
that only external verdicts can push a URL into the top band.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..constants import NEUTRAL_CONFIDENCE, NEUTRAL_SCORE, Recommendation
from .features import FeatureSet, extract_features
from .tables import DEFAULT_TABLES, HeuristicTables

logger = logging.getLogger(__name__)

TRUSTED_SCORE = 0.02
TRUSTED_CONFIDENCE = 0.99
MAX_HEURISTIC_PERCENT = 95
MANY_WEAK_SIGNALS_CAP = 45
BASE_CONFIDENCE = 0.7
MAX_CONFIDENCE = 0.99

# (min percentage, recommendation, confidence floor), highest band first
BANDS: tuple[tuple[int, Recommendation, float], ...] = (
    (75, Recommendation.PHISHING, 0.85),
    (40, Recommendation.SUSPICIOUS, 0.75),
    (15, Recommendation.LOW_RISK, 0.70),
    (0, Recommendation.SAFE, 0.80),
)

NO_FACTORS_MESSAGE = "No significant risk factors detected"
ERROR_FACTOR = "Error analyzing URL"


@dataclass
class HeuristicResult:
    """Outcome of the heuristic scorer."""

    score: float
    risk_percentage: int
    confidence: float
    recommendation: Recommendation
    factors: list[str] = field(default_factory=list)
    trusted: bool = False
    error: bool = False

    @classmethod
    def fallback(cls) -> "HeuristicResult":
        return cls(
            score=NEUTRAL_SCORE,
            risk_percentage=round(NEUTRAL_SCORE * 100),
            confidence=NEUTRAL_CONFIDENCE,
            recommendation=Recommendation.UNKNOWN,
            factors=[ERROR_FACTOR],
            error=True,
        )

    @classmethod
    def trusted_domain(cls, host: str) -> "HeuristicResult":
        return cls(
            score=TRUSTED_SCORE,
            risk_percentage=round(TRUSTED_SCORE * 100),
            confidence=TRUSTED_CONFIDENCE,
            recommendation=Recommendation.SAFE,
            factors=[f"Trusted domain: {host}"],
            trusted=True,
        )


def accumulate(features: FeatureSet) -> tuple[float, float, list[str]]:
    """Run the rule ladder and return ``(raw score, confidence, factors)``.

    The raw score is neither capped nor rounded.
    """
    score = 0.0
    confidence = BASE_CONFIDENCE
    factors: list[str] = []

    if features.is_ip_address:
        score = max(score, 0.90)
        confidence = max(confidence, 0.95)
        factors.append("IP address used instead of domain name")

    if features.brands:
        score = max(score, 0.85)
        confidence = max(confidence, 0.90)
        factors.append(f"Possible brand impersonation: {', '.join(features.brands)}")

    if features.suspicious_tld:
        score = max(score, 0.75)
        confidence = max(confidence, 0.85)
        tld = features.host.rsplit(".", 1)[-1]
        factors.append(f"Suspicious top-level domain: .{tld}")

    if features.keyword_count >= 3:
        score += 0.40
        factors.append(f"Multiple phishing keywords: {', '.join(features.keywords)}")
    elif features.keyword_count >= 1:
        score += 0.20
        factors.append(f"Phishing keywords: {', '.join(features.keywords)}")

    if features.homograph:
        score += 0.35
        factors.append("Possible homograph attack (lookalike characters in domain)")

    structure = features.domain_structure
    if structure.score > 0.3:
        score += structure.score
        factors.append(f"Suspicious domain structure: {', '.join(structure.reasons)}")

    if features.url_length > 200:
        score += 0.25
        factors.append("Extremely long URL")
    elif features.url_length > 150:
        score += 0.15
        factors.append("Very long URL")

    if not features.has_https:
        score += 0.25
        factors.append("No HTTPS encryption")

    path = features.path_complexity
    if path.score > 0.2:
        score += path.score
        factors.append(f"Suspicious path: {', '.join(path.reasons)}")

    if features.is_shortener:
        score += 0.10
        factors.append("URL shortener hides the destination")

    subdomain = features.subdomain_risk
    if subdomain.score > 0.1:
        score += subdomain.score
        factors.append(subdomain.reason)

    return score, confidence, factors


def _band(percentage: int) -> tuple[Recommendation, float]:
    for minimum, recommendation, floor in BANDS:
        if percentage >= minimum:
            return recommendation, floor
    return Recommendation.SAFE, BANDS[-1][2]


def score_features(features: FeatureSet) -> HeuristicResult:
    """Score an already extracted ``FeatureSet``.

    Never raises: an unexpected fault yields ``HeuristicResult.fallback()``.
    """
    if features.is_trusted:
        return HeuristicResult.trusted_domain(features.host)

    try:
        raw, confidence, factors = accumulate(features)

        percentage = min(round(raw * 100), MAX_HEURISTIC_PERCENT)
        if len(factors) >= 3 and percentage < 50:
            percentage = min(percentage, MANY_WEAK_SIGNALS_CAP)

        recommendation, floor = _band(percentage)
        confidence = min(max(confidence, floor), MAX_CONFIDENCE)

        return HeuristicResult(
            score=percentage / 100,
            risk_percentage=percentage,
            confidence=round(confidence, 4),
            recommendation=recommendation,
            factors=factors or [NO_FACTORS_MESSAGE],
        )
    except Exception:
        logger.exception(f"Heuristic scoring failed for {features.url}")
        return HeuristicResult.fallback()


def score_url(url: str, tables: HeuristicTables = DEFAULT_TABLES) -> HeuristicResult:
    """Extract features and score them. Raises ``ParseError`` for bad URLs."""
    return score_features(extract_features(url, tables))
