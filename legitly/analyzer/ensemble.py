"""Ensemble decision engine.

Pure functions: every table they need arrives as an ``EnsembleWeights`` value,
so concurrent analyses never share mutable state here.

Stages:
1. aggregate the predictor pool (confidence-weighted mean)
2. aggregate the trust-source pool (same algorithm, own weight table)
3. combine the two aggregates, then boost/dampen the combined score
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Collection, Iterable, Mapping, Optional, Sequence

from ..constants import NEUTRAL_CONFIDENCE, NEUTRAL_SCORE, Recommendation, SourceLabel
from .models import AggregateResult, EnsembleResult, SourceResult

logger = logging.getLogger(__name__)

MODEL_WEIGHTS: Mapping[str, float] = MappingProxyType({
    "vrbancic": 0.15,
    "kaggle": 0.15,
    "mendeley": 0.12,
    "huggingface": 0.15,
    "ieee": 0.13,
    "phishofe": 0.15,
    "zenodo": 0.15,
    "heuristic": 0.20,
})

TRUST_WEIGHTS: Mapping[str, float] = MappingProxyType({
    "google_safe_browsing": 0.40,
    "virustotal": 0.35,
    "phishtank": 0.10,
    "domain_reputation": 0.10,
})

DEFAULT_SOURCE_WEIGHT = 0.1
MAX_COMBINED_CONFIDENCE = 0.95
# Missing/zero confidence counts as this inside aggregation.
IMPLIED_CONFIDENCE = 0.5

HIGH_BAND = 0.7
LOW_BAND = 0.3
CONSENSUS_SOURCES = 3
CONSENSUS_HIGH = 0.8
CONSENSUS_LOW = 0.2
BOOST_FACTOR = 1.2
DAMPEN_FACTOR = 0.8

NO_TRUST_SOURCES_NOTE = "No external reputation source was available; verdict relies on local analysis"
LOW_CONFIDENCE_NOTE = "Limited confidence - conflicting or sparse signals"


@dataclass(frozen=True)
class EnsembleWeights:
    """Static weight tables consumed by the engine."""

    model_weights: Mapping[str, float] = field(default_factory=lambda: MODEL_WEIGHTS)
    trust_weights: Mapping[str, float] = field(default_factory=lambda: TRUST_WEIGHTS)
    models_weight: float = 0.6
    trust_weight: float = 0.4
    default_weight: float = DEFAULT_SOURCE_WEIGHT

    def model_weight(self, name: str) -> float:
        return self.model_weights.get(name, self.default_weight)

    def trust_source_weight(self, name: str) -> float:
        return self.trust_weights.get(name, self.default_weight)

    def with_overrides(
        self,
        model_weights: Mapping[str, float] | None = None,
        trust_weights: Mapping[str, float] | None = None,
        models_weight: float | None = None,
        trust_weight: float | None = None,
    ) -> "EnsembleWeights":
        """Return a copy with the given entries replaced."""
        models = dict(self.model_weights)
        models.update(model_weights or {})
        trust = dict(self.trust_weights)
        trust.update(trust_weights or {})
        return EnsembleWeights(
            model_weights=MappingProxyType(models),
            trust_weights=MappingProxyType(trust),
            models_weight=self.models_weight if models_weight is None else float(models_weight),
            trust_weight=self.trust_weight if trust_weight is None else float(trust_weight),
            default_weight=self.default_weight,
        )


DEFAULT_WEIGHTS = EnsembleWeights()


def _effective_confidence(value: Optional[float]) -> float:
    return value if value else IMPLIED_CONFIDENCE


def usable_results(
    results: Iterable[SourceResult],
    enabled: Optional[Collection[str]] = None,
) -> list[SourceResult]:
    """Available, error-free, scored results whose source is enabled."""
    return [r for r in results if r.usable and (enabled is None or r.name in enabled)]


def aggregate_sources(
    results: Iterable[SourceResult],
    weights: Mapping[str, float],
    *,
    enabled: Optional[Collection[str]] = None,
    default_weight: float = DEFAULT_SOURCE_WEIGHT,
) -> AggregateResult:
    """Confidence-weighted mean of one pool.

    ``score = sum(s_i * w_i * c_i) / sum(w_i * c_i)``; the aggregate confidence
    is the plain mean of the per-source confidences.
    """
    valid = usable_results(results, enabled)
    if not valid:
        return AggregateResult(NEUTRAL_SCORE, NEUTRAL_CONFIDENCE, 0, {})

    weighted_sum = 0.0
    total_weight = 0.0
    total_confidence = 0.0
    details: dict[str, dict[str, float]] = {}

    for result in valid:
        weight = weights.get(result.name, default_weight)
        confidence = _effective_confidence(result.confidence)
        adjusted = weight * confidence

        weighted_sum += result.score * adjusted
        total_weight += adjusted
        total_confidence += confidence
        details[result.name] = {
            "score": result.score,
            "confidence": result.confidence,
            "weight": weight,
        }

    score = weighted_sum / total_weight if total_weight > 0 else NEUTRAL_SCORE
    return AggregateResult(
        score=score,
        confidence=total_confidence / len(valid),
        sources_used=len(valid),
        details=details,
    )


def combine_pools(
    models: AggregateResult,
    trust: AggregateResult,
    weights: EnsembleWeights = DEFAULT_WEIGHTS,
) -> tuple[float, float]:
    """Blend the two pool aggregates before boosting.

    Returns ``(score, confidence)``. An empty pool hands all of its weight to
    the other one; two empty pools give the neutral result.
    """
    if models.empty and trust.empty:
        return NEUTRAL_SCORE, NEUTRAL_CONFIDENCE
    if models.empty:
        return trust.score, min(trust.confidence, MAX_COMBINED_CONFIDENCE)
    if trust.empty:
        return models.score, min(models.confidence, MAX_COMBINED_CONFIDENCE)

    # Each static weight scales by its pool's share of the summed confidence;
    # the results are not renormalized.
    models_confidence = _effective_confidence(models.confidence)
    trust_confidence = _effective_confidence(trust.confidence)
    total_confidence = models_confidence + trust_confidence
    models_weight = weights.models_weight * models_confidence / total_confidence
    trust_weight = weights.trust_weight * trust_confidence / total_confidence

    score = models.score * models_weight + trust.score * trust_weight
    confidence = min(
        models.confidence * models_weight + trust.confidence * trust_weight,
        MAX_COMBINED_CONFIDENCE,
    )
    return score, confidence


def apply_boosting(score: float, models: AggregateResult, trust: AggregateResult) -> float:
    """Push agreeing verdicts outward and pull disagreeing ones toward neutral."""
    models_high = models.score > HIGH_BAND
    models_low = models.score < LOW_BAND
    trust_high = trust.score > HIGH_BAND
    trust_low = trust.score < LOW_BAND
    consensus = models.sources_used >= CONSENSUS_SOURCES

    if (models_high and trust_high) or (consensus and models.score > CONSENSUS_HIGH):
        return min(1.0, score * BOOST_FACTOR)
    if (models_low and trust_low) or (consensus and models.score < CONSENSUS_LOW):
        return max(0.0, score * DAMPEN_FACTOR)
    if (models_high and trust_low) or (models_low and trust_high):
        return 0.4 + (score - 0.5) * 0.5
    return score


def recommend(score: float, risk_threshold: int = 70) -> Recommendation:
    """Three-band recommendation driven by the configured threshold (0..100)."""
    phishing_at = risk_threshold / 100
    suspicious_at = max(0.3, phishing_at - 0.2)
    if score >= phishing_at:
        return Recommendation.PHISHING
    if score >= suspicious_at:
        return Recommendation.SUSPICIOUS
    return Recommendation.SAFE


def _percent(value: float) -> int:
    return int(round(value * 100))


def trust_verdict(result: SourceResult) -> str:
    service = result.details.get("service", result.name)
    if result.is_safe is False or (result.is_safe is None and result.score >= HIGH_BAND):
        return f"{service}: flagged as unsafe ({_percent(result.score)}% risk)"
    if result.is_safe:
        return f"{service}: no threats found ({_percent(result.score)}% risk)"
    return f"{service}: no verdict ({_percent(result.score)}% risk)"


def predictor_verdict(result: SourceResult) -> str:
    label = result.label or SourceLabel.UNKNOWN
    return f"Model {result.name}: {label.value} ({_percent(result.score)}% risk)"


def build_factors(
    predictions: Sequence[SourceResult],
    trust_results: Sequence[SourceResult],
    heuristic_factors: Sequence[str],
    weights: EnsembleWeights = DEFAULT_WEIGHTS,
) -> list[str]:
    """Ordered factor list, most authoritative first.

    Each tier is prepended to what is already there: heuristic factors sit at
    the bottom, predictor verdicts above them, trust verdicts on top. Within a
    tier, heavier-weighted sources come first.
    """
    factors = list(heuristic_factors)

    ranked_models = sorted(predictions, key=lambda r: (-weights.model_weight(r.name), r.name))
    factors[:0] = [predictor_verdict(r) for r in ranked_models]

    ranked_trust = sorted(trust_results, key=lambda r: (-weights.trust_source_weight(r.name), r.name))
    factors[:0] = [trust_verdict(r) for r in ranked_trust]

    if not trust_results:
        factors.append(NO_TRUST_SOURCES_NOTE)
    return factors


def decide(
    url: str,
    predictions: Sequence[SourceResult],
    trust_results: Sequence[SourceResult],
    *,
    weights: EnsembleWeights = DEFAULT_WEIGHTS,
    risk_threshold: int = 70,
    enabled_models: Optional[Collection[str]] = None,
    enabled_trust: Optional[Collection[str]] = None,
    heuristic_factors: Sequence[str] = (),
) -> EnsembleResult:
    """Run all three stages and produce the final ``EnsembleResult``."""
    models = aggregate_sources(
        predictions,
        weights.model_weights,
        enabled=enabled_models,
        default_weight=weights.default_weight,
    )
    trust = aggregate_sources(
        trust_results,
        weights.trust_weights,
        enabled=enabled_trust,
        default_weight=weights.default_weight,
    )

    combined, confidence = combine_pools(models, trust, weights)
    if models.empty and trust.empty:
        final = combined
    else:
        final = apply_boosting(combined, models, trust)
    final = max(0.0, min(1.0, final))

    used_models = usable_results(predictions, enabled_models)
    used_trust = usable_results(trust_results, enabled_trust)
    factors = build_factors(used_models, used_trust, heuristic_factors, weights)
    if confidence < 0.5:
        factors.append(LOW_CONFIDENCE_NOTE)

    logger.debug(
        f"Ensemble for {url}: models={models.score:.3f}/{models.sources_used} "
        f"trust={trust.score:.3f}/{trust.sources_used} combined={combined:.3f} final={final:.3f}"
    )

    return EnsembleResult(
        url=url,
        risk_percentage=_percent(final),
        confidence=round(confidence, 4),
        recommendation=recommend(final, risk_threshold),
        factors=factors,
        raw_aggregates={
            "models": models.to_dict(),
            "trust": trust.to_dict(),
            "combined_score": combined,
            "final_score": final,
        },
    )
