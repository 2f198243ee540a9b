"""Result records shared by predictors, trust sources and the ensemble."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Optional

from ..constants import NEUTRAL_CONFIDENCE, NEUTRAL_SCORE, Recommendation, SourceLabel


@dataclass
class SourceResult:
    """Uniform verdict emitted by every predictor and trust source.

    ``available=False`` or a non-empty ``error`` means score/confidence are
    advisory only and must not take part in aggregation.
    """

    name: str
    available: bool
    score: Optional[float] = None
    confidence: float = NEUTRAL_CONFIDENCE
    label: Optional[SourceLabel] = None
    is_safe: Optional[bool] = None
    error: Optional[str] = None
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def unavailable(
        cls,
        name: str,
        error: str,
        *,
        retryable: bool = False,
        score: Optional[float] = None,
        confidence: float = NEUTRAL_CONFIDENCE,
        label: Optional[SourceLabel] = None,
    ) -> "SourceResult":
        return cls(
            name=name,
            available=False,
            score=score,
            confidence=confidence,
            label=label,
            error=error,
            retryable=retryable,
        )

    @property
    def usable(self) -> bool:
        """True when this result may take part in aggregation."""
        return self.available and not self.error and self.score is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "available": self.available,
            "score": self.score,
            "confidence": self.confidence,
            "label": self.label.value if self.label else None,
            "is_safe": self.is_safe,
            "error": self.error,
            "retryable": self.retryable,
            "details": dict(self.details),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SourceResult":
        label = data.get("label")
        return cls(
            name=data["name"],
            available=bool(data.get("available")),
            score=data.get("score"),
            confidence=float(data.get("confidence", NEUTRAL_CONFIDENCE)),
            label=SourceLabel.from_string(label) if label else None,
            is_safe=data.get("is_safe"),
            error=data.get("error"),
            retryable=bool(data.get("retryable", False)),
            details=dict(data.get("details") or {}),
            timestamp=float(data.get("timestamp") or time.time()),
        )


@dataclass
class AggregateResult:
    """Confidence-weighted mean over one pool of sources."""

    score: float = NEUTRAL_SCORE
    confidence: float = NEUTRAL_CONFIDENCE
    sources_used: int = 0
    details: dict[str, dict[str, float]] = field(default_factory=dict)

    @property
    def empty(self) -> bool:
        return self.sources_used == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "confidence": self.confidence,
            "sources_used": self.sources_used,
            "details": {k: dict(v) for k, v in self.details.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AggregateResult":
        return cls(
            score=float(data.get("score", NEUTRAL_SCORE)),
            confidence=float(data.get("confidence", NEUTRAL_CONFIDENCE)),
            sources_used=int(data.get("sources_used", 0)),
            details={k: dict(v) for k, v in (data.get("details") or {}).items()},
        )


@dataclass
class EnsembleResult:
    """Final decision for one URL."""

    url: str
    risk_percentage: int
    confidence: float
    recommendation: Recommendation
    factors: list[str] = field(default_factory=list)
    raw_aggregates: dict[str, Any] = field(default_factory=dict)
    fallback: bool = False
    timestamp: float = field(default_factory=time.time)

    @property
    def score(self) -> float:
        return self.risk_percentage / 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "risk_percentage": self.risk_percentage,
            "confidence": self.confidence,
            "recommendation": self.recommendation.value,
            "factors": list(self.factors),
            "raw_aggregates": self.raw_aggregates,
            "fallback": self.fallback,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EnsembleResult":
        return cls(
            url=data.get("url", ""),
            risk_percentage=int(data.get("risk_percentage", 0)),
            confidence=float(data.get("confidence", NEUTRAL_CONFIDENCE)),
            recommendation=Recommendation.from_string(data.get("recommendation")),
            factors=list(data.get("factors") or []),
            raw_aggregates=dict(data.get("raw_aggregates") or {}),
            fallback=bool(data.get("fallback", False)),
            timestamp=float(data.get("timestamp") or time.time()),
        )
