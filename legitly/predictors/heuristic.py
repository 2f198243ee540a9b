"""Heuristic predictor: the rule-based scorer as one ensemble member."""

from __future__ import annotations

from ..analyzer.features import FeatureSet
from ..analyzer.heuristics import ERROR_FACTOR, score_features
from ..analyzer.models import SourceResult
from .base import BasePredictor


class HeuristicPredictor(BasePredictor):
    name = "heuristic"
    display_name = "URL heuristics"

    async def _do_predict(self, features: FeatureSet) -> SourceResult:
        scored = score_features(features)
        if scored.error:
            return self.unavailable(ERROR_FACTOR)
        return self.result(
            scored.score,
            scored.confidence,
            recommendation=scored.recommendation.value,
        )
