"""Numeric model predictors backed by the linear numpy backend."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from ..analyzer.features import FeatureSet
from ..analyzer.models import SourceResult
from .backend import LinearModel, buffer_scope
from .base import BasePredictor
from .vectors import build_vector, feature_table

logger = logging.getLogger(__name__)

MODEL_NOT_LOADED = "model not loaded"


class ModelPredictor(BasePredictor):
    """Predictor that turns a URL into a fixed vector and scores it."""

    def __init__(
        self,
        name: str,
        display_name: str,
        feature_names: Sequence[str],
        model: Optional[LinearModel] = None,
    ):
        self.name = name
        self.display_name = display_name
        self.feature_names = tuple(feature_names)
        self.model = model

    @property
    def is_loaded(self) -> bool:
        return self.model is not None

    def vector(self, features: FeatureSet) -> list[float]:
        return build_vector(feature_table(features), self.feature_names)

    def _infer(self, vector: list[float]) -> float:
        with buffer_scope() as scope:
            return self.model.predict(vector, scope)

    async def _do_predict(self, features: FeatureSet) -> SourceResult:
        if self.model is None:
            return self.unavailable(MODEL_NOT_LOADED)

        vector = self.vector(features)
        score = await asyncio.to_thread(self._infer, vector)
        return self.result(score, abs(score - 0.5) * 2)
