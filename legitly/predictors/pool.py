"""Predictor pool: builds the fixed predictor set and runs it concurrently."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Collection, Iterable, Optional

from ..analyzer.features import FeatureSet
from ..analyzer.models import SourceResult
from .backend import load_models
from .base import BasePredictor
from .heuristic import HeuristicPredictor
from .model import ModelPredictor

logger = logging.getLogger(__name__)

# name -> (display name, declared feature list)
MODEL_SPECS: dict[str, tuple[str, tuple[str, ...]]] = {
    "vrbancic": (
        "Grega Vrbancic Phishing Model",
        ("url_length", "num_dots", "num_subdomains", "has_https", "suspicious_words"),
    ),
    "kaggle": (
        "Kaggle Web Page Phishing Model",
        ("domain_age", "url_entropy", "tld_type", "subdomain_count", "path_depth"),
    ),
    "mendeley": (
        "Mendeley Phishing Model",
        ("ip_address", "shortening_service", "prefix_suffix", "having_sub_domain"),
    ),
    "huggingface": (
        "HuggingFace Phishing Model",
        ("url_features", "domain_features", "page_features", "whois_features"),
    ),
    "ieee": (
        "IEEE Dataport Phishing Model",
        ("lexical_features", "host_features", "content_features"),
    ),
    "phishofe": (
        "PhishOFE Model",
        ("statistical_features", "structural_features", "behavioral_features"),
    ),
    "zenodo": (
        "Zenodo Phishing Model",
        ("url_analysis", "domain_analysis", "content_analysis", "network_analysis"),
    ),
}

PREDICTOR_NAMES: tuple[str, ...] = tuple(MODEL_SPECS) + (HeuristicPredictor.name,)


def build_predictors(weights_file: Optional[Path] = None) -> list[BasePredictor]:
    """Instantiate every predictor; models without weights stay unloaded."""
    models = load_models(weights_file)
    predictors: list[BasePredictor] = []
    for name, (display_name, feature_names) in MODEL_SPECS.items():
        model = models.get(name)
        if model is None:
            logger.info(f"Predictor {name} has no usable weights; it will report unavailable")
        predictors.append(ModelPredictor(name, display_name, feature_names, model))
    predictors.append(HeuristicPredictor())
    return predictors


class PredictorPool:
    """Runs enabled predictors side by side with settle-all semantics."""

    def __init__(self, predictors: Iterable[BasePredictor]):
        self.predictors: dict[str, BasePredictor] = {p.name: p for p in predictors}

    @classmethod
    def default(cls, weights_file: Optional[Path] = None) -> "PredictorPool":
        return cls(build_predictors(weights_file))

    @property
    def names(self) -> list[str]:
        return list(self.predictors)

    def get(self, name: str) -> Optional[BasePredictor]:
        return self.predictors.get(name)

    async def _run_one(
        self,
        predictor: BasePredictor,
        url: str,
        features: Optional[FeatureSet],
        timeout: Optional[float],
    ) -> SourceResult:
        try:
            if timeout is None:
                return await predictor.predict(url, features)
            return await asyncio.wait_for(predictor.predict(url, features), timeout=timeout)
        except asyncio.TimeoutError:
            logger.debug(f"Predictor {predictor.name} timed out for {url}")
            return predictor.unavailable("timeout", retryable=True)

    async def predict_all(
        self,
        url: str,
        features: Optional[FeatureSet] = None,
        *,
        enabled: Optional[Collection[str]] = None,
        timeout: Optional[float] = None,
    ) -> list[SourceResult]:
        """Run every enabled predictor; one failure never affects another."""
        selected = [p for name, p in self.predictors.items() if enabled is None or name in enabled]
        if not selected:
            return []
        return list(
            await asyncio.gather(*(self._run_one(p, url, features, timeout) for p in selected))
        )
