"""Analysis engine for Legitly."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from ..analyzer.ensemble import NO_TRUST_SOURCES_NOTE, decide, usable_results
from ..analyzer.features import extract_features, parse_url
from ..analyzer.heuristics import ERROR_FACTOR, NO_FACTORS_MESSAGE, HeuristicResult, score_features
from ..analyzer.models import EnsembleResult
from ..cache import ResultCache
from ..config import Config
from ..constants import NEUTRAL_CONFIDENCE, NEUTRAL_SCORE, Recommendation
from ..errors import ParseError
from ..predictors.pool import PredictorPool
from ..trust.pool import TrustSourcePool

logger = logging.getLogger(__name__)


def fallback_result(url: str) -> EnsembleResult:
    """Neutral verdict returned when the analysis itself breaks."""
    return EnsembleResult(
        url=url,
        risk_percentage=round(NEUTRAL_SCORE * 100),
        confidence=NEUTRAL_CONFIDENCE,
        recommendation=Recommendation.UNKNOWN,
        factors=[ERROR_FACTOR],
        fallback=True,
    )


def heuristic_result(url: str, heuristic: HeuristicResult, extra_factors: Sequence[str] = ()) -> EnsembleResult:
    """Standalone heuristic verdict, four bands included."""
    return EnsembleResult(
        url=url,
        risk_percentage=heuristic.risk_percentage,
        confidence=heuristic.confidence,
        recommendation=heuristic.recommendation,
        factors=list(heuristic.factors) + list(extra_factors),
        raw_aggregates={"heuristic": heuristic.score, "final_score": heuristic.score},
    )


class PhishingAnalyzer:
    """Runs one URL through cache, heuristics, both pools and the ensemble."""

    def __init__(
        self,
        config: Config,
        cache: Optional[ResultCache] = None,
        predictor_pool: Optional[PredictorPool] = None,
        trust_pool: Optional[TrustSourcePool] = None,
    ):
        self.config = config
        self.cache = cache if cache is not None else self._build_cache(config)
        self.predictor_pool = predictor_pool or PredictorPool.default(config.model_weights_file)
        self.trust_pool = trust_pool or TrustSourcePool.from_config(config)
        self._semaphore = asyncio.Semaphore(max(1, config.max_concurrent_checks))

    @staticmethod
    def _build_cache(config: Config) -> ResultCache:
        return ResultCache(
            cache_dir=config.cache_dir,
            expiry_minutes=config.cache_expiry_minutes,
            max_entries=config.cache_max_entries,
        )

    def reconfigure(self, config: Config, trust_pool: Optional[TrustSourcePool] = None) -> None:
        """Swap configuration; cached verdicts were made under the old one."""
        self.config = config
        self.trust_pool = trust_pool or TrustSourcePool.from_config(config)
        self._semaphore = asyncio.Semaphore(max(1, config.max_concurrent_checks))
        self.cache.clear()
        logger.info("Configuration updated; result cache cleared")

    async def analyze(self, url: str, use_cache: bool = True) -> EnsembleResult:
        """
        Analyze a URL and return the ensemble verdict.

        Raises ParseError for URLs that cannot be analyzed. Any other failure
        yields the neutral fallback result, which is never cached.
        """
        url = (url or "").strip()
        parse_url(url)

        if use_cache:
            cached = self.cache.get(url)
            if cached is not None:
                logger.debug(f"Cache hit: {url}")
                return cached

        async with self._semaphore:
            try:
                result = await self._analyze(url)
            except ParseError:
                raise
            except Exception as e:
                logger.exception(f"Analysis failed for {url}: {e}")
                return fallback_result(url)

        if use_cache and not result.fallback:
            self.cache.set(url, result)
        return result

    async def _analyze(self, url: str) -> EnsembleResult:
        config = self.config
        tables = config.tables()

        features = extract_features(url, tables)
        heuristic = score_features(features)
        if heuristic.error:
            return fallback_result(url)
        if heuristic.trusted:
            logger.debug(f"Trusted host, skipping pools: {features.host}")
            return heuristic_result(url, heuristic)

        enabled_models = config.enabled_models()
        enabled_trust = config.enabled_trust_sources()
        timeout = config.timeout_seconds

        predictions, trust_results = await asyncio.gather(
            self.predictor_pool.predict_all(url, features, enabled=enabled_models, timeout=timeout),
            self.trust_pool.lookup_all(url, enabled=enabled_trust, timeout=timeout),
        )

        if not usable_results(predictions, enabled_models) and not usable_results(trust_results, enabled_trust):
            logger.info(f"No predictor or trust source answered for {features.host}; using heuristics only")
            return heuristic_result(url, heuristic, [NO_TRUST_SOURCES_NOTE])

        heuristic_factors = [f for f in heuristic.factors if f != NO_FACTORS_MESSAGE]
        result = decide(
            url,
            predictions,
            trust_results,
            weights=config.ensemble_weights(),
            risk_threshold=config.risk_threshold,
            enabled_models=enabled_models,
            enabled_trust=enabled_trust,
            heuristic_factors=heuristic_factors,
        )
        result.raw_aggregates["heuristic"] = heuristic.score

        logger.info(
            f"Analyzed {features.host}: {result.risk_percentage}% "
            f"{result.recommendation.value} (confidence {result.confidence:.2f})"
        )
        return result
