"""Base class for predictors."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from ..analyzer.features import FeatureSet, extract_features
from ..analyzer.models import SourceResult
from ..constants import NEUTRAL_CONFIDENCE, SourceLabel
from ..errors import ParseError, SourceError

logger = logging.getLogger(__name__)


class BasePredictor(ABC):
    """
    A named scoring backend.

    ``predict()`` never raises: any failure becomes an unavailable
    ``SourceResult`` so callers never special-case a broken predictor.
    Subclasses implement ``_do_predict()``.
    """

    name: str = "unknown"
    display_name: str = "Unknown model"

    @property
    def is_loaded(self) -> bool:
        return True

    async def predict(self, url: str, features: Optional[FeatureSet] = None) -> SourceResult:
        """Score a URL (reusing ``features`` when the caller already has them)."""
        try:
            if features is None:
                features = extract_features(url)
            return await self._do_predict(features)
        except ParseError as e:
            return self.unavailable(e.message)
        except SourceError as e:
            return self.unavailable(e.message, retryable=e.retryable)
        except Exception as e:
            logger.exception(f"Predictor {self.name} failed for {url}: {e}")
            return self.unavailable(f"prediction failed: {e}")

    @abstractmethod
    async def _do_predict(self, features: FeatureSet) -> SourceResult:
        """Produce a result for already extracted features."""
        raise NotImplementedError

    def result(self, score: float, confidence: float, **extra) -> SourceResult:
        """Available result; label follows the 0.5 decision boundary."""
        score = min(max(float(score), 0.0), 1.0)
        return SourceResult(
            name=self.name,
            available=True,
            score=score,
            confidence=min(max(float(confidence), 0.0), 1.0),
            label=SourceLabel.PHISHING if score > 0.5 else SourceLabel.LEGITIMATE,
            details={"model": self.display_name, **extra},
        )

    def unavailable(self, error: str, *, retryable: bool = False) -> SourceResult:
        return SourceResult.unavailable(
            self.name,
            error,
            retryable=retryable,
            confidence=NEUTRAL_CONFIDENCE,
            label=SourceLabel.UNKNOWN,
        )
