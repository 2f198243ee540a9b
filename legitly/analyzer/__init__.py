"""Feature extraction, heuristic scoring and the ensemble decision engine."""

from .ensemble import DEFAULT_WEIGHTS, EnsembleWeights, decide
from .features import FeatureSet, extract_features
from .heuristics import HeuristicResult, score_features, score_url
from .models import AggregateResult, EnsembleResult, SourceResult
from .tables import DEFAULT_TABLES, HeuristicTables

__all__ = [
    "DEFAULT_TABLES",
    "DEFAULT_WEIGHTS",
    "AggregateResult",
    "EnsembleResult",
    "EnsembleWeights",
    "FeatureSet",
    "HeuristicResult",
    "HeuristicTables",
    "SourceResult",
    "decide",
    "extract_features",
    "score_features",
    "score_url",
]
