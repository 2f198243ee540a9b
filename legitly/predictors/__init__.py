"""Predictor pool: named scoring backends behind one ``predict`` contract."""

from .base import BasePredictor
from .heuristic import HeuristicPredictor
from .model import ModelPredictor
from .pool import MODEL_SPECS, PREDICTOR_NAMES, PredictorPool, build_predictors

__all__ = [
    "BasePredictor",
    "HeuristicPredictor",
    "MODEL_SPECS",
    "ModelPredictor",
    "PREDICTOR_NAMES",
    "PredictorPool",
    "build_predictors",
]
