"""Numpy linear backend for the model predictors.

Each model is ``sigmoid(w . x + b)`` over a fixed-length input vector. Weights
live in a YAML file (``weights.yaml`` ships with the package); a model whose
entry is missing or malformed simply is not loaded.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Sequence

import numpy as np
import yaml

from .vectors import VECTOR_LENGTH

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS_FILE = Path(__file__).with_name("weights.yaml")


class BufferScope:
    """Tracks the arrays allocated for one prediction.

    Leaving the scope drops every reference it holds, whether the prediction
    finished or raised.
    """

    def __init__(self) -> None:
        self._buffers: list[np.ndarray] = []
        self.closed = False

    def array(self, values: Sequence[float] | np.ndarray) -> np.ndarray:
        if self.closed:
            raise RuntimeError("buffer scope already released")
        buf = np.asarray(values, dtype=np.float64)
        self._buffers.append(buf)
        return buf

    @property
    def live(self) -> int:
        return len(self._buffers)

    def release(self) -> None:
        self._buffers.clear()
        self.closed = True


@contextmanager
def buffer_scope() -> Iterator[BufferScope]:
    scope = BufferScope()
    try:
        yield scope
    finally:
        scope.release()


@dataclass(frozen=True)
class LinearModel:
    """Single-layer logistic model."""

    weights: tuple[float, ...]
    bias: float = 0.0

    @property
    def input_size(self) -> int:
        return len(self.weights)

    def predict(self, vector: Sequence[float], scope: Optional[BufferScope] = None) -> float:
        """Score one input vector in [0, 1]."""
        if len(vector) != self.input_size:
            raise ValueError(f"expected {self.input_size} inputs, got {len(vector)}")
        if scope is None:
            with buffer_scope() as own:
                return self._forward(vector, own)
        return self._forward(vector, scope)

    def _forward(self, vector: Sequence[float], scope: BufferScope) -> float:
        x = scope.array(vector)
        w = scope.array(self.weights)
        logits = scope.array(np.clip(np.dot(w, x) + self.bias, -500.0, 500.0))
        return float(1.0 / (1.0 + np.exp(-logits)))


def parse_model(name: str, entry: object) -> Optional[LinearModel]:
    """Build a model from a YAML entry, or None when the entry is unusable."""
    if not isinstance(entry, dict):
        logger.warning(f"Model weights for {name} are not a mapping; model not loaded")
        return None
    raw_weights = entry.get("weights")
    if not isinstance(raw_weights, list) or not raw_weights:
        logger.warning(f"Model weights for {name} are missing; model not loaded")
        return None
    try:
        weights = tuple(float(w) for w in raw_weights)
        bias = float(entry.get("bias", 0.0))
    except (TypeError, ValueError):
        logger.warning(f"Model weights for {name} are not numeric; model not loaded")
        return None
    if len(weights) != VECTOR_LENGTH:
        logger.warning(
            f"Model weights for {name} have {len(weights)} entries, expected {VECTOR_LENGTH}; model not loaded"
        )
        return None
    return LinearModel(weights=weights, bias=bias)


def load_models(path: Optional[Path] = None) -> dict[str, LinearModel]:
    """Load every usable model from a weights file."""
    path = path or DEFAULT_WEIGHTS_FILE
    if not path.exists():
        logger.warning(f"Model weights file not found: {path}")
        return {}
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        logger.warning(f"Failed to parse model weights {path}: {e}")
        return {}

    models_section = data.get("models") if isinstance(data, dict) else None
    if not isinstance(models_section, dict):
        logger.warning(f"No 'models' section in {path}")
        return {}

    models: dict[str, LinearModel] = {}
    for name, entry in models_section.items():
        model = parse_model(str(name), entry)
        if model is not None:
            models[str(name)] = model
    logger.debug(f"Loaded {len(models)} model(s) from {path}")
    return models
