"""
Embedding table: fixed-dimension vectors for categorical vote-option labels.

Loaded once at process start (reference table or a JSON file) and passed by
reference into the temporal baseline. Vectors are read-only numpy arrays.
"""

from __future__ import annotations

import json
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping

import numpy as np

from backend_dbt.core.exceptions import ConfigurationError
from backend_dbt.dbt_logging import get_logger

logger = get_logger(__name__)

# Ordinal stance scale: polar opposites sit furthest apart.
DEFAULT_EMBEDDING_VALUES: dict[str, tuple[float, ...]] = {
    "strongly-against": (-2.0, -1.0, 0.1),
    "against": (-1.0, -0.5, 0.3),
    "neutral": (0.0, 0.0, 0.5),
    "support": (1.0, 0.5, 0.7),
    "strongly-support": (2.0, 1.0, 0.9),
}


class EmbeddingTable:
    """Immutable label -> vector mapping with a single shared dimension."""

    def __init__(self, vectors: Mapping[str, Iterable[float]]) -> None:
        table: dict[str, np.ndarray] = {}
        dimension: int | None = None
        for label, raw in vectors.items():
            if not isinstance(label, str) or not label:
                raise ConfigurationError(f"embedding label must be a non-empty string, got {label!r}")
            try:
                vec = np.array([float(x) for x in raw], dtype=np.float64)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"embedding for {label!r} is not a list of numbers") from e
            if vec.ndim != 1 or vec.size == 0:
                raise ConfigurationError(f"embedding for {label!r} must be a non-empty vector")
            if not np.all(np.isfinite(vec)):
                raise ConfigurationError(f"embedding for {label!r} has non-finite values")
            if dimension is None:
                dimension = int(vec.size)
            elif vec.size != dimension:
                raise ConfigurationError(
                    f"embedding for {label!r} has dimension {vec.size}, expected {dimension}"
                )
            vec.setflags(write=False)
            table[label] = vec
        self._vectors = MappingProxyType(table)
        self._dimension = dimension or 0

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(self._vectors)

    def get(self, label: str | None) -> np.ndarray | None:
        if label is None:
            return None
        return self._vectors.get(label)

    def __contains__(self, label: object) -> bool:
        return label in self._vectors

    def __len__(self) -> int:
        return len(self._vectors)


DEFAULT_EMBEDDINGS = EmbeddingTable(DEFAULT_EMBEDDING_VALUES)


def load_embeddings(path: str | Path | None = None) -> EmbeddingTable:
    """
    Load an embedding table from a JSON object {label: [floats]}.

    With no path, returns the reference table. Unreadable or malformed files
    raise ConfigurationError.
    """
    if path is None:
        return DEFAULT_EMBEDDINGS
    p = Path(path)
    try:
        with open(p, encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"cannot load embeddings from {p}: {e}") from e
    if not isinstance(raw, dict) or not raw:
        raise ConfigurationError(f"embeddings file {p} must hold a non-empty JSON object")
    table = EmbeddingTable(raw)
    logger.info("embeddings_loaded", path=str(p), labels=len(table), dimension=table.dimension)
    return table


def vector_distance(a: np.ndarray, b: np.ndarray) -> float:
    """Euclidean distance between two vectors of the same dimension."""
    return float(np.linalg.norm(a - b))
