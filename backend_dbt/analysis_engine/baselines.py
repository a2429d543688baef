"""
Logic and temporal baselines for a voter's transition between two options.

Logic baseline: categorical; a transition listed as forbidden (e.g. one pole of
an ordinal stance scale straight to the other) yields delta 1, anything else 0.

Temporal baseline: geometric; Euclidean distance between the two options'
embeddings, normalized by a cap and saturated at 1. A label without an
embedding carries no information and yields 0.

All functions are pure; the tables are immutable and passed in by reference.
"""

from __future__ import annotations

import math
from types import MappingProxyType
from typing import Iterable, Mapping

from backend_dbt.analysis_engine.embeddings import (
    DEFAULT_EMBEDDINGS,
    EmbeddingTable,
    vector_distance,
)
from backend_dbt.core.exceptions import ConfigurationError

DEFAULT_TEMPORAL_CAP = 2.0


class TransitionPolicy:
    """Immutable table: label -> labels it may not transition to."""

    def __init__(self, forbidden: Mapping[str, Iterable[str]]) -> None:
        table: dict[str, frozenset[str]] = {}
        for label, targets in forbidden.items():
            if isinstance(targets, str):
                raise ConfigurationError(f"forbidden targets for {label!r} must be a collection of labels")
            table[label] = frozenset(targets)
        self._forbidden = MappingProxyType(table)

    def is_forbidden(self, previous_label: str, next_label: str) -> bool:
        return next_label in self._forbidden.get(previous_label, frozenset())

    def forbidden_from(self, label: str) -> frozenset[str]:
        return self._forbidden.get(label, frozenset())


DEFAULT_TRANSITIONS = TransitionPolicy(
    {
        "strongly-against": {"strongly-support"},
        "against": {"strongly-support"},
        "support": {"strongly-against"},
        "strongly-support": {"strongly-against"},
    }
)


def delta_logic(
    previous_label: str | None,
    next_label: str | None,
    policy: TransitionPolicy = DEFAULT_TRANSITIONS,
) -> int:
    """
    Return 1 if previous -> next is a forbidden transition, else 0.

    A first vote (no previous label) never violates; an unchanged vote never
    violates.
    """
    if not previous_label or not next_label:
        return 0
    if previous_label == next_label:
        return 0
    return 1 if policy.is_forbidden(previous_label, next_label) else 0


def validate_temporal_cap(cap: float) -> float:
    """Return cap as float; raise ConfigurationError unless it is finite and > 0."""
    try:
        value = float(cap)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"temporal cap must be a number, got {cap!r}") from e
    if not math.isfinite(value) or value <= 0:
        raise ConfigurationError(f"temporal cap must be finite and > 0, got {cap!r}")
    return value


def delta_temporal(
    previous_label: str | None,
    next_label: str | None,
    cap: float = DEFAULT_TEMPORAL_CAP,
    embeddings: EmbeddingTable = DEFAULT_EMBEDDINGS,
) -> float:
    """
    Return min(1, distance(emb(previous), emb(next)) / cap).

    0 when either label is absent or unmapped. Symmetric in its two labels.
    """
    cap = validate_temporal_cap(cap)
    if not previous_label or not next_label:
        return 0.0
    a = embeddings.get(previous_label)
    b = embeddings.get(next_label)
    if a is None or b is None:
        return 0.0
    return min(1.0, vector_distance(a, b) / cap)
