"""
Divergence scoring: combine both baseline deltas and classify the result.

divergence = sqrt(w_logic * dL^2 + w_temporal * dT^2), weights taken as given.
Verdict rules, first match wins:
  1. dL >= 1                  -> REJECT (structural override, not configurable)
  2. divergence > reject      -> REJECT
  3. divergence > suspicious  -> SUSPICIOUS
  4. divergence > caution     -> CAUTION
  5. otherwise                -> VALID
Thresholds are configurable; out-of-range configuration is rejected, never clamped.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from backend_dbt.analysis_engine.baselines import (
    DEFAULT_TEMPORAL_CAP,
    DEFAULT_TRANSITIONS,
    TransitionPolicy,
    delta_logic,
    delta_temporal,
    validate_temporal_cap,
)
from backend_dbt.analysis_engine.embeddings import DEFAULT_EMBEDDINGS, EmbeddingTable
from backend_dbt.analysis_engine.models import ScoreResult, Verdict
from backend_dbt.core.exceptions import ConfigurationError
from backend_dbt.dbt_logging import get_logger

logger = get_logger(__name__)

DEFAULT_WEIGHT_LOGIC = 0.6
DEFAULT_WEIGHT_TEMPORAL = 0.4
DEFAULT_CAUTION_THRESHOLD = 0.45
DEFAULT_SUSPICIOUS_THRESHOLD = 0.65
DEFAULT_REJECT_THRESHOLD = 0.85

# Float slack when checking that weights sum to at most 1
WEIGHT_SUM_TOLERANCE = 1e-9

REASON_FIRST_VOTE = "FIRST_VOTE"
REASON_LOGIC_BASELINE_VIOLATED = "LOGIC_BASELINE_VIOLATED"
REASON_LOGIC_BASELINE_SATISFIED = "LOGIC_BASELINE_SATISFIED"
REASON_TEMPORAL_NO_EMBEDDING = "TEMPORAL_NO_EMBEDDING"
REASON_TEMPORAL_JUMP_SATURATED = "TEMPORAL_JUMP_SATURATED"


def _validate_weight(name: str, value: float) -> float:
    try:
        w = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from e
    if not math.isfinite(w) or w < 0:
        raise ConfigurationError(f"{name} must be finite and >= 0, got {value!r}")
    return w


def divergence(
    delta_logic: float,
    delta_temporal: float,
    weight_logic: float = DEFAULT_WEIGHT_LOGIC,
    weight_temporal: float = DEFAULT_WEIGHT_TEMPORAL,
) -> float:
    """Weighted quadratic combination of the two deltas. Weights are not renormalized."""
    wl = _validate_weight("weight_logic", weight_logic)
    wt = _validate_weight("weight_temporal", weight_temporal)
    return math.sqrt(wl * delta_logic * delta_logic + wt * delta_temporal * delta_temporal)


@dataclass(frozen=True)
class VerdictThresholds:
    """
    Divergence cut points, each in (0, 1) with caution < suspicious.

    reject is checked first and is not ordered against the others; a reject
    cut at or below suspicious means SUSPICIOUS is never reached.
    """

    caution: float = DEFAULT_CAUTION_THRESHOLD
    suspicious: float = DEFAULT_SUSPICIOUS_THRESHOLD
    reject: float = DEFAULT_REJECT_THRESHOLD

    def __post_init__(self) -> None:
        values = (self.caution, self.suspicious, self.reject)
        if not all(isinstance(v, (int, float)) and math.isfinite(v) for v in values):
            raise ConfigurationError(f"verdict thresholds must be finite numbers, got {values}")
        for name, value in (("caution", self.caution), ("suspicious", self.suspicious), ("reject", self.reject)):
            if not 0 < value < 1:
                raise ConfigurationError(f"{name} threshold must be in (0, 1), got {value}")
        if not self.caution < self.suspicious:
            raise ConfigurationError(
                f"caution threshold must be below suspicious, got caution={self.caution} suspicious={self.suspicious}"
            )


DEFAULT_THRESHOLDS = VerdictThresholds()


def verdict_from(
    divergence: float,
    delta_logic: float,
    reject_threshold: float = DEFAULT_REJECT_THRESHOLD,
    thresholds: VerdictThresholds | None = None,
) -> Verdict:
    """
    Classify a divergence. A logic violation is REJECT regardless of divergence.

    thresholds, when given, supplies all three cut points; otherwise the
    defaults are used with reject_threshold.
    """
    if thresholds is None:
        if reject_threshold == DEFAULT_REJECT_THRESHOLD:
            thresholds = DEFAULT_THRESHOLDS
        else:
            thresholds = VerdictThresholds(reject=reject_threshold)
    if delta_logic >= 1:
        return Verdict.REJECT
    if divergence > thresholds.reject:
        return Verdict.REJECT
    if divergence > thresholds.suspicious:
        return Verdict.SUSPICIOUS
    if divergence > thresholds.caution:
        return Verdict.CAUTION
    return Verdict.VALID


@dataclass(frozen=True)
class ScoringConfig:
    """
    Everything one scoring pass needs, validated once at construction.

    weight_logic + weight_temporal must not exceed 1 so divergence stays in [0, 1].
    """

    temporal_cap: float = DEFAULT_TEMPORAL_CAP
    weight_logic: float = DEFAULT_WEIGHT_LOGIC
    weight_temporal: float = DEFAULT_WEIGHT_TEMPORAL
    thresholds: VerdictThresholds = field(default_factory=VerdictThresholds)
    embeddings: EmbeddingTable = DEFAULT_EMBEDDINGS
    transitions: TransitionPolicy = DEFAULT_TRANSITIONS

    def __post_init__(self) -> None:
        validate_temporal_cap(self.temporal_cap)
        wl = _validate_weight("weight_logic", self.weight_logic)
        wt = _validate_weight("weight_temporal", self.weight_temporal)
        if wl + wt > 1 + WEIGHT_SUM_TOLERANCE:
            raise ConfigurationError(
                f"weight_logic + weight_temporal must be <= 1, got {wl} + {wt}"
            )


DEFAULT_SCORING = ScoringConfig()


def score_vote(
    previous_label: str | None,
    next_label: str | None,
    config: ScoringConfig = DEFAULT_SCORING,
) -> ScoreResult:
    """Score one transition: both deltas, divergence, verdict, and reason codes."""
    d_logic = delta_logic(previous_label, next_label, config.transitions)
    d_temporal = delta_temporal(previous_label, next_label, config.temporal_cap, config.embeddings)
    div = divergence(d_logic, d_temporal, config.weight_logic, config.weight_temporal)
    verdict = verdict_from(div, d_logic, thresholds=config.thresholds)

    codes: list[str] = []
    if not previous_label:
        codes.append(REASON_FIRST_VOTE)
    codes.append(REASON_LOGIC_BASELINE_VIOLATED if d_logic == 1 else REASON_LOGIC_BASELINE_SATISFIED)
    if previous_label and next_label and (
        previous_label not in config.embeddings or next_label not in config.embeddings
    ):
        codes.append(REASON_TEMPORAL_NO_EMBEDDING)
    if d_temporal >= 1.0:
        codes.append(REASON_TEMPORAL_JUMP_SATURATED)

    result = ScoreResult(
        delta_logic=d_logic,
        delta_temporal=d_temporal,
        divergence=div,
        verdict=verdict,
        reason_codes=tuple(codes),
    )
    logger.debug(
        "vote_transition_scored",
        previous_label=previous_label,
        next_label=next_label,
        delta_logic=d_logic,
        delta_temporal=d_temporal,
        divergence=div,
        verdict=verdict.value,
    )
    return result
