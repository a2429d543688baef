"""
Domain models for vote scoring, integrity tracking, and consensus reporting.

Vote events and score results are immutable; integrity records are replaced
wholesale on every update (never edited in place). No ORM coupling so the
stores stay swappable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Verdict(str, Enum):
    """Severity of a vote's divergence. Ordered VALID < CAUTION < SUSPICIOUS < REJECT."""

    VALID = "VALID"
    CAUTION = "CAUTION"
    SUSPICIOUS = "SUSPICIOUS"
    REJECT = "REJECT"

    @property
    def rank(self) -> int:
        return _VERDICT_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Verdict):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Verdict):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Verdict):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Verdict):
            return NotImplemented
        return self.rank >= other.rank


_VERDICT_ORDER = (Verdict.VALID, Verdict.CAUTION, Verdict.SUSPICIOUS, Verdict.REJECT)


@dataclass(frozen=True)
class VoteOption:
    """Poll option; the label feeds both baselines."""

    id: str
    label: str


@dataclass(frozen=True)
class VoteEvent:
    """One cast vote, as handed to the store. Append-only."""

    voter_id: str
    poll_id: str
    option_id: str
    option_label: str
    previous_option_label: str | None
    created_at: int
    """Unix timestamp (seconds) when the vote was cast."""


@dataclass(frozen=True)
class PreviousVote:
    """Most recent earlier vote by the same voter in the same poll."""

    option_label: str
    created_at: int


@dataclass(frozen=True)
class ScoreResult:
    """
    Outcome of scoring one vote against both baselines.

    delta_logic: 0 or 1; 1 means a forbidden transition.
    delta_temporal: normalized embedding jump in [0, 1].
    divergence: weighted combination in [0, 1].
    verdict: classification of (divergence, delta_logic).
    reason_codes: ordered audit codes explaining the result.
    """

    delta_logic: int
    delta_temporal: float
    divergence: float
    verdict: Verdict
    reason_codes: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "delta_logic": self.delta_logic,
            "delta_temporal": self.delta_temporal,
            "divergence": self.divergence,
            "verdict": self.verdict.value,
            "reason_codes": list(self.reason_codes),
        }


@dataclass(frozen=True)
class VoteMetric:
    """Persisted pairing of a vote event with its score."""

    id: int | None
    vote_id: str
    poll_id: str
    voter_id: str
    option_id: str
    option_label: str
    previous_option_label: str | None
    delta_logic: int
    delta_temporal: float
    divergence: float
    verdict: Verdict
    created_at: int
    reason_codes: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "vote_id": self.vote_id,
            "poll_id": self.poll_id,
            "voter_id": self.voter_id,
            "option_id": self.option_id,
            "option_label": self.option_label,
            "previous_option_label": self.previous_option_label,
            "delta_logic": self.delta_logic,
            "delta_temporal": self.delta_temporal,
            "divergence": self.divergence,
            "verdict": self.verdict.value,
            "reason_codes": list(self.reason_codes),
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class IntegrityRecord:
    """
    Trust state for one (voter_id, scope) key.

    integrity: exponentially weighted trust in [0, 1].
    interaction_count: number of divergence samples folded in.
    avg_divergence: arithmetic mean of every sample seen.
    updated_at: Unix timestamp (seconds) of the latest sample; never decreases.
    version: optimistic-concurrency counter, 1 on first write.
    """

    voter_id: str
    scope: str
    integrity: float
    interaction_count: int
    avg_divergence: float
    updated_at: int
    version: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "voter_id": self.voter_id,
            "scope": self.scope,
            "integrity": self.integrity,
            "interaction_count": self.interaction_count,
            "avg_divergence": self.avg_divergence,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class ConsensusWindow:
    """Average divergence of one poll within one fixed-width time bucket."""

    bucket_start: int
    poll_id: str
    avg_divergence: float
    vote_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "bucket_start": self.bucket_start,
            "poll_id": self.poll_id,
            "avg_divergence": self.avg_divergence,
            "vote_count": self.vote_count,
        }


@dataclass(frozen=True)
class TimelinePoint:
    timestamp: int
    divergence: float
    cumulative_average: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "divergence": self.divergence,
            "cumulative_average": self.cumulative_average,
        }


@dataclass
class ConsensusSummary:
    """Per-poll consensus health computed from its scored vote events."""

    total_votes: int
    average_divergence: float
    verdict_distribution: dict[Verdict, int]
    timeline: list[TimelinePoint]
    consensus_strength: float
    unique_voters: int
    high_integrity_count: int
    suspicious_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_votes": self.total_votes,
            "average_divergence": self.average_divergence,
            "verdict_distribution": {v.value: n for v, n in self.verdict_distribution.items()},
            "timeline": [p.to_dict() for p in self.timeline],
            "consensus_strength": self.consensus_strength,
            "unique_voters": self.unique_voters,
            "high_integrity_count": self.high_integrity_count,
            "suspicious_count": self.suspicious_count,
        }


@dataclass
class EngineStats:
    """Engine-wide statistics across all polls."""

    total_votes: int
    average_divergence: float
    verdict_distribution: list[tuple[Verdict, int]] = field(default_factory=list)
    """(verdict, count), highest count first."""
    average_integrity: float = 0.0
    unique_voters: int = 0
    recent_activity: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_votes": self.total_votes,
            "average_divergence": self.average_divergence,
            "verdict_distribution": [
                {"verdict": v.value, "count": n} for v, n in self.verdict_distribution
            ],
            "average_integrity": self.average_integrity,
            "unique_voters": self.unique_voters,
            "recent_activity": self.recent_activity,
        }
