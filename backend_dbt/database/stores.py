"""
Store interfaces consumed by the scoring engine and vote admission.

Backends implement these against SQL (see sql_store) or anything else that can
honor the contracts: duplicate votes rejected by the vote store, and integrity
writes applied only when the caller's expected version still matches.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from backend_dbt.analysis_engine.models import (
    IntegrityRecord,
    PreviousVote,
    ScoreResult,
    VoteEvent,
    VoteMetric,
)


class VoteStore(ABC):
    """Append-only votes and their scored metrics."""

    @abstractmethod
    def find_previous_vote(self, voter_id: str, poll_id: str) -> PreviousVote | None:
        """Return the voter's most recent vote in this poll, or None."""
        ...

    @abstractmethod
    def append_vote_event(self, event: VoteEvent, score: ScoreResult | None = None) -> int:
        """
        Persist the vote and, when scored, its metric in one transaction. Returns vote id.
        Raises DuplicateVoteError if (voter_id, poll_id) already has a vote.
        """
        ...

    @abstractmethod
    def list_poll_metrics(self, poll_id: str) -> list[VoteMetric]:
        """Return a poll's metrics in chronological order."""
        ...

    @abstractmethod
    def list_recent_metrics(self, *, limit: int = 100) -> list[VoteMetric]:
        """Return the most recent metrics across polls, newest first."""
        ...

    @abstractmethod
    def list_metrics_since(self, since_ts: int | None = None) -> list[VoteMetric]:
        """Return metrics with created_at > since_ts (all when None), chronological."""
        ...


class IntegrityStore(ABC):
    """Keyed (voter_id, scope) -> IntegrityRecord with conditional writes."""

    @abstractmethod
    def get(self, voter_id: str, scope: str) -> IntegrityRecord | None:
        ...

    @abstractmethod
    def upsert(self, record: IntegrityRecord, expected_version: int | None) -> None:
        """
        Write record atomically.

        expected_version None: insert; the key must not exist yet.
        expected_version n: update only if the stored version is still n.
        Raises StoreConflictError when the condition fails; nothing is written.
        """
        ...

    @abstractmethod
    def list_records(self) -> list[IntegrityRecord]:
        """All records, highest integrity first, then most interactions."""
        ...
