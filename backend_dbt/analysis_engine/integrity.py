"""
Integrity: per-(voter, scope) exponentially weighted trust.

First sample seeds integrity at 1 - divergence. Each later sample folds in as
    ew = alpha * divergence + (1 - alpha) * (1 - previous_integrity)
    integrity = clamp(1 - ew, 0, 1)
so a burst of divergent votes pulls trust toward 0 and a run of clean votes
pulls it back toward 1, never moving more than alpha per step.

IntegrityTracker wraps the pure update in an atomic read-modify-write: one
in-flight update per key in this process (KeyedLocks), and a compare-and-swap
on the record version against writers in other processes.
"""

from __future__ import annotations

import math
import time
from typing import TYPE_CHECKING

from backend_dbt.analysis_engine.models import IntegrityRecord
from backend_dbt.core.exceptions import (
    ConfigurationError,
    IntegrityConflictError,
    StoreConflictError,
)
from backend_dbt.core.locks import KeyedLocks
from backend_dbt.dbt_logging import get_logger

if TYPE_CHECKING:
    from backend_dbt.database.stores import IntegrityStore

logger = get_logger(__name__)

DEFAULT_ALPHA = 0.2
DEFAULT_MAX_RETRIES = 3
GLOBAL_SCOPE = "global"


def poll_scope(poll_id: str) -> str:
    return f"poll:{poll_id}"


def validate_alpha(alpha: float) -> float:
    """Return alpha as float; raise ConfigurationError unless 0 < alpha <= 1."""
    try:
        a = float(alpha)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"alpha must be a number, got {alpha!r}") from e
    if not math.isfinite(a) or not 0 < a <= 1:
        raise ConfigurationError(f"alpha must be in (0, 1], got {alpha!r}")
    return a


def _clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))


def update_integrity(
    previous_integrity: float | None,
    new_divergence: float,
    alpha: float = DEFAULT_ALPHA,
) -> float:
    """Return the next integrity in [0, 1] given the previous one (None on first interaction)."""
    alpha = validate_alpha(alpha)
    if not math.isfinite(new_divergence):
        raise ValueError(f"divergence must be finite, got {new_divergence!r}")
    if previous_integrity is None:
        ew = new_divergence
    else:
        ew = alpha * new_divergence + (1 - alpha) * (1 - previous_integrity)
    return _clamp01(1 - ew)


def advance_record(
    record: IntegrityRecord | None,
    voter_id: str,
    scope: str,
    new_divergence: float,
    alpha: float = DEFAULT_ALPHA,
    now_ts: int | None = None,
) -> IntegrityRecord:
    """
    Return the record that results from folding one divergence sample into record.

    interaction_count grows by one, avg_divergence is the running mean of all
    samples, updated_at never moves backwards, version grows by one.
    """
    now_ts = now_ts if now_ts is not None else int(time.time())
    if record is None:
        return IntegrityRecord(
            voter_id=voter_id,
            scope=scope,
            integrity=update_integrity(None, new_divergence, alpha),
            interaction_count=1,
            avg_divergence=new_divergence,
            updated_at=now_ts,
            version=1,
        )
    count = record.interaction_count + 1
    return IntegrityRecord(
        voter_id=voter_id,
        scope=scope,
        integrity=update_integrity(record.integrity, new_divergence, alpha),
        interaction_count=count,
        avg_divergence=(record.avg_divergence * record.interaction_count + new_divergence) / count,
        updated_at=max(record.updated_at, now_ts),
        version=record.version + 1,
    )


class IntegrityTracker:
    """Stateful integrity updates against an IntegrityStore."""

    def __init__(
        self,
        store: IntegrityStore,
        alpha: float = DEFAULT_ALPHA,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        locks: KeyedLocks | None = None,
    ) -> None:
        if max_retries < 1:
            raise ConfigurationError(f"max_retries must be >= 1, got {max_retries}")
        self._store = store
        self.alpha = validate_alpha(alpha)
        self.max_retries = max_retries
        self._locks = locks or KeyedLocks()

    def get(self, voter_id: str, scope: str) -> IntegrityRecord | None:
        return self._store.get(voter_id, scope)

    def record(
        self,
        voter_id: str,
        scope: str,
        divergence: float,
        now_ts: int | None = None,
    ) -> IntegrityRecord:
        """
        Fold one divergence sample into (voter_id, scope) and persist it.

        Re-reads and recomputes on every conflicting write; raises
        IntegrityConflictError once max_retries attempts have lost. A lost
        attempt writes nothing.
        """
        now_ts = now_ts if now_ts is not None else int(time.time())
        with self._locks.hold((voter_id, scope)):
            for attempt in range(1, self.max_retries + 1):
                current = self._store.get(voter_id, scope)
                updated = advance_record(current, voter_id, scope, divergence, self.alpha, now_ts)
                try:
                    self._store.upsert(
                        updated,
                        expected_version=current.version if current is not None else None,
                    )
                except StoreConflictError as e:
                    logger.warning(
                        "integrity_conflict_retry",
                        voter_id=voter_id,
                        scope=scope,
                        attempt=attempt,
                        error=str(e),
                    )
                    continue
                logger.info(
                    "integrity_updated",
                    voter_id=voter_id,
                    scope=scope,
                    integrity=updated.integrity,
                    interaction_count=updated.interaction_count,
                    avg_divergence=updated.avg_divergence,
                )
                return updated
        logger.error("integrity_conflict_abandoned", voter_id=voter_id, scope=scope, attempts=self.max_retries)
        raise IntegrityConflictError(voter_id, scope, self.max_retries)
