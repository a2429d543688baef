"""
Application-level exceptions.

Every error carries a stable ``code`` so callers (HTTP layer, CLI, workers) can
map it to their own user-visible behavior. Nothing here formats messages for
end users.
"""

from __future__ import annotations

from typing import Any


class DbtError(Exception):
    """Base class for all engine errors."""

    code = "DBT_ERROR"


class ConfigurationError(DbtError, ValueError):
    """Missing or invalid weights, thresholds, caps, or tables. Fatal at startup."""

    code = "CONFIGURATION_ERROR"


class StoreError(DbtError):
    """Vote store or integrity store unavailable or failed."""

    code = "STORE_ERROR"


class StoreConflictError(StoreError):
    """A conditional write lost against a concurrent writer or a uniqueness constraint."""

    code = "STORE_CONFLICT"


class DuplicateVoteError(StoreConflictError):
    """The voter already has a recorded vote in this poll."""

    code = "DUPLICATE_VOTE"

    def __init__(self, voter_id: str, poll_id: str) -> None:
        super().__init__(f"vote already recorded for voter={voter_id} poll={poll_id}")
        self.voter_id = voter_id
        self.poll_id = poll_id


class IntegrityConflictError(StoreConflictError):
    """Integrity read-modify-write kept conflicting and was abandoned; nothing was written."""

    code = "INTEGRITY_CONFLICT"

    def __init__(self, voter_id: str, scope: str, attempts: int) -> None:
        super().__init__(f"integrity update abandoned for voter={voter_id} scope={scope} after {attempts} attempts")
        self.voter_id = voter_id
        self.scope = scope
        self.attempts = attempts


class IntegrityUpdateError(StoreError):
    """The vote was recorded but the integrity update for it failed."""

    code = "INTEGRITY_UPDATE_FAILED"

    def __init__(self, vote_id: str, scope: str) -> None:
        super().__init__(f"integrity update failed for vote_id={vote_id} scope={scope}")
        self.vote_id = vote_id
        self.scope = scope


class VoteRejectedError(DbtError):
    """Enforcement is on and the vote scored REJECT; it was not persisted."""

    code = "VOTE_REJECTED"

    def __init__(self, score: Any) -> None:
        super().__init__(f"vote rejected: verdict={score.verdict.value} divergence={score.divergence:.4f}")
        self.score = score
