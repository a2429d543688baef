"""
Core utilities: domain exceptions and per-key locking.

Shared by the scoring engine, the stores, and the vote admission path.
"""

from backend_dbt.core.exceptions import (
    ConfigurationError,
    DbtError,
    DuplicateVoteError,
    IntegrityConflictError,
    IntegrityUpdateError,
    StoreConflictError,
    StoreError,
    VoteRejectedError,
)
from backend_dbt.core.locks import KeyedLocks

__all__ = [
    "ConfigurationError",
    "DbtError",
    "DuplicateVoteError",
    "IntegrityConflictError",
    "IntegrityUpdateError",
    "KeyedLocks",
    "StoreConflictError",
    "StoreError",
    "VoteRejectedError",
]
