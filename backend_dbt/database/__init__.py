"""
Persistence for votes, scored vote metrics, and integrity records.

Store interfaces live in stores; the SQLAlchemy implementation (SQLite by
default, PostgreSQL via DBT_DB_URL) lives in sql_store.
"""

from backend_dbt.database.engine import (
    create_db_engine,
    get_engine,
    get_session_factory,
    init_db,
    reset_engine_for_test,
)
from backend_dbt.database.sql_store import SqlIntegrityStore, SqlVoteStore
from backend_dbt.database.stores import IntegrityStore, VoteStore

__all__ = [
    "IntegrityStore",
    "SqlIntegrityStore",
    "SqlVoteStore",
    "VoteStore",
    "create_db_engine",
    "get_engine",
    "get_session_factory",
    "init_db",
    "reset_engine_for_test",
]
