"""
Database engine and session management.

One pooled SQLAlchemy engine per process (DBT_DB_URL / DATABASE_URL for
PostgreSQL, else SQLite at DBT_DB_PATH). Sessions are short-lived: one per
store operation, committed on success and rolled back on error.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from backend_dbt.config.env import get_database_url
from backend_dbt.database.models import Base
from backend_dbt.dbt_logging import get_logger

logger = get_logger(__name__)

_engine: Engine | None = None
_SessionLocal: sessionmaker | None = None
_engine_lock = threading.Lock()


def _redact(url: str) -> str:
    return url.split("?")[0].split("//")[-1].split("@")[-1]


def create_db_engine(url: str | None = None) -> Engine:
    """Create a pooled engine for url (or the configured database URL)."""
    url = url or get_database_url()
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)
    logger.info("dbt_engine_created", url=_redact(url))
    return engine


def get_engine() -> Engine:
    """Create or return the cached process-wide engine."""
    global _engine
    with _engine_lock:
        if _engine is None:
            _engine = create_db_engine()
        return _engine


def get_session_factory(engine: Engine | None = None) -> sessionmaker:
    """Return a session factory bound to engine, or the cached one for the process engine."""
    global _SessionLocal
    if engine is not None:
        return sessionmaker(autocommit=False, autoflush=False, bind=engine)
    bound = get_engine()
    with _engine_lock:
        if _SessionLocal is None:
            _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=bound)
        return _SessionLocal


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """Context manager for a single session. Commits on success, rolls back on error."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine | None = None) -> None:
    """
    Create vote, metric, and integrity tables if they do not exist.
    Safe to call on every startup.
    """
    engine = engine or get_engine()
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("dbt_init_db", url=_redact(str(engine.url)))
    except Exception as e:
        logger.exception("dbt_init_db_failed", error=str(e))
        raise


def reset_engine_for_test() -> None:
    """Dispose and clear the cached engine and session factory. For tests only."""
    global _engine, _SessionLocal
    with _engine_lock:
        if _engine is not None:
            _engine.dispose()
        _engine = None
        _SessionLocal = None
