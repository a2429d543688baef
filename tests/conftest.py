"""
Pytest fixtures for DBT tests. Uses a temporary SQLite DB for votes, metrics, and integrity.
"""

from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def clean_dbt_env(monkeypatch):
    """Unset DBT_* and database URLs so settings come from defaults unless a test sets them."""
    import os

    for name in list(os.environ):
        if name.startswith("DBT_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)

    from backend_dbt.config.settings import reset_settings_for_test

    reset_settings_for_test()
    yield
    reset_settings_for_test()

    from backend_dbt.database import reset_engine_for_test

    reset_engine_for_test()


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'dbt.db'}"


@pytest.fixture
def dbt_db(db_url):
    """
    Fresh engine + tables on a temp SQLite file. Yields (vote_store, integrity_store).
    Disposes the engine afterwards.
    """
    from backend_dbt.database import (
        SqlIntegrityStore,
        SqlVoteStore,
        create_db_engine,
        get_session_factory,
        init_db,
    )

    engine = create_db_engine(db_url)
    init_db(engine)
    factory = get_session_factory(engine)
    yield SqlVoteStore(factory), SqlIntegrityStore(factory)
    engine.dispose()


@pytest.fixture
def vote_store(dbt_db):
    return dbt_db[0]


@pytest.fixture
def integrity_store(dbt_db):
    return dbt_db[1]
