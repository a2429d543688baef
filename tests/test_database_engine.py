"""
Pytest tests for the process-wide engine and session factory resolved from the environment.
"""

from __future__ import annotations

from backend_dbt.analysis_engine.integrity import advance_record
from backend_dbt.analysis_engine.models import VoteEvent
from backend_dbt.analysis_engine.scorer import score_vote


def test_default_engine_uses_db_path(tmp_path, monkeypatch):
    """Stores built without a factory share the cached engine at DBT_DB_PATH."""
    monkeypatch.setenv("DBT_DB_PATH", str(tmp_path / "default.db"))

    import backend_dbt.database.engine as db_engine
    from backend_dbt.database import (
        SqlIntegrityStore,
        SqlVoteStore,
        get_engine,
        get_session_factory,
        init_db,
        reset_engine_for_test,
    )

    reset_engine_for_test()
    try:
        init_db()
        assert get_engine() is get_engine()
        assert get_session_factory() is get_session_factory()
        assert str(get_engine().url).endswith("default.db")
        assert (tmp_path / "default.db").exists()

        votes = SqlVoteStore()
        integrity = SqlIntegrityStore()
        event = VoteEvent(
            voter_id="v1",
            poll_id="p1",
            option_id="o1",
            option_label="support",
            previous_option_label=None,
            created_at=1000,
        )
        vote_id = votes.append_vote_event(event, score_vote(None, "support"))
        assert votes.list_poll_metrics("p1")[0].vote_id == str(vote_id)

        integrity.upsert(advance_record(None, "v1", "global", 0.2, now_ts=1000), expected_version=None)
        assert integrity.get("v1", "global").integrity == 0.8
    finally:
        reset_engine_for_test()

    assert db_engine._engine is None
    assert db_engine._SessionLocal is None


def test_database_url_takes_precedence(tmp_path, monkeypatch):
    from backend_dbt.config.env import get_database_url

    monkeypatch.setenv("DBT_DB_PATH", str(tmp_path / "ignored.db"))
    monkeypatch.setenv("DATABASE_URL", "sqlite:///from_database_url.db")
    assert get_database_url() == "sqlite:///from_database_url.db"
    monkeypatch.setenv("DBT_DB_URL", "sqlite:///from_dbt_url.db")
    assert get_database_url() == "sqlite:///from_dbt_url.db"
