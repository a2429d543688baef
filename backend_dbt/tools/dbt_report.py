#!/usr/bin/env python3
"""
DBT report: read-only JSON views over scored votes and integrity records.

Commands:
  poll <poll_id>   consensus summary + ordinal divergence points for one poll
  windows          one-minute consensus windows across polls (last 24h, newest first)
  integrity        integrity records, highest first
  stats            engine-wide totals
  metrics          most recent scored votes

Usage:
  py -m backend_dbt.tools.dbt_report poll <poll_id>
  py -m backend_dbt.tools.dbt_report windows --limit 20
"""

from __future__ import annotations

import argparse
import json
import sys
import time
from typing import Any, Sequence

from backend_dbt.analysis_engine.consensus import (
    RECENT_ACTIVITY_SEC,
    WINDOW_LIMIT,
    WINDOW_LOOKBACK_SEC,
    WINDOW_SEC,
    consensus_windows,
    divergence_points,
    engine_stats,
    rank_integrity,
    summarize_poll,
)
from backend_dbt.core.exceptions import DbtError
from backend_dbt.database import (
    SqlIntegrityStore,
    SqlVoteStore,
    create_db_engine,
    get_session_factory,
    init_db,
)
from backend_dbt.dbt_logging import get_logger

logger = get_logger(__name__)


def poll_report(votes: SqlVoteStore, poll_id: str) -> dict[str, Any]:
    metrics = votes.list_poll_metrics(poll_id)
    return {
        "poll_id": poll_id,
        "consensus": summarize_poll(metrics).to_dict(),
        "summary": divergence_points(metrics),
    }


def windows_report(
    votes: SqlVoteStore,
    now_ts: int,
    *,
    window_sec: int = WINDOW_SEC,
    lookback_sec: int = WINDOW_LOOKBACK_SEC,
    limit: int = WINDOW_LIMIT,
) -> list[dict[str, Any]]:
    metrics = votes.list_metrics_since(now_ts - lookback_sec)
    windows = consensus_windows(
        metrics, now_ts, window_sec=window_sec, lookback_sec=lookback_sec, limit=limit
    )
    return [w.to_dict() for w in windows]


def integrity_report(integrity: SqlIntegrityStore) -> list[dict[str, Any]]:
    return [r.to_dict() for r in rank_integrity(integrity.list_records())]


def stats_report(votes: SqlVoteStore, integrity: SqlIntegrityStore, now_ts: int) -> dict[str, Any]:
    metrics = votes.list_metrics_since(None)
    return engine_stats(metrics, integrity.list_records(), now_ts, recent_sec=RECENT_ACTIVITY_SEC).to_dict()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dbt_report", description="Read-only DBT consensus and integrity reports.")
    parser.add_argument("--db-url", default=None, help="SQLAlchemy URL (default: DBT_DB_URL / DATABASE_URL / sqlite DBT_DB_PATH)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_poll = sub.add_parser("poll", help="Consensus summary for one poll")
    p_poll.add_argument("poll_id")

    p_win = sub.add_parser("windows", help="Time-windowed consensus across polls")
    p_win.add_argument("--window-sec", type=int, default=WINDOW_SEC)
    p_win.add_argument("--lookback-sec", type=int, default=WINDOW_LOOKBACK_SEC)
    p_win.add_argument("--limit", type=int, default=WINDOW_LIMIT)

    sub.add_parser("integrity", help="Integrity records, highest first")
    sub.add_parser("stats", help="Engine-wide totals")

    p_metrics = sub.add_parser("metrics", help="Most recent scored votes")
    p_metrics.add_argument("--limit", type=int, default=100)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    engine = create_db_engine(args.db_url)
    init_db(engine)
    factory = get_session_factory(engine)
    votes = SqlVoteStore(factory)
    integrity = SqlIntegrityStore(factory)
    now_ts = int(time.time())

    try:
        if args.command == "poll":
            out: Any = poll_report(votes, args.poll_id)
        elif args.command == "windows":
            out = windows_report(
                votes,
                now_ts,
                window_sec=args.window_sec,
                lookback_sec=args.lookback_sec,
                limit=args.limit,
            )
        elif args.command == "integrity":
            out = integrity_report(integrity)
        elif args.command == "stats":
            out = stats_report(votes, integrity, now_ts)
        else:
            out = [m.to_dict() for m in votes.list_recent_metrics(limit=args.limit)]
    except (DbtError, ValueError) as e:
        logger.error("dbt_report_failed", command=args.command, error=str(e))
        print(f"[dbt_report] ERROR: {e}", file=sys.stderr)
        return 1
    finally:
        engine.dispose()

    print(json.dumps(out, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
