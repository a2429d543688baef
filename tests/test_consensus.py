"""
Pytest tests for consensus aggregation: poll summary, time windows, divergence points, engine stats.
"""

from __future__ import annotations

import itertools

import pytest

from backend_dbt.analysis_engine.consensus import (
    consensus_windows,
    divergence_points,
    engine_stats,
    rank_integrity,
    summarize_poll,
)
from backend_dbt.analysis_engine.models import IntegrityRecord, Verdict, VoteMetric

NOW = 1_700_000_000
_ids = itertools.count(1)


def _metric(voter, divergence, verdict, created_at, poll_id="p1"):
    metric_id = next(_ids)
    return VoteMetric(
        id=metric_id,
        vote_id=str(metric_id),
        poll_id=poll_id,
        voter_id=voter,
        option_id="o1",
        option_label="support",
        previous_option_label=None,
        delta_logic=1 if verdict == Verdict.REJECT else 0,
        delta_temporal=divergence,
        divergence=divergence,
        verdict=verdict,
        created_at=created_at,
    )


def _record(voter, integrity, count, scope="global"):
    return IntegrityRecord(
        voter_id=voter,
        scope=scope,
        integrity=integrity,
        interaction_count=count,
        avg_divergence=1 - integrity,
        updated_at=NOW,
    )


# --- summarize_poll ---


def test_summary_empty():
    s = summarize_poll([])
    assert s.total_votes == 0
    assert s.average_divergence == 0
    assert s.consensus_strength == 1
    assert s.timeline == []
    assert s.verdict_distribution == {}
    assert s.unique_voters == 0


def test_summary_timeline_is_chronological_and_cumulative():
    events = [
        _metric("v2", 0.5, Verdict.CAUTION, NOW + 20),
        _metric("v1", 0.1, Verdict.VALID, NOW),
        _metric("v3", 0.9, Verdict.REJECT, NOW + 40),
        _metric("v1", 0.3, Verdict.VALID, NOW + 10, poll_id="p1"),
    ]
    s = summarize_poll(events)
    assert s.total_votes == 4
    assert [p.timestamp for p in s.timeline] == [NOW, NOW + 10, NOW + 20, NOW + 40]
    assert [p.cumulative_average for p in s.timeline] == pytest.approx([0.1, 0.2, 0.3, 0.45])
    assert s.average_divergence == pytest.approx(0.45)
    assert s.consensus_strength == pytest.approx(0.55)
    assert s.unique_voters == 3
    assert s.high_integrity_count == 1
    assert s.suspicious_count == 1
    assert s.verdict_distribution == {Verdict.VALID: 2, Verdict.CAUTION: 1, Verdict.REJECT: 1}


def test_summary_to_dict_uses_verdict_names():
    d = summarize_poll([_metric("v1", 0.7, Verdict.SUSPICIOUS, NOW)]).to_dict()
    assert d["verdict_distribution"] == {"SUSPICIOUS": 1}
    assert d["suspicious_count"] == 1
    assert d["timeline"][0]["cumulative_average"] == pytest.approx(0.7)


# --- consensus_windows ---


def test_windows_bucket_by_minute_and_poll():
    events = [
        _metric("v1", 0.2, Verdict.VALID, NOW - NOW % 60 + 5, poll_id="p1"),
        _metric("v2", 0.4, Verdict.VALID, NOW - NOW % 60 + 50, poll_id="p1"),
        _metric("v3", 0.6, Verdict.CAUTION, NOW - NOW % 60 + 30, poll_id="p2"),
        _metric("v4", 0.8, Verdict.SUSPICIOUS, NOW - NOW % 60 - 30, poll_id="p1"),
    ]
    windows = consensus_windows(events, NOW + 60)
    assert [(w.bucket_start, w.poll_id, w.vote_count) for w in windows] == [
        (NOW - NOW % 60, "p1", 2),
        (NOW - NOW % 60, "p2", 1),
        (NOW - NOW % 60 - 60, "p1", 1),
    ]
    assert windows[0].avg_divergence == pytest.approx(0.3)


def test_windows_lookback_and_limit():
    events = [_metric("v", 0.1, Verdict.VALID, NOW - i * 60) for i in range(10)]
    old = _metric("v", 0.9, Verdict.SUSPICIOUS, NOW - 24 * 3600)
    windows = consensus_windows(events + [old], NOW)
    assert len(windows) == 10
    assert all(w.avg_divergence == pytest.approx(0.1) for w in windows)

    limited = consensus_windows(events, NOW, limit=3)
    assert [w.bucket_start for w in limited] == sorted((w.bucket_start for w in limited), reverse=True)
    assert len(limited) == 3
    assert limited[0].bucket_start == NOW - NOW % 60


def test_windows_invalid_parameters():
    with pytest.raises(ValueError):
        consensus_windows([], NOW, window_sec=0)
    with pytest.raises(ValueError):
        consensus_windows([], NOW, limit=0)


# --- divergence_points / rank_integrity / engine_stats ---


def test_divergence_points():
    out = divergence_points(
        [_metric("v1", 0.4, Verdict.VALID, NOW + 5), _metric("v2", 0.2, Verdict.VALID, NOW)]
    )
    assert out["count"] == 2
    assert out["avg"] == pytest.approx(0.3)
    assert out["points"] == [{"t": 1, "div": 0.2, "ts": NOW}, {"t": 2, "div": 0.4, "ts": NOW + 5}]
    assert divergence_points([]) == {"points": [], "avg": 0.0, "count": 0}


def test_rank_integrity():
    ranked = rank_integrity([_record("a", 0.5, 3), _record("b", 0.9, 1), _record("c", 0.5, 7)])
    assert [r.voter_id for r in ranked] == ["b", "c", "a"]


def test_engine_stats():
    metrics = [
        _metric("v1", 0.1, Verdict.VALID, NOW - 10),
        _metric("v2", 0.2, Verdict.VALID, NOW - 20),
        _metric("v3", 0.9, Verdict.REJECT, NOW - 2 * 24 * 3600),
        _metric("v4", 0.5, Verdict.CAUTION, NOW - 30),
    ]
    records = [_record("v1", 0.9, 1), _record("v2", 0.7, 1), _record("v1", 0.5, 2, scope="poll:p2")]
    stats = engine_stats(metrics, records, NOW)
    assert stats.total_votes == 4
    assert stats.average_divergence == pytest.approx(0.425)
    assert stats.verdict_distribution == [(Verdict.VALID, 2), (Verdict.CAUTION, 1), (Verdict.REJECT, 1)]
    assert stats.average_integrity == pytest.approx(0.7)
    assert stats.unique_voters == 2
    assert stats.recent_activity == 3
    d = stats.to_dict()
    assert d["verdict_distribution"][0] == {"verdict": "VALID", "count": 2}


def test_engine_stats_empty():
    stats = engine_stats([], [], NOW)
    assert stats.total_votes == 0
    assert stats.average_divergence == 0.0
    assert stats.average_integrity == 0.0
    assert stats.verdict_distribution == []
