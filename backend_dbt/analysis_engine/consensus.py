"""
Consensus aggregation over scored vote events.

Pure functions: per-poll summary (distribution, cumulative timeline, consensus
strength), fixed-width time windows across polls, ordinal divergence points,
and engine-wide statistics. Inputs are any objects exposing divergence,
verdict, voter_id, created_at (and poll_id for windows), e.g. VoteMetric.
"""

from __future__ import annotations

import statistics
from collections import Counter, defaultdict
from typing import Any, Iterable, Protocol, Sequence

from backend_dbt.analysis_engine.models import (
    ConsensusSummary,
    ConsensusWindow,
    EngineStats,
    IntegrityRecord,
    TimelinePoint,
    Verdict,
)

# Divergence below this counts a vote as high-integrity
HIGH_INTEGRITY_DIVERGENCE = 0.3
SUSPICIOUS_VERDICTS = (Verdict.SUSPICIOUS, Verdict.REJECT)

WINDOW_SEC = 60
WINDOW_LOOKBACK_SEC = 24 * 3600
WINDOW_LIMIT = 50
RECENT_ACTIVITY_SEC = 24 * 3600


class ScoredEvent(Protocol):
    voter_id: str
    divergence: float
    verdict: Any
    created_at: int


def _chronological(events: Iterable[ScoredEvent]) -> list[ScoredEvent]:
    return sorted(events, key=lambda e: e.created_at)


def summarize_poll(events: Iterable[ScoredEvent]) -> ConsensusSummary:
    """
    Summarize one poll's scored events.

    average_divergence is 0 and consensus_strength 1 when there are no events.
    timeline[i].cumulative_average is the mean divergence of events 0..i.
    """
    ordered = _chronological(events)
    total = len(ordered)

    timeline: list[TimelinePoint] = []
    running = 0.0
    for i, e in enumerate(ordered):
        running += e.divergence
        timeline.append(
            TimelinePoint(
                timestamp=e.created_at,
                divergence=e.divergence,
                cumulative_average=running / (i + 1),
            )
        )
    avg = running / total if total else 0.0

    distribution: dict[Verdict, int] = dict(Counter(Verdict(e.verdict) for e in ordered))

    return ConsensusSummary(
        total_votes=total,
        average_divergence=avg,
        verdict_distribution=distribution,
        timeline=timeline,
        consensus_strength=max(0.0, 1.0 - avg),
        unique_voters=len({e.voter_id for e in ordered}),
        high_integrity_count=sum(1 for e in ordered if e.divergence < HIGH_INTEGRITY_DIVERGENCE),
        suspicious_count=sum(1 for e in ordered if Verdict(e.verdict) in SUSPICIOUS_VERDICTS),
    )


def consensus_windows(
    events: Iterable[Any],
    now_ts: int,
    *,
    window_sec: int = WINDOW_SEC,
    lookback_sec: int = WINDOW_LOOKBACK_SEC,
    limit: int = WINDOW_LIMIT,
) -> list[ConsensusWindow]:
    """
    Bucket events into fixed-width windows per poll, most recent first.

    Only events with created_at > now_ts - lookback_sec are counted; at most
    limit windows are returned. Same-bucket windows are ordered by poll_id.
    """
    if window_sec <= 0 or lookback_sec <= 0 or limit <= 0:
        raise ValueError(
            f"window_sec, lookback_sec and limit must be > 0, got {window_sec}, {lookback_sec}, {limit}"
        )
    since = now_ts - lookback_sec
    buckets: dict[tuple[int, str], list[float]] = defaultdict(list)
    for e in events:
        if e.created_at <= since:
            continue
        start = e.created_at - (e.created_at % window_sec)
        buckets[(start, e.poll_id)].append(e.divergence)

    keys = sorted(buckets, key=lambda k: (-k[0], k[1]))[:limit]
    return [
        ConsensusWindow(
            bucket_start=start,
            poll_id=poll_id,
            avg_divergence=statistics.fmean(buckets[(start, poll_id)]),
            vote_count=len(buckets[(start, poll_id)]),
        )
        for start, poll_id in keys
    ]


def divergence_points(events: Iterable[ScoredEvent]) -> dict[str, Any]:
    """Ordinal divergence series for one poll: {points: [{t, div, ts}], avg, count}."""
    ordered = _chronological(events)
    points = [{"t": i + 1, "div": e.divergence, "ts": e.created_at} for i, e in enumerate(ordered)]
    avg = statistics.fmean(e.divergence for e in ordered) if ordered else 0.0
    return {"points": points, "avg": avg, "count": len(ordered)}


def rank_integrity(records: Iterable[IntegrityRecord]) -> list[IntegrityRecord]:
    """Highest integrity first; ties broken by more interactions."""
    return sorted(records, key=lambda r: (-r.integrity, -r.interaction_count))


def engine_stats(
    metrics: Sequence[ScoredEvent],
    integrity_records: Sequence[IntegrityRecord],
    now_ts: int,
    *,
    recent_sec: int = RECENT_ACTIVITY_SEC,
) -> EngineStats:
    """Engine-wide totals: votes, mean divergence, verdict counts, mean integrity, voters, recent activity."""
    counts = Counter(Verdict(m.verdict) for m in metrics)
    distribution = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0].rank))
    return EngineStats(
        total_votes=len(metrics),
        average_divergence=statistics.fmean(m.divergence for m in metrics) if metrics else 0.0,
        verdict_distribution=distribution,
        average_integrity=(
            statistics.fmean(r.integrity for r in integrity_records) if integrity_records else 0.0
        ),
        unique_voters=len({r.voter_id for r in integrity_records}),
        recent_activity=sum(1 for m in metrics if m.created_at > now_ts - recent_sec),
    )
