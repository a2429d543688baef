# Dual-baseline scoring: logic/temporal deltas, divergence, verdict, integrity, consensus.
# Deterministic and explainable; no ML.

from backend_dbt.analysis_engine.baselines import (
    DEFAULT_TRANSITIONS,
    TransitionPolicy,
    delta_logic,
    delta_temporal,
)
from backend_dbt.analysis_engine.consensus import (
    consensus_windows,
    divergence_points,
    engine_stats,
    rank_integrity,
    summarize_poll,
)
from backend_dbt.analysis_engine.embeddings import (
    DEFAULT_EMBEDDINGS,
    EmbeddingTable,
    load_embeddings,
)
from backend_dbt.analysis_engine.integrity import (
    GLOBAL_SCOPE,
    IntegrityTracker,
    advance_record,
    poll_scope,
    update_integrity,
)
from backend_dbt.analysis_engine.models import (
    ConsensusSummary,
    ConsensusWindow,
    IntegrityRecord,
    ScoreResult,
    Verdict,
    VoteEvent,
    VoteMetric,
    VoteOption,
)
from backend_dbt.analysis_engine.scorer import (
    ScoringConfig,
    VerdictThresholds,
    divergence,
    score_vote,
    verdict_from,
)

__all__ = [
    "DEFAULT_EMBEDDINGS",
    "DEFAULT_TRANSITIONS",
    "GLOBAL_SCOPE",
    "ConsensusSummary",
    "ConsensusWindow",
    "EmbeddingTable",
    "IntegrityRecord",
    "IntegrityTracker",
    "ScoreResult",
    "ScoringConfig",
    "TransitionPolicy",
    "Verdict",
    "VerdictThresholds",
    "VoteEvent",
    "VoteMetric",
    "VoteOption",
    "advance_record",
    "consensus_windows",
    "delta_logic",
    "delta_temporal",
    "divergence",
    "divergence_points",
    "engine_stats",
    "load_embeddings",
    "poll_scope",
    "rank_integrity",
    "score_vote",
    "summarize_poll",
    "update_integrity",
    "verdict_from",
]
