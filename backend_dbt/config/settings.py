"""
Application settings for the DBT engine.

Responsibilities:
- Load engine configuration from environment variables and .env.
- Validate weights, thresholds, cap, and alpha once at startup; invalid values
  raise ConfigurationError and are never clamped.
- Build the ScoringConfig passed into the pure scoring functions.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from backend_dbt.analysis_engine.baselines import DEFAULT_TRANSITIONS, validate_temporal_cap
from backend_dbt.analysis_engine.embeddings import load_embeddings
from backend_dbt.analysis_engine.integrity import GLOBAL_SCOPE, poll_scope, validate_alpha
from backend_dbt.analysis_engine.scorer import ScoringConfig, VerdictThresholds
from backend_dbt.config.env import env_bool, env_float, env_str, load_dbt_env
from backend_dbt.core.exceptions import ConfigurationError
from backend_dbt.dbt_logging import get_logger

logger = get_logger(__name__)

SCOPE_POLL = "poll"
SCOPE_GLOBAL = "global"
VALID_SCOPES = (SCOPE_POLL, SCOPE_GLOBAL)


@dataclass(frozen=True)
class DbtSettings:
    """
    Engine configuration.

    enabled: when False, vote admission bypasses scoring entirely.
    enforce_reject: when True, a REJECT verdict blocks the vote before it is persisted.
    integrity_scope: "poll" tracks integrity per poll, "global" across all polls.
    """

    enabled: bool = False
    enforce_reject: bool = False
    temporal_cap: float = 2.0
    weight_logic: float = 0.6
    weight_temporal: float = 0.4
    reject_threshold: float = 0.85
    suspicious_threshold: float = 0.65
    caution_threshold: float = 0.45
    integrity_alpha: float = 0.2
    integrity_scope: str = SCOPE_POLL
    embeddings_path: str | None = None

    def __post_init__(self) -> None:
        validate_temporal_cap(self.temporal_cap)
        validate_alpha(self.integrity_alpha)
        if self.integrity_scope not in VALID_SCOPES:
            raise ConfigurationError(
                f"integrity_scope must be one of {VALID_SCOPES}, got {self.integrity_scope!r}"
            )
        # Weight and threshold checks live with the scoring types
        self.thresholds()
        ScoringConfig(
            temporal_cap=self.temporal_cap,
            weight_logic=self.weight_logic,
            weight_temporal=self.weight_temporal,
        )

    def thresholds(self) -> VerdictThresholds:
        return VerdictThresholds(
            caution=self.caution_threshold,
            suspicious=self.suspicious_threshold,
            reject=self.reject_threshold,
        )

    def scoring_config(self) -> ScoringConfig:
        """Build the scoring config, loading the embedding table once."""
        return ScoringConfig(
            temporal_cap=self.temporal_cap,
            weight_logic=self.weight_logic,
            weight_temporal=self.weight_temporal,
            thresholds=self.thresholds(),
            embeddings=load_embeddings(self.embeddings_path),
            transitions=DEFAULT_TRANSITIONS,
        )

    def scope_for(self, poll_id: str) -> str:
        return poll_scope(poll_id) if self.integrity_scope == SCOPE_POLL else GLOBAL_SCOPE


def load_settings() -> DbtSettings:
    """Read DbtSettings from the environment. Raises ConfigurationError on invalid values."""
    load_dbt_env()
    settings = DbtSettings(
        enabled=env_bool("DBT_ENABLED", False),
        enforce_reject=env_bool("DBT_VERDICT_ENFORCE", False),
        temporal_cap=env_float("DBT_CAP_TEMPORAL", 2.0),
        weight_logic=env_float("DBT_WL", 0.6),
        weight_temporal=env_float("DBT_WT", 0.4),
        reject_threshold=env_float("DBT_REJECT_THRESHOLD", 0.85),
        suspicious_threshold=env_float("DBT_SUSPICIOUS_THRESHOLD", 0.65),
        caution_threshold=env_float("DBT_CAUTION_THRESHOLD", 0.45),
        integrity_alpha=env_float("DBT_INTEGRITY_ALPHA", 0.2),
        integrity_scope=(env_str("DBT_INTEGRITY_SCOPE", SCOPE_POLL) or SCOPE_POLL).lower(),
        embeddings_path=env_str("DBT_EMBEDDINGS_PATH"),
    )
    logger.info(
        "dbt_settings_loaded",
        enabled=settings.enabled,
        enforce_reject=settings.enforce_reject,
        temporal_cap=settings.temporal_cap,
        weight_logic=settings.weight_logic,
        weight_temporal=settings.weight_temporal,
        reject_threshold=settings.reject_threshold,
        integrity_scope=settings.integrity_scope,
    )
    return settings


_settings: DbtSettings | None = None
_settings_lock = threading.Lock()


def get_settings() -> DbtSettings:
    """Return the process-wide settings, loading them on first call."""
    global _settings
    with _settings_lock:
        if _settings is None:
            _settings = load_settings()
        return _settings


def reset_settings_for_test() -> None:
    """Drop cached settings so the next get_settings() re-reads the environment. For tests only."""
    global _settings
    with _settings_lock:
        _settings = None
