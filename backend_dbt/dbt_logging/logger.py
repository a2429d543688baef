"""
Structured JSON logging: timestamp, voter_id, poll_id, event_type, verdict.

structlog with ISO timestamps, log level, and consistent keys for aggregation.
All engine modules should use get_logger() and pass event_type (and voter_id /
poll_id / verdict where relevant).

Uses only Python stdlib logging and structlog; no backend_dbt imports to avoid circular imports.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)

# JSON output for production (LOG_FORMAT=json); human-readable for local
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Ensure timestamp is always present (ISO 8601)."""
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _normalize_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Rename structlog 'event' to event_type; keep message if present."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    if "message" not in event_dict and "event_type" in event_dict:
        event_dict["message"] = str(event_dict["event_type"])
    return event_dict


# Float score fields rendered at fixed precision
SCORE_FIELDS = ("divergence", "delta_temporal", "integrity", "avg_divergence")
SCORE_PRECISION = 4


def _round_scores(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Round float score fields; render Verdict members by value."""
    for key in SCORE_FIELDS:
        value = event_dict.get(key)
        if isinstance(value, float):
            event_dict[key] = round(value, SCORE_PRECISION)
    verdict = event_dict.get("verdict")
    if verdict is not None and hasattr(verdict, "value"):
        event_dict["verdict"] = verdict.value
    return event_dict


def configure_structlog() -> None:
    """Configure structlog once at import: JSON, timestamp, level, event_type."""
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
        _normalize_event,
        _round_scores,
    ]
    if LOG_FORMAT == "json":
        shared_processors.append(structlog.processors.JSONRenderer())
    else:
        shared_processors.append(
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
        )
    structlog.configure(
        processors=shared_processors,
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL_VALUE),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger for the given module name.

    Log with event_type (first arg) and optional voter_id, poll_id, verdict, etc.:
        logger = get_logger(__name__)
        logger.info("vote_scored", voter_id=voter, verdict="VALID", divergence=0.12)
    Output (JSON): {"event_type": "vote_scored", "voter_id": "...", "verdict": "VALID",
    "divergence": 0.12, "timestamp": "...", "level": "info", "logger": "module.name"}
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_voter(voter_id: str) -> structlog.BoundLogger:
    """Return a logger with voter_id bound to all subsequent log calls."""
    return get_logger("backend_dbt").bind(voter_id=voter_id)


def bind_vote(voter_id: str, poll_id: str, scope: str | None = None) -> structlog.BoundLogger:
    """Return a logger bound to one vote: voter_id, poll_id and, when known, the integrity scope."""
    log = bind_voter(voter_id).bind(poll_id=poll_id)
    return log.bind(scope=scope) if scope is not None else log
