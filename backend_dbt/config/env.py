"""
Environment variable loading and parsing for the DBT engine.

- Loads .env from project root when available.
- Typed readers (bool / float / str) that raise ConfigurationError on
  unparseable values instead of silently falling back.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from backend_dbt.core.exceptions import ConfigurationError

# Project root: config is backend_dbt/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off", "")


def load_dbt_env() -> None:
    """Load .env from project root without overriding variables already set. Safe to call repeatedly."""
    load_dotenv(_ENV_PATH, override=False)


def env_str(name: str, default: str | None = None) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return default
    raw = raw.strip()
    return raw or default


def env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean (true/false), got {raw!r}")


def env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


def get_database_url() -> str:
    """Return DBT_DB_URL or DATABASE_URL if set; else SQLite at DBT_DB_PATH (default dbt.db)."""
    load_dbt_env()
    url = env_str("DBT_DB_URL") or env_str("DATABASE_URL")
    if url:
        return url
    path = env_str("DBT_DB_PATH", "dbt.db")
    return f"sqlite:///{path}"
