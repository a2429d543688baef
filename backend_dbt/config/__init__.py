"""
Configuration management for the DBT engine.

Loads and validates settings from environment variables and an optional .env
file. Exposes a single source of truth for engine configuration.
"""

from backend_dbt.config.settings import DbtSettings, get_settings, load_settings  # noqa: F401

__all__ = ["DbtSettings", "get_settings", "load_settings"]
