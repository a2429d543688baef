"""
Structured logging for Backend DBT.

JSON logs with timestamp, voter_id, event_type, verdict.
Use get_logger() in all engine modules for aggregation-friendly output.
"""

from backend_dbt.dbt_logging.logger import bind_vote, bind_voter, get_logger

__all__ = ["bind_vote", "bind_voter", "get_logger"]
