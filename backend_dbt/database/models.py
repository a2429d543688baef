"""
SQLAlchemy tables for votes, vote metrics, and integrity records.

dbt_votes: one row per (voter_id, poll_id); the unique constraint is the
duplicate-vote guard.
dbt_vote_metrics: one scored row per vote, written in the same transaction.
dbt_integrity: one row per (voter_id, scope) with a version column for
compare-and-swap updates.
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class VoteRow(Base):
    __tablename__ = "dbt_votes"
    __table_args__ = (
        UniqueConstraint("voter_id", "poll_id", name="uq_dbt_votes_voter_poll"),
        Index("ix_dbt_votes_poll_voter_created", "poll_id", "voter_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    poll_id = Column(String(128), nullable=False)
    voter_id = Column(String(128), nullable=False)
    option_id = Column(String(128), nullable=False)
    option_label = Column(String(128), nullable=False)
    created_at = Column(Integer, nullable=False)  # Unix


class VoteMetricRow(Base):
    __tablename__ = "dbt_vote_metrics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vote_id = Column(Integer, ForeignKey("dbt_votes.id"), nullable=False, unique=True)
    poll_id = Column(String(128), nullable=False, index=True)
    voter_id = Column(String(128), nullable=False, index=True)
    option_id = Column(String(128), nullable=False)
    option_label = Column(String(128), nullable=False)
    previous_option_label = Column(String(128), nullable=True)
    delta_logic = Column(Integer, nullable=False)
    delta_temporal = Column(Float, nullable=False)
    divergence = Column(Float, nullable=False)
    verdict = Column(String(16), nullable=False, index=True)
    reason_codes = Column(String(512), nullable=True)  # JSON array of reason code strings
    created_at = Column(Integer, nullable=False, index=True)  # Unix


class IntegrityRow(Base):
    __tablename__ = "dbt_integrity"
    __table_args__ = (
        UniqueConstraint("voter_id", "scope", name="uq_dbt_integrity_voter_scope"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    voter_id = Column(String(128), nullable=False)
    scope = Column(String(160), nullable=False)
    integrity = Column(Float, nullable=False)
    interaction_count = Column(Integer, nullable=False)
    avg_divergence = Column(Float, nullable=False)
    updated_at = Column(Integer, nullable=False)  # Unix
    version = Column(Integer, nullable=False)
