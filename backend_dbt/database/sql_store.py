"""
SQLAlchemy-backed vote and integrity stores.

Vote + metric are inserted in one transaction, so a metric never exists
without its vote and a vote row is never half-scored. Integrity writes are a
single INSERT (new key) or a single UPDATE ... WHERE version = expected, so
count, mean, and integrity always move together.
"""

from __future__ import annotations

import json

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from backend_dbt.analysis_engine.models import (
    IntegrityRecord,
    PreviousVote,
    ScoreResult,
    Verdict,
    VoteEvent,
    VoteMetric,
)
from backend_dbt.core.exceptions import DuplicateVoteError, StoreConflictError, StoreError
from backend_dbt.database.engine import get_session_factory, session_scope
from backend_dbt.database.models import IntegrityRow, VoteMetricRow, VoteRow
from backend_dbt.database.stores import IntegrityStore, VoteStore
from backend_dbt.dbt_logging import get_logger

logger = get_logger(__name__)


def _to_metric(row: VoteMetricRow) -> VoteMetric:
    codes: tuple[str, ...] = ()
    if row.reason_codes:
        try:
            codes = tuple(json.loads(row.reason_codes))
        except (json.JSONDecodeError, TypeError):
            codes = ()
    return VoteMetric(
        id=row.id,
        vote_id=str(row.vote_id),
        poll_id=row.poll_id,
        voter_id=row.voter_id,
        option_id=row.option_id,
        option_label=row.option_label,
        previous_option_label=row.previous_option_label,
        delta_logic=int(row.delta_logic),
        delta_temporal=float(row.delta_temporal),
        divergence=float(row.divergence),
        verdict=Verdict(row.verdict),
        created_at=int(row.created_at),
        reason_codes=codes,
    )


def _to_record(row: IntegrityRow) -> IntegrityRecord:
    return IntegrityRecord(
        voter_id=row.voter_id,
        scope=row.scope,
        integrity=float(row.integrity),
        interaction_count=int(row.interaction_count),
        avg_divergence=float(row.avg_divergence),
        updated_at=int(row.updated_at),
        version=int(row.version),
    )


class SqlVoteStore(VoteStore):
    """Votes and metrics in dbt_votes / dbt_vote_metrics."""

    def __init__(self, session_factory: sessionmaker | None = None) -> None:
        self._factory = session_factory or get_session_factory()

    def find_previous_vote(self, voter_id: str, poll_id: str) -> PreviousVote | None:
        try:
            with session_scope(self._factory) as session:
                row = (
                    session.query(VoteRow)
                    .filter(VoteRow.voter_id == voter_id, VoteRow.poll_id == poll_id)
                    .order_by(VoteRow.created_at.desc(), VoteRow.id.desc())
                    .first()
                )
                if row is None:
                    return None
                return PreviousVote(option_label=row.option_label, created_at=int(row.created_at))
        except SQLAlchemyError as e:
            logger.exception("find_previous_vote_failed", voter_id=voter_id, poll_id=poll_id, error=str(e))
            raise StoreError(f"previous vote lookup failed: {e}") from e

    def append_vote_event(self, event: VoteEvent, score: ScoreResult | None = None) -> int:
        try:
            with session_scope(self._factory) as session:
                vote = VoteRow(
                    poll_id=event.poll_id,
                    voter_id=event.voter_id,
                    option_id=event.option_id,
                    option_label=event.option_label,
                    created_at=event.created_at,
                )
                session.add(vote)
                session.flush()
                if score is not None:
                    session.add(
                        VoteMetricRow(
                            vote_id=vote.id,
                            poll_id=event.poll_id,
                            voter_id=event.voter_id,
                            option_id=event.option_id,
                            option_label=event.option_label,
                            previous_option_label=event.previous_option_label,
                            delta_logic=score.delta_logic,
                            delta_temporal=score.delta_temporal,
                            divergence=score.divergence,
                            verdict=score.verdict.value,
                            reason_codes=json.dumps(list(score.reason_codes)),
                            created_at=event.created_at,
                        )
                    )
                    session.flush()
                vote_id = int(vote.id)
        except IntegrityError as e:
            logger.info("vote_duplicate_rejected", voter_id=event.voter_id, poll_id=event.poll_id)
            raise DuplicateVoteError(event.voter_id, event.poll_id) from e
        except SQLAlchemyError as e:
            logger.exception("append_vote_event_failed", voter_id=event.voter_id, poll_id=event.poll_id, error=str(e))
            raise StoreError(f"vote append failed: {e}") from e
        logger.debug("vote_event_appended", vote_id=vote_id, poll_id=event.poll_id, scored=score is not None)
        return vote_id

    def list_poll_metrics(self, poll_id: str) -> list[VoteMetric]:
        try:
            with session_scope(self._factory) as session:
                rows = (
                    session.query(VoteMetricRow)
                    .filter(VoteMetricRow.poll_id == poll_id)
                    .order_by(VoteMetricRow.created_at.asc(), VoteMetricRow.id.asc())
                    .all()
                )
                return [_to_metric(r) for r in rows]
        except SQLAlchemyError as e:
            logger.exception("list_poll_metrics_failed", poll_id=poll_id, error=str(e))
            raise StoreError(f"poll metrics query failed: {e}") from e

    def list_recent_metrics(self, *, limit: int = 100) -> list[VoteMetric]:
        try:
            with session_scope(self._factory) as session:
                rows = (
                    session.query(VoteMetricRow)
                    .order_by(VoteMetricRow.created_at.desc(), VoteMetricRow.id.desc())
                    .limit(limit)
                    .all()
                )
                return [_to_metric(r) for r in rows]
        except SQLAlchemyError as e:
            logger.exception("list_recent_metrics_failed", error=str(e))
            raise StoreError(f"recent metrics query failed: {e}") from e

    def list_metrics_since(self, since_ts: int | None = None) -> list[VoteMetric]:
        try:
            with session_scope(self._factory) as session:
                q = session.query(VoteMetricRow)
                if since_ts is not None:
                    q = q.filter(VoteMetricRow.created_at > since_ts)
                rows = (
                    q.order_by(VoteMetricRow.created_at.asc(), VoteMetricRow.id.asc())
                    .all()
                )
                return [_to_metric(r) for r in rows]
        except SQLAlchemyError as e:
            logger.exception("list_metrics_since_failed", since_ts=since_ts, error=str(e))
            raise StoreError(f"metrics query failed: {e}") from e


class SqlIntegrityStore(IntegrityStore):
    """Integrity records in dbt_integrity with version compare-and-swap."""

    def __init__(self, session_factory: sessionmaker | None = None) -> None:
        self._factory = session_factory or get_session_factory()

    def get(self, voter_id: str, scope: str) -> IntegrityRecord | None:
        try:
            with session_scope(self._factory) as session:
                row = (
                    session.query(IntegrityRow)
                    .filter(IntegrityRow.voter_id == voter_id, IntegrityRow.scope == scope)
                    .first()
                )
                return _to_record(row) if row else None
        except SQLAlchemyError as e:
            logger.exception("integrity_get_failed", voter_id=voter_id, scope=scope, error=str(e))
            raise StoreError(f"integrity lookup failed: {e}") from e

    def upsert(self, record: IntegrityRecord, expected_version: int | None) -> None:
        try:
            with session_scope(self._factory) as session:
                if expected_version is None:
                    session.add(
                        IntegrityRow(
                            voter_id=record.voter_id,
                            scope=record.scope,
                            integrity=record.integrity,
                            interaction_count=record.interaction_count,
                            avg_divergence=record.avg_divergence,
                            updated_at=record.updated_at,
                            version=record.version,
                        )
                    )
                    session.flush()
                else:
                    updated = (
                        session.query(IntegrityRow)
                        .filter(
                            IntegrityRow.voter_id == record.voter_id,
                            IntegrityRow.scope == record.scope,
                            IntegrityRow.version == expected_version,
                        )
                        .update(
                            {
                                "integrity": record.integrity,
                                "interaction_count": record.interaction_count,
                                "avg_divergence": record.avg_divergence,
                                "updated_at": record.updated_at,
                                "version": record.version,
                            },
                            synchronize_session=False,
                        )
                    )
                    if updated != 1:
                        raise StoreConflictError(
                            f"integrity version moved for voter={record.voter_id} scope={record.scope} "
                            f"(expected {expected_version})"
                        )
        except StoreConflictError:
            raise
        except IntegrityError as e:
            raise StoreConflictError(
                f"integrity record already exists for voter={record.voter_id} scope={record.scope}"
            ) from e
        except SQLAlchemyError as e:
            logger.exception("integrity_upsert_failed", voter_id=record.voter_id, scope=record.scope, error=str(e))
            raise StoreError(f"integrity write failed: {e}") from e

    def list_records(self) -> list[IntegrityRecord]:
        try:
            with session_scope(self._factory) as session:
                rows = (
                    session.query(IntegrityRow)
                    .order_by(IntegrityRow.integrity.desc(), IntegrityRow.interaction_count.desc())
                    .all()
                )
                return [_to_record(r) for r in rows]
        except SQLAlchemyError as e:
            logger.exception("integrity_list_failed", error=str(e))
            raise StoreError(f"integrity list failed: {e}") from e
