"""
Vote admission: previous-vote lookup -> scoring -> enforcement gate -> append -> integrity.

The vote (with its metric) is the durability anchor: it is appended before the
integrity update, so a failed append never touches integrity. A failed
integrity update after a successful append surfaces as IntegrityUpdateError
with the vote id; the vote stays recorded.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field

from backend_dbt.analysis_engine.integrity import IntegrityTracker
from backend_dbt.analysis_engine.models import (
    IntegrityRecord,
    ScoreResult,
    Verdict,
    VoteEvent,
    VoteOption,
)
from backend_dbt.analysis_engine.scorer import ScoringConfig, score_vote
from backend_dbt.config.settings import DbtSettings
from backend_dbt.core.exceptions import IntegrityUpdateError, StoreError, VoteRejectedError
from backend_dbt.core.locks import KeyedLocks
from backend_dbt.database.stores import IntegrityStore, VoteStore
from backend_dbt.dbt_logging import bind_vote


class VoteRequest(BaseModel):
    """A vote handed over by the transport layer (already authenticated and parsed)."""

    poll_id: str = Field(..., min_length=1, max_length=128, description="Poll id")
    voter_id: str = Field(..., min_length=1, max_length=128, description="Stable voter id")
    option_id: str = Field(..., min_length=1, max_length=128, description="Chosen option id")
    option_label: str = Field(..., min_length=1, max_length=128, description="Chosen option label")
    created_at: int | None = Field(None, ge=0, description="Unix timestamp; defaults to now")

    @property
    def option(self) -> VoteOption:
        return VoteOption(id=self.option_id, label=self.option_label)


@dataclass(frozen=True)
class AdmissionResult:
    """Outcome of an admitted vote. score and integrity are None when the engine is disabled."""

    vote_id: int
    score: ScoreResult | None = None
    integrity: IntegrityRecord | None = None
    previous_option_label: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "vote_id": self.vote_id,
            "dbt": self.score.to_dict() if self.score else None,
            "integrity": self.integrity.to_dict() if self.integrity else None,
            "previous_option_label": self.previous_option_label,
        }


class VoteAdmission:
    """Runs the scoring engine around vote persistence according to DbtSettings."""

    def __init__(
        self,
        settings: DbtSettings,
        vote_store: VoteStore,
        integrity_store: IntegrityStore,
        *,
        scoring_config: ScoringConfig | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self.settings = settings
        self._votes = vote_store
        self._scoring = scoring_config or settings.scoring_config()
        self.tracker = IntegrityTracker(integrity_store, settings.integrity_alpha, locks=locks)

    def admit(self, request: VoteRequest | dict[str, Any]) -> AdmissionResult:
        """
        Admit one vote.

        Raises pydantic.ValidationError for malformed requests, VoteRejectedError
        when enforcement blocks a REJECT verdict (nothing persisted),
        DuplicateVoteError / StoreError from the vote store, and
        IntegrityUpdateError when only the integrity update failed.
        """
        if not isinstance(request, VoteRequest):
            request = VoteRequest.model_validate(request)
        created_at = request.created_at if request.created_at is not None else int(time.time())
        scope = self.settings.scope_for(request.poll_id)
        log = bind_vote(request.voter_id, request.poll_id, scope)
        option = request.option

        if not self.settings.enabled:
            event = VoteEvent(
                voter_id=request.voter_id,
                poll_id=request.poll_id,
                option_id=option.id,
                option_label=option.label,
                previous_option_label=None,
                created_at=created_at,
            )
            vote_id = self._votes.append_vote_event(event)
            log.info("vote_recorded_unscored", vote_id=vote_id)
            return AdmissionResult(vote_id=vote_id)

        previous = self._votes.find_previous_vote(request.voter_id, request.poll_id)
        previous_label = previous.option_label if previous else None
        score = score_vote(previous_label, option.label, self._scoring)
        log.info(
            "vote_scored",
            previous_label=previous_label,
            option_label=option.label,
            delta_logic=score.delta_logic,
            delta_temporal=score.delta_temporal,
            divergence=score.divergence,
            verdict=score.verdict,
            reason_codes=list(score.reason_codes),
        )

        if self.settings.enforce_reject and score.verdict is Verdict.REJECT:
            log.warning("vote_rejected", verdict=score.verdict, divergence=score.divergence)
            raise VoteRejectedError(score)

        event = VoteEvent(
            voter_id=request.voter_id,
            poll_id=request.poll_id,
            option_id=option.id,
            option_label=option.label,
            previous_option_label=previous_label,
            created_at=created_at,
        )
        vote_id = self._votes.append_vote_event(event, score)

        try:
            record = self.tracker.record(request.voter_id, scope, score.divergence, now_ts=created_at)
        except StoreError as e:
            log.error("integrity_update_failed", vote_id=vote_id, error=str(e))
            raise IntegrityUpdateError(str(vote_id), scope) from e

        log.info(
            "vote_admitted",
            vote_id=vote_id,
            verdict=score.verdict,
            integrity=record.integrity,
        )
        return AdmissionResult(
            vote_id=vote_id,
            score=score,
            integrity=record,
            previous_option_label=previous_label,
        )
