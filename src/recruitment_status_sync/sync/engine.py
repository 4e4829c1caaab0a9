"""
Status-sync engine.

Keeps Application.status derived from interview events and Candidate.status
derived from the candidate's applications. Every entry point runs its whole
cascade before returning; errors propagate to the caller untouched.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from recruitment_status_sync.config import get_settings
from recruitment_status_sync.db.models import ApplicationModel, CandidateModel
from recruitment_status_sync.db.repository import (
    ApplicationRepository,
    CandidateRepository,
    StatusChangeLogRepository,
)
from recruitment_status_sync.errors import NotFoundError
from recruitment_status_sync.schemas import (
    ApplicationStatus,
    CandidateStatus,
    EntityType,
    InterviewResult,
)
from recruitment_status_sync.sync.rules import (
    FALLBACK_CANDIDATE_STATUS,
    FinalRoundPolicy,
    match_candidate_rule,
    parse_result,
    status_after_feedback,
    status_after_scheduling,
)

logger = logging.getLogger(__name__)

AGGREGATION_REASON = "Auto-updated based on application statuses"


class StatusSyncEngine:
    """
    Propagates interview and application events up the recruitment hierarchy.

    The engine only reads and writes through the session it is given; it never
    commits. Wrapping a call in a transaction is the caller's responsibility.
    """

    def __init__(
        self,
        session: AsyncSession,
        final_round_policy: FinalRoundPolicy | None = None,
        system_user_id: int | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            session: SQLAlchemy async session used for all reads and writes.
            final_round_policy: Policy deciding whether a round is final.
                Defaults to the configured round-name markers.
            system_user_id: User recorded on audit rows when no acting user
                is given. Defaults to the configured system user.
        """
        settings = get_settings()
        self._candidates = CandidateRepository(session)
        self._applications = ApplicationRepository(session)
        self._status_log = StatusChangeLogRepository(session)
        self._final_round_policy = final_round_policy or FinalRoundPolicy(
            markers=tuple(settings.final_round_markers)
        )
        self._system_user_id = system_user_id if system_user_id is not None else settings.system_user_id

    async def on_interview_scheduled(self, application_id: int, acting_user_id: int | None) -> None:
        """
        Move an application to Interview Scheduled after a round is created.

        Applications already past that point are left alone. The candidate is
        re-aggregated either way.

        Args:
            application_id: Application the new round belongs to.
            acting_user_id: User who scheduled the round.

        Raises:
            NotFoundError: If the application or its candidate is missing.
            PersistenceFailure: If a write fails.
        """
        application = await self._require_application(application_id)
        new_status = status_after_scheduling(application.status)
        await self._set_application_status(application, new_status, acting_user_id, "Interview scheduled")
        await self.update_candidate_status_from_applications(application.candidate_id, acting_user_id)

    async def on_interview_feedback(
        self,
        application_id: int,
        result: InterviewResult | str,
        round_name: str,
        acting_user_id: int | None,
        is_final_round: bool | None = None,
    ) -> None:
        """
        Apply an interview result to its application, then re-aggregate the candidate.

        Args:
            application_id: Application the round belongs to.
            result: Pass, Fail or On Hold.
            round_name: Name of the round the feedback is for.
            acting_user_id: User who submitted the feedback.
            is_final_round: Explicit final-round flag; when None the round
                name decides.

        Raises:
            InvalidResultError: If ``result`` is outside the vocabulary.
            NotFoundError: If the application or its candidate is missing.
            PersistenceFailure: If a write fails.
        """
        outcome = parse_result(result)
        application = await self._require_application(application_id)

        is_final = self._final_round_policy.is_final(round_name, is_final_round)
        new_status = status_after_feedback(application.status, outcome, is_final)
        reason = _feedback_reason(outcome, round_name, is_final)

        await self._set_application_status(application, new_status, acting_user_id, reason)
        await self.update_candidate_status_from_applications(application.candidate_id, acting_user_id)

    async def update_candidate_status_from_applications(
        self,
        candidate_id: int,
        acting_user_id: int | None,
    ) -> None:
        """
        Recompute a candidate's status from all of its applications.

        Pure function of the current application set: calling it again without
        an intervening change writes nothing.

        Args:
            candidate_id: Candidate to re-aggregate.
            acting_user_id: User who triggered the cascade.

        Raises:
            NotFoundError: If the candidate is missing.
            PersistenceFailure: If a write fails.
        """
        candidate = await self._candidates.get_by_id(candidate_id)
        if candidate is None:
            raise NotFoundError("Candidate", candidate_id)

        applications = await self._applications.list_for_candidate(
            candidate.id,
            candidate.organization_id,
        )
        rule = match_candidate_rule(app.status for app in applications)
        new_status = rule.status if rule else FALLBACK_CANDIDATE_STATUS

        logger.debug(
            f"Candidate {candidate_id}: {len(applications)} applications, "
            f"rule={rule.name if rule else 'fallback'} -> {new_status.value}"
        )
        await self._set_candidate_status(candidate, new_status, acting_user_id)

    async def _require_application(self, application_id: int) -> ApplicationModel:
        application = await self._applications.get_by_id(application_id)
        if application is None:
            raise NotFoundError("Application", application_id)
        return application

    def _actor(self, acting_user_id: int | None) -> int:
        return acting_user_id if acting_user_id is not None else self._system_user_id

    async def _set_application_status(
        self,
        application: ApplicationModel,
        new_status: ApplicationStatus,
        acting_user_id: int | None,
        reason: str,
    ) -> bool:
        old_status = application.status
        if old_status == new_status.value:
            return False

        actor = self._actor(acting_user_id)
        await self._applications.update_status(application, new_status, actor)
        await self._status_log.record(
            EntityType.APPLICATION,
            application.id,
            old_status,
            new_status.value,
            actor,
            reason,
        )
        logger.info(f"Application {application.id} status updated: {old_status} -> {new_status.value}")
        return True

    async def _set_candidate_status(
        self,
        candidate: CandidateModel,
        new_status: CandidateStatus,
        acting_user_id: int | None,
    ) -> bool:
        old_status = candidate.status
        if old_status == new_status.value:
            return False

        actor = self._actor(acting_user_id)
        await self._candidates.update_status(candidate, new_status, actor)
        await self._status_log.record(
            EntityType.CANDIDATE,
            candidate.id,
            old_status,
            new_status.value,
            actor,
            AGGREGATION_REASON,
        )
        logger.info(f"Candidate {candidate.id} status updated: {old_status} -> {new_status.value}")
        return True


def _feedback_reason(result: InterviewResult, round_name: str, is_final: bool) -> str:
    if result == InterviewResult.FAIL:
        return f"Failed {round_name} interview"
    if result == InterviewResult.PASS:
        if is_final:
            return f"Passed final round {round_name}"
        return f"Passed {round_name} interview, awaiting next round"
    return f"{round_name} interview on hold"
