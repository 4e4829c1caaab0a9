"""
Tests for the status-sync engine against a real (in-memory) database.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from recruitment_status_sync.db.repository import StatusChangeLogRepository
from recruitment_status_sync.errors import InvalidResultError, NotFoundError
from recruitment_status_sync.schemas import (
    ApplicationStatus,
    CandidateStatus,
    EntityType,
    InterviewResult,
)
from recruitment_status_sync.sync import FinalRoundPolicy, StatusSyncEngine

from helpers import USER_ID, CandidateFactory

A = ApplicationStatus


@pytest.fixture
def engine(session: AsyncSession) -> StatusSyncEngine:
    """Create an engine with a fixed system user."""
    return StatusSyncEngine(session, system_user_id=1)


async def _history(session: AsyncSession, entity_type: EntityType, entity_id: int) -> list:
    return await StatusChangeLogRepository(session).list_for_entity(entity_type, entity_id)


class TestCandidateAggregation:
    """Tests for update_candidate_status_from_applications."""

    @pytest.mark.asyncio
    async def test_idempotent(
        self,
        session: AsyncSession,
        engine: StatusSyncEngine,
        make_candidate: CandidateFactory,
    ) -> None:
        """Test that a second call with no change yields the same status and writes nothing."""
        candidate, _ = await make_candidate([A.SHORTLISTED, A.REJECTED])

        await engine.update_candidate_status_from_applications(candidate.id, USER_ID)
        first = candidate.status
        await engine.update_candidate_status_from_applications(candidate.id, USER_ID)

        assert first == candidate.status == CandidateStatus.IN_PROCESS.value
        assert len(await _history(session, EntityType.CANDIDATE, candidate.id)) == 1

    @pytest.mark.asyncio
    async def test_applied_and_rejected_is_new(
        self,
        engine: StatusSyncEngine,
        make_candidate: CandidateFactory,
    ) -> None:
        candidate, _ = await make_candidate([A.APPLIED, A.REJECTED], status=CandidateStatus.IN_PROCESS)

        await engine.update_candidate_status_from_applications(candidate.id, USER_ID)

        assert candidate.status == CandidateStatus.NEW.value

    @pytest.mark.asyncio
    async def test_selected_wins(
        self,
        engine: StatusSyncEngine,
        make_candidate: CandidateFactory,
    ) -> None:
        candidate, _ = await make_candidate([A.SELECTED, A.REJECTED])

        await engine.update_candidate_status_from_applications(candidate.id, USER_ID)

        assert candidate.status == CandidateStatus.SELECTED.value

    @pytest.mark.asyncio
    async def test_all_rejected(
        self,
        engine: StatusSyncEngine,
        make_candidate: CandidateFactory,
    ) -> None:
        candidate, _ = await make_candidate([A.REJECTED, A.REJECTED])

        await engine.update_candidate_status_from_applications(candidate.id, USER_ID)

        assert candidate.status == CandidateStatus.REJECTED.value

    @pytest.mark.asyncio
    async def test_no_applications_is_new(
        self,
        engine: StatusSyncEngine,
        make_candidate: CandidateFactory,
    ) -> None:
        candidate, _ = await make_candidate([], status=CandidateStatus.IN_PROCESS)

        await engine.update_candidate_status_from_applications(candidate.id, USER_ID)

        assert candidate.status == CandidateStatus.NEW.value

    @pytest.mark.asyncio
    async def test_manual_on_hold_is_recomputed(
        self,
        engine: StatusSyncEngine,
        make_candidate: CandidateFactory,
    ) -> None:
        """Test that aggregation replaces a manual On Hold with the derived status."""
        candidate, _ = await make_candidate([A.SHORTLISTED], status=CandidateStatus.ON_HOLD)

        await engine.update_candidate_status_from_applications(candidate.id, USER_ID)

        assert candidate.status == CandidateStatus.IN_PROCESS.value

    @pytest.mark.asyncio
    async def test_ignores_applications_of_other_candidates(
        self,
        engine: StatusSyncEngine,
        make_candidate: CandidateFactory,
    ) -> None:
        candidate, _ = await make_candidate([A.REJECTED])
        await make_candidate([A.SELECTED])

        await engine.update_candidate_status_from_applications(candidate.id, USER_ID)

        assert candidate.status == CandidateStatus.REJECTED.value

    @pytest.mark.asyncio
    async def test_audit_row_uses_system_user_without_actor(
        self,
        session: AsyncSession,
        engine: StatusSyncEngine,
        make_candidate: CandidateFactory,
    ) -> None:
        candidate, _ = await make_candidate([A.SELECTED])

        await engine.update_candidate_status_from_applications(candidate.id, None)

        [entry] = await _history(session, EntityType.CANDIDATE, candidate.id)
        assert entry.old_status == "New"
        assert entry.new_status == "Selected"
        assert entry.changed_by == 1
        assert entry.reason == "Auto-updated based on application statuses"
        assert candidate.updated_by == 1

    @pytest.mark.asyncio
    async def test_missing_candidate(self, engine: StatusSyncEngine) -> None:
        """Test that a missing candidate is an error, not a silent skip."""
        with pytest.raises(NotFoundError, match="Candidate with ID 999 not found"):
            await engine.update_candidate_status_from_applications(999, USER_ID)


class TestOnInterviewScheduled:
    """Tests for on_interview_scheduled."""

    @pytest.mark.asyncio
    async def test_applied_moves_to_interview_scheduled(
        self,
        session: AsyncSession,
        engine: StatusSyncEngine,
        make_candidate: CandidateFactory,
    ) -> None:
        candidate, [application] = await make_candidate([A.APPLIED])

        await engine.on_interview_scheduled(application.id, USER_ID)

        assert application.status == A.INTERVIEW_SCHEDULED.value
        assert application.updated_by == USER_ID
        assert candidate.status == CandidateStatus.IN_PROCESS.value

        [entry] = await _history(session, EntityType.APPLICATION, application.id)
        assert entry.reason == "Interview scheduled"
        assert entry.changed_by == USER_ID

    @pytest.mark.asyncio
    async def test_selected_is_not_regressed(
        self,
        session: AsyncSession,
        engine: StatusSyncEngine,
        make_candidate: CandidateFactory,
    ) -> None:
        candidate, [application] = await make_candidate([A.SELECTED])

        await engine.on_interview_scheduled(application.id, USER_ID)

        assert application.status == A.SELECTED.value
        assert await _history(session, EntityType.APPLICATION, application.id) == []

    @pytest.mark.asyncio
    async def test_candidate_aggregated_even_without_application_change(
        self,
        engine: StatusSyncEngine,
        make_candidate: CandidateFactory,
    ) -> None:
        """Test that the candidate is re-derived even when the application is unchanged."""
        candidate, [application] = await make_candidate([A.INTERVIEW_SCHEDULED])
        assert candidate.status == CandidateStatus.NEW.value

        await engine.on_interview_scheduled(application.id, USER_ID)

        assert application.status == A.INTERVIEW_SCHEDULED.value
        assert candidate.status == CandidateStatus.IN_PROCESS.value

    @pytest.mark.asyncio
    async def test_missing_application(self, engine: StatusSyncEngine) -> None:
        with pytest.raises(NotFoundError):
            await engine.on_interview_scheduled(12345, USER_ID)


class TestOnInterviewFeedback:
    """Tests for on_interview_feedback."""

    @pytest.mark.asyncio
    async def test_fail_rejects_application_and_candidate(
        self,
        session: AsyncSession,
        engine: StatusSyncEngine,
        make_candidate: CandidateFactory,
    ) -> None:
        candidate, [application] = await make_candidate(
            [A.INTERVIEW_SCHEDULED],
            status=CandidateStatus.IN_PROCESS,
        )

        await engine.on_interview_feedback(application.id, InterviewResult.FAIL, "Round 1", USER_ID)

        assert application.status == A.REJECTED.value
        assert candidate.status == CandidateStatus.REJECTED.value
        [entry] = await _history(session, EntityType.APPLICATION, application.id)
        assert entry.reason == "Failed Round 1 interview"

    @pytest.mark.asyncio
    async def test_pass_on_intermediate_round_keeps_status(
        self,
        engine: StatusSyncEngine,
        make_candidate: CandidateFactory,
    ) -> None:
        candidate, [application] = await make_candidate(
            [A.INTERVIEW_SCHEDULED],
            status=CandidateStatus.IN_PROCESS,
        )

        await engine.on_interview_feedback(application.id, "Pass", "Technical", USER_ID)

        assert application.status == A.INTERVIEW_SCHEDULED.value
        assert candidate.status == CandidateStatus.IN_PROCESS.value

    @pytest.mark.asyncio
    async def test_pass_on_final_round_selects(
        self,
        engine: StatusSyncEngine,
        make_candidate: CandidateFactory,
    ) -> None:
        candidate, [application, _] = await make_candidate([A.INTERVIEW_SCHEDULED, A.REJECTED])

        await engine.on_interview_feedback(application.id, "Pass", "Final Round", USER_ID)

        assert application.status == A.SELECTED.value
        assert candidate.status == CandidateStatus.SELECTED.value

    @pytest.mark.asyncio
    async def test_explicit_final_flag_overrides_round_name(
        self,
        engine: StatusSyncEngine,
        make_candidate: CandidateFactory,
    ) -> None:
        _, [first, second] = await make_candidate([A.INTERVIEW_SCHEDULED, A.INTERVIEW_SCHEDULED])

        await engine.on_interview_feedback(first.id, "Pass", "Final", USER_ID, is_final_round=False)
        await engine.on_interview_feedback(second.id, "Pass", "Round 2", USER_ID, is_final_round=True)

        assert first.status == A.INTERVIEW_SCHEDULED.value
        assert second.status == A.SELECTED.value

    @pytest.mark.asyncio
    async def test_custom_final_round_markers(
        self,
        session: AsyncSession,
        make_candidate: CandidateFactory,
    ) -> None:
        engine = StatusSyncEngine(session, final_round_policy=FinalRoundPolicy(markers=("hr",)))
        _, [application] = await make_candidate([A.INTERVIEW_SCHEDULED])

        await engine.on_interview_feedback(application.id, "Pass", "HR Discussion", USER_ID)

        assert application.status == A.SELECTED.value

    @pytest.mark.asyncio
    async def test_on_hold_reaffirms_interview_stage(
        self,
        engine: StatusSyncEngine,
        make_candidate: CandidateFactory,
    ) -> None:
        candidate, [shortlisted, scheduled] = await make_candidate([A.SHORTLISTED, A.INTERVIEW_SCHEDULED])

        await engine.on_interview_feedback(shortlisted.id, "On Hold", "Round 1", USER_ID)
        await engine.on_interview_feedback(scheduled.id, "On Hold", "Round 1", USER_ID)

        assert shortlisted.status == A.INTERVIEW_SCHEDULED.value
        assert scheduled.status == A.INTERVIEW_SCHEDULED.value
        assert candidate.status == CandidateStatus.IN_PROCESS.value

    @pytest.mark.asyncio
    async def test_invalid_result_rejected_before_any_write(
        self,
        session: AsyncSession,
        engine: StatusSyncEngine,
        make_candidate: CandidateFactory,
    ) -> None:
        candidate, [application] = await make_candidate([A.INTERVIEW_SCHEDULED])

        with pytest.raises(InvalidResultError):
            await engine.on_interview_feedback(application.id, "Strong Hire", "Round 1", USER_ID)

        assert application.status == A.INTERVIEW_SCHEDULED.value
        assert candidate.status == CandidateStatus.NEW.value
        assert await _history(session, EntityType.APPLICATION, application.id) == []
