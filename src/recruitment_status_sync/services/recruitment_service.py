"""
Recruitment service.

Performs the mutations that trigger status propagation (scheduling an
interview, submitting feedback, moving an application on the board) and runs
the status-sync cascade in the same unit of work, so a failure anywhere in
the cascade rolls back the triggering write as well.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from recruitment_status_sync.db.models import (
    ApplicationModel,
    CandidateModel,
    InterviewScheduleModel,
)
from recruitment_status_sync.db.repository import (
    ApplicationRepository,
    CandidateRepository,
    InterviewScheduleRepository,
    StatusChangeLogRepository,
)
from recruitment_status_sync.errors import (
    DuplicateError,
    NotFoundError,
    PersistenceFailure,
    ValidationError,
)
from recruitment_status_sync.schemas import (
    ApplicationStatus,
    CandidateStatus,
    EntityType,
    InterviewMode,
    InterviewResult,
    InterviewStatus,
    StatusChange,
)
from recruitment_status_sync.sync.engine import StatusSyncEngine
from recruitment_status_sync.sync.rules import parse_result

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

# Grace period for interview dates that drift into the past in transit.
SCHEDULE_GRACE = timedelta(minutes=5)
MIN_RATING = 1
MAX_RATING = 10
MANUAL_REASON = "Manually updated by user"


def _require_text(value: str | None, message: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(message)
    return value.strip()


def _choice(enum_cls: type[E], value: object, label: str) -> E:
    try:
        return enum_cls(value)
    except ValueError as error:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {label}. Must be one of: {allowed}") from error


def _optional_text(value: str | None) -> str | None:
    return value.strip() if value and value.strip() else None


def _require_contact(mode: InterviewMode, location: str | None, meeting_link: str | None) -> None:
    if mode == InterviewMode.IN_PERSON and not location:
        raise ValidationError("Location is required for in-person interviews")
    if mode in (InterviewMode.VIDEO, InterviewMode.PHONE) and not meeting_link:
        raise ValidationError("Meeting link is required for video/phone interviews")


def _require_future(interview_date: datetime) -> datetime:
    """Normalize a naive date to UTC and reject dates already past the grace period."""
    if interview_date.tzinfo is None:
        interview_date = interview_date.replace(tzinfo=timezone.utc)
    if interview_date < datetime.now(timezone.utc) - SCHEDULE_GRACE:
        raise ValidationError("Interview date must be in the future")
    return interview_date


class RecruitmentService:
    """
    Service for recruitment pipeline mutations with status propagation.

    Attributes:
        engine: StatusSyncEngine used for every cascade.
    """

    def __init__(self, session: AsyncSession, engine: StatusSyncEngine | None = None) -> None:
        """
        Initialize the service.

        Args:
            session: SQLAlchemy async session; the service commits it.
            engine: Status-sync engine bound to the same session.
        """
        self._session = session
        self._candidates = CandidateRepository(session)
        self._applications = ApplicationRepository(session)
        self._interviews = InterviewScheduleRepository(session)
        self._status_log = StatusChangeLogRepository(session)
        self.engine = engine or StatusSyncEngine(session)

    @asynccontextmanager
    async def _unit_of_work(self) -> AsyncIterator[None]:
        """Commit everything done inside the block, or roll all of it back."""
        try:
            yield
        except Exception:
            await self._session.rollback()
            raise
        try:
            await self._session.commit()
        except SQLAlchemyError as error:
            await self._session.rollback()
            raise PersistenceFailure(f"Failed to commit recruitment changes: {error}") from error

    async def create_candidate(
        self,
        organization_id: int,
        first_name: str,
        last_name: str,
        email: str,
        acting_user_id: int,
    ) -> CandidateModel:
        """
        Add a candidate with status New.

        Raises:
            ValidationError: If a name or the email is missing.
            DuplicateError: If the email is already used in the organization.
        """
        first_name = _require_text(first_name, "First name is required")
        last_name = _require_text(last_name, "Last name is required")
        email = _require_text(email, "Email is required").lower()
        if "@" not in email:
            raise ValidationError("Email is invalid")

        async with self._unit_of_work():
            if await self._candidates.get_by_email(organization_id, email):
                raise DuplicateError(f"Candidate with email {email} already exists")

            candidate = await self._candidates.create(
                CandidateModel(
                    organization_id=organization_id,
                    first_name=first_name,
                    last_name=last_name,
                    email=email,
                    status=CandidateStatus.NEW.value,
                    created_by=acting_user_id,
                    updated_by=acting_user_id,
                )
            )
        logger.info(f"Created candidate {candidate.id} in organization {organization_id}")
        return candidate

    async def create_application(
        self,
        organization_id: int,
        candidate_id: int,
        job_position_id: int,
        acting_user_id: int,
        notes: str | None = None,
    ) -> ApplicationModel:
        """
        Apply a candidate to a job position, then re-aggregate the candidate.

        Raises:
            NotFoundError: If the candidate is not in the organization.
            DuplicateError: If the candidate already applied to the position.
        """
        async with self._unit_of_work():
            candidate = await self._candidates.get_in_organization(candidate_id, organization_id)
            if candidate is None:
                raise NotFoundError("Candidate", candidate_id)

            if await self._applications.get_by_candidate_and_job(candidate_id, job_position_id):
                raise DuplicateError("Candidate has already applied for this job position")

            application = await self._applications.create(
                ApplicationModel(
                    organization_id=organization_id,
                    candidate_id=candidate_id,
                    job_position_id=job_position_id,
                    status=ApplicationStatus.APPLIED.value,
                    notes=notes,
                    created_by=acting_user_id,
                    updated_by=acting_user_id,
                )
            )
            await self.engine.update_candidate_status_from_applications(candidate_id, acting_user_id)
        return application

    async def schedule_interview(
        self,
        organization_id: int,
        application_id: int,
        round_name: str,
        interview_date: datetime,
        interview_mode: InterviewMode | str,
        acting_user_id: int,
        location: str | None = None,
        meeting_link: str | None = None,
        is_final_round: bool | None = None,
    ) -> InterviewScheduleModel:
        """
        Schedule an interview round and propagate the new stage.

        Args:
            organization_id: Owning organization.
            application_id: Application being interviewed for.
            round_name: Name of the round (e.g. "Technical", "Final").
            interview_date: When the round takes place; naive values are UTC.
            interview_mode: In-person, Video or Phone.
            acting_user_id: User scheduling the round.
            location: Required for in-person rounds.
            meeting_link: Required for video and phone rounds.
            is_final_round: Marks the round final explicitly; None lets the
                round name decide at feedback time.

        Returns:
            The created interview round.

        Raises:
            ValidationError: If any field is missing or inconsistent.
            NotFoundError: If the application is not in the organization.
        """
        round_name = _require_text(round_name, "Round name is required")
        mode = _choice(InterviewMode, interview_mode, "interview mode")
        location = _optional_text(location)
        meeting_link = _optional_text(meeting_link)
        _require_contact(mode, location, meeting_link)
        interview_date = _require_future(interview_date)

        async with self._unit_of_work():
            application = await self._applications.get_in_organization(application_id, organization_id)
            if application is None:
                raise NotFoundError("Application", application_id)

            interview = await self._interviews.create(
                InterviewScheduleModel(
                    organization_id=organization_id,
                    application_id=application_id,
                    round_name=round_name,
                    is_final_round=is_final_round,
                    interview_date=interview_date,
                    interview_mode=mode.value,
                    location=location,
                    meeting_link=meeting_link,
                    status=InterviewStatus.SCHEDULED.value,
                    created_by=acting_user_id,
                    updated_by=acting_user_id,
                )
            )
            await self.engine.on_interview_scheduled(application_id, acting_user_id)

        logger.info(f"Scheduled {round_name} interview {interview.id} for application {application_id}")
        return interview

    async def submit_feedback(
        self,
        organization_id: int,
        interview_id: int,
        feedback: str,
        acting_user_id: int,
        result: InterviewResult | str | None = None,
        rating: int | None = None,
    ) -> InterviewScheduleModel:
        """
        Record interview feedback, complete the round and propagate its result.

        Raises:
            ValidationError: If feedback is blank or the rating is out of range.
            InvalidResultError: If the result is not Pass, Fail or On Hold.
            NotFoundError: If the interview is not in the organization.
        """
        feedback = _require_text(feedback, "Feedback is required")
        if rating is not None and not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
        outcome = parse_result(result) if result is not None else None

        async with self._unit_of_work():
            interview = await self._interviews.get_in_organization(interview_id, organization_id)
            if interview is None:
                raise NotFoundError("Interview", interview_id)

            old_status = interview.status
            interview.feedback = feedback
            interview.rating = rating
            if outcome is not None:
                interview.result = outcome.value
            interview.status = InterviewStatus.COMPLETED.value
            interview.updated_by = acting_user_id
            await self._interviews.update(interview)

            if old_status != interview.status:
                await self._status_log.record(
                    EntityType.INTERVIEW,
                    interview.id,
                    old_status,
                    interview.status,
                    acting_user_id,
                    "Feedback submitted",
                )

            if outcome is not None:
                await self.engine.on_interview_feedback(
                    interview.application_id,
                    outcome,
                    interview.round_name,
                    acting_user_id,
                    is_final_round=interview.is_final_round,
                )
        return interview

    async def update_interview(
        self,
        organization_id: int,
        interview_id: int,
        acting_user_id: int,
        round_name: str | None = None,
        interview_date: datetime | None = None,
        interview_mode: InterviewMode | str | None = None,
        location: str | None = None,
        meeting_link: str | None = None,
        status: InterviewStatus | str | None = None,
    ) -> InterviewScheduleModel:
        """
        Edit or reschedule an interview round.

        Only the given fields change. An empty location or meeting link clears
        it. Moving the date of a Scheduled round without an explicit status
        marks it Rescheduled.

        Args:
            organization_id: Owning organization.
            interview_id: Round to edit.
            acting_user_id: User making the change.
            round_name: New round name; must not be blank.
            interview_date: New date; naive values are UTC.
            interview_mode: New mode; location or meeting link is then
                required, either given here or already stored.
            location: New location.
            meeting_link: New meeting link.
            status: New interview status.

        Returns:
            The updated interview round.

        Raises:
            ValidationError: If any given field is invalid.
            NotFoundError: If the interview is not in the organization.
        """
        if round_name is not None:
            round_name = _require_text(round_name, "Round name cannot be empty")
        mode = _choice(InterviewMode, interview_mode, "interview mode") if interview_mode else None
        new_status = _choice(InterviewStatus, status, "status") if status else None
        if interview_date is not None:
            interview_date = _require_future(interview_date)

        async with self._unit_of_work():
            interview = await self._interviews.get_in_organization(interview_id, organization_id)
            if interview is None:
                raise NotFoundError("Interview", interview_id)

            if location is not None:
                interview.location = _optional_text(location)
            if meeting_link is not None:
                interview.meeting_link = _optional_text(meeting_link)
            if mode is not None:
                _require_contact(mode, interview.location, interview.meeting_link)
                interview.interview_mode = mode.value
            if round_name is not None:
                interview.round_name = round_name

            old_status = interview.status
            if interview_date is not None:
                interview.interview_date = interview_date
                if new_status is None and old_status == InterviewStatus.SCHEDULED.value:
                    new_status = InterviewStatus.RESCHEDULED
            if new_status is not None:
                interview.status = new_status.value
            interview.updated_by = acting_user_id
            await self._interviews.update(interview)

            if old_status != interview.status:
                await self._status_log.record(
                    EntityType.INTERVIEW,
                    interview.id,
                    old_status,
                    interview.status,
                    acting_user_id,
                    "Interview updated",
                )
        return interview

    async def cancel_interview(
        self,
        organization_id: int,
        interview_id: int,
        acting_user_id: int,
        reason: str | None = None,
    ) -> InterviewScheduleModel:
        """
        Cancel an interview round that has not taken place.

        Application and candidate statuses are left as they are.

        Raises:
            ValidationError: If the round is already completed.
            NotFoundError: If the interview is not in the organization.
        """
        async with self._unit_of_work():
            interview = await self._interviews.get_in_organization(interview_id, organization_id)
            if interview is None:
                raise NotFoundError("Interview", interview_id)
            if interview.status == InterviewStatus.COMPLETED.value:
                raise ValidationError("Cannot cancel a completed interview")

            old_status = interview.status
            if old_status != InterviewStatus.CANCELLED.value:
                interview.status = InterviewStatus.CANCELLED.value
                interview.updated_by = acting_user_id
                await self._interviews.update(interview)
                await self._status_log.record(
                    EntityType.INTERVIEW,
                    interview.id,
                    old_status,
                    interview.status,
                    acting_user_id,
                    reason or "Interview cancelled",
                )
        logger.info(f"Cancelled interview {interview_id}")
        return interview

    async def delete_interview(
        self,
        organization_id: int,
        interview_id: int,
        acting_user_id: int,
    ) -> None:
        """
        Delete an interview round.

        Raises:
            NotFoundError: If the interview is not in the organization.
        """
        async with self._unit_of_work():
            interview = await self._interviews.get_in_organization(interview_id, organization_id)
            if interview is None:
                raise NotFoundError("Interview", interview_id)
            await self._interviews.delete(interview)
        logger.info(f"User {acting_user_id} deleted interview {interview_id}")

    async def delete_application(
        self,
        organization_id: int,
        application_id: int,
        acting_user_id: int,
    ) -> None:
        """
        Delete an application with its open interview rounds and re-aggregate
        the candidate.

        Raises:
            ValidationError: If any round of the application is completed.
            NotFoundError: If the application is not in the organization.
        """
        async with self._unit_of_work():
            application = await self._applications.get_in_organization(application_id, organization_id)
            if application is None:
                raise NotFoundError("Application", application_id)

            rounds = await self._interviews.list_for_application(application_id)
            completed = [r for r in rounds if r.status == InterviewStatus.COMPLETED.value]
            if completed:
                raise ValidationError(
                    f"Cannot delete application. It has {len(completed)} completed interview(s)."
                )

            for interview in rounds:
                await self._interviews.delete(interview)
            candidate_id = application.candidate_id
            await self._applications.delete(application)
            await self.engine.update_candidate_status_from_applications(candidate_id, acting_user_id)
        logger.info(f"User {acting_user_id} deleted application {application_id}")

    async def update_application_status(
        self,
        organization_id: int,
        application_id: int,
        status: ApplicationStatus | str,
        acting_user_id: int,
        notes: str | None = None,
    ) -> ApplicationModel:
        """
        Move an application to a new status directly (e.g. board drag-and-drop).

        Raises:
            ValidationError: If the status is not an application status.
            NotFoundError: If the application is not in the organization.
        """
        new_status = _choice(ApplicationStatus, status, "status")

        async with self._unit_of_work():
            application = await self._applications.get_in_organization(application_id, organization_id)
            if application is None:
                raise NotFoundError("Application", application_id)

            old_status = application.status
            await self._applications.update_status(application, new_status, acting_user_id, notes)
            if old_status != new_status.value:
                await self._status_log.record(
                    EntityType.APPLICATION,
                    application.id,
                    old_status,
                    new_status.value,
                    acting_user_id,
                    MANUAL_REASON,
                )
            await self.engine.update_candidate_status_from_applications(
                application.candidate_id,
                acting_user_id,
            )
        return application

    async def update_candidate_status_manually(
        self,
        organization_id: int,
        candidate_id: int,
        status: CandidateStatus | str,
        acting_user_id: int,
        reason: str | None = None,
    ) -> CandidateModel:
        """
        Override a candidate's status. This is the only way to reach On Hold.

        The override holds until the next application change re-aggregates
        the candidate.

        Raises:
            ValidationError: If the status is not a candidate status.
            NotFoundError: If the candidate is not in the organization.
        """
        new_status = _choice(CandidateStatus, status, "status")

        async with self._unit_of_work():
            candidate = await self._candidates.get_in_organization(candidate_id, organization_id)
            if candidate is None:
                raise NotFoundError("Candidate", candidate_id)

            old_status = candidate.status
            await self._candidates.update_status(candidate, new_status, acting_user_id)
            await self._status_log.record(
                EntityType.CANDIDATE,
                candidate.id,
                old_status,
                new_status.value,
                acting_user_id,
                reason or MANUAL_REASON,
            )
        logger.info(f"Candidate {candidate_id} status set manually: {old_status} -> {new_status.value}")
        return candidate

    async def recompute_candidate_status(
        self,
        candidate_id: int,
        acting_user_id: int | None = None,
    ) -> CandidateModel:
        """
        Re-run candidate aggregation on demand, e.g. to repair a stale status.

        Raises:
            NotFoundError: If the candidate does not exist.
        """
        async with self._unit_of_work():
            await self.engine.update_candidate_status_from_applications(candidate_id, acting_user_id)
            candidate = await self._candidates.get_by_id(candidate_id)
        return candidate

    async def get_status_history(
        self,
        entity_type: EntityType | str,
        entity_id: int,
    ) -> list[StatusChange]:
        """
        Get the audited status changes of one entity, newest first.

        Raises:
            ValidationError: If the entity type is unknown.
        """
        kind = _choice(EntityType, entity_type, "entity type")
        rows = await self._status_log.list_for_entity(kind, entity_id)
        return [StatusChange.model_validate(row) for row in rows]
