"""
Repository pattern for database operations.

Provides a clean abstraction over SQLAlchemy for the recruitment tables.
Store errors are re-raised as ``PersistenceFailure`` so callers never see
driver exceptions.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from recruitment_status_sync.db.models import (
    ApplicationModel,
    Base,
    CandidateModel,
    InterviewScheduleModel,
    StatusChangeLogModel,
)
from recruitment_status_sync.errors import ConcurrentUpdateError, PersistenceFailure
from recruitment_status_sync.schemas import (
    ApplicationStatus,
    CandidateStatus,
    EntityType,
)

T = TypeVar("T", bound=Base)


class BaseRepository(ABC, Generic[T]):
    """Abstract base repository with common CRUD operations."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    @property
    @abstractmethod
    def _model_class(self) -> type[T]:
        """Get the model class for this repository."""
        ...

    @property
    def _table_name(self) -> str:
        return self._model_class.__tablename__

    async def _flush(self, action: str) -> None:
        try:
            await self._session.flush()
        except StaleDataError as error:
            raise ConcurrentUpdateError(
                f"Failed to {action} {self._table_name}: row was modified concurrently"
            ) from error
        except SQLAlchemyError as error:
            raise PersistenceFailure(f"Failed to {action} {self._table_name}: {error}") from error

    async def _scalars(self, stmt: Select[Any]) -> list[T]:
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as error:
            raise PersistenceFailure(f"Failed to query {self._table_name}: {error}") from error
        return list(result.scalars().all())

    async def _scalar_one_or_none(self, stmt: Select[Any]) -> T | None:
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as error:
            raise PersistenceFailure(f"Failed to query {self._table_name}: {error}") from error
        return result.scalar_one_or_none()

    async def get_by_id(self, entity_id: int) -> T | None:
        """
        Get an entity by its ID.

        Args:
            entity_id: The entity's integer ID.

        Returns:
            The entity if found, None otherwise.
        """
        try:
            return await self._session.get(self._model_class, entity_id)
        except SQLAlchemyError as error:
            raise PersistenceFailure(f"Failed to get {self._table_name} by ID: {error}") from error

    async def create(self, entity: T) -> T:
        """
        Create a new entity.

        Args:
            entity: The entity to create.

        Returns:
            The created entity.
        """
        self._session.add(entity)
        await self._flush("create")
        await self._session.refresh(entity)
        return entity

    async def update(self, entity: T) -> T:
        """
        Flush pending changes of an existing entity.

        Args:
            entity: The entity to update.

        Returns:
            The updated entity.
        """
        await self._flush("update")
        await self._session.refresh(entity)
        return entity

    async def delete(self, entity: T) -> None:
        """
        Delete an entity.

        Args:
            entity: The entity to delete.
        """
        await self._session.delete(entity)
        await self._flush("delete")


class CandidateRepository(BaseRepository[CandidateModel]):
    """Repository for candidate operations."""

    @property
    def _model_class(self) -> type[CandidateModel]:
        """Get the model class."""
        return CandidateModel

    async def get_in_organization(
        self,
        candidate_id: int,
        organization_id: int,
    ) -> CandidateModel | None:
        """
        Get a candidate scoped to an organization.

        Args:
            candidate_id: Candidate's ID.
            organization_id: Owning organization's ID.

        Returns:
            The candidate if found in that organization, None otherwise.
        """
        stmt = select(CandidateModel).where(
            CandidateModel.id == candidate_id,
            CandidateModel.organization_id == organization_id,
        )
        return await self._scalar_one_or_none(stmt)

    async def get_by_email(self, organization_id: int, email: str) -> CandidateModel | None:
        """
        Get a candidate by email within an organization.

        Args:
            organization_id: Owning organization's ID.
            email: Candidate's email address.

        Returns:
            The candidate if found, None otherwise.
        """
        stmt = select(CandidateModel).where(
            CandidateModel.organization_id == organization_id,
            CandidateModel.email == email,
        )
        return await self._scalar_one_or_none(stmt)

    async def update_status(
        self,
        candidate: CandidateModel,
        status: CandidateStatus,
        updated_by: int,
    ) -> CandidateModel:
        """
        Persist a new candidate status.

        Args:
            candidate: Candidate to update.
            status: New overall status.
            updated_by: Acting user stamped on the row.

        Returns:
            The updated candidate.
        """
        candidate.status = status.value
        candidate.updated_by = updated_by
        return await self.update(candidate)


class ApplicationRepository(BaseRepository[ApplicationModel]):
    """Repository for application operations."""

    @property
    def _model_class(self) -> type[ApplicationModel]:
        """Get the model class."""
        return ApplicationModel

    async def get_in_organization(
        self,
        application_id: int,
        organization_id: int,
    ) -> ApplicationModel | None:
        """Get an application scoped to an organization."""
        stmt = select(ApplicationModel).where(
            ApplicationModel.id == application_id,
            ApplicationModel.organization_id == organization_id,
        )
        return await self._scalar_one_or_none(stmt)

    async def get_by_candidate_and_job(
        self,
        candidate_id: int,
        job_position_id: int,
    ) -> ApplicationModel | None:
        """Get the application of a candidate to a job position, if any."""
        stmt = select(ApplicationModel).where(
            ApplicationModel.candidate_id == candidate_id,
            ApplicationModel.job_position_id == job_position_id,
        )
        return await self._scalar_one_or_none(stmt)

    async def list_for_candidate(
        self,
        candidate_id: int,
        organization_id: int,
    ) -> list[ApplicationModel]:
        """
        Get all applications of a candidate.

        Args:
            candidate_id: Candidate's ID.
            organization_id: Owning organization's ID.

        Returns:
            Applications ordered by ID.
        """
        stmt = (
            select(ApplicationModel)
            .where(
                ApplicationModel.candidate_id == candidate_id,
                ApplicationModel.organization_id == organization_id,
            )
            .order_by(ApplicationModel.id)
        )
        return await self._scalars(stmt)

    async def update_status(
        self,
        application: ApplicationModel,
        status: ApplicationStatus,
        updated_by: int,
        notes: str | None = None,
    ) -> ApplicationModel:
        """
        Persist a new application status.

        Args:
            application: Application to update.
            status: New status.
            updated_by: Acting user stamped on the row.
            notes: Replacement notes; existing notes are kept when None.

        Returns:
            The updated application.
        """
        application.status = status.value
        application.updated_by = updated_by
        if notes is not None:
            application.notes = notes
        return await self.update(application)


class InterviewScheduleRepository(BaseRepository[InterviewScheduleModel]):
    """Repository for interview round operations."""

    @property
    def _model_class(self) -> type[InterviewScheduleModel]:
        """Get the model class."""
        return InterviewScheduleModel

    async def get_in_organization(
        self,
        interview_id: int,
        organization_id: int,
    ) -> InterviewScheduleModel | None:
        """Get an interview round scoped to an organization."""
        stmt = select(InterviewScheduleModel).where(
            InterviewScheduleModel.id == interview_id,
            InterviewScheduleModel.organization_id == organization_id,
        )
        return await self._scalar_one_or_none(stmt)

    async def list_for_application(self, application_id: int) -> list[InterviewScheduleModel]:
        """Get all rounds of an application, earliest first."""
        stmt = (
            select(InterviewScheduleModel)
            .where(InterviewScheduleModel.application_id == application_id)
            .order_by(InterviewScheduleModel.interview_date, InterviewScheduleModel.id)
        )
        return await self._scalars(stmt)


class StatusChangeLogRepository(BaseRepository[StatusChangeLogModel]):
    """Repository for the status change audit trail."""

    @property
    def _model_class(self) -> type[StatusChangeLogModel]:
        """Get the model class."""
        return StatusChangeLogModel

    async def record(
        self,
        entity_type: EntityType,
        entity_id: int,
        old_status: str,
        new_status: str,
        changed_by: int,
        reason: str,
    ) -> StatusChangeLogModel:
        """
        Append one status transition to the audit trail.

        Args:
            entity_type: Kind of entity that changed.
            entity_id: ID of the entity that changed.
            old_status: Status before the change.
            new_status: Status after the change.
            changed_by: Acting user.
            reason: Human-readable reason.

        Returns:
            The created log row.
        """
        entry = StatusChangeLogModel(
            entity_type=entity_type.value,
            entity_id=entity_id,
            old_status=old_status,
            new_status=new_status,
            changed_by=changed_by,
            reason=reason,
        )
        return await self.create(entry)

    async def list_for_entity(
        self,
        entity_type: EntityType,
        entity_id: int,
        limit: int = 100,
    ) -> list[StatusChangeLogModel]:
        """Get the status history of one entity, newest first."""
        stmt = (
            select(StatusChangeLogModel)
            .where(
                StatusChangeLogModel.entity_type == entity_type.value,
                StatusChangeLogModel.entity_id == entity_id,
            )
            .order_by(StatusChangeLogModel.created_at.desc(), StatusChangeLogModel.id.desc())
            .limit(limit)
        )
        return await self._scalars(stmt)
