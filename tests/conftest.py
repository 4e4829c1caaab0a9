"""
Shared fixtures: an in-memory SQLite database per test and seeding helpers.
"""

import itertools
from collections.abc import AsyncIterator, Iterable

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from recruitment_status_sync.config import Settings
from recruitment_status_sync.db import (
    ApplicationModel,
    CandidateModel,
    create_engine,
    create_session_factory,
    init_models,
)
from recruitment_status_sync.schemas import ApplicationStatus, CandidateStatus

from helpers import ORG_ID, CandidateFactory, SeededCandidate


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at an in-memory database, ignoring any .env file."""
    return Settings(_env_file=None, database_url="sqlite+aiosqlite://")


@pytest_asyncio.fixture
async def session(settings: Settings) -> AsyncIterator[AsyncSession]:
    """Create a fresh schema and yield a session bound to it."""
    engine = create_engine(settings, poolclass=StaticPool)
    await init_models(engine)
    session_factory = create_session_factory(engine)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def make_candidate(session: AsyncSession) -> CandidateFactory:
    """Seed a candidate with one application per given status."""
    counter = itertools.count(1)

    async def _make(
        application_statuses: Iterable[ApplicationStatus | str] = (),
        status: CandidateStatus = CandidateStatus.NEW,
        organization_id: int = ORG_ID,
    ) -> SeededCandidate:
        n = next(counter)
        candidate = CandidateModel(
            organization_id=organization_id,
            first_name="Jane",
            last_name=f"Doe{n}",
            email=f"jane.doe{n}@example.com",
            status=status.value,
        )
        session.add(candidate)
        await session.flush()

        applications = []
        for job_position_id, app_status in enumerate(application_statuses, start=1):
            application = ApplicationModel(
                organization_id=organization_id,
                candidate_id=candidate.id,
                job_position_id=job_position_id,
                status=ApplicationStatus(app_status).value,
            )
            session.add(application)
            applications.append(application)

        await session.commit()
        return candidate, applications

    return _make
