"""
Database module for persistence.

Provides SQLAlchemy models, session wiring and the repository pattern for
recruitment data.
"""

from recruitment_status_sync.db.models import (
    ApplicationModel,
    Base,
    CandidateModel,
    InterviewScheduleModel,
    StatusChangeLogModel,
)
from recruitment_status_sync.db.repository import (
    ApplicationRepository,
    CandidateRepository,
    InterviewScheduleRepository,
    StatusChangeLogRepository,
)
from recruitment_status_sync.db.session import (
    create_engine,
    create_session_factory,
    init_models,
)

__all__ = [
    "Base",
    "CandidateModel",
    "ApplicationModel",
    "InterviewScheduleModel",
    "StatusChangeLogModel",
    "CandidateRepository",
    "ApplicationRepository",
    "InterviewScheduleRepository",
    "StatusChangeLogRepository",
    "create_engine",
    "create_session_factory",
    "init_models",
]
