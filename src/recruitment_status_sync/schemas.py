"""
Status vocabularies and pydantic schemas for the recruitment pipeline.

The enum values are the exact strings stored in the database.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CandidateStatus(str, Enum):
    """Overall recruitment status of a candidate."""

    NEW = "New"
    IN_PROCESS = "In Process"
    SELECTED = "Selected"
    REJECTED = "Rejected"
    ON_HOLD = "On Hold"


class ApplicationStatus(str, Enum):
    """Status of one application to a job position."""

    APPLIED = "Applied"
    SHORTLISTED = "Shortlisted"
    INTERVIEW_SCHEDULED = "Interview Scheduled"
    SELECTED = "Selected"
    REJECTED = "Rejected"


class InterviewStatus(str, Enum):
    """Lifecycle status of an interview round."""

    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    RESCHEDULED = "Rescheduled"


class InterviewResult(str, Enum):
    """Outcome recorded when interview feedback is submitted."""

    PASS = "Pass"
    FAIL = "Fail"
    ON_HOLD = "On Hold"


class InterviewMode(str, Enum):
    """How an interview round is conducted."""

    IN_PERSON = "In-person"
    VIDEO = "Video"
    PHONE = "Phone"


class EntityType(str, Enum):
    """Entity kinds recorded in the status change log."""

    CANDIDATE = "Candidate"
    APPLICATION = "Application"
    INTERVIEW = "Interview"


class StatusChange(BaseModel):
    """A single audited status transition."""

    model_config = ConfigDict(from_attributes=True)

    id: int | None = Field(default=None, description="Log row identifier")
    entity_type: EntityType = Field(..., description="Kind of entity that changed")
    entity_id: int = Field(..., description="Identifier of the entity that changed")
    old_status: str = Field(..., description="Status before the change")
    new_status: str = Field(..., description="Status after the change")
    changed_by: int = Field(..., description="User who triggered the change")
    reason: str = Field(default="Status updated", description="Why the status changed")
    created_at: datetime | None = Field(default=None, description="When the change was recorded")
