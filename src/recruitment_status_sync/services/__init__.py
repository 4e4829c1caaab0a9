"""
Service layer for recruitment pipeline operations.
"""

from recruitment_status_sync.services.recruitment_service import RecruitmentService

__all__ = ["RecruitmentService"]
