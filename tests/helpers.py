"""
Constants and type aliases shared by the test modules.
"""

from collections.abc import Awaitable, Callable

from recruitment_status_sync.db import ApplicationModel, CandidateModel

ORG_ID = 10
USER_ID = 42

SeededCandidate = tuple[CandidateModel, list[ApplicationModel]]
CandidateFactory = Callable[..., Awaitable[SeededCandidate]]
