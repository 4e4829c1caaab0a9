"""
Exceptions raised by the status-sync engine and the recruitment service.

Nothing here is HTTP-shaped; callers map these onto their own responses.
"""


class StatusSyncError(Exception):
    """Base class for all recruitment status errors."""


class NotFoundError(StatusSyncError, LookupError):
    """A candidate, application or interview does not exist."""

    def __init__(self, entity: str, entity_id: int) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} with ID {entity_id} not found")


class ValidationError(StatusSyncError, ValueError):
    """Input rejected before any write happened."""


class InvalidResultError(ValidationError):
    """Interview result outside Pass / Fail / On Hold."""

    def __init__(self, result: object) -> None:
        self.result = result
        super().__init__(f"Invalid interview result: {result!r}")


class DuplicateError(StatusSyncError, ValueError):
    """A unique business key already exists."""


class PersistenceFailure(StatusSyncError):
    """The underlying store rejected a read or write."""


class ConcurrentUpdateError(PersistenceFailure):
    """A row changed underneath us between read and write."""
