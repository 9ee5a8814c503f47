"""
Failures raised at the operation boundary.
"""

from typing import Optional


class OrganizerError(Exception):
    """Base class for every failure reported by the organizer."""


class ValidationError(OrganizerError):
    """The requested operation is not allowed on the current state.

    Raised before anything is mutated or written.
    """


class PersistenceFailure(OrganizerError):
    """The persistence gateway rejected a write."""

    def __init__(self, operation: str, reason: Optional[str] = None):
        self.operation = operation
        self.reason = reason
        message = f"Persisting '{operation}' failed"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class LoadFailure(OrganizerError):
    """A bulk read from the persistence gateway failed."""

    def __init__(self, kind: str, reason: Optional[str] = None):
        self.kind = kind
        self.reason = reason
        message = f"Loading {kind} collection failed"
        if reason:
            message += f": {reason}"
        super().__init__(message)
