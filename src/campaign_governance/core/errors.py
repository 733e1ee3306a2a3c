"""Governance error taxonomy.

Expected outcomes (permission denied, review already decided) are raised
as these typed errors with a user-facing message so callers can react
instead of retrying blindly.
"""

from __future__ import annotations


class GovernanceError(Exception):
    """Base exception for all governance errors."""

    code = "unknown"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidArgument(GovernanceError):
    """Raised for a malformed decision, reason or identifier."""

    code = "invalid-argument"


class Unauthenticated(GovernanceError):
    """Raised when no actor identity was supplied."""

    code = "unauthenticated"


class PermissionDenied(GovernanceError):
    """Raised when the actor lacks the required capability."""

    code = "permission-denied"


class NotFound(GovernanceError):
    """Raised when a review or campaign does not exist."""

    code = "not-found"


class FailedPrecondition(GovernanceError):
    """Raised when a review is no longer pending, including a lost race."""

    code = "failed-precondition"


class Unavailable(GovernanceError):
    """Raised when the storage collaborator fails."""

    code = "unavailable"


class DeadlineExceeded(GovernanceError):
    """Raised when a storage step exceeds the caller's deadline.

    The write may or may not have been applied.
    """

    code = "deadline-exceeded"


class Internal(GovernanceError):
    """Raised for unexpected failures such as an unhashable audit payload."""

    code = "internal"
