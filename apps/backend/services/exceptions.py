"""
Service-layer error types.

Every error is a ValueError so callers that only care about "bad request"
can keep catching ValueError. Routes map the subclasses to HTTP status codes
via ``status_code`` and merge ``extra`` into the JSON error body.
"""

from typing import Any, Dict


class PortalError(ValueError):
    """Base class for errors with an HTTP status and extra response fields."""

    status_code = 400

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra: Dict[str, Any] = extra


class InvalidInputError(PortalError):
    """Malformed IDs, gender mismatch, missing fields."""


class StateError(PortalError):
    """Deadline passed, team already confirmed, payment already complete."""


class NotFoundError(PortalError):
    """User, team, game or notification missing."""

    status_code = 404


class ForbiddenError(PortalError):
    """Caller is not allowed to act on the resource (e.g. not the leader)."""

    status_code = 403


class ConflictError(PortalError):
    """Duplicate registration, already-processed invitation, already a member."""

    status_code = 409
