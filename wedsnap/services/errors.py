"""Service error taxonomy and the result type returned at service boundaries."""

import logging
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for errors reported by service operations."""

    code = "error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class NotFound(ServiceError):
    code = "not_found"


class PermissionDenied(ServiceError):
    code = "permission_denied"


class InvalidRequest(ServiceError):
    code = "invalid_request"


class NoGuestsAvailable(ServiceError):
    code = "no_guests_available"


class RemoteCallFailed(ServiceError):
    """A store request was rejected; carries the backend message for display."""

    code = "remote_call_failed"


class StorageCleanupFailed(ServiceError):
    """Binary deletion failed after the row was removed. Logged, never surfaced."""

    code = "storage_cleanup_failed"


@dataclass
class Result(Generic[T]):
    data: Optional[T] = None
    error: Optional[ServiceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Optional[T] = None) -> "Result[T]":
        return cls(data=data)

    @classmethod
    def failure(cls, error: ServiceError) -> "Result[T]":
        return cls(error=error)


def remote_failure(session, exc: Exception, action: str) -> Result:
    """Roll back the session and report a failed store call."""
    session.rollback()
    logger.error("Error %s: %s", action, exc)
    return Result.failure(RemoteCallFailed(str(exc)))
