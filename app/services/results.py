"""
Typed outcomes returned by the partnership and application services.

Expected refusals (a precondition that does not hold, a caller acting on a
record that is not theirs, a missing record, exhausted optimistic retries) are
returned as a failed ``ServiceResult`` carrying an ``ErrorKind``. Only
infrastructure failures raise.
"""

import enum
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorCategory(str, enum.Enum):
    """How the boundary layer should treat an error."""
    PRECONDITION = "precondition"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    TRANSIENT = "transient"


class ErrorKind(str, enum.Enum):
    """Every refusal the services can return."""

    # Partnership preconditions
    ALREADY_PARTNERED_OR_PENDING = "already_partnered_or_pending"
    TARGET_UNAVAILABLE = "target_unavailable"
    RECIPROCAL_REQUEST_EXISTS = "reciprocal_request_exists"
    REQUEST_NOT_ACTIONABLE = "request_not_actionable"
    NOT_PAIRED = "not_paired"

    # Application preconditions
    SUPERVISOR_UNAVAILABLE = "supervisor_unavailable"
    DUPLICATE_APPLICATION = "duplicate_application"
    INVALID_TRANSITION = "invalid_transition"
    CAPACITY_EXCEEDED = "capacity_exceeded"

    VALIDATION_FAILED = "validation_failed"
    UNAUTHORIZED = "unauthorized"

    APPLICATION_NOT_FOUND = "application_not_found"
    STUDENT_NOT_FOUND = "student_not_found"
    SUPERVISOR_NOT_FOUND = "supervisor_not_found"

    CONTENTION = "contention"

    @property
    def category(self) -> ErrorCategory:
        return _CATEGORIES.get(self, ErrorCategory.PRECONDITION)

    @property
    def retryable(self) -> bool:
        return self.category is ErrorCategory.TRANSIENT


_CATEGORIES = {
    ErrorKind.UNAUTHORIZED: ErrorCategory.AUTHORIZATION,
    ErrorKind.APPLICATION_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ErrorKind.STUDENT_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ErrorKind.SUPERVISOR_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ErrorKind.VALIDATION_FAILED: ErrorCategory.VALIDATION,
    ErrorKind.CONTENTION: ErrorCategory.TRANSIENT,
}


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """Success value or a single error kind."""

    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None, message: str = "") -> "ServiceResult[T]":
        return cls(value=value, message=message)

    @classmethod
    def failure(cls, error: ErrorKind, message: str = "") -> "ServiceResult[T]":
        return cls(error=error, message=message or error.value.replace("_", " ").capitalize())
