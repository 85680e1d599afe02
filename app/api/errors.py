"""Translate failed service results into HTTP errors."""

from fastapi import HTTPException, status

from app.services.results import ErrorCategory, ServiceResult

_STATUS_BY_CATEGORY = {
    ErrorCategory.PRECONDITION: status.HTTP_409_CONFLICT,
    ErrorCategory.AUTHORIZATION: status.HTTP_403_FORBIDDEN,
    ErrorCategory.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCategory.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCategory.TRANSIENT: status.HTTP_503_SERVICE_UNAVAILABLE,
}

# Seconds a client should wait before retrying after contention
CONTENTION_RETRY_AFTER = "1"


def raise_for_result(result: ServiceResult) -> None:
    """Raise an HTTPException if ``result`` is a failure; do nothing otherwise."""
    if result.ok:
        return

    kind = result.error
    headers = {"Retry-After": CONTENTION_RETRY_AFTER} if kind.retryable else None
    raise HTTPException(
        status_code=_STATUS_BY_CATEGORY[kind.category],
        detail={"error": kind.value, "message": result.message},
        headers=headers,
    )
