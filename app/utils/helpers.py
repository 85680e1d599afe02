"""Helper utilities."""

from datetime import datetime, timezone
from typing import Union
from uuid import UUID


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def pair_key(first: Union[UUID, str], second: Union[UUID, str]) -> str:
    """Order-independent key for an unordered pair of ids."""
    a, b = sorted((str(first), str(second)))
    return f"{a}:{b}"


def application_key(student_id: Union[UUID, str], supervisor_id: Union[UUID, str]) -> str:
    """Key identifying a student's active application to a supervisor."""
    return f"{student_id}:{supervisor_id}"
