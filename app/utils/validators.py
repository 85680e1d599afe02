"""Validators."""

from typing import List


def validate_capacity_update(
    new_max_capacity: int,
    current_capacity: int,
    reason: str,
    upper_limit: int,
) -> tuple[bool, List[str]]:
    """Validate an admin override of a supervisor's maximum capacity."""
    errors = []

    if new_max_capacity < 0:
        errors.append("Maximum capacity cannot be negative")

    if new_max_capacity > upper_limit:
        errors.append(f"Maximum capacity cannot exceed {upper_limit}")

    if new_max_capacity < current_capacity:
        errors.append(
            f"Maximum capacity cannot be less than current capacity ({current_capacity})"
        )

    if not reason or not reason.strip():
        errors.append("Please provide a reason for this change")

    return len(errors) == 0, errors


def validate_project_details(title: str, description: str) -> tuple[bool, List[str]]:
    """Validate the free-text project fields of an application."""
    errors = []

    if not title or not title.strip():
        errors.append("Project title is required")

    if not description or not description.strip():
        errors.append("Project description is required")

    return len(errors) == 0, errors
