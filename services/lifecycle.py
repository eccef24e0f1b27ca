"""Pre-persist transformations shared by tasks and projects.

These functions work on any object exposing ``status`` and ``completed_at``
so they can be exercised without a database.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from utils.dates import utcnow

COMPLETED = "completed"


def apply_status_change(record, new_status: str, now: Optional[datetime] = None) -> bool:
    """Move ``record`` to ``new_status`` keeping ``completed_at`` consistent.

    Entering "completed" stamps ``completed_at``; leaving it clears the stamp.
    Returns False when the status was already ``new_status``.
    """
    old_status = record.status
    if new_status == old_status:
        return False
    if new_status == COMPLETED:
        record.completed_at = now or utcnow()
    elif old_status == COMPLETED:
        record.completed_at = None
    record.status = new_status
    return True


def apply_initial_status(record, now: Optional[datetime] = None) -> None:
    """Stamp ``completed_at`` on a record created directly as completed."""
    if record.status == COMPLETED:
        record.completed_at = record.completed_at or now or utcnow()
    else:
        record.completed_at = None


def completion_ratio(statuses: Iterable[str]) -> float:
    """Percentage of completed entries, rounded to two decimals; 0 when empty."""
    statuses = list(statuses)
    if not statuses:
        return 0
    completed = sum(1 for status in statuses if status == COMPLETED)
    return round(completed / len(statuses) * 100, 2)


def task_completion_percentage(status: str, subtask_statuses: Iterable[str]) -> float:
    """A childless task is 0 or 100; otherwise the share of completed subtasks."""
    subtask_statuses = list(subtask_statuses)
    if not subtask_statuses:
        return 100 if status == COMPLETED else 0
    return completion_ratio(subtask_statuses)


def project_completion_percentage(task_statuses: Iterable[str]) -> float:
    return completion_ratio(task_statuses)
