"""Task lifecycle: creation, status transitions, subtasks, tags and ordering."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from flask import current_app
from sqlalchemy import and_, func

from database import db
from models.project import Project
from models.task import CLOSED_TASK_STATUSES, Task, TaskPriority, TaskStatus
from models.user import User
from services.errors import RecordNotFound, ReorderPartialFailure, ValidationFailed
from services.lifecycle import (
    apply_initial_status,
    apply_status_change,
    task_completion_percentage,
)
from services.tag_service import find_or_create_tags, get_owned_tags, serialize_tag
from utils.dates import isoformat, utcnow

DUE_SOON_WINDOW = timedelta(days=7)


def task_completion(task: Task) -> float:
    return task_completion_percentage(task.status, (subtask.status for subtask in task.subtasks))


def serialize_task(task: Task, *, include_subtasks: bool = True) -> dict[str, Any]:
    payload = {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "description_html": str(task.description_html),
        "status": task.status,
        "priority": task.priority,
        "start_date": isoformat(task.start_date),
        "due_date": isoformat(task.due_date),
        "sort_order": task.sort_order,
        "completed_at": isoformat(task.completed_at),
        "project_id": task.project_id,
        "assigned_to": task.assigned_to,
        "parent_task_id": task.parent_task_id,
        "tags": [serialize_tag(tag) for tag in task.tags],
        "completion_percentage": task_completion(task),
        "created_at": isoformat(task.created_at),
        "updated_at": isoformat(task.updated_at),
    }
    if include_subtasks:
        payload["subtasks"] = [
            serialize_task(subtask, include_subtasks=False) for subtask in task.subtasks
        ]
    return payload


def serialize_task_summary(task: Task) -> dict[str, Any]:
    """Compact representation used by lists and the dashboard."""
    project = task.project
    return {
        "id": task.id,
        "title": task.title,
        "status": task.status,
        "priority": task.priority,
        "due_date": isoformat(task.due_date),
        "project": {"id": project.id, "name": project.name, "color": project.color}
        if project
        else None,
    }


def _status_change_payload(task: Task, old_status: str) -> dict[str, Any]:
    return {
        "id": task.id,
        "status": task.status,
        "completed_at": isoformat(task.completed_at),
        "old_status": old_status,
    }


# Lookups
# ------------------------------
def get_task(owner_id: int, task_id: int) -> Task:
    task = Task.query.filter_by(id=task_id, owner_id=owner_id).first()
    if task is None:
        raise RecordNotFound("Task", task_id)
    return task


def _get_owned_project(owner_id: int, project_id: int) -> Project:
    project = Project.query.filter_by(id=project_id, owner_id=owner_id).first()
    if project is None:
        raise RecordNotFound("Project", project_id)
    return project


def _validate_status(status: str) -> str:
    try:
        return TaskStatus(status).value
    except ValueError:
        raise ValidationFailed.for_field("status", "The selected status is invalid.") from None


def _validate_priority(priority: str) -> str:
    try:
        return TaskPriority(priority).value
    except ValueError:
        raise ValidationFailed.for_field("priority", "The selected priority is invalid.") from None


def _validate_date_order(start_date: Optional[datetime], due_date: Optional[datetime]) -> None:
    if start_date and due_date and due_date < start_date:
        raise ValidationFailed.for_field(
            "due_date", "The due date must be after or equal to the start date"
        )


def _resolve_assignee(assigned_to: Optional[int]) -> Optional[int]:
    if assigned_to is None:
        return None
    if db.session.get(User, assigned_to) is None:
        raise ValidationFailed.for_field("assigned_to", "The selected assigned user does not exist.")
    return assigned_to


def _resolve_parent(
    owner_id: int, parent_task_id: Optional[int], project_id: int, task: Task | None = None
) -> Optional[Task]:
    if parent_task_id is None:
        return None
    parent = Task.query.filter_by(id=parent_task_id, owner_id=owner_id).first()
    if parent is None:
        raise ValidationFailed.for_field("parent_task_id", "The selected parent task does not exist.")
    if parent.project_id != project_id:
        raise ValidationFailed.for_field(
            "parent_task_id", "The parent task must belong to the same project."
        )
    if task is not None:
        ancestor = parent
        while ancestor is not None:
            if ancestor.id == task.id:
                raise ValidationFailed.for_field(
                    "parent_task_id", "A task cannot be nested under itself or its subtasks."
                )
            ancestor = ancestor.parent_task
    return parent


def _next_sort_order(project_id: int) -> int:
    current = (
        db.session.query(func.max(Task.sort_order))
        .filter(Task.project_id == project_id)
        .scalar()
    )
    return (current or 0) + 1


# Mutations
# ------------------------------
def create_task(
    owner_id: int,
    data: dict[str, Any],
    *,
    tag_ids: Iterable[int] = (),
    new_tags: Iterable[str] = (),
) -> Task:
    """Create a task in one of the owner's projects.

    ``tag_ids`` must reference the owner's tags; ``new_tags`` are free-text
    names resolved (or created) for the owner. Both sets are attached.
    """
    project_id = data.get("project_id")
    if project_id is None:
        raise ValidationFailed.for_field("project_id", "A project must be selected")
    project = Project.query.filter_by(id=project_id, owner_id=owner_id).first()
    if project is None:
        raise ValidationFailed.for_field("project_id", "The selected project does not exist")

    title = (data.get("title") or "").strip()
    if not title:
        raise ValidationFailed.for_field("title", "A task title is required")

    _validate_date_order(data.get("start_date"), data.get("due_date"))
    parent = _resolve_parent(owner_id, data.get("parent_task_id"), project.id)
    sort_order = data.get("sort_order") or _next_sort_order(project.id)
    tags = get_owned_tags(owner_id, tag_ids)
    for tag in find_or_create_tags(owner_id, new_tags):
        if tag not in tags:
            tags.append(tag)

    task = Task(
        title=title,
        description=data.get("description"),
        status=_validate_status(data.get("status") or TaskStatus.TODO.value),
        priority=_validate_priority(data.get("priority") or TaskPriority.MEDIUM.value),
        start_date=data.get("start_date"),
        due_date=data.get("due_date"),
        project=project,
        owner_id=owner_id,
        assigned_to=_resolve_assignee(data.get("assigned_to")),
        parent_task=parent,
        sort_order=sort_order,
        tags=tags,
    )
    apply_initial_status(task)

    db.session.add(task)
    db.session.flush()
    current_app.logger.info("Task %s created in project %s", task.id, project.id)
    return task


def update_task(
    owner_id: int,
    task_id: int,
    changes: dict[str, Any],
    *,
    tag_ids: Optional[Iterable[int]] = None,
) -> Task:
    """Apply the submitted ``changes``; ``tag_ids`` (when given) replaces the tags."""
    task = get_task(owner_id, task_id)

    if "title" in changes:
        title = (changes["title"] or "").strip()
        if not title:
            raise ValidationFailed.for_field("title", "A task title is required")
        task.title = title
    if "description" in changes:
        task.description = changes["description"]
    if "priority" in changes and changes["priority"]:
        task.priority = _validate_priority(changes["priority"])

    start_date = changes.get("start_date", task.start_date)
    due_date = changes.get("due_date", task.due_date)
    _validate_date_order(start_date, due_date)
    task.start_date = start_date
    task.due_date = due_date

    if "assigned_to" in changes:
        task.assigned_to = _resolve_assignee(changes["assigned_to"])
    if "parent_task_id" in changes:
        task.parent_task = _resolve_parent(
            owner_id, changes["parent_task_id"], task.project_id, task=task
        )
    if changes.get("sort_order") is not None:
        task.sort_order = changes["sort_order"]
    if "status" in changes and changes["status"]:
        apply_status_change(task, _validate_status(changes["status"]))

    if tag_ids is not None:
        task.tags = get_owned_tags(owner_id, tag_ids)
    return task


def set_task_status(owner_id: int, task_id: int, status: str) -> dict[str, Any]:
    task = get_task(owner_id, task_id)
    old_status = task.status
    apply_status_change(task, _validate_status(status))
    return _status_change_payload(task, old_status)


def toggle_task_completion(owner_id: int, task_id: int) -> dict[str, Any]:
    task = get_task(owner_id, task_id)
    old_status = task.status
    new_status = TaskStatus.TODO.value if task.is_completed else TaskStatus.COMPLETED.value
    apply_status_change(task, new_status)
    return _status_change_payload(task, old_status)


def _owned_tasks_by_id(owner_id: int, task_ids: list[int]) -> dict[int, Task]:
    """Return the owner's tasks for ``task_ids`` or reject the whole batch."""
    unique_ids = set(task_ids)
    tasks = Task.query.filter(Task.id.in_(unique_ids), Task.owner_id == owner_id).all()
    by_id = {task.id: task for task in tasks}
    missing = unique_ids - set(by_id)
    if missing:
        raise ReorderPartialFailure("Task", missing)
    return by_id


def bulk_update_status(owner_id: int, task_ids: Iterable[int], status: str) -> list[dict[str, Any]]:
    """Move every task to ``status``; nothing changes unless all ids are owned."""
    status = _validate_status(status)
    task_ids = list(task_ids)
    if not task_ids:
        raise ValidationFailed.for_field("task_ids", "At least one task must be selected.")
    tasks = _owned_tasks_by_id(owner_id, task_ids)
    now = utcnow()
    updated = []
    for task_id in dict.fromkeys(task_ids):
        task = tasks[task_id]
        old_status = task.status
        apply_status_change(task, status, now)
        updated.append(_status_change_payload(task, old_status))
    return updated


def _delete_with_subtasks(task: Task) -> int:
    removed = 0
    for subtask in list(task.subtasks):
        removed += _delete_with_subtasks(subtask) + 1
    db.session.delete(task)
    return removed


def delete_task(owner_id: int, task_id: int) -> int:
    """Delete the task and, first, all of its subtasks recursively.

    Returns the number of subtasks removed.
    """
    task = get_task(owner_id, task_id)
    removed = _delete_with_subtasks(task)
    db.session.flush()
    current_app.logger.info("Task %s deleted with %s subtask(s)", task_id, removed)
    return removed


def parse_sort_updates(updates: Any) -> list[tuple[int, int]]:
    """Validate a reorder payload: a list of ``{"id", "sort_order"}`` objects."""
    if not isinstance(updates, list) or not updates:
        raise ValidationFailed.for_field("updates", "The updates field is required.")
    parsed = []
    for entry in updates:
        if not isinstance(entry, dict):
            raise ValidationFailed.for_field("updates", "Each update must provide an id and a sort order.")
        item_id = entry.get("id")
        sort_order = entry.get("sort_order")
        if isinstance(item_id, bool) or not isinstance(item_id, int):
            raise ValidationFailed.for_field("updates", "Each update must provide an id and a sort order.")
        if isinstance(sort_order, bool) or not isinstance(sort_order, int) or sort_order < 0:
            raise ValidationFailed.for_field("updates", "Sort order must be a non-negative integer.")
        parsed.append((item_id, sort_order))
    return parsed


def reorder_tasks(owner_id: int, updates: Any) -> list[str]:
    """Apply ``sort_order`` updates; the batch is rejected unless every id is owned."""
    parsed = parse_sort_updates(updates)
    tasks = _owned_tasks_by_id(owner_id, [item_id for item_id, _ in parsed])
    details = []
    for item_id, sort_order in parsed:
        task = tasks[item_id]
        task.sort_order = sort_order
        details.append(f'"{task.title}" to position {sort_order}')
    return details


# Queries
# ------------------------------
def list_project_tasks(owner_id: int, project_id: int) -> list[Task]:
    _get_owned_project(owner_id, project_id)
    return (
        Task.query.filter_by(project_id=project_id, owner_id=owner_id)
        .order_by(Task.sort_order.asc(), Task.created_at.asc())
        .all()
    )


def count_by_status(query) -> dict[str, int]:
    rows = query.with_entities(Task.status, func.count(Task.id)).group_by(Task.status).all()
    counts = {status.value: 0 for status in TaskStatus}
    for status, count in rows:
        counts[status] = count
    return counts


def overdue_filter(now: datetime):
    return and_(Task.due_date < now, Task.status.notin_(CLOSED_TASK_STATUSES))


def due_soon_filter(now: datetime):
    return and_(
        Task.due_date.between(now, now + DUE_SOON_WINDOW),
        Task.status.notin_(CLOSED_TASK_STATUSES),
    )


def project_task_stats(owner_id: int, project_id: int) -> dict[str, Any]:
    _get_owned_project(owner_id, project_id)
    query = Task.query.filter(Task.project_id == project_id)
    counts = count_by_status(query)
    total = sum(counts.values())
    stats: dict[str, Any] = {"total": total, **counts}
    stats["overdue"] = query.filter(overdue_filter(utcnow())).count()
    stats["completion_percentage"] = (
        round(counts[TaskStatus.COMPLETED.value] / total * 100, 2) if total else 0
    )
    return stats


def list_overdue_tasks(owner_id: int, *, limit: int | None = None) -> list[Task]:
    query = (
        Task.query.filter(Task.owner_id == owner_id, overdue_filter(utcnow()))
        .order_by(Task.due_date.asc())
    )
    if limit:
        query = query.limit(limit)
    return query.all()


def list_tasks_due_soon(owner_id: int, *, limit: int | None = None) -> list[Task]:
    query = (
        Task.query.filter(Task.owner_id == owner_id, due_soon_filter(utcnow()))
        .order_by(Task.due_date.asc())
    )
    if limit:
        query = query.limit(limit)
    return query.all()


