"""Project aggregate: CRUD, ordering and completion percentage."""
from __future__ import annotations

from typing import Any

from flask import current_app
from sqlalchemy import func

from database import db
from models.project import DEFAULT_PROJECT_COLOR, Project, ProjectPriority, ProjectStatus
from models.task import Task
from services.errors import RecordNotFound, ReorderPartialFailure, ValidationFailed
from services.lifecycle import (
    apply_initial_status,
    apply_status_change,
    project_completion_percentage,
)
from services.tag_service import list_tags, serialize_tag
from services.task_service import parse_sort_updates, serialize_task
from utils.dates import isoformat


def project_completion(project: Project) -> float:
    return project_completion_percentage(task.status for task in project.tasks)


def serialize_project(project: Project) -> dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "color": project.color,
        "status": project.status,
        "priority": project.priority,
        "start_date": isoformat(project.start_date),
        "due_date": isoformat(project.due_date),
        "sort_order": project.sort_order,
        "completed_at": isoformat(project.completed_at),
        "completion_percentage": project_completion(project),
        "created_at": isoformat(project.created_at),
        "updated_at": isoformat(project.updated_at),
    }


def get_project(owner_id: int, project_id: int) -> Project:
    project = Project.query.filter_by(id=project_id, owner_id=owner_id).first()
    if project is None:
        raise RecordNotFound("Project", project_id)
    return project


def list_projects(owner_id: int) -> list[Project]:
    return (
        Project.query.filter_by(owner_id=owner_id)
        .order_by(Project.sort_order.asc(), Project.created_at.desc())
        .all()
    )


def get_project_detail(owner_id: int, project_id: int) -> dict[str, Any]:
    """Project with its top-level tasks (subtasks nested) and the owner's tags."""
    project = get_project(owner_id, project_id)
    tasks = (
        Task.query.filter_by(project_id=project.id)
        .order_by(Task.sort_order.asc(), Task.created_at.asc())
        .all()
    )
    payload = serialize_project(project)
    payload["tasks"] = [serialize_task(task) for task in tasks if task.parent_task_id is None]
    return {
        "project": payload,
        "tags": [serialize_tag(tag) for tag in list_tags(owner_id)],
        "completion_percentage": payload["completion_percentage"],
    }


def _validate_choice(enum_cls, field: str, value: str) -> str:
    try:
        return enum_cls(value).value
    except ValueError:
        raise ValidationFailed.for_field(field, f"The selected {field} is invalid.") from None


def _validate_date_order(start_date, due_date) -> None:
    if start_date and due_date and due_date < start_date:
        raise ValidationFailed.for_field(
            "due_date", "The due date must be after or equal to the start date"
        )


def get_next_sort_order(owner_id: int) -> int:
    """Return the next sort order value for a new project of the owner."""
    current = (
        db.session.query(func.max(Project.sort_order))
        .filter(Project.owner_id == owner_id)
        .scalar()
    )
    return (current or 0) + 1


def create_project(owner_id: int, data: dict[str, Any]) -> Project:
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationFailed.for_field("name", "A project name is required")
    _validate_date_order(data.get("start_date"), data.get("due_date"))

    project = Project(
        name=name,
        description=data.get("description"),
        color=data.get("color") or DEFAULT_PROJECT_COLOR,
        status=_validate_choice(ProjectStatus, "status", data.get("status") or ProjectStatus.ACTIVE.value),
        priority=_validate_choice(
            ProjectPriority, "priority", data.get("priority") or ProjectPriority.MEDIUM.value
        ),
        start_date=data.get("start_date"),
        due_date=data.get("due_date"),
        sort_order=data.get("sort_order") or get_next_sort_order(owner_id),
        owner_id=owner_id,
    )
    apply_initial_status(project)
    db.session.add(project)
    db.session.flush()
    current_app.logger.info("Project %s created for user %s", project.id, owner_id)
    return project


def update_project(owner_id: int, project_id: int, changes: dict[str, Any]) -> Project:
    project = get_project(owner_id, project_id)

    if "name" in changes:
        name = (changes["name"] or "").strip()
        if not name:
            raise ValidationFailed.for_field("name", "A project name is required")
        project.name = name
    if "description" in changes:
        project.description = changes["description"]
    if "color" in changes:
        project.color = changes["color"] or DEFAULT_PROJECT_COLOR
    if changes.get("priority"):
        project.priority = _validate_choice(ProjectPriority, "priority", changes["priority"])

    start_date = changes.get("start_date", project.start_date)
    due_date = changes.get("due_date", project.due_date)
    _validate_date_order(start_date, due_date)
    project.start_date = start_date
    project.due_date = due_date

    if changes.get("sort_order") is not None:
        project.sort_order = changes["sort_order"]
    if changes.get("status"):
        apply_status_change(project, _validate_choice(ProjectStatus, "status", changes["status"]))
    return project


def delete_project(owner_id: int, project_id: int) -> str:
    project = get_project(owner_id, project_id)
    name = project.name
    db.session.delete(project)
    db.session.flush()
    return name


def reorder_projects(owner_id: int, updates: Any) -> int:
    """Apply ``sort_order`` updates once every id is confirmed to be the owner's."""
    parsed = parse_sort_updates(updates)
    ids = {item_id for item_id, _ in parsed}
    projects = Project.query.filter(Project.id.in_(ids), Project.owner_id == owner_id).all()
    by_id = {project.id: project for project in projects}
    missing = ids - set(by_id)
    if missing:
        raise ReorderPartialFailure("Project", missing)
    for item_id, sort_order in parsed:
        by_id[item_id].sort_order = sort_order
    return len(parsed)
