"""Read-only dashboard aggregate for one owner."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import func

from database import db
from models.calendar_event import CalendarEvent
from models.note import Note
from models.project import Project, ProjectPriority, ProjectStatus
from models.task import Task, TaskPriority
from services.calendar_service import serialize_event
from services.note_service import serialize_note_summary
from services.project_service import project_completion
from services.tag_service import serialize_tag
from services.task_service import count_by_status, due_soon_filter, overdue_filter, serialize_task_summary
from utils.dates import end_of_day, isoformat, start_of_day, utcnow

RECENT_NOTES_WINDOW = timedelta(days=7)


def _counts(model, column, owner_id: int, choices) -> dict[str, int]:
    rows = (
        db.session.query(column, func.count(model.id))
        .filter(model.owner_id == owner_id)
        .group_by(column)
        .all()
    )
    counts = {choice.value: 0 for choice in choices}
    for value, count in rows:
        counts[value] = count
    return counts


def completion_rate(completed: int, total: int) -> float:
    return round(completed / total * 100, 1) if total else 0


def _project_card(project: Project) -> dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "status": project.status,
        "priority": project.priority,
        "color": project.color,
        "completion_percentage": project_completion(project),
        "created_at": isoformat(project.created_at),
        "due_date": isoformat(project.due_date),
    }


def _days_between(start: datetime, end: datetime) -> int:
    return (end.date() - start.date()).days


def build_dashboard(owner_id: int, now: Optional[datetime] = None) -> dict[str, Any]:
    now = now or utcnow()
    tasks = Task.query.filter(Task.owner_id == owner_id)

    project_stats = _counts(Project, Project.status, owner_id, ProjectStatus)
    project_stats["total"] = sum(project_stats.values())

    task_stats = count_by_status(tasks)
    task_stats["total"] = sum(task_stats.values())
    task_stats["overdue"] = tasks.filter(overdue_filter(now)).count()
    task_stats["due_soon"] = tasks.filter(due_soon_filter(now)).count()

    notes = Note.query.filter(Note.owner_id == owner_id)
    note_stats = {
        "total": notes.count(),
        "pinned": notes.filter(Note.is_pinned.is_(True)).count(),
        "recent": notes.filter(Note.created_at >= now - RECENT_NOTES_WINDOW).count(),
    }

    events = CalendarEvent.query.filter(CalendarEvent.owner_id == owner_id)
    week_start = start_of_day(now - timedelta(days=now.weekday()))
    calendar_stats = {
        "total": events.count(),
        "today": events.filter(
            CalendarEvent.start_date.between(start_of_day(now), end_of_day(now))
        ).count(),
        "this_week": events.filter(
            CalendarEvent.start_date.between(week_start, end_of_day(week_start + timedelta(days=6)))
        ).count(),
    }

    recent_projects = (
        Project.query.filter_by(owner_id=owner_id).order_by(Project.created_at.desc()).limit(5).all()
    )
    recent_tasks = []
    for task in tasks.order_by(Task.created_at.desc()).limit(10).all():
        card = serialize_task_summary(task)
        card["created_at"] = isoformat(task.created_at)
        card["tags"] = [serialize_tag(tag) for tag in task.tags]
        recent_tasks.append(card)

    overdue_tasks = []
    for task in tasks.filter(overdue_filter(now)).order_by(Task.due_date.asc()).limit(5).all():
        card = serialize_task_summary(task)
        card["days_overdue"] = _days_between(task.due_date, now)
        overdue_tasks.append(card)

    tasks_due_soon = []
    for task in tasks.filter(due_soon_filter(now)).order_by(Task.due_date.asc()).limit(5).all():
        card = serialize_task_summary(task)
        card["days_until_due"] = _days_between(now, task.due_date)
        tasks_due_soon.append(card)

    upcoming_events = []
    for event in (
        events.filter(CalendarEvent.start_date >= now)
        .order_by(CalendarEvent.start_date.asc())
        .limit(5)
        .all()
    ):
        card = serialize_event(event)
        card["days_until_event"] = _days_between(now, event.start_date)
        upcoming_events.append(card)

    latest_notes = notes.order_by(Note.updated_at.desc()).limit(5).all()

    return {
        "project_stats": project_stats,
        "task_stats": task_stats,
        "note_stats": note_stats,
        "calendar_stats": calendar_stats,
        "recent_projects": [_project_card(project) for project in recent_projects],
        "recent_tasks": recent_tasks,
        "latest_notes": [serialize_note_summary(note) for note in latest_notes],
        "upcoming_events": upcoming_events,
        "overdue_tasks": overdue_tasks,
        "tasks_due_soon": tasks_due_soon,
        "project_priority_distribution": _counts(Project, Project.priority, owner_id, ProjectPriority),
        "task_priority_distribution": _counts(Task, Task.priority, owner_id, TaskPriority),
        "completion_rates": {
            "projects": completion_rate(
                project_stats[ProjectStatus.COMPLETED.value], project_stats["total"]
            ),
            "tasks": completion_rate(task_stats["completed"], task_stats["total"]),
        },
        "notifications": {
            "total": task_stats["overdue"] + task_stats["due_soon"] + calendar_stats["today"],
            "overdue_tasks": task_stats["overdue"],
            "due_soon_tasks": task_stats["due_soon"],
            "today_events": calendar_stats["today"],
        },
    }
