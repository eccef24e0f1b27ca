"""A task represent an objective that needs to be completed

A Task belongs to exactly one Project
A Task can contain multiple Tasks (sub-tasks) that live in the same Project
A Task is completed when its status is "completed"
Deleting a Task deletes all its sub-tasks
A User is the owner of the Task he creates
A Task can be assigned to any User

"""
from __future__ import annotations
from enum import StrEnum
from typing import Optional

import bleach
from database import db
from .tag import task_tags
from markdown import markdown as render_markdown
from markupsafe import Markup
from utils.dates import utcnow


class TaskStatus(StrEnum):
    """Lifecycle states for tasks."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# Statuses that no longer count towards overdue or due-soon lists
CLOSED_TASK_STATUSES = (TaskStatus.COMPLETED.value, TaskStatus.CANCELLED.value)


def render_task_description_html(description: Optional[str]) -> Markup:
    """Render task description Markdown into sanitized HTML."""
    if not description:
        return Markup("")
    html = render_markdown(
        description,
        extensions=["extra", "sane_lists"],
        output_format="html5",
        tab_length=2,
    )
    allowed_tags = set(bleach.sanitizer.ALLOWED_TAGS) | {
        "p",
        "pre",
        "code",
        "ul",
        "ol",
        "li",
        "table",
        "thead",
        "tbody",
        "tr",
        "th",
        "td",
        "span",
        "strong",
        "em",
        "blockquote",
        "br",
        "h1",
        "h2",
        "h3",
        "h4",
        "hr",
    }
    allowed_attributes = {
        **bleach.sanitizer.ALLOWED_ATTRIBUTES,
        "a": ["href", "title", "target", "rel"],
        "code": ["class"],
    }
    sanitized_html = bleach.clean(html, tags=allowed_tags, attributes=allowed_attributes)
    return Markup(sanitized_html)


class Task(db.Model):
    __tablename__ = "tasks"

    __table_args__ = (
        db.Index("ix_tasks_project_status", "project_id", "status"),
        db.Index("ix_tasks_owner_status", "owner_id", "status"),
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default=TaskStatus.TODO.value)
    priority = db.Column(db.String(20), nullable=False, default=TaskPriority.MEDIUM.value)
    start_date = db.Column(db.DateTime, nullable=True)
    due_date = db.Column(db.DateTime, nullable=True, index=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    completed_at = db.Column(db.DateTime, nullable=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    owner_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    assigned_to = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    parent_task_id = db.Column(db.Integer, db.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    project = db.relationship("Project", back_populates="tasks")
    owner = db.relationship("User", foreign_keys=[owner_id])
    assignee = db.relationship("User", foreign_keys=[assigned_to])
    subtasks = db.relationship(
        "Task",
        backref=db.backref("parent_task", remote_side=[id]),
        lazy=True,
        cascade="save-update, merge",
        order_by="Task.sort_order",
    )
    tags = db.relationship(
        "Tag",
        secondary=task_tags,
        back_populates="tasks",
        lazy="selectin",
    )

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED.value

    @property
    def description_html(self):
        return render_task_description_html(self.description)

    def __repr__(self):
        return f"<Task {self.title}>"
