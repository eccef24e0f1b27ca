"""A Project groups the Tasks of a User.

A User can create multiple Projects
A Project is owned by exactly one User
A Project contains multiple Tasks; deleting a Project deletes its Tasks
A Project is completed when its status is "completed"

"""
from __future__ import annotations

from enum import StrEnum

from database import db
from utils.dates import utcnow


class ProjectStatus(StrEnum):
    """Lifecycle states for projects."""

    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class ProjectPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


DEFAULT_PROJECT_COLOR = "#3B82F6"


class Project(db.Model):
    __tablename__ = "projects"

    __table_args__ = (
        db.Index("ix_projects_owner_status", "owner_id", "status"),
        db.Index("ix_projects_owner_due_date", "owner_id", "due_date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    color = db.Column(db.String(7), nullable=False, default=DEFAULT_PROJECT_COLOR)
    status = db.Column(db.String(20), nullable=False, default=ProjectStatus.ACTIVE.value)
    priority = db.Column(db.String(20), nullable=False, default=ProjectPriority.MEDIUM.value)
    start_date = db.Column(db.DateTime, nullable=True)
    due_date = db.Column(db.DateTime, nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    completed_at = db.Column(db.DateTime, nullable=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    tasks = db.relationship(
        "Task",
        back_populates="project",
        lazy=True,
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Project {self.name}>"
