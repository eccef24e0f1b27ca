"""A Calendar Event is a dated entry on the User calendar.

An Event has a start and an optional end
An all-day Event covers whole days: its start and end are snapped to day boundaries

"""
from __future__ import annotations

from database import db
from utils.dates import utcnow

DEFAULT_EVENT_COLOR = "#3B82F6"

AVAILABLE_EVENT_COLORS = (
    "#3B82F6",  # Blue
    "#EF4444",  # Red
    "#10B981",  # Green
    "#F59E0B",  # Yellow
    "#8B5CF6",  # Purple
    "#F97316",  # Orange
    "#06B6D4",  # Cyan
    "#84CC16",  # Lime
    "#EC4899",  # Pink
    "#6B7280",  # Gray
)


class CalendarEvent(db.Model):
    __tablename__ = "calendar_events"

    __table_args__ = (
        db.Index("ix_calendar_events_owner_start", "owner_id", "start_date"),
        db.Index("ix_calendar_events_owner_end", "owner_id", "end_date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=True)
    color = db.Column(db.String(7), nullable=False, default=DEFAULT_EVENT_COLOR)
    all_day = db.Column(db.Boolean, nullable=False, default=False)
    owner_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_multi_day(self) -> bool:
        if self.end_date is None:
            return False
        return self.start_date.date() != self.end_date.date()

    @property
    def duration_in_hours(self) -> float | None:
        if self.end_date is None or self.all_day:
            return None
        return round((self.end_date - self.start_date).total_seconds() / 3600, 2)

    @property
    def duration_in_days(self) -> int | None:
        if self.end_date is None:
            return None
        return (self.end_date.date() - self.start_date.date()).days + 1

    def __repr__(self):
        return f"<CalendarEvent {self.title}>"
