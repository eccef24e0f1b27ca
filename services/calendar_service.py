"""Calendar events: range queries, all-day normalization and widget records."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional

from flask import current_app
from sqlalchemy import and_, or_

from database import db
from models.calendar_event import AVAILABLE_EVENT_COLORS, DEFAULT_EVENT_COLOR, CalendarEvent
from services.errors import RecordNotFound, ValidationFailed
from utils.dates import end_of_day, format_display_date, isoformat, month_bounds, start_of_day, utcnow

UPCOMING_WINDOW = timedelta(days=7)
UPCOMING_LIMIT = 10


def available_colors() -> list[str]:
    return list(AVAILABLE_EVENT_COLORS)


def normalize_all_day(
    start_date: datetime, end_date: Optional[datetime]
) -> tuple[datetime, Optional[datetime]]:
    """Snap an all-day event to whole days: 00:00:00 of the start, 23:59:59.999999 of the end."""
    return start_of_day(start_date), end_of_day(end_date) if end_date is not None else None


def _overlap_filter(range_start: datetime, range_end: datetime):
    return or_(
        CalendarEvent.start_date.between(range_start, range_end),
        CalendarEvent.end_date.between(range_start, range_end),
        and_(CalendarEvent.start_date <= range_start, CalendarEvent.end_date >= range_end),
    )


# Serialization
# ------------------------------
def to_calendar_record(event: CalendarEvent) -> dict[str, Any]:
    """Shape understood by the calendar widget."""
    record = {
        "id": event.id,
        "title": event.title,
        "start": isoformat(event.start_date),
        "color": event.color,
        "allDay": event.all_day,
        "extendedProps": {
            "description": event.description,
            "user_id": event.owner_id,
        },
    }
    if event.end_date is not None:
        record["end"] = isoformat(event.end_date)
    return record


def serialize_event(event: CalendarEvent) -> dict[str, Any]:
    return {
        "id": event.id,
        "title": event.title,
        "description": event.description,
        "start_date": isoformat(event.start_date),
        "end_date": isoformat(event.end_date),
        "color": event.color,
        "all_day": event.all_day,
        "formatted_start_date": format_display_date(event.start_date, not event.all_day),
        "formatted_end_date": format_display_date(event.end_date, not event.all_day),
    }


def event_detail(event: CalendarEvent) -> dict[str, Any]:
    payload = serialize_event(event)
    payload.update(
        {
            "is_multi_day": event.is_multi_day,
            "duration_in_hours": event.duration_in_hours,
            "duration_in_days": event.duration_in_days,
            "created_at": isoformat(event.created_at),
            "updated_at": isoformat(event.updated_at),
        }
    )
    return payload


# Queries
# ------------------------------
def get_event(owner_id: int, event_id: int) -> CalendarEvent:
    event = CalendarEvent.query.filter_by(id=event_id, owner_id=owner_id).first()
    if event is None:
        raise RecordNotFound("Event", event_id)
    return event


def events_overlapping(
    owner_id: int, range_start: Optional[datetime], range_end: Optional[datetime]
) -> list[CalendarEvent]:
    """Events touching [range_start, range_end], inclusive; every event when a bound is missing."""
    query = CalendarEvent.query.filter(CalendarEvent.owner_id == owner_id)
    if range_start is not None and range_end is not None:
        query = query.filter(_overlap_filter(range_start, range_end))
    return query.order_by(CalendarEvent.start_date.asc()).all()


def calendar_page(
    owner_id: int, range_start: Optional[datetime] = None, range_end: Optional[datetime] = None
) -> dict[str, Any]:
    """Events of the requested range, the current month by default."""
    month_start, month_end = month_bounds(utcnow())
    events = events_overlapping(owner_id, range_start or month_start, range_end or month_end)
    return {
        "availableColors": available_colors(),
        "events": [serialize_event(event) for event in events],
    }


def events_for_date(owner_id: int, day: datetime) -> list[CalendarEvent]:
    return events_overlapping(owner_id, start_of_day(day), end_of_day(day))


def upcoming_events(
    owner_id: int, now: Optional[datetime] = None, limit: int = UPCOMING_LIMIT
) -> list[dict[str, Any]]:
    now = now or utcnow()
    events = (
        CalendarEvent.query.filter(
            CalendarEvent.owner_id == owner_id,
            _overlap_filter(start_of_day(now), end_of_day(now + UPCOMING_WINDOW)),
        )
        .order_by(CalendarEvent.start_date.asc())
        .limit(limit)
        .all()
    )
    today = now.date()
    upcoming = []
    for event in events:
        payload = serialize_event(event)
        event_day = event.start_date.date()
        payload["is_today"] = event_day == today
        payload["is_tomorrow"] = event_day == today + timedelta(days=1)
        payload["days_until"] = (event_day - today).days
        upcoming.append(payload)
    return upcoming


# Mutations
# ------------------------------
def _apply_dates(event: CalendarEvent, start_date: datetime, end_date: Optional[datetime]) -> None:
    if start_date is None:
        raise ValidationFailed.for_field("start_date", "A start date is required")
    if end_date is not None and end_date < start_date:
        raise ValidationFailed.for_field(
            "end_date", "The end date must be after or equal to the start date"
        )
    if event.all_day:
        start_date, end_date = normalize_all_day(start_date, end_date)
    event.start_date = start_date
    event.end_date = end_date


def create_event(owner_id: int, data: dict[str, Any]) -> CalendarEvent:
    title = (data.get("title") or "").strip()
    if not title:
        raise ValidationFailed.for_field("title", "An event title is required")
    event = CalendarEvent(
        title=title,
        description=data.get("description"),
        color=data.get("color") or DEFAULT_EVENT_COLOR,
        all_day=bool(data.get("all_day", False)),
        owner_id=owner_id,
    )
    _apply_dates(event, data.get("start_date"), data.get("end_date"))
    db.session.add(event)
    db.session.flush()
    current_app.logger.info("Calendar event %s created for user %s", event.id, owner_id)
    return event


def update_event(owner_id: int, event_id: int, changes: dict[str, Any]) -> CalendarEvent:
    event = get_event(owner_id, event_id)
    if "title" in changes:
        title = (changes["title"] or "").strip()
        if not title:
            raise ValidationFailed.for_field("title", "An event title is required")
        event.title = title
    if "description" in changes:
        event.description = changes["description"]
    if "color" in changes:
        event.color = changes["color"] or DEFAULT_EVENT_COLOR
    if "all_day" in changes and changes["all_day"] is not None:
        event.all_day = bool(changes["all_day"])
    _apply_dates(
        event,
        changes.get("start_date", event.start_date),
        changes.get("end_date", event.end_date),
    )
    return event


def update_event_dates(
    owner_id: int,
    event_id: int,
    start_date: datetime,
    end_date: Optional[datetime] = None,
    all_day: Optional[bool] = None,
) -> CalendarEvent:
    """Move an event after a drag and drop on the calendar."""
    event = get_event(owner_id, event_id)
    if all_day is not None:
        event.all_day = all_day
    _apply_dates(event, start_date, end_date)
    return event


def delete_event(owner_id: int, event_id: int) -> None:
    event = get_event(owner_id, event_id)
    db.session.delete(event)
    db.session.flush()
