"""Calendar blueprint: event CRUD and the widget's JSON feeds."""
from __future__ import annotations

from flask import Blueprint, request

from forms import CalendarEventForm, EventDatesForm
from routes import (
    bind_form,
    commit_session,
    current_user_id,
    ensure_valid,
    form_data,
    json_error,
    json_success,
    request_payload,
    submitted_changes,
)
from services import calendar_service
from services.errors import ValidationFailed
from utils.dates import parse_iso_datetime

calendar_bp = Blueprint("calendar", __name__)


def _date_arg(name: str):
    try:
        return parse_iso_datetime(request.args.get(name))
    except ValueError:
        raise ValidationFailed.for_field(name, f"The {name} parameter must be a valid date.") from None


@calendar_bp.route("/calendar", methods=["GET"])
def calendar_index():
    return json_success(
        **calendar_service.calendar_page(current_user_id(), _date_arg("start"), _date_arg("end"))
    )


@calendar_bp.route("/calendar", methods=["POST"])
def create_event():
    payload = request_payload()
    form = bind_form(CalendarEventForm, payload)
    ensure_valid(form)
    event = calendar_service.create_event(current_user_id(), form_data(form))
    commit_session("create calendar event")
    return json_success(
        201, message="Event created successfully", event=calendar_service.event_detail(event)
    )


@calendar_bp.route("/calendar/<int:event_id>", methods=["PUT", "PATCH"])
def update_event(event_id: int):
    payload = request_payload()
    form = bind_form(CalendarEventForm, payload)
    ensure_valid(form, payload)
    event = calendar_service.update_event(
        current_user_id(), event_id, submitted_changes(form, payload)
    )
    commit_session("update calendar event")
    return json_success(
        message="Event updated successfully", event=calendar_service.event_detail(event)
    )


@calendar_bp.route("/calendar/<int:event_id>", methods=["DELETE"])
def delete_event(event_id: int):
    calendar_service.delete_event(current_user_id(), event_id)
    commit_session("delete calendar event")
    return json_success(message="Event deleted successfully")


@calendar_bp.route("/calendar/<int:event_id>/dates", methods=["PATCH"])
def update_event_dates(event_id: int):
    payload = request_payload()
    form = bind_form(EventDatesForm, payload)
    ensure_valid(form)
    all_day = form.all_day.data if "all_day" in payload and payload["all_day"] is not None else None
    event = calendar_service.update_event_dates(
        current_user_id(), event_id, form.start_date.data, form.end_date.data, all_day
    )
    commit_session("move calendar event")
    return json_success(
        message="Event updated successfully", event=calendar_service.event_detail(event)
    )


@calendar_bp.route("/api/calendar/events", methods=["GET"])
def calendar_events():
    events = calendar_service.events_overlapping(
        current_user_id(), _date_arg("start"), _date_arg("end")
    )
    return json_success(events=[calendar_service.to_calendar_record(event) for event in events])


@calendar_bp.route("/api/calendar/events/<int:event_id>", methods=["GET"])
def show_event(event_id: int):
    event = calendar_service.get_event(current_user_id(), event_id)
    return json_success(event=calendar_service.event_detail(event))


@calendar_bp.route("/api/calendar/events-for-date", methods=["GET"])
def events_for_date():
    day = _date_arg("date")
    if day is None:
        return json_error("Date parameter is required", 400)
    events = calendar_service.events_for_date(current_user_id(), day)
    return json_success(events=[calendar_service.serialize_event(event) for event in events])


@calendar_bp.route("/api/calendar/upcoming", methods=["GET"])
def upcoming_events():
    return json_success(events=calendar_service.upcoming_events(current_user_id()))
