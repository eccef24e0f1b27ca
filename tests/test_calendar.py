import unittest
from datetime import datetime, timedelta

from app import app, db
from models.calendar_event import CalendarEvent
from services import calendar_service
from services.errors import RecordNotFound
from tests.utils.db import create_event, create_user, drop_database, reset_database
from utils.dates import utcnow


class CalendarServiceTestCase(unittest.TestCase):
    def setUp(self):
        app.config["TESTING"] = True
        reset_database(app)
        self.ctx = app.app_context()
        self.ctx.push()

        self.owner = create_user("owner")
        self.stranger = create_user("stranger")
        db.session.commit()

    def tearDown(self):
        db.session.remove()
        self.ctx.pop()
        drop_database(app)

    def test_range_query_includes_overlapping_events(self):
        create_event(self.owner, "Conference", datetime(2025, 5, 1, 9), datetime(2025, 5, 5, 17))
        create_event(self.owner, "Offsite", datetime(2025, 5, 10, 9), datetime(2025, 5, 12, 17))
        create_event(self.owner, "Lunch", datetime(2025, 5, 4, 12))
        create_event(self.stranger, "Not mine", datetime(2025, 5, 3, 12))
        db.session.commit()

        events = calendar_service.events_overlapping(
            self.owner.id, datetime(2025, 5, 3), datetime(2025, 5, 4, 23, 59, 59)
        )

        self.assertEqual([event.title for event in events], ["Conference", "Lunch"])

    def test_range_query_without_bounds_returns_everything(self):
        create_event(self.owner, "First", datetime(2025, 1, 1, 9))
        create_event(self.owner, "Second", datetime(2026, 1, 1, 9))
        db.session.commit()

        events = calendar_service.events_overlapping(self.owner.id, None, None)

        self.assertEqual(len(events), 2)

    def test_all_day_events_cover_whole_days(self):
        event = calendar_service.create_event(
            self.owner.id,
            {
                "title": "Holiday",
                "start_date": datetime(2025, 5, 1, 10, 30),
                "end_date": datetime(2025, 5, 2, 8),
                "all_day": True,
            },
        )

        self.assertEqual(event.start_date, datetime(2025, 5, 1))
        self.assertEqual(event.end_date, datetime(2025, 5, 2, 23, 59, 59, 999999))
        self.assertTrue(event.is_multi_day)
        self.assertEqual(event.duration_in_days, 2)
        self.assertIsNone(event.duration_in_hours)

    def test_timed_event_duration(self):
        event = create_event(
            self.owner, "Meeting", datetime(2025, 5, 1, 9), datetime(2025, 5, 1, 10, 30)
        )

        self.assertFalse(event.is_multi_day)
        self.assertEqual(event.duration_in_hours, 1.5)
        self.assertEqual(event.duration_in_days, 1)

    def test_calendar_record_shape(self):
        with_end = create_event(
            self.owner, "Meeting", datetime(2025, 5, 1, 9), datetime(2025, 5, 1, 10), description="Sync"
        )
        without_end = create_event(self.owner, "Reminder", datetime(2025, 5, 2, 9))

        record = calendar_service.to_calendar_record(with_end)
        open_record = calendar_service.to_calendar_record(without_end)

        self.assertEqual(record["start"], "2025-05-01T09:00:00")
        self.assertEqual(record["end"], "2025-05-01T10:00:00")
        self.assertFalse(record["allDay"])
        self.assertEqual(record["extendedProps"], {"description": "Sync", "user_id": self.owner.id})
        self.assertNotIn("end", open_record)

    def test_formatted_dates(self):
        timed = create_event(self.owner, "Call", datetime(2025, 5, 1, 14, 30))
        all_day = create_event(self.owner, "Trip", datetime(2025, 5, 1), all_day=True)

        self.assertEqual(calendar_service.serialize_event(timed)["formatted_start_date"], "May 1, 2025 2:30 PM")
        self.assertEqual(calendar_service.serialize_event(all_day)["formatted_start_date"], "May 1, 2025")

    def test_upcoming_events_flags(self):
        now = datetime(2025, 5, 1, 8)
        create_event(self.owner, "Tomorrow", datetime(2025, 5, 2, 9))
        create_event(self.owner, "Today", datetime(2025, 5, 1, 18))
        create_event(self.owner, "Too far", datetime(2025, 5, 20, 9))
        db.session.commit()

        upcoming = calendar_service.upcoming_events(self.owner.id, now=now)

        self.assertEqual([event["title"] for event in upcoming], ["Today", "Tomorrow"])
        self.assertTrue(upcoming[0]["is_today"])
        self.assertTrue(upcoming[1]["is_tomorrow"])
        self.assertEqual(upcoming[1]["days_until"], 1)

    def test_moving_event_to_all_day(self):
        event = create_event(self.owner, "Flexible", datetime(2025, 5, 1, 9), datetime(2025, 5, 1, 10))
        db.session.commit()

        calendar_service.update_event_dates(
            self.owner.id, event.id, datetime(2025, 5, 3, 11), None, all_day=True
        )

        self.assertTrue(event.all_day)
        self.assertEqual(event.start_date, datetime(2025, 5, 3))
        self.assertIsNone(event.end_date)

    def test_other_owners_event_is_not_found(self):
        event = create_event(self.stranger, "Private", datetime(2025, 5, 1, 9))
        db.session.commit()

        with self.assertRaises(RecordNotFound):
            calendar_service.get_event(self.owner.id, event.id)


class CalendarRoutesTestCase(unittest.TestCase):
    def setUp(self):
        app.config["TESTING"] = True
        app.config["WTF_CSRF_ENABLED"] = False
        reset_database(app)

        with app.app_context():
            owner = create_user("owner")
            db.session.commit()
            self.owner_id = owner.id

        self.client = app.test_client()
        with self.client.session_transaction() as client_session:
            client_session["user_id"] = self.owner_id

    def tearDown(self):
        drop_database(app)

    def _create(self, **payload):
        response = self.client.post("/calendar", json=payload)
        self.assertEqual(response.status_code, 201, response.get_json())
        return response.get_json()["event"]

    def test_create_all_day_event(self):
        event = self._create(
            title="Holiday",
            start_date="2025-05-01T10:30:00",
            end_date="2025-05-02",
            all_day=True,
        )

        self.assertEqual(event["start_date"], "2025-05-01T00:00:00")
        self.assertEqual(event["end_date"], "2025-05-02T23:59:59.999999")
        self.assertEqual(event["color"], "#3B82F6")
        self.assertTrue(event["is_multi_day"])

    def test_create_rejects_end_before_start(self):
        response = self.client.post(
            "/calendar",
            json={"title": "Backwards", "start_date": "2025-05-02T10:00:00", "end_date": "2025-05-01T10:00:00"},
        )

        self.assertEqual(response.status_code, 422)
        self.assertIn("end_date", response.get_json()["errors"])

    def test_create_requires_title_and_start(self):
        response = self.client.post("/calendar", json={"title": ""})

        errors = response.get_json()["errors"]
        self.assertEqual(response.status_code, 422)
        self.assertIn("title", errors)
        self.assertIn("start_date", errors)

    def test_create_rejects_unparseable_date(self):
        response = self.client.post("/calendar", json={"title": "Odd", "start_date": "next tuesday"})

        self.assertEqual(response.status_code, 422)
        self.assertIn("start_date", response.get_json()["errors"])

    def test_feed_filters_by_range(self):
        self._create(title="Inside", start_date="2025-05-01T09:00:00", end_date="2025-05-05T17:00:00")
        self._create(title="Outside", start_date="2025-05-10T09:00:00", end_date="2025-05-12T17:00:00")

        events = self.client.get(
            "/api/calendar/events?start=2025-05-03T00:00:00&end=2025-05-04T23:59:59"
        ).get_json()["events"]

        self.assertEqual([event["title"] for event in events], ["Inside"])
        self.assertIn("allDay", events[0])

    def test_calendar_page_lists_colors(self):
        self._create(title="May", start_date="2025-05-15T09:00:00")

        body = self.client.get("/calendar?start=2025-05-01&end=2025-05-31T23:59:59").get_json()

        self.assertEqual(len(body["availableColors"]), 10)
        self.assertEqual([event["title"] for event in body["events"]], ["May"])

    def test_events_for_date(self):
        self._create(title="Spanning", start_date="2025-05-01T09:00:00", end_date="2025-05-05T17:00:00")
        self._create(title="Other day", start_date="2025-05-07T09:00:00")

        missing = self.client.get("/api/calendar/events-for-date")
        found = self.client.get("/api/calendar/events-for-date?date=2025-05-03").get_json()["events"]

        self.assertEqual(missing.status_code, 400)
        self.assertEqual(missing.get_json()["message"], "Date parameter is required")
        self.assertEqual([event["title"] for event in found], ["Spanning"])

    def test_upcoming_endpoint(self):
        soon = (utcnow() + timedelta(days=2)).replace(microsecond=0)
        self._create(title="Soon", start_date=soon.isoformat())

        events = self.client.get("/api/calendar/upcoming").get_json()["events"]

        self.assertEqual([event["title"] for event in events], ["Soon"])
        self.assertEqual(events[0]["days_until"], 2)

    def test_partial_update_keeps_dates(self):
        event = self._create(title="Meeting", start_date="2025-05-01T09:00:00")

        response = self.client.patch(f"/calendar/{event['id']}", json={"title": "Standup"})

        updated = response.get_json()["event"]
        self.assertEqual(updated["title"], "Standup")
        self.assertEqual(updated["start_date"], "2025-05-01T09:00:00")

    def test_drag_and_drop_dates(self):
        event = self._create(title="Meeting", start_date="2025-05-01T09:00:00", end_date="2025-05-01T10:00:00")

        response = self.client.patch(
            f"/calendar/{event['id']}/dates",
            json={"start_date": "2025-05-08T09:00:00Z", "end_date": "2025-05-08T10:00:00Z"},
        )

        moved = response.get_json()["event"]
        self.assertEqual(response.status_code, 200)
        self.assertEqual(moved["start_date"], "2025-05-08T09:00:00")
        self.assertEqual(moved["end_date"], "2025-05-08T10:00:00")
        self.assertFalse(moved["all_day"])

    def test_show_and_delete(self):
        event = self._create(title="Meeting", start_date="2025-05-01T09:00:00")

        shown = self.client.get(f"/api/calendar/events/{event['id']}")
        deleted = self.client.delete(f"/calendar/{event['id']}")
        missing = self.client.get(f"/api/calendar/events/{event['id']}")

        self.assertEqual(shown.status_code, 200)
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(missing.status_code, 404)
        with app.app_context():
            self.assertEqual(CalendarEvent.query.count(), 0)
