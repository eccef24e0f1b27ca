import unittest
from datetime import timedelta

from app import app, db
from services.dashboard_service import build_dashboard, completion_rate
from tests.utils.db import (
    create_event,
    create_note,
    create_project,
    create_task,
    create_user,
    drop_database,
    reset_database,
)
from utils.dates import utcnow


def test_completion_rate_rounds_to_one_decimal():
    assert completion_rate(1, 3) == 33.3
    assert completion_rate(0, 0) == 0
    assert completion_rate(4, 4) == 100.0


class DashboardTestCase(unittest.TestCase):
    def setUp(self):
        app.config["TESTING"] = True
        app.config["WTF_CSRF_ENABLED"] = False
        reset_database(app)

        with app.app_context():
            now = utcnow()
            owner = create_user("owner")
            stranger = create_user("stranger")

            active = create_project(owner, "Active", priority="high")
            create_project(owner, "Shipped", status="completed")
            create_task(active, "Late", due_date=now - timedelta(days=3))
            create_task(active, "Soon", due_date=now + timedelta(days=2), priority="urgent")
            create_task(active, "Done", status="completed")
            create_note(owner, "Pinned", "<p>keep</p>", is_pinned=True)
            create_event(owner, "Review", now + timedelta(days=2))

            foreign = create_project(stranger, "Foreign")
            create_task(foreign, "Foreign late", due_date=now - timedelta(days=1))
            create_note(stranger, "Foreign note")
            db.session.commit()
            self.owner_id = owner.id

        self.client = app.test_client()

    def tearDown(self):
        drop_database(app)

    def test_aggregates_only_owner_records(self):
        with app.app_context():
            dashboard = build_dashboard(self.owner_id)

        self.assertEqual(dashboard["project_stats"]["total"], 2)
        self.assertEqual(dashboard["project_stats"]["completed"], 1)
        self.assertEqual(dashboard["task_stats"]["total"], 3)
        self.assertEqual(dashboard["task_stats"]["completed"], 1)
        self.assertEqual(dashboard["task_stats"]["overdue"], 1)
        self.assertEqual(dashboard["task_stats"]["due_soon"], 1)
        self.assertEqual(dashboard["note_stats"], {"total": 1, "pinned": 1, "recent": 1})
        self.assertEqual(dashboard["calendar_stats"]["total"], 1)
        self.assertEqual(dashboard["completion_rates"], {"projects": 50.0, "tasks": 33.3})

    def test_lists_and_distributions(self):
        with app.app_context():
            dashboard = build_dashboard(self.owner_id)

        self.assertEqual([task["title"] for task in dashboard["overdue_tasks"]], ["Late"])
        self.assertEqual(dashboard["overdue_tasks"][0]["days_overdue"], 3)
        self.assertEqual(dashboard["tasks_due_soon"][0]["days_until_due"], 2)
        self.assertEqual(dashboard["upcoming_events"][0]["days_until_event"], 2)
        self.assertEqual(len(dashboard["recent_tasks"]), 3)
        self.assertEqual([note["title"] for note in dashboard["latest_notes"]], ["Pinned"])
        self.assertEqual(dashboard["project_priority_distribution"], {"low": 0, "medium": 1, "high": 1})
        self.assertEqual(dashboard["task_priority_distribution"]["urgent"], 1)
        self.assertEqual(dashboard["notifications"]["overdue_tasks"], 1)

    def test_dashboard_route(self):
        with self.client.session_transaction() as client_session:
            client_session["user_id"] = self.owner_id

        response = self.client.get("/dashboard")
        home = self.client.get("/")

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.get_json()["success"])
        self.assertIn("task_stats", response.get_json())
        self.assertEqual(home.status_code, 302)
        self.assertTrue(home.headers["Location"].endswith("/dashboard"))

    def test_dashboard_requires_login(self):
        response = self.client.get("/dashboard")

        self.assertEqual(response.status_code, 401)
