import unittest
from datetime import timedelta

from app import app, db
from models.project import Project
from models.task import Task
from tests.utils.db import create_project, create_task, create_user, drop_database, reset_database
from utils.dates import utcnow


class TaskRoutesTestCase(unittest.TestCase):
    def setUp(self):
        app.config["TESTING"] = True
        app.config["WTF_CSRF_ENABLED"] = False
        reset_database(app)

        with app.app_context():
            owner = create_user("owner")
            stranger = create_user("stranger")
            project = create_project(owner, "Launch")
            foreign_project = create_project(stranger, "Elsewhere")
            foreign_task = create_task(foreign_project, "Not yours")
            db.session.commit()
            self.owner_id = owner.id
            self.project_id = project.id
            self.foreign_task_id = foreign_task.id

        self.client = app.test_client()
        with self.client.session_transaction() as client_session:
            client_session["user_id"] = self.owner_id

    def tearDown(self):
        drop_database(app)

    def _create(self, **payload):
        payload.setdefault("project_id", self.project_id)
        response = self.client.post("/tasks", json=payload)
        self.assertEqual(response.status_code, 201, response.get_json())
        return response.get_json()["task"]

    def test_create_task_with_tags_and_markdown(self):
        task = self._create(
            title="Write docs",
            description="Use **bold** text",
            priority="high",
            due_date="2030-01-01T09:00:00Z",
            new_tags=["Docs", " Docs ", "Docs"],
        )

        self.assertEqual(task["priority"], "high")
        self.assertEqual(task["due_date"], "2030-01-01T09:00:00")
        self.assertIn("<strong>bold</strong>", task["description_html"])
        self.assertEqual([tag["slug"] for tag in task["tags"]], ["docs"])

    def test_create_task_requires_title_and_project(self):
        response = self.client.post("/tasks", json={"title": ""})

        self.assertEqual(response.status_code, 422)
        errors = response.get_json()["errors"]
        self.assertIn("title", errors)
        self.assertIn("project_id", errors)

    def test_create_task_rejects_bad_priority(self):
        response = self.client.post(
            "/tasks", json={"project_id": self.project_id, "title": "Odd", "priority": "someday"}
        )

        self.assertEqual(response.status_code, 422)
        self.assertIn("priority", response.get_json()["errors"])

    def test_update_keeps_unsent_fields(self):
        task = self._create(title="Keep me", description="original", priority="low")

        response = self.client.patch(f"/tasks/{task['id']}", json={"title": "Renamed"})

        updated = response.get_json()["task"]
        self.assertEqual(updated["title"], "Renamed")
        self.assertEqual(updated["description"], "original")
        self.assertEqual(updated["priority"], "low")

    def test_status_endpoint_reports_transition(self):
        task = self._create(title="Finish")

        response = self.client.patch(f"/tasks/{task['id']}/status", json={"status": "completed"})

        body = response.get_json()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(body["task"]["old_status"], "todo")
        self.assertEqual(body["task"]["status"], "completed")
        self.assertIsNotNone(body["task"]["completed_at"])

    def test_status_endpoint_rejects_unknown_status(self):
        task = self._create(title="Finish")

        response = self.client.patch(f"/tasks/{task['id']}/status", json={"status": "finished"})

        self.assertEqual(response.status_code, 422)

    def test_toggle_completion(self):
        task = self._create(title="Toggle", status="completed")

        response = self.client.patch(f"/tasks/{task['id']}/toggle-completion")

        self.assertEqual(response.get_json()["task"]["status"], "todo")
        self.assertIsNone(response.get_json()["task"]["completed_at"])

    def test_delete_reports_subtask_count(self):
        parent = self._create(title="Parent")
        child = self._create(title="Child", parent_task_id=parent["id"])
        self._create(title="Grandchild", parent_task_id=child["id"])

        response = self.client.delete(f"/tasks/{parent['id']}")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["subtasks_deleted"], 2)
        with app.app_context():
            self.assertEqual(Task.query.filter_by(project_id=self.project_id).count(), 0)

    def test_bulk_status_with_foreign_task_is_rejected(self):
        task = self._create(title="Mine")

        response = self.client.post(
            "/tasks/bulk-status",
            json={"task_ids": [task["id"], self.foreign_task_id], "status": "completed"},
        )

        self.assertEqual(response.status_code, 404)
        with app.app_context():
            self.assertEqual(db.session.get(Task, task["id"]).status, "todo")

    def test_bulk_status(self):
        first = self._create(title="First")
        second = self._create(title="Second")

        response = self.client.post(
            "/tasks/bulk-status",
            json={"task_ids": [first["id"], second["id"]], "status": "in_progress"},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["updated_count"], 2)

    def test_reorder_with_foreign_task_changes_nothing(self):
        task = self._create(title="Mine")

        response = self.client.post(
            "/tasks/reorder",
            json={
                "updates": [
                    {"id": task["id"], "sort_order": 10},
                    {"id": self.foreign_task_id, "sort_order": 11},
                ]
            },
        )

        self.assertEqual(response.status_code, 404)
        with app.app_context():
            self.assertEqual(db.session.get(Task, task["id"]).sort_order, task["sort_order"])
            self.assertEqual(db.session.get(Task, self.foreign_task_id).sort_order, 0)

    def test_reorder_requires_updates(self):
        response = self.client.post("/tasks/reorder", json={"updates": []})

        self.assertEqual(response.status_code, 422)

    def test_overdue_and_due_soon(self):
        with app.app_context():
            now = utcnow()
            project = db.session.get(Project, self.project_id)
            create_task(project, "Late", due_date=now - timedelta(days=3))
            create_task(project, "Soon", due_date=now + timedelta(days=2))
            db.session.commit()

        overdue = self.client.get("/tasks/overdue").get_json()["tasks"]
        due_soon = self.client.get("/tasks/due-soon").get_json()["tasks"]

        self.assertEqual([task["title"] for task in overdue], ["Late"])
        self.assertEqual([task["title"] for task in due_soon], ["Soon"])
        self.assertEqual(overdue[0]["project"]["name"], "Launch")

    def test_project_task_reads(self):
        self._create(title="Open")
        self._create(title="Closed", status="completed")

        tasks = self.client.get(f"/projects/{self.project_id}/tasks").get_json()["tasks"]
        stats = self.client.get(f"/projects/{self.project_id}/task-stats").get_json()["stats"]

        self.assertEqual(len(tasks), 2)
        self.assertEqual(stats["total"], 2)
        self.assertEqual(stats["completion_percentage"], 50)
