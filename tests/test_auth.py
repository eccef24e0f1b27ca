import unittest

from app import app, db
from models.user import User
from tests.utils.db import create_user, drop_database, reset_database


class AuthTestCase(unittest.TestCase):
    def setUp(self):
        app.config["TESTING"] = True
        app.config["WTF_CSRF_ENABLED"] = False
        reset_database(app)

        with app.app_context():
            create_user("existing", "secret123")
            db.session.commit()

        self.client = app.test_client()

    def tearDown(self):
        app.config["WTF_CSRF_ENABLED"] = False
        drop_database(app)

    def test_signup_creates_user(self):
        response = self.client.post(
            "/signup",
            json={"username": "ada", "name": "Ada", "email": "ada@workspace.dev", "password": "pw"},
        )

        self.assertEqual(response.status_code, 201)
        with app.app_context():
            user = User.query.filter_by(username="ada").one()
            self.assertTrue(user.check_password("pw"))

    def test_signup_rejects_duplicates(self):
        response = self.client.post(
            "/signup",
            json={
                "username": "existing",
                "name": "Copy",
                "email": "existing@workspace.dev",
                "password": "pw",
            },
        )

        errors = response.get_json()["errors"]
        self.assertEqual(response.status_code, 422)
        self.assertIn("username", errors)
        self.assertIn("email", errors)

    def test_login_and_logout(self):
        login = self.client.post("/login", json={"username": "existing", "password": "secret123"})
        projects = self.client.get("/projects")
        self.client.get("/logout")
        after_logout = self.client.get("/projects")

        self.assertEqual(login.status_code, 200)
        self.assertEqual(login.get_json()["user"]["username"], "existing")
        self.assertEqual(projects.status_code, 200)
        self.assertEqual(after_logout.status_code, 401)

    def test_login_with_wrong_password(self):
        response = self.client.post("/login", json={"username": "existing", "password": "nope"})

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json()["message"], "Invalid username or password")

    def test_state_changing_requests_need_csrf_token_when_enabled(self):
        app.config["WTF_CSRF_ENABLED"] = True

        rejected = self.client.post("/login", json={"username": "existing", "password": "secret123"})
        token = self.client.get("/login").get_json()["csrf_token"]
        accepted = self.client.post(
            "/login",
            json={"username": "existing", "password": "secret123"},
            headers={"X-CSRFToken": token},
        )

        self.assertEqual(rejected.status_code, 400)
        self.assertEqual(accepted.status_code, 200)
