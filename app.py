import logging
import os

from dotenv import load_dotenv
from flask import Flask, g, redirect, request, session, url_for
from flask_migrate import Migrate
from flask_wtf.csrf import generate_csrf
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from database import db

load_dotenv()

# Initialize Flask app
app = Flask(__name__)
app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get(
    "DATABASE_URL", "sqlite:///workspacemanager.db"
)
app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-key")
app.config["NOTE_STORAGE_ROOT"] = os.environ.get(
    "NOTE_STORAGE_ROOT", os.path.join(app.instance_path, "storage")
)
app.config["NOTE_IMAGE_MAX_BYTES"] = int(
    os.environ.get("NOTE_IMAGE_MAX_BYTES", 10 * 1024 * 1024)
)
app.config["WTF_CSRF_ENABLED"] = os.environ.get("WTF_CSRF_ENABLED", "true").lower() not in (
    "0",
    "false",
    "no",
)

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

db.init_app(app)

# Models import should be after initializing db
from models.calendar_event import CalendarEvent  # noqa: E402,F401
from models.note import Note, NoteImage  # noqa: E402,F401
from models.project import Project  # noqa: E402,F401
from models.tag import Tag  # noqa: E402,F401
from models.task import Task  # noqa: E402,F401
from models.user import User  # noqa: E402

from forms import LoginForm, SignupForm  # noqa: E402
from routes import (  # noqa: E402
    bind_form,
    check_csrf,
    commit_session,
    ensure_valid,
    json_error,
    json_success,
    request_payload,
)
from routes.calendar import calendar_bp  # noqa: E402
from routes.dashboard import dashboard_bp  # noqa: E402
from routes.notes import notes_bp  # noqa: E402
from routes.projects import projects_bp  # noqa: E402
from routes.tags import tags_bp  # noqa: E402
from routes.tasks import tasks_bp  # noqa: E402
from services.errors import (  # noqa: E402
    ImageAccessDenied,
    ImageStorageError,
    RecordNotFound,
    ValidationFailed,
)

# Create flask command lines to update the db based on the model
# Usage:
# Initialize the migrations folder once
# > flask db init
# Create a migration script in ./migrations/versions
# > flask db migrate -m "Add calendar events"
# Run the update
# > flask db upgrade
migrate = Migrate(app, db)
app.register_blueprint(dashboard_bp)
app.register_blueprint(projects_bp)
app.register_blueprint(tasks_bp)
app.register_blueprint(tags_bp)
app.register_blueprint(notes_bp)
app.register_blueprint(calendar_bp)

# User Authentication
# ------------------------------
login_exempt_routes = ["login", "logout", "signup", "static"]


@app.before_request
def require_login():
    """All routes require a User logged in, except the ones listed in login_exempt_routes

    This method executes before every request and checks if there is a user_id
    stored in session. If so, it sets g.user to the matching User so that routes
    can pass its id down to the services.

    Returns:
        A 401 JSON response if no user is found in session
    """
    user_id = session.get("user_id")
    g.user = db.session.get(User, user_id) if user_id else None
    if g.user is None:
        session.pop("user_id", None)
        if request.endpoint and request.endpoint not in login_exempt_routes:
            return json_error("Authentication required.", 401)
    return None


app.before_request(check_csrf)


def authenticate_user(username, password):
    user = User.query.filter_by(username=username).first()
    if user and user.check_password(password):
        session["user_id"] = user.id
        session["user"] = user.name
        return user
    return None


@app.route("/login", methods=["GET", "POST"])
def login():
    """Open a session for the User.

    GET returns a CSRF token for the client to send with state-changing
    requests. POST expects ``username`` and ``password``.
    """
    if request.method == "GET":
        return json_success(csrf_token=generate_csrf())
    login_form = bind_form(LoginForm, request_payload())
    ensure_valid(login_form)
    user = authenticate_user(login_form.username.data, login_form.password.data)
    if user is None:
        return json_error("Invalid username or password", 401)
    return json_success(user=user.to_dict())


@app.route("/logout")
def logout():
    session.pop("user", None)
    session.pop("user_id", None)
    g.user = None
    return json_success(message="Logged out")


@app.route("/signup", methods=["POST"])
def signup():
    signup_form = bind_form(SignupForm, request_payload())
    ensure_valid(signup_form)
    errors = {}
    if User.query.filter_by(username=signup_form.username.data).first():
        errors["username"] = ["This username is already in use."]
    if User.query.filter_by(email=signup_form.email.data).first():
        errors["email"] = ["This email is already in use."]
    if errors:
        raise ValidationFailed(errors)
    user = User(
        username=signup_form.username.data,
        name=signup_form.name.data,
        email=signup_form.email.data,
    )
    user.set_password(signup_form.password.data)
    db.session.add(user)
    commit_session("register user")
    return json_success(201, message="Registration successful! You can now log in.", user=user.to_dict())


@app.route("/")
def home():
    return redirect(url_for("dashboard.dashboard"))


# Error handlers
# ------------------------------
@app.errorhandler(RecordNotFound)
def handle_not_found(error):
    return json_error(str(error), 404)


@app.errorhandler(ValidationFailed)
def handle_validation_failed(error):
    return json_error(str(error), 422, error.errors)


@app.errorhandler(ImageAccessDenied)
def handle_image_access_denied(error):
    return json_error(str(error), 403)


@app.errorhandler(ImageStorageError)
def handle_image_storage_error(error):
    logging.error("Image storage failure: %s", error, exc_info=True)
    return json_error("The image could not be stored.", 500)


@app.errorhandler(SQLAlchemyError)
def handle_database_error(error):
    db.session.rollback()
    logging.error("Database error: %s", error, exc_info=True)
    return json_error("A database error occurred. Please try again.", 500)


@app.errorhandler(HTTPException)
def handle_http_exception(error):
    return json_error(error.description, error.code)


# Application Execution
# ------------------------------
if __name__ == "__main__":
    app.run(debug=True)
