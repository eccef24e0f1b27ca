from flask_wtf import FlaskForm
from wtforms import (
    BooleanField,
    Field,
    IntegerField,
    PasswordField,
    StringField,
    SubmitField,
    TextAreaField,
)
from wtforms.validators import (
    AnyOf,
    DataRequired,
    Email,
    Length,
    NumberRange,
    Optional,
    Regexp,
)
from wtforms.widgets import TextInput

from models.project import ProjectPriority, ProjectStatus
from models.task import TaskPriority, TaskStatus
from utils.dates import isoformat, parse_iso_datetime

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"
HEX_COLOR_MESSAGE = "The color must be a valid hex color code (e.g. #3B82F6)"


def _choices(enum_cls):
    return [member.value for member in enum_cls]


class IsoDateTimeField(Field):
    """Date or datetime submitted as ISO-8601 text, stored as naive UTC."""

    widget = TextInput()

    def _value(self):
        if self.raw_data:
            return " ".join(self.raw_data)
        return isoformat(self.data) or ""

    def process_formdata(self, valuelist):
        if not valuelist:
            return
        try:
            self.data = parse_iso_datetime(valuelist[0])
        except ValueError:
            self.data = None
            raise ValueError(self.gettext("Not a valid datetime value.")) from None


def hex_color_field(label):
    return StringField(
        label,
        validators=[Optional(), Regexp(HEX_COLOR_PATTERN, message=HEX_COLOR_MESSAGE)],
    )


class SignupForm(FlaskForm):
    username = StringField("Username", [DataRequired(), Length(max=80)])
    name = StringField("Name", [DataRequired(), Length(max=80)])
    email = StringField("Email", [DataRequired(), Email()])
    password = PasswordField("Password", [DataRequired()])
    submit = SubmitField("Register")


class LoginForm(FlaskForm):
    username = StringField("Username", [DataRequired()])
    password = PasswordField("Password", [DataRequired()])
    submit = SubmitField("Login")


class ProjectForm(FlaskForm):
    name = StringField(
        "Name",
        validators=[
            DataRequired(message="A project name is required"),
            Length(max=255),
        ],
    )
    description = TextAreaField("Description")
    color = hex_color_field("Color")
    status = StringField("Status", [Optional(), AnyOf(_choices(ProjectStatus))])
    priority = StringField("Priority", [Optional(), AnyOf(_choices(ProjectPriority))])
    start_date = IsoDateTimeField("Start Date", [Optional()])
    due_date = IsoDateTimeField("Due Date", [Optional()])
    sort_order = IntegerField("Sort Order", [Optional(), NumberRange(min=0)])


class TaskForm(FlaskForm):
    title = StringField(
        "Title",
        validators=[
            DataRequired(message="A task title is required"),
            Length(max=255),
        ],
    )
    description = TextAreaField("Description")
    status = StringField("Status", [Optional(), AnyOf(_choices(TaskStatus))])
    priority = StringField("Priority", [Optional(), AnyOf(_choices(TaskPriority))])
    start_date = IsoDateTimeField("Start Date", [Optional()])
    due_date = IsoDateTimeField("Due Date", [Optional()])
    project_id = IntegerField(
        "Project", [DataRequired(message="A project must be selected")]
    )
    assigned_to = IntegerField("Assigned To", [Optional()])
    parent_task_id = IntegerField("Parent Task", [Optional()])
    sort_order = IntegerField("Sort Order", [Optional(), NumberRange(min=0)])


class TaskStatusForm(FlaskForm):
    status = StringField(
        "Status",
        validators=[
            DataRequired(message="A status is required"),
            AnyOf(_choices(TaskStatus), message="The selected status is invalid."),
        ],
    )


class TagForm(FlaskForm):
    name = StringField(
        "Name",
        validators=[DataRequired(message="Tag name is required."), Length(max=255)],
    )
    color = hex_color_field("Color")
    description = TextAreaField("Description", [Optional(), Length(max=500)])


class NoteForm(FlaskForm):
    title = StringField(
        "Title",
        validators=[
            Optional(),
            Length(max=255, message="The note title cannot exceed 255 characters"),
        ],
    )
    content = TextAreaField("Content")
    is_pinned = BooleanField("Pinned")
    is_auto_save = BooleanField("Auto-save")


class CalendarEventForm(FlaskForm):
    title = StringField(
        "Event Title",
        validators=[
            DataRequired(message="An event title is required"),
            Length(max=255),
        ],
    )
    description = TextAreaField("Description")
    start_date = IsoDateTimeField(
        "Start Date", [DataRequired(message="A start date is required")]
    )
    end_date = IsoDateTimeField("End Date", [Optional()])
    color = hex_color_field("Color")
    all_day = BooleanField("All Day")


class EventDatesForm(FlaskForm):
    start_date = IsoDateTimeField(
        "Start Date", [DataRequired(message="A start date is required")]
    )
    end_date = IsoDateTimeField("End Date", [Optional()])
    all_day = BooleanField("All Day")
