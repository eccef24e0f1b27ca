""" Represents a user in the system.

A User is the owner of every record it creates (Projects, Tasks, Tags,
Notes, Calendar Events).
A User can only see and modify the records it owns.
A User can be assigned Tasks owned by another User.

"""

from werkzeug.security import generate_password_hash, check_password_hash
from database import db


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    password_hash = db.Column(db.Text)
    name = db.Column(db.String(80), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)

    projects = db.relationship("Project", backref="owner", lazy=True, cascade="all, delete-orphan")
    tags = db.relationship("Tag", backref="owner", lazy=True, cascade="all, delete-orphan")
    notes = db.relationship("Note", backref="owner", lazy=True, cascade="all, delete-orphan")
    calendar_events = db.relationship(
        "CalendarEvent", backref="owner", lazy=True, cascade="all, delete-orphan"
    )

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "name": self.name,
            "email": self.email,
        }

    def __repr__(self):
        return f"<User {self.id}>"
