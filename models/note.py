"""A Note is a free-form rich text document.

A User can create multiple Notes
A Note can be pinned to stay on top of the list
A Note keeps track of the last time it was opened
A Note can contain multiple uploaded images; deleting a Note deletes them

"""
from __future__ import annotations

import bleach

from database import db
from utils.dates import utcnow

DEFAULT_NOTE_TITLE = "Untitled"

ALLOWED_NOTE_TAGS = {
    "a",
    "b",
    "blockquote",
    "br",
    "code",
    "em",
    "h1",
    "h2",
    "h3",
    "h4",
    "hr",
    "i",
    "img",
    "li",
    "mark",
    "ol",
    "p",
    "pre",
    "s",
    "span",
    "strong",
    "u",
    "ul",
}
ALLOWED_NOTE_ATTRIBUTES = {
    "a": ["href", "title", "target", "rel"],
    "img": ["src", "alt", "title", "width", "height", "data-image-id"],
    "code": ["class"],
    "span": ["class"],
}


def sanitize_note_html(content: str | None) -> str | None:
    """Clean editor HTML before it is stored."""
    if content is None:
        return None
    return bleach.clean(
        content,
        tags=ALLOWED_NOTE_TAGS,
        attributes=ALLOWED_NOTE_ATTRIBUTES,
        strip=True,
    )


class Note(db.Model):
    __tablename__ = "notes"

    __table_args__ = (
        db.Index("ix_notes_owner_pinned", "owner_id", "is_pinned", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False, default=DEFAULT_NOTE_TITLE)
    content = db.Column(db.Text, nullable=True)
    tags = db.Column(db.String(255), nullable=True)
    is_pinned = db.Column(db.Boolean, nullable=False, default=False)
    owner_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    last_accessed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    images = db.relationship(
        "NoteImage",
        back_populates="note",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="NoteImage.created_at",
    )

    def __repr__(self):
        return f"<Note {self.title}>"


class NoteImage(db.Model):
    __tablename__ = "note_images"

    id = db.Column(db.Integer, primary_key=True)
    note_id = db.Column(db.Integer, db.ForeignKey("notes.id", ondelete="CASCADE"), nullable=False, index=True)
    path = db.Column(db.String(500), nullable=False)
    filename = db.Column(db.String(255), nullable=False)
    original_filename = db.Column(db.String(255), nullable=False)
    mime_type = db.Column(db.String(100), nullable=False)
    size = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    note = db.relationship("Note", back_populates="images")

    def __repr__(self):
        return f"<NoteImage {self.path}>"
