"""Notes: derived display fields and owner-scoped CRUD."""
from __future__ import annotations

import html
import re
from typing import Any, Iterable, Optional

import bleach
from flask import current_app
from sqlalchemy import or_

from database import db
from models.note import DEFAULT_NOTE_TITLE, Note, sanitize_note_html
from services.errors import RecordNotFound, ValidationFailed
from utils.dates import isoformat, utcnow

FALLBACK_NOTE_TITLE = "Untitled Note"
EMPTY_PREVIEW = "No content"
ELLIPSIS = "..."
TITLE_LENGTH = 50
PREVIEW_LENGTH = 100
MAX_TAG_LENGTH = 50


# Derivations
# ------------------------------
def strip_markup(content: Optional[str]) -> str:
    """Return the text of ``content`` with every tag removed."""
    if not content:
        return ""
    return html.unescape(bleach.clean(content, tags=set(), strip=True, strip_comments=True))


def _truncate(text: str, length: int) -> str:
    if len(text) > length:
        return text[:length] + ELLIPSIS
    return text


def auto_title(title: Optional[str], content: Optional[str]) -> str:
    """Display title: the stored one, or the first line of the content."""
    if title and title != DEFAULT_NOTE_TITLE:
        return title
    if not content:
        return FALLBACK_NOTE_TITLE
    first_line = strip_markup(content).split("\n")[0].strip()
    return _truncate(first_line, TITLE_LENGTH) or FALLBACK_NOTE_TITLE


def content_preview(content: Optional[str]) -> str:
    if not content:
        return EMPTY_PREVIEW
    preview = re.sub(r"\s+", " ", strip_markup(content)).strip()
    return _truncate(preview, PREVIEW_LENGTH)


def word_count(content: Optional[str]) -> int:
    if not content:
        return 0
    return len(strip_markup(content).split())


def parse_note_tags(tags: Optional[str]) -> list[str]:
    """Split the stored comma-separated tag text into clean tag names."""
    if not tags:
        return []
    return [segment.strip() for segment in tags.split(",") if segment.strip()]


def join_note_tags(tags: Iterable[str] | str | None) -> Optional[str]:
    """Normalize submitted tags (a list or comma-separated text) for storage."""
    if tags is None:
        return None
    if isinstance(tags, str):
        names = parse_note_tags(tags)
    else:
        names = [str(tag).strip() for tag in tags if str(tag).strip()]
    for name in names:
        if len(name) > MAX_TAG_LENGTH:
            raise ValidationFailed.for_field("tags", "Each tag cannot exceed 50 characters")
    return ", ".join(names) if names else None


def mark_accessed(note: Note) -> None:
    note.last_accessed_at = utcnow()


# Serialization
# ------------------------------
def serialize_note_summary(note: Note) -> dict[str, Any]:
    return {
        "id": note.id,
        "title": auto_title(note.title, note.content),
        "content_preview": content_preview(note.content),
        "tags": parse_note_tags(note.tags),
        "is_pinned": note.is_pinned,
        "word_count": word_count(note.content),
        "created_at": isoformat(note.created_at),
        "updated_at": isoformat(note.updated_at),
        "last_accessed_at": isoformat(note.last_accessed_at),
    }


def serialize_note_detail(note: Note) -> dict[str, Any]:
    return {
        "id": note.id,
        "title": note.title,
        "display_title": auto_title(note.title, note.content),
        "content": note.content,
        "tags": parse_note_tags(note.tags),
        "is_pinned": note.is_pinned,
        "word_count": word_count(note.content),
        "created_at": isoformat(note.created_at),
        "updated_at": isoformat(note.updated_at),
        "last_accessed_at": isoformat(note.last_accessed_at),
    }


# Queries
# ------------------------------
def get_note(owner_id: int, note_id: int) -> Note:
    note = Note.query.filter_by(id=note_id, owner_id=owner_id).first()
    if note is None:
        raise RecordNotFound("Note", note_id)
    return note


def list_notes(owner_id: int, search: Optional[str] = None) -> list[Note]:
    """Pinned notes first, then the most recently updated."""
    query = Note.query.filter(Note.owner_id == owner_id)
    term = (search or "").strip()
    if term:
        pattern = f"%{term}%"
        query = query.filter(
            or_(Note.title.ilike(pattern), Note.content.ilike(pattern), Note.tags.ilike(pattern))
        )
    return query.order_by(Note.is_pinned.desc(), Note.updated_at.desc(), Note.id.desc()).all()


def search_notes(owner_id: int, query: Optional[str]) -> list[dict[str, Any]]:
    return [serialize_note_summary(note) for note in list_notes(owner_id, query)]


def show_note(owner_id: int, note_id: int) -> dict[str, Any]:
    """Open a note for viewing: records the access and returns the sidebar list."""
    note = get_note(owner_id, note_id)
    mark_accessed(note)
    db.session.flush()
    return {
        "notes": [serialize_note_summary(item) for item in list_notes(owner_id)],
        "selected_note": serialize_note_detail(note),
    }


# Mutations
# ------------------------------
def _clean_title(title: Optional[str]) -> str:
    title = (title or "").strip()
    if len(title) > 255:
        raise ValidationFailed.for_field("title", "The note title cannot exceed 255 characters")
    return title or DEFAULT_NOTE_TITLE


def create_note(owner_id: int, data: dict[str, Any]) -> Note:
    note = Note(
        title=_clean_title(data.get("title")),
        content=sanitize_note_html(data.get("content")),
        tags=join_note_tags(data.get("tags")),
        is_pinned=bool(data.get("is_pinned", False)),
        owner_id=owner_id,
    )
    db.session.add(note)
    db.session.flush()
    current_app.logger.info("Note %s created for user %s", note.id, owner_id)
    return note


def create_empty_note(owner_id: int) -> Note:
    return create_note(owner_id, {"title": DEFAULT_NOTE_TITLE, "content": ""})


def update_note(owner_id: int, note_id: int, changes: dict[str, Any]) -> Note:
    note = get_note(owner_id, note_id)
    if "title" in changes:
        note.title = _clean_title(changes["title"])
    if "content" in changes:
        note.content = sanitize_note_html(changes["content"])
    if "tags" in changes:
        note.tags = join_note_tags(changes["tags"])
    if "is_pinned" in changes and changes["is_pinned"] is not None:
        note.is_pinned = bool(changes["is_pinned"])
    note.updated_at = utcnow()
    db.session.flush()
    return note


def toggle_pin(owner_id: int, note_id: int) -> Note:
    note = get_note(owner_id, note_id)
    note.is_pinned = not note.is_pinned
    return note


def delete_note(owner_id: int, note_id: int, image_store) -> None:
    """Delete the note, its image rows and their files."""
    note = get_note(owner_id, note_id)
    for image in note.images:
        image_store.delete(image.path)
    db.session.delete(note)
    db.session.flush()
