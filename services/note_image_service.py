"""Images uploaded into notes.

Every operation here reports a note owned by someone else as
``ImageAccessDenied`` (403) rather than a missing record.
"""
from __future__ import annotations

import os
import uuid
from typing import Any

from flask import current_app, url_for

from database import db
from models.note import Note, NoteImage
from services.errors import ImageAccessDenied, RecordNotFound, ValidationFailed
from utils.dates import isoformat

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/svg+xml": "svg",
    "image/webp": "webp",
}

SNIFF_BYTES = 1024

# Leading bytes of each raster format
IMAGE_SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)


def image_url(image: NoteImage) -> str:
    return url_for("notes.serve_storage", path=image.path)


def serialize_image(image: NoteImage) -> dict[str, Any]:
    return {
        "id": image.id,
        "url": image_url(image),
        "filename": image.original_filename,
        "mime_type": image.mime_type,
        "size": image.size,
        "created_at": isoformat(image.created_at),
    }


def _ensure_note_owner(note: Note, owner_id: int) -> Note:
    if note.owner_id != owner_id:
        raise ImageAccessDenied()
    return note


def _measure(file_storage) -> int:
    stream = file_storage.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def detect_image_type(head: bytes) -> str | None:
    """Return the MIME type the leading bytes of a file identify, if an allowed image."""
    for signature, mime_type in IMAGE_SIGNATURES:
        if head.startswith(signature):
            return mime_type
    if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return "image/webp"
    text = head.lstrip(b"\xef\xbb\xbf \t\r\n").lower()
    if text.startswith(b"<") and b"<svg" in text:
        return "image/svg+xml"
    return None


def _validate_upload(file_storage) -> tuple[str, int]:
    """Check the uploaded bytes; the client-supplied Content-Type is ignored."""
    if file_storage is None or not file_storage.filename:
        raise ValidationFailed.for_field("image", "The image field is required.")
    head = file_storage.stream.read(SNIFF_BYTES)
    file_storage.stream.seek(0)
    mime_type = detect_image_type(head)
    if mime_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationFailed.for_field("image", "The image must be an image.")
    size = _measure(file_storage)
    if size > current_app.config["NOTE_IMAGE_MAX_BYTES"]:
        raise ValidationFailed.for_field("image", "The image may not be greater than 10240 kilobytes.")
    return mime_type, size


def list_note_images(owner_id: int, note_id: int) -> dict[str, Any]:
    note = db.session.get(Note, note_id)
    if note is None:
        raise RecordNotFound("Note", note_id)
    _ensure_note_owner(note, owner_id)
    return {
        "note": {"id": note.id, "title": note.title},
        "images": [serialize_image(image) for image in note.images],
    }


def upload_image(owner_id: int, note_id: Any, file_storage, image_store) -> NoteImage:
    """Store ``file_storage`` under ``note-images/<note id>/`` with a random name."""
    try:
        note_id = int(note_id)
    except (TypeError, ValueError):
        raise ValidationFailed.for_field("note_id", "The note id must be an integer.") from None
    note = db.session.get(Note, note_id)
    if note is None:
        raise ValidationFailed.for_field("note_id", "The selected note does not exist.")
    _ensure_note_owner(note, owner_id)
    mime_type, size = _validate_upload(file_storage)

    original_filename = file_storage.filename
    filename = f"{uuid.uuid4()}.{ALLOWED_IMAGE_TYPES[mime_type]}"
    path = f"note-images/{note.id}/{filename}"

    image_store.save(file_storage, path)
    image = NoteImage(
        note=note,
        path=path,
        filename=filename,
        original_filename=original_filename,
        mime_type=mime_type,
        size=size,
    )
    db.session.add(image)
    db.session.flush()
    current_app.logger.info("Image %s uploaded to note %s", image.id, note.id)
    return image


def _get_owned_image(owner_id: int, image_id: int) -> NoteImage:
    image = db.session.get(NoteImage, image_id)
    if image is None:
        raise RecordNotFound("Image", image_id)
    if image.note.owner_id != owner_id:
        raise ImageAccessDenied()
    return image


def delete_image(owner_id: int, image_id: int, image_store) -> None:
    image = _get_owned_image(owner_id, image_id)
    image_store.delete(image.path)
    db.session.delete(image)
    db.session.flush()


def list_all_images(owner_id: int) -> list[dict[str, Any]]:
    images = (
        NoteImage.query.join(Note)
        .filter(Note.owner_id == owner_id)
        .order_by(NoteImage.created_at.desc())
        .all()
    )
    return [serialize_image(image) for image in images]


def resolve_stored_image(owner_id: int, path: str) -> NoteImage:
    """Return the image row for ``path`` once the caller is confirmed as its owner."""
    image = NoteImage.query.filter_by(path=path).first()
    if image is None:
        raise RecordNotFound("Image", path)
    if image.note.owner_id != owner_id:
        raise ImageAccessDenied()
    return image
