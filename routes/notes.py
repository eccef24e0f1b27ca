"""Notes blueprint, including note images and the storage endpoint serving them."""
from __future__ import annotations

from flask import Blueprint, request, send_from_directory

from forms import NoteForm
from routes import (
    bind_form,
    commit_session,
    current_user_id,
    ensure_valid,
    form_data,
    json_success,
    parse_string_list,
    request_payload,
    submitted_changes,
)
from services import note_image_service, note_service
from services.image_store import get_image_store
from utils.dates import isoformat

notes_bp = Blueprint("notes", __name__)


def _note_tags(payload):
    tags = payload.get("tags")
    if tags is None or isinstance(tags, str):
        return tags
    return parse_string_list(tags, "tags")


@notes_bp.route("/notes", methods=["GET"])
def list_notes():
    search = request.args.get("search", "")
    notes = note_service.list_notes(current_user_id(), search)
    return json_success(
        notes=[note_service.serialize_note_summary(note) for note in notes],
        filters={"search": search},
    )


@notes_bp.route("/notes", methods=["POST"])
def create_note():
    payload = request_payload()
    form = bind_form(NoteForm, payload)
    ensure_valid(form)
    data = form_data(form)
    data["tags"] = _note_tags(payload)
    note = note_service.create_note(current_user_id(), data)
    commit_session("create note")
    return json_success(
        201, message="Note created successfully", note=note_service.serialize_note_detail(note)
    )


@notes_bp.route("/notes/create-empty", methods=["POST"])
def create_empty_note():
    note = note_service.create_empty_note(current_user_id())
    commit_session("create note")
    return json_success(201, note=note_service.serialize_note_detail(note))


@notes_bp.route("/notes/<int:note_id>", methods=["GET"])
def show_note(note_id: int):
    view = note_service.show_note(current_user_id(), note_id)
    commit_session("record note access")
    return json_success(**view)


@notes_bp.route("/notes/<int:note_id>", methods=["PATCH", "PUT"])
def update_note(note_id: int):
    payload = request_payload()
    form = bind_form(NoteForm, payload)
    ensure_valid(form, payload)
    changes = submitted_changes(form, payload)
    auto_save = bool(changes.pop("is_auto_save", False))
    if "tags" in payload:
        changes["tags"] = _note_tags(payload)
    note = note_service.update_note(current_user_id(), note_id, changes)
    commit_session("update note")
    if auto_save:
        return json_success(message="Note auto-saved", updated_at=isoformat(note.updated_at))
    return json_success(
        message="Note updated successfully", note=note_service.serialize_note_detail(note)
    )


@notes_bp.route("/notes/<int:note_id>", methods=["DELETE"])
def delete_note(note_id: int):
    note_service.delete_note(current_user_id(), note_id, get_image_store())
    commit_session("delete note")
    return json_success(message="Note deleted successfully")


@notes_bp.route("/notes/<int:note_id>/toggle-pin", methods=["PATCH"])
def toggle_pin(note_id: int):
    note = note_service.toggle_pin(current_user_id(), note_id)
    commit_session("toggle note pin")
    return json_success(
        message="Note pinned" if note.is_pinned else "Note unpinned",
        is_pinned=note.is_pinned,
    )


@notes_bp.route("/api/notes/search", methods=["GET"])
def search_notes():
    query = request.args.get("q", "")
    return json_success(notes=note_service.search_notes(current_user_id(), query))


# Images
# ------------------------------
@notes_bp.route("/notes/<int:note_id>/images", methods=["GET"])
def list_note_images(note_id: int):
    return json_success(**note_image_service.list_note_images(current_user_id(), note_id))


@notes_bp.route("/notes/images", methods=["POST"])
def upload_image():
    image = note_image_service.upload_image(
        current_user_id(),
        request.form.get("note_id"),
        request.files.get("image"),
        get_image_store(),
    )
    commit_session("upload image")
    return json_success(201, image=note_image_service.serialize_image(image))


@notes_bp.route("/notes/images/<int:image_id>", methods=["DELETE"])
def delete_image(image_id: int):
    note_image_service.delete_image(current_user_id(), image_id, get_image_store())
    commit_session("delete image")
    return json_success(message="Image deleted successfully")


@notes_bp.route("/images", methods=["GET"])
def list_all_images():
    return json_success(images=note_image_service.list_all_images(current_user_id()))


@notes_bp.route("/storage/<path:path>", methods=["GET"])
def serve_storage(path: str):
    image = note_image_service.resolve_stored_image(current_user_id(), path)
    store = get_image_store()
    return send_from_directory(store.root, image.path, mimetype=image.mime_type)
