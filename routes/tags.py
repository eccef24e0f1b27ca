"""Tag blueprint."""
from __future__ import annotations

from flask import Blueprint

from forms import TagForm
from routes import (
    bind_form,
    commit_session,
    current_user_id,
    ensure_valid,
    json_success,
    request_payload,
    submitted_changes,
)
from services import tag_service

tags_bp = Blueprint("tags", __name__, url_prefix="/tags")


@tags_bp.route("", methods=["GET"])
def list_tags():
    tags = tag_service.list_tags(current_user_id())
    return json_success(tags=[tag.to_dict() for tag in tags])


@tags_bp.route("", methods=["POST"])
def create_tag():
    payload = request_payload()
    form = bind_form(TagForm, payload)
    ensure_valid(form)
    tag, created = tag_service.create_tag(
        current_user_id(),
        form.name.data,
        color=form.color.data,
        description=form.description.data,
    )
    commit_session("create tag")
    if not created:
        return json_success(200, message="Tag already exists", tag=tag.to_dict())
    return json_success(201, message="Tag created successfully", tag=tag.to_dict())


@tags_bp.route("/<int:tag_id>", methods=["PATCH", "PUT"])
def update_tag(tag_id: int):
    payload = request_payload()
    form = bind_form(TagForm, payload)
    ensure_valid(form, payload)
    tag = tag_service.update_tag(current_user_id(), tag_id, submitted_changes(form, payload))
    commit_session("update tag")
    return json_success(message="Tag updated successfully", tag=tag.to_dict())


@tags_bp.route("/<int:tag_id>", methods=["DELETE"])
def delete_tag(tag_id: int):
    tag_service.delete_tag(current_user_id(), tag_id)
    commit_session("delete tag")
    return json_success(message="Tag deleted successfully")
