"""Tag registry: per-owner labels attached to tasks."""
from __future__ import annotations

import re
from typing import Iterable

from database import db
from models.tag import DEFAULT_TAG_COLOR, Tag
from services.errors import RecordNotFound, ValidationFailed


def normalize_tag_name(name: str | None) -> str:
    return (name or "").strip()


def slugify_tag_name(name: str | None) -> str:
    """Generate the slug stored with a tag when it is created."""
    slug = normalize_tag_name(name).lower()

    # Replace spaces and underscores with hyphens first
    slug = re.sub(r"[\s_]+", "-", slug)

    # Remove special characters except hyphens
    slug = re.sub(r"[^\w-]", "", slug)

    # Replace multiple hyphens with single hyphen
    slug = re.sub(r"-+", "-", slug)

    return slug.strip("-")


def serialize_tag(tag: Tag) -> dict[str, object]:
    return {
        "id": tag.id,
        "name": tag.name,
        "slug": tag.slug,
        "color": tag.color,
    }


def list_tags(owner_id: int) -> list[Tag]:
    return Tag.query.filter_by(owner_id=owner_id).order_by(Tag.name.asc()).all()


def get_tag(owner_id: int, tag_id: int) -> Tag:
    tag = Tag.query.filter_by(id=tag_id, owner_id=owner_id).first()
    if tag is None:
        raise RecordNotFound("Tag", tag_id)
    return tag


def _find_tag_by_name(owner_id: int, name: str) -> Tag | None:
    return Tag.query.filter_by(owner_id=owner_id, name=name).first()


def _build_tag(owner_id: int, name: str, color: str | None = None, description: str | None = None) -> Tag:
    tag = Tag(
        name=name,
        slug=slugify_tag_name(name),
        color=color or DEFAULT_TAG_COLOR,
        description=description,
        owner_id=owner_id,
    )
    db.session.add(tag)
    return tag


def create_tag(
    owner_id: int,
    name: str | None,
    *,
    color: str | None = None,
    description: str | None = None,
) -> tuple[Tag, bool]:
    """Return the owner's tag with ``name``, creating it when missing.

    The boolean is True when a new row was added.
    """
    normalized_name = normalize_tag_name(name)
    if not normalized_name:
        raise ValidationFailed.for_field("name", "Tag name is required.")
    existing = _find_tag_by_name(owner_id, normalized_name)
    if existing is not None:
        return existing, False
    tag = _build_tag(owner_id, normalized_name, color, description)
    db.session.flush()
    return tag, True


def find_or_create_tags(owner_id: int, names: Iterable[str]) -> list[Tag]:
    """Resolve free-text tag names to the owner's tags, creating unknown ones."""
    tags: list[Tag] = []
    seen: set[str] = set()
    for raw_name in names:
        name = normalize_tag_name(raw_name)
        if not name or name in seen:
            continue
        seen.add(name)
        tag, _created = create_tag(owner_id, name)
        tags.append(tag)
    return tags


def get_owned_tags(owner_id: int, tag_ids: Iterable[int]) -> list[Tag]:
    """Return the tags for ``tag_ids``; every id must belong to the owner."""
    tag_ids = list(dict.fromkeys(tag_ids))
    if not tag_ids:
        return []
    tags = Tag.query.filter(Tag.id.in_(tag_ids), Tag.owner_id == owner_id).all()
    found_ids = {tag.id for tag in tags}
    missing = [tag_id for tag_id in tag_ids if tag_id not in found_ids]
    if missing:
        raise ValidationFailed.for_field("tag_ids", "One or more selected tags do not exist.")
    by_id = {tag.id: tag for tag in tags}
    return [by_id[tag_id] for tag_id in tag_ids]


def update_tag(owner_id: int, tag_id: int, changes: dict[str, object]) -> Tag:
    tag = get_tag(owner_id, tag_id)
    if "name" in changes:
        name = normalize_tag_name(changes["name"])
        if not name:
            raise ValidationFailed.for_field("name", "Tag name is required.")
        duplicate = _find_tag_by_name(owner_id, name)
        if duplicate is not None and duplicate.id != tag.id:
            raise ValidationFailed.for_field("name", "The name has already been taken.")
        tag.name = name
    if "color" in changes:
        tag.color = changes["color"] or DEFAULT_TAG_COLOR
    if "description" in changes:
        tag.description = changes["description"]
    return tag


def delete_tag(owner_id: int, tag_id: int) -> None:
    tag = get_tag(owner_id, tag_id)
    for task in list(tag.tasks):
        task.tags.remove(tag)
    db.session.delete(tag)
