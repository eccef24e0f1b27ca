"""Shared helpers for route blueprints."""

from __future__ import annotations

import logging
from typing import Any

from flask import current_app, g, jsonify, request
from flask_wtf.csrf import validate_csrf
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.datastructures import MultiDict
from wtforms.validators import ValidationError

from database import db
from services.errors import ValidationFailed

__all__ = [
    "bind_form",
    "check_csrf",
    "commit_session",
    "current_user_id",
    "ensure_valid",
    "form_data",
    "form_errors",
    "json_error",
    "json_success",
    "parse_id_list",
    "parse_string_list",
    "request_payload",
    "submitted_changes",
    "validate_request_csrf",
    "validate_submitted",
]

CSRF_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
NON_DATA_FIELDS = ("csrf_token", "submit")


def json_success(status: int = 200, **payload):
    return jsonify({"success": True, **payload}), status


def json_error(message: str, status: int, errors: dict | None = None):
    body: dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return jsonify(body), status


def current_user_id() -> int:
    return g.user.id


def request_payload() -> dict[str, Any]:
    """JSON body of the request, or its form fields for multipart posts."""
    payload = request.get_json(silent=True)
    if payload is None:
        payload = request.form.to_dict()
    if not isinstance(payload, dict):
        raise ValidationFailed("The request body must be a JSON object.")
    return payload


def validate_request_csrf(token: str | None) -> tuple[bool, str | None]:
    """Validate CSRF tokens supplied with JSON payloads."""
    if not token:
        return False, "The CSRF token is missing."
    try:
        validate_csrf(token)
    except ValidationError:
        return (
            False,
            "The CSRF token is invalid or has expired. Please refresh and try again.",
        )
    return True, None


def check_csrf():
    """``before_request`` hook: reject state-changing requests without a valid token."""
    if request.method not in CSRF_METHODS or not current_app.config.get("WTF_CSRF_ENABLED", True):
        return None
    payload = request.get_json(silent=True)
    token = None
    if isinstance(payload, dict):
        token = payload.get("csrf_token")
    token = token or request.form.get("csrf_token") or request.headers.get("X-CSRFToken")
    valid, message = validate_request_csrf(token)
    if not valid:
        return json_error(message, 400)
    return None


# Forms
# ------------------------------
def _formdata(payload: dict[str, Any]) -> MultiDict:
    """Flatten scalar JSON values into the strings WTForms fields expect.

    Lists and objects are left out; routes parse them explicitly.
    """
    formdata = MultiDict()
    for key, value in payload.items():
        if isinstance(value, (list, dict)):
            continue
        if value is None:
            formdata.add(key, "")
        elif isinstance(value, bool):
            formdata.add(key, "true" if value else "false")
        else:
            formdata.add(key, str(value))
    return formdata


def bind_form(form_cls, payload: dict[str, Any]):
    """Build ``form_cls`` from a request payload; CSRF is checked by ``check_csrf``."""
    return form_cls(formdata=_formdata(payload), meta={"csrf": False})


def form_errors(form) -> dict[str, list[str]]:
    return {name: list(errors) for name, errors in form.errors.items() if name}


def validate_submitted(form, payload: dict[str, Any]) -> bool:
    """Validate only the fields present in ``payload``, for partial updates."""
    valid = True
    for name, field in form._fields.items():
        if name not in payload:
            continue
        if not field.validate(form):
            valid = False
    return valid


def ensure_valid(form, payload: dict[str, Any] | None = None) -> None:
    """Raise ``ValidationFailed`` with the form errors unless the form validates.

    With ``payload`` only its keys are validated.
    """
    valid = form.validate() if payload is None else validate_submitted(form, payload)
    if not valid:
        raise ValidationFailed(form_errors(form), "The given data was invalid.")


def form_data(form) -> dict[str, Any]:
    return {
        name: field.data for name, field in form._fields.items() if name not in NON_DATA_FIELDS
    }


def submitted_changes(form, payload: dict[str, Any]) -> dict[str, Any]:
    """Field data limited to the keys the client actually sent."""
    return {
        name: field.data
        for name, field in form._fields.items()
        if name in payload and name not in NON_DATA_FIELDS
    }


# Lists
# ------------------------------
def parse_id_list(value: Any, field: str) -> list[int]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationFailed.for_field(field, f"The {field} field must be an array.")
    ids = []
    for item in value:
        if isinstance(item, bool):
            raise ValidationFailed.for_field(field, f"The {field} field must contain integers.")
        try:
            ids.append(int(item))
        except (TypeError, ValueError):
            raise ValidationFailed.for_field(
                field, f"The {field} field must contain integers."
            ) from None
    return ids


def parse_string_list(value: Any, field: str, max_length: int = 255) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationFailed.for_field(field, f"The {field} field must be an array.")
    names = []
    for item in value:
        if not isinstance(item, str):
            raise ValidationFailed.for_field(field, f"Each entry of {field} must be a string.")
        if len(item) > max_length:
            raise ValidationFailed.for_field(
                field, f"Each entry of {field} cannot exceed {max_length} characters."
            )
        names.append(item)
    return names


# Persistence
# ------------------------------
def commit_session(action: str) -> None:
    """Commit the request's unit of work; roll back and re-raise on failure."""
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logging.error("Unable to %s", action, exc_info=True)
        raise
