"""Exceptions raised by the service layer.

Routes never build error responses for these themselves; the handlers
registered in ``app.py`` translate them into JSON.
"""
from __future__ import annotations


class RecordNotFound(LookupError):
    """The record does not exist or is not owned by the caller."""

    def __init__(self, entity: str = "Record", record_id=None):
        self.entity = entity
        self.record_id = record_id
        super().__init__(f"{entity} not found.")


class ReorderPartialFailure(RecordNotFound):
    """A batch references at least one record the caller does not own.

    Raised before any row of the batch is modified.
    """

    def __init__(self, entity: str = "Record", missing_ids=()):
        super().__init__(entity)
        self.missing_ids = sorted(missing_ids)
        self.args = (f"One or more {entity.lower()}s not found or access denied.",)


class ValidationFailed(ValueError):
    """Input was malformed or referenced rows the caller cannot access."""

    def __init__(self, errors: dict[str, list[str]] | str, message: str | None = None):
        if isinstance(errors, str):
            errors = {"__all__": [errors]}
        self.errors = errors
        if message is None:
            first = next(iter(errors.values()), [])
            message = first[0] if first else "Please correct the highlighted fields."
        super().__init__(message)

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationFailed":
        return cls({field: [message]}, message)


class ImageAccessDenied(PermissionError):
    """Image endpoints report ownership failures explicitly."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ImageStorageError(RuntimeError):
    """The file store could not save or delete an image."""
