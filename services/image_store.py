"""Filesystem store for uploaded note images.

Paths handed to and returned by the store are relative to its root, e.g.
``note-images/12/6f1c....png``.
"""
from __future__ import annotations

import os

from flask import current_app
from werkzeug.security import safe_join

from services.errors import ImageStorageError


class LocalImageStore:
    def __init__(self, root: str):
        self.root = root

    def absolute_path(self, relative_path: str) -> str:
        path = safe_join(self.root, relative_path)
        if path is None:
            raise ImageStorageError(f"Invalid storage path: {relative_path}")
        return path

    def save(self, file_storage, relative_path: str) -> None:
        target = self.absolute_path(relative_path)
        try:
            os.makedirs(os.path.dirname(target), exist_ok=True)
            file_storage.save(target)
        except OSError as exc:
            current_app.logger.error("Failed to store image %s", relative_path, exc_info=True)
            raise ImageStorageError(f"Could not store image: {exc}") from exc

    def delete(self, relative_path: str) -> None:
        """Remove the file; a file that is already gone is not an error."""
        target = self.absolute_path(relative_path)
        try:
            os.remove(target)
        except FileNotFoundError:
            return
        except OSError as exc:
            current_app.logger.error("Failed to delete image %s", relative_path, exc_info=True)
            raise ImageStorageError(f"Could not delete image: {exc}") from exc


def get_image_store() -> LocalImageStore:
    return LocalImageStore(current_app.config["NOTE_STORAGE_ROOT"])
