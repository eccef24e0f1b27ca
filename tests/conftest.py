"""Point the application at throwaway storage before ``app`` is imported."""

import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["NOTE_STORAGE_ROOT"] = tempfile.mkdtemp(prefix="workspacemanager_storage_")
os.environ["WTF_CSRF_ENABLED"] = "false"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
