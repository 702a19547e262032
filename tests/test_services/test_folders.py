"""Tests for folder layout and resolution."""
import uuid
from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from mailsync.config import Settings
from mailsync.models.folder import Folder
from mailsync.services.exceptions import FolderResolutionError
from mailsync.services.folders import (
    DEFAULT_FOLDER_SPECS,
    FolderLayout,
    FolderResolver,
)


class TestFolderLayout:
    """Tests for FolderLayout."""

    def test_known_folder(self):
        layout = FolderLayout(DEFAULT_FOLDER_SPECS)
        spec = layout.get("Sent")
        assert spec.display_name == "Sent"
        assert spec.primary_path == "INBOX.Sent"

    def test_unknown_folder_maps_to_inbox(self):
        layout = FolderLayout(DEFAULT_FOLDER_SPECS)
        assert layout.get("Archive") == layout.get("INBOX")
        assert layout.fallbacks_for("Archive") == ()

    def test_fallback_order(self):
        layout = FolderLayout(DEFAULT_FOLDER_SPECS)
        assert layout.fallbacks_for("Sent") == (
            "INBOX.Sent",
            "Sent Messages",
            "Sent Items",
            "Outbox",
        )
        assert layout.fallbacks_for("Drafts") == ("INBOX.Drafts", "Draft")
        assert layout.fallbacks_for("Trash") == ("INBOX.Trash", "Deleted", "Deleted Messages")

    def test_overrides(self):
        layout = FolderLayout(DEFAULT_FOLDER_SPECS).with_overrides(
            {
                "Sent": {"primary_path": "[Gmail]/Sent Mail", "fallbacks": ["Sent"]},
                "Archive": {"primary_path": "[Gmail]/All Mail"},
            }
        )
        assert layout.get("Sent").primary_path == "[Gmail]/Sent Mail"
        assert layout.get("Sent").display_name == "Sent"
        assert layout.fallbacks_for("Sent") == ("Sent",)
        assert "Archive" in layout
        assert layout.get("Archive").primary_path == "[Gmail]/All Mail"

    def test_overrides_leave_original_untouched(self):
        layout = FolderLayout(DEFAULT_FOLDER_SPECS)
        layout.with_overrides({"Sent": {"primary_path": "Sent"}})
        assert layout.get("Sent").primary_path == "INBOX.Sent"

    def test_from_settings(self):
        settings = Settings(
            _env_file=None,
            folder_layout_overrides={"Drafts": {"primary_path": "Drafts"}},
        )
        layout = FolderLayout.from_settings(settings)
        assert layout.get("Drafts").primary_path == "Drafts"

    def test_default_required(self):
        with pytest.raises(ValueError):
            FolderLayout({"Sent": DEFAULT_FOLDER_SPECS["Sent"]})


class TestFolderResolver:
    """Tests for FolderResolver."""

    def test_creates_folder_on_first_use(self, db, user_id):
        folder = FolderResolver(db).resolve(user_id, "Sent")

        assert folder.id is not None
        assert folder.name == "Sent"
        assert folder.display_name == "Sent"
        assert folder.remote_path == "INBOX.Sent"
        assert folder.message_count == 0

    def test_returns_existing_folder(self, db, user_id):
        first = FolderResolver(db).resolve(user_id, "INBOX")
        second = FolderResolver(db).resolve(user_id, "INBOX")

        assert first.id == second.id
        count = db.execute(select(func.count()).select_from(Folder)).scalar_one()
        assert count == 1

    def test_folders_scoped_per_user(self, db):
        first = FolderResolver(db).resolve(uuid.uuid4(), "INBOX")
        second = FolderResolver(db).resolve(uuid.uuid4(), "INBOX")
        assert first.id != second.id

    def test_default_name_is_inbox(self, db, user_id):
        assert FolderResolver(db).resolve(user_id).name == "INBOX"

    def test_unknown_name_uses_inbox_path(self, db, user_id):
        folder = FolderResolver(db).resolve(user_id, "Archive")
        assert folder.name == "Archive"
        assert folder.remote_path == "INBOX"

    def test_layout_is_injected(self, db, user_id):
        layout = FolderLayout(DEFAULT_FOLDER_SPECS).with_overrides(
            {"Sent": {"primary_path": "Sent Items"}}
        )
        folder = FolderResolver(db, layout).resolve(user_id, "Sent")
        assert folder.remote_path == "Sent Items"

    def test_database_failure(self, user_id):
        db = MagicMock()
        db.execute.side_effect = OperationalError("SELECT", {}, Exception("database is locked"))

        with pytest.raises(FolderResolutionError):
            FolderResolver(db).resolve(user_id, "INBOX")
