"""
Folder layout and resolution.

A FolderLayout maps a canonical folder name (INBOX, Sent, Drafts, Trash)
to its display name, primary remote path and ordered fallback paths. It is
passed into the resolver and the mailbox session so providers with other
naming schemes can be supported through configuration alone.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from mailsync.config import Settings
from mailsync.models.folder import Folder
from mailsync.services.exceptions import FolderResolutionError

logger = logging.getLogger(__name__)

DEFAULT_FOLDER = "INBOX"


@dataclass(frozen=True)
class FolderSpec:
    """Where a canonical folder lives on the server."""
    display_name: str
    primary_path: str
    fallbacks: Tuple[str, ...] = ()


DEFAULT_FOLDER_SPECS: Dict[str, FolderSpec] = {
    "INBOX": FolderSpec("Inbox", "INBOX"),
    "Sent": FolderSpec(
        "Sent",
        "INBOX.Sent",
        ("INBOX.Sent", "Sent Messages", "Sent Items", "Outbox"),
    ),
    "Drafts": FolderSpec("Drafts", "INBOX.Drafts", ("INBOX.Drafts", "Draft")),
    "Trash": FolderSpec(
        "Trash",
        "INBOX.Trash",
        ("INBOX.Trash", "Deleted", "Deleted Messages"),
    ),
}


class FolderLayout:
    """Canonical name -> FolderSpec table."""

    def __init__(self, specs: Mapping[str, FolderSpec], default: str = DEFAULT_FOLDER):
        if default not in specs:
            raise ValueError(f"Folder layout must define the default folder {default!r}")
        self._specs = dict(specs)
        self.default = default

    def __contains__(self, name: str) -> bool:
        return name in self._specs

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._specs)

    def get(self, name: str) -> FolderSpec:
        """Spec for ``name``; unknown names get the default folder's spec."""
        return self._specs.get(name) or self._specs[self.default]

    def fallbacks_for(self, name: str) -> Tuple[str, ...]:
        spec = self._specs.get(name)
        return spec.fallbacks if spec else ()

    def with_overrides(self, overrides: Mapping[str, Mapping[str, Any]]) -> "FolderLayout":
        """
        Return a new layout with entries replaced or added.

        Each override may set ``display_name``, ``primary_path`` and
        ``fallbacks``; omitted keys keep the current value.
        """
        specs = dict(self._specs)
        for name, values in overrides.items():
            current = specs.get(name) or FolderSpec(name, name)
            specs[name] = FolderSpec(
                display_name=values.get("display_name", current.display_name),
                primary_path=values.get("primary_path", current.primary_path),
                fallbacks=tuple(values.get("fallbacks", current.fallbacks)),
            )
        return FolderLayout(specs, default=self.default)

    @classmethod
    def from_settings(cls, settings: Settings) -> "FolderLayout":
        layout = cls(DEFAULT_FOLDER_SPECS)
        if settings.folder_layout_overrides:
            layout = layout.with_overrides(settings.folder_layout_overrides)
        return layout


class FolderResolver:
    """Finds or lazily creates the local Folder row for a canonical name."""

    def __init__(self, db: Session, layout: Optional[FolderLayout] = None):
        self.db = db
        self.layout = layout or FolderLayout(DEFAULT_FOLDER_SPECS)

    def _find(self, user_id: uuid.UUID, name: str) -> Optional[Folder]:
        return self.db.execute(
            select(Folder).where(Folder.user_id == user_id, Folder.name == name)
        ).scalar_one_or_none()

    def resolve(self, user_id: uuid.UUID, name: str = DEFAULT_FOLDER) -> Folder:
        """
        Get the user's folder, creating it on first sync.

        Raises:
            FolderResolutionError: If the folder cannot be read or inserted
        """
        try:
            folder = self._find(user_id, name)
        except SQLAlchemyError as e:
            logger.error(f"Error loading folder {name} for user {user_id}: {e}")
            raise FolderResolutionError(f"Could not load folder {name}: {e}") from e

        if folder is not None:
            return folder

        spec = self.layout.get(name)
        folder = Folder(
            user_id=user_id,
            name=name,
            display_name=spec.display_name,
            remote_path=spec.primary_path,
        )
        try:
            self.db.add(folder)
            self.db.commit()
        except IntegrityError:
            # Created concurrently by a sibling sync
            self.db.rollback()
            existing = self._find(user_id, name)
            if existing is not None:
                return existing
            raise FolderResolutionError(f"Could not create folder {name}")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating folder {name} for user {user_id}: {e}")
            raise FolderResolutionError(f"Could not create folder {name}: {e}") from e

        logger.info(f"Created folder {name} ({spec.primary_path}) for user {user_id}")
        return folder
