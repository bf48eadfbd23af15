"""Library handles, per-library write locks and the engine's error types."""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from config import (
    GENRE_PLAYLIST_PREFIX,
    LIBRARY_DB_FILE,
    MASTER_PLAYLIST_PREFIX,
    PLAYLISTS_DIR,
)

logger = logging.getLogger(__name__)


class LibraryError(Exception):
    """Base class for every error raised by the organizer engine."""


class NotFoundError(LibraryError):
    """Inbox, library, playlist or file is missing."""


class ProtectedPlaylistError(LibraryError):
    """Attempted mutation of the Master playlist."""


class ParseFailureError(LibraryError):
    """Metadata could not be extracted from an audio file."""


class IOFailureError(LibraryError):
    """A disk operation failed."""


class InvalidRequestError(LibraryError):
    """Caller input is malformed."""


class PlaylistKind(str, Enum):
    MASTER = "master"
    GENRE = "genre"
    CUSTOM = "custom"


@dataclass(frozen=True)
class PlaylistRef:
    """A playlist name tagged with its kind at creation time."""

    name: str
    kind: PlaylistKind

    @classmethod
    def from_name(cls, name: str) -> "PlaylistRef":
        name = (name or "").strip()
        if name.startswith(MASTER_PLAYLIST_PREFIX):
            kind = PlaylistKind.MASTER
        elif name.startswith(GENRE_PLAYLIST_PREFIX):
            kind = PlaylistKind.GENRE
        else:
            kind = PlaylistKind.CUSTOM
        return cls(name=name, kind=kind)

    @property
    def is_protected(self) -> bool:
        return self.kind is PlaylistKind.MASTER


@dataclass(frozen=True)
class LibraryHandle:
    """Explicit reference to one library root passed to every engine call."""

    root: str

    @classmethod
    def open(cls, path: str) -> "LibraryHandle":
        if not path or not str(path).strip():
            raise InvalidRequestError("Library path is required")
        return cls(root=os.path.abspath(os.path.normpath(os.path.expanduser(str(path)))))

    @property
    def playlist_dir(self) -> str:
        return os.path.join(self.root, PLAYLISTS_DIR)

    @property
    def inventory_path(self) -> str:
        return os.path.join(self.root, LIBRARY_DB_FILE)


_locks: Dict[str, threading.RLock] = {}
_locks_guard = threading.Lock()


def library_lock(library: LibraryHandle) -> threading.RLock:
    """Return the write lock shared by every handle on ``library.root``."""
    key = os.path.normcase(library.root)
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = threading.RLock()
            _locks[key] = lock
        return lock


def protect(ref: PlaylistRef, action: str) -> None:
    """Raise :class:`ProtectedPlaylistError` if ``ref`` may not be ``action``-ed."""
    if ref.kind is PlaylistKind.MASTER:
        raise ProtectedPlaylistError(f"Cannot {action} the Master Library playlist")


@dataclass
class BatchResult:
    """Outcome of a batch operation. ``errors`` holds one message per failure."""

    success_count: int = 0
    fail_count: int = 0
    errors: List[str] = field(default_factory=list)

    def record_failure(self, message: str) -> None:
        self.fail_count += 1
        self.errors.append(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "successCount": self.success_count,
            "failCount": self.fail_count,
            "errors": list(self.errors),
        }


InventoryListener = Callable[[List[Any]], None]


def notify_listener(listener: Optional[InventoryListener], inventory: List[Any]) -> None:
    """Hand the committed inventory to ``listener``; its errors are only logged."""
    if listener is None:
        return
    try:
        listener(list(inventory))
    except Exception:
        logger.exception("Inventory listener failed")
