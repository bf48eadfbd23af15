"""Library-level helpers: saved paths, inventory access and maintenance."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from typing import Callable, Dict, List, Tuple

import metadata_resolver
from config import PLAYLISTS_DIR, load_config, save_config
from controllers.genre_playlist_controller import regenerate_derived_playlists
from crash_logger import watcher
from inbox_scanner import is_supported
from inventory_store import TrackRecord, load_inventory, save_inventory, upsert
from library_control import (
    InvalidRequestError,
    LibraryHandle,
    NotFoundError,
    ParseFailureError,
    library_lock,
)
from utils.audio_metadata_reader import ParsedMetadata
from utils.path_helpers import library_relative

logger = logging.getLogger(__name__)


def load_library_paths(config_path: str | None = None) -> Tuple[str, str]:
    """Return the saved ``(inbox_path, library_path)`` pair ("" when unset)."""
    cfg = load_config(config_path)
    return cfg.get("inbox_path") or "", cfg.get("library_path") or ""


def save_library_paths(inbox_path: str, library_path: str, config_path: str | None = None) -> None:
    """Persist the inbox/library pair for the next launch."""
    if not inbox_path or not library_path:
        raise InvalidRequestError("Both inbox and library paths are required")
    cfg = load_config(config_path)
    cfg["inbox_path"] = os.path.abspath(os.path.expanduser(inbox_path))
    cfg["library_path"] = os.path.abspath(os.path.expanduser(library_path))
    try:
        save_config(cfg, config_path)
    except OSError as exc:
        logger.warning("Could not save configuration: %s", exc)
        raise


def get_library_inventory(library: LibraryHandle) -> List[TrackRecord]:
    return load_inventory(library)


def _library_audio_files(library: LibraryHandle) -> List[str]:
    found = []
    for dirpath, dirnames, files in os.walk(library.root):
        if os.path.normcase(dirpath) == os.path.normcase(library.root):
            dirnames[:] = [d for d in dirnames if d != PLAYLISTS_DIR]
        dirnames.sort()
        for fname in sorted(files):
            if is_supported(fname) and not fname.startswith("."):
                found.append(os.path.join(dirpath, fname))
    return found


@watcher.traced
def regenerate_database(
    library: LibraryHandle,
    log_callback: Callable[[str], None] | None = None,
) -> Dict[str, int]:
    """Rebuild the inventory from the audio files under ``library.root``.

    Unreadable files are still indexed with default values. Master and Genre
    playlists are rewritten; custom playlists are left alone.
    """
    if log_callback is None:
        def log_callback(msg):
            pass

    if not os.path.isdir(library.root):
        raise NotFoundError(f"Library path does not exist: {library.root}")

    with library_lock(library):
        files = _library_audio_files(library)
        log_callback(f"Indexing {len(files)} audio files…")
        inventory: List[TrackRecord] = []
        failures = 0
        for idx, path in enumerate(files, start=1):
            try:
                track = metadata_resolver.resolve_track(path)
            except ParseFailureError as exc:
                logger.warning("Indexing %s with defaults: %s", path, exc)
                failures += 1
                track = metadata_resolver.track_from_metadata(path, ParsedMetadata())
            track.library_relative_path = library_relative(track.absolute_path, library.root)
            upsert(inventory, track)
            if idx % 50 == 0 or idx == len(files):
                log_callback(f"   • Indexed {idx}/{len(files)}")

        save_inventory(library, inventory)
        regenerate_derived_playlists(library, inventory)

    logger.info("Regenerated %s: %d tracks, %d parse failures", library.root, len(inventory), failures)
    return {"trackCount": len(inventory), "parseFailures": failures}


def reveal_in_file_manager(path: str) -> None:
    """Show ``path`` in the platform file browser without waiting for it."""
    if not path or not os.path.exists(path):
        raise NotFoundError(f"File not found: {path}")
    path = os.path.abspath(path)
    if sys.platform == "win32":
        cmd = ["explorer", f"/select,{path}"]
    elif sys.platform == "darwin":
        cmd = ["open", "-R", path]
    else:
        cmd = ["xdg-open", os.path.dirname(path)]
    try:
        subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except OSError as exc:
        logger.warning("Could not open file manager for %s: %s", path, exc)
