"""Copy or move a playlist, or the whole library, out of the library.

A move hands the tracks over for good: they leave the inventory, the
derived playlists are rebuilt, custom playlists stop pointing at them and
folders left empty in the library are removed.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Set

from controllers.genre_playlist_controller import regenerate_derived_playlists
from crash_logger import watcher
from inventory_store import TrackRecord, index_by_path, load_inventory, remove_paths, save_inventory
from library_control import (
    BatchResult,
    InvalidRequestError,
    InventoryListener,
    LibraryHandle,
    NotFoundError,
    PlaylistKind,
    PlaylistRef,
    library_lock,
    notify_listener,
    protect,
)
from playlist_generator import (
    find_playlist_file,
    find_playlist_files,
    iter_playlist_files,
    read_playlist,
    write_playlist,
)
from relocator import remove_empty_dirs
from utils.path_helpers import (
    absolute_path,
    canonical_path,
    is_within,
    library_relative,
    resolve_playlist_entry,
)

logger = logging.getLogger(__name__)


class TransferMode(str, Enum):
    COPY = "copy"
    MOVE = "move"

    @classmethod
    def parse(cls, value) -> "TransferMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidRequestError(f"Transfer mode must be 'copy' or 'move', not {value!r}") from None


@dataclass(frozen=True)
class TrackSet:
    """Either every track of one playlist or, with no playlist, the whole inventory."""

    playlist: Optional[PlaylistRef] = None

    @classmethod
    def of_playlist(cls, name: str) -> "TrackSet":
        if not isinstance(name, str) or not name.strip():
            raise InvalidRequestError("Playlist name is required")
        return cls(PlaylistRef.from_name(name))

    @classmethod
    def whole_library(cls) -> "TrackSet":
        return cls(None)

    @property
    def label(self) -> str:
        return self.playlist.name if self.playlist else "library"


def _source_paths(track_set: TrackSet, library: LibraryHandle, inventory: List[TrackRecord]) -> List[str]:
    if track_set.playlist is None:
        if not os.path.exists(library.inventory_path):
            raise NotFoundError(f"No library database found in {library.root}")
        return [t.absolute_path for t in inventory]

    path = find_playlist_file(library, track_set.playlist.name)
    if path is None:
        raise NotFoundError(f"Playlist not found: {track_set.playlist.name}")
    sources: List[str] = []
    for line in read_playlist(path):
        resolved = resolve_playlist_entry(line, library.playlist_dir)
        if resolved not in sources:
            sources.append(resolved)
    return sources


def _relative_target(source: str, track: Optional[TrackRecord], library: LibraryHandle) -> str:
    if track is not None and track.library_relative_path:
        return track.library_relative_path
    if is_within(source, library.root):
        return library_relative(source, library.root)
    return os.path.basename(source)


def _flat_target(destination: str, source: str, used: Set[str]) -> str:
    """``destination/basename``, suffixed ``" (n)"`` if taken earlier in this batch."""
    stem, ext = os.path.splitext(os.path.basename(source))
    candidate = os.path.join(destination, stem + ext)
    n = 2
    while canonical_path(candidate) in used:
        candidate = os.path.join(destination, f"{stem} ({n}){ext}")
        n += 1
    return candidate


def _prune_custom_playlists(library: LibraryHandle, moved: Set[str]) -> List[str]:
    """Drop lines pointing at ``moved`` paths from every custom playlist."""
    rewritten = []
    for ref, path in list(iter_playlist_files(library, unique=False)):
        if ref.kind is not PlaylistKind.CUSTOM:
            continue
        lines = read_playlist(path)
        kept = [
            line
            for line in lines
            if canonical_path(resolve_playlist_entry(line, library.playlist_dir)) not in moved
        ]
        if len(kept) != len(lines):
            write_playlist(kept, path)
            rewritten.append(path)
            logger.info("Dropped %d moved tracks from %s", len(lines) - len(kept), path)
    return rewritten


@watcher.traced
def transfer(
    track_set: TrackSet,
    destination: str,
    mode: TransferMode | str,
    preserve_structure: bool,
    library: LibraryHandle,
    log_callback: Callable[[str], None] | None = None,
    on_committed: Optional[InventoryListener] = None,
) -> BatchResult:
    """Copy or move ``track_set`` to ``destination``.

    Existing files at the destination are never overwritten; such items and
    missing sources are counted as failures and the batch carries on.
    """
    if log_callback is None:
        def log_callback(msg):
            pass

    mode = TransferMode.parse(mode)
    if track_set.playlist is not None:
        protect(track_set.playlist, "export/move")
    if not isinstance(destination, str) or not destination.strip():
        raise InvalidRequestError("Destination path is required")
    destination = absolute_path(os.path.expanduser(destination))
    if is_within(destination, library.root):
        raise InvalidRequestError(f"Destination {destination} is inside the library")

    result = BatchResult()
    with library_lock(library):
        inventory = load_inventory(library)
        sources = _source_paths(track_set, library, inventory)
        by_path: Dict[str, TrackRecord] = index_by_path(inventory)

        used: Set[str] = set()
        moved: Set[str] = set()
        total = len(sources)
        log_callback(f"{mode.value.capitalize()} {total} tracks from {track_set.label} to {destination}")
        for idx, source in enumerate(sources, start=1):
            key = canonical_path(source)
            if not os.path.isfile(source):
                msg = f"Source file missing: {source}"
                logger.warning(msg)
                result.record_failure(msg)
                continue

            if preserve_structure:
                rel = _relative_target(source, by_path.get(key), library)
                target = os.path.join(destination, *rel.split("/"))
            else:
                target = _flat_target(destination, source, used)
            used.add(canonical_path(target))

            if os.path.exists(target):
                msg = f"Destination already exists: {target}"
                logger.warning(msg)
                result.record_failure(msg)
                continue

            try:
                os.makedirs(os.path.dirname(target), exist_ok=True)
                if mode is TransferMode.MOVE:
                    shutil.move(source, target)
                    moved.add(key)
                else:
                    shutil.copy2(source, target)
            except OSError as exc:
                msg = f"Failed to {mode.value} {source} → {target}: {exc}"
                logger.warning(msg)
                result.record_failure(msg)
                continue

            result.success_count += 1
            logger.debug("%s %s -> %s", mode.value, source, target)
            if idx % 50 == 0 or idx == total:
                log_callback(f"   • {idx}/{total}")

        if mode is TransferMode.MOVE:
            if moved:
                inventory = remove_paths(inventory, moved)
                save_inventory(library, inventory)
                regenerate_derived_playlists(library, inventory)
                _prune_custom_playlists(library, moved)

            ref = track_set.playlist
            if ref is not None and ref.kind is PlaylistKind.CUSTOM and result.fail_count == 0:
                for path in find_playlist_files(library, ref.name):
                    os.remove(path)
                    logger.info("Deleted exported playlist %s", path)

            remove_empty_dirs(library.root, keep=[library.playlist_dir])

    logger.info(
        "Transfer of %s finished: %d succeeded, %d failed",
        track_set.label,
        result.success_count,
        result.fail_count,
    )
    log_callback(f"✓ {result.success_count} succeeded, {result.fail_count} failed")
    if mode is TransferMode.MOVE:
        notify_listener(on_committed, inventory)
    return result


def export_playlist(
    name: str,
    destination: str,
    mode: TransferMode | str,
    preserve_structure: bool,
    library: LibraryHandle,
    log_callback: Callable[[str], None] | None = None,
    on_committed: Optional[InventoryListener] = None,
) -> BatchResult:
    return transfer(
        TrackSet.of_playlist(name),
        destination,
        mode,
        preserve_structure,
        library,
        log_callback=log_callback,
        on_committed=on_committed,
    )


def export_library(
    destination: str,
    mode: TransferMode | str,
    preserve_structure: bool,
    library: LibraryHandle,
    log_callback: Callable[[str], None] | None = None,
    on_committed: Optional[InventoryListener] = None,
) -> BatchResult:
    return transfer(
        TrackSet.whole_library(),
        destination,
        mode,
        preserve_structure,
        library,
        log_callback=log_callback,
        on_committed=on_committed,
    )
