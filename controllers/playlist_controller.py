"""User-facing playlist operations: add, remove, delete, list and inspect."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Dict, Iterable, List

from config import DEFAULT_TRACK_NO, UNKNOWN_ALBUM, UNKNOWN_ARTIST
from inventory_store import TrackRecord, index_by_path, load_inventory
from library_control import (
    InvalidRequestError,
    LibraryHandle,
    NotFoundError,
    PlaylistKind,
    PlaylistRef,
    ProtectedPlaylistError,
    library_lock,
    protect,
)
from playlist_generator import (
    entries_for,
    find_playlist_file,
    find_playlist_files,
    iter_playlist_files,
    merge_into_playlist,
    playlist_path,
    read_playlist,
    write_playlist,
)
from utils.path_helpers import canonical_path, normalize_entry, playlist_entry, resolve_playlist_entry

logger = logging.getLogger(__name__)


@dataclass
class PlaylistInfo:
    name: str
    track_count: int
    path: str
    kind: PlaylistKind

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "trackCount": self.track_count,
            "path": self.path,
            "kind": self.kind.value,
        }


def _ref(name: str) -> PlaylistRef:
    if not isinstance(name, str) or not name.strip():
        raise InvalidRequestError("Playlist name is required")
    if "/" in name or "\\" in name:
        raise InvalidRequestError(f"Playlist name may not contain path separators: {name!r}")
    if name.startswith("."):
        raise InvalidRequestError(f"Playlist name may not start with a dot: {name!r}")
    return PlaylistRef.from_name(name)


def _require_custom(ref: PlaylistRef, action: str) -> None:
    protect(ref, action)
    if ref.kind is PlaylistKind.GENRE:
        raise ProtectedPlaylistError(
            f"Cannot {action} Genre playlist {ref.name}: it is generated from track genres"
        )


def _track_paths(track_paths: Iterable[str]) -> List[str]:
    if isinstance(track_paths, str):
        track_paths = [track_paths]
    paths = list(track_paths or [])
    if not paths or not all(isinstance(p, str) and p.strip() for p in paths):
        raise InvalidRequestError("At least one track path is required")
    return paths


def _require_file(library: LibraryHandle, ref: PlaylistRef) -> str:
    path = find_playlist_file(library, ref.name)
    if path is None:
        raise NotFoundError(f"Playlist not found: {ref.name}")
    return path


def add_to_playlist(name: str, track_paths: Iterable[str], library: LibraryHandle) -> int:
    """Merge ``track_paths`` into playlist ``name``, creating it if needed.

    Returns the number of entries that were not already present.
    """
    ref = _ref(name)
    _require_custom(ref, "add tracks to")
    paths = _track_paths(track_paths)

    with library_lock(library):
        outfile = find_playlist_file(library, ref.name) or playlist_path(library, ref.name)
        added = merge_into_playlist(outfile, entries_for(paths, library.playlist_dir))
    logger.info("Added %d of %d tracks to %s", added, len(paths), outfile)
    return added


def remove_from_playlist(name: str, track_path: str, library: LibraryHandle) -> bool:
    """Remove ``track_path`` from playlist ``name``.

    Returns False (and leaves the file alone) when the track was not listed.
    """
    ref = _ref(name)
    _require_custom(ref, "remove tracks from")
    if not isinstance(track_path, str) or not track_path.strip():
        raise InvalidRequestError("Track path is required")

    with library_lock(library):
        path = _require_file(library, ref)
        target = playlist_entry(track_path, library.playlist_dir)
        lines = read_playlist(path)
        kept = [line for line in lines if normalize_entry(line) != target]
        if len(kept) == len(lines):
            logger.info("%s is not in playlist %s; nothing to remove", track_path, ref.name)
            return False
        write_playlist(kept, path)
    logger.info("Removed %s from %s", track_path, path)
    return True


def delete_playlist(name: str, library: LibraryHandle) -> List[str]:
    """Delete every backing file of playlist ``name`` and return their paths."""
    ref = _ref(name)
    protect(ref, "delete")

    with library_lock(library):
        files = find_playlist_files(library, ref.name)
        if not files:
            raise NotFoundError(f"Playlist not found: {ref.name}")
        for path in files:
            os.remove(path)
            logger.info("Deleted playlist %s", path)
    return files


def list_playlists(library: LibraryHandle) -> List[PlaylistInfo]:
    """Every playlist except Master, sorted by name."""
    infos = []
    for ref, path in iter_playlist_files(library):
        if ref.kind is PlaylistKind.MASTER:
            continue
        infos.append(PlaylistInfo(ref.name, len(read_playlist(path)), path, ref.kind))
    infos.sort(key=lambda info: info.name.lower())
    return infos


def _synthesized_track(path: str) -> TrackRecord:
    return TrackRecord(
        title=os.path.basename(path),
        artist=UNKNOWN_ARTIST,
        album=UNKNOWN_ALBUM,
        track_number=DEFAULT_TRACK_NO,
        genres=[],
        file_extension=os.path.splitext(path)[1].lower(),
        absolute_path=path,
    )


def get_playlist_details(name: str, library: LibraryHandle) -> List[TrackRecord]:
    """Tracks of playlist ``name`` in file order, enriched from the inventory."""
    ref = _ref(name)
    path = _require_file(library, ref)
    by_path = index_by_path(load_inventory(library))

    tracks = []
    for line in read_playlist(path):
        resolved = resolve_playlist_entry(line, library.playlist_dir)
        track = by_path.get(canonical_path(resolved))
        if track is None:
            logger.debug("No inventory entry for %s in %s", resolved, ref.name)
            track = _synthesized_track(resolved)
        tracks.append(track)
    return tracks


def get_playlists_for_track(track_path: str, library: LibraryHandle) -> List[str]:
    """Names of the custom playlists that list ``track_path``."""
    if not isinstance(track_path, str) or not track_path.strip():
        raise InvalidRequestError("Track path is required")
    target = playlist_entry(track_path, library.playlist_dir)
    names = []
    for ref, path in iter_playlist_files(library, unique=False):
        if ref.kind is not PlaylistKind.CUSTOM or ref.name in names:
            continue
        if target in {normalize_entry(line) for line in read_playlist(path)}:
            names.append(ref.name)
    return sorted(names, key=str.lower)
