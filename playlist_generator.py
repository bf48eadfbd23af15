"""Playlist file utilities.

Playlists live in ``<library>/Playlists`` as UTF-8 M3U files: a ``#EXTM3U``
header followed by one track per line, each a forward-slash path relative
to the playlist folder. New files use ``PLAYLIST_PRIMARY_EXT``; files with
``PLAYLIST_LEGACY_EXT`` are still found when reading.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from config import MASTER_PLAYLIST_NAME, PLAYLIST_EXTS, PLAYLIST_HEADER, PLAYLIST_PRIMARY_EXT
from library_control import IOFailureError, LibraryHandle, PlaylistRef
from utils.path_helpers import normalize_entry, playlist_entry

logger = logging.getLogger(__name__)


def playlist_path(library: LibraryHandle, name: str, ext: str = PLAYLIST_PRIMARY_EXT) -> str:
    return os.path.join(library.playlist_dir, f"{name.strip()}{ext}")


def find_playlist_files(library: LibraryHandle, name: str) -> List[str]:
    """Existing backing files for ``name``, primary extension first."""
    candidates = [playlist_path(library, name, ext) for ext in PLAYLIST_EXTS]
    return [p for p in candidates if os.path.isfile(p)]


def find_playlist_file(library: LibraryHandle, name: str) -> Optional[str]:
    files = find_playlist_files(library, name)
    return files[0] if files else None


def iter_playlist_files(
    library: LibraryHandle, unique: bool = True
) -> Iterator[Tuple[PlaylistRef, str]]:
    """Yield every recognised playlist file.

    With ``unique`` a name is yielded once and the primary file wins a tie.
    """
    folder = library.playlist_dir
    if not os.path.isdir(folder):
        return
    seen = set()
    for ext in PLAYLIST_EXTS:
        for fname in sorted(os.listdir(folder), key=str.lower):
            if not fname.endswith(ext) or fname.startswith("."):
                continue
            stem = fname[: -len(ext)]
            if unique and stem in seen:
                continue
            full = os.path.join(folder, fname)
            if not os.path.isfile(full):
                continue
            seen.add(stem)
            yield PlaylistRef.from_name(stem), full


def read_playlist(path: str) -> List[str]:
    """Return the track lines of ``path`` (blank and ``#`` lines dropped)."""
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            return [
                line.strip()
                for line in f
                if line.strip() and not line.strip().startswith("#")
            ]
    except OSError as e:
        raise IOFailureError(f"Failed to read playlist {path}: {e}") from e


def write_playlist(entries: Iterable[str], outfile: str) -> str:
    """Write an M3U playlist of already-relative ``entries`` to ``outfile``."""
    os.makedirs(os.path.dirname(outfile), exist_ok=True)
    lines = [PLAYLIST_HEADER, *entries]
    tmp = os.path.join(os.path.dirname(outfile), f".{os.path.basename(outfile)}.tmp")
    try:
        with open(tmp, "w", encoding="utf-8", newline="\n") as f:
            f.write("\n".join(lines) + "\n")
        os.replace(tmp, outfile)
    except OSError as e:
        raise IOFailureError(f"Failed to write playlist {outfile}: {e}") from e
    return outfile


def merge_entries(existing: Iterable[str], new: Iterable[str]) -> List[str]:
    """Set union of two entry lists, keeping first-seen order."""
    merged: List[str] = []
    seen = set()
    for entry in list(existing) + list(new):
        norm = normalize_entry(entry)
        if norm and norm not in seen:
            seen.add(norm)
            merged.append(norm)
    return merged


def merge_into_playlist(path: str, new_entries: Iterable[str]) -> int:
    """Union ``new_entries`` into the playlist at ``path``; return how many were added."""
    existing = read_playlist(path) if os.path.isfile(path) else []
    merged = merge_entries(existing, new_entries)
    added = len(merged) - len(merge_entries(existing, []))
    write_playlist(merged, path)
    return added


def entries_for(track_paths: Iterable[str], playlist_dir: str) -> List[str]:
    return [playlist_entry(p, playlist_dir) for p in track_paths]


def generate_master_playlist(library: LibraryHandle, track_paths: Iterable[str]) -> str:
    """Rewrite the Master playlist so it lists exactly ``track_paths``."""
    outfile = playlist_path(library, MASTER_PLAYLIST_NAME)
    entries = entries_for(track_paths, library.playlist_dir)
    write_playlist(entries, outfile)
    logger.debug("Wrote Master playlist with %d entries", len(entries))
    return outfile


def generate_playlists(
    library: LibraryHandle,
    grouped: Dict[str, List[str]],
    log_callback=None,
) -> Dict[str, str]:
    """Merge absolute track paths per playlist name into custom playlists.

    Existing entries are never dropped, so manual curation survives.
    Returns mapping of playlist name -> file written.
    """
    if log_callback is None:
        log_callback = lambda msg: None

    written: Dict[str, str] = {}
    for name, files in grouped.items():
        if not files:
            log_callback(f"⚠ Skipping empty playlist: {name}")
            continue
        outfile = find_playlist_file(library, name) or playlist_path(library, name)
        added = merge_into_playlist(outfile, entries_for(files, library.playlist_dir))
        log_callback(f"→ Writing playlist: {outfile}")
        logger.info("Merged %d new entries into %s", added, outfile)
        written[name] = outfile
    return written
