"""Helpers for generating the playlists derived from the inventory."""

from __future__ import annotations

import logging
import os
from typing import Callable, Dict, Iterable, List

from config import GENRE_PLAYLIST_PREFIX
from inbox_scanner import sanitize
from inventory_store import TrackRecord
from library_control import LibraryHandle, PlaylistKind
from playlist_generator import (
    entries_for,
    generate_master_playlist,
    iter_playlist_files,
    playlist_path,
    write_playlist,
)

logger = logging.getLogger(__name__)

GenreGroups = Dict[str, List[str]]


def genre_playlist_name(genre: str) -> str:
    return f"{GENRE_PLAYLIST_PREFIX}{sanitize(genre)}"


def group_tracks_by_genre(
    tracks: Iterable[TrackRecord],
    log_callback: Callable[[str], None] | None = None,
) -> GenreGroups:
    """Group track paths into playlists keyed by genre playlist name.

    Genres are trimmed; a track appears once per playlist even if two of its
    genres sanitize to the same file name.
    """
    log = log_callback or (lambda _m: None)
    grouped: GenreGroups = {}

    for track in tracks:
        names = []
        for genre in track.genres:
            genre = (genre or "").strip()
            if not genre:
                continue
            name = genre_playlist_name(genre)
            if name not in names:
                names.append(name)
        if not names:
            log(f"! No genre for {track.absolute_path}")
            continue
        for name in names:
            grouped.setdefault(name, []).append(track.absolute_path)
            log(f"• {os.path.basename(track.absolute_path)} → {name}")

    return grouped


def write_genre_playlists(
    grouped: GenreGroups,
    library: LibraryHandle,
    log_callback: Callable[[str], None] | None = None,
) -> Dict[str, str]:
    """Write one playlist per genre, delete stale ones, return name -> path."""
    log = log_callback or (lambda _m: None)
    out_paths: Dict[str, str] = {}
    for name in sorted(grouped.keys(), key=str.lower):
        outfile = playlist_path(library, name)
        write_playlist(entries_for(grouped[name], library.playlist_dir), outfile)
        out_paths[name] = outfile
        log(f"→ Wrote {outfile}")

    for ref, path in list(iter_playlist_files(library, unique=False)):
        if ref.kind is PlaylistKind.GENRE and out_paths.get(ref.name) != path:
            os.remove(path)
            logger.info("Removed stale genre playlist %s", path)
    return out_paths


def regenerate_derived_playlists(
    library: LibraryHandle,
    inventory: List[TrackRecord],
    log_callback: Callable[[str], None] | None = None,
) -> None:
    """Rebuild Master and every Genre playlist from ``inventory``."""
    os.makedirs(library.playlist_dir, exist_ok=True)
    generate_master_playlist(library, [t.absolute_path for t in inventory])
    grouped = group_tracks_by_genre(inventory, log_callback)
    write_genre_playlists(grouped, library, log_callback)
    logger.info(
        "Regenerated Master (%d tracks) and %d genre playlists", len(inventory), len(grouped)
    )
