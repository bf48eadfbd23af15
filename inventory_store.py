"""JSON-backed inventory of every track currently in a library."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from config import DEFAULT_TRACK_NO, UNKNOWN_ALBUM, UNKNOWN_ARTIST
from library_control import IOFailureError, InvalidRequestError, LibraryHandle
from utils.path_helpers import absolute_path, canonical_path

logger = logging.getLogger(__name__)


@dataclass
class TrackRecord:
    """One inventory entry."""

    title: str
    artist: str
    album: str
    track_number: str
    genres: List[str]
    file_extension: str
    absolute_path: str
    year: Optional[int] = None
    library_relative_path: Optional[str] = None

    @property
    def key(self) -> str:
        return canonical_path(self.absolute_path)

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "title": self.title,
            "artist": self.artist,
            "album": self.album,
            "year": self.year,
            "trackNumber": self.track_number,
            "genres": list(self.genres),
            "fileExtension": self.file_extension,
            "absolutePath": self.absolute_path,
        }
        if self.library_relative_path is not None:
            data["libraryRelativePath"] = self.library_relative_path
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "TrackRecord":
        """Build a record from ``data``; older key names (trackNo, genre, absPath…) are accepted too."""
        if not isinstance(data, dict):
            raise InvalidRequestError("Track entry must be an object")
        path = data.get("absolutePath") or data.get("absPath")
        if not isinstance(path, str) or not path:
            raise InvalidRequestError("Track entry is missing absolutePath")
        genres = data.get("genres", data.get("genre"))
        if isinstance(genres, str):
            genres = [genres]
        year = data.get("year")
        return cls(
            title=str(data.get("title") or os.path.splitext(os.path.basename(path))[0]),
            artist=str(data.get("artist") or UNKNOWN_ARTIST),
            album=str(data.get("album") or UNKNOWN_ALBUM),
            track_number=str(data.get("trackNumber") or data.get("trackNo") or DEFAULT_TRACK_NO),
            genres=[str(g) for g in (genres or [])],
            file_extension=str(
                data.get("fileExtension") or data.get("format") or os.path.splitext(path)[1].lower()
            ),
            absolute_path=absolute_path(path),
            year=year if isinstance(year, int) else None,
            library_relative_path=data.get("libraryRelativePath") or data.get("relPath"),
        )


def load_inventory(library: LibraryHandle) -> List[TrackRecord]:
    """Return the inventory of ``library`` or an empty list if it has none."""
    path = library.inventory_path
    if not os.path.exists(path):
        return []
    try:
        with open(path, "r", encoding="utf-8") as fh:
            raw = json.load(fh)
    except (OSError, ValueError) as exc:
        raise IOFailureError(f"Failed to read inventory {path}: {exc}") from exc
    if not isinstance(raw, list):
        raise IOFailureError(f"Inventory {path} is not a JSON list")
    tracks = []
    for entry in raw:
        try:
            tracks.append(TrackRecord.from_dict(entry))
        except InvalidRequestError as exc:
            logger.warning("Skipping malformed inventory entry in %s: %s", path, exc)
    return tracks


def save_inventory(library: LibraryHandle, tracks: Iterable[TrackRecord]) -> None:
    """Write ``tracks`` back to disk for ``library`` (temp file, then replace)."""
    path = library.inventory_path
    os.makedirs(os.path.dirname(path), exist_ok=True)
    tmp_path = path + ".tmp"
    payload = [track.to_dict() for track in tracks]
    try:
        with open(tmp_path, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2, ensure_ascii=False)
            fh.write("\n")
        os.replace(tmp_path, path)
    except OSError as exc:
        raise IOFailureError(f"Failed to write inventory {path}: {exc}") from exc
    logger.debug("Saved %d inventory entries to %s", len(payload), path)


def index_by_path(tracks: Iterable[TrackRecord]) -> Dict[str, TrackRecord]:
    """Map canonical absolute path -> track."""
    return {track.key: track for track in tracks}


def upsert(tracks: List[TrackRecord], track: TrackRecord) -> bool:
    """Replace the entry with the same path or append ``track``.

    Returns True when an existing entry was replaced.
    """
    key = track.key
    for i, existing in enumerate(tracks):
        if existing.key == key:
            tracks[i] = track
            return True
    tracks.append(track)
    return False


def remove_paths(tracks: Iterable[TrackRecord], paths: Iterable[str]) -> List[TrackRecord]:
    """Return ``tracks`` without the entries whose path is in ``paths``."""
    drop = {canonical_path(p) for p in paths}
    return [track for track in tracks if track.key not in drop]
