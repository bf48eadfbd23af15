"""Turn raw tags into inventory records, applying the default-value policy."""

import logging
import os
import re
from typing import List, Optional

from config import DEFAULT_GENRE, DEFAULT_TRACK_NO, UNKNOWN_ALBUM, UNKNOWN_ARTIST
from inventory_store import TrackRecord
from library_control import NotFoundError, ParseFailureError
from utils.audio_metadata_reader import CoverArt, ParsedMetadata, parse_audio_metadata
from utils.path_helpers import absolute_path

logger = logging.getLogger(__name__)

_BRACKET_RE = re.compile(r"\[(.*?)\]")


def extract_folder_tags(folder_name: str) -> List[str]:
    """Return playlist hints encoded in an inbox folder name.

    ``"[Favorites][Workout]"`` gives ``["Favorites", "Workout"]``; a name with
    no bracket tokens is used as a single hint. Names starting with a dot are
    never playlists and are dropped.
    """
    tokens = [t.strip() for t in _BRACKET_RE.findall(folder_name) if t.strip()]
    if not tokens:
        name = folder_name.strip()
        tokens = [name] if name else []
    return [t for t in tokens if not t.startswith(".")]


def format_track_number(number: Optional[int]) -> str:
    if number is None:
        return DEFAULT_TRACK_NO
    return str(number).zfill(2)


def track_from_metadata(path: str, meta: ParsedMetadata) -> TrackRecord:
    """Apply defaults to ``meta`` and return a record located at ``path``."""
    stem, ext = os.path.splitext(os.path.basename(path))
    return TrackRecord(
        title=meta.title or stem,
        artist=meta.artist or UNKNOWN_ARTIST,
        album=meta.album or UNKNOWN_ALBUM,
        year=meta.year,
        track_number=format_track_number(meta.track_number),
        genres=list(meta.genres) or [DEFAULT_GENRE],
        file_extension=ext.lower(),
        absolute_path=absolute_path(path),
    )


def resolve_track(path: str) -> TrackRecord:
    """Read ``path`` and return its record. Reader errors propagate."""
    meta = parse_audio_metadata(path, include_cover=False, include_duration=False)
    return track_from_metadata(path, meta)


def get_track_metadata(path: str) -> Optional[ParsedMetadata]:
    """Full metadata including duration, or ``None`` if ``path`` is missing."""
    try:
        return parse_audio_metadata(path, include_cover=True, include_duration=True)
    except NotFoundError:
        return None


def get_album_cover(path: str) -> Optional[CoverArt]:
    """First embedded picture of ``path``, or ``None``."""
    try:
        meta = parse_audio_metadata(path, include_cover=True, include_duration=False)
    except NotFoundError:
        return None
    except ParseFailureError as exc:
        logger.warning("Could not read album cover from %s: %s", path, exc)
        return None
    return meta.pictures[0] if meta.pictures else None
