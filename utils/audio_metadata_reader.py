"""Shared helpers for reading audio metadata and embedded cover art."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from mutagen import File as MutagenFile

from library_control import NotFoundError, ParseFailureError
from utils.path_helpers import ensure_long_path

logger = logging.getLogger(__name__)

# MP4Cover.imageformat values
_MP4_COVER_MIME = {13: "image/jpeg", 14: "image/png"}


class MetadataNotFoundError(NotFoundError):
    """The audio file does not exist."""


class MetadataParseError(ParseFailureError):
    """The audio file exists but mutagen could not read it."""


@dataclass
class CoverArt:
    data: bytes
    mime_type: str


@dataclass
class ParsedMetadata:
    """Raw tag values; ``None``/empty when the file does not carry them."""

    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    year: Optional[int] = None
    track_number: Optional[int] = None
    genres: List[str] = field(default_factory=list)
    pictures: List[CoverArt] = field(default_factory=list)
    duration: Optional[float] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "title": self.title,
            "artist": self.artist,
            "album": self.album,
            "year": self.year,
            "trackNumber": self.track_number,
            "genres": list(self.genres),
            "pictures": [{"format": p.mime_type, "size": len(p.data)} for p in self.pictures],
            "duration": self.duration,
        }


def _first_value(value: object) -> object:
    if isinstance(value, (list, tuple)):
        return _first_value(value[0]) if value else None
    if hasattr(value, "text"):
        text_value = value.text
        if isinstance(text_value, (list, tuple)):
            return _first_value(text_value[0]) if text_value else None
        return str(text_value) if text_value is not None else None
    return value


def _text(value: object) -> Optional[str]:
    value = _first_value(value)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_int(value: object) -> int | None:
    try:
        return int(str(value).split("/")[0])
    except (TypeError, ValueError):
        return None


def _parse_year(value: object) -> int | None:
    if value in (None, ""):
        return None
    text = str(value)
    if len(text) >= 4 and text[:4].isdigit():
        return int(text[:4])
    digits = "".join(ch for ch in text if ch.isdigit())
    if len(digits) >= 4:
        return int(digits[:4])
    return None


def _genre_list(value: object) -> List[str]:
    if value is None:
        return []
    values = value if isinstance(value, (list, tuple)) else [value]
    genres: List[str] = []
    for raw in values:
        text = _text(raw)
        if text and text not in genres:
            genres.append(text)
    return genres


def _extract_covers(audio) -> List[CoverArt]:
    covers: List[CoverArt] = []
    if audio is None:
        return covers

    for pic in getattr(audio, "pictures", None) or []:
        data = getattr(pic, "data", None)
        if data:
            covers.append(CoverArt(bytes(data), getattr(pic, "mime", None) or "image/jpeg"))

    tags = getattr(audio, "tags", None)
    if not tags:
        return covers

    if hasattr(tags, "getall"):
        for apic in tags.getall("APIC"):
            data = getattr(apic, "data", None)
            if data:
                covers.append(CoverArt(bytes(data), getattr(apic, "mime", None) or "image/jpeg"))

    covr = tags.get("covr") if hasattr(tags, "get") else None
    for cover in covr or []:
        if cover:
            fmt = getattr(cover, "imageformat", None)
            covers.append(CoverArt(bytes(cover), _MP4_COVER_MIME.get(fmt, "image/jpeg")))

    return covers


def parse_audio_metadata(
    path: str,
    *,
    include_cover: bool = True,
    include_duration: bool = True,
) -> ParsedMetadata:
    """Read tags from ``path`` with mutagen.

    Raises :class:`MetadataNotFoundError` when the file is missing and
    :class:`MetadataParseError` when it cannot be decoded. A file mutagen
    does not recognise comes back with every field empty.
    """
    if not os.path.isfile(path):
        raise MetadataNotFoundError(f"File not found: {path}")

    try:
        audio_easy = MutagenFile(ensure_long_path(path), easy=True)
    except FileNotFoundError as exc:
        raise MetadataNotFoundError(f"File not found: {path}") from exc
    except Exception as exc:
        raise MetadataParseError(f"Failed to parse {path}: {exc}") from exc

    meta = ParsedMetadata()
    if audio_easy is None:
        logger.debug("No recognised audio container for %s", path)
        return meta

    tags = getattr(audio_easy, "tags", None) or {}
    if tags:
        meta.title = _text(tags.get("title"))
        meta.artist = _text(tags.get("artist"))
        meta.album = _text(tags.get("album"))
        meta.year = _parse_year(_first_value(tags.get("date") or tags.get("year")))
        track_raw = _first_value(tags.get("tracknumber") or tags.get("track"))
        meta.track_number = _parse_int(track_raw) if track_raw not in (None, "") else None
        meta.genres = _genre_list(tags.get("genre"))

    if include_duration:
        info = getattr(audio_easy, "info", None)
        length = getattr(info, "length", None)
        meta.duration = float(length) if length is not None else None

    if include_cover:
        try:
            audio_full = MutagenFile(ensure_long_path(path))
        except Exception as exc:
            logger.warning("Could not read embedded artwork from %s: %s", path, exc)
            audio_full = None
        meta.pictures = _extract_covers(audio_full)

    return meta
