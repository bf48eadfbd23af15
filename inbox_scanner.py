"""Inbox scanner.

Walks the inbox and proposes where each audio file should land in the
library. Nothing on disk is modified.

Top-level folders of the inbox are tag carriers: ``[Favorites][Workout]``
puts every audio file beneath it into the ``Favorites`` and ``Workout``
playlists once organized. Top-level files carry no playlist hints.

Destinations follow ``Artist/(Year) Album/NN - Title.ext`` under the library
root; the album folder drops the ``(Year)`` prefix when no year is known.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List

from config import SUPPORTED_EXTS, UNKNOWN
from inventory_store import TrackRecord
import metadata_resolver
from library_control import InvalidRequestError, LibraryError, LibraryHandle, NotFoundError

logger = logging.getLogger(__name__)

_ILLEGAL_RE = re.compile(r'[/\\?%*:|"<>]')


def sanitize(name) -> str:
    """Return ``name`` safe to use as a single path segment."""
    if name is None:
        return UNKNOWN
    text = _ILLEGAL_RE.sub("-", str(name)).strip()
    if text in ("", ".", ".."):
        return UNKNOWN
    return text


def is_supported(path: str) -> bool:
    return os.path.splitext(path)[1].lower() in SUPPORTED_EXTS


def build_destination_path(track: TrackRecord, library_root: str) -> str:
    """Canonical library location for ``track``."""
    album = sanitize(track.album)
    album_dir = f"({track.year}) {album}" if track.year else album
    filename = f"{track.track_number} - {sanitize(track.title)}{track.file_extension}"
    return os.path.join(library_root, sanitize(track.artist), album_dir, filename)


@dataclass
class ScanProposal:
    """A file found in the inbox and where it would be relocated to."""

    source_path: str
    track: TrackRecord
    proposed_path: str
    playlist_hints: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "sourceAbsolutePath": self.source_path,
            "resolvedTrack": self.track.to_dict(),
            "proposedDestinationPath": self.proposed_path,
            "playlistHints": list(self.playlist_hints),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "ScanProposal":
        if not isinstance(data, dict):
            raise InvalidRequestError("Proposal must be an object")
        source = data.get("sourceAbsolutePath")
        proposed = data.get("proposedDestinationPath")
        hints = data.get("playlistHints", [])
        if not isinstance(source, str) or not source:
            raise InvalidRequestError("Proposal is missing sourceAbsolutePath")
        if not isinstance(proposed, str) or not proposed:
            raise InvalidRequestError("Proposal is missing proposedDestinationPath")
        if not isinstance(hints, list) or not all(isinstance(h, str) for h in hints):
            raise InvalidRequestError("playlistHints must be a list of strings")
        return cls(
            source_path=source,
            track=TrackRecord.from_dict(data.get("resolvedTrack")),
            proposed_path=proposed,
            playlist_hints=list(hints),
        )


def _audio_files(folder: str) -> List[str]:
    found = []
    for dirpath, dirnames, files in os.walk(folder):
        dirnames.sort()
        for fname in sorted(files):
            if is_supported(fname):
                found.append(os.path.join(dirpath, fname))
    return found


def analyze_file(path: str, library: LibraryHandle, hints: List[str]) -> ScanProposal:
    """Build the proposal for one inbox file. Reader errors propagate."""
    track = metadata_resolver.resolve_track(path)
    return ScanProposal(
        source_path=track.absolute_path,
        track=track,
        proposed_path=build_destination_path(track, library.root),
        playlist_hints=list(hints),
    )


def scan_inbox(
    inbox_path: str,
    library: LibraryHandle,
    log_callback: Callable[[str], None] | None = None,
) -> List[ScanProposal]:
    """Return relocation proposals for every audio file under ``inbox_path``.

    Files whose metadata cannot be read are logged and left out.
    """
    if log_callback is None:
        def log_callback(msg):
            pass

    if not inbox_path or not os.path.isdir(inbox_path):
        raise NotFoundError(f"Inbox path does not exist: {inbox_path}")

    candidates = []
    for entry in sorted(os.listdir(inbox_path)):
        full = os.path.join(inbox_path, entry)
        if os.path.isdir(full):
            hints = metadata_resolver.extract_folder_tags(entry)
            candidates.extend((path, hints) for path in _audio_files(full))
        elif os.path.isfile(full) and is_supported(entry):
            candidates.append((full, []))

    log_callback(f"Found {len(candidates)} audio files in inbox.")
    proposals = []
    for path, hints in candidates:
        try:
            proposals.append(analyze_file(path, library, hints))
        except LibraryError as exc:
            logger.warning("Failed to parse %s: %s", path, exc)
            log_callback(f"! Skipping {os.path.basename(path)}: {exc}")
            continue
        logger.debug("Proposed %s -> %s", path, proposals[-1].proposed_path)

    skipped = len(candidates) - len(proposals)
    logger.info("Scanned %s: %d proposals, %d skipped", inbox_path, len(proposals), skipped)
    return proposals
