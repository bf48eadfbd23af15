import os

import pytest

import metadata_resolver
from controllers.import_controller import organize
from inbox_scanner import scan_inbox
from library_control import LibraryHandle
from utils.audio_metadata_reader import MetadataNotFoundError, ParsedMetadata


@pytest.fixture
def library(tmp_path):
    return LibraryHandle.open(str(tmp_path / "Library"))


@pytest.fixture
def inbox(tmp_path):
    path = tmp_path / "Inbox"
    path.mkdir()
    return path


@pytest.fixture
def make_audio():
    def _make(path, data=b"audio"):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path

    return _make


@pytest.fixture
def tags(monkeypatch):
    """Replace the mutagen reader. Map a file's basename to ParsedMetadata
    keyword arguments, or to an exception instance to raise."""
    table = {}

    def fake_parse(path, *, include_cover=True, include_duration=True):
        if not os.path.isfile(path):
            raise MetadataNotFoundError(f"File not found: {path}")
        spec = table.get(os.path.basename(path), {})
        if isinstance(spec, Exception):
            raise spec
        return ParsedMetadata(**spec)

    monkeypatch.setattr(metadata_resolver, "parse_audio_metadata", fake_parse)
    return table


@pytest.fixture
def populated(library, inbox, tags, make_audio):
    """Organized library: a, b, c in ``Favorites``; d with no playlist.

    Returns title -> final absolute path.
    """
    tags.update(
        {
            "a.mp3": dict(title="Alpha", artist="Band", album="First", year=2001, track_number=1, genres=["Rock"]),
            "b.mp3": dict(title="Beta", artist="Band", album="First", year=2001, track_number=2, genres=["Rock", "Pop"]),
            "c.flac": dict(title="Gamma", artist="Other", album="Second", track_number=5, genres=["Jazz"]),
            "d.mp3": dict(title="Delta", artist="Band", album="Third", year=2005, track_number=1, genres=["Rock"]),
        }
    )
    for name in ("a.mp3", "b.mp3", "c.flac"):
        make_audio(inbox / "[Favorites]" / name, data=name.encode())
    make_audio(inbox / "d.mp3", data=b"d.mp3")

    proposals = scan_inbox(str(inbox), library)
    result = organize(proposals, library)
    assert result.fail_count == 0
    return {p.track.title: p.proposed_path for p in proposals}
