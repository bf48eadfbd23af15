import os
from pathlib import Path

import pytest

from controllers import library_controller
from controllers.playlist_controller import add_to_playlist, get_playlist_details
from inventory_store import load_inventory
from library_control import InvalidRequestError, NotFoundError
from playlist_generator import find_playlist_file, read_playlist
from utils.audio_metadata_reader import MetadataParseError


def test_library_paths_round_trip(tmp_path):
    cfg = str(tmp_path / "cfg.json")
    assert library_controller.load_library_paths(cfg) == ("", "")

    library_controller.save_library_paths(str(tmp_path / "in"), str(tmp_path / "lib"), cfg)

    assert library_controller.load_library_paths(cfg) == (str(tmp_path / "in"), str(tmp_path / "lib"))


def test_save_library_paths_requires_both(tmp_path):
    with pytest.raises(InvalidRequestError):
        library_controller.save_library_paths("", str(tmp_path), str(tmp_path / "cfg.json"))
    assert not (tmp_path / "cfg.json").exists()


def test_get_library_inventory(populated, library):
    titles = [t.title for t in library_controller.get_library_inventory(library)]
    assert titles == ["Alpha", "Beta", "Gamma", "Delta"]


def test_regenerate_database_rebuilds_from_disk(populated, library, tags, make_audio):
    add_to_playlist("Road", [populated["Delta"]], library)
    os.remove(library.inventory_path)
    for title, source in (("Alpha", "a.mp3"), ("Beta", "b.mp3"), ("Gamma", "c.flac"), ("Delta", "d.mp3")):
        tags[os.path.basename(populated[title])] = tags[source]
    tags["broken.mp3"] = MetadataParseError("corrupt")
    make_audio(Path(library.root) / "Loose" / "broken.mp3")

    summary = library_controller.regenerate_database(library)

    assert summary == {"trackCount": 5, "parseFailures": 1}
    inventory = {t.title: t for t in load_inventory(library)}
    assert set(inventory) == {"Alpha", "Beta", "Gamma", "Delta", "broken"}
    assert inventory["broken"].artist == "Unknown Artist"
    assert inventory["broken"].library_relative_path == "Loose/broken.mp3"
    assert inventory["Delta"].library_relative_path == "Band/(2005) Third/01 - Delta.mp3"
    assert len(read_playlist(find_playlist_file(library, "00_Master_Library"))) == 5
    assert [t.title for t in get_playlist_details("Road", library)] == ["Delta"]


def test_regenerate_database_missing_library(library):
    with pytest.raises(NotFoundError):
        library_controller.regenerate_database(library)


def test_reveal_in_file_manager(tmp_path, monkeypatch):
    target = tmp_path / "song.mp3"
    target.write_bytes(b"x")
    launched = []
    monkeypatch.setattr(library_controller.subprocess, "Popen", lambda cmd, **k: launched.append(cmd))

    library_controller.reveal_in_file_manager(str(target))

    assert len(launched) == 1
    assert any(str(target) in part or str(tmp_path) == part for part in launched[0])


def test_reveal_missing_file(tmp_path):
    with pytest.raises(NotFoundError):
        library_controller.reveal_in_file_manager(str(tmp_path / "gone.mp3"))


def test_reveal_launch_failure_is_logged(tmp_path, monkeypatch, caplog):
    target = tmp_path / "song.mp3"
    target.write_bytes(b"x")

    def boom(cmd, **k):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(library_controller.subprocess, "Popen", boom)
    library_controller.reveal_in_file_manager(str(target))
    assert any("Could not open file manager" in r.message for r in caplog.records)
