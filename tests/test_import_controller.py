import os

import pytest

from controllers import import_controller
from controllers.export_controller import export_library
from controllers.import_controller import organize
from controllers.playlist_controller import (
    add_to_playlist,
    get_playlist_details,
    get_playlists_for_track,
)
from inbox_scanner import scan_inbox
from inventory_store import load_inventory
from library_control import InvalidRequestError
from playlist_generator import find_playlist_file, read_playlist
from utils.path_helpers import canonical_path, resolve_playlist_entry


def _master_paths(library):
    path = find_playlist_file(library, "00_Master_Library")
    return [canonical_path(resolve_playlist_entry(line, library.playlist_dir)) for line in read_playlist(path)]


def _organize(inbox, library, **kwargs):
    return organize(scan_inbox(str(inbox), library), library, **kwargs)


def test_tag_folder_hints_become_playlists(inbox, library, tags, make_audio):
    make_audio(inbox / "[Favorites][Workout]" / "a.mp3")

    result = _organize(inbox, library)

    assert result.to_dict() == {"successCount": 1, "failCount": 0, "errors": []}
    final = os.path.join(library.root, "Unknown Artist", "Unknown Album", "00 - a.mp3")
    assert os.path.isfile(final)
    assert get_playlists_for_track(final, library) == ["Favorites", "Workout"]


def test_round_trip_untagged_file(inbox, library, tags, make_audio):
    make_audio(inbox / "song.mp3")
    _organize(inbox, library)

    tracks = get_playlist_details("00_Master_Library", library)

    assert len(tracks) == 1
    assert tracks[0].title == "song"
    assert tracks[0].artist == "Unknown Artist"
    assert tracks[0].library_relative_path == "Unknown Artist/Unknown Album/00 - song.mp3"


def test_master_and_genre_playlists_follow_inventory(populated, library, inbox, tags, make_audio):
    tags["e.mp3"] = dict(title="Echo", artist="New", album="Fresh", genres=["Pop"])
    make_audio(inbox / "e.mp3")
    _organize(inbox, library)

    inventory = load_inventory(library)
    assert len(inventory) == 5
    assert sorted(_master_paths(library)) == sorted(t.key for t in inventory)

    for track in inventory:
        for genre in track.genres:
            lines = read_playlist(find_playlist_file(library, f"Genre_{genre}"))
            assert track.library_relative_path in [line[len("../"):] for line in lines]


def test_custom_playlist_keeps_hand_added_tracks(populated, library, inbox, tags, make_audio):
    add_to_playlist("Chill", [populated["Delta"]], library)
    tags["f.mp3"] = dict(title="Foxtrot", artist="Band", album="Fourth", genres=["Rock"])
    make_audio(inbox / "[Chill]" / "f.mp3")

    _organize(inbox, library)

    names = [t.title for t in get_playlist_details("Chill", library)]
    assert names == ["Delta", "Foxtrot"]
    assert [t.title for t in get_playlist_details("Favorites", library)] == ["Alpha", "Beta", "Gamma"]


def test_existing_destination_wins_and_inventory_stays_unique(inbox, library, tags, make_audio):
    tags["one.mp3"] = dict(title="Same", artist="X", album="Y", track_number=1)
    tags["two.mp3"] = dict(title="Same", artist="X", album="Y", track_number=1)
    make_audio(inbox / "one.mp3", data=b"first")
    make_audio(inbox / "two.mp3", data=b"second")

    result = _organize(inbox, library)

    final = os.path.join(library.root, "X", "Y", "01 - Same.mp3")
    assert result.success_count == 2
    with open(final, "rb") as fh:
        assert fh.read() == b"first"
    assert (inbox / "two.mp3").exists()
    assert len(load_inventory(library)) == 1
    assert len(_master_paths(library)) == 1


def test_relocation_failure_does_not_abort_batch(inbox, library, tags, make_audio, monkeypatch):
    make_audio(inbox / "a.mp3")
    make_audio(inbox / "b.mp3")
    real = import_controller.relocate

    def flaky(src, dest):
        if src.endswith("a.mp3"):
            raise PermissionError("locked")
        return real(src, dest)

    monkeypatch.setattr(import_controller, "relocate", flaky)
    result = _organize(inbox, library)

    assert (result.success_count, result.fail_count) == (1, 1)
    assert "locked" in result.errors[0]
    assert [t.title for t in load_inventory(library)] == ["b"]


def test_reserved_hints_are_not_merged(inbox, library, tags, make_audio):
    make_audio(inbox / "[00_Master_Library][Genre_Fake][Mix]" / "a.mp3")

    _organize(inbox, library)

    assert find_playlist_file(library, "Genre_Fake") is None
    assert len(_master_paths(library)) == 1
    assert [t.title for t in get_playlist_details("Mix", library)] == ["a"]


def test_dot_folder_hints_create_no_playlist(inbox, library, tags, make_audio, tmp_path):
    make_audio(inbox / ".hidden" / "a.mp3")
    make_audio(inbox / "b.mp3")
    data = [p.to_dict() for p in scan_inbox(str(inbox), library)]
    data[-1]["playlistHints"] = [".secret", "Mix"]

    result = organize(data, library)

    assert result.success_count == 2
    assert not any(name.startswith(".") for name in os.listdir(library.playlist_dir))
    final = os.path.join(library.root, "Unknown Artist", "Unknown Album", "00 - a.mp3")
    assert os.path.isfile(final)
    assert get_playlists_for_track(final, library) == []

    export_library(str(tmp_path / "out"), "move", True, library)
    assert read_playlist(find_playlist_file(library, "Mix")) == []


def test_destination_outside_library_is_rejected_before_any_move(inbox, library, tags, make_audio, tmp_path):
    make_audio(inbox / "a.mp3")
    proposals = scan_inbox(str(inbox), library)
    proposals[0].proposed_path = str(tmp_path / "elsewhere" / "a.mp3")

    with pytest.raises(InvalidRequestError):
        organize(proposals, library)
    assert (inbox / "a.mp3").exists()
    assert not os.path.exists(library.root)


def test_organize_accepts_serialised_proposals(inbox, library, tags, make_audio):
    make_audio(inbox / "a.mp3")
    data = [p.to_dict() for p in scan_inbox(str(inbox), library)]

    result = organize(data, library)

    assert result.success_count == 1
    with pytest.raises(InvalidRequestError):
        organize({"not": "a list"}, library)


def test_listener_receives_inventory_and_failures_are_contained(inbox, library, tags, make_audio, caplog):
    make_audio(inbox / "a.mp3")
    seen = []

    def listener(inventory):
        seen.append([t.title for t in inventory])
        raise RuntimeError("player not running")

    result = _organize(inbox, library, on_committed=listener)

    assert result.success_count == 1
    assert seen == [["a"]]
    assert any("listener failed" in r.message for r in caplog.records)
