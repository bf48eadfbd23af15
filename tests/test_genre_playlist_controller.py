import os

from controllers.genre_playlist_controller import (
    genre_playlist_name,
    group_tracks_by_genre,
    regenerate_derived_playlists,
    write_genre_playlists,
)
from inventory_store import TrackRecord
from playlist_generator import find_playlist_file, read_playlist, write_playlist


def _track(library, rel, genres):
    return TrackRecord(
        title=os.path.basename(rel),
        artist="A",
        album="B",
        track_number="01",
        genres=genres,
        file_extension=".mp3",
        absolute_path=os.path.join(library.root, *rel.split("/")),
    )


def test_genre_playlist_name_is_sanitized():
    assert genre_playlist_name("Hip/Hop") == "Genre_Hip-Hop"
    assert genre_playlist_name(" Jazz ") == "Genre_Jazz"


def test_group_tracks_by_genre(library):
    a = _track(library, "A/a.mp3", ["Rock", " Pop ", "Rock"])
    b = _track(library, "B/b.mp3", ["Pop"])
    c = _track(library, "C/c.mp3", ["", "  "])
    log = []

    grouped = group_tracks_by_genre([a, b, c], log.append)

    assert grouped == {
        "Genre_Rock": [a.absolute_path],
        "Genre_Pop": [a.absolute_path, b.absolute_path],
    }
    assert any("No genre" in m for m in log)


def test_write_genre_playlists_removes_stale_files(library):
    os.makedirs(library.playlist_dir)
    stale_primary = os.path.join(library.playlist_dir, "Genre_Polka.m3u8")
    stale_legacy = os.path.join(library.playlist_dir, "Genre_Rock.m3u")
    custom = os.path.join(library.playlist_dir, "Favorites.m3u8")
    for path in (stale_primary, stale_legacy, custom):
        write_playlist(["../old.mp3"], path)

    track = _track(library, "A/a.mp3", ["Rock"])
    paths = write_genre_playlists(group_tracks_by_genre([track]), library)

    assert paths == {"Genre_Rock": os.path.join(library.playlist_dir, "Genre_Rock.m3u8")}
    assert sorted(os.listdir(library.playlist_dir)) == ["Favorites.m3u8", "Genre_Rock.m3u8"]
    assert read_playlist(paths["Genre_Rock"]) == ["../A/a.mp3"]


def test_regenerate_derived_playlists(library):
    tracks = [_track(library, "A/a.mp3", ["Rock"]), _track(library, "B/b.mp3", ["Jazz"])]
    regenerate_derived_playlists(library, tracks)

    assert read_playlist(find_playlist_file(library, "00_Master_Library")) == ["../A/a.mp3", "../B/b.mp3"]
    assert read_playlist(find_playlist_file(library, "Genre_Jazz")) == ["../B/b.mp3"]

    regenerate_derived_playlists(library, tracks[:1])
    assert find_playlist_file(library, "Genre_Jazz") is None
    assert read_playlist(find_playlist_file(library, "00_Master_Library")) == ["../A/a.mp3"]
