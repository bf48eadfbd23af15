import os
import json
from datetime import datetime, timezone

CONFIG_PATH = os.path.expanduser("~/.soundshelf_config.json")

# Library layout
LIBRARY_DB_FILE = "library_db.json"
PLAYLISTS_DIR = "Playlists"

# Playlist files. New playlists are always written with the primary
# extension; the legacy one is still recognised when reading.
PLAYLIST_PRIMARY_EXT = ".m3u8"
PLAYLIST_LEGACY_EXT = ".m3u"
PLAYLIST_EXTS = (PLAYLIST_PRIMARY_EXT, PLAYLIST_LEGACY_EXT)
PLAYLIST_HEADER = "#EXTM3U"

MASTER_PLAYLIST_NAME = "00_Master_Library"
MASTER_PLAYLIST_PREFIX = "00_Master"
GENRE_PLAYLIST_PREFIX = "Genre_"

SUPPORTED_EXTS = {".flac", ".mp3", ".m4a", ".wav", ".ogg"}

# Values used when a tag is missing
UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_ALBUM = "Unknown Album"
UNKNOWN = "Unknown"
DEFAULT_GENRE = "Otros"
DEFAULT_TRACK_NO = "00"


def _defaults():
    return {
        "inbox_path": "",
        "library_path": "",
        "updated_at": None,
    }


def load_config(path=None):
    """Load configuration from ``path`` (defaults to ``CONFIG_PATH``).

    Returns the default settings if the file does not exist or can't be read.
    """
    path = path or CONFIG_PATH
    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg = json.load(f)
        if not isinstance(cfg, dict):
            return _defaults()
        for key, value in _defaults().items():
            cfg.setdefault(key, value)
        return cfg
    except Exception:
        return _defaults()


def save_config(cfg: dict, path=None) -> None:
    """Write ``cfg`` to ``path`` as JSON, stamping ``updated_at``."""
    path = path or CONFIG_PATH
    data = dict(cfg)
    data["updated_at"] = datetime.now(timezone.utc).isoformat()
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
