import os
import posixpath


def ensure_long_path(path: str) -> str:
    if os.name == "nt":
        path = os.path.abspath(path)
        if not path.startswith("\\\\?\\"):
            path = "\\\\?\\" + os.path.normpath(path)
    return path


def absolute_path(path: str) -> str:
    """Return ``path`` made absolute and normalised (symlinks untouched)."""
    return os.path.abspath(os.path.normpath(path))


def canonical_path(path: str) -> str:
    """Key used to compare paths: absolute, normalised, case-folded on Windows."""
    return os.path.normcase(absolute_path(path))


def to_posix(path: str) -> str:
    return path.replace(os.sep, "/") if os.sep != "/" else path


def normalize_entry(line: str) -> str:
    """Normalise one playlist line so separators never cause mismatches."""
    text = line.strip().replace("\\", "/")
    if not text:
        return ""
    return posixpath.normpath(text)


def playlist_entry(track_path: str, playlist_dir: str) -> str:
    """Return ``track_path`` relative to ``playlist_dir`` with forward slashes."""
    rel = os.path.relpath(absolute_path(track_path), absolute_path(playlist_dir))
    return normalize_entry(to_posix(rel))


def resolve_playlist_entry(line: str, playlist_dir: str) -> str:
    """Return the absolute path a playlist line points at."""
    entry = normalize_entry(line)
    if posixpath.isabs(entry) or os.path.isabs(entry):
        return absolute_path(entry)
    return absolute_path(os.path.join(playlist_dir, *entry.split("/")))


def library_relative(path: str, root: str) -> str:
    return to_posix(os.path.relpath(absolute_path(path), absolute_path(root)))


def is_within(path: str, root: str) -> bool:
    """True when ``path`` lies inside ``root`` (or is ``root``)."""
    path_c = canonical_path(path)
    root_c = canonical_path(root)
    try:
        return os.path.commonpath([path_c, root_c]) == root_c
    except ValueError:
        return False
