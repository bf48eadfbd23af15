# music_organizer_api.py
"""Command line front end for the library organizer."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

import crash_logger
from controllers import export_controller, import_controller, library_controller, playlist_controller
from inbox_scanner import scan_inbox
from library_control import InvalidRequestError, LibraryError, LibraryHandle

logger = logging.getLogger(__name__)


def _echo(msg: str) -> None:
    print(msg)


def _resolve_paths(args) -> tuple[str, LibraryHandle]:
    saved_inbox, saved_library = library_controller.load_library_paths()
    inbox = args.inbox or saved_inbox
    library = args.library or saved_library
    if not inbox or not library:
        raise InvalidRequestError("Inbox and library paths are required (none saved yet)")
    return inbox, LibraryHandle.open(library)


# ─── Commands ─────────────────────────────────────────────────────────────
def cmd_scan(args) -> int:
    inbox, library = _resolve_paths(args)
    proposals = scan_inbox(inbox, library, _echo if not args.json else None)
    if args.json:
        print(json.dumps([p.to_dict() for p in proposals], indent=2, ensure_ascii=False))
        return 0
    for p in proposals:
        hints = f"  [{', '.join(p.playlist_hints)}]" if p.playlist_hints else ""
        print(f"{p.source_path} → {p.proposed_path}{hints}")
    print(f"{len(proposals)} files ready to organize.")
    return 0


def cmd_organize(args) -> int:
    inbox, library = _resolve_paths(args)
    proposals = scan_inbox(inbox, library, _echo)
    result = import_controller.organize(proposals, library, _echo)
    for err in result.errors:
        print(f"! {err}")
    return 0 if result.fail_count == 0 else 1


def cmd_playlists(args) -> int:
    library = LibraryHandle.open(args.library)
    for info in playlist_controller.list_playlists(library):
        print(f"{info.name}\t{info.track_count}\t{info.kind.value}")
    return 0


def cmd_show(args) -> int:
    library = LibraryHandle.open(args.library)
    for track in playlist_controller.get_playlist_details(args.name, library):
        print(f"{track.track_number} - {track.artist} - {track.title}\t{track.absolute_path}")
    return 0


def cmd_add(args) -> int:
    library = LibraryHandle.open(args.library)
    added = playlist_controller.add_to_playlist(args.name, args.tracks, library)
    print(f"Added {added} tracks to {args.name}")
    return 0


def cmd_remove(args) -> int:
    library = LibraryHandle.open(args.library)
    if playlist_controller.remove_from_playlist(args.name, args.track, library):
        print(f"Removed {args.track} from {args.name}")
    else:
        print(f"{args.track} is not in {args.name}")
    return 0


def cmd_delete(args) -> int:
    library = LibraryHandle.open(args.library)
    playlist_controller.delete_playlist(args.name, library)
    print(f"Deleted playlist {args.name}")
    return 0


def cmd_export(args) -> int:
    library = LibraryHandle.open(args.library)
    preserve = not args.flat
    if args.playlist:
        result = export_controller.export_playlist(
            args.playlist, args.destination, args.mode, preserve, library, _echo
        )
    else:
        result = export_controller.export_library(args.destination, args.mode, preserve, library, _echo)
    for err in result.errors:
        print(f"! {err}")
    return 0 if result.fail_count == 0 else 1


def cmd_regenerate(args) -> int:
    library = LibraryHandle.open(args.library)
    summary = library_controller.regenerate_database(library, _echo)
    print(f"Indexed {summary['trackCount']} tracks ({summary['parseFailures']} unreadable).")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="soundshelf", description="Organize an inbox of audio files into a tagged library"
    )
    parser.add_argument("--log-file", help="write a rotating log to this file")
    parser.add_argument("--debug", action="store_true", help="verbose logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("scan", help="preview where inbox files would go")
    p.add_argument("inbox", nargs="?", help="inbox folder (defaults to the saved one)")
    p.add_argument("library", nargs="?", help="library folder (defaults to the saved one)")
    p.add_argument("--json", action="store_true", help="print proposals as JSON")
    p.set_defaults(func=cmd_scan)

    p = sub.add_parser("organize", help="move inbox files into the library")
    p.add_argument("inbox", nargs="?")
    p.add_argument("library", nargs="?")
    p.set_defaults(func=cmd_organize)

    p = sub.add_parser("playlists", help="list playlists")
    p.add_argument("library")
    p.set_defaults(func=cmd_playlists)

    p = sub.add_parser("show", help="list the tracks of a playlist")
    p.add_argument("library")
    p.add_argument("name")
    p.set_defaults(func=cmd_show)

    p = sub.add_parser("add", help="add tracks to a custom playlist")
    p.add_argument("library")
    p.add_argument("name")
    p.add_argument("tracks", nargs="+")
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("remove", help="remove a track from a playlist")
    p.add_argument("library")
    p.add_argument("name")
    p.add_argument("track")
    p.set_defaults(func=cmd_remove)

    p = sub.add_parser("delete", help="delete a playlist")
    p.add_argument("library")
    p.add_argument("name")
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("export", help="copy or move a playlist or the whole library")
    p.add_argument("library")
    p.add_argument("destination")
    p.add_argument("--playlist", help="export only this playlist")
    p.add_argument("--mode", choices=["copy", "move"], default="copy")
    p.add_argument("--flat", action="store_true", help="put every file directly in DEST")
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("regenerate", help="rebuild the library database from disk")
    p.add_argument("library")
    p.set_defaults(func=cmd_regenerate)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    crash_logger.add_context_provider("command", lambda: {"command": args.command})
    crash_logger.install(
        args.log_file,
        level=logging.DEBUG if args.debug else logging.INFO,
        console=args.debug,
    )
    try:
        return args.func(args)
    except LibraryError as e:
        logger.error("%s failed: %s", args.command, e)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
