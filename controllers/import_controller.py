"""Commit scan proposals: relocate files, record them, refresh playlists."""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional

from controllers.genre_playlist_controller import regenerate_derived_playlists
from crash_logger import watcher
from inbox_scanner import ScanProposal
from inventory_store import load_inventory, save_inventory, upsert
from library_control import (
    BatchResult,
    InvalidRequestError,
    InventoryListener,
    LibraryHandle,
    PlaylistKind,
    PlaylistRef,
    library_lock,
    notify_listener,
)
from playlist_generator import generate_playlists
from relocator import relocate
from utils.path_helpers import absolute_path, is_within, library_relative

logger = logging.getLogger(__name__)

def _coerce_proposals(
    proposals: Iterable[ScanProposal | dict], library: LibraryHandle
) -> List[ScanProposal]:
    if proposals is None or isinstance(proposals, (str, bytes, dict)):
        raise InvalidRequestError("proposals must be a list")
    checked = []
    for item in proposals:
        proposal = item if isinstance(item, ScanProposal) else ScanProposal.from_dict(item)
        if not is_within(proposal.proposed_path, library.root):
            raise InvalidRequestError(
                f"Destination {proposal.proposed_path} is outside library {library.root}"
            )
        checked.append(proposal)
    return checked


@watcher.traced
def organize(
    proposals: Iterable[ScanProposal | dict],
    library: LibraryHandle,
    log_callback: Callable[[str], None] | None = None,
    on_committed: Optional[InventoryListener] = None,
) -> BatchResult:
    """Move every proposed file into ``library`` and update inventory and playlists.

    A failed relocation is recorded and the batch carries on. Master and
    Genre playlists are rebuilt from the whole inventory; custom playlists
    named by folder hints are merged so existing entries are kept.
    """
    if log_callback is None:
        def log_callback(msg):
            pass

    items = _coerce_proposals(proposals, library)
    result = BatchResult()

    with library_lock(library):
        os.makedirs(library.root, exist_ok=True)
        os.makedirs(library.playlist_dir, exist_ok=True)

        inventory = load_inventory(library)
        custom: Dict[str, List[str]] = {}

        total = len(items)
        for idx, item in enumerate(items, start=1):
            try:
                final_path = absolute_path(relocate(item.source_path, item.proposed_path))
            except OSError as exc:
                msg = f"Failed to move {item.source_path} → {item.proposed_path}: {exc}"
                logger.warning(msg)
                log_callback(f"! {msg}")
                result.record_failure(msg)
                continue

            track = replace(
                item.track,
                genres=list(item.track.genres),
                absolute_path=final_path,
                library_relative_path=library_relative(final_path, library.root),
            )
            if upsert(inventory, track):
                logger.info("Inventory already had %s; entry refreshed", final_path)
            result.success_count += 1
            if idx % 50 == 0 or idx == total:
                log_callback(f"   • Organized {idx}/{total}")

            for hint in item.playlist_hints:
                ref = PlaylistRef.from_name(hint)
                if not ref.name or ref.name.startswith("."):
                    continue
                if ref.kind is not PlaylistKind.CUSTOM:
                    logger.warning("Ignoring playlist hint %r: reserved for generated playlists", hint)
                    continue
                paths = custom.setdefault(ref.name, [])
                if final_path not in paths:
                    paths.append(final_path)

        save_inventory(library, inventory)
        regenerate_derived_playlists(library, inventory)
        generate_playlists(library, custom, log_callback)

    logger.info(
        "Organize finished: %d succeeded, %d failed", result.success_count, result.fail_count
    )
    log_callback(f"✓ {result.success_count} succeeded, {result.fail_count} failed")
    notify_listener(on_committed, inventory)
    return result
