"""Non-destructive file relocation and empty-folder cleanup."""

import logging
import os
import shutil
from typing import Iterable, List

logger = logging.getLogger(__name__)


def relocate(source: str, destination: str) -> str:
    """Move ``source`` to ``destination`` and return the final path.

    An existing destination always wins: nothing is overwritten and no
    second copy is made, ``destination`` is simply returned.
    """
    if os.path.exists(destination):
        logger.info("Destination exists, keeping library copy: %s", destination)
        return destination
    os.makedirs(os.path.dirname(destination), exist_ok=True)
    shutil.move(source, destination)
    logger.debug("Moved %s -> %s", source, destination)
    return destination


def remove_empty_dirs(root: str, keep: Iterable[str] = ()) -> List[str]:
    """Delete empty folders under ``root`` bottom-up; return what was removed.

    ``root`` itself and any folder in ``keep`` are never removed.
    """
    protected = {os.path.normcase(os.path.abspath(p)) for p in keep}
    protected.add(os.path.normcase(os.path.abspath(root)))
    removed = []
    for dirpath, _dirnames, _files in os.walk(root, topdown=False):
        if os.path.normcase(os.path.abspath(dirpath)) in protected:
            continue
        try:
            if not os.listdir(dirpath):
                os.rmdir(dirpath)
                removed.append(dirpath)
        except OSError as exc:
            logger.warning("Could not remove folder %s: %s", dirpath, exc)
    if removed:
        logger.info("Removed %d empty folders under %s", len(removed), root)
    return removed
