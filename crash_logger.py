"""Logging setup with crash context and threaded exception support."""

from __future__ import annotations

import functools
import logging
from logging.handlers import RotatingFileHandler
import os
import platform
import sys
import threading
import time
import traceback
from collections import deque
from typing import Callable, Deque, Dict, List, Optional, TypeVar

from typing_extensions import ParamSpec

logger = logging.getLogger(__name__)

_context_providers: Dict[str, Callable[[], Dict[str, object]]] = {}
_events: Deque[str] = deque(maxlen=100)
_events_lock = threading.Lock()
_handlers: List[logging.Handler] = []

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s %(funcName)s:%(lineno)d - %(message)s"

P = ParamSpec("P")
R = TypeVar("R")


def record_event(msg: str) -> None:
    """Remember ``msg`` in the ring buffer dumped with crash reports."""
    ts = time.strftime("%Y-%m-%d %H:%M:%S")
    with _events_lock:
        _events.append(f"{ts} - {msg}")


def dump_events() -> str:
    with _events_lock:
        return "\n".join(_events)


class _WatcherHelper:
    """Helper exposing decorators for crash event instrumentation."""

    def traced(self, func: Callable[P, R]) -> Callable[P, R]:
        """Decorator logging entry and exit of ``func``."""

        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            name = func.__qualname__
            record_event(f"enter {name}")
            logger.debug("enter %s", name)
            try:
                return func(*args, **kwargs)
            finally:
                record_event(f"exit {name}")
                logger.debug("exit %s", name)

        return wrapper


watcher = _WatcherHelper()


def add_context_provider(name: str, func: Callable[[], Dict[str, object]]) -> None:
    """Register a callable returning additional context for crash logs.

    A provider registered again under the same ``name`` replaces the old one.
    """

    _context_providers[name] = func


def install(
    log_path: Optional[str] = "soundshelf.log",
    *,
    level: int = logging.INFO,
    console: bool = True,
) -> None:
    """Install global logging and crash hooks.

    Parameters
    ----------
    log_path:
        File path for the rotating log. ``None`` disables the file handler.
    level:
        Logging level for the root logger.
    console:
        Also log to stderr.
    """

    root = logging.getLogger()
    root.setLevel(level)
    for handler in _handlers:
        root.removeHandler(handler)
        handler.close()
    _handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)
    if log_path:
        folder = os.path.dirname(os.path.abspath(log_path))
        os.makedirs(folder, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path, maxBytes=1_000_000, backupCount=5, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        _handlers.append(file_handler)
    if console:
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        _handlers.append(stream)
    for handler in _handlers:
        root.addHandler(handler)

    _log_startup_context(root)

    def _handle(exc_type, exc_value, exc_tb):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return

        stack = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
        thread_name = threading.current_thread().name
        ts = time.strftime("%Y-%m-%d %H:%M:%S")
        summary = (
            f"{ts} [{thread_name}] Unhandled exception:\n{stack}\n"
            f"Recent events:\n{dump_events()}\nContext: {_gather_context()}"
        )
        root.critical(summary)
        sys.__excepthook__(exc_type, exc_value, exc_tb)

    def _handle_thread_exception(args: threading.ExceptHookArgs) -> None:
        _handle(args.exc_type, args.exc_value, args.exc_traceback)

    sys.excepthook = _handle
    threading.excepthook = _handle_thread_exception


def _gather_context() -> Dict[str, object]:
    """Collect runtime context information."""

    ctx: Dict[str, object] = {
        "argv": sys.argv,
        "cwd": os.getcwd(),
        "python": sys.version.replace("\n", " "),
        "platform": platform.platform(),
    }
    for name, fn in list(_context_providers.items()):
        try:
            ctx.update(fn())
        except Exception as exc:
            ctx[name] = f"<failed: {exc}>"
    return ctx


def _log_startup_context(root: logging.Logger) -> None:
    ctx = _gather_context()
    root.debug("Application start")
    for k, v in ctx.items():
        root.debug("%s: %s", k, v)
