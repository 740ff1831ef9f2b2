from __future__ import annotations

import logging
import sys
import threading
import traceback
from collections.abc import Callable

log = logging.getLogger(__name__)


def install_error_boundary(on_error: Callable[[str], None] | None = None) -> None:
    """Install global exception hooks.

    Uncaught exceptions in the main thread and in capture/detection threads
    are logged; ``on_error`` gets a short user-facing message.
    """

    def _handle(exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        try:
            msg = "".join(traceback.format_exception(exc_type, exc, tb))
            log.error("Unhandled exception\n%s", msg)
            if on_error is not None:
                on_error(f"Непредвиденная ошибка: {exc}. Подробности в логе.")
        finally:
            # Keep default behavior in console
            try:
                sys.__excepthook__(exc_type, exc, tb)
            except Exception:
                return

    sys.excepthook = _handle

    def _thread_hook(args: threading.ExceptHookArgs) -> None:
        if args.exc_type is SystemExit:
            return
        _handle(args.exc_type, args.exc_value, args.exc_traceback)

    threading.excepthook = _thread_hook
