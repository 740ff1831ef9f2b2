"""Qt front-end: application bootstrap, signals bridge, monitor window.

Keep this package import lightweight: do not import Qt GUI modules at import time.
Headless environments may have PySide6 installed but miss runtime GUI libs
(e.g. ``libGL.so.1``); lazy exports below keep ``maskwatch.ui.signals`` and
``maskwatch.ui.view_model`` importable with QtCore only.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    "create_application",
    "run_application",
    "install_error_boundary",
    "MonitorSignals",
    "MonitorViewModel",
    "MonitorWindow",
]

_EXPORTS = {
    "create_application": "maskwatch.ui.application",
    "run_application": "maskwatch.ui.application",
    "install_error_boundary": "maskwatch.ui.error_boundary",
    "MonitorSignals": "maskwatch.ui.signals",
    "MonitorViewModel": "maskwatch.ui.view_model",
    "MonitorWindow": "maskwatch.ui.main_window",
}


def __getattr__(name: str) -> Any:
    module = _EXPORTS.get(name)
    if module is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    return getattr(import_module(module), name)
