"""
Thread-safe signal bridge: pipeline threads emit status and session changes to the main thread.
Connect View slots on the main thread; Qt queues cross-thread emissions in emission order.
"""

from __future__ import annotations

from PySide6.QtCore import QObject, Signal


class MonitorSignals(QObject):
    """Signals for the monitor view. Emit from any thread; slots run on main thread."""

    status_changed = Signal(str)  # debounced status text
    access_denied = Signal()
    session_state_changed = Signal(str, str)  # (SessionState value, CameraPosition value)
    device_error = Signal(str)
    start_failed = Signal(str)
    unhandled_error = Signal(str)  # from install_error_boundary
