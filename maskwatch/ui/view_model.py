"""
Monitor ViewModel: bridges pipeline events to Qt signals and exposes user intents
(start, switch camera, stop) to the View, plus the latest camera frame for the
live preview.

Does not hold widgets. Bus handlers run on pipeline threads (session worker,
detection worker); they only emit signals, Qt delivers them on the GUI thread.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from pathlib import Path
from typing import TYPE_CHECKING

from PySide6.QtCore import QObject

from maskwatch.application.ports.capture import Frame
from maskwatch.application.use_cases import (
    StartMonitoringError,
    StartMonitoringRequest,
    StopMonitoringError,
    StopMonitoringRequest,
)
from maskwatch.config import DEFAULT_WEIGHTS_PATH
from maskwatch.core.errors import InvalidStateTransition
from maskwatch.core.events import (
    DeviceOpenFailed,
    SessionStateChanged,
    Subscription,
    subscribe_observer,
)
from maskwatch.pipeline.domain import SessionState

if TYPE_CHECKING:
    from maskwatch.application.container import Container
    from maskwatch.ui.signals import MonitorSignals

log = logging.getLogger(__name__)


class MonitorViewModel(QObject):
    """StatusObserver for the Qt front-end."""

    def __init__(self, container: Container, signals: MonitorSignals) -> None:
        super().__init__()
        self._container = container
        self._signals = signals
        self._last_status: str | None = None

        bus = self._container.event_bus
        self._subs: list[Subscription] = subscribe_observer(bus, self)
        self._subs.append(bus.subscribe_weak(SessionStateChanged, self._on_session_state))
        self._subs.append(bus.subscribe_weak(DeviceOpenFailed, self._on_device_open_failed))

    @property
    def signals(self) -> MonitorSignals:
        return self._signals

    @property
    def last_status(self) -> str | None:
        return self._last_status

    # --- StatusObserver ----------------------------------------------------

    def on_status_changed(self, text: str) -> None:
        self._last_status = text
        self._signals.status_changed.emit(text)

    def on_access_denied(self) -> None:
        self._signals.access_denied.emit()

    def _on_session_state(self, ev: SessionStateChanged) -> None:
        self._signals.session_state_changed.emit(ev.state.value, ev.position.value)

    def _on_device_open_failed(self, ev: DeviceOpenFailed) -> None:
        self._signals.device_error.emit(str(ev.error))

    # --- Intents -----------------------------------------------------------

    def start(self, weights_path: Path | None = None) -> Future[SessionState] | None:
        """Start monitoring. Returns None (and emits start_failed) when it cannot start."""
        req = StartMonitoringRequest(weights_path=Path(weights_path or DEFAULT_WEIGHTS_PATH))
        try:
            return self._container.start_monitoring_use_case.execute(req)
        except StartMonitoringError as e:
            log.error("Start monitoring failed: %s", e)
            self._signals.start_failed.emit(str(e))
        except InvalidStateTransition as e:
            log.warning("Start ignored: %s", e)
        return None

    def switch_camera(self) -> Future[SessionState] | None:
        try:
            return self._container.session.switch_camera()
        except InvalidStateTransition as e:
            log.warning("Switch ignored: %s", e)
            return None

    def stop(self) -> Future[SessionState]:
        req = StopMonitoringRequest(detector=self._container.detector)
        try:
            return self._container.stop_monitoring_use_case.execute(req)
        except StopMonitoringError:
            log.exception("Stop monitoring: cleanup failed")
            return self._container.session.stop()

    def take_preview_frame(self) -> Frame | None:
        """Newest frame of the current camera, or None if nothing new arrived since the last call."""
        return self._container.preview.take_latest(self._container.session.generation)

    def close(self) -> None:
        """Detach from the event bus."""
        bus = self._container.event_bus
        for sub in self._subs:
            bus.unsubscribe(sub)
        self._subs.clear()
