"""Composition root / DI container.

UI should not import infrastructure services directly. This container lives in
the application layer and wires up concrete implementations.
"""

from __future__ import annotations

import logging

from maskwatch.application.ports.capture import CameraPosition, DevicePort
from maskwatch.application.ports.permission import PermissionPort
from maskwatch.application.use_cases.start_monitoring import StartMonitoringUseCase
from maskwatch.application.use_cases.stop_monitoring import StopMonitoringUseCase
from maskwatch.config import DEBOUNCE_WINDOW_S, DEFAULT_CAMERA_POSITION
from maskwatch.core.events import EventBus
from maskwatch.interfaces import IMaskDetector
from maskwatch.pipeline.frame_dispatcher import FrameDispatcher
from maskwatch.pipeline.preview import PreviewSlot
from maskwatch.pipeline.session_controller import SessionController
from maskwatch.pipeline.status_aggregator import StatusAggregator
from maskwatch.services import (
    MaskClassifierService,
    OpenCVDeviceService,
    PolicyPermissionService,
)

log = logging.getLogger(__name__)


class Container:
    """Resolves application services. Single place to swap implementations if needed.

    Adapters may be injected (tests, alternative cameras); anything not given
    is created on first access.
    """

    def __init__(
        self,
        *,
        detector: IMaskDetector | None = None,
        devices: DevicePort | None = None,
        permission: PermissionPort | None = None,
        debounce_window_s: float = DEBOUNCE_WINDOW_S,
    ) -> None:
        self._detector = detector
        self._devices = devices
        self._permission = permission
        self._debounce_window_s = debounce_window_s
        self._event_bus: EventBus | None = None
        self._aggregator: StatusAggregator | None = None
        self._dispatcher: FrameDispatcher | None = None
        self._preview: PreviewSlot | None = None
        self._session: SessionController | None = None
        self._start_monitoring_uc: StartMonitoringUseCase | None = None
        self._stop_monitoring_uc: StopMonitoringUseCase | None = None

    @property
    def event_bus(self) -> EventBus:
        if self._event_bus is None:
            self._event_bus = EventBus()
        return self._event_bus

    @property
    def detector(self) -> IMaskDetector:
        if self._detector is None:
            self._detector = MaskClassifierService()
        return self._detector

    @property
    def devices(self) -> DevicePort:
        if self._devices is None:
            self._devices = OpenCVDeviceService()
        return self._devices

    @property
    def permission(self) -> PermissionPort:
        if self._permission is None:
            self._permission = PolicyPermissionService()
        return self._permission

    @property
    def aggregator(self) -> StatusAggregator:
        if self._aggregator is None:
            self._aggregator = StatusAggregator(self.event_bus, debounce_window_s=self._debounce_window_s)
        return self._aggregator

    @property
    def dispatcher(self) -> FrameDispatcher:
        # Generation is read lazily: the session is created after the dispatcher.
        if self._dispatcher is None:
            self._dispatcher = FrameDispatcher(
                self.detector,
                self.aggregator.on_result,
                current_generation=lambda: self.session.generation,
            )
        return self._dispatcher

    @property
    def preview(self) -> PreviewSlot:
        if self._preview is None:
            self._preview = PreviewSlot()
        return self._preview

    @property
    def session(self) -> SessionController:
        if self._session is None:
            self._session = SessionController(
                self.devices,
                self.dispatcher.on_frame,
                self.aggregator,
                self.event_bus,
                initial_position=CameraPosition.parse(DEFAULT_CAMERA_POSITION),
                preview=self.preview,
            )
        return self._session

    @property
    def start_monitoring_use_case(self) -> StartMonitoringUseCase:
        """Application-layer API for starting monitoring (weights + access + configure)."""
        if self._start_monitoring_uc is None:
            self._start_monitoring_uc = StartMonitoringUseCase(self.detector, self.permission, self.session)
        return self._start_monitoring_uc

    @property
    def stop_monitoring_use_case(self) -> StopMonitoringUseCase:
        """Application-layer API for stopping monitoring (best-effort cleanup)."""
        if self._stop_monitoring_uc is None:
            self._stop_monitoring_uc = StopMonitoringUseCase(self.session)
        return self._stop_monitoring_uc

    def shutdown(self) -> None:
        """Release the camera and worker threads. Safe to call more than once."""
        if self._session is not None:
            self._session.shutdown()
        if self._dispatcher is not None:
            self._dispatcher.shutdown(wait=False)
            log.info("Dispatcher metrics at shutdown: %s", self._dispatcher.metrics.get_metrics())
