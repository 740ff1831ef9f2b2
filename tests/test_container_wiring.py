from __future__ import annotations

import time
from pathlib import Path

import numpy as np
import pytest

from maskwatch.application.container import Container
from maskwatch.application.ports.capture import CameraPosition, DeviceDescriptor
from maskwatch.application.ports.detection import DetectionResult, MaskStatus
from maskwatch.application.use_cases import StartMonitoringRequest, StopMonitoringRequest
from maskwatch.core.errors import InvalidStateTransition
from maskwatch.core.events import StatusChanged
from maskwatch.pipeline import WAITING_TEXT, SessionController, SessionState
from maskwatch.services import MaskClassifierService, OpenCVDeviceService, PolicyPermissionService

TIMEOUT = 5.0


class _Handle:
    def __init__(self, position: CameraPosition) -> None:
        self.descriptor = DeviceDescriptor(position, 0)
        self.callback = None


class _Devices:
    def __init__(self) -> None:
        self.handle: _Handle | None = None
        self.closed = 0

    def list_devices(self):
        return []

    def open(self, position):
        self.handle = _Handle(position)
        return self.handle

    def start_delivery(self, handle, on_frame):
        handle.callback = on_frame

    def stop_delivery(self, handle):
        handle.callback = None

    def close(self, handle):
        self.closed += 1


class _Detector:
    def __init__(self) -> None:
        self.loaded: Path | None = None
        self.unloaded = False

    def load_model(self, weights_path: Path) -> None:
        self.loaded = weights_path

    def detect(self, frame):
        return [DetectionResult(0, MaskStatus.MASK)]

    def unload_model(self) -> None:
        self.unloaded = True

    @property
    def is_loaded(self) -> bool:
        return self.loaded is not None


class _Permission:
    def request_access(self) -> bool:
        return True


def _wait_for(predicate, timeout: float = TIMEOUT) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def test_default_container_builds_real_adapters() -> None:
    c = Container()
    try:
        assert isinstance(c.detector, MaskClassifierService)
        assert isinstance(c.devices, OpenCVDeviceService)
        assert isinstance(c.permission, PolicyPermissionService)
        assert isinstance(c.session, SessionController)
        assert c.session is c.session
        assert c.session.state is SessionState.IDLE
        assert c.session._preview is c.preview
    finally:
        c.shutdown()


def test_frames_flow_from_device_to_status(tmp_path: Path) -> None:
    weights = tmp_path / "mask.pt"
    weights.write_bytes(b"x")
    devices, detector = _Devices(), _Detector()
    c = Container(detector=detector, devices=devices, permission=_Permission(), debounce_window_s=0.0)
    statuses: list[str] = []
    c.event_bus.subscribe(StatusChanged, lambda ev: statuses.append(ev.text))
    try:
        fut = c.start_monitoring_use_case.execute(StartMonitoringRequest(weights_path=weights))
        assert fut.result(TIMEOUT) is SessionState.RUNNING
        assert detector.loaded == weights

        devices.handle.callback(np.zeros((4, 4, 3), dtype=np.uint8), time.monotonic())
        assert c.preview.take_latest(c.session.generation) is not None
        assert _wait_for(lambda: "1 face(s): wearing mask" in statuses)
        assert statuses[0] == WAITING_TEXT

        stop = c.stop_monitoring_use_case.execute(StopMonitoringRequest(detector=detector, release_cuda_cache=False))
        assert stop.result(TIMEOUT) is SessionState.STOPPED
        assert detector.unloaded is True
        assert devices.closed == 1
    finally:
        c.shutdown()


def test_second_start_while_running_keeps_loaded_model(tmp_path: Path) -> None:
    weights = tmp_path / "mask.pt"
    weights.write_bytes(b"x")
    other = tmp_path / "other.pt"
    other.write_bytes(b"y")
    detector = _Detector()
    c = Container(detector=detector, devices=_Devices(), permission=_Permission(), debounce_window_s=0.0)
    try:
        uc = c.start_monitoring_use_case
        assert uc.execute(StartMonitoringRequest(weights_path=weights)).result(TIMEOUT) is SessionState.RUNNING
        with pytest.raises(InvalidStateTransition):
            uc.execute(StartMonitoringRequest(weights_path=other))
        assert detector.loaded == weights
        assert c.session.state is SessionState.RUNNING
    finally:
        c.shutdown()
