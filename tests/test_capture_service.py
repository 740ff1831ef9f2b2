from __future__ import annotations

from threading import Event

import numpy as np
import pytest

from maskwatch.application.ports.capture import CameraPosition
from maskwatch.core.errors import DeviceOpenError
from maskwatch.services.capture_service import OpenCVDeviceService


class _FakeCapture:
    def __init__(self, opened: bool = True, frame: np.ndarray | None = None) -> None:
        self.opened = opened
        self.frame = frame if frame is not None else np.zeros((2, 3, 3), dtype=np.uint8)
        self.released = False
        self.reads = 0

    def isOpened(self) -> bool:  # noqa: N802
        return self.opened and not self.released

    def read(self):
        self.reads += 1
        return True, self.frame.copy()

    def release(self) -> None:
        self.released = True


class _Factory:
    def __init__(self, captures: dict[int, _FakeCapture]) -> None:
        self.captures = captures
        self.requested: list[int] = []

    def __call__(self, index: int) -> _FakeCapture:
        self.requested.append(index)
        if index not in self.captures:
            raise RuntimeError(f"no device {index}")
        return self.captures[index]


def _svc(captures: dict[int, _FakeCapture]) -> tuple[OpenCVDeviceService, _Factory]:
    factory = _Factory(captures)
    svc = OpenCVDeviceService(
        {CameraPosition.FRONT: 0, CameraPosition.BACK: 1},
        capture_factory=factory,
        frame_interval_s=0.001,
        read_retry_s=0.001,
    )
    return svc, factory


def test_open_maps_position_to_index() -> None:
    svc, factory = _svc({1: _FakeCapture()})
    handle = svc.open(CameraPosition.BACK)
    assert factory.requested == [1]
    assert handle.descriptor.position is CameraPosition.BACK
    assert handle.descriptor.index == 1
    svc.close(handle)
    assert factory.captures[1].released is True


def test_open_raises_when_capture_not_opened() -> None:
    cap = _FakeCapture(opened=False)
    svc, _ = _svc({0: cap})
    with pytest.raises(DeviceOpenError):
        svc.open(CameraPosition.FRONT)
    assert cap.released is True


def test_open_wraps_factory_errors() -> None:
    svc, _ = _svc({})
    with pytest.raises(DeviceOpenError) as exc:
        svc.open(CameraPosition.FRONT)
    assert isinstance(exc.value.cause, RuntimeError)


def test_unconfigured_position_raises() -> None:
    svc = OpenCVDeviceService({CameraPosition.FRONT: 0}, capture_factory=_Factory({0: _FakeCapture()}))
    with pytest.raises(DeviceOpenError):
        svc.open(CameraPosition.BACK)


def test_list_devices_returns_openable_positions_only() -> None:
    svc, factory = _svc({1: _FakeCapture()})
    found = svc.list_devices()
    assert [d.position for d in found] == [CameraPosition.BACK]
    assert factory.captures[1].released is True


def _collect_one(svc: OpenCVDeviceService, position: CameraPosition):
    got: list[tuple[np.ndarray, float]] = []
    first = Event()

    def on_frame(buffer, captured_at: float) -> None:
        got.append((buffer, captured_at))
        first.set()

    handle = svc.open(position)
    svc.start_delivery(handle, on_frame)
    try:
        assert first.wait(2.0)
    finally:
        svc.stop_delivery(handle)
        svc.close(handle)
    return handle, got


def test_delivery_pushes_frames_until_stopped() -> None:
    frame = np.arange(18, dtype=np.uint8).reshape(2, 3, 3)
    svc, _ = _svc({1: _FakeCapture(frame=frame)})
    handle, got = _collect_one(svc, CameraPosition.BACK)
    assert handle.thread is None
    np.testing.assert_array_equal(got[0][0], frame)
    assert got[0][1] > 0


def test_front_camera_frames_are_mirrored() -> None:
    frame = np.arange(18, dtype=np.uint8).reshape(2, 3, 3)
    svc, _ = _svc({0: _FakeCapture(frame=frame)})
    _, got = _collect_one(svc, CameraPosition.FRONT)
    np.testing.assert_array_equal(got[0][0], frame[:, ::-1])


def test_start_delivery_twice_is_an_error() -> None:
    svc, _ = _svc({1: _FakeCapture()})
    handle = svc.open(CameraPosition.BACK)
    svc.start_delivery(handle, lambda *_: None)
    try:
        with pytest.raises(RuntimeError):
            svc.start_delivery(handle, lambda *_: None)
    finally:
        svc.close(handle)
    assert handle.thread is None
    assert handle.capture is None
