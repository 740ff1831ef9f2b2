"""Camera capture through OpenCV (implements DevicePort).

- Позиции камер (front/back) отображаются на индексы cv2.VideoCapture.
- One daemon capture thread per open device pushes (frame, captured_at) to the
  callback given to start_delivery(); the pipeline never polls.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from maskwatch.application.ports.capture import (
    CameraPosition,
    DeviceDescriptor,
    RawFrameCallback,
)
from maskwatch.config import (
    BACK_CAMERA_INDEX,
    CAPTURE_FRAME_INTERVAL_S,
    CAPTURE_JOIN_TIMEOUT_S,
    CAPTURE_READ_RETRY_S,
    FRONT_CAMERA_INDEX,
)
from maskwatch.core.errors import DeviceOpenError
from maskwatch.core.observability.timing import timed

try:
    import cv2
except ImportError:
    cv2 = None  # type: ignore[assignment]

log = logging.getLogger(__name__)

CaptureFactory = Callable[[int], Any]

DEFAULT_POSITION_INDEX: dict[CameraPosition, int] = {
    CameraPosition.FRONT: FRONT_CAMERA_INDEX,
    CameraPosition.BACK: BACK_CAMERA_INDEX,
}


def _opencv_capture(index: int) -> Any:
    if cv2 is None:
        raise DeviceOpenError("OpenCV (cv2) is required for camera capture. Install with: pip install opencv-python")
    return cv2.VideoCapture(index)


@dataclass(eq=False)
class OpenCVDeviceHandle:
    """Open capture device plus its delivery thread state."""

    descriptor: DeviceDescriptor
    capture: Any
    stop_event: threading.Event = field(default_factory=threading.Event)
    thread: threading.Thread | None = None


class OpenCVDeviceService:
    """Источник кадров через OpenCV VideoCapture, по одной камере на позицию."""

    def __init__(
        self,
        position_index: Mapping[CameraPosition, int] | None = None,
        *,
        capture_factory: CaptureFactory | None = None,
        frame_interval_s: float = CAPTURE_FRAME_INTERVAL_S,
        read_retry_s: float = CAPTURE_READ_RETRY_S,
    ) -> None:
        self._position_index = dict(position_index or DEFAULT_POSITION_INDEX)
        self._capture_factory = capture_factory or _opencv_capture
        self._frame_interval_s = frame_interval_s
        self._read_retry_s = read_retry_s

    def _descriptor(self, position: CameraPosition) -> DeviceDescriptor:
        try:
            index = self._position_index[position]
        except KeyError as e:
            raise DeviceOpenError(f"No camera configured for position {position.value!r}") from e
        return DeviceDescriptor(position=position, index=index, name=f"{position.value} camera #{index}")

    def list_devices(self) -> Sequence[DeviceDescriptor]:
        """Probe every configured position; returns those that open."""
        found: list[DeviceDescriptor] = []
        for position in self._position_index:
            try:
                handle = self.open(position)
            except DeviceOpenError:
                continue
            found.append(handle.descriptor)
            self.close(handle)
        return found

    @timed("camera open")
    def open(self, position: CameraPosition) -> OpenCVDeviceHandle:
        descriptor = self._descriptor(position)
        try:
            cap = self._capture_factory(descriptor.index)
        except DeviceOpenError:
            raise
        except Exception as e:
            raise DeviceOpenError(f"Не удалось открыть камеру: {descriptor.name}", cause=e) from e
        if cap is None or not cap.isOpened():
            if cap is not None:
                cap.release()
            raise DeviceOpenError(f"Не удалось открыть камеру: {descriptor.name}")
        log.info("Opened %s", descriptor.name, extra={"position": position.value})
        return OpenCVDeviceHandle(descriptor=descriptor, capture=cap)

    def start_delivery(self, handle: OpenCVDeviceHandle, on_frame: RawFrameCallback) -> None:
        if handle.thread is not None and handle.thread.is_alive():
            raise RuntimeError(f"Delivery already running for {handle.descriptor.name}")
        handle.stop_event.clear()
        handle.thread = threading.Thread(
            target=self._capture_loop,
            args=(handle, on_frame),
            name=f"capture-{handle.descriptor.position.value}",
            daemon=True,
        )
        handle.thread.start()

    def stop_delivery(self, handle: OpenCVDeviceHandle) -> None:
        """Signal the capture thread and wait for it; safe to call from the thread itself."""
        handle.stop_event.set()
        th = handle.thread
        if th is None:
            return
        if th is not threading.current_thread() and th.is_alive():
            th.join(timeout=CAPTURE_JOIN_TIMEOUT_S)
            if th.is_alive():
                log.warning("Capture thread %s did not stop in time", th.name)
        handle.thread = None

    def close(self, handle: OpenCVDeviceHandle) -> None:
        if handle.thread is not None:
            self.stop_delivery(handle)
        cap, handle.capture = handle.capture, None
        if cap is not None:
            try:
                cap.release()
            except Exception:
                log.debug("Failed to release capture", exc_info=True)
            log.info("Closed %s", handle.descriptor.name)

    def _capture_loop(self, handle: OpenCVDeviceHandle, on_frame: RawFrameCallback) -> None:
        mirror = handle.descriptor.position is CameraPosition.FRONT
        stop = handle.stop_event
        try:
            while not stop.is_set():
                cap = handle.capture
                if cap is None:
                    break
                ret, frame = cap.read()
                if not ret or frame is None:
                    stop.wait(self._read_retry_s)
                    continue
                if mirror:
                    frame = np.ascontiguousarray(frame[:, ::-1])
                on_frame(frame, time.monotonic())
                stop.wait(self._frame_interval_s)
        except Exception:
            log.exception("capture_loop")
