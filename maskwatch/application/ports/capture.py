"""Application port for capture devices (front/back camera).

The session controller depends on this small protocol instead of concrete
OpenCV classes. Frames are pushed by the device through a callback on the
device's own delivery thread.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import numpy as np


class CameraPosition(str, Enum):
    FRONT = "front"
    BACK = "back"

    def opposite(self) -> CameraPosition:
        return CameraPosition.BACK if self is CameraPosition.FRONT else CameraPosition.FRONT

    @classmethod
    def parse(cls, value: str | CameraPosition) -> CameraPosition:
        if isinstance(value, CameraPosition):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError as e:
            raise ValueError(f"Unknown camera position: {value!r} (expected 'front' or 'back')") from e


@dataclass(frozen=True, slots=True)
class DeviceDescriptor:
    position: CameraPosition
    index: int
    name: str = ""


@dataclass(frozen=True, slots=True)
class Frame:
    """One sampled image, tagged with the session generation of the device that produced it."""

    buffer: np.ndarray | None
    captured_at: float
    generation: int

    @property
    def is_empty(self) -> bool:
        return self.buffer is None or getattr(self.buffer, "size", 0) == 0


# (buffer, captured_at) -> None; the session binds the generation when it attaches.
RawFrameCallback = Callable[[np.ndarray | None, float], None]


class DeviceHandle(Protocol):
    @property
    def descriptor(self) -> DeviceDescriptor: ...


class DevicePort(Protocol):
    def list_devices(self) -> Sequence[DeviceDescriptor]: ...

    def open(self, position: CameraPosition) -> DeviceHandle:
        """Open the device at ``position``. Raises DeviceOpenError."""
        ...

    def start_delivery(self, handle: DeviceHandle, on_frame: RawFrameCallback) -> None: ...

    def stop_delivery(self, handle: DeviceHandle) -> None: ...

    def close(self, handle: DeviceHandle) -> None: ...
