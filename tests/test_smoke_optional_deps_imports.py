from __future__ import annotations

import contextlib
import importlib
import importlib.abc
import sys
from collections.abc import Iterable


class _Blocker(importlib.abc.MetaPathFinder):
    def __init__(self, blocked: set[str]):
        self.blocked = blocked

    def find_spec(self, fullname, path, target=None):
        root = fullname.split(".")[0]
        if root in self.blocked:
            raise ImportError(f"Blocked optional dependency for test: {root}")
        return None


@contextlib.contextmanager
def _blocked_imports(blocked: Iterable[str]):
    blocked_set = set(blocked)
    blocker = _Blocker(blocked_set)
    sys.meta_path.insert(0, blocker)
    removed = {}
    for name in list(sys.modules.keys()):
        root = name.split(".")[0]
        if root in blocked_set or name.startswith("maskwatch"):
            removed[name] = sys.modules.pop(name)
    try:
        yield
    finally:
        if sys.meta_path and sys.meta_path[0] is blocker:
            sys.meta_path.pop(0)
        for name in list(sys.modules.keys()):
            if name.startswith("maskwatch"):
                sys.modules.pop(name)
        sys.modules.update(removed)


def test_core_imports_without_cv2_ultralytics_torch_qt():
    blocked = {"cv2", "ultralytics", "torch", "PySide6"}
    modules = [
        "maskwatch",
        "maskwatch.pipeline",
        "maskwatch.services",
        "maskwatch.services.capture_service",
        "maskwatch.services.mask_classifier_service",
        "maskwatch.application.container",
        "maskwatch.application.use_cases",
        "maskwatch.ui",
    ]
    with _blocked_imports(blocked):
        for m in modules:
            importlib.import_module(m)


def test_opening_camera_without_opencv_raises_device_error():
    with _blocked_imports({"cv2"}):
        from maskwatch.application.ports.capture import CameraPosition
        from maskwatch.core.errors import DeviceOpenError
        from maskwatch.services.capture_service import OpenCVDeviceService

        svc = OpenCVDeviceService()
        try:
            svc.open(CameraPosition.BACK)
        except DeviceOpenError as e:
            assert "OpenCV" in str(e)
        else:  # pragma: no cover
            raise AssertionError("expected DeviceOpenError")
