"""Конфигурация приложения и константы.

Defaults for the capture session, the frame pipeline and the mask classifier.
Each value can be overridden through an ``MW_*`` environment variable.
"""

import os
from pathlib import Path


def _env_float(name: str, default: float, minimum: float | None = None) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    if minimum is not None and not value >= minimum:
        return default  # out of range (or NaN)
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


# Base paths
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_WEIGHTS_DIR = PROJECT_ROOT / "weights"
DEFAULT_WEIGHTS_PATH = Path(os.getenv("MW_WEIGHTS", str(DEFAULT_WEIGHTS_DIR / "mask_detector.pt")))

# Status debounce: minimum interval between two status emissions
DEBOUNCE_WINDOW_S = _env_float("MW_DEBOUNCE_WINDOW_S", 0.5, minimum=0.0)

# Camera devices (OpenCV indices per logical position)
FRONT_CAMERA_INDEX = _env_int("MW_FRONT_CAMERA_INDEX", 0)
BACK_CAMERA_INDEX = _env_int("MW_BACK_CAMERA_INDEX", 1)
DEFAULT_CAMERA_POSITION = os.getenv("MW_CAMERA_POSITION", "back")
CAPTURE_FRAME_INTERVAL_S = _env_float("MW_CAPTURE_FRAME_INTERVAL_S", 0.03, minimum=0.0)
CAPTURE_READ_RETRY_S = 0.1
CAPTURE_JOIN_TIMEOUT_S = 2.0

# Live preview (latest frame only, polled by the window)
PREVIEW_MAX_SIZE = (640, 480)
PREVIEW_INTERVAL_MS = _env_int("MW_PREVIEW_INTERVAL_MS", 33)

# Mask classifier
MIN_CONFIDENCE = _env_float("MW_MIN_CONFIDENCE", 0.8)
CLASSIFIER_IMGSZ = _env_int("MW_CLASSIFIER_IMGSZ", 640)
CLASSIFIER_DEVICE = os.getenv("MW_DEVICE", "")  # "" = auto (GPU if available)

# Session lifecycle
# Contract violations (e.g. switching camera before configure) raise when strict.
STRICT_STATE_CHECKS = _env_flag("MW_STRICT_STATE", True)
SESSION_SHUTDOWN_TIMEOUT_S = 3.0

# Permission policy: desktop platforms have no runtime prompt, access is a setting.
CAMERA_ACCESS_ALLOWED = os.getenv("MW_CAMERA_ACCESS", "1").strip().lower() not in {
    "0",
    "false",
    "no",
    "denied",
}
