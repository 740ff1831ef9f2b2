"""Camera frame -> Qt image for the live preview label."""

from __future__ import annotations

import cv2
import numpy as np
from PySide6.QtCore import Qt
from PySide6.QtGui import QImage, QPixmap

from maskwatch.config import PREVIEW_MAX_SIZE


def frame_to_qimage(buffer: np.ndarray) -> QImage:
    """OpenCV frame (BGR, BGRA or grayscale, uint8) -> QImage that owns its pixels."""
    if buffer.ndim == 3 and buffer.shape[2] == 1:
        buffer = buffer[:, :, 0]
    if buffer.ndim == 2:
        gray = np.ascontiguousarray(buffer, dtype=np.uint8)
        h, w = gray.shape
        return QImage(gray.data, w, h, w, QImage.Format.Format_Grayscale8).copy()
    if buffer.ndim != 3 or buffer.shape[2] not in (3, 4):
        raise ValueError(f"Unsupported frame shape for preview: {buffer.shape}")
    code = cv2.COLOR_BGRA2RGB if buffer.shape[2] == 4 else cv2.COLOR_BGR2RGB
    rgb = cv2.cvtColor(buffer, code)
    h, w = rgb.shape[:2]
    # copy(): the numpy buffer is released once this returns
    return QImage(rgb.data, w, h, 3 * w, QImage.Format.Format_RGB888).copy()


def frame_to_pixmap(buffer: np.ndarray) -> QPixmap:
    return QPixmap.fromImage(frame_to_qimage(buffer)).scaled(
        *PREVIEW_MAX_SIZE,
        Qt.AspectRatioMode.KeepAspectRatio,
        Qt.TransformationMode.SmoothTransformation,
    )
