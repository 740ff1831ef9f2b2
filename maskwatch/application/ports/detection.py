"""Application port for the mask classifier.

The pipeline only needs ``detect(frame)``; loading and unloading weights is the
business of the concrete detector (see :class:`maskwatch.interfaces.IMaskDetector`).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from maskwatch.application.ports.capture import Frame


class MaskStatus(str, Enum):
    MASK = "mask"
    NO_MASK = "no_mask"


@dataclass(frozen=True, slots=True)
class DetectionResult:
    face_id: int  # position in the detector output, not a tracked identity
    status: MaskStatus
    confidence: float = 1.0


class DetectionPort(Protocol):
    def detect(self, frame: Frame) -> Sequence[DetectionResult]:
        """Classify faces in one frame. Raises DetectionError on malformed input."""
        ...
