"""Абстрактные интерфейсы (SOLID: Dependency Inversion).

Contract of a loadable mask classifier. The pipeline itself only sees
:class:`maskwatch.application.ports.detection.DetectionPort`.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from maskwatch.application.ports.capture import Frame
from maskwatch.application.ports.detection import DetectionResult


class IMaskDetector(ABC):
    """Face/mask classifier: load weights, classify a frame, release the model."""

    @abstractmethod
    def load_model(self, weights_path: Path) -> None:
        """Load model from weights file."""
        ...

    @abstractmethod
    def detect(self, frame: Frame) -> Sequence[DetectionResult]:
        """Return one result per face, in model output order. Raises DetectionError."""
        ...

    @abstractmethod
    def unload_model(self) -> None:
        """Release model (and GPU memory)."""
        ...

    @property
    @abstractmethod
    def is_loaded(self) -> bool:
        """Whether weights are loaded."""
        ...
