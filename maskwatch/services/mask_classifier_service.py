"""
Face/mask classifier on Ultralytics YOLO weights (classes such as ``mask`` /
``no_mask``). Implements IMaskDetector and the pipeline's DetectionPort.

Model lifecycle: load_model() only stores the path; the YOLO model is created
on first detect(), i.e. on the detection worker thread, and released by
unload_model().
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Any

import numpy as np

from maskwatch.application.ports.capture import Frame
from maskwatch.application.ports.detection import DetectionResult, MaskStatus
from maskwatch.config import CLASSIFIER_DEVICE, CLASSIFIER_IMGSZ, MIN_CONFIDENCE
from maskwatch.core.errors import DetectionError
from maskwatch.interfaces import IMaskDetector

log = logging.getLogger(__name__)

ModelFactory = Callable[[Path], Any]

MASK_LABELS = frozenset({"mask", "with_mask", "masked", "face_mask"})
NO_MASK_LABELS = frozenset({"no_mask", "no-mask", "without_mask", "nomask", "unmasked"})


def _create_yolo_model(weights_path: Path) -> Any:
    from ultralytics import YOLO

    return YOLO(str(weights_path))


def label_to_status(label: str) -> MaskStatus | None:
    key = label.strip().lower().replace(" ", "_")
    if key in MASK_LABELS:
        return MaskStatus.MASK
    if key in NO_MASK_LABELS:
        return MaskStatus.NO_MASK
    return None


def center_crop(image: np.ndarray) -> np.ndarray:
    """Largest centred square, so faces keep their aspect ratio at the model input."""
    h, w = image.shape[:2]
    side = min(h, w)
    top = (h - side) // 2
    left = (w - side) // 2
    return image[top : top + side, left : left + side]


def _validate(buffer: Any) -> np.ndarray:
    if not isinstance(buffer, np.ndarray):
        raise DetectionError(f"Frame buffer must be a numpy array, got {type(buffer).__name__}")
    if buffer.ndim != 3 or buffer.shape[2] not in (3, 4):
        raise DetectionError(f"Expected HxWx3 or HxWx4 image, got shape {buffer.shape}")
    if buffer.dtype != np.uint8:
        raise DetectionError(f"Expected uint8 pixels, got {buffer.dtype}")
    if buffer.shape[2] == 4:
        buffer = np.ascontiguousarray(buffer[:, :, :3])
    return buffer


class MaskClassifierService(IMaskDetector):
    def __init__(
        self,
        *,
        min_confidence: float = MIN_CONFIDENCE,
        imgsz: int = CLASSIFIER_IMGSZ,
        device: str = CLASSIFIER_DEVICE,
        model_factory: ModelFactory | None = None,
    ) -> None:
        self._min_confidence = min_confidence
        self._imgsz = imgsz
        self._device = device or None
        self._model_factory = model_factory or _create_yolo_model
        self._weights_path: Path | None = None
        self._model: Any = None
        self._model_lock = threading.Lock()

    def load_model(self, weights_path: Path) -> None:
        path = Path(weights_path)
        if not path.exists():
            raise FileNotFoundError(f"Weights not found: {path}")
        with self._model_lock:
            self._weights_path = path
            self._model = None
        log.info("Mask classifier weights set: %s", path)

    def _ensure_model(self) -> Any:
        with self._model_lock:
            if self._model is None:
                if self._weights_path is None:
                    raise DetectionError("Mask classifier weights are not loaded")
                try:
                    self._model = self._model_factory(self._weights_path)
                except Exception as e:
                    raise DetectionError(f"Could not create model: {e}", cause=e) from e
                log.info("Mask classifier model created on %s", threading.current_thread().name)
            return self._model

    def detect(self, frame: Frame) -> Sequence[DetectionResult]:
        image = center_crop(_validate(frame.buffer))
        model = self._ensure_model()
        try:
            results = self._predict(model, image)
        except DetectionError:
            raise
        except Exception as e:
            raise DetectionError(f"Inference failed: {e}", cause=e) from e
        return self._to_results(model, results)

    def _predict(self, model: Any, image: np.ndarray) -> Any:
        # Ultralytics runs its predictor under inference mode itself.
        return model.predict(
            source=image,
            conf=self._min_confidence,
            imgsz=self._imgsz,
            device=self._device,
            verbose=False,
            stream=False,
        )

    def _to_results(self, model: Any, results: Iterable[Any]) -> list[DetectionResult]:
        results = list(results or [])
        if not results:
            return []
        r = results[0]
        boxes = getattr(r, "boxes", None)
        if boxes is None or len(boxes) == 0:
            return []
        confs = np.asarray(boxes.conf.cpu().numpy(), dtype=float).reshape(-1)
        class_ids = np.asarray(boxes.cls.cpu().numpy()).reshape(-1).astype(int)
        names = getattr(r, "names", None) or getattr(model, "names", {}) or {}
        if isinstance(names, list):
            names = dict(enumerate(names))

        out: list[DetectionResult] = []
        for conf, cid in zip(confs, class_ids):
            if conf < self._min_confidence:
                continue
            status = label_to_status(str(names.get(int(cid), cid)))
            if status is None:
                log.debug("Ignoring detection of class %r", names.get(int(cid), cid))
                continue
            out.append(DetectionResult(face_id=len(out), status=status, confidence=float(conf)))
        return out

    def unload_model(self) -> None:
        """Drop the model and free GPU cache."""
        with self._model_lock:
            self._model = None
            self._weights_path = None
        try:
            import torch

            if torch.cuda.is_available():
                torch.cuda.empty_cache()
        except Exception:
            log.debug("Failed to release CUDA cache", exc_info=True)

    @property
    def is_loaded(self) -> bool:
        return self._weights_path is not None
