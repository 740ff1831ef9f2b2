from __future__ import annotations

import logging
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from maskwatch.pipeline.domain import SessionState
from maskwatch.pipeline.session_controller import SessionController

log = logging.getLogger(__name__)


@runtime_checkable
class SupportsUnloadModel(Protocol):
    def unload_model(self) -> None: ...


@dataclass(frozen=True, slots=True)
class StopMonitoringRequest:
    detector: object | None
    release_cuda_cache: bool = True


class StopMonitoringError(RuntimeError):
    pass


class StopMonitoringUseCase:
    """
    Stop/cleanup logic that must not live in UI.

    Responsibilities:
    - Stop the capture session (device released on the session worker)
    - Unload the classifier (best-effort)
    - Optionally release CUDA cache (best-effort)
    - Idempotent: safe to call multiple times
    """

    def __init__(self, session: SessionController) -> None:
        self._session = session

    def execute(self, request: StopMonitoringRequest) -> Future[SessionState]:
        stopped = self._session.stop()

        detector = request.detector
        if detector is not None and isinstance(detector, SupportsUnloadModel):
            try:
                detector.unload_model()
            except Exception as e:  # noqa: BLE001
                raise StopMonitoringError(f"Could not unload mask classifier: {e}") from e

        if request.release_cuda_cache:
            try:
                import torch

                if torch.cuda.is_available():
                    torch.cuda.empty_cache()
            except Exception:
                log.debug("CUDA cache release skipped", exc_info=True)
        return stopped
