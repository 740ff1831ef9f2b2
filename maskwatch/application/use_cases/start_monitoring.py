"""Use case: start monitoring (load classifier weights + camera access + configure).

Keeps the UI thin: weights validation errors surface as StartMonitoringError,
access denial and device failures surface through session events. A start while
the session is busy is rejected before the weights are touched.
"""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path

from maskwatch.application.ports.permission import PermissionPort
from maskwatch.interfaces import IMaskDetector
from maskwatch.pipeline.domain import SessionState
from maskwatch.pipeline.session_controller import SessionController


class StartMonitoringError(RuntimeError):
    """Raised when monitoring cannot be started because the classifier cannot be loaded."""


@dataclass(frozen=True, slots=True)
class StartMonitoringRequest:
    weights_path: Path


class StartMonitoringUseCase:
    def __init__(
        self,
        detector: IMaskDetector,
        permission: PermissionPort,
        session: SessionController,
    ) -> None:
        self._detector = detector
        self._permission = permission
        self._session = session

    def execute(self, req: StartMonitoringRequest) -> Future[SessionState]:
        if not self._session.can_configure:
            # Already running: the session rejects it; the loaded model stays as is.
            return self._session.configure(True)
        if not req.weights_path or not Path(req.weights_path).exists():
            raise StartMonitoringError(f"Weights file not found: {req.weights_path}")
        try:
            self._detector.load_model(Path(req.weights_path))
        except Exception as e:
            raise StartMonitoringError(f"Could not load mask classifier: {e}") from e

        granted = bool(self._permission.request_access())
        return self._session.configure(granted)
