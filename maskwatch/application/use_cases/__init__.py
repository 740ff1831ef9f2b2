"""Use cases (application services)."""

from .start_monitoring import (
    StartMonitoringError,
    StartMonitoringRequest,
    StartMonitoringUseCase,
)
from .stop_monitoring import (
    StopMonitoringError,
    StopMonitoringRequest,
    StopMonitoringUseCase,
)

__all__ = [
    "StartMonitoringError",
    "StartMonitoringRequest",
    "StartMonitoringUseCase",
    "StopMonitoringError",
    "StopMonitoringRequest",
    "StopMonitoringUseCase",
]
