"""Домен пайплайна: состояние сессии захвата и текст статуса.

Pure values and functions; no threads, no devices.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Union

from maskwatch.application.ports.capture import CameraPosition
from maskwatch.application.ports.detection import DetectionResult, MaskStatus

WAITING_TEXT = "Waiting…"
NO_FACE_TEXT = "no face found"
ANALYSIS_ERROR_TEXT = "analysis error"
ACCESS_DENIED_TEXT = "no camera access"

STATUS_LABELS: dict[MaskStatus, str] = {
    MaskStatus.MASK: "wearing mask",
    MaskStatus.NO_MASK: "no mask",
}


class SessionState(str, Enum):
    IDLE = "idle"
    CONFIGURING = "configuring"
    RUNNING = "running"
    SWITCHING_DEVICE = "switching_device"
    STOPPED = "stopped"


@dataclass(frozen=True, slots=True)
class CaptureSession:
    """Snapshot of the session owned by SessionController."""

    state: SessionState
    active_position: CameraPosition
    generation: int


@dataclass(frozen=True, slots=True)
class AnalysisFailure:
    """Distinguished outcome: the detector failed on a frame."""

    reason: str


@dataclass(frozen=True, slots=True)
class AggregatedStatus:
    text: str
    last_emitted_at: float | None


DetectionOutcome = Union[Sequence[DetectionResult], AnalysisFailure]


def summarize(outcome: DetectionOutcome) -> str:
    """Human readable summary, faces listed in detection order."""
    if isinstance(outcome, AnalysisFailure):
        return ANALYSIS_ERROR_TEXT
    if not outcome:
        return NO_FACE_TEXT
    faces = ", ".join(STATUS_LABELS[r.status] for r in outcome)
    return f"{len(outcome)} face(s): {faces}"
