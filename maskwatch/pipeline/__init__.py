"""Capture-session lifecycle and frame-dispatch pipeline.

Device -> SessionController (generation binding) -> FrameDispatcher ->
detector -> StatusAggregator -> EventBus observers. The controller also keeps
the latest frame in a PreviewSlot for the live view.
"""

from .domain import (
    ACCESS_DENIED_TEXT,
    ANALYSIS_ERROR_TEXT,
    NO_FACE_TEXT,
    WAITING_TEXT,
    AggregatedStatus,
    AnalysisFailure,
    CaptureSession,
    SessionState,
    summarize,
)
from .frame_dispatcher import DispatchMetrics, FrameDispatcher
from .preview import PreviewSlot
from .session_controller import SessionController
from .status_aggregator import StatusAggregator

__all__ = [
    "ACCESS_DENIED_TEXT",
    "ANALYSIS_ERROR_TEXT",
    "NO_FACE_TEXT",
    "WAITING_TEXT",
    "AggregatedStatus",
    "AnalysisFailure",
    "CaptureSession",
    "SessionState",
    "summarize",
    "DispatchMetrics",
    "FrameDispatcher",
    "PreviewSlot",
    "SessionController",
    "StatusAggregator",
]
