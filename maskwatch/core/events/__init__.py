"""Lightweight in-process event bus.

Pipeline components publish events; front-ends subscribe (directly or through
the StatusObserver protocol).
"""

from .event_bus import EventBus, Subscription
from .events import (
    AccessDenied,
    DeviceOpenFailed,
    PipelineEvent,
    SessionStateChanged,
    StatusChanged,
    StatusObserver,
    subscribe_observer,
)

__all__ = [
    "EventBus",
    "Subscription",
    "PipelineEvent",
    "StatusChanged",
    "AccessDenied",
    "SessionStateChanged",
    "DeviceOpenFailed",
    "StatusObserver",
    "subscribe_observer",
]
