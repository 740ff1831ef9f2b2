from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from maskwatch.application.ports.capture import CameraPosition
    from maskwatch.core.errors import AccessDeniedError, DeviceOpenError
    from maskwatch.core.events.event_bus import EventBus, Subscription
    from maskwatch.pipeline.domain import SessionState


class PipelineEvent:
    """Marker base: subscribe to it to receive every pipeline notification."""

    __slots__ = ()


@dataclass(frozen=True, slots=True)
class StatusChanged(PipelineEvent):
    text: str
    emitted_at: float | None  # None for resets


@dataclass(frozen=True, slots=True)
class AccessDenied(PipelineEvent):
    error: AccessDeniedError


@dataclass(frozen=True, slots=True)
class SessionStateChanged(PipelineEvent):
    state: SessionState
    position: CameraPosition
    generation: int


@dataclass(frozen=True, slots=True)
class DeviceOpenFailed(PipelineEvent):
    position: CameraPosition
    error: DeviceOpenError


class StatusObserver(Protocol):
    """What a front-end implements to follow the pipeline."""

    def on_status_changed(self, text: str) -> None: ...

    def on_access_denied(self) -> None: ...


def subscribe_observer(bus: EventBus, observer: StatusObserver) -> list[Subscription]:
    """Wire a StatusObserver to the bus. Returns subscriptions for later unsubscribe."""
    return [
        bus.subscribe(StatusChanged, lambda ev: observer.on_status_changed(ev.text)),
        bus.subscribe(AccessDenied, lambda _ev: observer.on_access_denied()),
    ]
