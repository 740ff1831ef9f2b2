"""Debounced status text for observers.

A new text reaches observers only if it differs from the last *emitted* text
and the debounce window has elapsed since that emission. Changes arriving
inside the window are dropped, not deferred: the next result is compared with
the still-current emitted text.

"analysis error" is the exception: it is shown as soon as it differs from the
current text, and it does not restart the window.

Results carry the generation of the frame they came from. The session fences
the aggregator on every generation bump; a result older than the fence is
dropped under the same lock that publishes, so nothing from a superseded
device can follow a reset.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from threading import RLock

from maskwatch.config import DEBOUNCE_WINDOW_S
from maskwatch.core.events import EventBus, StatusChanged
from maskwatch.pipeline.domain import (
    ANALYSIS_ERROR_TEXT,
    WAITING_TEXT,
    AggregatedStatus,
    DetectionOutcome,
    summarize,
)

log = logging.getLogger(__name__)


class StatusAggregator:
    def __init__(
        self,
        event_bus: EventBus,
        *,
        debounce_window_s: float = DEBOUNCE_WINDOW_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if debounce_window_s < 0:
            raise ValueError("debounce_window_s must be >= 0")
        self._bus = event_bus
        self._window = debounce_window_s
        self._clock = clock
        # Reentrant: observers run inside the critical section and may read .text.
        self._lock = RLock()
        self._text = WAITING_TEXT
        self._last_emitted_at: float | None = None
        self._min_generation = 0

    @property
    def debounce_window_s(self) -> float:
        return self._window

    @property
    def status(self) -> AggregatedStatus:
        with self._lock:
            return AggregatedStatus(text=self._text, last_emitted_at=self._last_emitted_at)

    @property
    def text(self) -> str:
        with self._lock:
            return self._text

    def fence(self, generation: int) -> None:
        """Refuse results of frames older than ``generation`` from now on."""
        with self._lock:
            if generation > self._min_generation:
                self._min_generation = generation

    def on_result(
        self,
        outcome: DetectionOutcome,
        generation: int | None = None,
        *,
        timestamp: float | None = None,
    ) -> bool:
        """Fold one detection outcome into the status. Returns True if it was emitted."""
        text = summarize(outcome)
        now = self._clock() if timestamp is None else timestamp
        with self._lock:
            if generation is not None and generation < self._min_generation:
                log.debug("Result of superseded generation dropped", extra={"generation": generation})
                return False
            if text == self._text:
                return False
            if text == ANALYSIS_ERROR_TEXT:
                # Shown immediately; the window keeps counting from the last regular status.
                self._text = text
                self._bus.publish(StatusChanged(text=text, emitted_at=now))
                return True
            last = self._last_emitted_at
            if last is not None and (now - last) < self._window:
                log.debug("Status change dropped inside debounce window: %r", text)
                return False
            self._text = text
            self._last_emitted_at = now
            # Publish inside the lock so observers see emissions in commit order.
            self._bus.publish(StatusChanged(text=text, emitted_at=now))
        return True

    def reset(self, text: str = WAITING_TEXT, *, generation: int | None = None) -> None:
        """Start over (session (re)start or access denial); the next result emits immediately."""
        with self._lock:
            if generation is not None:
                self.fence(generation)
            self._text = text
            self._last_emitted_at = None
            self._bus.publish(StatusChanged(text=text, emitted_at=None))
