"""Capture session lifecycle: configure, switch camera, stop.

All device work runs on one dedicated worker thread, so at most one
(re)configuration is ever in flight and the caller (UI thread) never blocks.
State changes are committed synchronously under the controller lock; the
worker then does the slow part and commits the outcome, re-checking that
nothing superseded it meanwhile.

Every superseding step (configure, switch request, stop) bumps ``generation``.
The frame callback handed to a device is bound to the generation current at
attach time, so frames (and in-flight detections) of a superseded device are
recognised and discarded. The bump also fences the status aggregator under this
controller's lock, so a late result cannot land after the reset that follows.

State machine (initial IDLE)::

    IDLE/STOPPED --configure(granted)--> CONFIGURING --(opened)--> RUNNING
    IDLE/STOPPED --configure(denied)--> STOPPED
    CONFIGURING --(open failed)--> IDLE
    RUNNING --switch_camera--> SWITCHING_DEVICE --(reopened)--> RUNNING
    any --stop--> STOPPED
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from threading import RLock

from maskwatch.application.ports.capture import (
    CameraPosition,
    DeviceHandle,
    DevicePort,
    Frame,
    RawFrameCallback,
)
from maskwatch.config import SESSION_SHUTDOWN_TIMEOUT_S, STRICT_STATE_CHECKS
from maskwatch.core.errors import AccessDeniedError, DeviceOpenError, InvalidStateTransition
from maskwatch.core.events import AccessDenied, DeviceOpenFailed, EventBus, SessionStateChanged
from maskwatch.pipeline.domain import ACCESS_DENIED_TEXT, CaptureSession, SessionState
from maskwatch.pipeline.preview import PreviewSlot
from maskwatch.pipeline.status_aggregator import StatusAggregator

log = logging.getLogger(__name__)

FrameSink = Callable[[Frame], object]

_CONFIGURABLE = (SessionState.IDLE, SessionState.STOPPED)


def _done(state: SessionState) -> Future[SessionState]:
    fut: Future[SessionState] = Future()
    fut.set_result(state)
    return fut


class SessionController:
    def __init__(
        self,
        devices: DevicePort,
        frame_sink: FrameSink,
        aggregator: StatusAggregator,
        event_bus: EventBus,
        *,
        initial_position: CameraPosition = CameraPosition.BACK,
        strict: bool = STRICT_STATE_CHECKS,
        preview: PreviewSlot | None = None,
    ) -> None:
        self._devices = devices
        self._frame_sink = frame_sink
        self._aggregator = aggregator
        self._bus = event_bus
        self._strict = strict
        self._preview = preview

        self._lock = RLock()
        self._worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="session")

        self._state = SessionState.IDLE
        self._active_position = initial_position
        self._requested_position = initial_position
        self._generation = 0
        self._handle: DeviceHandle | None = None
        self._pending_switch: Future[SessionState] | None = None

    # Reads are lock-free: single writer, and observers may read from inside handlers.
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def active_position(self) -> CameraPosition:
        return self._active_position

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def can_configure(self) -> bool:
        """True while configure() would be accepted (IDLE or STOPPED)."""
        return self._state in _CONFIGURABLE

    def snapshot(self) -> CaptureSession:
        with self._lock:
            return CaptureSession(
                state=self._state,
                active_position=self._active_position,
                generation=self._generation,
            )

    # --- Public operations -------------------------------------------------

    def configure(self, access_granted: bool) -> Future[SessionState]:
        with self._lock:
            if self._state not in _CONFIGURABLE:
                return self._reject("configure", self._state)
            if not access_granted:
                log.warning("Camera access denied")
                self._transition(SessionState.STOPPED)
                self._aggregator.reset(ACCESS_DENIED_TEXT, generation=self._generation)
                self._bus.publish(AccessDenied(error=AccessDeniedError("Camera access was not granted")))
                return _done(SessionState.STOPPED)
            self._bump_generation()
            self._requested_position = self._active_position
            self._transition(SessionState.CONFIGURING)
            self._aggregator.reset(generation=self._generation)
            return self._submit(self._run_configure)

    def switch_camera(self) -> Future[SessionState]:
        with self._lock:
            if self._state is SessionState.SWITCHING_DEVICE and self._pending_switch is not None:
                self._requested_position = self._requested_position.opposite()
                log.info(
                    "Camera switch coalesced, now targeting %s",
                    self._requested_position.value,
                    extra={"position": self._requested_position.value},
                )
                return self._pending_switch
            if self._state is not SessionState.RUNNING:
                return self._reject("switch_camera", self._state)
            self._requested_position = self._active_position.opposite()
            self._bump_generation()
            self._transition(SessionState.SWITCHING_DEVICE)
            self._pending_switch = self._submit(self._run_switch)
            return self._pending_switch

    def stop(self) -> Future[SessionState]:
        """Stop delivery and release the device. Idempotent."""
        with self._lock:
            if self._state is SessionState.STOPPED:
                return _done(SessionState.STOPPED)
            self._bump_generation()
            self._pending_switch = None
            self._transition(SessionState.STOPPED)
            if self._preview is not None:
                self._preview.clear()
            return self._submit(self._run_stop)

    def shutdown(self, timeout_s: float = SESSION_SHUTDOWN_TIMEOUT_S) -> None:
        """Stop the session and release the worker thread (application exit)."""
        try:
            self.stop().result(timeout=timeout_s)
        except FutureTimeoutError:
            log.warning("Session did not stop within %.1fs", timeout_s)
        self._worker.shutdown(wait=False, cancel_futures=True)

    # --- Worker jobs -------------------------------------------------------

    def _run_configure(self) -> SessionState:
        with self._lock:
            if self._state is not SessionState.CONFIGURING:
                return self._state
            position = self._active_position
        try:
            handle = self._open(position)
        except DeviceOpenError as e:
            with self._lock:
                if self._state is SessionState.CONFIGURING:
                    self._transition(SessionState.IDLE)
                self._bus.publish(DeviceOpenFailed(position=position, error=e))
                return self._state

        with self._lock:
            if self._state is not SessionState.CONFIGURING:
                superseded = True
            else:
                superseded = False
                self._handle = handle
                generation = self._generation
                self._transition(SessionState.RUNNING)
        if superseded:
            self._close_quietly(handle)
            return self._state
        self._devices.start_delivery(handle, self._bind_frames(generation))
        return SessionState.RUNNING

    def _run_switch(self) -> SessionState:
        previous = self._active_position
        while True:
            with self._lock:
                if self._state is not SessionState.SWITCHING_DEVICE:
                    return self._state
                target = self._requested_position
            self._release_current()
            try:
                handle = self._open(target)
            except DeviceOpenError as e:
                self._bus.publish(DeviceOpenFailed(position=target, error=e))
                return self._restore(previous)

            with self._lock:
                if self._state is not SessionState.SWITCHING_DEVICE:
                    superseded = True
                else:
                    superseded = False
                    self._handle = handle
                    self._active_position = target
                    if self._requested_position is not target:
                        # Another switch arrived while reopening; go again.
                        continue
                    generation = self._generation
                    self._pending_switch = None
                    self._transition(SessionState.RUNNING)
            if superseded:
                self._close_quietly(handle)
                return self._state
            self._devices.start_delivery(handle, self._bind_frames(generation))
            return SessionState.RUNNING

    def _restore(self, position: CameraPosition) -> SessionState:
        """Switch failed: reopen the previous camera so the session stays usable."""
        with self._lock:
            if self._state is not SessionState.SWITCHING_DEVICE:
                return self._state
            self._requested_position = position
        try:
            handle = self._open(position)
        except DeviceOpenError as e:
            with self._lock:
                if self._state is SessionState.SWITCHING_DEVICE:
                    self._active_position = position
                    self._pending_switch = None
                    self._transition(SessionState.IDLE)
                self._bus.publish(DeviceOpenFailed(position=position, error=e))
                return self._state

        with self._lock:
            if self._state is not SessionState.SWITCHING_DEVICE:
                superseded = True
            else:
                superseded = False
                self._handle = handle
                self._active_position = position
                generation = self._generation
                self._pending_switch = None
                self._transition(SessionState.RUNNING)
        if superseded:
            self._close_quietly(handle)
            return self._state
        self._devices.start_delivery(handle, self._bind_frames(generation))
        return SessionState.RUNNING

    def _run_stop(self) -> SessionState:
        self._release_current()
        return SessionState.STOPPED

    # --- Helpers -----------------------------------------------------------

    def _bump_generation(self) -> None:
        """Supersede the current device. Caller holds the lock."""
        self._generation += 1
        # Results of older frames that already passed the dispatcher are refused from here on.
        self._aggregator.fence(self._generation)

    def _bind_frames(self, generation: int) -> RawFrameCallback:
        def _deliver(buffer, captured_at: float) -> None:
            if generation != self._generation:
                return  # superseded device
            frame = Frame(buffer=buffer, captured_at=captured_at, generation=generation)
            if self._preview is not None:
                self._preview.put_nowait(frame)
            self._frame_sink(frame)

        return _deliver

    def _open(self, position: CameraPosition) -> DeviceHandle:
        try:
            return self._devices.open(position)
        except DeviceOpenError as e:
            log.error("Could not open %s camera: %s", position.value, e, extra={"position": position.value})
            raise
        except Exception as e:
            log.exception("Device adapter failed to open %s camera", position.value)
            raise DeviceOpenError(f"Could not open {position.value} camera", cause=e) from e

    def _release_current(self) -> None:
        with self._lock:
            handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            self._devices.stop_delivery(handle)
        except Exception:
            log.warning("Failed to stop frame delivery", exc_info=True)
        self._close_quietly(handle)

    def _close_quietly(self, handle: DeviceHandle) -> None:
        try:
            self._devices.close(handle)
        except Exception:
            log.warning("Failed to close capture device", exc_info=True)

    def _transition(self, state: SessionState) -> None:
        """Commit a state change. Caller holds the lock; the event is published in commit order."""
        prev, self._state = self._state, state
        log.info(
            "Session %s -> %s (%s, generation %d)",
            prev.value,
            state.value,
            self._active_position.value,
            self._generation,
            extra={"state": state.value, "generation": self._generation},
        )
        self._bus.publish(
            SessionStateChanged(
                state=state, position=self._active_position, generation=self._generation
            )
        )

    def _reject(self, operation: str, state: SessionState) -> Future[SessionState]:
        msg = f"{operation}() is not valid while the session is {state.value}"
        if self._strict:
            raise InvalidStateTransition(msg)
        log.warning(msg)
        return _done(state)

    def _submit(self, job: Callable[[], SessionState]) -> Future[SessionState]:
        def _guarded() -> SessionState:
            try:
                return job()
            except Exception:
                log.exception("Session job %s failed", job.__name__)
                raise

        try:
            return self._worker.submit(_guarded)
        except RuntimeError:
            log.warning("Session worker is shut down; %s skipped", job.__name__)
            return _done(self._state)
