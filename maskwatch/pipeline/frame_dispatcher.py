from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Executor, ThreadPoolExecutor
from threading import Lock

from maskwatch.application.ports.capture import Frame
from maskwatch.application.ports.detection import DetectionPort
from maskwatch.core.errors import DetectionError
from maskwatch.core.observability.timing import time_block
from maskwatch.pipeline.domain import AnalysisFailure, DetectionOutcome

log = logging.getLogger(__name__)

# Receives the outcome and the generation of the frame it came from.
OutcomeSink = Callable[[DetectionOutcome, int], object]


class DispatchMetrics:
    """
    Thread-safe dispatcher counters; single lock. Written from the delivery
    thread (received/dropped) and the detection worker (the rest).
    """

    __slots__ = (
        "_received",
        "_admitted",
        "_dropped",
        "_stale",
        "_failures",
        "_inference_ms",
        "_lock",
    )

    def __init__(self) -> None:
        self._received = 0
        self._admitted = 0
        self._dropped = 0
        self._stale = 0
        self._failures = 0
        self._inference_ms = 0.0
        self._lock = Lock()

    def frame_received(self, admitted: bool) -> None:
        with self._lock:
            self._received += 1
            if admitted:
                self._admitted += 1
            else:
                self._dropped += 1

    def result_discarded(self) -> None:
        with self._lock:
            self._stale += 1

    def analysis_failed(self) -> None:
        with self._lock:
            self._failures += 1

    def set_inference_ms(self, ms: float) -> None:
        with self._lock:
            self._inference_ms = ms

    def get_metrics(self) -> dict[str, float]:
        with self._lock:
            return {
                "frames_received": self._received,
                "frames_admitted": self._admitted,
                "frames_dropped": self._dropped,
                "results_discarded": self._stale,
                "analysis_failures": self._failures,
                "inference_ms": self._inference_ms,
            }


class FrameDispatcher:
    """
    Admits at most one frame into detection at a time and forwards the outcome
    to the sink, unless the frame's generation was superseded meanwhile.

    Excess frames are dropped, never queued: the processing rate is bounded by
    detector latency, not by the camera frame rate. Detection runs on a worker
    thread so the device delivery thread is never blocked.
    """

    def __init__(
        self,
        detector: DetectionPort,
        sink: OutcomeSink,
        current_generation: Callable[[], int],
        *,
        executor: Executor | None = None,
    ) -> None:
        self._detector = detector
        self._sink = sink
        self._current_generation = current_generation
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="detect")
        # Held while a detection is in flight; acquire(blocking=False) is the admission check.
        self._in_flight = Lock()
        self._closed = False
        self._metrics = DispatchMetrics()

    @property
    def metrics(self) -> DispatchMetrics:
        return self._metrics

    @property
    def is_busy(self) -> bool:
        return self._in_flight.locked()

    def on_frame(self, frame: Frame) -> bool:
        """Delivery callback. Returns True if the frame was admitted for detection."""
        if self._closed or not self._in_flight.acquire(blocking=False):
            self._metrics.frame_received(admitted=False)
            return False
        try:
            self._executor.submit(self._process, frame)
        except RuntimeError:
            # executor shut down under us
            self._in_flight.release()
            self._metrics.frame_received(admitted=False)
            return False
        self._metrics.frame_received(admitted=True)
        return True

    def _process(self, frame: Frame) -> None:
        try:
            outcome = self._detect(frame)
            current = self._current_generation()
            if frame.generation != current:
                self._metrics.result_discarded()
                log.debug(
                    "Discarding stale result",
                    extra={"generation": frame.generation, "event": "stale_result"},
                )
                return
            # The sink re-checks the generation under its own lock; this check only
            # saves the work for results that are already known to be stale.
            self._sink(outcome, frame.generation)
        except Exception:
            log.exception("Frame dispatch failed")
        finally:
            self._in_flight.release()

    def _detect(self, frame: Frame) -> DetectionOutcome:
        if frame.is_empty:
            return ()
        try:
            with time_block("detect", logger=log) as watch:
                results = tuple(self._detector.detect(frame))
        except DetectionError as e:
            self._metrics.analysis_failed()
            log.warning("Detection failed: %s", e.reason)
            return AnalysisFailure(reason=e.reason)
        except Exception as e:  # noqa: BLE001
            self._metrics.analysis_failed()
            log.warning("Detector raised unexpectedly", exc_info=True)
            return AnalysisFailure(reason=str(e) or type(e).__name__)
        self._metrics.set_inference_ms(watch.elapsed_ms)
        return results

    def shutdown(self, wait: bool = False) -> None:
        """Stop admitting frames; an in-flight detection finishes and is fenced by generation."""
        self._closed = True
        if self._owns_executor:
            self._executor.shutdown(wait=wait, cancel_futures=True)
