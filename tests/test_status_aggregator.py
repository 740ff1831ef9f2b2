from __future__ import annotations

import pytest

from maskwatch.application.ports.detection import DetectionResult, MaskStatus
from maskwatch.core.events import EventBus, StatusChanged
from maskwatch.pipeline import (
    ACCESS_DENIED_TEXT,
    ANALYSIS_ERROR_TEXT,
    NO_FACE_TEXT,
    WAITING_TEXT,
    AnalysisFailure,
    StatusAggregator,
    summarize,
)


def _mk(window: float = 0.5) -> tuple[StatusAggregator, list[str]]:
    bus = EventBus()
    emitted: list[str] = []
    bus.subscribe(StatusChanged, lambda ev: emitted.append(ev.text))
    return StatusAggregator(bus, debounce_window_s=window), emitted


def _faces(*statuses: MaskStatus) -> list[DetectionResult]:
    return [DetectionResult(face_id=i, status=s) for i, s in enumerate(statuses)]


def test_summarize_texts() -> None:
    assert summarize([]) == "no face found"
    assert summarize(AnalysisFailure("boom")) == "analysis error"
    assert summarize(_faces(MaskStatus.MASK)) == "1 face(s): wearing mask"
    assert (
        summarize(_faces(MaskStatus.MASK, MaskStatus.NO_MASK))
        == "2 face(s): wearing mask, no mask"
    )


def test_initial_text_is_waiting() -> None:
    agg, emitted = _mk()
    assert agg.text == WAITING_TEXT
    assert agg.status.last_emitted_at is None
    assert emitted == []


def test_zero_faces_emits_no_face_found() -> None:
    agg, emitted = _mk()
    assert agg.on_result([], timestamp=1.0) is True
    assert emitted == [NO_FACE_TEXT]
    assert agg.status.last_emitted_at == 1.0


def test_same_text_inside_window_is_not_emitted_again() -> None:
    agg, emitted = _mk()
    agg.on_result(_faces(MaskStatus.MASK), timestamp=1.0)
    assert agg.on_result(_faces(MaskStatus.MASK), timestamp=1.1) is False
    assert emitted == ["1 face(s): wearing mask"]


def test_same_text_is_never_emitted_twice_even_after_window() -> None:
    agg, emitted = _mk()
    agg.on_result([], timestamp=1.0)
    assert agg.on_result([], timestamp=5.0) is False
    assert emitted == [NO_FACE_TEXT]


def test_two_faces_listed_in_detection_order() -> None:
    agg, emitted = _mk()
    agg.on_result(_faces(MaskStatus.NO_MASK, MaskStatus.MASK), timestamp=1.0)
    assert emitted == ["2 face(s): no mask, wearing mask"]


def test_change_inside_window_is_dropped_not_deferred() -> None:
    agg, emitted = _mk(window=0.5)
    agg.on_result([], timestamp=1.0)
    assert agg.on_result(_faces(MaskStatus.MASK), timestamp=1.2) is False
    assert agg.text == NO_FACE_TEXT
    # The dropped value is not replayed when the window closes.
    assert agg.on_result([], timestamp=2.0) is False
    assert emitted == [NO_FACE_TEXT]


def test_change_exactly_at_window_edge_is_emitted() -> None:
    agg, emitted = _mk(window=0.5)
    agg.on_result([], timestamp=1.0)
    assert agg.on_result(_faces(MaskStatus.MASK), timestamp=1.5) is True
    assert emitted == [NO_FACE_TEXT, "1 face(s): wearing mask"]


def test_analysis_error_then_recovery() -> None:
    agg, emitted = _mk(window=0.5)
    agg.on_result(_faces(MaskStatus.MASK), timestamp=1.0)
    agg.on_result(AnalysisFailure("model crashed"), timestamp=2.0)
    agg.on_result(_faces(MaskStatus.MASK), timestamp=3.0)
    assert emitted == [
        "1 face(s): wearing mask",
        ANALYSIS_ERROR_TEXT,
        "1 face(s): wearing mask",
    ]


def test_analysis_error_is_shown_inside_the_window() -> None:
    agg, emitted = _mk(window=0.5)
    agg.on_result(_faces(MaskStatus.MASK), timestamp=1.0)
    assert agg.on_result(AnalysisFailure("boom"), timestamp=1.2) is True
    assert agg.text == ANALYSIS_ERROR_TEXT
    assert agg.status.last_emitted_at == 1.0
    assert emitted == ["1 face(s): wearing mask", ANALYSIS_ERROR_TEXT]


def test_recovery_after_analysis_error_waits_for_the_window() -> None:
    agg, emitted = _mk(window=0.5)
    agg.on_result(_faces(MaskStatus.MASK), timestamp=1.0)
    agg.on_result(AnalysisFailure("boom"), timestamp=1.2)
    assert agg.on_result(_faces(MaskStatus.MASK), timestamp=1.3) is False
    assert agg.text == ANALYSIS_ERROR_TEXT
    assert agg.on_result(_faces(MaskStatus.MASK), timestamp=1.6) is True
    assert emitted[-1] == "1 face(s): wearing mask"


def test_repeated_analysis_errors_emit_once() -> None:
    agg, emitted = _mk(window=0.5)
    agg.on_result([], timestamp=1.0)
    agg.on_result(AnalysisFailure("a"), timestamp=1.1)
    assert agg.on_result(AnalysisFailure("b"), timestamp=1.15) is False
    assert emitted == [NO_FACE_TEXT, ANALYSIS_ERROR_TEXT]


def test_regular_texts_respect_window_when_errors_interleave() -> None:
    agg, _ = _mk(window=0.5)
    regular: list[float] = []
    agg._bus.subscribe(
        StatusChanged,
        lambda ev: regular.append(ev.emitted_at) if ev.text != ANALYSIS_ERROR_TEXT else None,
    )
    outcomes = [[], _faces(MaskStatus.MASK), AnalysisFailure("x"), _faces(MaskStatus.NO_MASK)]
    t = 0.0
    for i in range(40):
        agg.on_result(outcomes[i % len(outcomes)], timestamp=t)
        t += 0.1
    assert all(b - a >= 0.5 - 1e-9 for a, b in zip(regular, regular[1:]))


def test_result_older_than_fence_is_dropped() -> None:
    agg, emitted = _mk()
    agg.fence(2)
    assert agg.on_result([], 1, timestamp=1.0) is False
    assert agg.on_result(AnalysisFailure("late"), 1, timestamp=1.1) is False
    assert agg.text == WAITING_TEXT
    assert agg.on_result([], 2, timestamp=1.2) is True
    assert emitted == [NO_FACE_TEXT]


def test_fence_never_moves_backwards() -> None:
    agg, _ = _mk()
    agg.fence(3)
    agg.fence(1)
    assert agg.on_result([], 2, timestamp=1.0) is False


def test_reset_with_generation_fences_older_results() -> None:
    agg, emitted = _mk()
    agg.on_result([], 1, timestamp=1.0)
    agg.reset(generation=2)
    assert agg.on_result(_faces(MaskStatus.MASK), 1, timestamp=1.1) is False
    assert agg.text == WAITING_TEXT
    assert emitted == [NO_FACE_TEXT, WAITING_TEXT]


def test_at_most_one_emission_per_window() -> None:
    agg, emitted_texts = _mk(window=0.5)
    stamps: list[float] = []
    agg._bus.subscribe(StatusChanged, lambda ev: stamps.append(ev.emitted_at))
    outcomes = [[], _faces(MaskStatus.MASK), _faces(MaskStatus.NO_MASK)]
    t = 0.0
    for i in range(40):
        agg.on_result(outcomes[i % len(outcomes)], timestamp=t)
        t += 0.1
    assert all(b - a >= 0.5 for a, b in zip(stamps, stamps[1:]))
    assert all(a != b for a, b in zip(emitted_texts, emitted_texts[1:]))


def test_reset_publishes_and_next_result_emits_immediately() -> None:
    agg, emitted = _mk(window=0.5)
    agg.on_result([], timestamp=1.0)
    agg.reset()
    assert agg.text == WAITING_TEXT
    assert agg.on_result([], timestamp=1.1) is True
    assert emitted == [NO_FACE_TEXT, WAITING_TEXT, NO_FACE_TEXT]


def test_reset_with_access_denied_text() -> None:
    agg, emitted = _mk()
    agg.reset(ACCESS_DENIED_TEXT)
    assert agg.text == ACCESS_DENIED_TEXT
    assert emitted == [ACCESS_DENIED_TEXT]


def test_uses_injected_clock_when_no_timestamp() -> None:
    t = {"now": 10.0}
    agg = StatusAggregator(EventBus(), debounce_window_s=0.5, clock=lambda: t["now"])
    assert agg.on_result([]) is True
    t["now"] = 10.2
    assert agg.on_result(_faces(MaskStatus.MASK)) is False
    t["now"] = 10.6
    assert agg.on_result(_faces(MaskStatus.MASK)) is True


def test_negative_window_rejected() -> None:
    with pytest.raises(ValueError):
        StatusAggregator(EventBus(), debounce_window_s=-1)
