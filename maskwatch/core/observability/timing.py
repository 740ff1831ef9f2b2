"""Timing helpers for lightweight observability."""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

T = TypeVar("T")


class Stopwatch:
    """Elapsed time of a ``time_block``; readable after the block exits."""

    __slots__ = ("elapsed_ms",)

    def __init__(self) -> None:
        self.elapsed_ms = 0.0


@contextmanager
def time_block(
    name: str, *, logger: logging.Logger | None = None, level: int = logging.DEBUG
) -> Iterator[Stopwatch]:
    log = logger or logging.getLogger(__name__)
    watch = Stopwatch()
    start = time.perf_counter()
    try:
        yield watch
    finally:
        watch.elapsed_ms = (time.perf_counter() - start) * 1000
        log.log(
            level,
            "%s took %.1fms",
            name,
            watch.elapsed_ms,
            extra={"event": "timing", "duration_ms": round(watch.elapsed_ms, 1)},
        )


def timed(name: str, *, level: int = logging.INFO) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator to log execution time of a function."""

    def _decorator(fn: Callable[..., T]) -> Callable[..., T]:
        log = logging.getLogger(fn.__module__)

        @functools.wraps(fn)
        def _wrapped(*args: Any, **kwargs: Any) -> T:
            with time_block(name, logger=log, level=level):
                return fn(*args, **kwargs)

        return _wrapped

    return _decorator
