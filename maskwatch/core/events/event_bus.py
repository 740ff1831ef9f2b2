from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from threading import RLock
from typing import Any, TypeVar, cast
from weakref import WeakMethod

logger = logging.getLogger(__name__)

TEvent = TypeVar("TEvent")
Handler = Callable[[object], None]


@dataclass(frozen=True, slots=True)
class Subscription:
    event_type: type[object]
    handler: Handler


class EventBus:
    """Synchronous in-process event bus for pipeline notifications.

    Handlers run on the publisher's thread: the detection worker for status
    changes, the session worker for lifecycle events. A handler subscribed to a
    base class also receives its subclasses (e.g. ``PipelineEvent``). A failing
    handler is logged and never breaks the publisher.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._subs: defaultdict[type[object], list[Handler]] = defaultdict(list)

    def _add(self, event_type: type[object], handler: Handler) -> Subscription:
        with self._lock:
            self._subs[event_type].append(handler)
        return Subscription(event_type=event_type, handler=handler)

    def subscribe(
        self, event_type: type[TEvent], handler: Callable[[TEvent], None]
    ) -> Subscription:
        return self._add(event_type, cast(Handler, handler))

    def subscribe_weak(
        self, event_type: type[TEvent], handler: Callable[[TEvent], None]
    ) -> Subscription:
        """Hold a bound method weakly; the subscription drops itself once the owner is gone."""

        try:
            ref = WeakMethod(cast(Any, handler))
        except TypeError:
            return self.subscribe(event_type, handler)

        sub: Subscription

        def _call_if_alive(event: object) -> None:
            target = ref()
            if target is None:
                self.unsubscribe(sub)
                return
            target(event)

        sub = self._add(event_type, _call_if_alive)
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            handlers = self._subs.get(subscription.event_type)
            if handlers and subscription.handler in handlers:
                handlers.remove(subscription.handler)

    def subscriber_count(self, event_type: type[object]) -> int:
        with self._lock:
            return len(self._subs.get(event_type, ()))

    def publish(self, event: object) -> None:
        with self._lock:
            handlers = [
                h for cls in type(event).__mro__ for h in self._subs.get(cls, ())
            ]
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Event handler failed",
                    extra={"event": type(event).__name__},
                )

    def clear(self) -> None:
        with self._lock:
            self._subs.clear()
