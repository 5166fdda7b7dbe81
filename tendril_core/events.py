"""Observers notified as the container constructs services."""

from __future__ import annotations

import bisect
import itertools
from collections import defaultdict
from typing import Any, Callable

__all__ = ["EventBus", "EventHandler", "SERVICE_LOAD_EVENT"]

# Payload: {"name": <service name>, "instance": <constructed value>}
SERVICE_LOAD_EVENT = "serviceLoad"

EventHandler = Callable[[dict[str, Any]], Any]


class EventBus:
    """Call observers synchronously with the payload of each emitted event.

    Observers with a higher priority run first; equal priorities run in the
    order they were added. An observer that raises stops delivery and the
    error propagates to the emitter.
    """

    def __init__(self) -> None:
        self._observers: defaultdict[str, list[tuple[int, int, EventHandler]]] = defaultdict(list)
        self._counter = itertools.count()

    def on(self, event_name: str, handler: EventHandler, priority: int = 0) -> None:
        bisect.insort(
            self._observers[event_name],
            (-priority, next(self._counter), handler),
            key=lambda entry: entry[:2],
        )

    def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        for _, _, handler in tuple(self._observers.get(event_name, ())):
            handler(payload)
