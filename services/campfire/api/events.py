"""Named-event registry shared by the Campfire stream client."""

from __future__ import annotations

from typing import Any, Callable, Dict, List

STREAM = "stream"
ERROR = "error"

EVENT_NAMES = frozenset({STREAM, ERROR})

Listener = Callable[..., Any]


class EventEmitter:
    """
    Minimal pub/sub registry keyed by event name.

    Rules:
    - Only the names in EVENT_NAMES can be registered
    - Listeners run synchronously, in registration order
    - Listeners receive the emitter itself as their first argument
    - Listener exceptions are not caught here
    """

    def __init__(self) -> None:
        self._events: Dict[str, List[Listener]] = {}

    def on(self, name: str, callback: Listener) -> Listener:
        if name not in EVENT_NAMES:
            raise ValueError(
                f"Unknown event name: {name!r} (expected one of {sorted(EVENT_NAMES)})"
            )
        if not callable(callback):
            raise TypeError("callback must be callable")

        self._events.setdefault(name, []).append(callback)
        return callback

    def emit(self, name: str, *args: Any) -> "EventEmitter":
        for callback in tuple(self._events.get(name, ())):
            callback(self, *args)
        return self

    def listeners(self, name: str) -> List[Listener]:
        return list(self._events.get(name, ()))
