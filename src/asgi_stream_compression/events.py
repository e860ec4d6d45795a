from __future__ import annotations

from collections import defaultdict
from typing import Any

from asgi_stream_compression.types import Listener


class EventEmitter:
    """
    Minimal synchronous event emitter.
    Listeners run in registration order, on the caller's stack.
    """

    def __init__(self) -> None:
        self._listeners: defaultdict[str, list[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> EventEmitter:
        self._listeners[event].append(listener)
        return self

    def once(self, event: str, listener: Listener) -> EventEmitter:
        def wrapper(*args: Any) -> None:
            self.remove_listener(event, wrapper)
            listener(*args)

        wrapper.listener = listener  # type: ignore[attr-defined]
        return self.on(event, wrapper)

    def remove_listener(self, event: str, listener: Listener) -> EventEmitter:
        listeners = self._listeners.get(event)
        if not listeners:
            return self
        for i, registered in enumerate(listeners):
            if registered is listener or getattr(registered, "listener", None) is listener:
                del listeners[i]
                break
        return self

    def listeners(self, event: str) -> list[Listener]:
        return list(self._listeners.get(event, ()))

    def emit(self, event: str, *args: Any) -> bool:
        """Calls every listener of ``event``. Returns False when there were none."""
        listeners = self._listeners.get(event)
        if not listeners:
            return False
        # copy: listeners may unsubscribe while running
        for listener in list(listeners):
            listener(*args)
        return True
