"""Event listener registry shared by DfuTransport and DfuOrchestrator."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from .models.enums import DfuEvent

_LOGGER = logging.getLogger(__name__)

Listener = Callable[..., None]


class EventEmitter:
    """Minimal synchronous event emitter keyed by DfuEvent.

    Listeners run in registration order inside emit(). Exceptions raised by a
    listener propagate to the emitting code.
    """

    def __init__(self) -> None:
        self._listeners: dict[DfuEvent, list[Listener]] = {}

    def on(self, event: DfuEvent | str, callback: Listener) -> Callable[[], None]:
        """Register callback for event.

        Returns:
            Function that removes the registration
        """
        event = DfuEvent(event)
        self._listeners.setdefault(event, []).append(callback)
        return lambda: self.off(event, callback)

    def off(self, event: DfuEvent | str, callback: Listener) -> None:
        """Remove callback from event (no-op if not registered)."""
        listeners = self._listeners.get(DfuEvent(event), [])
        if callback in listeners:
            listeners.remove(callback)

    def emit(self, event: DfuEvent, *args: Any) -> None:
        _LOGGER.debug("Event %s%s", event.value, args if args else "")
        for callback in list(self._listeners.get(event, [])):
            callback(*args)

    def listener_count(self, event: DfuEvent | str) -> int:
        return len(self._listeners.get(DfuEvent(event), []))
