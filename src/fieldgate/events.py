"""Notification events emitted by entities and forms.

Listeners are plain callables receiving one Event. Presentation layers use
them to render state; the engine never depends on what they do, except that
a ``before-commit`` listener returning False cancels a form submit.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

# Entity events
PASSED = "passed"
FAILED = "failed"
SETTLED = "settled"
RESET = "reset"

# Form events
INIT = "init"
BEFORE_VALIDATE = "before-validate"
ALL_VALID = "all-valid"
HAS_ERRORS = "has-errors"
BEFORE_COMMIT = "before-commit"
REBUILT = "rebuilt"
TORN_DOWN = "torn-down"


@dataclass
class Event:
    """A notification.

    Attributes:
        name: Event name (e.g. "failed")
        target: The entity or form that emitted it
        data: Event payload (e.g. {"errors": [...]})
    """

    name: str
    target: Any
    data: dict[str, Any] = field(default_factory=dict)


Listener = Callable[[Event], Any]


class EventEmitter:
    """Minimal synchronous event emitter."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, name: str, listener: Listener) -> Listener:
        """Subscribe a listener. Returns it, so this works as a decorator helper."""
        self._listeners.setdefault(name, []).append(listener)
        return listener

    def off(self, name: str, listener: Listener | None = None) -> None:
        """Unsubscribe one listener, or every listener of an event."""
        if listener is None:
            self._listeners.pop(name, None)
            return
        listeners = self._listeners.get(name, [])
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, name: str, target: Any, **data: Any) -> list[Any]:
        """Call every listener of an event and return their results.

        A listener that raises is logged and skipped.
        """
        event = Event(name, target, data)
        results: list[Any] = []
        for listener in list(self._listeners.get(name, [])):
            try:
                results.append(listener(event))
            except Exception:
                logger.warning("Listener for '%s' raised", name, exc_info=True)
        return results

    def clear(self) -> None:
        self._listeners.clear()
