"""Listener registry of the host global environment."""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Event:
    """An event delivered to listeners by ``dispatch_event``.

    Attributes
    ----------
    type:
        The event name, e.g. ``"resize"``.
    detail:
        Arbitrary payload supplied by the dispatcher.
    """

    type: str
    detail: Any = None


@dataclass(slots=True)
class _Registration:
    handler: Callable[[Event], Any]
    once: bool = False


@dataclass
class ListenerRegistry:
    """Real listener registry, keyed by event name.

    Registering the same handler twice for one event is a no-op, and
    removing a handler that was never registered is silently ignored.
    Handler exceptions propagate out of :meth:`dispatch`; handlers after
    the failing one are not called.
    """

    _listeners: dict[str, list[_Registration]] = field(default_factory=dict)

    def add(
        self,
        event: str,
        handler: Callable[[Event], Any],
        *,
        once: bool = False,
    ) -> None:
        """Register *handler* for *event*."""
        registrations = self._listeners.setdefault(event, [])
        if any(r.handler == handler for r in registrations):
            return
        registrations.append(_Registration(handler, once))

    def remove(self, event: str, handler: Callable[[Event], Any]) -> bool:
        """Unregister *handler*.  Returns ``True`` if it was registered."""
        registrations = self._listeners.get(event, [])
        for index, registration in enumerate(registrations):
            if registration.handler == handler:
                del registrations[index]
                if not registrations:
                    del self._listeners[event]
                return True
        return False

    def dispatch(self, event: Event) -> int:
        """Call every handler registered for ``event.type``.

        Returns the number of handlers invoked.
        """
        registrations = list(self._listeners.get(event.type, ()))
        for registration in registrations:
            if registration.once:
                self.remove(event.type, registration.handler)
            registration.handler(event)
        logger.debug("dispatched %r to %d listener(s)", event.type, len(registrations))
        return len(registrations)

    def listeners(self, event: str) -> tuple[Callable[[Event], Any], ...]:
        """Return the handlers currently registered for *event*."""
        return tuple(r.handler for r in self._listeners.get(event, ()))

    def events(self) -> list[str]:
        """Return the event names that have at least one handler."""
        return list(self._listeners)

    def __len__(self) -> int:
        return sum(len(v) for v in self._listeners.values())
