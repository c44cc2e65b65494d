"""The shared global environment of a host process.

:class:`GlobalEnvironment` is the explicit, passed-by-reference stand-in
for a language-level global namespace.  It owns:

* the real bindings (a mapping of name to value),
* a :class:`~global_sandbox.host.events.ListenerRegistry`,
* a :class:`~global_sandbox.host.timers.TimerTable`.

Like a browser ``window``, the environment exposes its own functions as
bindings.  The registration and dispatch functions are stored *unbound*
(see :mod:`global_sandbox.host.natives`), while ``eval`` is stored bound.
The identity names (``window``, ``self``, ``top``, ``global_this``)
resolve to the environment itself.

Typical usage::

    host = GlobalEnvironment({"title": "Host"})
    host.add_event_listener("resize", on_resize)
    host.set_timeout(tick, 0.5)
    host.clock.advance(1.0)
"""
from __future__ import annotations

import builtins
import logging
from collections.abc import Callable, Iterator, Mapping, MutableMapping
from typing import Any, ClassVar

from global_sandbox.core.config import HostConfig
from global_sandbox.core.interfaces import Clock
from global_sandbox.core.types import DYNAMIC_EVAL, IDENTITY_NAMES, TimerId
from global_sandbox.host.events import Event, ListenerRegistry
from global_sandbox.host.natives import native, receiver_context
from global_sandbox.host.timers import ManualClock, TimerTable

logger = logging.getLogger(__name__)


class GlobalEnvironment(MutableMapping[str, Any]):
    """Process-wide global namespace shared by every hosted program.

    Parameters
    ----------
    bindings:
        Initial user bindings, applied after the built-in ones.
    clock:
        Scheduler for timers.  Defaults to a fresh :class:`ManualClock`.
    config:
        Host configuration.  Defaults to ``HostConfig()``.
    """

    NATIVE_FUNCTIONS: ClassVar[tuple[str, ...]] = (
        "add_event_listener",
        "remove_event_listener",
        "dispatch_event",
        "set_timeout",
        "set_interval",
        "clear_timeout",
        "clear_interval",
    )
    """Methods exposed as unbound host-native bindings."""

    def __init__(
        self,
        bindings: Mapping[str, Any] | None = None,
        *,
        clock: Clock | None = None,
        config: HostConfig | None = None,
    ) -> None:
        self.config = config or HostConfig()
        self.clock: Clock = clock if clock is not None else ManualClock()
        self.listeners = ListenerRegistry()
        self.timers = TimerTable(
            self.clock, min_interval_delay=self.config.min_interval_delay
        )
        self._bindings: dict[str, Any] = {}
        for name in IDENTITY_NAMES:
            self._bindings[name] = self
        for name in self.NATIVE_FUNCTIONS:
            self._bindings[name] = native(getattr(type(self), name), owner=GlobalEnvironment)
        self._bindings[DYNAMIC_EVAL] = self.evaluate
        if bindings:
            self._bindings.update(bindings)

    # ------------------------------------------------------------------
    # Mapping protocol (the bindings)
    # ------------------------------------------------------------------

    def __getitem__(self, name: str) -> Any:
        return self._bindings[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self._bindings[name] = value

    def __delitem__(self, name: str) -> None:
        del self._bindings[name]

    def __contains__(self, name: object) -> bool:
        return name in self._bindings

    def __iter__(self) -> Iterator[str]:
        return iter(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    # The environment contains itself; compare and hash by identity.
    __eq__ = object.__eq__
    __hash__ = object.__hash__

    def __repr__(self) -> str:
        return f"<GlobalEnvironment {self.config.name!r} bindings={len(self._bindings)}>"

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_event_listener(
        self,
        event: str,
        handler: Callable[[Event], Any],
        options: Mapping[str, Any] | bool | None = None,
    ) -> None:
        """Register *handler* for *event*.

        *options* may be a mapping with a ``once`` flag; any other value
        (including the legacy capture boolean) is accepted and ignored.
        """
        once = bool(options.get("once", False)) if isinstance(options, Mapping) else False
        self.listeners.add(event, handler, once=once)

    def remove_event_listener(
        self,
        event: str,
        handler: Callable[[Event], Any],
        options: Mapping[str, Any] | bool | None = None,
    ) -> None:
        """Unregister *handler* from *event*.  Unknown handlers are ignored."""
        self.listeners.remove(event, handler)

    def dispatch_event(self, event: Event | str, detail: Any = None) -> int:
        """Deliver *event* to its listeners; returns how many were called."""
        if not isinstance(event, Event):
            event = Event(event, detail)
        return self.listeners.dispatch(event)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def set_timeout(
        self, callback: Callable[..., Any], delay: float = 0.0, *args: Any
    ) -> TimerId:
        """Schedule ``callback(*args)`` once after *delay* seconds."""
        return self.timers.set_timeout(callback, delay, *args)

    def set_interval(
        self, callback: Callable[..., Any], delay: float = 0.0, *args: Any
    ) -> TimerId:
        """Schedule ``callback(*args)`` every *delay* seconds."""
        return self.timers.set_interval(callback, delay, *args)

    def clear_timeout(self, timer_id: TimerId) -> None:
        self.timers.cancel(timer_id)

    def clear_interval(self, timer_id: TimerId) -> None:
        self.timers.cancel(timer_id)

    # ------------------------------------------------------------------
    # Dynamic evaluation
    # ------------------------------------------------------------------

    def evaluate(self, source: str) -> Any:
        """Evaluate *source* in global scope.

        Free names resolve against the environment's bindings, then
        Python's builtins.  Host-native functions run with the
        environment as receiver.  An expression returns its value; a
        statement block returns ``None``.
        """
        try:
            code = compile(source, "<host-eval>", "eval")
        except SyntaxError:
            code = compile(source, "<host-eval>", "exec")
        with receiver_context(self):
            return eval(code, {"__builtins__": builtins}, self)  # noqa: S307
