"""The host side: the shared global environment hosted programs sit on.

* **GlobalEnvironment** -- bindings, listener registry and timer table of
  one host process.
* **ListenerRegistry** / **Event** -- event listener bookkeeping.
* **TimerTable**, **ManualClock**, **AsyncioClock** -- timers and the
  clocks that drive them.
* **native**, **receiver_context** -- invocation context for unbound
  host-native functions.
"""
from __future__ import annotations

from global_sandbox.host.environment import GlobalEnvironment
from global_sandbox.host.events import Event, ListenerRegistry
from global_sandbox.host.natives import (
    current_receiver,
    is_native,
    native,
    receiver_context,
)
from global_sandbox.host.timers import AsyncioClock, ManualClock, TimerTable

__all__ = [
    "GlobalEnvironment",
    "Event",
    "ListenerRegistry",
    "TimerTable",
    "ManualClock",
    "AsyncioClock",
    "native",
    "is_native",
    "current_receiver",
    "receiver_context",
]
