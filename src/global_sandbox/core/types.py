"""Global sandbox shared domain types.

This module defines the value types, enums and well-known names shared by
the host environment and the isolation layer.

Key design decisions:
* ``MISSING`` is a dedicated sentinel.  ``None`` is a legitimate binding
  value and must never be confused with "not present".
* Enums use *string* values so they serialise cleanly to JSON.
* ``RegistrationLedger`` is a plain dataclass rather than a Pydantic model
  because it holds arbitrary callables.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Final, NewType

# ---------------------------------------------------------------------------
# Value types (NewType wrappers)
# ---------------------------------------------------------------------------

TimerId = NewType("TimerId", int)
"""Identifier returned by ``set_timeout`` / ``set_interval``."""

SandboxKey = NewType("SandboxKey", str)
"""Identity of a hosted application, used to look up its sandbox."""


# ---------------------------------------------------------------------------
# Sentinel
# ---------------------------------------------------------------------------

class _Missing:
    """Marker for "no binding", distinct from every falsy value."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Final = _Missing()


# ---------------------------------------------------------------------------
# Well-known names
# ---------------------------------------------------------------------------

IDENTITY_NAMES: Final[frozenset[str]] = frozenset(
    {"window", "self", "top", "global_this"}
)
"""Names that resolve to the global namespace itself."""

EXISTENCE_PREDICATE: Final = "has_own_property"
"""Name of the existence check exposed by the global namespace."""

DYNAMIC_EVAL: Final = "eval"
"""Name of the dynamic-code-evaluation primitive, never rebound."""

ADD_EVENT_LISTENER: Final = "add_event_listener"
REMOVE_EVENT_LISTENER: Final = "remove_event_listener"
SET_TIMEOUT: Final = "set_timeout"
SET_INTERVAL: Final = "set_interval"

TRACKED_REGISTRATIONS: Final[tuple[str, ...]] = (
    ADD_EVENT_LISTENER,
    REMOVE_EVENT_LISTENER,
    SET_TIMEOUT,
    SET_INTERVAL,
)
"""Registration functions hijacked inside every virtual namespace."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class SandboxState(enum.StrEnum):
    """Sandbox lifecycle states.

    Transitions: UNINITIALIZED -> ACTIVE -> INERT (terminal).
    ``DISABLED`` is entered at construction on hosts without interception
    support and is also terminal.
    """

    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    INERT = "inert"
    DISABLED = "disabled"


class BindingPolicy(enum.StrEnum):
    """Explicit classification for a host callable read through a sandbox.

    * **REBIND** -- invoke with the host environment as receiver.
    * **PRESERVE** -- return the callable unmodified (constructor-like).
    """

    REBIND = "rebind"
    PRESERVE = "preserve"


# ---------------------------------------------------------------------------
# Registration ledger
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class RegistrationLedger:
    """Listener and timer registrations made through one sandbox.

    Attributes
    ----------
    listeners:
        Event name -> handlers in registration order.
    timeouts:
        Ids of one-shot timers scheduled through the sandbox.
    intervals:
        Ids of repeating timers scheduled through the sandbox.
    """

    listeners: dict[str, list[Any]] = field(default_factory=dict)
    timeouts: set[TimerId] = field(default_factory=set)
    intervals: set[TimerId] = field(default_factory=set)

    def is_empty(self) -> bool:
        """Return ``True`` when no registration is recorded."""
        return not (
            any(self.listeners.values()) or self.timeouts or self.intervals
        )
