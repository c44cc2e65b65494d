"""Global sandbox abstract interfaces.

This module defines the *structural* interfaces (``typing.Protocol``) for
the pluggable collaborators of the library: the clock that drives host
timers and the registry an orchestrator uses to find sandboxes.

Every Protocol class is decorated with ``@runtime_checkable`` so that
``isinstance`` checks work at run-time in addition to static analysis.
"""
from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from global_sandbox.core.types import SandboxKey

if TYPE_CHECKING:
    from global_sandbox.core.config import SandboxOptions
    from global_sandbox.host.environment import GlobalEnvironment
    from global_sandbox.isolation.sandbox import Sandbox


@runtime_checkable
class TimerHandle(Protocol):
    """A scheduled callback that can be cancelled before it runs."""

    def cancel(self) -> None:
        """Prevent the callback from running.  Idempotent."""
        ...


@runtime_checkable
class Clock(Protocol):
    """Time source and scheduler behind the host's timers.

    ``asyncio.AbstractEventLoop`` satisfies this protocol structurally.
    """

    def time(self) -> float:
        """Return the current time in seconds."""
        ...

    def call_later(
        self, delay: float, callback: Callable[..., Any], *args: Any
    ) -> TimerHandle:
        """Run ``callback(*args)`` after *delay* seconds."""
        ...


@runtime_checkable
class SandboxRegistry(Protocol):
    """Lookup of sandboxes by hosted-application identity.

    Owned by the external lifecycle orchestrator.  Implementations are
    not thread-safe; the host is single-threaded.
    """

    def create(
        self,
        key: SandboxKey,
        host: GlobalEnvironment,
        options: SandboxOptions | None = None,
    ) -> Sandbox:
        """Create and register a sandbox.  Raises on duplicate *key*."""
        ...

    def get(self, key: SandboxKey) -> Sandbox | None:
        """Return the sandbox for *key*, or ``None`` if not registered."""
        ...

    def evict(self, key: SandboxKey, *, clear: bool = True) -> Sandbox:
        """Unregister the sandbox for *key*, optionally clearing it first.

        Raises :class:`SandboxNotFound` if *key* is not registered.
        """
        ...

    def keys(self) -> list[SandboxKey]:
        """Return every registered key."""
        ...
