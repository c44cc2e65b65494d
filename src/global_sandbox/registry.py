"""Explicit sandbox registry.

Maps a hosted application's identity to its :class:`Sandbox` so that an
orchestrator can find the sandbox again when it remounts or unmounts the
application.  The registry is an ordinary object owned by the
orchestrator; nothing in this package keeps one at module level.

In-memory implementation, **not** thread-safe.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from global_sandbox.core.config import SandboxOptions
from global_sandbox.core.errors import SandboxAlreadyRegistered, SandboxNotFound
from global_sandbox.core.types import SandboxKey, SandboxState
from global_sandbox.isolation.sandbox import Sandbox

if TYPE_CHECKING:
    from global_sandbox.host.environment import GlobalEnvironment

logger = logging.getLogger(__name__)


class InMemorySandboxRegistry:
    """Dict-backed :class:`~global_sandbox.core.interfaces.SandboxRegistry`."""

    def __init__(self) -> None:
        self._sandboxes: dict[SandboxKey, Sandbox] = {}

    def create(
        self,
        key: SandboxKey,
        host: GlobalEnvironment,
        options: SandboxOptions | None = None,
    ) -> Sandbox:
        """Create and register a sandbox for *key*.

        When *options* carries no name, the sandbox is named after *key*.

        Raises :class:`SandboxAlreadyRegistered` if *key* is taken.
        """
        if key in self._sandboxes:
            raise SandboxAlreadyRegistered(details={"key": key})
        options = options or SandboxOptions()
        if options.name is None:
            options = options.model_copy(update={"name": key})
        sandbox = Sandbox(host, options)
        self._sandboxes[key] = sandbox
        logger.debug("registered sandbox %r", key)
        return sandbox

    def register(self, key: SandboxKey, sandbox: Sandbox) -> None:
        """Register an existing *sandbox* under *key*."""
        if key in self._sandboxes:
            raise SandboxAlreadyRegistered(details={"key": key})
        self._sandboxes[key] = sandbox

    def get(self, key: SandboxKey) -> Sandbox | None:
        return self._sandboxes.get(key)

    def require(self, key: SandboxKey) -> Sandbox:
        """Return the sandbox for *key*; raises :class:`SandboxNotFound`."""
        sandbox = self._sandboxes.get(key)
        if sandbox is None:
            raise SandboxNotFound(details={"key": key})
        return sandbox

    def get_or_create(
        self,
        key: SandboxKey,
        host: GlobalEnvironment,
        options: SandboxOptions | None = None,
    ) -> Sandbox:
        """Return the registered sandbox for *key*, creating it if needed.

        An existing sandbox that has been cleared is replaced by a fresh
        one, since inert sandboxes cannot execute again.
        """
        sandbox = self._sandboxes.get(key)
        if sandbox is not None and sandbox.state is not SandboxState.INERT:
            return sandbox
        self._sandboxes.pop(key, None)
        return self.create(key, host, options)

    def evict(self, key: SandboxKey, *, clear: bool = True) -> Sandbox:
        """Unregister the sandbox for *key*, clearing it first by default."""
        sandbox = self._sandboxes.pop(key, None)
        if sandbox is None:
            raise SandboxNotFound(details={"key": key})
        if clear:
            sandbox.clear()
        logger.debug("evicted sandbox %r", key)
        return sandbox

    def keys(self) -> list[SandboxKey]:
        return list(self._sandboxes)

    def __contains__(self, key: object) -> bool:
        return key in self._sandboxes

    def __len__(self) -> int:
        return len(self._sandboxes)
