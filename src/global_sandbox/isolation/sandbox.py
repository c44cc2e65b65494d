"""Sandbox lifecycle controller.

:class:`Sandbox` is the public face of the isolation layer.  External
orchestrators interact with it through two calls:

* :meth:`Sandbox.execute` -- run hosted source against the sandbox's
  virtual namespace, optionally with a read-only injection overlay;
* :meth:`Sandbox.clear` -- tear down: remove tracked listeners, cancel
  tracked timers, restore overridden host bindings and delete added ones.

The lifecycle state machine is:

.. code-block:: text

    UNINITIALIZED ──execute──> ACTIVE ──clear──> INERT (terminal)
          \\__________________clear______________/

    DISABLED (terminal, hosts without interception support)

Typical usage::

    host = GlobalEnvironment({"title": "Host"})
    sandbox = Sandbox(host)
    sandbox.execute("title = 'Guest'")
    assert host["title"] == "Guest"
    sandbox.clear()
    assert host["title"] == "Host"
"""
from __future__ import annotations

import functools
import logging
import warnings
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar

from global_sandbox.core.config import SandboxOptions
from global_sandbox.core.errors import (
    InvalidStateTransition,
    SandboxInert,
    UnsupportedHostWarning,
)
from global_sandbox.core.types import RegistrationLedger, SandboxState
from global_sandbox.isolation.namespace import NamespaceProxy, VirtualNamespace
from global_sandbox.isolation.scope import interception_supported, run_hosted

if TYPE_CHECKING:
    from global_sandbox.host.environment import GlobalEnvironment

logger = logging.getLogger(__name__)


@functools.cache
def _report_unsupported_host() -> None:
    message = (
        "namespace interception is not supported by this interpreter; "
        "sandboxes run in pass-through mode"
    )
    logger.warning(message)
    warnings.warn(message, UnsupportedHostWarning, stacklevel=3)


class Sandbox:
    """Isolates one hosted program's mutations to the host environment.

    Parameters
    ----------
    host:
        The shared global environment the hosted program sits on.
    options:
        Sandbox options; ``SandboxOptions()`` when omitted.
    """

    VALID_TRANSITIONS: ClassVar[set[tuple[SandboxState, SandboxState]]] = {
        (SandboxState.UNINITIALIZED, SandboxState.ACTIVE),
        (SandboxState.UNINITIALIZED, SandboxState.INERT),
        (SandboxState.ACTIVE, SandboxState.INERT),
    }
    """The set of permitted ``(from_state, to_state)`` transitions."""

    def __init__(
        self,
        host: GlobalEnvironment,
        options: SandboxOptions | None = None,
    ) -> None:
        self.host = host
        self.options = options or SandboxOptions()
        self._namespace: VirtualNamespace | None = None
        self._added: dict[str, Any] = {}
        self._original_values: dict[str, Any] = {}
        self._ledger = RegistrationLedger()
        if interception_supported():
            self._state = SandboxState.UNINITIALIZED
        else:
            _report_unsupported_host()
            self._state = SandboxState.DISABLED

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> SandboxState:
        return self._state

    @property
    def disabled(self) -> bool:
        return self._state is SandboxState.DISABLED

    @property
    def multi_mode(self) -> bool:
        return self.options.multi_mode

    @property
    def name(self) -> str:
        """Label used in logs; the configured name or an id-based default."""
        return self.options.name or f"sandbox-{id(self):x}"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def execute(self, source: str, injection: Mapping[str, Any] | None = None) -> None:
        """Run hosted *source* with the virtual namespace as its globals.

        The namespace is created on the first call with *injection* as its
        overlay; a later *injection* replaces the overlay.

        Raises
        ------
        SandboxInert
            If the sandbox has already been cleared.
        Exception
            Whatever the hosted source raises (``SyntaxError`` included),
            unchanged, after logging it.
        """
        if self._state is SandboxState.DISABLED:
            return
        if self._state is SandboxState.INERT:
            raise SandboxInert(details={"sandbox": self.name})
        namespace = self._ensure_namespace(injection)
        if self._state is SandboxState.UNINITIALIZED:
            self._transition(SandboxState.ACTIVE)
        try:
            run_hosted(source, namespace.proxy, filename=f"<sandbox:{self.name}>")
        except Exception:
            logger.exception("error occurs when executing script in sandbox %r", self.name)
            raise

    def clear(self) -> None:
        """Tear the sandbox down and restore the host.

        A no-op when disabled or already inert.  A failure while restoring
        propagates; restorations completed before it are kept.
        """
        if self._state in (SandboxState.DISABLED, SandboxState.INERT):
            return
        namespace = self._namespace
        if namespace is not None:
            namespace.tracker.release()
            for name, value in self._original_values.items():
                self.host[name] = value
            for name in self._added:
                self.host.pop(name, None)
        logger.debug(
            "sandbox %r restored %d binding(s), removed %d",
            self.name,
            len(self._original_values),
            len(self._added),
        )
        self._transition(SandboxState.INERT)

    def get_namespace(self) -> NamespaceProxy | None:
        """Return the live namespace proxy, or ``None`` before first execution."""
        return self._namespace.proxy if self._namespace is not None else None

    def get_added_bindings(self) -> dict[str, Any]:
        """Return the live mapping of names added during execution."""
        return self._added

    def get_original_values(self) -> dict[str, Any]:
        """Return the live mapping of host values captured before override."""
        return self._original_values

    def get_ledger(self) -> RegistrationLedger:
        """Return the live registration ledger."""
        return self._ledger

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> Sandbox:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.clear()

    def __repr__(self) -> str:
        return f"<Sandbox {self.name!r} state={self._state.value} multi_mode={self.multi_mode}>"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_namespace(self, injection: Mapping[str, Any] | None) -> VirtualNamespace:
        if self._namespace is None:
            self._namespace = VirtualNamespace(
                self.host,
                multi_mode=self.options.multi_mode,
                overlay=injection,
                bindings=self.options.bindings,
                added=self._added,
                original_values=self._original_values,
                ledger=self._ledger,
            )
        elif injection is not None:
            self._namespace.set_overlay(injection)
        return self._namespace

    def _transition(self, target: SandboxState) -> None:
        if (self._state, target) not in self.VALID_TRANSITIONS:
            raise InvalidStateTransition(
                f"Invalid sandbox transition for {self.name!r}: "
                f"'{self._state.value}' -> '{target.value}' is not permitted.",
                details={
                    "sandbox": self.name,
                    "from_state": self._state.value,
                    "to_state": target.value,
                },
            )
        logger.info("sandbox %r: %s -> %s", self.name, self._state.value, target.value)
        self._state = target
