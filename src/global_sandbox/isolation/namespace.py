"""Virtual namespace: the intercepting layer over the host environment.

A :class:`VirtualNamespace` owns a private container and decides, for
every read, write and existence check a hosted program makes, how it is
resolved against three layers:

1. the container (bindings written inside the sandbox),
2. an optional read-only injection overlay,
3. the host :class:`~global_sandbox.host.environment.GlobalEnvironment`.

Writes are classified as *added* (the host had no such name) or as
*overrides* (the host value is captured once, before the first
overwrite).  In single-instance mode writes are also mirrored into the
host so that code running outside the sandbox sees them.

Hosted code never sees the :class:`VirtualNamespace` itself; it sees
its :class:`NamespaceProxy`, which supports both item and attribute
access and which every identity name (``window``, ``self``, ...)
resolves to.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from global_sandbox.core.types import (
    DYNAMIC_EVAL,
    EXISTENCE_PREDICATE,
    IDENTITY_NAMES,
    MISSING,
    BindingPolicy,
    RegistrationLedger,
)
from global_sandbox.isolation.normalizer import bind_to_receiver, classify
from global_sandbox.isolation.tracker import RegistrationTracker

if TYPE_CHECKING:
    from global_sandbox.host.environment import GlobalEnvironment

logger = logging.getLogger(__name__)


class VirtualNamespace:
    """Per-sandbox substitute for the host's global namespace.

    Parameters
    ----------
    host:
        The shared global environment.
    multi_mode:
        ``False`` mirrors writes into *host*; ``True`` isolates them.
    overlay:
        Read-only injection consulted when a name is not in the container.
    bindings:
        Explicit rebind/preserve table for host callables.
    added, original_values, ledger:
        Bookkeeping structures, normally owned by the
        :class:`~global_sandbox.isolation.sandbox.Sandbox`.  Fresh ones
        are created when omitted.
    """

    def __init__(
        self,
        host: GlobalEnvironment,
        *,
        multi_mode: bool = False,
        overlay: Mapping[str, Any] | None = None,
        bindings: Mapping[str, BindingPolicy] | None = None,
        added: dict[str, Any] | None = None,
        original_values: dict[str, Any] | None = None,
        ledger: RegistrationLedger | None = None,
    ) -> None:
        self.host = host
        self.multi_mode = multi_mode
        self.container: dict[str, Any] = {}
        self.added: dict[str, Any] = added if added is not None else {}
        self.original_values: dict[str, Any] = (
            original_values if original_values is not None else {}
        )
        self.overlay: Mapping[str, Any] = MappingProxyType(dict(overlay or {}))
        self.bindings: Mapping[str, BindingPolicy] = dict(bindings or {})
        self.tracker = RegistrationTracker(host, ledger)
        self.container.update(self.tracker.hijacked())
        self.proxy = NamespaceProxy(self)

    @property
    def ledger(self) -> RegistrationLedger:
        return self.tracker.ledger

    def set_overlay(self, overlay: Mapping[str, Any] | None) -> None:
        """Replace the injection overlay."""
        self.overlay = MappingProxyType(dict(overlay or {}))

    # ------------------------------------------------------------------
    # Write / Read / Has
    # ------------------------------------------------------------------

    def write(self, name: str, value: Any) -> bool:
        """Bind *name* to *value* inside the sandbox.  Always succeeds."""
        # A mirrored added name is on the host too; it stays added.
        if name in self.added or name not in self.host:
            self.added[name] = value
        elif name not in self.original_values:
            logger.debug("capturing host value of %r before first override", name)
            self.original_values[name] = self.host[name]
        if not self.multi_mode:
            self.host[name] = value
        self.container[name] = value
        return True

    def read(self, name: str) -> Any:
        """Resolve *name*.

        Raises
        ------
        KeyError
            If *name* is bound in none of the three layers.
        """
        if name in IDENTITY_NAMES:
            return self.proxy
        if name == EXISTENCE_PREDICATE:
            return self._existence_predicate
        value = self.container.get(name, MISSING)
        if value is not MISSING:
            return value
        injected = self.overlay.get(name)
        if injected:
            return injected
        return self._resolve_host(name)

    def has(self, name: str) -> bool:
        """Return ``True`` if *name* is bound in the container or the host."""
        return name in self.container or name in self.host

    def delete(self, name: str) -> None:
        """Remove *name* from the container.  The host is not touched."""
        del self.container[name]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _existence_predicate(self, name: str) -> bool:
        return self.has(name)

    def _resolve_host(self, name: str) -> Any:
        value = self.host[name]
        if name == DYNAMIC_EVAL:
            return value
        if classify(name, value, self.bindings) is BindingPolicy.REBIND:
            return bind_to_receiver(value, self.host)
        return value


class NamespaceProxy:
    """The sandbox's own reference, as seen by hosted code.

    Item access (``ns["title"]``) and attribute access (``ns.title``) are
    both routed through the owning :class:`VirtualNamespace`, as are
    ``in``, ``del``, iteration and ``len`` (the latter two cover the
    container only).  The proxy is also the mapping hosted module code is
    executed against.
    """

    __slots__ = ("__namespace",)

    def __init__(self, namespace: VirtualNamespace) -> None:
        object.__setattr__(self, "_NamespaceProxy__namespace", namespace)

    # Item protocol --------------------------------------------------------

    def __getitem__(self, name: str) -> Any:
        return self.__namespace.read(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.__namespace.write(name, value)

    def __delitem__(self, name: str) -> None:
        self.__namespace.delete(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.__namespace.has(name)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self.__namespace.container))

    def __len__(self) -> int:
        return len(self.__namespace.container)

    # Attribute protocol ---------------------------------------------------

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__") and name.endswith("__"):
            raise AttributeError(name)
        try:
            return self.__namespace.read(name)
        except KeyError:
            raise AttributeError(name) from None

    def __setattr__(self, name: str, value: Any) -> None:
        self.__namespace.write(name, value)

    def __delattr__(self, name: str) -> None:
        try:
            self.__namespace.delete(name)
        except KeyError:
            raise AttributeError(name) from None

    def __dir__(self) -> list[str]:
        return sorted(set(self.__namespace.container) | set(self.__namespace.host))

    def __repr__(self) -> str:
        mode = "multi" if self.__namespace.multi_mode else "single"
        return f"<NamespaceProxy mode={mode} bindings={len(self.__namespace.container)}>"


def namespace_of(proxy: NamespaceProxy) -> VirtualNamespace:
    """Return the :class:`VirtualNamespace` behind *proxy*."""
    namespace: VirtualNamespace = object.__getattribute__(proxy, "_NamespaceProxy__namespace")
    return namespace

