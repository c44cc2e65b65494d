"""Namespace virtualization: the isolation layer.

This subpackage keeps a hosted program's global mutations undoable.  It
provides:

* **Sandbox** -- the lifecycle controller: execute hosted source, then
  tear down and restore the host.
* **VirtualNamespace** / **NamespaceProxy** -- the intercepting
  read/write/existence layer and the reference hosted code sees.
* **RegistrationTracker** -- bookkeeping of listeners and timers created
  through the sandbox.
* **Binding normalizer** -- constructor-vs-plain-callable classification
  and receiver rebinding of host callables.
* **Scoped evaluation** -- compiling and running hosted source with the
  namespace as its global scope.

The core guarantee is:

    After ``clear()``, every binding the hosted program added to the host
    is gone, every binding it overrode holds its original value, and
    every listener and pending timer it registered has been removed.
"""
from __future__ import annotations

from global_sandbox.isolation.namespace import (
    NamespaceProxy,
    VirtualNamespace,
    namespace_of,
)
from global_sandbox.isolation.normalizer import (
    bind_to_receiver,
    classify,
    is_constructor,
    is_host_function,
)
from global_sandbox.isolation.sandbox import Sandbox
from global_sandbox.isolation.scope import (
    GlobalStatementRewriter,
    SandboxGlobals,
    compile_hosted,
    interception_supported,
    run_hosted,
)
from global_sandbox.isolation.tracker import RegistrationTracker

__all__ = [
    # Lifecycle
    "Sandbox",
    # Namespace
    "VirtualNamespace",
    "NamespaceProxy",
    "namespace_of",
    # Registrations
    "RegistrationTracker",
    # Binding normalizer
    "is_constructor",
    "is_host_function",
    "classify",
    "bind_to_receiver",
    # Scoped evaluation
    "compile_hosted",
    "run_hosted",
    "interception_supported",
    "GlobalStatementRewriter",
    "SandboxGlobals",
]
