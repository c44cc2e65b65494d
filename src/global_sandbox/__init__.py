"""Global Sandbox -- undoable global namespaces for hosted programs.

Several independently-authored programs can share one process-wide
global environment without permanently corrupting each other's globals:
each runs inside a :class:`Sandbox` that records what it adds, overrides
and registers, and restores the host on ``clear()``.

Layers
------
0. Core types, errors, config, interfaces (:mod:`global_sandbox.core`)
1. Host global environment (:mod:`global_sandbox.host`)
2. Namespace virtualization (:mod:`global_sandbox.isolation`)
3. Sandbox registry (:mod:`global_sandbox.registry`)
"""
from __future__ import annotations

__version__ = "1.0.0a1"

# ---------------------------------------------------------------------------
# Level 0 -- Core types, errors, config, interfaces
# ---------------------------------------------------------------------------
from global_sandbox.core.config import HostConfig, SandboxOptions
from global_sandbox.core.errors import (
    HostError,
    IllegalInvocation,
    InvalidStateTransition,
    LifecycleError,
    RegistryError,
    SandboxAlreadyRegistered,
    SandboxError,
    SandboxInert,
    SandboxNotFound,
    UnsupportedHostWarning,
)
from global_sandbox.core.interfaces import Clock, SandboxRegistry, TimerHandle
from global_sandbox.core.types import (
    MISSING,
    BindingPolicy,
    RegistrationLedger,
    SandboxKey,
    SandboxState,
    TimerId,
)

# ---------------------------------------------------------------------------
# Level 1 -- Host global environment
# ---------------------------------------------------------------------------
from global_sandbox.host import (
    AsyncioClock,
    Event,
    GlobalEnvironment,
    ManualClock,
)

# ---------------------------------------------------------------------------
# Level 2 -- Namespace virtualization
# ---------------------------------------------------------------------------
from global_sandbox.isolation import (
    NamespaceProxy,
    RegistrationTracker,
    Sandbox,
    VirtualNamespace,
)

# ---------------------------------------------------------------------------
# Level 3 -- Registry
# ---------------------------------------------------------------------------
from global_sandbox.registry import InMemorySandboxRegistry

__all__ = [
    "__version__",
    # Core
    "HostConfig",
    "SandboxOptions",
    "SandboxError",
    "HostError",
    "LifecycleError",
    "RegistryError",
    "IllegalInvocation",
    "SandboxInert",
    "InvalidStateTransition",
    "SandboxAlreadyRegistered",
    "SandboxNotFound",
    "UnsupportedHostWarning",
    "Clock",
    "TimerHandle",
    "SandboxRegistry",
    "MISSING",
    "BindingPolicy",
    "RegistrationLedger",
    "SandboxKey",
    "SandboxState",
    "TimerId",
    # Host
    "GlobalEnvironment",
    "Event",
    "ManualClock",
    "AsyncioClock",
    # Isolation
    "Sandbox",
    "VirtualNamespace",
    "NamespaceProxy",
    "RegistrationTracker",
    # Registry
    "InMemorySandboxRegistry",
]
