"""Global sandbox error-code hierarchy.

Every failure the library raises on its own behalf is a concrete subclass
of :class:`SandboxError`.  Exceptions raised by *hosted* code are never
wrapped: they are logged by the sandbox and propagate unchanged.

Hierarchy
---------
::

    SandboxError
    +-- HostError        (GS-E1xx)
    +-- LifecycleError   (GS-E2xx)
    +-- RegistryError    (GS-E3xx)

    UnsupportedHostWarning (RuntimeWarning, never raised)

Usage
-----
Raise concrete subclasses directly::

    raise SandboxNotFound(details={"key": "checkout"})

Catch by category::

    try:
        ...
    except LifecycleError:
        # handles SandboxInert, InvalidStateTransition
        ...
"""
from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class SandboxError(Exception):
    """Base exception for all global sandbox errors.

    Attributes
    ----------
    code : str
        Error code, e.g. ``"GS-E101"``.
    message : str
        Human-readable description.
    details : dict[str, Any]
        Machine-readable context specific to the error instance.
    resolution : str
        Suggested action for the caller.
    """

    code: str = "GS-E000"
    message: str = "Unknown global sandbox error"
    resolution: str = ""

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
        resolution: str | None = None,
    ) -> None:
        self.details: dict[str, Any] = details or {}
        if message is not None:
            self.message = message
        if resolution is not None:
            self.resolution = resolution
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialise the error into a plain ``{"error": {...}}`` mapping."""
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            payload["detail"] = self.details
        if self.resolution:
            payload["resolution"] = self.resolution
        return {"error": payload}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


# ===================================================================
# Category base classes
# ===================================================================

class HostError(SandboxError):
    """GS-E1xx -- Errors raised by the host global environment."""

    code = "GS-E1XX"


class LifecycleError(SandboxError):
    """GS-E2xx -- Sandbox lifecycle violations."""

    code = "GS-E2XX"


class RegistryError(SandboxError):
    """GS-E3xx -- Sandbox registry lookup and registration errors."""

    code = "GS-E3XX"


# ===================================================================
# GS-E1xx  Host Errors
# ===================================================================

class IllegalInvocation(HostError):
    """GS-E101 -- A host-native function was called without the host as receiver.

    Surfaces at call time, never at read time.  Inside a sandbox this is
    the symptom of a plain host function that the binding normalizer
    classified as constructor-like and therefore left unbound.
    """

    code = "GS-E101"
    message = "Illegal invocation"
    resolution = (
        "Call host-native functions through the host environment, or "
        "declare the name as 'rebind' in SandboxOptions.bindings."
    )


# ===================================================================
# GS-E2xx  Lifecycle Errors
# ===================================================================

class SandboxInert(LifecycleError):
    """GS-E201 -- The sandbox has been torn down and cannot execute again."""

    code = "GS-E201"
    message = "Sandbox has been cleared and is inert"
    resolution = "Create a fresh Sandbox for the hosted program."


class InvalidStateTransition(LifecycleError):
    """GS-E202 -- A lifecycle transition outside the permitted set."""

    code = "GS-E202"
    message = "Invalid sandbox state transition"


# ===================================================================
# GS-E3xx  Registry Errors
# ===================================================================

class SandboxAlreadyRegistered(RegistryError):
    """GS-E301 -- A sandbox is already registered under the given key."""

    code = "GS-E301"
    message = "A sandbox is already registered under this key"
    resolution = "Use get_or_create() or evict the existing sandbox first."


class SandboxNotFound(RegistryError):
    """GS-E302 -- No sandbox is registered under the given key."""

    code = "GS-E302"
    message = "No sandbox registered under this key"


# ===================================================================
# Warnings
# ===================================================================

class UnsupportedHostWarning(RuntimeWarning):
    """The interpreter cannot route global lookups through a custom mapping.

    Issued once per process; affected sandboxes degrade to pass-through
    mode where ``execute`` and ``clear`` do nothing.
    """
