"""Global sandbox configuration.

Defines the validated configuration models consumed by the host
environment and by every sandbox instance.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from global_sandbox.core.types import BindingPolicy


class SandboxOptions(BaseModel):
    """Options for a single :class:`~global_sandbox.isolation.sandbox.Sandbox`.

    All fields carry defaults so that ``SandboxOptions()`` is the
    single-instance, heuristic-only configuration.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    multi_mode: bool = Field(
        default=False,
        description=(
            "When False, writes are mirrored into the host environment so "
            "that code running outside the sandbox observes them.  When "
            "True, writes stay strictly inside the sandbox."
        ),
    )
    name: str | None = Field(
        default=None,
        description="Label used in log messages and error details.",
    )
    bindings: dict[str, BindingPolicy] = Field(
        default_factory=dict,
        description=(
            "Explicit rebind/preserve classification for host callables, "
            "consulted before the constructor heuristic."
        ),
    )


class HostConfig(BaseModel):
    """Configuration for a :class:`~global_sandbox.host.environment.GlobalEnvironment`."""

    model_config = ConfigDict(strict=True, frozen=True)

    name: str = Field(
        default="host",
        description="Label used in log messages.",
    )
    min_interval_delay: float = Field(
        default=0.001,
        gt=0.0,
        description=(
            "Lower bound in seconds applied to repeating timer delays so "
            "that a zero-delay interval cannot starve the host clock."
        ),
    )
