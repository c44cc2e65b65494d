"""Shared fixtures for global sandbox conformance tests.

Provides a host environment on a virtual clock and sandboxes in both
modes on top of it.
"""
from __future__ import annotations

import pytest

from global_sandbox.core.config import SandboxOptions
from global_sandbox.host.environment import GlobalEnvironment
from global_sandbox.host.timers import ManualClock
from global_sandbox.isolation.sandbox import Sandbox

HOST_TITLE = "Host"


# ---------------------------------------------------------------------------
# Host fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def host(clock: ManualClock) -> GlobalEnvironment:
    return GlobalEnvironment({"title": HOST_TITLE, "volume": 7}, clock=clock)


# ---------------------------------------------------------------------------
# Sandbox fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def sandbox(host: GlobalEnvironment) -> Sandbox:
    """A single-instance sandbox whose writes are mirrored into the host."""
    return Sandbox(host, SandboxOptions(name="single"))


@pytest.fixture()
def multi_pair(host: GlobalEnvironment) -> tuple[Sandbox, Sandbox]:
    """Two multi-instance sandboxes sharing one host."""
    return (
        Sandbox(host, SandboxOptions(name="a", multi_mode=True)),
        Sandbox(host, SandboxOptions(name="b", multi_mode=True)),
    )
