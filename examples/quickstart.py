#!/usr/bin/env python3
"""Global sandbox quickstart -- mount and unmount a hosted program.

Demonstrates the core workflow:

1. Create a host environment on a virtual clock.
2. Register a sandbox for a hosted application.
3. Execute the application's source inside the sandbox.
4. Let host time pass; the application's listeners and timers run.
5. Evict the sandbox and inspect the restored host.

Run:
    python examples/quickstart.py
"""
from __future__ import annotations

import logging

from global_sandbox import (
    GlobalEnvironment,
    InMemorySandboxRegistry,
    ManualClock,
    SandboxKey,
)

APP_SOURCE = """\
title = 'Weather'
forecasts = []

def refresh():
    forecasts.append(len(forecasts) + 1)

def on_resize(event):
    global layout
    layout = event.detail

set_interval(refresh, 1.0)
add_event_listener('resize', on_resize)
"""


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    # -- Step 1: Create the host ---------------------------------------------
    clock = ManualClock()
    host = GlobalEnvironment({"title": "Portal"}, clock=clock)
    print(f"[1] Host created, title={host['title']!r}")

    # -- Step 2: Register a sandbox ------------------------------------------
    registry = InMemorySandboxRegistry()
    key = SandboxKey("weather")
    sandbox = registry.create(key, host)
    print(f"[2] Sandbox registered: {sandbox!r}")

    # -- Step 3: Execute the application -------------------------------------
    sandbox.execute(APP_SOURCE)
    print(f"[3] Host title is now {host['title']!r}")
    print(f"    added:     {sorted(sandbox.get_added_bindings())}")
    print(f"    overrides: {sandbox.get_original_values()}")

    # -- Step 4: Let the host run --------------------------------------------
    clock.advance(3.0)
    host.dispatch_event("resize", {"width": 640})
    print(f"[4] forecasts={host['forecasts']} layout={host['layout']}")

    # -- Step 5: Unmount -----------------------------------------------------
    registry.evict(key)
    print(f"[5] Host title restored to {host['title']!r}")
    print(f"    leftover bindings: {[n for n in ('forecasts', 'layout') if n in host]}")
    print(f"    listeners: {len(host.listeners)}, timers: {len(host.timers)}")


if __name__ == "__main__":
    main()
