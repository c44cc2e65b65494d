"""Tests for the host global environment.

This module covers the host subpackage:

1. **Bindings** -- mapping protocol, identity names, native exposure,
   identity-based equality.
2. **Host-native functions** -- receiver checks, IllegalInvocation,
   receiver context restoration.
3. **Listeners** -- registration, duplicate suppression, removal, once
   handlers, dispatch payloads, handler failures.
4. **Timers** -- ManualClock ordering, TimerTable one-shot and repeating
   timers, shared id space, interval clamping, AsyncioClock.
5. **Dynamic evaluation** -- expressions, statements, natives in eval.
"""
from __future__ import annotations

import asyncio

import pytest

from global_sandbox.core.config import HostConfig
from global_sandbox.core.errors import IllegalInvocation
from global_sandbox.core.types import IDENTITY_NAMES, MISSING
from global_sandbox.host.environment import GlobalEnvironment
from global_sandbox.host.events import Event, ListenerRegistry
from global_sandbox.host.natives import (
    current_receiver,
    is_native,
    receiver_context,
)
from global_sandbox.host.timers import AsyncioClock, ManualClock, TimerTable

# ===================================================================
# Bindings
# ===================================================================


class TestBindings:
    """Test the mapping protocol of GlobalEnvironment."""

    def test_initial_bindings(self) -> None:
        host = GlobalEnvironment({"title": "Host"})
        assert host["title"] == "Host"
        assert "title" in host

    def test_identity_names_resolve_to_host(self) -> None:
        host = GlobalEnvironment()
        for name in IDENTITY_NAMES:
            assert host[name] is host

    def test_natives_are_exposed_unbound(self) -> None:
        host = GlobalEnvironment()
        for name in GlobalEnvironment.NATIVE_FUNCTIONS:
            assert is_native(host[name])

    def test_eval_is_bound_to_host(self) -> None:
        host = GlobalEnvironment()
        assert host["eval"] == host.evaluate
        assert not is_native(host["eval"])

    def test_set_and_delete(self) -> None:
        host = GlobalEnvironment()
        host["counter"] = 1
        assert host["counter"] == 1
        del host["counter"]
        assert "counter" not in host

    def test_missing_name_raises_key_error(self) -> None:
        host = GlobalEnvironment()
        with pytest.raises(KeyError):
            host["nope"]

    def test_pop_missing_with_default(self) -> None:
        host = GlobalEnvironment()
        assert host.pop("nope", None) is None

    def test_user_bindings_override_builtin_ones(self) -> None:
        host = GlobalEnvironment({"top": "custom"})
        assert host["top"] == "custom"

    def test_equality_is_identity(self) -> None:
        a = GlobalEnvironment()
        b = GlobalEnvironment()
        assert a == a
        assert a != b
        assert len({a, b}) == 2

    def test_repr_uses_configured_name(self) -> None:
        host = GlobalEnvironment(config=HostConfig(name="shell"))
        assert "'shell'" in repr(host)


# ===================================================================
# Host-native functions
# ===================================================================


class TestNatives:
    """Test the receiver check of unbound host-native functions."""

    def test_unbound_native_raises_illegal_invocation(self) -> None:
        host = GlobalEnvironment()
        with pytest.raises(IllegalInvocation) as exc_info:
            host["dispatch_event"]("ping")
        assert exc_info.value.code == "GS-E101"
        assert exc_info.value.details["function"] == "dispatch_event"

    def test_native_runs_with_host_receiver(self) -> None:
        host = GlobalEnvironment()
        events: list[Event] = []
        host.add_event_listener("ping", events.append)
        with receiver_context(host):
            assert host["dispatch_event"]("ping") == 1
        assert events[0].type == "ping"

    def test_native_rejects_foreign_receiver(self) -> None:
        host = GlobalEnvironment()
        with receiver_context(object()), pytest.raises(IllegalInvocation):
            host["set_timeout"](lambda: None, 1.0)

    def test_native_uses_current_receiver_not_owner_instance(self) -> None:
        first = GlobalEnvironment()
        second = GlobalEnvironment()
        with receiver_context(second):
            first["set_timeout"](lambda: None, 1.0)
        assert len(second.timers) == 1
        assert len(first.timers) == 0

    def test_receiver_context_is_restored(self) -> None:
        host = GlobalEnvironment()
        assert current_receiver() is MISSING
        with receiver_context(host):
            assert current_receiver() is host
        assert current_receiver() is MISSING


# ===================================================================
# Listeners
# ===================================================================


class TestListenerRegistry:
    """Test ListenerRegistry and the host listener functions."""

    def test_dispatch_calls_handlers_in_order(self) -> None:
        registry = ListenerRegistry()
        calls: list[str] = []
        registry.add("resize", lambda e: calls.append("a"))
        registry.add("resize", lambda e: calls.append("b"))
        assert registry.dispatch(Event("resize")) == 2
        assert calls == ["a", "b"]

    def test_duplicate_registration_is_ignored(self) -> None:
        registry = ListenerRegistry()
        calls: list[Event] = []
        registry.add("resize", calls.append)
        registry.add("resize", calls.append)
        registry.dispatch(Event("resize"))
        assert len(calls) == 1

    def test_remove(self) -> None:
        registry = ListenerRegistry()
        calls: list[Event] = []
        registry.add("resize", calls.append)
        assert registry.remove("resize", calls.append) is True
        assert registry.dispatch(Event("resize")) == 0
        assert registry.events() == []

    def test_remove_unknown_handler(self) -> None:
        registry = ListenerRegistry()
        assert registry.remove("resize", print) is False

    def test_once_handler_fires_once(self) -> None:
        host = GlobalEnvironment()
        calls: list[Event] = []
        host.add_event_listener("load", calls.append, {"once": True})
        host.dispatch_event("load")
        host.dispatch_event("load")
        assert len(calls) == 1

    def test_capture_flag_is_accepted(self) -> None:
        host = GlobalEnvironment()
        calls: list[Event] = []
        host.add_event_listener("load", calls.append, True)
        host.remove_event_listener("load", calls.append, True)
        assert host.listeners.listeners("load") == ()

    def test_dispatch_payload(self) -> None:
        host = GlobalEnvironment()
        calls: list[Event] = []
        host.add_event_listener("resize", calls.append)
        host.dispatch_event("resize", {"width": 800})
        assert calls == [Event("resize", {"width": 800})]

    def test_handler_exception_propagates(self) -> None:
        host = GlobalEnvironment()

        def broken(event: Event) -> None:
            raise RuntimeError("boom")

        host.add_event_listener("resize", broken)
        with pytest.raises(RuntimeError, match="boom"):
            host.dispatch_event("resize")

    def test_len_counts_all_handlers(self) -> None:
        registry = ListenerRegistry()
        registry.add("a", print)
        registry.add("b", print)
        registry.add("b", repr)
        assert len(registry) == 3
        assert registry.listeners("b") == (print, repr)


# ===================================================================
# Timers
# ===================================================================


class TestManualClock:
    """Test the deterministic virtual clock."""

    def test_advance_runs_due_callbacks_in_order(self) -> None:
        clock = ManualClock()
        calls: list[str] = []
        clock.call_later(2.0, calls.append, "late")
        clock.call_later(1.0, calls.append, "early")
        clock.call_later(5.0, calls.append, "future")
        assert clock.advance(3.0) == 2
        assert calls == ["early", "late"]
        assert clock.time() == 3.0
        assert clock.pending == 1

    def test_ties_run_in_scheduling_order(self) -> None:
        clock = ManualClock()
        calls: list[int] = []
        for i in range(3):
            clock.call_later(1.0, calls.append, i)
        clock.advance(1.0)
        assert calls == [0, 1, 2]

    def test_cancelled_call_does_not_run(self) -> None:
        clock = ManualClock()
        calls: list[str] = []
        handle = clock.call_later(1.0, calls.append, "x")
        handle.cancel()
        assert clock.advance(2.0) == 0
        assert calls == []

    def test_run_pending_runs_zero_delay(self) -> None:
        clock = ManualClock()
        calls: list[str] = []
        clock.call_later(0.0, calls.append, "now")
        assert clock.run_pending() == 1
        assert clock.time() == 0.0

    def test_cannot_move_backwards(self) -> None:
        with pytest.raises(ValueError):
            ManualClock().advance(-1.0)

    def test_callback_scheduled_while_advancing(self) -> None:
        clock = ManualClock()
        calls: list[str] = []
        clock.call_later(1.0, lambda: clock.call_later(1.0, calls.append, "chained"))
        clock.advance(2.5)
        assert calls == ["chained"]


class TestTimerTable:
    """Test one-shot and repeating timers."""

    def test_timeout_fires_once_and_expires(self) -> None:
        clock = ManualClock()
        timers = TimerTable(clock)
        calls: list[str] = []
        timer_id = timers.set_timeout(calls.append, 1.0, "done")
        assert timers.is_active(timer_id)
        clock.advance(5.0)
        assert calls == ["done"]
        assert not timers.is_active(timer_id)

    def test_interval_repeats(self) -> None:
        clock = ManualClock()
        timers = TimerTable(clock)
        calls: list[int] = []
        timers.set_interval(lambda: calls.append(1), 1.0)
        clock.advance(3.5)
        assert len(calls) == 3

    def test_cancel_stops_interval(self) -> None:
        clock = ManualClock()
        timers = TimerTable(clock)
        calls: list[int] = []
        timer_id = timers.set_interval(lambda: calls.append(1), 1.0)
        clock.advance(2.0)
        assert timers.cancel(timer_id) is True
        clock.advance(5.0)
        assert len(calls) == 2

    def test_interval_can_cancel_itself(self) -> None:
        clock = ManualClock()
        timers = TimerTable(clock)
        calls: list[int] = []

        def tick() -> None:
            calls.append(1)
            if len(calls) == 2:
                timers.cancel(timer_id)

        timer_id = timers.set_interval(tick, 1.0)
        clock.advance(10.0)
        assert len(calls) == 2
        assert len(timers) == 0

    def test_ids_are_unique_across_kinds(self) -> None:
        timers = TimerTable(ManualClock())
        first = timers.set_timeout(print, 1.0)
        second = timers.set_interval(print, 1.0)
        assert first != second
        assert timers.active() == {first, second}

    def test_cancel_unknown_id(self) -> None:
        timers = TimerTable(ManualClock())
        assert timers.cancel(999) is False

    def test_interval_delay_is_clamped(self) -> None:
        clock = ManualClock()
        host = GlobalEnvironment(clock=clock, config=HostConfig(min_interval_delay=0.25))
        calls: list[int] = []
        host.set_interval(lambda: calls.append(1), 0.0)
        clock.advance(1.0)
        assert len(calls) == 4

    def test_host_clear_functions_share_id_space(self) -> None:
        clock = ManualClock()
        host = GlobalEnvironment(clock=clock)
        calls: list[str] = []
        timer_id = host.set_timeout(calls.append, 1.0, "x")
        host.clear_interval(timer_id)
        clock.advance(2.0)
        assert calls == []


class TestAsyncioClock:
    """Test timers driven by a real asyncio event loop."""

    @pytest.mark.asyncio
    async def test_timeout_fires_on_running_loop(self) -> None:
        host = GlobalEnvironment(clock=AsyncioClock())
        calls: list[str] = []
        host.set_timeout(calls.append, 0.01, "fired")
        await asyncio.sleep(0.1)
        assert calls == ["fired"]

    @pytest.mark.asyncio
    async def test_cleared_timeout_does_not_fire(self) -> None:
        host = GlobalEnvironment(clock=AsyncioClock())
        calls: list[str] = []
        timer_id = host.set_timeout(calls.append, 0.05, "fired")
        host.clear_timeout(timer_id)
        await asyncio.sleep(0.1)
        assert calls == []

    @pytest.mark.asyncio
    async def test_explicit_loop(self) -> None:
        loop = asyncio.get_running_loop()
        clock = AsyncioClock(loop)
        assert clock.loop is loop
        assert clock.time() == pytest.approx(loop.time(), abs=0.5)


# ===================================================================
# Dynamic evaluation
# ===================================================================


class TestEvaluate:
    """Test GlobalEnvironment.evaluate (the host's ``eval``)."""

    def test_expression(self) -> None:
        assert GlobalEnvironment().evaluate("1 + 2") == 3

    def test_names_resolve_against_bindings(self) -> None:
        host = GlobalEnvironment({"x": 2})
        assert host.evaluate("x * 10") == 20

    def test_builtins_are_available(self) -> None:
        assert GlobalEnvironment().evaluate("len('abc')") == 3

    def test_statement_writes_bindings(self) -> None:
        host = GlobalEnvironment()
        assert host.evaluate("y = 5") is None
        assert host["y"] == 5

    def test_natives_are_callable_inside_eval(self) -> None:
        host = GlobalEnvironment()
        host.add_event_listener("ping", lambda e: None)
        assert host.evaluate("dispatch_event('ping')") == 1

    def test_syntax_error_propagates(self) -> None:
        with pytest.raises(SyntaxError):
            GlobalEnvironment().evaluate("def (")
