"""Invocation context for host-native functions.

Host-native functions are stored in the global environment *unbound*, the
way a browser exposes ``window.alert`` as a plain property.  When called
they look up the current receiver, installed with :func:`receiver_context`,
and refuse to run unless it is an instance of their owning environment
class::

    fn = host["dispatch_event"]
    fn("resize")                      # IllegalInvocation
    with receiver_context(host):
        fn("resize")                  # dispatches on ``host``

Ordinary Python callables never consult the receiver, so running them
inside a receiver context is harmless.
"""
from __future__ import annotations

import contextlib
import functools
from collections.abc import Callable, Iterator
from contextvars import ContextVar
from typing import Any

from global_sandbox.core.errors import IllegalInvocation
from global_sandbox.core.types import MISSING

_receiver: ContextVar[Any] = ContextVar("global_sandbox_receiver", default=MISSING)


def current_receiver() -> Any:
    """Return the receiver installed for the current call, or ``MISSING``."""
    return _receiver.get()


@contextlib.contextmanager
def receiver_context(receiver: Any) -> Iterator[Any]:
    """Install *receiver* as the invocation context for the enclosed calls."""
    token = _receiver.set(receiver)
    try:
        yield receiver
    finally:
        _receiver.reset(token)


def native(func: Callable[..., Any], *, owner: type) -> Callable[..., Any]:
    """Expose the method *func* of *owner* as an unbound host-native function.

    The returned callable passes the current receiver as ``self``.

    Raises
    ------
    IllegalInvocation
        At call time, if the receiver is not an *owner* instance.
    """

    @functools.wraps(func)
    def entry(*args: Any, **kwargs: Any) -> Any:
        receiver = _receiver.get()
        if not isinstance(receiver, owner):
            raise IllegalInvocation(
                f"Illegal invocation of host function '{func.__name__}'",
                details={
                    "function": func.__name__,
                    "receiver": type(receiver).__name__,
                },
            )
        return func(receiver, *args, **kwargs)

    entry.__native__ = True  # type: ignore[attr-defined]
    return entry


def is_native(value: Any) -> bool:
    """Return ``True`` if *value* was produced by :func:`native`."""
    return getattr(value, "__native__", False) is True
