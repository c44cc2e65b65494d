"""Callable binding normalizer.

Decides whether a callable read from the host environment must be
returned unmodified (constructor-like) or rebound to the host as its
receiver (plain callable).

The classification is a best-effort heuristic, not a proof:

1. a class whose own namespace defines more than one member beyond the
   implicit ones is constructor-like;
2. a callable whose declaration is ``def`` followed by an uppercase name
   is constructor-like (naming convention);
3. a callable whose declaration starts with ``class`` is constructor-like;
4. everything else is a plain callable.

A needlessly rebound constructor-like callable would lose its class
identity, so (1)-(3) err towards preserving.  A plain host-native
function that is misclassified as constructor-like stays unbound and
raises :class:`~global_sandbox.core.errors.IllegalInvocation` when the
hosted program calls it.  Callers that know better declare the name in
an explicit table (``SandboxOptions.bindings``), which always wins.
"""
from __future__ import annotations

import functools
import inspect
import logging
import re
import textwrap
from collections.abc import Callable, Mapping
from typing import Any

from global_sandbox.core.types import BindingPolicy
from global_sandbox.host.natives import receiver_context

logger = logging.getLogger(__name__)

_UPPERCASE_DEF = re.compile(r"^(?:async\s+)?def\s+[A-Z]")

# Members every class body gets without declaring them.
_IMPLICIT_CLASS_MEMBERS = frozenset({
    "__module__",
    "__qualname__",
    "__doc__",
    "__dict__",
    "__weakref__",
    "__firstlineno__",
    "__static_attributes__",
})


def declaration_text(fn: Any) -> str:
    """Return the declaration text of *fn* with decorators stripped.

    Falls back to a synthesized ``def name`` / ``class name`` header when
    the source is unavailable (builtins, code compiled from strings).
    """
    try:
        source = textwrap.dedent(inspect.getsource(fn))
    except (OSError, TypeError):
        name = getattr(fn, "__name__", "")
        if not name:
            return ""
        return f"class {name}" if inspect.isclass(fn) else f"def {name}"
    lines = source.lstrip().splitlines()
    while lines and lines[0].lstrip().startswith("@"):
        lines.pop(0)
    return "\n".join(lines).lstrip()


@functools.lru_cache(maxsize=512)
def _cached_declaration_text(fn: Any) -> str:
    return declaration_text(fn)


def _declaration(fn: Any) -> str:
    try:
        return _cached_declaration_text(fn)
    except TypeError:
        # Unhashable callable.
        return declaration_text(fn)


def _own_members(cls: type) -> list[str]:
    return [name for name in vars(cls) if name not in _IMPLICIT_CLASS_MEMBERS]


def is_constructor(fn: Any) -> bool:
    """Return ``True`` if *fn* should be treated as constructor-like."""
    if inspect.isclass(fn) and len(_own_members(fn)) > 1:
        return True
    declaration = _declaration(fn)
    return bool(_UPPERCASE_DEF.match(declaration)) or declaration[:5] == "class"


def is_host_function(value: Any) -> bool:
    """Return ``True`` for callables that must be rebound to the host."""
    return callable(value) and not is_constructor(value)


def classify(
    name: str,
    value: Any,
    table: Mapping[str, BindingPolicy] | None = None,
) -> BindingPolicy:
    """Classify the host value bound to *name*.

    Non-callables are always ``PRESERVE``.  For callables, an entry in
    *table* takes precedence over the heuristic.
    """
    if not callable(value):
        return BindingPolicy.PRESERVE
    if table and name in table:
        return table[name]
    policy = BindingPolicy.REBIND if is_host_function(value) else BindingPolicy.PRESERVE
    logger.debug("classified %r as %s", name, policy.value)
    return policy


def bind_to_receiver(fn: Callable[..., Any], receiver: Any) -> Callable[..., Any]:
    """Return a copy of *fn* that always runs with *receiver* as receiver.

    The wrapper carries the metadata of *fn* and a copy of its attribute
    dictionary, so callables that double as a namespace of related
    helpers keep those helpers reachable.
    """

    def bound(*args: Any, **kwargs: Any) -> Any:
        with receiver_context(receiver):
            return fn(*args, **kwargs)

    functools.update_wrapper(bound, fn)
    return bound
