"""Scoped evaluation of hosted source against a virtual namespace.

Hosted source is executed with ``exec`` using two scopes:

* the *local* scope of module-level code is the sandbox's
  :class:`~global_sandbox.isolation.namespace.NamespaceProxy`, so every
  module-level read, write and ``del`` goes through the namespace;
* the *global* scope is a :class:`SandboxGlobals` dictionary whose
  ``__getitem__`` delegates to the proxy, so free names inside functions
  defined by the hosted program resolve through the namespace as well.

``global`` statements are the one path the interpreter writes through
without consulting ``__setitem__``.  Before compiling, the hosted module
is rewritten by :class:`GlobalStatementRewriter` so that names declared
``global`` become item accesses on the proxy (``__sandbox__["name"]``).

Known limitation: free names read directly in a class body (not inside
its methods) bypass the namespace and only see Python's builtins.
"""
from __future__ import annotations

import ast
import builtins
import functools
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from global_sandbox.isolation.namespace import NamespaceProxy

logger = logging.getLogger(__name__)

SANDBOX_REFERENCE = "__sandbox__"
"""Global name under which rewritten code reaches the namespace proxy."""

_SCOPE_NODES = (
    ast.Lambda,
    ast.ListComp,
    ast.SetComp,
    ast.DictComp,
    ast.GeneratorExp,
)


# ---------------------------------------------------------------------------
# Global scope
# ---------------------------------------------------------------------------

class SandboxGlobals(dict):  # type: ignore[type-arg]
    """Global scope for hosted code.

    Only ``__builtins__``, ``__name__`` and the proxy reference are stored
    in the dictionary itself; every other lookup is delegated to the
    namespace proxy.  A ``KeyError`` from the proxy makes the interpreter
    fall back to the builtins.
    """

    def __init__(self, proxy: NamespaceProxy, *, module_name: str = "__sandbox__") -> None:
        super().__init__(
            __builtins__=builtins,
            __name__=module_name,
            **{SANDBOX_REFERENCE: proxy},
        )
        self._proxy = proxy

    def __getitem__(self, name: str) -> Any:
        if dict.__contains__(self, name):
            return dict.__getitem__(self, name)
        return self._proxy[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self._proxy[name] = value


# ---------------------------------------------------------------------------
# Rewriting of ``global`` statements
# ---------------------------------------------------------------------------

def _declared_globals(body: list[ast.stmt]) -> frozenset[str]:
    """Collect names declared ``global`` directly in *body*'s scope."""
    names: set[str] = set()
    pending: list[ast.AST] = list(body)
    while pending:
        node = pending.pop()
        if isinstance(node, ast.Global):
            names.update(node.names)
            continue
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef, *_SCOPE_NODES)):
            continue
        pending.extend(ast.iter_child_nodes(node))
    return frozenset(names)


def _reference(name: str, ctx: ast.expr_context) -> ast.Subscript:
    return ast.Subscript(
        value=ast.Name(id=SANDBOX_REFERENCE, ctx=ast.Load()),
        slice=ast.Constant(value=name),
        ctx=ctx,
    )


def _export(name: str) -> ast.Assign:
    """``__sandbox__["name"] = name``"""
    return ast.Assign(
        targets=[_reference(name, ast.Store())],
        value=ast.Name(id=name, ctx=ast.Load()),
    )


class GlobalStatementRewriter(ast.NodeTransformer):
    """Route names declared ``global`` through the sandbox reference.

    Within a scope that declares ``global x``:

    * ``x`` loads, stores and deletes become ``__sandbox__["x"]``;
    * ``def x``, ``class x``, ``import x`` and ``except ... as x`` keep
      their local binding and are followed by an export to the sandbox;
    * the ``global`` statement itself becomes ``pass``.

    Lambdas and comprehensions open a fresh scope with no declarations,
    so their own variables are left alone.
    """

    def __init__(self) -> None:
        self._scopes: list[frozenset[str]] = [frozenset()]

    @property
    def _current(self) -> frozenset[str]:
        return self._scopes[-1]

    # Scopes ---------------------------------------------------------------

    def visit_Module(self, node: ast.Module) -> ast.Module:
        self._scopes = [_declared_globals(node.body)]
        self.generic_visit(node)
        return node

    def _visit_function(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> Any:
        # Decorators, defaults and annotations belong to the enclosing scope.
        node.decorator_list = [self.visit(d) for d in node.decorator_list]
        node.args = self._visit_outer_arguments(node.args)
        if node.returns is not None:
            node.returns = self.visit(node.returns)
        self._scopes.append(_declared_globals(node.body))
        node.body = self._visit_body(node.body)
        self._scopes.pop()
        return self._with_export(node, node.name)

    visit_FunctionDef = _visit_function
    visit_AsyncFunctionDef = _visit_function

    def visit_ClassDef(self, node: ast.ClassDef) -> Any:
        node.decorator_list = [self.visit(d) for d in node.decorator_list]
        node.bases = [self.visit(b) for b in node.bases]
        node.keywords = [self.visit(k) for k in node.keywords]
        self._scopes.append(_declared_globals(node.body))
        node.body = self._visit_body(node.body)
        self._scopes.pop()
        return self._with_export(node, node.name)

    def _visit_nested(self, node: ast.AST) -> ast.AST:
        self._scopes.append(frozenset())
        self.generic_visit(node)
        self._scopes.pop()
        return node

    visit_Lambda = _visit_nested
    visit_ListComp = _visit_nested
    visit_SetComp = _visit_nested
    visit_DictComp = _visit_nested
    visit_GeneratorExp = _visit_nested

    # Bindings -------------------------------------------------------------

    def visit_Global(self, node: ast.Global) -> ast.Pass:
        return ast.copy_location(ast.Pass(), node)

    def visit_Name(self, node: ast.Name) -> ast.expr:
        if node.id in self._current:
            return ast.copy_location(_reference(node.id, node.ctx), node)
        return node

    def visit_NamedExpr(self, node: ast.NamedExpr) -> ast.NamedExpr:
        # An assignment expression target must stay a plain name.
        node.value = self.visit(node.value)
        return node

    def _visit_import(self, node: ast.Import | ast.ImportFrom) -> Any:
        exports = []
        for alias in node.names:
            bound = alias.asname or alias.name.split(".")[0]
            if bound in self._current:
                exports.append(ast.copy_location(_export(bound), node))
        return [node, *exports] if exports else node

    visit_Import = _visit_import
    visit_ImportFrom = _visit_import

    def visit_ExceptHandler(self, node: ast.ExceptHandler) -> ast.ExceptHandler:
        self.generic_visit(node)
        if node.name is not None and node.name in self._current:
            node.body.insert(0, ast.copy_location(_export(node.name), node))
        return node

    # Helpers --------------------------------------------------------------

    def _visit_body(self, body: list[ast.stmt]) -> list[ast.stmt]:
        result: list[ast.stmt] = []
        for statement in body:
            visited = self.visit(statement)
            if isinstance(visited, list):
                result.extend(visited)
            elif visited is not None:
                result.append(visited)
        return result

    def _visit_outer_arguments(self, args: ast.arguments) -> ast.arguments:
        args.defaults = [self.visit(d) for d in args.defaults]
        args.kw_defaults = [d if d is None else self.visit(d) for d in args.kw_defaults]
        for arg in (*args.posonlyargs, *args.args, *args.kwonlyargs, args.vararg, args.kwarg):
            if arg is not None and arg.annotation is not None:
                arg.annotation = self.visit(arg.annotation)
        return args

    def _with_export(self, node: ast.stmt, name: str) -> Any:
        if name in self._current:
            return [node, ast.copy_location(_export(name), node)]
        return node


def compile_hosted(source: str, filename: str = "<sandbox>") -> Any:
    """Parse, rewrite and compile hosted *source* for :func:`run_hosted`.

    Raises
    ------
    SyntaxError
        If *source* does not parse.
    """
    tree = ast.parse(source, filename=filename, mode="exec")
    if any(isinstance(node, ast.Global) for node in ast.walk(tree)):
        tree = GlobalStatementRewriter().visit(tree)
        ast.fix_missing_locations(tree)
    return compile(tree, filename, "exec")


def run_hosted(source: str, proxy: NamespaceProxy, *, filename: str = "<sandbox>") -> None:
    """Execute *source* with *proxy* as its global namespace."""
    code = compile_hosted(source, filename)
    exec(code, SandboxGlobals(proxy), proxy)  # noqa: S102


# ---------------------------------------------------------------------------
# Interception support probe
# ---------------------------------------------------------------------------

class _ProbeGlobals(dict):  # type: ignore[type-arg]
    def __getitem__(self, name: str) -> Any:
        if name == "probe":
            return True
        return dict.__getitem__(self, name)


_PROBE_SOURCE = "def read():\n    return probe\nresult = read()\n"


@functools.cache
def interception_supported() -> bool:
    """Return ``True`` if global lookups honour an overridden ``__getitem__``.

    Probed once per process by running a tiny function whose only free
    name exists solely behind the override.
    """
    scope: dict[str, Any] = {}
    try:
        exec(compile(_PROBE_SOURCE, "<probe>", "exec"), _ProbeGlobals(__builtins__=builtins), scope)  # noqa: S102
    except NameError:
        logger.debug("interception probe failed: globals override ignored")
        return False
    return scope.get("result") is True
