"""Semantic analysis: call resolution and array-ness propagation.

The compiler runs :meth:`SemanticAnalyzer.analyze` twice. The first pass
binds each call site to a function defined earlier in the source (or the
function being defined); the second pass binds the remaining, forward
references against every definition. Both passes carry array-ness across
calls: an array formal turns the bare variable passed to it into an array,
and an array actual turns the formal into one.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Iterator, Optional

from . import ast_nodes as ast
from .errors import AwkSemanticError, UnresolvedSymbolError
from .ir import Scope

logger = logging.getLogger(__name__)


def iter_nodes(node: ast.Node) -> Iterator[ast.Node]:
    """Pre-order walk over *node* and every node below it."""
    yield node
    for f in dataclasses.fields(node):
        child = getattr(node, f.name)
        if isinstance(child, ast.Node):
            yield from iter_nodes(child)
        elif isinstance(child, list):
            for item in child:
                if isinstance(item, ast.Node):
                    yield from iter_nodes(item)


def iter_calls(tree: ast.AwkSyntaxTree) -> Iterator[tuple[int, ast.FunctionCall]]:
    """Every user-function call site with the index of its top-level item."""
    for index, item in enumerate(tree.items):
        for node in iter_nodes(item):
            if isinstance(node, ast.FunctionCall):
                yield index, node


class SemanticAnalyzer:
    def __init__(self, tree: ast.AwkSyntaxTree):
        self.tree = tree
        self.passes_run = 0
        self._positions: dict[str, int] = {
            item.name: index
            for index, item in enumerate(tree.items)
            if isinstance(item, ast.FunctionDef)
        }
        self._functions: dict[str, ast.FunctionDef] = {f.name: f for f in tree.functions}

    def analyze(self) -> int:
        """Run one resolution pass; returns the number of call sites bound."""
        forward = self.passes_run > 0
        self.passes_run += 1
        bound = 0
        for index, call in iter_calls(self.tree):
            if call.resolution.is_resolved:
                continue
            function = self._lookup(call.name, index, forward)
            if function is not None:
                call.resolution.bind(function)
                bound += 1
        rounds = self._propagate_arrays()
        logger.debug(
            "Semantic pass %d: bound %d call sites, array propagation in %d rounds",
            self.passes_run,
            bound,
            rounds,
        )
        return bound

    def _lookup(self, name: str, index: int, forward: bool) -> Optional[ast.FunctionDef]:
        position = self._positions.get(name)
        if position is None:
            return None
        if not forward and position > index:
            return None
        return self._functions[name]

    def _enclosing(self, index: int) -> Optional[ast.FunctionDef]:
        item = self.tree.items[index]
        return item if isinstance(item, ast.FunctionDef) else None

    def _is_array(self, name: ast.Name, enclosing: Optional[ast.FunctionDef]) -> bool:
        if name.scope == Scope.LOCAL:
            return enclosing is not None and name.name in enclosing.array_params
        return name.scope == Scope.GLOBAL and name.name in self.tree.global_arrays

    def _mark_array(self, name: ast.Name, enclosing: Optional[ast.FunctionDef]) -> bool:
        if self._is_array(name, enclosing):
            return False
        if name.scope == Scope.LOCAL and enclosing is not None:
            enclosing.array_params.add(name.name)
            return True
        if name.scope == Scope.GLOBAL:
            self.tree.global_arrays.add(name.name)
            return True
        return False

    def _propagate_arrays(self) -> int:
        rounds = 0
        changed = True
        while changed:
            changed = False
            rounds += 1
            for index, call in iter_calls(self.tree):
                if not call.resolution.is_resolved:
                    continue
                callee = call.resolution.function
                enclosing = self._enclosing(index)
                for position, arg in enumerate(call.args[: callee.arity]):
                    if not isinstance(arg, ast.Name):
                        continue
                    if callee.is_array_param(position):
                        changed |= self._mark_array(arg, enclosing)
                    elif self._is_array(arg, enclosing):
                        callee.array_params.add(callee.params[position])
                        changed = True
        return rounds

    def verify(self) -> None:
        """Fail on call sites that are still unbound or pass too many arguments."""
        for _, call in iter_calls(self.tree):
            if not call.resolution.is_resolved:
                raise UnresolvedSymbolError(call.name, call.line)
            callee = call.resolution.function
            if len(call.args) > callee.arity:
                raise AwkSemanticError(
                    f"line {call.line}: function '{call.name}' called with "
                    f"{len(call.args)} arguments, accepts {callee.arity}"
                )
