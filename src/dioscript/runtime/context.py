"""
Execution context for the DioScript interpreter.

Manages the variable scope chain and the evaluation budget (loop iterations
and nesting depth) that guards against runaway scripts.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Any
from contextlib import contextmanager

from ..values import Value, wrap_value
from ..errors import (
    error_undefined_variable,
    error_iteration_limit,
    error_depth_limit,
)
from ..tokens import SourceSpan, UNKNOWN_SPAN


@dataclass
class Scope:
    """
    A single scope containing variable bindings.

    Scopes form a chain via the `parent` field for lexical scoping. A scope
    is only ever referenced by the scope nested inside it and by the
    context currently evaluating in it.
    """
    variables: Dict[str, Value] = field(default_factory=dict)
    parent: Optional["Scope"] = None
    name: str = "anonymous"  # For debugging

    def get(self, name: str) -> Optional[Value]:
        """Look up a variable in this scope or parent scopes."""
        scope = self
        while scope is not None:
            if name in scope.variables:
                return scope.variables[name]
            scope = scope.parent
        return None

    def lookup(self, name: str, span: SourceSpan = UNKNOWN_SPAN,
               source_line: str = None) -> Value:
        """Like ``get`` but raises NameError for an unbound name."""
        value = self.get(name)
        if value is None:
            raise error_undefined_variable(name, span, source_line)
        return value

    def declare(self, name: str, value: Value) -> None:
        """Bind a variable in this scope (shadowing any parent binding)."""
        self.variables[name] = value

    def update(self, name: str, value: Value) -> bool:
        """
        Update an existing variable.

        Searches up the scope chain to find where the variable is defined.
        Returns True if found and updated, False if not found.
        """
        scope = self
        while scope is not None:
            if name in scope.variables:
                scope.variables[name] = value
                return True
            scope = scope.parent
        return False

    def declare_or_assign(self, name: str, value: Value) -> None:
        """Update the nearest existing binding, or create one here."""
        if not self.update(name, value):
            self.declare(name, value)

    def contains(self, name: str) -> bool:
        """Check if a variable exists in this scope or parents."""
        return self.get(name) is not None


@dataclass
class EvaluationBudget:
    """
    Counters shared by one top-level evaluation and every nested evaluation
    it triggers through host functions.
    """
    max_iterations: int
    max_depth: int
    iterations: int = 0
    depth: int = 0

    def tick(self, span: SourceSpan, source_line: str = None) -> None:
        """Count one loop iteration."""
        self.iterations += 1
        if self.iterations > self.max_iterations:
            raise error_iteration_limit(self.max_iterations, span, source_line)

    @contextmanager
    def nested(self, span: SourceSpan, source_line: str = None):
        """Count one level of evaluation nesting for the duration of the block."""
        self.depth += 1
        try:
            if self.depth > self.max_depth:
                raise error_depth_limit(self.max_depth, span, source_line)
            yield
        finally:
            self.depth -= 1


@dataclass
class ExecutionContext:
    """
    The state of one script evaluation.

    Tracks:
    - Variable scopes
    - The shared evaluation budget
    - Source lines for error messages
    """
    budget: EvaluationBudget
    current_scope: Scope = field(default_factory=lambda: Scope(name="root"))
    source_lines: List[str] = field(default_factory=list)

    def lookup(self, name: str, span: SourceSpan) -> Value:
        """Look up a variable in the current scope chain."""
        return self.current_scope.lookup(name, span, self.get_source_line(span.start.line))

    def declare(self, name: str, value: Value) -> None:
        """Define a new variable in the current scope."""
        self.current_scope.declare(name, value)

    def declare_or_assign(self, name: str, value: Value) -> None:
        self.current_scope.declare_or_assign(name, value)

    @contextmanager
    def new_scope(self, name: str = "block"):
        """
        Context manager to create a new nested scope.

        Usage:
            with ctx.new_scope("for-iteration"):
                ctx.declare("item", value)
        """
        old_scope = self.current_scope
        self.current_scope = Scope(parent=old_scope, name=name)
        try:
            yield self.current_scope
        finally:
            self.current_scope = old_scope

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a source line for error messages."""
        if 1 <= line_num <= len(self.source_lines):
            return self.source_lines[line_num - 1]
        return None

    def tick(self, span: SourceSpan) -> None:
        self.budget.tick(span, self.get_source_line(span.start.line))

    def nested(self, span: SourceSpan):
        return self.budget.nested(span, self.get_source_line(span.start.line))


def create_context(
    budget: EvaluationBudget,
    initial_bindings: Optional[Mapping[str, Any]] = None,
    source: str = "",
) -> ExecutionContext:
    """
    Create a new execution context with a fresh root scope.

    Args:
        budget: Iteration/depth counters, possibly shared with an outer evaluation
        initial_bindings: Host-provided variables; plain Python values are wrapped
        source: The source code (for error messages)

    Returns:
        A fresh ExecutionContext with the bindings declared in its root scope
    """
    ctx = ExecutionContext(
        budget=budget,
        source_lines=source.split('\n') if source else [],
    )

    for name, value in (initial_bindings or {}).items():
        ctx.declare(name, wrap_value(value))

    return ctx
