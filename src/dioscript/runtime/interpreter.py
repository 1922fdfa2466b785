"""
Tree-walking interpreter for DioScript.

Evaluates a parsed ``Program`` against a ``ModuleRegistry`` and produces a
single result ``Value``, typically an element tree.

Collecting contexts
-------------------
Element child lists, list literal elements and the top level of a program
collect values instead of computing a single one. Inside them:

- an ``if`` with no matching branch contributes nothing;
- a ``for`` contributes one value per iteration that returns (or ends in a
  tail expression);
- a ``return`` anywhere below short-circuits to the nearest collecting
  context and becomes its contribution.

Each collected expression yields a ``Contribution`` of zero, one or many
values.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from ..values import (
    Value, ValueKind, FunctionHandle, NONE, TRUE, FALSE,
    bool_val, number_val, string_val, list_val, map_val, element_val,
    function_val, wrap_value, format_number,
)
from ..ast import (
    Program, Block, Statement, Return, ExpressionStatement,
    Expression, Literal, Reference, Assignment, BinaryOp, UnaryOp,
    ListLiteral, MapLiteral, ElementConstruct, Call, FunctionRef, Index,
    FieldAccess, MethodCall, If, ForIn,
)
from ..config import RuntimeConfig
from ..errors import (
    Diagnostic,
    DioscriptError,
    error_type_mismatch,
    error_operand_types,
    error_condition_type,
    error_not_iterable,
    error_unknown_field,
    error_depth_limit,
)
from ..parser import parse_source
from ..tokens import SourceSpan, TokenType
from .context import ExecutionContext, EvaluationBudget, create_context
from .modules import ModuleRegistry

logger = logging.getLogger(__name__)

OutputHandler = Callable[[Value], None]

OPERATOR_SYMBOLS = {
    TokenType.PLUS: "+",
    TokenType.MINUS: "-",
    TokenType.STAR: "*",
    TokenType.SLASH: "/",
    TokenType.PERCENT: "%",
    TokenType.LT: "<",
    TokenType.GT: ">",
    TokenType.LE: "<=",
    TokenType.GE: ">=",
    TokenType.EQ: "==",
    TokenType.NE: "!=",
    TokenType.AND: "&&",
    TokenType.OR: "||",
    TokenType.BANG: "!",
}


class ContributionKind(Enum):
    NONE = "none"
    ONE = "one"
    MANY = "many"


@dataclass(frozen=True)
class Contribution:
    """What one expression adds to a collecting context."""
    kind: ContributionKind
    values: Tuple[Value, ...] = ()

    @classmethod
    def none(cls) -> "Contribution":
        return cls(ContributionKind.NONE)

    @classmethod
    def one(cls, value: Value) -> "Contribution":
        return cls(ContributionKind.ONE, (value,))

    @classmethod
    def many(cls, values: List[Value]) -> "Contribution":
        return cls(ContributionKind.MANY, tuple(values))


class _ReturnSignal(Exception):
    """Carries a returned value up to the nearest collecting context."""

    def __init__(self, value: Value):
        super().__init__("return")
        self.value = value


@dataclass
class ExecutionResult:
    """Result of ``compile_and_run``."""
    success: bool
    value: Optional[Value] = None
    diagnostic: Optional[Diagnostic] = None

    @property
    def error_message(self) -> Optional[str]:
        if self.diagnostic is None:
            return None
        return self.diagnostic.format()


def _console_output(value: Value) -> None:
    print(value.display(), end="")


class HostContext:
    """
    Interpreter access for host functions registered with ``pass_context``.

    Lets a host function call function handles, evaluate nested source and
    write to the interpreter's output handler. Nested work shares the
    caller's iteration and depth budget.
    """

    def __init__(self, interpreter: "Interpreter", ctx: ExecutionContext, span: SourceSpan):
        self._interpreter = interpreter
        self._ctx = ctx
        self._span = span

    @property
    def registry(self) -> ModuleRegistry:
        return self._interpreter.registry

    def call(self, handle: Union[Value, FunctionHandle], *args: Any) -> Value:
        """Invoke a function handle with the given arguments."""
        if isinstance(handle, Value):
            if handle.kind != ValueKind.FUNCTION:
                raise error_type_mismatch("function", handle.type_name, self._span,
                                          self._ctx.get_source_line(self._span.start.line))
            handle = handle.data
        values = [wrap_value(arg, self._span) for arg in args]
        return self._interpreter._invoke(handle.module, handle.function, values,
                                         self._span, self._ctx)

    def evaluate(self, source: str, initial_bindings: Optional[Mapping[str, Any]] = None) -> Value:
        """Evaluate nested source in a fresh root scope."""
        return self._interpreter.evaluate(source, initial_bindings)

    def output(self, value: Value) -> None:
        self._interpreter.output(value)


class Interpreter:
    """
    Tree-walking interpreter for DioScript.

    Evaluates AST nodes by dispatching on node type. One interpreter may run
    many programs, one at a time; it keeps no state between top-level calls.

    Usage:
        interpreter = Interpreter(ModuleRegistry.with_stdlib())
        value = interpreter.evaluate('return div { "hello" };')
        html = value.data.to_html()
    """

    def __init__(self, registry: Optional[ModuleRegistry] = None,
                 config: Optional[RuntimeConfig] = None,
                 output: Optional[OutputHandler] = None):
        """
        Initialize the interpreter.

        Args:
            registry: Host functions available to scripts (empty if omitted)
            config: Evaluation limits
            output: Receives values written by the ``print`` and ``println`` host functions
        """
        self.registry = registry if registry is not None else ModuleRegistry()
        self.config = config or RuntimeConfig()
        self.output = output or _console_output
        self._budget: Optional[EvaluationBudget] = None

    def compile(self, source: str, filename: Optional[str] = None) -> Program:
        """Lex and parse source without evaluating it."""
        return parse_source(source, filename, self.config.max_parse_depth)

    def evaluate(self, source: str, initial_bindings: Optional[Mapping[str, Any]] = None,
                 filename: Optional[str] = None) -> Value:
        """
        Compile and run source.

        Lexing and parsing complete before anything is evaluated, so a
        syntax error never leaves partial side effects.
        """
        program = self.compile(source, filename)
        return self.execute(program, initial_bindings, source)

    def execute(self, program: Program, initial_bindings: Optional[Mapping[str, Any]] = None,
                source: str = "") -> Value:
        """
        Run a parsed program.

        Args:
            program: Program from ``compile`` (may be reused)
            initial_bindings: Variables visible to the script, as Values or plain data
            source: Original source code for error messages

        Returns:
            The script result

        Raises:
            DioscriptError: Any failure aborts the whole evaluation
        """
        owner = self._budget is None
        if owner:
            self._budget = EvaluationBudget(self.config.max_iterations, self.config.max_depth)
        try:
            ctx = create_context(self._budget, initial_bindings, source)
            logger.debug("Evaluating program with %d top-level statement(s)",
                         len(program.body.statements))
            result = self._run_program(program, ctx)
        except RecursionError:
            if not owner:
                raise
            raise error_depth_limit(self.config.max_depth, program.span) from None
        finally:
            if owner:
                self._budget = None
        logger.debug("Evaluation finished with a %s result", result.type_name)
        return result

    # =========================================================================
    # Statements and Blocks
    # =========================================================================

    def _run_program(self, program: Program, ctx: ExecutionContext) -> Value:
        body = program.body
        try:
            self._execute_statements(body.statements, ctx)
            if body.final_expression is None:
                return NONE
            return self._evaluate(body.final_expression, ctx)
        except _ReturnSignal as signal:
            return signal.value

    def _execute_statements(self, statements: Tuple[Statement, ...], ctx: ExecutionContext) -> None:
        for stmt in statements:
            if isinstance(stmt, Return):
                raise _ReturnSignal(self._evaluate(stmt.value, ctx))
            elif isinstance(stmt, ExpressionStatement):
                self._evaluate(stmt.expression, ctx)
            else:
                raise RuntimeError(f"Unknown statement type: {type(stmt).__name__}")

    def _run_block(self, block: Block, ctx: ExecutionContext) -> Optional[Value]:
        """Run a block in its own scope; returns the tail value or None."""
        with ctx.new_scope():
            self._execute_statements(block.statements, ctx)
            if block.final_expression is None:
                return None
            return self._evaluate(block.final_expression, ctx)

    def _collect_block(self, block: Block, ctx: ExecutionContext) -> Contribution:
        """Run a block in its own scope inside a collecting context."""
        with ctx.new_scope():
            try:
                self._execute_statements(block.statements, ctx)
                if block.final_expression is None:
                    return Contribution.none()
                return self._collect(block.final_expression, ctx)
            except _ReturnSignal as signal:
                return Contribution.one(signal.value)

    def _collect(self, expr: Expression, ctx: ExecutionContext) -> Contribution:
        """Evaluate an expression in a collecting context."""
        try:
            if isinstance(expr, If):
                with ctx.nested(expr.span):
                    branch = self._select_branch(expr, ctx)
                    if branch is None:
                        return Contribution.none()
                    return self._collect_block(branch, ctx)
            elif isinstance(expr, ForIn):
                with ctx.nested(expr.span):
                    values: List[Value] = []
                    for item in self._iterable_items(expr, ctx):
                        ctx.tick(expr.span)
                        with ctx.new_scope("for-iteration"):
                            ctx.declare(expr.variable, item)
                            values.extend(self._collect_block(expr.body, ctx).values)
                    return Contribution.many(values)
            return Contribution.one(self._evaluate(expr, ctx))
        except _ReturnSignal as signal:
            return Contribution.one(signal.value)

    # =========================================================================
    # Expressions
    # =========================================================================

    def _evaluate(self, expr: Expression, ctx: ExecutionContext) -> Value:
        """Evaluate an expression to produce a single Value."""
        with ctx.nested(expr.span):
            if isinstance(expr, Literal):
                return expr.value
            elif isinstance(expr, Reference):
                return ctx.lookup(expr.name, expr.span)
            elif isinstance(expr, Assignment):
                value = self._evaluate(expr.value, ctx)
                ctx.declare_or_assign(expr.name, value)
                return value
            elif isinstance(expr, BinaryOp):
                return self._eval_binary_op(expr, ctx)
            elif isinstance(expr, UnaryOp):
                return self._eval_unary_op(expr, ctx)
            elif isinstance(expr, ListLiteral):
                return self._eval_list_literal(expr, ctx)
            elif isinstance(expr, MapLiteral):
                return self._eval_map_literal(expr, ctx)
            elif isinstance(expr, ElementConstruct):
                return self._eval_element(expr, ctx)
            elif isinstance(expr, Call):
                args = [self._evaluate(arg, ctx) for arg in expr.arguments]
                return self._invoke(expr.module, expr.function, args, expr.span, ctx)
            elif isinstance(expr, FunctionRef):
                self.registry.resolve(expr.module, expr.function, expr.span,
                                      ctx.get_source_line(expr.span.start.line))
                return function_val(expr.module, expr.function)
            elif isinstance(expr, Index):
                return self._eval_index(expr, ctx)
            elif isinstance(expr, FieldAccess):
                return self._eval_field(expr, ctx)
            elif isinstance(expr, MethodCall):
                # @x.f(a) calls f in the module named after the type of @x
                receiver = self._evaluate(expr.target, ctx)
                args = [receiver] + [self._evaluate(arg, ctx) for arg in expr.arguments]
                return self._invoke(receiver.type_name, expr.method, args, expr.span, ctx)
            elif isinstance(expr, If):
                return self._eval_if(expr, ctx)
            elif isinstance(expr, ForIn):
                return self._eval_for(expr, ctx)
            else:
                raise RuntimeError(f"Unknown expression type: {type(expr).__name__}")

    def _line(self, ctx: ExecutionContext, span: SourceSpan) -> Optional[str]:
        return ctx.get_source_line(span.start.line)

    def _select_branch(self, expr: If, ctx: ExecutionContext) -> Optional[Block]:
        """Evaluate the condition and pick the branch to run (None if neither)."""
        condition = self._evaluate(expr.condition, ctx)
        if condition.kind != ValueKind.BOOL:
            raise error_condition_type(condition.type_name, expr.condition.span,
                                       self._line(ctx, expr.condition.span))
        return expr.then_branch if condition.data else expr.else_branch

    def _iterable_items(self, expr: ForIn, ctx: ExecutionContext) -> List[Value]:
        iterable = self._evaluate(expr.iterable, ctx)
        if iterable.kind != ValueKind.LIST:
            raise error_not_iterable(iterable.type_name, expr.iterable.span,
                                     self._line(ctx, expr.iterable.span))
        return list(iterable.data)

    def _eval_if(self, expr: If, ctx: ExecutionContext) -> Value:
        """An if in value position: the branch's tail value, or none."""
        branch = self._select_branch(expr, ctx)
        if branch is None:
            return NONE
        value = self._run_block(branch, ctx)
        return NONE if value is None else value

    def _eval_for(self, expr: ForIn, ctx: ExecutionContext) -> Value:
        """A for in value position: a list of per-iteration tail values."""
        results = []
        for item in self._iterable_items(expr, ctx):
            ctx.tick(expr.span)
            with ctx.new_scope("for-iteration"):
                ctx.declare(expr.variable, item)
                value = self._run_block(expr.body, ctx)
            if value is not None:
                results.append(value)
        return list_val(results)

    def _eval_list_literal(self, lst: ListLiteral, ctx: ExecutionContext) -> Value:
        items: List[Value] = []
        for element in lst.elements:
            items.extend(self._collect(element, ctx).values)
        return list_val(items)

    def _eval_map_literal(self, mapping: MapLiteral, ctx: ExecutionContext) -> Value:
        entries: Dict[str, Value] = {}
        for entry in mapping.entries:
            entries[entry.key] = self._evaluate(entry.value, ctx)
        return map_val(entries)

    def _eval_element(self, el: ElementConstruct, ctx: ExecutionContext) -> Value:
        """Attributes are evaluated in written order, then children."""
        attributes: Dict[str, Value] = {}
        for attr in el.attributes:
            attributes[attr.name] = self._evaluate(attr.value, ctx)
        children: List[Value] = []
        for child in el.children:
            children.extend(self._collect(child, ctx).values)
        return element_val(el.tag, attributes, children)

    def _eval_index(self, expr: Index, ctx: ExecutionContext) -> Value:
        """Lists and strings take an integer, maps a string key.

        A position or key that is not there gives none, like ``list::get``.
        """
        target = self._evaluate(expr.target, ctx)
        index = self._evaluate(expr.index, ctx)

        if target.kind == ValueKind.MAP:
            if index.kind != ValueKind.STRING:
                raise error_type_mismatch("string", index.type_name, expr.index.span,
                                          self._line(ctx, expr.index.span))
            return target.data.get(index.data, NONE)

        if target.kind not in (ValueKind.LIST, ValueKind.STRING):
            raise error_type_mismatch("list, map or string", target.type_name,
                                      expr.target.span, self._line(ctx, expr.target.span))
        if (index.kind != ValueKind.NUMBER or not math.isfinite(index.data)
                or index.data != int(index.data)):
            found = format_number(index.data) if index.kind == ValueKind.NUMBER else index.type_name
            raise error_type_mismatch("integer", found, expr.index.span,
                                      self._line(ctx, expr.index.span))
        i = int(index.data)
        if not 0 <= i < len(target.data):
            return NONE
        if target.kind == ValueKind.STRING:
            return string_val(target.data[i])
        return target.data[i]

    def _eval_field(self, expr: FieldAccess, ctx: ExecutionContext) -> Value:
        target = self._evaluate(expr.target, ctx)
        if target.kind != ValueKind.ELEMENT:
            raise error_type_mismatch("element", target.type_name, expr.target.span,
                                      self._line(ctx, expr.target.span))
        element = target.data
        if expr.field == "name":
            return string_val(element.tag)
        if expr.field == "attributes":
            return map_val(element.attributes)
        if expr.field == "content":
            return list_val(element.children)
        raise error_unknown_field(expr.field, expr.span, self._line(ctx, expr.span))

    def _eval_unary_op(self, op: UnaryOp, ctx: ExecutionContext) -> Value:
        operand = self._evaluate(op.operand, ctx)

        if op.operator == TokenType.MINUS:
            if operand.kind != ValueKind.NUMBER:
                raise error_type_mismatch("number", operand.type_name, op.span, self._line(ctx, op.span))
            return number_val(-operand.data)
        elif op.operator == TokenType.BANG:
            if operand.kind != ValueKind.BOOL:
                raise error_type_mismatch("boolean", operand.type_name, op.span, self._line(ctx, op.span))
            return bool_val(not operand.data)
        else:
            raise RuntimeError(f"Unknown unary operator: {op.operator}")

    def _eval_logical(self, op: BinaryOp, ctx: ExecutionContext) -> Value:
        """&& and || with short-circuit; both sides must be booleans."""
        left = self._evaluate(op.left, ctx)
        if left.kind != ValueKind.BOOL:
            raise error_type_mismatch("boolean", left.type_name, op.left.span,
                                      self._line(ctx, op.left.span))
        if op.operator == TokenType.AND and not left.data:
            return FALSE
        if op.operator == TokenType.OR and left.data:
            return TRUE
        right = self._evaluate(op.right, ctx)
        if right.kind != ValueKind.BOOL:
            raise error_type_mismatch("boolean", right.type_name, op.right.span,
                                      self._line(ctx, op.right.span))
        return right

    def _eval_binary_op(self, op: BinaryOp, ctx: ExecutionContext) -> Value:
        if op.operator in (TokenType.AND, TokenType.OR):
            return self._eval_logical(op, ctx)

        left = self._evaluate(op.left, ctx)
        right = self._evaluate(op.right, ctx)

        # Equality is defined for every pair of values
        if op.operator == TokenType.EQ:
            return bool_val(left == right)
        if op.operator == TokenType.NE:
            return bool_val(left != right)

        if (op.operator == TokenType.PLUS
                and left.kind == ValueKind.STRING and right.kind == ValueKind.STRING):
            return string_val(left.data + right.data)

        if left.kind != ValueKind.NUMBER or right.kind != ValueKind.NUMBER:
            raise error_operand_types(OPERATOR_SYMBOLS[op.operator], left.type_name,
                                      right.type_name, op.span, self._line(ctx, op.span))

        a, b = left.data, right.data
        if op.operator == TokenType.PLUS:
            return number_val(a + b)
        elif op.operator == TokenType.MINUS:
            return number_val(a - b)
        elif op.operator == TokenType.STAR:
            return number_val(a * b)
        elif op.operator == TokenType.SLASH:
            return number_val(_divide(a, b))
        elif op.operator == TokenType.PERCENT:
            return number_val(math.nan if b == 0 else math.fmod(a, b))
        elif op.operator == TokenType.LT:
            return bool_val(a < b)
        elif op.operator == TokenType.GT:
            return bool_val(a > b)
        elif op.operator == TokenType.LE:
            return bool_val(a <= b)
        elif op.operator == TokenType.GE:
            return bool_val(a >= b)
        else:
            raise RuntimeError(f"Unknown binary operator: {op.operator}")

    def _invoke(self, module: str, function: str, args: List[Value],
                span: SourceSpan, ctx: ExecutionContext) -> Value:
        """Call a host function through the registry."""
        with ctx.nested(span):
            return self.registry.resolve_and_call(
                module, function, args,
                span=span,
                source_line=self._line(ctx, span),
                context=HostContext(self, ctx, span),
            )


def _divide(a: float, b: float) -> float:
    """IEEE-style division: x/0 is +-inf and 0/0 is nan."""
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def evaluate(
    source: str,
    registry: Optional[ModuleRegistry] = None,
    initial_bindings: Optional[Mapping[str, Any]] = None,
    config: Optional[RuntimeConfig] = None,
    output: Optional[OutputHandler] = None,
) -> Value:
    """
    Evaluate DioScript source in one call.

        from dioscript import ModuleRegistry, evaluate

        registry = ModuleRegistry.with_stdlib()
        value = evaluate('return p { "Hi, " + @name };', registry, {"name": "Ada"})
        value.data.to_html()   # '<p>Hi, Ada</p>'

    Args:
        source: DioScript source code
        registry: Host functions; a fresh standard registry if omitted
        initial_bindings: Variables visible to the script
        config: Evaluation limits
        output: Receives values written by ``print``

    Returns:
        The script result

    Raises:
        DioscriptError: On any lex, parse or evaluation failure
    """
    if registry is None:
        registry = ModuleRegistry.with_stdlib()
    return Interpreter(registry, config, output).evaluate(source, initial_bindings)


def compile_and_run(
    source: str,
    registry: Optional[ModuleRegistry] = None,
    initial_bindings: Optional[Mapping[str, Any]] = None,
    config: Optional[RuntimeConfig] = None,
    output: Optional[OutputHandler] = None,
) -> ExecutionResult:
    """
    Like ``evaluate`` but reports failure in the result instead of raising.

        result = compile_and_run(source)
        if result.success:
            tree = result.value
        else:
            print(result.error_message)
    """
    try:
        value = evaluate(source, registry, initial_bindings, config, output)
    except DioscriptError as e:
        return ExecutionResult(success=False, diagnostic=e.diagnostic)
    return ExecutionResult(success=True, value=value)
