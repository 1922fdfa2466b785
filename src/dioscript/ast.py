"""
Abstract Syntax Tree (AST) node definitions for DioScript.

Nodes are frozen dataclasses and every sequence field is a tuple, so a parsed
``Program`` can be evaluated any number of times (and shared) without being
modified.

Syntax overview:

    @items = ["a", "b"];                      // Assignment
    return div {                              // ElementConstruct
        class: "list",                        // Attribute
        for @item in @items {                 // ForIn
            return li { @item }
        },
        if @items == [] { p { "empty" } },    // If
        string::join(@items, ", "),           // Call
        @items.len(),                         // MethodCall
        @items[0],                            // Index
    };
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Any
from abc import ABC
from .tokens import SourceSpan, TokenType
from .values import Value


# =============================================================================
# Base Classes
# =============================================================================

@dataclass(frozen=True)
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: SourceSpan  # Source location for error reporting

    def accept(self, visitor: "AstVisitor") -> Any:
        """Accept a visitor for traversal."""
        method_name = f"visit_{self.__class__.__name__}"
        method = getattr(visitor, method_name, visitor.generic_visit)
        return method(self)


class AstVisitor(ABC):
    """Base class for AST visitors."""

    def generic_visit(self, node: AstNode) -> Any:
        """Default visit method."""
        raise NotImplementedError(f"No visitor for {node.__class__.__name__}")


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass(frozen=True)
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass(frozen=True)
class Literal(Expression):
    """A literal number, string, boolean or none."""
    value: Value


@dataclass(frozen=True)
class Reference(Expression):
    """A sigil variable reference (e.g., @title)."""
    name: str


@dataclass(frozen=True)
class Assignment(Expression):
    """Bind a variable (e.g., @x = 1). Evaluates to the assigned value."""
    name: str
    value: Expression


@dataclass(frozen=True)
class BinaryOp(Expression):
    """A binary operation (e.g., @a + 1, @x && @y)."""
    left: Expression
    operator: TokenType
    right: Expression


@dataclass(frozen=True)
class UnaryOp(Expression):
    """A unary operation (e.g., !@flag, -@n)."""
    operator: TokenType
    operand: Expression


@dataclass(frozen=True)
class ListLiteral(Expression):
    """A list literal (e.g., [1, 2, 3]).

    Elements are collected: an ``if`` with no matching branch adds nothing
    and a ``for`` adds one item per contributing iteration.
    """
    elements: Tuple[Expression, ...]


@dataclass(frozen=True)
class MapEntry(AstNode):
    """A single "key": value pair of a map literal."""
    key: str
    value: Expression


@dataclass(frozen=True)
class MapLiteral(Expression):
    """A map literal (e.g., {"a": 1, "b": 2})."""
    entries: Tuple[MapEntry, ...]


@dataclass(frozen=True)
class Attribute(AstNode):
    """An element attribute (name: value)."""
    name: str
    value: Expression


@dataclass(frozen=True)
class ElementConstruct(Expression):
    """An element (e.g., a { href: @url, "link" })."""
    tag: str
    attributes: Tuple[Attribute, ...]
    children: Tuple[Expression, ...]


@dataclass(frozen=True)
class Call(Expression):
    """A host function call (e.g., math::abs(@n), print("hi")).

    Unqualified calls use the root module, whose name is the empty string.
    """
    module: str
    function: str
    arguments: Tuple[Expression, ...]

    @property
    def qualified_name(self) -> str:
        return f"{self.module}::{self.function}" if self.module else self.function


@dataclass(frozen=True)
class FunctionRef(Expression):
    """A host function handle without a call (e.g., math::abs)."""
    module: str
    function: str


@dataclass(frozen=True)
class Index(Expression):
    """A subscript (e.g., @items[0], @user["name"], @title[0])."""
    target: Expression
    index: Expression


@dataclass(frozen=True)
class FieldAccess(Expression):
    """An element field (e.g., @card.name, @card.attributes, @card.content)."""
    target: Expression
    field: str


@dataclass(frozen=True)
class MethodCall(Expression):
    """A call dispatched on the receiver's type (e.g., @items.len()).

    ``@x.f(a)`` calls ``f`` in the module named after the type of ``@x``,
    with ``@x`` as the first argument.
    """
    target: Expression
    method: str
    arguments: Tuple[Expression, ...]


@dataclass(frozen=True)
class If(Expression):
    """A conditional.

    Syntax:
        if condition { ... }
        if condition { ... } else { ... }
        if condition { ... } else if other { ... }

    ``else if`` is stored as an else-block whose tail expression is the
    nested ``If``.
    """
    condition: Expression
    then_branch: "Block"
    else_branch: Optional["Block"] = None


@dataclass(frozen=True)
class ForIn(Expression):
    """A loop over a list (e.g., for @i in @items { ... })."""
    variable: str
    iterable: Expression
    body: "Block"


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass(frozen=True)
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass(frozen=True)
class Return(Statement):
    """A return statement."""
    value: Expression


@dataclass(frozen=True)
class ExpressionStatement(Statement):
    """An expression used as a statement; its value is discarded."""
    expression: Expression


@dataclass(frozen=True)
class Block(AstNode):
    """A brace-delimited sequence of statements.

    An expression left without a terminating ';' at the end of the block is
    the block's tail and gives the block its value.
    """
    statements: Tuple[Statement, ...]
    final_expression: Optional[Expression] = None


@dataclass(frozen=True)
class Program(AstNode):
    """A complete script. The top level behaves like a block."""
    body: Block


# =============================================================================
# Visitor Helpers
# =============================================================================

class PrintVisitor(AstVisitor):
    """Debug visitor that formats the AST structure."""

    def __init__(self, indent: int = 0):
        self.indent = indent
        self.lines = []

    def _emit(self, text: str) -> None:
        self.lines.append("  " * self.indent + text)

    def _child(self, node: AstNode) -> None:
        visitor = PrintVisitor(self.indent + 2)
        visitor.generic_visit(node)
        self.lines.extend(visitor.lines)

    def generic_visit(self, node: AstNode) -> None:
        self._emit(f"{node.__class__.__name__}")
        for name, value in node.__dict__.items():
            if name == "span":
                continue
            if isinstance(value, AstNode):
                self._emit(f"  {name}:")
                self._child(value)
            elif isinstance(value, tuple):
                self._emit(f"  {name}: [")
                for item in value:
                    if isinstance(item, AstNode):
                        self._child(item)
                    else:
                        self._emit(f"    {item!r}")
                self._emit("  ]")
            else:
                self._emit(f"  {name}: {value!r}")


def format_ast(node: AstNode) -> str:
    """Return an indented dump of an AST node for debugging."""
    visitor = PrintVisitor()
    visitor.generic_visit(node)
    return "\n".join(visitor.lines)
