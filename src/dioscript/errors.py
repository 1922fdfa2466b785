"""
DioScript exceptions and diagnostics.

Every failure is reported as a ``DioscriptError`` wrapping a ``Diagnostic``
that carries a code, a message and the source position it refers to.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E2xx: Type errors
- E3xx: Name resolution errors
- E4xx: Arity errors
- E5xx: Runtime limit errors
- E6xx: Host function errors

The exception classes deliberately reuse the names ``SyntaxError``,
``NameError`` and ``TypeError``; import them through this module (or the
package) rather than with ``import *``.
"""

from dataclasses import dataclass, field
from typing import Optional, List
from .tokens import SourceSpan


@dataclass
class Diagnostic:
    """A single error message tied to a source span."""
    code: str                       # E001, E101, etc.
    message: str                    # Human-readable message
    span: SourceSpan
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        # Header: location: error[code]: message
        parts.append(f"{self.span.start}: error[{self.code}]: {self.message}")

        # Source line with caret
        if show_source and self.source_line is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            end_col = self.span.end.column if self.span.start.line == self.span.end.line else len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        return {
            "code": self.code,
            "message": self.message,
            "range": {
                "start": {
                    "line": self.span.start.line,
                    "column": self.span.start.column,
                    "offset": self.span.start.offset,
                },
                "end": {
                    "line": self.span.end.line,
                    "column": self.span.end.column,
                    "offset": self.span.end.offset,
                },
            },
            "hints": self.hints,
        }


class DioscriptError(Exception):
    """Base exception for all DioScript errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def code(self) -> str:
        return self.diagnostic.code

    @property
    def span(self) -> SourceSpan:
        return self.diagnostic.span

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexError(DioscriptError):
    """Error during lexical analysis (E0xx)."""
    pass


class SyntaxError(DioscriptError):
    """Error during parsing (E1xx)."""
    pass


class TypeError(DioscriptError):
    """Operation applied to a value of the wrong kind (E2xx)."""
    pass


class NameError(DioscriptError):
    """Unbound variable, unknown module, function or element field (E3xx)."""

    def __init__(self, diagnostic: Diagnostic, name: str):
        super().__init__(diagnostic)
        self.name = name


class ArityError(DioscriptError):
    """Host function called with the wrong number of arguments (E4xx)."""

    def __init__(self, diagnostic: Diagnostic, expected: int, actual: int):
        super().__init__(diagnostic)
        self.expected = expected
        self.actual = actual


class RuntimeLimitError(DioscriptError):
    """Iteration or nesting budget exhausted (E5xx)."""
    pass


class HostError(DioscriptError):
    """A host function raised a non-DioScript exception (E6xx)."""
    pass


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexError:
    """E001: Unexpected character."""
    diag = Diagnostic(
        code="E001",
        message=f"unexpected character '{char}'",
        span=span,
        source_line=source_line,
    )
    return LexError(diag)


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexError:
    """E002: Unterminated string literal."""
    diag = Diagnostic(
        code="E002",
        message="unterminated string literal",
        span=span,
        source_line=source_line,
        hints=["string literals must be closed with '\"' on the same line"],
    )
    return LexError(diag)


def error_unterminated_comment(span: SourceSpan, source_line: str = None) -> LexError:
    """E003: Unterminated block comment."""
    diag = Diagnostic(
        code="E003",
        message="unterminated block comment (expected closing */)",
        span=span,
        source_line=source_line,
    )
    return LexError(diag)


def error_invalid_escape_sequence(seq: str, span: SourceSpan, source_line: str = None) -> LexError:
    """E004: Invalid escape sequence in string."""
    diag = Diagnostic(
        code="E004",
        message=f"invalid escape sequence '\\{seq}'",
        span=span,
        source_line=source_line,
        hints=["valid escape sequences: \\\", \\\\, \\/, \\b, \\f, \\n, \\r, \\t, \\u####"],
    )
    return LexError(diag)


def error_invalid_number_literal(text: str, span: SourceSpan, source_line: str = None) -> LexError:
    """E005: Invalid number literal."""
    diag = Diagnostic(
        code="E005",
        message=f"invalid number literal '{text}'",
        span=span,
        source_line=source_line,
    )
    return LexError(diag)


def error_missing_variable_name(span: SourceSpan, source_line: str = None) -> LexError:
    """E006: '@' not followed by a name."""
    diag = Diagnostic(
        code="E006",
        message="expected variable name after '@'",
        span=span,
        source_line=source_line,
    )
    return LexError(diag)


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> SyntaxError:
    """E101: Unexpected token."""
    diag = Diagnostic(
        code="E101",
        message=f"expected {expected}, found {found}",
        span=span,
        source_line=source_line,
    )
    return SyntaxError(diag)


def error_unexpected_eof(expected: str, span: SourceSpan) -> SyntaxError:
    """E102: Unexpected end of input."""
    diag = Diagnostic(
        code="E102",
        message=f"unexpected end of input, expected {expected}",
        span=span,
    )
    return SyntaxError(diag)


def error_bare_identifier(name: str, span: SourceSpan, source_line: str = None) -> SyntaxError:
    """E103: Identifier used as a value."""
    diag = Diagnostic(
        code="E103",
        message=f"expected '{{', '(' or '::' after identifier '{name}'",
        span=span,
        source_line=source_line,
        hints=[f"variables are referenced with a sigil: @{name}"],
    )
    return SyntaxError(diag)


def error_nesting_too_deep(limit: int, span: SourceSpan, source_line: str = None) -> SyntaxError:
    """E104: Expression nesting exceeds the parser limit."""
    diag = Diagnostic(
        code="E104",
        message=f"expression nested more than {limit} levels deep",
        span=span,
        source_line=source_line,
    )
    return SyntaxError(diag)


# --- Type error codes ---

def error_type_mismatch(expected: str, found: str, span: SourceSpan,
                        source_line: str = None) -> TypeError:
    """E201: Value of the wrong kind."""
    diag = Diagnostic(
        code="E201",
        message=f"type mismatch: expected '{expected}', found '{found}'",
        span=span,
        source_line=source_line,
    )
    return TypeError(diag)


def error_operand_types(operator: str, left: str, right: str, span: SourceSpan,
                        source_line: str = None) -> TypeError:
    """E202: Binary operator applied to unsupported operand kinds."""
    diag = Diagnostic(
        code="E202",
        message=f"unsupported operand types for '{operator}': '{left}' and '{right}'",
        span=span,
        source_line=source_line,
    )
    return TypeError(diag)


def error_condition_type(found: str, span: SourceSpan, source_line: str = None) -> TypeError:
    """E203: Non-boolean condition."""
    diag = Diagnostic(
        code="E203",
        message=f"cannot use '{found}' as a condition",
        span=span,
        source_line=source_line,
        hints=["conditions must be boolean; compare explicitly, e.g. @n != 0"],
    )
    return TypeError(diag)


def error_not_iterable(found: str, span: SourceSpan, source_line: str = None) -> TypeError:
    """E204: 'for' over a non-list value."""
    diag = Diagnostic(
        code="E204",
        message=f"cannot iterate over '{found}', expected 'list'",
        span=span,
        source_line=source_line,
    )
    return TypeError(diag)


def error_unconvertible_value(python_type: str, span: SourceSpan) -> TypeError:
    """E205: Host value with no DioScript equivalent."""
    diag = Diagnostic(
        code="E205",
        message=f"cannot convert Python value of type '{python_type}' to a DioScript value",
        span=span,
    )
    return TypeError(diag)


# --- Name resolution error codes ---

def error_undefined_variable(name: str, span: SourceSpan,
                             source_line: str = None) -> NameError:
    """E301: Undefined variable."""
    diag = Diagnostic(
        code="E301",
        message=f"variable '@{name}' is not defined",
        span=span,
        source_line=source_line,
    )
    return NameError(diag, name)


def error_unknown_module(module: str, span: SourceSpan,
                         source_line: str = None) -> NameError:
    """E302: No module registered under this name."""
    diag = Diagnostic(
        code="E302",
        message=f"unknown module '{module}'",
        span=span,
        source_line=source_line,
    )
    return NameError(diag, module)


def error_unknown_function(qualified_name: str, span: SourceSpan,
                           source_line: str = None) -> NameError:
    """E303: Module has no such function."""
    diag = Diagnostic(
        code="E303",
        message=f"unknown function '{qualified_name}'",
        span=span,
        source_line=source_line,
    )
    return NameError(diag, qualified_name)


def error_unknown_field(field: str, span: SourceSpan,
                        source_line: str = None) -> NameError:
    """E304: Elements only have name, attributes and content."""
    diag = Diagnostic(
        code="E304",
        message=f"element has no field '{field}'",
        span=span,
        source_line=source_line,
        hints=["available fields: name, attributes, content"],
    )
    return NameError(diag, field)


# --- Arity error codes ---

def error_arity_mismatch(qualified_name: str, expected: int, actual: int,
                         span: SourceSpan, source_line: str = None) -> ArityError:
    """E401: Wrong number of arguments."""
    plural = "" if expected == 1 else "s"
    diag = Diagnostic(
        code="E401",
        message=f"'{qualified_name}' takes {expected} argument{plural}, {actual} given",
        span=span,
        source_line=source_line,
    )
    return ArityError(diag, expected, actual)


# --- Runtime limit error codes ---

def error_iteration_limit(limit: int, span: SourceSpan,
                          source_line: str = None) -> RuntimeLimitError:
    """E501: Loop iteration budget exhausted."""
    diag = Diagnostic(
        code="E501",
        message=f"iteration limit of {limit} exceeded",
        span=span,
        source_line=source_line,
    )
    return RuntimeLimitError(diag)


def error_depth_limit(limit: int, span: SourceSpan,
                      source_line: str = None) -> RuntimeLimitError:
    """E502: Evaluation nesting budget exhausted."""
    diag = Diagnostic(
        code="E502",
        message=f"evaluation depth limit of {limit} exceeded",
        span=span,
        source_line=source_line,
        hints=["check for host functions that re-enter the interpreter recursively"],
    )
    return RuntimeLimitError(diag)


# --- Host error codes ---

def error_host_failure(qualified_name: str, exc: Exception, span: SourceSpan,
                       source_line: str = None) -> HostError:
    """E601: Host function raised."""
    diag = Diagnostic(
        code="E601",
        message=f"host function '{qualified_name}' failed: {type(exc).__name__}: {exc}",
        span=span,
        source_line=source_line,
    )
    return HostError(diag)
