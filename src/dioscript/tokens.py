"""
Token types for the DioScript lexer.

Token categories follow the error code ranges used in ``errors``:
- E0xx: Lexer errors
- E1xx: Parser errors
- E2xx: Type errors
- E3xx: Name resolution errors
- E4xx: Arity errors
- E5xx: Runtime limit errors
- E6xx: Host function errors
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the DioScript lexer."""

    # --- Literals ---
    NUMBER_LITERAL = auto()     # 42, 3.14, 1e-9
    STRING_LITERAL = auto()     # "hello\n"
    BOOL_LITERAL = auto()       # true, false
    NONE_LITERAL = auto()       # none

    # --- Names ---
    IDENTIFIER = auto()         # div, math, data-id
    SIGIL = auto()              # @name

    # --- Keywords ---
    IF = auto()                 # if
    ELSE = auto()               # else
    FOR = auto()                # for
    IN = auto()                 # in
    RETURN = auto()             # return

    # --- Arithmetic operators ---
    PLUS = auto()               # +
    MINUS = auto()              # -
    STAR = auto()               # *
    SLASH = auto()              # /
    PERCENT = auto()            # %

    # --- Comparison operators ---
    LT = auto()                 # <
    GT = auto()                 # >
    LE = auto()                 # <=
    GE = auto()                 # >=
    EQ = auto()                 # ==
    NE = auto()                 # !=

    # --- Logical operators ---
    AND = auto()                # &&
    OR = auto()                 # ||
    BANG = auto()               # !

    # --- Assignment ---
    ASSIGN = auto()             # =

    # --- Punctuation ---
    LBRACE = auto()             # {
    RBRACE = auto()             # }
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    LBRACKET = auto()           # [
    RBRACKET = auto()           # ]
    COLON = auto()              # :
    DOUBLE_COLON = auto()       # :: (module qualification)
    SEMICOLON = auto()          # ;
    COMMA = auto()              # ,
    DOT = auto()                # . (field access, method calls)

    # --- Special ---
    EOF = auto()                # end of input


class TokenCategory(Enum):
    """Coarse token classes, useful for tooling and error messages."""
    IDENTIFIER = "identifier"
    SIGIL_REFERENCE = "sigil-reference"
    KEYWORD = "keyword"
    OPERATOR = "operator"
    LITERAL = "literal"
    PUNCTUATION = "punctuation"
    END = "end"


_LITERAL_TYPES = frozenset({
    TokenType.NUMBER_LITERAL, TokenType.STRING_LITERAL,
    TokenType.BOOL_LITERAL, TokenType.NONE_LITERAL,
})

_KEYWORD_TYPES = frozenset({
    TokenType.IF, TokenType.ELSE, TokenType.FOR, TokenType.IN, TokenType.RETURN,
})

_PUNCTUATION_TYPES = frozenset({
    TokenType.LBRACE, TokenType.RBRACE, TokenType.LPAREN, TokenType.RPAREN,
    TokenType.LBRACKET, TokenType.RBRACKET, TokenType.COLON,
    TokenType.DOUBLE_COLON, TokenType.SEMICOLON, TokenType.COMMA, TokenType.DOT,
})


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


# Used for errors raised outside any script text (host calls into the registry).
UNKNOWN_SPAN = SourceSpan(SourceLocation(0, 0, 0), SourceLocation(0, 0, 0))


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: Any              # Literal payload or name, None for punctuation
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    @property
    def category(self) -> TokenCategory:
        if self.type in _LITERAL_TYPES:
            return TokenCategory.LITERAL
        if self.type in _KEYWORD_TYPES:
            return TokenCategory.KEYWORD
        if self.type in _PUNCTUATION_TYPES:
            return TokenCategory.PUNCTUATION
        if self.type == TokenType.IDENTIFIER:
            return TokenCategory.IDENTIFIER
        if self.type == TokenType.SIGIL:
            return TokenCategory.SIGIL_REFERENCE
        if self.type == TokenType.EOF:
            return TokenCategory.END
        return TokenCategory.OPERATOR

    def describe(self) -> str:
        """Human-readable form used in 'expected X, found Y' messages."""
        if self.type == TokenType.EOF:
            return "end of input"
        if self.type == TokenType.IDENTIFIER:
            return f"identifier '{self.lexeme}'"
        if self.type == TokenType.SIGIL:
            return f"variable '{self.lexeme}'"
        if self.type == TokenType.STRING_LITERAL:
            return f"string {self.lexeme}"
        if self.type == TokenType.NUMBER_LITERAL:
            return f"number '{self.lexeme}'"
        return f"'{self.lexeme}'"

    def __str__(self) -> str:
        if self.type in (TokenType.NUMBER_LITERAL, TokenType.STRING_LITERAL,
                         TokenType.IDENTIFIER, TokenType.SIGIL):
            return f"{self.type.name}({self.value!r})"
        return self.type.name


# Keyword mapping - maps string to token type
KEYWORDS: dict[str, TokenType] = {
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "for": TokenType.FOR,
    "in": TokenType.IN,
    "return": TokenType.RETURN,

    # Literal keywords
    "true": TokenType.BOOL_LITERAL,
    "false": TokenType.BOOL_LITERAL,
    "none": TokenType.NONE_LITERAL,
}
