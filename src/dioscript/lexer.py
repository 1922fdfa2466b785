"""
Lexer for DioScript.

Converts source text into a list of tokens for the parser.
Supports:
- Line comments (//) and nestable block comments (/* */)
- Double-quoted string literals with JSON-style escape sequences
- Number literals (integer, decimal and scientific notation, all floats)
- Sigil variable references (@name)
- ASCII identifiers with inner hyphens (data-id, my-widget)
- Keywords, operators and punctuation

Whitespace, including newlines, is insignificant.
"""

from typing import List, Optional
from .tokens import Token, TokenType, SourceLocation, SourceSpan, KEYWORDS
from .errors import (
    error_unexpected_character,
    error_unterminated_string,
    error_unterminated_comment,
    error_invalid_escape_sequence,
    error_invalid_number_literal,
    error_missing_variable_name,
)


ESCAPE_CHARS = {
    '"': '"',
    '\\': '\\',
    '/': '/',
    'b': '\b',
    'f': '\f',
    'n': '\n',
    'r': '\r',
    't': '\t',
}

# Operators and punctuation, longest first
SYMBOL_TOKENS = [
    ('::', TokenType.DOUBLE_COLON),
    ('==', TokenType.EQ),
    ('!=', TokenType.NE),
    ('<=', TokenType.LE),
    ('>=', TokenType.GE),
    ('&&', TokenType.AND),
    ('||', TokenType.OR),
    ('+', TokenType.PLUS),
    ('-', TokenType.MINUS),
    ('*', TokenType.STAR),
    ('/', TokenType.SLASH),
    ('%', TokenType.PERCENT),
    ('<', TokenType.LT),
    ('>', TokenType.GT),
    ('!', TokenType.BANG),
    ('=', TokenType.ASSIGN),
    ('{', TokenType.LBRACE),
    ('}', TokenType.RBRACE),
    ('(', TokenType.LPAREN),
    (')', TokenType.RPAREN),
    ('[', TokenType.LBRACKET),
    (']', TokenType.RBRACKET),
    (':', TokenType.COLON),
    (';', TokenType.SEMICOLON),
    (',', TokenType.COMMA),
    ('.', TokenType.DOT),
]


def _is_digit(ch: str) -> bool:
    return '0' <= ch <= '9'


def _is_name_start(ch: str) -> bool:
    return ch.isascii() and (ch.isalpha() or ch == '_')


def _is_name_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch == '_')


class Lexer:
    """
    Tokenizer for DioScript.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()

    ``tokenize`` either returns the complete token list (terminated by EOF)
    or raises ``LexError`` at the first problem; no partial stream is
    produced.
    """

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None  # Cached line list

    @property
    def lines(self) -> List[str]:
        """Lazy-load line list for error reporting."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a specific line of source (1-indexed)."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        """Create a span from start to current position."""
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without consuming."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _skip_line_comment(self) -> None:
        """Skip a // comment up to (not including) the newline."""
        while self._peek() != '\n' and not self._is_at_end():
            self._advance()

    def _skip_block_comment(self) -> None:
        """Skip /* ... */ comment, allowing nesting."""
        start = self._location()
        self._advance()  # consume '/'
        self._advance()  # consume '*'
        depth = 1

        while not self._is_at_end() and depth > 0:
            if self._peek() == '/' and self._peek(1) == '*':
                self._advance()
                self._advance()
                depth += 1
            elif self._peek() == '*' and self._peek(1) == '/':
                self._advance()
                self._advance()
                depth -= 1
            else:
                self._advance()

        if depth > 0:
            raise error_unterminated_comment(
                self._span(start),
                self.get_source_line(start.line)
            )

    def _skip_trivia(self) -> None:
        """Skip whitespace and comments."""
        while not self._is_at_end():
            ch = self._peek()
            if ch.isspace():
                self._advance()
            elif ch == '/' and self._peek(1) == '/':
                self._skip_line_comment()
            elif ch == '/' and self._peek(1) == '*':
                self._skip_block_comment()
            else:
                break

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None) -> Token:
        span = self._span(start)
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        return Token(token_type, value, lexeme, span)

    def _scan_string(self) -> Token:
        """Scan a double-quoted string literal."""
        start = self._location()
        self._advance()  # consume opening quote

        chars = []
        while not self._is_at_end() and self._peek() != '"':
            ch = self._peek()
            if ch == '\n':
                raise error_unterminated_string(
                    self._span(start),
                    self.get_source_line(start.line)
                )
            if ch == '\\':
                self._advance()  # consume backslash
                chars.append(self._scan_escape_sequence())
            else:
                chars.append(self._advance())

        if self._is_at_end():
            raise error_unterminated_string(
                self._span(start),
                self.get_source_line(start.line)
            )

        self._advance()  # consume closing quote
        return self._make_token(TokenType.STRING_LITERAL, ''.join(chars), start)

    def _scan_escape_sequence(self) -> str:
        """Parse an escape sequence after backslash."""
        esc_start = self._location()
        if self._is_at_end():
            raise error_invalid_escape_sequence(
                "", self._span(esc_start), self.get_source_line(esc_start.line)
            )

        ch = self._advance()
        if ch in ESCAPE_CHARS:
            return ESCAPE_CHARS[ch]
        if ch == 'u':
            hex_chars = ''.join(self._advance() for _ in range(4))
            if len(hex_chars) == 4 and all(c in '0123456789abcdefABCDEF' for c in hex_chars):
                return chr(int(hex_chars, 16))
            raise error_invalid_escape_sequence(
                f"u{hex_chars.rstrip(chr(0))}", self._span(esc_start),
                self.get_source_line(esc_start.line)
            )
        raise error_invalid_escape_sequence(
            ch, self._span(esc_start), self.get_source_line(esc_start.line)
        )

    def _scan_number(self) -> Token:
        """Scan a numeric literal. All numbers are floats."""
        start = self._location()

        while _is_digit(self._peek()):
            self._advance()

        if self._peek() == '.' and _is_digit(self._peek(1)):
            self._advance()  # consume '.'
            while _is_digit(self._peek()):
                self._advance()

        if self._peek() in ('e', 'E'):
            self._advance()  # consume 'e'
            if self._peek() in ('+', '-'):
                self._advance()
            if not _is_digit(self._peek()):
                lexeme = self.source[start.offset:self.pos]
                raise error_invalid_number_literal(
                    lexeme, self._span(start), self.get_source_line(start.line)
                )
            while _is_digit(self._peek()):
                self._advance()

        # A number running straight into a name (12px) is a typo, not two tokens
        if _is_name_start(self._peek()):
            while _is_name_char(self._peek()):
                self._advance()
            lexeme = self.source[start.offset:self.pos]
            raise error_invalid_number_literal(
                lexeme, self._span(start), self.get_source_line(start.line)
            )

        lexeme = self.source[start.offset:self.pos]
        return self._make_token(TokenType.NUMBER_LITERAL, float(lexeme), start, lexeme)

    def _scan_name(self) -> str:
        """Scan [A-Za-z_][A-Za-z0-9_]* with inner hyphens."""
        begin = self.pos
        while True:
            if _is_name_char(self._peek()):
                self._advance()
            elif self._peek() == '-' and _is_name_char(self._peek(1)) and self.pos > begin:
                self._advance()
            else:
                break
        return self.source[begin:self.pos]

    def _scan_identifier_or_keyword(self) -> Token:
        start = self._location()
        lexeme = self._scan_name()

        if lexeme in ('true', 'false'):
            return self._make_token(TokenType.BOOL_LITERAL, lexeme == 'true', start, lexeme)
        if lexeme in KEYWORDS:
            return self._make_token(KEYWORDS[lexeme], lexeme, start, lexeme)
        return self._make_token(TokenType.IDENTIFIER, lexeme, start, lexeme)

    def _scan_sigil(self) -> Token:
        """Scan an @name variable reference."""
        start = self._location()
        self._advance()  # consume '@'
        if not _is_name_start(self._peek()):
            raise error_missing_variable_name(
                self._span(start), self.get_source_line(start.line)
            )
        begin = self.pos
        while _is_name_char(self._peek()):
            self._advance()
        return self._make_token(TokenType.SIGIL, self.source[begin:self.pos], start)

    def _scan_token(self) -> Token:
        """Scan the next token."""
        self._skip_trivia()

        if self._is_at_end():
            return self._make_token(TokenType.EOF, None, self._location(), "")

        start = self._location()
        ch = self._peek()

        if ch == '"':
            return self._scan_string()
        if _is_digit(ch):
            return self._scan_number()
        if _is_name_start(ch):
            return self._scan_identifier_or_keyword()
        if ch == '@':
            return self._scan_sigil()

        for symbol, token_type in SYMBOL_TOKENS:
            if self.source.startswith(symbol, self.pos):
                for _ in symbol:
                    self._advance()
                return self._make_token(token_type, None, start, symbol)

        self._advance()
        raise error_unexpected_character(
            ch, self._span(start), self.get_source_line(start.line)
        )

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list of tokens."""
        tokens = []
        while True:
            token = self._scan_token()
            tokens.append(token)
            if token.type == TokenType.EOF:
                break
        return tokens


def tokenize(source: str, filename: Optional[str] = None) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages

    Returns:
        List of tokens ending with an EOF token

    Raises:
        LexError: If tokenization fails
    """
    lexer = Lexer(source, filename)
    return lexer.tokenize()
