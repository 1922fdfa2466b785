"""
Recursive descent parser for DioScript.

Converts a token list into an immutable ``Program`` AST. Parsing is pure and
stops at the first error.
"""

from contextlib import contextmanager
from typing import List, Optional, Tuple
from .tokens import Token, TokenType, SourceSpan
from .lexer import tokenize
from .ast import (
    # Expressions
    Expression, Literal, Reference, Assignment, BinaryOp, UnaryOp,
    ListLiteral, MapLiteral, MapEntry, ElementConstruct, Attribute,
    Call, FunctionRef, Index, FieldAccess, MethodCall, If, ForIn,
    # Statements
    Statement, Return, ExpressionStatement, Block, Program,
)
from .values import NONE, bool_val, number_val, string_val
from .errors import (
    error_unexpected_token,
    error_unexpected_eof,
    error_bare_identifier,
    error_nesting_too_deep,
)

DEFAULT_MAX_DEPTH = 200


class Parser:
    """
    Recursive descent parser for DioScript.

    Usage:
        parser = Parser(tokens)
        program = parser.parse_program()

    The parser implements standard precedence climbing for expressions:
        Lowest:  = (assignment to a @variable, right-associative)
                 ||
                 &&
                 == !=
                 < > <= >=
                 + -
                 * / %
                 unary (! -)
        Highest: postfix ([index], .field, .method(...))

    Statements are separated by ';'. Constructs ending in a block ('if',
    'for') need no separator, and an expression left unterminated at the
    end of a block becomes that block's tail expression.
    """

    # Operator precedence levels (higher = tighter binding)
    PRECEDENCE = {
        TokenType.OR: 1,
        TokenType.AND: 2,
        TokenType.EQ: 3,
        TokenType.NE: 3,
        TokenType.LT: 4,
        TokenType.GT: 4,
        TokenType.LE: 4,
        TokenType.GE: 4,
        TokenType.PLUS: 5,
        TokenType.MINUS: 5,
        TokenType.STAR: 6,
        TokenType.SLASH: 6,
        TokenType.PERCENT: 6,
    }

    def __init__(self, tokens: List[Token], filename: Optional[str] = None,
                 source: Optional[str] = None, max_depth: int = DEFAULT_MAX_DEPTH):
        self.tokens = tokens
        self.filename = filename
        self.source = source
        self.pos = 0
        self.max_depth = max_depth
        self._depth = 0
        self._lines = source.splitlines() if source is not None else []

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _peek(self, offset: int = 0) -> Token:
        """Peek at token at current position + offset."""
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[idx]

    def _previous(self) -> Token:
        return self.tokens[max(0, self.pos - 1)]

    def _is_at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        """Check if current token is of given type."""
        return self._current().type == token_type

    def _check_any(self, *token_types: TokenType) -> bool:
        """Check if current token is any of given types."""
        return self._current().type in token_types

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(expected)

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _source_line(self, token: Token) -> Optional[str]:
        line = token.span.start.line
        if 1 <= line <= len(self._lines):
            return self._lines[line - 1]
        return None

    def _error(self, expected: str) -> None:
        """Raise a syntax error at the current token."""
        token = self._current()
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(expected, token.span)
        raise error_unexpected_token(expected, token.describe(), token.span,
                                     self._source_line(token))

    def _span_from(self, start: Token) -> SourceSpan:
        """Create a span from start token to the last consumed token."""
        return SourceSpan(start.span.start, self._previous().span.end)

    @contextmanager
    def _nested(self):
        """Track recursion so deeply nested input fails cleanly."""
        self._depth += 1
        try:
            if self._depth > self.max_depth:
                token = self._current()
                raise error_nesting_too_deep(self.max_depth, token.span,
                                             self._source_line(token))
            yield
        finally:
            self._depth -= 1

    # =========================================================================
    # Expression Parsing
    # =========================================================================

    def _parse_expression(self) -> Expression:
        """Parse an expression, including assignment."""
        with self._nested():
            if self._check(TokenType.SIGIL) and self._peek(1).type == TokenType.ASSIGN:
                name_token = self._advance()
                self._advance()  # consume '='
                value = self._parse_expression()
                return Assignment(
                    span=SourceSpan(name_token.span.start, value.span.end),
                    name=name_token.value,
                    value=value
                )
            return self._parse_binary_expr(0)

    def _parse_binary_expr(self, min_precedence: int) -> Expression:
        """Parse binary expressions with precedence climbing."""
        left = self._parse_unary_expr()

        while True:
            op_token = self._current()
            precedence = self.PRECEDENCE.get(op_token.type)

            if precedence is None or precedence < min_precedence:
                break

            self._advance()  # consume operator
            right = self._parse_binary_expr(precedence + 1)

            left = BinaryOp(
                span=SourceSpan(left.span.start, right.span.end),
                left=left,
                operator=op_token.type,
                right=right
            )

        return left

    def _parse_unary_expr(self) -> Expression:
        """Parse unary expressions (!, -)."""
        if self._check_any(TokenType.BANG, TokenType.MINUS):
            op = self._advance()
            with self._nested():
                operand = self._parse_unary_expr()
            return UnaryOp(
                span=SourceSpan(op.span.start, operand.span.end),
                operator=op.type,
                operand=operand
            )

        return self._parse_postfix_expr()

    def _parse_postfix_expr(self) -> Expression:
        """Parse .field, .method(...) and [index] suffixes.

        An index cannot follow a closing brace, so `li { } [1, 2]` inside an
        element stays two children. `if` and `for` take no suffixes.
        """
        expr = self._parse_primary_expr()
        if isinstance(expr, (If, ForIn)):
            return expr

        while True:
            if self._match(TokenType.DOT):
                name_token = self._consume(TokenType.IDENTIFIER, "field or method name")
                if self._check(TokenType.LPAREN):
                    # Method call
                    arguments = self._parse_arguments()
                    expr = MethodCall(
                        span=SourceSpan(expr.span.start, self._previous().span.end),
                        target=expr,
                        method=name_token.value,
                        arguments=arguments
                    )
                else:
                    # Element field
                    expr = FieldAccess(
                        span=SourceSpan(expr.span.start, name_token.span.end),
                        target=expr,
                        field=name_token.value
                    )
            elif self._check(TokenType.LBRACKET) and self._previous().type != TokenType.RBRACE:
                self._advance()  # consume '['
                index = self._parse_expression()
                self._consume(TokenType.RBRACKET, "']'")
                expr = Index(
                    span=SourceSpan(expr.span.start, self._previous().span.end),
                    target=expr,
                    index=index
                )
            else:
                return expr

    def _parse_primary_expr(self) -> Expression:
        """Parse primary expressions (literals, references, constructs)."""
        token = self._current()

        if token.type == TokenType.NUMBER_LITERAL:
            self._advance()
            return Literal(span=token.span, value=number_val(token.value))

        if token.type == TokenType.STRING_LITERAL:
            self._advance()
            return Literal(span=token.span, value=string_val(token.value))

        if token.type == TokenType.BOOL_LITERAL:
            self._advance()
            return Literal(span=token.span, value=bool_val(token.value))

        if token.type == TokenType.NONE_LITERAL:
            self._advance()
            return Literal(span=token.span, value=NONE)

        if token.type == TokenType.SIGIL:
            self._advance()
            return Reference(span=token.span, name=token.value)

        if token.type == TokenType.IDENTIFIER:
            return self._parse_identifier_expr()

        if token.type == TokenType.LPAREN:
            self._advance()
            expr = self._parse_expression()
            self._consume(TokenType.RPAREN, "')'")
            return expr

        if token.type == TokenType.LBRACKET:
            return self._parse_list_literal()

        if token.type == TokenType.LBRACE:
            return self._parse_map_literal()

        if token.type == TokenType.IF:
            return self._parse_if_expr()

        if token.type == TokenType.FOR:
            return self._parse_for_expr()

        self._error("expression")

    def _parse_identifier_expr(self) -> Expression:
        """Parse what can follow a bare name: element, call or function handle."""
        name_token = self._current()
        following = self._peek(1).type

        if following == TokenType.LBRACE:
            return self._parse_element()

        if following == TokenType.LPAREN:
            self._advance()
            arguments = self._parse_arguments()
            return Call(
                span=self._span_from(name_token),
                module="",
                function=name_token.value,
                arguments=arguments
            )

        if following == TokenType.DOUBLE_COLON:
            self._advance()  # module name
            self._advance()  # '::'
            function = self._consume(TokenType.IDENTIFIER, "function name").value
            if self._check(TokenType.LPAREN):
                arguments = self._parse_arguments()
                return Call(
                    span=self._span_from(name_token),
                    module=name_token.value,
                    function=function,
                    arguments=arguments
                )
            return FunctionRef(
                span=self._span_from(name_token),
                module=name_token.value,
                function=function
            )

        raise error_bare_identifier(name_token.value, name_token.span,
                                    self._source_line(name_token))

    def _parse_arguments(self) -> Tuple[Expression, ...]:
        """Parse a parenthesized, comma-separated argument list."""
        self._consume(TokenType.LPAREN, "'('")
        arguments = []
        while not self._check(TokenType.RPAREN):
            arguments.append(self._parse_expression())
            if not self._match(TokenType.COMMA):
                break
        self._consume(TokenType.RPAREN, "',' or ')'")
        return tuple(arguments)

    def _parse_list_literal(self) -> ListLiteral:
        """Parse [a, b, c] with an optional trailing comma."""
        start = self._advance()  # consume '['
        elements = []
        while not self._check(TokenType.RBRACKET):
            elements.append(self._parse_expression())
            if not self._match(TokenType.COMMA):
                break
        self._consume(TokenType.RBRACKET, "',' or ']'")
        return ListLiteral(span=self._span_from(start), elements=tuple(elements))

    def _parse_map_literal(self) -> MapLiteral:
        """Parse a map literal {"key": value, ...}."""
        start = self._advance()  # consume '{'
        entries = []
        while not self._check(TokenType.RBRACE):
            key_token = self._consume(TokenType.STRING_LITERAL, "string key")
            self._consume(TokenType.COLON, "':'")
            value = self._parse_expression()
            entries.append(MapEntry(
                span=SourceSpan(key_token.span.start, value.span.end),
                key=key_token.value,
                value=value
            ))
            if not self._match(TokenType.COMMA):
                break
        self._consume(TokenType.RBRACE, "',' or '}'")
        return MapLiteral(span=self._span_from(start), entries=tuple(entries))

    def _parse_element(self) -> ElementConstruct:
        """Parse tag { attr: value, child, ... }.

        Entries are comma separated; the comma may be left out after an
        entry that ends with '}'.
        """
        tag_token = self._advance()
        self._consume(TokenType.LBRACE, "'{'")
        attributes = []
        children = []

        while not self._check(TokenType.RBRACE):
            if (self._check_any(TokenType.IDENTIFIER, TokenType.STRING_LITERAL)
                    and self._peek(1).type == TokenType.COLON):
                name_token = self._advance()
                self._advance()  # consume ':'
                value = self._parse_expression()
                attributes.append(Attribute(
                    span=SourceSpan(name_token.span.start, value.span.end),
                    name=name_token.value,
                    value=value
                ))
            else:
                children.append(self._parse_expression())

            if self._match(TokenType.COMMA):
                continue
            if self._check(TokenType.RBRACE):
                break
            if self._previous().type == TokenType.RBRACE:
                continue
            self._error("',' or '}'")

        self._consume(TokenType.RBRACE, "'}'")
        return ElementConstruct(
            span=self._span_from(tag_token),
            tag=tag_token.value,
            attributes=tuple(attributes),
            children=tuple(children)
        )

    def _parse_if_expr(self) -> If:
        """Parse if cond { ... } [else { ... } | else if ...]."""
        start = self._advance()  # consume 'if'
        condition = self._parse_expression()
        then_branch = self._parse_brace_block()

        else_branch = None
        if self._match(TokenType.ELSE):
            if self._check(TokenType.IF):
                nested = self._parse_if_expr()
                else_branch = Block(span=nested.span, statements=(), final_expression=nested)
            else:
                else_branch = self._parse_brace_block()

        return If(
            span=self._span_from(start),
            condition=condition,
            then_branch=then_branch,
            else_branch=else_branch
        )

    def _parse_for_expr(self) -> ForIn:
        """Parse for @var in iterable { ... }."""
        start = self._advance()  # consume 'for'
        variable = self._consume(TokenType.SIGIL, "loop variable (e.g. @item)").value
        self._consume(TokenType.IN, "'in'")
        iterable = self._parse_expression()
        body = self._parse_brace_block()
        return ForIn(
            span=self._span_from(start),
            variable=variable,
            iterable=iterable,
            body=body
        )

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def _parse_return_statement(self, terminator: TokenType) -> Return:
        """Parse return [expr]. A bare return yields none."""
        start = self._advance()  # consume 'return'
        if self._check_any(TokenType.SEMICOLON, terminator):
            value = Literal(span=start.span, value=NONE)
        else:
            value = self._parse_expression()
        if not self._match(TokenType.SEMICOLON) and not self._check(terminator):
            self._error("';'")
        return Return(span=self._span_from(start), value=value)

    def _parse_items(self, terminator: TokenType) -> Tuple[Tuple[Statement, ...], Optional[Expression]]:
        """Parse statements up to ``terminator`` (not consumed).

        Returns the statements and the tail expression, if any.
        """
        statements = []
        final_expr = None

        while not self._check(terminator):
            if self._match(TokenType.SEMICOLON):
                continue
            if self._check(TokenType.RETURN):
                statements.append(self._parse_return_statement(terminator))
                continue

            expr = self._parse_expression()
            if self._match(TokenType.SEMICOLON):
                statements.append(ExpressionStatement(span=expr.span, expression=expr))
            elif self._check(terminator):
                final_expr = expr
            elif isinstance(expr, (If, ForIn)):
                statements.append(ExpressionStatement(span=expr.span, expression=expr))
            else:
                self._error("';'")

        return tuple(statements), final_expr

    def _parse_brace_block(self) -> Block:
        """Parse a brace-delimited block."""
        start = self._consume(TokenType.LBRACE, "'{'")
        with self._nested():
            statements, final_expr = self._parse_items(TokenType.RBRACE)
        self._consume(TokenType.RBRACE, "'}'")
        return Block(
            span=self._span_from(start),
            statements=statements,
            final_expression=final_expr
        )

    def parse_program(self) -> Program:
        """Parse a complete script."""
        start = self._current()
        try:
            statements, final_expr = self._parse_items(TokenType.EOF)
        except RecursionError:
            # The interpreter stack ran out before max_depth was reached.
            token = self._current()
            raise error_nesting_too_deep(self.max_depth, token.span,
                                         self._source_line(token)) from None
        end = self._current()
        span = SourceSpan(start.span.start, end.span.end)
        return Program(
            span=span,
            body=Block(span=span, statements=statements, final_expression=final_expr)
        )


def parse(tokens: List[Token], filename: Optional[str] = None, source: Optional[str] = None,
          max_depth: int = DEFAULT_MAX_DEPTH) -> Program:
    """
    Convenience function to parse tokens into a program.

    Args:
        tokens: List of tokens from the lexer
        filename: Optional filename for error messages
        source: Optional original source, used to quote lines in errors
        max_depth: Maximum syntactic nesting depth

    Returns:
        Parsed Program AST

    Raises:
        SyntaxError: If parsing fails
    """
    parser = Parser(tokens, filename, source, max_depth)
    return parser.parse_program()


def parse_source(source: str, filename: Optional[str] = None,
                 max_depth: int = DEFAULT_MAX_DEPTH) -> Program:
    """Lex and parse ``source`` in one step."""
    return parse(tokenize(source, filename), filename, source, max_depth)
