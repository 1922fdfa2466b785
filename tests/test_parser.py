"""
Unit tests for the DioScript parser.
"""

import pytest
from dioscript import (
    parse_source, format_ast, TokenType,
    Literal, Reference, Assignment, BinaryOp, UnaryOp, ListLiteral,
    MapLiteral, ElementConstruct, Call, FunctionRef, Index, FieldAccess,
    MethodCall, If, ForIn,
    Return, ExpressionStatement, Block, Program,
    number_val, string_val, NONE,
)
from dioscript.errors import SyntaxError as DioSyntaxError


def parse_expr(source):
    """Parse a single tail expression."""
    program = parse_source(source)
    assert program.body.statements == ()
    return program.body.final_expression


class TestProgramStructure:
    """Statements, tails and returns."""

    def test_empty_program(self):
        program = parse_source("")
        assert isinstance(program, Program)
        assert program.body.statements == ()
        assert program.body.final_expression is None

    def test_statements_and_return(self):
        program = parse_source("@x = 1; @x = 2; return @x;")
        stmts = program.body.statements
        assert len(stmts) == 3
        assert isinstance(stmts[0], ExpressionStatement)
        assert isinstance(stmts[0].expression, Assignment)
        assert isinstance(stmts[2], Return)
        assert isinstance(stmts[2].value, Reference)
        assert stmts[2].value.name == "x"

    def test_tail_expression(self):
        program = parse_source("@x = 1; @x + 1")
        assert len(program.body.statements) == 1
        assert isinstance(program.body.final_expression, BinaryOp)

    def test_bare_return_yields_none(self):
        program = parse_source("return;")
        ret = program.body.statements[0]
        assert isinstance(ret.value, Literal)
        assert ret.value.value == NONE

    def test_return_without_semicolon_at_end(self):
        program = parse_source("return 1")
        assert isinstance(program.body.statements[0], Return)

    def test_missing_semicolon(self):
        with pytest.raises(DioSyntaxError) as exc_info:
            parse_source("@a = 1 @b = 2;")
        assert "E101" in str(exc_info.value)
        assert "';'" in str(exc_info.value)

    def test_if_needs_no_semicolon(self):
        program = parse_source("if true { 1 } @x = 2;")
        assert len(program.body.statements) == 2
        assert isinstance(program.body.statements[0].expression, If)

    def test_empty_statements_are_skipped(self):
        program = parse_source(";; @a = 1;;")
        assert len(program.body.statements) == 1

    def test_ast_is_immutable(self):
        program = parse_source("@a = 1;")
        with pytest.raises(Exception):
            program.body = None


class TestExpressions:
    """Operators, literals and precedence."""

    def test_literals(self):
        assert parse_expr("42").value == number_val(42)
        assert parse_expr('"hi"').value == string_val("hi")
        assert parse_expr("none").value == NONE

    def test_precedence(self):
        """1 + 2 * 3 groups the multiplication first."""
        expr = parse_expr("1 + 2 * 3")
        assert expr.operator == TokenType.PLUS
        assert isinstance(expr.right, BinaryOp)
        assert expr.right.operator == TokenType.STAR

    def test_left_associative(self):
        expr = parse_expr("10 - 4 - 3")
        assert expr.operator == TokenType.MINUS
        assert isinstance(expr.left, BinaryOp)
        assert expr.right.value == number_val(3)

    def test_logical_precedence(self):
        expr = parse_expr("@a || @b && @c")
        assert expr.operator == TokenType.OR
        assert expr.right.operator == TokenType.AND

    def test_comparison_binds_tighter_than_equality(self):
        expr = parse_expr("@a < 1 == true")
        assert expr.operator == TokenType.EQ
        assert expr.left.operator == TokenType.LT

    def test_grouping(self):
        expr = parse_expr("(1 + 2) * 3")
        assert expr.operator == TokenType.STAR
        assert expr.left.operator == TokenType.PLUS

    def test_unary(self):
        expr = parse_expr("!-@a")
        assert isinstance(expr, UnaryOp)
        assert expr.operator == TokenType.BANG
        assert expr.operand.operator == TokenType.MINUS

    def test_assignment_is_right_associative(self):
        expr = parse_expr("@a = @b = 3")
        assert isinstance(expr, Assignment)
        assert expr.name == "a"
        assert isinstance(expr.value, Assignment)
        assert expr.value.name == "b"

    def test_list_literal_trailing_comma(self):
        expr = parse_expr("[1, 2, 3,]")
        assert isinstance(expr, ListLiteral)
        assert len(expr.elements) == 3

    def test_map_literal(self):
        expr = parse_expr('{"a": 1, "b": [2]}')
        assert isinstance(expr, MapLiteral)
        assert [e.key for e in expr.entries] == ["a", "b"]

    def test_map_literal_requires_string_keys(self):
        with pytest.raises(DioSyntaxError) as exc_info:
            parse_source("{a: 1}")
        assert "string key" in str(exc_info.value)

    def test_bare_identifier_is_error(self):
        with pytest.raises(DioSyntaxError) as exc_info:
            parse_source("return title;")
        assert "E103" in str(exc_info.value)


class TestCalls:
    """Root calls, module calls and function handles."""

    def test_root_call(self):
        expr = parse_expr('print("x", 1)')
        assert isinstance(expr, Call)
        assert expr.module == ""
        assert expr.function == "print"
        assert len(expr.arguments) == 2

    def test_module_call(self):
        expr = parse_expr("math::max(1, 2)")
        assert isinstance(expr, Call)
        assert expr.qualified_name == "math::max"

    def test_function_handle(self):
        expr = parse_expr("string::upper")
        assert isinstance(expr, FunctionRef)
        assert expr.module == "string"
        assert expr.function == "upper"

    def test_missing_close_paren(self):
        with pytest.raises(DioSyntaxError) as exc_info:
            parse_source("print(1, 2")
        assert "E102" in str(exc_info.value)


class TestPostfix:
    """Indexing, element fields and method-style calls."""

    def test_index(self):
        expr = parse_expr('@items[0]')
        assert isinstance(expr, Index)
        assert isinstance(expr.target, Reference)
        assert expr.index.value == number_val(0)

    def test_map_key_index(self):
        expr = parse_expr('@user["name"]')
        assert isinstance(expr, Index)
        assert expr.index.value == string_val("name")

    def test_chained_index(self):
        expr = parse_expr('@grid[1][2]')
        assert isinstance(expr, Index)
        assert isinstance(expr.target, Index)
        assert expr.target.index.value == number_val(1)

    def test_field_access(self):
        expr = parse_expr('@card.attributes')
        assert isinstance(expr, FieldAccess)
        assert expr.field == "attributes"

    def test_method_call(self):
        expr = parse_expr('@items.push(1)')
        assert isinstance(expr, MethodCall)
        assert expr.method == "push"
        assert isinstance(expr.target, Reference)
        assert [a.value for a in expr.arguments] == [number_val(1)]

    def test_method_then_field_then_index(self):
        expr = parse_expr('@el.content[0].name')
        assert isinstance(expr, FieldAccess)
        assert isinstance(expr.target, Index)
        assert isinstance(expr.target.target, FieldAccess)

    def test_postfix_binds_tighter_than_unary(self):
        expr = parse_expr('-@xs[0]')
        assert isinstance(expr, UnaryOp)
        assert isinstance(expr.operand, Index)

    def test_postfix_on_call_and_literal(self):
        assert isinstance(parse_expr('list::range(3)[1]'), Index)
        assert isinstance(parse_expr('[1, 2].len()'), MethodCall)

    def test_bracket_after_brace_is_a_child(self):
        expr = parse_expr('ul { li { } [1, 2] }')
        assert len(expr.children) == 2
        assert isinstance(expr.children[1], ListLiteral)

    def test_index_span(self):
        expr = parse_expr('@items[10]')
        assert expr.span.start.column == 1
        assert expr.span.end.column == 11

    def test_dot_needs_name(self):
        with pytest.raises(DioSyntaxError) as exc_info:
            parse_source('@a.;')
        assert "field or method name" in str(exc_info.value)

    def test_unclosed_index(self):
        with pytest.raises(DioSyntaxError):
            parse_source('@a[0;')


class TestElements:
    """Element construction syntax."""

    def test_attributes_and_children(self):
        expr = parse_expr('div { class: "box", "data-id": 3, "text", span { } }')
        assert isinstance(expr, ElementConstruct)
        assert expr.tag == "div"
        assert [a.name for a in expr.attributes] == ["class", "data-id"]
        assert len(expr.children) == 2
        assert isinstance(expr.children[1], ElementConstruct)

    def test_hyphenated_attribute_name(self):
        expr = parse_expr('input { aria-label: "Name" }')
        assert expr.attributes[0].name == "aria-label"

    def test_comma_optional_after_brace(self):
        expr = parse_expr('ul { li { "a" } li { "b" } }')
        assert len(expr.children) == 2

    def test_comma_required_otherwise(self):
        with pytest.raises(DioSyntaxError):
            parse_source('p { "a" "b" }')

    def test_control_flow_children(self):
        expr = parse_expr('ul { for @i in @items { li { @i } } if @x { p { } } }')
        assert isinstance(expr.children[0], ForIn)
        assert isinstance(expr.children[1], If)

    def test_unclosed_element(self):
        with pytest.raises(DioSyntaxError) as exc_info:
            parse_source('div { "a",')
        assert "E102" in str(exc_info.value)


class TestControlFlow:
    """if/else and for/in."""

    def test_if_else(self):
        expr = parse_expr("if @a { 1 } else { 2 }")
        assert isinstance(expr, If)
        assert isinstance(expr.then_branch, Block)
        assert expr.then_branch.final_expression.value == number_val(1)
        assert expr.else_branch.final_expression.value == number_val(2)

    def test_if_without_else(self):
        assert parse_expr("if @a { 1 }").else_branch is None

    def test_else_if_chain(self):
        expr = parse_expr("if @a { 1 } else if @b { 2 } else { 3 }")
        nested = expr.else_branch.final_expression
        assert isinstance(nested, If)
        assert nested.else_branch.final_expression.value == number_val(3)

    def test_for_in(self):
        expr = parse_expr("for @item in [1, 2] { return @item; }")
        assert isinstance(expr, ForIn)
        assert expr.variable == "item"
        assert isinstance(expr.body.statements[0], Return)

    def test_for_requires_sigil(self):
        with pytest.raises(DioSyntaxError) as exc_info:
            parse_source("for item in @xs { }")
        assert "loop variable" in str(exc_info.value)


class TestErrorsAndLimits:
    """Syntax error reporting and nesting guard."""

    def test_expected_vs_found(self):
        with pytest.raises(DioSyntaxError) as exc_info:
            parse_source("@a = ;")
        message = str(exc_info.value)
        assert "expected expression" in message
        assert "';'" in message

    def test_error_position(self):
        with pytest.raises(DioSyntaxError) as exc_info:
            parse_source("@a = 1;\n@b = ];")
        assert exc_info.value.span.start.line == 2
        assert exc_info.value.span.start.column == 6

    def test_nesting_limit(self):
        source = "(" * 50 + "1" + ")" * 50
        with pytest.raises(DioSyntaxError) as exc_info:
            parse_source(source, max_depth=20)
        assert "E104" in str(exc_info.value)

    def test_default_limit_on_deep_elements(self):
        source = "return " + "div { " * 190 + "1" + " }" * 190 + ";"
        with pytest.raises(DioSyntaxError) as exc_info:
            parse_source(source)
        assert exc_info.value.code == "E104"

    def test_default_limit_on_deep_parens(self):
        source = "(" * 1000 + "1" + ")" * 1000
        with pytest.raises(DioSyntaxError) as exc_info:
            parse_source(source)
        assert exc_info.value.code == "E104"

    def test_deep_nesting_within_limit(self):
        source = "[" * 30 + "]" * 30
        assert isinstance(parse_expr(source), ListLiteral)

    def test_format_ast(self):
        dump = format_ast(parse_source("return p { @x };"))
        assert "Program" in dump
        assert "ElementConstruct" in dump
        assert "'x'" in dump
