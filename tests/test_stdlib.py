"""
Tests for the standard host modules.
"""

import math

import pytest
from dioscript import (
    ModuleRegistry, evaluate, register_stdlib, ArityError,
    NONE, TRUE, FALSE, number_val, string_val, list_val,
)
from dioscript.errors import NameError as DioNameError, TypeError as DioTypeError


def run(source, bindings=None, output=None):
    return evaluate(source, ModuleRegistry.with_stdlib(), bindings,
                    output=output or (lambda v: None))


class TestRootModule:
    """print, println, type and execute."""

    @pytest.mark.parametrize("source,expected", [
        ("type(1)", "number"),
        ('type("s")', "string"),
        ("type(true)", "boolean"),
        ("type(none)", "none"),
        ("type([])", "list"),
        ('type({"a": 1})', "map"),
        ("type(p { })", "element"),
        ("type(math::abs)", "function"),
    ])
    def test_type(self, source, expected):
        assert run(source) == string_val(expected)

    def test_print_returns_none(self):
        captured = []
        assert run('print(1)', output=captured.append) == NONE
        assert captured == [number_val(1)]

    def test_println_returns_none(self):
        captured = []
        assert run('println([1, "a"])', output=captured.append) == NONE
        assert captured == [string_val('[1, "a"]\n')]

    def test_execute(self):
        assert run('execute("return 1 + 2;")') == number_val(3)

    def test_execute_uses_fresh_scope(self):
        with pytest.raises(DioNameError) as exc_info:
            run('@x = 1; execute("return @x;")')
        assert "E301" in str(exc_info.value)

    def test_register_stdlib_returns_registry(self):
        reg = ModuleRegistry()
        assert register_stdlib(reg) is reg
        assert sorted(reg.modules()) == ["", "element", "list", "map", "math", "string"]


class TestMathModule:
    """math::*"""

    @pytest.mark.parametrize("source,expected", [
        ("math::abs(-3)", 3),
        ("math::floor(2.7)", 2),
        ("math::floor(-2.5)", -3),
        ("math::ceil(2.1)", 3),
        ("math::round(2.5)", 3),
        ("math::round(-2.5)", -3),
        ("math::round(2.4)", 2),
        ("math::sqrt(16)", 4),
        ("math::min(3, 1, 2)", 1),
        ("math::max(3, 1, 2)", 3),
        ("math::max(7)", 7),
    ])
    def test_math(self, source, expected):
        assert run(source) == number_val(expected)

    def test_sqrt_negative(self):
        assert math.isnan(run("math::sqrt(-1)").data)

    def test_floor_infinite(self):
        assert run("math::floor(1 / 0)").data == math.inf

    def test_min_without_arguments(self):
        with pytest.raises(ArityError):
            run("math::min()")

    def test_type_checked(self):
        with pytest.raises(DioTypeError) as exc_info:
            run('\nmath::abs("x")')
        assert "E201" in str(exc_info.value)
        assert exc_info.value.span.start.line == 2


class TestStringModule:
    """string::*"""

    def test_join(self):
        assert run('string::join(["a", 1, true], ", ")') == string_val("a, 1, true")

    def test_len_upper_lower(self):
        assert run('string::len("héllo")') == number_val(5)
        assert run('string::upper("abc")') == string_val("ABC")
        assert run('string::lower("ABC")') == string_val("abc")

    def test_from(self):
        assert run("string::from(2)") == string_val("2")
        assert run("string::from(0.5)") == string_val("0.5")
        assert run('string::from("x")') == string_val("x")
        assert run("string::from([1])") == string_val("[1]")

    def test_join_requires_list(self):
        with pytest.raises(DioTypeError):
            run('string::join("abc", "")')


class TestListModule:
    """list::*"""

    def test_len(self):
        assert run("list::len([1, 2, 3])") == number_val(3)

    def test_get(self):
        assert run('list::get(["a", "b"], 1)') == string_val("b")

    def test_get_out_of_range(self):
        assert run("list::get([1], 5)") == NONE
        assert run("list::get([1], -1)") == NONE

    def test_get_requires_integer(self):
        with pytest.raises(DioTypeError):
            run("list::get([1], 0.5)")

    def test_push_returns_new_list(self):
        value = run("@a = [1]; @b = list::push(@a, 2); [@a, @b]")
        assert value == list_val([
            list_val([number_val(1)]),
            list_val([number_val(1), number_val(2)]),
        ])

    def test_range(self):
        assert run("list::range(3)") == list_val([number_val(0), number_val(1), number_val(2)])
        assert run("list::range(2, 4)") == list_val([number_val(2), number_val(3)])

    def test_range_arity(self):
        with pytest.raises(ArityError):
            run("list::range(1, 2, 3)")

    def test_map_with_function_handle(self):
        assert run('list::map(["a", "b"], string::upper)') == list_val(
            [string_val("A"), string_val("B")])

    def test_map_with_host_function(self):
        reg = ModuleRegistry.with_stdlib()
        reg.register("app", "double", 1, lambda v: number_val(v.data * 2))
        value = evaluate("list::map([1, 2], app::double)", reg)
        assert value == list_val([number_val(2), number_val(4)])

    def test_map_arity_error_in_callback(self):
        with pytest.raises(ArityError):
            run("list::map([1], string::join)")

    def test_map_requires_function(self):
        with pytest.raises(DioTypeError):
            run('list::map([1], "string::upper")')


class TestMapModule:
    """map::*"""

    def test_get(self):
        assert run('map::get({"a": 1}, "a")') == number_val(1)
        assert run('map::get({"a": 1}, "b")') == NONE

    def test_keys(self):
        assert run('map::keys({"b": 1, "a": 2})') == list_val(
            [string_val("b"), string_val("a")])

    def test_has(self):
        assert run('map::has({"a": none}, "a")') == TRUE
        assert run('map::has({}, "a")') == FALSE

    def test_bindings_as_map(self):
        value = run('map::get(@user, "name")', {"user": {"name": "Ada"}})
        assert value == string_val("Ada")


class TestElementModule:
    """element::*"""

    def test_to_html(self):
        value = run('element::to_html(a { href: "/x", "link" })')
        assert value == string_val('<a href="/x">link</a>')

    def test_tag_and_children(self):
        assert run("element::tag(section { })") == string_val("section")
        assert run('list::len(element::children(ul { li { }, li { } }))') == number_val(2)

    def test_requires_element(self):
        with pytest.raises(DioTypeError):
            run('element::tag("div")')
