"""
Tests for scopes, the execution context and the evaluation budget.
"""

import pytest
from dioscript import Scope, ExecutionContext, number_val, string_val
from dioscript.errors import NameError as DioNameError, RuntimeLimitError
from dioscript.runtime import EvaluationBudget, create_context
from dioscript.tokens import UNKNOWN_SPAN


def make_context(bindings=None, source=""):
    return create_context(EvaluationBudget(max_iterations=10, max_depth=5), bindings, source)


class TestScope:
    """Scope chain behavior."""

    def test_declare_and_get(self):
        scope = Scope()
        scope.declare("x", number_val(1))
        assert scope.get("x") == number_val(1)
        assert scope.get("y") is None

    def test_parent_lookup(self):
        parent = Scope(name="root")
        parent.declare("x", number_val(1))
        child = Scope(parent=parent)
        assert child.get("x") == number_val(1)
        assert child.contains("x")
        assert not parent.contains("y")

    def test_shadowing_leaves_parent_alone(self):
        parent = Scope()
        parent.declare("x", number_val(1))
        child = Scope(parent=parent)
        child.declare("x", number_val(2))
        assert child.get("x") == number_val(2)
        assert parent.get("x") == number_val(1)

    def test_update_through_chain(self):
        parent = Scope()
        parent.declare("x", number_val(1))
        child = Scope(parent=parent)
        assert child.update("x", number_val(5))
        assert parent.get("x") == number_val(5)
        assert "x" not in child.variables

    def test_update_missing(self):
        assert not Scope().update("x", number_val(1))

    def test_declare_or_assign(self):
        parent = Scope()
        parent.declare("x", number_val(1))
        child = Scope(parent=parent)
        child.declare_or_assign("x", number_val(2))
        child.declare_or_assign("y", number_val(3))
        assert parent.get("x") == number_val(2)
        assert "y" in child.variables
        assert parent.get("y") is None

    def test_lookup_names_the_variable(self):
        with pytest.raises(DioNameError) as exc_info:
            Scope().lookup("missing")
        assert exc_info.value.name == "missing"
        assert "@missing" in str(exc_info.value)
        assert "E301" in str(exc_info.value)


class TestExecutionContext:
    """Context helpers."""

    def test_initial_bindings_are_wrapped(self):
        ctx = make_context({"title": "Home", "n": 3})
        assert ctx.lookup("title", UNKNOWN_SPAN) == string_val("Home")
        assert ctx.lookup("n", UNKNOWN_SPAN) == number_val(3)

    def test_new_scope_restores_on_exit(self):
        ctx = make_context()
        root = ctx.current_scope
        with ctx.new_scope("block") as scope:
            ctx.declare("inner", number_val(1))
            assert ctx.current_scope is scope
            assert scope.parent is root
        assert ctx.current_scope is root
        assert not root.contains("inner")

    def test_new_scope_restores_on_error(self):
        ctx = make_context()
        root = ctx.current_scope
        with pytest.raises(ValueError):
            with ctx.new_scope():
                raise ValueError("boom")
        assert ctx.current_scope is root

    def test_source_lines(self):
        ctx = make_context(source="@a = 1;\n@b = 2;")
        assert ctx.get_source_line(2) == "@b = 2;"
        assert ctx.get_source_line(0) is None
        assert ctx.get_source_line(3) is None

    def test_context_type(self):
        assert isinstance(make_context(), ExecutionContext)


class TestEvaluationBudget:
    """Iteration and depth guards."""

    def test_iteration_limit(self):
        budget = EvaluationBudget(max_iterations=3, max_depth=10)
        for _ in range(3):
            budget.tick(UNKNOWN_SPAN)
        with pytest.raises(RuntimeLimitError) as exc_info:
            budget.tick(UNKNOWN_SPAN)
        assert "E501" in str(exc_info.value)

    def test_depth_limit(self):
        budget = EvaluationBudget(max_iterations=10, max_depth=2)
        with budget.nested(UNKNOWN_SPAN):
            with budget.nested(UNKNOWN_SPAN):
                with pytest.raises(RuntimeLimitError) as exc_info:
                    with budget.nested(UNKNOWN_SPAN):
                        pass
        assert "E502" in str(exc_info.value)
        assert budget.depth == 0

    def test_depth_unwinds(self):
        budget = EvaluationBudget(max_iterations=10, max_depth=2)
        for _ in range(5):
            with budget.nested(UNKNOWN_SPAN):
                pass
        assert budget.depth == 0
