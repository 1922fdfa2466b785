"""
Host module registry for the DioScript interpreter.

Hosts expose native functionality to scripts by registering callables under
``module::function`` names. Scripts call them as ``module::function(args)``;
unqualified calls such as ``print(x)`` resolve in the root module, whose name
is the empty string.

Each embedding owns its registry. Independent interpreters with independent
registries share nothing.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..values import Value, wrap_value
from ..tokens import SourceSpan, UNKNOWN_SPAN
from ..errors import (
    DioscriptError,
    error_unknown_module,
    error_unknown_function,
    error_arity_mismatch,
    error_host_failure,
)

logger = logging.getLogger(__name__)

ROOT_MODULE = ""

# Arity marker for functions accepting any number of arguments
VARIADIC = -1


@dataclass
class HostFunction:
    """
    A registered host function.

    ``implementation`` receives the evaluated argument Values (preceded by a
    ``HostContext`` when ``pass_context`` is set) and returns a Value or
    plain Python data convertible with ``wrap_value``.
    """
    module: str
    name: str
    arity: int
    implementation: Callable[..., Any]
    pass_context: bool = False
    doc: str = ""

    @property
    def qualified_name(self) -> str:
        return f"{self.module}::{self.name}" if self.module else self.name

    @property
    def is_variadic(self) -> bool:
        return self.arity == VARIADIC

    def accepts(self, count: int) -> bool:
        return self.is_variadic or count == self.arity


class ModuleRegistry:
    """
    Registry of host modules and their functions.

    Usage:
        registry = ModuleRegistry()
        registry.register("math", "double", 1, lambda v: number_val(v.data * 2))
        registry.resolve_and_call("math", "double", [number_val(21)])
    """

    def __init__(self):
        self._modules: Dict[str, Dict[str, HostFunction]] = {}

    @classmethod
    def with_stdlib(cls) -> "ModuleRegistry":
        """Create a registry pre-populated with the standard modules."""
        from .stdlib import register_stdlib
        registry = cls()
        register_stdlib(registry)
        return registry

    def register(self, module_name: str, function_name: str, arity: int,
                 implementation: Callable[..., Any], pass_context: bool = False,
                 doc: str = "") -> HostFunction:
        """
        Register a host function. Registering the same name again replaces
        the previous entry.

        Args:
            module_name: Module the function lives in ("" for the root module)
            function_name: Name scripts use to call it
            arity: Exact argument count, or VARIADIC
            implementation: The Python callable
            pass_context: Pass a HostContext as the first argument
            doc: Optional description for tooling

        Raises:
            ValueError: If arity is neither a non-negative int nor VARIADIC
        """
        if not isinstance(arity, int) or isinstance(arity, bool) or arity < VARIADIC:
            raise ValueError(f"arity must be a non-negative int or VARIADIC, got {arity!r}")
        if not callable(implementation):
            raise ValueError(f"implementation for {module_name}::{function_name} is not callable")

        functions = self._modules.setdefault(module_name, {})
        if function_name in functions:
            logger.debug("Overwriting host function %s::%s", module_name, function_name)
        func = HostFunction(module_name, function_name, arity, implementation, pass_context, doc)
        functions[function_name] = func
        return func

    def modules(self) -> List[str]:
        """Names of all registered modules."""
        return list(self._modules)

    def functions(self, module_name: str) -> List[HostFunction]:
        """All functions registered in a module (empty if unknown)."""
        return list(self._modules.get(module_name, {}).values())

    def has_function(self, module_name: str, function_name: str) -> bool:
        return function_name in self._modules.get(module_name, {})

    def resolve(self, module_name: str, function_name: str,
                span: SourceSpan = UNKNOWN_SPAN, source_line: str = None) -> HostFunction:
        """
        Look up a host function.

        Raises:
            NameError: If the module or the function is not registered
        """
        functions = self._modules.get(module_name)
        if functions is None:
            if module_name == ROOT_MODULE:
                raise error_unknown_function(function_name, span, source_line)
            raise error_unknown_module(module_name, span, source_line)
        func = functions.get(function_name)
        if func is None:
            qualified = f"{module_name}::{function_name}" if module_name else function_name
            raise error_unknown_function(qualified, span, source_line)
        return func

    def resolve_and_call(self, module_name: str, function_name: str, args: Sequence[Value],
                         span: SourceSpan = UNKNOWN_SPAN, source_line: str = None,
                         context: Optional[Any] = None) -> Value:
        """
        Resolve a function, check the argument count and invoke it.

        The arity check happens before the callable runs, so a mismatched
        call never has side effects.

        Raises:
            NameError: Unknown module or function
            ArityError: Wrong number of arguments
            HostError: The callable raised a non-DioScript exception
            TypeError: The callable returned data with no Value equivalent
        """
        func = self.resolve(module_name, function_name, span, source_line)
        if not func.accepts(len(args)):
            raise error_arity_mismatch(func.qualified_name, func.arity, len(args),
                                       span, source_line)

        logger.debug("Calling host function %s with %d argument(s)",
                     func.qualified_name, len(args))
        try:
            if func.pass_context:
                if context is None:
                    raise RuntimeError("function needs an interpreter context")
                result = func.implementation(context, *args)
            else:
                result = func.implementation(*args)
        except DioscriptError as exc:
            # Host code raises without a position; report it at the call site
            if exc.diagnostic.span == UNKNOWN_SPAN:
                exc.diagnostic.span = span
                exc.diagnostic.source_line = source_line
            raise
        except RecursionError:
            raise
        except Exception as exc:
            raise error_host_failure(func.qualified_name, exc, span, source_line) from exc

        return wrap_value(result, span)
