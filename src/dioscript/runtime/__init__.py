"""
DioScript runtime - tree-walking interpreter and host integration.

This module provides:
- Interpreter: Evaluates parsed programs into element trees
- ExecutionContext / Scope: Variable scope chain and evaluation budget
- ModuleRegistry: Host functions callable from scripts
- register_stdlib: The standard host modules
"""

from .context import (
    Scope,
    EvaluationBudget,
    ExecutionContext,
    create_context,
)

from .modules import (
    HostFunction,
    ModuleRegistry,
    ROOT_MODULE,
    VARIADIC,
)

from .interpreter import (
    Interpreter,
    HostContext,
    Contribution,
    ContributionKind,
    ExecutionResult,
    evaluate,
    compile_and_run,
)

from .stdlib import register_stdlib

__all__ = [
    # Context
    'Scope',
    'EvaluationBudget',
    'ExecutionContext',
    'create_context',

    # Host modules
    'HostFunction',
    'ModuleRegistry',
    'ROOT_MODULE',
    'VARIADIC',
    'register_stdlib',

    # Interpreter
    'Interpreter',
    'HostContext',
    'Contribution',
    'ContributionKind',
    'ExecutionResult',
    'evaluate',
    'compile_and_run',
]
