"""
DioScript - an embeddable scripting language for building element trees.

This package provides:
- Lexer: Tokenizes DioScript source
- Parser: Builds an immutable AST from tokens
- Values: Tagged runtime values, including Element trees
- Interpreter: Evaluates programs against host-registered modules

Usage:
    from dioscript import ModuleRegistry, evaluate, number_val

    registry = ModuleRegistry.with_stdlib()
    registry.register("app", "double", 1, lambda v: number_val(v.data * 2))

    source = '''
    @items = ["apples", "pears"];
    return ul {
        class: "fruit",
        for @item in @items { return li { @item } },
        li { string::from(app::double(21)) },
    };
    '''
    tree = evaluate(source, registry)
    print(tree.data.to_html())

Errors are raised as ``DioscriptError`` subclasses. ``SyntaxError``,
``NameError`` and ``TypeError`` share their names with Python builtins and
are left out of ``__all__``; import them explicitly.
"""

import logging

from .tokens import (
    Token,
    TokenType,
    TokenCategory,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
    parse_source,
)

from .ast import (
    # Base
    AstNode,
    AstVisitor,
    # Expressions
    Expression,
    Literal,
    Reference,
    Assignment,
    BinaryOp,
    UnaryOp,
    ListLiteral,
    MapLiteral,
    MapEntry,
    ElementConstruct,
    Attribute,
    Call,
    FunctionRef,
    Index,
    FieldAccess,
    MethodCall,
    If,
    ForIn,
    # Statements
    Statement,
    Return,
    ExpressionStatement,
    Block,
    Program,
    # Helpers
    format_ast,
)

from .errors import (
    Diagnostic,
    DioscriptError,
    LexError,
    SyntaxError,
    TypeError,
    NameError,
    ArityError,
    RuntimeLimitError,
    HostError,
)

from .values import (
    Value,
    ValueKind,
    Element,
    FunctionHandle,
    NONE,
    TRUE,
    FALSE,
    none_val,
    bool_val,
    number_val,
    string_val,
    list_val,
    map_val,
    element_val,
    function_val,
    wrap_value,
    unwrap_value,
    unwrap_values,
    to_plain,
    format_number,
)

from .config import (
    RuntimeConfig,
    load_config,
)

from .runtime import (
    Scope,
    ExecutionContext,
    HostFunction,
    ModuleRegistry,
    ROOT_MODULE,
    VARIADIC,
    register_stdlib,
    Interpreter,
    HostContext,
    Contribution,
    ContributionKind,
    ExecutionResult,
    evaluate,
    compile_and_run,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.3.0"

__all__ = [
    # Tokens
    'Token',
    'TokenType',
    'TokenCategory',
    'SourceLocation',
    'SourceSpan',
    'KEYWORDS',

    # Lexer / parser
    'Lexer',
    'tokenize',
    'Parser',
    'parse',
    'parse_source',

    # AST
    'AstNode',
    'AstVisitor',
    'Expression',
    'Literal',
    'Reference',
    'Assignment',
    'BinaryOp',
    'UnaryOp',
    'ListLiteral',
    'MapLiteral',
    'MapEntry',
    'ElementConstruct',
    'Attribute',
    'Call',
    'FunctionRef',
    'Index',
    'FieldAccess',
    'MethodCall',
    'If',
    'ForIn',
    'Statement',
    'Return',
    'ExpressionStatement',
    'Block',
    'Program',
    'format_ast',

    # Errors
    'Diagnostic',
    'DioscriptError',
    'LexError',
    'ArityError',
    'RuntimeLimitError',
    'HostError',

    # Values
    'Value',
    'ValueKind',
    'Element',
    'FunctionHandle',
    'NONE',
    'TRUE',
    'FALSE',
    'none_val',
    'bool_val',
    'number_val',
    'string_val',
    'list_val',
    'map_val',
    'element_val',
    'function_val',
    'wrap_value',
    'unwrap_value',
    'unwrap_values',
    'to_plain',
    'format_number',

    # Configuration
    'RuntimeConfig',
    'load_config',

    # Runtime
    'Scope',
    'ExecutionContext',
    'HostFunction',
    'ModuleRegistry',
    'ROOT_MODULE',
    'VARIADIC',
    'register_stdlib',
    'Interpreter',
    'HostContext',
    'Contribution',
    'ContributionKind',
    'ExecutionResult',
    'evaluate',
    'compile_and_run',
]
