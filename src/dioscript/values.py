"""
Runtime values for the DioScript interpreter.

A ``Value`` is a tagged union: ``kind`` says which variant it is and ``data``
holds the Python payload for that variant.

    ValueKind.NONE      None
    ValueKind.BOOL      bool
    ValueKind.NUMBER    float
    ValueKind.STRING    str
    ValueKind.LIST      list of Value
    ValueKind.MAP       dict of str -> Value (insertion ordered)
    ValueKind.ELEMENT   Element
    ValueKind.FUNCTION  FunctionHandle

Consumers dispatch on ``kind``; there is no subclass per variant.
"""

import html
import json
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping

from .errors import error_unconvertible_value
from .tokens import SourceSpan, UNKNOWN_SPAN


class ValueKind(Enum):
    """Variant tag for ``Value``; the string is the script-visible type name."""
    NONE = "none"
    BOOL = "boolean"
    NUMBER = "number"
    STRING = "string"
    LIST = "list"
    MAP = "map"
    ELEMENT = "element"
    FUNCTION = "function"


@dataclass(frozen=True)
class FunctionHandle:
    """Reference to a host function registered as ``module::function``."""
    module: str
    function: str

    @property
    def qualified_name(self) -> str:
        if not self.module:
            return self.function
        return f"{self.module}::{self.function}"

    def __str__(self) -> str:
        return self.qualified_name


@dataclass(frozen=True)
class Value:
    """
    A runtime value.

    Equality is structural and total: values of different kinds are simply
    unequal, so ``number_val(1) == string_val("1")`` is False.
    """
    kind: ValueKind
    data: Any

    def __repr__(self) -> str:
        return f"Value({self.kind.name}, {self.data!r})"

    @property
    def type_name(self) -> str:
        return self.kind.value

    def display(self) -> str:
        """Render the value the way ``print`` shows it."""
        if self.kind == ValueKind.STRING:
            return self.data
        return _format_nested(self)

    def __str__(self) -> str:
        return self.display()


@dataclass(frozen=True)
class Element:
    """
    A node of the declarative output tree.

    ``attributes`` keeps first-insertion order; assigning an existing key
    again replaces its value in place. ``children`` keeps evaluation order.
    """
    tag: str
    attributes: Dict[str, Value] = field(default_factory=dict)
    children: List[Value] = field(default_factory=list)

    def to_html(self) -> str:
        """Serialize to an HTML fragment."""
        attrs = "".join(_render_attribute(name, value) for name, value in self.attributes.items())
        content = "".join(_render_child(child) for child in self.children)
        return f"<{self.tag}{attrs}>{content}</{self.tag}>"

    def to_dict(self) -> dict:
        """Plain nested dict suitable for JSON encoding."""
        return {
            "tag": self.tag,
            "attributes": {name: to_plain(value) for name, value in self.attributes.items()},
            "children": [to_plain(child) for child in self.children],
        }


# Convenience constructors

NONE = Value(ValueKind.NONE, None)
TRUE = Value(ValueKind.BOOL, True)
FALSE = Value(ValueKind.BOOL, False)


def none_val() -> Value:
    """The none value."""
    return NONE


def bool_val(b: bool) -> Value:
    """Create a boolean value."""
    return TRUE if b else FALSE


def number_val(x: float) -> Value:
    """Create a number value. All numbers are floats."""
    return Value(ValueKind.NUMBER, float(x))


def string_val(s: str) -> Value:
    """Create a string value."""
    return Value(ValueKind.STRING, str(s))


def list_val(items: Iterable[Value]) -> Value:
    """Create a list value from Values."""
    return Value(ValueKind.LIST, list(items))


def map_val(entries: Mapping[str, Value]) -> Value:
    """Create a map value from a str -> Value mapping."""
    return Value(ValueKind.MAP, dict(entries))


def element_val(tag: str, attributes: Mapping[str, Value] = None,
                children: Iterable[Value] = ()) -> Value:
    """Create an element value."""
    return Value(ValueKind.ELEMENT, Element(tag, dict(attributes or {}), list(children)))


def function_val(module: str, function: str) -> Value:
    """Create a function handle value."""
    return Value(ValueKind.FUNCTION, FunctionHandle(module, function))


# Conversion between host data and Values

def wrap_value(data: Any, span: SourceSpan = UNKNOWN_SPAN) -> Value:
    """
    Convert plain Python data to a Value.

    Values pass through unchanged. ints and floats become numbers, tuples
    become lists, and mapping keys are converted with ``str``. Anything else
    raises the DioScript ``TypeError``.
    """
    if isinstance(data, Value):
        return data
    if data is None:
        return NONE
    # bool before int: bool is an int subclass
    if isinstance(data, bool):
        return bool_val(data)
    if isinstance(data, (int, float)):
        return number_val(data)
    if isinstance(data, str):
        return string_val(data)
    if isinstance(data, (list, tuple)):
        return list_val(wrap_value(item, span) for item in data)
    if isinstance(data, Mapping):
        return map_val({str(key): wrap_value(item, span) for key, item in data.items()})
    if isinstance(data, Element):
        return Value(ValueKind.ELEMENT, data)
    if isinstance(data, FunctionHandle):
        return Value(ValueKind.FUNCTION, data)
    raise error_unconvertible_value(type(data).__name__, span)


def unwrap_value(v: Value) -> Any:
    """Extract plain Python data from a Value, recursing into lists and maps."""
    if v.kind == ValueKind.LIST:
        return [unwrap_value(item) for item in v.data]
    if v.kind == ValueKind.MAP:
        return {key: unwrap_value(item) for key, item in v.data.items()}
    return v.data


def unwrap_values(values: List[Value]) -> List[Any]:
    """Extract plain data from a list of Values."""
    return [unwrap_value(v) for v in values]


def to_plain(v: Value) -> Any:
    """Like ``unwrap_value`` but elements become dicts and handles strings."""
    if v.kind == ValueKind.LIST:
        return [to_plain(item) for item in v.data]
    if v.kind == ValueKind.MAP:
        return {key: to_plain(item) for key, item in v.data.items()}
    if v.kind == ValueKind.ELEMENT:
        return v.data.to_dict()
    if v.kind == ValueKind.FUNCTION:
        return v.data.qualified_name
    return v.data


# Formatting

def format_number(n: float) -> str:
    """Format a number without a trailing '.0' for integral values."""
    if math.isnan(n):
        return "nan"
    if math.isinf(n):
        return "inf" if n > 0 else "-inf"
    if n == int(n) and abs(n) < 1e16:
        return str(int(n))
    return repr(n)


def _format_nested(v: Value) -> str:
    kind = v.kind
    if kind == ValueKind.NONE:
        return "none"
    if kind == ValueKind.BOOL:
        return "true" if v.data else "false"
    if kind == ValueKind.NUMBER:
        return format_number(v.data)
    if kind == ValueKind.STRING:
        return json.dumps(v.data, ensure_ascii=False)
    if kind == ValueKind.LIST:
        return "[" + ", ".join(_format_nested(item) for item in v.data) + "]"
    if kind == ValueKind.MAP:
        entries = (f"{json.dumps(key, ensure_ascii=False)}: {_format_nested(item)}"
                   for key, item in v.data.items())
        return "{" + ", ".join(entries) + "}"
    if kind == ValueKind.ELEMENT:
        return v.data.to_html()
    return f"<function {v.data.qualified_name}>"


def _render_attribute(name: str, value: Value) -> str:
    if value.kind == ValueKind.BOOL:
        return f" {name}" if value.data else ""
    if value.kind == ValueKind.NONE:
        return ""
    return f' {name}="{html.escape(value.display(), quote=True)}"'


def _render_child(child: Value) -> str:
    if child.kind == ValueKind.ELEMENT:
        return child.data.to_html()
    if child.kind == ValueKind.NONE:
        return ""
    if child.kind == ValueKind.LIST:
        return "".join(_render_child(item) for item in child.data)
    return html.escape(child.display(), quote=False)
