"""
Standard host modules.

``register_stdlib`` installs these into a registry; nothing is registered
implicitly, so an embedding that wants a bare language simply skips it.

    root      print(...), println(...), type(v), execute(source)
    math      abs, floor, ceil, round, sqrt, min(...), max(...)
    string    join(list, sep), len, upper, lower, from(v)
    list      len, get(list, i), push(list, v), range(n) / range(a, b), map(list, fn)
    map       get(map, key), keys(map), has(map, key)
    element   to_html(el), tag(el), children(el)
"""

import math
from typing import List

from ..values import (
    Value, ValueKind, NONE,
    bool_val, number_val, string_val, list_val,
)
from ..errors import error_type_mismatch, error_arity_mismatch
from ..tokens import UNKNOWN_SPAN
from .modules import ModuleRegistry, ROOT_MODULE, VARIADIC


def _expect(value: Value, kind: ValueKind) -> Value:
    """Raise a TypeError unless ``value`` has the given kind.

    The registry attaches the call-site position to the error.
    """
    if value.kind != kind:
        raise error_type_mismatch(kind.value, value.type_name, UNKNOWN_SPAN)
    return value


def _expect_index(value: Value) -> int:
    number = _expect(value, ValueKind.NUMBER).data
    if not math.isfinite(number) or number != int(number):
        raise error_type_mismatch("integer", format(number), UNKNOWN_SPAN)
    return int(number)


def _numbers(name: str, args) -> List[float]:
    if not args:
        raise error_arity_mismatch(name, 1, 0, UNKNOWN_SPAN)
    return [_expect(arg, ValueKind.NUMBER).data for arg in args]


# --- root ---

def _print(context, *args: Value) -> Value:
    if len(args) == 1:
        context.output(args[0])
    else:
        context.output(string_val(" ".join(arg.display() for arg in args)))
    return NONE


def _println(context, *args: Value) -> Value:
    context.output(string_val(" ".join(arg.display() for arg in args) + "\n"))
    return NONE


def _type(value: Value) -> Value:
    return string_val(value.type_name)


def _execute(context, source: Value) -> Value:
    return context.evaluate(_expect(source, ValueKind.STRING).data)


# --- math ---

def _abs(x: Value) -> Value:
    return number_val(abs(_expect(x, ValueKind.NUMBER).data))


def _floor(x: Value) -> Value:
    n = _expect(x, ValueKind.NUMBER).data
    return number_val(math.floor(n) if math.isfinite(n) else n)


def _ceil(x: Value) -> Value:
    n = _expect(x, ValueKind.NUMBER).data
    return number_val(math.ceil(n) if math.isfinite(n) else n)


def _round(x: Value) -> Value:
    # Half away from zero, not Python's banker's rounding
    n = _expect(x, ValueKind.NUMBER).data
    if not math.isfinite(n):
        return number_val(n)
    return number_val(math.copysign(math.floor(abs(n) + 0.5), n))


def _sqrt(x: Value) -> Value:
    n = _expect(x, ValueKind.NUMBER).data
    return number_val(math.sqrt(n) if n >= 0 else math.nan)


def _min(*args: Value) -> Value:
    return number_val(min(_numbers("math::min", args)))


def _max(*args: Value) -> Value:
    return number_val(max(_numbers("math::max", args)))


# --- string ---

def _join(items: Value, separator: Value) -> Value:
    parts = [item.display() for item in _expect(items, ValueKind.LIST).data]
    return string_val(_expect(separator, ValueKind.STRING).data.join(parts))


def _string_len(s: Value) -> Value:
    return number_val(len(_expect(s, ValueKind.STRING).data))


def _upper(s: Value) -> Value:
    return string_val(_expect(s, ValueKind.STRING).data.upper())


def _lower(s: Value) -> Value:
    return string_val(_expect(s, ValueKind.STRING).data.lower())


def _string_from(value: Value) -> Value:
    return string_val(value.display())


# --- list ---

def _list_len(items: Value) -> Value:
    return number_val(len(_expect(items, ValueKind.LIST).data))


def _get(items: Value, index: Value) -> Value:
    data = _expect(items, ValueKind.LIST).data
    i = _expect_index(index)
    if 0 <= i < len(data):
        return data[i]
    return NONE


def _push(items: Value, value: Value) -> Value:
    return list_val(_expect(items, ValueKind.LIST).data + [value])


def _range(*args: Value) -> Value:
    if len(args) not in (1, 2):
        raise error_arity_mismatch("list::range", 1, len(args), UNKNOWN_SPAN)
    bounds = [_expect_index(arg) for arg in args]
    return list_val(number_val(i) for i in range(*bounds))


def _map(context, items: Value, func: Value) -> Value:
    data = _expect(items, ValueKind.LIST).data
    _expect(func, ValueKind.FUNCTION)
    return list_val(context.call(func, item) for item in data)


# --- map ---

def _map_get(mapping: Value, key: Value) -> Value:
    data = _expect(mapping, ValueKind.MAP).data
    return data.get(_expect(key, ValueKind.STRING).data, NONE)


def _keys(mapping: Value) -> Value:
    return list_val(string_val(key) for key in _expect(mapping, ValueKind.MAP).data)


def _has(mapping: Value, key: Value) -> Value:
    data = _expect(mapping, ValueKind.MAP).data
    return bool_val(_expect(key, ValueKind.STRING).data in data)


# --- element ---

def _to_html(el: Value) -> Value:
    return string_val(_expect(el, ValueKind.ELEMENT).data.to_html())


def _tag(el: Value) -> Value:
    return string_val(_expect(el, ValueKind.ELEMENT).data.tag)


def _children(el: Value) -> Value:
    return list_val(_expect(el, ValueKind.ELEMENT).data.children)


def register_stdlib(registry: ModuleRegistry) -> ModuleRegistry:
    """Register the standard modules on ``registry`` and return it."""
    registry.register(ROOT_MODULE, "print", VARIADIC, _print, pass_context=True,
                      doc="Write values to the interpreter output handler")
    registry.register(ROOT_MODULE, "println", VARIADIC, _println, pass_context=True,
                      doc="Like print, followed by a newline")
    registry.register(ROOT_MODULE, "type", 1, _type, doc="Type name of a value")
    registry.register(ROOT_MODULE, "execute", 1, _execute, pass_context=True,
                      doc="Evaluate DioScript source in a fresh scope")

    registry.register("math", "abs", 1, _abs)
    registry.register("math", "floor", 1, _floor)
    registry.register("math", "ceil", 1, _ceil)
    registry.register("math", "round", 1, _round)
    registry.register("math", "sqrt", 1, _sqrt)
    registry.register("math", "min", VARIADIC, _min)
    registry.register("math", "max", VARIADIC, _max)

    registry.register("string", "join", 2, _join)
    registry.register("string", "len", 1, _string_len)
    registry.register("string", "upper", 1, _upper)
    registry.register("string", "lower", 1, _lower)
    registry.register("string", "from", 1, _string_from)

    registry.register("list", "len", 1, _list_len)
    registry.register("list", "get", 2, _get)
    registry.register("list", "push", 2, _push)
    registry.register("list", "range", VARIADIC, _range)
    registry.register("list", "map", 2, _map, pass_context=True,
                      doc="Apply a function handle to every item")

    registry.register("map", "get", 2, _map_get)
    registry.register("map", "keys", 1, _keys)
    registry.register("map", "has", 2, _has)

    registry.register("element", "to_html", 1, _to_html)
    registry.register("element", "tag", 1, _tag)
    registry.register("element", "children", 1, _children)
    return registry
