#!/usr/bin/env python3
"""
KUBERENDER FUNCTION LIBRARY
---------------------------
The template functions charts rely on: defaults, comparison, string
helpers, indentation and serialization. Argument order follows the
pipeline convention: the piped value always arrives last.

Author: KubeRender Team
Date: 2026-01-16
"""

import base64
import hashlib
import io
import json
import re
from typing import Any, Callable, Dict, List, Mapping

from ruamel.yaml import YAML

from kuberender.core.errors import TemplateExecutionError, UndefinedReferenceError
from kuberender.core.models import MissingValue, ValueKind, is_truthy, value_kind

# Functions that may receive a MissingValue without failing the render
LENIENT_FUNCTIONS = frozenset({
    "default", "empty", "required", "coalesce", "not", "and", "or", "ternary", "eq", "ne",
})

_PRINTF_VERB = re.compile(r"%([-+# 0]*)(\d+)?(?:\.(\d+))?([a-zA-Z%])")


# --- VALUE FORMATTING ---

def _format(value: Any, top: bool) -> str:
    kind = value_kind(value)
    if kind == ValueKind.MISSING:
        raise UndefinedReferenceError(value.path)
    if kind == ValueKind.NULL:
        return "" if top else "<nil>"
    if kind == ValueKind.BOOLEAN:
        return "true" if value else "false"
    if kind == ValueKind.FLOAT:
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    if kind == ValueKind.MAPPING:
        items = " ".join(f"{k}:{_format(value[k], False)}" for k in sorted(value, key=str))
        return f"map[{items}]"
    if kind == ValueKind.SEQUENCE:
        return "[" + " ".join(_format(v, False) for v in value) + "]"
    return str(value)


def format_value(value: Any) -> str:
    """Renders a value the way an action prints it. Missing values raise."""
    return _format(value, True)


def _plain_for_dump(value: Any) -> Any:
    if isinstance(value, MissingValue):
        raise UndefinedReferenceError(value.path)
    if isinstance(value, Mapping):
        return {k: _plain_for_dump(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain_for_dump(v) for v in value]
    return value


# --- DEFAULTS & LOGIC ---

def default(fallback: Any, *given: Any) -> Any:
    if not given or not is_truthy(given[-1]):
        return fallback
    return given[-1]


def empty(value: Any = None) -> bool:
    return not is_truthy(value)


def required(message: str, value: Any) -> Any:
    if isinstance(value, MissingValue):
        raise UndefinedReferenceError(value.path, message)
    if value is None or value == "":
        raise UndefinedReferenceError("<nil>", message)
    return value


def fail(message: Any) -> None:
    raise TemplateExecutionError(format_value(message))


def coalesce(*values: Any) -> Any:
    for value in values:
        if is_truthy(value):
            return value
    return None


def ternary(when_true: Any, when_false: Any, condition: Any) -> Any:
    return when_true if is_truthy(condition) else when_false


def _comparable(value: Any) -> Any:
    return None if isinstance(value, MissingValue) else value


def eq(first: Any, *others: Any) -> bool:
    if not others:
        raise TypeError("eq requires at least two arguments")
    left = _comparable(first)
    return any(left == _comparable(other) for other in others)


def ne(first: Any, second: Any) -> bool:
    return _comparable(first) != _comparable(second)


def _ordered(first: Any, second: Any) -> None:
    numeric = (ValueKind.INTEGER, ValueKind.FLOAT)
    kinds = (value_kind(first), value_kind(second))
    if kinds[0] in numeric and kinds[1] in numeric:
        return
    if kinds[0] == kinds[1] == ValueKind.STRING:
        return
    raise TypeError(f"incompatible types for comparison: {kinds[0].value} and {kinds[1].value}")


def lt(first: Any, second: Any) -> bool:
    _ordered(first, second)
    return first < second


def le(first: Any, second: Any) -> bool:
    _ordered(first, second)
    return first <= second


def gt(first: Any, second: Any) -> bool:
    _ordered(first, second)
    return first > second


def ge(first: Any, second: Any) -> bool:
    _ordered(first, second)
    return first >= second


def not_(value: Any) -> bool:
    return not is_truthy(value)


_GO_KINDS = {
    ValueKind.MAPPING: "map",
    ValueKind.SEQUENCE: "slice",
    ValueKind.STRING: "string",
    ValueKind.INTEGER: "int",
    ValueKind.FLOAT: "float64",
    ValueKind.BOOLEAN: "bool",
    ValueKind.NULL: "invalid",
}

_GO_TYPES = {
    ValueKind.MAPPING: "map[string]interface {}",
    ValueKind.SEQUENCE: "[]interface {}",
    ValueKind.INTEGER: "int64",
}


def kind_of(value: Any) -> str:
    return _GO_KINDS.get(value_kind(value), "invalid")


def kind_is(kind: str, value: Any) -> bool:
    return kind_of(value) == kind


def type_of(value: Any) -> str:
    kind = value_kind(value)
    return _GO_TYPES.get(kind, _GO_KINDS.get(kind, "<nil>"))


def type_is(type_name: str, value: Any) -> bool:
    return type_of(value) == type_name


# --- STRINGS ---

def quote(*values: Any) -> str:
    return " ".join(json.dumps(format_value(v), ensure_ascii=False) for v in values if v is not None)


def squote(*values: Any) -> str:
    return " ".join(f"'{format_value(v)}'" for v in values if v is not None)


def upper(text: Any) -> str:
    return format_value(text).upper()


def lower(text: Any) -> str:
    return format_value(text).lower()


def title(text: Any) -> str:
    return re.sub(r"(^|\s)(\S)", lambda m: m.group(1) + m.group(2).upper(), format_value(text))


def trim(text: Any) -> str:
    return format_value(text).strip()


def trim_prefix(prefix: str, text: Any) -> str:
    text = format_value(text)
    return text[len(prefix):] if prefix and text.startswith(prefix) else text


def trim_suffix(suffix: str, text: Any) -> str:
    text = format_value(text)
    return text[:-len(suffix)] if suffix and text.endswith(suffix) else text


def trunc(length: int, text: Any) -> str:
    text = format_value(text)
    if length < 0:
        return text[length:] if -length < len(text) else text
    return text[:length]


def replace(old: str, new: str, text: Any) -> str:
    return format_value(text).replace(old, new)


def contains(needle: str, haystack: Any) -> bool:
    return needle in format_value(haystack)


def has_prefix(prefix: str, text: Any) -> bool:
    return format_value(text).startswith(prefix)


def has_suffix(suffix: str, text: Any) -> bool:
    return format_value(text).endswith(suffix)


def _apply_width(text: str, flags: str, width: str) -> str:
    if not width:
        return text
    size = int(width)
    if "-" in flags:
        return text.ljust(size)
    if "0" in flags:
        sign = text[0] if text[:1] in ("+", "-") else ""
        return sign + text[len(sign):].rjust(size - len(sign), "0")
    return text.rjust(size)


def printf(fmt: str, *args: Any) -> str:
    """Subset of Go's fmt.Sprintf: %s %v %q %d %f %e %g %t %x %X %%."""
    out: List[str] = []
    pos = 0
    remaining = list(args)
    for match in _PRINTF_VERB.finditer(fmt):
        out.append(fmt[pos:match.start()])
        pos = match.end()
        flags, width, precision, verb = match.groups()
        if verb == "%":
            out.append("%")
            continue
        if not remaining:
            out.append(f"%!{verb}(MISSING)")
            continue
        arg = remaining.pop(0)

        if verb in "sv":
            text = format_value(arg)
            if precision is not None and verb == "s":
                text = text[:int(precision)]
        elif verb == "q":
            text = json.dumps(format_value(arg), ensure_ascii=False)
        elif verb == "d":
            if isinstance(arg, bool) or not isinstance(arg, int):
                # A non-integer operand is reported, never truncated
                out.append(f"%!d({type_of(arg)}={format_value(arg)})")
                continue
            text = str(arg)
            if "+" in flags and arg >= 0:
                text = "+" + text
        elif verb in "fFeEgG":
            spec = (f".{precision}" if precision is not None else "") + verb
            text = format(float(arg), spec)
        elif verb == "t":
            text = "true" if is_truthy(arg) else "false"
        elif verb in "xX":
            text = format(int(arg), verb) if not isinstance(arg, str) else arg.encode().hex()
            if verb == "X":
                text = text.upper()
        else:
            text = f"%!{verb}({format_value(arg)})"
        out.append(_apply_width(text, flags, width))
    out.append(fmt[pos:])
    if remaining:
        extras = ", ".join(format_value(a) for a in remaining)
        out.append(f"%!(EXTRA {extras})")
    return "".join(out)


def print_(*args: Any) -> str:
    # Go's Sprint only separates operands when neither side is a string
    out: List[str] = []
    for i, arg in enumerate(args):
        if i > 0 and not isinstance(arg, str) and not isinstance(args[i - 1], str):
            out.append(" ")
        out.append(format_value(arg))
    return "".join(out)


def cat(*args: Any) -> str:
    return " ".join(format_value(a) for a in args if a is not None)


def join(separator: str, items: Any) -> str:
    if isinstance(items, (list, tuple)):
        return separator.join(format_value(i) for i in items if i is not None)
    return format_value(items)


def indent(spaces: int, text: Any) -> str:
    pad = " " * int(spaces)
    return pad + format_value(text).replace("\n", "\n" + pad)


def nindent(spaces: int, text: Any) -> str:
    return "\n" + indent(spaces, text)


# --- SERIALIZATION & CONVERSION ---

def to_yaml(value: Any) -> str:
    yaml = YAML(typ="rt")
    yaml.default_flow_style = False
    yaml.width = 4096
    stream = io.StringIO()
    yaml.dump(_plain_for_dump(value), stream)
    text = stream.getvalue()
    # Top-level scalars get an explicit document end marker
    if text.endswith("\n...\n"):
        text = text[:-len("...\n")]
    return text.rstrip("\n")


def to_json(value: Any) -> str:
    return json.dumps(_plain_for_dump(value), separators=(",", ":"), sort_keys=True, ensure_ascii=False)


def to_string(value: Any) -> str:
    return format_value(value)


def to_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if value is None:
        return 0
    if isinstance(value, str):
        try:
            return int(float(value)) if value.strip() else 0
        except ValueError:
            return 0
    return int(value)


def dict_(*pairs: Any) -> Dict[str, Any]:
    if len(pairs) % 2:
        pairs = pairs + ("",)
    return {format_value(pairs[i]): pairs[i + 1] for i in range(0, len(pairs), 2)}


def list_(*items: Any) -> List[Any]:
    return list(items)


def has_key(mapping: Any, key: str) -> bool:
    return isinstance(mapping, Mapping) and key in mapping


def get(mapping: Any, key: str) -> Any:
    if isinstance(mapping, Mapping) and key in mapping:
        return mapping[key]
    return ""


def keys(*mappings: Any) -> List[str]:
    found: List[str] = []
    for mapping in mappings:
        if isinstance(mapping, Mapping):
            found.extend(k for k in mapping if k not in found)
    return sorted(found, key=str)


def b64enc(text: Any) -> str:
    return base64.b64encode(format_value(text).encode("utf-8")).decode("ascii")


def b64dec(text: Any) -> str:
    return base64.b64decode(format_value(text).encode("ascii")).decode("utf-8")


def sha256sum(text: Any) -> str:
    return hashlib.sha256(format_value(text).encode("utf-8")).hexdigest()


def builtin_functions() -> Dict[str, Callable[..., Any]]:
    """
    Fresh name -> callable map. `and`, `or`, `include` and `tpl` are
    provided by the renderer because they need the evaluation context.
    """
    return {
        "default": default,
        "empty": empty,
        "required": required,
        "fail": fail,
        "coalesce": coalesce,
        "ternary": ternary,
        "eq": eq,
        "ne": ne,
        "lt": lt,
        "le": le,
        "gt": gt,
        "ge": ge,
        "not": not_,
        "kindOf": kind_of,
        "kindIs": kind_is,
        "typeOf": type_of,
        "typeIs": type_is,
        "quote": quote,
        "squote": squote,
        "upper": upper,
        "lower": lower,
        "title": title,
        "trim": trim,
        "trimPrefix": trim_prefix,
        "trimSuffix": trim_suffix,
        "trunc": trunc,
        "replace": replace,
        "contains": contains,
        "hasPrefix": has_prefix,
        "hasSuffix": has_suffix,
        "printf": printf,
        "print": print_,
        "cat": cat,
        "join": join,
        "indent": indent,
        "nindent": nindent,
        "toYaml": to_yaml,
        "toJson": to_json,
        "toString": to_string,
        "int": to_int,
        "dict": dict_,
        "list": list_,
        "hasKey": has_key,
        "get": get,
        "keys": keys,
        "b64enc": b64enc,
        "b64dec": b64dec,
        "sha256sum": sha256sum,
    }
