#!/usr/bin/env python3
"""
KUBERENDER VALUES STORE - Layered Configuration
-----------------------------------------------
Merges configuration layers (chart defaults, values files, --set overrides)
into one ValueNode. Later layers win; mappings merge key-wise, every other
value is replaced wholesale.

Author: KubeRender Team
Date: 2026-01-16
"""

import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ruamel.yaml import YAML, YAMLError

from kuberender.core.errors import TypeMismatchError, ValuesFileError
from kuberender.core.models import MissingValue, ValueKind, value_kind

# `--set` literals that resolve to something other than a string
_INT_PATTERN = re.compile(r"^[-+]?\d+$")


def plain(node: Any) -> Any:
    """
    Converts ruamel round-trip containers into plain dicts/lists.
    Always builds new containers, so the result shares nothing with the input.
    """
    if isinstance(node, Mapping):
        return {k: plain(v) for k, v in node.items()}
    if isinstance(node, (list, tuple)):
        return [plain(item) for item in node]
    return node


def _join(path: str, key: Any) -> str:
    return f"{path}.{key}" if path else str(key)


def _merge_into(base: Dict[str, Any], layer: Mapping, path: str) -> None:
    for key, incoming in layer.items():
        key_path = _join(path, key)

        # An explicit null removes a key set by an earlier layer
        if incoming is None:
            if key in base:
                del base[key]
            else:
                base[key] = None
            continue

        if key not in base or base[key] is None:
            base[key] = plain(incoming)
            continue

        existing = base[key]
        existing_is_map = isinstance(existing, Mapping)
        incoming_is_map = isinstance(incoming, Mapping)

        if existing_is_map and incoming_is_map:
            _merge_into(existing, incoming, key_path)
        elif existing_is_map != incoming_is_map:
            raise TypeMismatchError(
                key_path,
                value_kind(existing).value,
                value_kind(incoming).value,
            )
        else:
            base[key] = plain(incoming)


def merge(layers: Sequence[Mapping]) -> Dict[str, Any]:
    """
    Merges ValueNode layers depth-first, later layers taking precedence.

    Raises:
        TypeMismatchError: a layer puts a scalar/sequence where an earlier
            layer has a mapping, or the other way round.
    """
    result: Dict[str, Any] = {}
    for position, layer in enumerate(layers):
        if layer is None:
            continue
        if not isinstance(layer, Mapping):
            raise TypeMismatchError(f"<layer {position}>", ValueKind.MAPPING.value, value_kind(layer).value)
        _merge_into(result, layer, "")
    return result


def lookup(values: Any, path: Union[str, Sequence[str]]) -> Any:
    """Dotted-path lookup. Returns a MissingValue when any segment is absent."""
    parts = path.split(".") if isinstance(path, str) else list(path)
    display = ".".join(parts)
    current = values
    for part in parts:
        if not part:
            continue
        if not isinstance(current, Mapping) or part not in current:
            return MissingValue(display)
        current = current[part]
    return current


def load_values_file(path: Union[str, Path], text: Optional[str] = None) -> Dict[str, Any]:
    """
    Reads one values YAML file into a plain ValueNode. `text`, when given,
    is parsed in place of the file contents (a rendered values template).
    """
    file_path = Path(path)
    if text is None:
        try:
            text = file_path.read_text(encoding="utf-8-sig")
        except OSError as e:
            raise ValuesFileError(f"cannot read values file {file_path}: {e}")

    yaml = YAML(typ="rt")
    try:
        data = yaml.load(text)
    except YAMLError as e:
        raise ValuesFileError(f"invalid YAML in {file_path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise TypeMismatchError(str(file_path), ValueKind.MAPPING.value, value_kind(plain(data)).value)
    return plain(data)


# --- --set PARSING ---

def _split_unescaped(text: str, sep: str) -> List[str]:
    """Splits on `sep` except where it is escaped with a backslash."""
    parts, current, escaped = [], [], False
    for char in text:
        if escaped:
            if char != sep:
                current.append("\\")
            current.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == sep:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    if escaped:
        current.append("\\")
    parts.append("".join(current))
    return parts


def _typed(raw: str) -> Any:
    lowered = raw.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if lowered == "null":
        return None
    if _INT_PATTERN.match(raw) and not (len(raw.lstrip("+-")) > 1 and raw.lstrip("+-").startswith("0")):
        return int(raw)
    return raw


def _assign(target: Dict[str, Any], keys: List[str], value: Any) -> None:
    node = target
    walked: List[str] = []
    for key in keys[:-1]:
        walked.append(key)
        child = node.get(key)
        if child is None:
            child = {}
            node[key] = child
        elif not isinstance(child, dict):
            raise TypeMismatchError(".".join(walked), value_kind(child).value, ValueKind.MAPPING.value)
        node = child
    leaf = keys[-1]
    if isinstance(node.get(leaf), dict):
        raise TypeMismatchError(".".join(keys), ValueKind.MAPPING.value, value_kind(value).value)
    node[leaf] = value


def parse_set_values(expressions: Iterable[str], force_string: bool = False) -> Dict[str, Any]:
    """
    Parses `--set a.b=c,d=e` style expressions into a nested ValueNode.
    `\\.` and `\\,` keep literal dots and commas.
    """
    result: Dict[str, Any] = {}
    for expression in expressions:
        for pair in _split_unescaped(expression, ","):
            if not pair.strip():
                continue
            key_part, sep, raw_value = pair.partition("=")
            if not sep or not key_part.strip():
                raise ValueError(f"invalid --set expression '{pair}': expected key=value")
            keys = [k.replace("\\.", ".") for k in _split_unescaped(key_part.strip(), ".")]
            if any(not k for k in keys):
                raise ValueError(f"invalid --set key '{key_part}'")
            value = raw_value if force_string else _typed(raw_value)
            _assign(result, keys, value)
    return result


class ValuesStore:
    """
    Ordered, named collection of value layers.

    The store only records layers; `merged()` runs the pure merge each time
    it is called, so a store can be reused across invocations.
    """

    def __init__(self, defaults: Mapping = None):
        self._layers: List[Tuple[str, Dict[str, Any]]] = []
        if defaults:
            self.add_layer("defaults", defaults)

    def add_layer(self, name: str, layer: Mapping) -> "ValuesStore":
        self._layers.append((name, plain(layer or {})))
        return self

    def add_file(self, path: Union[str, Path]) -> "ValuesStore":
        return self.add_layer(str(path), load_values_file(path))

    def add_set(self, expressions: Iterable[str], force_string: bool = False) -> "ValuesStore":
        expressions = list(expressions)
        if expressions:
            label = "--set-string" if force_string else "--set"
            self.add_layer(label, parse_set_values(expressions, force_string=force_string))
        return self

    @property
    def layer_names(self) -> List[str]:
        return [name for name, _ in self._layers]

    def merged(self) -> Dict[str, Any]:
        return merge([layer for _, layer in self._layers])
