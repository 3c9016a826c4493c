#!/usr/bin/env python3
"""
KUBERENDER TEMPLATE NODES
-------------------------
Immutable tree produced by the parser. A TemplateFragment is parsed once
and can be rendered any number of times, from any thread.

Author: KubeRender Team
Date: 2026-01-16
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


# --- EXPRESSIONS ---

@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Field:
    """`.a.b` relative to dot. An empty path is dot itself."""
    path: Tuple[str, ...]

    @property
    def reference(self) -> str:
        return "." + ".".join(self.path) if self.path else "."


@dataclass(frozen=True)
class Variable:
    """`$name.a.b`; `$` alone is the root context."""
    name: str
    path: Tuple[str, ...] = ()

    @property
    def reference(self) -> str:
        return self.name + "".join("." + p for p in self.path)


@dataclass(frozen=True)
class Identifier:
    """A function name."""
    name: str


@dataclass(frozen=True)
class Chain:
    """`(pipeline).a.b`"""
    operand: Any
    path: Tuple[str, ...]


@dataclass(frozen=True)
class Command:
    args: Tuple[Any, ...]


@dataclass(frozen=True)
class Pipeline:
    commands: Tuple[Command, ...]
    variables: Tuple[str, ...] = ()
    is_assign: bool = False     # `$x = ...` rebinds instead of declaring


# --- STRUCTURE ---

@dataclass(frozen=True)
class TextNode:
    text: str


@dataclass(frozen=True)
class ActionNode:
    pipeline: Pipeline
    line: int


@dataclass(frozen=True)
class IfNode:
    condition: Pipeline
    body: Tuple[Any, ...]
    else_body: Tuple[Any, ...]
    line: int


@dataclass(frozen=True)
class WithNode:
    pipeline: Pipeline
    body: Tuple[Any, ...]
    else_body: Tuple[Any, ...]
    line: int


@dataclass(frozen=True)
class RangeNode:
    pipeline: Pipeline
    body: Tuple[Any, ...]
    else_body: Tuple[Any, ...]
    line: int


@dataclass(frozen=True)
class TemplateCallNode:
    name: str
    pipeline: Optional[Pipeline]
    line: int


@dataclass(frozen=True)
class TemplateFragment:
    """
    Parsed template source: literal text interleaved with directives,
    plus the named helper bodies declared with `define`.
    """
    name: str
    nodes: Tuple[Any, ...]
    definitions: Tuple[Tuple[str, Tuple[Any, ...]], ...] = ()

    @property
    def helpers(self) -> Dict[str, Tuple[Any, ...]]:
        return dict(self.definitions)

    @property
    def is_literal(self) -> bool:
        return all(isinstance(node, TextNode) for node in self.nodes)
