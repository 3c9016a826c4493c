#!/usr/bin/env python3
"""
KUBERENDER CORE MODELS
----------------------
Defines the fundamental data structures shared across the render pipeline:
the ValueNode variant tag, the truthiness predicate, and the records the
Manifest Emitter produces.

Author: KubeRender Team
Date: 2026-01-16
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class ValueKind(Enum):
    """Variant tag of a ValueNode."""
    MAPPING = "mapping"
    SEQUENCE = "sequence"
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    NULL = "null"
    MISSING = "missing"


@dataclass(frozen=True)
class MissingValue:
    """
    Placeholder produced when a reference path is absent.

    It flows through pipelines so `default`, `empty` and `if` can act on it,
    and raises UndefinedReferenceError once it reaches the output.
    """
    path: str

    def __str__(self) -> str:
        return f"<missing {self.path}>"


def value_kind(value: Any) -> ValueKind:
    """Classifies a ValueNode. bool must be tested before int."""
    if isinstance(value, MissingValue):
        return ValueKind.MISSING
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, int):
        return ValueKind.INTEGER
    if isinstance(value, float):
        return ValueKind.FLOAT
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    if isinstance(value, (list, tuple)):
        return ValueKind.SEQUENCE
    return ValueKind.STRING


def is_truthy(value: Any) -> bool:
    """
    Conditional truthiness used by if/with/and/or/not.
    Empty mapping/sequence/string, zero, false, null and missing are falsy.
    """
    kind = value_kind(value)
    if kind in (ValueKind.NULL, ValueKind.MISSING):
        return False
    if kind == ValueKind.BOOLEAN:
        return value
    if kind in (ValueKind.INTEGER, ValueKind.FLOAT):
        return value != 0
    if kind in (ValueKind.STRING, ValueKind.MAPPING, ValueKind.SEQUENCE):
        return len(value) > 0
    return True


@dataclass(frozen=True)
class RenderedDocument:
    """
    One Kubernetes object recovered from the rendered stream.

    `index` is the position of the source chunk in the stream (blank and
    comment-only chunks are not counted); `source` is the template path
    from the `# Source:` header when present.
    """
    index: int
    content: Dict[str, Any]
    source: Optional[str] = None
    text: str = ""

    @property
    def kind(self) -> Optional[str]:
        return self.content.get("kind")

    @property
    def api_version(self) -> Optional[str]:
        return self.content.get("apiVersion")

    @property
    def metadata(self) -> Dict[str, Any]:
        meta = self.content.get("metadata")
        return meta if isinstance(meta, Mapping) else {}

    @property
    def name(self) -> Optional[str]:
        return self.metadata.get("name")

    @property
    def namespace(self) -> Optional[str]:
        return self.metadata.get("namespace")


@dataclass(frozen=True)
class DocumentFailure:
    index: int
    message: str
    source: Optional[str] = None


@dataclass
class EmitResult:
    """Non-raising outcome of splitting and parsing a rendered stream."""
    documents: List[RenderedDocument] = field(default_factory=list)
    failures: List[DocumentFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures
