#!/usr/bin/env python3
"""
KUBERENDER ERRORS
-----------------
Every failure raised by the render pipeline derives from RenderError so
callers can catch one type at the invocation boundary.

Author: KubeRender Team
Date: 2026-01-16
"""

from typing import Any, List, Optional


class RenderError(Exception):
    """Base class for all KubeRender failures."""

    def __init__(self, message: str, template: Optional[str] = None, line: Optional[int] = None):
        self.message = message
        self.template = template
        self.line = line
        super().__init__(self._format())

    def _format(self) -> str:
        if self.template and self.line:
            return f"{self.template}:{self.line}: {self.message}"
        if self.template:
            return f"{self.template}: {self.message}"
        return self.message

    def locate(self, template: Optional[str], line: Optional[int]) -> "RenderError":
        """Attaches a template location if the error does not carry one yet."""
        if self.template is None and template is not None:
            self.template = template
            self.line = line
            self.args = (self._format(),)
        return self


class TypeMismatchError(RenderError):
    """A values layer tried to merge a mapping into a scalar (or vice versa)."""

    def __init__(self, path: str, existing: str, incoming: str):
        self.path = path
        self.existing = existing
        self.incoming = incoming
        super().__init__(f"cannot merge {incoming} into {existing} at '{path}'")


class UndefinedReferenceError(RenderError):
    """A template referenced a path that is absent from the values."""

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        super().__init__(message or f"undefined reference '{path}'")


class UnknownHelperError(RenderError):
    """include/template named a helper that was never defined."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"no helper template named '{name}'")


class UnknownFunctionError(RenderError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"function '{name}' not defined")


class TemplateSyntaxError(RenderError):
    pass


class TemplateExecutionError(RenderError):
    pass


class ValuesFileError(RenderError):
    pass


class ChartLoadError(RenderError):
    pass


class MalformedDocumentError(RenderError):
    """
    Aggregated emit failure. Carries every failed document and the
    documents that parsed cleanly, so callers can still inspect them.
    """

    def __init__(self, failures: List[Any], documents: Optional[List[Any]] = None):
        self.failures = list(failures)
        self.documents = list(documents or [])
        details = "; ".join(f"document {f.index}: {f.message}" for f in self.failures)
        super().__init__(f"{len(self.failures)} malformed document(s): {details}")

    @property
    def indices(self) -> List[int]:
        return [f.index for f in self.failures]
