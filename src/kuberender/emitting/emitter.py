#!/usr/bin/env python3
"""
KUBERENDER MANIFEST EMITTER (Phase 3)
-------------------------------------
Splits rendered text on `---` separators and parses every chunk into a
RenderedDocument. A broken chunk does not stop the scan: every failure is
collected, and `emit()` raises them together once the stream is done.

Author: KubeRender Team
Date: 2026-01-16
"""

import re
from typing import List, Mapping, Optional, Tuple

from ruamel.yaml import YAML, YAMLError

from kuberender.core.errors import MalformedDocumentError
from kuberender.core.models import DocumentFailure, EmitResult, RenderedDocument, value_kind

SEPARATOR_PATTERN = re.compile(r"^---[ \t]*(?:#.*)?$")
SOURCE_PATTERN = re.compile(r"^#\s*Source:\s*(?P<source>\S.*?)\s*$")


class ManifestEmitter:
    """
    Stateless: a fresh ruamel parser is built per call, so one emitter can
    be shared between threads.
    """

    def _parser(self) -> YAML:
        yaml = YAML(typ="rt")
        yaml.preserve_quotes = True
        return yaml

    def split(self, text: str) -> List[str]:
        """Returns the non-blank chunks of a multi-document stream, in order."""
        chunks: List[str] = []
        current: List[str] = []
        for line in text.replace("\r\n", "\n").split("\n"):
            if SEPARATOR_PATTERN.match(line):
                chunks.append("\n".join(current))
                current = []
            else:
                current.append(line)
        chunks.append("\n".join(current))
        return [chunk for chunk in chunks if chunk.strip()]

    def _source_of(self, chunk: str) -> Optional[str]:
        for line in chunk.splitlines():
            stripped = line.strip()
            if not stripped:
                continue
            match = SOURCE_PATTERN.match(stripped)
            if match:
                return match.group("source")
            if not stripped.startswith("#"):
                return None
        return None

    def _is_comment_only(self, chunk: str) -> bool:
        return all(not line.strip() or line.lstrip().startswith("#") for line in chunk.splitlines())

    def _describe(self, error: YAMLError) -> str:
        # ruamel messages span several lines; keep them on one
        return " ".join(part.strip() for part in str(error).splitlines() if part.strip())

    def _parse_chunk(self, index: int, chunk: str,
                     source: Optional[str]) -> Tuple[Optional[RenderedDocument], Optional[DocumentFailure]]:
        try:
            content = self._parser().load(chunk)
        except YAMLError as e:
            return None, DocumentFailure(index, self._describe(e), source)

        if content is None:
            return None, None
        if not isinstance(content, Mapping):
            kind = value_kind(content).value
            return None, DocumentFailure(index, f"top level is a {kind}, expected a mapping", source)
        return RenderedDocument(index=index, content=content, source=source, text=chunk), None

    def parse(self, text: str) -> EmitResult:
        """Parses every chunk, collecting documents and failures side by side."""
        result = EmitResult()
        source = None
        index = 0
        for chunk in self.split(text):
            # Chunks without a header belong to the last template that declared one
            source = self._source_of(chunk) or source
            if self._is_comment_only(chunk):
                continue
            document, failure = self._parse_chunk(index, chunk, source)
            if document is None and failure is None:
                # A bare `null` or `~` is an empty document, like a blank chunk
                continue
            index += 1
            if failure is not None:
                result.failures.append(failure)
            else:
                result.documents.append(document)
        return result

    def emit(self, text: str) -> List[RenderedDocument]:
        """
        Returns the documents in stream order.

        Raises:
            MalformedDocumentError: one or more chunks failed to parse. The
                error carries every failure and the documents that parsed.
        """
        result = self.parse(text)
        if result.failures:
            raise MalformedDocumentError(result.failures, result.documents)
        return result.documents


def emit(text: str) -> List[RenderedDocument]:
    return ManifestEmitter().emit(text)
