#!/usr/bin/env python3
"""
KUBERENDER EXPORTER - Canonical Manifest Output
-----------------------------------------------
Converts RenderedDocuments back into one multi-document YAML stream with
Kubernetes-conventional key order and `# Source:` headers.

Author: KubeRender Team
Date: 2026-01-16
"""

import io
from typing import Any, Iterable, List, Mapping

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from kuberender.core.models import RenderedDocument


class ManifestExporter:
    """
    The Reconstructor: dumps documents with a stable, readable layout.
    """

    preferred_order = ["apiVersion", "kind", "metadata", "spec", "data", "status"]

    def __init__(self, source_comments: bool = True):
        self.source_comments = source_comments

    def _dumper(self) -> YAML:
        yaml = YAML(typ="rt")
        yaml.preserve_quotes = True
        # Standard K8s: 2 spaces, sequences indented under their key
        yaml.indent(mapping=2, sequence=4, offset=2)
        yaml.width = 4096
        return yaml

    def _ordered(self, data: Any, top: bool = False) -> Any:
        """
        Recursively sorts keys into preferred order while keeping comments
        and list order intact.
        """
        if isinstance(data, list):
            return [self._ordered(item) for item in data]
        if not isinstance(data, Mapping):
            return data

        ordered = CommentedMap()
        comments = getattr(data, "ca", None)
        # The top-level header holds the old `# Source:` line, rewritten on export
        if comments is not None and comments.comment and not top:
            ordered.ca.comment = comments.comment

        keys = list(data.keys())

        def sort_key(key: Any) -> int:
            if key in self.preferred_order:
                return self.preferred_order.index(key)
            # Other keys follow in their original order
            return len(self.preferred_order) + keys.index(key)

        for key in sorted(keys, key=sort_key):
            ordered[key] = self._ordered(data[key])
            if comments is not None and key in comments.items:
                ordered.ca.items[key] = comments.items[key]

        return ordered

    def export_document(self, document: RenderedDocument) -> str:
        stream = io.StringIO()
        if self.source_comments and document.source:
            stream.write(f"# Source: {document.source}\n")
        self._dumper().dump(self._ordered(document.content, top=True), stream)
        return stream.getvalue()

    def export(self, documents: Iterable[RenderedDocument]) -> str:
        """Every document is introduced by an explicit `---` separator."""
        parts: List[str] = []
        for document in documents:
            if not document.content:
                continue
            parts.append("---\n" + self.export_document(document))
        return "".join(parts)
