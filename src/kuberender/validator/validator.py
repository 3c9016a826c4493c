#!/usr/bin/env python3
"""
KUBERENDER VALIDATOR - The Judge
--------------------------------
Final structural gate on emitted documents: every object must carry its
identity (apiVersion, kind) and a named metadata block before the engine
hands it to a cluster-facing collaborator.

Author: KubeRender Team
Date: 2026-01-16
"""

import logging
from typing import Any, List, Mapping, Tuple

from kuberender.core.models import DocumentFailure, RenderedDocument

logger = logging.getLogger("kuberender.validator")

# Kinds that live outside any namespace
CLUSTER_SCOPED_KINDS = frozenset({
    "Namespace", "Node", "ClusterRole", "ClusterRoleBinding", "StorageClass",
    "PersistentVolume", "CustomResourceDefinition", "PriorityClass",
    "IngressClass", "MutatingWebhookConfiguration", "ValidatingWebhookConfiguration",
    "APIService",
})


class ManifestValidator:
    """Checks emitted documents. Never mutates them."""

    required_fields = ["apiVersion", "kind", "metadata"]

    def validate(self, document: Any, strict: bool = False) -> Tuple[bool, str]:
        content = document.content if isinstance(document, RenderedDocument) else document

        if not isinstance(content, Mapping):
            return False, "Document is not a mapping."

        # --- TEST 1: Identity & Metadata Presence ---
        for field in self.required_fields:
            if field not in content:
                return False, f"Missing required top-level field '{field}'."

        for field in ("apiVersion", "kind"):
            if not isinstance(content[field], str) or not content[field].strip():
                return False, f"Field '{field}' must be a non-empty string."

        metadata = content["metadata"]
        if not isinstance(metadata, Mapping):
            return False, "Field 'metadata' must be a mapping."

        # --- TEST 2: Object Name ---
        name = metadata.get("name")
        if not isinstance(name, str) or not name.strip():
            return False, "Field 'metadata.name' must be a non-empty string."

        # --- TEST 3: Namespace Scope (strict only) ---
        if strict and content["kind"] not in CLUSTER_SCOPED_KINDS and not metadata.get("namespace"):
            return False, f"{content['kind']} '{name}' has no metadata.namespace."

        return True, "Document passes structural checks."

    def validate_all(self, documents: List[RenderedDocument], strict: bool = False) -> List[DocumentFailure]:
        """Returns one entry per document that fails a check."""
        problems = []
        for document in documents:
            valid, message = self.validate(document, strict=strict)
            if not valid:
                logger.debug(f"Document {document.index} ({document.source}) failed validation: {message}")
                problems.append(DocumentFailure(document.index, message, document.source))
        return problems
