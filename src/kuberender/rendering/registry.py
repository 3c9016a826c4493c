#!/usr/bin/env python3
"""
KUBERENDER HELPER REGISTRY
--------------------------
Named sub-templates (`define` blocks) available to `include` and
`template`. The registry is an explicit value handed to the renderer at
construction time; there is no process-wide registry.

Author: KubeRender Team
Date: 2026-01-16
"""

import logging
from typing import Any, Dict, Iterable, List, Tuple

from kuberender.core.errors import UnknownHelperError
from kuberender.rendering.nodes import TemplateFragment

logger = logging.getLogger("kuberender.registry")


class HelperRegistry:
    """Maps helper names to their parsed bodies. Lookup is by name only."""

    def __init__(self):
        self._helpers: Dict[str, Tuple[Any, ...]] = {}
        self._origins: Dict[str, str] = {}

    @classmethod
    def from_fragments(cls, fragments: Iterable[TemplateFragment]) -> "HelperRegistry":
        registry = cls()
        for fragment in fragments:
            registry.register_fragment(fragment)
        return registry

    def register(self, name: str, body: Tuple[Any, ...], origin: str = "<inline>") -> None:
        if name in self._helpers:
            # Last definition wins, matching Helm's load order behaviour
            logger.warning(f"Helper '{name}' from {self._origins[name]} redefined in {origin}")
        self._helpers[name] = tuple(body)
        self._origins[name] = origin

    def register_fragment(self, fragment: TemplateFragment) -> None:
        for name, body in fragment.definitions:
            self.register(name, body, origin=fragment.name)

    def get(self, name: str) -> Tuple[Any, ...]:
        try:
            return self._helpers[name]
        except KeyError:
            raise UnknownHelperError(name)

    def origin(self, name: str) -> str:
        return self._origins.get(name, "<inline>")

    def names(self) -> List[str]:
        return sorted(self._helpers)

    def __contains__(self, name: str) -> bool:
        return name in self._helpers

    def __len__(self) -> int:
        return len(self._helpers)
