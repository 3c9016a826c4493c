#!/usr/bin/env python3
"""
KUBERENDER SETTINGS
-------------------
Invocation-wide knobs collected from the CLI and handed to the engine.

Author: KubeRender Team
Date: 2026-01-16
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class RenderSettings:
    release_name: str = "release-name"
    namespace: str = "default"
    kube_version: str = "v1.31.0"
    is_upgrade: bool = False
    revision: int = 1
    strict: bool = False            # Validator reports namespaced kinds without a namespace
    source_comments: bool = True    # Emit '# Source:' headers on exported documents

    def release_object(self) -> Dict[str, Any]:
        """The `.Release` object exposed to templates."""
        return {
            "Name": self.release_name,
            "Namespace": self.namespace,
            "Service": "KubeRender",
            "IsInstall": not self.is_upgrade,
            "IsUpgrade": self.is_upgrade,
            "Revision": self.revision,
        }

    def capabilities_object(self) -> Dict[str, Any]:
        version = self.kube_version.lstrip("v")
        major, _, rest = version.partition(".")
        minor = rest.split(".")[0] if rest else "0"
        return {
            "KubeVersion": {
                "Version": f"v{version}",
                "Major": major,
                "Minor": minor,
            }
        }
