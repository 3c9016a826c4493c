#!/usr/bin/env python3
"""
KUBERENDER CHART LOADER
-----------------------
Reads a chart directory once: Chart.yaml metadata, default values and
every template under templates/. Templates are parsed here and reused
for every render of the chart.

Author: KubeRender Team
Date: 2026-01-16
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ruamel.yaml import YAML, YAMLError

from kuberender.core.errors import ChartLoadError
from kuberender.rendering.nodes import TemplateFragment
from kuberender.rendering.parser import parse_template
from kuberender.rendering.registry import HelperRegistry
from kuberender.values.store import load_values_file, plain

logger = logging.getLogger("kuberender.chart")

TEMPLATE_SUFFIXES = (".yaml", ".yml", ".tpl")
IGNORED_TEMPLATES = ("NOTES.txt",)


@dataclass
class Chart:
    name: str
    path: Path
    version: str = "0.1.0"
    app_version: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    values: Dict[str, Any] = field(default_factory=dict)
    templates: List[TemplateFragment] = field(default_factory=list)    # Manifest templates, in order
    partials: List[TemplateFragment] = field(default_factory=list)     # `_`-prefixed helper files
    registry: HelperRegistry = field(default_factory=HelperRegistry)

    def chart_object(self) -> Dict[str, Any]:
        """The `.Chart` object exposed to templates."""
        obj = {
            "Name": self.name,
            "Version": self.version,
            "AppVersion": self.app_version or "",
        }
        for key, value in self.metadata.items():
            if key not in ("name", "version", "appVersion"):
                obj[key[:1].upper() + key[1:]] = value
        return obj


class ChartLoader:
    """Turns a chart directory into a Chart with a populated helper registry."""

    def _load_metadata(self, chart_dir: Path) -> Dict[str, Any]:
        chart_file = chart_dir / "Chart.yaml"
        if not chart_file.exists():
            logger.debug(f"No Chart.yaml in {chart_dir}, using directory name")
            return {}
        try:
            data = YAML(typ="rt").load(chart_file.read_text(encoding="utf-8-sig"))
        except YAMLError as e:
            raise ChartLoadError(f"invalid Chart.yaml: {e}", str(chart_file))
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ChartLoadError("Chart.yaml must be a mapping", str(chart_file))
        return plain(data)

    def _template_files(self, templates_dir: Path) -> List[Path]:
        if not templates_dir.is_dir():
            return []
        files = [
            f for f in templates_dir.rglob("*")
            if f.is_file() and f.suffix in TEMPLATE_SUFFIXES and f.name not in IGNORED_TEMPLATES
        ]
        return sorted(files, key=lambda f: f.relative_to(templates_dir).as_posix())

    def load(self, path: Union[str, Path]) -> Chart:
        chart_dir = Path(path).resolve()
        if not chart_dir.is_dir():
            raise ChartLoadError(f"chart directory not found: {chart_dir}")

        metadata = self._load_metadata(chart_dir)
        name = str(metadata.get("name") or chart_dir.name)

        values_file = chart_dir / "values.yaml"
        values = load_values_file(values_file) if values_file.exists() else {}

        chart = Chart(
            name=name,
            path=chart_dir,
            version=str(metadata.get("version", "0.1.0")),
            app_version=str(metadata["appVersion"]) if metadata.get("appVersion") is not None else None,
            metadata=metadata,
            values=values,
        )

        templates_dir = chart_dir / "templates"
        for template_file in self._template_files(templates_dir):
            relative = template_file.relative_to(templates_dir).as_posix()
            template_name = f"{name}/templates/{relative}"
            try:
                source = template_file.read_text(encoding="utf-8-sig")
            except (OSError, UnicodeDecodeError) as e:
                raise ChartLoadError(f"cannot read template: {e}", template_name)

            fragment = parse_template(source, template_name)
            chart.registry.register_fragment(fragment)

            # Files starting with '_' only contribute helper definitions
            if template_file.name.startswith("_") or template_file.suffix == ".tpl":
                chart.partials.append(fragment)
            else:
                chart.templates.append(fragment)

        logger.info(
            f"Loaded chart '{name}': {len(chart.templates)} template(s), "
            f"{len(chart.registry)} helper(s)"
        )
        return chart


def load_chart(path: Union[str, Path]) -> Chart:
    return ChartLoader().load(path)
