#!/usr/bin/env python3
"""
KUBERENDER ENGINE - The High Orchestrator
-----------------------------------------
Runs one render invocation end to end:
Values Store -> Template Renderer -> Manifest Emitter -> Validator.
Rendering is atomic (any template error aborts the whole invocation);
document parsing aggregates failures onto the report instead.

Author: KubeRender Team
Date: 2026-01-16
"""

import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from kuberender.chart.loader import Chart, load_chart
from kuberender.core.config import RenderSettings
from kuberender.core.errors import RenderError
from kuberender.core.models import DocumentFailure, RenderedDocument
from kuberender.emitting.emitter import ManifestEmitter
from kuberender.emitting.exporter import ManifestExporter
from kuberender.rendering.renderer import TemplateRenderer
from kuberender.validator.validator import ManifestValidator
from kuberender.values.store import ValuesStore
from kuberender.values.templated import is_values_template, load_values_template

logger = logging.getLogger("kuberender.engine")


@dataclass
class RenderReport:
    chart: str
    release: str
    values: Dict[str, Any]
    layers: List[str]
    documents: List[RenderedDocument] = field(default_factory=list)
    failures: List[DocumentFailure] = field(default_factory=list)
    warnings: List[DocumentFailure] = field(default_factory=list)
    manifest: str = ""
    timestamp: float = field(default_factory=time.time)

    @property
    def success(self) -> bool:
        return not self.failures

    def documents_by_source(self) -> Dict[str, List[RenderedDocument]]:
        grouped: Dict[str, List[RenderedDocument]] = {}
        for document in self.documents:
            grouped.setdefault(document.source or "manifest", []).append(document)
        return grouped


class RenderEngine:
    """
    Principal orchestrator for chart rendering. Holds only immutable
    collaborators, so `render()` can be called repeatedly with different
    override layers.
    """

    def __init__(self, chart: Union[Chart, str, Path], settings: Optional[RenderSettings] = None):
        self.chart = chart if isinstance(chart, Chart) else load_chart(chart)
        self.settings = settings or RenderSettings()
        self.renderer = TemplateRenderer(self.chart.registry)
        self.emitter = ManifestEmitter()
        self.exporter = ManifestExporter(source_comments=self.settings.source_comments)
        self.validator = ManifestValidator()

    def build_values(self, value_files: Iterable[Union[str, Path]] = (),
                     set_values: Iterable[str] = (),
                     set_string_values: Iterable[str] = (),
                     context: Optional[Dict[str, Any]] = None) -> ValuesStore:
        """`context` feeds the `*.j2.yaml` values templates among `value_files`."""
        store = ValuesStore(self.chart.values)
        for value_file in value_files:
            logger.debug(f"Adding values layer from {value_file}")
            if is_values_template(value_file):
                store.add_layer(str(value_file), load_values_template(value_file, context))
            else:
                store.add_file(value_file)
        store.add_set(set_values)
        store.add_set(set_string_values, force_string=True)
        return store

    def _context(self) -> Dict[str, Any]:
        return {
            "Release": self.settings.release_object(),
            "Chart": self.chart.chart_object(),
            "Capabilities": self.settings.capabilities_object(),
        }

    def render_stream(self, values: Dict[str, Any]) -> str:
        """
        Renders every manifest template in declaration order into one
        stream, each part tagged with a `# Source:` header.
        """
        context = self._context()
        parts: List[str] = []
        for fragment in self.chart.templates:
            rendered = self.renderer.render(fragment, values, context)
            if not rendered.strip():
                logger.debug(f"Template {fragment.name} rendered empty, skipping")
                continue
            body = rendered.strip("\n")
            parts.append(f"---\n# Source: {fragment.name}\n{body}\n")
        return "".join(parts)

    def render(self, value_files: Iterable[Union[str, Path]] = (),
               set_values: Iterable[str] = (),
               set_string_values: Iterable[str] = (),
               context: Optional[Dict[str, Any]] = None) -> RenderReport:
        # Phase 1: Values
        store = self.build_values(value_files, set_values, set_string_values, context)
        values = store.merged()

        # Phase 2: Render (atomic, errors propagate)
        stream = self.render_stream(values)

        # Phase 3: Emit (aggregating)
        result = self.emitter.parse(stream)
        for failure in result.failures:
            logger.error(f"Malformed document {failure.index} from {failure.source}: {failure.message}")

        # Phase 4: Validate
        warnings = self.validator.validate_all(result.documents, strict=self.settings.strict)

        report = RenderReport(
            chart=self.chart.name,
            release=self.settings.release_name,
            values=values,
            layers=store.layer_names,
            documents=result.documents,
            failures=result.failures,
            warnings=warnings,
            manifest=self.exporter.export(result.documents),
        )
        logger.info(
            f"Rendered {len(report.documents)} document(s) for release '{report.release}' "
            f"({len(report.failures)} malformed, {len(report.warnings)} warning(s))"
        )
        return report

    # --- PERSISTENCE ---

    def write_manifests(self, report: RenderReport, output_dir: Union[str, Path]) -> List[Path]:
        """Writes one file per source template under `output_dir`."""
        target_root = Path(output_dir).resolve()
        target_root.mkdir(parents=True, exist_ok=True)

        exporter = ManifestExporter(source_comments=self.settings.source_comments)
        # `# Source:` lines come from template output and may point anywhere;
        # every target is checked before anything is written
        targets = []
        for source, documents in report.documents_by_source().items():
            target = (target_root / source).resolve()
            if target_root not in target.parents:
                raise RenderError(f"refusing to write {source}: outside {target_root}")
            targets.append((target, documents))

        written: List[Path] = []
        for target, documents in targets:
            target.parent.mkdir(parents=True, exist_ok=True)
            self._atomic_write(target, exporter.export(documents))
            written.append(target)
            logger.info(f"Wrote {len(documents)} document(s) to {target}")
        return written

    def _atomic_write(self, target_path: Path, content: str) -> None:
        if not os.access(target_path.parent, os.W_OK):
            raise PermissionError(f"No write access to {target_path.parent}")
        temp_file = target_path.with_name(target_path.name + ".kuberender.tmp")
        try:
            temp_file.write_text(content, encoding="utf-8")
            os.replace(temp_file, target_path)
        except OSError as e:
            if temp_file.exists():
                temp_file.unlink()
            raise IOError(f"Atomic write failed for {target_path}: {e}")

    def generate_summary(self, report: RenderReport) -> Dict[str, Any]:
        kinds: Dict[str, int] = {}
        for document in report.documents:
            kinds[document.kind or "Unknown"] = kinds.get(document.kind or "Unknown", 0) + 1
        return {
            "chart": report.chart,
            "release": report.release,
            "layers": len(report.layers),
            "documents": len(report.documents),
            "malformed": len(report.failures),
            "warnings": len(report.warnings),
            "kinds": kinds,
            "summary_timestamp": time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(report.timestamp)),
        }
