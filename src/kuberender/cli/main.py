#!/usr/bin/env python3
"""
KUBERENDER CLI
--------------
Command-line front end for the render engine:
1. render  - print (or write) the rendered manifests
2. lint    - render, then report every malformed or invalid document
3. values  - print the merged values a render would use, as YAML

Author: KubeRender Team
Date: 2026-01-16
"""

import argparse
import logging
import sys
from typing import List, Optional

from rich.logging import RichHandler
from rich.markup import escape
from ruamel.yaml import YAML

from kuberender.cli.formatter import RenderFormatter, console
from kuberender.core.config import RenderSettings
from kuberender.core.engine import RenderEngine
from kuberender.core.errors import RenderError
from kuberender.values.templated import load_context

VERSION = "1.0.0"


class KubeRenderCLI:
    """
    CLI wrapper that translates user commands into Engine actions.
    Exit status: 0 on success, 1 on any render, parse or validation error.
    """

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="kuberender",
            description="KubeRender - layered values and chart template rendering",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.formatter = RenderFormatter()
        self._setup_args()

    def _add_chart_args(self, parser: argparse.ArgumentParser):
        parser.add_argument("chart", help="Path to the chart directory")
        parser.add_argument("-f", "--values", action="append", default=[], metavar="FILE",
                            help="Values file layered over the chart defaults (repeatable)")
        parser.add_argument("--set", action="append", default=[], dest="set_values", metavar="K=V",
                            help="Override values on the command line (repeatable)")
        parser.add_argument("--set-string", action="append", default=[], dest="set_string_values",
                            metavar="K=V", help="Like --set but always keeps values as strings")
        parser.add_argument("--context", action="append", default=[], dest="context_values", metavar="K=V",
                            help="Variable for *.j2.yaml values templates (repeatable)")
        parser.add_argument("--context-file", action="append", default=[], dest="context_files", metavar="FILE",
                            help="YAML file of variables for *.j2.yaml values templates (repeatable)")
        parser.add_argument("--name", default="release-name", help="Release name (default: release-name)")
        parser.add_argument("-n", "--namespace", default="default", help="Release namespace")
        parser.add_argument("--kube-version", default="v1.31.0", help="Kubernetes version for .Capabilities")
        parser.add_argument("--strict", action="store_true",
                            help="Require metadata.namespace on namespaced kinds")

    def _setup_args(self):
        self.parser.add_argument("-v", "--version", action="version", version=f"kuberender v{VERSION}")
        self.parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
        subparsers = self.parser.add_subparsers(dest="command", metavar="Command")

        render_parser = subparsers.add_parser("render", help="Render chart templates to manifests")
        self._add_chart_args(render_parser)
        render_parser.add_argument("-o", "--output-dir", help="Write one file per template instead of stdout")
        render_parser.add_argument("--no-source-comments", action="store_true",
                                   help="Omit '# Source:' headers")

        lint_parser = subparsers.add_parser("lint", help="Render and report malformed or invalid documents")
        self._add_chart_args(lint_parser)

        values_parser = subparsers.add_parser("values", help="Show the merged values for a render")
        self._add_chart_args(values_parser)

    def _settings(self, args: argparse.Namespace) -> RenderSettings:
        return RenderSettings(
            release_name=args.name,
            namespace=args.namespace,
            kube_version=args.kube_version,
            strict=args.strict,
            source_comments=not getattr(args, "no_source_comments", False),
        )

    def _render_report(self, engine: RenderEngine, args: argparse.Namespace):
        context = load_context(args.context_files, args.context_values)
        return engine.render(args.values, args.set_values, args.set_string_values, context)

    def _render(self, args: argparse.Namespace) -> int:
        engine = RenderEngine(args.chart, self._settings(args))
        report = self._render_report(engine, args)

        if report.failures:
            # A stream with malformed documents is never emitted
            self.formatter.print_failures(report.failures)
            return 1
        self.formatter.print_failures(report.warnings, label="Invalid document", style="yellow")

        if args.output_dir:
            written = engine.write_manifests(report, args.output_dir)
            console.print(f"[green]Wrote {len(written)} file(s) to {args.output_dir}[/green]")
        else:
            sys.stdout.write(report.manifest)
            sys.stdout.flush()
        return 1 if report.warnings and args.strict else 0

    def _lint(self, args: argparse.Namespace) -> int:
        self.formatter.print_header("Chart Lint", VERSION)
        engine = RenderEngine(args.chart, self._settings(args))
        report = self._render_report(engine, args)

        self.formatter.print_document_table(report.documents, report.warnings)
        self.formatter.print_failures(report.failures)
        self.formatter.print_failures(report.warnings, label="Invalid document", style="yellow")
        self.formatter.print_summary(engine.generate_summary(report))
        return 0 if report.success and not report.warnings else 1

    def _values(self, args: argparse.Namespace) -> int:
        engine = RenderEngine(args.chart, self._settings(args))
        context = load_context(args.context_files, args.context_values)
        store = engine.build_values(args.values, args.set_values, args.set_string_values, context)
        console.print(f"[dim]Merged values from: {escape(', '.join(store.layer_names))}[/dim]")

        yaml = YAML(typ="rt")
        yaml.default_flow_style = False
        yaml.dump(store.merged(), sys.stdout)
        sys.stdout.flush()
        return 0

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Primary routing entry point. Returns the process exit status."""
        args = self.parser.parse_args(argv)

        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.WARNING,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )

        handlers = {"render": self._render, "lint": self._lint, "values": self._values}
        handler = handlers.get(args.command)
        if handler is None:
            self.parser.print_help()
            return 0

        try:
            return handler(args)
        except RenderError as e:
            self.formatter.print_error(e)
        except ValueError as e:
            self.formatter.print_error(e, title="Invalid arguments")
        except OSError as e:
            self.formatter.print_error(e, title="I/O error")
        return 1


def main(argv: Optional[List[str]] = None):
    """Application entry point with interrupt handling."""
    try:
        sys.exit(KubeRenderCLI().run(argv))
    except KeyboardInterrupt:
        console.print("\n[bold red]Terminated by user.[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
