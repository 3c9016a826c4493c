# src/kuberender/cli/formatter.py
from typing import Any, Dict, List

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from kuberender.core.models import DocumentFailure, RenderedDocument

# Diagnostics go to stderr so rendered manifests on stdout stay pipeable
console = Console(stderr=True)


class RenderFormatter:
    """
    RenderFormatter: the visual side of the CLI.
    Renders document tables, failures, warnings and the run summary.
    """

    def __init__(self, target: Console = None):
        self.console = target or console

    def print_header(self, subtitle: str, version: str):
        self.console.print(Panel.fit(
            f"[bold cyan]KubeRender v{version}[/bold cyan]",
            title=f"[bold white]{subtitle}[/bold white]",
            border_style="cyan"
        ))

    def print_document_table(self, documents: List[RenderedDocument], warnings: List[DocumentFailure]):
        table = Table(title="Rendered Documents", header_style="bold magenta")
        table.add_column("#", justify="right")
        table.add_column("Source", style="cyan")
        table.add_column("Kind", style="white")
        table.add_column("Name")
        table.add_column("Result", justify="center")

        flagged = {w.index for w in warnings}
        for doc in documents:
            table.add_row(
                str(doc.index),
                escape(doc.source or "-"),
                escape(str(doc.kind or "Unknown")),
                escape(str(doc.name or "-")),
                "⚠️" if doc.index in flagged else "✅"
            )
        self.console.print(table)

    def print_failures(self, failures: List[DocumentFailure], label: str = "Malformed document", style: str = "red"):
        for failure in failures:
            self.console.print(
                f"[bold {style}]{label} {failure.index}[/bold {style}] "
                f"[dim]({escape(failure.source or 'stream')})[/dim]: {escape(failure.message)}"
            )

    def print_summary(self, summary: Dict[str, Any]):
        kinds = ", ".join(f"{kind}={count}" for kind, count in sorted(summary["kinds"].items())) or "-"
        self.console.print(Panel(
            f"[bold white]Summary Report[/bold white]\n"
            f"════════════════════════════════════════\n"
            f"Chart:          {escape(summary['chart'])}\n"
            f"Release:        {escape(summary['release'])}\n"
            f"Value layers:   {summary['layers']}\n"
            f"Documents:      [green]{summary['documents']}[/green]\n"
            f"Malformed:      [red]{summary['malformed']}[/red]\n"
            f"Warnings:       [yellow]{summary['warnings']}[/yellow]\n"
            f"Kinds:          {escape(kinds)}",
            border_style="dim"
        ))

    def print_error(self, error: Exception, title: str = "Render failed"):
        self.console.print(Panel(
            escape(str(error)),
            title=f"[bold red]{title}[/bold red]",
            border_style="red"
        ))
