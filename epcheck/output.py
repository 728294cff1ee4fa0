"""
Output formatters for analysis results: rich table, CSV, JSON, Markdown.

The analyzer never imports this module; it only produces an AnalysisSummary.
"""

from __future__ import annotations

import csv
import io
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Type

from rich import box
from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .base import AnalysisSummary, EndpointResult, EndpointStatus

TRUNCATE_AFTER = 3


@dataclass
class ReportContext:
    """Run metadata shown alongside the results."""
    spec_source: str = ""
    search_dir: str = "."
    exclude: List[str] = field(default_factory=list)
    unused_only: bool = False
    truncate: bool = False
    generated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def status_label(result: EndpointResult, symbols: bool = True) -> str:
    if result.status == EndpointStatus.USED:
        return "✓ USED" if symbols else "USED"
    return "✗ UNUSED" if symbols else "UNUSED"


def files_cell(result: EndpointResult, truncate: bool) -> str:
    """Base names of referencing files, or a count when truncated."""
    if not result.files:
        return "-"
    if truncate and len(result.files) > TRUNCATE_AFTER:
        return f"{len(result.files)} files (truncated)"
    return ", ".join(Path(f).name for f in result.files)


class OutputFormatter(ABC):
    """Base class for output formatters."""

    @abstractmethod
    def format(self, summary: AnalysisSummary, context: ReportContext) -> str:
        """Render the summary to a string."""
        pass

    @property
    @abstractmethod
    def file_extension(self) -> str:
        pass

    def write(self, summary: AnalysisSummary, context: ReportContext, console: Console):
        console.print(self.format(summary, context), markup=False, highlight=False, emoji=False, soft_wrap=True)


class TableFormatter(OutputFormatter):
    """Rich table with a summary panel, for terminals."""

    def renderables(self, summary: AnalysisSummary, context: ReportContext) -> list:
        header = [
            "[bold cyan]OpenAPI Endpoint Usage Report[/bold cyan]",
            f"Generated on {context.generated.strftime('%Y-%m-%d %H:%M:%S UTC')}",
            f"API Spec: {escape(context.spec_source)}",
            f"Search Dir: {escape(context.search_dir)}",
        ]
        if context.exclude:
            header.append(f"Excluding: {escape(', '.join(context.exclude))}")
        if context.unused_only:
            header.append("Filter: Unused endpoints only")

        t = Table(title=" Endpoint Usage", box=box.ROUNDED, header_style="bold magenta")
        t.add_column("Endpoint", style="cyan")
        t.add_column("Method", width=8)
        t.add_column("Status", width=10)
        t.add_column("Count", justify="right", width=6)
        t.add_column("Files", style="dim")

        for r in summary.results:
            color = "green" if r.status == EndpointStatus.USED else "red"
            t.add_row(
                Text(r.path),
                r.method,
                f"[{color}]{status_label(r)}[/{color}]",
                str(r.usage_count),
                Text(files_cell(r, context.truncate)),
            )

        txt = (
            f"[bold]Total endpoints:[/bold] {len(summary.results)}\n"
            f"[bold]Used:[/bold] [green]{summary.used_count}[/green]\n"
            f"[bold]Unused:[/bold] [red]{summary.unused_count}[/red]\n"
        )
        if summary.results:
            txt += f"[bold]Coverage:[/bold] {summary.coverage:.1f}%\n"
        txt += (
            f"[bold]Total file references:[/bold] {summary.total_file_references}\n"
            f"[bold]Files scanned:[/bold] {summary.total_files_scanned} in {summary.scan_time_ms}ms"
        )

        multi = [r for r in summary.results if r.usage_count >= 2]
        details = ["[bold cyan]Detailed File References (for endpoints with 2+ usages):[/bold cyan]"]
        if multi:
            for r in multi:
                details.append(f"  {r.method} {escape(r.path)}: {r.usage_count} files")
                details.extend(f"    - {escape(Path(f).name)}" for f in r.files)
        elif context.unused_only:
            details.append("  No unused endpoints have multiple file references.")
        else:
            details.append("  No endpoints with 2 or more file references found.")

        return [
            Panel("\n".join(header), border_style="cyan"),
            t,
            Panel(txt, title=" Summary", border_style="cyan"),
            Text.from_markup("\n".join(details)),
        ]

    def format(self, summary: AnalysisSummary, context: ReportContext) -> str:
        buf = io.StringIO()
        console = Console(file=buf, width=120, no_color=True, highlight=False)
        console.print(Group(*self.renderables(summary, context)))
        return buf.getvalue()

    @property
    def file_extension(self) -> str:
        return ".txt"

    def write(self, summary: AnalysisSummary, context: ReportContext, console: Console):
        for renderable in self.renderables(summary, context):
            console.print(renderable)


class CsvFormatter(OutputFormatter):

    HEADER = ["Endpoint", "Method", "Status", "Usage Count", "Files"]

    def format(self, summary: AnalysisSummary, context: ReportContext) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
        buf.write(",".join(self.HEADER) + "\n")
        for r in summary.results:
            writer.writerow([r.path, r.method, status_label(r, symbols=False),
                             r.usage_count, ";".join(r.files)])
        return buf.getvalue()

    @property
    def file_extension(self) -> str:
        return ".csv"


class JsonFormatter(OutputFormatter):

    def format(self, summary: AnalysisSummary, context: ReportContext) -> str:
        data = {
            "report": {
                "generated": context.generated.isoformat(),
                "api_spec": context.spec_source,
                "search_dir": context.search_dir,
                "files_scanned": summary.total_files_scanned,
                "scan_time_ms": summary.scan_time_ms,
            },
            "endpoints": [r.to_dict() for r in summary.results],
        }
        return json.dumps(data, indent=2)

    @property
    def file_extension(self) -> str:
        return ".json"


class MarkdownFormatter(OutputFormatter):

    @staticmethod
    def cell(text: str) -> str:
        return text.replace("|", "\\|")

    def format(self, summary: AnalysisSummary, context: ReportContext) -> str:
        lines = [
            "| Endpoint | Method | Status | Count | Files |",
            "|----------|--------|--------|-------|-------|",
        ]
        for r in summary.results:
            lines.append(
                f"| {self.cell(r.path)} | {r.method} | {status_label(r)} | {r.usage_count} "
                f"| {self.cell(files_cell(r, context.truncate))} |"
            )
        return "\n".join(lines) + "\n"

    @property
    def file_extension(self) -> str:
        return ".md"


FORMATTERS: Dict[str, Type[OutputFormatter]] = {
    "table": TableFormatter,
    "csv": CsvFormatter,
    "json": JsonFormatter,
    "markdown": MarkdownFormatter,
}


def get_formatter(name: str) -> OutputFormatter:
    try:
        return FORMATTERS[name.lower()]()
    except KeyError:
        raise ValueError(f"Unknown output format: {name} (choose from {', '.join(FORMATTERS)})")
