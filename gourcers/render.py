"""
Rendering functions for gourcers output.

This module handles all pretty-printing and table formatting.
Core functions return data, this module makes it human-readable.
"""

from typing import List, Tuple

from rich import box
from rich.console import Console
from rich.table import Table

from .domain.operation import PipelineSummary, TaskStatus
from .domain.repository import Repository
from .domain.rules import Exclude, Include, Verdict
from .infra.dependencies import DependencyStatus

console = Console(stderr=True)


def _table(title: str) -> Table:
    return Table(
        title=title,
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )


def render_decisions(decisions: List[Tuple[Repository, Verdict]]) -> None:
    """
    Render the rule engine's verdict for every repository.

    Args:
        decisions: (repository, verdict) pairs in catalog order
    """
    if not decisions:
        console.print("[yellow]No repositories found.[/yellow]")
        return

    table = _table("Selection")
    table.add_column("Repository", style="cyan")
    table.add_column("Verdict")
    table.add_column("Reason", style="dim")

    for repo, verdict in decisions:
        if isinstance(verdict, Include):
            label = "[green]include[/green]"
        elif isinstance(verdict, Exclude):
            label = "[red]exclude[/red]"
        else:
            label = "[yellow]ignore[/yellow]"
        table.add_row(repo.full_name, label, verdict.describe())

    console.print(table)
    kept = sum(1 for _, v in decisions if v.keep)
    console.print(f"{kept} of {len(decisions)} repositories selected")


def render_summary(summary: PipelineSummary) -> None:
    """Render per-repository task outcomes, failures first."""
    if not summary.results:
        return

    table = _table("Repositories")
    table.add_column("Repository", style="cyan")
    table.add_column("Status")
    table.add_column("Detail", style="dim")

    styles = {
        TaskStatus.SUCCESS: "green",
        TaskStatus.FAILED: "red",
        TaskStatus.CANCELLED: "yellow",
    }
    ordered = sorted(summary.results, key=lambda r: r.status == TaskStatus.SUCCESS)
    for result in ordered:
        style = styles[result.status]
        detail = result.error if result.error else (result.fetched or "")
        table.add_row(result.repo.full_name, f"[{style}]{result.status.value}[/{style}]", detail)

    console.print(table)


def render_dependencies(statuses: List[DependencyStatus]) -> None:
    """Render the result of probing external tools."""
    table = _table("Dependencies")
    table.add_column("Tool", style="cyan")
    table.add_column("Status")
    table.add_column("Path", style="dim")

    for status in statuses:
        if status.ok:
            label = "[green]ok[/green]"
        elif not status.found:
            label = "[red]missing[/red]"
        else:
            label = f"[red]{status.describe()}[/red]"
        table.add_row(status.tool, label, status.path or "")

    console.print(table)
