"""Rich console reporting for runs, check listings and the merge gate."""

from __future__ import annotations

from collections.abc import Iterable

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.table import Table

from hookgate.checks.base import CheckDefinition
from hookgate.config import Settings
from hookgate.constants import CheckStatus, Stage
from hookgate.merge_gate import GateStep
from hookgate.types import ChangeSet, CheckResult, RunSummary

TIPS = (
    "Run one stage: hookgate run --stage pre-commit",
    "Stream full output: export HOOKS_VERBOSE=1",
    "List checks: hookgate list",
)

STATUS_STYLES = {
    CheckStatus.PASSED: "green",
    CheckStatus.FAILED: "red",
    CheckStatus.SKIPPED: "dim",
    CheckStatus.ERROR: "bold red",
}


class RunReporter:
    """Human-readable progress report for an orchestrator run."""

    def __init__(self, console: Console | None = None, width: int = 75) -> None:
        self.console = console or Console()
        self.width = width

    def run_started(self, settings: Settings, change_set: ChangeSet) -> None:
        self.console.print("[bold blue]🚀 Complete Code Quality & Security Pipeline[/bold blue]")
        self.console.print(Rule(style="dim"), width=self.width)
        self.console.print(f"Stage: {settings.stage.value}")
        self.console.print(f"[cyan]Context: Processing {change_set.context} ({len(change_set)})[/cyan]\n")

    def check_started(self, definition: CheckDefinition) -> None:
        self.console.print(f"[bold blue]{definition.title}[/bold blue] - {definition.description}")
        self.console.print(Rule(style="dim"), width=self.width)

    def stream(self, text: str) -> None:
        self.console.out(text, end="", highlight=False)

    def check_finished(self, result: CheckResult) -> None:
        elapsed = f"[dim]({result.elapsed_seconds:.1f}s)[/dim]"
        if result.status is CheckStatus.PASSED:
            self.console.print(f"[green]✅ {result.title} passed[/green] {elapsed}")
        elif result.status is CheckStatus.SKIPPED:
            reason = f": {escape(result.notes[0])}" if result.notes else ""
            self.console.print(f"[dim]ℹ️  {result.title} skipped{reason}[/dim] {elapsed}")
        else:
            label = "errored" if result.status is CheckStatus.ERROR else "failed"
            self.console.print(f"[red]❌ {result.title} {label}[/red] {elapsed}")
            self.console.print("[yellow]Top findings:[/yellow]")
            for line in result.findings:
                self.console.print(escape(line), highlight=False)
            if result.hints:
                self.console.print("\n[cyan]Hints:[/cyan]")
                for hint in result.hints:
                    self.console.print(f" - {escape(hint)}", highlight=False)
            if result.log_path:
                self.console.print(f"\n[dim]Full log: {result.log_path}[/dim]")

        if result.status is CheckStatus.PASSED and result.notes:
            for note in result.notes:
                self.console.print(f"  [yellow]⚠ {escape(note)}[/yellow]", highlight=False)
        self.console.print()

    def run_finished(self, summary: RunSummary, exit_code: int) -> None:
        self.console.print(Rule(style="dim"), width=self.width)
        style = "green" if exit_code == 0 else "red"
        self.console.print(
            f"[{style}]Checks: {summary.total_checks} total, {summary.failed_checks} failed "
            f"({summary.critical_failures} critical), {summary.skipped_checks} skipped[/{style}]"
        )
        if summary.failed_names:
            self.console.print(f"[red]Failed: {', '.join(summary.failed_names)}[/red]")
        self.console.print("\n[dim]Tips:[/dim]")
        for tip in TIPS:
            self.console.print(f"  • {tip}")


def render_check_table(definitions: Iterable[CheckDefinition], stage: Stage | None = None) -> Table:
    """Table of registered checks."""
    title = f"Checks ({stage.value})" if stage else "Registered checks"
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Name", style="bold")
    table.add_column("Stage")
    table.add_column("Triggers")
    table.add_column("Critical", justify="center")
    table.add_column("Description")

    for definition in definitions:
        table.add_row(
            definition.name,
            definition.stage.value,
            definition.trigger_label,
            "[red]yes[/red]" if definition.critical else "no",
            definition.description,
        )
    return table


def print_gate_report(console: Console, steps: list[GateStep]) -> None:
    """Merge gate results grouped by section."""
    console.print("[bold blue]🔒 Merge Gate Checks (syntax & critical validation)[/bold blue]")
    section = None
    for step in steps:
        if step.section != section:
            section = step.section
            console.print(f"\n[bold]{escape(section)}[/bold]")
        mark = "[green]✓[/green]" if step.passed else "[red]✗[/red]"
        console.print(f"  {mark} {escape(step.label)}", highlight=False)

    failed = sum(1 for step in steps if not step.passed)
    console.print()
    if failed:
        console.print(f"[red]❌ Merge gate failed: {failed} issue(s) detected[/red]")
    else:
        console.print("[green]✅ Merge gate passed: no critical issues found[/green]")
