"""hookgate list command - show the registered checks."""

import click
from rich.console import Console

from hookgate.checks import default_registry
from hookgate.constants import Stage
from hookgate.reporting import render_check_table

console = Console()


@click.command("list")
@click.option(
    "--stage",
    type=click.Choice(["pre-commit", "pre-push"]),
    default=None,
    help="Only checks that run in this stage",
)
def list_cmd(stage: str | None) -> None:
    """List registered checks with their stage and triggers."""
    registry = default_registry()
    if stage:
        selected = Stage(stage)
        console.print(render_check_table(registry.for_stage(selected), selected))
    else:
        console.print(render_check_table(registry.all()))
