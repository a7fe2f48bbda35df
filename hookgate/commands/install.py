"""hookgate install/uninstall commands - manage the git hook shims."""

import click
from rich.console import Console

from hookgate.exceptions import NotAGitRepositoryError
from hookgate.git import find_repo_root
from hookgate.hooks import install_hooks, uninstall_hooks

console = Console()


@click.command()
def install() -> None:
    """Install pre-commit and pre-push hooks that call ``hookgate run``."""
    try:
        root = find_repo_root()
    except NotAGitRepositoryError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise SystemExit(1) from None

    installed = install_hooks(root)
    if not installed:
        console.print("[red]Error:[/red] Could not install hooks")
        raise SystemExit(1)
    for name in installed:
        console.print(f"[green]✓[/green] Installed {name} hook")


@click.command()
def uninstall() -> None:
    """Remove hookgate hooks, restoring any hooks they replaced."""
    try:
        root = find_repo_root()
    except NotAGitRepositoryError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise SystemExit(1) from None

    removed = uninstall_hooks(root)
    if not removed:
        console.print("[yellow]No hookgate hooks installed[/yellow]")
        return
    for name in removed:
        console.print(f"[green]✓[/green] Removed {name} hook")
