"""hookgate run command - execute the check pipeline for one stage."""

from pathlib import Path

import click
from rich.console import Console

from hookgate.commands._utils import load_settings
from hookgate.exceptions import ConfigurationError, NotAGitRepositoryError
from hookgate.git import GitRepo
from hookgate.logging import get_logger
from hookgate.orchestrator import Orchestrator
from hookgate.reporting import RunReporter

console = Console()
logger = get_logger("run")


@click.command()
@click.option(
    "--stage",
    type=click.Choice(["pre-commit", "pre-push"]),
    default=None,
    help="Stage to run (default: detected from the environment)",
)
@click.option("--verbose", "-v", is_flag=True, help="Stream tool output live")
@click.option("--no-autofix", is_flag=True, help="Report fixable problems instead of fixing them")
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for per-check logs",
)
def run(stage: str | None, verbose: bool, no_autofix: bool, log_dir: Path | None) -> None:
    """Run the applicable checks over the staged (or tracked) files.

    Exits 1 when the run fails under the configured exit policy.

    Examples:

        hookgate run

        hookgate run --stage pre-push --verbose

        HOOKS_EXIT_POLICY=critical hookgate run
    """
    try:
        repo = GitRepo.discover()
        settings = load_settings(repo, stage=stage, verbose=verbose, no_autofix=no_autofix, log_dir=log_dir)
        orchestrator = Orchestrator(settings, repo, listener=RunReporter(console))
        _, exit_code = orchestrator.run()

    except NotAGitRepositoryError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise SystemExit(1) from None
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise SystemExit(1) from None
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        raise SystemExit(130) from None

    raise SystemExit(exit_code)
