"""hookgate merge-gate command - syntax and critical validation for CI."""

import click
from rich.console import Console

from hookgate.command_executor import CheckLog, ToolRunner
from hookgate.commands._utils import load_settings
from hookgate.exceptions import ConfigurationError, NotAGitRepositoryError
from hookgate.git import GitRepo
from hookgate.merge_gate import MergeGate
from hookgate.reporting import print_gate_report

console = Console()


@click.command("merge-gate")
@click.option("--verbose", "-v", is_flag=True, help="Stream tool output live")
def merge_gate(verbose: bool) -> None:
    """Validate changed files for merge safety.

    Uses the pull request range when GITHUB_BASE_REF is set, else the last
    commit, else the tracked files. Every step runs; exits 1 if any failed.
    """
    try:
        repo = GitRepo.discover()
        settings = load_settings(repo, verbose=verbose)
        echo = (lambda text: console.out(text, end="", highlight=False)) if settings.verbose else None

        with CheckLog(settings.log_dir / "merge-gate.log", echo=echo) as log:
            runner = ToolRunner(log, repo.root, timeout=settings.tool_timeout)
            gate = MergeGate(repo, runner)
            steps = gate.run()

    except NotAGitRepositoryError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise SystemExit(1) from None
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise SystemExit(1) from None
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        raise SystemExit(130) from None

    print_gate_report(console, steps)
    raise SystemExit(gate.exit_code)
