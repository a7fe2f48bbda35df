"""hookgate command-line interface."""

import click

from hookgate import __version__
from hookgate.commands import install, list_cmd, merge_gate, run, uninstall


@click.group()
@click.version_option(version=__version__, prog_name="hookgate")
def cli() -> None:
    """hookgate - pre-commit and pre-push quality and security pipeline.

    Detects the file types in the change-set, runs the applicable checks and
    folds their results into one exit code.
    """


# Register commands
cli.add_command(run)
cli.add_command(list_cmd, name="list")
cli.add_command(merge_gate)
cli.add_command(install)
cli.add_command(uninstall)


if __name__ == "__main__":
    cli()
