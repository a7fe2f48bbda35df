"""hookgate CLI commands."""

from hookgate.commands.install import install, uninstall
from hookgate.commands.list_cmd import list_cmd
from hookgate.commands.merge_gate import merge_gate
from hookgate.commands.run import run

__all__ = [
    "install",
    "list_cmd",
    "merge_gate",
    "run",
    "uninstall",
]
