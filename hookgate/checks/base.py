"""Checker ABC, execution context and check definitions."""

from __future__ import annotations

import abc
import hashlib
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from hookgate.command_executor import CheckLog, ToolResult, ToolRunner
from hookgate.config import Settings
from hookgate.constants import FileCategory, Stage
from hookgate.git import GitRepo
from hookgate.types import ChangeSet, CheckOutcome


@dataclass
class CheckContext:
    """Everything a checker may look at while it runs."""

    repo_root: Path
    change_set: ChangeSet
    settings: Settings
    runner: ToolRunner
    repo: GitRepo

    @property
    def log(self) -> CheckLog:
        """The check's log (shortcut for ``runner.log``)."""
        return self.runner.log

    def path(self, relative: str | Path) -> Path:
        """Absolute path of a repo-relative file."""
        return self.repo_root / relative

    def restage(self, paths: list[str]) -> None:
        """Re-add auto-fixed files to the index."""
        if paths:
            self.log.line(f"Re-staging {len(paths)} fixed file(s)")
            self.repo.stage(paths)


def file_digests(root: Path, files: list[str]) -> dict[str, str]:
    """Content hash per file, for detecting what a formatter rewrote."""
    digests = {}
    for rel in files:
        try:
            digests[rel] = hashlib.sha256((root / rel).read_bytes()).hexdigest()
        except OSError:
            digests[rel] = ""
    return digests


def changed_files(root: Path, before: dict[str, str]) -> list[str]:
    after = file_digests(root, list(before))
    return [rel for rel, digest in before.items() if after[rel] != digest]


def run_step(
    ctx: CheckContext,
    tool: str,
    command: list[str],
    description: str,
    cwd: Path | str | None = None,
) -> ToolResult | None:
    """Run one tool step, or note the tool's absence and return None."""
    if not ctx.runner.available(tool):
        ctx.runner.missing(tool, description)
        return None
    ctx.log.line(f"Running {tool} ({description})...")
    return ctx.runner.run(command, cwd=cwd)


class Checker(abc.ABC):
    """Abstract base class for checks."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Unique name identifying this check."""

    @abc.abstractmethod
    def run(self, ctx: CheckContext) -> CheckOutcome:
        """Execute the check and report its outcome."""

    def is_applicable(self, change_set: ChangeSet) -> bool:
        """Extra applicability test beyond the category trigger."""
        return True


@dataclass(frozen=True)
class CheckDefinition:
    """Static description of a registered check."""

    name: str
    title: str
    description: str
    stage: Stage
    factory: Callable[[], Checker]
    triggers: frozenset[FileCategory] | None = None
    critical: bool = False
    # Runs even when the change-set is empty
    always_run: bool = False

    def runs_in(self, stage: Stage) -> bool:
        return self.stage is Stage.BOTH or self.stage is stage

    def triggered_by(self, change_set: ChangeSet) -> bool:
        """True when there is no trigger set (always) or it intersects the change-set."""
        if self.triggers is None:
            return True
        return bool(self.triggers & change_set.categories)

    def applies_to(self, stage: Stage, change_set: ChangeSet) -> bool:
        """Stage match and trigger match; an empty change-set only runs always-on checks."""
        if not self.runs_in(stage):
            return False
        if change_set.is_empty:
            return self.always_run
        return self.always_run or self.triggered_by(change_set)

    @property
    def trigger_label(self) -> str:
        if self.triggers is None:
            return "always"
        return ", ".join(sorted(c.value for c in self.triggers))
