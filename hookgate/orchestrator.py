"""hookgate orchestrator - dispatches checks over a change-set and decides the exit code."""

from __future__ import annotations

import shutil
import time
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from hookgate.changeset import resolve_change_set
from hookgate.checks import CheckRegistry, default_registry
from hookgate.checks.base import CheckContext, CheckDefinition, Checker
from hookgate.command_executor import CheckLog, ToolRunner
from hookgate.config import Settings
from hookgate.constants import CheckStatus, ExitPolicy
from hookgate.exceptions import CheckExecutionError, ToolMissingError
from hookgate.findings import extract_findings, fix_hints
from hookgate.git import GitRepo
from hookgate.logging import get_logger
from hookgate.types import ChangeSet, CheckOutcome, CheckResult, RunSummary

logger = get_logger("orchestrator")


class RunListener(Protocol):
    """Receives progress events while a run executes."""

    def run_started(self, settings: Settings, change_set: ChangeSet) -> None: ...

    def check_started(self, definition: CheckDefinition) -> None: ...

    def check_finished(self, result: CheckResult) -> None: ...

    def run_finished(self, summary: RunSummary, exit_code: int) -> None: ...

    def stream(self, text: str) -> None: ...


def decide_exit_code(summary: RunSummary, settings: Settings) -> int:
    """Fold a run summary into the process exit code.

    Critical failures fail the run only while ``fail_on_high_severity`` is
    set. Under the ``any`` policy every other failure fails it too; under
    ``critical`` nothing else does.
    """
    if summary.critical_failures > 0 and settings.fail_on_high_severity:
        return 1
    if settings.exit_policy is ExitPolicy.ANY and summary.non_critical_failures > 0:
        return 1
    return 0


class Orchestrator:
    """Run the applicable checks for one stage, sequentially."""

    def __init__(
        self,
        settings: Settings,
        repo: GitRepo,
        registry: CheckRegistry | None = None,
        listener: RunListener | None = None,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            settings: Run configuration (stage included)
            repo: Repository being checked
            registry: Check definitions (defaults to the built-in set)
            listener: Optional progress listener, e.g. the console reporter
            which: Binary lookup handed to every tool runner
        """
        self.settings = settings
        self.repo = repo
        self.registry = registry or default_registry()
        self.listener = listener
        self._which = which

    def resolve_change_set(self) -> ChangeSet:
        return resolve_change_set(self.repo, self.settings.file_limit)

    def select(self, change_set: ChangeSet) -> list[CheckDefinition]:
        """Definitions to run for this stage and change-set, in registry order."""
        selected = []
        for definition in self.registry.applicable(self.settings.stage, change_set):
            if self.settings.is_disabled(definition.name):
                logger.debug(f"Check {definition.name} disabled by configuration")
                continue
            selected.append(definition)
        return selected

    def run(self, change_set: ChangeSet | None = None) -> tuple[RunSummary, int]:
        """Execute the run.

        Args:
            change_set: Files to check (resolved from git when None)

        Returns:
            Tuple of (summary, exit_code)
        """
        if change_set is None:
            change_set = self.resolve_change_set()
        stage = self.settings.stage
        logger.info(
            f"Running {stage.value} over {len(change_set)} {change_set.context}",
            extra={"stage": stage.value},
        )
        if self.listener:
            self.listener.run_started(self.settings, change_set)

        results: list[CheckResult] = []
        for definition in self.select(change_set):
            checker = definition.factory()
            if not checker.is_applicable(change_set):
                logger.debug(f"Check {definition.name} not applicable")
                continue
            if self.listener:
                self.listener.check_started(definition)
            result = self.run_check(definition, change_set, checker)
            results.append(result)
            if self.listener:
                self.listener.check_finished(result)

        summary = RunSummary.from_results(stage, change_set.context, results)
        exit_code = decide_exit_code(summary, self.settings)
        logger.info(
            f"Run finished: {summary.failed_checks}/{summary.total_checks} failed, exit {exit_code}",
            extra={"stage": stage.value, "exit_code": exit_code, "summary": summary.to_dict()},
        )
        if self.listener:
            self.listener.run_finished(summary, exit_code)
        return summary, exit_code

    def run_check(
        self,
        definition: CheckDefinition,
        change_set: ChangeSet,
        checker: Checker | None = None,
    ) -> CheckResult:
        """Run one check with its own log and turn the outcome into a result."""
        log_path = self._log_path(definition.name)
        echo = self.listener.stream if self.listener and self.settings.verbose else None
        start = time.monotonic()

        with CheckLog(log_path, echo=echo) as log:
            runner = ToolRunner(log, self.repo.root, timeout=self.settings.tool_timeout, which=self._which)
            ctx = CheckContext(
                repo_root=self.repo.root,
                change_set=change_set,
                settings=self.settings,
                runner=runner,
                repo=self.repo,
            )
            outcome = self._execute(checker or definition.factory(), definition, ctx)
            output = log.text()

        elapsed = time.monotonic() - start
        failed = outcome.status in (CheckStatus.FAILED, CheckStatus.ERROR)
        logger.info(
            f"{definition.name}: {outcome.status.value} in {elapsed:.2f}s",
            extra={"check": definition.name, "exit_code": outcome.exit_code},
        )
        return CheckResult(
            name=definition.name,
            title=definition.title,
            status=outcome.status,
            exit_code=outcome.exit_code,
            critical=definition.critical,
            elapsed_seconds=elapsed,
            log_path=log_path,
            output=output,
            findings=tuple(extract_findings(output, self.settings.summary_lines)) if failed else (),
            hints=tuple(fix_hints(definition.name, output)) if failed else (),
            notes=tuple(outcome.notes),
        )

    def _execute(self, checker: Checker, definition: CheckDefinition, ctx: CheckContext) -> CheckOutcome:
        try:
            return checker.run(ctx)
        except ToolMissingError as e:
            ctx.runner.missing(e.tool, definition.name)
            return CheckOutcome.skipped(str(e))
        except Exception as e:  # noqa: BLE001 - a crashing checker is reported, the run continues
            error = CheckExecutionError(
                f"{definition.name} raised {type(e).__name__}: {e}",
                check_name=definition.name,
                details={"exception": type(e).__name__},
            )
            logger.error(error.message, exc_info=True, extra={"check": definition.name})
            ctx.log.line(f"❌ {error.message}")
            return CheckOutcome(status=CheckStatus.ERROR, issues=1, notes=[error.message])

    def _log_path(self, name: str) -> Path | None:
        try:
            self.settings.log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Cannot create log directory {self.settings.log_dir}: {e}")
            return None
        return self.settings.log_dir / f"{name}.log"
