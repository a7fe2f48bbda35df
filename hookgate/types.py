"""hookgate result types."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from hookgate.constants import ChangeSource, CheckStatus, FileCategory, Stage


@dataclass(frozen=True)
class ChangeSet:
    """Read-only snapshot of the files a run looks at."""

    files: tuple[str, ...]
    source: ChangeSource
    categories: frozenset[FileCategory] = frozenset()
    # Staged deletions; never part of ``files``
    deleted: tuple[str, ...] = ()

    @property
    def context(self) -> str:
        """Human label for where the files came from."""
        return "staged files" if self.source is ChangeSource.STAGED else "repository files"

    @property
    def is_staged(self) -> bool:
        return self.source is ChangeSource.STAGED

    @property
    def is_empty(self) -> bool:
        """No files to look at and no staged deletions."""
        return not self.files and not self.deleted

    def has(self, category: FileCategory) -> bool:
        """Check whether any file falls into ``category``."""
        return category in self.categories

    def matching(self, *suffixes: str) -> list[str]:
        """Files whose name ends with one of ``suffixes``."""
        return [f for f in self.files if f.endswith(suffixes)]

    def __len__(self) -> int:
        return len(self.files)

    def __iter__(self):
        return iter(self.files)


@dataclass
class CheckOutcome:
    """What a checker reports back to the orchestrator."""

    status: CheckStatus
    issues: int = 0
    fixed: int = 0
    notes: list[str] = field(default_factory=list)

    @classmethod
    def from_issues(cls, issues: int, fixed: int = 0, notes: Iterable[str] = ()) -> CheckOutcome:
        """Build a passed/failed outcome from an issue count."""
        status = CheckStatus.FAILED if issues > 0 else CheckStatus.PASSED
        return cls(status=status, issues=issues, fixed=fixed, notes=list(notes))

    @classmethod
    def skipped(cls, reason: str) -> CheckOutcome:
        return cls(status=CheckStatus.SKIPPED, notes=[reason])

    @property
    def exit_code(self) -> int:
        return 1 if self.status in (CheckStatus.FAILED, CheckStatus.ERROR) else 0


@dataclass(frozen=True)
class CheckResult:
    """Result of one check invocation. Never mutated after creation."""

    name: str
    title: str
    status: CheckStatus
    exit_code: int
    critical: bool
    elapsed_seconds: float
    log_path: Path | None = None
    output: str = ""
    findings: tuple[str, ...] = ()
    hints: tuple[str, ...] = ()
    notes: tuple[str, ...] = ()
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def failed(self) -> bool:
        return self.status in (CheckStatus.FAILED, CheckStatus.ERROR)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "title": self.title,
            "status": self.status.value,
            "exit_code": self.exit_code,
            "critical": self.critical,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "log_path": str(self.log_path) if self.log_path else None,
            "findings": list(self.findings),
            "hints": list(self.hints),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class RunSummary:
    """Aggregate of a whole run, derived once from its results."""

    stage: Stage
    context: str
    results: tuple[CheckResult, ...]
    total_checks: int
    failed_checks: int
    critical_failures: int
    skipped_checks: int

    @classmethod
    def from_results(cls, stage: Stage, context: str, results: Iterable[CheckResult]) -> RunSummary:
        """Reduce a sequence of results into a summary."""
        results = tuple(results)
        failed = [r for r in results if r.failed]
        return cls(
            stage=stage,
            context=context,
            results=results,
            total_checks=len(results),
            failed_checks=len(failed),
            critical_failures=sum(1 for r in failed if r.critical),
            skipped_checks=sum(1 for r in results if r.status is CheckStatus.SKIPPED),
        )

    @property
    def non_critical_failures(self) -> int:
        return self.failed_checks - self.critical_failures

    @property
    def failed_names(self) -> list[str]:
        return [r.name for r in self.results if r.failed]

    @property
    def failed_logs(self) -> list[Path]:
        return [r.log_path for r in self.results if r.failed and r.log_path]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "stage": self.stage.value,
            "context": self.context,
            "total_checks": self.total_checks,
            "failed_checks": self.failed_checks,
            "critical_failures": self.critical_failures,
            "skipped_checks": self.skipped_checks,
            "results": [r.to_dict() for r in self.results],
        }
