"""Informational repository metrics collected before a push."""

from __future__ import annotations

from collections import Counter
from pathlib import PurePosixPath

from hookgate.checks.base import CheckContext, Checker
from hookgate.constants import CheckStatus
from hookgate.types import CheckOutcome

LANGUAGES: dict[str, tuple[str, ...]] = {
    "Python": (".py",),
    "JavaScript/TypeScript": (".js", ".ts"),
    "Terraform": (".tf",),
    "YAML": (".yml", ".yaml"),
}
HYGIENE_FILES = (
    ("Secrets baseline", ".secrets.baseline"),
    ("Gitignore", ".gitignore"),
    ("License file", "LICENSE"),
)
TOOL_OUTPUT_LINES = 10


def language_counts(files: list[str]) -> Counter[str]:
    """Number of files per tracked language."""
    counts: Counter[str] = Counter({name: 0 for name in LANGUAGES})
    for rel in files:
        suffix = PurePosixPath(rel).suffix
        for name, suffixes in LANGUAGES.items():
            if suffix in suffixes:
                counts[name] += 1
    return counts


class CodeMetricsChecker(Checker):
    """Repository overview, language breakdown and complexity."""

    name = "code-metrics"

    def run(self, ctx: CheckContext) -> CheckOutcome:
        tracked = ctx.repo.tracked_files()
        commits = ctx.repo.commit_count()

        ctx.log.line("Repository Overview:")
        ctx.log.line(f"  Lines of code: {self._line_count(ctx, tracked)}")
        ctx.log.line(f"  Files tracked: {len(tracked)}")
        ctx.log.line(f"  Contributors: {ctx.repo.contributor_count()}")
        ctx.log.line(f"  Commits: {commits if commits is not None else 'N/A'}")

        ctx.log.line("Language Breakdown:")
        if ctx.runner.available("cloc"):
            result = ctx.runner.run(["cloc", "--quiet", "--vcs=git"], record=False)
            for line in result.output.splitlines()[-TOOL_OUTPUT_LINES:]:
                ctx.log.line(f"  {line}")
        else:
            for name, count in language_counts(tracked).items():
                ctx.log.line(f"  {name}: {count} files")

        if ctx.runner.available("radon") and any(f.endswith(".py") for f in tracked):
            ctx.log.line("Python Complexity:")
            result = ctx.runner.run(["radon", "cc", ".", "-s"], record=False)
            for line in result.output.splitlines()[:5]:
                ctx.log.line(f"  {line}")

        ctx.log.line("Security Summary:")
        for label, name in HYGIENE_FILES:
            ctx.log.line(f"  {label}: {'Present' if ctx.path(name).is_file() else 'Missing'}")

        ctx.log.line("✅ Code metrics collection completed")
        return CheckOutcome(status=CheckStatus.PASSED)

    @staticmethod
    def _line_count(ctx: CheckContext, files: list[str]) -> int:
        total = 0
        for rel in files:
            try:
                with open(ctx.path(rel), "rb") as f:
                    total += sum(1 for _ in f)
            except OSError:
                continue
        return total
