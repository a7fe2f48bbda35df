"""Python quality gate: black, isort, flake8 and advisory mypy."""

from __future__ import annotations

from hookgate.checks.base import CheckContext, Checker, changed_files, file_digests, run_step
from hookgate.types import CheckOutcome

# Bound on files sampled when nothing is staged
REPOSITORY_SAMPLE = 20


class PythonQualityChecker(Checker):
    """Formatting, import order and lint for Python files."""

    name = "python-quality"

    def run(self, ctx: CheckContext) -> CheckOutcome:
        files = [f for f in ctx.change_set.matching(".py") if ctx.path(f).is_file()]
        if not ctx.change_set.is_staged:
            files = files[:REPOSITORY_SAMPLE]
        if not files:
            return CheckOutcome.skipped("No Python files found")

        ctx.log.line(f"Context: validating {len(files)} Python file(s) from {ctx.change_set.context}")
        issues = 0
        fixed: list[str] = []

        for tool, check_args, fix_args, label in (
            ("black", ["--check", "--diff"], ["-q"], "formatter"),
            ("isort", ["--check-only", "--diff"], ["-q"], "import sorting"),
        ):
            if ctx.settings.autofix:
                before = file_digests(ctx.repo_root, files)
                result = run_step(ctx, tool, [tool, *fix_args, *files], label)
                if result is None:
                    continue
                rewritten = changed_files(ctx.repo_root, before)
                fixed.extend(f for f in rewritten if f not in fixed)
                ctx.log.line(f"  ✓ {tool} rewrote {len(rewritten)} file(s)" if rewritten else f"  ✓ {tool}: nothing to fix")
            else:
                result = run_step(ctx, tool, [tool, *check_args, *files], label)
                if result is None:
                    continue
                if result.success:
                    ctx.log.line(f"  ✓ {tool} passed")
                else:
                    ctx.log.line(f"  ⚠ {tool} found issues (auto-fixable)")
                    issues += 1

        ctx.restage(fixed)

        result = run_step(ctx, "flake8", ["flake8", *files], "linter")
        if result is not None:
            if result.success:
                ctx.log.line("  ✓ flake8 linting passed")
            else:
                ctx.log.line("  ❌ flake8 found linting issues")
                issues += 1

        result = run_step(ctx, "mypy", ["mypy", "--ignore-missing-imports", *files], "type checker")
        if result is not None:
            if result.success:
                ctx.log.line("  ✓ mypy type checking passed")
            else:
                ctx.log.line("  ⚠ mypy found type issues (review recommended)")

        return CheckOutcome.from_issues(issues, fixed=len(fixed))
