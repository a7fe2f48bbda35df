"""JavaScript / TypeScript quality gate."""

from __future__ import annotations

from hookgate.checks.base import CheckContext, Checker
from hookgate.types import CheckOutcome

JS_SUFFIXES = (".js", ".jsx", ".ts", ".tsx")
TS_SUFFIXES = (".ts", ".tsx")
REPOSITORY_SAMPLE = 20
FRONTEND_DIR = "frontend"


def rebase_paths(files: list[str], prefix: str) -> list[str]:
    """Strip ``prefix/`` from paths that carry it."""
    marker = f"{prefix}/"
    return [f[len(marker):] if f.startswith(marker) else f for f in files]


class JavaScriptQualityChecker(Checker):
    """prettier, eslint and tsc inside the Node project, plus node syntax checks."""

    name = "javascript-quality"

    def run(self, ctx: CheckContext) -> CheckOutcome:
        files = [f for f in ctx.change_set.matching(*JS_SUFFIXES) if ctx.path(f).is_file()]
        if not ctx.change_set.is_staged:
            files = files[:REPOSITORY_SAMPLE]
        if not files:
            return CheckOutcome.skipped("No JavaScript/TypeScript files found")

        ctx.log.line(f"Context: validating {len(files)} JavaScript/TypeScript file(s)")
        issues = 0

        frontend = ctx.path(FRONTEND_DIR) / "package.json"
        if frontend.exists() or ctx.path("package.json").exists():
            issues += self._node_project(ctx, files, use_frontend=frontend.exists())
        else:
            ctx.log.line("⚠ No package.json found - limited JavaScript validation available")

        issues += self._syntax(ctx, files)

        if issues:
            ctx.log.line("Consider running 'prettier --write .' to auto-fix formatting")
        return CheckOutcome.from_issues(issues)

    def _node_project(self, ctx: CheckContext, files: list[str], use_frontend: bool) -> int:
        runner = ctx.runner
        cwd = ctx.path(FRONTEND_DIR) if use_frontend else ctx.repo_root
        local_files = rebase_paths(files, FRONTEND_DIR) if use_frontend else files
        issues = 0

        prettier = runner.npx_or_global("prettier", cwd=cwd)
        if prettier is None:
            runner.missing("prettier", "formatting check")
        else:
            ctx.log.line("Running prettier (formatter)...")
            if runner.run([*prettier, "--check", *local_files], cwd=cwd).success:
                ctx.log.line("  ✓ prettier formatting passed")
            else:
                ctx.log.line("  ⚠ prettier found formatting issues (auto-fixable)")
                issues += 1

        eslint = runner.npx_or_global("eslint", version_flag="-v", cwd=cwd)
        if eslint is None:
            runner.missing("eslint", "linting")
        else:
            ctx.log.line("Running eslint (linter)...")
            if runner.run([*eslint, *local_files], cwd=cwd).success:
                ctx.log.line("  ✓ eslint linting passed")
            else:
                ctx.log.line("  ❌ eslint found linting issues")
                issues += 1

        if any(f.endswith(TS_SUFFIXES) for f in files):
            tsc = runner.npx_or_global("tsc", version_flag="-v", cwd=cwd)
            if tsc is None:
                runner.missing("tsc", "type checking")
            else:
                ctx.log.line("Running TypeScript compiler...")
                if runner.run([*tsc, "--noEmit"], cwd=cwd).success:
                    ctx.log.line("  ✓ TypeScript compilation passed")
                else:
                    ctx.log.line("  ⚠ TypeScript found type issues")
                    issues += 1

        return issues

    def _syntax(self, ctx: CheckContext, files: list[str]) -> int:
        js_files = [f for f in files if f.endswith(".js")]
        if not js_files or not ctx.runner.available("node"):
            return 0
        ctx.log.line("Running basic syntax checks...")
        broken = 0
        for rel in js_files:
            if ctx.runner.run(["node", "--check", rel]).success:
                ctx.log.line(f"  ✓ {rel} syntax OK")
            else:
                ctx.log.line(f"  ❌ {rel} has syntax errors")
                broken += 1
        return broken
