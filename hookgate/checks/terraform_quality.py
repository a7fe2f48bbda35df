"""Terraform quality gate: fmt, validate, tflint, tfsec, checkov, docs and anti-patterns."""

from __future__ import annotations

import re
from pathlib import Path, PurePosixPath

from hookgate.checks.base import CheckContext, Checker, run_step
from hookgate.logging import get_logger
from hookgate.types import CheckOutcome

logger = get_logger("checks.terraform")

TF_SUFFIXES = (".tf", ".hcl")
REPOSITORY_SAMPLE = 50
CACHE_DIR = ".terragrunt-cache"

HARDCODED_SECRET_RE = re.compile(r"(?:password|secret|key)\s*=\s*\"[^$\"]")
AWS_RESOURCE_RE = re.compile(r"resource\s+\"aws_")
TAGS_RE = re.compile(r"\btags\s*=")
LEGACY_INTERPOLATION_RE = re.compile(r"=\s*\"\$\{[^}\"]*\}\"\s*$", re.MULTILINE)


def terraform_dirs(files: list[str]) -> list[str]:
    """Unique parent directories, sorted."""
    return sorted({str(PurePosixPath(f).parent) for f in files})


def find_antipatterns(text: str) -> list[str]:
    """Anti-pattern descriptions for one Terraform source."""
    problems = []
    if HARDCODED_SECRET_RE.search(text):
        problems.append("Potential hardcoded secrets")
    if AWS_RESOURCE_RE.search(text) and not TAGS_RE.search(text):
        problems.append("AWS resources without tags")
    if LEGACY_INTERPOLATION_RE.search(text):
        problems.append('Legacy "${...}" interpolation syntax')
    return problems


class TerraformQualityChecker(Checker):
    """Per-directory Terraform pipeline."""

    name = "terraform-quality"

    def run(self, ctx: CheckContext) -> CheckOutcome:
        files = [
            f for f in ctx.change_set.matching(*TF_SUFFIXES) if CACHE_DIR not in f and ctx.path(f).is_file()
        ]
        if not ctx.change_set.is_staged:
            files = files[:REPOSITORY_SAMPLE]
        if not files:
            return CheckOutcome.skipped("No Terraform files found")

        ctx.log.line(f"Context: validating {len(files)} Terraform file(s) from {ctx.change_set.context}")
        issues = 0
        fixed: list[str] = []

        for directory in terraform_dirs(files):
            ctx.log.line(f"Processing directory: {directory}")
            issues += self._directory(ctx, directory, fixed)

        issues += self._antipatterns(ctx, files)
        issues += self._terragrunt(ctx, [f for f in files if f.endswith(".hcl")])

        ctx.restage(fixed)
        if issues:
            ctx.log.line(f"⚠ Found {issues} Terraform issue(s)")
        else:
            ctx.log.line("✅ All Terraform checks passed")
        return CheckOutcome.from_issues(issues, fixed=len(fixed))

    def _tool(self, ctx: CheckContext, tool: str, command: list[str], description: str, cwd: Path) -> int:
        result = run_step(ctx, tool, command, description, cwd=cwd)
        if result is None:
            return 0
        if result.success:
            ctx.log.line(f"  ✓ {' '.join(command[:2])} passed")
            return 0
        ctx.log.line(f"  ⚠ {' '.join(command[:2])} found issues")
        return 1

    def _directory(self, ctx: CheckContext, directory: str, fixed: list[str]) -> int:
        cwd = ctx.path(directory)
        runner = ctx.runner
        issues = self._tool(ctx, "terraform", ["terraform", "fmt", "-check", "-recursive", "-diff"], "formatting", cwd)

        if runner.available("terraform"):
            initialized = (cwd / ".terraform").is_dir() or runner.succeeds(
                ["terraform", f"-chdir={cwd}", "init", "-backend=false"]
            )
            if initialized:
                issues += self._tool(ctx, "terraform", ["terraform", "validate"], "configuration validation", cwd)
            else:
                ctx.log.line(f"⚠ Terraform not initialized in {directory} - skipping validation")

        if runner.available("tflint"):
            ctx.log.line("Running tflint (Terraform linting)...")
            init = runner.run(["tflint", "--init"], cwd=cwd)
            lint = runner.run(["tflint"], cwd=cwd) if init.success else init
            if lint.success:
                ctx.log.line("  ✓ tflint passed")
            else:
                ctx.log.line("  ⚠ tflint found issues")
                issues += 1
        else:
            runner.missing("tflint", "Terraform linting")

        issues += self._tool(ctx, "tfsec", ["tfsec", ".", "--minimum-severity", "MEDIUM"], "security scanning", cwd)
        issues += self._tool(
            ctx, "checkov", ["checkov", "-d", ".", "--framework", "terraform", "--quiet"], "policy compliance", cwd
        )

        if ctx.settings.autofix:
            readme = f"{directory}/README.md" if directory != "." else "README.md"
            before = ctx.path(readme).read_bytes() if ctx.path(readme).is_file() else None
            docs = run_step(
                ctx,
                "terraform-docs",
                ["terraform-docs", "markdown", "table", "--output-file", "README.md", "."],
                "documentation generation",
                cwd=cwd,
            )
            if docs is not None:
                if not docs.success:
                    ctx.log.line("  ⚠ terraform-docs failed")
                    issues += 1
                elif ctx.path(readme).is_file() and ctx.path(readme).read_bytes() != before:
                    fixed.append(readme)
        return issues

    def _antipatterns(self, ctx: CheckContext, files: list[str]) -> int:
        ctx.log.line("Checking for Terraform anti-patterns...")
        found = 0
        for rel in files:
            try:
                text = ctx.path(rel).read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                logger.debug(f"Cannot read {rel}: {e}")
                continue
            for problem in find_antipatterns(text):
                ctx.log.line(f"  ⚠ {problem} in {rel}")
                found += 1
        if not found:
            ctx.log.line("  ✓ No anti-patterns detected")
        return found

    def _terragrunt(self, ctx: CheckContext, hcl_files: list[str]) -> int:
        if not hcl_files:
            return 0
        if not ctx.runner.available("terragrunt"):
            ctx.runner.missing("terragrunt", "HCL formatting")
            return 0
        issues = 0
        for rel in hcl_files:
            directory = str(PurePosixPath(rel).parent)
            result = ctx.runner.run(
                ["terragrunt", "hclfmt", "--terragrunt-check", "--terragrunt-working-dir", directory]
            )
            if result.success:
                ctx.log.line(f"  ✓ {rel} HCL formatting OK")
            else:
                ctx.log.line(f"  ⚠ {rel} HCL formatting issues")
                issues += 1
        return issues
