"""Security scan: wrapped scanners plus native secret and hygiene heuristics.

Scanner exit codes are reported as warnings only; the verdict comes from
the native findings, graded HIGH / MEDIUM / LOW.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from hookgate.changeset import JAVASCRIPT_FAMILY, classify_path
from hookgate.checks.base import CheckContext, Checker, run_step
from hookgate.constants import LARGE_FILE_BYTES, FileCategory, Severity
from hookgate.logging import get_logger
from hookgate.types import CheckOutcome

logger = get_logger("checks.security")

CONFIG_SUFFIXES = (".yaml", ".yml", ".json", ".env", ".config")
SECRET_ASSIGNMENT_RE = re.compile(r"(?:password|secret|key|token)[^=\n]*=\s*[^\s#]", re.IGNORECASE)
PLACEHOLDER_RE = re.compile(r"example|placeholder|xxx|changeme|<[^>]+>", re.IGNORECASE)
SECURITY_TERMS_RE = re.compile(r"password|secret|key|token|credential", re.IGNORECASE)

LICENSE_FILES = ("LICENSE", "LICENSE.txt", "LICENSE.md")
SECURITY_POLICY_FILES = ("SECURITY.md", ".github/SECURITY.md")

MAX_LISTED = 5


@dataclass
class SeverityTally:
    """Finding counts by severity."""

    high: int = 0
    medium: int = 0
    low: int = 0
    scan_warnings: list[str] = field(default_factory=list)

    def add(self, severity: Severity, count: int = 1) -> None:
        if severity is Severity.HIGH:
            self.high += count
        elif severity is Severity.MEDIUM:
            self.medium += count
        else:
            self.low += count


def find_secret_lines(text: str, limit: int = 3) -> list[str]:
    """Lines that look like a secret assignment, skipping obvious placeholders."""
    hits = []
    for line in text.splitlines():
        if SECRET_ASSIGNMENT_RE.search(line) and not PLACEHOLDER_RE.search(line):
            key, _, _ = line.partition("=")
            hits.append(f"{key.strip()}=***")
            if len(hits) >= limit:
                break
    return hits


class SecurityChecker(Checker):
    """Always-on security scan."""

    name = "security"

    def run(self, ctx: CheckContext) -> CheckOutcome:
        tally = SeverityTally()
        ctx.log.line(f"Context: scanning {ctx.change_set.context}")

        if ctx.change_set.has(FileCategory.PYTHON):
            self._scan_python(ctx, tally)
        if ctx.change_set.categories & JAVASCRIPT_FAMILY:
            self._scan_javascript(ctx, tally)
        if ctx.change_set.has(FileCategory.TERRAFORM):
            self._scan_terraform(ctx, tally)
        if ctx.change_set.has(FileCategory.DOCKER) or ctx.path("Dockerfile").exists() or ctx.path("docker-compose.yml").exists():
            self._scan_containers(ctx, tally)

        self._check_config_secrets(ctx, tally)
        self._check_large_files(ctx, tally)
        self._check_history(ctx, tally)
        self._check_policies(ctx, tally)

        return self._verdict(ctx, tally)

    # ------------------------------------------------------------------
    # Wrapped scanners
    # ------------------------------------------------------------------

    def _scanner(self, ctx: CheckContext, tally: SeverityTally, tool: str, command: list[str], description: str) -> None:
        result = run_step(ctx, tool, command, description)
        if result is None:
            return
        if result.success:
            ctx.log.line(f"  ✓ {tool} scan completed")
        else:
            tally.scan_warnings.append(f"{tool} exited with code {result.exit_code}")
            ctx.log.line(f"  ⚠ {tool} completed with warnings")

    def _scan_python(self, ctx: CheckContext, tally: SeverityTally) -> None:
        ctx.log.line("Python security scanning")
        self._scanner(ctx, tally, "bandit", ["bandit", "-r", ".", "-x", "./tests", "-q"], "Python security linter")
        self._scanner(ctx, tally, "safety", ["safety", "check", "--json"], "dependency vulnerability check")
        self._scanner(ctx, tally, "semgrep", ["semgrep", "--config=auto", "--quiet", "."], "security pattern detection")

    def _scan_javascript(self, ctx: CheckContext, tally: SeverityTally) -> None:
        ctx.log.line("JavaScript/TypeScript security scanning")
        if ctx.path("package.json").exists():
            self._scanner(ctx, tally, "npm", ["npm", "audit", "--audit-level=moderate"], "Node.js dependency audit")
        if ctx.path(".eslintrc.security.js").exists():
            self._scanner(
                ctx,
                tally,
                "npx",
                ["npx", "--no-install", "eslint", "--ext", ".js,.ts,.jsx,.tsx", ".", "--config", ".eslintrc.security.js"],
                "JavaScript security linting",
            )

    def _scan_terraform(self, ctx: CheckContext, tally: SeverityTally) -> None:
        ctx.log.line("Infrastructure as Code security scanning")
        tf_files = [f for f in ctx.change_set if FileCategory.TERRAFORM in classify_path(f)]
        for directory in sorted({str(PurePosixPath(f).parent) for f in tf_files}):
            ctx.log.line(f"Scanning {directory}...")
            self._scanner(ctx, tally, "tfsec", ["tfsec", directory, "--minimum-severity", "MEDIUM"], "Terraform security scanner")
            self._scanner(
                ctx, tally, "checkov", ["checkov", "-d", directory, "--framework", "terraform", "--quiet"], "policy-as-code scanner"
            )
            self._scanner(ctx, tally, "terrascan", ["terrascan", "scan", "-i", "terraform", "-d", directory], "IaC scanner")

    def _scan_containers(self, ctx: CheckContext, tally: SeverityTally) -> None:
        ctx.log.line("Container security scanning")
        self._scanner(
            ctx, tally, "trivy", ["trivy", "config", ".", "--severity", "HIGH,CRITICAL", "--exit-code", "0"], "config scanner"
        )
        dockerfiles = [f for f in ctx.repo.tracked_files() if PurePosixPath(f).name.startswith("Dockerfile")]
        if dockerfiles:
            self._scanner(ctx, tally, "hadolint", ["hadolint", *dockerfiles], "Dockerfile linter")
        self._scanner(ctx, tally, "docker-bench-security", ["docker-bench-security"], "Docker benchmark")

    # ------------------------------------------------------------------
    # Native heuristics
    # ------------------------------------------------------------------

    def _check_config_secrets(self, ctx: CheckContext, tally: SeverityTally) -> None:
        config_files = ctx.change_set.matching(*CONFIG_SUFFIXES)
        if not config_files:
            return
        ctx.log.line("Checking configuration files for secrets...")
        for rel in config_files:
            path = ctx.path(rel)
            if not path.is_file():
                continue
            try:
                text = path.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                logger.debug(f"Cannot read {rel}: {e}")
                continue
            hits = find_secret_lines(text)
            if hits:
                for hit in hits:
                    ctx.log.line(f"    {hit}")
                ctx.log.line(f"  ❌ Potential secrets found in {rel}")
                tally.add(Severity.HIGH)

    def _check_large_files(self, ctx: CheckContext, tally: SeverityTally) -> None:
        ctx.log.line("Checking for large files...")
        large = []
        for rel in ctx.repo.tracked_files():
            path = ctx.path(rel)
            try:
                if path.is_file() and path.stat().st_size > LARGE_FILE_BYTES:
                    large.append(rel)
            except OSError:
                continue
            if len(large) >= MAX_LISTED:
                break
        if large:
            ctx.log.line("  ⚠ Large files found (potential data leaks):")
            for rel in large:
                ctx.log.line(f"    {rel}")
            tally.add(Severity.MEDIUM)

    def _check_history(self, ctx: CheckContext, tally: SeverityTally) -> None:
        ctx.log.line("Quick git history check...")
        if any(SECURITY_TERMS_RE.search(subject) for subject in ctx.repo.recent_subjects(10)):
            ctx.log.line("  ⚠ Commit messages contain security-related terms")
            tally.add(Severity.LOW)

    def _check_policies(self, ctx: CheckContext, tally: SeverityTally) -> None:
        if not any(ctx.path(name).exists() for name in LICENSE_FILES):
            ctx.log.line("  ⚠ No LICENSE file found")
            tally.add(Severity.LOW)
        if not any(ctx.path(name).exists() for name in SECURITY_POLICY_FILES):
            ctx.log.line("  ⚠ No SECURITY.md file found")
            tally.add(Severity.LOW)

    # ------------------------------------------------------------------
    # Verdict
    # ------------------------------------------------------------------

    def _verdict(self, ctx: CheckContext, tally: SeverityTally) -> CheckOutcome:
        settings = ctx.settings
        notes: list[str] = []

        if tally.scan_warnings:
            ctx.log.line("Scan warnings:")
            for warning in tally.scan_warnings:
                ctx.log.line(f"  ⚠ {warning}")

        issues = 0
        if tally.high:
            ctx.log.line(f"❌ Found {tally.high} high severity issue(s)")
            notes.append(f"{tally.high} high severity")
            if settings.fail_on_high_severity:
                issues += tally.high
        if tally.medium:
            ctx.log.line(f"⚠ Found {tally.medium} medium severity issue(s)")
            notes.append(f"{tally.medium} medium severity")
            if settings.fail_on_medium_severity:
                issues += tally.medium
        if tally.low:
            ctx.log.line(f"ℹ Found {tally.low} low severity issue(s)")
            notes.append(f"{tally.low} low severity")
        if not (tally.high or tally.medium or tally.low):
            ctx.log.line("✅ No significant security issues found")

        if issues:
            ctx.log.line("Security scan failed - address issues before proceeding")
            ctx.log.line("To bypass: FAIL_ON_HIGH_SEVERITY=false git commit --no-verify")
        return CheckOutcome.from_issues(issues, notes=notes)

