"""Container security: hadolint, trivy and docker-compose heuristics."""

from __future__ import annotations

import re
from pathlib import PurePosixPath

from hookgate.checks.base import CheckContext, Checker, run_step
from hookgate.command_executor import ToolResult
from hookgate.logging import get_logger
from hookgate.types import CheckOutcome

logger = get_logger("checks.docker")

HADOLINT_IGNORED = ("DL3008", "DL3009", "DL3015", "DL4006")

_COMPOSE_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"privileged\s*:\s*true"), "Privileged containers detected"),
    (re.compile(r"network_mode\s*:\s*[\"']?host"), "Host network mode detected"),
    (re.compile(r"^\s*-\s*[\"']?(?:22|3389|5432|3306|6379|27017):", re.MULTILINE), "Sensitive ports exposed"),
    (re.compile(r"(?:PASSWORD|SECRET|KEY|TOKEN)\w*\s*[=:]\s*[^\s$\"'{][^\n]*"), "Potential secrets in environment variables"),
]


def is_dockerfile(path: str) -> bool:
    return PurePosixPath(path).name.startswith("Dockerfile")


def is_compose_file(path: str) -> bool:
    return "docker-compose" in PurePosixPath(path).name


def compose_problems(text: str) -> list[str]:
    """Heuristic findings for one docker-compose file."""
    return [message for pattern, message in _COMPOSE_RULES if pattern.search(text)]


class DockerSecurityChecker(Checker):
    """Dockerfile lint, config scan and compose review."""

    name = "docker-security"

    def run(self, ctx: CheckContext) -> CheckOutcome:
        files = [f for f in ctx.change_set if is_dockerfile(f) or is_compose_file(f) or f.endswith(".dockerignore")]
        if not files:
            return CheckOutcome.skipped("No Docker files found")

        ctx.log.line(f"Context: scanning {len(files)} Docker file(s) from {ctx.change_set.context}")
        issues = 0

        if any(is_dockerfile(f) for f in files):
            dockerfiles = [f for f in ctx.repo.tracked_files() if is_dockerfile(f)] or [f for f in files if is_dockerfile(f)]
            ignores = [arg for code in HADOLINT_IGNORED for arg in ("--ignore", code)]
            result = run_step(ctx, "hadolint", ["hadolint", *ignores, *dockerfiles], "Dockerfile linter")
            issues += self._tally(ctx, "hadolint", result)

        result = run_step(
            ctx,
            "trivy",
            ["trivy", "config", ".", "--severity", "HIGH,CRITICAL", "--exit-code", "1"],
            "configuration scanner",
        )
        issues += self._tally(ctx, "trivy config", result)
        if result is not None:
            self._scan_recent_image(ctx)

        for rel in (f for f in files if is_compose_file(f)):
            issues += self._review_compose(ctx, rel)

        if issues:
            ctx.log.line(f"⚠ Found {issues} potential container security issue(s)")
        else:
            ctx.log.line("✅ All Docker security checks passed")
        return CheckOutcome.from_issues(issues)

    @staticmethod
    def _tally(ctx: CheckContext, label: str, result: ToolResult | None) -> int:
        if result is None:
            return 0
        if result.success:
            ctx.log.line(f"  ✓ {label} scan completed")
            return 0
        ctx.log.line(f"  ⚠ {label} found issues")
        return 1

    def _scan_recent_image(self, ctx: CheckContext) -> None:
        """Advisory image scan of the most recent local image."""
        if not ctx.runner.available("docker"):
            return
        listing = ctx.runner.run(["docker", "images", "--format", "{{.Repository}}:{{.Tag}}"], record=False)
        images = [line for line in listing.output.splitlines() if line and "<none>" not in line] if listing.success else []
        if not images:
            return
        ctx.log.line(f"Running trivy image on {images[0]} (advisory)...")
        ctx.runner.run(["trivy", "image", "--severity", "HIGH,CRITICAL", "--exit-code", "0", images[0]])

    def _review_compose(self, ctx: CheckContext, rel: str) -> int:
        path = ctx.path(rel)
        if not path.is_file():
            return 0
        ctx.log.line(f"Checking {rel}...")
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug(f"Cannot read {rel}: {e}")
            return 0
        problems = compose_problems(text)
        for problem in problems:
            ctx.log.line(f"  ⚠ {problem}")
        if not problems:
            ctx.log.line(f"  ✓ No security issues found in {rel}")
        return len(problems)
