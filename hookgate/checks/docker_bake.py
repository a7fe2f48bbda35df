"""Docker Bake (buildx) HCL validation."""

from __future__ import annotations

import json
import re
from pathlib import PurePosixPath

from hookgate.checks.base import CheckContext, Checker
from hookgate.types import CheckOutcome

BAKE_NAMES = ("docker-bake.hcl", "bake.hcl")
_COMMON_PLATFORMS_RE = re.compile(r"target\s+\"_common\"\s*\{[^}]*?\bplatforms\s*=", re.DOTALL)
_ERROR_LINE_RE = re.compile(r"ERROR:|error:|failed")


def bake_entries(printed: str) -> list[str]:
    """Group and target names from ``docker buildx bake --print`` JSON."""
    try:
        data = json.loads(printed)
    except json.JSONDecodeError:
        return []
    names: list[str] = []
    for section in ("group", "target"):
        entries = data.get(section) if isinstance(data, dict) else None
        if isinstance(entries, dict):
            names.extend(str(key) for key in entries)
    return names


def style_warnings(text: str) -> list[str]:
    warnings = []
    if "\t" in text:
        warnings.append("contains tabs (prefer spaces)")
    if _COMMON_PLATFORMS_RE.search(text):
        warnings.append("'platforms' in _common target (use 'platform' instead)")
    return warnings


class DockerBakeChecker(Checker):
    """Validates bake files via ``docker buildx bake --print``."""

    name = "docker-bake"

    def run(self, ctx: CheckContext) -> CheckOutcome:
        files = [f for f in ctx.change_set if PurePosixPath(f).name in BAKE_NAMES and ctx.path(f).is_file()]
        if not files:
            return CheckOutcome.skipped("No bake files found")

        runner = ctx.runner
        if not runner.available("docker"):
            runner.missing("docker", "bake validation")
            return CheckOutcome.skipped("docker not installed")
        if not runner.succeeds(["docker", "buildx", "version"]):
            ctx.log.line("⚠ docker buildx not available, skipping bake validation")
            return CheckOutcome.skipped("docker buildx not available")

        ctx.log.line(f"Docker Bake validation ({ctx.change_set.context})")
        invalid = 0
        warnings = 0
        for rel in files:
            if self._validate(ctx, rel):
                ctx.log.line(f"  {rel}... ✓ valid")
                for warning in style_warnings(ctx.path(rel).read_text(encoding="utf-8", errors="replace")):
                    ctx.log.line(f"    ⚠ {warning}")
                    warnings += 1
            else:
                invalid += 1

        if invalid:
            ctx.log.line(f"❌ Docker Bake validation failed ({invalid} file(s))")
        else:
            suffix = f" (with {warnings} warning(s))" if warnings else ""
            ctx.log.line(f"✅ Bake files valid{suffix}")
        return CheckOutcome.from_issues(invalid)

    def _validate(self, ctx: CheckContext, rel: str) -> bool:
        pure = PurePosixPath(rel)
        cwd = ctx.path(str(pure.parent))
        base_cmd = ["docker", "buildx", "bake", "-f", pure.name, "--print"]

        printed = ctx.runner.run([*base_cmd, "default"], cwd=cwd, record=False)
        failure = None if printed.success else printed.output
        if failure is None:
            for entry in bake_entries(printed.output):
                result = ctx.runner.run([*base_cmd, entry], cwd=cwd, record=False)
                if not result.success:
                    failure = result.output
                    break

        if failure is None:
            return True
        ctx.log.line(f"  {rel}... ✗ invalid")
        ctx.log.line("    Error details:")
        details = [line for line in failure.splitlines() if _ERROR_LINE_RE.search(line)][:5]
        for line in details or failure.splitlines()[:5]:
            ctx.log.line(f"      {line}")
        return False
