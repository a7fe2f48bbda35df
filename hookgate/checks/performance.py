"""Advisory performance probes run before a push.

Timings above threshold and oversized artifacts are reported as notes; the
check itself always passes.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path

from hookgate.checks.base import CheckContext, Checker
from hookgate.constants import CheckStatus
from hookgate.logging import get_logger
from hookgate.types import CheckOutcome

logger = get_logger("checks.performance")

MB = 1024 * 1024
BUNDLE_LIMIT_MB = 10
IMAGE_LIMIT_MB = 500
LOW_MEMORY_MB = 500
PROBE_IMAGE = "hookgate-perf-probe"


@dataclass(frozen=True)
class Probe:
    """A timed command with its threshold."""

    label: str
    command: list[str]
    threshold: float
    cwd: str = "."


def directory_size(path: Path) -> int:
    return sum(p.stat().st_size for p in path.rglob("*") if p.is_file())


def available_memory_mb(meminfo: Path = Path("/proc/meminfo")) -> int | None:
    """MemAvailable from /proc/meminfo, or None when unavailable."""
    try:
        text = meminfo.read_text()
    except OSError:
        return None
    match = re.search(r"^MemAvailable:\s+(\d+)\s+kB", text, re.MULTILINE)
    return int(match.group(1)) // 1024 if match else None


def vm_stat_free_mb(output: str) -> int | None:
    """Free memory from macOS ``vm_stat`` output."""
    page_size = re.search(r"page size of (\d+) bytes", output)
    free = re.search(r"Pages free:\s+(\d+)", output)
    if not free:
        return None
    size = int(page_size.group(1)) if page_size else 4096
    return int(free.group(1)) * size // MB


class PerformanceChecker(Checker):
    """Timed builds, artifact sizes and free memory."""

    name = "performance"

    def run(self, ctx: CheckContext) -> CheckOutcome:
        notes: list[str] = []
        for probe in self._probes(ctx):
            self._time(ctx, probe, notes)

        self._bundle_size(ctx, notes)
        self._image_size(ctx, notes)
        self._memory(ctx, notes)

        if notes:
            ctx.log.line(f"⚠ Found {len(notes)} performance issue(s)")
            ctx.log.line("Note: performance checks are advisory")
        else:
            ctx.log.line("✅ No performance regressions detected")
        return CheckOutcome(status=CheckStatus.PASSED, notes=notes)

    def _probes(self, ctx: CheckContext) -> list[Probe]:
        probes = []
        if ctx.path("backend/__init__.py").is_file():
            probes.append(Probe("Backend import time", ["python3", "-c", "import backend"], ctx.settings.performance_threshold))
        package_json = ctx.path("frontend/package.json")
        if package_json.is_file() and "build" in self._scripts(package_json):
            probes.append(Probe("Frontend build time", ["npm", "run", "build"], 30.0, cwd="frontend"))
        if ctx.path("Dockerfile").is_file():
            probes.append(Probe("Docker build time", ["docker", "build", "-t", PROBE_IMAGE, "."], 60.0))
        if ctx.path("terraform/main.tf").is_file():
            probes.append(Probe("Terraform plan time", ["terraform", "plan", "-out=tfplan"], 15.0, cwd="terraform"))
        return probes

    @staticmethod
    def _scripts(package_json: Path) -> dict:
        try:
            data = json.loads(package_json.read_text())
        except (OSError, ValueError):
            return {}
        scripts = data.get("scripts") if isinstance(data, dict) else None
        return scripts if isinstance(scripts, dict) else {}

    def _time(self, ctx: CheckContext, probe: Probe, notes: list[str]) -> None:
        if not ctx.runner.available(probe.command[0]):
            ctx.runner.missing(probe.command[0], probe.label.lower())
            return
        ctx.log.line(f"Running {probe.label}...")
        result = ctx.runner.run(probe.command, cwd=ctx.path(probe.cwd))
        seconds = result.duration_ms / 1000
        if not result.success:
            ctx.log.line(f"  ❌ {probe.label} failed to execute")
            notes.append(f"{probe.label} failed")
        elif seconds > probe.threshold:
            ctx.log.line(f"  ⚠ {probe.label} took {seconds:.2f}s (threshold: {probe.threshold}s)")
            notes.append(f"{probe.label} {seconds:.2f}s > {probe.threshold}s")
        else:
            ctx.log.line(f"  ✓ {probe.label} completed in {seconds:.2f}s")
        if probe.label.startswith("Terraform"):
            ctx.path(probe.cwd).joinpath("tfplan").unlink(missing_ok=True)

    def _bundle_size(self, ctx: CheckContext, notes: list[str]) -> None:
        for name in ("build", "dist"):
            bundle = ctx.path(f"frontend/{name}")
            if bundle.is_dir():
                size_mb = directory_size(bundle) // MB
                if size_mb > BUNDLE_LIMIT_MB:
                    ctx.log.line(f"  ⚠ Bundle size is {size_mb}MB (consider optimization)")
                    notes.append(f"Bundle size {size_mb}MB")
                else:
                    ctx.log.line(f"  ✓ Bundle size is {size_mb}MB")
                return

    def _image_size(self, ctx: CheckContext, notes: list[str]) -> None:
        if not ctx.path("Dockerfile").is_file() or not ctx.runner.available("docker"):
            return
        inspect = ctx.runner.run(["docker", "image", "inspect", "--format", "{{.Size}}", PROBE_IMAGE], record=False)
        if not inspect.success or not inspect.output.strip().isdigit():
            return
        size_mb = int(inspect.output.strip()) // MB
        if size_mb > IMAGE_LIMIT_MB:
            ctx.log.line(f"  ⚠ Docker image is {size_mb}MB (consider multi-stage build)")
            notes.append(f"Docker image {size_mb}MB")
        else:
            ctx.log.line(f"  ✓ Docker image size is {size_mb}MB")
        ctx.runner.run(["docker", "rmi", PROBE_IMAGE], record=False)

    def _memory(self, ctx: CheckContext, notes: list[str]) -> None:
        free_mb = available_memory_mb()
        if free_mb is None and ctx.runner.available("vm_stat"):
            free_mb = vm_stat_free_mb(ctx.runner.run(["vm_stat"], record=False).output)
        if free_mb is None:
            return
        if free_mb < LOW_MEMORY_MB:
            ctx.log.line(f"  ⚠ Low available memory: {free_mb}MB")
            notes.append(f"Low available memory: {free_mb}MB")
        else:
            ctx.log.line(f"  ✓ Available memory: {free_mb}MB")
