"""Kustomize validation for Kubernetes manifests.

Every affected kustomization is rendered with ``kubectl kustomize`` in a
bounded thread pool. All workers are joined before anything is reported,
and results are written to the log in sorted order.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from hookgate.checks.base import CheckContext, Checker
from hookgate.logging import get_logger
from hookgate.types import CheckOutcome

logger = get_logger("checks.kustomize")

KUSTOMIZATION_NAMES = ("kustomization.yaml", "kustomization.yml")
KUBERNETES_DIR = "kubernetes"
DISABLED_MARKER = "/.disabled/"
MAX_ERROR_LINES = 20


@dataclass(frozen=True)
class RenderResult:
    """Outcome of rendering one kustomization directory."""

    directory: str
    ok: bool
    output: str = ""


def nearest_kustomization(root: Path, rel_dir: str) -> str | None:
    """Walk up from ``rel_dir`` to the closest directory holding a kustomization file."""
    current = PurePosixPath(rel_dir)
    while str(current) not in ("", "."):
        if any((root / str(current) / name).is_file() for name in KUSTOMIZATION_NAMES):
            return str(current)
        current = current.parent
    if any((root / name).is_file() for name in KUSTOMIZATION_NAMES):
        return "."
    return None


def collect_targets(root: Path, changed: list[str], tracked: list[str], validate_all: bool) -> list[str]:
    """Kustomization directories to validate, sorted and de-duplicated."""
    if validate_all:
        dirs = {
            str(PurePosixPath(f).parent)
            for f in tracked
            if PurePosixPath(f).name in KUSTOMIZATION_NAMES and DISABLED_MARKER not in f"/{f}"
        }
        return sorted(dirs)

    targets: set[str] = set()
    for directory in sorted({str(PurePosixPath(f).parent) for f in changed}):
        found = nearest_kustomization(root, directory)
        if found is not None:
            targets.add(found)
    return sorted(targets)


class KustomizeChecker(Checker):
    """Render-checks kustomizations concurrently."""

    name = "kustomize"

    def run(self, ctx: CheckContext) -> CheckOutcome:
        settings = ctx.settings
        changed = [
            f for f in ctx.change_set if f.startswith(f"{KUBERNETES_DIR}/") or PurePosixPath(f).name in KUSTOMIZATION_NAMES
        ]
        if not changed and not settings.validate_all:
            return CheckOutcome.skipped("No Kubernetes changes")

        if not ctx.runner.available("kubectl"):
            ctx.runner.missing("kubectl", "kustomize validation")
            return CheckOutcome.skipped("kubectl not installed")

        tracked = ctx.repo.tracked_files() if settings.validate_all else []
        targets = collect_targets(ctx.repo_root, changed, tracked, settings.validate_all)
        if not targets:
            ctx.log.line("⚠ No kustomization files to validate")
            return CheckOutcome.skipped("No kustomization files to validate")

        workers = min(settings.max_parallel_jobs, len(targets))
        ctx.log.line(f"Found {len(targets)} kustomization(s); using {workers} parallel job(s)")

        results: dict[str, RenderResult] = {}
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(self._render, ctx, directory): directory for directory in targets}
            for future in as_completed(futures):
                directory = futures[future]
                try:
                    results[directory] = future.result()
                except Exception as e:  # noqa: BLE001 - a crashed worker counts as a failed render
                    logger.warning(f"Kustomize worker for {directory} raised: {e}")
                    results[directory] = RenderResult(directory, ok=False, output=str(e))

        failed = 0
        for directory in sorted(results):
            result = results[directory]
            if result.ok:
                ctx.log.line(f"✓ {directory}")
            else:
                failed += 1
                ctx.log.line(f"✗ FAILED: {directory}")
                for line in result.output.splitlines()[:MAX_ERROR_LINES]:
                    ctx.log.line(f"    {line}")

        passed = len(results) - failed
        if failed:
            ctx.log.line(f"❌ Kustomize validation failed ({failed} failed, {passed} passed)")
        else:
            ctx.log.line(f"✅ All {passed} kustomizations are valid")
        return CheckOutcome.from_issues(failed)

    @staticmethod
    def _render(ctx: CheckContext, directory: str) -> RenderResult:
        target = str(ctx.path(directory))
        with_helm = ctx.runner.run(["kubectl", "kustomize", target, "--enable-helm"], record=False)
        if with_helm.success:
            return RenderResult(directory, ok=True)
        plain = ctx.runner.run(["kubectl", "kustomize", target], record=False)
        if plain.success:
            return RenderResult(directory, ok=True)
        return RenderResult(directory, ok=False, output=plain.output)
