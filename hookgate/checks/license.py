"""License compliance review for the project and its dependencies.

Findings are surfaced as notes; the check never fails a push.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field

from hookgate.checks.base import CheckContext, Checker
from hookgate.constants import CheckStatus
from hookgate.types import CheckOutcome

ACCEPTABLE = ("MIT", "Apache", "BSD", "ISC")
PROBLEMATIC = ("GPL", "AGPL", "LGPL")
UNKNOWN = ("", "Unknown", "UNKNOWN", "UNLICENSED")
GPL_PACKAGES = ("mysql-python", "PyQt5", "PyQt6", "GPL")
SOURCE_SUFFIXES = (".py", ".js", ".ts")
COPYRIGHT_RE = re.compile(r"copyright|©|\(c\)", re.IGNORECASE)
COPYRIGHT_SAMPLE = 10
COPYRIGHT_MIN_PERCENT = 10


@dataclass
class LicenseReview:
    """Classified dependency licenses."""

    acceptable: list[str] = field(default_factory=list)
    problematic: list[str] = field(default_factory=list)
    review: list[str] = field(default_factory=list)

    @property
    def issues(self) -> int:
        return len(self.problematic) + len(self.review)


def classify_license(license_str: str) -> str:
    """'problematic', 'unknown', 'acceptable' or 'review'."""
    if any(p in license_str for p in PROBLEMATIC):
        return "problematic"
    if license_str.strip() in UNKNOWN:
        return "unknown"
    if any(a in license_str for a in ACCEPTABLE):
        return "acceptable"
    return "review"


def review_packages(pairs: list[tuple[str, str]]) -> LicenseReview:
    review = LicenseReview()
    for name, license_str in pairs:
        kind = classify_license(license_str)
        if kind == "acceptable":
            review.acceptable.append(f"{name}: {license_str}")
        elif kind == "problematic":
            review.problematic.append(f"{name}: {license_str} (potentially problematic)")
        elif kind == "unknown":
            review.review.append(f"{name}: license unknown")
        else:
            review.review.append(f"{name}: {license_str} (review needed)")
    return review


def pip_licenses_pairs(output: str) -> list[tuple[str, str]]:
    """(name, license) pairs from ``pip-licenses --format=json``."""
    try:
        data = json.loads(output)
    except ValueError:
        return []
    if not isinstance(data, list):
        return []
    return [(str(p.get("Name", "Unknown")), str(p.get("License", "Unknown"))) for p in data if isinstance(p, dict)]


def license_checker_pairs(output: str) -> list[tuple[str, str]]:
    """(name, license) pairs from ``license-checker --json``."""
    try:
        data = json.loads(output)
    except ValueError:
        return []
    if not isinstance(data, dict):
        return []
    pairs = []
    for package, info in data.items():
        licenses = info.get("licenses", "Unknown") if isinstance(info, dict) else "Unknown"
        if isinstance(licenses, list):
            licenses = ", ".join(licenses)
        pairs.append((package.rsplit("@", 1)[0] or package, str(licenses)))
    return pairs


def detect_project_license(text: str) -> str | None:
    if re.search(r"MIT License", text, re.IGNORECASE):
        return "MIT"
    if re.search(r"Apache License", text, re.IGNORECASE):
        return "Apache 2.0"
    if re.search(r"BSD", text, re.IGNORECASE):
        return "BSD"
    return None


def base_image_note(image: str) -> str | None:
    """Review note for a Dockerfile base image, or None when it is known-compatible."""
    if "alpine" in image or "ubuntu" in image or "debian" in image:
        return None
    if "centos" in image or "rhel" in image:
        return f"{image}: review Red Hat licensing terms"
    return f"{image}: license unknown - manual review needed"


class LicenseChecker(Checker):
    """Project and dependency license review."""

    name = "license"

    def run(self, ctx: CheckContext) -> CheckOutcome:
        notes: list[str] = []
        self._project_license(ctx, notes)
        self._python(ctx, notes)
        self._node(ctx, notes)
        self._base_images(ctx, notes)
        self._copyright(ctx)

        if notes:
            ctx.log.line(f"⚠ Found {len(notes)} potential license issue(s)")
            ctx.log.line("Tip: install pip-licenses and license-checker for dependency coverage")
        else:
            ctx.log.line("✅ No license compliance issues detected")
        return CheckOutcome(status=CheckStatus.PASSED, notes=notes)

    def _project_license(self, ctx: CheckContext, notes: list[str]) -> None:
        license_file = ctx.path("LICENSE")
        if license_file.is_file():
            kind = detect_project_license(license_file.read_text(encoding="utf-8", errors="replace"))
            if kind:
                ctx.log.line(f"✓ LICENSE file found (type: {kind})")
            else:
                ctx.log.line("⚠ LICENSE type not automatically detected")
                notes.append("LICENSE type not detected")
        elif ctx.path("LICENSE.txt").is_file() or ctx.path("LICENSE.md").is_file():
            ctx.log.line("✓ License file found")
        else:
            ctx.log.line("❌ No LICENSE file found")
            notes.append("No LICENSE file")

    def _python(self, ctx: CheckContext, notes: list[str]) -> None:
        if not any(ctx.path(n).is_file() for n in ("requirements.txt", "pyproject.toml", "setup.py")):
            return
        ctx.log.line("Python dependencies license check")
        if ctx.runner.available("pip-licenses"):
            result = ctx.runner.run(["pip-licenses", "--format=json"], record=False)
            self._report(ctx, review_packages(pip_licenses_pairs(result.output)), notes)
            return

        ctx.runner.missing("pip-licenses", "Python license inventory")
        requirements = ctx.path("requirements.txt")
        if requirements.is_file():
            text = requirements.read_text(encoding="utf-8", errors="replace").lower()
            for package in GPL_PACKAGES:
                if package.lower() in text:
                    ctx.log.line(f"  ❌ Found potentially problematic package: {package}")
                    notes.append(f"requirements.txt: {package}")

    def _node(self, ctx: CheckContext, notes: list[str]) -> None:
        if not ctx.path("package.json").is_file():
            return
        ctx.log.line("Node.js dependencies license check")
        if not ctx.runner.available("license-checker"):
            ctx.runner.missing("license-checker", "Node.js license inventory")
            return
        cwd = ctx.path("frontend") if ctx.path("frontend").is_dir() else ctx.repo_root
        result = ctx.runner.run(["license-checker", "--json"], cwd=cwd, record=False)
        self._report(ctx, review_packages(license_checker_pairs(result.output)), notes)

    def _report(self, ctx: CheckContext, review: LicenseReview, notes: list[str]) -> None:
        if not (review.acceptable or review.issues):
            ctx.log.line("  ⚠ No packages found or license inventory failed")
            return
        for line in review.acceptable:
            ctx.log.line(f"  ✓ {line}")
        for line in review.problematic:
            ctx.log.line(f"  ❌ {line}")
        for line in review.review:
            ctx.log.line(f"  ⚠ {line}")
        notes.extend(review.problematic)
        notes.extend(review.review)

    def _base_images(self, ctx: CheckContext, notes: list[str]) -> None:
        dockerfile = ctx.path("Dockerfile")
        if not dockerfile.is_file():
            return
        ctx.log.line("Docker base image license check")
        images = []
        for line in dockerfile.read_text(encoding="utf-8", errors="replace").splitlines():
            parts = line.split()
            if len(parts) >= 2 and parts[0].upper() == "FROM":
                images.append(parts[1])
        for image in images[:5]:
            note = base_image_note(image)
            if note is None:
                ctx.log.line(f"  ✓ {image}: compatible licenses")
            else:
                ctx.log.line(f"  ⚠ {note}")
                notes.append(note)

    def _copyright(self, ctx: CheckContext) -> None:
        sources = [f for f in ctx.repo.tracked_files() if f.endswith(SOURCE_SUFFIXES) and "node_modules" not in f]
        sources = [f for f in sources if ctx.path(f).is_file()][:COPYRIGHT_SAMPLE]
        if not sources:
            ctx.log.line("No source files found for copyright check")
            return
        with_notice = sum(
            1 for f in sources if COPYRIGHT_RE.search(ctx.path(f).read_text(encoding="utf-8", errors="replace"))
        )
        percent = with_notice * 100 // len(sources)
        if percent < COPYRIGHT_MIN_PERCENT:
            ctx.log.line(f"  ⚠ Only {percent}% of sampled source files have copyright notices")
        else:
            ctx.log.line(f"  ✓ {percent}% of sampled source files have copyright notices")
