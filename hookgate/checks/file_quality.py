"""General file hygiene: whitespace, encodings, line endings, YAML/JSON validity and workflows.

Fixable problems are repaired in place when autofix is on, and only files
whose bytes actually changed are rewritten and re-staged. Running the check
again over the result finds nothing to fix.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from dataclasses import dataclass

import yaml  # type: ignore[import-untyped]

from hookgate.checks.base import CheckContext, Checker, changed_files, file_digests, run_step
from hookgate.constants import DEFAULT_FILE_QUALITY_LIMIT, LARGE_FILE_BYTES, PROTECTED_BRANCHES
from hookgate.logging import get_logger
from hookgate.types import CheckOutcome

logger = get_logger("checks.file_quality")

BOM = b"\xef\xbb\xbf"
TRAILING_WS_RE = re.compile(rb"[ \t]+(?=\r?$)", re.MULTILINE)
YAMLLINT_CONFIG = "{extends: relaxed, rules: {line-length: {max: 120}}}"
SHELL_DIR = "hooks"
MAX_LISTED = 3

DEPRECATED_ACTIONS_RE = re.compile(r"uses:\s*(actions/(?:checkout|setup-node))@v[12]\b")
WORKFLOW_SECRET_RE = re.compile(r"(?:password|token|key|secret)\s*:\s*['\"][^'\"]+['\"]", re.IGNORECASE)
SECRET_REFERENCE_RE = re.compile(r"secrets\.|\$\{\{")


@dataclass(frozen=True)
class TextFix:
    """One detectable, mechanically fixable text problem."""

    label: str
    detect: Callable[[bytes], bool]
    apply: Callable[[bytes], bytes]


TEXT_FIXES: tuple[TextFix, ...] = (
    TextFix("UTF-8 byte order mark", lambda d: d.startswith(BOM), lambda d: d[len(BOM):]),
    TextFix("Windows (CRLF) line endings", lambda d: b"\r" in d, lambda d: d.replace(b"\r\n", b"\n").replace(b"\r", b"\n")),
    TextFix("trailing whitespace", lambda d: TRAILING_WS_RE.search(d) is not None, lambda d: TRAILING_WS_RE.sub(b"", d)),
    TextFix("missing newline at EOF", lambda d: bool(d) and not d.endswith(b"\n"), lambda d: d + b"\n"),
)


def is_text(data: bytes) -> bool:
    """Non-empty and free of NUL bytes in the first 8 KiB."""
    return bool(data) and b"\x00" not in data[:8192]


def fix_text(data: bytes) -> tuple[bytes, list[str]]:
    """Apply every text fix; returns the new bytes and the labels of fixes applied."""
    applied = []
    for fix in TEXT_FIXES:
        if fix.detect(data):
            data = fix.apply(data)
            applied.append(fix.label)
    return data, applied


def detect_text_problems(data: bytes) -> list[str]:
    return [fix.label for fix in TEXT_FIXES if fix.detect(data)]


def normalize_json(text: str) -> str:
    """Canonical 4-space JSON rendering.

    Raises:
        ValueError: If ``text`` is not valid JSON
    """
    return json.dumps(json.loads(text), indent=4, ensure_ascii=False) + "\n"


def yaml_error(text: str) -> str | None:
    """Parse error message for ``text``, or None if it is valid YAML."""
    try:
        for _ in yaml.safe_load_all(text):
            pass
    except yaml.YAMLError as e:
        return str(e).splitlines()[0] if str(e) else "invalid YAML"
    return None


class FileQualityChecker(Checker):
    """Native hygiene checks plus yamllint, shfmt and actionlint."""

    name = "file-quality"

    def run(self, ctx: CheckContext) -> CheckOutcome:
        files = [f for f in ctx.change_set if ctx.path(f).is_file()]
        if not ctx.change_set.is_staged:
            files = files[:DEFAULT_FILE_QUALITY_LIMIT]

        issues = self._protected_branch(ctx)
        if not files:
            return CheckOutcome.from_issues(issues) if issues else CheckOutcome.skipped("No files to check")

        ctx.log.line(f"File quality validation ({len(files)} file(s) from {ctx.change_set.context})")
        fixed: list[str] = []

        issues += self._text_hygiene(ctx, files, fixed)
        issues += self._large_files(ctx, files)
        issues += self._yaml(ctx, files, fixed)
        issues += self._json(ctx, files, fixed)
        issues += self._shell(ctx, fixed)
        issues += self._workflows(ctx, files)
        issues += self._shebangs(ctx, files)

        ctx.restage(fixed)
        if issues:
            ctx.log.line(f"Found {issues} file quality issue(s)")
        elif fixed:
            ctx.log.line(f"✅ File quality issues auto-fixed ({len(fixed)} file(s))")
        else:
            ctx.log.line("✅ File quality checks passed")
        return CheckOutcome.from_issues(issues, fixed=len(fixed))

    def _protected_branch(self, ctx: CheckContext) -> int:
        if not ctx.change_set.is_staged:
            return 0
        branch = ctx.repo.current_branch()
        if branch in PROTECTED_BRANCHES:
            ctx.log.line(f"❌ You are attempting to commit directly to '{branch}'; this branch is protected.")
            ctx.log.line("   Please create a feature branch instead.")
            return 1
        return 0

    def _text_hygiene(self, ctx: CheckContext, files: list[str], fixed: list[str]) -> int:
        remaining: dict[str, list[str]] = {}
        repaired: dict[str, int] = {}
        for rel in files:
            path = ctx.path(rel)
            try:
                data = path.read_bytes()
            except OSError as e:
                logger.debug(f"Cannot read {rel}: {e}")
                continue
            if not is_text(data):
                continue
            if ctx.settings.autofix:
                new_data, applied = fix_text(data)
                if new_data != data:
                    path.write_bytes(new_data)
                    _append_unique(fixed, rel)
                    for label in applied:
                        repaired[label] = repaired.get(label, 0) + 1
            else:
                for label in detect_text_problems(data):
                    remaining.setdefault(label, []).append(rel)

        for label, count in repaired.items():
            ctx.log.line(f"✓ Auto-fixed {label} in {count} file(s)")
        for label, paths in remaining.items():
            ctx.log.line(f"⚠ Files with {label}:")
            for rel in paths[:MAX_LISTED]:
                ctx.log.line(f"    {rel}")
        return len(remaining)

    def _large_files(self, ctx: CheckContext, files: list[str]) -> int:
        large = [rel for rel in files if ctx.path(rel).stat().st_size > LARGE_FILE_BYTES]
        if not large:
            return 0
        ctx.log.line("⚠ Large files detected (>1MB):")
        for rel in large[:MAX_LISTED]:
            ctx.log.line(f"    {rel}")
        return 1

    def _yaml(self, ctx: CheckContext, files: list[str], fixed: list[str]) -> int:
        yaml_files = [f for f in files if f.endswith((".yaml", ".yml"))]
        if not yaml_files:
            return 0
        issues = 0
        for rel in yaml_files:
            error = yaml_error(ctx.path(rel).read_text(encoding="utf-8", errors="replace"))
            if error is not None:
                ctx.log.line(f"❌ Invalid YAML: {rel}: {error}")
                issues += 1

        runner = ctx.runner
        if not runner.available("yamllint"):
            return issues
        lint_cmd = ["yamllint", "-d", YAMLLINT_CONFIG, *yaml_files]
        if runner.run(lint_cmd).success:
            return issues

        ctx.log.line("⚠ YAML formatting issues found")
        if ctx.settings.autofix:
            prettier = runner.npx_or_global("prettier")
            if prettier is not None:
                before = file_digests(ctx.repo_root, yaml_files)
                runner.run([*prettier, "--write", *yaml_files])
                for rel in changed_files(ctx.repo_root, before):
                    _append_unique(fixed, rel)
                ctx.log.line("✓ Auto-formatted YAML with prettier")
                if runner.run(lint_cmd).success:
                    return issues
        return issues + 1

    def _json(self, ctx: CheckContext, files: list[str], fixed: list[str]) -> int:
        issues = 0
        for rel in (f for f in files if f.endswith(".json")):
            path = ctx.path(rel)
            text = path.read_text(encoding="utf-8", errors="replace")
            try:
                normalized = normalize_json(text)
            except ValueError as e:
                ctx.log.line(f"❌ Invalid JSON: {rel}: {e}")
                issues += 1
                continue
            if ctx.settings.autofix and normalized != text:
                path.write_text(normalized, encoding="utf-8")
                _append_unique(fixed, rel)
                ctx.log.line(f"  ✓ Normalized JSON formatting: {rel}")
        return issues

    def _shell(self, ctx: CheckContext, fixed: list[str]) -> int:
        shell_dir = ctx.path(SHELL_DIR)
        if not shell_dir.is_dir() or not ctx.runner.available("shfmt"):
            return 0
        if ctx.settings.autofix:
            scripts = [f"{SHELL_DIR}/{p.name}" for p in sorted(shell_dir.glob("*.sh"))]
            before = file_digests(ctx.repo_root, scripts)
            ctx.runner.run(["shfmt", "-w", SHELL_DIR])
            rewritten = changed_files(ctx.repo_root, before)
            for rel in rewritten:
                _append_unique(fixed, rel)
            if rewritten:
                ctx.log.line(f"✓ Auto-formatted {len(rewritten)} shell script(s) in {SHELL_DIR}/")
            return 0
        result = ctx.runner.run(["shfmt", "-d", SHELL_DIR])
        if result.output.strip():
            ctx.log.line("⚠ Shell formatting issues detected by shfmt")
            return 1
        return 0

    def _workflows(self, ctx: CheckContext, files: list[str]) -> int:
        workflows = [f for f in files if f.startswith(".github/workflows/") and f.endswith((".yml", ".yaml"))]
        issues = 0
        if workflows or ctx.path(".github/workflows").is_dir():
            result = run_step(ctx, "actionlint", ["actionlint", "-shellcheck="], "workflow lint")
            if result is not None and not result.success:
                ctx.log.line("⚠ actionlint found issues in workflow files")
                issues += 1

        for rel in workflows:
            text = ctx.path(rel).read_text(encoding="utf-8", errors="replace")
            for action in sorted(set(DEPRECATED_ACTIONS_RE.findall(text))):
                ctx.log.line(f"  ⚠ {rel} uses {action}@v1/v2 (consider v4)")
            secret_lines = [
                line for line in text.splitlines()
                if WORKFLOW_SECRET_RE.search(line) and not SECRET_REFERENCE_RE.search(line)
            ]
            if secret_lines:
                ctx.log.line(f"  ❌ {rel} may contain hardcoded secrets")
                issues += 1
        return issues

    def _shebangs(self, ctx: CheckContext, files: list[str]) -> int:
        issues = 0
        for rel in files:
            if ctx.repo.file_mode(rel) != "100755":
                continue
            with open(ctx.path(rel), "rb") as f:
                first = f.readline()
            if not first.startswith(b"#!"):
                ctx.log.line(f"⚠ Executable missing shebang: {rel}")
                issues += 1
        return issues


def _append_unique(items: list[str], value: str) -> None:
    if value not in items:
        items.append(value)
