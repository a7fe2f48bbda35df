"""Actionable-line extraction and static fix hints for failed checks."""

from __future__ import annotations

import re

from hookgate.constants import DEFAULT_SUMMARY_LINES, MAX_HINTS

# Output idioms of the wrapped tools worth surfacing on failure
_ACTIONABLE_PATTERNS = [
    r"would reformat",
    r"^(?:[^\s]|\./|\.\./)[^:]*:\d+(?::\d+)?:",  # path:line[:col]:
    r"\berror\b",
    r"\bfatal\b",
    r"\bfail(?:ure|ed)?\b",
    r"\bviolation\b",
    r"\binvalid\b",
    r"\bnot found\b",
    r"\bwarning\b",
    r"[✖❌⚠]",
    r"\bDL\d{4}\b",  # hadolint
    r"\bSC\d{4}\b",  # shellcheck
    r"\b[EW]\d{3}\b",  # flake8 / pycodestyle
    r"\bTS\d{3,}\b",  # tsc
    r"\b(?:yamllint|checkov|tfsec|hadolint|trivy|eslint|prettier|flake8|mypy|black|isort)\b",
    r"terraform (?:validate|fmt)",
]

_ACTIONABLE_RE = re.compile("|".join(f"(?:{p})" for p in _ACTIONABLE_PATTERNS), re.IGNORECASE)

NO_OUTPUT = "(no output captured)"


def extract_findings(text: str, limit: int = DEFAULT_SUMMARY_LINES) -> list[str]:
    """Pick the most actionable lines out of a check log.

    Lines are returned as ``<line-number>:<text>`` in log order, capped at
    ``limit``. A line whose text repeats an earlier finding is dropped; the
    first occurrence keeps its line number.

    Args:
        text: Captured log text
        limit: Maximum number of lines to return

    Returns:
        Extracted lines, or a single placeholder when the log is empty
    """
    if not text.strip():
        return [NO_OUTPUT]

    seen: set[str] = set()
    findings: list[str] = []
    for number, line in enumerate(text.splitlines(), start=1):
        if "\x00" in line or not _ACTIONABLE_RE.search(line):
            continue
        key = line.strip()
        if key in seen:
            continue
        seen.add(key)
        findings.append(f"{number}:{line}")
        if len(findings) >= limit:
            break
    return findings


# check name -> [(pattern, hint)]; patterns are searched case-insensitively
_FIX_HINTS: dict[str, list[tuple[str, str]]] = {
    "python-quality": [
        (r"would reformat", "Fix: black . && isort ."),
        (r"flake8", "Fix: flake8 (then address listed errors)"),
    ],
    "javascript-quality": [
        (r"prettier", "Fix: prettier --write <files>"),
        (r"eslint", "Fix: eslint --fix <files>"),
        (r"TS\d", "Fix: tsc --noEmit"),
    ],
    "terraform-quality": [
        (r"terraform fmt", "Fix: terraform fmt -recursive"),
        (r"validate", "Fix: terraform init -backend=false && terraform validate"),
        (r"tflint", "Fix: tflint --init && tflint"),
    ],
    "docker-security": [
        (r"hadolint", "Fix: hadolint Dockerfile*"),
        (r"trivy", "Fix: trivy config ."),
    ],
    "file-quality": [
        (r"trailing whitespace", "Fix: remove trailing spaces (e.g., an editor save-on-format)"),
        (r"invalid json", "Fix: python3 -m json.tool <file>"),
        (r"CRLF", "Fix: dos2unix <file>"),
    ],
    "security": [
        (r"potential secrets", "Fix: move secrets to a secret manager or environment variables"),
        (r"large files", "Fix: remove large files or track them with git-lfs"),
    ],
    "kustomize": [
        (r"FAILED:", "Fix: kubectl kustomize <dir> --enable-helm"),
    ],
    "docker-bake": [
        (r"invalid", "Fix: docker buildx bake -f <file> --print"),
    ],
}

_COMPILED_HINTS: dict[str, list[tuple[re.Pattern[str], str]]] = {
    name: [(re.compile(pattern, re.IGNORECASE), hint) for pattern, hint in entries]
    for name, entries in _FIX_HINTS.items()
}


def fix_hints(check_name: str, text: str, limit: int = MAX_HINTS) -> list[str]:
    """Static remediation hints for a failed check, keyed by tool idioms in its log."""
    hints = [hint for pattern, hint in _COMPILED_HINTS.get(check_name, []) if pattern.search(text)]
    return hints[:limit]
