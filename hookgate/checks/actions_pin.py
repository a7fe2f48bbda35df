"""Pin GitHub Actions references to commit SHAs.

``uses: actions/setup-python@v5`` becomes
``uses: actions/setup-python@<sha> # v5.1.0``. Each remote is listed once
with ``git ls-remote``; every resolution step works on that cached listing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from hookgate.checks.base import CheckContext, Checker
from hookgate.constants import CheckStatus
from hookgate.git import GitRepo
from hookgate.logging import get_logger
from hookgate.types import CheckOutcome

logger = get_logger("checks.actions_pin")

WORKFLOW_DIR = ".github/workflows"
SHA40_RE = re.compile(r"^[0-9a-fA-F]{40}$")
USES_RE = re.compile(r"^(?P<prefix>\s*(?:-\s*)?uses:\s*)(?P<repo>[^@\s#]+)@(?P<ref>[^\s#]*)(?P<rest>.*)$")
COMMENT_TAG_RE = re.compile(r"#\s*(\S+)")
MAJOR_RE = re.compile(r"^v?(\d+)$")
MAJOR_MINOR_RE = re.compile(r"^v?(\d+\.\d+)$")
SEMVER_LIKE_RE = re.compile(r"^v?\d")


def version_key(tag: str) -> tuple[int, int, int, int]:
    """Sort key preferring more version segments, then higher numbers."""
    parts = re.split(r"[.-]", tag[1:] if tag.startswith("v") else tag)
    numbers = [int(p) if p.isdigit() else 0 for p in parts[:3]]
    numbers += [0] * (3 - len(numbers))
    return (min(len(parts), 3), *numbers)


def best_tag(tags: list[str]) -> str | None:
    return max(sorted(set(tags)), key=version_key) if tags else None


@dataclass
class RemoteRefs:
    """Ref listing of one remote."""

    heads: dict[str, str] = field(default_factory=dict)
    tags: dict[str, str] = field(default_factory=dict)
    peeled: dict[str, str] = field(default_factory=dict)
    raw: dict[str, str] = field(default_factory=dict)
    head: str | None = None

    @classmethod
    def from_pairs(cls, pairs: list[tuple[str, str]]) -> RemoteRefs:
        refs = cls()
        for sha, ref in pairs:
            refs.raw.setdefault(ref, sha)
            if ref == "HEAD":
                refs.head = sha
            elif ref.startswith("refs/heads/"):
                refs.heads[ref[len("refs/heads/"):]] = sha
            elif ref.startswith("refs/tags/") and ref.endswith("^{}"):
                refs.peeled[ref[len("refs/tags/"):-3]] = sha
            elif ref.startswith("refs/tags/"):
                refs.tags[ref[len("refs/tags/"):]] = sha
        return refs

    @property
    def tag_names(self) -> list[str]:
        return sorted(set(self.tags) | set(self.peeled))

    def resolve(self, ref: str) -> str | None:
        """Branch, peeled tag, tag, then raw ref; empty ref means HEAD."""
        if not ref:
            return self.head
        for table in (self.heads, self.peeled, self.tags):
            if ref in table:
                return table[ref]
        return self.raw.get(ref)

    def tag_for_sha(self, sha: str) -> str | None:
        """Most specific tag pointing at ``sha``."""
        matches = [name for table in (self.tags, self.peeled) for name, target in table.items() if target == sha]
        return best_tag(matches)

    def latest_with_prefix(self, prefix: str) -> str | None:
        candidates = [t for t in self.tag_names if (t[1:] if t.startswith("v") else t).startswith(f"{prefix}.")]
        return best_tag(candidates)

    def latest_release(self) -> str | None:
        return best_tag([t for t in self.tag_names if SEMVER_LIKE_RE.match(t)])


class RefResolver:
    """Caches ``git ls-remote`` listings per repository."""

    def __init__(self, repo: GitRepo) -> None:
        self._repo = repo
        self._cache: dict[str, RemoteRefs] = {}

    def refs(self, base_repo: str) -> RemoteRefs:
        if base_repo not in self._cache:
            remote = f"https://github.com/{base_repo}.git"
            logger.debug(f"Listing refs of {remote}")
            self._cache[base_repo] = RemoteRefs.from_pairs(self._repo.ls_remote(remote))
        return self._cache[base_repo]

    def pin(self, base_repo: str, ref: str) -> tuple[str, str] | None:
        """Resolve ``ref`` to ``(sha, comment)``, or None when unresolvable."""
        refs = self.refs(base_repo)
        sha = refs.resolve(ref)
        fallback = None
        if sha is None and ref:
            match = MAJOR_MINOR_RE.match(ref) or MAJOR_RE.match(ref)
            if match:
                fallback = refs.latest_with_prefix(match.group(1))
            if fallback is None:
                fallback = refs.latest_release()
            if fallback is not None:
                sha = refs.resolve(fallback)
        if sha is None:
            return None
        comment = refs.tag_for_sha(sha) or fallback or ref or "HEAD"
        return sha, comment


def pin_line(line: str, resolver: RefResolver) -> tuple[str | None, str | None]:
    """Return ``(new_line, warning)`` for one workflow line.

    ``new_line`` is None when the line needs no change.
    """
    match = USES_RE.match(line)
    if match is None:
        return None, None
    repo_full, ref, rest = match.group("repo"), match.group("ref"), match.group("rest")
    if repo_full.startswith(("./", "docker://")):
        return None, None
    parts = repo_full.split("/")
    if len(parts) < 2:
        return None, f"Unrecognized repo: {repo_full}"
    base_repo = "/".join(parts[:2])
    prefix = match.group("prefix")

    if SHA40_RE.match(ref):
        tag = resolver.refs(base_repo).tag_for_sha(ref)
        existing = COMMENT_TAG_RE.search(rest)
        if tag and (existing is None or existing.group(1) != tag):
            return f"{prefix}{repo_full}@{ref} # {tag}", None
        return None, None

    pinned = resolver.pin(base_repo, ref)
    if pinned is None:
        return None, f"could not resolve {repo_full}@{ref or '<default>'}"
    sha, comment = pinned
    return f"{prefix}{repo_full}@{sha} # {comment}", None


class ActionsPinChecker(Checker):
    """Rewrites workflow action references to pinned SHAs; never fails."""

    name = "actions-pin"

    def run(self, ctx: CheckContext) -> CheckOutcome:
        files = self._workflow_files(ctx)
        if not files:
            return CheckOutcome.skipped("No workflow files found")

        resolver = RefResolver(ctx.repo)
        dry_run = ctx.settings.pin_sha_dry_run
        notes: list[str] = []
        changed: list[str] = []

        for rel in files:
            ctx.log.line(f"Processing {rel}")
            path = ctx.path(rel)
            lines = path.read_text(encoding="utf-8").splitlines(keepends=True)
            updated = False
            for number, line in enumerate(lines, start=1):
                body = line.rstrip("\r\n")
                new_body, warning = pin_line(body, resolver)
                if warning:
                    ctx.log.line(f"  WARN L{number}: {warning}")
                    notes.append(f"{rel}:{number}: {warning}")
                if new_body is None or new_body == body:
                    continue
                if dry_run:
                    ctx.log.line(f"  DRY-RUN L{number}: {new_body.strip()}")
                    continue
                lines[number - 1] = new_body + line[len(body):]
                updated = True
            if updated:
                path.write_text("".join(lines), encoding="utf-8")
                changed.append(rel)
                ctx.log.line(f"  Updated: {rel}")

        ctx.restage(changed)
        ctx.log.line(f"Done. Files scanned: {len(files)}, files changed: {len(changed)}")
        return CheckOutcome(status=CheckStatus.PASSED, fixed=len(changed), notes=notes)

    @staticmethod
    def _workflow_files(ctx: CheckContext) -> list[str]:
        def is_workflow(rel: str) -> bool:
            pure = PurePosixPath(rel)
            return str(pure.parent) == WORKFLOW_DIR and pure.suffix in (".yml", ".yaml")

        staged = [f for f in ctx.change_set if is_workflow(f)] if ctx.change_set.is_staged else []
        candidates = staged or [f for f in ctx.repo.tracked_files() if is_workflow(f)]
        return [f for f in candidates if ctx.path(f).is_file()]
