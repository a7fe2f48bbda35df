"""GitRepo -- the git queries and index updates hookgate needs."""

from __future__ import annotations

import subprocess
from collections.abc import Iterable
from pathlib import Path

from hookgate.exceptions import GitError, NotAGitRepositoryError
from hookgate.logging import get_logger

logger = get_logger("git")


def find_repo_root(start: str | Path = ".") -> Path:
    """Return the top level of the repository containing ``start``.

    Raises:
        NotAGitRepositoryError: If ``start`` is not inside a work tree
    """
    start_path = Path(start).resolve()
    try:
        result = subprocess.run(
            ["git", "-C", str(start_path), "rev-parse", "--show-toplevel"],
            capture_output=True,
            text=True,
            timeout=30,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        raise NotAGitRepositoryError(f"Cannot run git in {start_path}: {e}", str(start_path)) from e

    if result.returncode != 0 or not result.stdout.strip():
        raise NotAGitRepositoryError(f"Not a git repository: {start_path}", str(start_path))
    return Path(result.stdout.strip())


class GitRepo:
    """Low-level git command runner bound to one repository root."""

    def __init__(self, root: str | Path) -> None:
        """Initialize git runner.

        Args:
            root: Repository top-level directory
        """
        self.root = Path(root).resolve()

    @classmethod
    def discover(cls, start: str | Path = ".") -> GitRepo:
        """Locate the repository containing ``start``."""
        return cls(find_repo_root(start))

    def _run(
        self,
        *args: str,
        check: bool = True,
        timeout: int = 60,
    ) -> subprocess.CompletedProcess[str]:
        """Run a git command.

        Raises:
            GitError: If the command fails (when check=True) or times out
        """
        cmd = ["git", "-C", str(self.root), *args]
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                encoding="utf-8",
                errors="surrogateescape",
                check=check,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise GitError(
                f"Git command timed out after {timeout}s: {' '.join(args)}",
                command=" ".join(cmd),
                exit_code=-1,
            ) from e
        except subprocess.CalledProcessError as e:
            raise GitError(
                f"Git command failed: {e.stderr.strip() if e.stderr else str(e)}",
                command=" ".join(cmd),
                exit_code=e.returncode,
            ) from e

    @staticmethod
    def _lines(output: str) -> list[str]:
        return [line.strip() for line in output.splitlines() if line.strip()]

    @staticmethod
    def _paths(output: str) -> list[str]:
        """Split NUL-terminated path output (``-z``) without unquoting or stripping."""
        return [path for path in output.split("\0") if path]

    def staged_changes(self) -> list[tuple[str, str]]:
        """``(status, path)`` for every index entry that differs from HEAD.

        Status is git's one-letter code (``A``, ``M``, ``D``, ...). Renames are
        reported as a deletion plus an addition.
        """
        result = self._run("diff", "--cached", "--name-status", "--no-renames", "-z", check=False)
        fields = self._paths(result.stdout)
        return [(fields[i][:1], fields[i + 1]) for i in range(0, len(fields) - 1, 2)]

    def staged_files(self) -> list[str]:
        """Staged paths that still exist in the index (deletions excluded)."""
        return [path for status, path in self.staged_changes() if status != "D"]

    def tracked_files(self) -> list[str]:
        """All tracked paths in index order."""
        result = self._run("ls-files", "-z", check=False)
        return self._paths(result.stdout)

    def diff_names(self, revision_range: str) -> list[str]:
        """Paths changed in ``revision_range`` (empty on any git error)."""
        result = self._run("--no-pager", "diff", "--name-only", "-z", revision_range, check=False)
        if result.returncode != 0:
            return []
        return self._paths(result.stdout)

    def current_branch(self) -> str:
        """Name of the checked-out branch, or an empty string when detached."""
        result = self._run("symbolic-ref", "--short", "HEAD", check=False)
        return result.stdout.strip() if result.returncode == 0 else ""

    def file_mode(self, path: str) -> str:
        """Index mode of ``path`` (e.g. ``100755``), empty if untracked."""
        result = self._run("ls-files", "-s", "-z", "--", path, check=False)
        parts = result.stdout.split()
        return parts[0] if parts else ""

    def recent_subjects(self, count: int = 10) -> list[str]:
        result = self._run("log", "--oneline", f"-{count}", check=False)
        return self._lines(result.stdout)

    def commit_count(self) -> int | None:
        result = self._run("rev-list", "--count", "HEAD", check=False)
        try:
            return int(result.stdout.strip())
        except ValueError:
            return None

    def contributor_count(self) -> int:
        result = self._run("shortlog", "-sn", "HEAD", check=False)
        return len(self._lines(result.stdout))

    def fetch(self, *refs: str) -> None:
        """Shallow fetch of ``refs`` from origin; failures are ignored."""
        self._run("fetch", "--no-tags", "--prune", "--depth=1", "origin", *refs, check=False, timeout=120)

    def stage(self, paths: Iterable[str | Path]) -> None:
        """Add ``paths`` to the index, ignoring paths git refuses."""
        path_list = [str(p) for p in paths]
        if not path_list:
            return
        result = self._run("add", "--", *path_list, check=False)
        if result.returncode != 0:
            logger.debug(f"git add returned {result.returncode}: {result.stderr.strip()}")

    def ls_remote(self, remote: str, *refs: str, tags: bool = False) -> list[tuple[str, str]]:
        """Return ``(sha, ref)`` pairs advertised by ``remote``."""
        args = ["ls-remote", "--tags", remote] if tags else ["ls-remote", remote, *refs]
        result = self._run(*args, check=False, timeout=60)
        pairs: list[tuple[str, str]] = []
        for line in self._lines(result.stdout):
            sha, _, ref = line.partition("\t")
            if sha and ref:
                pairs.append((sha.strip(), ref.strip()))
        return pairs

    def merge_base(self, *revisions: str) -> str:
        """Best common ancestor of ``revisions``, or an empty string."""
        result = self._run("merge-base", *revisions, check=False)
        return result.stdout.strip() if result.returncode == 0 else ""
