"""Pytest configuration and fixtures for hookgate tests."""

import os
import subprocess
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from hookgate.changeset import build_change_set
from hookgate.checks.base import CheckContext
from hookgate.command_executor import CheckLog, ToolRunner
from hookgate.config import Settings
from hookgate.constants import ChangeSource
from hookgate.git import GitRepo


def run_git(*args: str, cwd: Path) -> str:
    """Run git command safely without shell=True."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout


def no_tools(binary: str) -> str | None:
    """``which`` replacement reporting every tool as missing."""
    return None


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the caller's hook environment out of the tests."""
    for var in (
        "FAIL_ON_HIGH_SEVERITY",
        "FAIL_ON_MEDIUM_SEVERITY",
        "HOOKS_EXIT_POLICY",
        "HOOKS_VERBOSE",
        "HOOKS_DEBUG",
        "HOOKS_AUTOFIX",
        "HOOKS_TOOL_TIMEOUT",
        "HOOKS_FILE_LIMIT",
        "HOOKGATE_STAGE",
        "PRE_COMMIT_STAGE",
        "PRE_COMMIT_FROM_REF",
        "VALIDATE_ALL",
        "PIN_SHA_DRY_RUN",
        "GITHUB_BASE_REF",
        "GITHUB_HEAD_REF",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("HOOKS_LOG_DIR", str(tmp_path / "hook-logs"))


@pytest.fixture
def tmp_repo(tmp_path: Path) -> Generator[Path, None, None]:
    """Create a temporary git repository on a feature branch.

    Yields:
        Path to the temporary repository
    """
    repo = tmp_path / "repo"
    repo.mkdir()
    orig_dir = os.getcwd()
    os.chdir(repo)

    run_git("init", "-q", "-b", "main", cwd=repo)
    run_git("config", "user.email", "test@test.com", cwd=repo)
    run_git("config", "user.name", "Test", cwd=repo)
    run_git("config", "commit.gpgsign", "false", cwd=repo)

    (repo / "README.md").write_text("# Test Repo\n")
    run_git("add", "-A", cwd=repo)
    run_git("commit", "-q", "-m", "Initial commit", cwd=repo)
    run_git("checkout", "-q", "-b", "feature/test", cwd=repo)

    yield repo

    os.chdir(orig_dir)


@pytest.fixture
def empty_repo(tmp_path: Path) -> Generator[Path, None, None]:
    """A git repository with no commits and no tracked files."""
    repo = tmp_path / "empty"
    repo.mkdir()
    orig_dir = os.getcwd()
    os.chdir(repo)
    run_git("init", "-q", "-b", "main", cwd=repo)
    yield repo
    os.chdir(orig_dir)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Default settings writing logs under tmp_path."""
    return Settings(log_dir=tmp_path / "logs")


@pytest.fixture
def make_context(settings: Settings) -> Callable[..., CheckContext]:
    """Factory for a CheckContext over a repository.

    Files are staged when ``staged`` is true (the default), otherwise the
    change-set is marked as sampled tracked files.
    """

    def _make(
        repo_root: Path,
        files: list[str],
        staged: bool = True,
        which: Callable[[str], str | None] = no_tools,
        **overrides: object,
    ) -> CheckContext:
        source = ChangeSource.STAGED if staged else ChangeSource.TRACKED
        runner = ToolRunner(CheckLog(None), repo_root, which=which)
        return CheckContext(
            repo_root=repo_root,
            change_set=build_change_set(files, source),
            settings=settings.model_copy(update=overrides),
            runner=runner,
            repo=GitRepo(repo_root),
        )

    return _make


@pytest.fixture
def git() -> Callable[..., str]:
    """Run a git command: ``git("add", "x", cwd=repo)``."""
    return run_git
