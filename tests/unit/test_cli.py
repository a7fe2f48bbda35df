"""Tests for the hookgate CLI."""

import functools
import importlib
from pathlib import Path

import pytest
from click.testing import CliRunner

from hookgate import __version__
from hookgate.cli import cli
from hookgate.orchestrator import Orchestrator


def no_tools(binary: str) -> None:
    return None


@pytest.fixture
def offline(monkeypatch: pytest.MonkeyPatch) -> None:
    """Run the pipeline as if no external tool were installed."""
    # hookgate.commands rebinds ``run`` to the click command, so patch the module itself
    run_module = importlib.import_module("hookgate.commands.run")
    monkeypatch.setattr(run_module, "Orchestrator", functools.partial(Orchestrator, which=no_tools))


class TestCli:
    """Tests for the top-level group."""

    def test_version(self) -> None:
        """Test --version prints the package version."""
        result = CliRunner().invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self) -> None:
        """Test every command is registered."""
        result = CliRunner().invoke(cli, ["--help"])

        for command in ("run", "list", "merge-gate", "install", "uninstall"):
            assert command in result.output


class TestListCommand:
    """Tests for hookgate list."""

    def test_all(self) -> None:
        """Test all checks are listed."""
        result = CliRunner().invoke(cli, ["list"])

        assert result.exit_code == 0
        assert "kustomize" in result.output
        assert "code-metrics" in result.output

    def test_stage(self) -> None:
        """Test --stage filters the table."""
        result = CliRunner().invoke(cli, ["list", "--stage", "pre-push"])

        assert result.exit_code == 0
        assert "python-quality" not in result.output
        assert "license" in result.output


class TestRunCommand:
    """Tests for hookgate run."""

    def test_outside_repository(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test running outside a git repository fails cleanly."""
        monkeypatch.chdir(tmp_path)
        result = CliRunner().invoke(cli, ["run"])

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_clean_staged_file(self, tmp_repo: Path, git, offline) -> None:
        """Test a clean staged text file passes."""
        (tmp_repo / "notes.txt").write_text("hello\n")
        git("add", "notes.txt", cwd=tmp_repo)

        result = CliRunner().invoke(cli, ["run"])

        assert result.exit_code == 0, result.output
        assert "File Quality passed" in result.output
        assert "Checks: 2 total, 0 failed" in result.output

    def test_failure_exit_code(self, tmp_repo: Path, git, offline) -> None:
        """Test invalid JSON fails the run and points at the log."""
        (tmp_repo / "bad.json").write_text("{oops\n")
        git("add", "bad.json", cwd=tmp_repo)

        result = CliRunner().invoke(cli, ["run", "--log-dir", str(tmp_repo.parent / "logs")])

        assert result.exit_code == 1
        assert "File Quality failed" in result.output
        assert "Invalid JSON" in result.output
        assert (tmp_repo.parent / "logs" / "file-quality.log").exists()

    def test_no_autofix_flag(self, tmp_repo: Path, git, offline) -> None:
        """Test --no-autofix reports instead of rewriting."""
        (tmp_repo / "notes.txt").write_bytes(b"trailing  \n")
        git("add", "notes.txt", cwd=tmp_repo)

        result = CliRunner().invoke(cli, ["run", "--no-autofix"])

        assert result.exit_code == 1
        assert (tmp_repo / "notes.txt").read_bytes() == b"trailing  \n"

    def test_unwritable_log_dir(self, tmp_repo: Path, git, offline, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a log directory that cannot be created does not crash the run."""
        blocker = tmp_repo.parent / "blocker"
        blocker.write_text("file in the way\n")
        monkeypatch.setenv("HOOKS_LOG_DIR", str(blocker / "logs"))
        (tmp_repo / "notes.txt").write_text("hello\n")
        git("add", "notes.txt", cwd=tmp_repo)

        result = CliRunner().invoke(cli, ["run"])

        assert result.exit_code == 0, result.output
        assert "File Quality passed" in result.output

    def test_invalid_config(self, tmp_repo: Path, offline) -> None:
        """Test a malformed config file is a configuration error."""
        (tmp_repo / ".hookgate.yaml").write_text("summary_lines: -5\n")

        result = CliRunner().invoke(cli, ["run"])

        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_verbose_streams(self, tmp_repo: Path, git, offline) -> None:
        """Test --verbose streams check output."""
        (tmp_repo / "notes.txt").write_text("hello\n")
        git("add", "notes.txt", cwd=tmp_repo)

        result = CliRunner().invoke(cli, ["run", "--verbose"])

        assert "File quality validation" in result.output


class TestMergeGateCommand:
    """Tests for hookgate merge-gate."""

    def test_invalid_python_fails(self, tmp_repo: Path, git) -> None:
        """Test a syntax error in the last commit fails the gate."""
        (tmp_repo / "broken.py").write_text("def (\n")
        git("add", "broken.py", cwd=tmp_repo)
        git("commit", "-q", "-m", "broken", cwd=tmp_repo)

        result = CliRunner().invoke(cli, ["merge-gate"])

        assert result.exit_code == 1
        assert "Python syntax" in result.output
        assert "Merge gate failed" in result.output


class TestInstallCommands:
    """Tests for hookgate install / uninstall."""

    def test_round_trip(self, tmp_repo: Path) -> None:
        """Test hooks are installed and removed."""
        runner = CliRunner()

        installed = runner.invoke(cli, ["install"])
        removed = runner.invoke(cli, ["uninstall"])
        again = runner.invoke(cli, ["uninstall"])

        assert installed.exit_code == 0
        assert "Installed pre-commit hook" in installed.output
        assert "Removed pre-push hook" in removed.output
        assert "No hookgate hooks installed" in again.output
