"""Tests for git hook shim installation."""

import os
from pathlib import Path

from hookgate.constants import Stage
from hookgate.hooks import MARKER, install_hooks, is_hookgate_hook, shim_script, uninstall_hooks


class TestShim:
    """Tests for the generated hook script."""

    def test_script(self) -> None:
        """Test the shim runs hookgate for its stage."""
        script = shim_script(Stage.PRE_PUSH)

        assert script.startswith("#!/bin/sh\n")
        assert MARKER in script
        assert "exec hookgate run --stage pre-push" in script


class TestInstallHooks:
    """Tests for install_hooks and uninstall_hooks."""

    def test_install(self, tmp_repo: Path) -> None:
        """Test both hooks are written and executable."""
        installed = install_hooks(tmp_repo)

        assert installed == ["pre-commit", "pre-push"]
        for name in installed:
            hook = tmp_repo / ".git" / "hooks" / name
            assert is_hookgate_hook(hook)
            assert os.access(hook, os.X_OK)

    def test_backs_up_foreign_hook(self, tmp_repo: Path) -> None:
        """Test an existing hook is preserved and restored on uninstall."""
        hook = tmp_repo / ".git" / "hooks" / "pre-commit"
        hook.write_text("#!/bin/sh\necho custom\n")

        install_hooks(tmp_repo)
        assert (tmp_repo / ".git" / "hooks" / "pre-commit.backup").read_text() == "#!/bin/sh\necho custom\n"

        removed = uninstall_hooks(tmp_repo)
        assert removed == ["pre-commit", "pre-push"]
        assert hook.read_text() == "#!/bin/sh\necho custom\n"
        assert not (tmp_repo / ".git" / "hooks" / "pre-push").exists()

    def test_reinstall_keeps_original_backup(self, tmp_repo: Path) -> None:
        """Test installing twice does not overwrite the backup with our shim."""
        hook = tmp_repo / ".git" / "hooks" / "pre-commit"
        hook.write_text("#!/bin/sh\necho custom\n")

        install_hooks(tmp_repo)
        install_hooks(tmp_repo)

        assert "custom" in (tmp_repo / ".git" / "hooks" / "pre-commit.backup").read_text()

    def test_uninstall_leaves_foreign_hooks(self, tmp_repo: Path) -> None:
        """Test hooks not written by hookgate are untouched."""
        hook = tmp_repo / ".git" / "hooks" / "pre-push"
        hook.write_text("#!/bin/sh\necho mine\n")

        assert uninstall_hooks(tmp_repo) == []
        assert hook.exists()

    def test_not_a_repository(self, tmp_path: Path) -> None:
        """Test nothing is installed outside a repository."""
        assert install_hooks(tmp_path) == []
        assert uninstall_hooks(tmp_path) == []
