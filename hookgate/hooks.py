"""Git hook shim management: install and uninstall hookgate's hooks."""

from __future__ import annotations

import shutil
import stat
from pathlib import Path

from hookgate.constants import Stage
from hookgate.logging import get_logger

logger = get_logger("hooks")

MARKER = "# Installed by hookgate"
HOOK_STAGES = (Stage.PRE_COMMIT, Stage.PRE_PUSH)


def shim_script(stage: Stage) -> str:
    return f'#!/bin/sh\n{MARKER}\nexec hookgate run --stage {stage.value}\n'


def is_hookgate_hook(path: Path) -> bool:
    try:
        return MARKER in path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return False


def install_hooks(repo_path: str | Path = ".") -> list[str]:
    """Install hookgate git hooks to the repository.

    Existing foreign hooks are backed up to ``<hook>.backup``.

    Args:
        repo_path: Path to repository

    Returns:
        Names of the hooks installed (empty when the hooks dir is missing)
    """
    git_hooks_dir = Path(repo_path).resolve() / ".git" / "hooks"
    if not git_hooks_dir.parent.is_dir():
        logger.error(f"Git directory not found: {git_hooks_dir.parent}")
        return []
    git_hooks_dir.mkdir(exist_ok=True)

    installed = []
    for stage in HOOK_STAGES:
        target = git_hooks_dir / stage.value

        if target.exists() and not is_hookgate_hook(target):
            backup = target.with_suffix(".backup")
            shutil.copy2(target, backup)
            logger.info(f"Backed up existing {target.name} to {backup.name}")

        target.write_text(shim_script(stage), encoding="utf-8")
        target.chmod(target.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        logger.info(f"Installed hook: {target.name}")
        installed.append(target.name)

    return installed


def uninstall_hooks(repo_path: str | Path = ".") -> list[str]:
    """Remove hookgate git hooks and restore any backups.

    Args:
        repo_path: Path to repository

    Returns:
        Names of the hooks removed
    """
    git_hooks_dir = Path(repo_path).resolve() / ".git" / "hooks"
    if not git_hooks_dir.is_dir():
        logger.error(f"Git hooks directory not found: {git_hooks_dir}")
        return []

    removed = []
    for stage in HOOK_STAGES:
        target = git_hooks_dir / stage.value
        if not target.exists() or not is_hookgate_hook(target):
            continue
        target.unlink()
        logger.info(f"Removed hook: {target.name}")
        removed.append(target.name)

        backup = target.with_suffix(".backup")
        if backup.exists():
            shutil.move(backup, target)
            logger.info(f"Restored backup for {target.name}")

    return removed
