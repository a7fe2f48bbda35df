"""Shared utilities for hookgate CLI commands."""

from __future__ import annotations

import os
from pathlib import Path

from hookgate.config import Settings
from hookgate.constants import Stage
from hookgate.git import GitRepo
from hookgate.logging import setup_logging


def load_settings(
    repo: GitRepo,
    stage: str | None = None,
    verbose: bool = False,
    no_autofix: bool = False,
    log_dir: Path | None = None,
) -> Settings:
    """Settings for a command run, with CLI flags layered over file and environment.

    Raises:
        ConfigurationError: If ``.hookgate.yaml`` is invalid
    """
    settings = Settings.load(repo.root, os.environ)
    updates: dict[str, object] = {}
    if stage:
        updates["stage"] = Stage(stage)
    if verbose:
        updates["verbose"] = True
    if no_autofix:
        updates["autofix"] = False
    if log_dir is not None:
        updates["log_dir"] = log_dir
    if updates:
        settings = settings.model_copy(update=updates)

    setup_logging(level="debug" if settings.debug else "warning", log_dir=settings.log_dir)
    return settings
