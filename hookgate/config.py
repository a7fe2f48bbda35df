"""hookgate configuration management using Pydantic.

Settings come from three layers, lowest precedence first: model defaults, an
optional ``.hookgate.yaml`` at the repository root, and environment
variables. Malformed environment values are ignored and the lower layer
wins.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, Field, ValidationError

from hookgate.constants import (
    CONFIG_FILE_NAME,
    DEFAULT_FILE_LIMIT,
    DEFAULT_LOG_DIR,
    DEFAULT_MAX_PARALLEL_JOBS,
    DEFAULT_PERFORMANCE_THRESHOLD,
    DEFAULT_SUMMARY_LINES,
    STAGE_ALIASES,
    ExitPolicy,
    Stage,
)
from hookgate.exceptions import ConfigurationError
from hookgate.logging import get_logger

logger = get_logger("config")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def parse_bool(raw: str) -> bool:
    """Parse a boolean environment flag.

    Raises:
        ValueError: If the value is not a recognised boolean spelling
    """
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"not a boolean: {raw!r}")


def resolve_stage(env: Mapping[str, str]) -> Stage:
    """Pick the invocation stage from the environment.

    An explicit ``HOOKGATE_STAGE`` or ``PRE_COMMIT_STAGE`` naming a known
    stage wins. Otherwise the presence of ``PRE_COMMIT_FROM_REF`` (the diff
    base pre-commit exports for push hooks) selects pre-push.
    """
    for var in ("HOOKGATE_STAGE", "PRE_COMMIT_STAGE"):
        explicit = env.get(var, "").strip().lower()
        if explicit in STAGE_ALIASES:
            return STAGE_ALIASES[explicit]
        if explicit:
            logger.debug(f"Ignoring unknown stage {explicit!r} from {var}")

    if env.get("PRE_COMMIT_FROM_REF", "").strip():
        return Stage.PRE_PUSH
    return Stage.PRE_COMMIT


# env var -> (settings field, parser)
_ENV_FIELDS: dict[str, tuple[str, Callable[[str], Any]]] = {
    "FAIL_ON_HIGH_SEVERITY": ("fail_on_high_severity", parse_bool),
    "FAIL_ON_MEDIUM_SEVERITY": ("fail_on_medium_severity", parse_bool),
    "HOOKS_EXIT_POLICY": ("exit_policy", lambda raw: ExitPolicy(raw.strip().lower())),
    "HOOKS_VERBOSE": ("verbose", parse_bool),
    "HOOKS_LOG_DIR": ("log_dir", lambda raw: Path(raw).expanduser()),
    "HOOKS_SUMMARY_LINES": ("summary_lines", int),
    "HOOKS_DEBUG": ("debug", parse_bool),
    "HOOKS_AUTOFIX": ("autofix", parse_bool),
    "HOOKS_TOOL_TIMEOUT": ("tool_timeout", int),
    "HOOKS_FILE_LIMIT": ("file_limit", int),
    "MAX_PARALLEL_JOBS": ("max_parallel_jobs", int),
    "VALIDATE_ALL": ("validate_all", parse_bool),
    "PIN_SHA_DRY_RUN": ("pin_sha_dry_run", parse_bool),
    "PERFORMANCE_THRESHOLD": ("performance_threshold", float),
}


class Settings(BaseModel):
    """Complete hookgate run configuration."""

    stage: Stage = Stage.PRE_COMMIT
    fail_on_high_severity: bool = True
    fail_on_medium_severity: bool = False
    exit_policy: ExitPolicy = ExitPolicy.ANY
    verbose: bool = False
    debug: bool = False
    autofix: bool = True
    log_dir: Path = Field(default_factory=lambda: DEFAULT_LOG_DIR)
    summary_lines: int = Field(default=DEFAULT_SUMMARY_LINES, ge=1, le=1000)
    tool_timeout: int | None = Field(default=None, ge=1, le=3600)
    file_limit: int = Field(default=DEFAULT_FILE_LIMIT, ge=1, le=100000)
    max_parallel_jobs: int = Field(default=DEFAULT_MAX_PARALLEL_JOBS, ge=1, le=64)
    validate_all: bool = False
    pin_sha_dry_run: bool = False
    performance_threshold: float = Field(default=DEFAULT_PERFORMANCE_THRESHOLD, gt=0)
    disabled_checks: list[str] = Field(default_factory=list)

    @classmethod
    def load(
        cls,
        repo_root: str | Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> Settings:
        """Load settings from the optional YAML file and the environment.

        Args:
            repo_root: Repository root holding ``.hookgate.yaml``
            env: Environment mapping (defaults to ``os.environ``)

        Returns:
            Settings instance

        Raises:
            ConfigurationError: If the YAML file exists but is invalid
        """
        env = os.environ if env is None else env
        data: dict[str, Any] = {}

        if repo_root is not None:
            data.update(cls._read_file(Path(repo_root) / CONFIG_FILE_NAME))

        try:
            base = cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid {CONFIG_FILE_NAME}", {"errors": e.errors()}) from e

        return base.with_env(env)

    @staticmethod
    def _read_file(path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Cannot parse {path.name}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path.name} must contain a mapping")
        return data

    def with_env(self, env: Mapping[str, str]) -> Settings:
        """Return a copy with environment overrides applied.

        Unparseable values are dropped and the current value is kept.
        """
        updates: dict[str, Any] = {"stage": resolve_stage(env)}

        for var, (field_name, parser) in _ENV_FIELDS.items():
            raw = env.get(var)
            if raw is None or not raw.strip():
                continue
            try:
                value = parser(raw)
                candidate = self.model_copy(update={field_name: value})
                type(self).model_validate(candidate.model_dump())
            except (ValueError, ValidationError):
                logger.debug(f"Ignoring invalid {var}={raw!r}, keeping default")
                continue
            updates[field_name] = value

        return self.model_copy(update=updates)

    def is_disabled(self, check_name: str) -> bool:
        """Check whether a check was disabled in the config file."""
        return check_name in self.disabled_checks
