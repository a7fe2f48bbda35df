"""hookgate constants and enumerations."""

from enum import Enum
from pathlib import Path


class Stage(Enum):
    """Git workflow stage the pipeline runs for."""

    PRE_COMMIT = "pre-commit"
    PRE_PUSH = "pre-push"
    BOTH = "both"


class FileCategory(Enum):
    """File categories a change-set is classified into."""

    PYTHON = "python"
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    TERRAFORM = "terraform"
    DOCKER = "docker"
    DOCKER_BAKE = "docker_bake"
    KUSTOMIZE = "kustomize"
    YAML = "yaml"
    JSON = "json"
    TOML = "toml"
    SHELL = "shell"
    WORKFLOW = "workflow"


class CheckStatus(Enum):
    """Outcome of a single check invocation."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    ERROR = "error"


class ExitPolicy(Enum):
    """Which failures turn into a non-zero exit code."""

    ANY = "any"
    CRITICAL = "critical"


class Severity(Enum):
    """Severity of a security finding."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ChangeSource(Enum):
    """Where the change-set came from."""

    STAGED = "staged"
    TRACKED = "tracked"


# Stage aliases accepted from pre-commit's own environment
STAGE_ALIASES: dict[str, Stage] = {
    "pre-commit": Stage.PRE_COMMIT,
    "commit": Stage.PRE_COMMIT,
    "pre-push": Stage.PRE_PUSH,
    "push": Stage.PRE_PUSH,
}

# Defaults
DEFAULT_LOG_DIR = Path.home() / ".pre-commit-hooks" / "logs"
DEFAULT_SUMMARY_LINES = 60
DEFAULT_FILE_LIMIT = 100
DEFAULT_FILE_QUALITY_LIMIT = 50
DEFAULT_MAX_PARALLEL_JOBS = 8
DEFAULT_PERFORMANCE_THRESHOLD = 5.0
DEFAULT_MERGE_GATE_LIMIT = 1000

MAX_HINTS = 3
LARGE_FILE_BYTES = 1024 * 1024
CONFIG_FILE_NAME = ".hookgate.yaml"

PROTECTED_BRANCHES = frozenset({"main", "master"})
