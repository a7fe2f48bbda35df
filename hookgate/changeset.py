"""Change-set resolution and file-category classification."""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import PurePosixPath

from hookgate.constants import ChangeSource, FileCategory
from hookgate.git import GitRepo
from hookgate.logging import get_logger
from hookgate.types import ChangeSet

logger = get_logger("changeset")

_SUFFIX_MAP: dict[str, FileCategory] = {
    ".py": FileCategory.PYTHON,
    ".js": FileCategory.JAVASCRIPT,
    ".jsx": FileCategory.JAVASCRIPT,
    ".ts": FileCategory.TYPESCRIPT,
    ".tsx": FileCategory.TYPESCRIPT,
    ".tf": FileCategory.TERRAFORM,
    ".hcl": FileCategory.TERRAFORM,
    ".yaml": FileCategory.YAML,
    ".yml": FileCategory.YAML,
    ".json": FileCategory.JSON,
    ".toml": FileCategory.TOML,
    ".sh": FileCategory.SHELL,
}

_COMPOSE_RE = re.compile(r"docker-compose[^/]*\.ya?ml$")
_BAKE_NAMES = frozenset({"docker-bake.hcl", "bake.hcl"})
_KUSTOMIZATION_NAMES = frozenset({"kustomization.yaml", "kustomization.yml"})
_WORKFLOW_RE = re.compile(r"^\.github/workflows/.+\.ya?ml$")

# Categories that satisfy the "has JavaScript" trigger
JAVASCRIPT_FAMILY = frozenset({FileCategory.JAVASCRIPT, FileCategory.TYPESCRIPT})


def classify_path(path: str) -> frozenset[FileCategory]:
    """Return every category ``path`` belongs to.

    Pure function of the path string; the file does not need to exist.
    """
    posix = path.replace("\\", "/")
    pure = PurePosixPath(posix)
    name = pure.name
    categories: set[FileCategory] = set()

    suffix_category = _SUFFIX_MAP.get(pure.suffix.lower())
    if suffix_category is not None:
        categories.add(suffix_category)

    if "Dockerfile" in posix or _COMPOSE_RE.search(posix):
        categories.add(FileCategory.DOCKER)
    if name in _BAKE_NAMES:
        categories.add(FileCategory.DOCKER_BAKE)
    if posix.startswith("kubernetes/") or name in _KUSTOMIZATION_NAMES:
        categories.add(FileCategory.KUSTOMIZE)
    if _WORKFLOW_RE.match(posix):
        categories.add(FileCategory.WORKFLOW)

    return frozenset(categories)


def classify_change_set(paths: Iterable[str]) -> frozenset[FileCategory]:
    """Union of the categories of all ``paths``."""
    categories: set[FileCategory] = set()
    for path in paths:
        categories |= classify_path(path)
    return frozenset(categories)


def build_change_set(files: Iterable[str], source: ChangeSource, deleted: Iterable[str] = ()) -> ChangeSet:
    """Create a classified change-set from an ordered file list."""
    ordered = tuple(dict.fromkeys(f for f in files if f))
    return ChangeSet(
        files=ordered,
        source=source,
        categories=classify_change_set(ordered),
        deleted=tuple(dict.fromkeys(f for f in deleted if f)),
    )


def resolve_change_set(repo: GitRepo, limit: int) -> ChangeSet:
    """Staged files, or the first ``limit`` tracked files when nothing is staged.

    A commit that only deletes files still counts as staged; its change-set
    has no files but records the deletions.

    Args:
        repo: Repository to inspect
        limit: Bound on the fallback sample of tracked files

    Returns:
        Classified change-set
    """
    changes = repo.staged_changes()
    if changes:
        staged = [path for status, path in changes if status != "D"]
        deleted = [path for status, path in changes if status == "D"]
        logger.debug(f"Using {len(staged)} staged files ({len(deleted)} staged deletions)")
        return build_change_set(staged, ChangeSource.STAGED, deleted)

    tracked = repo.tracked_files()[:limit]
    logger.debug(f"No staged files; sampling {len(tracked)} tracked files")
    return build_change_set(tracked, ChangeSource.TRACKED)
