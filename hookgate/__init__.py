"""hookgate - pre-commit and pre-push quality and security pipeline.

Detects the file types in a git change-set, runs the applicable checks and
folds their results into a single exit code.
"""

__version__ = "0.3.0"

from hookgate.constants import CheckStatus, FileCategory, Stage
from hookgate.exceptions import HookgateError

__all__ = [
    "__version__",
    "CheckStatus",
    "FileCategory",
    "Stage",
    "HookgateError",
]
