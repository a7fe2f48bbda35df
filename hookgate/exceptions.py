"""hookgate exception hierarchy."""

from typing import Any


class HookgateError(Exception):
    """Base exception for all hookgate errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigurationError(HookgateError):
    """Error in hookgate configuration."""

    pass


class NotAGitRepositoryError(HookgateError):
    """The working directory is not inside a git repository."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message, {"path": path} if path else None)
        self.path = path


class GitError(HookgateError):
    """Error in git operations."""

    def __init__(
        self,
        message: str,
        command: str | None = None,
        exit_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.command = command
        self.exit_code = exit_code


class ToolMissingError(HookgateError):
    """An external tool a check needs is not installed."""

    def __init__(self, tool: str) -> None:
        super().__init__(f"{tool} not found")
        self.tool = tool


class CheckExecutionError(HookgateError):
    """A checker raised instead of returning an outcome."""

    def __init__(self, message: str, check_name: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details)
        self.check_name = check_name
