"""External tool execution for checks.

This module runs the third-party tools checks delegate to:
1. Using shell=False for all subprocess calls
2. Writing every command and its combined output to the check's log
3. Streaming output live when the run is verbose
4. Turning a missing binary into a skip instead of a failure
"""

from __future__ import annotations

import os
import shlex
import shutil
import subprocess
import threading
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from hookgate.exceptions import ToolMissingError
from hookgate.logging import get_logger

logger = get_logger("command_executor")

# Exit code reported when the binary could not be started
EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124


# Install command suggested when a tool is missing
INSTALL_HINTS: dict[str, str] = {
    # Python
    "black": "pip install black",
    "isort": "pip install isort",
    "flake8": "pip install flake8",
    "mypy": "pip install mypy",
    "bandit": "pip install bandit",
    "safety": "pip install safety",
    "semgrep": "pip install semgrep",
    "pip-licenses": "pip install pip-licenses",
    "radon": "pip install radon",
    "checkov": "pip install checkov",
    "yamllint": "pip install yamllint",
    # JavaScript
    "node": "brew install node",
    "npm": "brew install node",
    "npx": "brew install node",
    "prettier": "npm install -g prettier",
    "eslint": "npm install -g eslint",
    "tsc": "npm install -g typescript",
    "license-checker": "npm install -g license-checker",
    # Infrastructure
    "terraform": "brew install terraform",
    "terragrunt": "brew install terragrunt",
    "tflint": "brew install tflint",
    "tfsec": "brew install tfsec",
    "terrascan": "brew install terrascan",
    "terraform-docs": "brew install terraform-docs",
    "kubectl": "brew install kubectl",
    # Containers
    "docker": "https://docs.docker.com/get-docker/",
    "hadolint": "brew install hadolint",
    "trivy": "brew install trivy",
    "docker-bench-security": "https://github.com/docker/docker-bench-security",
    # General
    "shfmt": "brew install shfmt",
    "actionlint": "brew install actionlint",
    "cloc": "brew install cloc",
    "bash": "preinstalled on most systems",
}


def install_hint(tool: str) -> str:
    """Suggested install command for ``tool``."""
    return INSTALL_HINTS.get(tool, f"install {tool}")


@dataclass
class ToolResult:
    """Result of one tool invocation."""

    command: list[str]
    exit_code: int
    output: str
    duration_ms: int

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def not_found(self) -> bool:
        return self.exit_code == EXIT_NOT_FOUND


class CheckLog:
    """Per-check log file, optionally echoed live to the terminal."""

    def __init__(self, path: Path | None, echo: Callable[[str], None] | None = None) -> None:
        """Initialize the log.

        Args:
            path: Log file path (truncated on open); None keeps the log in memory
            echo: Callback receiving every written chunk when streaming
        """
        self.path = path
        self._echo = echo
        self._buffer: list[str] = []
        self._lock = threading.Lock()
        self._handle: IO[str] | None = None
        if path is not None:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                self._handle = open(path, "w", encoding="utf-8")
            except OSError as e:
                logger.warning(f"Cannot write log {path}: {e}; keeping it in memory")
                self.path = None

    def write(self, text: str) -> None:
        """Append raw text to the log."""
        if not text:
            return
        with self._lock:
            self._buffer.append(text)
            if self._handle is not None:
                self._handle.write(text)
                self._handle.flush()
            if self._echo is not None:
                self._echo(text)

    def line(self, message: str = "") -> None:
        """Append one line to the log."""
        self.write(f"{message}\n")

    def text(self) -> str:
        with self._lock:
            return "".join(self._buffer)

    def close(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.close()
                self._handle = None

    def __enter__(self) -> CheckLog:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class ToolRunner:
    """Runs external tools for one check and records them in its log."""

    def __init__(
        self,
        log: CheckLog,
        working_dir: Path | str,
        timeout: int | None = None,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        """Initialize the runner.

        Args:
            log: Log receiving commands and combined output
            working_dir: Default working directory (the repository root)
            timeout: Optional per-tool timeout in seconds
            which: Binary lookup, injectable for tests
        """
        self.log = log
        self.working_dir = Path(working_dir)
        self.timeout = timeout
        self._which = which

    def available(self, binary: str) -> bool:
        """Check whether ``binary`` is on PATH."""
        return self._which(binary) is not None

    def require(self, binary: str) -> None:
        """Raise ToolMissingError unless ``binary`` is on PATH."""
        if not self.available(binary):
            raise ToolMissingError(binary)

    def missing(self, tool: str, what: str = "") -> None:
        """Record that a tool was skipped because it is not installed."""
        suffix = f" - skipping {what}" if what else ""
        self.log.line(f"⚠ {tool} not available{suffix} (install with: {install_hint(tool)})")
        logger.info(f"{tool} not installed{suffix}")

    def run(
        self,
        command: Sequence[str],
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
        record: bool = True,
    ) -> ToolResult:
        """Execute a tool and capture its combined stdout/stderr.

        Args:
            command: Argument list
            cwd: Working directory (overrides default)
            env: Additional environment variables
            record: Whether to write the command and output to the log

        Returns:
            ToolResult with execution details
        """
        cmd_args = list(command)
        exec_cwd = Path(cwd) if cwd else self.working_dir
        exec_env = os.environ.copy()
        if env:
            exec_env.update(env)

        start_time = time.time()
        if record:
            self.log.line(f"$ {shlex.join(cmd_args)}")

        try:
            proc = subprocess.Popen(
                cmd_args,
                cwd=str(exec_cwd),
                env=exec_env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                errors="replace",
            )
        except FileNotFoundError:
            message = f"Command not found: {cmd_args[0]}\n"
            if record:
                self.log.write(message)
            return self._finish(cmd_args, EXIT_NOT_FOUND, message, start_time)
        except OSError as e:
            message = f"Failed to start {cmd_args[0]}: {e}\n"
            if record:
                self.log.write(message)
            return self._finish(cmd_args, EXIT_NOT_FOUND, message, start_time)

        timed_out = threading.Event()
        timer: threading.Timer | None = None
        if self.timeout:
            timer = threading.Timer(self.timeout, self._kill, args=(proc, timed_out))
            timer.start()

        chunks: list[str] = []
        try:
            assert proc.stdout is not None
            for chunk in proc.stdout:
                chunks.append(chunk)
                if record:
                    self.log.write(chunk)
            exit_code = proc.wait()
        finally:
            if timer is not None:
                timer.cancel()

        output = "".join(chunks)
        if timed_out.is_set():
            message = f"Command timed out after {self.timeout}s\n"
            if record:
                self.log.write(message)
            output += message
            exit_code = EXIT_TIMEOUT

        return self._finish(cmd_args, exit_code, output, start_time)

    def succeeds(self, command: Sequence[str], cwd: Path | str | None = None) -> bool:
        """Run a probe command without logging it; True on exit code 0."""
        return self.run(command, cwd=cwd, record=False).success

    def npx_or_global(self, tool: str, version_flag: str = "--version", cwd: Path | str | None = None) -> list[str] | None:
        """Resolve a node tool: project-local via ``npx --no-install`` first, then global."""
        if self.available("npx"):
            npx_cmd = ["npx", "--no-install", tool]
            if self.succeeds([*npx_cmd, version_flag], cwd=cwd):
                return npx_cmd
        if self.available(tool):
            return [tool]
        return None

    @staticmethod
    def _kill(proc: subprocess.Popen[str], flag: threading.Event) -> None:
        flag.set()
        proc.kill()

    def _finish(self, command: list[str], exit_code: int, output: str, start_time: float) -> ToolResult:
        duration_ms = int((time.time() - start_time) * 1000)
        result = ToolResult(command=command, exit_code=exit_code, output=output, duration_ms=duration_ms)
        logger.debug(
            f"{command[0]} exited {exit_code} in {duration_ms}ms",
            extra={"tool": command[0], "exit_code": exit_code, "duration_ms": duration_ms},
        )
        return result
