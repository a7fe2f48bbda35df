"""CI merge gate: syntax and critical validation only.

Runs every step (no fail-fast) over the files a pull request changes and
fails when any step fails. Style is not checked here.
"""

from __future__ import annotations

import json
import os
import re
import shlex
import tomllib
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from hookgate.command_executor import ToolRunner
from hookgate.constants import DEFAULT_MERGE_GATE_LIMIT
from hookgate.git import GitRepo
from hookgate.logging import get_logger

logger = get_logger("merge_gate")

YAMLLINT_SYNTAX_CONFIG = (
    "{rules: {line-length: disable, indentation: disable, trailing-spaces: disable, "
    "new-lines: disable, document-start: disable, truthy: disable, comments: disable, "
    "comments-indentation: disable, empty-lines: disable, colons: disable, commas: disable, "
    "brackets: disable, braces: disable, key-duplicates: enable}}"
)
COMPOSE_RE = re.compile(r"(^|/)(docker-compose.*|compose)\.ya?ml$")
K8S_MANIFEST_RE = re.compile(r"^\s*(apiVersion|kind):", re.MULTILINE)


@dataclass(frozen=True)
class GateStep:
    """Result of one merge gate step."""

    section: str
    label: str
    passed: bool


def parent_dirs(files: list[str]) -> list[str]:
    return sorted({str(PurePosixPath(f).parent) for f in files})


def json_error(path: Path) -> str | None:
    try:
        json.loads(path.read_text(encoding="utf-8"))
    except (ValueError, UnicodeDecodeError) as e:
        return str(e)
    return None


def toml_error(path: Path) -> str | None:
    try:
        with open(path, "rb") as f:
            tomllib.load(f)
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        return str(e)
    return None


def python_syntax_error(path: Path) -> str | None:
    """Compile ``path`` without writing bytecode; None when it parses."""
    try:
        compile(path.read_bytes(), str(path), "exec")
    except (SyntaxError, ValueError) as e:
        return str(e)
    return None


class MergeGate:
    """Run the merge gate steps and collect their results."""

    def __init__(
        self,
        repo: GitRepo,
        runner: ToolRunner,
        env: Mapping[str, str] | None = None,
        limit: int = DEFAULT_MERGE_GATE_LIMIT,
    ) -> None:
        """Initialize the merge gate.

        Args:
            repo: Repository under test
            runner: Tool runner bound to the merge gate log
            env: Environment (defaults to ``os.environ``); reads GITHUB_BASE_REF/GITHUB_HEAD_REF
            limit: Bound on files when falling back to tracked files
        """
        self.repo = repo
        self.runner = runner
        self.env = os.environ if env is None else env
        self.limit = limit
        self._results: list[GateStep] = []

    @property
    def root(self) -> Path:
        return self.repo.root

    def select_files(self) -> list[str]:
        """Files changed by the pull request, the last commit, or the first tracked files."""
        files: list[str] = []
        base_ref = self.env.get("GITHUB_BASE_REF", "").strip()
        if base_ref:
            head_ref = self.env.get("GITHUB_HEAD_REF", "").strip()
            self.repo.fetch(*(r for r in (base_ref, head_ref) if r))
            files = self.repo.diff_names(f"origin/{base_ref}...HEAD")
        if not files:
            files = self.repo.diff_names("HEAD~1..HEAD")
        if not files:
            files = self.repo.tracked_files()[: self.limit]
        return sorted(set(files))

    def run(self, files: list[str] | None = None) -> list[GateStep]:
        """Run every step over ``files`` (selected automatically when None)."""
        if files is None:
            files = self.select_files()
        existing = [f for f in files if (self.root / f).is_file()]
        logger.info(f"Merge gate over {len(existing)} file(s)")

        self._yaml([f for f in existing if f.endswith((".yml", ".yaml"))])
        self._workflows()
        self._native("JSON syntax", "JSON parses", [f for f in existing if f.endswith(".json")], json_error)
        self._native("TOML syntax", "TOML parses", [f for f in existing if f.endswith(".toml")], toml_error)
        self._per_file("Shell script syntax", "bash -n", ["bash", "-n"], [f for f in existing if f.endswith(".sh")])
        self._native("Python syntax", "compile", [f for f in existing if f.endswith(".py")], python_syntax_error)
        self._per_file("JavaScript syntax", "node --check", ["node", "--check"], [f for f in existing if f.endswith(".js")])
        self._typescript([f for f in existing if f.endswith((".ts", ".tsx"))])

        tf_dirs = [d for d in parent_dirs([f for f in existing if f.endswith((".tf", ".hcl"))]) if (self.root / d).is_dir()]
        self._terraform(tf_dirs)
        self._compose([f for f in existing if COMPOSE_RE.search(f)])
        self._helm(existing)
        self._gitleaks()
        self._terraform_security(tf_dirs)
        self._kubernetes(existing)
        self._dependency_audit()
        self._trivy()
        return self.get_results()

    def _record(self, section: str, label: str, passed: bool) -> None:
        self._results.append(GateStep(section=section, label=label, passed=passed))
        self.runner.log.line(f"  {'✓' if passed else '✗'} {label}")

    def _step(self, section: str, label: str, command: list[str], cwd: Path | None = None) -> None:
        self._record(section, label, self.runner.run(command, cwd=cwd).success)

    def _section(self, title: str) -> None:
        self.runner.log.line(title)

    def _yaml(self, files: list[str]) -> None:
        if not files:
            return
        self._section("YAML syntax")
        if not self.runner.available("yamllint"):
            self.runner.missing("yamllint", "YAML checks")
            return
        for rel in files:
            self._step("YAML syntax", f"YAML parses: {rel}", ["yamllint", "-d", YAMLLINT_SYNTAX_CONFIG, rel])

    def _workflows(self) -> None:
        if not (self.root / ".github" / "workflows").is_dir():
            return
        self._section("GitHub Actions workflows")
        if not self.runner.available("actionlint"):
            self.runner.missing("actionlint", "workflow lint")
            return
        self._step("GitHub Actions workflows", "workflows pass actionlint", ["actionlint", "-shellcheck="])

    def _native(self, section: str, label: str, files: list[str], probe: Callable[[Path], str | None]) -> None:
        if not files:
            return
        self._section(section)
        for rel in files:
            error = probe(self.root / rel)
            if error:
                self.runner.log.line(f"    {rel}: {error}")
            self._record(section, f"{label}: {rel}", error is None)

    def _per_file(self, section: str, label: str, command: list[str], files: list[str]) -> None:
        if not files or not self.runner.available(command[0]):
            return
        self._section(section)
        for rel in files:
            self._step(section, f"{label}: {rel}", [*command, rel])

    def _typescript(self, files: list[str]) -> None:
        if not files or not self.runner.available("npx"):
            return
        if not self.runner.succeeds(["npx", "--no-install", "tsc", "-v"]):
            return
        self._section("TypeScript type-check")
        self._step("TypeScript type-check", "tsc --noEmit", ["npx", "--no-install", "tsc", "--noEmit"])

    def _terraform(self, tf_dirs: list[str]) -> None:
        if not tf_dirs or not self.runner.available("terraform"):
            return
        self._section("Terraform validate")
        env = {"TF_IN_AUTOMATION": "1"}
        for d in tf_dirs:
            init = self.runner.run(["terraform", f"-chdir={d}", "init", "-backend=false", "-input=false", "-no-color"], env=env)
            self._record("Terraform validate", f"terraform init ({d})", init.success)
            validate = self.runner.run(["terraform", f"-chdir={d}", "validate", "-no-color"], env=env)
            self._record("Terraform validate", f"terraform validate ({d})", validate.success)

    def _compose(self, files: list[str]) -> None:
        if not files or not self.runner.available("docker"):
            return
        self._section("Docker Compose config")
        for rel in files:
            self._step("Docker Compose config", f"docker compose config: {rel}", ["docker", "compose", "-f", rel, "config", "-q"])

    def _helm(self, files: list[str]) -> None:
        chart_dirs = parent_dirs([f for f in files if PurePosixPath(f).name in ("Chart.yaml", "Chart.yml")])
        charts = self.root / "charts"
        if not chart_dirs and charts.is_dir():
            chart_dirs = sorted(
                str(p.parent.relative_to(self.root))
                for p in charts.rglob("Chart.yaml")
                if len(p.relative_to(charts).parts) <= 3
            )
        if not chart_dirs or not self.runner.available("helm"):
            return
        self._section("Helm lint")
        for d in chart_dirs:
            self._step("Helm lint", f"helm lint ({d})", ["helm", "lint", d, "--quiet"])

    def _gitleaks(self) -> None:
        if not self.runner.available("gitleaks"):
            return
        self._section("Secrets scan (gitleaks)")
        base = ""
        base_ref = self.env.get("GITHUB_BASE_REF", "").strip()
        if base_ref:
            base = self.repo.merge_base(f"origin/{base_ref}", "HEAD")
        command = ["gitleaks", "detect", "--no-banner", "--redact", "--source", ".", "--exit-code", "1"]
        if base:
            self._step("Secrets scan", f"gitleaks (diff {base}..HEAD)", [*command, f"--log-opts={base}..HEAD"])
        else:
            self._step("Secrets scan", "gitleaks (working tree)", [*command, "--no-git"])

    def _terraform_security(self, tf_dirs: list[str]) -> None:
        if not tf_dirs:
            return
        if self.runner.available("tfsec"):
            self._section("tfsec (HIGH severity)")
            for d in tf_dirs:
                self._step("tfsec", f"tfsec ({d})", ["tfsec", d, "--minimum-severity", "HIGH", "--format", "compact"])
        if self.runner.available("checkov"):
            self._section("checkov (HIGH severity)")
            for d in tf_dirs:
                self._step(
                    "checkov",
                    f"checkov ({d})",
                    ["checkov", "-d", d, "--framework", "terraform", "--quiet", "--severity-level", "HIGH"],
                )

    def _kubernetes(self, files: list[str]) -> None:
        if not self.runner.available("kubeconform"):
            return
        yaml_files = [f for f in files if f.endswith((".yml", ".yaml"))]
        manifests = [
            f for f in yaml_files
            if K8S_MANIFEST_RE.search((self.root / f).read_text(encoding="utf-8", errors="replace"))
        ]
        kubeconform = ["kubeconform", "-strict", "-ignore-missing-schemas", "-summary"]
        if manifests:
            self._section("Kubernetes manifests (kubeconform)")
            self._step("Kubernetes manifests", "kubeconform (files)", [*kubeconform, *manifests])

        kustomize_dirs = parent_dirs(
            [f for f in files if PurePosixPath(f).name in ("kustomization.yaml", "kustomization.yml")]
        )
        if not kustomize_dirs or not self.runner.available("kustomize"):
            return
        self._section("Kustomize builds (kubeconform)")
        for d in kustomize_dirs:
            pipeline = f"kustomize build {shlex.quote(d)} | {shlex.join(kubeconform)}"
            self._step("Kustomize builds", f"kustomize build ({d}) | kubeconform", ["bash", "-o", "pipefail", "-c", pipeline])

    def _dependency_audit(self) -> None:
        if (self.root / "package.json").is_file() and self.runner.available("npm"):
            self._section("npm audit (HIGH+)")
            self._step(
                "npm audit",
                "npm audit --omit=dev --audit-level=high",
                ["npm", "audit", "--omit=dev", "--audit-level=high"],
            )
        if self.runner.available("pip-audit"):
            self._section("pip-audit (advisory)")
            command = ["pip-audit", "--strict", "--disable-pip-version-check"]
            if (self.root / "requirements.txt").is_file():
                command += ["-r", "requirements.txt"]
            result = self.runner.run(command)
            if not result.success:
                self.runner.log.line("  ⚠ pip-audit reported vulnerabilities (advisory)")

    def _trivy(self) -> None:
        if not self.runner.available("trivy"):
            return
        self._section("Trivy config (HIGH,CRITICAL)")
        self._step(
            "Trivy config",
            "trivy config .",
            ["trivy", "config", ".", "--severity", "HIGH,CRITICAL", "--exit-code", "1", "--quiet"],
        )

    def get_results(self) -> list[GateStep]:
        return self._results.copy()

    def get_summary(self) -> dict[str, int]:
        """Counts of passed and failed steps."""
        failed = sum(1 for step in self._results if not step.passed)
        return {"total": len(self._results), "passed": len(self._results) - failed, "failed": failed}

    @property
    def exit_code(self) -> int:
        return 1 if any(not step.passed for step in self._results) else 0
