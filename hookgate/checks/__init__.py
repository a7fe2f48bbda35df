"""Check registry and the default set of checks."""

from __future__ import annotations

from collections.abc import Iterator

from hookgate.changeset import JAVASCRIPT_FAMILY
from hookgate.checks.actions_pin import ActionsPinChecker
from hookgate.checks.base import CheckContext, CheckDefinition, Checker
from hookgate.checks.code_metrics import CodeMetricsChecker
from hookgate.checks.docker_bake import DockerBakeChecker
from hookgate.checks.docker_security import DockerSecurityChecker
from hookgate.checks.file_quality import FileQualityChecker
from hookgate.checks.javascript_quality import JavaScriptQualityChecker
from hookgate.checks.kustomize import KustomizeChecker
from hookgate.checks.license import LicenseChecker
from hookgate.checks.performance import PerformanceChecker
from hookgate.checks.python_quality import PythonQualityChecker
from hookgate.checks.security import SecurityChecker
from hookgate.checks.terraform_quality import TerraformQualityChecker
from hookgate.constants import FileCategory, Stage
from hookgate.types import ChangeSet

__all__ = [
    "CheckContext",
    "CheckDefinition",
    "CheckRegistry",
    "Checker",
    "default_registry",
]


class CheckRegistry:
    """Ordered collection of check definitions.

    Registration order is dispatch order.
    """

    def __init__(self) -> None:
        self._definitions: dict[str, CheckDefinition] = {}

    def register(self, definition: CheckDefinition) -> None:
        """Add a check definition.

        Raises:
            ValueError: If a check with the same name is already registered
        """
        if definition.name in self._definitions:
            raise ValueError(f"Check already registered: {definition.name}")
        self._definitions[definition.name] = definition

    def get(self, name: str) -> CheckDefinition | None:
        return self._definitions.get(name)

    def all(self) -> list[CheckDefinition]:
        return list(self._definitions.values())

    def for_stage(self, stage: Stage) -> list[CheckDefinition]:
        """Definitions that run in ``stage``, in registration order."""
        return [d for d in self._definitions.values() if d.runs_in(stage)]

    def applicable(self, stage: Stage, change_set: ChangeSet) -> list[CheckDefinition]:
        """Definitions whose stage and triggers match the change-set."""
        return [d for d in self._definitions.values() if d.applies_to(stage, change_set)]

    def __iter__(self) -> Iterator[CheckDefinition]:
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, name: object) -> bool:
        return name in self._definitions


def default_registry() -> CheckRegistry:
    """The built-in checks in dispatch order."""
    registry = CheckRegistry()
    for definition in (
        CheckDefinition(
            name="security",
            title="🛡️  Security Scan",
            description="Comprehensive security scanning",
            stage=Stage.BOTH,
            factory=SecurityChecker,
            critical=True,
            always_run=True,
        ),
        CheckDefinition(
            name="python-quality",
            title="🐍 Python Quality",
            description="Python formatting, linting, and type checking",
            stage=Stage.PRE_COMMIT,
            factory=PythonQualityChecker,
            triggers=frozenset({FileCategory.PYTHON}),
        ),
        CheckDefinition(
            name="javascript-quality",
            title="📋 JavaScript Quality",
            description="JavaScript/TypeScript formatting and linting",
            stage=Stage.PRE_COMMIT,
            factory=JavaScriptQualityChecker,
            triggers=JAVASCRIPT_FAMILY,
        ),
        CheckDefinition(
            name="terraform-quality",
            title="🏗️  Infrastructure",
            description="Terraform validation and security",
            stage=Stage.PRE_COMMIT,
            factory=TerraformQualityChecker,
            triggers=frozenset({FileCategory.TERRAFORM}),
        ),
        CheckDefinition(
            name="docker-security",
            title="🐋 Container Security",
            description="Docker and container validation",
            stage=Stage.PRE_COMMIT,
            factory=DockerSecurityChecker,
            triggers=frozenset({FileCategory.DOCKER}),
            critical=True,
        ),
        CheckDefinition(
            name="docker-bake",
            title="🧱 Docker Bake",
            description="Validate docker-bake.hcl with buildx",
            stage=Stage.PRE_COMMIT,
            factory=DockerBakeChecker,
            triggers=frozenset({FileCategory.DOCKER_BAKE}),
        ),
        CheckDefinition(
            name="kustomize",
            title="☸️  Kustomize",
            description="Validate kustomization builds",
            stage=Stage.PRE_COMMIT,
            factory=KustomizeChecker,
            triggers=frozenset({FileCategory.KUSTOMIZE}),
        ),
        CheckDefinition(
            name="actions-pin",
            title="🔗 Actions SHA pinning",
            description="Pin GitHub Actions to SHAs with semver comments",
            stage=Stage.PRE_COMMIT,
            factory=ActionsPinChecker,
            triggers=frozenset({FileCategory.WORKFLOW}),
        ),
        CheckDefinition(
            name="file-quality",
            title="📁 File Quality",
            description="General file validation and formatting",
            stage=Stage.PRE_COMMIT,
            factory=FileQualityChecker,
        ),
        CheckDefinition(
            name="performance",
            title="⚡ Performance Check",
            description="Performance regression testing",
            stage=Stage.PRE_PUSH,
            factory=PerformanceChecker,
        ),
        CheckDefinition(
            name="license",
            title="⚖️  License Compliance",
            description="Dependency license validation",
            stage=Stage.PRE_PUSH,
            factory=LicenseChecker,
        ),
        CheckDefinition(
            name="code-metrics",
            title="📊 Code Metrics",
            description="Code quality metrics and analysis",
            stage=Stage.PRE_PUSH,
            factory=CodeMetricsChecker,
        ),
    ):
        registry.register(definition)
    return registry
