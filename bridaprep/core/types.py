from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class InstallStrategy(str, Enum):
    PACKAGE_MANAGER = "package_manager"
    BUILD_FROM_SOURCE = "build_from_source"
    LANGUAGE_RUNTIME_PACKAGE = "language_runtime_package"
    GLOBAL_MODULE_INSTALL = "global_module_install"
    SYSTEM_PACKAGE = "system_package"
    ISOLATED_ENVIRONMENT = "isolated_environment"


class DetectionStrategy(str, Enum):
    EXECUTABLE_VERSION = "executable_version"
    ENVIRONMENT_INTERPRETER = "environment_interpreter"
    ENVIRONMENT_MODULE = "environment_module"
    GLOBAL_MODULE = "global_module"


class Scope(str, Enum):
    SYSTEM = "system"
    ENVIRONMENT = "environment"


class Action(str, Enum):
    KEEP = "keep"
    REINSTALL = "reinstall"
    INSTALL = "install"


class ComponentState(str, Enum):
    """Lifecycle of a single component within one run."""

    UNKNOWN = "unknown"
    INSPECTED = "inspected"
    DECIDED = "decided"
    SKIPPED = "skipped"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REVERIFIED = "reverified"
    PASS = "pass"
    FAIL = "fail"


@dataclass(frozen=True)
class Component:
    name: str
    required_version: str | None
    detection: DetectionStrategy
    install_strategy: InstallStrategy
    scope: Scope
    executable: str | None = None  # binary probed for version / location
    package: str | None = None  # distribution, npm or apt package name
    module: str | None = None  # import name for environment libraries
    removal_commands: tuple[tuple[str, ...], ...] = ()
    requires: tuple[str, ...] = ()
    prerequisite: bool = False
    rebuilds_dependents: bool = False  # installing it invalidates what requires it
    options: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def display_version(self) -> str:
        return self.required_version or "any"


@dataclass(frozen=True)
class InstalledState:
    component_name: str
    detected_version: str | None = None
    install_path: str | None = None
    raw_output: str | None = None
    parse_error: str | None = None
    out_of_scope: bool = False

    @property
    def is_present(self) -> bool:
        return self.detected_version is not None


@dataclass(frozen=True)
class ReconciliationDecision:
    component_name: str
    action: Action
    reason: str


@dataclass
class ExecutionResult:
    component_name: str
    succeeded: bool
    error_detail: str | None = None
    attempted: bool = True
    fatal: bool = False  # a prerequisite failed; dependents must not run
    commands: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ComponentVerdict:
    component_name: str
    passed: bool
    expected_version: str | None
    state: InstalledState
    scope: Scope
    problems: tuple[str, ...] = ()

    def describe(self) -> str:
        if self.passed:
            where = f" at {self.state.install_path}" if self.state.install_path else ""
            return f"{self.component_name} {self.state.detected_version}{where}"
        return f"{self.component_name}: " + "; ".join(self.problems)


@dataclass(frozen=True)
class VerificationReport:
    verdicts: tuple[ComponentVerdict, ...]

    @property
    def error_count(self) -> int:
        return sum(1 for v in self.verdicts if not v.passed)

    @property
    def success(self) -> bool:
        return self.error_count == 0

    @property
    def failing(self) -> list[str]:
        return [v.component_name for v in self.verdicts if not v.passed]

    def as_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "error_count": self.error_count,
            "components": [
                {
                    "name": v.component_name,
                    "passed": v.passed,
                    "scope": v.scope.value,
                    "expected_version": v.expected_version,
                    "detected_version": v.state.detected_version,
                    "install_path": v.state.install_path,
                    "problems": list(v.problems),
                }
                for v in self.verdicts
            ],
        }
