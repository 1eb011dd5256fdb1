# bridaprep/core/verification.py

from bridaprep.core.logger import LoggerProxy
from bridaprep.core.scope import is_within
from bridaprep.core.task import ProvisionContext
from bridaprep.core.types import (
    Component,
    ComponentVerdict,
    InstalledState,
    Scope,
    VerificationReport,
)
from bridaprep.core.version import versions_match

log = LoggerProxy(__name__)


def judge(component: Component, state: InstalledState, ctx: ProvisionContext) -> ComponentVerdict:
    """
    Pass iff the pinned version is installed in the right place.

    Environment-scoped components must resolve under the environment root;
    system-scoped components must resolve, and outside it.
    """
    root = ctx.environment.root
    expected = component.required_version
    problems: list[str] = []

    if state.parse_error:
        problems.append(f"installed version unreadable: {state.parse_error}")
    elif state.out_of_scope:
        problems.append(_scope_problem(component, state, root))
    elif state.detected_version is None:
        problems.append(f"not installed (expected {component.display_version})")
    elif not versions_match(expected, state.detected_version):
        problems.append(f"expected version {expected}, found {state.detected_version}")

    if not problems:
        inside = is_within(state.install_path, root)
        if component.scope is Scope.ENVIRONMENT and not inside:
            problems.append(_scope_problem(component, state, root))
        elif component.scope is Scope.SYSTEM and (state.install_path is None or inside):
            problems.append(_scope_problem(component, state, root))

    return ComponentVerdict(
        component_name=component.name,
        passed=not problems,
        expected_version=expected,
        state=state,
        scope=component.scope,
        problems=tuple(problems),
    )


def _scope_problem(component: Component, state: InstalledState, root) -> str:
    if component.scope is Scope.ENVIRONMENT:
        return f"resolved at {state.install_path}, outside the environment root {root}"
    if state.install_path is None:
        return "installed but not found on the system PATH"
    return f"resolved at {state.install_path}, inside the environment root {root}"


def build_report(
    components: list[Component], states: dict[str, InstalledState], ctx: ProvisionContext
) -> VerificationReport:
    return VerificationReport(tuple(judge(c, states[c.name], ctx) for c in components))


def log_report(report: VerificationReport) -> None:
    """One line per component, then the overall count."""
    for verdict in report.verdicts:
        if verdict.passed:
            log.success(f"✓ {verdict.describe()}")
        else:
            log.error(f"✗ {verdict.describe()}")
    if report.success:
        log.success("All installations verified successfully!")
    else:
        log.error(
            f"Found {report.error_count} error(s) during verification: {', '.join(report.failing)}"
        )
