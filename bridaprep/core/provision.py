# bridaprep/core/provision.py
"""
One convergence pass: inspect, reconcile, execute, re-inspect, verify.

Components are processed strictly in order. Errors are collected per
component; only a failed prerequisite (the isolated environment) stops the
components that require it, and those are marked failed without an attempt.
"""

from dataclasses import dataclass, field

from bridaprep.core import executor, inspector
from bridaprep.core.logger import LoggerProxy
from bridaprep.core.reconciler import reconcile_all
from bridaprep.core.task import ProvisionContext
from bridaprep.core.types import (
    Action,
    Component,
    ComponentState,
    ExecutionResult,
    InstalledState,
    ReconciliationDecision,
    VerificationReport,
)
from bridaprep.core.verification import build_report, log_report

log = LoggerProxy(__name__)

S = ComponentState
_TRANSITIONS: dict[ComponentState, frozenset[ComponentState]] = {
    S.UNKNOWN: frozenset({S.INSPECTED}),
    S.INSPECTED: frozenset({S.DECIDED}),
    S.DECIDED: frozenset({S.SKIPPED, S.EXECUTING, S.FAILED}),
    S.EXECUTING: frozenset({S.SUCCEEDED, S.FAILED}),
    S.SKIPPED: frozenset({S.REVERIFIED}),
    S.SUCCEEDED: frozenset({S.REVERIFIED}),
    S.FAILED: frozenset({S.REVERIFIED}),
    S.REVERIFIED: frozenset({S.PASS, S.FAIL}),
    S.PASS: frozenset(),
    S.FAIL: frozenset(),
}


class Lifecycle:
    """Tracks each component through the run and rejects illegal transitions."""

    def __init__(self, names: list[str]):
        self.history: dict[str, list[ComponentState]] = {n: [S.UNKNOWN] for n in names}

    def state(self, name: str) -> ComponentState:
        return self.history[name][-1]

    def advance(self, name: str, new: ComponentState) -> None:
        current = self.state(name)
        if new not in _TRANSITIONS[current]:
            raise RuntimeError(f"{name}: illegal transition {current.value} -> {new.value}")
        self.history[name].append(new)

    def entered(self, name: str, state: ComponentState) -> bool:
        return state in self.history[name]


@dataclass
class ProvisionOutcome:
    before: dict[str, InstalledState]
    decisions: dict[str, ReconciliationDecision]
    results: dict[str, ExecutionResult]
    after: dict[str, InstalledState]
    report: VerificationReport
    lifecycle: Lifecycle
    prerequisite_failures: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.report.success


def plan(components: list[Component], ctx: ProvisionContext) -> dict[str, ReconciliationDecision]:
    """Inspect and reconcile only; nothing on the host changes."""
    states = inspector.inspect_all(components, ctx)
    return reconcile_all(components, states)


def verify(components: list[Component], ctx: ProvisionContext) -> VerificationReport:
    """Inspect and judge only."""
    states = inspector.inspect_all(components, ctx)
    report = build_report(components, states, ctx)
    log_report(report)
    return report


def apply(
    components: list[Component],
    decisions: dict[str, ReconciliationDecision],
    before: dict[str, InstalledState],
    ctx: ProvisionContext,
    lifecycle: Lifecycle,
) -> tuple[dict[str, ExecutionResult], list[str]]:
    results: dict[str, ExecutionResult] = {}
    failed_prerequisites: dict[str, str | None] = {}

    for component in components:
        decision = decisions[component.name]
        blocker = next((r for r in component.requires if r in failed_prerequisites), None)

        if blocker is not None:
            result = executor.blocked(component, blocker, failed_prerequisites[blocker])
            lifecycle.advance(component.name, S.FAILED)
            # Anything requiring this one is blocked by the same root cause
            if component.prerequisite:
                failed_prerequisites[component.name] = result.error_detail
        elif decision.action is Action.KEEP:
            result = executor.execute(component, decision, before[component.name], ctx)
            lifecycle.advance(component.name, S.SKIPPED)
        else:
            lifecycle.advance(component.name, S.EXECUTING)
            result = executor.execute(component, decision, before[component.name], ctx)
            lifecycle.advance(component.name, S.SUCCEEDED if result.succeeded else S.FAILED)
            if not result.succeeded and (result.fatal or component.prerequisite):
                log.error(
                    f"Prerequisite {component.name} failed; components requiring it will not be attempted"
                )
                failed_prerequisites[component.name] = result.error_detail

        results[component.name] = result

    return results, list(failed_prerequisites)


def provision(components: list[Component], ctx: ProvisionContext) -> ProvisionOutcome:
    lifecycle = Lifecycle([c.name for c in components])

    log.info("Inspecting installed components...")
    before = inspector.inspect_all(components, ctx)
    for c in components:
        lifecycle.advance(c.name, S.INSPECTED)

    decisions = reconcile_all(components, before)
    for c in components:
        lifecycle.advance(c.name, S.DECIDED)
        log.debug(f"{c.name}: {decisions[c.name].action.value} ({decisions[c.name].reason})")

    results, prerequisite_failures = apply(components, decisions, before, ctx, lifecycle)

    log.info("Verifying all installations...")
    after = inspector.inspect_all(components, ctx)
    report = build_report(components, after, ctx)
    for verdict in report.verdicts:
        lifecycle.advance(verdict.component_name, S.REVERIFIED)
        lifecycle.advance(verdict.component_name, S.PASS if verdict.passed else S.FAIL)
    log_report(report)

    return ProvisionOutcome(
        before=before,
        decisions=decisions,
        results=results,
        after=after,
        report=report,
        lifecycle=lifecycle,
        prerequisite_failures=prerequisite_failures,
    )
