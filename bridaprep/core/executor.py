# bridaprep/core/executor.py
"""
Apply one reconciliation decision.

Every component handed to ``execute`` yields exactly one ExecutionResult;
failures are returned, not raised, so the run can carry on with the next
component.
"""

import shlex
import string

from bridaprep.core.command import run_command
from bridaprep.core.errors import CleanupWarning, ExecutionFailure, PrerequisiteFailure
from bridaprep.core.logger import LoggerProxy
from bridaprep.core.registry import get_installer
from bridaprep.core.steps import command_env
from bridaprep.core.task import ProvisionContext
from bridaprep.core.types import (
    Action,
    Component,
    ExecutionResult,
    InstalledState,
    ReconciliationDecision,
    Scope,
)

log = LoggerProxy(__name__)


def render_removal_command(
    template: tuple[str, ...], state: InstalledState, ctx: ProvisionContext
) -> list[str] | None:
    """Fill placeholders in a removal command; None when a value is unknown."""
    values = {
        "install_path": state.install_path,
        "env_python": str(ctx.environment.python),
        "env_root": str(ctx.environment.root),
    }
    rendered: list[str] = []
    for part in template:
        fields = [f for _, f, _, _ in string.Formatter().parse(part) if f]
        if any(values.get(f) is None for f in fields):
            return None
        rendered.append(part.format(**values))
    return rendered


def run_removals(
    component: Component, state: InstalledState, ctx: ProvisionContext
) -> list[str]:
    """Run removal commands in order. Failures are cleanup warnings, never fatal."""
    ran: list[str] = []
    for template in component.removal_commands:
        cmd = render_removal_command(template, state, ctx)
        if cmd is None:
            log.debug(f"{component.name}: skipping removal {template}; nothing to substitute")
            continue
        if component.scope is Scope.SYSTEM:
            cmd = ctx.privileged(cmd)
        result = run_command(
            cmd,
            dry_run=ctx.dry_run,
            check=False,
            env=command_env(component, ctx),
            timeout=ctx.timeout,
        )
        ran.append(shlex.join(cmd))
        if not result.success:
            log.warning(
                f"{component.name}: removal step failed ({CleanupWarning.__name__}), "
                f"continuing: {shlex.join(cmd)}"
            )
    return ran


def execute(
    component: Component,
    decision: ReconciliationDecision,
    state: InstalledState,
    ctx: ProvisionContext,
) -> ExecutionResult:
    if decision.action is Action.KEEP:
        log.success(f"{component.name} {component.display_version}: keeping ({decision.reason})")
        return ExecutionResult(component.name, succeeded=True)

    commands: list[str] = []
    if decision.action is Action.REINSTALL:
        log.warning(f"{component.name}: {decision.reason}; removing before install")
        commands.extend(run_removals(component, state, ctx))

    log.info(f"Installing {component.name} {component.display_version}...")
    try:
        installer = get_installer(component.install_strategy)
        commands.extend(installer(component, ctx))
    except ExecutionFailure as e:
        log.error(f"{component.name}: {e}")
        return ExecutionResult(
            component.name,
            succeeded=False,
            error_detail=str(e),
            fatal=isinstance(e, PrerequisiteFailure),
            commands=commands + ([e.command] if e.command else []),
        )
    except (OSError, LookupError) as e:
        # disk full, permissions, no installer registered
        log.error(f"{component.name}: {type(e).__name__}: {e}")
        return ExecutionResult(
            component.name,
            succeeded=False,
            error_detail=f"{type(e).__name__}: {e}",
            commands=commands,
        )

    log.success(f"{component.name} {component.display_version} installed")
    return ExecutionResult(component.name, succeeded=True, commands=commands)


def blocked(component: Component, upstream: str, detail: str | None) -> ExecutionResult:
    """Result for a component never attempted because a prerequisite failed."""
    log.error(f"{component.name}: not attempted, prerequisite {upstream} failed")
    return ExecutionResult(
        component.name,
        succeeded=False,
        attempted=False,
        error_detail=f"prerequisite {upstream} failed: {detail or 'unknown error'}",
    )
