# bridaprep/core/steps.py
import shlex

from bridaprep.core.command import CommandResult, run_command
from bridaprep.core.errors import ExecutionFailure
from bridaprep.core.scope import guard_command, system_env
from bridaprep.core.task import ProvisionContext
from bridaprep.core.types import Component, Scope


def command_env(component: Component, ctx: ProvisionContext) -> dict[str, str] | None:
    """System-scoped commands never see the environment; venv commands use absolute paths."""
    if component.scope is Scope.SYSTEM:
        return system_env(ctx)
    return None


def run_step(
    component: Component,
    cmd: list[str],
    ctx: ProvisionContext,
    description: str,
    privileged: bool = False,
    capture: bool = True,
    cwd: str | None = None,
    guard: bool = True,
) -> str:
    """
    Run one mandatory step of an install.

    Returns the command string for the execution record.

    Raises:
        ScopeViolation: the command would write into the other scope.
        ExecutionFailure: the command exited non-zero or timed out.
    """
    argv = ctx.privileged(cmd) if privileged else list(cmd)
    if guard:
        guard_command(component, argv, ctx)
    result = run_command(
        argv,
        dry_run=ctx.dry_run,
        check=True,
        capture=capture,
        cwd=cwd,
        env=command_env(component, ctx),
        timeout=ctx.timeout,
    )
    if not result.success:
        raise ExecutionFailure(
            f"{description} failed: {_failure_summary(result)}",
            command=shlex.join(argv),
            returncode=result.returncode,
        )
    return shlex.join(argv)


def _failure_summary(result: CommandResult) -> str:
    if result.timed_out:
        return result.stderr
    tail = result.stderr.strip().splitlines()[-1] if result.stderr.strip() else ""
    return f"exit code {result.returncode}" + (f": {tail}" if tail else "")
