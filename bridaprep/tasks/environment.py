# bridaprep/tasks/environment.py
"""
The isolated environment every Python package is installed into.

The environment root is owned by this tool: it is destroyed and recreated
from scratch, never merged with what a previous (possibly interrupted) run
left behind. Manual changes inside it are discarded.
"""

import shutil

from bridaprep.core.command import run_command
from bridaprep.core.errors import DetectionParseError, ExecutionFailure, PrerequisiteFailure
from bridaprep.core.logger import LoggerProxy
from bridaprep.core.registry import strategy
from bridaprep.core.scope import which_system
from bridaprep.core.steps import run_step
from bridaprep.core.task import ProvisionContext
from bridaprep.core.types import Component, InstallStrategy
from bridaprep.core.version import parse_version

log = LoggerProxy(__name__)


def reset_environment_root(ctx: ProvisionContext) -> None:
    root = ctx.environment.root
    if root.exists():
        log.warning(f"Directory {root} already exists; removing it to create a clean environment")
        if ctx.dry_run:
            log.info(f"DRYRUN: Would remove {root}")
        else:
            try:
                shutil.rmtree(root)
            except OSError as e:
                raise PrerequisiteFailure(f"Failed to remove existing directory {root}: {e}") from e
            log.success("Existing directory removed")

    log.info(f"Creating clean directory: {root}")
    if not ctx.dry_run:
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PrerequisiteFailure(f"Failed to create directory {root}: {e}") from e


def check_environment_interpreter(component: Component, ctx: ProvisionContext) -> None:
    """The venv must run exactly the pinned interpreter before anything is installed into it."""
    if ctx.dry_run:
        return
    python = ctx.environment.python
    result = run_command([str(python), "--version"], check=False, timeout=ctx.timeout)
    try:
        found = parse_version(result.output)
    except DetectionParseError:
        raise PrerequisiteFailure(f"{python} did not report a version: {result.output!r}") from None
    if component.required_version is not None and found != component.required_version:
        raise PrerequisiteFailure(
            f"Virtual environment uses Python {found}, expected {component.required_version}"
        )
    log.success(f"Virtual environment using correct Python version: {found}")


@strategy(InstallStrategy.ISOLATED_ENVIRONMENT)
def create_environment(component: Component, ctx: ProvisionContext) -> list[str]:
    base = component.executable or "python3"
    base_path = which_system(base, ctx) or base
    venv = ctx.environment.venv
    ran: list[str] = []
    try:
        reset_environment_root(ctx)
        log.info(f"Creating virtual environment with {base_path}...")
        # The base interpreter lives outside the root by definition
        ran.append(
            run_step(
                component,
                [base_path, "-m", "venv", str(venv)],
                ctx,
                "Creating virtual environment",
                guard=False,
            )
        )
        check_environment_interpreter(component, ctx)
        log.info("Upgrading pip...")
        ran.append(
            run_step(
                component,
                [str(ctx.environment.python), "-m", "pip", "install", "--upgrade", "pip"],
                ctx,
                "Upgrading pip",
            )
        )
    except PrerequisiteFailure:
        raise
    except ExecutionFailure as e:
        raise PrerequisiteFailure(str(e), command=e.command, returncode=e.returncode) from e

    log.success(f"Virtual environment ready at {venv}")
    return ran
