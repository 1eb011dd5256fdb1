# bridaprep/tasks/pip_packages.py

from bridaprep.core.errors import PrerequisiteFailure
from bridaprep.core.logger import LoggerProxy
from bridaprep.core.registry import strategy
from bridaprep.core.steps import run_step
from bridaprep.core.task import ProvisionContext
from bridaprep.core.types import Component, InstallStrategy

log = LoggerProxy(__name__)


def pinned_requirement(component: Component) -> str:
    dist = component.package or component.name
    if component.required_version is None:
        return dist
    return f"{dist}=={component.required_version}"


@strategy(InstallStrategy.PACKAGE_MANAGER, InstallStrategy.LANGUAGE_RUNTIME_PACKAGE)
def pip_install(component: Component, ctx: ProvisionContext) -> list[str]:
    """Install an exact pin with the environment's own pip, never the system one."""
    python = ctx.environment.python
    if not ctx.dry_run and not python.exists():
        raise PrerequisiteFailure(
            f"Virtual environment interpreter {python} is missing; cannot install {component.name}"
        )

    requirement = pinned_requirement(component)
    log.info(f"Installing {requirement} into {ctx.environment.venv}...")
    return [
        run_step(
            component,
            [str(python), "-m", "pip", "install", requirement],
            ctx,
            f"Installing {requirement} into the virtual environment",
        )
    ]
