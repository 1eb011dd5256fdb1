# bridaprep/tasks/system_packages.py

from bridaprep.core.logger import LoggerProxy
from bridaprep.core.registry import strategy
from bridaprep.core.steps import run_step
from bridaprep.core.task import ProvisionContext
from bridaprep.core.types import Component, InstallStrategy

log = LoggerProxy(__name__)


def add_package_repository(component: Component, ctx: ProvisionContext) -> list[str]:
    setup_url = component.options.get("setup_script_url")
    if not setup_url:
        return []
    log.info(f"Adding package repository for {component.name} from {setup_url}...")
    privilege = " ".join(ctx.privilege_command)
    pipe_to = f"{privilege} -E bash -" if privilege else "bash -"
    # The setup script is meant to be piped straight into a root shell
    return [
        run_step(
            component,
            ["bash", "-c", f"set -o pipefail; curl -fsSL {setup_url} | {pipe_to}"],
            ctx,
            f"Adding {component.name} package repository",
        )
    ]


@strategy(InstallStrategy.SYSTEM_PACKAGE)
def apt_install(component: Component, ctx: ProvisionContext) -> list[str]:
    package = component.package or component.name
    if component.required_version:
        package = f"{package}={component.required_version}*"
    ran = add_package_repository(component, ctx)
    log.info(f"Installing {package} with apt-get...")
    ran.append(
        run_step(
            component,
            ["apt-get", "install", "-y", package],
            ctx,
            f"Installing {package}",
            privileged=True,
        )
    )
    return ran
