# bridaprep/tasks/npm_global.py

from bridaprep.core.logger import LoggerProxy
from bridaprep.core.registry import strategy
from bridaprep.core.steps import run_step
from bridaprep.core.task import ProvisionContext
from bridaprep.core.types import Component, InstallStrategy

log = LoggerProxy(__name__)


@strategy(InstallStrategy.GLOBAL_MODULE_INSTALL)
def npm_install_global(component: Component, ctx: ProvisionContext) -> list[str]:
    """System-wide install through npm; runs with the environment stripped from PATH."""
    package = component.package or component.name
    spec = f"{package}@{component.required_version}" if component.required_version else package
    log.info(f"Installing {spec} system-wide...")
    return [
        run_step(
            component,
            ["npm", "install", "-g", spec],
            ctx,
            f"Installing system-wide {spec}",
            privileged=True,
        )
    ]
