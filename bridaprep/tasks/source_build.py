# bridaprep/tasks/source_build.py
"""Build an interpreter from a release tarball and install it under a fixed prefix."""

import os
import tempfile
from pathlib import Path

from bridaprep.core.command import run_command
from bridaprep.core.errors import ExecutionFailure
from bridaprep.core.logger import LoggerProxy
from bridaprep.core.registry import strategy
from bridaprep.core.steps import command_env, run_step
from bridaprep.core.task import ProvisionContext
from bridaprep.core.types import Component, InstallStrategy

log = LoggerProxy(__name__)


def source_archive_url(component: Component) -> str:
    version = component.required_version
    if version is None:
        raise ExecutionFailure(f"{component.name}: a source build needs a pinned version")
    return component.options["source_url"].format(version=version)


def install_build_dependencies(component: Component, ctx: ProvisionContext) -> list[str]:
    deps = list(component.options.get("build_dependencies", []))
    ran = [run_step(component, ["apt-get", "update"], ctx, "Updating package list", privileged=True)]
    if not deps:
        log.info("No build dependencies configured.")
        return ran
    log.info(f"Installing build dependencies: {', '.join(deps)}")
    ran.append(
        run_step(
            component,
            ["apt-get", "install", "-y", *deps],
            ctx,
            "Installing build dependencies",
            privileged=True,
        )
    )
    return ran


def cleanup_build_dir(component: Component, build_dir: str, ctx: ProvisionContext) -> None:
    """Best-effort; `make altinstall` under sudo leaves root-owned files behind."""
    log.info(f"Cleaning up build directory {build_dir}...")
    result = run_command(
        ctx.privileged(["rm", "-rf", build_dir]),
        dry_run=ctx.dry_run,
        check=False,
        env=command_env(component, ctx),
        timeout=ctx.timeout,
    )
    if not result.success:
        log.warning("Some temporary build files could not be removed automatically")
        log.warning(f"You may remove them manually: {build_dir}")


@strategy(InstallStrategy.BUILD_FROM_SOURCE)
def build_from_source(component: Component, ctx: ProvisionContext) -> list[str]:
    url = source_archive_url(component)
    archive = url.rsplit("/", 1)[-1]
    source_dir = archive.removesuffix(".tgz").removesuffix(".tar.gz").removesuffix(".tar.xz")
    prefix = component.options.get("install_prefix", "/usr/local")
    configure_flags = list(component.options.get("configure_flags", []))
    jobs = os.cpu_count() or 1

    ran = install_build_dependencies(component, ctx)

    if ctx.dry_run:
        build_dir = os.path.join(tempfile.gettempdir(), f"bridaprep-{component.name}-dryrun")
    else:
        build_dir = tempfile.mkdtemp(prefix=f"bridaprep-{component.name}-")
    src = str(Path(build_dir) / source_dir)
    try:
        log.info(f"Downloading {url}...")
        ran.append(
            run_step(
                component,
                ["wget", "-q", "-O", archive, url],
                ctx,
                f"Downloading {archive}",
                cwd=build_dir,
            )
        )
        ran.append(run_step(component, ["tar", "-xf", archive], ctx, "Extracting source", cwd=build_dir))
        ran.append(
            run_step(
                component,
                ["./configure", f"--prefix={prefix}", *configure_flags],
                ctx,
                "Configuring build",
                capture=False,
                cwd=src,
                guard=False,
            )
        )
        log.info(f"Compiling {component.name} {component.required_version} with {jobs} jobs (this may take a while)...")
        ran.append(
            run_step(component, ["make", f"-j{jobs}"], ctx, "Compiling", capture=False, cwd=src)
        )
        # altinstall leaves the distribution's python3 untouched
        ran.append(
            run_step(
                component,
                ["make", "altinstall"],
                ctx,
                f"Installing into {prefix}",
                privileged=True,
                capture=False,
                cwd=src,
            )
        )
    finally:
        cleanup_build_dir(component, build_dir, ctx)

    log.debug("Build commands: %s", "; ".join(ran))
    return ran

