# bridaprep/core/inspector.py
"""
Read-only detection of what is currently installed.

Each detection strategy maps a Component to the command that reports its
version and to the location it resolves from. Nothing here mutates the host.
"""

import json

from bridaprep.core.command import CommandResult, run_command
from bridaprep.core.errors import DetectionParseError
from bridaprep.core.logger import LoggerProxy
from bridaprep.core.scope import is_within, system_env, which_system
from bridaprep.core.task import ProvisionContext
from bridaprep.core.types import Component, DetectionStrategy, InstalledState, Scope
from bridaprep.core.version import parse_version

log = LoggerProxy(__name__)

# Prints the distribution version and the file the module was imported from.
_MODULE_PROBE = (
    "import importlib, importlib.metadata, json, sys; "
    "m = importlib.import_module(sys.argv[1]); "
    "print(json.dumps({'version': importlib.metadata.version(sys.argv[2]), "
    "'path': getattr(m, '__file__', None)}))"
)


def detection_command(component: Component, ctx: ProvisionContext) -> list[str]:
    """The argv used to probe ``component``."""
    env_python = str(ctx.environment.python)
    if component.detection is DetectionStrategy.EXECUTABLE_VERSION:
        return [component.executable or component.name, "--version"]
    if component.detection is DetectionStrategy.ENVIRONMENT_INTERPRETER:
        return [env_python, "--version"]
    if component.detection is DetectionStrategy.ENVIRONMENT_MODULE:
        return [
            env_python,
            "-c",
            _MODULE_PROBE,
            component.module or component.name,
            component.package or component.name,
        ]
    if component.detection is DetectionStrategy.GLOBAL_MODULE:
        return ["npm", "list", "-g", component.package or component.name, "--depth=0", "--json"]
    raise ValueError(f"Unknown detection strategy: {component.detection}")


def inspect(component: Component, ctx: ProvisionContext) -> InstalledState:
    """Produce a fresh InstalledState for ``component``."""
    handler = _DETECTORS[component.detection]
    state = handler(component, ctx)

    if state.parse_error:
        log.warning(f"{component.name}: {state.parse_error}")
    elif state.out_of_scope:
        log.warning(
            f"{component.name}: resolved at {state.install_path}, which is not in "
            f"{component.scope.value} scope; treating as not installed"
        )
    elif state.detected_version:
        log.info(f"{component.name}: found {state.detected_version} at {state.install_path}")
    else:
        log.info(f"{component.name}: not installed")
    return state


def _probe(cmd: list[str], ctx: ProvisionContext, env: dict[str, str] | None = None) -> CommandResult:
    # Detection never honours dry_run: reading state is always safe
    return run_command(cmd, dry_run=False, check=False, capture=True, env=env, timeout=ctx.timeout)


def _parsed(
    component: Component, text: str, install_path: str | None
) -> InstalledState:
    try:
        version = parse_version(text)
    except DetectionParseError as e:
        return InstalledState(
            component.name, None, install_path, raw_output=text, parse_error=str(e)
        )
    return InstalledState(component.name, version, install_path, raw_output=text)


def _apply_scope(component: Component, state: InstalledState, ctx: ProvisionContext) -> InstalledState:
    if state.install_path is None:
        return state
    inside = is_within(state.install_path, ctx.environment.root)
    in_scope = inside if component.scope is Scope.ENVIRONMENT else not inside
    if in_scope:
        return state
    return InstalledState(
        component.name,
        None,
        state.install_path,
        raw_output=state.raw_output,
        out_of_scope=True,
    )


def _detect_executable(component: Component, ctx: ProvisionContext) -> InstalledState:
    cmd = detection_command(component, ctx)
    path = which_system(cmd[0], ctx)
    if path is None:
        return InstalledState(component.name)
    result = _probe([path, *cmd[1:]], ctx, env=system_env(ctx))
    if result.not_found:
        return InstalledState(component.name)
    if not result.success and not result.output:
        return InstalledState(
            component.name,
            None,
            path,
            parse_error=f"'{path} --version' exited with {result.returncode} and no output",
        )
    return _parsed(component, result.output, path)


def _detect_environment_interpreter(component: Component, ctx: ProvisionContext) -> InstalledState:
    python = ctx.environment.python
    if not python.exists():
        return InstalledState(component.name)
    result = _probe(detection_command(component, ctx), ctx)
    if result.not_found:
        return InstalledState(component.name)
    if not result.success and not result.output:
        # Dangling interpreter symlink, e.g. after the base Python was removed
        return InstalledState(
            component.name,
            None,
            str(python),
            parse_error=f"{python} exited with {result.returncode} and no output",
        )
    return _parsed(component, result.output, str(python))


def _detect_environment_module(component: Component, ctx: ProvisionContext) -> InstalledState:
    if not ctx.environment.python.exists():
        return InstalledState(component.name)
    result = _probe(detection_command(component, ctx), ctx)
    if not result.success:
        # ImportError / PackageNotFoundError: not installed here
        return InstalledState(component.name)
    try:
        payload = json.loads(result.stdout.splitlines()[-1])
        text = str(payload["version"])
        module_path = payload.get("path")
    except (IndexError, KeyError, TypeError, ValueError):
        return InstalledState(
            component.name,
            parse_error=f"Unexpected module probe output: {result.stdout[:120]!r}",
            raw_output=result.stdout,
        )
    state = _parsed(component, text, module_path)
    return _apply_scope(component, state, ctx)


def _detect_global_module(component: Component, ctx: ProvisionContext) -> InstalledState:
    package = component.package or component.name
    executable = component.executable or package
    path = which_system(executable, ctx)

    version_text: str | None = None
    result = _probe(detection_command(component, ctx), ctx, env=system_env(ctx))
    if result.stdout:
        try:
            listing = json.loads(result.stdout)
            version_text = listing.get("dependencies", {}).get(package, {}).get("version")
        except (ValueError, AttributeError):
            log.debug(f"Could not read npm listing for {package}")

    if version_text is None and path is not None:
        fallback = _probe([path, "--version"], ctx, env=system_env(ctx))
        if fallback.success:
            version_text = fallback.output or None

    if version_text is None:
        return InstalledState(component.name, None, path)

    state = _parsed(component, version_text, path)
    return _apply_scope(component, state, ctx)


_DETECTORS = {
    DetectionStrategy.EXECUTABLE_VERSION: _detect_executable,
    DetectionStrategy.ENVIRONMENT_INTERPRETER: _detect_environment_interpreter,
    DetectionStrategy.ENVIRONMENT_MODULE: _detect_environment_module,
    DetectionStrategy.GLOBAL_MODULE: _detect_global_module,
}


def inspect_all(components: list[Component], ctx: ProvisionContext) -> dict[str, InstalledState]:
    return {c.name: inspect(c, ctx) for c in components}
