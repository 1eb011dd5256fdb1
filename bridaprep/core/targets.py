# bridaprep/core/targets.py
"""
The declared target state: which components, at which versions, in which order.

A component may only require components listed before it.
"""

from typing import Any

from bridaprep.core.types import Component, DetectionStrategy, InstallStrategy, Scope
from bridaprep.core.version import normalize_version

ENVIRONMENT = "environment"
NODEJS = "nodejs"


def python_runtime(py: dict[str, Any]) -> Component:
    executable = py.get("executable", "python3.11")
    prefix = py.get("install_prefix", "/usr/local")
    # Mirrors what `make altinstall` lays down under the prefix
    minor = executable.removeprefix("python")
    return Component(
        name=executable,
        required_version=normalize_version(py.get("version")),
        detection=DetectionStrategy.EXECUTABLE_VERSION,
        install_strategy=InstallStrategy.BUILD_FROM_SOURCE,
        scope=Scope.SYSTEM,
        executable=executable,
        rebuilds_dependents=True,
        removal_commands=(
            ("rm", "-f", "{install_path}"),
            ("rm", "-f", f"{prefix}/bin/{executable}", f"{prefix}/bin/{executable}-config"),
            ("rm", "-f", f"{prefix}/bin/pip{minor}"),
            ("rm", "-rf", f"{prefix}/lib/{executable}", f"{prefix}/include/{executable}"),
            ("rm", "-f", f"{prefix}/share/man/man1/{executable}.1"),
            ("find", f"{prefix}/bin", "-maxdepth", "1", "-name", f"{executable}*", "-delete"),
        ),
        options={
            "source_url": py.get("source_url"),
            "install_prefix": prefix,
            "configure_flags": list(py.get("configure_flags", [])),
            "build_dependencies": list(py.get("build_dependencies", [])),
        },
    )


def isolated_environment(py: dict[str, Any], runtime: Component) -> Component:
    return Component(
        name=ENVIRONMENT,
        required_version=normalize_version(py.get("version")),
        detection=DetectionStrategy.ENVIRONMENT_INTERPRETER,
        install_strategy=InstallStrategy.ISOLATED_ENVIRONMENT,
        scope=Scope.ENVIRONMENT,
        executable=runtime.executable,
        requires=(runtime.name,),
        prerequisite=True,
        rebuilds_dependents=True,
    )


def environment_package(entry: dict[str, Any]) -> Component:
    strategy = (
        InstallStrategy.LANGUAGE_RUNTIME_PACKAGE
        if entry.get("runtime_dependency")
        else InstallStrategy.PACKAGE_MANAGER
    )
    return Component(
        name=entry["name"],
        required_version=normalize_version(entry["version"]),
        detection=DetectionStrategy.ENVIRONMENT_MODULE,
        install_strategy=strategy,
        scope=Scope.ENVIRONMENT,
        package=entry["name"],
        module=entry["module"],
        removal_commands=(("{env_python}", "-m", "pip", "uninstall", "-y", entry["name"]),),
        requires=(ENVIRONMENT,),
    )


def nodejs(node: dict[str, Any]) -> Component:
    return Component(
        name=NODEJS,
        required_version=normalize_version(node.get("version")),
        detection=DetectionStrategy.EXECUTABLE_VERSION,
        install_strategy=InstallStrategy.SYSTEM_PACKAGE,
        scope=Scope.SYSTEM,
        executable=node.get("executable", "node"),
        package="nodejs",
        removal_commands=(("apt-get", "remove", "-y", "nodejs"),),
        options={"setup_script_url": node.get("setup_script_url")},
    )


def global_module(entry: dict[str, Any]) -> Component:
    return Component(
        name=entry["name"],
        required_version=normalize_version(entry["version"]),
        detection=DetectionStrategy.GLOBAL_MODULE,
        install_strategy=InstallStrategy.GLOBAL_MODULE_INSTALL,
        scope=Scope.SYSTEM,
        executable=entry.get("executable", entry["name"]),
        package=entry["name"],
        removal_commands=(("npm", "uninstall", "-g", entry["name"]),),
        requires=(NODEJS,),
    )


def build_target_spec(config: dict[str, Any]) -> list[Component]:
    """Ordered component table for one run."""
    py = config.get("python", {})
    runtime = python_runtime(py)
    components = [runtime, isolated_environment(py, runtime)]
    components += [environment_package(e) for e in config.get("environment_packages", [])]
    components.append(nodejs(config.get("nodejs", {})))
    components += [global_module(e) for e in config.get("global_modules", [])]
    _check_order(components)
    return components


def _check_order(components: list[Component]) -> None:
    seen: set[str] = set()
    for component in components:
        if component.name in seen:
            raise ValueError(f"Duplicate component name: {component.name}")
        missing = [r for r in component.requires if r not in seen]
        if missing:
            raise ValueError(
                f"{component.name} requires {', '.join(missing)}, which must be listed before it"
            )
        seen.add(component.name)
