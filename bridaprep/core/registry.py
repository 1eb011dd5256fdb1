import importlib
from collections.abc import Callable

# bridaprep/core/registry.py
from bridaprep.core.task import ProvisionContext
from bridaprep.core.types import Component, InstallStrategy

# Installers raise ExecutionFailure on a failed mandatory step and return the
# commands they ran for the report.
Installer = Callable[[Component, ProvisionContext], list[str]]
_STRATEGY_REGISTRY: dict[InstallStrategy, Installer] = {}

STRATEGY_MODULES = (
    "bridaprep.tasks.source_build",
    "bridaprep.tasks.environment",
    "bridaprep.tasks.pip_packages",
    "bridaprep.tasks.system_packages",
    "bridaprep.tasks.npm_global",
)


def strategy(*kinds: InstallStrategy) -> Callable[[Installer], Installer]:
    """
    Decorator to register an installer for one or more install strategies.
    """

    def _decorator(fn: Installer) -> Installer:
        for kind in kinds:
            if kind in _STRATEGY_REGISTRY:
                raise RuntimeError(f"Duplicate installer for strategy: {kind.value}")
            _STRATEGY_REGISTRY[kind] = fn
        fn._strategies = kinds  # type: ignore[attr-defined]
        return fn

    return _decorator


def load_strategies() -> None:
    """Import the installer modules; registration happens at import time."""
    for module_name in STRATEGY_MODULES:
        importlib.import_module(module_name)


def get_installer(kind: InstallStrategy) -> Installer:
    if kind not in _STRATEGY_REGISTRY:
        load_strategies()
    try:
        return _STRATEGY_REGISTRY[kind]
    except KeyError:
        raise LookupError(f"No installer registered for strategy: {kind.value}") from None


def get_strategy_registry() -> dict[InstallStrategy, Installer]:
    return dict(_STRATEGY_REGISTRY)
