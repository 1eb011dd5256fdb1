# bridaprep/core/reconciler.py
"""
Decide, per component, the minimal action that moves it to its pinned version.

Pinning is exact: a newer version is just as wrong as an older one.
"""

from bridaprep.core.types import Action, Component, InstalledState, ReconciliationDecision
from bridaprep.core.version import normalize_version


def reconcile(component: Component, state: InstalledState) -> ReconciliationDecision:
    """Pure decision for one component; never touches the host."""
    name = component.name
    required = normalize_version(component.required_version)

    if state.parse_error:
        return ReconciliationDecision(
            name, Action.REINSTALL, f"installed version unreadable ({state.parse_error})"
        )
    if state.detected_version is None:
        if state.out_of_scope:
            return ReconciliationDecision(
                name, Action.INSTALL, f"only found outside its scope at {state.install_path}"
            )
        return ReconciliationDecision(name, Action.INSTALL, "not installed")
    if required is None:
        return ReconciliationDecision(
            name, Action.KEEP, f"{state.detected_version} present; no version pinned"
        )
    if state.detected_version == required:
        return ReconciliationDecision(name, Action.KEEP, f"{required} already installed")
    return ReconciliationDecision(
        name,
        Action.REINSTALL,
        f"found {state.detected_version}, pinned to {required}",
    )


def propagate_rebuilds(
    components: list[Component], decisions: dict[str, ReconciliationDecision]
) -> dict[str, ReconciliationDecision]:
    """
    Turn Keep into Install for anything that requires a component which is
    about to be rebuilt and which wipes its dependents when it is.

    Rebuilding the environment wipes every package in it, and rebuilding the
    interpreter invalidates the environment built on it. Install rather than
    Reinstall: there is nothing left to remove. Other changes, such as a new
    Node.js, leave their dependents alone.
    """
    changed: set[str] = set()
    result: dict[str, ReconciliationDecision] = {}
    for component in components:
        decision = decisions[component.name]
        upstream = next((r for r in component.requires if r in changed), None)
        if decision.action is Action.KEEP and upstream is not None:
            decision = ReconciliationDecision(
                component.name,
                Action.INSTALL,
                f"{upstream} is being rebuilt ({decision.reason})",
            )
        if decision.action is not Action.KEEP and component.rebuilds_dependents:
            changed.add(component.name)
        result[component.name] = decision
    return result


def reconcile_all(
    components: list[Component], states: dict[str, InstalledState]
) -> dict[str, ReconciliationDecision]:
    decisions = {c.name: reconcile(c, states[c.name]) for c in components}
    return propagate_rebuilds(components, decisions)
