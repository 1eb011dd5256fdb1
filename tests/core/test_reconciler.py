import dataclasses

from bridaprep.core.reconciler import propagate_rebuilds, reconcile, reconcile_all
from bridaprep.core.types import (
    Action,
    Component,
    DetectionStrategy,
    InstalledState,
    InstallStrategy,
    ReconciliationDecision,
    Scope,
)
from bridaprep.core.version import parse_version


def runtime(version="3.11.0", **kwargs) -> Component:
    return Component(
        name="runtime",
        required_version=version,
        detection=DetectionStrategy.EXECUTABLE_VERSION,
        install_strategy=InstallStrategy.BUILD_FROM_SOURCE,
        scope=Scope.SYSTEM,
        **kwargs,
    )


def test_patch_level_difference_reinstalls():
    decision = reconcile(runtime(), InstalledState("runtime", "3.11.9", "/usr/local/bin/python3.11"))
    assert decision.action is Action.REINSTALL
    assert "3.11.9" in decision.reason


def test_exact_match_keeps():
    decision = reconcile(runtime(), InstalledState("runtime", "3.11.0", "/usr/local/bin/python3.11"))
    assert decision.action is Action.KEEP


def test_newer_version_is_still_reinstalled():
    decision = reconcile(runtime(), InstalledState("runtime", "3.12.1"))
    assert decision.action is Action.REINSTALL


def test_prerelease_is_not_the_release():
    decision = reconcile(runtime(), InstalledState("runtime", "3.11.0rc1"))
    assert decision.action is Action.REINSTALL


def test_semver_prerelease_of_the_pin_is_reinstalled():
    decision = reconcile(runtime(version="10.2.5"), InstalledState("runtime", parse_version("10.2.5-beta.1")))
    assert decision.action is Action.REINSTALL
    assert "10.2.5b1" in decision.reason


def test_absent_installs():
    assert reconcile(runtime(), InstalledState("runtime")).action is Action.INSTALL


def test_out_of_scope_installs_and_says_where():
    state = InstalledState("runtime", None, "/elsewhere/python", out_of_scope=True)
    decision = reconcile(runtime(), state)
    assert decision.action is Action.INSTALL
    assert "/elsewhere/python" in decision.reason


def test_parse_error_reinstalls():
    state = InstalledState("runtime", None, "/usr/bin/x", parse_error="Could not parse")
    assert reconcile(runtime(), state).action is Action.REINSTALL


def test_presence_only_component_keeps_any_version():
    decision = reconcile(runtime(version=None), InstalledState("runtime", "20.1.0"))
    assert decision.action is Action.KEEP


def test_keep_downstream_of_a_change_becomes_install_not_reinstall():
    base = runtime(rebuilds_dependents=True)
    env = Component(
        name="env",
        required_version="3.11.0",
        detection=DetectionStrategy.ENVIRONMENT_INTERPRETER,
        install_strategy=InstallStrategy.ISOLATED_ENVIRONMENT,
        scope=Scope.ENVIRONMENT,
        requires=("runtime",),
        rebuilds_dependents=True,
    )
    lib = Component(
        name="lib",
        required_version="1.0.0",
        detection=DetectionStrategy.ENVIRONMENT_MODULE,
        install_strategy=InstallStrategy.PACKAGE_MANAGER,
        scope=Scope.ENVIRONMENT,
        requires=("env",),
    )
    decisions = {
        "runtime": ReconciliationDecision("runtime", Action.REINSTALL, "found 3.11.9"),
        "env": ReconciliationDecision("env", Action.KEEP, "ok"),
        "lib": ReconciliationDecision("lib", Action.KEEP, "ok"),
    }
    result = propagate_rebuilds([base, env, lib], decisions)
    assert result["runtime"].action is Action.REINSTALL
    assert result["env"].action is Action.INSTALL
    assert result["lib"].action is Action.INSTALL
    assert "env" in result["lib"].reason


def test_matching_components_are_never_reinstalled(components):
    states = {
        c.name: InstalledState(c.name, c.required_version or "1.0.0", "/somewhere")
        for c in components
    }
    decisions = reconcile_all(components, states)
    assert all(d.action is Action.KEEP for d in decisions.values())


def test_new_nodejs_leaves_a_pinned_global_module_alone(components):
    states = {c.name: InstalledState(c.name, c.required_version or "1.0.0", "/somewhere") for c in components}
    node = next(c for c in components if c.name == "nodejs")
    pinned = [dataclasses.replace(node, required_version="20.11.1") if c is node else c for c in components]
    states["nodejs"] = InstalledState("nodejs", "18.19.0", "/usr/bin/node")

    decisions = reconcile_all(pinned, states)

    assert decisions["nodejs"].action is Action.REINSTALL
    assert decisions["frida-compile"].action is Action.KEEP
