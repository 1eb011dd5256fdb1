#!/usr/bin/env python3
"""
bridaprep - pinned Frida toolchain provisioner
==============================================

CLI entry point that wires up:
* Logging & configuration
* The declared component table
* One inspect → reconcile → execute → verify pass
"""

from __future__ import annotations

# ── Standard library ────────────────────────────────────────────────────────
import os
from pathlib import Path
from typing import Annotated

# ── Third-party ─────────────────────────────────────────────────────────────
import typer

# ── Local imports ───────────────────────────────────────────────────────────
from bridaprep.core import config as config_loader
from bridaprep.core import provision as provisioner
from bridaprep.core.logger import LoggerProxy, setup_logging
from bridaprep.core.registry import load_strategies
from bridaprep.core.report import write_report
from bridaprep.core.targets import build_target_spec
from bridaprep.core.task import EnvironmentLayout, ProvisionContext, Severity
from bridaprep.core.types import Action, Component, Scope, VerificationReport

# ── Constants & default paths ───────────────────────────────────────────────
DEFAULT_CONFIG_PATH = config_loader.DEFAULT_CONFIG_PATH

EXIT_OK = 0
EXIT_VERIFICATION_FAILED = 1
EXIT_PREREQUISITE_FAILED = 2

# ── Typer CLI app ───────────────────────────────────────────────────────────
app = typer.Typer(
    help="bridaprep - provisions a pinned Python/Frida/Node toolchain on a Linux host.",
    add_completion=False,
)

ConfigOption = Annotated[
    Path,
    typer.Option(help="Path to JSON configuration file.", envvar="BRIDAPREP_CONFIG_FILE"),
]
EnvRootOption = Annotated[
    Path | None,
    typer.Option(
        "--env-root",
        help="Directory that holds the isolated environment (default ~/Downloads/brida).",
        envvar="BRIDAPREP_ENV_ROOT",
    ),
]
VerboseOption = Annotated[
    bool, typer.Option("--verbose", "-v", help="Enable verbose (DEBUG) output.")
]
ReportOption = Annotated[
    Path | None,
    typer.Option("--report", help="Also write the verification report (.md or .json)."),
]


def _log_with_severity(log: LoggerProxy, sev: Severity, msg: str) -> None:
    getattr(log, sev.log_method())(msg)


def _prepare(
    config_file: Path,
    env_root: Path | None,
    verbose: bool,
    dry_run: bool = False,
    timeout: float | None = None,
) -> tuple[ProvisionContext, list[Component]]:
    config = config_loader.load_config(config_file)
    setup_logging(config, verbose=verbose)

    env_cfg = config.get("environment", {})
    exec_cfg = config.get("execution", {})
    root = Path(env_root or env_cfg.get("root", "~/Downloads/brida")).expanduser().absolute()
    ctx = ProvisionContext(
        config=config,
        environment=EnvironmentLayout(root=root, venv_dir=env_cfg.get("venv_dir", "venv")),
        dry_run=dry_run,
        verbose=verbose,
        timeout=timeout if timeout is not None else exec_cfg.get("command_timeout_seconds"),
        privilege_command=tuple(exec_cfg.get("privilege_command", ["sudo"])),
    )
    load_strategies()
    try:
        components = build_target_spec(config)
    except ValueError as e:
        typer.echo(f"ERROR: invalid component table in configuration: {e}", err=True)
        raise typer.Exit(code=1) from None
    return ctx, components


def _describe_plan(components: list[Component], ctx: ProvisionContext, log: LoggerProxy) -> None:
    log.info("This will provision:")
    for c in components:
        where = ctx.environment.venv if c.scope is Scope.ENVIRONMENT else "system-wide"
        log.info(f"- {c.name} {c.display_version} ({where})")
    log.info(f"The environment root {ctx.environment.root} is recreated if anything in it changes.")


def _print_usage_hints(ctx: ProvisionContext, log: LoggerProxy) -> None:
    venv = ctx.environment.venv
    log.success("=== VIRTUAL ENVIRONMENT ===")
    log.info(f"1. cd {ctx.environment.root}")
    log.info(f"2. source {venv.relative_to(ctx.environment.root)}/bin/activate")
    log.info("3. frida, frida-tools and Pyro4 are now available")
    log.success("=== SYSTEM-WIDE TOOLS ===")
    log.info("frida-compile is installed system-wide via npm")
    log.info("To check after activating the environment:")
    log.info("  - python -c 'import frida; print(frida.__file__)'")
    log.info("  - which frida          (should show the venv path)")
    log.info("  - which frida-compile  (should show a system path)")


def _maybe_write_report(report: VerificationReport, path: Path | None, log: LoggerProxy) -> None:
    if path is None:
        return
    try:
        write_report(report, path)
    except OSError as e:
        log.error(f"Could not write report to {path}: {e}")
        return
    log.info(f"Verification report written to {path}")


def _print_summary(outcome: provisioner.ProvisionOutcome, log: LoggerProxy) -> None:
    """One line per component: decision, execution, verification."""
    log.info("================================================================")
    for name, decision in outcome.decisions.items():
        result = outcome.results.get(name)
        if result is None or (decision.action is Action.KEEP and result.succeeded):
            ran = "kept"
        elif not result.attempted:
            ran = "not attempted"
        else:
            ran = "ok" if result.succeeded else "FAILED"
        verdict = "PASS" if name not in outcome.report.failing else "FAIL"
        log.info("* %-16s : %-9s %-13s %s", name, decision.action.value, ran, verdict)
    log.info("================================================================")
    log.info("Overall result: %s", "SUCCESS" if outcome.success else "FAILURE")


# ── CLI commands ────────────────────────────────────────────────────────────
@app.command()
def run(
    config_file: ConfigOption = DEFAULT_CONFIG_PATH,
    env_root: EnvRootOption = None,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", "-n", help="Log install commands without executing them.")
    ] = False,
    verbose: VerboseOption = False,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip the confirmation prompt.")] = False,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", min=0.001, help="Seconds before any single command is killed."),
    ] = None,
    report: ReportOption = None,
    allow_root: Annotated[
        bool, typer.Option("--allow-root", help="Permit running as root.")
    ] = False,
) -> None:
    """
    Converge the host onto the pinned toolchain, then verify it.

    Exit code 0 when every component verifies, 1 when any does not, 2 when
    the isolated environment could not be created.
    """
    if os.geteuid() == 0 and not allow_root:
        typer.echo(
            "ERROR: This tool should not be run as root. "
            "Run it as a regular user with sudo privileges.",
            err=True,
        )
        raise typer.Exit(code=1)

    ctx, components = _prepare(config_file, env_root, verbose, dry_run=dry_run, timeout=timeout)
    log = LoggerProxy(__name__)

    log.info("Starting bridaprep toolchain setup")
    _describe_plan(components, ctx, log)

    if not yes and not typer.confirm("Do you want to continue?", default=False):
        log.info("Installation cancelled by user")
        raise typer.Exit(code=EXIT_OK)

    outcome = provisioner.provision(components, ctx)
    for name, result in outcome.results.items():
        if result.error_detail:
            _log_with_severity(log, Severity.ERROR, f"{name}: {result.error_detail}")

    _print_summary(outcome, log)
    _maybe_write_report(outcome.report, report, log)

    if outcome.success:
        _print_usage_hints(ctx, log)
        log.success("Setup completed successfully!")
        raise typer.Exit(code=EXIT_OK)
    if outcome.prerequisite_failures:
        log.error(f"Prerequisite failure: {', '.join(outcome.prerequisite_failures)}")
        raise typer.Exit(code=EXIT_PREREQUISITE_FAILED)
    raise typer.Exit(code=EXIT_VERIFICATION_FAILED)


@app.command()
def plan(
    config_file: ConfigOption = DEFAULT_CONFIG_PATH,
    env_root: EnvRootOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    Show what `run` would do for each component. Changes nothing.
    """
    ctx, components = _prepare(config_file, env_root, verbose)
    log = LoggerProxy(__name__)
    decisions = provisioner.plan(components, ctx)
    for c in components:
        decision = decisions[c.name]
        sev = Severity.SUCCESS if decision.action is Action.KEEP else Severity.WARNING
        _log_with_severity(log, sev, f"{c.name}: {decision.action.value} - {decision.reason}")
    pending = sum(1 for d in decisions.values() if d.action is not Action.KEEP)
    log.info(f"{pending} component(s) would change.")


@app.command()
def verify(
    config_file: ConfigOption = DEFAULT_CONFIG_PATH,
    env_root: EnvRootOption = None,
    verbose: VerboseOption = False,
    report: ReportOption = None,
) -> None:
    """
    Check every component against its pin without changing anything.
    """
    ctx, components = _prepare(config_file, env_root, verbose)
    log = LoggerProxy(__name__)
    result = provisioner.verify(components, ctx)
    _maybe_write_report(result, report, log)
    raise typer.Exit(code=EXIT_OK if result.success else EXIT_VERIFICATION_FAILED)


@app.command(name="generate-config")
def generate_config_command(
    config_file: ConfigOption = DEFAULT_CONFIG_PATH,
    force: Annotated[bool, typer.Option("--force", help="Overwrite existing config file.")] = False,
) -> None:
    """
    Write the default configuration to the config path.
    """
    if config_file.exists() and not force:
        typer.echo(f"Config already exists at {config_file} - use --force to overwrite.", err=True)
        raise typer.Exit(code=1)
    if config_loader.generate_default_config(config_file):
        typer.echo(f"Default config written to {config_file}")
    else:
        typer.echo("Failed to create default config", err=True)
        raise typer.Exit(code=1)


# ── Main guard ──────────────────────────────────────────────────────────────
if __name__ == "__main__":
    app()
