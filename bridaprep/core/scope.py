# bridaprep/core/scope.py
"""Keeps environment packages and system-wide tools in separate locations."""

import os
import shutil
from pathlib import Path

from bridaprep.core.errors import ScopeViolation
from bridaprep.core.task import ProvisionContext
from bridaprep.core.types import Component, Scope


def is_within(path: str | Path | None, root: str | Path) -> bool:
    """
    True when ``path`` lies under ``root``.

    Checked on the literal path first: a venv interpreter is a symlink to the
    base Python, yet it belongs to the environment.
    """
    if path is None:
        return False
    literal = Path(os.path.abspath(Path(path).expanduser()))
    base = Path(os.path.abspath(Path(root).expanduser()))
    if literal == base or literal.is_relative_to(base):
        return True
    real = Path(os.path.realpath(literal.parent)) / literal.name
    real_base = Path(os.path.realpath(base))
    return real == real_base or real.is_relative_to(real_base)


def system_path(ctx: ProvisionContext) -> str:
    """The caller's PATH with every entry inside the environment root removed."""
    entries = ctx.base_env.get("PATH", os.defpath).split(os.pathsep)
    return os.pathsep.join(e for e in entries if e and not is_within(e, ctx.environment.root))


def system_env(ctx: ProvisionContext) -> dict[str, str]:
    """Process environment for system-scoped commands: no trace of the venv."""
    env = {k: v for k, v in ctx.base_env.items() if k not in ("VIRTUAL_ENV", "PYTHONHOME")}
    env["PATH"] = system_path(ctx)
    return env


def which_system(executable: str, ctx: ProvisionContext) -> str | None:
    return shutil.which(executable, path=system_path(ctx))


def guard_command(component: Component, cmd: list[str], ctx: ProvisionContext) -> None:
    """
    Refuse to run an install command that would write into the other scope.

    Environment-scoped commands must run an interpreter that lives under the
    environment root. System-scoped commands must not resolve to anything
    inside it.
    """
    executable = _effective_executable(cmd, ctx)
    root = ctx.environment.root
    if component.scope is Scope.ENVIRONMENT:
        if not is_within(executable, root):
            raise ScopeViolation(
                f"{component.name}: environment install would run {executable}, "
                f"which is outside {root}"
            )
    elif executable is not None and is_within(executable, root):
        raise ScopeViolation(
            f"{component.name}: system install would run {executable} from inside {root}"
        )


def _effective_executable(cmd: list[str], ctx: ProvisionContext) -> str | None:
    # Skip the privilege wrapper so the guard sees the real program.
    args = list(cmd)
    prefix = list(ctx.privilege_command)
    if prefix and args[: len(prefix)] == prefix:
        args = args[len(prefix) :]
    while args and args[0] in ("-E", "env"):
        args = args[1:]
    if not args:
        return None
    program = args[0]
    if os.sep in program:
        return program
    return which_system(program, ctx) or program
