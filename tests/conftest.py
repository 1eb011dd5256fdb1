import json
import os
import shutil
from pathlib import Path

import pytest

from bridaprep.core.command import CommandResult
from bridaprep.core.config import default_config
from bridaprep.core.registry import load_strategies
from bridaprep.core.targets import build_target_spec
from bridaprep.core.task import EnvironmentLayout, ProvisionContext

RUN_COMMAND_SITES = (
    "bridaprep.core.inspector.run_command",
    "bridaprep.core.steps.run_command",
    "bridaprep.core.executor.run_command",
    "bridaprep.tasks.source_build.run_command",
    "bridaprep.tasks.environment.run_command",
)

PLAIN_TOOLS = {"apt-get", "wget", "tar", "make", "bash", "rm", "find", "curl"}


@pytest.fixture(autouse=True)
def preload_strategies():
    """Make sure every installer is registered before tests run."""
    load_strategies()


def ok(stdout: str = "", stderr: str = "") -> CommandResult:
    return CommandResult(0, stdout, stderr, success=True)


def failed(returncode: int = 1, stderr: str = "boom") -> CommandResult:
    return CommandResult(returncode, "", stderr, success=False)


class FakeHost:
    """
    In-memory Linux host: answers version probes and applies installs.

    ``system`` maps an executable name to (version, path).
    """

    def __init__(self, env_root: Path):
        self.env_root = env_root
        self.system: dict[str, tuple[str, str]] = {}
        self.npm_globals: dict[str, str] = {}
        self.env_python_version: str | None = None
        self.env_packages: dict[str, str] = {}
        self.python_build_version = "3.11.0"
        self.node_install_version = "20.11.1"
        self.fail_on: set[str] = set()
        self.calls: list[list[str]] = []

    # -- wiring -------------------------------------------------------------
    def install(self, monkeypatch) -> "FakeHost":
        for site in RUN_COMMAND_SITES:
            monkeypatch.setattr(site, self.run_command)
        monkeypatch.setattr("bridaprep.core.scope.shutil.which", self.which)
        return self

    def which(self, name, mode=os.F_OK | os.X_OK, path=None):
        if name in self.system:
            return self.system[name][1]
        if name == "npm" and "node" in self.system:
            return "/usr/bin/npm"
        if name in self.npm_globals:
            return f"/usr/bin/{name}"
        if name in PLAIN_TOOLS:
            return f"/usr/bin/{name}"
        return None

    # -- helpers ------------------------------------------------------------
    def joined(self) -> list[str]:
        return [" ".join(c) for c in self.calls]

    def index_of(self, fragment: str) -> int:
        for i, call in enumerate(self.joined()):
            if fragment in call:
                return i
        raise AssertionError(f"{fragment!r} never ran; calls: {self.joined()}")

    def ran(self, fragment: str) -> bool:
        return any(fragment in call for call in self.joined())

    def _by_path(self, path: str) -> str | None:
        for name, (_, p) in self.system.items():
            if p == path:
                return name
        return None

    # -- command simulation --------------------------------------------------
    def run_command(self, cmd_list, dry_run=False, check=True, capture=True, text=True, cwd=None, env=None, timeout=None):
        argv = list(cmd_list)
        if argv and argv[0] == "sudo":
            argv = argv[1:]
        self.calls.append(argv)
        line = " ".join(argv)
        if any(fragment in line for fragment in self.fail_on):
            return failed()
        if dry_run:
            return ok()
        return self._dispatch(argv)

    def _dispatch(self, argv: list[str]) -> CommandResult:
        venv = self.env_root / "venv"
        env_python = str(venv / "bin" / "python")
        program, args = argv[0], argv[1:]

        if program == env_python:
            return self._env_python(args, venv)
        if args == ["--version"]:
            name = self._by_path(program)
            if name is None:
                if Path(program).name in self.npm_globals:
                    return ok(self.npm_globals[Path(program).name])
                return CommandResult(127, "", "not found", success=False, not_found=True)
            version = self.system[name][0]
            if name.startswith("python"):
                return ok(f"Python {version}")
            return ok(f"v{version}")
        if args[:2] == ["-m", "venv"]:
            if self._by_path(program) is None:
                return CommandResult(127, "", "not found", success=False, not_found=True)
            target = Path(args[2])
            (target / "bin").mkdir(parents=True, exist_ok=True)
            (target / "bin" / "python").write_text("")
            self.env_python_version = self.system[self._by_path(program)][0]
            self.env_packages = {}
            return ok()
        if program == "npm":
            return self._npm(args)
        if program == "make" and args == ["altinstall"]:
            self.system["python3.11"] = (self.python_build_version, "/usr/local/bin/python3.11")
            return ok()
        if program == "apt-get" and args[:2] == ["install", "-y"] and any(a.startswith("nodejs") for a in args):
            self.system["node"] = (self.node_install_version, "/usr/bin/node")
            return ok()
        if program == "rm":
            for target in args[1:]:
                name = self._by_path(target)
                if name:
                    del self.system[name]
                elif target.startswith(str(Path("/tmp"))):
                    shutil.rmtree(target, ignore_errors=True)
            return ok()
        if program == "find" and "-delete" in args:
            self.system.pop("python3.11", None)
            return ok()
        return ok()

    def _env_python(self, args: list[str], venv: Path) -> CommandResult:
        if not (venv / "bin" / "python").exists():
            return CommandResult(127, "", "not found", success=False, not_found=True)
        if args == ["--version"]:
            return ok(f"Python {self.env_python_version}")
        if args[:1] == ["-c"]:
            module, dist = args[2], args[3]
            if dist not in self.env_packages:
                return failed(stderr=f"ModuleNotFoundError: No module named '{module}'")
            path = venv / "lib" / "python3.11" / "site-packages" / module / "__init__.py"
            return ok(json.dumps({"version": self.env_packages[dist], "path": str(path)}))
        if args[:3] == ["-m", "pip", "install"] and "==" in args[-1]:
            dist, version = args[-1].split("==")
            self.env_packages[dist] = version
            return ok()
        if args[:3] == ["-m", "pip", "uninstall"]:
            self.env_packages.pop(args[-1], None)
            return ok()
        return ok()

    def _npm(self, args: list[str]) -> CommandResult:
        if args[:2] == ["list", "-g"]:
            deps = {name: {"version": v} for name, v in self.npm_globals.items() if name == args[2]}
            return ok(json.dumps({"dependencies": deps} if deps else {}))
        if args[:2] == ["install", "-g"]:
            name, version = args[2].rsplit("@", 1)
            self.npm_globals[name] = version
            return ok()
        if args[:2] == ["uninstall", "-g"]:
            self.npm_globals.pop(args[2], None)
            return ok()
        return ok()


@pytest.fixture
def env_root(tmp_path: Path) -> Path:
    return tmp_path / "brida"


@pytest.fixture
def ctx(env_root: Path) -> ProvisionContext:
    return ProvisionContext(
        config=default_config(),
        environment=EnvironmentLayout(root=env_root),
        privilege_command=("sudo",),
        base_env={"PATH": f"{env_root / 'venv' / 'bin'}:/usr/local/bin:/usr/bin:/bin"},
    )


@pytest.fixture
def components(ctx: ProvisionContext):
    return build_target_spec(ctx.config)


@pytest.fixture
def host(monkeypatch, env_root: Path) -> FakeHost:
    fake = FakeHost(env_root)
    fake.system["node"] = ("20.11.1", "/usr/bin/node")
    return fake.install(monkeypatch)
