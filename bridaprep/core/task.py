# bridaprep/core/task.py
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class Severity(Enum):
    """
    Severity levels for messages emitted during a run.

    Provides a mapping between severity levels and their corresponding
    logger method names.
    """

    DEBUG = "debug"
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"

    def log_method(self) -> str:
        return self.value


@dataclass(frozen=True)
class EnvironmentLayout:
    """Location of the isolated environment owned by this run."""

    root: Path
    venv_dir: str = "venv"

    @property
    def venv(self) -> Path:
        return self.root / self.venv_dir

    @property
    def bin_dir(self) -> Path:
        return self.venv / "bin"

    @property
    def python(self) -> Path:
        return self.bin_dir / "python"


@dataclass(frozen=True)
class ProvisionContext:
    """
    Runtime context threaded through inspection and execution.

    This replaces an "activated" virtual environment: nothing downstream reads
    VIRTUAL_ENV or relies on the caller's PATH ordering.
    """

    config: dict[str, Any]
    environment: EnvironmentLayout
    dry_run: bool = False
    verbose: bool = False
    timeout: float | None = None
    privilege_command: tuple[str, ...] = ("sudo",)
    base_env: dict[str, str] = field(default_factory=lambda: dict(os.environ), repr=False)

    def privileged(self, cmd: list[str]) -> list[str]:
        return [*self.privilege_command, *cmd]
