# bridaprep/core/command.py

import shlex
import subprocess

from bridaprep.core.logger import LoggerProxy

log = LoggerProxy(__name__)


class CommandResult:
    """Holds the result of a command execution."""

    def __init__(
        self,
        returncode: int,
        stdout: str,
        stderr: str,
        success: bool,
        timed_out: bool = False,
        not_found: bool = False,
    ):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.success = success  # True if returncode is 0 (or if check=False)
        self.timed_out = timed_out
        self.not_found = not_found

    @property
    def output(self) -> str:
        """stdout and stderr combined; some tools print versions to stderr."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)

    def __bool__(self) -> bool:
        """Allows treating the result object as boolean for success."""
        return self.success


def run_command(
    cmd_list: list[str],
    dry_run: bool = False,
    check: bool = True,  # If True, non-zero exit code is considered failure
    capture: bool = True,  # Capture stdout/stderr; False streams to the terminal
    text: bool = True,
    cwd: str | None = None,
    env: dict[str, str] | None = None,
    timeout: float | None = None,  # None waits forever
) -> CommandResult:
    """
    Runs an external command using subprocess.

    Args:
        cmd_list: Command and arguments as a list of strings.
        dry_run: If True, log the command instead of running it.
        check: If True, non-zero exit codes indicate failure.
        capture: If True, capture stdout and stderr.
        text: If True, decode stdout/stderr as text.
        cwd: Directory to run the command in.
        env: Environment variables dictionary for the subprocess.
        timeout: Seconds before the process is killed and reported as failed.

    Returns:
        CommandResult object with success status, return code, stdout, stderr.
    """
    cmd_str = shlex.join(cmd_list)
    log.info(f"Running: {cmd_str}" + (f" in {cwd}" if cwd else ""))

    if dry_run:
        log.info(f"DRYRUN: Would execute: {cmd_str}")
        return CommandResult(returncode=0, stdout="", stderr="", success=True)

    try:
        process = subprocess.run(
            cmd_list,
            check=False,  # We check manually based on the 'check' flag
            capture_output=capture,
            text=text,
            cwd=cwd,
            env=env,
            timeout=timeout,
        )
    except FileNotFoundError:
        log.debug(f"Command not found: {cmd_list[0]}")
        return CommandResult(
            returncode=127,
            stdout="",
            stderr=f"Command not found: {cmd_list[0]}",
            success=False,
            not_found=True,
        )
    except subprocess.TimeoutExpired:
        log.error(f"Command timed out after {timeout}s: {cmd_str}")
        return CommandResult(
            returncode=-1,
            stdout="",
            stderr=f"Timed out after {timeout}s",
            success=False,
            timed_out=True,
        )
    except OSError as e:
        log.error(f"Could not start command: {cmd_str}: {e}")
        return CommandResult(returncode=-1, stdout="", stderr=str(e), success=False)

    stdout = process.stdout.strip() if process.stdout else ""
    stderr = process.stderr.strip() if process.stderr else ""

    if stdout:
        log.debug(f"STDOUT: {stdout}")
    if stderr:
        # Probes routinely fail; keep their stderr at debug unless checked
        if process.returncode == 0 or not check:
            log.debug(f"STDERR (RC={process.returncode}): {stderr}")
        else:
            log.error(f"STDERR (RC={process.returncode}): {stderr}")

    success = process.returncode == 0

    if check and not success:
        log.error(f"Command failed with exit code {process.returncode}: {cmd_str}")
        return CommandResult(process.returncode, stdout, stderr, success=False)
    log.debug(f"Command finished with exit code {process.returncode}.")
    return CommandResult(process.returncode, stdout, stderr, success=success)
