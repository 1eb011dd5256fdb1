# bridaprep/core/errors.py
"""Exception taxonomy for a provisioning run.

Only ``PrerequisiteFailure`` stops dependent components from being attempted.
Everything else is isolated to one component and surfaces in the final
verification report.
"""


class BridaprepError(Exception):
    """Base class for all bridaprep errors."""


class ExecutionFailure(BridaprepError):
    """A mandatory install, build or download step exited non-zero."""

    def __init__(self, message: str, command: str | None = None, returncode: int | None = None):
        super().__init__(message)
        self.command = command
        self.returncode = returncode


class PrerequisiteFailure(ExecutionFailure):
    """The isolated environment could not be created."""


class ScopeViolation(ExecutionFailure):
    """An install action would write into the wrong location."""


class DetectionParseError(ValueError, BridaprepError):
    """A version command ran but its output carried no recognizable version."""

    def __init__(self, text: str):
        snippet = text.strip().splitlines()[0][:120] if text.strip() else "<empty>"
        super().__init__(f"Could not parse a version from: {snippet!r}")
        self.text = text


class CleanupWarning(UserWarning):
    """Best-effort removal failed; logged, never affects the outcome."""
