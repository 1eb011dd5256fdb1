# bridaprep/core/report.py

import contextlib
import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from bridaprep.core.types import VerificationReport


def markdown_escape(text: object) -> str:
    return str(text).replace("|", "\\|")


def render_markdown(report: VerificationReport) -> str:
    now = datetime.now(timezone.utc).replace(microsecond=0).isoformat()
    status = "PASS" if report.success else f"FAIL ({report.error_count} failing)"
    lines = [
        "# bridaprep verification report",
        f"Generated: {now}",
        "",
        f"Overall: **{status}**",
        "",
        "| Component | Scope | Expected | Found | Location | Result |",
        "|-----------|-------|----------|-------|----------|--------|",
    ]
    for v in report.verdicts:
        lines.append(
            "| "
            + " | ".join(
                markdown_escape(cell)
                for cell in (
                    v.component_name,
                    v.scope.value,
                    v.expected_version or "any",
                    v.state.detected_version or "-",
                    v.state.install_path or "-",
                    "PASS" if v.passed else "FAIL",
                )
            )
            + " |"
        )
    failing = [v for v in report.verdicts if not v.passed]
    if failing:
        lines += ["", "## Problems", ""]
        for v in failing:
            for problem in v.problems:
                lines.append(f"- `{v.component_name}`: {problem}")
    return "\n".join(lines) + "\n"


def render_json(report: VerificationReport) -> str:
    return json.dumps(report.as_dict(), indent=2) + "\n"


def write_report(report: VerificationReport, path: Path) -> Path:
    """Markdown for .md files, JSON otherwise. Written atomically."""
    content = render_markdown(report) if path.suffix.lower() in (".md", ".markdown") else render_json(report)
    _atomic_write_text(path, content)
    return path


def _atomic_write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(temp_name)
        raise
