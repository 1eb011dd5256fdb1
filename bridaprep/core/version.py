# bridaprep/core/version.py
import re

from packaging.version import InvalidVersion, Version

from bridaprep.core.errors import DetectionParseError

# A version token not glued to a preceding digit or dot, so "13.11.0" is never
# read as "3.11.0". Pre-release, post, dev and build suffixes stay attached.
_VERSION_TOKEN = re.compile(
    r"(?<![\d.])v?(\d+(?:\.\d+)+(?:(?:[-_.]?[A-Za-z][0-9A-Za-z]*|\+[0-9A-Za-z]+)(?:[.+-][0-9A-Za-z]+)*)?)"
)


def parse_version(text: str) -> str:
    """
    Extract the first version token from command output and normalize it.

    The normalized form is ``major.minor.patch`` followed by any pre-release,
    post, dev or local suffix in PEP 440 spelling, with a missing patch level
    filled in as ``0``. ``10.2.5-beta.1`` becomes ``10.2.5b1``.

    Raises:
        DetectionParseError: when no usable version token is present.
    """
    match = _VERSION_TOKEN.search(text or "")
    if not match:
        raise DetectionParseError(text or "")
    try:
        version = Version(match.group(1))
    except InvalidVersion:
        raise DetectionParseError(text) from None
    if len(version.release) > 3:
        raise DetectionParseError(text)

    major, minor, patch = (*version.release, 0, 0)[:3]
    normalized = f"{major}.{minor}.{patch}"
    if version.epoch:
        normalized = f"{version.epoch}!{normalized}"
    if version.pre is not None:
        normalized += f"{version.pre[0]}{version.pre[1]}"
    if version.post is not None:
        normalized += f".post{version.post}"
    if version.dev is not None:
        normalized += f".dev{version.dev}"
    if version.local is not None:
        normalized += f"+{version.local}"
    return normalized


def normalize_version(version: str | None) -> str | None:
    """Normalize a configured version; ``None`` stays ``None``."""
    if version is None:
        return None
    return parse_version(str(version))


def versions_match(required: str | None, detected: str | None) -> bool:
    """Exact equality on normalized versions. A presence-only pin accepts any version."""
    if detected is None:
        return False
    if required is None:
        return True
    return normalize_version(required) == normalize_version(detected)
