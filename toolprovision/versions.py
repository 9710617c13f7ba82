"""
Version request handling.

Turns the raw version a user asks for into either a clean release version or
a nightly build tag, and holds the compatibility rule that picks the runtime
release matching a compiler release.
"""

import re
from typing import Optional, Tuple

from packaging.version import InvalidVersion, Version

from toolprovision.core.exceptions import VersionError

# Nightly builds are tagged <date>_<branch>_<hash>, e.g. 2024-05-01_development_8cbd3f0
NIGHTLY_PATTERN = re.compile(r"^(?:\d{4}-\d{2}-\d{2}_[\w.-]+_\w+|latest)$")

SEMVER_PATTERN = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

# Nightly tags that point at a different build over time
MOVING_NIGHTLY_TAGS = frozenset({"latest"})

# Compiler 3.x needs the older runtime; it has no 64-bit Windows build
LEGACY_RUNTIME_VERSION = "2.1.0"
CURRENT_RUNTIME_VERSION = "2.4.0"


def is_nightly_version(raw: str) -> bool:
    """
    Check whether `raw` names a nightly build.

    Example:
        >>> is_nightly_version("2024-05-01_development_8cbd3f0")
        True
        >>> is_nightly_version("4.3.4")
        False
    """
    return bool(NIGHTLY_PATTERN.match(raw.strip()))


def clean_version(raw: str) -> Optional[str]:
    """
    Normalize a release version string.

    Strips whitespace and leading '=' / 'v' markers and returns the version
    only if what remains is MAJOR.MINOR.PATCH with optional pre-release and
    build parts.

    Example:
        >>> clean_version(" v4.0.5 ")
        '4.0.5'
        >>> clean_version("4.0") is None
        True
    """
    candidate = raw.strip().lstrip("=v").strip()
    match = SEMVER_PATTERN.match(candidate)
    if not match:
        return None
    # Build metadata does not identify a distinct release
    return candidate.split("+", 1)[0]


def resolve_requested_version(raw: str) -> Tuple[str, bool]:
    """
    Resolve a user supplied version.

    Returns:
        (version, nightly) tuple

    Raises:
        VersionError: If raw is neither a nightly tag nor a valid version
    """
    if is_nightly_version(raw):
        return raw.strip(), True

    version = clean_version(raw)
    if version is None:
        raise VersionError(f"Invalid version: {raw!r}")
    return version, False


def runtime_version_for(compiler_version: str) -> str:
    """
    Runtime release required by a compiler release.

    Example:
        >>> runtime_version_for("3.4.7")
        '2.1.0'
        >>> runtime_version_for("4.0.5")
        '2.4.0'
    """
    if compiler_version.startswith("3."):
        return LEGACY_RUNTIME_VERSION
    return CURRENT_RUNTIME_VERSION


def version_at_least(version: str, minimum: str) -> bool:
    """
    Compare two release versions; unparsable versions never qualify.

    Example:
        >>> version_at_least("2.4.0", "2.4")
        True
        >>> version_at_least("2.3.0", "2.4")
        False
    """
    try:
        return Version(version) >= Version(minimum)
    except InvalidVersion:
        return False


__all__ = [
    "NIGHTLY_PATTERN",
    "MOVING_NIGHTLY_TAGS",
    "LEGACY_RUNTIME_VERSION",
    "CURRENT_RUNTIME_VERSION",
    "is_nightly_version",
    "clean_version",
    "resolve_requested_version",
    "runtime_version_for",
    "version_at_least",
]
