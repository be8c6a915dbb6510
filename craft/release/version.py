from __future__ import annotations

import re

from craft.core.result import Err, Ok, Result
from craft.release.errors import ReleaseError

# 1.2.3, 1.2.3-rc.1, 1.2.3rc1, 1.2.3+build.5
_VERSION_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-?([\da-z-]+(?:\.[\da-z-]+)*))?"
    r"(?:\+([\da-z-]+(?:\.[\da-z-]+)*))?$",
    re.IGNORECASE,
)

_PREVIEW_RE = re.compile(
    r"(?:[^a-z])(preview|pre|rc|dev|alpha|beta|unstable|a|b)(?:[^a-z]|$)",
    re.IGNORECASE,
)

# Reserved for automatic bumping, which is not available yet.
VERSION_PARTS = ("major", "minor", "patch")


def is_valid_version(text: str) -> bool:
    return _VERSION_RE.match(text) is not None


def validate_version(text: str) -> Result[str, ReleaseError]:
    """Accept a release version, or explain why it was refused.

    A bare bump keyword is refused with its own kind so that the operator can
    tell "not implemented" apart from a typo.
    """
    candidate = text.strip()
    if candidate in VERSION_PARTS:
        return Err(
            ReleaseError(
                kind="unsupported_version_part",
                message=f'Version part "{candidate}" is not supported yet',
                hint="Pass the full version instead, e.g. 1.4.0",
            )
        )
    if not is_valid_version(candidate):
        return Err(
            ReleaseError(
                kind="invalid_version",
                message=f'Invalid version or version part specified: "{text}"',
                hint="Expected MAJOR.MINOR.PATCH with an optional pre-release suffix",
            )
        )
    return Ok(candidate)


def is_preview_release(version: str) -> bool:
    """True for pre-release versions such as 1.0.0-rc.1 or 2.1.0-beta."""
    m = _VERSION_RE.match(version)
    if m is None or m.group(4) is None:
        return False
    return _PREVIEW_RE.search(f"-{m.group(4)}") is not None


def version_to_tag(version: str, tag_prefix: str = "") -> str:
    return f"{tag_prefix}{version}"
