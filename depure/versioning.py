"""Version coercion and comparison.

Registry and requirements files carry version strings in many shapes
("2.31.0", "1.0", "v3", "2024.1.1.post2", "1.0rc1"). Comparisons here
reduce every version to a ``major.minor.patch`` triple via
``semantic_version`` and treat anything that cannot be reduced as
incomparable. An incomparable pair never reports an update.
"""

import re
from typing import Iterable, Optional

from semantic_version import Version

from .logging_config import logger

# First run of up to three dot-separated numeric components
_NUMERIC_CORE = re.compile(r"\d+(?:\.\d+){0,2}")


def coerce_version(value: Optional[str]) -> Optional[Version]:
    """
    Coerce an arbitrary version string into a ``major.minor.patch`` Version.

    Missing components default to 0, leading text ("v", "release-") is
    skipped, and anything after the numeric core (pre-release tags,
    post/dev suffixes, a fourth component) is dropped.

    Args:
        value: Version string, possibly partial or malformed

    Returns:
        A semantic_version.Version, or None when no numeric core exists
    """
    if not value or not isinstance(value, str):
        return None

    match = _NUMERIC_CORE.search(value.strip())
    if not match:
        return None

    try:
        coerced = Version.coerce(match.group(0))
    except ValueError:
        return None

    return Version(major=coerced.major, minor=coerced.minor, patch=coerced.patch)


def is_newer(candidate: Optional[str], base: Optional[str]) -> bool:
    """
    Check whether ``candidate`` is strictly newer than ``base``.

    Returns False whenever either side is absent, empty or cannot be
    coerced, so a malformed version never produces an update flag.
    """
    candidate_version = coerce_version(candidate)
    base_version = coerce_version(base)

    if candidate_version is None or base_version is None:
        if candidate and base:
            logger.debug(f"Could not compare versions: {candidate!r} vs {base!r}")
        return False

    return candidate_version > base_version


def is_strict_release(value: str) -> bool:
    """Check if a release key is a valid semantic version without a pre-release tag."""
    try:
        version = Version(value)
    except ValueError:
        return False
    return not version.prerelease


def pick_latest(release_keys: Iterable[str]) -> Optional[str]:
    """
    Pick the highest version among release keys.

    Only keys that are strict ``X.Y.Z`` releases take part; keys such as
    "1.0", "2.0b1" or "2021.10.8.1" are ignored.

    Returns:
        The highest release key, or None when no key qualifies
    """
    valid = [key for key in release_keys if isinstance(key, str) and is_strict_release(key)]
    if not valid:
        return None
    return max(valid, key=Version)
