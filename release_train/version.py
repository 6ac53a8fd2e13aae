# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Semantic versions and the version arithmetic of release-train transitions.

Every function in this module is pure: it takes a version and returns a new
one. Nothing here talks to git, the forge or the registry. Whether a version
has been published is supplied by the caller.

References:
    - Semantic Versioning 2.0.0: https://semver.org/
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Union

from release_train.errors import InvalidTransition

PrereleaseIdentifier = Union[str, int]

# SemVer 2.0.0 compliant pattern: no leading zeros in the numeric core.
# Build metadata is accepted but not retained.
SEMVER_PATTERN = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)

NEXT_PRERELEASE_TAG = "next"
RC_PRERELEASE_TAG = "rc"


@dataclass(frozen=True)
class SemanticVersion:
    """A parsed semantic version.

    The prerelease is stored as a tuple of identifiers, numeric identifiers as
    ``int``. Release trains only ever use ``("next", N)`` and ``("rc", N)``.
    """

    major: int
    minor: int
    patch: int
    prerelease: tuple[PrereleaseIdentifier, ...] = ()

    def __str__(self) -> str:
        """Return the version as a string (e.g., '10.1.0-next.3')."""
        core = f"{self.major}.{self.minor}.{self.patch}"
        if not self.prerelease:
            return core
        return core + "-" + ".".join(str(part) for part in self.prerelease)

    @property
    def prerelease_tag(self) -> str | None:
        """The leading prerelease identifier, or None for a stable version."""
        if not self.prerelease:
            return None
        return str(self.prerelease[0])

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    @property
    def is_major(self) -> bool:
        """True for the first version of a major (X.0.0, any prerelease)."""
        return self.minor == 0 and self.patch == 0

    def _precedence_key(self) -> tuple:
        # A stable version ranks above all of its prereleases. Within a
        # prerelease, numeric identifiers rank below alphanumeric ones.
        identifiers = tuple(
            (0, part, "") if isinstance(part, int) else (1, 0, part) for part in self.prerelease
        )
        return (self.major, self.minor, self.patch, 0 if self.prerelease else 1, identifiers)

    def __lt__(self, other: SemanticVersion) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._precedence_key() < other._precedence_key()

    def __le__(self, other: SemanticVersion) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._precedence_key() <= other._precedence_key()

    def __gt__(self, other: SemanticVersion) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._precedence_key() > other._precedence_key()

    def __ge__(self, other: SemanticVersion) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._precedence_key() >= other._precedence_key()


def parse_version(text: str) -> SemanticVersion:
    """Parse a semantic version string.

    Args:
        text: Version string without a tag prefix (e.g., '10.0.3', '11.0.0-rc.1').

    Returns:
        The parsed SemanticVersion.

    Raises:
        ValueError: If the text is not a valid semantic version.

    Examples:
        >>> parse_version("10.1.0-next.3").prerelease
        ('next', 3)
        >>> str(parse_version("10.0.3"))
        '10.0.3'
    """
    match = SEMVER_PATTERN.match(text.strip())
    if not match:
        raise ValueError(f"Invalid semantic version: '{text}'")

    prerelease: tuple[PrereleaseIdentifier, ...] = ()
    if match.group(4):
        prerelease = tuple(int(part) if part.isdigit() else part for part in match.group(4).split("."))

    return SemanticVersion(
        major=int(match.group(1)),
        minor=int(match.group(2)),
        patch=int(match.group(3)),
        prerelease=prerelease,
    )


def bump_patch(version: SemanticVersion) -> SemanticVersion:
    """Return the next patch version, dropping any prerelease.

    Examples:
        >>> str(bump_patch(parse_version("10.0.2")))
        '10.0.3'
    """
    return SemanticVersion(version.major, version.minor, version.patch + 1)


def bump_prerelease(version: SemanticVersion) -> SemanticVersion:
    """Increment the trailing numeric prerelease identifier.

    If the last identifier is not numeric, a ``0`` is appended instead.

    Raises:
        InvalidTransition: If the version has no prerelease.

    Examples:
        >>> str(bump_prerelease(parse_version("10.1.0-next.3")))
        '10.1.0-next.4'
    """
    if not version.prerelease:
        raise InvalidTransition(f"Cannot bump the prerelease of stable version {version}")

    last = version.prerelease[-1]
    if isinstance(last, int):
        prerelease = version.prerelease[:-1] + (last + 1,)
    else:
        prerelease = version.prerelease + (0,)
    return replace(version, prerelease=prerelease)


def promote_to_rc(version: SemanticVersion) -> SemanticVersion:
    """Move a feature-freeze version into the release-candidate phase.

    Raises:
        InvalidTransition: If the version is not a ``next`` prerelease.

    Examples:
        >>> str(promote_to_rc(parse_version("10.1.0-next.4")))
        '10.1.0-rc.0'
    """
    if version.prerelease_tag != NEXT_PRERELEASE_TAG:
        raise InvalidTransition(f"Only feature-freeze versions can become release candidates, got {version}")
    return replace(version, prerelease=(RC_PRERELEASE_TAG, 0))


def promote_to_stable(version: SemanticVersion) -> SemanticVersion:
    """Drop the release-candidate label from a version.

    Raises:
        InvalidTransition: If the version is not an ``rc`` prerelease. A
            feature-freeze version cannot go straight to stable.
    """
    if version.prerelease_tag != RC_PRERELEASE_TAG:
        raise InvalidTransition(f"Only release candidates can become stable, got {version}")
    return SemanticVersion(version.major, version.minor, version.patch)


def bump_minor_for_next_cycle(version: SemanticVersion) -> SemanticVersion:
    """Return the first prerelease of the following minor (X.Y+1.0-next.0).

    Examples:
        >>> str(bump_minor_for_next_cycle(parse_version("10.2.0-next.1")))
        '10.3.0-next.0'
    """
    return SemanticVersion(version.major, version.minor + 1, 0, (NEXT_PRERELEASE_TAG, 0))


def bump_major_for_next_cycle(version: SemanticVersion) -> SemanticVersion:
    """Return the first prerelease of the following major (X+1.0.0-next.0)."""
    return SemanticVersion(version.major + 1, 0, 0, (NEXT_PRERELEASE_TAG, 0))


def compute_new_prerelease_version_for_next(version: SemanticVersion, is_published: bool) -> SemanticVersion:
    """Compute the version of a new prerelease for the primary development train.

    Right after branching off for feature-freeze the development version is
    already bumped but not yet published. Cutting a release at that point
    would contain no new changes, so the unpublished version is reused
    rather than incremented.

    Args:
        version: Current version of the primary development train.
        is_published: Whether ``version`` exists in the package registry.

    Returns:
        The version the new prerelease should be staged with.

    Examples:
        >>> str(compute_new_prerelease_version_for_next(parse_version("10.2.0-next.0"), False))
        '10.2.0-next.0'
        >>> str(compute_new_prerelease_version_for_next(parse_version("10.2.0-next.0"), True))
        '10.2.0-next.1'
    """
    if is_published:
        return bump_prerelease(version)
    return version


def get_version_branch_name(version: SemanticVersion) -> str:
    """Return the name of the version branch for a version (e.g., '10.2.x')."""
    return f"{version.major}.{version.minor}.x"
