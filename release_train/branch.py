# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Version branch validation and parsing.

Release trains other than the primary development train live on version
branches named ``X.Y.x``. This module recognizes those names and sorts them.

References:
    - Semantic Versioning 2.0.0: https://semver.org/
    - git-check-ref-format: https://git-scm.com/docs/git-check-ref-format
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# SemVer 2.0.0 compliant pattern: no leading zeros allowed
# Pattern: X.Y.x where X and Y are non-negative integers without leading zeros
VERSION_BRANCH_PATTERN = re.compile(r"^(0|[1-9][0-9]*)\.(0|[1-9][0-9]*)\.x$")

# Characters invalid in git refs (branch names and tags)
INVALID_REF_CHARS = ["..", "~", "^", ":", "\\", " ", "\t", "\n", "*", "?", "["]


@dataclass(frozen=True)
class BranchVersion:
    """Version information extracted from a version branch name."""

    major: int
    minor: int

    def __str__(self) -> str:
        """Return the branch name (e.g., '10.1.x')."""
        return f"{self.major}.{self.minor}.x"


def validate_branch_name(branch_name: str) -> bool:
    """Validate that a name can be used as a git branch.

    Args:
        branch_name: The branch name to validate.

    Returns:
        True if the name is non-empty and contains no invalid ref characters.

    Examples:
        >>> validate_branch_name("main")
        True
        >>> validate_branch_name("bad..branch")
        False
    """
    if not branch_name:
        logger.warning("Empty branch name provided")
        return False

    for invalid_char in INVALID_REF_CHARS:
        if invalid_char in branch_name:
            logger.warning(
                "Branch name '%s' contains invalid character %s",
                branch_name,
                repr(invalid_char),
            )
            return False

    return True


def parse_version_branch(branch_name: str) -> BranchVersion | None:
    """Extract major and minor version numbers from a version branch name.

    Args:
        branch_name: The branch name to parse (e.g., '10.1.x').

    Returns:
        BranchVersion with major and minor numbers, or None if the branch is
        not a version branch.

    Examples:
        >>> parse_version_branch("10.1.x")
        BranchVersion(major=10, minor=1)
        >>> parse_version_branch("main") is None
        True
        >>> parse_version_branch("01.2.x") is None  # Leading zero
        True
    """
    if not branch_name:
        return None

    match = VERSION_BRANCH_PATTERN.match(branch_name)
    if not match:
        return None

    return BranchVersion(major=int(match.group(1)), minor=int(match.group(2)))


def sort_version_branches(branch_names: list[str]) -> list[BranchVersion]:
    """Return the version branches among ``branch_names``, newest first.

    Names that are not version branches are dropped.

    Examples:
        >>> [str(b) for b in sort_version_branches(["9.2.x", "main", "10.0.x", "10.1.x"])]
        ['10.1.x', '10.0.x', '9.2.x']
    """
    versions = [v for v in (parse_version_branch(name) for name in branch_names) if v is not None]
    return sorted(versions, key=lambda v: (v.major, v.minor), reverse=True)
