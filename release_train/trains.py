# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Release-train resolution.

The set of active release trains is derived from live repository state on
every run: the version in the primary development branch, and the versions
at the tips of the ``X.Y.x`` version branches.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from release_train.branch import sort_version_branches
from release_train.config import PACKAGE_JSON_PATH
from release_train.errors import AmbiguousBranchState
from release_train.version import NEXT_PRERELEASE_TAG, RC_PRERELEASE_TAG, SemanticVersion, parse_version

if TYPE_CHECKING:
    from release_train.github_api import GitHubAPI

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReleaseTrain:
    """A branch together with its current version."""

    branch_name: str
    version: SemanticVersion

    @property
    def is_feature_freeze(self) -> bool:
        return self.version.prerelease_tag == NEXT_PRERELEASE_TAG

    @property
    def is_release_candidate(self) -> bool:
        return self.version.prerelease_tag == RC_PRERELEASE_TAG


@dataclass(frozen=True)
class ActiveReleaseTrains:
    """The release trains currently active in the project.

    Attributes:
        latest: Most recent stable train (the patch branch).
        next: Primary development train.
        release_candidate: Train in feature-freeze or release-candidate
            phase, if any.
    """

    latest: ReleaseTrain
    next: ReleaseTrain
    release_candidate: ReleaseTrain | None = None


def get_version_of_branch(api: GitHubAPI, branch_name: str) -> SemanticVersion:
    """Read the version recorded in ``package.json`` at the tip of a branch.

    Raises:
        AmbiguousBranchState: If the file holds no valid version.
    """
    try:
        data = json.loads(api.get_file_contents(PACKAGE_JSON_PATH, ref=branch_name))
        return parse_version(data["version"])
    except (ValueError, KeyError, TypeError) as e:
        raise AmbiguousBranchState(f'Invalid version in "{branch_name}" branch {PACKAGE_JSON_PATH}: {e}') from e


def fetch_active_release_trains(api: GitHubAPI, next_branch: str) -> ActiveReleaseTrains:
    """Determine the active release trains from branch state.

    Version branches are inspected newest first. Prerelease branches are
    collected until the first stable branch, which becomes ``latest``. Older
    branches are not release trains anymore.

    Args:
        api: GitHubAPI instance for reading branches.
        next_branch: Name of the primary development branch.

    Returns:
        The resolved ActiveReleaseTrains.

    Raises:
        AmbiguousBranchState: If more than one branch is in feature-freeze or
            release-candidate phase, if a version branch is not older than the
            development train, or if no stable branch exists.
    """
    next_version = get_version_of_branch(api, next_branch)
    next_train = ReleaseTrain(branch_name=next_branch, version=next_version)
    logger.debug("Next release-train is %s@%s", next_branch, next_version)

    latest: ReleaseTrain | None = None
    release_candidate: ReleaseTrain | None = None

    for branch in sort_version_branches(api.list_branch_names()):
        if (branch.major, branch.minor) >= (next_version.major, next_version.minor):
            raise AmbiguousBranchState(
                f'Discovered unexpected version-branch "{branch}" for a release-train that is not '
                f'older than the release-train in the "{next_branch}" branch (v{next_version}). Please '
                f'either delete the branch if created by accident, or update the version in "{next_branch}".'
            )

        train = ReleaseTrain(branch_name=str(branch), version=get_version_of_branch(api, str(branch)))
        logger.debug("Version branch %s is at %s", train.branch_name, train.version)

        if train.is_feature_freeze or train.is_release_candidate:
            if release_candidate is not None:
                raise AmbiguousBranchState(
                    "Unable to determine latest release-train. The following branches have "
                    f'prerelease versions: "{release_candidate.branch_name}" and "{train.branch_name}". '
                    "A prerelease can only be present on one branch."
                )
            release_candidate = train
        else:
            latest = train
            break

    if latest is None:
        raise AmbiguousBranchState("Unable to determine the latest release-train. No stable version branch found.")
    if not latest.version < next_version:
        raise AmbiguousBranchState(
            f'Version of the latest release-train "{latest.branch_name}" (v{latest.version}) is not '
            f'older than the version in "{next_branch}" (v{next_version}).'
        )

    return ActiveReleaseTrains(latest=latest, next=next_train, release_candidate=release_candidate)


def describe_active_release_trains(active: ActiveReleaseTrains, is_next_published: bool) -> list[str]:
    """Describe the active release trains, one line per fact.

    Args:
        active: The active release trains.
        is_next_published: Whether the development train's version is already
            in the registry.
    """
    lines = ["Currently active release branches in the project:"]
    candidate = active.release_candidate

    if candidate is not None:
        rc_type = "major" if candidate.version.is_major else "minor"
        rc_phase = "feature-freeze" if candidate.is_feature_freeze else "release-candidate"
        lines.append(
            f" • {candidate.branch_name} contains changes for an upcoming {rc_type}, "
            f"currently in {rc_phase} phase."
        )
        lines.append(f'   Most recent pre-release for this branch is "v{candidate.version}".')

    lines.append(f" • {active.latest.branch_name} contains changes for the most recent patch.")
    lines.append(f'   Most recent patch version for this branch is "v{active.latest.version}".')

    next_type = "major" if active.next.version.is_major else "minor"
    lines.append(f" • {active.next.branch_name} contains changes for a {next_type} currently in active development.")
    if is_next_published:
        lines.append(f'   Most recent pre-release version for this branch is "v{active.next.version}".')
    else:
        lines.append(f'   Version is currently set to "v{active.next.version}", but has not been published.')

    return lines


def print_active_release_trains(active: ActiveReleaseTrains, is_next_published: bool) -> None:
    """Log the active release trains so the operator sees the branching state."""
    for line in describe_active_release_trains(active, is_next_published):
        logger.info("%s", line)
