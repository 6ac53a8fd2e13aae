# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Release configuration."""

from __future__ import annotations

from dataclasses import dataclass, field

from release_train.branch import validate_branch_name
from release_train.errors import ReleaseConfigError
from release_train.version import SemanticVersion

DEFAULT_NEXT_BRANCH = "main"
DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_RELEASE_COMMIT_MESSAGE = "release: cut the v{version} release"

# Files in the project root that are rewritten by a release.
PACKAGE_JSON_PATH = "package.json"
CHANGELOG_PATH = "CHANGELOG.md"


@dataclass
class ReleaseConfig:
    """Configuration for staging and publishing releases.

    Attributes:
        npm_packages: Names of the packages released together. The first one
            is used when querying the registry for published versions.
        build_command: External builder. Must print a JSON array of
            ``{"name": ..., "outputPath": ...}`` objects to stdout.
        release_notes_command: Optional external changelog generator, run with
            the new version and the changelog path appended.
        next_branch: Branch of the primary development train.
        registry_url: Custom registry; the public npm registry if None.
        poll_interval: Seconds between pull request merge checks.
        release_commit_message: Template for the release commit message.
    """

    npm_packages: list[str] = field(default_factory=list)
    build_command: list[str] = field(default_factory=list)
    release_notes_command: list[str] = field(default_factory=list)
    next_branch: str = DEFAULT_NEXT_BRANCH
    registry_url: str | None = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    release_commit_message: str = DEFAULT_RELEASE_COMMIT_MESSAGE

    @property
    def representative_package(self) -> str:
        return self.npm_packages[0]

    def get_release_commit_message(self, version: SemanticVersion) -> str:
        return self.release_commit_message.format(version=version)


def validate_config(config: ReleaseConfig, require_build_command: bool = True) -> ReleaseConfig:
    """Check a configuration and report every problem at once.

    Args:
        config: The configuration to check.
        require_build_command: Whether the command being run builds packages.

    Raises:
        ReleaseConfigError: Listing all problems found.
    """
    errors: list[str] = []

    if not config.npm_packages:
        errors.append("No npm packages configured for releasing.")
    if require_build_command and not config.build_command:
        errors.append("No build command configured for releasing.")
    if not validate_branch_name(config.next_branch):
        errors.append(f"Invalid next branch name '{config.next_branch}'.")
    if config.poll_interval <= 0:
        errors.append("The pull request poll interval must be positive.")
    if "{version}" not in config.release_commit_message:
        errors.append("The release commit message must contain a '{version}' placeholder.")

    if errors:
        raise ReleaseConfigError(errors)
    return config
