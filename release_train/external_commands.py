# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Invocation of the project's own release tooling.

Building release output and generating release notes are delegated to
commands configured by the project. Build tooling can differ between
version branches (an older patch branch may lack packages that exist on
newer branches), so the builder is always run on the checked out release
commit and reports which packages it built.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from release_train.changelog import create_section_header, prepend_section
from release_train.config import CHANGELOG_PATH, ReleaseConfig
from release_train.errors import FatalReleaseActionError
from release_train.process import run_silent_with_debug_output
from release_train.version import SemanticVersion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuiltPackage:
    """A package built by the release build command."""

    name: str
    output_path: Path


class ReleaseBuilder:
    """Runs the configured build and release-notes commands."""

    def __init__(self, config: ReleaseConfig, project_dir: Path) -> None:
        self._config = config
        self._project_dir = project_dir

    def build_packages(self) -> list[BuiltPackage]:
        """Build the release packages of the checked out revision.

        The build command prints a JSON array describing the built packages
        and their output paths to stdout.

        Raises:
            FatalReleaseActionError: If the build fails or prints invalid output.
        """
        result = run_silent_with_debug_output(self._config.build_command, cwd=self._project_dir)
        if not result.success:
            logger.error("  ✘   An error occurred while building the release packages.")
            raise FatalReleaseActionError("Building the release packages failed.")

        try:
            entries = json.loads(result.stdout)
            packages = [
                BuiltPackage(name=entry["name"], output_path=self._project_dir / entry["outputPath"])
                for entry in entries
            ]
        except (ValueError, KeyError, TypeError) as e:
            logger.error("  ✘   The build command did not print a valid list of built packages: %s", e)
            raise FatalReleaseActionError("Invalid build command output.") from e

        logger.info("  ✓   Built release output for all packages.")
        return packages

    def generate_release_notes(self, version: SemanticVersion) -> None:
        """Add a changelog section for a new version.

        Without a configured release notes command only the section heading
        is added, for the operator to fill in during review.

        Raises:
            FatalReleaseActionError: If the release notes command fails.
        """
        changelog_path = self._project_dir / CHANGELOG_PATH
        if not self._config.release_notes_command:
            prepend_section(changelog_path, create_section_header(version))
        else:
            cmd = [*self._config.release_notes_command, str(version), str(changelog_path)]
            if not run_silent_with_debug_output(cmd, cwd=self._project_dir).success:
                logger.error("  ✘   An error occurred while generating the release notes.")
                raise FatalReleaseActionError("Generating the release notes failed.")

        logger.info('  ✓   Updated the changelog to capture changes for "%s".', version)
