# Copyright (c) 2026 Mark Ferrell. MIT License.
"""The collaborators a release run operates with."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from release_train.config import ReleaseConfig
    from release_train.external_commands import ReleaseBuilder
    from release_train.git import GitClient
    from release_train.github_api import GitHubAPI
    from release_train.npm import NpmRegistry
    from release_train.prompt import Prompt


@dataclass
class ReleaseContext:
    """Everything a release action needs, passed explicitly to each step.

    Attributes:
        config: Release configuration.
        git: Local git working copy.
        github: Upstream repository on GitHub.
        npm: Package registry.
        builder: Project build and release-notes commands.
        prompt: Operator prompt.
        project_dir: Root of the local working copy.
        stage_only: Stop after the staging pull request has been created.
    """

    config: ReleaseConfig
    git: GitClient
    github: GitHubAPI
    npm: NpmRegistry
    builder: ReleaseBuilder
    prompt: Prompt
    project_dir: Path
    stage_only: bool = False
