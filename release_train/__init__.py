# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Release Train - Stage and publish npm releases from release trains."""

from release_train.actions import ActionKind, get_active_actions
from release_train.config import ReleaseConfig
from release_train.tool import CompletionState, ReleaseTool
from release_train.trains import ActiveReleaseTrains, ReleaseTrain, fetch_active_release_trains
from release_train.version import SemanticVersion, parse_version

__all__ = [
    "ActionKind",
    "ActiveReleaseTrains",
    "CompletionState",
    "ReleaseConfig",
    "ReleaseTool",
    "ReleaseTrain",
    "SemanticVersion",
    "fetch_active_release_trains",
    "get_active_actions",
    "parse_version",
]
