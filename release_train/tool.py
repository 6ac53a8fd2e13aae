# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Interactive release orchestration.

The release tool resolves the active release trains, lets the operator pick
one of the active actions and performs it. A publish run also offers to
publish releases that were staged by an earlier stage run and have been
merged since. Whatever happens, the working copy
is switched back to the branch or revision it was on before the run.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from release_train.actions import (
    StagedRelease,
    describe_action,
    describe_staged_release,
    find_staged_releases,
    get_active_actions,
    perform_action,
    publish_staged_release,
)
from release_train.errors import (
    AmbiguousBranchState,
    FatalReleaseActionError,
    GitCommandError,
    UserAbortedReleaseActionError,
)
from release_train.trains import fetch_active_release_trains, print_active_release_trains

if TYPE_CHECKING:
    from release_train.actions import ActionKind
    from release_train.context import ReleaseContext
    from release_train.trains import ActiveReleaseTrains

logger = logging.getLogger(__name__)


class CompletionState(Enum):
    """How a release run ended."""

    SUCCESS = "success"
    FATAL_ERROR = "fatal-error"
    MANUALLY_ABORTED = "manually-aborted"


class ReleaseTool:
    """Runs one interactive release."""

    def __init__(self, ctx: ReleaseContext) -> None:
        self._ctx = ctx

    def _fetch_and_print_trains(self) -> ActiveReleaseTrains:
        ctx = self._ctx
        active = fetch_active_release_trains(ctx.github, ctx.config.next_branch)
        is_next_published = ctx.npm.is_version_published(ctx.config.representative_package, active.next.version)
        print_active_release_trains(active, is_next_published)
        return active

    def print_info(self) -> CompletionState:
        """Log the active release trains without performing anything."""
        try:
            self._fetch_and_print_trains()
        except (AmbiguousBranchState, GitCommandError) as e:
            logger.error("  ✘   %s", e)
            return CompletionState.FATAL_ERROR
        except Exception:
            logger.exception("  ✘   An unexpected error occurred while fetching the release trains.")
            return CompletionState.FATAL_ERROR
        return CompletionState.SUCCESS

    def run(self) -> CompletionState:
        """Select and perform a release action.

        Returns:
            SUCCESS if the action completed, MANUALLY_ABORTED if the operator
            cancelled it and FATAL_ERROR otherwise.
        """
        ctx = self._ctx
        logger.info("Release tool for %s", ctx.github.repository)

        if ctx.git.has_uncommitted_changes():
            logger.error("  ✘   There are changes which are not committed and should be discarded.")
            return CompletionState.FATAL_ERROR

        previous = ctx.git.get_current_branch_or_revision()
        try:
            active = self._fetch_and_print_trains()
            choices: list[tuple[str, ActionKind | StagedRelease]] = []
            if not ctx.stage_only:
                choices += [(describe_staged_release(s), s) for s in find_staged_releases(active, ctx)]
            choices += [(describe_action(kind, active), kind) for kind in get_active_actions(active)]
            selected = ctx.prompt.choose("Please select an action:", choices)
            if isinstance(selected, StagedRelease):
                publish_staged_release(selected, ctx)
            else:
                logger.debug("Performing %s", selected.value)
                perform_action(selected, active, ctx)
        except UserAbortedReleaseActionError as e:
            logger.warning("  ⚠   Release action has been aborted manually: %s", e)
            return CompletionState.MANUALLY_ABORTED
        except (FatalReleaseActionError, AmbiguousBranchState, GitCommandError) as e:
            logger.error("  ✘   Release action could not be completed: %s", e)
            return CompletionState.FATAL_ERROR
        except Exception:
            logger.exception("  ✘   An unexpected error occurred while performing the release action.")
            return CompletionState.FATAL_ERROR
        finally:
            # Whatever the action left behind is its own: the run refuses to
            # start with uncommitted changes.
            if not ctx.git.checkout(previous, discard_changes=True):
                logger.warning('  ⚠   Could not switch back to "%s".', previous)

        logger.info("  ✓   Release action has completed successfully.")
        return CompletionState.SUCCESS
