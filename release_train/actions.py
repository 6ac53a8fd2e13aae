# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Catalog of release actions.

Each action is a member of ActionKind. For a set of active release trains an
action has an activation predicate, a description and a procedure. The
predicates are pure: anything that needs the registry (such as finding LTS
branches) happens only when the action is performed.

Phase transitions::

    next ──move into feature-freeze──▶ X.Y.x @ X.Y.0-next.N
    X.Y.x @ next ──cut release-candidate──▶ X.Y.x @ X.Y.0-rc.0
    X.Y.x @ rc ──cut stable──▶ X.Y.x @ X.Y.0 (becomes latest)
    latest ──cut new patch──▶ latest @ X.Y.Z+1
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from release_train.config import PACKAGE_JSON_PATH
from release_train.errors import FatalReleaseActionError, InvalidTransition
from release_train.executor import (
    build_and_publish,
    build_release,
    checkout_branch_and_stage_version,
    checkout_upstream_branch,
    cherry_pick_changelog_into_next_branch,
    create_cherry_pick_release_notes_commit,
    create_tag_and_github_release,
    get_next_branch_bump_commit_message,
    is_release_staged,
    publish_packages,
    push_changes_to_fork_and_create_pull_request,
    set_npm_dist_tag_for_packages,
    stage_version_for_branch_and_create_pull_request,
    update_project_version,
    verify_passing_github_status,
    wait_for_pull_request_to_be_merged,
)
from release_train.lts import LtsBranch, find_lts_branches, get_lts_dist_tag_of_major
from release_train.version import (
    bump_major_for_next_cycle,
    bump_minor_for_next_cycle,
    bump_patch,
    bump_prerelease,
    compute_new_prerelease_version_for_next,
    get_version_branch_name,
    parse_version,
    promote_to_rc,
    promote_to_stable,
)

if TYPE_CHECKING:
    from release_train.context import ReleaseContext
    from release_train.github_api import PullRequestHandle
    from release_train.trains import ActiveReleaseTrains, ReleaseTrain
    from release_train.version import SemanticVersion

logger = logging.getLogger(__name__)


class ActionKind(Enum):
    """The release actions supported by the release tool."""

    CUT_STABLE = "cut-stable"
    CUT_RELEASE_CANDIDATE = "cut-release-candidate"
    CUT_RELEASE_CANDIDATE_PRERELEASE = "cut-release-candidate-prerelease"
    CUT_NEW_PATCH = "cut-new-patch"
    CUT_NEXT_PRERELEASE = "cut-next-prerelease"
    MOVE_NEXT_INTO_FEATURE_FREEZE = "move-next-into-feature-freeze"
    CONFIGURE_NEXT_AS_MAJOR = "configure-next-as-major"
    CUT_LTS_PATCH = "cut-lts-patch"


# Sorted by priority. Selectable actions are offered in this order.
ACTIONS: tuple[ActionKind, ...] = (
    ActionKind.CUT_STABLE,
    ActionKind.CUT_RELEASE_CANDIDATE,
    ActionKind.CUT_RELEASE_CANDIDATE_PRERELEASE,
    ActionKind.CUT_NEW_PATCH,
    ActionKind.CUT_NEXT_PRERELEASE,
    ActionKind.MOVE_NEXT_INTO_FEATURE_FREEZE,
    ActionKind.CONFIGURE_NEXT_AS_MAJOR,
    ActionKind.CUT_LTS_PATCH,
)


def is_action_active(kind: ActionKind, active: ActiveReleaseTrains) -> bool:
    """Return whether an action can be performed for the active release trains."""
    candidate = active.release_candidate

    match kind:
        case ActionKind.CUT_STABLE:
            # Releasing straight from feature-freeze into stable is not possible.
            return candidate is not None and candidate.is_release_candidate
        case ActionKind.CUT_RELEASE_CANDIDATE:
            return candidate is not None and candidate.is_feature_freeze
        case ActionKind.CUT_RELEASE_CANDIDATE_PRERELEASE:
            return candidate is not None
        case ActionKind.CUT_NEW_PATCH:
            return True
        case ActionKind.CUT_NEXT_PRERELEASE:
            # While an FF/RC train exists it owns the "next" dist-tag.
            return candidate is None
        case ActionKind.MOVE_NEXT_INTO_FEATURE_FREEZE:
            # Only one FF/RC train can exist at a time.
            return candidate is None
        case ActionKind.CONFIGURE_NEXT_AS_MAJOR:
            # Only right after branching off, while next still is the
            # temporary minor bump.
            version = active.next.version
            return version.minor != 0 and version.prerelease == ("next", 0)
        case ActionKind.CUT_LTS_PATCH:
            # LTS branches are determined on perform as it is expensive to find them.
            return True


def get_active_actions(active: ActiveReleaseTrains) -> list[ActionKind]:
    """Return the actions that can be performed, in priority order."""
    return [kind for kind in ACTIONS if is_action_active(kind, active)]


def _get_release_candidate(active: ActiveReleaseTrains) -> ReleaseTrain:
    if active.release_candidate is None:
        raise InvalidTransition("There is no feature-freeze or release-candidate train.")
    return active.release_candidate


def describe_action(kind: ActionKind, active: ActiveReleaseTrains) -> str:
    """Describe an active action for the operator."""
    match kind:
        case ActionKind.CUT_STABLE:
            candidate = _get_release_candidate(active)
            return (
                f'Cut a stable release for the release-candidate branch "{candidate.branch_name}" '
                f"(v{promote_to_stable(candidate.version)})."
            )
        case ActionKind.CUT_RELEASE_CANDIDATE:
            candidate = _get_release_candidate(active)
            return (
                f'Cut a first release-candidate for the feature-freeze branch "{candidate.branch_name}" '
                f"(v{promote_to_rc(candidate.version)})."
            )
        case ActionKind.CUT_RELEASE_CANDIDATE_PRERELEASE:
            candidate = _get_release_candidate(active)
            phase = "feature-freeze" if candidate.is_feature_freeze else "release-candidate"
            return (
                f'Cut a new pre-release for the {phase} branch "{candidate.branch_name}" '
                f"(v{bump_prerelease(candidate.version)})."
            )
        case ActionKind.CUT_NEW_PATCH:
            return (
                f'Cut a new patch release for the "{active.latest.branch_name}" branch '
                f"(v{bump_patch(active.latest.version)})."
            )
        case ActionKind.CUT_NEXT_PRERELEASE:
            return f'Cut a new next pre-release for the "{active.next.branch_name}" branch.'
        case ActionKind.MOVE_NEXT_INTO_FEATURE_FREEZE:
            return f'Move the "{active.next.branch_name}" branch into feature-freeze phase.'
        case ActionKind.CONFIGURE_NEXT_AS_MAJOR:
            return (
                f'Configure the "{active.next.branch_name}" branch to be released as major '
                f"(v{bump_major_for_next_cycle(active.next.version)})."
            )
        case ActionKind.CUT_LTS_PATCH:
            return "Cut a new release for an active LTS branch."


def perform_action(kind: ActionKind, active: ActiveReleaseTrains, ctx: ReleaseContext) -> None:
    """Perform an action. The action must be active for ``active``."""
    match kind:
        case ActionKind.CUT_STABLE:
            _cut_stable(active, ctx)
        case ActionKind.CUT_RELEASE_CANDIDATE:
            _cut_release_candidate(active, ctx)
        case ActionKind.CUT_RELEASE_CANDIDATE_PRERELEASE:
            _cut_release_candidate_prerelease(active, ctx)
        case ActionKind.CUT_NEW_PATCH:
            _cut_new_patch(active, ctx)
        case ActionKind.CUT_NEXT_PRERELEASE:
            _cut_next_prerelease(active, ctx)
        case ActionKind.MOVE_NEXT_INTO_FEATURE_FREEZE:
            _move_next_into_feature_freeze(active, ctx)
        case ActionKind.CONFIGURE_NEXT_AS_MAJOR:
            _configure_next_as_major(active, ctx)
        case ActionKind.CUT_LTS_PATCH:
            _cut_lts_patch(ctx)


@dataclass(frozen=True)
class StagedRelease:
    """A merged release commit at the tip of a train that was never tagged.

    Attributes:
        train: The train whose tip is the release commit.
        dist_tag: Dist-tag the packages are published under.
        cherry_pick: Whether the changelog is cherry-picked into next.
    """

    train: ReleaseTrain
    dist_tag: str
    cherry_pick: bool


def find_staged_releases(active: ActiveReleaseTrains, ctx: ReleaseContext) -> list[StagedRelease]:
    """Find releases that were staged by an earlier run and merged since.

    The version of such a train is the staged version itself, and the tip of
    its branch is still the release commit. Anything merged on top of it
    makes the staged release undetectable.
    """
    candidates = [
        StagedRelease(active.latest, "latest", cherry_pick=True),
        # The next branch is the release branch itself.
        StagedRelease(active.next, "next", cherry_pick=False),
    ]
    if active.release_candidate is not None:
        candidates.append(StagedRelease(active.release_candidate, "next", cherry_pick=True))
    return [c for c in candidates if is_release_staged(ctx, c.train.version, c.train.branch_name)]


def describe_staged_release(staged: StagedRelease) -> str:
    return f'Publish the staged v{staged.train.version} release from the "{staged.train.branch_name}" branch.'


def publish_staged_release(staged: StagedRelease, ctx: ReleaseContext) -> None:
    """Build, tag and publish a merged staged release, then cherry-pick its changelog."""
    version = staged.train.version
    branch_name = staged.train.branch_name

    packages, commit_sha = build_release(ctx, version, branch_name)
    create_tag_and_github_release(ctx, version, commit_sha)
    if staged.dist_tag == "latest" and version.is_major:
        _set_lts_dist_tag_for_outgoing_major(ctx, version)
    publish_packages(ctx, packages, staged.dist_tag)
    if staged.cherry_pick:
        cherry_pick_changelog_into_next_branch(ctx, version, branch_name)


def _set_lts_dist_tag_for_outgoing_major(ctx: ReleaseContext, version: SemanticVersion) -> None:
    # The staged major already replaced the previous latest train, so the
    # outgoing version is read from the registry's "latest" dist-tag.
    info = ctx.npm.fetch_package_info(ctx.config.representative_package)
    latest = info.get("dist-tags", {}).get("latest")
    if latest is None:
        logger.warning('  ⚠   No "latest" dist-tag found. Not moving a previous major into LTS.')
        return
    previous = parse_version(latest)
    if previous.major < version.major:
        set_npm_dist_tag_for_packages(ctx, get_lts_dist_tag_of_major(previous.major), previous)


def _stop_after_staging(ctx: ReleaseContext, pull_request: PullRequestHandle) -> bool:
    if ctx.stage_only:
        logger.info("  ✓   Release has been staged in pull request #%s. Once it has been merged,", pull_request.id)
        logger.info("      run the publish command and select the staged release to publish it.")
    return ctx.stage_only


def _stage_and_release(ctx: ReleaseContext, version: SemanticVersion, branch_name: str, dist_tag: str) -> bool:
    """Stage, await, build and publish a version. False if only staged."""
    pull_request = checkout_branch_and_stage_version(ctx, version, branch_name)
    if _stop_after_staging(ctx, pull_request):
        return False
    wait_for_pull_request_to_be_merged(ctx, pull_request)
    build_and_publish(ctx, version, branch_name, dist_tag)
    return True


def _cut_new_patch(active: ActiveReleaseTrains, ctx: ReleaseContext) -> None:
    branch_name = active.latest.branch_name
    new_version = bump_patch(active.latest.version)
    if _stage_and_release(ctx, new_version, branch_name, "latest"):
        cherry_pick_changelog_into_next_branch(ctx, new_version, branch_name)


def _cut_next_prerelease(active: ActiveReleaseTrains, ctx: ReleaseContext) -> None:
    # The next branch is the release branch itself, so there is nothing to cherry-pick.
    is_published = ctx.npm.is_version_published(ctx.config.representative_package, active.next.version)
    new_version = compute_new_prerelease_version_for_next(active.next.version, is_published)
    _stage_and_release(ctx, new_version, active.next.branch_name, "next")


def _cut_release_candidate(active: ActiveReleaseTrains, ctx: ReleaseContext) -> None:
    candidate = _get_release_candidate(active)
    branch_name = candidate.branch_name
    new_version = promote_to_rc(candidate.version)
    if _stage_and_release(ctx, new_version, branch_name, "next"):
        cherry_pick_changelog_into_next_branch(ctx, new_version, branch_name)


def _cut_release_candidate_prerelease(active: ActiveReleaseTrains, ctx: ReleaseContext) -> None:
    candidate = _get_release_candidate(active)
    branch_name = candidate.branch_name
    new_version = bump_prerelease(candidate.version)
    if _stage_and_release(ctx, new_version, branch_name, "next"):
        cherry_pick_changelog_into_next_branch(ctx, new_version, branch_name)


def _cut_stable(active: ActiveReleaseTrains, ctx: ReleaseContext) -> None:
    candidate = _get_release_candidate(active)
    branch_name = candidate.branch_name
    new_version = promote_to_stable(candidate.version)

    pull_request = checkout_branch_and_stage_version(ctx, new_version, branch_name)
    if _stop_after_staging(ctx, pull_request):
        return
    wait_for_pull_request_to_be_merged(ctx, pull_request)

    packages, commit_sha = build_release(ctx, new_version, branch_name)
    create_tag_and_github_release(ctx, new_version, commit_sha)

    # The outgoing major enters long-term support once a new major becomes
    # "latest". Its LTS dist-tag is set before the new major is published.
    if new_version.is_major:
        previous = active.latest.version
        set_npm_dist_tag_for_packages(ctx, get_lts_dist_tag_of_major(previous.major), previous)

    publish_packages(ctx, packages, "latest")
    cherry_pick_changelog_into_next_branch(ctx, new_version, branch_name)


def _move_next_into_feature_freeze(active: ActiveReleaseTrains, ctx: ReleaseContext) -> None:
    next_branch = active.next.branch_name
    is_published = ctx.npm.is_version_published(ctx.config.representative_package, active.next.version)
    new_version = compute_new_prerelease_version_for_next(active.next.version, is_published)
    new_branch = get_version_branch_name(new_version)

    # Branch off the next branch into the feature-freeze branch.
    verify_passing_github_status(ctx, next_branch)
    checkout_upstream_branch(ctx, next_branch)
    ctx.git.create_branch(new_branch)
    ctx.git.push(ctx.git.get_repo_git_url(), f"HEAD:refs/heads/{new_branch}")
    logger.info('  ✓   Version branch "%s" created.', new_branch)

    # The newly created branch is staged as-is, without re-fetching it.
    pull_request = stage_version_for_branch_and_create_pull_request(ctx, new_version, new_branch)
    if ctx.stage_only:
        # Release trains only resolve again once next has moved past the new
        # branch, so next is bumped right away. The changelog follows once the
        # staged release is published.
        _create_next_branch_update_pull_request(active, ctx, new_version, new_branch, include_release_notes=False)
    if _stop_after_staging(ctx, pull_request):
        return
    wait_for_pull_request_to_be_merged(ctx, pull_request)
    build_and_publish(ctx, new_version, new_branch, "next")
    _create_next_branch_update_pull_request(active, ctx, new_version, new_branch)


def _create_next_branch_update_pull_request(
    active: ActiveReleaseTrains,
    ctx: ReleaseContext,
    released_version: SemanticVersion,
    released_branch: str,
    include_release_notes: bool = True,
) -> None:
    """Bump next to the following minor and bring in the feature-freeze changelog."""
    next_branch = active.next.branch_name
    # The team can still turn this into a major with the configure-next-as-major action.
    new_next_version = bump_minor_for_next_cycle(active.next.version)

    checkout_upstream_branch(ctx, next_branch)
    update_project_version(ctx, new_next_version)
    # The version bump and the changelog go into separate commits.
    ctx.git.commit(get_next_branch_bump_commit_message(new_next_version), [PACKAGE_JSON_PATH])

    body = (
        'The previous "next" release-train has moved into the release-candidate phase. '
        "This PR updates the next branch to the subsequent release-train."
    )
    if include_release_notes:
        if create_cherry_pick_release_notes_commit(ctx, released_version, released_branch):
            body += (
                f"\n\nAlso this PR cherry-picks the changelog for v{released_version} into the "
                f"{next_branch} branch so that the changelog is up to date."
            )
        else:
            logger.warning("  ✘   Could not cherry-pick release notes for v%s.", released_version)
            logger.warning('      Please copy the release notes manually into "%s".', next_branch)

    pull_request = push_changes_to_fork_and_create_pull_request(
        ctx,
        next_branch,
        f"next-release-train-{new_next_version}",
        f'Update next branch to reflect new release-train "v{new_next_version}".',
        body,
    )
    logger.info('  ✓   Pull request for updating the "%s" branch has been created.', next_branch)
    logger.info("      Please ask team members to review: %s.", pull_request.url)


def _configure_next_as_major(active: ActiveReleaseTrains, ctx: ReleaseContext) -> None:
    next_branch = active.next.branch_name
    new_version = bump_major_for_next_cycle(active.next.version)

    verify_passing_github_status(ctx, next_branch)
    checkout_upstream_branch(ctx, next_branch)
    update_project_version(ctx, new_version)
    ctx.git.commit(get_next_branch_bump_commit_message(new_version), [PACKAGE_JSON_PATH])

    pull_request = push_changes_to_fork_and_create_pull_request(
        ctx,
        next_branch,
        f"switch-next-to-major-{new_version}",
        f"Configure next branch to receive major changes for v{new_version}",
        f"This PR prepares the next branch for the upcoming major version v{new_version}.",
    )
    logger.info('  ✓   Pull request for updating the "%s" branch has been created.', next_branch)
    logger.info("      Please ask team members to review: %s.", pull_request.url)


def _prompt_for_target_lts_branch(ctx: ReleaseContext) -> LtsBranch:
    """Ask the operator which LTS branch a patch should be cut for."""
    branches = find_lts_branches(ctx.npm.fetch_package_info(ctx.config.representative_package))
    if not branches.active and not branches.inactive:
        logger.error("  ✘   No LTS branches found. The registry has no LTS dist-tags.")
        raise FatalReleaseActionError("No LTS branches found.")

    choices: list[tuple[str, LtsBranch | None]] = [
        (_get_choice_label(branch), branch) for branch in branches.active
    ]
    # Patches are occasionally still cut for inactive LTS branches, for
    # example when the LTS duration has been extended.
    if branches.inactive:
        choices.append(("Inactive old LTS versions (not recommended)", None))

    selected = ctx.prompt.choose("Please select a version for which you want to cut a LTS patch", choices)
    if selected is None:
        selected = ctx.prompt.choose(
            "Please select an inactive LTS version for which you want to cut a LTS patch",
            [(_get_choice_label(branch), branch) for branch in branches.inactive],
        )
    return selected


def _get_choice_label(branch: LtsBranch) -> str:
    return f"v{branch.version.major} (from {branch.name})"


def _cut_lts_patch(ctx: ReleaseContext) -> None:
    lts_branch = _prompt_for_target_lts_branch(ctx)
    new_version = bump_patch(lts_branch.version)

    # LTS branches are not release trains, so a staged LTS patch is picked up
    # here rather than offered next to the other actions.
    if not ctx.stage_only and is_release_staged(ctx, new_version, lts_branch.name):
        logger.info('  ✓   v%s has already been staged in the "%s" branch.', new_version, lts_branch.name)
        build_and_publish(ctx, new_version, lts_branch.name, lts_branch.dist_tag)
        cherry_pick_changelog_into_next_branch(ctx, new_version, lts_branch.name)
        return

    if _stage_and_release(ctx, new_version, lts_branch.name, lts_branch.dist_tag):
        cherry_pick_changelog_into_next_branch(ctx, new_version, lts_branch.name)
