# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Shared steps of the staged release protocol.

Every release action composes these steps in order:

1. Stage: check out the target branch, verify its CI status, bump the
   version, update the changelog, commit and open a pull request.
2. Await merge: poll the staging pull request until it is merged.
3. Build: check out the merged release commit and build the packages.
4. Publish: publish every built package to the registry, one at a time.
5. Cherry-pick: bring the new changelog section into the next branch.

A failing step raises and aborts the steps after it.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from typing import TYPE_CHECKING

from github.GithubException import GithubException

from release_train.changelog import extract_section, prepend_section
from release_train.config import CHANGELOG_PATH, PACKAGE_JSON_PATH
from release_train.errors import FatalReleaseActionError, GitCommandError, UserAbortedReleaseActionError
from release_train.github_api import PR_CLOSED, PR_MERGED, ForkRepository, PullRequestHandle

if TYPE_CHECKING:
    from release_train.context import ReleaseContext
    from release_train.external_commands import BuiltPackage
    from release_train.version import SemanticVersion

logger = logging.getLogger(__name__)


def get_release_stage_branch_name(version: SemanticVersion) -> str:
    return f"release-stage-{version}"


def get_changelog_cherry_pick_branch_name(version: SemanticVersion) -> str:
    return f"changelog-cherry-pick-{version}"


def get_release_notes_commit_message(version: SemanticVersion) -> str:
    return f"docs: release notes for the v{version} release"


def get_next_branch_bump_commit_message(version: SemanticVersion) -> str:
    return f"release: bump the next branch to v{version}"


def verify_passing_github_status(ctx: ReleaseContext, branch_name: str) -> None:
    """Verify that the latest commit of a branch passes all status checks.

    A failing or pending status can be ignored, but only if the operator
    explicitly confirms it.

    Raises:
        FatalReleaseActionError: If checks fail and the operator does not override.
        UserAbortedReleaseActionError: If checks are pending and the operator
            does not override.
    """
    commit_sha = ctx.github.get_branch_sha(branch_name)
    state = ctx.github.get_combined_status(commit_sha)
    commits_url = ctx.github.get_list_commits_in_branch_url(branch_name)

    if state == "failure":
        logger.error(
            '  ✘   Cannot stage release. Commit "%s" does not pass all github status checks. '
            "Please make sure this commit passes all checks before re-running.",
            commit_sha,
        )
        logger.error("      Please have a look at: %s", commits_url)
        if ctx.prompt.confirm("Do you want to ignore the Github status and proceed?"):
            logger.warning("  ⚠   Upstream commit is failing CI checks, but status has been forcibly ignored.")
            return
        raise FatalReleaseActionError(f'Commit "{commit_sha}" is failing status checks.')

    if state == "pending":
        logger.error(
            '  ✘   Commit "%s" still has pending github statuses that need to succeed before staging a release.',
            commit_sha,
        )
        logger.error("      Please have a look at: %s", commits_url)
        if ctx.prompt.confirm("Do you want to ignore the Github status and proceed?"):
            logger.warning("  ⚠   Upstream commit is pending CI, but status has been forcibly ignored.")
            return
        raise UserAbortedReleaseActionError(f'Commit "{commit_sha}" has pending status checks.')

    logger.info("  ✓   Upstream commit is passing all github status checks.")


def checkout_upstream_branch(ctx: ReleaseContext, branch_name: str) -> None:
    """Check out the tip of an upstream branch, detached."""
    ctx.git.checkout_upstream_branch(branch_name)


def update_project_version(ctx: ReleaseContext, version: SemanticVersion) -> None:
    """Rewrite the ``version`` field of the project ``package.json``.

    The file is replaced atomically so an interrupted run never leaves a
    truncated descriptor behind.
    """
    path = ctx.project_dir / PACKAGE_JSON_PATH
    data = json.loads(path.read_text(encoding="utf-8"))
    data["version"] = str(version)

    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=".package.json.")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(json.dumps(data, indent=2, ensure_ascii=False) + "\n")
        os.replace(tmp_name, path)
    except BaseException:
        os.unlink(tmp_name)
        raise

    logger.info("  ✓   Updated project version to %s", version)


def wait_for_edits_and_create_release_commit(ctx: ReleaseContext, version: SemanticVersion) -> None:
    """Let the operator review the changelog, then create the release commit.

    Raises:
        UserAbortedReleaseActionError: If the operator does not confirm.
    """
    logger.warning("  ⚠   Please review the changelog and ensure that the log contains only changes")
    logger.warning("      that apply to the release branch. Additional edits can be made now.")

    if not ctx.prompt.confirm("Do you want to proceed and commit the changes?", default=True):
        raise UserAbortedReleaseActionError("Release commit declined.")

    ctx.git.commit(ctx.config.get_release_commit_message(version), [PACKAGE_JSON_PATH, CHANGELOG_PATH])
    logger.info('  ✓   Created release commit for: "%s".', version)


def find_available_fork_branch_name(ctx: ReleaseContext, fork: ForkRepository, proposed: str) -> str:
    """Return ``proposed``, suffixed with ``_1``, ``_2``, ... if it exists in the fork."""
    branch_name = proposed
    suffix = 0
    while ctx.github.fork_branch_exists(fork, branch_name):
        suffix += 1
        branch_name = f"{proposed}_{suffix}"
    return branch_name


def push_changes_to_fork_and_create_pull_request(
    ctx: ReleaseContext,
    target_branch: str,
    proposed_fork_branch: str,
    title: str,
    body: str = "",
) -> PullRequestHandle:
    """Push HEAD to the operator's fork and open a pull request upstream.

    Raises:
        FatalReleaseActionError: If there is no fork or the push fails.
    """
    fork = ctx.github.get_fork_of_authenticated_user()
    if fork is None:
        logger.error("  ✘   Unable to find fork for currently authenticated user.")
        logger.error("      Please ensure you created a fork of: %s.", ctx.github.repository)
        raise FatalReleaseActionError("No fork of the repository found.")

    branch_name = find_available_fork_branch_name(ctx, fork, proposed_fork_branch)
    try:
        ctx.git.push(ctx.git.get_git_url(fork.owner, fork.name), f"HEAD:refs/heads/{branch_name}")
    except GitCommandError as e:
        logger.error('  ✘   Could not push to the "%s" branch of %s/%s: %s', branch_name, fork.owner, fork.name, e)
        raise FatalReleaseActionError("Pushing to the fork failed.") from e

    pull_request = ctx.github.create_pull_request(
        base=target_branch,
        head=f"{fork.owner}:{branch_name}",
        title=title,
        body=body,
    )
    logger.info("  ✓   Created pull request #%s in %s.", pull_request.id, ctx.github.repository)
    return pull_request


def stage_version_for_branch_and_create_pull_request(
    ctx: ReleaseContext, version: SemanticVersion, branch_name: str
) -> PullRequestHandle:
    """Stage a version on the checked out branch and open its pull request."""
    update_project_version(ctx, version)
    ctx.builder.generate_release_notes(version)
    wait_for_edits_and_create_release_commit(ctx, version)

    pull_request = push_changes_to_fork_and_create_pull_request(
        ctx,
        branch_name,
        get_release_stage_branch_name(version),
        f'Bump version to "v{version}" with changelog.',
    )
    logger.info("  ✓   Release staging pull request has been created.")
    logger.info("      Please ask team members to review: %s.", pull_request.url)
    return pull_request


def checkout_branch_and_stage_version(
    ctx: ReleaseContext, version: SemanticVersion, branch_name: str
) -> PullRequestHandle:
    """Verify, check out and stage a version for an existing upstream branch."""
    verify_passing_github_status(ctx, branch_name)
    checkout_upstream_branch(ctx, branch_name)
    return stage_version_for_branch_and_create_pull_request(ctx, version, branch_name)


def wait_for_pull_request_to_be_merged(ctx: ReleaseContext, pull_request: PullRequestHandle) -> None:
    """Poll a pull request until it has been merged.

    There is no timeout. Interrupting the wait (Ctrl+C) cancels the release.

    Raises:
        FatalReleaseActionError: If the pull request is closed without merging.
        UserAbortedReleaseActionError: If the operator interrupts the wait.
    """
    logger.info("  ⏳   Waiting for pull request #%s to be merged. Press Ctrl+C to cancel.", pull_request.id)
    try:
        while True:
            state = ctx.github.get_pull_request_state(pull_request.id)
            if state == PR_MERGED:
                logger.info("  ✓   Pull request #%s has been merged.", pull_request.id)
                return
            if state == PR_CLOSED:
                logger.error("  ✘   Pull request #%s has been closed.", pull_request.id)
                raise FatalReleaseActionError(f"Pull request #{pull_request.id} was closed without merging.")
            time.sleep(ctx.config.poll_interval)
    except KeyboardInterrupt as e:
        raise UserAbortedReleaseActionError("Waiting for the pull request was cancelled.") from e


def is_release_staged(ctx: ReleaseContext, version: SemanticVersion, branch_name: str) -> bool:
    """Return whether a branch tip is the merged release commit of an untagged version."""
    commit_sha = ctx.github.get_branch_sha(branch_name)
    expected = ctx.config.get_release_commit_message(version)
    if not ctx.github.get_commit_message(commit_sha).startswith(expected):
        return False
    return not ctx.github.tag_exists(str(version))


def get_release_commit_sha(ctx: ReleaseContext, version: SemanticVersion, branch_name: str) -> str:
    """Return the SHA of the merged release commit at the tip of a branch.

    Raises:
        FatalReleaseActionError: If the branch tip is not the release commit.
    """
    commit_sha = ctx.github.get_branch_sha(branch_name)
    expected = ctx.config.get_release_commit_message(version)
    if not ctx.github.get_commit_message(commit_sha).startswith(expected):
        logger.error('  ✘   Latest commit in "%s" branch is not the staged release commit.', branch_name)
        logger.error("      Please make sure the staging pull request has been merged.")
        raise FatalReleaseActionError(f'Unexpected commit at the tip of "{branch_name}".')
    return commit_sha


def build_release(ctx: ReleaseContext, version: SemanticVersion, branch_name: str) -> tuple[list[BuiltPackage], str]:
    """Check out the merged release commit and build the release packages.

    Returns:
        The built packages and the SHA of the release commit.
    """
    commit_sha = get_release_commit_sha(ctx, version, branch_name)
    ctx.git.fetch(ctx.git.get_repo_git_url(), branch_name)
    if not ctx.git.checkout(commit_sha, detach=True):
        logger.error("  ✘   Could not check out release commit %s.", commit_sha)
        raise FatalReleaseActionError("Checking out the release commit failed.")
    return ctx.builder.build_packages(), commit_sha


def create_tag_and_github_release(ctx: ReleaseContext, version: SemanticVersion, commit_sha: str) -> None:
    """Tag the release commit and create a GitHub release with the new notes."""
    tag_name = str(version)
    if ctx.github.tag_exists(tag_name):
        logger.error('  ✘   Unable to create a tag for v%s. The tag "%s" already exists.', version, tag_name)
        raise FatalReleaseActionError(f'Tag "{tag_name}" already exists.')
    ctx.github.create_tag(tag_name, commit_sha, f"Release v{version}")

    changelog_path = ctx.project_dir / CHANGELOG_PATH
    notes = ""
    if changelog_path.exists():
        notes = extract_section(changelog_path.read_text(encoding="utf-8"), version) or ""

    ctx.github.create_release(tag_name, f"v{version}", notes, prerelease=version.is_prerelease)
    logger.info("  ✓   Created v%s release in Github.", version)


def publish_packages(ctx: ReleaseContext, packages: list[BuiltPackage], dist_tag: str) -> None:
    """Publish built packages one after another.

    The first failure stops publishing, so the published packages are always
    a prefix of ``packages``.

    Raises:
        FatalReleaseActionError: If publishing a package fails.
    """
    for package in packages:
        if not ctx.npm.publish(package.output_path, dist_tag):
            logger.error('  ✘   An error occurred while publishing "%s".', package.name)
            raise FatalReleaseActionError(f'Publishing "{package.name}" failed.')
        logger.info('  ✓   Successfully published "%s".', package.name)

    logger.info('  ✓   Published all packages with the "%s" dist-tag.', dist_tag)


def build_and_publish(ctx: ReleaseContext, version: SemanticVersion, branch_name: str, dist_tag: str) -> None:
    """Build the merged release, tag it, and publish it to the registry."""
    packages, commit_sha = build_release(ctx, version, branch_name)
    create_tag_and_github_release(ctx, version, commit_sha)
    publish_packages(ctx, packages, dist_tag)


def set_npm_dist_tag_for_packages(ctx: ReleaseContext, dist_tag: str, version: SemanticVersion) -> None:
    """Point a dist-tag at ``version`` for every configured package.

    Raises:
        FatalReleaseActionError: If updating a dist-tag fails.
    """
    for package_name in ctx.config.npm_packages:
        if not ctx.npm.set_dist_tag(package_name, dist_tag, version):
            logger.error('  ✘   An error occurred while setting the "%s" dist-tag for "%s".', dist_tag, package_name)
            raise FatalReleaseActionError(f'Setting the "{dist_tag}" dist-tag failed.')

    logger.info('  ✓   Set "%s" dist-tag for all packages to v%s.', dist_tag, version)


def create_cherry_pick_release_notes_commit(
    ctx: ReleaseContext, version: SemanticVersion, branch_name: str
) -> bool:
    """Commit the changelog section of a release from another branch.

    Returns:
        False if the changelog section could not be found.
    """
    try:
        changelog = ctx.github.get_file_contents(CHANGELOG_PATH, ref=branch_name)
    except GithubException as e:
        if e.status != 404:
            raise
        logger.debug('No changelog found in "%s" branch.', branch_name)
        return False

    section = extract_section(changelog, version)
    if section is None:
        return False

    prepend_section(ctx.project_dir / CHANGELOG_PATH, section)
    ctx.git.commit(get_release_notes_commit_message(version), [CHANGELOG_PATH])
    logger.info('  ✓   Created changelog cherry-pick commit for: "%s".', version)
    return True


def cherry_pick_changelog_into_next_branch(ctx: ReleaseContext, version: SemanticVersion, branch_name: str) -> bool:
    """Open a pull request bringing a release's changelog into the next branch.

    A missing changelog section only produces a warning: the release itself
    has already been published.

    Returns:
        True if the cherry-pick pull request was created.
    """
    next_branch = ctx.config.next_branch
    checkout_upstream_branch(ctx, next_branch)

    if not create_cherry_pick_release_notes_commit(ctx, version, branch_name):
        logger.warning("  ✘   Could not cherry-pick release notes for v%s.", version)
        logger.warning('      Please copy the release notes manually into the "%s" branch.', next_branch)
        return False

    pull_request = push_changes_to_fork_and_create_pull_request(
        ctx,
        next_branch,
        get_changelog_cherry_pick_branch_name(version),
        get_release_notes_commit_message(version),
        f'Cherry-picks the changelog from the "{branch_name}" branch to the next branch ({next_branch}).',
    )
    logger.info('  ✓   Pull request for cherry-picking the changelog into "%s" has been created.', next_branch)
    logger.info("      Please ask team members to review: %s.", pull_request.url)
    return True
