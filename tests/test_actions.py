# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Tests for actions.py - the release actions performed end to end.

The forge, git, registry and builder are mocked; the staged release protocol
runs against a temporary project directory.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import call

import pytest

from release_train.actions import (
    ActionKind,
    StagedRelease,
    describe_action,
    find_staged_releases,
    get_active_actions,
    perform_action,
    publish_staged_release,
)
from release_train.errors import FatalReleaseActionError, InvalidTransition
from release_train.github_api import PR_CLOSED
from release_train.version import parse_version


def project_version(ctx) -> str:
    return json.loads((ctx.project_dir / "package.json").read_text())["version"]


def pull_request_calls(ctx) -> list[tuple[str, str, str]]:
    """(base, head, title) of every pull request created."""
    calls = ctx.github.create_pull_request.call_args_list
    return [(c.kwargs["base"], c.kwargs["head"], c.kwargs["title"]) for c in calls]


def published(ctx) -> list[tuple[str, str]]:
    dist = ctx.project_dir / "dist"
    return [(Path(c.args[0]).relative_to(dist).as_posix(), c.args[1]) for c in ctx.npm.publish.call_args_list]


class TestGetActiveActions:
    """Tests for the action selection offered to the operator."""

    def test_without_release_candidate(self, trains) -> None:
        actions = get_active_actions(trains("10.0.2", "10.1.0-next.3"))
        assert actions == [
            ActionKind.CUT_NEW_PATCH,
            ActionKind.CUT_NEXT_PRERELEASE,
            ActionKind.MOVE_NEXT_INTO_FEATURE_FREEZE,
            ActionKind.CUT_LTS_PATCH,
        ]

    def test_with_release_candidate(self, trains) -> None:
        actions = get_active_actions(trains("10.0.3", "10.2.0-next.0", "10.1.0-rc.0"))
        assert actions == [
            ActionKind.CUT_STABLE,
            ActionKind.CUT_RELEASE_CANDIDATE_PRERELEASE,
            ActionKind.CUT_NEW_PATCH,
            ActionKind.CONFIGURE_NEXT_AS_MAJOR,
            ActionKind.CUT_LTS_PATCH,
        ]

    def test_configure_next_as_major_only_right_after_branching(self, trains) -> None:
        assert ActionKind.CONFIGURE_NEXT_AS_MAJOR not in get_active_actions(trains("10.0.3", "10.2.0-next.1"))
        assert ActionKind.CONFIGURE_NEXT_AS_MAJOR not in get_active_actions(trains("10.0.3", "11.0.0-next.0"))


class TestDescribeAction:
    """Tests for describe_action()."""

    def test_cut_new_patch(self, trains) -> None:
        text = describe_action(ActionKind.CUT_NEW_PATCH, trains("10.0.2", "10.1.0-next.3"))
        assert text == 'Cut a new patch release for the "10.0.x" branch (v10.0.3).'

    def test_cut_stable(self, trains) -> None:
        text = describe_action(ActionKind.CUT_STABLE, trains("10.0.3", "10.2.0-next.0", "10.1.0-rc.0"))
        assert "(v10.1.0)" in text

    def test_cut_release_candidate(self, trains) -> None:
        text = describe_action(ActionKind.CUT_RELEASE_CANDIDATE, trains("10.0.3", "10.2.0-next.0", "10.1.0-next.4"))
        assert "(v10.1.0-rc.0)" in text

    def test_release_candidate_prerelease_names_phase(self, trains) -> None:
        text = describe_action(
            ActionKind.CUT_RELEASE_CANDIDATE_PRERELEASE, trains("10.0.3", "10.2.0-next.0", "10.1.0-next.4")
        )
        assert "feature-freeze" in text
        assert "(v10.1.0-next.5)" in text

    def test_configure_next_as_major(self, trains) -> None:
        text = describe_action(ActionKind.CONFIGURE_NEXT_AS_MAJOR, trains("10.0.3", "10.1.0-next.0"))
        assert "(v11.0.0-next.0)" in text

    def test_release_candidate_actions_need_a_release_candidate(self, trains) -> None:
        with pytest.raises(InvalidTransition):
            describe_action(ActionKind.CUT_STABLE, trains("10.0.3", "10.1.0-next.3"))


class TestCutNewPatch:
    """Scenario: latest=10.0.x@10.0.2, next=main@10.1.0-next.3."""

    def test_stages_publishes_and_cherry_picks(self, ctx, trains) -> None:
        perform_action(ActionKind.CUT_NEW_PATCH, trains("10.0.2", "10.1.0-next.3"), ctx)

        assert project_version(ctx) == "10.0.3"
        ctx.git.commit.assert_any_call("release: cut the v10.0.3 release", ["package.json", "CHANGELOG.md"])
        assert pull_request_calls(ctx) == [
            ("10.0.x", "operator:release-stage-10.0.3", 'Bump version to "v10.0.3" with changelog.'),
            ("main", "operator:changelog-cherry-pick-10.0.3", "docs: release notes for the v10.0.3 release"),
        ]
        assert published(ctx) == [("@angular/cdk", "latest"), ("@angular/material", "latest")]
        ctx.github.create_tag.assert_called_once_with("10.0.3", "abc123", "Release v10.0.3")
        ctx.git.commit.assert_any_call("docs: release notes for the v10.0.3 release", ["CHANGELOG.md"])
        ctx.npm.set_dist_tag.assert_not_called()

    def test_github_release_contains_changelog_section(self, ctx, trains) -> None:
        perform_action(ActionKind.CUT_NEW_PATCH, trains("10.0.2", "10.1.0-next.3"), ctx)

        tag_name, name, notes = ctx.github.create_release.call_args.args
        assert (tag_name, name) == ("10.0.3", "v10.0.3")
        assert notes.startswith('<a name="10.0.3"></a>')
        assert ctx.github.create_release.call_args.kwargs == {"prerelease": False}

    def test_stage_only_stops_after_pull_request(self, ctx, trains) -> None:
        ctx.stage_only = True

        perform_action(ActionKind.CUT_NEW_PATCH, trains("10.0.2", "10.1.0-next.3"), ctx)

        assert len(pull_request_calls(ctx)) == 1
        ctx.github.get_pull_request_state.assert_not_called()
        ctx.npm.publish.assert_not_called()

    def test_closed_pull_request_is_fatal(self, ctx, trains) -> None:
        ctx.github.get_pull_request_state.return_value = PR_CLOSED

        with pytest.raises(FatalReleaseActionError):
            perform_action(ActionKind.CUT_NEW_PATCH, trains("10.0.2", "10.1.0-next.3"), ctx)

        ctx.builder.build_packages.assert_not_called()
        ctx.npm.publish.assert_not_called()

    def test_publish_failure_stops_remaining_packages(self, ctx, trains) -> None:
        ctx.npm.publish.return_value = False

        with pytest.raises(FatalReleaseActionError, match="@angular/cdk"):
            perform_action(ActionKind.CUT_NEW_PATCH, trains("10.0.2", "10.1.0-next.3"), ctx)

        assert published(ctx) == [("@angular/cdk", "latest")]
        assert len(pull_request_calls(ctx)) == 1


class TestCutStable:
    """Scenarios for promoting a release-candidate to stable."""

    def test_minor_release_sets_no_lts_tag(self, ctx, trains) -> None:
        perform_action(ActionKind.CUT_STABLE, trains("10.0.3", "10.2.0-next.0", "10.1.0-rc.0"), ctx)

        assert project_version(ctx) == "10.1.0"
        assert pull_request_calls(ctx)[0][:2] == ("10.1.x", "operator:release-stage-10.1.0")
        assert published(ctx) == [("@angular/cdk", "latest"), ("@angular/material", "latest")]
        ctx.npm.set_dist_tag.assert_not_called()

    def test_major_release_moves_previous_latest_into_lts(self, ctx, trains) -> None:
        perform_action(ActionKind.CUT_STABLE, trains("10.0.3", "11.1.0-next.0", "11.0.0-rc.0"), ctx)

        previous = parse_version("10.0.3")
        assert ctx.npm.set_dist_tag.call_args_list == [
            call("@angular/cdk", "v10-lts", previous),
            call("@angular/material", "v10-lts", previous),
        ]
        assert published(ctx) == [("@angular/cdk", "latest"), ("@angular/material", "latest")]

        calls = [name for name, _, _ in ctx.npm.mock_calls]
        assert calls.index("set_dist_tag") < calls.index("publish")


class TestPrereleases:
    """Scenarios for next, feature-freeze and release-candidate prereleases."""

    def test_cut_next_prerelease(self, ctx, trains) -> None:
        perform_action(ActionKind.CUT_NEXT_PRERELEASE, trains("10.0.2", "10.1.0-next.3"), ctx)

        assert project_version(ctx) == "10.1.0-next.4"
        assert published(ctx) == [("@angular/cdk", "next"), ("@angular/material", "next")]
        # The released branch is the next branch, so nothing is cherry-picked.
        assert pull_request_calls(ctx) == [
            ("main", "operator:release-stage-10.1.0-next.4", 'Bump version to "v10.1.0-next.4" with changelog.')
        ]

    def test_cut_next_prerelease_reuses_unpublished_version(self, ctx, trains) -> None:
        ctx.npm.is_version_published.return_value = False

        perform_action(ActionKind.CUT_NEXT_PRERELEASE, trains("10.1.3", "10.3.0-next.0", None), ctx)

        assert project_version(ctx) == "10.3.0-next.0"

    def test_cut_release_candidate(self, ctx, trains) -> None:
        perform_action(ActionKind.CUT_RELEASE_CANDIDATE, trains("10.0.3", "10.2.0-next.0", "10.1.0-next.4"), ctx)

        assert project_version(ctx) == "10.1.0-rc.0"
        assert published(ctx) == [("@angular/cdk", "next"), ("@angular/material", "next")]
        assert pull_request_calls(ctx)[1][:2] == ("main", "operator:changelog-cherry-pick-10.1.0-rc.0")
        assert ctx.github.create_release.call_args.kwargs == {"prerelease": True}

    def test_cut_release_candidate_prerelease(self, ctx, trains) -> None:
        perform_action(
            ActionKind.CUT_RELEASE_CANDIDATE_PRERELEASE, trains("10.0.3", "10.2.0-next.0", "10.1.0-rc.0"), ctx
        )

        assert project_version(ctx) == "10.1.0-rc.1"
        assert published(ctx) == [("@angular/cdk", "next"), ("@angular/material", "next")]


class TestMoveNextIntoFeatureFreeze:
    """Scenario: next=main@10.2.0-next.0 moves into the 10.2.x feature-freeze branch."""

    def test_branches_off_and_updates_next(self, ctx, trains) -> None:
        perform_action(ActionKind.MOVE_NEXT_INTO_FEATURE_FREEZE, trains("10.1.3", "10.2.0-next.0"), ctx)

        ctx.git.create_branch.assert_called_once_with("10.2.x")
        ctx.git.push.assert_any_call(ctx.git.get_repo_git_url.return_value, "HEAD:refs/heads/10.2.x")
        ctx.git.commit.assert_any_call("release: cut the v10.2.0-next.1 release", ["package.json", "CHANGELOG.md"])
        assert published(ctx) == [("@angular/cdk", "next"), ("@angular/material", "next")]

        assert pull_request_calls(ctx) == [
            ("10.2.x", "operator:release-stage-10.2.0-next.1", 'Bump version to "v10.2.0-next.1" with changelog.'),
            (
                "main",
                "operator:next-release-train-10.3.0-next.0",
                'Update next branch to reflect new release-train "v10.3.0-next.0".',
            ),
        ]
        ctx.git.commit.assert_any_call("release: bump the next branch to v10.3.0-next.0", ["package.json"])
        ctx.git.commit.assert_any_call("docs: release notes for the v10.2.0-next.1 release", ["CHANGELOG.md"])
        assert project_version(ctx) == "10.3.0-next.0"

    def test_unpublished_next_version_is_branched_unchanged(self, ctx, trains) -> None:
        ctx.npm.is_version_published.return_value = False

        perform_action(ActionKind.MOVE_NEXT_INTO_FEATURE_FREEZE, trains("10.1.3", "10.2.0-next.0"), ctx)

        ctx.git.commit.assert_any_call("release: cut the v10.2.0-next.0 release", ["package.json", "CHANGELOG.md"])

    def test_stage_only_also_bumps_next(self, ctx, trains) -> None:
        ctx.stage_only = True

        perform_action(ActionKind.MOVE_NEXT_INTO_FEATURE_FREEZE, trains("10.1.3", "10.2.0-next.0"), ctx)

        assert [(base, head) for base, head, _ in pull_request_calls(ctx)] == [
            ("10.2.x", "operator:release-stage-10.2.0-next.1"),
            ("main", "operator:next-release-train-10.3.0-next.0"),
        ]
        # The changelog is cherry-picked once the staged release is published.
        messages = [c.args[0] for c in ctx.git.commit.call_args_list]
        assert "docs: release notes for the v10.2.0-next.1 release" not in messages
        ctx.github.get_pull_request_state.assert_not_called()
        ctx.npm.publish.assert_not_called()


def test_configure_next_as_major(ctx, trains) -> None:
    perform_action(ActionKind.CONFIGURE_NEXT_AS_MAJOR, trains("10.1.3", "10.2.0-next.0"), ctx)

    assert project_version(ctx) == "11.0.0-next.0"
    assert pull_request_calls(ctx) == [
        (
            "main",
            "operator:switch-next-to-major-11.0.0-next.0",
            "Configure next branch to receive major changes for v11.0.0-next.0",
        )
    ]
    ctx.npm.publish.assert_not_called()


class TestCutLtsPatch:
    """Scenarios for releasing patches of LTS majors."""

    @pytest.fixture
    def lts_info(self) -> dict:
        recent = (datetime.now(timezone.utc) - timedelta(days=60)).isoformat()
        return {
            "dist-tags": {"latest": "11.0.1", "v10-lts": "10.2.5", "v8-lts": "8.4.4"},
            "time": {"10.0.0": recent, "8.0.0": "2019-05-28T12:00:00.000Z"},
        }

    def test_active_lts_branch(self, ctx, trains, prompt, lts_info) -> None:
        ctx.npm.fetch_package_info.return_value = lts_info
        prompt.choices = ["v10"]

        perform_action(ActionKind.CUT_LTS_PATCH, trains("11.0.1", "11.1.0-next.0"), ctx)

        assert prompt.choose_calls[0][1] == ["v10 (from 10.2.x)", "Inactive old LTS versions (not recommended)"]
        assert project_version(ctx) == "10.2.6"
        assert published(ctx) == [("@angular/cdk", "v10-lts"), ("@angular/material", "v10-lts")]
        assert pull_request_calls(ctx)[1][:2] == ("main", "operator:changelog-cherry-pick-10.2.6")

    def test_inactive_lts_branch(self, ctx, trains, prompt, lts_info) -> None:
        ctx.npm.fetch_package_info.return_value = lts_info
        prompt.choices = ["Inactive", "v8"]

        perform_action(ActionKind.CUT_LTS_PATCH, trains("11.0.1", "11.1.0-next.0"), ctx)

        assert prompt.choose_calls[1][1] == ["v8 (from 8.4.x)"]
        assert project_version(ctx) == "8.4.5"
        assert pull_request_calls(ctx)[0][0] == "8.4.x"

    def test_no_lts_branches_is_fatal(self, ctx, trains) -> None:
        ctx.npm.fetch_package_info.return_value = {"dist-tags": {"latest": "11.0.1"}, "time": {}}

        with pytest.raises(FatalReleaseActionError, match="No LTS branches"):
            perform_action(ActionKind.CUT_LTS_PATCH, trains("11.0.1", "11.1.0-next.0"), ctx)

    def test_staged_lts_patch_is_published_without_staging(self, ctx, trains, prompt, lts_info) -> None:
        ctx.npm.fetch_package_info.return_value = lts_info
        ctx.github.get_commit_message.side_effect = lambda sha: "release: cut the v10.2.6 release"
        ctx.builder.generate_release_notes(parse_version("10.2.6"))
        prompt.choices = ["v10"]

        perform_action(ActionKind.CUT_LTS_PATCH, trains("11.0.1", "11.1.0-next.0"), ctx)

        ctx.github.create_tag.assert_called_once_with("10.2.6", "abc123", "Release v10.2.6")
        assert published(ctx) == [("@angular/cdk", "v10-lts"), ("@angular/material", "v10-lts")]
        assert [base for base, _, _ in pull_request_calls(ctx)] == ["main"]
        assert prompt.confirm_messages == []


class TestStagedReleases:
    """Tests for releases staged by an earlier run."""

    def stage(self, ctx, version: str) -> None:
        ctx.github.get_commit_message.side_effect = lambda sha: f"release: cut the v{version} release"
        ctx.builder.generate_release_notes(parse_version(version))

    def test_nothing_staged(self, ctx, trains) -> None:
        assert find_staged_releases(trains("10.0.3", "10.1.0-next.3"), ctx) == []

    def test_merged_release_commit_at_train_tip(self, ctx, trains) -> None:
        active = trains("10.0.3", "10.2.0-next.0", "10.1.0-rc.1")
        self.stage(ctx, "10.1.0-rc.1")

        assert find_staged_releases(active, ctx) == [StagedRelease(active.release_candidate, "next", cherry_pick=True)]

    def test_tagged_release_is_not_staged(self, ctx, trains) -> None:
        self.stage(ctx, "10.0.3")
        ctx.github.tag_exists.return_value = True

        assert find_staged_releases(trains("10.0.3", "10.1.0-next.3"), ctx) == []

    def test_next_prerelease_is_not_cherry_picked(self, ctx, trains) -> None:
        active = trains("10.0.3", "10.1.0-next.4")
        self.stage(ctx, "10.1.0-next.4")
        (staged,) = find_staged_releases(active, ctx)

        publish_staged_release(staged, ctx)

        assert published(ctx) == [("@angular/cdk", "next"), ("@angular/material", "next")]
        ctx.github.create_pull_request.assert_not_called()

    def test_staged_major_moves_previous_latest_into_lts(self, ctx, trains) -> None:
        active = trains("11.0.0", "11.1.0-next.0")
        self.stage(ctx, "11.0.0")
        ctx.npm.fetch_package_info.return_value = {"dist-tags": {"latest": "10.0.3", "next": "11.0.0-rc.2"}}
        (staged,) = find_staged_releases(active, ctx)

        publish_staged_release(staged, ctx)

        previous = parse_version("10.0.3")
        assert ctx.npm.set_dist_tag.call_args_list == [
            call("@angular/cdk", "v10-lts", previous),
            call("@angular/material", "v10-lts", previous),
        ]
        assert published(ctx) == [("@angular/cdk", "latest"), ("@angular/material", "latest")]
        calls = [name for name, _, _ in ctx.npm.mock_calls]
        assert calls.index("set_dist_tag") < calls.index("publish")
        assert pull_request_calls(ctx)[0][:2] == ("main", "operator:changelog-cherry-pick-11.0.0")
