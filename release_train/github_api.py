# Copyright (c) 2026 Mark Ferrell. MIT License.
"""GitHub API wrapper for the operations a release needs.

References:
    - GitHub REST API: https://docs.github.com/en/rest
    - PyGithub Documentation: https://pygithub.readthedocs.io/
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from github import Github
from github.GithubException import GithubException

if TYPE_CHECKING:
    from github.Repository import Repository

# Pull request states as reported by get_pull_request_state().
PR_MERGED = "merged"
PR_CLOSED = "closed"
PR_OPEN = "open"


@dataclass(frozen=True)
class PullRequestHandle:
    """Identifies a pull request awaiting merge."""

    id: int
    url: str


@dataclass(frozen=True)
class ForkRepository:
    """A fork of the upstream repository owned by the authenticated user."""

    owner: str
    name: str


class GitHubAPI:
    """Wrapper around PyGithub for branch, status, pull request and release operations.

    Handles authentication via token input, defaulting to GITHUB_TOKEN
    environment variable if not provided.

    References:
        - Authentication: https://docs.github.com/en/rest/authentication
    """

    def __init__(self, token: str | None = None, repository: str | None = None) -> None:
        """Initialize the GitHub API client.

        Args:
            token: GitHub token for authentication. Defaults to GITHUB_TOKEN env var.
            repository: Repository in 'owner/repo' format. Defaults to GITHUB_REPOSITORY env var.

        References:
            - Get a repository: https://docs.github.com/en/rest/repos/repos#get-a-repository
        """
        self._token = token or os.environ.get("GITHUB_TOKEN", "")
        self._repository = repository or os.environ.get("GITHUB_REPOSITORY", "")

        if not self._token:
            raise ValueError("GitHub token is required. Set GITHUB_TOKEN or pass token parameter.")
        if not self._repository:
            raise ValueError("Repository is required. Set GITHUB_REPOSITORY or pass repository parameter.")

        self._github = Github(self._token)
        self._repo = self._github.get_repo(self._repository)
        self._fork: Repository | None = None

    @property
    def repository(self) -> str:
        return self._repository

    def list_branch_names(self) -> list[str]:
        """List the names of all branches in the repository.

        References:
            - List branches: https://docs.github.com/en/rest/branches/branches#list-branches
        """
        return [branch.name for branch in self._repo.get_branches()]

    def get_branch_sha(self, branch_name: str) -> str:
        """Get the SHA of the commit at the tip of a branch.

        Raises:
            GithubException: If the branch does not exist.

        References:
            - Get a branch: https://docs.github.com/en/rest/branches/branches#get-a-branch
        """
        return self._repo.get_branch(branch_name).commit.sha

    def get_combined_status(self, commit_sha: str) -> str:
        """Get the combined status state ('success', 'pending' or 'failure') of a commit.

        References:
            - Get the combined status: https://docs.github.com/en/rest/commits/statuses#get-the-combined-status-for-a-specific-reference
        """
        return self._repo.get_commit(commit_sha).get_combined_status().state

    def get_commit_message(self, commit_sha: str) -> str:
        """Get the full message of a commit."""
        return self._repo.get_commit(commit_sha).commit.message

    def get_file_contents(self, path: str, ref: str) -> str:
        """Read a file from the repository at a given ref.

        Raises:
            GithubException: If the file or ref does not exist.

        References:
            - Get repository content: https://docs.github.com/en/rest/repos/contents#get-repository-content
        """
        contents = self._repo.get_contents(path, ref=ref)
        if isinstance(contents, list):
            raise GithubException(400, {"message": f"'{path}' is a directory"}, None)
        return contents.decoded_content.decode("utf-8")

    def create_tag(
        self,
        tag_name: str,
        commit_sha: str,
        message: str = "",
    ) -> None:
        """Create an annotated tag pointing to a commit.

        Args:
            tag_name: Name of the tag to create (e.g., '10.1.0-rc.0').
            commit_sha: SHA of the commit to tag.
            message: Tag annotation message.

        Raises:
            GithubException: If tag creation fails.

        References:
            - Create a tag object: https://docs.github.com/en/rest/git/tags#create-a-tag-object
            - Create a reference: https://docs.github.com/en/rest/git/refs#create-a-reference
        """
        # Create the tag object (annotated tag)
        tag_object = self._repo.create_git_tag(
            tag=tag_name,
            message=message or f"Release {tag_name}",
            object=commit_sha,
            type="commit",
        )

        # Create the reference pointing to the tag object
        self._repo.create_git_ref(
            ref=f"refs/tags/{tag_name}",
            sha=tag_object.sha,
        )

    def tag_exists(self, tag_name: str) -> bool:
        """Check if a tag exists in the repository.

        References:
            - Get a reference: https://docs.github.com/en/rest/git/refs#get-a-reference
        """
        try:
            self._repo.get_git_ref(f"tags/{tag_name}")
            return True
        except GithubException:
            return False

    def create_release(self, tag_name: str, name: str, body: str, prerelease: bool) -> None:
        """Create a GitHub release for an existing tag.

        References:
            - Create a release: https://docs.github.com/en/rest/releases/releases#create-a-release
        """
        self._repo.create_git_release(tag=tag_name, name=name, message=body, prerelease=prerelease)

    def create_pull_request(self, base: str, head: str, title: str, body: str) -> PullRequestHandle:
        """Open a pull request against the upstream repository.

        Args:
            base: Upstream branch the changes should be merged into.
            head: Source of the changes, as 'owner:branch' for forks.
            title: Pull request title.
            body: Pull request description.

        References:
            - Create a pull request: https://docs.github.com/en/rest/pulls/pulls#create-a-pull-request
        """
        pull = self._repo.create_pull(base=base, head=head, title=title, body=body)
        return PullRequestHandle(id=pull.number, url=pull.html_url)

    def get_pull_request_state(self, pull_id: int) -> str:
        """Return 'merged', 'closed' or 'open' for a pull request.

        References:
            - Get a pull request: https://docs.github.com/en/rest/pulls/pulls#get-a-pull-request
        """
        pull = self._repo.get_pull(pull_id)
        if pull.merged:
            return PR_MERGED
        if pull.state == "closed":
            return PR_CLOSED
        return PR_OPEN

    def get_fork_of_authenticated_user(self) -> ForkRepository | None:
        """Find a fork of the upstream repository owned by the token's user.

        Returns:
            The fork, or None if the user has no fork of the repository.

        References:
            - List repositories for the authenticated user: https://docs.github.com/en/rest/repos/repos#list-repositories-for-the-authenticated-user
        """
        for repo in self._github.get_user().get_repos(affiliation="owner"):
            if repo.fork and repo.parent is not None and repo.parent.full_name == self._repository:
                self._fork = repo
                return ForkRepository(owner=repo.owner.login, name=repo.name)
        return None

    def fork_branch_exists(self, fork: ForkRepository, branch_name: str) -> bool:
        """Check if a branch exists in a fork of the repository."""
        repo = self._fork
        if repo is None or repo.full_name != f"{fork.owner}/{fork.name}":
            repo = self._github.get_repo(f"{fork.owner}/{fork.name}")
            self._fork = repo
        try:
            repo.get_branch(branch_name)
            return True
        except GithubException as e:
            if e.status == 404:
                return False
            raise

    def get_list_commits_in_branch_url(self, branch_name: str) -> str:
        """URL of the list of recent commits in a branch."""
        return f"https://github.com/{self._repository}/commits/{branch_name}"
