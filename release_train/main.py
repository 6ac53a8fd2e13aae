# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Command line entry point for the release tool.

Commands:
    stage         Stage a release: bump the version, update the changelog and
                  open the staging pull request.
    publish       Stage a release, wait for it to be merged, then build and
                  publish it. Releases staged earlier and merged since are
                  offered for publishing as well.
    info          Print the active release trains.
    set-dist-tag  Point an npm dist-tag at a version for every package.

References:
    - Creating a GitHub token: https://github.com/settings/tokens/new
"""

from __future__ import annotations

import argparse
import logging
import os
import shlex
import sys
from dataclasses import dataclass
from pathlib import Path

from release_train.config import (
    DEFAULT_NEXT_BRANCH,
    DEFAULT_POLL_INTERVAL,
    ReleaseConfig,
    validate_config,
)
from release_train.context import ReleaseContext
from release_train.errors import FatalReleaseActionError, ReleaseConfigError
from release_train.executor import set_npm_dist_tag_for_packages
from release_train.external_commands import ReleaseBuilder
from release_train.git import GitClient
from release_train.github_api import GitHubAPI
from release_train.npm import NpmRegistry
from release_train.prompt import RichPrompt
from release_train.tool import CompletionState, ReleaseTool
from release_train.version import parse_version

logger = logging.getLogger(__name__)

COMMANDS = ("stage", "publish", "info", "set-dist-tag")

# Commands that never build packages do not need a build command.
_BUILDING_COMMANDS = ("stage", "publish")


@dataclass
class CliInputs:
    """Parsed command line inputs."""

    command: str
    token: str
    repository: str
    project_dir: Path
    config: ReleaseConfig
    debug: bool = False
    dist_tag: str = ""
    version: str = ""


def _split_command(value: str) -> list[str]:
    return shlex.split(value) if value else []


def _split_packages(value: str) -> list[str]:
    return [name.strip() for name in value.split(",") if name.strip()]


def parse_inputs(args: list[str] | None = None) -> CliInputs:
    """Parse CLI arguments, with environment variables as defaults.

    CLI arguments take precedence over environment variables.

    Args:
        args: CLI arguments. If None, ``sys.argv[1:]`` is used.

    Returns:
        CliInputs with parsed values.
    """
    parser = argparse.ArgumentParser(
        prog="release-train",
        description="Release tool - Stage and publish releases of npm packages from release trains",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables (used as defaults when CLI args not provided):
  GITHUB_TOKEN, TOKEN            GitHub token for authentication
  GITHUB_REPOSITORY              Upstream repository (owner/repo)
  RELEASE_PACKAGES               Comma-separated npm package names
  RELEASE_BUILD_COMMAND          Command building the release packages
  RELEASE_NOTES_COMMAND          Command generating the changelog section
  RELEASE_NEXT_BRANCH            Primary development branch (default: main)
  RELEASE_REGISTRY               Custom npm registry URL
  RELEASE_POLL_INTERVAL          Seconds between pull request merge checks
  RELEASE_DEBUG                  Enable debug logging (true/false)

Examples:
  # Print the active release trains
  release-train info --repository angular/components --package @angular/cdk

  # Stage, await and publish a release
  release-train publish --package @angular/cdk --build-command "node build.js"

  # Move a dist-tag
  release-train set-dist-tag v10-lts 10.2.3
        """,
    )

    parser.add_argument("command", choices=COMMANDS, help="Command to run")
    parser.add_argument("arguments", nargs="*", help="Arguments for set-dist-tag: TAG VERSION")
    parser.add_argument(
        "--github-token",
        default=os.environ.get("GITHUB_TOKEN", os.environ.get("TOKEN", "")),
        help="GitHub token for authentication (default: from GITHUB_TOKEN or TOKEN env)",
    )
    parser.add_argument(
        "--repository",
        default=os.environ.get("GITHUB_REPOSITORY", ""),
        help="Upstream repository in owner/repo format (default: from GITHUB_REPOSITORY env)",
    )
    parser.add_argument(
        "--project-dir",
        default=os.getcwd(),
        help="Root of the local working copy (default: current directory)",
    )
    parser.add_argument(
        "--package",
        action="append",
        default=None,
        help="npm package to release; may be repeated (default: from RELEASE_PACKAGES env)",
    )
    parser.add_argument(
        "--build-command",
        default=os.environ.get("RELEASE_BUILD_COMMAND", ""),
        help="Command printing a JSON list of built packages",
    )
    parser.add_argument(
        "--release-notes-command",
        default=os.environ.get("RELEASE_NOTES_COMMAND", ""),
        help="Command run with the version and changelog path to write release notes",
    )
    parser.add_argument(
        "--next-branch",
        default=os.environ.get("RELEASE_NEXT_BRANCH", DEFAULT_NEXT_BRANCH),
        help=f"Primary development branch (default: {DEFAULT_NEXT_BRANCH})",
    )
    parser.add_argument(
        "--registry",
        default=os.environ.get("RELEASE_REGISTRY") or None,
        help="Custom npm registry URL",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=float(os.environ.get("RELEASE_POLL_INTERVAL", DEFAULT_POLL_INTERVAL)),
        help=f"Seconds between pull request merge checks (default: {DEFAULT_POLL_INTERVAL:g})",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=os.environ.get("RELEASE_DEBUG", "false").lower() == "true",
        help="Enable debug logging",
    )

    parsed = parser.parse_args(args)

    dist_tag = version = ""
    if parsed.command == "set-dist-tag":
        if len(parsed.arguments) != 2:
            parser.error("set-dist-tag requires TAG and VERSION arguments")
        dist_tag, version = parsed.arguments
    elif parsed.arguments:
        parser.error(f"{parsed.command} takes no positional arguments")

    packages = parsed.package or _split_packages(os.environ.get("RELEASE_PACKAGES", ""))
    config = ReleaseConfig(
        npm_packages=packages,
        build_command=_split_command(parsed.build_command),
        release_notes_command=_split_command(parsed.release_notes_command),
        next_branch=parsed.next_branch,
        registry_url=parsed.registry,
        poll_interval=parsed.poll_interval,
    )

    return CliInputs(
        command=parsed.command,
        token=parsed.github_token,
        repository=parsed.repository,
        project_dir=Path(parsed.project_dir).resolve(),
        config=config,
        debug=parsed.debug,
        dist_tag=dist_tag,
        version=version,
    )


def configure_logging(debug: bool) -> None:
    """Configure logging based on debug flag.

    Args:
        debug: If True, enable DEBUG level logging.
    """
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def build_context(inputs: CliInputs) -> ReleaseContext:
    """Create the collaborators of a release run.

    Raises:
        ValueError: If the GitHub client cannot be initialized.
    """
    return ReleaseContext(
        config=inputs.config,
        git=GitClient(inputs.project_dir, inputs.token, inputs.repository),
        github=GitHubAPI(token=inputs.token, repository=inputs.repository),
        npm=NpmRegistry(inputs.config.registry_url),
        builder=ReleaseBuilder(inputs.config, inputs.project_dir),
        prompt=RichPrompt(),
        project_dir=inputs.project_dir,
        stage_only=inputs.command == "stage",
    )


def set_dist_tag(ctx: ReleaseContext, dist_tag: str, version_text: str) -> CompletionState:
    """Point a dist-tag at a version for every configured package."""
    try:
        version = parse_version(version_text)
    except ValueError as e:
        logger.error("  ✘   %s", e)
        return CompletionState.FATAL_ERROR

    try:
        set_npm_dist_tag_for_packages(ctx, dist_tag, version)
    except FatalReleaseActionError:
        return CompletionState.FATAL_ERROR
    return CompletionState.SUCCESS


def run_command(inputs: CliInputs, ctx: ReleaseContext) -> CompletionState:
    """Dispatch a parsed command to the release tool."""
    if inputs.command == "info":
        return ReleaseTool(ctx).print_info()
    if inputs.command == "set-dist-tag":
        return set_dist_tag(ctx, inputs.dist_tag, inputs.version)
    return ReleaseTool(ctx).run()


def main(args: list[str] | None = None) -> None:
    """Main entry point for the release tool."""
    inputs = parse_inputs(args)
    configure_logging(inputs.debug)

    if not inputs.token:
        logger.error("No GitHub token set. Pass --github-token or set GITHUB_TOKEN or TOKEN.")
        logger.error("Alternatively, create a token at: https://github.com/settings/tokens/new")
        sys.exit(1)

    try:
        validate_config(inputs.config, require_build_command=inputs.command in _BUILDING_COMMANDS)
    except ReleaseConfigError as e:
        logger.error("%s", e)
        sys.exit(1)

    try:
        ctx = build_context(inputs)
    except ValueError as e:
        logger.error("Failed to initialize GitHub API: %s", e)
        sys.exit(1)

    state = run_command(inputs, ctx)
    if state is CompletionState.FATAL_ERROR:
        sys.exit(1)
    if state is CompletionState.MANUALLY_ABORTED:
        logger.info("Release has been aborted manually. Nothing else to do.")
    sys.exit(0)


if __name__ == "__main__":  # pragma: no cover
    main()
