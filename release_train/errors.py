# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Exception taxonomy for the release tool.

Release actions signal their outcome by raising one of these exceptions. The
release tool translates them into a completion state, and only the command
line entry point turns that state into a process exit code.
"""

from __future__ import annotations


class ReleaseError(Exception):
    """Base class for all release tool errors."""


class FatalReleaseActionError(ReleaseError):
    """An external operation failed and the release cannot continue.

    The failure has already been reported to the operator, so no stack
    trace is printed for it.
    """


class UserAbortedReleaseActionError(ReleaseError):
    """The operator declined a confirmation or cancelled a wait."""


class AmbiguousBranchState(ReleaseError):
    """The version branches do not describe a valid set of release trains."""


class ReleaseConfigError(ReleaseError):
    """The release configuration is incomplete or invalid."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("Invalid release configuration:\n" + "\n".join(f"  - {e}" for e in errors))


class InvalidTransition(ValueError):
    """A version transition was requested that the version cannot undergo.

    This indicates a defect in an action's activation predicate, not an
    operational failure.
    """


class GitCommandError(ReleaseError):
    """A git invocation exited with a non-zero status."""

    def __init__(self, args: list[str], returncode: int, output: str) -> None:
        self.args_list = args
        self.returncode = returncode
        self.output = output
        super().__init__(f"Command 'git {' '.join(args)}' failed with exit code {returncode}")
