# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Silent execution of external commands.

Output of a command is captured. It is logged at debug level when the
command succeeds and at error level when it fails, so that the operator
only sees noise when something went wrong.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of an external command.

    Attributes:
        command: The command that was executed.
        returncode: Exit code of the process (-1 if it could not be started).
        stdout: Captured standard output.
        stderr: Captured standard error.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


def run_silent_with_debug_output(
    cmd: list[str],
    cwd: Path | None = None,
    *,
    display: list[str] | None = None,
) -> ProcessResult:
    """Run a command, capturing its output.

    Args:
        cmd: Command and arguments to execute.
        cwd: Working directory for the command.
        display: Command as it should appear in logs, for commands whose
            arguments contain credentials.

    Returns:
        ProcessResult describing the outcome. This never raises for a failing
        command; callers decide whether a failure is fatal.
    """
    shown = " ".join(display if display is not None else cmd)
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd is not None else None,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        logger.error('Command "%s" could not be started: %s', shown, e)
        return ProcessResult(command=tuple(cmd), returncode=-1, stdout="", stderr=str(e))

    log = logger.debug if proc.returncode == 0 else logger.error
    log('Command "%s" completed with exit code "%s".', shown, proc.returncode)
    output = (proc.stdout or "") + (proc.stderr or "")
    if output.strip():
        log("Log output: %s", output.strip())

    return ProcessResult(
        command=tuple(cmd),
        returncode=proc.returncode,
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
    )
