# SPDX-License-Identifier: MIT
"""External command execution for bullet-sys.

Every external program the pipeline drives (git, cmake) goes through
a CommandRunner. The default runner wraps subprocess; tests pass in a
fake runner and inspect the recorded command lines instead.

Usage:
    runner = SubprocessRunner()
    result = run_checked(runner, ["git", "--version"], error=AcquisitionError)
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from bullet_sys.core.errors import CommandError, ToolNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Exit status and captured output of an external command.

    Attributes:
        argv: The command line that was executed.
        returncode: Exit status.
        stdout: Captured standard output.
        stderr: Captured standard error.
    """

    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Standard output followed by standard error."""
        parts = [part.rstrip() for part in (self.stdout, self.stderr) if part.strip()]
        return "\n".join(parts)


@runtime_checkable
class CommandRunner(Protocol):
    """Protocol for running an external command to completion."""

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Run a command, wait for it and return its result.

        Raises:
            FileNotFoundError: If the executable does not exist.
        """
        ...


class SubprocessRunner:
    """CommandRunner backed by subprocess.run.

    Output is captured so that the pipeline's stdout stays reserved for
    link directives. Captured output is logged at debug level.
    """

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        completed = subprocess.run(
            list(argv),
            cwd=cwd,
            env=dict(env) if env is not None else None,
            capture_output=True,
            text=True,
            check=False,
        )
        result = CommandResult(
            argv=tuple(argv),
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        if result.output:
            logger.debug("%s output:\n%s", argv[0], result.output)
        return result


def format_command(argv: Sequence[str], cwd: Path | None = None) -> str:
    """Render a command line for log messages."""
    text = " ".join(str(arg) for arg in argv)
    if cwd is not None:
        return f"{text} (in {cwd})"
    return text


def run_checked(
    runner: CommandRunner,
    argv: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    error: type[CommandError] = CommandError,
) -> CommandResult:
    """Run a command and raise if it fails.

    Args:
        runner: The runner to execute the command with.
        argv: Command line.
        cwd: Working directory for the command.
        env: Environment for the command (inherited if None).
        error: CommandError subclass to raise on a non-zero exit.

    Returns:
        The successful CommandResult.

    Raises:
        ToolNotFoundError: If the executable cannot be found.
        CommandError: (or the given subclass) on a non-zero exit status.
    """
    argv = [str(arg) for arg in argv]
    logger.info("Executing %s", format_command(argv, cwd))
    try:
        result = runner.run(argv, cwd=cwd, env=env)
    except FileNotFoundError:
        raise ToolNotFoundError(argv[0]) from None
    if not result.success:
        raise error(argv, result.returncode, result.output)
    logger.info("Command %s finished successfully", format_command(argv))
    return result
